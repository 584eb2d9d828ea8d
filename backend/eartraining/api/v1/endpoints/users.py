"""
Users API Endpoints
Profile of the signed-in user, account changes and the user directory.
"""
from fastapi import APIRouter, HTTPException, Depends, status
import logging

from eartraining.core.dependencies import (
    check_password_length,
    get_current_user,
    get_current_user_id,
    get_db
)
from eartraining.core.security import get_password_hash, verify_password
from eartraining.models.user import UserResponse
from eartraining.schemas.auth import MessageResponse
from eartraining.schemas.users import (
    ChangePasswordRequest,
    UpdateProfileRequest,
    UserListResponse
)
from eartraining.services.cosmos_db_service import CosmosDBService


logger = logging.getLogger(__name__)

router = APIRouter()


# ==================== PROFILE ====================

@router.get("/me", response_model=UserResponse)
async def get_current_user_profile(current_user: dict = Depends(get_current_user)):
    """
    Get current user's profile.
    """
    return UserResponse.from_document(current_user)


@router.put("/profile", response_model=UserResponse)
async def update_profile(
    request: UpdateProfileRequest,
    current_user: dict = Depends(get_current_user),
    db: CosmosDBService = Depends(get_db)
):
    """
    Change name and/or email of the signed-in user.

    A new email must not belong to another account.
    """
    try:
        updates = {}
        if request.name:
            updates["name"] = request.name

        if request.email and request.email != current_user["email"]:
            if await db.get_user_by_email(request.email):
                raise HTTPException(
                    status_code=status.HTTP_400_BAD_REQUEST,
                    detail="Email já está em uso"
                )
            updates["email"] = request.email

        if not updates:
            return UserResponse.from_document(current_user)

        updated = await db.update_user(current_user["id"], updates)
        logger.info(f"Profile updated for user {current_user['id']}: {sorted(updates)}")

        return UserResponse.from_document(updated)

    except HTTPException:
        raise
    except Exception as e:
        logger.exception(f"Error updating profile: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Erro ao atualizar perfil"
        )


@router.put("/change-password", response_model=MessageResponse)
async def change_password(
    request: ChangePasswordRequest,
    current_user: dict = Depends(get_current_user),
    db: CosmosDBService = Depends(get_db)
):
    """
    Replace the password after checking the current one.

    Google-only accounts have no current password, so the check fails.
    """
    try:
        if not verify_password(request.current_password, current_user.get("password_hash")):
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Senha atual incorreta"
            )

        check_password_length(request.new_password)

        await db.update_user(
            current_user["id"],
            {"password_hash": get_password_hash(request.new_password)}
        )
        logger.info(f"Password changed for user {current_user['id']}")

        return MessageResponse(message="Senha alterada com sucesso")

    except HTTPException:
        raise
    except Exception as e:
        logger.exception(f"Error changing password: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Erro ao alterar senha"
        )


# ==================== DIRECTORY ====================

@router.get("", response_model=UserListResponse)
async def list_users(
    user_id: str = Depends(get_current_user_id),
    db: CosmosDBService = Depends(get_db)
):
    """
    List every user without credentials.
    """
    try:
        users = await db.list_users()
        logger.info(f"User {user_id} listed {len(users)} users")
        return UserListResponse(
            users=[UserResponse.from_document(user) for user in users],
            total=len(users)
        )

    except HTTPException:
        raise
    except Exception as e:
        logger.exception(f"Error listing users: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Erro interno do servidor"
        )
