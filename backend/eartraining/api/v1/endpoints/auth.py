"""
Auth API Endpoints
Registration, login (password and Google) and the password reset flow.
"""
from fastapi import APIRouter, HTTPException, Depends, Query, status
from fastapi.responses import RedirectResponse
from datetime import timedelta
from urllib.parse import quote
import logging
import uuid

from eartraining.config import settings
from eartraining.core.dependencies import check_password_length, get_db
from eartraining.core.security import (
    create_user_token,
    generate_reset_token,
    get_password_hash,
    verify_password
)
from eartraining.models.password_reset import PasswordReset, utcnow
from eartraining.models.user import User, UserResponse
from eartraining.schemas.auth import (
    AuthResponse,
    ForgotPasswordRequest,
    GoogleLoginRequest,
    LoginRequest,
    MessageResponse,
    RegisterRequest,
    ResetPasswordRequest,
    VerifyResetTokenResponse
)
from eartraining.services.cosmos_db_service import CosmosDBService
from eartraining.services.email_service import email_service
from eartraining.services.google_oauth_service import GoogleOAuthError, google_oauth_service


logger = logging.getLogger(__name__)

router = APIRouter()

GENERIC_FORGOT_MESSAGE = (
    "Se este email estiver cadastrado, você receberá as instruções de recuperação em breve."
)
INVALID_RESET_TOKEN = "Token inválido ou expirado"


def _is_google_only(user_data: dict) -> bool:
    return bool(user_data.get("google_id")) and not user_data.get("password_hash")


def _login_error_redirect(message: str) -> RedirectResponse:
    return RedirectResponse(f"{settings.FRONTEND_URL}/auth/login?error={quote(message)}")


async def _upsert_google_user(
    db: CosmosDBService,
    email: str,
    name: str,
    google_id: str,
    avatar: str | None
) -> dict:
    """Link Google to an existing account or create a Google-only one."""
    user_data = await db.get_user_by_email(email)
    now = utcnow().isoformat()

    if user_data:
        updates = {"last_active": now}
        if not user_data.get("google_id"):
            updates["google_id"] = google_id
            logger.info(f"Linking existing account to Google: {email}")
        if avatar and avatar != user_data.get("avatar"):
            updates["avatar"] = avatar
        return await db.update_user(user_data["id"], updates)

    user = User(
        id=str(uuid.uuid4()),
        email=email,
        name=name,
        google_id=google_id,
        avatar=avatar
    )
    logger.info(f"New Google user: {email}")
    return await db.create_user(user.model_dump(mode="json"))


# ==================== PASSWORD AUTHENTICATION ====================

@router.post("/register", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
async def register_user(
    request: RegisterRequest,
    db: CosmosDBService = Depends(get_db)
):
    """
    Register a new user with email and password.

    Returns a JWT token for immediate authentication.
    """
    try:
        check_password_length(request.password)

        existing_user = await db.get_user_by_email(request.email)
        if existing_user:
            if _is_google_only(existing_user):
                raise HTTPException(
                    status_code=status.HTTP_400_BAD_REQUEST,
                    detail='Esta conta já existe com Google. Use "Entrar com Google"'
                )
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="Usuário já existe com este email"
            )

        user = User(
            id=str(uuid.uuid4()),
            email=request.email,
            name=request.name,
            password_hash=get_password_hash(request.password)
        )
        user_data = await db.create_user(user.model_dump(mode="json"))

        logger.info(f"New user registered: {user.email}")

        return AuthResponse(
            message="Usuário criado com sucesso!",
            token=create_user_token(user_data),
            user=UserResponse.from_document(user_data)
        )

    except HTTPException:
        raise
    except Exception as e:
        logger.exception(f"Error registering user: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Erro interno do servidor"
        )


@router.post("/login", response_model=AuthResponse)
async def login_user(
    credentials: LoginRequest,
    db: CosmosDBService = Depends(get_db)
):
    """
    Authenticate a user and return a JWT token.
    """
    try:
        user_data = await db.get_user_by_email(credentials.email)
        if not user_data:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Email ou senha incorretos"
            )

        if _is_google_only(user_data):
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail='Esta conta foi criada com Google. Use "Entrar com Google"'
            )

        if not verify_password(credentials.password, user_data.get("password_hash")):
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Email ou senha incorretos"
            )

        user_data = await db.update_user(user_data["id"], {"last_active": utcnow().isoformat()})

        logger.info(f"User logged in: {credentials.email}")

        return AuthResponse(
            message="Login realizado com sucesso!",
            token=create_user_token(user_data),
            user=UserResponse.from_document(user_data)
        )

    except HTTPException:
        raise
    except Exception as e:
        logger.exception(f"Error logging in: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Erro interno do servidor"
        )


# ==================== GOOGLE OAUTH ====================

@router.post("/google", response_model=AuthResponse)
async def google_login(
    request: GoogleLoginRequest,
    db: CosmosDBService = Depends(get_db)
):
    """
    Login with a Google profile already obtained by the client.

    Creates the account on first use.
    """
    try:
        user_data = await _upsert_google_user(
            db, request.email, request.name, request.google_id, request.avatar
        )
        logger.info(f"Google login: {user_data['email']}")

        return AuthResponse(
            message="Login com Google realizado com sucesso!",
            token=create_user_token(user_data, include_google=True),
            user=UserResponse.from_document(user_data)
        )

    except HTTPException:
        raise
    except Exception as e:
        logger.exception(f"Google login error: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Erro no login com Google"
        )


@router.get("/google")
async def google_authorize():
    """Redirect the browser to Google's consent screen."""
    if not google_oauth_service.is_configured:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Google Client ID não configurado"
        )
    return RedirectResponse(google_oauth_service.build_authorization_url())


@router.get("/google/callback")
async def google_callback(
    code: str | None = Query(default=None),
    error: str | None = Query(default=None),
    db: CosmosDBService = Depends(get_db)
):
    """
    OAuth callback: exchange the code, upsert the user and hand the JWT to the
    front end through a redirect.
    """
    if error:
        logger.warning(f"Google OAuth error: {error}")
        return _login_error_redirect("Erro no login com Google")
    if not code:
        return _login_error_redirect("Código de autorização não recebido")

    try:
        access_token = await google_oauth_service.exchange_code(code)
        google_user = await google_oauth_service.fetch_user_info(access_token)
    except GoogleOAuthError as e:
        return _login_error_redirect(str(e))

    if not google_user.email:
        return _login_error_redirect("Email não encontrado no perfil Google")

    try:
        user_data = await _upsert_google_user(
            db,
            google_user.email.strip().lower(),
            google_user.name or google_user.email,
            google_user.id,
            google_user.picture
        )
    except Exception as e:
        logger.exception(f"Google OAuth callback error: {e}")
        return _login_error_redirect("Erro interno no callback")

    token = create_user_token(user_data, include_google=True)
    logger.info(f"Google OAuth callback successful: {user_data['email']}")
    return RedirectResponse(f"{settings.FRONTEND_URL}/auth/success?token={token}")


# ==================== PASSWORD RESET ====================

@router.post("/forgot-password", response_model=MessageResponse)
async def forgot_password(
    request: ForgotPasswordRequest,
    db: CosmosDBService = Depends(get_db)
):
    """
    Issue a reset token and email it.

    Unknown emails get the same answer as known ones.
    """
    try:
        user_data = await db.get_user_by_email(request.email)
        if not user_data:
            logger.info(f"Password reset requested for unknown email: {request.email}")
            return MessageResponse(message=GENERIC_FORGOT_MESSAGE)

        if _is_google_only(user_data):
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Esta conta foi criada com Google. Não é possível redefinir senha."
            )

        await db.invalidate_password_resets(request.email)

        reset = PasswordReset(
            id=str(uuid.uuid4()),
            email=request.email,
            token=generate_reset_token(),
            expires_at=utcnow() + timedelta(minutes=settings.PASSWORD_RESET_EXPIRE_MINUTES)
        )
        await db.create_password_reset(reset.model_dump(mode="json"), reset.ttl_seconds())

        sent = await email_service.send_password_reset_email(
            request.email, reset.token, user_data["name"]
        )
        if not sent:
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail="Erro ao enviar email de recuperação"
            )

        logger.info(f"Password reset issued for {request.email}")
        return MessageResponse(message="Instruções de recuperação enviadas para seu email!")

    except HTTPException:
        raise
    except Exception as e:
        logger.exception(f"Error requesting password reset: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Erro interno do servidor"
        )


async def _get_valid_reset(db: CosmosDBService, token: str) -> PasswordReset:
    reset_data = await db.get_password_reset_by_token(token)
    if not reset_data:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=INVALID_RESET_TOKEN)
    reset = PasswordReset.model_validate(reset_data)
    if not reset.is_valid():
        logger.warning("Rejected used or expired reset token")
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=INVALID_RESET_TOKEN)
    return reset


@router.get("/verify-reset-token", response_model=VerifyResetTokenResponse)
async def verify_reset_token(
    token: str = Query(..., min_length=1),
    db: CosmosDBService = Depends(get_db)
):
    """Tell the reset page whether a token can still be used."""
    try:
        reset = await _get_valid_reset(db, token)
        user_data = await db.get_user_by_email(reset.email)
        return VerifyResetTokenResponse(
            valid=True,
            email=user_data["email"] if user_data else None,
            name=user_data["name"] if user_data else None
        )

    except HTTPException:
        raise
    except Exception as e:
        logger.exception(f"Error verifying reset token: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Erro interno do servidor"
        )


@router.post("/reset-password", response_model=MessageResponse)
async def reset_password(
    request: ResetPasswordRequest,
    db: CosmosDBService = Depends(get_db)
):
    """Apply a new password and burn the token."""
    try:
        check_password_length(request.new_password)

        reset = await _get_valid_reset(db, request.token)

        user_data = await db.get_user_by_email(reset.email)
        if not user_data:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Usuário não encontrado"
            )

        # Token is spent before the password changes
        await db.mark_password_reset_used(reset.id, reset.email)
        await db.update_user(
            user_data["id"],
            {"password_hash": get_password_hash(request.new_password)}
        )

        logger.info(f"Password reset for {reset.email}")
        return MessageResponse(message="Senha redefinida com sucesso! Você já pode fazer login.")

    except HTTPException:
        raise
    except Exception as e:
        logger.exception(f"Error resetting password: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Erro interno do servidor"
        )
