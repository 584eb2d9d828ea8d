"""
FastAPI Dependencies
Dependency injection for the database handle and authentication.
"""
import logging
from typing import Optional
from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

from eartraining.config import settings
from eartraining.core.security import decode_token, user_id_from_payload, TokenExpiredError, TokenError
from eartraining.services.cosmos_db_service import CosmosDBService


logger = logging.getLogger(__name__)

# HTTP Bearer token scheme
security = HTTPBearer(auto_error=False)


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def check_password_length(password: str) -> None:
    """400 when a new password is shorter than PASSWORD_MIN_LENGTH."""
    if len(password) < settings.PASSWORD_MIN_LENGTH:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"A senha deve ter pelo menos {settings.PASSWORD_MIN_LENGTH} caracteres"
        )


async def get_db(request: Request) -> CosmosDBService:
    """
    Database handle owned by the application.

    Created on startup; if startup could not install it, the first request
    tries again and the handle is kept only when initialization succeeds.
    """
    db = getattr(request.app.state, "db", None)
    if db is not None:
        return db

    db = CosmosDBService()
    try:
        await db.initialize()
    except Exception as e:
        logger.error(f"Database unavailable: {e}")
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Banco de dados indisponível"
        )
    request.app.state.db = db
    return db


async def get_token_payload(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security)
) -> dict:
    """
    Decoded JWT payload (required).

    Raises 401 with a message telling missing, expired and invalid tokens apart.
    """
    if not credentials or not credentials.credentials:
        raise _unauthorized("Token não fornecido")

    try:
        return decode_token(credentials.credentials)
    except TokenExpiredError:
        raise _unauthorized("Token expirado")
    except TokenError:
        raise _unauthorized("Token inválido")


async def get_current_user_id(payload: dict = Depends(get_token_payload)) -> str:
    """User id carried by the bearer token."""
    return user_id_from_payload(payload)


async def get_current_user(
    user_id: str = Depends(get_current_user_id),
    db: CosmosDBService = Depends(get_db)
) -> dict:
    """
    Stored user document for the bearer token.

    Raises 404 if the account no longer exists.
    """
    user_data = await db.get_user(user_id)
    if not user_data:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Usuário não encontrado"
        )
    return user_data
