"""
Security Module
Handles password hashing, JWT token creation and verification.
"""
import logging
import secrets
from datetime import datetime, timedelta, timezone
from typing import Optional
from passlib.context import CryptContext
from jose import ExpiredSignatureError, JWTError, jwt

from eartraining.config import settings


logger = logging.getLogger(__name__)

# Password hashing context
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


class TokenError(Exception):
    """Base class for token verification failures."""


class TokenExpiredError(TokenError):
    """Token signature is valid but the token is past its expiry."""


class InvalidTokenError(TokenError):
    """Token is malformed, badly signed or carries no user id."""


def verify_password(plain_password: str, hashed_password: Optional[str]) -> bool:
    """Verify a plain password against a hashed password."""
    if not hashed_password:
        # Google accounts have no password
        return False
    return pwd_context.verify(plain_password, hashed_password)


def get_password_hash(password: str) -> str:
    """Hash a plain password."""
    return pwd_context.hash(password)


def generate_reset_token() -> str:
    """Random 32-byte token, hex encoded."""
    return secrets.token_hex(32)


def create_access_token(
    data: dict,
    expires_delta: Optional[timedelta] = None
) -> str:
    """
    Create a JWT access token.

    Args:
        data: Data to encode in the token
        expires_delta: Token expiration time

    Returns:
        Encoded JWT token
    """
    to_encode = data.copy()

    if expires_delta:
        expire = datetime.now(timezone.utc) + expires_delta
    else:
        expire = datetime.now(timezone.utc) + timedelta(days=settings.ACCESS_TOKEN_EXPIRE_DAYS)

    to_encode.update({"exp": expire})
    encoded_jwt = jwt.encode(
        to_encode,
        settings.SECRET_KEY,
        algorithm=settings.ALGORITHM
    )
    return encoded_jwt


def create_user_token(user: dict, include_google: bool = False) -> str:
    """
    Issue the session token for a user document.

    The payload carries the user snapshot the front end reads without
    another round trip (id, email, name, subscription, level, xp).
    """
    payload = {
        "sub": user["id"],
        "id": user["id"],
        "email": user["email"],
        "name": user["name"],
        "subscription": user.get("subscription", "free"),
        "level": user.get("level") or 1,
        "xp": user.get("xp") or 0,
    }
    if include_google:
        payload["avatar"] = user.get("avatar")
        payload["googleId"] = user.get("google_id")
    return create_access_token(payload)


def decode_token(token: str) -> dict:
    """
    Verify and decode a JWT token.

    Raises:
        TokenExpiredError: signature ok but token expired
        InvalidTokenError: anything else wrong with the token
    """
    try:
        payload = jwt.decode(
            token,
            settings.SECRET_KEY,
            algorithms=[settings.ALGORITHM]
        )
    except ExpiredSignatureError as e:
        logger.info(f"Expired token: {e}")
        raise TokenExpiredError("Token expirado") from e
    except JWTError as e:
        logger.warning(f"Invalid token: {e}")
        raise InvalidTokenError("Token inválido") from e

    if not user_id_from_payload(payload):
        raise InvalidTokenError("Token inválido")
    return payload


def user_id_from_payload(payload: dict) -> Optional[str]:
    """User id claim of a decoded token (`sub`, or legacy `id` / `userId`)."""
    return payload.get("sub") or payload.get("id") or payload.get("userId")
