"""
Auth Schemas
Request and response schemas for authentication endpoints.
"""
from typing import Optional
from pydantic import BaseModel, EmailStr, Field, field_validator

from eartraining.models.user import UserResponse


# ==================== REQUEST SCHEMAS ====================

class RegisterRequest(BaseModel):
    """Password registration."""
    email: EmailStr
    password: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1)

    @field_validator("email")
    @classmethod
    def lower_email(cls, v: str) -> str:
        return v.strip().lower()

    @field_validator("name")
    @classmethod
    def strip_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Nome é obrigatório")
        return v


class LoginRequest(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=1)

    @field_validator("email")
    @classmethod
    def lower_email(cls, v: str) -> str:
        return v.strip().lower()


class GoogleLoginRequest(BaseModel):
    """Google profile data already obtained by the client."""
    email: EmailStr
    name: str = Field(..., min_length=1)
    google_id: str = Field(..., min_length=1)
    avatar: Optional[str] = None

    @field_validator("email")
    @classmethod
    def lower_email(cls, v: str) -> str:
        return v.strip().lower()


class ForgotPasswordRequest(BaseModel):
    email: EmailStr

    @field_validator("email")
    @classmethod
    def lower_email(cls, v: str) -> str:
        return v.strip().lower()


class ResetPasswordRequest(BaseModel):
    token: str = Field(..., min_length=1)
    new_password: str = Field(..., min_length=1)


# ==================== RESPONSE SCHEMAS ====================

class AuthResponse(BaseModel):
    """JWT token response"""
    message: str
    token: str
    token_type: str = "bearer"
    user: UserResponse


class MessageResponse(BaseModel):
    message: str


class VerifyResetTokenResponse(BaseModel):
    valid: bool
    email: Optional[str] = None
    name: Optional[str] = None
