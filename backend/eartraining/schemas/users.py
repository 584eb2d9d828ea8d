"""
User Schemas
Request and response schemas for the user endpoints.
"""
from typing import Optional
from pydantic import BaseModel, EmailStr, Field, field_validator

from eartraining.models.user import UserResponse


# ==================== REQUEST SCHEMAS ====================

class UpdateProfileRequest(BaseModel):
    """Profile changes; omitted fields stay as they are."""
    name: Optional[str] = None
    email: Optional[EmailStr] = None

    @field_validator("name")
    @classmethod
    def strip_name(cls, v: Optional[str]) -> Optional[str]:
        return v.strip() if v is not None else None

    @field_validator("email")
    @classmethod
    def lower_email(cls, v: Optional[str]) -> Optional[str]:
        return v.strip().lower() if v is not None else None


class ChangePasswordRequest(BaseModel):
    current_password: str = Field(..., min_length=1)
    new_password: str = Field(..., min_length=1)


# ==================== RESPONSE SCHEMAS ====================

class UserListResponse(BaseModel):
    users: list[UserResponse]
    total: int
