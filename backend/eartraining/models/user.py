"""
User Models
Defines user-related data structures.
"""
from datetime import datetime, timezone
from enum import Enum
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field, model_validator


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Subscription(str, Enum):
    """Subscription tier"""
    FREE = "free"
    PREMIUM = "premium"


class SubscriptionType(str, Enum):
    FREE = "free"
    PREMIUM = "premium"
    ANNUAL = "annual"


class SubscriptionStatus(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"
    CANCELED = "canceled"


class User(BaseModel):
    """User document"""
    model_config = ConfigDict(use_enum_values=True)

    id: str
    email: str
    name: str
    password_hash: Optional[str] = None
    google_id: Optional[str] = None
    avatar: Optional[str] = None

    subscription: Subscription = Field(default=Subscription.FREE)
    subscription_type: SubscriptionType = Field(default=SubscriptionType.FREE)
    subscription_status: SubscriptionStatus = Field(default=SubscriptionStatus.INACTIVE)

    # Gamification snapshot
    level: int = Field(default=1, ge=1)
    xp: int = Field(default=0, ge=0)

    # Metadata
    last_active: datetime = Field(default_factory=utcnow)
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    @model_validator(mode="after")
    def check_credentials(self) -> "User":
        """A user must be able to sign in somehow."""
        if not self.password_hash and not self.google_id:
            raise ValueError("Usuário deve ter senha ou Google ID")
        self.email = self.email.strip().lower()
        return self

    @property
    def is_google_user(self) -> bool:
        return bool(self.google_id)


class UserResponse(BaseModel):
    """User response model (without sensitive data)"""
    id: str
    email: str
    name: str
    subscription: str = "free"
    subscription_type: str = "free"
    subscription_status: str = "inactive"
    avatar: Optional[str] = None
    level: int = 1
    xp: int = 0
    is_google_user: bool = False
    last_active: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_document(cls, user: dict) -> "UserResponse":
        """Build the public view of a stored user document."""
        return cls(
            id=user["id"],
            email=user["email"],
            name=user["name"],
            subscription=user.get("subscription") or "free",
            subscription_type=user.get("subscription_type") or user.get("subscription") or "free",
            subscription_status=user.get("subscription_status") or "inactive",
            avatar=user.get("avatar"),
            level=user.get("level") or 1,
            xp=user.get("xp") or 0,
            is_google_user=bool(user.get("google_id")),
            last_active=user.get("last_active"),
            created_at=user.get("created_at"),
            updated_at=user.get("updated_at")
        )
