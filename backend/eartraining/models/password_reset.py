"""
Password Reset Models
Single-use tokens for the forgot-password flow.
"""
from datetime import datetime, timedelta, timezone
from pydantic import BaseModel, Field


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


DEFAULT_EXPIRE_MINUTES = 60


class PasswordReset(BaseModel):
    """Password reset token document"""
    id: str
    email: str
    token: str
    expires_at: datetime = Field(
        default_factory=lambda: utcnow() + timedelta(minutes=DEFAULT_EXPIRE_MINUTES)
    )
    used: bool = False
    created_at: datetime = Field(default_factory=utcnow)

    def is_valid(self, now: datetime | None = None) -> bool:
        """Unused and not yet expired."""
        now = now or utcnow()
        return not self.used and self.expires_at > now

    def ttl_seconds(self, now: datetime | None = None) -> int:
        """Seconds left until the store may drop the document."""
        now = now or utcnow()
        return max(1, int((self.expires_at - now).total_seconds()))
