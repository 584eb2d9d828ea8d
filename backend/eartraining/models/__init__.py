"""
Pydantic Models Module
Contains data models for all entities in the application.
"""
from eartraining.models.user import User, UserResponse, Subscription, SubscriptionType, SubscriptionStatus
from eartraining.models.progress import (
    Progress, ExerciseSession, ExerciseStats, Badge, ExerciseType, Difficulty
)
from eartraining.models.password_reset import PasswordReset
from eartraining.models.chord_progression import ChordProgression, ProgressionCategory, ProgressionMode

__all__ = [
    "User", "UserResponse", "Subscription", "SubscriptionType", "SubscriptionStatus",
    "Progress", "ExerciseSession", "ExerciseStats", "Badge", "ExerciseType", "Difficulty",
    "PasswordReset",
    "ChordProgression", "ProgressionCategory", "ProgressionMode"
]
