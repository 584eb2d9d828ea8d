"""
Progress Models
Defines gamification and exercise history structures.
"""
from datetime import datetime, timezone
from enum import Enum
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field, model_validator

from eartraining.utils.level_utils import resolve_level


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


MAX_RECENT_SESSIONS = 50


class ExerciseType(str, Enum):
    """Exercise families offered by the app"""
    MELODIC_INTERVALS = "melodic-intervals"
    HARMONIC_INTERVALS = "harmonic-intervals"
    CHORD_PROGRESSIONS = "chord-progressions"
    RHYTHMIC_PATTERNS = "rhythmic-patterns"


class Difficulty(str, Enum):
    BEGINNER = "beginner"
    INTERMEDIATE = "intermediate"
    ADVANCED = "advanced"


class ExerciseSession(BaseModel):
    """A single completed exercise session"""
    model_config = ConfigDict(use_enum_values=True)

    exercise_type: ExerciseType
    difficulty: Difficulty
    total_questions: int = Field(..., ge=1)
    correct_answers: int = Field(..., ge=0)
    time_spent: float = Field(..., ge=0, description="Seconds")
    average_response_time: float = Field(..., ge=0, description="Seconds")
    points_earned: int = Field(..., ge=0)
    xp_earned: int = Field(..., ge=0)
    completed_at: datetime = Field(default_factory=utcnow)

    @property
    def accuracy(self) -> float:
        return self.correct_answers / self.total_questions


class ExerciseStats(BaseModel):
    """Aggregated stats for one exercise type"""
    model_config = ConfigDict(use_enum_values=True)

    exercise_type: ExerciseType
    total_sessions: int = Field(default=0, ge=0)
    total_questions: int = Field(default=0, ge=0)
    total_correct: int = Field(default=0, ge=0)
    best_accuracy: float = Field(default=0, ge=0, le=100)
    average_accuracy: float = Field(default=0, ge=0, le=100)
    total_time_spent: float = Field(default=0, ge=0)
    total_points_earned: int = Field(default=0, ge=0)
    total_xp_earned: int = Field(default=0, ge=0)
    current_streak: int = Field(default=0, ge=0)
    best_streak: int = Field(default=0, ge=0)
    last_played: datetime = Field(default_factory=utcnow)


class Badge(BaseModel):
    """Unlocked achievement"""
    id: str
    name: str
    description: str
    icon: str
    unlocked_at: datetime = Field(default_factory=utcnow)


class Progress(BaseModel):
    """Per-user progress document (one per user)"""
    model_config = ConfigDict(use_enum_values=True)

    id: str
    user_id: str
    total_xp: int = Field(default=0, ge=0)
    current_level: int = Field(default=1, ge=1)
    total_points: int = Field(default=0, ge=0)
    total_exercises: int = Field(default=0, ge=0)
    total_correct_answers: int = Field(default=0, ge=0)
    overall_accuracy: float = Field(default=0, ge=0, le=100)

    # Streak tracking
    current_global_streak: int = Field(default=0, ge=0)
    best_global_streak: int = Field(default=0, ge=0)
    last_active_date: datetime = Field(default_factory=utcnow)

    exercise_stats: list[ExerciseStats] = Field(default_factory=list)
    recent_sessions: list[ExerciseSession] = Field(
        default_factory=list,
        description="Newest first"
    )
    badges: list[Badge] = Field(default_factory=list)

    # Metadata
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    @model_validator(mode="after")
    def check_history_size(self) -> "Progress":
        if len(self.recent_sessions) > MAX_RECENT_SESSIONS:
            raise ValueError(f"Máximo de {MAX_RECENT_SESSIONS} sessões no histórico")
        return self

    @staticmethod
    def document_id(user_id: str) -> str:
        """Deterministic id: one progress document per user."""
        return f"progress_{user_id}"

    @classmethod
    def new(cls, user_id: str) -> "Progress":
        return cls(id=cls.document_id(user_id), user_id=user_id)

    def stats_for(self, exercise_type: str) -> Optional[ExerciseStats]:
        for stat in self.exercise_stats:
            if stat.exercise_type == exercise_type:
                return stat
        return None

    def badge_ids(self) -> set[str]:
        return {badge.id for badge in self.badges}

    def prepare_for_save(self, curve: str = "power") -> "Progress":
        """
        Run before every write: derive the level from XP and bump updated_at.
        """
        self.current_level = resolve_level(self.total_xp, curve)
        self.updated_at = utcnow()
        return self
