"""
Progress Schemas
Request and response schemas for progress API endpoints.
"""
from datetime import datetime
from enum import Enum
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field, model_validator

from eartraining.models.progress import (
    Badge,
    Difficulty,
    ExerciseSession,
    ExerciseStats,
    ExerciseType
)


# ==================== REQUEST SCHEMAS ====================

class SessionInput(BaseModel):
    """Data of a completed exercise session sent by the client."""
    model_config = ConfigDict(use_enum_values=True)

    exercise_type: ExerciseType
    difficulty: Difficulty
    total_questions: int = Field(..., ge=1)
    correct_answers: int = Field(..., ge=0)
    time_spent: float = Field(default=0, ge=0, description="Seconds")
    average_response_time: float = Field(default=0, ge=0, description="Seconds per answer")

    @model_validator(mode="after")
    def check_answers(self) -> "SessionInput":
        if self.correct_answers > self.total_questions:
            raise ValueError("correct_answers não pode exceder total_questions")
        return self


class LeaderboardType(str, Enum):
    XP = "xp"
    POINTS = "points"
    ACCURACY = "accuracy"
    LEVEL = "level"


# ==================== RESPONSE SCHEMAS ====================

class ProgressResponse(BaseModel):
    """Complete user progress response."""
    total_xp: int
    current_level: int
    xp_for_next_level: int
    level_progress: float
    total_points: int
    total_exercises: int
    total_correct_answers: int
    overall_accuracy: float

    # Streaks
    current_global_streak: int
    best_global_streak: int
    last_active_date: datetime

    exercise_stats: list[ExerciseStats]
    recent_sessions: list[ExerciseSession]
    badges: list[Badge]

    created_at: datetime
    updated_at: datetime


class SessionResults(BaseModel):
    points_earned: int
    xp_earned: int
    accuracy: int
    level_up: bool
    new_level: int
    new_badges: list[Badge]
    points_breakdown: dict


class UpdatedProgress(BaseModel):
    total_xp: int
    current_level: int
    xp_for_next_level: int
    total_points: int
    current_global_streak: int
    overall_accuracy: int


class ProgressUpdateResponse(BaseModel):
    session_results: SessionResults
    updated_progress: UpdatedProgress


class LeaderboardUser(BaseModel):
    name: str
    avatar: Optional[str] = None


class LeaderboardStats(BaseModel):
    total_xp: int = 0
    current_level: int = 1
    total_points: int = 0
    total_exercises: int = 0
    overall_accuracy: float = 0.0
    current_global_streak: int = 0
    badges: int = 0


class LeaderboardEntry(BaseModel):
    rank: int
    user: LeaderboardUser
    stats: LeaderboardStats


class LeaderboardResponse(BaseModel):
    type: LeaderboardType
    leaderboard: list[LeaderboardEntry]
    total: int
