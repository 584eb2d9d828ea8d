"""
Chord Progression Schemas
Request and response schemas for the progression catalog endpoints.
"""
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator

from eartraining.models.chord_progression import (
    ChordProgression,
    ProgressionCategory,
    ProgressionMode
)
from eartraining.models.progress import Difficulty


# ==================== REQUEST SCHEMAS ====================

class ChordProgressionCreate(BaseModel):
    """Request to add a progression to the catalog."""
    model_config = ConfigDict(use_enum_values=True)

    name: str = Field(..., min_length=1)
    degrees: list[str] = Field(..., min_length=1)
    difficulty: Difficulty
    category: ProgressionCategory
    mode: ProgressionMode
    time_signature: str = Field(default="4/4", pattern=r"^\d+/\d+$")
    tempo: int = Field(default=120, gt=0, le=400)
    description: str = Field(..., min_length=1)
    reference: Optional[str] = None
    is_active: bool = True

    @field_validator("name", "description")
    @classmethod
    def not_blank(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Campo obrigatório")
        return v

    @field_validator("degrees")
    @classmethod
    def strip_degrees(cls, v: list[str]) -> list[str]:
        degrees = [d.strip() for d in v]
        if any(not d for d in degrees):
            raise ValueError("Graus não podem ser vazios")
        return degrees


# ==================== RESPONSE SCHEMAS ====================

class Pagination(BaseModel):
    total: int
    page: int
    limit: int
    total_pages: int
    has_next: bool
    has_prev: bool


class ProgressionFilters(BaseModel):
    difficulty: Optional[str] = None
    category: Optional[str] = None
    mode: Optional[str] = None
    search: Optional[str] = None
    is_active: Optional[bool] = None
    random: bool = False


class ProgressionListData(BaseModel):
    progressions: list[ChordProgression]
    pagination: Pagination
    filters: ProgressionFilters


class ProgressionListResponse(BaseModel):
    success: bool = True
    data: ProgressionListData


class ProgressionCreatedData(BaseModel):
    progression: ChordProgression
    message: str


class ProgressionCreatedResponse(BaseModel):
    success: bool = True
    data: ProgressionCreatedData


class CountBucket(BaseModel):
    id: str
    count: int
    percentage: Optional[float] = None


class TempoStats(BaseModel):
    average: float
    min: int
    max: int


class ComplexityBucket(BaseModel):
    """Chord count statistics for one difficulty"""
    id: str
    average_chords: float
    min_chords: int
    max_chords: int
    count: int


class ProgressionStats(BaseModel):
    total: int
    summary: bool = False
    difficulty: list[CountBucket] = Field(default_factory=list)
    categories: list[CountBucket] = Field(default_factory=list)
    modes: list[CountBucket] = Field(default_factory=list)
    time_signatures: list[CountBucket] = Field(default_factory=list)
    tempo: Optional[TempoStats] = None
    average_length: Optional[float] = None
    complexity: list[ComplexityBucket] = Field(default_factory=list)
    top_references: list[CountBucket] = Field(default_factory=list)
    recent: list[ChordProgression] = Field(default_factory=list)


class ProgressionStatsResponse(BaseModel):
    success: bool = True
    data: ProgressionStats


class TransposedProgression(BaseModel):
    id: str
    name: str
    key: str
    degrees: list[str]
    chords: list[str]


class ExerciseOption(BaseModel):
    id: str
    name: str
    degrees: list[str]
    chords: list[str]


class ProgressionExerciseResponse(BaseModel):
    key: str
    semitone_offset: int
    correct_id: str
    tempo: int
    time_signature: str
    options: list[ExerciseOption]


class SeedResponse(BaseModel):
    success: bool = True
    message: str
    count: int
