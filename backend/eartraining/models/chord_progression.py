"""
Chord Progression Models
Static pedagogical content used by the chord-progression exercises.
"""
from datetime import datetime, timezone
from enum import Enum
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field

from eartraining.models.progress import Difficulty


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ProgressionCategory(str, Enum):
    POP = "pop"
    JAZZ = "jazz"
    CLASSICAL = "classical"
    BOSSA = "bossa"
    MODAL = "modal"
    FUNK = "funk"
    ROCK = "rock"
    SAMBA = "samba"
    MPB = "mpb"
    BLUES = "blues"


class ProgressionMode(str, Enum):
    MAJOR = "major"
    MINOR = "minor"


class ChordProgression(BaseModel):
    """Chord progression document"""
    model_config = ConfigDict(use_enum_values=True)

    id: str
    name: str = Field(..., min_length=1)
    degrees: list[str] = Field(
        ...,
        min_length=1,
        description='Roman numeral degrees, e.g. ["I^maj7", "vi7", "ii7", "V7"]'
    )
    difficulty: Difficulty
    category: ProgressionCategory
    mode: ProgressionMode
    time_signature: str = Field(default="4/4")
    tempo: int = Field(default=120, gt=0)
    description: str = Field(..., min_length=1)
    reference: Optional[str] = Field(default=None, description="Reference song/artist")
    is_active: bool = True
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)
