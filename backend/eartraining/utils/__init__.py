"""
Utilities Module
Contains helper functions and algorithms.
"""
from eartraining.utils.level_utils import (
    xp_for_level,
    xp_for_next_level,
    level_from_xp,
    level_progress,
    level_info,
    resolve_level
)
from eartraining.utils.scoring import calculate_engagement_points, count_consecutive_errors
from eartraining.utils.key_transposition import transpose_progression, create_randomized_exercise

__all__ = [
    "xp_for_level", "xp_for_next_level", "level_from_xp", "level_progress", "level_info", "resolve_level",
    "calculate_engagement_points", "count_consecutive_errors",
    "transpose_progression", "create_randomized_exercise"
]
