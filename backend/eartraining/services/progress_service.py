"""
Progress Service
Applies completed exercise sessions to a user's Progress record.

Responsibilities:
- Score the session (points / XP)
- Update totals, level and streaks
- Maintain per-exercise-type statistics
- Keep the capped session history
- Unlock badges
"""
import logging
from datetime import datetime, timezone
from pydantic import BaseModel

from eartraining.config import settings
from eartraining.models.progress import (
    Badge,
    ExerciseSession,
    ExerciseStats,
    MAX_RECENT_SESSIONS,
    Progress
)
from eartraining.schemas.progress import SessionInput
from eartraining.utils.badges import build_badge, check_for_new_badges
from eartraining.utils.level_utils import resolve_level
from eartraining.utils.scoring import (
    PointsBreakdown,
    calculate_engagement_points,
    count_consecutive_errors
)


logger = logging.getLogger(__name__)


class SessionOutcome(BaseModel):
    """What a session changed"""
    points: int
    xp: int
    accuracy: int  # percent
    old_level: int
    new_level: int
    level_up: bool
    new_badges: list[Badge]
    breakdown: PointsBreakdown


class ProgressService:
    """Gamification rules applied to Progress documents"""

    def __init__(
        self,
        level_curve: str | None = None,
        history_limit: int | None = None,
        streak_threshold: float | None = None
    ):
        self.level_curve = level_curve or settings.LEVEL_CURVE
        limit = settings.RECENT_SESSIONS_LIMIT if history_limit is None else history_limit
        # The stored document rejects longer histories
        self.history_limit = min(limit, MAX_RECENT_SESSIONS)
        self.streak_threshold = (
            streak_threshold if streak_threshold is not None
            else settings.STREAK_ACCURACY_THRESHOLD
        )

    def apply_session(self, progress: Progress, data: SessionInput) -> SessionOutcome:
        """
        Record a session on `progress` (mutated in place).

        Args:
            progress: The user's progress document
            data: Validated session data

        Returns:
            SessionOutcome describing points, XP, level change and badges
        """
        now = datetime.now(timezone.utc)

        # History is stored newest first; scoring reads oldest -> newest
        history = list(reversed(progress.recent_sessions))
        consecutive_errors = count_consecutive_errors(history[-5:])
        scoring = calculate_engagement_points(
            data.correct_answers,
            data.total_questions,
            data.difficulty,
            data.average_response_time,
            history[-10:],
            consecutive_errors
        )
        points, xp = scoring.points, scoring.xp
        accuracy = data.correct_answers / data.total_questions
        keeps_streak = accuracy >= self.streak_threshold

        old_level = progress.current_level
        progress.total_xp += xp
        progress.total_points += points
        progress.total_exercises += 1
        progress.total_correct_answers += data.correct_answers
        progress.current_level = resolve_level(progress.total_xp, self.level_curve)

        if keeps_streak:
            progress.current_global_streak += 1
            progress.best_global_streak = max(
                progress.best_global_streak, progress.current_global_streak
            )
        else:
            progress.current_global_streak = 0
        progress.last_active_date = now

        self._update_exercise_stats(progress, data, points, xp, accuracy, keeps_streak, now)

        session = ExerciseSession(
            exercise_type=data.exercise_type,
            difficulty=data.difficulty,
            total_questions=data.total_questions,
            correct_answers=data.correct_answers,
            time_spent=data.time_spent,
            average_response_time=data.average_response_time,
            points_earned=points,
            xp_earned=xp,
            completed_at=now
        )
        progress.recent_sessions.insert(0, session)
        del progress.recent_sessions[self.history_limit:]

        new_badges = [build_badge(badge_id) for badge_id in check_for_new_badges(progress, session)]
        progress.badges.extend(new_badges)

        progress.overall_accuracy = self._overall_accuracy(progress)

        logger.info(
            f"Session recorded for {progress.user_id}: +{points} pts, +{xp} xp, "
            f"level {old_level}->{progress.current_level}"
        )

        return SessionOutcome(
            points=points,
            xp=xp,
            accuracy=round(accuracy * 100),
            old_level=old_level,
            new_level=progress.current_level,
            level_up=progress.current_level > old_level,
            new_badges=new_badges,
            breakdown=scoring.breakdown
        )

    def _update_exercise_stats(
        self,
        progress: Progress,
        data: SessionInput,
        points: int,
        xp: int,
        accuracy: float,
        keeps_streak: bool,
        now: datetime
    ) -> None:
        stat = progress.stats_for(data.exercise_type)
        if stat is None:
            stat = ExerciseStats(exercise_type=data.exercise_type, last_played=now)
            progress.exercise_stats.append(stat)

        stat.total_sessions += 1
        stat.total_questions += data.total_questions
        stat.total_correct += data.correct_answers
        stat.best_accuracy = max(stat.best_accuracy, accuracy * 100)
        stat.average_accuracy = (stat.total_correct / stat.total_questions) * 100
        stat.total_time_spent += data.time_spent
        stat.total_points_earned += points
        stat.total_xp_earned += xp
        stat.last_played = now

        if keeps_streak:
            stat.current_streak += 1
            stat.best_streak = max(stat.best_streak, stat.current_streak)
        else:
            stat.current_streak = 0

    @staticmethod
    def _overall_accuracy(progress: Progress) -> float:
        """Accuracy over all exercise stats, capped at 100."""
        total_questions = sum(stat.total_questions for stat in progress.exercise_stats)
        total_correct = sum(stat.total_correct for stat in progress.exercise_stats)
        if total_questions == 0:
            return 0.0
        return min(100.0, (total_correct / total_questions) * 100)


# Singleton instance
progress_service = ProgressService()
