"""
Engagement Scoring
Points and XP awarded for a completed exercise session.

Everyone earns something for practising; on top of the base and participation
points a session can collect bonuses for:
- correctness (full bonus only for a perfect session)
- thoughtfulness (answering neither too fast nor too slow)
- improvement (recent sessions better than the ones before)
- recovery (coming back after a run of imperfect sessions)

All values scale with the difficulty multiplier.
"""
from typing import Sequence, Protocol
from pydantic import BaseModel


DIFFICULTY_MULTIPLIERS = {
    "beginner": 1.0,
    "intermediate": 1.5,
    "advanced": 2.0,
}

# Seconds
IDEAL_RESPONSE_TIME = 8
MIN_THOUGHTFUL_TIME = 3
MAX_THOUGHTFUL_TIME = 15


class SessionLike(Protocol):
    correct_answers: int
    total_questions: int


class PointsBreakdown(BaseModel):
    """Detailed composition of the points of a session"""
    base_points: int
    correctness_bonus: int
    thoughtfulness_bonus: int
    improvement_bonus: int
    participation_bonus: int
    recovery_bonus: int
    difficulty_multiplier: float
    encouragement: str


class ScoringResult(BaseModel):
    points: int
    xp: int
    breakdown: PointsBreakdown


def _js_round(value: float) -> int:
    # Half-up rounding; builtin round() is banker's rounding.
    return int(value + 0.5) if value >= 0 else -int(-value + 0.5)


def _mean_accuracy(sessions: Sequence[SessionLike]) -> float:
    if not sessions:
        return 0.0
    return sum(s.correct_answers / s.total_questions for s in sessions) / len(sessions)


def count_consecutive_errors(sessions: Sequence[SessionLike]) -> int:
    """
    Number of imperfect sessions at the end of `sessions` (oldest -> newest).
    """
    consecutive = 0
    for session in reversed(sessions):
        if session.correct_answers < session.total_questions:
            consecutive += 1
        else:
            break
    return consecutive


def calculate_engagement_points(
    correct_answers: int,
    total_questions: int,
    difficulty: str,
    average_response_time: float,
    recent_sessions: Sequence[SessionLike],
    consecutive_errors: int
) -> ScoringResult:
    """
    Score a session.

    Args:
        correct_answers: Correct answers in the session
        total_questions: Questions in the session (>= 1)
        difficulty: beginner, intermediate or advanced
        average_response_time: Seconds per answer
        recent_sessions: Previous sessions, oldest -> newest
        consecutive_errors: Imperfect sessions right before this one

    Returns:
        ScoringResult with points, xp and breakdown
    """
    accuracy = correct_answers / total_questions
    multiplier = DIFFICULTY_MULTIPLIERS.get(difficulty, 1.0)

    base_points = _js_round(20 * multiplier)

    correctness_bonus = 0
    if accuracy == 1:
        correctness_bonus = _js_round(30 * multiplier)
    elif accuracy > 0:
        correctness_bonus = _js_round(5 * multiplier)

    # Very fast answers are probably guesses
    if average_response_time < MIN_THOUGHTFUL_TIME:
        thoughtfulness_bonus = 0
    elif average_response_time <= MAX_THOUGHTFUL_TIME:
        time_ratio = min(1.0, average_response_time / IDEAL_RESPONSE_TIME)
        thoughtfulness_bonus = _js_round(15 * multiplier * time_ratio)
    else:
        thoughtfulness_bonus = _js_round(5 * multiplier)

    improvement_bonus = 0
    if len(recent_sessions) >= 3:
        recent_accuracy = _mean_accuracy(recent_sessions[-3:])
        previous_accuracy = _mean_accuracy(recent_sessions[-6:-3])
        if recent_accuracy > previous_accuracy:
            improvement_bonus = _js_round(20 * multiplier)

    participation_bonus = _js_round(10 * multiplier)

    recovery_bonus = 0
    if accuracy < 1 and consecutive_errors >= 2:
        recovery_bonus = _js_round(15 * multiplier)
    elif accuracy == 1 and consecutive_errors >= 1:
        recovery_bonus = _js_round(25 * multiplier * min(consecutive_errors, 3))

    total_points = (
        base_points + correctness_bonus + thoughtfulness_bonus
        + improvement_bonus + participation_bonus + recovery_bonus
    )

    encouragement = _encouragement(
        accuracy, average_response_time,
        thoughtfulness_bonus, recovery_bonus, improvement_bonus
    )

    engagement_factor = 1.2 if thoughtfulness_bonus > 0 else 0.8
    xp = _js_round(total_points * (0.3 + accuracy * 0.4) * engagement_factor)

    return ScoringResult(
        points=total_points,
        xp=xp,
        breakdown=PointsBreakdown(
            base_points=base_points,
            correctness_bonus=correctness_bonus,
            thoughtfulness_bonus=thoughtfulness_bonus,
            improvement_bonus=improvement_bonus,
            participation_bonus=participation_bonus,
            recovery_bonus=recovery_bonus,
            difficulty_multiplier=multiplier,
            encouragement=encouragement
        )
    )


def _encouragement(
    accuracy: float,
    average_response_time: float,
    thoughtfulness_bonus: int,
    recovery_bonus: int,
    improvement_bonus: int
) -> str:
    if accuracy == 1:
        reasons = []
        if thoughtfulness_bonus > 10:
            reasons.append("análise cuidadosa")
        if recovery_bonus > 0:
            reasons.append("recuperação")
        if improvement_bonus > 0:
            reasons.append("melhoria consistente")
        if reasons:
            return f"Excelente! Destaque em: {', '.join(reasons)}"
        return "Muito bem! Continue assim!"

    if average_response_time >= 5:
        return "Boa análise! A prática leva à perfeição 🎯"
    return "Tente ouvir novamente e analise com calma 🎵"
