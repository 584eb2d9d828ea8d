"""
Badge catalog and unlock rules.
"""
from eartraining.models.progress import Badge, ExerciseSession, Progress


AVAILABLE_BADGES: dict[str, dict] = {
    "first-exercise": {
        "id": "first-exercise",
        "name": "Primeiro Passo",
        "description": "Complete seu primeiro exercício",
        "icon": "🎯",
    },
    "perfect-session": {
        "id": "perfect-session",
        "name": "Perfeição",
        "description": "Acerte 100% em uma sessão",
        "icon": "💯",
    },
    "streak-5": {
        "id": "streak-5",
        "name": "Em Chamas",
        "description": "Mantenha 5 acertos consecutivos",
        "icon": "🔥",
    },
    "streak-10": {
        "id": "streak-10",
        "name": "Imparável",
        "description": "Mantenha 10 acertos consecutivos",
        "icon": "⚡",
    },
    "level-5": {
        "id": "level-5",
        "name": "Veterano",
        "description": "Alcance o nível 5",
        "icon": "⭐",
    },
    "intervals-master": {
        "id": "intervals-master",
        "name": "Mestre dos Intervalos",
        "description": "Complete 50 exercícios de intervalos",
        "icon": "🎼",
    },
}

PERFECT_SESSION_MIN_QUESTIONS = 5
INTERVALS_MASTER_SESSIONS = 50
INTERVAL_EXERCISES = ("melodic-intervals", "harmonic-intervals")


def check_for_new_badges(progress: Progress, session: ExerciseSession) -> list[str]:
    """
    Ids of badges earned by `progress` after recording `session`.

    `progress` must already include the session. Badges the user owns are
    never returned.
    """
    owned = progress.badge_ids()
    earned = []

    if progress.total_exercises >= 1:
        earned.append("first-exercise")

    if (
        session.correct_answers == session.total_questions
        and session.total_questions >= PERFECT_SESSION_MIN_QUESTIONS
    ):
        earned.append("perfect-session")

    if progress.current_global_streak >= 5:
        earned.append("streak-5")
    if progress.current_global_streak >= 10:
        earned.append("streak-10")

    if progress.current_level >= 5:
        earned.append("level-5")

    if any(
        stat.total_sessions >= INTERVALS_MASTER_SESSIONS
        for stat in progress.exercise_stats
        if stat.exercise_type in INTERVAL_EXERCISES
    ):
        earned.append("intervals-master")

    return [badge_id for badge_id in earned if badge_id not in owned]


def build_badge(badge_id: str) -> Badge:
    """Badge record for a catalog id, unlocked now."""
    return Badge(**AVAILABLE_BADGES[badge_id])
