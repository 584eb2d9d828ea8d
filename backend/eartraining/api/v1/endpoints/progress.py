"""
Progress API Endpoints
REST API for gamification: user progress, session recording and leaderboard.
"""
from fastapi import APIRouter, HTTPException, Depends, Query, status
import logging

from eartraining.config import settings
from eartraining.core.dependencies import get_current_user, get_db
from eartraining.models.progress import Progress
from eartraining.schemas.progress import (
    LeaderboardEntry,
    LeaderboardResponse,
    LeaderboardStats,
    LeaderboardType,
    LeaderboardUser,
    ProgressResponse,
    ProgressUpdateResponse,
    SessionInput,
    SessionResults,
    UpdatedProgress
)
from eartraining.services.cosmos_db_service import CosmosDBService
from eartraining.services.progress_service import progress_service
from eartraining.utils.level_utils import level_progress, xp_for_next_level


logger = logging.getLogger(__name__)

router = APIRouter()


async def load_or_create_progress(db: CosmosDBService, user_id: str) -> Progress:
    """Progress of a user, created empty on first access."""
    progress_data = await db.get_progress(user_id)
    if progress_data is None:
        progress = Progress.new(user_id).prepare_for_save(settings.LEVEL_CURVE)
        progress_data = await db.create_progress(progress.model_dump(mode="json"))
        logger.info(f"Initial progress created for user {user_id}")
    return Progress.model_validate(progress_data)


async def save_progress(db: CosmosDBService, progress: Progress) -> Progress:
    """Persist progress; the level is always re-derived from XP first."""
    progress.prepare_for_save(settings.LEVEL_CURVE)
    saved = await db.save_progress(progress.model_dump(mode="json"))
    return Progress.model_validate(saved)


# ==================== PROGRESS ENDPOINTS ====================

@router.get("/user", response_model=ProgressResponse)
async def get_user_progress(
    current_user: dict = Depends(get_current_user),
    db: CosmosDBService = Depends(get_db)
):
    """
    Get the signed-in user's progress.

    Returns totals, level, streaks, per-exercise stats, badges and the most
    recent sessions.
    """
    try:
        progress = await load_or_create_progress(db, current_user["id"])

        recent = sorted(
            progress.recent_sessions,
            key=lambda session: session.completed_at,
            reverse=True
        )[:settings.RECENT_SESSIONS_RETURNED]

        return ProgressResponse(
            total_xp=progress.total_xp,
            current_level=progress.current_level,
            xp_for_next_level=xp_for_next_level(progress.current_level),
            level_progress=level_progress(progress.total_xp, progress.current_level),
            total_points=progress.total_points,
            total_exercises=progress.total_exercises,
            total_correct_answers=progress.total_correct_answers,
            overall_accuracy=progress.overall_accuracy,
            current_global_streak=progress.current_global_streak,
            best_global_streak=progress.best_global_streak,
            last_active_date=progress.last_active_date,
            exercise_stats=progress.exercise_stats,
            recent_sessions=recent,
            badges=progress.badges,
            created_at=progress.created_at,
            updated_at=progress.updated_at
        )

    except HTTPException:
        raise
    except Exception as e:
        logger.exception(f"Error fetching progress: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Erro interno do servidor"
        )


@router.post("/update", response_model=ProgressUpdateResponse)
async def update_progress(
    request: SessionInput,
    current_user: dict = Depends(get_current_user),
    db: CosmosDBService = Depends(get_db)
):
    """
    Record a completed exercise session.

    Scores the session, updates totals, streaks and stats, unlocks badges and
    returns what changed.
    """
    try:
        user_id = current_user["id"]
        progress = await load_or_create_progress(db, user_id)

        outcome = progress_service.apply_session(progress, request)
        progress = await save_progress(db, progress)

        # Keep the profile snapshot (embedded in new tokens) in sync
        await db.update_user(user_id, {"level": progress.current_level, "xp": progress.total_xp})

        if outcome.level_up:
            logger.info(f"User {user_id} reached level {outcome.new_level}")

        return ProgressUpdateResponse(
            session_results=SessionResults(
                points_earned=outcome.points,
                xp_earned=outcome.xp,
                accuracy=outcome.accuracy,
                level_up=outcome.level_up,
                new_level=outcome.new_level,
                new_badges=outcome.new_badges,
                points_breakdown=outcome.breakdown.model_dump()
            ),
            updated_progress=UpdatedProgress(
                total_xp=progress.total_xp,
                current_level=progress.current_level,
                xp_for_next_level=xp_for_next_level(progress.current_level),
                total_points=progress.total_points,
                current_global_streak=progress.current_global_streak,
                overall_accuracy=round(progress.overall_accuracy)
            )
        )

    except HTTPException:
        raise
    except Exception as e:
        logger.exception(f"Error updating progress: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Erro interno do servidor"
        )


# ==================== LEADERBOARD ====================

@router.get("/leaderboard", response_model=LeaderboardResponse)
async def get_leaderboard(
    type: LeaderboardType = Query(default=LeaderboardType.XP),
    limit: int = Query(default=10, ge=1, le=settings.LEADERBOARD_MAX_LIMIT),
    db: CosmosDBService = Depends(get_db)
):
    """
    Rank users by xp, points, accuracy or level.

    Only users with at least one recorded exercise are listed.
    """
    try:
        top_progress = await db.get_leaderboard(type.value, limit)
        users = await db.get_users_by_ids([p["user_id"] for p in top_progress])

        leaderboard = []
        for rank, progress in enumerate(top_progress, start=1):
            user = users.get(progress["user_id"]) or {}
            leaderboard.append(LeaderboardEntry(
                rank=rank,
                user=LeaderboardUser(
                    name=user.get("name") or "Usuário Anônimo",
                    avatar=user.get("avatar")
                ),
                stats=LeaderboardStats(
                    total_xp=progress.get("total_xp") or 0,
                    current_level=progress.get("current_level") or 1,
                    total_points=progress.get("total_points") or 0,
                    total_exercises=progress.get("total_exercises") or 0,
                    overall_accuracy=round(progress.get("overall_accuracy") or 0, 1),
                    current_global_streak=progress.get("current_global_streak") or 0,
                    badges=len(progress.get("badges") or [])
                )
            ))

        return LeaderboardResponse(type=type, leaderboard=leaderboard, total=len(leaderboard))

    except HTTPException:
        raise
    except Exception as e:
        logger.exception(f"Error fetching leaderboard: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Erro interno do servidor"
        )
