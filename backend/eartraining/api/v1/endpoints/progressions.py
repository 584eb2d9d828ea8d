"""
Chord Progressions API Endpoints
REST API for the progression catalog: browse, create, statistics and
transposed exercises.
"""
from fastapi import APIRouter, HTTPException, Depends, Query, status
from typing import Optional
import logging
import math
import random
import uuid

from eartraining.config import settings
from eartraining.core.dependencies import get_current_user_id, get_db
from eartraining.models.chord_progression import (
    ChordProgression,
    ProgressionCategory,
    ProgressionMode
)
from eartraining.models.progress import Difficulty
from eartraining.schemas.progressions import (
    ChordProgressionCreate,
    ExerciseOption,
    Pagination,
    ProgressionCreatedData,
    ProgressionCreatedResponse,
    ProgressionExerciseResponse,
    ProgressionFilters,
    ProgressionListData,
    ProgressionListResponse,
    ProgressionStatsResponse,
    TransposedProgression
)
from eartraining.services.cosmos_db_service import CosmosDBService
from eartraining.services.progression_catalog import compute_stats
from eartraining.utils.key_transposition import (
    create_randomized_exercise,
    is_valid_key,
    normalize_key,
    transpose_progression
)


logger = logging.getLogger(__name__)

router = APIRouter()


def _check_choice(value: Optional[str], enum_cls, label: str) -> Optional[str]:
    """Validate an optional enum query parameter (400 with the allowed values)."""
    if value is None:
        return None
    allowed = [member.value for member in enum_cls]
    if value not in allowed:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"{label} inválido. Use: {', '.join(allowed)}"
        )
    return value


# ==================== CATALOG ENDPOINTS ====================

@router.get("", response_model=ProgressionListResponse)
async def list_progressions(
    difficulty: Optional[str] = Query(default=None),
    category: Optional[str] = Query(default=None),
    mode: Optional[str] = Query(default=None),
    is_active: Optional[bool] = Query(default=None, description="Defaults to active only"),
    search: Optional[str] = Query(default=None, description="Matches name, description or reference"),
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=settings.PROGRESSIONS_PAGE_SIZE, ge=1, le=100),
    random_sample: bool = Query(default=False, alias="random"),
    db: CosmosDBService = Depends(get_db)
):
    """
    Browse the catalog.

    Filters by difficulty, category, mode, active flag and free text. With
    random=true returns a random sample of `limit` progressions instead of a
    page.
    """
    try:
        filters = {
            "difficulty": _check_choice(difficulty, Difficulty, "Dificuldade"),
            "category": _check_choice(category, ProgressionCategory, "Categoria"),
            "mode": _check_choice(mode, ProgressionMode, "Modo"),
            "is_active": True if is_active is None else is_active
        }
        search = search.strip() if search else None

        if random_sample:
            items, total = await db.sample_progressions(filters, limit, search)
            current_page = 1
            has_next = has_prev = False
        else:
            items, total = await db.query_progressions(
                filters, search, offset=(page - 1) * limit, limit=limit
            )
            current_page = page
            has_next = page < math.ceil(total / limit)
            has_prev = page > 1

        return ProgressionListResponse(
            data=ProgressionListData(
                progressions=[ChordProgression.model_validate(item) for item in items],
                pagination=Pagination(
                    total=total,
                    page=current_page,
                    limit=limit,
                    total_pages=math.ceil(total / limit),
                    has_next=has_next,
                    has_prev=has_prev
                ),
                filters=ProgressionFilters(
                    difficulty=filters["difficulty"],
                    category=filters["category"],
                    mode=filters["mode"],
                    search=search,
                    is_active=filters["is_active"],
                    random=random_sample
                )
            )
        )

    except HTTPException:
        raise
    except Exception as e:
        logger.exception(f"Error fetching progressions: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Erro interno do servidor"
        )


@router.post("", response_model=ProgressionCreatedResponse, status_code=status.HTTP_201_CREATED)
async def create_progression(
    request: ChordProgressionCreate,
    db: CosmosDBService = Depends(get_db)
):
    """
    Add a progression to the catalog. Names are unique.
    """
    try:
        if await db.get_progression_by_name(request.name):
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="Já existe uma progressão com este nome"
            )

        progression = ChordProgression(id=str(uuid.uuid4()), **request.model_dump())
        created = await db.create_progression(progression.model_dump(mode="json"))

        logger.info(f"Progression created: {progression.name}")

        return ProgressionCreatedResponse(
            data=ProgressionCreatedData(
                progression=ChordProgression.model_validate(created),
                message="Progressão criada com sucesso"
            )
        )

    except HTTPException:
        raise
    except Exception as e:
        logger.exception(f"Error creating progression: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Erro interno do servidor"
        )


@router.get("/stats", response_model=ProgressionStatsResponse)
async def get_progression_stats(
    summary: bool = Query(default=False),
    user_id: str = Depends(get_current_user_id),
    db: CosmosDBService = Depends(get_db)
):
    """
    Catalog statistics over active progressions (authenticated).
    """
    try:
        items = await db.list_progressions({"is_active": True})
        progressions = [ChordProgression.model_validate(item) for item in items]
        return ProgressionStatsResponse(data=compute_stats(progressions, summary=summary))

    except HTTPException:
        raise
    except Exception as e:
        logger.exception(f"Error fetching progression stats: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Erro interno do servidor"
        )


# ==================== EXERCISES ====================

@router.get("/exercise", response_model=ProgressionExerciseResponse)
async def get_progression_exercise(
    difficulty: Optional[str] = Query(default=None),
    mode: Optional[str] = Query(default=None),
    options: int = Query(default=4, ge=2, le=8, description="Number of answer options"),
    db: CosmosDBService = Depends(get_db)
):
    """
    Multiple-choice exercise: one correct progression plus distractors, all
    spelled in the same random key.
    """
    try:
        filters = {
            "difficulty": _check_choice(difficulty, Difficulty, "Dificuldade"),
            "mode": _check_choice(mode, ProgressionMode, "Modo"),
            "is_active": True
        }
        candidates, _ = await db.sample_progressions(filters, options)
        if len(candidates) < 2:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Progressões insuficientes para montar o exercício"
            )

        correct = random.choice(candidates)
        exercise = create_randomized_exercise(candidates)

        return ProgressionExerciseResponse(
            key=exercise.key,
            semitone_offset=exercise.semitone_offset,
            correct_id=correct["id"],
            tempo=correct.get("tempo") or 120,
            time_signature=correct.get("time_signature") or "4/4",
            options=[
                ExerciseOption(
                    id=option["id"],
                    name=option["name"],
                    degrees=option["degrees"],
                    chords=option["chords"]
                )
                for option in exercise.options
            ]
        )

    except HTTPException:
        raise
    except Exception as e:
        logger.exception(f"Error building progression exercise: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Erro interno do servidor"
        )


@router.get("/{progression_id}/transpose", response_model=TransposedProgression)
async def transpose(
    progression_id: str,
    key: str = Query(..., description="Target key, e.g. Eb or F#"),
    db: CosmosDBService = Depends(get_db)
):
    """Chord symbols of a progression in `key`."""
    if not is_valid_key(key):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Tonalidade inválida"
        )

    try:
        progression = await db.get_progression(progression_id)
        if not progression:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Progressão não encontrada"
            )

        target = normalize_key(key)
        return TransposedProgression(
            id=progression["id"],
            name=progression["name"],
            key=target,
            degrees=progression["degrees"],
            chords=transpose_progression(progression["degrees"], target)
        )

    except HTTPException:
        raise
    except Exception as e:
        logger.exception(f"Error transposing progression: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Erro interno do servidor"
        )
