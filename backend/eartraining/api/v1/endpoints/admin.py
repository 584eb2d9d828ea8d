"""
Admin API Endpoints
Maintenance operations on the content catalog.
"""
from fastapi import APIRouter, HTTPException, Depends, status
import logging

from eartraining.core.dependencies import get_db
from eartraining.schemas.progressions import SeedResponse
from eartraining.services.cosmos_db_service import CosmosDBService
from eartraining.services.progression_catalog import seed_catalog


logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/seed-progressions", response_model=SeedResponse)
async def seed_progressions(db: CosmosDBService = Depends(get_db)):
    """
    Populate the chord-progression catalog with the bundled progressions.

    Does nothing when the catalog already has data.
    """
    try:
        count = await seed_catalog(db)
        return SeedResponse(
            message=f"{count} progressões inseridas com sucesso!",
            count=count
        )

    except HTTPException:
        raise
    except Exception as e:
        logger.exception(f"Seed error: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Erro ao popular progressões"
        )
