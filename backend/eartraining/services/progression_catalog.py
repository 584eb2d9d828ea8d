"""
Progression Catalog Service
Seed data and statistics for the chord-progression catalog.
"""
import json
import logging
import uuid
from collections import Counter, defaultdict
from pathlib import Path
from typing import Iterable

from eartraining.models.chord_progression import ChordProgression
from eartraining.schemas.progressions import (
    ComplexityBucket,
    CountBucket,
    ProgressionStats,
    TempoStats
)
from eartraining.services.cosmos_db_service import CosmosDBService


logger = logging.getLogger(__name__)

SEED_FILE = Path(__file__).resolve().parent.parent / "data" / "chord_progressions.json"

SUMMARY_TOP_CATEGORIES = 5
TOP_REFERENCES = 10
RECENT_PROGRESSIONS = 5


def load_seed_progressions(path: Path = SEED_FILE) -> list[ChordProgression]:
    """Bundled catalog, each entry with a fresh id."""
    with open(path, "r", encoding="utf-8") as f:
        data = json.load(f)
    progressions = [
        ChordProgression(id=str(uuid.uuid4()), **entry)
        for entry in data.get("progressions", [])
    ]
    logger.debug(f"Loaded {len(progressions)} seed progressions")
    return progressions


async def seed_catalog(db: CosmosDBService) -> int:
    """
    Insert the bundled catalog into an empty collection.

    Returns:
        Number of inserted progressions (0 if the collection had data)
    """
    existing = await db.count_progressions()
    if existing > 0:
        logger.info(f"Catalog already holds {existing} progressions; seed skipped")
        return 0

    progressions = load_seed_progressions()
    created = await db.create_progressions(
        [progression.model_dump(mode="json") for progression in progressions]
    )
    logger.info(f"Seeded {len(created)} chord progressions")
    return len(created)


def _buckets(values: Iterable[str], total: int, with_percentage: bool) -> list[CountBucket]:
    counts = Counter(values)
    return [
        CountBucket(
            id=value,
            count=count,
            percentage=round(count / total * 100, 2) if with_percentage and total else None
        )
        for value, count in sorted(counts.items(), key=lambda item: (-item[1], item[0]))
    ]


def compute_stats(progressions: list[ChordProgression], summary: bool = False) -> ProgressionStats:
    """
    Aggregate statistics over active progressions.

    The summary view keeps only the distributions (top 5 categories).
    """
    total = len(progressions)

    if summary:
        return ProgressionStats(
            total=total,
            summary=True,
            difficulty=_buckets((p.difficulty for p in progressions), total, False),
            categories=_buckets((p.category for p in progressions), total, False)[:SUMMARY_TOP_CATEGORIES],
            modes=_buckets((p.mode for p in progressions), total, False)
        )

    if total == 0:
        return ProgressionStats(total=0)

    tempos = [p.tempo for p in progressions]

    chord_counts = defaultdict(list)
    for p in progressions:
        chord_counts[p.difficulty].append(len(p.degrees))
    complexity = [
        ComplexityBucket(
            id=difficulty,
            average_chords=round(sum(counts) / len(counts), 2),
            min_chords=min(counts),
            max_chords=max(counts),
            count=len(counts)
        )
        for difficulty, counts in sorted(chord_counts.items())
    ]

    recent = sorted(progressions, key=lambda p: p.created_at, reverse=True)[:RECENT_PROGRESSIONS]

    return ProgressionStats(
        total=total,
        difficulty=sorted(
            _buckets((p.difficulty for p in progressions), total, True),
            key=lambda bucket: bucket.id
        ),
        categories=_buckets((p.category for p in progressions), total, True),
        modes=_buckets((p.mode for p in progressions), total, True),
        time_signatures=_buckets((p.time_signature for p in progressions), total, True),
        tempo=TempoStats(
            average=round(sum(tempos) / total, 2),
            min=min(tempos),
            max=max(tempos)
        ),
        average_length=round(sum(len(p.degrees) for p in progressions) / total, 2),
        complexity=complexity,
        top_references=_buckets(
            (p.reference for p in progressions if p.reference), total, False
        )[:TOP_REFERENCES],
        recent=recent
    )
