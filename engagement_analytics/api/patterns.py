"""
FastAPI router module for conversion pattern mining.

Implements POST /patterns/{analysis_type}/run (mine and replace the stored
ranking) and GET /patterns/{analysis_type} (read ranked combinations).

Analysis types:
- subscription: creator profile views -> subscription
- copy: portfolio detail page views -> copy
- creator_copy: creator profile views -> copy

A run enumerates up to C(200, 3) combinations and can take minutes; callers
should treat POST as a long-running request.
"""

import logging
from typing import List

from fastapi import APIRouter, HTTPException, Query

from engagement_analytics.models.enums import PatternAnalysisType
from engagement_analytics.models.schemas import PatternRunStats, StoredCombination
from engagement_analytics.services.errors import InsufficientDataError
from engagement_analytics.services.pattern_mining import (
    get_stored_combinations,
    run_pattern_analysis,
)


# Configure logging
logger = logging.getLogger(__name__)

router = APIRouter()


def parse_analysis_type(analysis_type: str) -> PatternAnalysisType:
    """Resolve a path segment to a PatternAnalysisType or fail with 400."""
    try:
        return PatternAnalysisType(analysis_type)
    except ValueError:
        valid = ", ".join(t.value for t in PatternAnalysisType)
        raise HTTPException(
            status_code=400,
            detail=f"Unknown analysis type '{analysis_type}'. Expected one of: {valid}"
        )


# =============================================================================
# Endpoints
# =============================================================================


@router.post("/{analysis_type}/run", response_model=PatternRunStats)
async def run_patterns(analysis_type: str) -> PatternRunStats:
    """
    Mine exposure combinations for one analysis type.

    Returns:
        PatternRunStats including a rounded top-10 preview

    Raises:
        HTTPException(400) for an unknown analysis type
        HTTPException(422) when there are too few users or candidates
    """
    target = parse_analysis_type(analysis_type)

    try:
        return await run_pattern_analysis(target)

    except InsufficientDataError as e:
        logger.warning(f"Pattern analysis {target.value} skipped: {e}")
        raise HTTPException(status_code=422, detail=str(e))
    except Exception as e:
        logger.exception(f"Error running {target.value} pattern analysis")
        raise HTTPException(
            status_code=500,
            detail=f"Failed to run pattern analysis: {str(e)}"
        )


@router.get("/{analysis_type}", response_model=List[StoredCombination])
async def list_patterns(
    analysis_type: str,
    limit: int = Query(default=100, ge=1, le=1000, description="Maximum combinations to return"),
    min_exposure: int = Query(default=0, ge=0, description="Minimum users_with_exposure"),
) -> List[StoredCombination]:
    """Stored combinations for one analysis type, best rank first."""
    target = parse_analysis_type(analysis_type)

    try:
        return await get_stored_combinations(target, limit=limit, min_exposure=min_exposure)
    except Exception as e:
        logger.exception(f"Error reading {target.value} combinations")
        raise HTTPException(
            status_code=500,
            detail=f"Failed to read combinations: {str(e)}"
        )


__all__ = ["router", "parse_analysis_type"]
