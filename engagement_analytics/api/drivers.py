"""
FastAPI router module for behavioral driver analysis.

Implements POST /drivers/run (recompute driver tables from main_analysis) and
GET /drivers/{outcome} (read a stored driver table, strongest first).

Outcomes: total_deposits, total_copies, total_subscriptions. Each outcome's
table is fully replaced on every run.
"""

import logging
from typing import List, Optional

from fastapi import APIRouter, Body, HTTPException

from engagement_analytics.models.enums import DriverOutcome
from engagement_analytics.models.schemas import DriverResult, DriverRunRequest, DriverRunResponse
from engagement_analytics.services.driver_analysis import get_driver_results, run_driver_analysis
from engagement_analytics.services.errors import InsufficientDataError


# Configure logging
logger = logging.getLogger(__name__)

router = APIRouter()


def parse_outcome(outcome: str) -> DriverOutcome:
    """Resolve a path segment to a DriverOutcome or fail with 400."""
    try:
        return DriverOutcome(outcome)
    except ValueError:
        valid = ", ".join(o.value for o in DriverOutcome)
        raise HTTPException(
            status_code=400,
            detail=f"Unknown outcome '{outcome}'. Expected one of: {valid}"
        )


# =============================================================================
# Endpoints
# =============================================================================


@router.post("/run", response_model=DriverRunResponse)
async def run_drivers(
    request: Optional[DriverRunRequest] = Body(default=None),
) -> DriverRunResponse:
    """
    Recompute driver tables.

    Args:
        request: Optional body restricting the run to some outcomes

    Returns:
        DriverRunResponse with per-outcome run statistics
    """
    outcomes = request.outcomes if request else None

    try:
        results = await run_driver_analysis(outcomes)
        return DriverRunResponse(success=True, results=results)

    except InsufficientDataError as e:
        logger.warning(f"Driver analysis skipped: {e}")
        raise HTTPException(status_code=422, detail=str(e))
    except Exception as e:
        logger.exception("Error running driver analysis")
        raise HTTPException(
            status_code=500,
            detail=f"Failed to run driver analysis: {str(e)}"
        )


@router.get("/{outcome}", response_model=List[DriverResult])
async def list_drivers(outcome: str) -> List[DriverResult]:
    """Stored drivers for one outcome ordered by descending |correlation|."""
    target = parse_outcome(outcome)

    try:
        return await get_driver_results(target)
    except Exception as e:
        logger.exception(f"Error reading drivers for {target.value}")
        raise HTTPException(
            status_code=500,
            detail=f"Failed to read drivers: {str(e)}"
        )


__all__ = ["router", "parse_outcome"]
