"""
FastAPI router module for population summary statistics.

Implements POST /summary/run: classify every user into a persona, compute
conversion percentages and demographic breakdowns, store the snapshot and
return it.
"""

import logging

from fastapi import APIRouter, HTTPException

from engagement_analytics.models.schemas import SummaryStats
from engagement_analytics.services.errors import InsufficientDataError
from engagement_analytics.services.persona import run_summary_analysis


# Configure logging
logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/run", response_model=SummaryStats)
async def run_summary() -> SummaryStats:
    try:
        return await run_summary_analysis()

    except InsufficientDataError as e:
        logger.warning(f"Summary analysis skipped: {e}")
        raise HTTPException(status_code=422, detail=str(e))
    except Exception as e:
        logger.exception("Error running summary analysis")
        raise HTTPException(
            status_code=500,
            detail=f"Failed to run summary analysis: {str(e)}"
        )


__all__ = ["router"]
