"""
Backend API package initialization.

This package contains FastAPI router modules for the Engagement Analytics service:
- drivers: Behavioral driver tables per outcome (run, read)
- patterns: Exposure-combination pattern mining per analysis type (run, read)
- summary: Persona segmentation and population summary (run)
"""

from fastapi import APIRouter

# Import router modules
from engagement_analytics.api.drivers import router as drivers_router
from engagement_analytics.api.patterns import router as patterns_router
from engagement_analytics.api.summary import router as summary_router

# Create main API router
api_router = APIRouter()

# Include all sub-routers
api_router.include_router(drivers_router, prefix="/drivers", tags=["drivers"])
api_router.include_router(patterns_router, prefix="/patterns", tags=["patterns"])
api_router.include_router(summary_router, prefix="/summary", tags=["summary"])

# Export all routers for selective imports
__all__ = [
    "api_router",
    "drivers_router",
    "patterns_router",
    "summary_router",
]
