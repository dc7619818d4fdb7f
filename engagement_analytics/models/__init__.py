"""
Package initialization file for backend models.

Re-exports the Pydantic schemas and enumerations so other modules can import
them from engagement_analytics.models directly:

    from engagement_analytics.models import DriverResult, PredictiveStrength
"""

# =============================================================================
# Enums
# =============================================================================

from engagement_analytics.models.enums import (
    PredictiveStrength,
    DriverOutcome,
    PatternAnalysisType,
    Persona,
    REPORTED_PERSONAS,
)


# =============================================================================
# Schemas
# =============================================================================

from engagement_analytics.models.schemas import (
    # Driver analysis
    DriverResult,
    DriverRunRequest,
    DriverRunStats,
    DriverRunResponse,
    # Pattern mining
    CombinationResult,
    CombinationPreview,
    StoredCombination,
    PatternRunStats,
    # Summary statistics
    PersonaCount,
    CategoricalBreakdown,
    SummaryStats,
)


__all__ = [
    # Enums
    "PredictiveStrength",
    "DriverOutcome",
    "PatternAnalysisType",
    "Persona",
    "REPORTED_PERSONAS",
    # Driver analysis
    "DriverResult",
    "DriverRunRequest",
    "DriverRunStats",
    "DriverRunResponse",
    # Pattern mining
    "CombinationResult",
    "CombinationPreview",
    "StoredCombination",
    "PatternRunStats",
    # Summary statistics
    "PersonaCount",
    "CategoricalBreakdown",
    "SummaryStats",
]
