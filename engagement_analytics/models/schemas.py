"""
Pydantic request/response models for the Engagement Analytics backend.

Covers the three analysis outputs and the API envelopes around them:
- Driver analysis: DriverResult and run statistics
- Pattern mining: CombinationResult, stored combination rows and run statistics
- Summary statistics: persona counts, categorical breakdowns and SummaryStats

Field names are snake_case to match the result-table columns the rows are
persisted to. All models use Pydantic v2 syntax.
"""

from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from engagement_analytics.models.enums import (
    DriverOutcome,
    PatternAnalysisType,
    PredictiveStrength,
)


# =============================================================================
# Driver Analysis Models
# =============================================================================


class DriverResult(BaseModel):
    """
    Association between one predictor variable and one outcome.

    Produced fresh on every run; the previous run's rows for the same outcome
    are replaced wholesale.
    """
    model_config = ConfigDict(
        use_enum_values=True,
        json_schema_extra={
            "example": {
                "variable_name": "regular_pdp_views",
                "correlation_coefficient": 0.42,
                "t_stat": 12.7,
                "tipping_point": "3.0",
                "predictive_strength": "Strong",
            }
        }
    )

    variable_name: str = Field(..., description="Predictor column name")
    correlation_coefficient: float = Field(
        ...,
        ge=-1.0,
        le=1.0,
        description="Pearson correlation between predictor and outcome"
    )
    t_stat: float = Field(..., description="t-statistic of the correlation")
    tipping_point: Optional[str] = Field(
        default=None,
        description="Predictor value with the sharpest conversion jump, one decimal"
    )
    predictive_strength: PredictiveStrength = Field(
        ...,
        description="Ordered strength label"
    )


class DriverRunRequest(BaseModel):
    """Request body for triggering a driver analysis run."""
    outcomes: Optional[List[DriverOutcome]] = Field(
        default=None,
        description="Outcomes to analyze; all outcomes when omitted"
    )


class DriverRunStats(BaseModel):
    """Per-outcome statistics returned after a driver run."""
    outcome: DriverOutcome
    total_users: int = Field(..., ge=0)
    drivers_count: int = Field(..., ge=0)
    top_driver: Optional[str] = None
    synced_at: datetime


class DriverRunResponse(BaseModel):
    """Response model for the driver run endpoint."""
    success: bool = True
    results: List[DriverRunStats] = Field(default_factory=list)


# =============================================================================
# Pattern Mining Models
# =============================================================================


class CombinationResult(BaseModel):
    """
    Logistic-regression fit and conversion metrics for one exposure combination.

    `combination` keeps the discovery order of the candidate pool. `rank` is
    assigned after all surviving combinations are sorted by ascending AIC.
    """
    combination: List[str] = Field(..., description="Exposure values in discovery order")
    log_likelihood: float
    aic: float = Field(..., description="Akaike Information Criterion; lower is better")
    odds_ratio: float
    precision: float = Field(..., ge=0.0, le=1.0)
    recall: float = Field(..., ge=0.0, le=1.0)
    lift: float = Field(..., ge=0.0)
    users_with_exposure: int = Field(..., ge=0)
    conversion_rate_in_group: float = Field(..., ge=0.0, le=1.0)
    overall_conversion_rate: float = Field(..., ge=0.0, le=1.0)
    total_conversions: float = Field(
        ...,
        description="Sum of outcome magnitude over exposed converters"
    )
    rank: Optional[int] = Field(default=None, ge=1)


class CombinationPreview(BaseModel):
    """Rounded summary of a top-ranked combination for run responses."""
    combination: List[str]
    aic: float
    odds_ratio: float
    lift: float
    conversion_rate: float = Field(..., description="Group conversion rate in percent")


class StoredCombination(BaseModel):
    """A ranked combination row as read back from the result table."""
    analysis_type: PatternAnalysisType
    combination_rank: int = Field(..., ge=1)
    values: List[str]
    usernames: List[Optional[str]] = Field(default_factory=list)
    total_views: List[Optional[float]] = Field(default_factory=list)
    log_likelihood: float
    aic: float
    odds_ratio: float
    precision: float
    recall: float
    lift: float
    users_with_exposure: int
    conversion_rate_in_group: float
    overall_conversion_rate: float
    total_conversions: float
    analyzed_at: Optional[datetime] = None


class PatternRunStats(BaseModel):
    """Statistics returned after a pattern mining run."""
    analysis_type: PatternAnalysisType
    pairs_loaded: int = Field(..., ge=0)
    users_analyzed: int = Field(..., ge=0)
    candidates_available: int = Field(..., ge=0)
    candidates_tested: int = Field(..., ge=0)
    combinations_tested: int = Field(..., ge=0)
    combinations_stored: int = Field(..., ge=0)
    analyzed_at: datetime
    top_combinations: List[CombinationPreview] = Field(default_factory=list)


# =============================================================================
# Summary Statistics Models
# =============================================================================


class PersonaCount(BaseModel):
    """Count and percentage-of-total (0-100) for one persona."""
    count: int = Field(default=0, ge=0)
    percentage: float = Field(default=0.0, ge=0.0, le=100.0)


class CategoricalBreakdown(BaseModel):
    """Frequency counts over non-empty values of one categorical field."""
    counts: Dict[str, int] = Field(default_factory=dict)
    total_responses: int = Field(default=0, ge=0)


class SummaryStats(BaseModel):
    """
    Population-level summary of the feature table.

    Conversion figures are percentages of total users. Persona statistics
    report the four named segments only.
    """
    total_users: int = Field(..., ge=0)
    link_bank_conversion: float = 0.0
    first_copy_conversion: float = 0.0
    deposit_conversion: float = 0.0
    subscription_conversion: float = 0.0
    users_with_deposit_data: int = 0
    users_with_low_deposits: int = 0
    average_age: int = 0
    breakdowns: Dict[str, CategoricalBreakdown] = Field(default_factory=dict)
    persona_stats: Dict[str, PersonaCount] = Field(default_factory=dict)
