"""
Driver Analysis Service - Behavioral drivers of deposits, copies and subscriptions

Measures how strongly each allow-listed engagement variable in main_analysis
is associated with an outcome, and where along the variable's range the
outcome's conversion rate jumps.

Algorithm Overview (per predictor variable v):
- y = outcome values, x = predictor values (both coerced to number, default 0)
- Pearson correlation r and t-statistic t
- Predictive strength label from r and t
- Tipping point from floor(x) buckets (>= 10 users, > 10% converted)
- Results ranked by descending |r|

Allow-lists:
Only variables named in the outcome's allow-list are analyzed, and only when
they are present and numeric in the first row. A listed variable missing from
the data is skipped and logged, never an error. Each outcome's list leaves out
columns that are the outcome itself or mechanically downstream of it (e.g.
bank links and ACH deposits for deposits).

Data Source: main_analysis (one row per user)
Result Sinks: deposit_drivers, copy_drivers, subscription_drivers
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from engagement_analytics.core.config import get_settings
from engagement_analytics.core.database import execute_query, get_db_pool
from engagement_analytics.models.enums import DriverOutcome
from engagement_analytics.models.schemas import DriverResult, DriverRunStats
from engagement_analytics.services.errors import InsufficientDataError
from engagement_analytics.services.ingestion import (
    FeatureRow,
    feature_rows_from_records,
    is_numeric_value,
)
from engagement_analytics.services.statistics import (
    DEFAULT_MIN_BUCKET_RATE,
    DEFAULT_MIN_BUCKET_SIZE,
    calculate_correlation,
    calculate_predictive_strength,
    calculate_t_stat,
    calculate_tipping_point,
)
from engagement_analytics.sql.analysis_queries import (
    SELECT_MAIN_ANALYSIS,
    get_delete_drivers_query,
    get_insert_drivers_query,
    get_select_drivers_query,
)

logger = logging.getLogger(__name__)

# =============================================================================
# CONSTANTS - Allow-lists and result tables
# =============================================================================

ENGAGEMENT_VARIABLES: Tuple[str, ...] = (
    "regular_pdp_views",
    "premium_pdp_views",
    "total_pdp_views",
    "paywall_views",
    "stripe_modal_views",
    "regular_creator_views",
    "premium_creator_views",
    "total_profile_views",
    "unique_creators_viewed",
    "unique_portfolios_viewed",
    "app_sessions",
    "discover_tab_views",
    "leaderboard_tab_views",
    "premium_tab_views",
    "creator_card_taps",
    "portfolio_card_taps",
)

FUNDING_VARIABLES: Tuple[str, ...] = (
    "total_bank_links",
    "total_deposits",
    "total_ach_deposits",
)

COPY_VARIABLES: Tuple[str, ...] = (
    "total_copies",
    "total_regular_copies",
    "total_premium_copies",
)

ACCOUNT_VARIABLES: Tuple[str, ...] = (
    "available_copy_credits",
    "buying_power",
)

DEFAULT_DRIVER_ALLOWLISTS: Mapping[DriverOutcome, Tuple[str, ...]] = {
    DriverOutcome.TOTAL_DEPOSITS: ENGAGEMENT_VARIABLES,
    DriverOutcome.TOTAL_COPIES: ENGAGEMENT_VARIABLES + FUNDING_VARIABLES,
    DriverOutcome.TOTAL_SUBSCRIPTIONS: (
        ENGAGEMENT_VARIABLES + FUNDING_VARIABLES + COPY_VARIABLES + ACCOUNT_VARIABLES
    ),
}

DRIVER_RESULT_TABLES: Mapping[DriverOutcome, str] = {
    DriverOutcome.TOTAL_DEPOSITS: "deposit_drivers",
    DriverOutcome.TOTAL_COPIES: "copy_drivers",
    DriverOutcome.TOTAL_SUBSCRIPTIONS: "subscription_drivers",
}


# =============================================================================
# VARIABLE SELECTION
# =============================================================================

def select_driver_variables(
    sample_row: FeatureRow,
    allowlist: Sequence[str],
    outcome_field: str,
) -> List[str]:
    """
    Filter an allow-list down to variables usable for this dataset.

    A variable is kept when it is numeric in the sample row and is not the
    outcome itself. Order follows the allow-list; duplicates are dropped.

    Args:
        sample_row: First row of the dataset
        allowlist: Predictor names configured for the outcome
        outcome_field: Outcome column name

    Returns:
        Variables to analyze, in allow-list order.
    """
    selected: List[str] = []

    for variable in allowlist:
        if variable == outcome_field or variable in selected:
            continue
        if not is_numeric_value(sample_row.fields.get(variable)):
            logger.warning(
                f"Skipping driver variable '{variable}' for {outcome_field}: "
                f"missing or non-numeric in data"
            )
            continue
        selected.append(variable)

    return selected


# =============================================================================
# CORE ANALYSIS
# =============================================================================

def analyze_behavioral_drivers(
    rows: Sequence[FeatureRow],
    outcome_field: str,
    allowlist: Sequence[str],
    min_bucket_size: int = DEFAULT_MIN_BUCKET_SIZE,
    min_bucket_rate: float = DEFAULT_MIN_BUCKET_RATE,
) -> List[DriverResult]:
    """
    Compute a ranked driver table for one outcome.

    Args:
        rows: Feature rows of the run
        outcome_field: Outcome column (e.g. 'total_deposits')
        allowlist: Predictor names to consider
        min_bucket_size: Minimum rows per tipping-point bucket
        min_bucket_rate: Bucket conversion rate must exceed this

    Returns:
        One DriverResult per usable allow-listed variable, sorted by
        descending |correlation| (ties keep allow-list order).
    """
    n = len(rows)
    if n == 0:
        return []

    variables = select_driver_variables(rows[0], allowlist, outcome_field)
    logger.info(f"Analyzing {len(variables)} variables for {outcome_field}")

    outcomes = [row.number(outcome_field) for row in rows]

    results: List[DriverResult] = []

    for variable in variables:
        values = [row.number(variable) for row in rows]

        correlation = calculate_correlation(outcomes, values)
        t_stat = calculate_t_stat(correlation, n)

        results.append(DriverResult(
            variable_name=variable,
            correlation_coefficient=correlation,
            t_stat=t_stat,
            tipping_point=calculate_tipping_point(
                values, outcomes, min_bucket_size, min_bucket_rate
            ),
            predictive_strength=calculate_predictive_strength(correlation, t_stat),
        ))

    results.sort(key=lambda r: abs(r.correlation_coefficient), reverse=True)

    return results


def get_allowlist(
    outcome: DriverOutcome,
    overrides: Optional[Mapping[DriverOutcome, Sequence[str]]] = None,
) -> Tuple[str, ...]:
    """Allow-list for an outcome, preferring caller-supplied overrides."""
    if overrides is not None and outcome in overrides:
        return tuple(overrides[outcome])
    return DEFAULT_DRIVER_ALLOWLISTS[outcome]


# =============================================================================
# DATABASE ACCESS
# =============================================================================

async def fetch_feature_rows() -> List[FeatureRow]:
    """Load every main_analysis row as a FeatureRow."""
    records = await execute_query(SELECT_MAIN_ANALYSIS)
    return feature_rows_from_records(dict(record) for record in records)


async def persist_driver_results(
    outcome: DriverOutcome,
    results: Sequence[DriverResult],
    synced_at: datetime,
) -> int:
    """
    Replace the outcome's driver table with a fresh result set.

    Delete and insert run in one transaction so readers never observe a
    half-written table.

    Returns:
        Number of rows inserted.
    """
    table = DRIVER_RESULT_TABLES[outcome]
    pool = await get_db_pool()

    records = [
        (
            r.variable_name,
            r.correlation_coefficient,
            r.t_stat,
            r.tipping_point,
            r.predictive_strength,
            synced_at,
        )
        for r in results
    ]

    try:
        async with pool.acquire() as conn:
            async with conn.transaction():
                await conn.execute(get_delete_drivers_query(table))
                if records:
                    await conn.executemany(get_insert_drivers_query(table), records)
    except Exception:
        logger.exception(f"Failed to persist {table}")
        raise

    logger.info(f"Inserted {len(records)} rows into {table}")
    return len(records)


async def get_driver_results(outcome: DriverOutcome) -> List[DriverResult]:
    """Read stored drivers for an outcome, strongest first."""
    table = DRIVER_RESULT_TABLES[outcome]
    records = await execute_query(get_select_drivers_query(table))
    return [DriverResult(**dict(record)) for record in records]


# =============================================================================
# MAIN ANALYSIS FUNCTION
# =============================================================================

async def run_driver_analysis(
    outcomes: Optional[Iterable[DriverOutcome]] = None,
    allowlists: Optional[Mapping[DriverOutcome, Sequence[str]]] = None,
) -> List[DriverRunStats]:
    """
    Load main_analysis once, analyze each outcome and replace its results.

    Args:
        outcomes: Outcomes to analyze; all outcomes when None
        allowlists: Optional per-outcome allow-list overrides

    Returns:
        Per-outcome run statistics.

    Raises:
        InsufficientDataError: If main_analysis has no rows.
    """
    settings = get_settings()
    targets = list(outcomes) if outcomes else list(DriverOutcome)

    rows = await fetch_feature_rows()
    if not rows:
        raise InsufficientDataError("No data found in main_analysis")

    synced_at = datetime.now(timezone.utc)
    stats: List[DriverRunStats] = []

    for outcome in targets:
        results = analyze_behavioral_drivers(
            rows,
            outcome.value,
            get_allowlist(outcome, allowlists),
            min_bucket_size=settings.tipping_point_min_bucket_size,
            min_bucket_rate=settings.tipping_point_min_conversion_rate,
        )
        await persist_driver_results(outcome, results, synced_at)

        stats.append(DriverRunStats(
            outcome=outcome,
            total_users=len(rows),
            drivers_count=len(results),
            top_driver=results[0].variable_name if results else None,
            synced_at=synced_at,
        ))
        logger.info(f"Calculated {len(results)} drivers for {outcome.value}")

    return stats


# =============================================================================
# EXPORTS - Public API
# =============================================================================

__all__ = [
    # Core analysis
    "analyze_behavioral_drivers",
    "select_driver_variables",
    "get_allowlist",
    # Database access
    "fetch_feature_rows",
    "persist_driver_results",
    "get_driver_results",
    # Orchestration
    "run_driver_analysis",
    # Constants
    "ENGAGEMENT_VARIABLES",
    "DEFAULT_DRIVER_ALLOWLISTS",
    "DRIVER_RESULT_TABLES",
]
