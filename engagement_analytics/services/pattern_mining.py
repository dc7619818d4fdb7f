"""
Pattern Mining Service - Exhaustive exposure-combination search with logistic regression

Finds which sets of exposures (portfolios or creators a user viewed) best
predict a conversion. Every unordered combination of candidate exposures is
scored by fitting a univariate logistic regression of the outcome on a
"viewed all of them" indicator, and surviving combinations are ranked by AIC.

Algorithm Overview:
- Candidate pool: exposures viewed by >= min_users distinct users, most-viewed
  first, capped at max_candidates (200 -> C(200, 3) = 1,313,400 combinations)
- Combinations are enumerated lazily with itertools.combinations
- Per combination:
  * x_i = 1 if user i viewed every exposure in the combination (intersection)
  * y_i = 1 if user i converted
  * logit(p) = b0 + b1*x fit by Newton-Raphson (max 20 iterations)
  * AIC = 2k - 2*logL with k = 2, odds ratio = exp(b1)
  * precision / recall treat x itself as the predicted label
  * lift = group conversion rate / overall conversion rate
- Keep combinations with >= 1 exposed user and >= 1 exposed converter
- Stable sort by ascending AIC (enumeration order breaks ties), rank from 1

Degenerate fits are not special-cased: a singular Hessian on the first
iteration leaves b0 = b1 = 0 (odds ratio 1) and AIC ranking pushes such fits
down naturally.

Data Sources: user_creator_engagement, user_portfolio_creator_engagement,
user_creator_profile_copies
Result Sink: conversion_pattern_combinations
"""

from __future__ import annotations

import itertools
import logging
import math
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Iterator, List, Mapping, Optional, Sequence, Tuple

import numpy as np

from engagement_analytics.core.config import get_settings
from engagement_analytics.core.database import execute_query, get_db_pool
from engagement_analytics.models.enums import PatternAnalysisType
from engagement_analytics.models.schemas import (
    CombinationPreview,
    CombinationResult,
    PatternRunStats,
    StoredCombination,
)
from engagement_analytics.services.errors import InsufficientDataError
from engagement_analytics.services.ingestion import (
    UserExposureRecord,
    clean_numeric,
    pairs_to_user_records,
)
from engagement_analytics.sql.analysis_queries import (
    DELETE_PATTERN_COMBINATIONS,
    INSERT_PATTERN_COMBINATION,
    SELECT_PATTERN_COMBINATIONS,
    get_exposure_pairs_query,
)

logger = logging.getLogger(__name__)

# =============================================================================
# CONSTANTS
# =============================================================================

MAX_ITERATIONS: int = 20
CONVERGENCE_TOLERANCE: float = 1e-6
SINGULAR_DETERMINANT: float = 1e-10
LOG_SMOOTHING: float = 1e-10

# Fitted parameters: intercept and slope
MODEL_PARAMETERS: int = 2

# Result table holds value_1..value_3
MAX_STORED_VALUES: int = 3

DEFAULT_PREVIEW_SIZE: int = 10


# =============================================================================
# DATA CLASSES
# =============================================================================

@dataclass(frozen=True)
class LogisticFit:
    """Fitted coefficients and log-likelihood of logit(p) = beta0 + beta1*x."""
    beta0: float
    beta1: float
    log_likelihood: float
    iterations: int = 0


@dataclass(frozen=True)
class PatternAnalysisConfig:
    """
    Where a pattern analysis reads its pairs and how it interprets them.

    Attributes:
        analysis_type: Result partition in conversion_pattern_combinations
        table: Pair table (one row per user and entity)
        exposure_column: Entity column used as exposure value
        filter_column: View-count column; only rows with a positive count load
        outcome_column: Boolean conversion column
        magnitude_column: Conversion count column summed into total_conversions
        min_users_per_exposure: Distinct users an exposure needs to be a candidate
        username_column: Optional display-name column for the exposure
    """
    analysis_type: PatternAnalysisType
    table: str
    exposure_column: str
    filter_column: str
    outcome_column: str
    magnitude_column: str
    min_users_per_exposure: int
    username_column: Optional[str] = None

    @property
    def columns(self) -> Tuple[str, ...]:
        columns = [
            "distinct_id",
            self.exposure_column,
            self.filter_column,
            self.outcome_column,
            self.magnitude_column,
        ]
        if self.username_column:
            columns.append(self.username_column)
        return tuple(columns)


@dataclass(frozen=True)
class ExposureMetadata:
    """Display name and total views of one exposure value."""
    username: Optional[str] = None
    total_views: float = 0.0


PATTERN_ANALYSIS_CONFIGS: Mapping[PatternAnalysisType, PatternAnalysisConfig] = {
    PatternAnalysisType.SUBSCRIPTION: PatternAnalysisConfig(
        analysis_type=PatternAnalysisType.SUBSCRIPTION,
        table="user_creator_engagement",
        exposure_column="creator_id",
        filter_column="profile_view_count",
        outcome_column="did_subscribe",
        magnitude_column="subscription_count",
        min_users_per_exposure=10,
        username_column="creator_username",
    ),
    PatternAnalysisType.COPY: PatternAnalysisConfig(
        analysis_type=PatternAnalysisType.COPY,
        table="user_portfolio_creator_engagement",
        exposure_column="portfolio_ticker",
        filter_column="pdp_view_count",
        outcome_column="did_copy",
        magnitude_column="copy_count",
        min_users_per_exposure=3,
    ),
    PatternAnalysisType.CREATOR_COPY: PatternAnalysisConfig(
        analysis_type=PatternAnalysisType.CREATOR_COPY,
        table="user_creator_profile_copies",
        exposure_column="creator_id",
        filter_column="profile_view_count",
        outcome_column="did_copy",
        magnitude_column="copy_count",
        min_users_per_exposure=5,
        username_column="creator_username",
    ),
}


# =============================================================================
# LOGISTIC REGRESSION
# =============================================================================

def _sigmoid(z: np.ndarray) -> np.ndarray:
    # exp overflow saturates p to 0.0, which is the intended limit
    with np.errstate(over="ignore"):
        return 1.0 / (1.0 + np.exp(-z))


def fit_logistic_regression(
    x: Sequence[float],
    y: Sequence[float],
    max_iterations: int = MAX_ITERATIONS,
) -> LogisticFit:
    """
    Fit logit(p) = beta0 + beta1*x by Newton-Raphson.

    Each iteration solves the 2x2 Newton system in closed form. Iteration stops
    when both updates are below 1e-6, or without updating when the Hessian
    determinant falls below 1e-10 (e.g. zero variance in x, or a saturated
    fit on perfectly separated data).

    Args:
        x: Predictor values
        y: Binary outcomes (0/1), same length as x
        max_iterations: Upper bound on Newton steps

    Returns:
        LogisticFit with coefficients and the 1e-10-smoothed log-likelihood.
    """
    x_arr = np.asarray(x, dtype=float)
    y_arr = np.asarray(y, dtype=float)

    beta0 = 0.0
    beta1 = 0.0
    iterations = 0

    for _ in range(max_iterations):
        p = _sigmoid(beta0 + beta1 * x_arr)
        diff = y_arr - p
        gradient0 = float(diff.sum())
        gradient1 = float(np.dot(diff, x_arr))

        w = p * (1.0 - p)
        wx = w * x_arr
        hessian00 = float(w.sum())
        hessian01 = float(wx.sum())
        hessian11 = float(np.dot(wx, x_arr))

        det = hessian00 * hessian11 - hessian01 * hessian01
        if abs(det) < SINGULAR_DETERMINANT:
            break

        delta0 = (hessian11 * gradient0 - hessian01 * gradient1) / det
        delta1 = (hessian00 * gradient1 - hessian01 * gradient0) / det

        beta0 += delta0
        beta1 += delta1
        iterations += 1

        if abs(delta0) < CONVERGENCE_TOLERANCE and abs(delta1) < CONVERGENCE_TOLERANCE:
            break

    p = _sigmoid(beta0 + beta1 * x_arr)
    log_likelihood = float(np.sum(
        y_arr * np.log(p + LOG_SMOOTHING) + (1.0 - y_arr) * np.log(1.0 - p + LOG_SMOOTHING)
    ))

    return LogisticFit(
        beta0=beta0,
        beta1=beta1,
        log_likelihood=log_likelihood,
        iterations=iterations,
    )


def calculate_aic(log_likelihood: float, parameters: int = MODEL_PARAMETERS) -> float:
    """AIC = 2k - 2*logL."""
    return 2 * parameters - 2 * log_likelihood


def odds_ratio(beta1: float) -> float:
    """exp(beta1), saturating to the largest float instead of overflowing."""
    try:
        return math.exp(beta1)
    except OverflowError:
        return float(np.finfo(float).max)


# =============================================================================
# COMBINATION EVALUATION
# =============================================================================

def generate_combinations(candidates: Sequence[str], size: int = 3) -> Iterator[Tuple[str, ...]]:
    """Lazily yield every size-combination of candidates in index order."""
    return itertools.combinations(candidates, size)


def count_combinations(candidate_count: int, size: int = 3) -> int:
    """Number of combinations the miner will evaluate."""
    if candidate_count < size:
        return 0
    return math.comb(candidate_count, size)


def _score_indicator(
    combination: Sequence[str],
    exposed: np.ndarray,
    converted: np.ndarray,
    magnitude: np.ndarray,
) -> CombinationResult:
    """Fit and score one exposure indicator against the outcome vector."""
    x = exposed.astype(float)
    y = converted.astype(float)

    model = fit_logistic_regression(x, y)

    n = len(y)
    total_converters = int(converted.sum())
    exposed_total = int(exposed.sum())
    true_positives = int(np.count_nonzero(exposed & converted))
    false_positives = exposed_total - true_positives
    false_negatives = total_converters - true_positives

    overall_rate = total_converters / n if n > 0 else 0.0
    precision = (
        true_positives / (true_positives + false_positives)
        if true_positives + false_positives > 0 else 0.0
    )
    recall = (
        true_positives / (true_positives + false_negatives)
        if true_positives + false_negatives > 0 else 0.0
    )
    group_rate = true_positives / exposed_total if exposed_total > 0 else 0.0
    lift = group_rate / overall_rate if overall_rate > 0 else 0.0

    return CombinationResult(
        combination=list(combination),
        log_likelihood=model.log_likelihood,
        aic=calculate_aic(model.log_likelihood),
        odds_ratio=odds_ratio(model.beta1),
        precision=precision,
        recall=recall,
        lift=lift,
        users_with_exposure=exposed_total,
        conversion_rate_in_group=group_rate,
        overall_conversion_rate=overall_rate,
        total_conversions=float(magnitude[exposed & converted].sum()),
    )


class ExposureMatrix:
    """
    Column-per-candidate boolean view of user exposures.

    Built once per run so each combination's intersection indicator is a
    couple of vectorized ANDs rather than a pass over every user's set.
    """

    def __init__(self, records: Sequence[UserExposureRecord], candidates: Sequence[str]):
        self.candidates = list(candidates)
        self.column_index = {value: i for i, value in enumerate(self.candidates)}

        self.matrix = np.zeros((len(records), len(self.candidates)), dtype=bool)
        for row, record in enumerate(records):
            for exposure in record.exposures:
                column = self.column_index.get(exposure)
                if column is not None:
                    self.matrix[row, column] = True

        self.converted = np.array([r.converted for r in records], dtype=bool)
        self.magnitude = np.array([r.outcome_magnitude for r in records], dtype=float)

    def indicator(self, combination: Sequence[str]) -> np.ndarray:
        """x_i = True when user i was exposed to every value in the combination."""
        columns = [self.column_index[value] for value in combination]
        return np.logical_and.reduce(self.matrix[:, columns], axis=1)


def evaluate_combination(
    combination: Sequence[str],
    records: Sequence[UserExposureRecord],
) -> CombinationResult:
    """
    Score one combination over all users.

    Args:
        combination: Exposure values; a user counts as exposed only when
            exposed to all of them
        records: User exposure records

    Returns:
        CombinationResult (unranked).
    """
    exposed = np.array(
        [all(value in r.exposures for value in combination) for r in records],
        dtype=bool,
    )
    converted = np.array([r.converted for r in records], dtype=bool)
    magnitude = np.array([r.outcome_magnitude for r in records], dtype=float)

    return _score_indicator(combination, exposed, converted, magnitude)


def mine_patterns(
    records: Sequence[UserExposureRecord],
    candidates: Sequence[str],
    size: int = 3,
    progress_interval: int = 500,
) -> List[CombinationResult]:
    """
    Evaluate every combination of candidates and rank the survivors.

    Combinations with no exposed user, or no converter among the exposed, are
    dropped before fitting since they would be discarded regardless. The full
    ranked list is returned; truncation belongs to consumers.

    Args:
        records: User exposure records
        candidates: Capped candidate pool in discovery order
        size: Combination arity
        progress_interval: Combinations between progress log lines

    Returns:
        Surviving combinations sorted by ascending AIC with ranks 1..N.
    """
    total = count_combinations(len(candidates), size)
    if total == 0 or not records:
        return []

    matrix = ExposureMatrix(records, candidates)
    results: List[CombinationResult] = []

    for processed, combination in enumerate(generate_combinations(candidates, size), start=1):
        exposed = matrix.indicator(combination)

        if np.any(exposed & matrix.converted):
            results.append(_score_indicator(
                combination, exposed, matrix.converted, matrix.magnitude
            ))

        if progress_interval and processed % progress_interval == 0:
            logger.info(
                f"Processed {processed}/{total} combinations ({len(results)} kept)"
            )

    logger.info(f"Kept {len(results)} of {total} combinations with exposed converters")

    # list.sort is stable: equal AIC keeps enumeration order
    results.sort(key=lambda r: r.aic)
    for rank, result in enumerate(results, start=1):
        result.rank = rank

    return results


# =============================================================================
# CANDIDATE SELECTION
# =============================================================================

def count_exposure_users(records: Sequence[UserExposureRecord]) -> Dict[str, int]:
    """Distinct users per exposure value."""
    counts: Dict[str, int] = {}
    for record in records:
        for exposure in record.exposures:
            counts[exposure] = counts.get(exposure, 0) + 1
    return counts


def rank_exposures(records: Sequence[UserExposureRecord], min_users: int) -> List[str]:
    """
    Exposures with at least min_users distinct users, most-viewed first.

    Equal counts are ordered by value so the pool never depends on set
    iteration order.
    """
    counts = count_exposure_users(records)
    eligible = [(value, count) for value, count in counts.items() if count >= min_users]
    eligible.sort(key=lambda item: (-item[1], item[0]))
    return [value for value, _ in eligible]


def select_candidate_exposures(
    records: Sequence[UserExposureRecord],
    min_users: int,
    max_candidates: int,
) -> List[str]:
    """Ranked exposures capped to the candidate pool size."""
    return rank_exposures(records, min_users)[:max_candidates]


def summarize_top_combinations(
    results: Sequence[CombinationResult],
    limit: int = DEFAULT_PREVIEW_SIZE,
) -> List[CombinationPreview]:
    """Rounded preview of the best-ranked combinations."""
    return [
        CombinationPreview(
            combination=list(r.combination),
            aic=round(r.aic, 2),
            odds_ratio=round(r.odds_ratio, 2),
            lift=round(r.lift, 2),
            conversion_rate=round(r.conversion_rate_in_group * 100, 2),
        )
        for r in results[:limit]
    ]


# =============================================================================
# DATABASE ACCESS
# =============================================================================

async def fetch_exposure_pairs(config: PatternAnalysisConfig) -> List[Dict[str, Any]]:
    """Load the configuration's pair rows with a positive view count."""
    query = get_exposure_pairs_query(config.table, config.columns, config.filter_column)
    records = await execute_query(query)
    logger.info(f"Loaded {len(records)} pairs from {config.table}")
    return [dict(record) for record in records]


def build_exposure_metadata(
    pairs: Sequence[Mapping[str, Any]],
    config: PatternAnalysisConfig,
) -> Dict[str, ExposureMetadata]:
    """
    Display name (first non-empty seen) and summed view count per exposure.
    """
    usernames: Dict[str, Optional[str]] = {}
    views: Dict[str, float] = {}

    for pair in pairs:
        value = pair.get(config.exposure_column)
        if value is None or value == "":
            continue
        value = str(value)

        views[value] = views.get(value, 0.0) + clean_numeric(pair.get(config.filter_column))

        if config.username_column and not usernames.get(value):
            usernames[value] = pair.get(config.username_column) or None

    return {
        value: ExposureMetadata(username=usernames.get(value), total_views=total)
        for value, total in views.items()
    }


def _padded(values: Sequence[Any]) -> List[Any]:
    return list(values) + [None] * (MAX_STORED_VALUES - len(values))


async def persist_combination_results(
    analysis_type: PatternAnalysisType,
    results: Sequence[CombinationResult],
    metadata: Mapping[str, ExposureMetadata],
    analyzed_at: datetime,
    batch_size: int = 500,
) -> int:
    """
    Replace the stored combinations of one analysis type.

    Rows for this analysis_type are deleted and the ranked results inserted in
    batches, all inside a single transaction.

    Returns:
        Number of rows inserted.
    """
    rows = []
    for result in results:
        meta = [metadata.get(value, ExposureMetadata()) for value in result.combination]
        rows.append((
            analysis_type.value,
            result.rank,
            *_padded(result.combination),
            *_padded([m.username for m in meta]),
            *_padded([m.total_views if m.total_views else None for m in meta]),
            result.log_likelihood,
            result.aic,
            result.odds_ratio,
            result.precision,
            result.recall,
            result.lift,
            result.users_with_exposure,
            result.conversion_rate_in_group,
            result.overall_conversion_rate,
            result.total_conversions,
            analyzed_at,
        ))

    pool = await get_db_pool()

    try:
        async with pool.acquire() as conn:
            async with conn.transaction():
                await conn.execute(DELETE_PATTERN_COMBINATIONS, analysis_type.value)
                for start in range(0, len(rows), batch_size):
                    await conn.executemany(
                        INSERT_PATTERN_COMBINATION, rows[start:start + batch_size]
                    )
    except Exception:
        logger.exception(f"Failed to persist {analysis_type.value} combinations")
        raise

    logger.info(f"Stored {len(rows)} {analysis_type.value} combinations")
    return len(rows)


async def get_stored_combinations(
    analysis_type: PatternAnalysisType,
    limit: int = 100,
    min_exposure: int = 0,
) -> List[StoredCombination]:
    """Read ranked combinations back, best first."""
    records = await execute_query(
        SELECT_PATTERN_COMBINATIONS, analysis_type.value, min_exposure, limit
    )

    combinations = []
    for record in records:
        row = dict(record)
        combinations.append(StoredCombination(
            analysis_type=row["analysis_type"],
            combination_rank=row["combination_rank"],
            values=[v for v in (row.get("value_1"), row.get("value_2"), row.get("value_3")) if v is not None],
            usernames=[row.get("username_1"), row.get("username_2"), row.get("username_3")],
            total_views=[row.get("total_views_1"), row.get("total_views_2"), row.get("total_views_3")],
            log_likelihood=row["log_likelihood"],
            aic=row["aic"],
            odds_ratio=row["odds_ratio"],
            precision=row["precision"],
            recall=row["recall"],
            lift=row["lift"],
            users_with_exposure=row["users_with_exposure"],
            conversion_rate_in_group=row["conversion_rate_in_group"],
            overall_conversion_rate=row["overall_conversion_rate"],
            total_conversions=row["total_conversions"],
            analyzed_at=row.get("analyzed_at"),
        ))
    return combinations


# =============================================================================
# MAIN ANALYSIS FUNCTION
# =============================================================================

async def run_pattern_analysis(analysis_type: PatternAnalysisType) -> PatternRunStats:
    """
    Load pairs, mine combinations and replace the stored ranking.

    Raises:
        InsufficientDataError: With fewer than pattern_min_users users, or
            fewer candidates than the combination size.
        ValueError: If the configured combination size exceeds the stored
            value columns.
    """
    settings = get_settings()
    config = PATTERN_ANALYSIS_CONFIGS[analysis_type]
    size = settings.pattern_combination_size

    if size > MAX_STORED_VALUES:
        raise ValueError(f"Combination size {size} exceeds {MAX_STORED_VALUES} stored values")

    pairs = await fetch_exposure_pairs(config)
    records = pairs_to_user_records(
        pairs,
        exposure_column=config.exposure_column,
        outcome_column=config.outcome_column,
        magnitude_column=config.magnitude_column,
    )

    if len(records) < settings.pattern_min_users:
        raise InsufficientDataError(
            f"Insufficient data for pattern analysis: {len(records)} users, "
            f"need {settings.pattern_min_users}+"
        )

    ranked = rank_exposures(records, config.min_users_per_exposure)
    candidates = ranked[:settings.pattern_max_candidates]

    if len(candidates) < size:
        raise InsufficientDataError(
            f"Insufficient {config.exposure_column} values for pattern analysis: "
            f"{len(candidates)} with >= {config.min_users_per_exposure} users, need {size}+"
        )

    total = count_combinations(len(candidates), size)
    logger.info(
        f"Testing {total} combinations from {len(candidates)} candidates "
        f"({len(ranked)} available, capped at {settings.pattern_max_candidates})"
    )

    results = mine_patterns(
        records,
        candidates,
        size=size,
        progress_interval=settings.pattern_progress_interval,
    )

    analyzed_at = datetime.now(timezone.utc)
    stored = await persist_combination_results(
        analysis_type,
        results,
        build_exposure_metadata(pairs, config),
        analyzed_at,
        batch_size=settings.pattern_insert_batch_size,
    )

    return PatternRunStats(
        analysis_type=analysis_type,
        pairs_loaded=len(pairs),
        users_analyzed=len(records),
        candidates_available=len(ranked),
        candidates_tested=len(candidates),
        combinations_tested=total,
        combinations_stored=stored,
        analyzed_at=analyzed_at,
        top_combinations=summarize_top_combinations(results),
    )


# =============================================================================
# EXPORTS - Public API
# =============================================================================

__all__ = [
    # Logistic regression
    "fit_logistic_regression",
    "calculate_aic",
    "odds_ratio",
    "LogisticFit",
    # Combination evaluation
    "generate_combinations",
    "count_combinations",
    "evaluate_combination",
    "mine_patterns",
    "ExposureMatrix",
    # Candidate selection
    "count_exposure_users",
    "rank_exposures",
    "select_candidate_exposures",
    "summarize_top_combinations",
    # Database access
    "fetch_exposure_pairs",
    "build_exposure_metadata",
    "persist_combination_results",
    "get_stored_combinations",
    # Orchestration
    "run_pattern_analysis",
    # Configuration
    "PatternAnalysisConfig",
    "ExposureMetadata",
    "PATTERN_ANALYSIS_CONFIGS",
]
