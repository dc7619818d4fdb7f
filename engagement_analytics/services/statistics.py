"""
Statistics Service - Correlation, t-statistic, predictive strength, tipping point

Pure numerical routines behind driver analysis. Every function here is total:
degenerate input (empty sequences, constant series, too few observations)
yields a neutral value (0.0, None or "Very Weak") instead of raising, so one
bad variable never aborts a ranked batch.

Algorithm Overview:
- Pearson correlation via the raw-sums formula
  r = (nΣxy − ΣxΣy) / sqrt((nΣx² − (Σx)²)(nΣy² − (Σy)²))
- t = r·sqrt((n−2)/(1−r²))
- Predictive strength: significance gate |t| >= 1.96, then a 90/10 weighted
  score of correlation and t-statistic bands mapped onto seven labels
- Tipping point: floor-bucketed predictor values, qualifying buckets only,
  largest forward jump in conversion rate
"""

from __future__ import annotations

import math
from typing import Optional, Sequence, Tuple

import numpy as np
import pandas as pd

from engagement_analytics.models.enums import PredictiveStrength

# =============================================================================
# CONSTANTS
# =============================================================================

# Relative tolerance below which a variance term is treated as zero
VARIANCE_TOLERANCE: float = 1e-12

# t-statistic guards
MIN_ABS_CORRELATION_FOR_T: float = 0.001
MIN_ONE_MINUS_R_SQUARED: float = 0.001

# Two-sided 95% significance gate
SIGNIFICANCE_T: float = 1.96

# (lower bound on |r|, score), checked top-down
CORRELATION_SCORE_BANDS: Tuple[Tuple[float, int], ...] = (
    (0.50, 6),
    (0.30, 5),
    (0.20, 4),
    (0.10, 3),
    (0.05, 2),
    (0.02, 1),
)

# (lower bound on |t|, score): 99.9%, 99%, 95%
T_SCORE_BANDS: Tuple[Tuple[float, int], ...] = (
    (3.29, 6),
    (2.58, 5),
    (1.96, 4),
)

CORRELATION_WEIGHT: float = 0.9
T_STAT_WEIGHT: float = 0.1

# (lower bound on combined score, label), checked top-down
STRENGTH_LABEL_BANDS: Tuple[Tuple[float, PredictiveStrength], ...] = (
    (5.5, PredictiveStrength.VERY_STRONG),
    (4.5, PredictiveStrength.STRONG),
    (3.5, PredictiveStrength.MODERATE_STRONG),
    (2.5, PredictiveStrength.MODERATE),
    (1.5, PredictiveStrength.WEAK_MODERATE),
    (0.5, PredictiveStrength.WEAK),
)

DEFAULT_MIN_BUCKET_SIZE: int = 10
DEFAULT_MIN_BUCKET_RATE: float = 0.10


# =============================================================================
# CORRELATION AND T-STATISTIC
# =============================================================================

def calculate_correlation(x: Sequence[float], y: Sequence[float]) -> float:
    """
    Calculate the Pearson correlation coefficient of two aligned sequences.

    Returns 0.0 for empty input or when either series has (numerically)
    zero variance. The result is clipped into [-1, 1] to absorb rounding.

    Args:
        x: First numeric series
        y: Second numeric series, same length as x

    Returns:
        Correlation coefficient in [-1, 1].
    """
    x_arr = np.asarray(x, dtype=float)
    y_arr = np.asarray(y, dtype=float)
    n = x_arr.size
    if n == 0:
        return 0.0

    sum_x = float(x_arr.sum())
    sum_y = float(y_arr.sum())
    sum_xy = float(np.dot(x_arr, y_arr))
    sum_x2 = float(np.dot(x_arr, x_arr))
    sum_y2 = float(np.dot(y_arr, y_arr))

    var_x = n * sum_x2 - sum_x * sum_x
    var_y = n * sum_y2 - sum_y * sum_y

    if var_x <= VARIANCE_TOLERANCE * n * sum_x2:
        return 0.0
    if var_y <= VARIANCE_TOLERANCE * n * sum_y2:
        return 0.0

    denominator = math.sqrt(var_x * var_y)
    if denominator == 0:
        return 0.0

    r = (n * sum_xy - sum_x * sum_y) / denominator
    return max(-1.0, min(1.0, r))


def calculate_t_stat(correlation: float, n: int) -> float:
    """
    Calculate the t-statistic for a correlation over n observations.

    Returns 0.0 when |r| <= 0.001, n <= 2, or 1 - r² <= 0.001.
    """
    if abs(correlation) <= MIN_ABS_CORRELATION_FOR_T or n <= 2:
        return 0.0

    denominator = 1.0 - correlation * correlation
    if denominator <= MIN_ONE_MINUS_R_SQUARED:
        return 0.0

    return correlation * math.sqrt((n - 2) / denominator)


# =============================================================================
# PREDICTIVE STRENGTH
# =============================================================================

def _band_score(value: float, bands: Tuple[Tuple[float, int], ...]) -> int:
    for lower_bound, score in bands:
        if value >= lower_bound:
            return score
    return 0


def calculate_combined_score(correlation: float, t_stat: float) -> float:
    """Weighted score: 0.9 × correlation band + 0.1 × t-statistic band."""
    corr_score = _band_score(abs(correlation), CORRELATION_SCORE_BANDS)
    t_score = _band_score(abs(t_stat), T_SCORE_BANDS)
    return corr_score * CORRELATION_WEIGHT + t_score * T_STAT_WEIGHT


def strength_from_score(combined_score: float) -> PredictiveStrength:
    """Map a combined score onto the predictive-strength vocabulary."""
    for lower_bound, label in STRENGTH_LABEL_BANDS:
        if combined_score >= lower_bound:
            return label
    return PredictiveStrength.VERY_WEAK


def calculate_predictive_strength(correlation: float, t_stat: float) -> PredictiveStrength:
    """
    Label how strongly a predictor relates to an outcome.

    Gate 1: |t| < 1.96 is "Very Weak" regardless of correlation.
    Gate 2: the combined score is mapped through the label bands.

    Example:
        >>> calculate_predictive_strength(0.6, 4.0)
        <PredictiveStrength.VERY_STRONG: 'Very Strong'>
    """
    if abs(t_stat) < SIGNIFICANCE_T:
        return PredictiveStrength.VERY_WEAK

    return strength_from_score(calculate_combined_score(correlation, t_stat))


# =============================================================================
# TIPPING POINT
# =============================================================================

def find_tipping_bucket(
    buckets: Sequence[Tuple[float, int, int]],
    min_bucket_size: int = DEFAULT_MIN_BUCKET_SIZE,
    min_rate: float = DEFAULT_MIN_BUCKET_RATE,
) -> Optional[float]:
    """
    Find the bucket value with the largest rise in conversion rate.

    Args:
        buckets: (bucket value, count, converted count) triples in any order
        min_bucket_size: Minimum count for a bucket to qualify
        min_rate: Conversion rate a bucket must strictly exceed to qualify

    Returns:
        The bucket value at the largest positive jump over its qualifying
        predecessor (first occurrence wins ties), or None when fewer than two
        buckets qualify or no jump is positive.
    """
    qualifying = sorted(
        (value, converted / count)
        for value, count, converted in buckets
        if count >= min_bucket_size and converted / count > min_rate
    )

    if len(qualifying) < 2:
        return None

    max_jump = 0.0
    tipping_point: Optional[float] = None

    for i in range(1, len(qualifying)):
        jump = qualifying[i][1] - qualifying[i - 1][1]
        if jump > max_jump:
            max_jump = jump
            tipping_point = qualifying[i][0]

    return tipping_point


def calculate_tipping_point(
    values: Sequence[float],
    outcomes: Sequence[float],
    min_bucket_size: int = DEFAULT_MIN_BUCKET_SIZE,
    min_rate: float = DEFAULT_MIN_BUCKET_RATE,
) -> Optional[str]:
    """
    Detect the predictor value at which the outcome conversion rate jumps most.

    Rows are bucketed by floor(predictor value); a row is converted when its
    outcome is > 0.

    Args:
        values: Predictor values, aligned with outcomes
        outcomes: Outcome values
        min_bucket_size: Minimum rows per qualifying bucket
        min_rate: Conversion rate a bucket must strictly exceed

    Returns:
        Tipping point rounded to one decimal place (e.g. "3.0"), or None.
    """
    if len(values) == 0:
        return None

    frame = pd.DataFrame({
        "bucket": np.floor(np.asarray(values, dtype=float)),
        "converted": (np.asarray(outcomes, dtype=float) > 0).astype(int),
    })
    grouped = frame.groupby("bucket")["converted"].agg(["count", "sum"])

    buckets = [
        (float(bucket), int(row["count"]), int(row["sum"]))
        for bucket, row in grouped.iterrows()
    ]

    tipping_point = find_tipping_bucket(buckets, min_bucket_size, min_rate)
    if tipping_point is None:
        return None

    return f"{tipping_point:.1f}"


__all__ = [
    "calculate_correlation",
    "calculate_t_stat",
    "calculate_combined_score",
    "strength_from_score",
    "calculate_predictive_strength",
    "find_tipping_bucket",
    "calculate_tipping_point",
    "CORRELATION_SCORE_BANDS",
    "T_SCORE_BANDS",
    "STRENGTH_LABEL_BANDS",
    "SIGNIFICANCE_T",
    "DEFAULT_MIN_BUCKET_SIZE",
    "DEFAULT_MIN_BUCKET_RATE",
]
