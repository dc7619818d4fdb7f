"""
Test suite for the driver-analysis statistics primitives.

The tests verify:
1. Pearson correlation bounds, symmetry and zero-variance handling
2. t-statistic guard conditions
3. Predictive strength gates, band mapping and monotonicity
4. Tipping point bucket qualification, jump selection and formatting
"""

from typing import List

import numpy as np
import pytest

from engagement_analytics.models.enums import PredictiveStrength
from engagement_analytics.services.statistics import (
    STRENGTH_LABEL_BANDS,
    calculate_combined_score,
    calculate_correlation,
    calculate_predictive_strength,
    calculate_t_stat,
    calculate_tipping_point,
    find_tipping_bucket,
    strength_from_score,
)
from engagement_analytics.tests.conftest import assert_close, seeded_rng


def expand_buckets(buckets) -> tuple:
    """Expand (value, count, converted) triples into aligned value/outcome lists."""
    values: List[float] = []
    outcomes: List[float] = []
    for value, count, converted in buckets:
        for i in range(count):
            values.append(value)
            outcomes.append(1.0 if i < converted else 0.0)
    return values, outcomes


# =============================================================================
# CORRELATION
# =============================================================================


class TestCalculateCorrelation:
    """Tests for calculate_correlation."""

    def test_perfect_positive_correlation(self) -> None:
        assert_close(calculate_correlation([1, 2, 3, 4], [2, 4, 6, 8]), 1.0)

    def test_perfect_negative_correlation(self) -> None:
        assert_close(calculate_correlation([1, 2, 3, 4], [8, 6, 4, 2]), -1.0)

    def test_matches_numpy_corrcoef(self) -> None:
        rng = seeded_rng()
        x = rng.normal(size=500)
        y = 0.5 * x + rng.normal(size=500)

        expected = float(np.corrcoef(x, y)[0, 1])
        assert_close(calculate_correlation(x, y), expected, tolerance=1e-9)

    def test_constant_series_returns_zero(self) -> None:
        assert calculate_correlation([3, 3, 3, 3], [1, 2, 3, 4]) == 0.0
        assert calculate_correlation([1, 2, 3, 4], [7, 7, 7, 7]) == 0.0

    def test_large_constant_series_returns_zero(self) -> None:
        """Rounding residue on a large constant must not produce a spurious r."""
        x = [1e8 + 0.1] * 1000
        y = list(range(1000))
        assert calculate_correlation(x, y) == 0.0

    def test_small_magnitude_series_keeps_correlation(self) -> None:
        x = [i * 1e-8 for i in range(10)]
        y = list(range(10))

        assert_close(calculate_correlation(x, y), 1.0, tolerance=1e-9)
        assert_close(calculate_correlation([-v for v in x], y), -1.0, tolerance=1e-9)

    def test_empty_input_returns_zero(self) -> None:
        assert calculate_correlation([], []) == 0.0

    def test_symmetry(self) -> None:
        rng = seeded_rng(7)
        x = rng.integers(0, 20, size=300)
        y = rng.integers(0, 5, size=300)
        assert calculate_correlation(x, y) == pytest.approx(calculate_correlation(y, x))

    @pytest.mark.parametrize("seed", range(5))
    def test_bounded(self, seed: int) -> None:
        rng = seeded_rng(seed)
        x = rng.exponential(size=200)
        y = x * rng.choice([-1.0, 1.0]) + rng.normal(scale=1e-6, size=200)
        r = calculate_correlation(x, y)
        assert -1.0 <= r <= 1.0


# =============================================================================
# T-STATISTIC
# =============================================================================


class TestCalculateTStat:
    """Tests for calculate_t_stat."""

    def test_standard_formula(self) -> None:
        # 0.5 * sqrt(100 / 0.75)
        assert_close(calculate_t_stat(0.5, 102), 5.7735, tolerance=1e-4)

    def test_sign_follows_correlation(self) -> None:
        assert calculate_t_stat(-0.5, 102) < 0

    @pytest.mark.parametrize("n", [0, 1, 2])
    def test_small_sample_returns_zero(self, n: int) -> None:
        assert calculate_t_stat(0.8, n) == 0.0

    @pytest.mark.parametrize("r", [0.0, 0.001, -0.001])
    def test_negligible_correlation_returns_zero(self, r: float) -> None:
        assert calculate_t_stat(r, 1000) == 0.0

    def test_near_perfect_correlation_returns_zero(self) -> None:
        # 1 - 0.9996^2 < 0.001
        assert calculate_t_stat(0.9996, 1000) == 0.0
        assert calculate_t_stat(1.0, 1000) == 0.0


# =============================================================================
# PREDICTIVE STRENGTH
# =============================================================================


class TestPredictiveStrength:
    """Tests for the two-gate predictive strength label."""

    def test_strong_correlation_high_t_is_very_strong(self) -> None:
        assert calculate_predictive_strength(0.6, 4.0) == PredictiveStrength.VERY_STRONG

    def test_weak_correlation_low_t_is_very_weak(self) -> None:
        assert calculate_predictive_strength(0.01, 0.5) == PredictiveStrength.VERY_WEAK

    def test_insignificant_t_overrides_large_correlation(self) -> None:
        assert calculate_predictive_strength(0.9, 1.95) == PredictiveStrength.VERY_WEAK

    @pytest.mark.parametrize(
        "r, t, expected",
        [
            (0.35, 2.0, PredictiveStrength.STRONG),             # 4.5 + 0.4 = 4.9
            (0.25, 2.0, PredictiveStrength.MODERATE_STRONG),    # 3.6 + 0.4 = 4.0
            (0.12, 2.6, PredictiveStrength.MODERATE),           # 2.7 + 0.5 = 3.2
            (0.06, 3.3, PredictiveStrength.WEAK_MODERATE),      # 1.8 + 0.6 = 2.4
            (0.03, 2.0, PredictiveStrength.WEAK),               # 0.9 + 0.4 = 1.3
            (0.01, 2.0, PredictiveStrength.VERY_WEAK),          # 0.0 + 0.4 = 0.4
        ],
    )
    def test_band_mapping(self, r: float, t: float, expected: PredictiveStrength) -> None:
        assert calculate_predictive_strength(r, t) == expected

    def test_negative_values_use_magnitude(self) -> None:
        assert calculate_predictive_strength(-0.6, -4.0) == PredictiveStrength.VERY_STRONG

    def test_combined_score_weights(self) -> None:
        assert_close(calculate_combined_score(0.5, 3.5), 6.0)
        assert_close(calculate_combined_score(0.2, 2.0), 4.0)

    def test_label_monotonic_in_combined_score(self) -> None:
        scores = np.linspace(0.0, 6.0, 121)
        ranks = [strength_from_score(float(s)).rank for s in scores]
        assert ranks == sorted(ranks)

    def test_label_bands_descending(self) -> None:
        thresholds = [threshold for threshold, _ in STRENGTH_LABEL_BANDS]
        assert thresholds == sorted(thresholds, reverse=True)


# =============================================================================
# TIPPING POINT
# =============================================================================


class TestTippingPoint:
    """Tests for find_tipping_bucket and calculate_tipping_point."""

    def test_boundary_bucket_excluded(self) -> None:
        """Bucket 0 converts exactly 10% and does not qualify."""
        buckets = [(0.0, 10, 1), (1.0, 10, 2), (2.0, 15, 9)]
        assert find_tipping_bucket(buckets) == 2.0

        values, outcomes = expand_buckets(buckets)
        assert calculate_tipping_point(values, outcomes) == "2.0"

    def test_fewer_than_two_qualifying_buckets(self) -> None:
        assert find_tipping_bucket([(0.0, 10, 5)]) is None
        assert find_tipping_bucket([(0.0, 9, 5), (1.0, 20, 15)]) is None

    def test_small_buckets_excluded(self) -> None:
        buckets = [(0.0, 10, 2), (1.0, 5, 5), (2.0, 10, 6)]
        assert find_tipping_bucket(buckets) == 2.0

    def test_no_positive_jump_returns_none(self) -> None:
        buckets = [(0.0, 10, 8), (1.0, 10, 5), (2.0, 10, 3)]
        assert find_tipping_bucket(buckets) is None

    def test_first_largest_jump_wins(self) -> None:
        buckets = [(0.0, 20, 5), (1.0, 20, 10), (2.0, 20, 5), (3.0, 20, 10)]
        assert find_tipping_bucket(buckets) == 1.0

    def test_unsorted_buckets(self) -> None:
        buckets = [(5.0, 20, 18), (1.0, 20, 4), (3.0, 20, 6)]
        assert find_tipping_bucket(buckets) == 5.0

    def test_values_are_floored(self) -> None:
        values = [0.2] * 10 + [1.7] * 10 + [2.9] * 10
        outcomes = [1.0] * 2 + [0.0] * 8 + [1.0] * 3 + [0.0] * 7 + [1.0] * 9 + [0.0]
        assert calculate_tipping_point(values, outcomes) == "2.0"

    def test_outcome_magnitude_counts_as_converted(self) -> None:
        values = [0.0] * 10 + [1.0] * 10
        outcomes = [250.0] * 2 + [0.0] * 8 + [1000.0] * 8 + [0.0] * 2
        assert calculate_tipping_point(values, outcomes) == "1.0"

    def test_custom_thresholds(self) -> None:
        values = [0.0] * 5 + [1.0] * 5
        outcomes = [1.0] + [0.0] * 4 + [1.0] * 4 + [0.0]
        assert calculate_tipping_point(values, outcomes) is None
        assert calculate_tipping_point(values, outcomes, min_bucket_size=5) == "1.0"

    def test_empty_input(self) -> None:
        assert calculate_tipping_point([], []) is None
