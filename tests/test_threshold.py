"""Tests for percentile threshold estimation."""
import pytest

from traffic_congestion.analysis.threshold import (
    estimate,
    estimate_threshold,
    global_threshold,
    per_cell_thresholds,
)
from traffic_congestion.exceptions import ConfigurationError, InsufficientDataError

from .conftest import make_reading


class TestEstimate:
    def test_linear_interpolation(self):
        assert estimate([1, 2, 3, 4, 5], 0.95) == 4.8

    def test_p99(self):
        assert estimate([1, 2, 3, 4, 5], 0.99) == pytest.approx(4.96)

    def test_median_between_two(self):
        assert estimate([10, 20], 0.5) == 15

    def test_order_independent(self):
        assert estimate([5, 1, 4, 2, 3], 0.95) == estimate([1, 2, 3, 4, 5], 0.95)

    def test_idempotent(self):
        population = [3, 9, 1, 7, 7, 2]
        assert estimate(population, 0.95) == estimate(population, 0.95)

    @pytest.mark.parametrize("q", [0.01, 0.5, 0.95, 0.99])
    def test_single_value(self, q):
        assert estimate([7], q) == 7

    @pytest.mark.parametrize("q", [0.01, 0.5, 0.95, 0.99])
    def test_repeated_value(self, q):
        assert estimate([4, 4, 4, 4], q) == 4

    def test_empty_population(self):
        with pytest.raises(InsufficientDataError):
            estimate([], 0.95)

    @pytest.mark.parametrize("q", [0, 1, 1.5, -0.5])
    def test_quantile_out_of_range(self, q):
        with pytest.raises(ConfigurationError):
            estimate([1, 2, 3], q)

    def test_not_nearest_rank(self):
        # nearest-rank would return 4 here
        assert estimate([1, 2, 3, 4], 0.9) == pytest.approx(3.7)


class TestThresholdPolicies:
    def test_estimate_threshold_pair(self):
        threshold = estimate_threshold([1, 2, 3, 4, 5])
        assert threshold.p95 == 4.8
        assert threshold.p99 == pytest.approx(4.96)
        assert threshold.population_size == 5

    def test_global_threshold_uses_severity(self):
        readings = [make_reading(i, severity=s) for i, s in enumerate([1, 2, 3, 4, 5])]
        assert global_threshold(readings).p95 == 4.8

    def test_global_threshold_empty(self):
        with pytest.raises(InsufficientDataError):
            global_threshold([])

    def test_per_cell(self):
        readings = [
            make_reading(0, severity=1, x=1, y=1),
            make_reading(5, severity=3, x=1, y=1),
            make_reading(0, severity=8, x=2, y=5),
        ]
        thresholds = per_cell_thresholds(readings, 0.5, 0.99)
        assert set(thresholds) == {(1, 1), (2, 5)}
        assert thresholds[(1, 1)].p95 == 2
        assert thresholds[(2, 5)].p95 == 8
        assert thresholds[(2, 5)].p99 == 8

    def test_per_cell_empty(self):
        assert per_cell_thresholds([]) == {}
