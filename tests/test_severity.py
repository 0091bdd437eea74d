"""Tests for severity scoring."""
import pytest

from traffic_congestion.analysis.severity import SEVERITY_WEIGHTS, score

from .conftest import make_reading


class TestSeverity:
    def test_weights_are_fixed(self):
        assert SEVERITY_WEIGHTS == (1, 2, 3)

    def test_weighted_sum(self):
        reading = make_reading(yellow=2, red=3, dark_red=4)
        assert score(reading) == 2 + 2 * 3 + 3 * 4
        assert reading.severity == 20

    def test_zero_counts(self):
        assert score(make_reading()) == 0

    @pytest.mark.parametrize("tier", ["yellow", "red", "dark_red"])
    def test_monotonic_in_each_tier(self, tier):
        base = {"yellow": 1, "red": 1, "dark_red": 1}
        lower = make_reading(**base)
        higher = make_reading(**{**base, tier: 2})
        assert score(higher) > score(lower) >= 0

    def test_accepts_any_object_with_tiers(self):
        class Counts:
            yellow = 1
            red = 0
            dark_red = 2

        assert score(Counts()) == 7
