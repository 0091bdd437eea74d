"""Severity scoring for congestion readings."""

from typing import Protocol

# Weights for the yellow, red and dark red tiers. Changing them changes every
# stored threshold, so they are versioned with the algorithm, not configured.
SEVERITY_WEIGHTS = (1, 2, 3)


class TierCounts(Protocol):
    yellow: int
    red: int
    dark_red: int


def score(reading: TierCounts) -> int:
    """Weighted sum of a reading's congestion tier counts."""
    w_yellow, w_red, w_dark_red = SEVERITY_WEIGHTS
    return reading.yellow * w_yellow + reading.red * w_red + reading.dark_red * w_dark_red
