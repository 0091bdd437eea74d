"""Percentile severity thresholds.

Provides continuous (linear interpolation) percentiles over a severity
population and the two population-selection policies used by the views:
- per-cell history, for the snapshot view
- one global population, for sustained-episode detection
"""

import math
from collections import defaultdict
from typing import Iterable, Sequence

import structlog

from ..exceptions import ConfigurationError, InsufficientDataError
from ..models import CellKey, Reading, Threshold

log = structlog.get_logger()


def estimate(population: Sequence[float], q: float) -> float:
    """Continuous percentile of a population.

    The quantile position in the sorted population is ``q * (n - 1)``; the
    result interpolates linearly between the two bracketing order statistics.

    Raises:
        ConfigurationError: if q is not strictly between 0 and 1.
        InsufficientDataError: if the population is empty.
    """
    if not 0 < q < 1:
        raise ConfigurationError(f"quantile must be in (0, 1), got {q}")
    if not population:
        raise InsufficientDataError("cannot estimate a percentile of an empty population")

    ordered = sorted(population)
    position = q * (len(ordered) - 1)
    lower = math.floor(position)
    upper = math.ceil(position)
    low_value = ordered[lower]
    return low_value + (position - lower) * (ordered[upper] - low_value)


def estimate_threshold(
    population: Sequence[float], quantile: float = 0.95, secondary_quantile: float = 0.99
) -> Threshold:
    """Build a Threshold pair from one severity population."""
    return Threshold(
        p95=estimate(population, quantile),
        p99=estimate(population, secondary_quantile),
        population_size=len(population),
    )


def global_threshold(
    readings: Iterable[Reading], quantile: float = 0.95, secondary_quantile: float = 0.99
) -> Threshold:
    """Threshold over the severities of every given reading."""
    severities = [reading.severity for reading in readings]
    threshold = estimate_threshold(severities, quantile, secondary_quantile)
    log.debug(
        "threshold_estimated",
        scope="global",
        population=len(severities),
        p95=threshold.p95,
        p99=threshold.p99,
    )
    return threshold


def per_cell_thresholds(
    readings: Iterable[Reading], quantile: float = 0.95, secondary_quantile: float = 0.99
) -> dict[CellKey, Threshold]:
    """Threshold per cell, each over that cell's own readings.

    Cells only appear in the result when they have at least one reading, so
    a missing key means no threshold is available for that cell.
    """
    by_cell: dict[CellKey, list[int]] = defaultdict(list)
    for reading in readings:
        by_cell[reading.cell].append(reading.severity)

    thresholds = {
        cell: estimate_threshold(severities, quantile, secondary_quantile)
        for cell, severities in by_cell.items()
    }
    log.debug("threshold_estimated", scope="per_cell", cells=len(thresholds))
    return thresholds
