"""Composed analysis pipelines for the snapshot and sustained views.

Each function is pure over an immutable sequence of readings and an explicit
``now``; data flows score -> threshold -> segment -> filter/report.
"""

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Literal, Sequence

import structlog

from ..models import CellKey, CongestionSummary, Episode, Reading, SnapshotRecord, Threshold
from .reporter import filter_episodes, latest_states, report
from .segmenter import group_by_cell, segment_cells
from .threshold import global_threshold, per_cell_thresholds
from .validation import check_readings

log = structlog.get_logger()


@dataclass
class SustainedResult:
    """Outcome of one sustained-congestion run."""

    threshold: Threshold
    episodes: list[Episode] = field(default_factory=list)
    retained: list[Episode] = field(default_factory=list)
    summaries: list[CongestionSummary] = field(default_factory=list)
    window_readings: int = 0


@dataclass
class SnapshotResult:
    """Outcome of one snapshot run."""

    records: list[SnapshotRecord] = field(default_factory=list)
    excluded_cells: list[CellKey] = field(default_factory=list)


def sustained_congestion(
    readings: Sequence[Reading],
    now: datetime,
    *,
    gap_tolerance: timedelta = timedelta(minutes=20),
    min_duration: timedelta = timedelta(minutes=30),
    lookback_window: timedelta = timedelta(hours=2),
    quantile: float = 0.95,
    secondary_quantile: float = 0.99,
    reference_population: Literal["window", "all"] = "window",
    max_workers: int | None = None,
) -> SustainedResult:
    """Cells with a sustained congestion episode that are still congested.

    Readings in the lookback window are segmented per cell against one global
    threshold; the latest state of each cell comes from all readings.

    Raises:
        InputValidationError: if any reading carries a negative tier count.
        InsufficientDataError: if the reference population is empty.
    """
    check_readings(readings)
    cutoff = now - lookback_window
    window = [r for r in readings if r.ts >= cutoff]
    population = window if reference_population == "window" else readings

    threshold = global_threshold(population, quantile, secondary_quantile)
    episodes = segment_cells(
        group_by_cell(window), threshold.p95, gap_tolerance, max_workers=max_workers
    )
    retained = filter_episodes(episodes, min_duration)
    summaries = report(retained, min_duration, latest_states(readings), threshold.p95)

    return SustainedResult(
        threshold=threshold,
        episodes=episodes,
        retained=retained,
        summaries=summaries,
        window_readings=len(window),
    )


def snapshot(
    readings: Sequence[Reading],
    now: datetime,
    *,
    recent_window: timedelta = timedelta(minutes=30),
    quantile: float = 0.95,
    secondary_quantile: float = 0.99,
    history: Sequence[Reading] | None = None,
) -> SnapshotResult:
    """Latest recent reading of each cell beside that cell's own percentiles.

    Percentiles come from ``history`` when given, otherwise from ``readings``.
    Cells with no history have no threshold and are left out of the records.

    Raises:
        InputValidationError: if any reading carries a negative tier count.
    """
    check_readings(readings)
    if history is not None:
        check_readings(history)
    population = readings if history is None else history
    thresholds = per_cell_thresholds(population, quantile, secondary_quantile)
    cutoff = now - recent_window
    latest = latest_states(r for r in readings if r.ts >= cutoff)

    result = SnapshotResult()
    for cell in sorted(latest):
        threshold = thresholds.get(cell)
        if threshold is None:
            result.excluded_cells.append(cell)
            log.info("cell_excluded_no_threshold", x=cell[0], y=cell[1])
            continue
        reading = latest[cell].reading
        result.records.append(
            SnapshotRecord(
                x=reading.x,
                y=reading.y,
                ts=reading.ts,
                yellow=reading.yellow,
                red=reading.red,
                dark_red=reading.dark_red,
                latest_severity=reading.severity,
                p95=threshold.p95,
                p99=threshold.p99,
            )
        )

    result.records.sort(key=lambda record: record.latest_severity, reverse=True)
    return result
