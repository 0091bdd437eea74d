"""Congestion episode segmentation.

Scans each cell's time-ordered readings once, carrying a single open run:
- a congested reading opens a run, or extends the open one
- the gap to the next reading counts toward the run when it is within the
  gap tolerance (inclusive), whatever that next reading's state
- a larger gap, a reading below threshold, or the end of the series closes it

Runs whose included gaps sum to zero (isolated spikes, or the last reading
of a series) never become episodes.
"""

from collections import defaultdict
from concurrent.futures import ThreadPoolExecutor
from datetime import timedelta
from typing import Iterable, Mapping, Sequence

import structlog

from ..models import CellKey, Episode, Reading, SegmentState
from .validation import validate_series

log = structlog.get_logger()


class _RunAccumulator:
    """Carried state of the forward scan over one cell."""

    def __init__(self) -> None:
        self.state = SegmentState.NOT_CONGESTED
        self.run_id = 0
        self.readings: list[Reading] = []
        self.duration = timedelta(0)
        self.episodes: list[Episode] = []

    def add(self, reading: Reading) -> None:
        if self.state is not SegmentState.CONGESTED_RUN_OPEN:
            self.state = SegmentState.CONGESTED_RUN_OPEN
            self.readings = []
            self.duration = timedelta(0)
        self.readings.append(reading)

    def close(self, reason: SegmentState) -> None:
        if self.state is not SegmentState.CONGESTED_RUN_OPEN:
            return
        # A closed run is terminal; the next congested reading opens a fresh one
        self.state = reason
        if self.duration > timedelta(0):
            first = self.readings[0]
            self.episodes.append(
                Episode(
                    x=first.x,
                    y=first.y,
                    run_id=self.run_id,
                    total_duration=self.duration,
                    readings=self.readings,
                )
            )
        self.run_id += 1


def segment(
    series: Sequence[Reading], threshold: float, gap_tolerance: timedelta
) -> list[Episode]:
    """Split one cell's series into congestion episodes.

    Args:
        series: Readings of a single cell, ordered by timestamp
        threshold: Severity at or above which a reading is congested
        gap_tolerance: Largest gap that keeps a run open

    Raises:
        InputValidationError: if the series mixes cells, is out of order,
            or carries negative counts.
    """
    validate_series(series)

    acc = _RunAccumulator()
    last_index = len(series) - 1
    for index, reading in enumerate(series):
        if reading.severity < threshold:
            acc.close(SegmentState.CLOSE_BREAK)
            acc.state = SegmentState.NOT_CONGESTED
            continue

        acc.add(reading)
        if index == last_index:
            acc.close(SegmentState.CLOSE_END_OF_SERIES)
            continue

        gap = series[index + 1].ts - reading.ts
        if gap <= gap_tolerance:
            acc.duration += gap
        else:
            acc.close(SegmentState.CLOSE_BREAK)

    return acc.episodes


def group_by_cell(readings: Iterable[Reading]) -> dict[CellKey, list[Reading]]:
    """Group readings into per-cell series ordered by timestamp."""
    by_cell: dict[CellKey, list[Reading]] = defaultdict(list)
    for reading in readings:
        by_cell[reading.cell].append(reading)
    for series in by_cell.values():
        series.sort(key=lambda r: r.ts)
    return dict(by_cell)


def segment_cells(
    series_by_cell: Mapping[CellKey, Sequence[Reading]],
    threshold: float,
    gap_tolerance: timedelta,
    max_workers: int | None = None,
) -> list[Episode]:
    """Segment every cell, optionally in parallel.

    Cells share no state, so each series is segmented independently; results
    are merged in cell order once all cells are done.
    """
    cells = sorted(series_by_cell)

    if max_workers is None or max_workers <= 1 or len(cells) <= 1:
        per_cell = [segment(series_by_cell[cell], threshold, gap_tolerance) for cell in cells]
    else:
        with ThreadPoolExecutor(max_workers=max_workers) as executor:
            per_cell = list(
                executor.map(
                    lambda cell: segment(series_by_cell[cell], threshold, gap_tolerance),
                    cells,
                )
            )

    episodes = [episode for cell_episodes in per_cell for episode in cell_episodes]
    log.debug(
        "episodes_segmented",
        cells=len(cells),
        episodes=len(episodes),
        threshold=threshold,
        workers=max_workers or 1,
    )
    return episodes
