"""Episode filtering and sustained-congestion reporting."""

from datetime import timedelta
from typing import Iterable, Mapping

import structlog

from ..models import CellKey, CellLatestState, CongestionSummary, Episode, Reading

log = structlog.get_logger()


def latest_states(readings: Iterable[Reading]) -> dict[CellKey, CellLatestState]:
    """Most recent reading per cell.

    On equal timestamps the reading seen first is kept.
    """
    latest: dict[CellKey, Reading] = {}
    for reading in readings:
        current = latest.get(reading.cell)
        if current is None or reading.ts > current.ts:
            latest[reading.cell] = reading
    return {cell: CellLatestState(reading=reading) for cell, reading in latest.items()}


def filter_episodes(episodes: Iterable[Episode], min_duration: timedelta) -> list[Episode]:
    """Keep episodes whose cumulative duration reaches min_duration."""
    return [episode for episode in episodes if episode.total_duration >= min_duration]


def report(
    episodes: Iterable[Episode],
    min_duration: timedelta,
    latest: Mapping[CellKey, CellLatestState],
    threshold: float,
) -> list[CongestionSummary]:
    """Summaries of cells with a long enough episode that are still congested.

    A cell is reported once no matter how many of its episodes qualify, and
    only while its latest severity is at or above the threshold. Results are
    ordered by latest severity (highest first), then by cell.
    """
    retained = filter_episodes(episodes, min_duration)
    cells = {episode.cell for episode in retained}

    summaries = []
    recovered = 0
    for cell in sorted(cells):
        state = latest.get(cell)
        if state is None:
            log.warning("episode_cell_without_latest_state", x=cell[0], y=cell[1])
            continue
        if state.latest_severity < threshold:
            recovered += 1
            continue
        reading = state.reading
        summaries.append(
            CongestionSummary(
                x=reading.x,
                y=reading.y,
                latest_ts=reading.ts,
                yellow=reading.yellow,
                red=reading.red,
                dark_red=reading.dark_red,
                latest_severity=state.latest_severity,
                threshold_p95=threshold,
            )
        )

    # sorted() is stable, so equal severities keep cell order
    summaries = sorted(summaries, key=lambda s: s.latest_severity, reverse=True)
    log.debug(
        "sustained_report_built",
        retained_episodes=len(retained),
        candidate_cells=len(cells),
        recovered_cells=recovered,
        reported_cells=len(summaries),
    )
    return summaries
