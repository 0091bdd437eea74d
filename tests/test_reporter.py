"""Tests for episode filtering and sustained reporting."""
from datetime import timedelta

from traffic_congestion.analysis.reporter import filter_episodes, latest_states, report
from traffic_congestion.models import CellLatestState, Episode

from .conftest import make_reading

MIN_DURATION = timedelta(minutes=30)


def episode(x, y, minutes, run_id=0):
    return Episode(x=x, y=y, run_id=run_id, total_duration=timedelta(minutes=minutes))


def states(*readings):
    return {r.cell: CellLatestState(reading=r) for r in readings}


class TestLatestStates:
    def test_picks_most_recent(self):
        readings = [
            make_reading(10, 3),
            make_reading(30, 7),
            make_reading(20, 9),
            make_reading(5, 1, x=2),
        ]
        latest = latest_states(readings)
        assert set(latest) == {(1, 1), (2, 1)}
        assert latest[(1, 1)].latest_severity == 7
        assert latest[(2, 1)].reading.yellow == 1

    def test_one_state_per_cell(self):
        readings = [make_reading(m, 1) for m in range(10)]
        assert len(latest_states(readings)) == 1

    def test_empty(self):
        assert latest_states([]) == {}


class TestFilter:
    def test_minimum_is_inclusive(self):
        kept = filter_episodes([episode(1, 1, 29), episode(2, 2, 30), episode(3, 3, 45)], MIN_DURATION)
        assert [e.x for e in kept] == [2, 3]


class TestReport:
    def test_reports_still_congested_cells(self):
        summaries = report(
            [episode(1, 1, 40)],
            MIN_DURATION,
            states(make_reading(60, 12)),
            threshold=10,
        )
        assert len(summaries) == 1
        summary = summaries[0]
        assert (summary.x, summary.y) == (1, 1)
        assert summary.latest_severity == 12
        assert summary.yellow == 12
        assert summary.threshold_p95 == 10

    def test_recovered_cell_excluded(self):
        summaries = report(
            [episode(1, 1, 90)],
            MIN_DURATION,
            states(make_reading(60, 4)),
            threshold=10,
        )
        assert summaries == []

    def test_short_episode_excluded(self):
        summaries = report(
            [episode(1, 1, 10)],
            MIN_DURATION,
            states(make_reading(60, 50)),
            threshold=10,
        )
        assert summaries == []

    def test_short_episode_qualifies_with_lower_minimum(self):
        summaries = report(
            [episode(1, 1, 10)],
            timedelta(minutes=10),
            states(make_reading(60, 50)),
            threshold=10,
        )
        assert len(summaries) == 1

    def test_one_summary_per_cell(self):
        summaries = report(
            [episode(1, 1, 40, run_id=0), episode(1, 1, 35, run_id=2)],
            MIN_DURATION,
            states(make_reading(60, 12)),
            threshold=10,
        )
        assert len(summaries) == 1

    def test_cell_without_latest_state_skipped(self):
        assert report([episode(4, 4, 40)], MIN_DURATION, {}, threshold=10) == []

    def test_ordering(self):
        latest = states(
            make_reading(60, 15, x=3),
            make_reading(60, 20, x=1),
            make_reading(60, 15, x=2),
        )
        episodes = [episode(3, 1, 40), episode(1, 1, 40), episode(2, 1, 40)]
        summaries = report(episodes, MIN_DURATION, latest, threshold=10)
        assert [(s.x, s.latest_severity) for s in summaries] == [(1, 20), (2, 15), (3, 15)]

    def test_repeatable(self):
        latest = states(*(make_reading(60, 15, x=x) for x in range(5)))
        episodes = [episode(x, 1, 40) for x in reversed(range(5))]
        first = report(episodes, MIN_DURATION, latest, threshold=10)
        second = report(list(reversed(episodes)), MIN_DURATION, latest, threshold=10)
        assert [s.model_dump() for s in first] == [s.model_dump() for s in second]
