"""Congestion view service.

Provides the grid congestion views:
- Current snapshot with per-cell historical percentiles
- Per-cell history over a bounded lookback, optionally for one hour of day
- Sustained congestion: cells with a long episode that are still congested
"""

import time
from contextlib import contextmanager
from datetime import datetime, timedelta, timezone
from typing import Iterator

import structlog

from ..analysis import pipeline
from ..config import Settings, get_settings, validate_settings
from ..exceptions import CongestionError, InsufficientDataError
from ..logging import run_context
from ..metrics import MetricsCollector, get_metrics
from ..models import CongestionSummary, Reading, SnapshotRecord
from .readings import ReadingStore

log = structlog.get_logger()


class CongestionService:
    """Service for grid congestion views."""

    def __init__(
        self,
        store: ReadingStore | None = None,
        settings: Settings | None = None,
        metrics: MetricsCollector | None = None,
    ):
        self.settings = validate_settings(settings or get_settings())
        self.store = store if store is not None else ReadingStore()
        self.metrics = metrics or get_metrics()

    @contextmanager
    def _view(self, view: str) -> Iterator[str]:
        """Scope logging to one view computation and record its metrics."""
        start = time.perf_counter()
        with run_context(view=view) as run_id:
            try:
                yield run_id
            except CongestionError as e:
                self.metrics.inc_counter(
                    "view_failures_total", labels={"view": view, "error": type(e).__name__}
                )
                log.warning("view_failed", error=str(e), error_type=type(e).__name__)
                raise
            finally:
                elapsed_ms = (time.perf_counter() - start) * 1000
                self.metrics.inc_counter("views_total", labels={"view": view})
                self.metrics.set_gauge("view_duration_ms", round(elapsed_ms, 3), {"view": view})

    @staticmethod
    def _now(now: datetime | None) -> datetime:
        if now is None:
            return datetime.now(timezone.utc)
        if now.tzinfo is None:
            return now.replace(tzinfo=timezone.utc)
        return now

    def resolve_duration(self, duration: str | None) -> timedelta:
        """Map a requested duration string onto an allowed lookback interval.

        Missing or unrecognized values fall back to the default duration
        rather than failing or being passed through.
        """
        history = self.settings.history
        if duration and duration in history.allowed_durations:
            return history.allowed_durations[duration]
        if duration:
            log.debug("duration_not_allowed", requested=duration, using=history.default_duration)
        return history.allowed_durations[history.default_duration]

    # ========================================
    # Views
    # ========================================

    def get_current(self, now: datetime | None = None) -> list[SnapshotRecord]:
        """Latest recent reading of every cell with its historical p95/p99."""
        now = self._now(now)
        with self._view("current"):
            readings = self.store.snapshot()
            result = pipeline.snapshot(
                readings,
                now,
                recent_window=self.settings.snapshot.recent_window,
                quantile=self.settings.threshold.quantile,
                secondary_quantile=self.settings.threshold.secondary_quantile,
            )

            self.metrics.inc_counter("readings_processed_total", len(readings))
            self.metrics.inc_counter(
                "cells_reported_total", len(result.records), {"view": "current"}
            )
            if result.excluded_cells:
                self.metrics.inc_counter("cells_excluded_total", len(result.excluded_cells))
            log.info(
                "current_view_built",
                readings=len(readings),
                cells=len(result.records),
                excluded=len(result.excluded_cells),
            )
            return result.records

    def get_history(
        self, x: int, y: int, duration: str | None = None, now: datetime | None = None
    ) -> list[Reading]:
        """Readings of one cell within the lookback, newest first."""
        return self._history("history", x, y, duration, None, now)

    def get_history_hourly(
        self,
        x: int,
        y: int,
        hour: int,
        duration: str | None = None,
        now: datetime | None = None,
    ) -> list[Reading]:
        """Readings of one cell within the lookback taken at one UTC hour of day."""
        return self._history("history_hourly", x, y, duration, hour, now)

    def _history(
        self,
        view: str,
        x: int,
        y: int,
        duration: str | None,
        hour: int | None,
        now: datetime | None,
    ) -> list[Reading]:
        now = self._now(now)
        with self._view(view):
            lookback = self.resolve_duration(duration)
            readings = self.store.for_cell(x, y, now - lookback, hour=hour)
            self.metrics.inc_counter("readings_processed_total", len(readings))
            log.info(
                "history_view_built",
                x=x,
                y=y,
                lookback=lookback,
                hour=hour,
                readings=len(readings),
            )
            return readings

    def get_sustained(self, now: datetime | None = None) -> list[CongestionSummary]:
        """Cells with a sustained congestion episode that are still congested now.

        Returns an empty list when there is no reference population to derive
        a threshold from.
        """
        now = self._now(now)
        episode_settings = self.settings.episode
        threshold_settings = self.settings.threshold

        with self._view("sustained"):
            readings = self.store.snapshot()
            try:
                result = pipeline.sustained_congestion(
                    readings,
                    now,
                    gap_tolerance=episode_settings.gap_tolerance,
                    min_duration=episode_settings.min_duration,
                    lookback_window=threshold_settings.lookback_window,
                    quantile=threshold_settings.quantile,
                    secondary_quantile=threshold_settings.secondary_quantile,
                    reference_population=threshold_settings.reference_population,
                    max_workers=episode_settings.max_workers,
                )
            except InsufficientDataError as e:
                log.warning("sustained_no_threshold", reason=str(e), readings=len(readings))
                self.metrics.inc_counter("cells_reported_total", 0, {"view": "sustained"})
                return []

            self.metrics.inc_counter("readings_processed_total", result.window_readings)
            self.metrics.inc_counter("episodes_detected_total", len(result.episodes))
            self.metrics.inc_counter("episodes_retained_total", len(result.retained))
            self.metrics.inc_counter(
                "cells_reported_total", len(result.summaries), {"view": "sustained"}
            )
            self.metrics.set_gauge(
                "threshold_severity", result.threshold.p95, {"view": "sustained", "quantile": "p95"}
            )
            self.metrics.set_gauge(
                "threshold_severity", result.threshold.p99, {"view": "sustained", "quantile": "p99"}
            )
            log.info(
                "sustained_view_built",
                window_readings=result.window_readings,
                threshold_p95=result.threshold.p95,
                episodes=len(result.episodes),
                retained=len(result.retained),
                cells=len(result.summaries),
            )
            return result.summaries


# Global service instance
_congestion_service: CongestionService | None = None


def get_congestion_service() -> CongestionService:
    """Get the global congestion service instance."""
    global _congestion_service
    if _congestion_service is None:
        _congestion_service = CongestionService()
    return _congestion_service


def reset_congestion_service() -> None:
    """Reset the global service (for testing)."""
    global _congestion_service
    _congestion_service = None
