"""In-memory reading store for the congestion views."""

import threading
from datetime import datetime, timezone
from typing import Any, Iterable, Mapping

import structlog

from ..analysis.validation import check_reading, readings_from_rows
from ..exceptions import InputValidationError
from ..models import Reading

log = structlog.get_logger()


class ReadingStore:
    """Holds readings and answers the selections the views need.

    Every query works on an immutable snapshot taken under the lock, so a
    computation never observes readings added while it runs.
    """

    def __init__(self, readings: Iterable[Reading] | None = None):
        self._lock = threading.Lock()
        self._readings: list[Reading] = []
        if readings is not None:
            self.extend(readings)

    def __len__(self) -> int:
        return len(self._readings)

    def add(self, reading: Reading) -> None:
        """Add one reading."""
        check_reading(reading)
        with self._lock:
            self._readings.append(reading)

    def extend(self, readings: Iterable[Reading]) -> int:
        """Add many readings. Returns count added."""
        batch = list(readings)
        for reading in batch:
            check_reading(reading)
        with self._lock:
            self._readings.extend(batch)
        log.debug("readings_added", count=len(batch))
        return len(batch)

    def load_rows(self, rows: Iterable[Mapping[str, Any]]) -> int:
        """Parse raw rows and add them. Returns count added."""
        return self.extend(readings_from_rows(rows))

    def snapshot(self) -> tuple[Reading, ...]:
        """All readings as an immutable snapshot."""
        with self._lock:
            return tuple(self._readings)

    def for_cell(
        self, x: int, y: int, cutoff: datetime, hour: int | None = None
    ) -> list[Reading]:
        """Readings of one cell at or after cutoff, newest first.

        Args:
            x, y: Cell coordinates
            cutoff: Earliest timestamp to include
            hour: Optional UTC hour of day (0-23) to restrict to
        """
        if hour is not None and not 0 <= hour <= 23:
            raise InputValidationError(f"hour must be within 0-23, got {hour}", cell=(x, y))

        selected = [
            r
            for r in self.snapshot()
            if r.x == x
            and r.y == y
            and r.ts >= cutoff
            and (hour is None or r.ts.astimezone(timezone.utc).hour == hour)
        ]
        selected.sort(key=lambda r: r.ts, reverse=True)
        return selected
