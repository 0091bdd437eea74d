"""Data models for traffic congestion analysis using Pydantic."""

from datetime import datetime, timedelta, timezone
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, computed_field, field_validator

from .analysis.severity import score

CellKey = tuple[int, int]


class SegmentState(str, Enum):
    """Per-cell segmentation state while scanning a series."""

    NOT_CONGESTED = "not_congested"
    CONGESTED_RUN_OPEN = "congested_run_open"
    CLOSE_BREAK = "close_break"  # gap above tolerance or recovery below threshold
    CLOSE_END_OF_SERIES = "close_end_of_series"


# ============================================
# Input Models
# ============================================


class Reading(BaseModel):
    """One observation for one grid cell at one instant."""

    model_config = ConfigDict(frozen=True)

    x: int
    y: int
    ts: datetime
    yellow: int = 0
    red: int = 0
    dark_red: int = 0

    @field_validator("ts")
    @classmethod
    def _assume_utc(cls, value: datetime) -> datetime:
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value

    @property
    def cell(self) -> CellKey:
        return (self.x, self.y)

    @computed_field
    @property
    def severity(self) -> int:
        """Weighted congestion severity of this reading."""
        return score(self)


# ============================================
# Analysis Models
# ============================================


class Threshold(BaseModel):
    """Severity percentiles over a reference population."""

    model_config = ConfigDict(frozen=True)

    p95: float
    p99: float
    population_size: int = Field(0, exclude=True)


class Episode(BaseModel):
    """A maximal gap-tolerant run of congested readings within one cell."""

    x: int
    y: int
    run_id: int = Field(description="Ordinal of the run within its cell")
    total_duration: timedelta
    readings: list[Reading] = Field(default_factory=list)

    @property
    def cell(self) -> CellKey:
        return (self.x, self.y)

    @computed_field
    @property
    def started_at(self) -> datetime | None:
        return self.readings[0].ts if self.readings else None

    @computed_field
    @property
    def ended_at(self) -> datetime | None:
        """End of the last counted gap.

        When a reading below threshold closes the episode, the gap leading up
        to it is counted, so this is that reading's timestamp rather than the
        last congested reading's. After a long gap it is the last congested
        reading's timestamp.
        """
        if not self.readings:
            return None
        return self.readings[0].ts + self.total_duration


class CellLatestState(BaseModel):
    """The most recent reading of one cell."""

    reading: Reading

    @property
    def cell(self) -> CellKey:
        return self.reading.cell

    @property
    def latest_severity(self) -> int:
        return self.reading.severity


# ============================================
# View Models
# ============================================


class SnapshotRecord(BaseModel):
    """Latest reading of a cell alongside that cell's historical percentiles."""

    x: int
    y: int
    ts: datetime
    yellow: int
    red: int
    dark_red: int
    latest_severity: int
    p95: float
    p99: float


class CongestionSummary(BaseModel):
    """A cell with a sustained episode that is still congested now."""

    x: int
    y: int
    latest_ts: datetime
    yellow: int
    red: int
    dark_red: int
    latest_severity: int
    threshold_p95: float
