"""Shared fixtures for traffic congestion tests."""

from datetime import datetime, timedelta, timezone

import pytest

from traffic_congestion.config import get_settings
from traffic_congestion.metrics import reset_metrics
from traffic_congestion.models import Reading
from traffic_congestion.services import reset_congestion_service

T0 = datetime(2026, 1, 10, 12, 0, tzinfo=timezone.utc)


def make_reading(
    minutes: float = 0,
    severity: int | None = None,
    *,
    x: int = 1,
    y: int = 1,
    yellow: int = 0,
    red: int = 0,
    dark_red: int = 0,
    base: datetime = T0,
) -> Reading:
    """Reading at base + minutes; severity=n puts n into the yellow tier."""
    if severity is not None:
        yellow = severity
    return Reading(
        x=x,
        y=y,
        ts=base + timedelta(minutes=minutes),
        yellow=yellow,
        red=red,
        dark_red=dark_red,
    )


@pytest.fixture
def reading_factory():
    return make_reading


@pytest.fixture(autouse=True)
def _fresh_globals():
    get_settings.cache_clear()
    reset_metrics()
    reset_congestion_service()
    yield
    get_settings.cache_clear()
    reset_metrics()
    reset_congestion_service()
