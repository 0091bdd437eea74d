"""Configuration module for traffic congestion analysis using Pydantic Settings."""

from datetime import timedelta
from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from .exceptions import ConfigurationError


class EpisodeSettings(BaseSettings):
    """Episode segmentation and filtering settings."""

    model_config = SettingsConfigDict(env_prefix="EPISODE_")

    gap_tolerance_minutes: float = Field(
        default=20,
        description="Largest gap between readings that still continues an episode (inclusive)",
    )
    min_duration_minutes: float = Field(
        default=30,
        description="Minimum cumulative episode duration for the sustained view",
    )
    # Per-cell segmentation fan-out; None or 1 runs sequentially
    max_workers: int | None = None

    @property
    def gap_tolerance(self) -> timedelta:
        return timedelta(minutes=self.gap_tolerance_minutes)

    @property
    def min_duration(self) -> timedelta:
        return timedelta(minutes=self.min_duration_minutes)


class ThresholdSettings(BaseSettings):
    """Percentile threshold settings."""

    model_config = SettingsConfigDict(env_prefix="THRESHOLD_")

    quantile: float = 0.95
    secondary_quantile: float = 0.99
    # Recent window segmented by the sustained view
    lookback_hours: float = 2
    # "window" uses the lookback window as the reference population,
    # "all" uses every reading (whole-table p95)
    reference_population: Literal["window", "all"] = "window"

    @property
    def lookback_window(self) -> timedelta:
        return timedelta(hours=self.lookback_hours)


class SnapshotSettings(BaseSettings):
    """Current snapshot view settings."""

    model_config = SettingsConfigDict(env_prefix="SNAPSHOT_")

    recent_minutes: float = 30

    @property
    def recent_window(self) -> timedelta:
        return timedelta(minutes=self.recent_minutes)


class HistorySettings(BaseSettings):
    """History view settings."""

    model_config = SettingsConfigDict(env_prefix="HISTORY_")

    allowed_durations: dict[str, timedelta] = Field(
        default={
            "1h": timedelta(hours=1),
            "6h": timedelta(hours=6),
            "12h": timedelta(hours=12),
            "24h": timedelta(hours=24),
            "7d": timedelta(days=7),
        },
        description="Requested duration strings mapped to bounded lookback intervals",
    )
    default_duration: str = "24h"


class LoggingSettings(BaseSettings):
    """Logging configuration."""

    model_config = SettingsConfigDict(env_prefix="LOG_")

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    format: Literal["json", "console"] = "json"


class Settings(BaseSettings):
    """Main application settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        extra="ignore",
    )

    # Sub-configurations
    episode: EpisodeSettings = Field(default_factory=EpisodeSettings)
    threshold: ThresholdSettings = Field(default_factory=ThresholdSettings)
    snapshot: SnapshotSettings = Field(default_factory=SnapshotSettings)
    history: HistorySettings = Field(default_factory=HistorySettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)

    # Application settings
    debug: bool = False
    app_name: str = "Traffic Congestion"
    version: str = "1.0.0"


def validate_settings(settings: Settings) -> Settings:
    """Check cross-field constraints that pydantic types alone cannot express.

    Raises:
        ConfigurationError: on a quantile outside (0, 1), a non-positive
            interval, or a default history duration missing from the allow-list.
    """
    for name in ("quantile", "secondary_quantile"):
        value = getattr(settings.threshold, name)
        if not 0 < value < 1:
            raise ConfigurationError(f"threshold.{name} must be in (0, 1), got {value}")

    if settings.threshold.lookback_hours <= 0:
        raise ConfigurationError("threshold.lookback_hours must be positive")
    if settings.episode.gap_tolerance_minutes < 0:
        raise ConfigurationError("episode.gap_tolerance_minutes must not be negative")
    if settings.episode.min_duration_minutes < 0:
        raise ConfigurationError("episode.min_duration_minutes must not be negative")

    history = settings.history
    if history.default_duration not in history.allowed_durations:
        raise ConfigurationError(
            f"history.default_duration {history.default_duration!r} is not one of "
            f"{sorted(history.allowed_durations)}"
        )
    return settings


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance.

    Settings are loaded once and cached. To reload, call get_settings.cache_clear().
    """
    return Settings()
