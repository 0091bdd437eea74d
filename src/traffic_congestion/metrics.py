"""Metrics for traffic congestion analysis.

Exposes analysis metrics in Prometheus text format:
- Views served, per view
- Readings processed and episodes detected/retained
- Cells reported or excluded
- Last threshold values
"""

import time
from collections import defaultdict
from dataclasses import dataclass, field

METRIC_PREFIX = "traffic_congestion"

# name -> (type, help)
METRIC_HELP: dict[str, tuple[str, str]] = {
    "views_total": ("counter", "Views computed, by view"),
    "view_failures_total": ("counter", "Views that ended with an analysis error, by view and error"),
    "readings_processed_total": ("counter", "Readings fed into view computations"),
    "episodes_detected_total": ("counter", "Congestion episodes segmented"),
    "episodes_retained_total": ("counter", "Episodes meeting the minimum duration"),
    "cells_reported_total": ("counter", "Cells returned by views, by view"),
    "cells_excluded_total": ("counter", "Cells excluded for lack of a threshold"),
    "threshold_severity": ("gauge", "Last severity threshold computed, by view and quantile"),
    "view_duration_ms": ("gauge", "Duration of the last computation, by view"),
}


@dataclass
class MetricsCollector:
    """Collects and exposes analysis metrics.

    Uses simple counters and gauges without external dependencies.
    Metrics are exposed in Prometheus text format.
    """

    # Gauge values: {name: {label_key: value}}
    gauges: dict[str, dict[str, float]] = field(default_factory=lambda: defaultdict(dict))

    # Counter values: {name: {label_key: count}}
    counters: dict[str, dict[str, int]] = field(
        default_factory=lambda: defaultdict(lambda: defaultdict(int))
    )

    # Start time for uptime calculation
    start_time: float = field(default_factory=time.time)

    def set_gauge(self, name: str, value: float, labels: dict[str, str] | None = None) -> None:
        """Set a gauge value."""
        self.gauges[name][self._label_key(labels)] = value

    def inc_counter(self, name: str, value: int = 1, labels: dict[str, str] | None = None) -> None:
        """Increment a counter."""
        self.counters[name][self._label_key(labels)] += value

    def get_counter(self, name: str, labels: dict[str, str] | None = None) -> int:
        """Current value of a counter (0 if never incremented)."""
        return self.counters.get(name, {}).get(self._label_key(labels), 0)

    def get_gauge(self, name: str, labels: dict[str, str] | None = None) -> float | None:
        """Current value of a gauge, if set."""
        return self.gauges.get(name, {}).get(self._label_key(labels))

    def _label_key(self, labels: dict[str, str] | None) -> str:
        """Render labels into a stable key."""
        if not labels:
            return ""
        label_str = ",".join(f'{k}="{v}"' for k, v in sorted(labels.items()))
        return f"{{{label_str}}}"

    def get_uptime_seconds(self) -> float:
        """Get collector uptime in seconds."""
        return time.time() - self.start_time

    def to_prometheus_format(self) -> str:
        """Export metrics in Prometheus text format."""
        lines = []

        lines.append(f"# HELP {METRIC_PREFIX}_uptime_seconds Collector uptime in seconds")
        lines.append(f"# TYPE {METRIC_PREFIX}_uptime_seconds gauge")
        lines.append(f"{METRIC_PREFIX}_uptime_seconds {self.get_uptime_seconds():.2f}")
        lines.append("")

        for store in (self.counters, self.gauges):
            for name in sorted(store):
                series = store[name]
                if not series:
                    continue
                full_name = f"{METRIC_PREFIX}_{name}"
                metric_type, help_text = METRIC_HELP.get(name, ("untyped", name))
                lines.append(f"# HELP {full_name} {help_text}")
                lines.append(f"# TYPE {full_name} {metric_type}")
                for label_key, value in sorted(series.items()):
                    lines.append(f"{full_name}{label_key} {value}")
                lines.append("")

        return "\n".join(lines)


# Global metrics collector instance
_metrics: MetricsCollector | None = None


def get_metrics() -> MetricsCollector:
    """Get the global metrics collector instance."""
    global _metrics
    if _metrics is None:
        _metrics = MetricsCollector()
    return _metrics


def reset_metrics() -> None:
    """Reset metrics collector (for testing)."""
    global _metrics
    _metrics = None
