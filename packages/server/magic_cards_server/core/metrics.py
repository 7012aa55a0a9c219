"""
Metrics collection and Prometheus-compatible exposition.

Counts record-store traffic, stage transitions and asset uploads, and tracks
how many per-project editor boards the API is holding.
"""

from __future__ import annotations

import time
from collections import defaultdict
from functools import lru_cache

PREFIX = "magic_cards_"

HELP = {
    "record_store_requests_total": "Requests sent to the record store",
    "record_store_errors_total": "Record store requests that failed",
    "stage_transitions_total": "Advance and revert saves that succeeded",
    "uploads_total": "Files sent to the asset host",
    "upload_errors_total": "Files the asset host did not store",
    "editor_boards": "Projects with editor status held in memory",
    "uptime_seconds": "Seconds since the collector was created",
}


class MetricsCollector:
    """Process-wide counters and gauges, keyed without the prefix."""

    def __init__(self) -> None:
        self._counters: dict[str, int] = defaultdict(int)
        self._gauges: dict[str, float] = {}
        self._started = time.monotonic()

    def inc(self, name: str, value: int = 1) -> None:
        self._counters[name] += value

    def set_gauge(self, name: str, value: float) -> None:
        self._gauges[name] = value

    def get(self, name: str) -> int | float:
        if name in self._gauges:
            return self._gauges[name]
        return self._counters.get(name, 0)

    def to_prometheus(self) -> str:
        gauges = {**self._gauges, "uptime_seconds": round(time.monotonic() - self._started, 1)}
        lines: list[str] = []
        for kind, values in (("counter", self._counters), ("gauge", gauges)):
            for name in sorted(values):
                full = f"{PREFIX}{name}"
                if name in HELP:
                    lines.append(f"# HELP {full} {HELP[name]}")
                lines.append(f"# TYPE {full} {kind}")
                lines.append(f"{full} {values[name]}")
        return "\n".join(lines) + "\n"


@lru_cache
def get_metrics() -> MetricsCollector:
    return MetricsCollector()
