"""
ClientNote Metrics — in-process counters and histograms.

Usage:
    from clientnote.core.metrics import metrics

    metrics.inc("generation.started", labels={"type": "session_note"})
    metrics.observe("generation.duration_ms", 8120.0)

    snapshot = metrics.snapshot()  # -> dict for the /health endpoint
"""

from __future__ import annotations

import time
from collections import defaultdict


class MetricsCollector:
    """Counters (monotonic) and histograms (rolling window)."""

    HISTOGRAM_MAX_SAMPLES = 1000

    def __init__(self) -> None:
        self._counters: dict[str, int] = defaultdict(int)
        self._histograms: dict[str, list[float]] = defaultdict(list)
        self._started_at: float = time.time()

    def inc(self, name: str, value: int = 1, labels: dict | None = None) -> None:
        self._counters[self._key(name, labels)] += value

    def observe(self, name: str, value: float, labels: dict | None = None) -> None:
        """Record one observation; the oldest sample drops once the window is full."""
        samples = self._histograms[self._key(name, labels)]
        samples.append(value)
        if len(samples) > self.HISTOGRAM_MAX_SAMPLES:
            samples.pop(0)

    def counter(self, name: str, labels: dict | None = None) -> int:
        return self._counters.get(self._key(name, labels), 0)

    def snapshot(self) -> dict:
        """Counters plus histogram summaries (count/min/max/p50/p95)."""
        histograms: dict[str, dict] = {}
        for key, samples in self._histograms.items():
            if not samples:
                continue
            sorted_s = sorted(samples)
            n = len(sorted_s)
            histograms[key] = {
                "count": n,
                "min": sorted_s[0],
                "max": sorted_s[-1],
                "p50": sorted_s[n // 2],
                "p95": sorted_s[min(int(n * 0.95), n - 1)],
            }

        return {
            "uptime_seconds": round(time.time() - self._started_at, 1),
            "counters": dict(self._counters),
            "histograms": histograms,
        }

    def reset(self) -> None:
        self._counters.clear()
        self._histograms.clear()

    def _key(self, name: str, labels: dict | None) -> str:
        """Example: "generation.started{type=session_note}"."""
        if not labels:
            return name
        label_str = ",".join(f"{k}={v}" for k, v in sorted(labels.items()))
        return f"{name}{{{label_str}}}"


# Process-wide collector, import this directly
metrics = MetricsCollector()
