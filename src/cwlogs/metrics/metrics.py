"""
Thread-safe forwarding metrics for cwlogs.

Implements minimal Prometheus-compatible counters and a latency histogram
for the ingest and transmission paths.

Design goals:
- Safe to call from the ingest, scheduler and transmission threads
- Zero global state; each collector owns an isolated registry
- In-memory counters are always tracked so tests can assert on them
"""

from __future__ import annotations

import threading
from dataclasses import dataclass
from typing import Any

from prometheus_client import CollectorRegistry, Counter, Histogram


@dataclass
class ForwarderMetrics:
    """Captured runtime metrics for quick assertions in tests."""

    lines_ingested: int = 0
    lines_rejected: int = 0
    batches_sent: int = 0
    lines_sent: int = 0
    batches_failed: int = 0
    lines_failed: int = 0


class MetricsCollector:
    """Forwarder-scoped metrics collector.

    When metrics are disabled the Prometheus side is a no-op while the
    in-memory counters keep working.
    """

    def __init__(self, *, enabled: bool = False) -> None:
        self._enabled = bool(enabled)
        self._lock = threading.Lock()
        self._state = ForwarderMetrics()

        self._c_lines: Any | None = None
        self._c_batches: Any | None = None
        self._h_transmit_latency: Any | None = None
        self._registry: CollectorRegistry | None = None

        if self._enabled:
            # Isolated registry to avoid global duplication in tests
            self._registry = CollectorRegistry()
            self._c_lines = Counter(
                "cwlogs_lines_total",
                "Lines seen by the forwarder, by outcome",
                ["outcome"],
                registry=self._registry,
            )
            self._c_batches = Counter(
                "cwlogs_batches_total",
                "Batches handed to the sink, by outcome",
                ["outcome"],
                registry=self._registry,
            )
            self._h_transmit_latency = Histogram(
                "cwlogs_transmit_seconds",
                "Latency of a single sink transmission",
                buckets=(0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0),
                registry=self._registry,
            )

    @property
    def is_enabled(self) -> bool:
        return self._enabled

    @property
    def registry(self) -> CollectorRegistry | None:
        """Expose the isolated Prometheus registry when enabled."""
        return self._registry

    def record_line_ingested(self) -> None:
        with self._lock:
            self._state.lines_ingested += 1
        if self._c_lines is not None:
            self._c_lines.labels(outcome="ingested").inc()

    def record_line_rejected(self) -> None:
        with self._lock:
            self._state.lines_rejected += 1
        if self._c_lines is not None:
            self._c_lines.labels(outcome="rejected").inc()

    def record_batch_sent(
        self, lines: int, *, duration_seconds: float | None = None
    ) -> None:
        with self._lock:
            self._state.batches_sent += 1
            self._state.lines_sent += lines
        if self._c_batches is not None:
            self._c_batches.labels(outcome="sent").inc()
        if self._c_lines is not None:
            self._c_lines.labels(outcome="sent").inc(lines)
        if duration_seconds is not None and self._h_transmit_latency is not None:
            self._h_transmit_latency.observe(duration_seconds)

    def record_batch_failed(self, lines: int) -> None:
        with self._lock:
            self._state.batches_failed += 1
            self._state.lines_failed += lines
        if self._c_batches is not None:
            self._c_batches.labels(outcome="failed").inc()
        if self._c_lines is not None:
            self._c_lines.labels(outcome="failed").inc(lines)

    def snapshot(self) -> ForwarderMetrics:
        # Lightweight copy without exposing internals
        with self._lock:
            return ForwarderMetrics(
                lines_ingested=self._state.lines_ingested,
                lines_rejected=self._state.lines_rejected,
                batches_sent=self._state.batches_sent,
                lines_sent=self._state.lines_sent,
                batches_failed=self._state.batches_failed,
                lines_failed=self._state.lines_failed,
            )


__all__ = ["ForwarderMetrics", "MetricsCollector"]
