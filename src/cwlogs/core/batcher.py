"""
Line buffering and batch flushing.

The ``Batcher`` owns the only shared mutable state in the forwarder: the
line buffer. Every read or write of the buffer happens under one lock, and
the lock is never held across a sink call.

Flush paths:

1. ``append`` crossing ``batch_size``: copy-and-clear under the lock, then
   transmit on a background thread.
2. ``flush_async`` (periodic timer): same as above, no-op when empty.
3. ``flush_sync`` (shutdown drain): copy-and-clear, then transmit on the
   calling thread and report the outcome.

A failed background transmission is reported and the batch is discarded;
nothing is retried or put back into the buffer.
"""

from __future__ import annotations

import itertools
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass

from ..metrics.metrics import MetricsCollector
from ..plugins.sinks import BaseSink
from . import diagnostics


def _now_ms() -> int:
    return int(time.time() * 1000)


@dataclass(frozen=True)
class Batch:
    """Immutable snapshot of the buffer taken at flush time."""

    lines: tuple[str, ...]
    timestamp_ms: int

    def __len__(self) -> int:
        return len(self.lines)


@dataclass(frozen=True)
class DrainReport:
    """Outcome of the synchronous shutdown flush."""

    lines: int
    ok: bool = True
    error: str | None = None


class TransmissionGroup:
    """Tracks background transmission threads.

    Threads are daemons, so the process does not wait for them on exit
    unless ``wait`` is called.
    """

    def __init__(self, *, name: str = "cwlogs-transmit") -> None:
        self._name = name
        self._cond = threading.Condition()
        self._active: set[threading.Thread] = set()
        self._counter = itertools.count(1)
        self._started = 0

    @property
    def in_flight(self) -> int:
        with self._cond:
            return len(self._active)

    @property
    def started(self) -> int:
        """Total number of transmissions dispatched so far."""
        with self._cond:
            return self._started

    def spawn(self, target: Callable[[Batch], None], batch: Batch) -> threading.Thread:
        thread = threading.Thread(
            target=self._run,
            args=(target, batch),
            name=f"{self._name}-{next(self._counter)}",
            daemon=True,
        )
        with self._cond:
            self._active.add(thread)
            self._started += 1
        try:
            thread.start()
        except RuntimeError:
            with self._cond:
                self._active.discard(thread)
                self._cond.notify_all()
            raise
        return thread

    def _run(self, target: Callable[[Batch], None], batch: Batch) -> None:
        try:
            target(batch)
        finally:
            with self._cond:
                self._active.discard(threading.current_thread())
                self._cond.notify_all()

    def wait(self, timeout: float | None = None) -> bool:
        """Block until no transmission is in flight; False on timeout."""
        with self._cond:
            return self._cond.wait_for(lambda: not self._active, timeout=timeout)


class Batcher:
    """Thread-safe line buffer that flushes batches to a sink."""

    def __init__(
        self,
        sink: BaseSink,
        *,
        batch_size: int = 100,
        metrics: MetricsCollector | None = None,
        transmissions: TransmissionGroup | None = None,
        clock: Callable[[], int] = _now_ms,
    ) -> None:
        if batch_size < 1:
            raise ValueError("batch_size must be >= 1")
        self._sink = sink
        self._batch_size = batch_size
        self._metrics = metrics
        self._transmissions = transmissions or TransmissionGroup()
        self._clock = clock
        self._lock = threading.Lock()
        self._buffer: list[str] = []
        self._closed = False

    @property
    def batch_size(self) -> int:
        return self._batch_size

    @property
    def transmissions(self) -> TransmissionGroup:
        return self._transmissions

    @property
    def closed(self) -> bool:
        with self._lock:
            return self._closed

    def __len__(self) -> int:
        with self._lock:
            return len(self._buffer)

    def append(self, line: str) -> bool:
        """Buffer ``line``; returns False when it was dropped.

        Empty lines are dropped, as is anything appended after ``close``.
        """
        if not line:
            return False
        with self._lock:
            if self._closed:
                rejected = True
                batch = None
            else:
                rejected = False
                self._buffer.append(line)
                batch = (
                    self._take_locked()
                    if len(self._buffer) >= self._batch_size
                    else None
                )
        if rejected:
            if self._metrics is not None:
                self._metrics.record_line_rejected()
            return False
        if self._metrics is not None:
            self._metrics.record_line_ingested()
        if batch is not None:
            self._dispatch(batch, reason="size")
        return True

    def flush_async(self) -> int:
        """Hand the current buffer to a background transmission.

        Returns the number of lines dispatched (0 when the buffer was empty).
        """
        with self._lock:
            batch = self._take_locked()
        if batch is None:
            return 0
        self._dispatch(batch, reason="interval")
        return len(batch)

    def flush_sync(self) -> DrainReport:
        """Transmit the current buffer on this thread and wait for the result."""
        with self._lock:
            batch = self._take_locked()
        if batch is None:
            return DrainReport(lines=0)
        try:
            self._send(batch)
        except Exception as exc:
            self._report_failure(batch, exc, reason="drain")
            return DrainReport(lines=len(batch), ok=False, error=str(exc))
        return DrainReport(lines=len(batch))

    def close(self) -> None:
        """Stop accepting lines; buffered lines stay until the next flush."""
        with self._lock:
            self._closed = True

    def _take_locked(self) -> Batch | None:
        # Caller holds self._lock
        if not self._buffer:
            return None
        batch = Batch(lines=tuple(self._buffer), timestamp_ms=self._clock())
        self._buffer.clear()
        return batch

    def _dispatch(self, batch: Batch, *, reason: str) -> None:
        diagnostics.debug(
            "batcher", "dispatching batch", lines=len(batch), reason=reason
        )
        try:
            self._transmissions.spawn(self._transmit_in_background, batch)
        except RuntimeError as exc:
            # Thread limit reached; the batch is already out of the buffer
            self._report_failure(batch, exc, reason=reason)

    def _transmit_in_background(self, batch: Batch) -> None:
        try:
            self._send(batch)
        except Exception as exc:
            self._report_failure(batch, exc, reason="background")

    def _send(self, batch: Batch) -> None:
        start = time.perf_counter()
        self._sink.transmit(batch.lines, batch.timestamp_ms)
        if self._metrics is not None:
            self._metrics.record_batch_sent(
                len(batch), duration_seconds=time.perf_counter() - start
            )

    def _report_failure(self, batch: Batch, exc: Exception, *, reason: str) -> None:
        diagnostics.error(
            "batcher",
            "failed to send batch",
            sink=getattr(self._sink, "name", type(self._sink).__name__),
            lines=len(batch),
            reason=reason,
            error=str(exc),
        )
        if self._metrics is not None:
            self._metrics.record_batch_failed(len(batch))


__all__ = ["Batch", "Batcher", "DrainReport", "TransmissionGroup"]
