"""Periodic flush timer.

Bounds how long a line can sit in the buffer when the size threshold is
never reached: a line appended at time T is flushed by T + interval.
"""

from __future__ import annotations

import threading
from collections.abc import Callable

from . import diagnostics
from .shutdown import CancellationToken


class FlushScheduler:
    """Background thread that calls ``flush`` every ``interval`` seconds.

    Stopping is permanent: a stopped scheduler cannot be started again. The
    scheduler also stops when the shared cancellation token is cancelled.
    """

    def __init__(
        self,
        flush: Callable[[], object],
        interval: float,
        *,
        token: CancellationToken | None = None,
        name: str = "cwlogs-flush-timer",
    ) -> None:
        if interval <= 0:
            raise ValueError("interval must be > 0")
        self._flush = flush
        self._interval = interval
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None
        self._name = name
        self._ticks = 0
        if token is not None:
            token.add_callback(self._stop_event.set)

    @property
    def interval(self) -> float:
        return self._interval

    @property
    def ticks(self) -> int:
        return self._ticks

    @property
    def running(self) -> bool:
        thread = self._thread
        return thread is not None and thread.is_alive()

    @property
    def stopped(self) -> bool:
        return self._stop_event.is_set()

    def start(self) -> None:
        if self._stop_event.is_set():
            raise RuntimeError("scheduler has been stopped and cannot restart")
        if self._thread is not None:
            return
        self._thread = threading.Thread(target=self._run, name=self._name, daemon=True)
        self._thread.start()

    def stop(self, timeout: float | None = None) -> None:
        """Stop ticking and wait for an in-progress tick to return."""
        self._stop_event.set()
        thread = self._thread
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout)

    def _run(self) -> None:
        while not self._stop_event.wait(self._interval):
            self._ticks += 1
            try:
                self._flush()
            except Exception as exc:
                diagnostics.error("scheduler", "periodic flush failed", error=str(exc))


__all__ = ["FlushScheduler"]
