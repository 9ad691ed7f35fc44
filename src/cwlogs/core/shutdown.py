"""Graceful shutdown handling for cwlogs.

This module provides:
- A cancellation token satisfied by end of input or a termination request
- Signal handlers for SIGTERM/SIGINT that cancel the token
- The coordinator that drains the batcher exactly once

Shutdown moves through RUNNING -> DRAINING -> STOPPED. Entering DRAINING
stops the flush scheduler, closes the batcher to new lines and runs one
synchronous flush. STOPPED is reached once that flush returns, whatever its
outcome.
"""

from __future__ import annotations

import signal
import threading
from collections.abc import Callable, Iterable
from enum import Enum
from typing import TYPE_CHECKING, Any

from . import diagnostics
from .batcher import Batcher, DrainReport

if TYPE_CHECKING:
    from types import FrameType

    from .scheduler import FlushScheduler

REASON_END_OF_INPUT = "end-of-input"
REASON_READ_ERROR = "read-error"

DEFAULT_SIGNALS: tuple[signal.Signals, ...] = tuple(
    sig
    for sig in (getattr(signal, "SIGINT", None), getattr(signal, "SIGTERM", None))
    if sig is not None
)


class ShutdownState(str, Enum):
    RUNNING = "running"
    DRAINING = "draining"
    STOPPED = "stopped"


class CancellationToken:
    """One-shot cancellation flag shared by the forwarder's threads.

    The first ``cancel`` wins and records its reason; later calls are no-ops.
    Callbacks registered with ``add_callback`` run once, on the cancelling
    thread (or immediately if the token is already cancelled).
    """

    def __init__(self) -> None:
        self._event = threading.Event()
        self._lock = threading.Lock()
        self._reason: str | None = None
        self._callbacks: list[Callable[[], None]] = []

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    @property
    def reason(self) -> str | None:
        with self._lock:
            return self._reason

    def cancel(self, reason: str) -> bool:
        """Cancel the token; returns True only for the call that did it."""
        with self._lock:
            if self._event.is_set():
                return False
            self._reason = reason
            callbacks, self._callbacks = self._callbacks, []
            self._event.set()
        for callback in callbacks:
            try:
                callback()
            except Exception as exc:
                diagnostics.warn(
                    "shutdown", "cancel callback failed", error=str(exc)
                )
        return True

    def add_callback(self, callback: Callable[[], None]) -> None:
        with self._lock:
            if not self._event.is_set():
                self._callbacks.append(callback)
                return
        callback()

    def wait(self, timeout: float | None = None) -> bool:
        return self._event.wait(timeout)


class ShutdownCoordinator:
    """Owns the shutdown state machine for one forwarder."""

    def __init__(
        self,
        batcher: Batcher,
        scheduler: FlushScheduler,
        token: CancellationToken,
        *,
        await_inflight: bool = False,
        inflight_timeout: float | None = None,
        poll_interval: float = 0.25,
    ) -> None:
        self._batcher = batcher
        self._scheduler = scheduler
        self._token = token
        self._await_inflight = await_inflight
        self._inflight_timeout = inflight_timeout
        self._poll_interval = poll_interval
        self._lock = threading.Lock()
        self._state = ShutdownState.RUNNING
        self._report: DrainReport | None = None
        self._stopped = threading.Event()
        self._original_handlers: dict[int, Any] = {}

    @property
    def state(self) -> ShutdownState:
        with self._lock:
            return self._state

    @property
    def token(self) -> CancellationToken:
        return self._token

    @property
    def report(self) -> DrainReport | None:
        with self._lock:
            return self._report

    def request_shutdown(self, reason: str = "requested") -> bool:
        return self._token.cancel(reason)

    def install_signal_handlers(
        self, signals: Iterable[signal.Signals] = DEFAULT_SIGNALS
    ) -> bool:
        """Route termination signals to the cancellation token.

        Only possible from the main thread; returns False elsewhere.
        """
        if threading.current_thread() is not threading.main_thread():
            diagnostics.warn("shutdown", "signal handlers need the main thread")
            return False
        for sig in signals:
            try:
                self._original_handlers[int(sig)] = signal.signal(
                    sig, self._signal_handler
                )
            except (OSError, ValueError) as exc:  # pragma: no cover - platform
                diagnostics.warn(
                    "shutdown", "cannot install handler", signal=sig, error=str(exc)
                )
        return True

    def restore_signal_handlers(self) -> None:
        handlers, self._original_handlers = self._original_handlers, {}
        for signum, handler in handlers.items():
            try:
                signal.signal(signum, handler)
            except (OSError, ValueError, TypeError):  # pragma: no cover
                pass

    def _signal_handler(self, signum: int, _frame: FrameType | None) -> None:
        # Repeated signals while draining are ignored
        name = signal.Signals(signum).name
        self._token.cancel(f"signal:{name}")

    def wait(self, timeout: float | None = None) -> bool:
        """Block until the coordinator reaches STOPPED."""
        return self._stopped.wait(timeout)

    def wait_for_cancellation(self) -> str | None:
        """Block until the token is cancelled and return its reason.

        Waits in short slices so signal handlers get to run on the main
        thread.
        """
        while not self._token.wait(self._poll_interval):
            pass
        return self._token.reason

    def run(self) -> DrainReport:
        """Wait for cancellation, then drain."""
        self.wait_for_cancellation()
        return self.drain()

    def drain(self) -> DrainReport:
        """Stop the scheduler and flush the batcher synchronously, once.

        Later calls return the first drain's report after it completes.
        """
        with self._lock:
            first = self._state is ShutdownState.RUNNING
            if first:
                self._state = ShutdownState.DRAINING
        if not first:
            self._stopped.wait()
            report = self.report
            assert report is not None
            return report

        self._token.cancel("drain")
        diagnostics.debug("shutdown", "draining", reason=self._token.reason)
        report = DrainReport(lines=0, ok=False, error="drain interrupted")
        try:
            self._scheduler.stop()
            self._batcher.close()
            report = self._batcher.flush_sync()
            if self._await_inflight and not self._batcher.transmissions.wait(
                self._inflight_timeout
            ):
                diagnostics.warn(
                    "shutdown",
                    "background transmissions still in flight",
                    in_flight=self._batcher.transmissions.in_flight,
                )
        finally:
            with self._lock:
                self._state = ShutdownState.STOPPED
                self._report = report
            self._stopped.set()
        return report


__all__ = [
    "CancellationToken",
    "DEFAULT_SIGNALS",
    "REASON_END_OF_INPUT",
    "REASON_READ_ERROR",
    "ShutdownCoordinator",
    "ShutdownState",
]
