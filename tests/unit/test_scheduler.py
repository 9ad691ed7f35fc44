"""Unit tests for the periodic flush scheduler."""

from __future__ import annotations

import threading
import time

import pytest

from cwlogs.core.scheduler import FlushScheduler
from cwlogs.core.shutdown import CancellationToken


class _Counter:
    def __init__(self) -> None:
        self.calls = 0
        self.fired = threading.Event()

    def __call__(self) -> None:
        self.calls += 1
        self.fired.set()


def test_ticks_call_flush() -> None:
    flush = _Counter()
    scheduler = FlushScheduler(flush, 0.02)
    assert scheduler.interval == 0.02
    scheduler.start()
    try:
        assert flush.fired.wait(2.0)
    finally:
        scheduler.stop()
    assert flush.calls >= 1
    assert scheduler.ticks == flush.calls
    assert scheduler.running is False


def test_no_tick_before_interval() -> None:
    flush = _Counter()
    scheduler = FlushScheduler(flush, 60.0)
    scheduler.start()
    scheduler.stop()
    assert flush.calls == 0


def test_stop_is_permanent() -> None:
    scheduler = FlushScheduler(_Counter(), 0.05)
    scheduler.start()
    scheduler.stop()
    assert scheduler.stopped
    with pytest.raises(RuntimeError):
        scheduler.start()


def test_no_ticks_after_stop() -> None:
    flush = _Counter()
    scheduler = FlushScheduler(flush, 0.01)
    scheduler.start()
    assert flush.fired.wait(2.0)
    scheduler.stop()
    calls = flush.calls
    time.sleep(0.05)
    assert flush.calls == calls


def test_token_cancellation_stops_scheduler() -> None:
    token = CancellationToken()
    scheduler = FlushScheduler(_Counter(), 60.0, token=token)
    scheduler.start()
    token.cancel("end-of-input")
    scheduler.stop(timeout=2.0)
    assert scheduler.stopped
    assert scheduler.running is False


def test_flush_errors_do_not_kill_timer(capsys: pytest.CaptureFixture[str]) -> None:
    calls: list[int] = []
    done = threading.Event()

    def _flaky() -> None:
        calls.append(1)
        if len(calls) == 1:
            raise RuntimeError("first tick fails")
        done.set()

    scheduler = FlushScheduler(_flaky, 0.01)
    scheduler.start()
    try:
        assert done.wait(2.0)
    finally:
        scheduler.stop()
    assert "periodic flush failed" in capsys.readouterr().err


def test_invalid_interval() -> None:
    with pytest.raises(ValueError):
        FlushScheduler(_Counter(), 0)
