from __future__ import annotations

import threading

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from cwlogs.core.batcher import Batcher
from cwlogs.metrics.metrics import MetricsCollector
from cwlogs.testing import RecordingSink

pytestmark = pytest.mark.property

TIMEOUT = 5.0

# Each step appends a line (True) or triggers a periodic flush (False)
steps = st.lists(st.booleans(), min_size=0, max_size=300)


@given(batch_size=st.integers(min_value=1, max_value=50), plan=steps)
@settings(max_examples=75, deadline=None)
def test_every_line_is_sent_exactly_once(batch_size: int, plan: list[bool]) -> None:
    sink = RecordingSink()
    batcher = Batcher(sink, batch_size=batch_size)
    appended = []
    for i, is_append in enumerate(plan):
        if is_append:
            line = f"line-{i}"
            batcher.append(line)
            appended.append(line)
        else:
            batcher.flush_async()
    batcher.close()
    batcher.flush_sync()
    assert batcher.transmissions.wait(TIMEOUT)

    delivered = sink.lines
    assert sorted(delivered) == sorted(appended)
    assert len(set(delivered)) == len(delivered)
    assert len(batcher) == 0


@given(
    batch_size=st.integers(min_value=1, max_value=20),
    counts=st.lists(st.integers(min_value=0, max_value=60), min_size=1, max_size=4),
    failures=st.integers(min_value=0, max_value=3),
)
@settings(max_examples=50, deadline=None)
def test_concurrent_appends_account_for_every_line(
    batch_size: int, counts: list[int], failures: int
) -> None:
    sink = RecordingSink()
    sink.fail_next(failures)
    metrics = MetricsCollector()
    batcher = Batcher(sink, batch_size=batch_size, metrics=metrics)

    def _produce(tag: int, n: int) -> None:
        for i in range(n):
            batcher.append(f"{tag}:{i}")

    workers = [
        threading.Thread(target=_produce, args=(tag, n))
        for tag, n in enumerate(counts)
    ]
    for w in workers:
        w.start()
    for w in workers:
        w.join()
    batcher.flush_sync()
    assert batcher.transmissions.wait(TIMEOUT)

    snap = metrics.snapshot()
    total = sum(counts)
    assert snap.lines_ingested == total
    assert snap.lines_sent + snap.lines_failed == total
    assert len(sink.lines) == snap.lines_sent
    assert len(set(sink.lines)) == len(sink.lines)


@given(batch_size=st.integers(min_value=1, max_value=40), n=st.integers(0, 200))
@settings(max_examples=75, deadline=None)
def test_size_triggered_batches_are_full(batch_size: int, n: int) -> None:
    sink = RecordingSink()
    batcher = Batcher(sink, batch_size=batch_size)
    for i in range(n):
        batcher.append(str(i))
    assert batcher.transmissions.wait(TIMEOUT)

    assert all(len(b.lines) == batch_size for b in sink.batches)
    assert len(sink.batches) == n // batch_size
    assert len(batcher) == n % batch_size
