from __future__ import annotations

import io
import json

import pytest

from cwlogs.core.errors import TransmissionError
from cwlogs.plugins.sinks.stream import StreamSink
from cwlogs.testing import validate_sink


def test_writes_json_lines_with_shared_timestamp() -> None:
    buf = io.StringIO()
    sink = StreamSink(buf)
    sink.start()
    sink.transmit(["a", 'quote "b"'], 42)
    sink.close()

    records = [json.loads(line) for line in buf.getvalue().splitlines()]
    assert records == [
        {"timestamp": 42, "message": "a"},
        {"timestamp": 42, "message": 'quote "b"'},
    ]


def test_empty_batch_writes_nothing() -> None:
    buf = io.StringIO()
    StreamSink(buf).transmit([], 1)
    assert buf.getvalue() == ""


def test_closed_stream_is_transmission_error() -> None:
    buf = io.StringIO()
    buf.close()
    with pytest.raises(TransmissionError) as excinfo:
        StreamSink(buf).transmit(["x"], 1)
    assert excinfo.value.lines == 1


def test_defaults_to_stderr(capsys: pytest.CaptureFixture[str]) -> None:
    sink = StreamSink()
    assert sink.destination == "dry run (stderr)"
    sink.transmit(["to stderr"], 5)
    assert json.loads(capsys.readouterr().err) == {
        "timestamp": 5,
        "message": "to stderr",
    }


def test_protocol() -> None:
    assert validate_sink(StreamSink(io.StringIO())).valid
