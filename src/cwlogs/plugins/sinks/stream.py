from __future__ import annotations

import json
import sys
import threading
from collections.abc import Sequence
from typing import TextIO

from ...core.errors import TransmissionError


class StreamSink:
    """Sink that writes batches as JSON lines to a text stream.

    - Emits ``{"timestamp": ms, "message": line}`` per line
    - Writes a whole batch under one lock so batches never interleave
    - Used by ``cwlogs --dry-run`` to exercise the pipeline without AWS
    """

    name = "stream"

    def __init__(self, stream: TextIO | None = None, *, label: str = "stderr") -> None:
        self._stream = stream
        self._label = label
        self._lock = threading.Lock()

    @property
    def destination(self) -> str:
        return f"dry run ({self._label})"

    def start(self) -> None:  # lifecycle placeholder
        return None

    def transmit(self, lines: Sequence[str], timestamp_ms: int) -> None:
        if not lines:
            return
        stream = self._stream if self._stream is not None else sys.stderr
        payload = "".join(
            json.dumps({"timestamp": timestamp_ms, "message": line}) + "\n"
            for line in lines
        )
        try:
            with self._lock:
                stream.write(payload)
                stream.flush()
        except (OSError, ValueError) as exc:
            raise TransmissionError(
                "failed to write batch", lines=len(lines), error=str(exc)
            ) from exc

    def close(self) -> None:  # lifecycle placeholder
        return None


__all__ = ["StreamSink"]
