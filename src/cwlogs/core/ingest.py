"""Line ingestion from a text stream into the batcher."""

from __future__ import annotations

import threading
from collections.abc import Iterator
from typing import TextIO

from . import diagnostics
from .batcher import Batcher
from .errors import IngestionError
from .shutdown import REASON_END_OF_INPUT, REASON_READ_ERROR, CancellationToken


def iter_lines(stream: TextIO) -> Iterator[str]:
    """Yield records from ``stream`` with the line terminator removed.

    Only a trailing ``\\n`` (and a ``\\r`` before it) is stripped; all other
    content is preserved. Empty records are yielded as empty strings.
    """
    for raw in stream:
        if raw.endswith("\n"):
            raw = raw[:-1]
            if raw.endswith("\r"):
                raw = raw[:-1]
        yield raw


class Ingestor:
    """Reads lines on a background thread and feeds them to the batcher.

    Each non-empty line is optionally echoed to ``echo`` before buffering.
    End of input and read errors both cancel the shared token, which starts
    the shutdown drain. A read error is kept on ``error``.
    """

    def __init__(
        self,
        stream: TextIO,
        batcher: Batcher,
        token: CancellationToken,
        *,
        echo: TextIO | None = None,
    ) -> None:
        self._stream = stream
        self._batcher = batcher
        self._token = token
        self._echo = echo
        self._thread: threading.Thread | None = None
        self.lines_read = 0
        self.error: IngestionError | None = None

    def start(self) -> threading.Thread:
        if self._thread is not None:
            raise RuntimeError("ingestor already started")
        # Daemon: a blocked read must not keep the process alive after drain
        self._thread = threading.Thread(
            target=self.run, name="cwlogs-ingest", daemon=True
        )
        self._thread.start()
        return self._thread

    def join(self, timeout: float | None = None) -> None:
        if self._thread is not None:
            self._thread.join(timeout)

    def _write_echo(self, line: str) -> None:
        assert self._echo is not None
        try:
            self._echo.write(line + "\n")
            self._echo.flush()
        except (OSError, ValueError) as exc:
            # Closed stdout stops the echo, not the forwarding
            diagnostics.warn("ingest", "echo disabled", error=str(exc))
            self._echo = None

    def run(self) -> None:
        reason = REASON_END_OF_INPUT
        try:
            for line in iter_lines(self._stream):
                if self._token.cancelled:
                    break
                if not line:
                    continue
                self.lines_read += 1
                if self._echo is not None:
                    self._write_echo(line)
                self._batcher.append(line)
        except (OSError, ValueError) as exc:
            # UnicodeDecodeError is a ValueError
            reason = REASON_READ_ERROR
            self.error = IngestionError("error reading input", error=str(exc))
            diagnostics.error("ingest", "error reading input", error=str(exc))
        finally:
            self._token.cancel(reason)


__all__ = ["Ingestor", "iter_lines"]
