from __future__ import annotations

from collections.abc import Sequence
from typing import Protocol, runtime_checkable


@runtime_checkable
class BaseSink(Protocol):
    """Base sink interface.

    Sinks deliver a batch of lines to an external append-only destination.
    ``transmit`` is called from background threads and may block; it raises
    ``TransmissionError`` on failure and must treat an empty sequence as a
    no-op. The batcher never retries, so sinks should not either.
    """

    name: str

    @property
    def destination(self) -> str:
        """Human readable description of where batches go."""
        ...

    def start(self) -> None:
        """Resolve or create the destination; raise ``SinkSetupError``."""
        ...

    def transmit(self, lines: Sequence[str], timestamp_ms: int) -> None:
        """Deliver ``lines`` sharing one timestamp."""
        ...

    def close(self) -> None:  # Optional lifecycle hook
        ...


__all__ = ["BaseSink"]
