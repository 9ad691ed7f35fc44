"""
Exception taxonomy for cwlogs.

Configuration errors are fatal and raised before any input is read.
Transmission errors are contained by the batcher and never escalate.
Ingestion errors end the input stream and trigger the shutdown drain.
"""

from __future__ import annotations

from typing import Any


class CwlogsError(Exception):
    """Base class for all cwlogs errors."""

    def __init__(self, message: str, **context: Any) -> None:
        super().__init__(message)
        self.message = message
        self.context: dict[str, Any] = dict(context)

    def __str__(self) -> str:
        if not self.context:
            return self.message
        details = " ".join(f"{k}={v}" for k, v in self.context.items())
        return f"{self.message} ({details})"


class ConfigurationError(CwlogsError):
    """Invalid or missing configuration; fatal at startup."""


class SinkSetupError(ConfigurationError):
    """The sink destination could not be reached or created."""


class TransmissionError(CwlogsError):
    """A batch could not be delivered to the sink."""

    def __init__(self, message: str, *, lines: int = 0, **context: Any) -> None:
        super().__init__(message, lines=lines, **context)
        self.lines = lines


class IngestionError(CwlogsError):
    """Reading from the input stream failed."""


__all__ = [
    "CwlogsError",
    "ConfigurationError",
    "SinkSetupError",
    "TransmissionError",
    "IngestionError",
]
