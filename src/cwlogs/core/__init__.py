"""Forwarding core: buffering, batching, scheduling and shutdown."""

from .batcher import Batch, Batcher, DrainReport, TransmissionGroup
from .errors import (
    ConfigurationError,
    CwlogsError,
    IngestionError,
    SinkSetupError,
    TransmissionError,
)
from .forwarder import LogForwarder
from .ingest import Ingestor
from .scheduler import FlushScheduler
from .settings import Settings
from .shutdown import CancellationToken, ShutdownCoordinator, ShutdownState

__all__ = [
    "Batch",
    "Batcher",
    "CancellationToken",
    "ConfigurationError",
    "CwlogsError",
    "DrainReport",
    "FlushScheduler",
    "IngestionError",
    "Ingestor",
    "LogForwarder",
    "Settings",
    "ShutdownCoordinator",
    "ShutdownState",
    "SinkSetupError",
    "TransmissionError",
    "TransmissionGroup",
]
