"""
cwlogs - forward standard input to AWS CloudWatch Logs in batches.

Lines are buffered, flushed when the batch fills up or the flush timer
fires, and drained synchronously on end of input or SIGINT/SIGTERM.
"""

from ._version import __version__
from .core.batcher import Batch, Batcher, DrainReport
from .core.errors import ConfigurationError, TransmissionError
from .core.forwarder import LogForwarder
from .core.settings import Settings
from .plugins.sinks import BaseSink
from .plugins.sinks.cloudwatch import CloudWatchSink
from .plugins.sinks.stream import StreamSink

__all__ = [
    "Batch",
    "Batcher",
    "BaseSink",
    "CloudWatchSink",
    "ConfigurationError",
    "DrainReport",
    "LogForwarder",
    "Settings",
    "StreamSink",
    "TransmissionError",
    "__version__",
]

VERSION = __version__
