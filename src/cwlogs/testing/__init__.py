"""
Testing utilities for cwlogs.

Example:
    from cwlogs.testing import RecordingSink, validate_sink

    def test_my_sink():
        result = validate_sink(MySink())
        assert result.valid
"""

from .sinks import RecordedBatch, RecordingSink
from .validators import ProtocolViolationError, ValidationResult, validate_sink

__all__ = [
    "RecordedBatch",
    "RecordingSink",
    "ProtocolViolationError",
    "ValidationResult",
    "validate_sink",
]
