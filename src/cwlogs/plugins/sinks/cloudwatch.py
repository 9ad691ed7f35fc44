"""
AWS CloudWatch Logs sink.

Resolves credentials through a boto3 session (shared profile + region),
idempotently creates the log group and log stream, and delivers each batch
with ``PutLogEvents``. Batches larger than the service limits are split into
several calls; every event in a batch carries the batch timestamp.
"""

from __future__ import annotations

import time
from collections.abc import Sequence
from typing import Any

import boto3
from botocore.exceptions import BotoCoreError, ClientError
from pydantic import BaseModel, ConfigDict, Field, field_validator

from ...core import diagnostics
from ...core.errors import SinkSetupError, TransmissionError
from ...core.settings import DEFAULT_PROFILE, DEFAULT_REGION

__all__ = [
    "CloudWatchSink",
    "CloudWatchSinkConfig",
    "build_log_event_chunks",
    "default_stream_name",
]

# PutLogEvents service limits
MAX_EVENTS_PER_CALL = 10_000
MAX_BYTES_PER_CALL = 1_048_576
EVENT_OVERHEAD_BYTES = 26
MAX_EVENT_BYTES = 262_144
MAX_MESSAGE_BYTES = MAX_EVENT_BYTES - EVENT_OVERHEAD_BYTES

_ALREADY_EXISTS = "ResourceAlreadyExistsException"


class CloudWatchSinkConfig(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid", validate_default=True)

    log_group: str
    log_stream: str | None = None
    profile: str | None = DEFAULT_PROFILE
    region: str = DEFAULT_REGION
    create_log_group: bool = Field(default=True)

    @field_validator("log_group")
    @classmethod
    def _ensure_log_group_non_empty(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("log_group must not be empty")
        return value


def default_stream_name(now: float | None = None) -> str:
    """Stream name used when none is configured: ``cwlogs-<unix seconds>``."""
    return f"cwlogs-{int(time.time() if now is None else now)}"


def _truncate_message(line: str) -> str:
    data = line.encode("utf-8")
    if len(data) <= MAX_MESSAGE_BYTES:
        return line
    return data[:MAX_MESSAGE_BYTES].decode("utf-8", errors="ignore")


def build_log_event_chunks(
    lines: Sequence[str], timestamp_ms: int
) -> list[list[dict[str, Any]]]:
    """Split a batch into ``PutLogEvents`` payloads within service limits.

    Order is preserved across and within chunks. Oversized messages are
    truncated to the per-event limit.
    """
    chunks: list[list[dict[str, Any]]] = []
    current: list[dict[str, Any]] = []
    current_bytes = 0
    for line in lines:
        message = _truncate_message(line)
        size = len(message.encode("utf-8")) + EVENT_OVERHEAD_BYTES
        if current and (
            len(current) >= MAX_EVENTS_PER_CALL
            or current_bytes + size > MAX_BYTES_PER_CALL
        ):
            chunks.append(current)
            current = []
            current_bytes = 0
        current.append({"timestamp": timestamp_ms, "message": message})
        current_bytes += size
    if current:
        chunks.append(current)
    return chunks


def _error_code(exc: ClientError) -> str:
    return str(exc.response.get("Error", {}).get("Code", ""))


class CloudWatchSink:
    """Sink that sends batches to a CloudWatch Logs stream."""

    name = "cloudwatch"

    def __init__(
        self,
        config: CloudWatchSinkConfig | dict | None = None,
        *,
        client: Any = None,
        **kwargs: Any,
    ) -> None:
        if isinstance(config, CloudWatchSinkConfig):
            cfg = config.model_copy(update=kwargs) if kwargs else config
        else:
            cfg = CloudWatchSinkConfig(**{**(config or {}), **kwargs})
        self._config = cfg
        self._client = client
        self._log_stream = cfg.log_stream or default_stream_name()

    @property
    def log_group(self) -> str:
        return self._config.log_group

    @property
    def log_stream(self) -> str:
        return self._log_stream

    @property
    def destination(self) -> str:
        return f"log group {self.log_group}, log stream {self.log_stream}"

    def start(self) -> None:
        if self._client is None:
            try:
                session = boto3.session.Session(
                    profile_name=self._config.profile,
                    region_name=self._config.region,
                )
                self._client = session.client("logs")
            except BotoCoreError as exc:
                raise SinkSetupError(
                    "failed to load AWS config",
                    profile=self._config.profile,
                    region=self._config.region,
                    error=str(exc),
                ) from exc

        if self._config.create_log_group:
            self._ensure(
                "create_log_group",
                "log group",
                logGroupName=self.log_group,
            )
        self._ensure(
            "create_log_stream",
            "log stream",
            logGroupName=self.log_group,
            logStreamName=self.log_stream,
        )
        diagnostics.debug(
            "cloudwatch-sink",
            "destination ready",
            log_group=self.log_group,
            log_stream=self.log_stream,
        )

    def _ensure(self, operation: str, what: str, **params: str) -> None:
        try:
            getattr(self._client, operation)(**params)
        except ClientError as exc:
            if _error_code(exc) == _ALREADY_EXISTS:
                return
            raise SinkSetupError(
                f"failed to create {what}",
                code=_error_code(exc),
                error=str(exc),
            ) from exc
        except BotoCoreError as exc:
            raise SinkSetupError(f"failed to create {what}", error=str(exc)) from exc

    def transmit(self, lines: Sequence[str], timestamp_ms: int) -> None:
        if not lines:
            return
        if self._client is None:
            raise TransmissionError("sink has not been started", lines=len(lines))
        sent = 0
        for chunk in build_log_event_chunks(lines, timestamp_ms):
            try:
                response = self._client.put_log_events(
                    logGroupName=self.log_group,
                    logStreamName=self.log_stream,
                    logEvents=chunk,
                )
            except (ClientError, BotoCoreError) as exc:
                raise TransmissionError(
                    "failed to send logs",
                    lines=len(lines),
                    sent=sent,
                    error=str(exc),
                ) from exc
            rejected = (response or {}).get("rejectedLogEventsInfo")
            if rejected:
                diagnostics.warn(
                    "cloudwatch-sink",
                    "log events rejected",
                    log_stream=self.log_stream,
                    **rejected,
                )
            sent += len(chunk)

    def close(self) -> None:
        client, self._client = self._client, None
        closer = getattr(client, "close", None)
        if callable(closer):
            closer()
