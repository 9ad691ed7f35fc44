"""
Configuration models for cwlogs using Pydantic v2 Settings.

Values come from (highest first) CLI flags, ``CWLOGS_*`` environment
variables, the user config file written by ``cwlogs setup`` and the defaults
declared here. The CLI applies the first and third layers; this module owns
the environment and defaults.
"""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_PROFILE = "default"
DEFAULT_REGION = "us-west-2"


class CoreSettings(BaseModel):
    """Internal diagnostics and metrics toggles."""

    internal_logging_enabled: bool = Field(
        default=False,
        description=("Emit DEBUG/WARN diagnostics for internal events"),
    )
    diagnostics_format: Literal["text", "json"] = Field(
        default="text",
        description=("Output format for diagnostics written to stderr"),
    )
    enable_metrics: bool = Field(
        default=False,
        description=("Enable Prometheus-compatible metrics"),
    )
    metrics_port: int | None = Field(
        default=None,
        ge=1,
        le=65535,
        description=(
            "Expose the metrics registry over HTTP on this port; "
            "implies enable_metrics"
        ),
    )


class ForwarderSettings(BaseModel):
    """Batching, flushing and shutdown behaviour."""

    batch_size: int = Field(
        default=100,
        ge=1,
        le=10_000,
        description=("Number of buffered lines that triggers a flush"),
    )
    flush_interval_seconds: float = Field(
        default=5.0,
        gt=0.0,
        description=("Period of the background flush timer"),
    )
    silent: bool = Field(
        default=False,
        description=("Do not echo ingested lines to stdout"),
    )
    await_inflight_on_drain: bool = Field(
        default=False,
        description=(
            "Wait for background transmissions dispatched before shutdown "
            "to finish before exiting"
        ),
    )
    inflight_timeout_seconds: float | None = Field(
        default=None,
        gt=0.0,
        description=("Upper bound on the wait for background transmissions"),
    )
    signal_handler_enabled: bool = Field(
        default=True,
        description=("Install SIGINT/SIGTERM handlers for graceful shutdown"),
    )


class AwsSettings(BaseModel):
    """CloudWatch Logs destination and credentials selection."""

    log_group: str | None = Field(default=None, description="Log group name")
    log_stream: str | None = Field(
        default=None,
        description=("Log stream name; generated when omitted"),
    )
    profile: str = Field(default=DEFAULT_PROFILE, description="AWS profile")
    region: str = Field(default=DEFAULT_REGION, description="AWS region")
    create_log_group: bool = Field(
        default=True,
        description=("Create the log group when it does not exist"),
    )

    @field_validator("log_group", "log_stream")
    @classmethod
    def _blank_to_none(cls, value: str | None) -> str | None:
        if value is None:
            return None
        value = value.strip()
        return value or None


class Settings(BaseSettings):
    """Top-level configuration model with grouped settings."""

    core: CoreSettings = Field(default_factory=CoreSettings)
    forwarder: ForwarderSettings = Field(default_factory=ForwarderSettings)
    aws: AwsSettings = Field(default_factory=AwsSettings)

    model_config = SettingsConfigDict(
        env_prefix="CWLOGS_",
        env_nested_delimiter="__",
        extra="ignore",
        case_sensitive=False,
    )


__all__ = [
    "AwsSettings",
    "CoreSettings",
    "ForwarderSettings",
    "Settings",
    "DEFAULT_PROFILE",
    "DEFAULT_REGION",
]
