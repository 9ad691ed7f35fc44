"""
Main CLI entry point for cwlogs.

``cwlogs`` reads stdin, echoes it to stdout and forwards it to CloudWatch
Logs in batches. ``cwlogs setup`` saves the default destination.
"""

from __future__ import annotations

import argparse
import io
import sys
from typing import Any, TextIO

from prometheus_client import start_http_server
from pydantic import ValidationError

from .._version import __version__
from ..core import diagnostics
from ..core.config import load_config, merge_aws_settings, run_setup
from ..core.errors import ConfigurationError
from ..core.forwarder import EXIT_FAILURE, LogForwarder
from ..core.settings import AwsSettings, ForwarderSettings, Settings
from ..metrics.metrics import MetricsCollector
from ..plugins.sinks import BaseSink
from ..plugins.sinks.cloudwatch import CloudWatchSink
from ..plugins.sinks.stream import StreamSink


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="cwlogs",
        description="Forward stdin to AWS CloudWatch Logs.",
    )
    parser.add_argument("--version", action="version", version=__version__)
    sub = parser.add_subparsers(dest="command")
    sub.add_parser("setup", help="Save the default log group, profile and region")

    parser.add_argument("--log-group", dest="log_group")
    parser.add_argument(
        "--stream", dest="log_stream", help="Log stream name (default: cwlogs-<ts>)"
    )
    parser.add_argument("--profile")
    parser.add_argument("--region")
    parser.add_argument(
        "--silent", action="store_true", default=None, help="Do not echo to stdout"
    )
    parser.add_argument("--batch-size", type=int, dest="batch_size")
    parser.add_argument(
        "--flush-interval",
        type=float,
        dest="flush_interval_seconds",
        help="Seconds between periodic flushes",
    )
    parser.add_argument(
        "--wait-inflight",
        action="store_true",
        default=None,
        dest="await_inflight_on_drain",
        help="On exit, also wait for batches already being sent",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Write batches to stderr as JSON instead of CloudWatch",
    )
    return parser


def resolve_settings(args: argparse.Namespace) -> Settings:
    """Apply CLI flags and the saved user config on top of the environment."""
    try:
        settings = Settings()
    except ValidationError as exc:
        raise ConfigurationError("invalid environment", error=str(exc)) from exc

    fwd_overrides = {
        key: getattr(args, key)
        for key in (
            "batch_size",
            "flush_interval_seconds",
            "silent",
            "await_inflight_on_drain",
        )
        if getattr(args, key) is not None
    }
    aws_overrides = {
        key: getattr(args, key)
        for key in ("log_group", "log_stream", "profile", "region")
        if getattr(args, key) is not None
    }
    try:
        forwarder = ForwarderSettings.model_validate(
            {**settings.forwarder.model_dump(), **fwd_overrides}
        )
        aws = AwsSettings.model_validate(
            {**settings.aws.model_dump(), **aws_overrides}
        )
    except ValidationError as exc:
        raise ConfigurationError("invalid option", error=str(exc)) from exc

    explicit = set(settings.aws.model_fields_set) | set(aws_overrides)
    aws = merge_aws_settings(aws, load_config(), explicit=explicit)
    return settings.model_copy(update={"forwarder": forwarder, "aws": aws})


def build_sink(settings: Settings, *, dry_run: bool, stderr: TextIO) -> BaseSink:
    if dry_run:
        return StreamSink(stderr)
    if not settings.aws.log_group:
        raise ConfigurationError(
            "no log group configured; run 'cwlogs setup' or pass --log-group"
        )
    return CloudWatchSink(
        log_group=settings.aws.log_group,
        log_stream=settings.aws.log_stream,
        profile=settings.aws.profile,
        region=settings.aws.region,
        create_log_group=settings.aws.create_log_group,
    )


def _stdin_text() -> TextIO:
    buffer: Any = getattr(sys.stdin, "buffer", None)
    if buffer is None:
        return sys.stdin
    # Only "\n" ends a record; undecodable bytes are replaced, not fatal
    return io.TextIOWrapper(
        buffer, encoding="utf-8", errors="replace", newline="\n"
    )


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command == "setup":
        try:
            run_setup()
        except ConfigurationError as exc:
            print(f"Error: {exc}", file=sys.stderr)
            return EXIT_FAILURE
        return 0

    try:
        settings = resolve_settings(args)
        diagnostics.configure(
            enabled=settings.core.internal_logging_enabled,
            fmt=settings.core.diagnostics_format,
        )
        sink = build_sink(settings, dry_run=args.dry_run, stderr=sys.stderr)
        sink.start()
    except ConfigurationError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return EXIT_FAILURE

    # A metrics port implies metrics
    metrics = MetricsCollector(
        enabled=settings.core.enable_metrics or settings.core.metrics_port is not None
    )
    if metrics.registry is not None and settings.core.metrics_port:
        start_http_server(settings.core.metrics_port, registry=metrics.registry)

    forwarder = LogForwarder(
        sink,
        settings.forwarder,
        stream=_stdin_text(),
        metrics=metrics,
    )
    return forwarder.run()


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
