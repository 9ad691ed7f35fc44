"""
Internal diagnostics for cwlogs.

Diagnostics are written to stderr so they never mix with the echoed input on
stdout. ``error`` is always emitted; ``warn`` and ``debug`` only when
``core.internal_logging_enabled`` is set. The setting is read once and cached;
tests reset ``_internal_logging_enabled`` to force a re-read.
"""

from __future__ import annotations

import json
import sys
import threading
import time
from typing import Any, Callable, Literal

Level = Literal["DEBUG", "WARN", "ERROR"]

_internal_logging_enabled: bool | None = None
_format: str | None = None
_lock = threading.Lock()


def _load_settings() -> None:
    global _internal_logging_enabled, _format
    try:
        from .settings import Settings

        core = Settings().core
        _internal_logging_enabled = bool(core.internal_logging_enabled)
        _format = core.diagnostics_format
    except Exception:  # pragma: no cover - invalid env falls back to defaults
        _internal_logging_enabled = False
        _format = "text"


def is_enabled() -> bool:
    if _internal_logging_enabled is None:
        _load_settings()
    return bool(_internal_logging_enabled)


def configure(*, enabled: bool | None = None, fmt: str | None = None) -> None:
    """Override the cached settings (used by the CLI after flag parsing)."""
    global _internal_logging_enabled, _format
    if _internal_logging_enabled is None or _format is None:
        _load_settings()
    if enabled is not None:
        _internal_logging_enabled = enabled
    if fmt is not None:
        _format = fmt


def _render(payload: dict[str, Any]) -> str:
    if _format == "json":
        return json.dumps(payload, default=str, separators=(",", ":"))
    fields = {
        k: v
        for k, v in payload.items()
        if k not in ("ts", "level", "component", "message")
    }
    line = f"[cwlogs] {payload['level']} {payload['component']}: {payload['message']}"
    if fields:
        line += " (" + " ".join(f"{k}={v}" for k, v in fields.items()) + ")"
    return line


def _default_writer(text: str) -> None:
    stream = sys.stderr
    stream.write(text + "\n")
    stream.flush()


_writer: Callable[[str], None] = _default_writer


def emit(level: Level, component: str, message: str, **fields: Any) -> None:
    if _format is None:
        _load_settings()
    payload: dict[str, Any] = {
        "ts": time.time(),
        "level": level,
        "component": component,
        "message": message,
        **fields,
    }
    text = _render(payload)
    with _lock:
        try:
            _writer(text)
        except Exception:
            # A closed stderr must not take down a worker thread
            pass


def error(component: str, message: str, **fields: Any) -> None:
    emit("ERROR", component, message, **fields)


def warn(component: str, message: str, **fields: Any) -> None:
    if not is_enabled():
        return
    emit("WARN", component, message, **fields)


def debug(component: str, message: str, **fields: Any) -> None:
    if not is_enabled():
        return
    emit("DEBUG", component, message, **fields)


__all__ = ["configure", "debug", "emit", "error", "is_enabled", "warn"]
