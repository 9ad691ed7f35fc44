"""
User configuration persistence and interactive setup.

``cwlogs setup`` stores the log group, AWS profile and region in
``~/.config/cwlogs/config.json``. At startup the stored values fill in
whatever the environment and command line leave unset.
"""

from __future__ import annotations

import json
import os
import sys
from collections.abc import Callable
from pathlib import Path
from typing import Any, TextIO

from pydantic import BaseModel, ConfigDict, ValidationError, field_validator

from .errors import ConfigurationError
from .settings import DEFAULT_PROFILE, DEFAULT_REGION, AwsSettings

CONFIG_DIR = Path(".config") / "cwlogs"
CONFIG_FILE = "config.json"


class UserConfig(BaseModel):
    """Values saved by ``cwlogs setup``."""

    model_config = ConfigDict(extra="ignore")

    log_group: str
    profile: str = DEFAULT_PROFILE
    region: str = DEFAULT_REGION

    @field_validator("log_group")
    @classmethod
    def _ensure_log_group_non_empty(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("log group name cannot be empty")
        return value

    @field_validator("profile", "region", mode="before")
    @classmethod
    def _default_when_blank(cls, value: Any, info: Any) -> Any:
        if value is None or (isinstance(value, str) and not value.strip()):
            return DEFAULT_PROFILE if info.field_name == "profile" else DEFAULT_REGION
        return value.strip() if isinstance(value, str) else value


def get_config_path(home: Path | None = None) -> Path:
    if home is None:
        try:
            home = Path.home()
        except RuntimeError as exc:
            raise ConfigurationError(
                "failed to get home directory", error=str(exc)
            ) from exc
    return home / CONFIG_DIR / CONFIG_FILE


def load_config(path: Path | None = None) -> UserConfig | None:
    """Read the saved config; ``None`` when no config has been saved yet."""
    path = path or get_config_path()
    try:
        raw = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        return None
    except OSError as exc:
        raise ConfigurationError(
            "failed to read config file", path=str(path), error=str(exc)
        ) from exc
    try:
        return UserConfig.model_validate(json.loads(raw))
    except (ValueError, ValidationError) as exc:
        raise ConfigurationError(
            "failed to parse config file", path=str(path), error=str(exc)
        ) from exc


def save_config(config: UserConfig, path: Path | None = None) -> Path:
    path = path or get_config_path()
    try:
        path.parent.mkdir(mode=0o755, parents=True, exist_ok=True)
        path.write_text(
            json.dumps(config.model_dump(), indent=2) + "\n", encoding="utf-8"
        )
        os.chmod(path, 0o644)
    except OSError as exc:
        raise ConfigurationError(
            "failed to write config file", path=str(path), error=str(exc)
        ) from exc
    return path


def run_setup(
    *,
    path: Path | None = None,
    prompt: Callable[[str], str] | None = None,
    out: TextIO | None = None,
) -> UserConfig:
    """Ask for the destination settings and save them."""
    out = out or sys.stdout
    ask = prompt or _default_prompt(out)

    log_group = ask("Enter CloudWatch log group name: ")
    profile = ask(f"Enter AWS profile name (default: {DEFAULT_PROFILE}): ")
    region = ask(f"Enter AWS region (default: {DEFAULT_REGION}): ")
    try:
        config = UserConfig(log_group=log_group, profile=profile, region=region)
    except ValidationError as exc:
        raise ConfigurationError("log group name cannot be empty") from exc
    saved = save_config(config, path)
    out.write(f"Configuration saved to {saved}\n")
    return config


def _default_prompt(out: TextIO) -> Callable[[str], str]:
    def _ask(message: str) -> str:
        out.write(message)
        out.flush()
        line = sys.stdin.readline()
        return line.strip()

    return _ask


def merge_aws_settings(
    aws: AwsSettings,
    user: UserConfig | None,
    *,
    explicit: set[str] | None = None,
) -> AwsSettings:
    """Fill AWS settings from the saved config.

    Fields named in ``explicit`` (set from the environment or command line)
    win over the saved values.
    """
    if user is None:
        return aws
    explicit = explicit if explicit is not None else set(aws.model_fields_set)
    updates: dict[str, Any] = {}
    for field in ("log_group", "profile", "region"):
        if field not in explicit or getattr(aws, field) is None:
            updates[field] = getattr(user, field)
    return aws.model_copy(update=updates)


__all__ = [
    "CONFIG_DIR",
    "CONFIG_FILE",
    "UserConfig",
    "get_config_path",
    "load_config",
    "merge_aws_settings",
    "run_setup",
    "save_config",
]
