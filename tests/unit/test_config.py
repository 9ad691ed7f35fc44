"""Tests for the saved user configuration and interactive setup."""

from __future__ import annotations

import io
import json
import stat
from pathlib import Path

import pytest

from cwlogs.core.config import (
    UserConfig,
    get_config_path,
    load_config,
    merge_aws_settings,
    run_setup,
    save_config,
)
from cwlogs.core.errors import ConfigurationError
from cwlogs.core.settings import DEFAULT_PROFILE, DEFAULT_REGION, AwsSettings


def _prompter(*answers: str):
    replies = iter(answers)
    asked: list[str] = []

    def _ask(message: str) -> str:
        asked.append(message)
        return next(replies)

    _ask.asked = asked  # type: ignore[attr-defined]
    return _ask


def test_config_path_under_home(tmp_path: Path) -> None:
    assert get_config_path(tmp_path) == tmp_path / ".config" / "cwlogs" / "config.json"


def test_missing_config_is_none(tmp_path: Path) -> None:
    assert load_config(tmp_path / "nope.json") is None


def test_save_then_load(tmp_path: Path) -> None:
    path = tmp_path / "cfg" / "config.json"
    saved = save_config(UserConfig(log_group="grp", region="eu-central-1"), path)

    assert saved == path
    assert json.loads(path.read_text()) == {
        "log_group": "grp",
        "profile": DEFAULT_PROFILE,
        "region": "eu-central-1",
    }
    assert stat.S_IMODE(path.stat().st_mode) == 0o644
    loaded = load_config(path)
    assert loaded is not None
    assert loaded.model_dump() == {
        "log_group": "grp",
        "profile": DEFAULT_PROFILE,
        "region": "eu-central-1",
    }


def test_corrupt_config_is_configuration_error(tmp_path: Path) -> None:
    path = tmp_path / "config.json"
    path.write_text("{not json")
    with pytest.raises(ConfigurationError, match="failed to parse config file"):
        load_config(path)


def test_config_without_log_group_is_rejected(tmp_path: Path) -> None:
    path = tmp_path / "config.json"
    path.write_text(json.dumps({"profile": "x"}))
    with pytest.raises(ConfigurationError):
        load_config(path)


def test_blank_profile_and_region_fall_back() -> None:
    cfg = UserConfig(log_group=" grp ", profile="", region="  ")
    assert cfg.log_group == "grp"
    assert cfg.profile == DEFAULT_PROFILE
    assert cfg.region == DEFAULT_REGION


class TestSetup:
    def test_prompts_and_saves(self, tmp_path: Path) -> None:
        path = tmp_path / "config.json"
        out = io.StringIO()
        ask = _prompter("my-group", "", "ap-south-1")

        cfg = run_setup(path=path, prompt=ask, out=out)

        assert cfg.model_dump() == {
            "log_group": "my-group",
            "profile": DEFAULT_PROFILE,
            "region": "ap-south-1",
        }
        assert ask.asked == [  # type: ignore[attr-defined]
            "Enter CloudWatch log group name: ",
            f"Enter AWS profile name (default: {DEFAULT_PROFILE}): ",
            f"Enter AWS region (default: {DEFAULT_REGION}): ",
        ]
        assert f"Configuration saved to {path}" in out.getvalue()
        loaded = load_config(path)
        assert loaded is not None
        assert loaded.model_dump() == cfg.model_dump()

    def test_empty_log_group_saves_nothing(self, tmp_path: Path) -> None:
        path = tmp_path / "config.json"
        with pytest.raises(ConfigurationError, match="log group name cannot be empty"):
            run_setup(path=path, prompt=_prompter("", "", ""), out=io.StringIO())
        assert not path.exists()

    def test_default_location_uses_home(self) -> None:
        run_setup(prompt=_prompter("g", "p", "r"), out=io.StringIO())
        loaded = load_config()
        assert loaded is not None
        assert loaded.model_dump() == {"log_group": "g", "profile": "p", "region": "r"}


class TestMerge:
    def test_no_saved_config_keeps_settings(self) -> None:
        aws = AwsSettings(log_group="env")
        assert merge_aws_settings(aws, None) is aws

    def test_saved_values_fill_unset_fields(self) -> None:
        merged = merge_aws_settings(
            AwsSettings(),
            UserConfig(log_group="saved", profile="ops", region="eu-west-1"),
            explicit=set(),
        )
        assert (merged.log_group, merged.profile, merged.region) == (
            "saved",
            "ops",
            "eu-west-1",
        )

    def test_explicit_values_win(self) -> None:
        merged = merge_aws_settings(
            AwsSettings(log_group="flag", region="us-east-1"),
            UserConfig(log_group="saved", profile="ops", region="eu-west-1"),
            explicit={"log_group", "region"},
        )
        assert (merged.log_group, merged.profile, merged.region) == (
            "flag",
            "ops",
            "us-east-1",
        )
