"""
Root pytest configuration.
"""

from __future__ import annotations

import os
from collections.abc import Generator

import pytest


def pytest_configure(config: pytest.Config) -> None:
    """Register custom markers for test categorization."""
    config.addinivalue_line(
        "markers",
        "critical: Tests that must never fail - core functionality",
    )
    config.addinivalue_line(
        "markers",
        "integration: Tests that run the whole forwarder",
    )
    config.addinivalue_line(
        "markers",
        "slow: Tests that take >1 second",
    )
    config.addinivalue_line(
        "markers",
        "property: Property-based tests (may be slow)",
    )


@pytest.fixture(autouse=True)
def reset_diagnostics_cache() -> Generator[None, None, None]:
    """Reset the diagnostics module cache before each test.

    The diagnostics module caches ``internal_logging_enabled`` and the output
    format at first access; resetting keeps tests from inheriting state.
    """
    import cwlogs.core.diagnostics as diag

    diag._internal_logging_enabled = None
    diag._format = None
    yield
    diag._internal_logging_enabled = None
    diag._format = None


@pytest.fixture(autouse=True)
def isolated_home(
    tmp_path_factory: pytest.TempPathFactory, monkeypatch: pytest.MonkeyPatch
) -> Generator[None, None, None]:
    """Keep tests away from the real ``~/.config/cwlogs`` and CWLOGS_* vars."""
    home = tmp_path_factory.mktemp("home")
    monkeypatch.setenv("HOME", str(home))
    for key in list(os.environ):
        if key.upper().startswith("CWLOGS_"):
            monkeypatch.delenv(key, raising=False)
    yield
