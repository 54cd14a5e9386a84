"""Shared test fixtures and configuration for skillbase tests."""

from __future__ import annotations

import logging
from collections.abc import Iterator
from pathlib import Path

import pytest

from skillbase.config import SkillsSettings, get_settings


@pytest.fixture(autouse=True)
def isolated_settings(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Iterator[SkillsSettings]:
    """Point every settings-derived directory into a per-test temp tree.

    Keeps tests away from ``~/.skillbase`` and ``./.skillbase`` and resets the
    cached settings and any handlers the CLI attached to the package logger.
    """
    monkeypatch.setenv("SKILLBASE_HOME", str(tmp_path / "home"))
    monkeypatch.setenv("SKILLBASE_PROJECT_DIR", str(tmp_path / "project"))
    get_settings.cache_clear()
    yield get_settings()
    get_settings.cache_clear()

    package_logger = logging.getLogger("skillbase")
    for handler in list(package_logger.handlers):
        package_logger.removeHandler(handler)
    package_logger.setLevel(logging.NOTSET)


@pytest.fixture
def managed_dir(isolated_settings: SkillsSettings) -> Path:
    """Managed skills root for the current test (not created)."""
    return isolated_settings.skills_dir


@pytest.fixture
def workspace_dir(isolated_settings: SkillsSettings) -> Path:
    """Workspace skills root for the current test (not created)."""
    return isolated_settings.project_skills_dir
