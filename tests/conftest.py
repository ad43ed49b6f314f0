"""Shared fixtures for koi tests."""

from __future__ import annotations

from pathlib import Path

import pytest

from koi.memory.record import GitContext, MemoryRecord
from koi.memory.registry import ProjectRegistry
from koi.memory.store import MemoryStore
from koi.utils.timeutil import date_key


@pytest.fixture
def registry(tmp_path: Path) -> ProjectRegistry:
    return ProjectRegistry(tmp_path / "home" / ".koi" / "registry.json")


@pytest.fixture
def project(tmp_path: Path) -> Path:
    path = tmp_path / "project-a"
    path.mkdir()
    return path


@pytest.fixture
def no_git(monkeypatch):
    """Make remember() record a fixed git context instead of running git."""
    ctx = GitContext(branch="main", commit="abc1234", dirty=True, files_changed=["src/app.py"])
    monkeypatch.setattr("koi.memory.remember.get_git_context", lambda cwd, timeout=10: ctx)
    return ctx


@pytest.fixture
def add_memory():
    """Write a memory straight into a project's store."""
    counter = iter(range(10_000))

    def _add(
        project_path: Path,
        id: str,
        timestamp: int,
        content: str,
        tags: list[str] | None = None,
    ) -> Path:
        record = MemoryRecord(
            id=id,
            timestamp=timestamp,
            content=content,
            tags=tags or [],
            git=GitContext(branch="main", commit="abc123"),
        )
        store = MemoryStore.for_project(project_path)
        return store.write(date_key(timestamp), f"120000_{next(counter):04x}.md", record)

    return _add
