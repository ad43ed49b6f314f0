"""Remember: build a memory record, persist it, register the project."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path

from koi.errors import InvalidInputError
from koi.memory.record import MemoryRecord
from koi.memory.registry import ProjectRegistry
from koi.memory.store import MEMORIES_DIRNAME, MemoryStore
from koi.utils.git import DEFAULT_TIMEOUT, get_git_context
from koi.utils.ids import new_filename, new_memory_id
from koi.utils.timeutil import date_key, now_ms

logger = logging.getLogger(__name__)

_SEPARATOR_RE = re.compile(r"[\s_]+")
_INVALID_TAG_CHARS_RE = re.compile(r"[^a-z0-9-]")


@dataclass
class RememberResult:
    id: str
    path: Path


def normalize_tag(tag: str) -> str:
    """``"Test Tag"`` → ``"test-tag"``; only ``[a-z0-9-]`` survives."""
    tag = _SEPARATOR_RE.sub("-", tag.lower())
    return _INVALID_TAG_CHARS_RE.sub("", tag)


def normalize_tags(tags: list[str] | None) -> list[str]:
    """Normalize, drop empties and duplicates, keep first-seen order."""
    seen: list[str] = []
    for tag in tags or []:
        norm = normalize_tag(tag)
        if norm and norm not in seen:
            seen.append(norm)
    return seen


def _validate(content: object, tags: object) -> None:
    if not isinstance(content, str) or not content.strip():
        raise InvalidInputError("'content' is required and must be a non-empty string")
    if tags is not None and (
        not isinstance(tags, list) or not all(isinstance(t, str) for t in tags)
    ):
        raise InvalidInputError("'tags' must be a list of strings")


def remember(
    content: str,
    tags: list[str] | None,
    project_path: Path,
    registry: ProjectRegistry,
    *,
    memories_dirname: str = MEMORIES_DIRNAME,
    git_timeout: float = DEFAULT_TIMEOUT,
    now: int | None = None,
) -> RememberResult:
    """Write a new memory under ``project_path`` and upsert the registry.

    Invalid input is rejected before anything touches the disk. Write and
    registry I/O errors propagate.
    """
    _validate(content, tags)
    project_path = Path(project_path).absolute()

    timestamp = now if now is not None else now_ms()
    record = MemoryRecord(
        id=new_memory_id(),
        timestamp=timestamp,
        content=content,
        tags=normalize_tags(tags),
        git=get_git_context(project_path, timeout=git_timeout),
    )

    store = MemoryStore.for_project(project_path, memories_dirname)
    path = store.write(
        date_key(timestamp), new_filename(datetime.fromtimestamp(timestamp / 1000)), record
    )

    registry.upsert(str(project_path), project_path.name)
    return RememberResult(id=record.id, path=path)
