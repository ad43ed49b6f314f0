"""Recall: resolve scope, load candidates, then filter and rank."""

from __future__ import annotations

import dataclasses
import logging
from dataclasses import dataclass, field
from pathlib import Path

from koi.errors import InvalidInputError
from koi.memory.record import MemoryRecord
from koi.memory.registry import ProjectRegistry
from koi.memory.remember import normalize_tags
from koi.memory.search import DEFAULT_LIMIT, Scorer, SearchOptions, search_memories
from koi.memory.store import MEMORIES_DIRNAME, MemoryStore
from koi.utils.timeutil import parse_since

logger = logging.getLogger(__name__)

SCOPES = ("project", "global")


@dataclass
class RecallRequest:
    query: str | None = None
    tags: list[str] = field(default_factory=list)
    since: str | None = None
    limit: int = DEFAULT_LIMIT
    scope: str = "project"


def load_candidates(
    scope: str,
    project_path: Path,
    registry: ProjectRegistry,
    memories_dirname: str = MEMORIES_DIRNAME,
) -> list[MemoryRecord]:
    """Every memory visible in ``scope``, most recent first.

    Global results carry the project they were loaded from.
    """
    if scope == "project":
        return MemoryStore.for_project(project_path, memories_dirname).list_memories()
    if scope != "global":
        raise InvalidInputError(f"Unknown scope '{scope}'. Expected one of: {', '.join(SCOPES)}")

    merged: list[MemoryRecord] = []
    for entry in registry.list_projects():
        store = MemoryStore.for_project(entry.path, memories_dirname)
        merged.extend(
            dataclasses.replace(m, project=entry.path) for m in store.list_memories()
        )
    merged.sort(key=lambda m: m.timestamp, reverse=True)
    return merged


def recall(
    request: RecallRequest,
    project_path: Path,
    registry: ProjectRegistry,
    *,
    scorer: Scorer | None = None,
    memories_dirname: str = MEMORIES_DIRNAME,
    now: int | None = None,
) -> list[MemoryRecord]:
    """Run the recall pipeline: scope → since → tags → query → limit."""
    if request.scope not in SCOPES:
        raise InvalidInputError(
            f"Unknown scope '{request.scope}'. Expected one of: {', '.join(SCOPES)}"
        )

    since = parse_since(request.since, now=now)
    if request.since and since is None:
        logger.debug("Ignoring unparsable since=%r", request.since)

    candidates = load_candidates(request.scope, project_path, registry, memories_dirname)
    results = search_memories(
        candidates,
        SearchOptions(
            query=request.query,
            tags=normalize_tags(request.tags),
            since=since,
            limit=request.limit,
        ),
        scorer,
    )
    logger.debug(
        "recall scope=%s: %d candidates, %d results", request.scope, len(candidates), len(results)
    )
    return results
