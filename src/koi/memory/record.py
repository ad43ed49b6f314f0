"""Record types shared by the codec, store and recall pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field

UNKNOWN = "unknown"


@dataclass(frozen=True)
class GitContext:
    """Repository state captured when a memory is created."""

    branch: str = UNKNOWN
    commit: str = UNKNOWN
    dirty: bool = False
    files_changed: list[str] = field(default_factory=list)

    @classmethod
    def unknown(cls) -> GitContext:
        return cls()


@dataclass
class MemoryRecord:
    """One persisted memory.

    ``project`` is filled in by global recall only and is never written to disk.
    """

    id: str
    timestamp: int
    content: str
    tags: list[str] = field(default_factory=list)
    git: GitContext = field(default_factory=GitContext.unknown)
    project: str | None = None
