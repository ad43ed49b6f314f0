"""Markdown + YAML frontmatter encoding of memory records.

A memory file looks like::

    ---
    id: mem_3f9a0c1d2b4e5f60
    timestamp: 1770219012345
    tags:
    - auth
    git:
      branch: main
      commit: abc1234
      dirty: false
      filesChanged: []
    ---

    ## Fixed token refresh

    ...

The body after the closing delimiter is the memory content, stored verbatim.
"""

from __future__ import annotations

import math
from typing import Any

import frontmatter

from koi.errors import MemoryDecodeError
from koi.memory.record import UNKNOWN, GitContext, MemoryRecord


def encode_memory(record: MemoryRecord) -> str:
    """Render a record as a frontmatter document. ``project`` is dropped."""
    post = frontmatter.Post(
        record.content,
        id=record.id,
        timestamp=record.timestamp,
        tags=list(record.tags),
        git={
            "branch": record.git.branch,
            "commit": record.git.commit,
            "dirty": record.git.dirty,
            "filesChanged": list(record.git.files_changed),
        },
    )
    return frontmatter.dumps(post, sort_keys=False) + "\n"


def decode_memory(text: str) -> MemoryRecord:
    """Parse a frontmatter document back into a record.

    Missing ``tags``/``git`` fall back to defaults; a missing ``id`` or
    ``timestamp`` raises MemoryDecodeError. YAML syntax errors propagate as
    ``yaml.YAMLError``.
    """
    try:
        post = frontmatter.loads(text)
    except (TypeError, ValueError) as e:
        # Post(**metadata) rejects non-string keys and "content"/"handler" keys.
        raise MemoryDecodeError(f"unusable frontmatter: {e}") from e
    meta = post.metadata
    if not isinstance(meta, dict):
        raise MemoryDecodeError("frontmatter is not a mapping")

    return MemoryRecord(
        id=_decode_id(meta.get("id")),
        timestamp=_decode_timestamp(meta.get("timestamp")),
        content=post.content.strip(),
        tags=_decode_tags(meta.get("tags")),
        git=_decode_git(meta.get("git")),
    )


def _decode_id(value: Any) -> str:
    if isinstance(value, bool) or not isinstance(value, (str, int)):
        raise MemoryDecodeError("missing or invalid 'id'")
    value = str(value).strip()
    if not value:
        raise MemoryDecodeError("missing or invalid 'id'")
    return value


def _decode_timestamp(value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise MemoryDecodeError("missing or invalid 'timestamp'")
    if isinstance(value, float) and not math.isfinite(value):
        raise MemoryDecodeError("missing or invalid 'timestamp'")
    return int(value)


def _decode_tags(value: Any) -> list[str]:
    if value is None:
        return []
    if not isinstance(value, list):
        raise MemoryDecodeError("'tags' must be a list")
    return [str(t) for t in value]


def _decode_git(value: Any) -> GitContext:
    if value is None:
        return GitContext.unknown()
    if not isinstance(value, dict):
        raise MemoryDecodeError("'git' must be a mapping")
    dirty = value.get("dirty")
    files = value.get("filesChanged") or []
    if not isinstance(files, list):
        raise MemoryDecodeError("'git.filesChanged' must be a list")
    return GitContext(
        branch=str(value.get("branch") or UNKNOWN),
        commit=str(value.get("commit") or UNKNOWN),
        dirty=dirty if isinstance(dirty, bool) else False,
        files_changed=[str(f) for f in files],
    )
