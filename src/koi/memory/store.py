"""Date-partitioned memory store.

Markdown files are the source of truth: one memory per file under
``<root>/YYYY-MM-DD/``. There is no index; every listing scans the tree,
so a file an operator deletes simply stops appearing.
"""

from __future__ import annotations

import logging
import re
from pathlib import Path

import yaml

from koi.errors import MemoryDecodeError
from koi.memory.codec import decode_memory, encode_memory
from koi.memory.record import MemoryRecord

logger = logging.getLogger(__name__)

MEMORIES_DIRNAME = ".memories"
MEMORY_SUFFIX = ".md"
DATE_KEY_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")


class MemoryStore:
    """Read/write access to one project's ``.memories`` directory."""

    def __init__(self, root: Path) -> None:
        self.root = Path(root)

    @classmethod
    def for_project(cls, project_path: Path | str, dirname: str = MEMORIES_DIRNAME) -> MemoryStore:
        return cls(Path(project_path) / dirname)

    # ── Write ────────────────────────────────────────────────

    def write(self, date_key: str, filename: str, record: MemoryRecord) -> Path:
        """Persist a record as ``<root>/<date_key>/<filename>`` and return the path.

        Never overwrites: an existing file raises FileExistsError. Other I/O
        errors propagate unchanged.
        """
        if not DATE_KEY_RE.match(date_key):
            raise ValueError(f"Invalid date key: {date_key!r} (expected YYYY-MM-DD)")

        day_dir = self.root / date_key
        day_dir.mkdir(parents=True, exist_ok=True)
        path = day_dir / filename
        text = encode_memory(record)
        f = path.open("x", encoding="utf-8")
        try:
            with f:
                f.write(text)
        except Exception:
            path.unlink(missing_ok=True)
            raise
        logger.info("Wrote memory %s to %s", record.id, path)
        return path

    # ── Read ─────────────────────────────────────────────────

    def read(self, path: Path) -> MemoryRecord:
        """Decode a single memory file. Errors propagate."""
        return decode_memory(path.read_text(encoding="utf-8"))

    def read_or_none(self, path: Path) -> MemoryRecord | None:
        """Decode a memory file, or return None if it is unreadable or invalid."""
        try:
            return self.read(path)
        except (OSError, UnicodeDecodeError, yaml.YAMLError, MemoryDecodeError) as e:
            logger.debug("Skipping unreadable memory %s: %s", path, e)
            return None

    def date_dirs(self) -> list[Path]:
        """Date directories under root, oldest first. Stray entries are ignored."""
        if not self.root.is_dir():
            return []
        return sorted(
            p for p in self.root.iterdir() if p.is_dir() and DATE_KEY_RE.match(p.name)
        )

    def list_memories(self) -> list[MemoryRecord]:
        """All decodable memories under root, most recent first."""
        memories: list[MemoryRecord] = []
        for day_dir in self.date_dirs():
            try:
                files = sorted(day_dir.glob(f"*{MEMORY_SUFFIX}"))
            except OSError as e:
                logger.debug("Skipping unreadable directory %s: %s", day_dir, e)
                continue
            for md_file in files:
                if not md_file.is_file():
                    continue
                record = self.read_or_none(md_file)
                if record is not None:
                    memories.append(record)

        memories.sort(key=lambda m: m.timestamp, reverse=True)
        return memories
