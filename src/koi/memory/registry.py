"""Cross-project registry: every project koi has remembered into.

Single JSON document, conventionally ``~/.koi/registry.json``::

    {"version": 1, "projects": {"/abs/path": {"name": "path", "lastAccess": 1770219012345}}}

Each upsert is an unlocked read-modify-write of the whole document. Two
processes upserting at once can lose one update (last writer wins). Entries
are bookkeeping only; a project's memories exist whether or not it is listed.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from koi.utils.timeutil import now_ms

logger = logging.getLogger(__name__)

REGISTRY_VERSION = 1
DEFAULT_REGISTRY_PATH = Path.home() / ".koi" / "registry.json"


@dataclass
class ProjectEntry:
    path: str
    name: str
    last_access: int


class ProjectRegistry:
    """Read/write access to the registry document at ``path``."""

    def __init__(self, path: Path) -> None:
        self.path = Path(path)

    def upsert(self, project_path: str, name: str, now: int | None = None) -> ProjectEntry:
        """Create or refresh the entry for ``project_path``."""
        doc = self._load(keep_corrupt=True)
        projects = doc["projects"]

        last_access = now if now is not None else now_ms()
        previous = projects.get(project_path)
        if isinstance(previous, dict) and isinstance(previous.get("lastAccess"), int):
            last_access = max(last_access, previous["lastAccess"] + 1)

        projects[project_path] = {"name": name, "lastAccess": last_access}
        self._save(doc)
        logger.debug("Registered project %s (%s)", project_path, name)
        return ProjectEntry(path=project_path, name=name, last_access=last_access)

    def list_projects(self) -> list[ProjectEntry]:
        """All registered projects. A missing registry means none."""
        entries: list[ProjectEntry] = []
        for path, meta in self._load()["projects"].items():
            if not isinstance(meta, dict):
                logger.debug("Skipping malformed registry entry %s", path)
                continue
            last_access = meta.get("lastAccess", 0)
            entries.append(
                ProjectEntry(
                    path=path,
                    name=str(meta.get("name") or Path(path).name),
                    last_access=last_access if isinstance(last_access, int) else 0,
                )
            )
        return entries

    # ── Persistence ──────────────────────────────────────────

    def _empty(self) -> dict[str, Any]:
        return {"version": REGISTRY_VERSION, "projects": {}}

    def _load(self, keep_corrupt: bool = False) -> dict[str, Any]:
        """Read the document, or an empty one if missing or unparsable."""
        if not self.path.exists():
            return self._empty()

        raw = self.path.read_bytes()
        try:
            doc = json.loads(raw.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError) as e:
            doc = None
            logger.warning("Registry %s is not valid JSON: %s", self.path, e)

        if not isinstance(doc, dict) or not isinstance(doc.get("projects"), dict):
            if doc is not None:
                logger.warning("Registry %s has an unexpected shape", self.path)
            if keep_corrupt:
                backup = self.path.with_name(self.path.name + ".corrupt")
                backup.write_bytes(raw)
                logger.warning("Saved unreadable registry to %s", backup)
            return self._empty()

        doc.setdefault("version", REGISTRY_VERSION)
        return doc

    def _save(self, doc: dict[str, Any]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps(doc, indent=2, ensure_ascii=False) + "\n", encoding="utf-8")
