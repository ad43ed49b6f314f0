"""Best-effort git metadata for new memories.

Nothing here raises: outside a repository, without a ``git`` binary, or when
a command fails or times out, callers get ``GitContext.unknown()``.
"""

from __future__ import annotations

import logging
import subprocess
from pathlib import Path

from koi.memory.record import UNKNOWN, GitContext

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 10


def _run_git(args: list[str], cwd: Path | str | None, timeout: float) -> str | None:
    """Run one git command. Returns stdout (right-stripped) or None on failure."""
    try:
        result = subprocess.run(
            ["git", *args],
            capture_output=True,
            text=True,
            cwd=cwd,
            timeout=timeout,
        )
    except FileNotFoundError:
        logger.debug("git not found; using unknown git context")
        return None
    except subprocess.TimeoutExpired:
        logger.warning("git %s timed out after %ss", " ".join(args), timeout)
        return None
    except OSError as e:
        logger.debug("git %s failed: %s", " ".join(args), e)
        return None

    if result.returncode != 0:
        logger.debug("git %s exited %d", " ".join(args), result.returncode)
        return None
    return result.stdout.rstrip()


def parse_porcelain(status: str) -> list[str]:
    """Paths from ``git status --porcelain`` output (``XY path`` per line)."""
    return [line[3:] for line in status.splitlines() if len(line) > 3]


def get_git_context(cwd: Path | str | None = None, timeout: float = DEFAULT_TIMEOUT) -> GitContext:
    """Capture branch, short commit, dirty flag and changed files for ``cwd``."""
    if not _run_git(["rev-parse", "--show-toplevel"], cwd, timeout):
        return GitContext.unknown()

    branch = (_run_git(["branch", "--show-current"], cwd, timeout) or "").strip() or UNKNOWN
    commit = (_run_git(["rev-parse", "--short", "HEAD"], cwd, timeout) or "").strip() or UNKNOWN
    status = _run_git(["status", "--porcelain"], cwd, timeout) or ""

    return GitContext(
        branch=branch,
        commit=commit,
        dirty=bool(status.strip()),
        files_changed=parse_porcelain(status),
    )
