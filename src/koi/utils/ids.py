"""Memory ids and filenames."""

from __future__ import annotations

import secrets
from datetime import datetime

MEMORY_ID_PREFIX = "mem_"


def new_memory_id() -> str:
    """``mem_`` followed by 16 random hex characters (8 bytes)."""
    return f"{MEMORY_ID_PREFIX}{secrets.token_hex(8)}"


def new_filename(now: datetime | None = None) -> str:
    """``HHMMSS_xxxx.md`` in local time, so files sort by time within a day."""
    now = now or datetime.now()
    return f"{now.strftime('%H%M%S')}_{secrets.token_hex(2)}.md"
