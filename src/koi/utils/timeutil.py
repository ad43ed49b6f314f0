"""Millisecond timestamps, date directory keys and ``since`` parsing."""

from __future__ import annotations

import re
import time
from datetime import date, datetime, timedelta, timezone

_RELATIVE_RE = re.compile(r"^(\d+)([hdw])$")
_DATE_ONLY_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")
_FRACTION_RE = re.compile(r"(?<=:\d{2})\.(\d+)")
_COMPACT_OFFSET_RE = re.compile(r"(:\d{2}(?:\.\d+)?)([+-]\d{2})(\d{2})$")

# Common non-ISO calendar forms, read as local time.
_LOOSE_FORMATS = (
    "%Y/%m/%d",
    "%Y/%m/%d %H:%M",
    "%Y/%m/%d %H:%M:%S",
    "%b %d, %Y",
    "%B %d, %Y",
    "%d %b %Y",
    "%d %B %Y",
)

_UNIT_MS = {
    "h": 60 * 60 * 1000,
    "d": 24 * 60 * 60 * 1000,
    "w": 7 * 24 * 60 * 60 * 1000,
}


def now_ms() -> int:
    return int(time.time() * 1000)


def date_key(timestamp_ms: int) -> str:
    """UTC ``YYYY-MM-DD`` for a millisecond timestamp."""
    return datetime.fromtimestamp(timestamp_ms / 1000, tz=timezone.utc).strftime("%Y-%m-%d")


def _local_midnight(day: date) -> int:
    midnight = datetime(day.year, day.month, day.day)
    return int(midnight.timestamp() * 1000)


def parse_since(since: str | None, now: int | None = None) -> int | None:
    """Turn a ``since`` filter into a millisecond lower bound.

    Accepts ``12h``, ``1d``, ``2w``, ``today``, ``yesterday``, ISO-8601 dates
    or datetimes (any fraction length, ``Z`` or ``+HHMM`` offsets) and a few
    common calendar forms such as ``2026/02/01`` or ``Feb 1, 2026``. Returns
    None for anything else, which callers treat as "no recency filter".
    """
    if not since:
        return None
    text = since.strip()
    current = now if now is not None else now_ms()

    m = _RELATIVE_RE.match(text)
    if m:
        amount, unit = m.groups()
        return current - int(amount) * _UNIT_MS[unit]

    if text == "today":
        return _local_midnight(date.today())
    if text == "yesterday":
        return _local_midnight(date.today() - timedelta(days=1))

    return _parse_datetime(text)


def _parse_datetime(text: str) -> int | None:
    # Date-only strings are UTC midnight; naive datetimes are local time.
    if _DATE_ONLY_RE.match(text):
        try:
            d = datetime.strptime(text, "%Y-%m-%d").replace(tzinfo=timezone.utc)
        except ValueError:
            return None
        return int(d.timestamp() * 1000)

    iso = _normalize_iso(text)
    try:
        dt = datetime.fromisoformat(iso)
    except ValueError:
        dt = _parse_loose(text)
        if dt is None:
            return None
    try:
        if dt.tzinfo is None:
            dt = dt.astimezone()
        return int(dt.timestamp() * 1000)
    except (OverflowError, OSError, ValueError):
        return None


def _normalize_iso(text: str) -> str:
    """Rewrite ISO-8601 variants ``fromisoformat`` rejects on older Pythons."""
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    # Fractions must be exactly 6 digits: ".5" -> ".500000".
    text = _FRACTION_RE.sub(lambda m: "." + m.group(1)[:6].ljust(6, "0"), text)
    # "+0200" -> "+02:00"
    return _COMPACT_OFFSET_RE.sub(r"\1\2:\3", text)


def _parse_loose(text: str) -> datetime | None:
    for fmt in _LOOSE_FORMATS:
        try:
            return datetime.strptime(text, fmt)
        except ValueError:
            continue
    return None


def format_relative_time(timestamp_ms: int, now: int | None = None) -> str:
    """Human-readable age, e.g. ``5 min ago`` or ``2 days ago``."""
    diff = (now if now is not None else now_ms()) - timestamp_ms

    seconds = diff // 1000
    minutes = diff // (60 * 1000)
    hours = diff // (60 * 60 * 1000)
    days = diff // (24 * 60 * 60 * 1000)

    if seconds < 60:
        return "just now"
    if minutes < 60:
        return f"{minutes} min ago"
    if hours < 24:
        return f"{hours} hour{'s' if hours > 1 else ''} ago"
    return f"{days} day{'s' if days > 1 else ''} ago"
