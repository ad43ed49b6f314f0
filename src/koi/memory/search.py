"""Filtering and fuzzy ranking of memories.

Scorers map ``(query, text)`` to a distance in ``[0, 1]`` where 0 is a
perfect match; a candidate survives when its score is at or below the
scorer's threshold. The pipeline in ``search_memories`` does not care which
scorer it gets.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from difflib import SequenceMatcher
from typing import Protocol, runtime_checkable

from koi.memory.record import MemoryRecord

DEFAULT_LIMIT = 10


@runtime_checkable
class Scorer(Protocol):
    """Similarity function used to rank memory content against a query."""

    name: str
    threshold: float

    def score(self, query: str, text: str) -> float:
        """Distance in [0, 1]; 0 means the query matches exactly."""
        ...


@dataclass
class SubstringScorer:
    """Approximate substring match, case-insensitive, anywhere in the text.

    Score is the fewest edits needed to turn the query into some substring
    of the text, divided by the query length. A 14-character query at the
    default threshold tolerates two typos. Anything worse than the threshold
    scores 1.0.
    """

    threshold: float = 0.15
    name: str = "substring"

    def score(self, query: str, text: str) -> float:
        q = query.lower()
        t = text.lower()
        if not q or q in t:
            return 0.0

        max_edits = self.threshold * len(q)
        # Row i holds the cost of matching q[:i] ending at each text position;
        # row 0 is all zeros so a match may start anywhere.
        prev = [0] * (len(t) + 1)
        for i, qc in enumerate(q, start=1):
            cur = [i] + [0] * len(t)
            for j, tc in enumerate(t, start=1):
                cur[j] = min(
                    prev[j] + 1,
                    cur[j - 1] + 1,
                    prev[j - 1] + (qc != tc),
                )
            # Row minima never decrease.
            if min(cur) > max_edits:
                return 1.0
            prev = cur
        return min(prev) / len(q)


@dataclass
class SequenceScorer:
    """difflib ratio of the query against same-length word windows of the text."""

    threshold: float = 0.3
    name: str = "sequence"

    def score(self, query: str, text: str) -> float:
        q_words = query.lower().split()
        t_words = text.lower().split()
        if not q_words:
            return 0.0
        if not t_words:
            return 1.0

        needle = " ".join(q_words)
        width = len(q_words)
        best = 0.0
        matcher = SequenceMatcher(autojunk=False)
        matcher.set_seq2(needle)
        for start in range(max(1, len(t_words) - width + 1)):
            matcher.set_seq1(" ".join(t_words[start : start + width]))
            best = max(best, matcher.ratio())
            if best == 1.0:
                break
        return 1.0 - best


_SCORERS: dict[str, type] = {
    "substring": SubstringScorer,
    "sequence": SequenceScorer,
}


def get_scorer(name: str = "substring", threshold: float | None = None) -> Scorer:
    """Build a scorer by name, optionally overriding its threshold."""
    cls = _SCORERS.get(name)
    if cls is None:
        raise ValueError(f"Unknown scorer '{name}'. Available: {sorted(_SCORERS)}")
    return cls() if threshold is None else cls(threshold=threshold)


@dataclass
class SearchOptions:
    query: str | None = None
    tags: list[str] = field(default_factory=list)
    since: int | None = None
    limit: int = DEFAULT_LIMIT


def rank(records: list[MemoryRecord], query: str, scorer: Scorer) -> list[MemoryRecord]:
    """Keep records whose content is close enough to ``query``, best first.

    Equal scores keep their incoming order.
    """
    scored = [(scorer.score(query, r.content), r) for r in records]
    kept = [(s, r) for s, r in scored if s <= scorer.threshold]
    kept.sort(key=lambda pair: pair[0])
    return [r for _, r in kept]


def search_memories(
    records: list[MemoryRecord],
    options: SearchOptions,
    scorer: Scorer | None = None,
) -> list[MemoryRecord]:
    """Apply since → tags → query → limit, in that order.

    ``records`` is expected most-recent-first; that order is kept when no
    query is given.
    """
    filtered = records

    if options.since is not None:
        filtered = [m for m in filtered if m.timestamp >= options.since]

    if options.tags:
        wanted = set(options.tags)
        filtered = [m for m in filtered if wanted.intersection(m.tags)]

    query = (options.query or "").strip()
    if query:
        filtered = rank(filtered, query, scorer or SubstringScorer())

    if options.limit <= 0:
        return []
    return filtered[: options.limit]
