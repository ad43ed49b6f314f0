"""MCP tools for agent memory access.

``remember`` and ``recall`` are exposed to the agent through the MCP server
(or called directly from the command line). Each tool takes the raw
JSON-RPC ``arguments`` dict, validates it, and returns display text.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import TYPE_CHECKING, Any

from koi.errors import InvalidInputError
from koi.memory.recall import SCOPES, RecallRequest, recall
from koi.memory.registry import ProjectRegistry
from koi.memory.remember import remember
from koi.memory.search import get_scorer
from koi.utils.timeutil import format_relative_time

if TYPE_CHECKING:
    from koi.config import KoiConfig
    from koi.memory.record import MemoryRecord

logger = logging.getLogger(__name__)

ToolHandler = Callable[[dict[str, Any]], str]

REMEMBER_SCHEMA: dict[str, Any] = {
    "name": "remember",
    "description": (
        "Create a persistent memory that survives across sessions.\n\n"
        "Use this proactively. When you complete a task, make a decision, learn "
        "something important about the codebase, or figure out a tricky bug, "
        "remember it. Future you (or another agent) will thank you for leaving "
        "breadcrumbs.\n\n"
        "Write memories in markdown. Be specific. Include what you did or decided, "
        "why (reasoning, constraints, trade-offs), which files were involved, and "
        "any gotchas. Tags are optional but help with filtering later."
    ),
    "inputSchema": {
        "type": "object",
        "properties": {
            "content": {
                "type": "string",
                "description": "The memory content in markdown format",
            },
            "tags": {
                "type": "array",
                "items": {"type": "string"},
                "description": "Optional tags for categorization",
            },
        },
        "required": ["content"],
    },
}

RECALL_SCHEMA: dict[str, Any] = {
    "name": "recall",
    "description": (
        "Search your persistent memories.\n\n"
        "USE THIS AT THE START OF EVERY SESSION. Before diving into a task, check "
        "what you (or previous agents) already learned:\n"
        "  recall()                              # Recent memories in this project\n"
        '  recall({ query: "auth" })             # Search for auth-related memories\n'
        '  recall({ since: "1w" })               # Last week\'s work\n'
        '  recall({ scope: "global" })           # All projects (for standups)\n'
        '  recall({ scope: "global", since: "yesterday" })  # What did I work on?\n\n'
        "Don't re-investigate solved problems."
    ),
    "inputSchema": {
        "type": "object",
        "properties": {
            "query": {"type": "string", "description": "Fuzzy search query"},
            "tags": {
                "type": "array",
                "items": {"type": "string"},
                "description": "Filter by tags (matches ANY)",
            },
            "since": {
                "type": "string",
                "description": 'Time filter: "12h", "1d", "1w", "today", "yesterday", or ISO date',
            },
            "limit": {"type": "number", "description": "Max results (default: 10)"},
            "scope": {
                "type": "string",
                "enum": list(SCOPES),
                "description": "Search scope (default: project)",
            },
        },
        "required": [],
    },
}

TOOL_SCHEMAS = [REMEMBER_SCHEMA, RECALL_SCHEMA]


# ── Argument validation ──────────────────────────────────────


def _optional_str(args: dict[str, Any], key: str) -> str | None:
    value = args.get(key)
    if value is None or isinstance(value, str):
        return value
    raise InvalidInputError(f"'{key}' must be a string")


def _optional_tags(args: dict[str, Any]) -> list[str]:
    tags = args.get("tags")
    if tags is None:
        return []
    if not isinstance(tags, list) or not all(isinstance(t, str) for t in tags):
        raise InvalidInputError("'tags' must be a list of strings")
    return tags


def _limit(args: dict[str, Any], default: int) -> int:
    value = args.get("limit")
    if value is None:
        return default
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise InvalidInputError("'limit' must be an integer")
    if isinstance(value, float) and not value.is_integer():
        raise InvalidInputError("'limit' must be an integer")
    return int(value)


def parse_recall_args(args: dict[str, Any], default_limit: int = 10) -> RecallRequest:
    """Validate raw ``recall`` arguments into a RecallRequest."""
    scope = args.get("scope") or "project"
    if scope not in SCOPES:
        raise InvalidInputError(f"Unknown scope '{scope}'. Expected one of: {', '.join(SCOPES)}")
    return RecallRequest(
        query=_optional_str(args, "query"),
        tags=_optional_tags(args),
        since=_optional_str(args, "since"),
        limit=_limit(args, default_limit),
        scope=scope,
    )


# ── Formatting ───────────────────────────────────────────────


def format_memory(memory: MemoryRecord, now: int | None = None) -> str:
    header = f"[{memory.project}] {memory.id}" if memory.project else memory.id
    header += f" · {format_relative_time(memory.timestamp, now=now)}"
    tags = f"\nTags: {', '.join(memory.tags)}" if memory.tags else ""
    dirty = " (dirty)" if memory.git.dirty else ""
    git = f"\nGit: {memory.git.branch}@{memory.git.commit}{dirty}"
    return f"### {header}{tags}{git}\n\n{memory.content}"


def format_memories(memories: list[MemoryRecord], now: int | None = None) -> str:
    if not memories:
        return "No memories found."
    body = "\n\n---\n\n".join(format_memory(m, now=now) for m in memories)
    return f"Found {len(memories)} memories:\n\n{body}"


# ── Tools ────────────────────────────────────────────────────


def get_memory_tools(config: KoiConfig) -> dict[str, ToolHandler]:
    """Return a dict of tool_name -> callable for memory operations.

    These can be registered as MCP tools or called directly.
    """
    registry = ProjectRegistry(config.registry_path)
    scorer = get_scorer(config.recall.scorer, config.recall.threshold)

    def remember_tool(args: dict[str, Any]) -> str:
        """Create a memory in the current project."""
        result = remember(
            args.get("content"),
            args.get("tags"),
            config.project_dir,
            registry,
            memories_dirname=config.memories_dirname,
            git_timeout=config.git_timeout,
        )
        return f"Memory created: {result.id}\nPath: {result.path}"

    def recall_tool(args: dict[str, Any]) -> str:
        """Search memories in this project or across all registered projects."""
        request = parse_recall_args(args, config.recall.default_limit)
        memories = recall(
            request,
            config.project_dir,
            registry,
            scorer=scorer,
            memories_dirname=config.memories_dirname,
        )
        return format_memories(memories)

    return {
        "remember": remember_tool,
        "recall": recall_tool,
    }
