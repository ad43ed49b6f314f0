"""Entry point: python -m koi [serve|remember|recall]

- No args / "serve": MCP server on stdio (what agents connect to)
- "remember":        Store one memory for the current project
- "recall":          Search memories and print them
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys

from koi.config import load_config
from koi.errors import KoiError


def _setup_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
        stream=sys.stderr,
    )


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="koi", description="Persistent memories for coding agents.")
    sub = parser.add_subparsers(dest="cmd")

    sub.add_parser("serve", help="Run the MCP server on stdio (default).")

    p_rem = sub.add_parser("remember", help="Store a memory for the current project.")
    p_rem.add_argument("content", help="Memory content (markdown). Use '-' to read stdin.")
    p_rem.add_argument("--tag", action="append", dest="tags", default=None, help="Tag (repeatable).")

    p_rec = sub.add_parser("recall", help="Search memories.")
    p_rec.add_argument("query", nargs="?", default=None, help="Fuzzy search query.")
    p_rec.add_argument("--tag", action="append", dest="tags", default=None, help="Tag (repeatable, matches any).")
    p_rec.add_argument("--since", default=None, help='e.g. "12h", "1d", "1w", "yesterday", "2026-02-01".')
    p_rec.add_argument("--limit", type=int, default=None, help="Max results.")
    p_rec.add_argument("--global", dest="scope", action="store_const", const="global", default="project",
                       help="Search every registered project.")
    return parser


def _run_serve() -> None:
    config = load_config()
    _setup_logging(config.log_level)

    from koi.server import serve

    asyncio.run(serve(config))


def _run_tool(name: str, args: dict) -> int:
    config = load_config()
    _setup_logging(config.log_level)

    from koi.tools.memory_tools import get_memory_tools

    tools = get_memory_tools(config)
    try:
        print(tools[name](args))
    except KoiError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    return 0


def main(argv: list[str] | None = None) -> None:
    ns = _build_parser().parse_args(argv)

    if ns.cmd in (None, "serve"):
        try:
            _run_serve()
        except KeyboardInterrupt:
            pass
        return

    if ns.cmd == "remember":
        content = sys.stdin.read() if ns.content == "-" else ns.content
        args = {"content": content, "tags": ns.tags}
    else:
        args = {"query": ns.query, "tags": ns.tags, "since": ns.since, "limit": ns.limit, "scope": ns.scope}
    sys.exit(_run_tool(ns.cmd, args))


if __name__ == "__main__":
    main()
