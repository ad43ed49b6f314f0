"""MCP server: koi remember/recall tools over stdio.

Protocol: JSON-RPC 2.0 over stdio (NDJSON), one message per line. Logging
goes to stderr; stdout carries protocol messages only.
"""

from __future__ import annotations

import asyncio
import json
import logging
import sys
from typing import Any

from koi.config import KoiConfig
from koi.errors import KoiError
from koi.tools.memory_tools import TOOL_SCHEMAS, ToolHandler, get_memory_tools

logger = logging.getLogger(__name__)

# ── Constants ────────────────────────────────────────────────

SERVER_NAME = "koi"
SERVER_VERSION = "0.1.0"
PROTOCOL_VERSION = "2024-11-05"

# ── JSON-RPC 2.0 helpers ─────────────────────────────────────


def jsonrpc_result(req_id, result):
    return {"jsonrpc": "2.0", "id": req_id, "result": result}


def jsonrpc_error(req_id, code, message):
    return {"jsonrpc": "2.0", "id": req_id, "error": {"code": code, "message": message}}


def text_result(text: str, is_error: bool = False) -> dict[str, Any]:
    result: dict[str, Any] = {"content": [{"type": "text", "text": text}]}
    if is_error:
        result["isError"] = True
    return result


# ── Request handler ──────────────────────────────────────────


async def call_tool(tools: dict[str, ToolHandler], name: str, args: dict[str, Any]) -> dict:
    """Run a tool in a worker thread and wrap its text (or error) as a tool result."""
    handler = tools.get(name)
    if handler is None:
        return text_result(f"Unknown tool: {name}", is_error=True)

    try:
        text = await asyncio.to_thread(handler, args)
    except KoiError as e:
        logger.info("Tool %s rejected input: %s", name, e)
        return text_result(f"Error: {e}", is_error=True)
    except Exception as e:
        logger.exception("Tool %s failed", name)
        return text_result(f"Error: {e}", is_error=True)
    return text_result(text)


async def handle_request(req: dict, tools: dict[str, ToolHandler]) -> dict | None:
    req_id = req.get("id")
    method = req.get("method", "")

    # Notifications (no id) get no response
    if req_id is None:
        if method == "notifications/initialized":
            logger.info("Client initialized")
        return None

    if method == "initialize":
        return jsonrpc_result(req_id, {
            "protocolVersion": PROTOCOL_VERSION,
            "capabilities": {"tools": {}},
            "serverInfo": {"name": SERVER_NAME, "version": SERVER_VERSION},
        })

    if method == "ping":
        return jsonrpc_result(req_id, {})

    if method == "tools/list":
        return jsonrpc_result(req_id, {"tools": TOOL_SCHEMAS})

    if method == "tools/call":
        params = req.get("params") or {}
        if not isinstance(params, dict):
            params = {}
        tool_name = params.get("name", "")
        args = params.get("arguments") or {}
        if not tool_name or not isinstance(args, dict):
            return jsonrpc_error(req_id, -32602, "Invalid params: expected {name, arguments}")
        return jsonrpc_result(req_id, await call_tool(tools, tool_name, args))

    return jsonrpc_error(req_id, -32601, f"Method not found: {method}")


# ── Stdio transport (NDJSON) ─────────────────────────────────


async def serve(config: KoiConfig) -> None:
    tools = get_memory_tools(config)
    logger.info(
        "Koi MCP server started (project=%s, registry=%s)",
        config.project_dir,
        config.registry_path,
    )

    reader = asyncio.StreamReader()
    protocol = asyncio.StreamReaderProtocol(reader)
    await asyncio.get_running_loop().connect_read_pipe(lambda: protocol, sys.stdin)

    while True:
        line = await reader.readline()
        if not line:
            break
        line = line.decode("utf-8").strip()
        if not line:
            continue

        try:
            req = json.loads(line)
        except json.JSONDecodeError as e:
            logger.warning("Parse error: %s", e)
            continue
        if not isinstance(req, dict):
            logger.warning("Ignoring non-object message")
            continue

        logger.debug("<- %s", req.get("method", "?"))
        response = await handle_request(req, tools)
        if response:
            sys.stdout.write(json.dumps(response, ensure_ascii=False) + "\n")
            sys.stdout.flush()

    logger.info("Koi MCP server stopped.")
