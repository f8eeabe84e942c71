"""MCP server for the stridetrack requirement tracker.

Primary interface for agents. Direct SQLite, no daemon.
Exposes the lifecycle engine, DoE and designathon records, and the
pipeline views as MCP tools.

Usage:
    stridetrack-mcp                              # Auto-discover .stridetrack/ from cwd
    stridetrack-mcp --project /path/to/project   # Explicit project root
"""

from __future__ import annotations

import argparse
import logging
import sys
import time
from collections.abc import Callable
from pathlib import Path
from typing import Any

from mcp.server import Server
from mcp.server.stdio import stdio_server
from mcp.types import Resource, TextContent, Tool

from stridetrack.core import (
    STRIDETRACK_DIR_NAME,
    SUMMARY_FILENAME,
    StrideDB,
    find_stridetrack_root,
)
from stridetrack.mcp_tools import build as _build_tools
from stridetrack.mcp_tools import lifecycle as _lifecycle_tools
from stridetrack.mcp_tools import requirements as _requirement_tools
from stridetrack.mcp_tools.common import _error
from stridetrack.reports import generate_pulse, write_pulse

server = Server("stridetrack")
db: StrideDB | None = None
_stride_dir: Path | None = None
_logger: logging.Logger | None = None

_TOOLS: list[Tool] = []
_HANDLERS: dict[str, Callable[..., Any]] = {}
for _module in (_requirement_tools, _lifecycle_tools, _build_tools):
    _tools, _handlers = _module.register()
    _TOOLS.extend(_tools)
    _HANDLERS.update(_handlers)


def _get_db() -> StrideDB:
    if db is None:
        msg = "Database not initialized"
        raise RuntimeError(msg)
    return db


def _refresh_pulse() -> None:
    """Regenerate pulse.md after mutations (best-effort, never fatal)."""
    if _stride_dir is not None:
        try:
            write_pulse(_get_db(), _stride_dir / SUMMARY_FILENAME)
        except OSError:
            (_logger or logging.getLogger(__name__)).warning("Failed to write pulse.md", exc_info=True)


# ---------------------------------------------------------------------------
# Resources
# ---------------------------------------------------------------------------

PULSE_URI = "stridetrack://pulse"


@server.list_resources()  # type: ignore[untyped-decorator,no-untyped-call]
async def list_resources() -> list[Resource]:
    return [
        Resource(
            uri=PULSE_URI,  # type: ignore[arg-type]
            name="Pipeline Pulse",
            description="Auto-generated pipeline summary: vitals, phase counts, aging alerts, recent activity",
            mimeType="text/markdown",
        ),
    ]


@server.read_resource()  # type: ignore[untyped-decorator,no-untyped-call]
async def read_pulse(uri: Any) -> str:
    if str(uri) == PULSE_URI:
        return generate_pulse(_get_db())
    msg = f"Unknown resource: {uri}"
    raise ValueError(msg)


# ---------------------------------------------------------------------------
# Tool definitions and dispatch
# ---------------------------------------------------------------------------


@server.list_tools()  # type: ignore[untyped-decorator,no-untyped-call]
async def list_tools() -> list[Tool]:
    return list(_TOOLS)


@server.call_tool()  # type: ignore[untyped-decorator]
async def call_tool(name: str, arguments: dict[str, Any]) -> list[TextContent]:
    tracker = _get_db()
    t0 = time.monotonic()

    try:
        handler = _HANDLERS.get(name)
        if handler is None:
            result = _error(f"Unknown tool: {name}", "unknown_tool")
        else:
            result = await handler(arguments)
    except Exception:
        if _logger:
            _logger.error("tool_error", extra={"tool": name, "args_data": arguments}, exc_info=True)
        raise
    else:
        duration_ms = round((time.monotonic() - t0) * 1000, 1)
        if _logger:
            _logger.info("tool_call", extra={"tool": name, "args_data": arguments, "duration_ms": duration_ms})
        return result
    finally:
        # Roll back anything a failed mutation left uncommitted.
        if tracker.conn.in_transaction:
            tracker.conn.rollback()


async def _run(project_path: Path | None) -> None:
    global db, _stride_dir, _logger

    if project_path:
        stride_dir = project_path / STRIDETRACK_DIR_NAME
        if not stride_dir.is_dir():
            print(f"Error: {stride_dir} not found. Run 'stridetrack init' first.", file=sys.stderr)
            sys.exit(1)
    else:
        try:
            stride_dir = find_stridetrack_root()
        except FileNotFoundError:
            print(f"Error: No {STRIDETRACK_DIR_NAME}/ found. Run 'stridetrack init' first.", file=sys.stderr)
            sys.exit(1)

    _stride_dir = stride_dir
    db = StrideDB.from_project(stride_dir.parent)

    from stridetrack.logging import setup_logging

    _logger = setup_logging(stride_dir)
    _logger.info("mcp_server_start", extra={"tool": "server", "args_data": {"project": str(stride_dir.parent)}})

    async with stdio_server() as (read_stream, write_stream):
        await server.run(read_stream, write_stream, server.create_initialization_options())


def main() -> None:
    import asyncio

    parser = argparse.ArgumentParser(description="Stridetrack MCP server")
    parser.add_argument("--project", type=Path, default=None, help="Project root (auto-discovers .stridetrack/ if omitted)")
    args = parser.parse_args()

    asyncio.run(_run(args.project))


if __name__ == "__main__":
    main()
