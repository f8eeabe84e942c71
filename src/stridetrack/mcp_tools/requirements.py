"""MCP tools for requirement records and pipeline views."""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

from mcp.types import TextContent, Tool

from stridetrack.db_reports import data_completeness
from stridetrack.lifecycle_data import (
    DISABILITY_TYPES,
    GAP_FLAGS,
    PATHS,
    PRIORITIES,
    SOURCE_TYPES,
    TECH_LEVELS,
    THERAPY_DOMAINS,
)
from stridetrack.mcp_tools.common import (
    _error,
    _not_found,
    _resolve_pagination,
    _text,
    _validate_actor,
    _validate_str,
)

_PHASES = ["SENSING", "HARMONIZING", "DESIGNATHON", "CONVERGENCE"]


def register() -> tuple[list[Tool], dict[str, Callable[..., Any]]]:
    """Return (tool_definitions, handler_map) for requirement tools."""
    tools = [
        Tool(
            name="list_requirements",
            description="List requirements with optional filters, P1 first. Results are capped unless no_limit=true.",
            inputSchema={
                "type": "object",
                "properties": {
                    "state": {"type": "string", "description": "Filter by state id (use list_states for values)"},
                    "phase": {"type": "string", "enum": _PHASES, "description": "Filter by phase"},
                    "priority": {"type": "string", "enum": list(PRIORITIES)},
                    "source_type": {"type": "string", "enum": list(SOURCE_TYPES)},
                    "path": {"type": "string", "enum": list(PATHS), "description": "Filter by assigned build path"},
                    "limit": {"type": "integer", "default": 100, "minimum": 1},
                    "offset": {"type": "integer", "default": 0, "minimum": 0},
                    "no_limit": {"type": "boolean", "default": False},
                },
            },
        ),
        Tool(
            name="get_requirement",
            description="Get a requirement with its stage, aging, data completeness and legal next states.",
            inputSchema={
                "type": "object",
                "properties": {"id": {"type": "string", "description": "Requirement ID"}},
                "required": ["id"],
            },
        ),
        Tool(
            name="create_requirement",
            description="Capture a new requirement. It starts in S1 with a NEW -> S1 transition.",
            inputSchema={
                "type": "object",
                "properties": {
                    "title": {"type": "string"},
                    "description": {"type": "string"},
                    "source_type": {"type": "string", "enum": list(SOURCE_TYPES), "default": "OTHER"},
                    "priority": {"type": "string", "enum": list(PRIORITIES), "default": "P2"},
                    "tech_level": {"type": "string", "enum": list(TECH_LEVELS), "default": "LOW"},
                    "therapy_domains": {"type": "array", "items": {"type": "string", "enum": list(THERAPY_DOMAINS)}},
                    "disability_types": {"type": "array", "items": {"type": "string", "enum": list(DISABILITY_TYPES)}},
                    "gap_flags": {"type": "array", "items": {"type": "string", "enum": list(GAP_FLAGS)}},
                    "market_price": {"type": "number", "minimum": 0},
                    "target_price": {"type": "number", "minimum": 0},
                    "actor": {"type": "string", "description": "Agent/user identity for audit trail"},
                },
                "required": ["title"],
            },
        ),
        Tool(
            name="get_history",
            description="Transition log for a requirement, oldest first, with the phase feedback captured on each edge.",
            inputSchema={
                "type": "object",
                "properties": {"id": {"type": "string", "description": "Requirement ID"}},
                "required": ["id"],
            },
        ),
        Tool(
            name="get_aging_alerts",
            description="Requirements that have sat in their phase past its threshold, most overdue first.",
            inputSchema={
                "type": "object",
                "properties": {
                    "include_all": {
                        "type": "boolean",
                        "default": False,
                        "description": "Also list requirements still within their threshold",
                    },
                },
            },
        ),
        Tool(
            name="get_pipeline_stats",
            description="Counts by state, phase, priority and source, plus active P1, production-ready, aging and completeness.",
            inputSchema={"type": "object", "properties": {}},
        ),
    ]

    handlers: dict[str, Callable[..., Any]] = {
        "list_requirements": _handle_list_requirements,
        "get_requirement": _handle_get_requirement,
        "create_requirement": _handle_create_requirement,
        "get_history": _handle_get_history,
        "get_aging_alerts": _handle_get_aging_alerts,
        "get_pipeline_stats": _handle_get_pipeline_stats,
    }
    return tools, handlers


async def _handle_list_requirements(arguments: dict[str, Any]) -> list[TextContent]:
    from stridetrack.mcp_server import _get_db

    for key in ("state", "phase", "priority", "source_type", "path"):
        err = _validate_str(arguments.get(key), key)
        if err:
            return err
    effective_limit, offset = _resolve_pagination(arguments)
    tracker = _get_db()
    try:
        reqs = tracker.list_requirements(
            state=arguments.get("state"),
            phase=arguments.get("phase"),
            priority=arguments.get("priority"),
            source_type=arguments.get("source_type"),
            path=arguments.get("path"),
            limit=effective_limit + 1,
            offset=offset,
        )
    except ValueError as e:
        return _error(str(e), "validation_error")
    has_more = len(reqs) > effective_limit
    if has_more:
        reqs = reqs[:effective_limit]
    return _text(
        {
            "requirements": [r.to_dict() for r in reqs],
            "limit": effective_limit,
            "offset": offset,
            "has_more": has_more,
        }
    )


async def _handle_get_requirement(arguments: dict[str, Any]) -> list[TextContent]:
    from stridetrack.mcp_server import _get_db

    tracker = _get_db()
    try:
        req = tracker.get_requirement(arguments["id"])
    except KeyError:
        return _not_found(arguments["id"])
    data: dict[str, Any] = dict(req.to_dict())
    data["aging"] = tracker.get_aging(req.id).to_dict()
    data["data_completeness"] = data_completeness(req)
    data["next_states"] = tracker.get_next_states(req.id)
    return _text(data)


async def _handle_create_requirement(arguments: dict[str, Any]) -> list[TextContent]:
    from stridetrack.mcp_server import _get_db, _refresh_pulse

    actor, actor_err = _validate_actor(arguments.get("actor", "mcp"))
    if actor_err:
        return actor_err
    title = arguments.get("title")
    if not isinstance(title, str):
        return _error("title must be a string", "validation_error")
    tracker = _get_db()
    try:
        req = tracker.create_requirement(
            title,
            description=arguments.get("description", ""),
            source_type=arguments.get("source_type", "OTHER"),
            priority=arguments.get("priority", "P2"),
            tech_level=arguments.get("tech_level", "LOW"),
            therapy_domains=arguments.get("therapy_domains"),
            disability_types=arguments.get("disability_types"),
            gap_flags=arguments.get("gap_flags"),
            market_price=arguments.get("market_price"),
            target_price=arguments.get("target_price"),
            actor=actor,
        )
    except (TypeError, ValueError) as e:
        return _error(str(e), "validation_error")
    _refresh_pulse()
    return _text(req.to_dict())


async def _handle_get_history(arguments: dict[str, Any]) -> list[TextContent]:
    from stridetrack.mcp_server import _get_db

    try:
        history = _get_db().get_history(arguments["id"])
    except KeyError:
        return _not_found(arguments["id"])
    return _text(history)


async def _handle_get_aging_alerts(arguments: dict[str, Any]) -> list[TextContent]:
    from stridetrack.mcp_server import _get_db

    return _text(_get_db().get_aging_alerts(include_all=bool(arguments.get("include_all", False))))


async def _handle_get_pipeline_stats(arguments: dict[str, Any]) -> list[TextContent]:
    from stridetrack.mcp_server import _get_db

    return _text(_get_db().get_pipeline_stats())
