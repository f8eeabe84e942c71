"""MCP tools for build-phase records: DoE results, designathon events and teams."""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

from mcp.types import TextContent, Tool

from stridetrack.db_designathon import EVENT_STATUSES
from stridetrack.db_doe import DOE_METRICS
from stridetrack.mcp_tools.common import (
    _error,
    _not_found,
    _text,
    _validate_actor,
    _validate_str,
)

_SCORES_SCHEMA: dict[str, Any] = {
    "type": "object",
    "properties": {m: {"type": "number", "minimum": 0, "maximum": 10} for m in DOE_METRICS},
    "additionalProperties": False,
}


def register() -> tuple[list[Tool], dict[str, Callable[..., Any]]]:
    """Return (tool_definitions, handler_map) for DoE and designathon tools."""
    tools = [
        Tool(
            name="get_doe_record",
            description="DoE record (pre/post scores, improvements) for a requirement's current or given revision.",
            inputSchema={
                "type": "object",
                "properties": {
                    "id": {"type": "string", "description": "Requirement ID"},
                    "revision_number": {"type": "integer", "minimum": 0},
                },
                "required": ["id"],
            },
        ),
        Tool(
            name="record_doe",
            description=(
                "Save the DoE record for the current revision (H-DOE-1..H-DOE-4 only). Scores are 0-10 "
                "in steps of 0.5; metrics left out count as 0. Saving again replaces the record."
            ),
            inputSchema={
                "type": "object",
                "properties": {
                    "id": {"type": "string", "description": "Requirement ID"},
                    "testing_protocol": {"type": "string"},
                    "sample_size": {"type": "integer", "minimum": 1},
                    "pre_test": _SCORES_SCHEMA,
                    "post_test": _SCORES_SCHEMA,
                    "results_summary": {"type": "string"},
                    "beneficiary_feedback": {"type": "string"},
                    "actor": {"type": "string", "description": "Agent/user identity for audit trail"},
                },
                "required": ["id"],
            },
        ),
        Tool(
            name="list_designathon_events",
            description="Designathon events, newest first, with team counts.",
            inputSchema={
                "type": "object",
                "properties": {"status": {"type": "string", "enum": list(EVENT_STATUSES)}},
            },
        ),
        Tool(
            name="get_designathon_event",
            description="One designathon event with its teams.",
            inputSchema={
                "type": "object",
                "properties": {"event_id": {"type": "integer"}},
                "required": ["event_id"],
            },
        ),
        Tool(
            name="create_designathon_event",
            description="Create a designathon event in status 'planned'. Dates are YYYY-MM-DD.",
            inputSchema={
                "type": "object",
                "properties": {
                    "title": {"type": "string"},
                    "description": {"type": "string"},
                    "start_date": {"type": "string"},
                    "end_date": {"type": "string"},
                    "actor": {"type": "string", "description": "Agent/user identity for audit trail"},
                },
                "required": ["title"],
            },
        ),
        Tool(
            name="set_designathon_event_status",
            description="Move a designathon event to planned, active or completed.",
            inputSchema={
                "type": "object",
                "properties": {
                    "event_id": {"type": "integer"},
                    "status": {"type": "string", "enum": list(EVENT_STATUSES)},
                },
                "required": ["event_id", "status"],
            },
        ),
        Tool(
            name="add_designathon_team",
            description=(
                "Add a team to an event that is not completed. A linked requirement must be in a designathon state."
            ),
            inputSchema={
                "type": "object",
                "properties": {
                    "event_id": {"type": "integer"},
                    "team_name": {"type": "string"},
                    "members": {"type": "array", "items": {"type": "string"}},
                    "requirement_id": {"type": "string"},
                    "actor": {"type": "string", "description": "Agent/user identity for audit trail"},
                },
                "required": ["event_id", "team_name"],
            },
        ),
        Tool(
            name="update_designathon_team",
            description="Record a team's submission URL, judging score (0-100) or requirement link.",
            inputSchema={
                "type": "object",
                "properties": {
                    "team_id": {"type": "integer"},
                    "submission_url": {"type": "string"},
                    "score": {"type": "number", "minimum": 0, "maximum": 100},
                    "requirement_id": {"type": "string"},
                    "actor": {"type": "string", "description": "Agent/user identity for audit trail"},
                },
                "required": ["team_id"],
            },
        ),
    ]

    handlers: dict[str, Callable[..., Any]] = {
        "get_doe_record": _handle_get_doe_record,
        "record_doe": _handle_record_doe,
        "list_designathon_events": _handle_list_designathon_events,
        "get_designathon_event": _handle_get_designathon_event,
        "create_designathon_event": _handle_create_designathon_event,
        "set_designathon_event_status": _handle_set_designathon_event_status,
        "add_designathon_team": _handle_add_designathon_team,
        "update_designathon_team": _handle_update_designathon_team,
    }
    return tools, handlers


def _missing(exc: KeyError) -> list[TextContent]:
    return _error(str(exc.args[0]) if exc.args else "Not found", "not_found")


# -- DoE ---------------------------------------------------------------------


async def _handle_get_doe_record(arguments: dict[str, Any]) -> list[TextContent]:
    from stridetrack.mcp_server import _get_db

    try:
        record = _get_db().get_doe_record(arguments["id"], revision_number=arguments.get("revision_number"))
    except KeyError:
        return _not_found(arguments["id"])
    if record is None:
        return _error(f"No DoE record for {arguments['id']}", "not_found")
    return _text(record)


async def _handle_record_doe(arguments: dict[str, Any]) -> list[TextContent]:
    from stridetrack.mcp_server import _get_db, _refresh_pulse

    actor, actor_err = _validate_actor(arguments.get("actor", "mcp"))
    if actor_err:
        return actor_err
    for key in ("testing_protocol", "results_summary", "beneficiary_feedback"):
        err = _validate_str(arguments.get(key), key)
        if err:
            return err
    try:
        record = _get_db().record_doe(
            arguments["id"],
            testing_protocol=arguments.get("testing_protocol", ""),
            sample_size=arguments.get("sample_size"),
            pre_test=arguments.get("pre_test"),
            post_test=arguments.get("post_test"),
            results_summary=arguments.get("results_summary", ""),
            beneficiary_feedback=arguments.get("beneficiary_feedback", ""),
            recorded_by=actor,
        )
    except KeyError:
        return _not_found(arguments["id"])
    except ValueError as e:
        return _error(str(e), "validation_error")
    _refresh_pulse()
    return _text(record)


# -- Designathon -------------------------------------------------------------


async def _handle_list_designathon_events(arguments: dict[str, Any]) -> list[TextContent]:
    from stridetrack.mcp_server import _get_db

    try:
        return _text(_get_db().list_designathon_events(status=arguments.get("status")))
    except ValueError as e:
        return _error(str(e), "validation_error")


async def _handle_get_designathon_event(arguments: dict[str, Any]) -> list[TextContent]:
    from stridetrack.mcp_server import _get_db

    try:
        return _text(_get_db().get_designathon_event(arguments["event_id"]))
    except KeyError as e:
        return _missing(e)


async def _handle_create_designathon_event(arguments: dict[str, Any]) -> list[TextContent]:
    from stridetrack.mcp_server import _get_db

    actor, actor_err = _validate_actor(arguments.get("actor", "mcp"))
    if actor_err:
        return actor_err
    for key in ("title", "description", "start_date", "end_date"):
        err = _validate_str(arguments.get(key), key)
        if err:
            return err
    try:
        event = _get_db().create_designathon_event(
            arguments["title"],
            description=arguments.get("description", ""),
            start_date=arguments.get("start_date"),
            end_date=arguments.get("end_date"),
            created_by=actor,
        )
    except ValueError as e:
        return _error(str(e), "validation_error")
    return _text(event)


async def _handle_set_designathon_event_status(arguments: dict[str, Any]) -> list[TextContent]:
    from stridetrack.mcp_server import _get_db

    try:
        event = _get_db().set_designathon_event_status(arguments["event_id"], str(arguments["status"]))
    except KeyError as e:
        return _missing(e)
    except ValueError as e:
        return _error(str(e), "validation_error")
    return _text(event)


async def _handle_add_designathon_team(arguments: dict[str, Any]) -> list[TextContent]:
    from stridetrack.mcp_server import _get_db

    actor, actor_err = _validate_actor(arguments.get("actor", "mcp"))
    if actor_err:
        return actor_err
    for key in ("team_name", "requirement_id"):
        err = _validate_str(arguments.get(key), key)
        if err:
            return err
    try:
        team = _get_db().add_designathon_team(
            arguments["event_id"],
            arguments["team_name"],
            members=arguments.get("members"),
            requirement_id=arguments.get("requirement_id"),
            actor=actor,
        )
    except KeyError as e:
        return _missing(e)
    except ValueError as e:
        return _error(str(e), "validation_error")
    return _text(team)


async def _handle_update_designathon_team(arguments: dict[str, Any]) -> list[TextContent]:
    from stridetrack.mcp_server import _get_db

    actor, actor_err = _validate_actor(arguments.get("actor", "mcp"))
    if actor_err:
        return actor_err
    for key in ("submission_url", "requirement_id"):
        err = _validate_str(arguments.get(key), key)
        if err:
            return err
    try:
        team = _get_db().update_designathon_team(
            arguments["team_id"],
            submission_url=arguments.get("submission_url"),
            score=arguments.get("score"),
            requirement_id=arguments.get("requirement_id"),
            actor=actor,
        )
    except KeyError as e:
        return _missing(e)
    except ValueError as e:
        return _error(str(e), "validation_error")
    return _text(team)
