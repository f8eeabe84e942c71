"""MCP tools for the lifecycle: catalogs, transition options, advance, path assignment."""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

from mcp.types import TextContent, Tool

from stridetrack.lifecycle import Actor, LifecycleError, PhaseFeedbackInput
from stridetrack.lifecycle_data import PATHS
from stridetrack.mcp_tools.common import (
    _error,
    _lifecycle_error,
    _not_found,
    _text,
    _validate_actor,
    _validate_role,
)


def register() -> tuple[list[Tool], dict[str, Callable[..., Any]]]:
    """Return (tool_definitions, handler_map) for lifecycle tools."""
    tools = [
        Tool(
            name="list_states",
            description="Every pipeline state with its label, phase and outgoing edges.",
            inputSchema={
                "type": "object",
                "properties": {"phase": {"type": "string", "description": "Only states in this phase"}},
            },
        ),
        Tool(
            name="get_gate_criteria",
            description="Gate checklist and phase-specific fields for one edge.",
            inputSchema={
                "type": "object",
                "properties": {
                    "from_state": {"type": "string"},
                    "to_state": {"type": "string"},
                },
                "required": ["from_state", "to_state"],
            },
        ),
        Tool(
            name="get_transition_options",
            description=(
                "Legal next states for a requirement with their checklists. Pass the gate_checks and "
                "phase_data you intend to submit to see which are still unmet."
            ),
            inputSchema={
                "type": "object",
                "properties": {
                    "id": {"type": "string", "description": "Requirement ID"},
                    "gate_checks": {"type": "object", "description": "Map of gate criterion id -> true"},
                    "phase_data": {"type": "object", "description": "Map of phase field id -> value"},
                },
                "required": ["id"],
            },
        ),
        Tool(
            name="advance",
            description=(
                "Move a requirement along one edge. Requires notes, every required gate attested true, "
                "and every required phase field filled. Errors carry the failure kind as code."
            ),
            inputSchema={
                "type": "object",
                "properties": {
                    "id": {"type": "string", "description": "Requirement ID"},
                    "to_state": {"type": "string"},
                    "notes": {"type": "string", "description": "Phase notes (required, non-blank)"},
                    "gate_checks": {"type": "object"},
                    "phase_data": {"type": "object"},
                    "blockers_resolved": {"type": "array", "items": {"type": "string"}},
                    "key_decisions": {"type": "array", "items": {"type": "string"}},
                    "actor": {"type": "string", "description": "Agent/user identity for audit trail"},
                    "role": {"type": "string", "description": "Role used for attestation checks", "default": "operator"},
                },
                "required": ["id", "to_state", "notes"],
            },
        ),
        Tool(
            name="assign_path",
            description="Choose the build path at the path-decision state. The assignment is final.",
            inputSchema={
                "type": "object",
                "properties": {
                    "id": {"type": "string", "description": "Requirement ID"},
                    "path": {"type": "string", "enum": list(PATHS)},
                    "justification": {"type": "string"},
                    "actor": {"type": "string", "description": "Agent/user identity for audit trail"},
                },
                "required": ["id", "path", "justification"],
            },
        ),
    ]

    handlers: dict[str, Callable[..., Any]] = {
        "list_states": _handle_list_states,
        "get_gate_criteria": _handle_get_gate_criteria,
        "get_transition_options": _handle_get_transition_options,
        "advance": _handle_advance,
        "assign_path": _handle_assign_path,
    }
    return tools, handlers


async def _handle_list_states(arguments: dict[str, Any]) -> list[TextContent]:
    from stridetrack.mcp_server import _get_db

    lc = _get_db().lifecycle
    phase = arguments.get("phase")
    return _text(
        [
            {**s.to_dict(), "next": lc.successors(s.id), "terminal": lc.is_terminal(s.id)}
            for s in lc.list_states()
            if phase is None or s.phase == str(phase).upper()
        ]
    )


async def _handle_get_gate_criteria(arguments: dict[str, Any]) -> list[TextContent]:
    from stridetrack.mcp_server import _get_db

    lc = _get_db().lifecycle
    from_state, to_state = arguments["from_state"], arguments["to_state"]
    if (from_state, to_state) not in set(lc.edges()):
        return _error(
            f"'{from_state}' -> '{to_state}' is not an edge of the lifecycle",
            "not_found",
            {"from": from_state, "to": to_state, "allowed": lc.next_states(from_state)},
        )
    return _text(
        {
            "from": from_state,
            "to": to_state,
            "gate_criteria": [g.to_dict() for g in lc.gate_criteria(from_state, to_state)],
            "phase_fields": [f.to_dict() for f in lc.phase_fields(from_state, to_state)],
        }
    )


async def _handle_get_transition_options(arguments: dict[str, Any]) -> list[TextContent]:
    from stridetrack.mcp_server import _get_db

    checks = arguments.get("gate_checks") or {}
    values = arguments.get("phase_data") or {}
    if not isinstance(checks, dict) or not isinstance(values, dict):
        return _error("gate_checks and phase_data must be objects", "validation_error")
    tracker = _get_db()
    try:
        req = tracker.get_requirement(arguments["id"])
        options = tracker.get_transition_options(req.id, checks=checks, values=values)
    except KeyError:
        return _not_found(arguments["id"])
    return _text(
        {
            "requirement_id": req.id,
            "current_state": req.current_state,
            "path_assignment": req.path_assignment,
            "options": [o.to_dict() for o in options],
        }
    )


async def _handle_advance(arguments: dict[str, Any]) -> list[TextContent]:
    from stridetrack.mcp_server import _get_db, _refresh_pulse

    actor, actor_err = _validate_actor(arguments.get("actor", "mcp"))
    if actor_err:
        return actor_err
    role, role_err = _validate_role(arguments.get("role", "operator"))
    if role_err:
        return role_err
    try:
        feedback = PhaseFeedbackInput.from_dict(arguments)
    except ValueError as e:
        return _error(str(e), "validation_error")
    try:
        req = _get_db().advance(arguments["id"], arguments["to_state"], feedback, Actor(id=actor, role=role))
    except KeyError:
        return _not_found(arguments["id"])
    except LifecycleError as e:
        return _lifecycle_error(e)
    _refresh_pulse()
    return _text(req.to_dict())


async def _handle_assign_path(arguments: dict[str, Any]) -> list[TextContent]:
    from stridetrack.mcp_server import _get_db, _refresh_pulse

    actor, actor_err = _validate_actor(arguments.get("actor", "mcp"))
    if actor_err:
        return actor_err
    try:
        req = _get_db().assign_path(arguments["id"], arguments["path"], arguments["justification"], actor)
    except KeyError:
        return _not_found(arguments["id"])
    except LifecycleError as e:
        return _lifecycle_error(e)
    except ValueError as e:
        return _error(str(e), "validation_error")
    _refresh_pulse()
    return _text(req.to_dict())
