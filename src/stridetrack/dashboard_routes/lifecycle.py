"""Lifecycle route handlers: transitions, advance, path, history, committee, catalogs."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from fastapi.responses import JSONResponse
from starlette.requests import Request

if TYPE_CHECKING:
    from fastapi import APIRouter

from stridetrack.core import StrideDB
from stridetrack.dashboard_routes.common import (
    _error_response,
    _lifecycle_error_response,
    _not_found,
    _parse_json_body,
    _validate_actor,
    _validate_role,
)
from stridetrack.lifecycle import Actor, LifecycleError, PhaseFeedbackInput

logger = logging.getLogger(__name__)


def create_router() -> APIRouter:
    """Build the APIRouter for lifecycle and committee endpoints.

    NOTE: All handlers are async despite doing synchronous SQLite I/O so the
    shared connection stays on the event loop thread.
    """
    from fastapi import APIRouter, Depends

    from stridetrack.dashboard import _get_db

    router = APIRouter()

    # -- Catalogs ------------------------------------------------------------

    @router.get("/states")
    async def api_states(db: StrideDB = Depends(_get_db)) -> JSONResponse:
        lc = db.lifecycle
        return JSONResponse(
            [
                {
                    **s.to_dict(),
                    "next": lc.successors(s.id),
                    "terminal": lc.is_terminal(s.id),
                }
                for s in lc.list_states()
            ]
        )

    @router.get("/gates")
    async def api_gates(request: Request, db: StrideDB = Depends(_get_db)) -> JSONResponse:
        """Gate checklist and phase fields for one edge (``?from=S1&to=S2``)."""
        from_state = request.query_params.get("from", "")
        to_state = request.query_params.get("to", "")
        if not from_state or not to_state:
            return _error_response("Query params 'from' and 'to' are required", "VALIDATION_ERROR", 400)
        lc = db.lifecycle
        if (from_state, to_state) not in set(lc.edges()):
            return _error_response(
                f"'{from_state}' -> '{to_state}' is not an edge of the lifecycle",
                "NOT_FOUND",
                404,
                {"from": from_state, "to": to_state},
            )
        return JSONResponse(
            {
                "from": from_state,
                "to": to_state,
                "gate_criteria": [g.to_dict() for g in lc.gate_criteria(from_state, to_state)],
                "phase_fields": [f.to_dict() for f in lc.phase_fields(from_state, to_state)],
            }
        )

    # -- Transitions ---------------------------------------------------------

    @router.get("/requirement/{requirement_id}/transitions")
    async def api_transitions(requirement_id: str, db: StrideDB = Depends(_get_db)) -> JSONResponse:
        """Legal next states with their checklists, none yet attested."""
        try:
            req = db.get_requirement(requirement_id)
            options = db.get_transition_options(requirement_id)
        except KeyError:
            return _not_found(requirement_id)
        return JSONResponse(
            {
                "requirement_id": req.id,
                "current_state": req.current_state,
                "path_assignment": req.path_assignment,
                "options": [o.to_dict() for o in options],
            }
        )

    @router.post("/requirement/{requirement_id}/advance")
    async def api_advance(requirement_id: str, request: Request, db: StrideDB = Depends(_get_db)) -> JSONResponse:
        """Body: to_state, notes, gate_checks, phase_data, blockers_resolved, key_decisions, actor, role."""
        body = await _parse_json_body(request)
        if isinstance(body, JSONResponse):
            return body
        actor, actor_err = _validate_actor(body.get("actor", "dashboard"))
        if actor_err:
            return actor_err
        role, role_err = _validate_role(body.get("role", "operator"))
        if role_err:
            return role_err
        to_state = body.get("to_state")
        if not isinstance(to_state, str) or not to_state:
            return _error_response("to_state is required", "VALIDATION_ERROR", 400)
        try:
            feedback = PhaseFeedbackInput.from_dict(body)
        except ValueError as e:
            return _error_response(str(e), "VALIDATION_ERROR", 400)
        try:
            req = db.advance(requirement_id, to_state, feedback, Actor(id=actor, role=role))
        except KeyError:
            return _not_found(requirement_id)
        except LifecycleError as e:
            return _lifecycle_error_response(e)
        return JSONResponse(req.to_dict())

    @router.post("/requirement/{requirement_id}/path")
    async def api_assign_path(requirement_id: str, request: Request, db: StrideDB = Depends(_get_db)) -> JSONResponse:
        body = await _parse_json_body(request)
        if isinstance(body, JSONResponse):
            return body
        actor, actor_err = _validate_actor(body.get("actor", "dashboard"))
        if actor_err:
            return actor_err
        path = body.get("path")
        justification = body.get("justification", "")
        if not isinstance(path, str) or not isinstance(justification, str):
            return _error_response("path and justification must be strings", "VALIDATION_ERROR", 400)
        try:
            req = db.assign_path(requirement_id, path, justification, actor)
        except KeyError:
            return _not_found(requirement_id)
        except LifecycleError as e:
            return _lifecycle_error_response(e)
        except ValueError as e:
            return _error_response(str(e), "VALIDATION_ERROR", 400)
        return JSONResponse(req.to_dict())

    @router.get("/requirement/{requirement_id}/history")
    async def api_history(requirement_id: str, db: StrideDB = Depends(_get_db)) -> JSONResponse:
        try:
            history = db.get_history(requirement_id)
        except KeyError:
            return _not_found(requirement_id)
        return JSONResponse(history)

    # -- Committee -----------------------------------------------------------

    @router.get("/requirement/{requirement_id}/committee")
    async def api_committee(requirement_id: str, db: StrideDB = Depends(_get_db)) -> JSONResponse:
        try:
            summary = db.get_committee_summary(requirement_id)
        except KeyError:
            return _not_found(requirement_id)
        return JSONResponse(summary)

    @router.post("/requirement/{requirement_id}/reviews", status_code=201)
    async def api_add_review(requirement_id: str, request: Request, db: StrideDB = Depends(_get_db)) -> JSONResponse:
        """Body: reviewer, scores{...}, recommendation, feedback_text, conditions."""
        body = await _parse_json_body(request)
        if isinstance(body, JSONResponse):
            return body
        reviewer, reviewer_err = _validate_actor(body.get("reviewer"))
        if reviewer_err:
            return reviewer_err
        scores = body.get("scores")
        if not isinstance(scores, dict):
            return _error_response("scores must be an object", "VALIDATION_ERROR", 400)
        try:
            row = db.add_committee_review(
                requirement_id,
                reviewer=reviewer,
                scores=scores,
                recommendation=str(body.get("recommendation", "")),
                feedback_text=str(body.get("feedback_text", "")),
                conditions=str(body.get("conditions", "")),
            )
        except KeyError:
            return _not_found(requirement_id)
        except ValueError as e:
            return _error_response(str(e), "VALIDATION_ERROR", 400)
        return JSONResponse(row, status_code=201)

    @router.post("/requirement/{requirement_id}/decision", status_code=201)
    async def api_record_decision(requirement_id: str, request: Request, db: StrideDB = Depends(_get_db)) -> JSONResponse:
        body = await _parse_json_body(request)
        if isinstance(body, JSONResponse):
            return body
        actor, actor_err = _validate_actor(body.get("actor", "dashboard"))
        if actor_err:
            return actor_err
        try:
            row = db.record_committee_decision(
                requirement_id,
                str(body.get("decision", "")),
                revision_instructions=str(body.get("revision_instructions", "")),
                conditions=str(body.get("conditions", "")),
                decided_by=actor,
            )
        except KeyError:
            return _not_found(requirement_id)
        except ValueError as e:
            return _error_response(str(e), "VALIDATION_ERROR", 400)
        return JSONResponse(row, status_code=201)

    return router
