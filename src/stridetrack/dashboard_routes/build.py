"""Build-phase route handlers: DoE records, designathon events and teams."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from fastapi.responses import JSONResponse
from starlette.requests import Request

if TYPE_CHECKING:
    from fastapi import APIRouter

from stridetrack.core import StrideDB
from stridetrack.dashboard_routes.common import (
    _error_response,
    _not_found,
    _parse_json_body,
    _validate_actor,
)

logger = logging.getLogger(__name__)


def _optional_str(body: dict[str, Any], key: str) -> str | None:
    value = body.get(key)
    return None if value is None else str(value)


def create_router() -> APIRouter:
    """Build the APIRouter for DoE and designathon endpoints.

    NOTE: All handlers are async despite doing synchronous SQLite I/O so the
    shared connection stays on the event loop thread.
    """
    from fastapi import APIRouter, Depends

    from stridetrack.dashboard import _get_db

    router = APIRouter()

    # -- DoE -----------------------------------------------------------------

    @router.get("/requirement/{requirement_id}/doe")
    async def api_get_doe(requirement_id: str, request: Request, db: StrideDB = Depends(_get_db)) -> JSONResponse:
        """DoE record for the current revision, or ``?revision=N``. 404 when none is saved."""
        raw_revision = request.query_params.get("revision")
        revision: int | None = None
        if raw_revision is not None:
            try:
                revision = int(raw_revision)
            except ValueError:
                return _error_response(f"Invalid revision: {raw_revision!r}", "VALIDATION_ERROR", 400)
        try:
            record = db.get_doe_record(requirement_id, revision_number=revision)
        except KeyError:
            return _not_found(requirement_id)
        if record is None:
            return _error_response(f"No DoE record for {requirement_id}", "NOT_FOUND", 404)
        return JSONResponse(record)

    @router.put("/requirement/{requirement_id}/doe")
    async def api_record_doe(requirement_id: str, request: Request, db: StrideDB = Depends(_get_db)) -> JSONResponse:
        """Body: testing_protocol, sample_size, pre_test{}, post_test{}, results_summary, beneficiary_feedback, actor."""
        body = await _parse_json_body(request)
        if isinstance(body, JSONResponse):
            return body
        actor, actor_err = _validate_actor(body.get("actor", "dashboard"))
        if actor_err:
            return actor_err
        try:
            record = db.record_doe(
                requirement_id,
                testing_protocol=str(body.get("testing_protocol", "")),
                sample_size=body.get("sample_size"),
                pre_test=body.get("pre_test"),
                post_test=body.get("post_test"),
                results_summary=str(body.get("results_summary", "")),
                beneficiary_feedback=str(body.get("beneficiary_feedback", "")),
                recorded_by=actor,
            )
        except KeyError:
            return _not_found(requirement_id)
        except ValueError as e:
            return _error_response(str(e), "VALIDATION_ERROR", 400)
        return JSONResponse(record)

    # -- Designathon events --------------------------------------------------

    @router.get("/designathon/events")
    async def api_list_events(request: Request, db: StrideDB = Depends(_get_db)) -> JSONResponse:
        try:
            events = db.list_designathon_events(status=request.query_params.get("status"))
        except ValueError as e:
            return _error_response(str(e), "VALIDATION_ERROR", 400)
        return JSONResponse(events)

    @router.post("/designathon/events", status_code=201)
    async def api_create_event(request: Request, db: StrideDB = Depends(_get_db)) -> JSONResponse:
        body = await _parse_json_body(request)
        if isinstance(body, JSONResponse):
            return body
        actor, actor_err = _validate_actor(body.get("actor", "dashboard"))
        if actor_err:
            return actor_err
        try:
            event = db.create_designathon_event(
                str(body.get("title", "")),
                description=str(body.get("description", "")),
                start_date=_optional_str(body, "start_date"),
                end_date=_optional_str(body, "end_date"),
                created_by=actor,
            )
        except ValueError as e:
            return _error_response(str(e), "VALIDATION_ERROR", 400)
        return JSONResponse(event, status_code=201)

    @router.get("/designathon/events/{event_id}")
    async def api_get_event(event_id: int, db: StrideDB = Depends(_get_db)) -> JSONResponse:
        try:
            return JSONResponse(db.get_designathon_event(event_id))
        except KeyError:
            return _error_response(f"Designathon event not found: {event_id}", "NOT_FOUND", 404)

    @router.patch("/designathon/events/{event_id}")
    async def api_update_event(event_id: int, request: Request, db: StrideDB = Depends(_get_db)) -> JSONResponse:
        """Body: status (planned, active or completed)."""
        body = await _parse_json_body(request)
        if isinstance(body, JSONResponse):
            return body
        try:
            event = db.set_designathon_event_status(event_id, str(body.get("status", "")))
        except KeyError:
            return _error_response(f"Designathon event not found: {event_id}", "NOT_FOUND", 404)
        except ValueError as e:
            return _error_response(str(e), "VALIDATION_ERROR", 400)
        return JSONResponse(event)

    # -- Designathon teams ---------------------------------------------------

    @router.post("/designathon/events/{event_id}/teams", status_code=201)
    async def api_add_team(event_id: int, request: Request, db: StrideDB = Depends(_get_db)) -> JSONResponse:
        """Body: team_name, members[], requirement_id, actor."""
        body = await _parse_json_body(request)
        if isinstance(body, JSONResponse):
            return body
        actor, actor_err = _validate_actor(body.get("actor", "dashboard"))
        if actor_err:
            return actor_err
        try:
            team = db.add_designathon_team(
                event_id,
                str(body.get("team_name", "")),
                members=body.get("members"),
                requirement_id=_optional_str(body, "requirement_id"),
                actor=actor,
            )
        except KeyError as e:
            return _error_response(str(e.args[0]) if e.args else "Not found", "NOT_FOUND", 404)
        except ValueError as e:
            return _error_response(str(e), "VALIDATION_ERROR", 400)
        return JSONResponse(team, status_code=201)

    @router.patch("/designathon/teams/{team_id}")
    async def api_update_team(team_id: int, request: Request, db: StrideDB = Depends(_get_db)) -> JSONResponse:
        """Body: any of submission_url, score, requirement_id; plus actor."""
        body = await _parse_json_body(request)
        if isinstance(body, JSONResponse):
            return body
        actor, actor_err = _validate_actor(body.get("actor", "dashboard"))
        if actor_err:
            return actor_err
        try:
            team = db.update_designathon_team(
                team_id,
                submission_url=_optional_str(body, "submission_url"),
                score=body.get("score"),
                requirement_id=_optional_str(body, "requirement_id"),
                actor=actor,
            )
        except KeyError as e:
            return _error_response(str(e.args[0]) if e.args else "Not found", "NOT_FOUND", 404)
        except ValueError as e:
            return _error_response(str(e), "VALIDATION_ERROR", 400)
        return JSONResponse(team)

    return router
