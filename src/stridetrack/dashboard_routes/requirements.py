"""Requirement record route handlers: list, create, detail, update, events."""

from __future__ import annotations

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
    _parse_pagination,
    _safe_int,
    _validate_actor,
)
from stridetrack.db_reports import data_completeness
from stridetrack.db_requirements import EDITABLE_ATTRIBUTES

_LIST_FILTERS = ("state", "phase", "priority", "source_type", "path")


def create_router() -> APIRouter:
    """Build the APIRouter for requirement records.

    NOTE: All handlers are async despite doing synchronous SQLite I/O. This
    serializes DB access on the event loop thread, so the single shared
    connection is never used from two threads at once.
    """
    from fastapi import APIRouter, Depends

    from stridetrack.dashboard import _get_db

    router = APIRouter()

    @router.get("/requirements")
    async def api_requirements(request: Request, db: StrideDB = Depends(_get_db)) -> JSONResponse:
        """Filtered list. Query params: state, phase, priority, source_type, path, limit, offset."""
        params = request.query_params
        page = _parse_pagination(params)
        if isinstance(page, JSONResponse):
            return page
        limit, offset = page
        filters: dict[str, Any] = {k: params[k] for k in _LIST_FILTERS if params.get(k)}
        try:
            reqs = db.list_requirements(**filters, limit=limit, offset=offset)
        except ValueError as e:
            return _error_response(str(e), "VALIDATION_ERROR", 400)
        return JSONResponse([r.to_dict() for r in reqs])

    @router.post("/requirements", status_code=201)
    async def api_create_requirement(request: Request, db: StrideDB = Depends(_get_db)) -> JSONResponse:
        body = await _parse_json_body(request)
        if isinstance(body, JSONResponse):
            return body
        actor, actor_err = _validate_actor(body.pop("actor", "dashboard"))
        if actor_err:
            return actor_err
        unknown = sorted(set(body) - set(EDITABLE_ATTRIBUTES))
        if unknown:
            return _error_response(f"Unknown requirement attributes: {', '.join(unknown)}", "VALIDATION_ERROR", 400)
        title = body.pop("title", None)
        if not isinstance(title, str):
            return _error_response("title is required and must be a string", "VALIDATION_ERROR", 400)
        try:
            req = db.create_requirement(title, **body, actor=actor)
        except (TypeError, ValueError) as e:
            return _error_response(str(e), "VALIDATION_ERROR", 400)
        return JSONResponse(req.to_dict(), status_code=201)

    @router.get("/requirement/{requirement_id}")
    async def api_requirement_detail(requirement_id: str, db: StrideDB = Depends(_get_db)) -> JSONResponse:
        """Requirement with aging, completeness and its legal next states."""
        try:
            req = db.get_requirement(requirement_id)
        except KeyError:
            return _not_found(requirement_id)
        data: dict[str, Any] = dict(req.to_dict())
        data["aging"] = db.get_aging(requirement_id).to_dict()
        data["data_completeness"] = data_completeness(req)
        data["next_states"] = db.get_next_states(requirement_id)
        return JSONResponse(data)

    @router.patch("/requirement/{requirement_id}")
    async def api_update_requirement(requirement_id: str, request: Request, db: StrideDB = Depends(_get_db)) -> JSONResponse:
        """Edit descriptive attributes. Stage, path and revision are not editable here."""
        body = await _parse_json_body(request)
        if isinstance(body, JSONResponse):
            return body
        actor, actor_err = _validate_actor(body.pop("actor", "dashboard"))
        if actor_err:
            return actor_err
        try:
            req = db.update_requirement(requirement_id, actor=actor, **body)
        except KeyError:
            return _not_found(requirement_id)
        except (TypeError, ValueError) as e:
            return _error_response(str(e), "VALIDATION_ERROR", 400)
        return JSONResponse(req.to_dict())

    @router.get("/requirement/{requirement_id}/events")
    async def api_requirement_events(requirement_id: str, request: Request, db: StrideDB = Depends(_get_db)) -> JSONResponse:
        limit = _safe_int(request.query_params.get("limit", "50"), "limit", min_value=1)
        if isinstance(limit, JSONResponse):
            return limit
        try:
            events = db.get_requirement_events(requirement_id, limit=limit)
        except KeyError:
            return _not_found(requirement_id)
        return JSONResponse(events)

    return router
