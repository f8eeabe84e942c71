"""Pipeline view route handlers: stats, aging, monthly report, device document."""

from __future__ import annotations

from typing import TYPE_CHECKING

from fastapi.responses import JSONResponse, PlainTextResponse
from starlette.requests import Request

if TYPE_CHECKING:
    from fastapi import APIRouter

from stridetrack.core import StrideDB
from stridetrack.dashboard_routes.common import _error_response, _not_found
from stridetrack.reports import device_document, monthly_report

_BOOL_TRUE_VALUES = frozenset({"1", "true", "yes", "on"})


def create_router() -> APIRouter:
    """Build the APIRouter for read-only pipeline views."""
    from fastapi import APIRouter, Depends

    from stridetrack.dashboard import _get_db

    router = APIRouter()

    @router.get("/stats")
    async def api_stats(db: StrideDB = Depends(_get_db)) -> JSONResponse:
        return JSONResponse(db.get_pipeline_stats())

    @router.get("/aging")
    async def api_aging(request: Request, db: StrideDB = Depends(_get_db)) -> JSONResponse:
        """Aging alerts; ``?all=true`` includes requirements within their threshold."""
        include_all = request.query_params.get("all", "").strip().lower() in _BOOL_TRUE_VALUES
        return JSONResponse(db.get_aging_alerts(include_all=include_all))

    @router.get("/report/{month}")
    async def api_monthly_report(month: str, db: StrideDB = Depends(_get_db)) -> JSONResponse:
        try:
            report = monthly_report(db, month)
        except ValueError as e:
            return _error_response(str(e), "VALIDATION_ERROR", 400)
        return JSONResponse(report)

    @router.get("/requirement/{requirement_id}/document", response_model=None)
    async def api_device_document(requirement_id: str, db: StrideDB = Depends(_get_db)) -> PlainTextResponse | JSONResponse:
        try:
            text = device_document(db, requirement_id)
        except KeyError:
            return _not_found(requirement_id)
        return PlainTextResponse(text, media_type="text/markdown")

    return router
