"""JSON dashboard API for stridetrack.

Local web server exposing the tracker over HTTP: requirement records,
transition options, the advance/path operations, committee scorecards,
DoE records, designathon events and the pipeline views (stats, aging,
monthly report).

A module-level ``_db`` is set at startup and injected via
``Depends(_get_db)``. Tests set it directly.

Usage:
    stridetrack dashboard                 # Serves at localhost:8391
    stridetrack dashboard --port 9000     # Custom port
"""

from __future__ import annotations

import logging
from typing import Any

from stridetrack.core import StrideDB, find_stridetrack_root
from stridetrack.logging import setup_logging

DEFAULT_PORT = 8391

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Module-level state, set by main() or test fixtures
# ---------------------------------------------------------------------------

_db: StrideDB | None = None


def _get_db() -> StrideDB:
    """Return the active database connection."""
    from fastapi import HTTPException

    if _db is None:
        raise HTTPException(status_code=500, detail="Database not initialized")
    return _db


def create_app() -> Any:
    """Create the FastAPI application with every API router mounted at ``/api``."""
    from fastapi import FastAPI

    from stridetrack.dashboard_routes import build, lifecycle, reports, requirements

    app = FastAPI(title="Stridetrack Dashboard", docs_url=None, redoc_url=None)

    app.include_router(requirements.create_router(), prefix="/api")
    app.include_router(lifecycle.create_router(), prefix="/api")
    app.include_router(build.create_router(), prefix="/api")
    app.include_router(reports.create_router(), prefix="/api")

    @app.get("/api/health")
    async def api_health() -> dict[str, str]:
        return {"status": "ok", "prefix": _db.prefix if _db is not None else ""}

    return app


def main(port: int = DEFAULT_PORT) -> None:
    """Start the dashboard server for the project found from the cwd."""
    import uvicorn

    global _db

    stride_dir = find_stridetrack_root()
    setup_logging(stride_dir)
    _db = StrideDB.from_project(stride_dir.parent, check_same_thread=False)

    app = create_app()
    logger.info("Dashboard starting on port %d", port)
    print(f"Stridetrack Dashboard: http://localhost:{port}")
    uvicorn.run(app, host="127.0.0.1", port=port, log_level="warning")
