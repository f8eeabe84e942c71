"""Fixtures for HTTP dashboard API tests (FastAPI)."""

from __future__ import annotations

from collections.abc import AsyncIterator, Generator
from pathlib import Path

import pytest
from httpx import ASGITransport, AsyncClient

import stridetrack.dashboard as dash_module
from stridetrack.dashboard import create_app
from tests._db_factory import make_db
from tests.conftest import PopulatedDB, populate


@pytest.fixture
def dashboard_db(tmp_path: Path) -> Generator[PopulatedDB, None, None]:
    """Populated pipeline on a connection FastAPI may touch from its threadpool."""
    d = make_db(tmp_path, check_same_thread=False)
    yield populate(d)
    d.close()


@pytest.fixture
async def client(dashboard_db: PopulatedDB) -> AsyncIterator[AsyncClient]:
    """Create a test client backed by the populated DB."""
    dash_module._db = dashboard_db.db
    app = create_app()
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as c:
        yield c
    dash_module._db = None
