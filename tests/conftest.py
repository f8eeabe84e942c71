"""Shared pytest fixtures for stridetrack tests."""

from __future__ import annotations

from collections.abc import Generator
from dataclasses import dataclass
from pathlib import Path

import pytest
from click.testing import CliRunner

from stridetrack.core import (
    DB_FILENAME,
    STRIDETRACK_DIR_NAME,
    SUMMARY_FILENAME,
    StrideDB,
    write_config,
)
from tests._pipeline import advance_to


@dataclass
class PopulatedDB:
    """A StrideDB with a known set of requirements, keyed by role in ``ids``."""

    db: StrideDB
    ids: dict[str, str]


@pytest.fixture
def db(tmp_path: Path) -> Generator[StrideDB, None, None]:
    """Fresh StrideDB for each test."""
    d = StrideDB(tmp_path / DB_FILENAME, prefix="test")
    d.initialize()
    yield d
    d.close()


def populate(db: StrideDB) -> PopulatedDB:
    """Fill *db* with a representative pipeline.

    Creates:
    - captured: P1 CDC requirement still in S1, fully described
    - validated: P2 SEN requirement in S3
    - decided: P2 requirement at S4 with the INTERNAL path assigned
    - ready: P3 BLIND requirement that reached H-DOE-5 with prices set
    """
    captured = db.create_requirement(
        "Adaptive spoon",
        description="Weighted handle for tremor",
        source_type="CDC",
        priority="P1",
        tech_level="LOW",
        therapy_domains=["OT"],
        disability_types=["Physical"],
        market_price=40.0,
        target_price=12.0,
        actor="tester",
    )
    validated = db.create_requirement("Reading stand", source_type="SEN", gap_flags=["RED"], actor="tester")
    decided = db.create_requirement("Grip trainer", actor="tester")
    ready = db.create_requirement(
        "Tactile ruler",
        source_type="BLIND",
        priority="P3",
        market_price=25.0,
        target_price=5.0,
        actor="tester",
    )
    advance_to(db, validated.id, "S3")
    advance_to(db, decided.id, "S4")
    db.assign_path(decided.id, "INTERNAL", "In-house team has capacity", "tester")
    advance_to(db, ready.id, "H-DOE-5")
    return PopulatedDB(
        db=db,
        ids={"captured": captured.id, "validated": validated.id, "decided": decided.id, "ready": ready.id},
    )


@pytest.fixture
def populated_db(db: StrideDB) -> PopulatedDB:
    """StrideDB pre-populated with a representative pipeline (see ``populate``)."""
    return populate(db)


@pytest.fixture
def stride_project(tmp_path: Path) -> Path:
    """A tmp directory set up as a stridetrack project (.stridetrack/ with config + db).

    Returns the project root (parent of .stridetrack/).
    """
    stride_dir = tmp_path / STRIDETRACK_DIR_NAME
    stride_dir.mkdir()
    write_config(stride_dir, {"prefix": "proj", "version": 1})

    d = StrideDB(stride_dir / DB_FILENAME, prefix="proj")
    d.initialize()
    d.close()

    (stride_dir / SUMMARY_FILENAME).write_text("# pulse\n")
    return tmp_path


@pytest.fixture
def cli_runner() -> CliRunner:
    """Click CLI test runner."""
    return CliRunner()
