"""Tests for project discovery, config.json handling, and schema versioning."""

from __future__ import annotations

import logging
import sqlite3
from pathlib import Path

import pytest

from stridetrack.core import (
    CONFIG_FILENAME,
    DB_FILENAME,
    STRIDETRACK_DIR_NAME,
    StrideDB,
    attestation_check_from_config,
    find_stridetrack_root,
    read_config,
    write_config,
)
from stridetrack.db_schema import CURRENT_SCHEMA_VERSION
from stridetrack.lifecycle import Actor, AttestationNotPermittedError, allow_all_attestations
from tests._db_factory import make_db
from tests._pipeline import full_feedback


class TestDiscovery:
    def test_finds_root_from_subdirectory(self, stride_project: Path) -> None:
        nested = stride_project / "a" / "b"
        nested.mkdir(parents=True)
        assert find_stridetrack_root(nested) == (stride_project / STRIDETRACK_DIR_NAME).resolve()

    def test_missing_root(self, tmp_path: Path) -> None:
        with pytest.raises(FileNotFoundError):
            find_stridetrack_root(tmp_path)

    def test_from_project_uses_config_prefix(self, stride_project: Path) -> None:
        with StrideDB.from_project(stride_project) as d:
            assert d.prefix == "proj"
            assert d.create_requirement("X").id.startswith("proj-")


class TestReadConfig:
    def test_missing_file_gives_defaults(self, tmp_path: Path) -> None:
        assert read_config(tmp_path) == {"prefix": "stride", "version": 1}

    def test_corrupt_file_gives_defaults(self, tmp_path: Path, caplog: pytest.LogCaptureFixture) -> None:
        (tmp_path / CONFIG_FILENAME).write_text("{not json")
        with caplog.at_level(logging.WARNING, logger="stridetrack.core"):
            assert read_config(tmp_path)["prefix"] == "stride"
        assert "Failed to read" in caplog.text

    def test_non_object_gives_defaults(self, tmp_path: Path) -> None:
        (tmp_path / CONFIG_FILENAME).write_text("[1, 2]")
        assert read_config(tmp_path)["prefix"] == "stride"

    def test_round_trip(self, tmp_path: Path) -> None:
        write_config(tmp_path, {"prefix": "abc", "version": 1, "aging_thresholds": {"S": 5}})
        assert read_config(tmp_path)["aging_thresholds"] == {"S": 5}


class TestAttestationConfig:
    def test_no_roles_allows_everyone(self) -> None:
        assert attestation_check_from_config({"prefix": "p", "version": 1}) is allow_all_attestations

    def test_malformed_roles_allow_everyone(self) -> None:
        config = {"prefix": "p", "version": 1, "attestation_roles": {"S1->S2": "lead"}}
        assert attestation_check_from_config(config) is allow_all_attestations  # type: ignore[arg-type]

    def test_roles_enforced_through_project(self, tmp_path: Path) -> None:
        d = make_db(tmp_path, config={"attestation_roles": {"S1->S2": ["lead"]}})
        req = d.create_requirement("X")
        with pytest.raises(AttestationNotPermittedError):
            d.advance(req.id, "S2", full_feedback("S1", "S2"), Actor("op", "operator"))
        assert d.advance(req.id, "S2", full_feedback("S1", "S2"), Actor("boss", "lead")).current_state == "S2"
        d.close()


class TestSchema:
    def test_fresh_database_is_stamped(self, db: StrideDB) -> None:
        assert db.get_schema_version() == CURRENT_SCHEMA_VERSION

    def test_initialize_is_idempotent(self, db: StrideDB) -> None:
        req = db.create_requirement("X")
        db.initialize()
        assert db.get_requirement(req.id).title == "X"

    def test_older_schema_gains_new_tables(self, tmp_path: Path) -> None:
        d = StrideDB(tmp_path / DB_FILENAME)
        d.initialize()
        req = d.create_requirement("Kept")
        d.conn.execute("DROP TABLE designathon_teams")
        d.conn.execute("DROP TABLE designathon_events")
        d.conn.execute("DROP TABLE doe_records")
        d.conn.execute("PRAGMA user_version = 1")
        d.conn.commit()
        d.initialize()
        assert d.get_schema_version() == CURRENT_SCHEMA_VERSION
        assert d.get_requirement(req.id).title == "Kept"
        assert d.list_designathon_events() == []
        d.close()

    def test_newer_schema_rejected(self, tmp_path: Path) -> None:
        d = StrideDB(tmp_path / DB_FILENAME)
        d.initialize()
        d.conn.execute(f"PRAGMA user_version = {CURRENT_SCHEMA_VERSION + 1}")
        d.conn.commit()
        with pytest.raises(RuntimeError, match="newer than this stridetrack supports"):
            d.initialize()
        d.close()

    def test_database_rejects_invalid_priority(self, db: StrideDB) -> None:
        with pytest.raises(sqlite3.IntegrityError):
            db.conn.execute(
                "INSERT INTO requirements (id, title, priority, created_at, updated_at) VALUES ('x', 'x', 'P9', 'n', 'n')"
            )
        db.conn.rollback()
