"""Tests for the audit event log."""

from __future__ import annotations

import pytest

from stridetrack.core import StrideDB
from tests.conftest import PopulatedDB


class TestEvents:
    def test_requirement_events_newest_first(self, db: StrideDB) -> None:
        req = db.create_requirement("X", actor="asha")
        db.update_requirement(req.id, actor="asha", title="Y")
        events = db.get_requirement_events(req.id)
        assert [e["event_type"] for e in events] == ["title_changed", "created"]
        assert (events[0]["old_value"], events[0]["new_value"]) == ("X", "Y")

    def test_list_values_are_joined(self, db: StrideDB) -> None:
        req = db.create_requirement("X")
        db.update_requirement(req.id, therapy_domains=["OT", "PT"])
        assert db.get_requirement_events(req.id)[0]["new_value"] == "OT, PT"

    def test_limit(self, db: StrideDB) -> None:
        req = db.create_requirement("X")
        for p in ("P1", "P3", "P2"):
            db.update_requirement(req.id, priority=p)
        assert len(db.get_requirement_events(req.id, limit=2)) == 2

    def test_missing_requirement(self, db: StrideDB) -> None:
        with pytest.raises(KeyError):
            db.get_requirement_events("test-nope")

    def test_recent_events_carry_titles(self, populated_db: PopulatedDB) -> None:
        recent = populated_db.db.get_recent_events(limit=5)
        assert len(recent) == 5
        assert all(e["requirement_title"] for e in recent)

    def test_events_since(self, db: StrideDB) -> None:
        first = db.create_requirement("A")
        since = first.created_at
        db.create_requirement("B")
        events = db.get_events_since(since)
        assert [e["requirement_title"] for e in events] == ["B"]
