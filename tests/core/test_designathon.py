"""Tests for designathon events and teams."""

from __future__ import annotations

from typing import Any

import pytest

from stridetrack.core import StrideDB
from tests._pipeline import advance_to


@pytest.fixture
def event_id(db: StrideDB) -> int:
    event = db.create_designathon_event("Spring build", description="Mobility aids", start_date="2026-04-01")
    return int(event["id"])


@pytest.fixture
def building(db: StrideDB) -> str:
    """Requirement on the designathon path, at H-DES-2."""
    req = db.create_requirement("Stair climber")
    advance_to(db, req.id, "H-DES-2", path="DESIGNATHON")
    return req.id


class TestEvents:
    def test_create(self, db: StrideDB) -> None:
        event = db.create_designathon_event(
            "  Spring build ", start_date="2026-04-01", end_date="2026-04-03", created_by="asha"
        )
        assert event["title"] == "Spring build"
        assert event["status"] == "planned"
        assert event["end_date"] == "2026-04-03"
        assert event["teams"] == []

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"title": " "},
            {"title": "X", "start_date": "April 1"},
            {"title": "X", "start_date": "2026-04-03", "end_date": "2026-04-01"},
        ],
    )
    def test_create_invalid(self, db: StrideDB, kwargs: dict[str, Any]) -> None:
        with pytest.raises(ValueError):
            db.create_designathon_event(**kwargs)
        assert db.list_designathon_events() == []

    def test_list_newest_first_with_team_counts(self, db: StrideDB, event_id: int) -> None:
        later = db.create_designathon_event("Autumn build")
        db.add_designathon_team(event_id, "Team A")
        listed = db.list_designathon_events()
        assert [e["id"] for e in listed] == [later["id"], event_id]
        assert [e["team_count"] for e in listed] == [0, 1]

    def test_status_filter_and_update(self, db: StrideDB, event_id: int) -> None:
        assert db.set_designathon_event_status(event_id, "active")["status"] == "active"
        assert [e["id"] for e in db.list_designathon_events(status="active")] == [event_id]
        assert db.list_designathon_events(status="planned") == []

    def test_invalid_status(self, db: StrideDB, event_id: int) -> None:
        with pytest.raises(ValueError, match="Invalid status"):
            db.set_designathon_event_status(event_id, "cancelled")
        with pytest.raises(ValueError):
            db.list_designathon_events(status="cancelled")

    def test_unknown_event(self, db: StrideDB) -> None:
        with pytest.raises(KeyError):
            db.get_designathon_event(999)
        with pytest.raises(KeyError):
            db.set_designathon_event_status(999, "active")


class TestTeams:
    def test_add_team(self, db: StrideDB, event_id: int) -> None:
        team = db.add_designathon_team(event_id, " Team A ", members=["Ravi", " ", " Mei "])
        assert team["team_name"] == "Team A"
        assert team["members"] == ["Ravi", "Mei"]
        assert team["score"] is None
        assert db.get_designathon_event(event_id)["teams"] == [team]

    def test_link_requirement(self, db: StrideDB, event_id: int, building: str) -> None:
        team = db.add_designathon_team(event_id, "Team A", requirement_id=building, actor="asha")
        assert team["requirement_id"] == building
        event = db.get_requirement_events(building)[0]
        assert event["event_type"] == "designathon_team_linked"
        assert event["new_value"] == "Team A"
        assert db.list_designathon_teams(requirement_id=building) == [team]

    def test_link_requires_designathon_state(self, db: StrideDB, event_id: int) -> None:
        req = db.create_requirement("X")
        with pytest.raises(ValueError, match="designathon state"):
            db.add_designathon_team(event_id, "Team A", requirement_id=req.id)
        assert db.list_designathon_teams() == []

    def test_link_unknown_requirement(self, db: StrideDB, event_id: int) -> None:
        with pytest.raises(KeyError):
            db.add_designathon_team(event_id, "Team A", requirement_id="test-nope")

    def test_duplicate_team_name(self, db: StrideDB, event_id: int) -> None:
        db.add_designathon_team(event_id, "Team A")
        with pytest.raises(ValueError, match="already exists"):
            db.add_designathon_team(event_id, "Team A")

    def test_same_name_in_another_event(self, db: StrideDB, event_id: int) -> None:
        other = db.create_designathon_event("Autumn build")
        db.add_designathon_team(event_id, "Team A")
        assert db.add_designathon_team(int(other["id"]), "Team A")["event_id"] == other["id"]

    @pytest.mark.parametrize(("name", "members"), [(" ", None), ("Team A", "Ravi, Mei"), ("Team A", [1, 2])])
    def test_invalid_team(self, db: StrideDB, event_id: int, name: str, members: Any) -> None:
        with pytest.raises(ValueError):
            db.add_designathon_team(event_id, name, members=members)

    def test_completed_event_takes_no_teams(self, db: StrideDB, event_id: int) -> None:
        db.set_designathon_event_status(event_id, "completed")
        with pytest.raises(ValueError, match="completed"):
            db.add_designathon_team(event_id, "Late team")

    def test_unknown_event(self, db: StrideDB) -> None:
        with pytest.raises(KeyError):
            db.add_designathon_team(999, "Team A")


class TestTeamUpdates:
    def test_submission_and_score(self, db: StrideDB, event_id: int) -> None:
        team = db.add_designathon_team(event_id, "Team A")
        updated = db.update_designathon_team(team["id"], submission_url="https://example.org/cad", score=87.5)
        assert updated["submission_url"] == "https://example.org/cad"
        assert updated["score"] == 87.5

    def test_nothing_to_update(self, db: StrideDB, event_id: int) -> None:
        team = db.add_designathon_team(event_id, "Team A")
        assert db.update_designathon_team(team["id"]) == team

    @pytest.mark.parametrize("score", [-1, 101, True])
    def test_invalid_score(self, db: StrideDB, event_id: int, score: Any) -> None:
        team = db.add_designathon_team(event_id, "Team A")
        with pytest.raises(ValueError):
            db.update_designathon_team(team["id"], score=score)
        assert db.get_designathon_team(team["id"])["score"] is None

    def test_link_later(self, db: StrideDB, event_id: int, building: str) -> None:
        team = db.add_designathon_team(event_id, "Team A")
        updated = db.update_designathon_team(team["id"], requirement_id=building, actor="asha")
        assert updated["requirement_id"] == building
        assert db.get_requirement_events(building)[0]["event_type"] == "designathon_team_linked"

    def test_unknown_team(self, db: StrideDB) -> None:
        with pytest.raises(KeyError):
            db.update_designathon_team(999, score=50)
