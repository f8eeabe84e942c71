"""DesignathonMixin: designathon events and the teams that build for them.

Events group the community build runs behind the designathon path. A team
may be linked to one requirement while that requirement is in a designathon
state; the link is recorded in the requirement's audit trail.
"""

from __future__ import annotations

import json
import logging
from datetime import date
from typing import TYPE_CHECKING, Any

from stridetrack.db_base import DBMixinProtocol, _now_iso

if TYPE_CHECKING:
    from stridetrack.lifecycle import LifecycleRegistry

logger = logging.getLogger(__name__)

EVENT_STATUSES: tuple[str, ...] = ("planned", "active", "completed")
DESIGNATHON_PHASE = "DESIGNATHON"
MAX_TEAM_SCORE = 100


def _clean_date(value: str | None, name: str) -> str | None:
    if value is None or value == "":
        return None
    try:
        return date.fromisoformat(value).isoformat()
    except (TypeError, ValueError):
        msg = f"{name} must be a YYYY-MM-DD date, got {value!r}"
        raise ValueError(msg) from None


def _clean_members(members: list[str] | tuple[str, ...] | None) -> list[str]:
    if members is None:
        return []
    if isinstance(members, str) or not all(isinstance(m, str) for m in members):
        msg = "members must be a list of names"
        raise ValueError(msg)
    return [m.strip() for m in members if m.strip()]


def _inserted_id(rowid: int | None) -> int:
    if rowid is None:  # pragma: no cover
        msg = "INSERT did not produce a lastrowid"
        raise RuntimeError(msg)
    return rowid


def _team_row_to_dict(row: Any) -> dict[str, Any]:
    data = dict(row)
    data["members"] = json.loads(data["members"] or "[]")
    return data


class DesignathonMixin(DBMixinProtocol):
    """Designathon event and team records.

    Inherits ``DBMixinProtocol`` for type-safe access to shared attributes.
    Actual implementations provided by ``StrideDB`` at composition time via MRO.
    """

    if TYPE_CHECKING:
        # From EventsMixin
        def _record_event(
            self,
            requirement_id: str,
            event_type: str,
            *,
            actor: str = "",
            old_value: str | None = None,
            new_value: str | None = None,
            comment: str = "",
            now: str | None = None,
        ) -> None: ...

        # From LifecycleMixin
        @property
        def lifecycle(self) -> LifecycleRegistry: ...

    # -- Events --------------------------------------------------------------

    def create_designathon_event(
        self,
        title: str,
        *,
        description: str = "",
        start_date: str | None = None,
        end_date: str | None = None,
        created_by: str = "",
    ) -> dict[str, Any]:
        if not title or not title.strip():
            msg = "Event title cannot be empty"
            raise ValueError(msg)
        start = _clean_date(start_date, "start_date")
        end = _clean_date(end_date, "end_date")
        if start and end and end < start:
            msg = f"end_date {end} is before start_date {start}"
            raise ValueError(msg)
        cursor = self.conn.execute(
            "INSERT INTO designathon_events (title, description, status, start_date, end_date, created_by, created_at) "
            "VALUES (?, ?, 'planned', ?, ?, ?, ?)",
            (title.strip(), description, start, end, created_by, _now_iso()),
        )
        self.conn.commit()
        event_id = _inserted_id(cursor.lastrowid)
        logger.info("Designathon event %d created: %s", event_id, title.strip())
        return self.get_designathon_event(event_id)

    def get_designathon_event(self, event_id: int) -> dict[str, Any]:
        """One event with its teams. Raises KeyError for an unknown id."""
        row = self.conn.execute("SELECT * FROM designathon_events WHERE id = ?", (event_id,)).fetchone()
        if row is None:
            msg = f"Designathon event not found: {event_id}"
            raise KeyError(msg)
        event = dict(row)
        event["teams"] = self.list_designathon_teams(event_id=event_id)
        return event

    def list_designathon_events(self, *, status: str | None = None) -> list[dict[str, Any]]:
        """Events newest first, each with a team count."""
        if status is not None and status not in EVENT_STATUSES:
            msg = f"Invalid status '{status}'. Valid values: {', '.join(EVENT_STATUSES)}"
            raise ValueError(msg)
        sql = (
            "SELECT e.*, (SELECT COUNT(*) FROM designathon_teams t WHERE t.event_id = e.id) AS team_count "
            "FROM designathon_events e"
        )
        params: list[Any] = []
        if status is not None:
            sql += " WHERE e.status = ?"
            params.append(status)
        sql += " ORDER BY e.created_at DESC, e.id DESC"
        return [dict(r) for r in self.conn.execute(sql, params).fetchall()]

    def set_designathon_event_status(self, event_id: int, status: str) -> dict[str, Any]:
        if status not in EVENT_STATUSES:
            msg = f"Invalid status '{status}'. Valid values: {', '.join(EVENT_STATUSES)}"
            raise ValueError(msg)
        self.get_designathon_event(event_id)
        self.conn.execute("UPDATE designathon_events SET status = ? WHERE id = ?", (status, event_id))
        self.conn.commit()
        return self.get_designathon_event(event_id)

    # -- Teams ---------------------------------------------------------------

    def _check_linkable(self, requirement_id: str) -> None:
        req = self.get_requirement(requirement_id)
        phase = self.lifecycle.lookup(req.current_state).phase
        if phase != DESIGNATHON_PHASE:
            msg = f"Teams can only be linked to requirements in a designathon state; {requirement_id} is in {req.current_state}"
            raise ValueError(msg)

    def add_designathon_team(
        self,
        event_id: int,
        team_name: str,
        *,
        members: list[str] | tuple[str, ...] | None = None,
        requirement_id: str | None = None,
        actor: str = "",
    ) -> dict[str, Any]:
        event = self.get_designathon_event(event_id)
        if event["status"] == "completed":
            msg = f"Designathon event {event_id} is completed; no new teams"
            raise ValueError(msg)
        if not team_name or not team_name.strip():
            msg = "Team name cannot be empty"
            raise ValueError(msg)
        if any(t["team_name"] == team_name.strip() for t in event["teams"]):
            msg = f"Team '{team_name.strip()}' already exists in event {event_id}"
            raise ValueError(msg)
        clean_members = _clean_members(members)
        if requirement_id is not None:
            self._check_linkable(requirement_id)

        now = _now_iso()
        try:
            cursor = self.conn.execute(
                "INSERT INTO designathon_teams (event_id, requirement_id, team_name, members, created_at) "
                "VALUES (?, ?, ?, ?, ?)",
                (event_id, requirement_id, team_name.strip(), json.dumps(clean_members), now),
            )
            if requirement_id is not None:
                self._record_event(
                    requirement_id,
                    "designathon_team_linked",
                    actor=actor,
                    new_value=team_name.strip(),
                    comment=event["title"],
                    now=now,
                )
            self.conn.commit()
        except Exception:
            self.conn.rollback()
            raise
        return self.get_designathon_team(_inserted_id(cursor.lastrowid))

    def get_designathon_team(self, team_id: int) -> dict[str, Any]:
        row = self.conn.execute("SELECT * FROM designathon_teams WHERE id = ?", (team_id,)).fetchone()
        if row is None:
            msg = f"Designathon team not found: {team_id}"
            raise KeyError(msg)
        return _team_row_to_dict(row)

    def list_designathon_teams(
        self, *, event_id: int | None = None, requirement_id: str | None = None
    ) -> list[dict[str, Any]]:
        conditions: list[str] = []
        params: list[Any] = []
        if event_id is not None:
            conditions.append("event_id = ?")
            params.append(event_id)
        if requirement_id is not None:
            conditions.append("requirement_id = ?")
            params.append(requirement_id)
        where = f" WHERE {' AND '.join(conditions)}" if conditions else ""
        rows = self.conn.execute(f"SELECT * FROM designathon_teams{where} ORDER BY id", params).fetchall()
        return [_team_row_to_dict(r) for r in rows]

    def update_designathon_team(
        self,
        team_id: int,
        *,
        submission_url: str | None = None,
        score: float | None = None,
        requirement_id: str | None = None,
        actor: str = "",
    ) -> dict[str, Any]:
        """Record a submission, a judging score, or a requirement link. ``None`` leaves a value as is."""
        team = self.get_designathon_team(team_id)
        updates: dict[str, Any] = {}
        if submission_url is not None:
            updates["submission_url"] = submission_url.strip() or None
        if score is not None:
            if isinstance(score, bool) or not isinstance(score, int | float) or not 0 <= score <= MAX_TEAM_SCORE:
                msg = f"score must be between 0 and {MAX_TEAM_SCORE}, got {score!r}"
                raise ValueError(msg)
            updates["score"] = float(score)
        if requirement_id is not None and requirement_id != team["requirement_id"]:
            self._check_linkable(requirement_id)
            updates["requirement_id"] = requirement_id
        if not updates:
            return team

        now = _now_iso()
        assignments = ", ".join(f"{col} = ?" for col in updates)
        try:
            self.conn.execute(
                f"UPDATE designathon_teams SET {assignments} WHERE id = ?",
                [*updates.values(), team_id],
            )
            if "requirement_id" in updates:
                self._record_event(
                    updates["requirement_id"],
                    "designathon_team_linked",
                    actor=actor,
                    old_value=team["requirement_id"],
                    new_value=team["team_name"],
                    now=now,
                )
            self.conn.commit()
        except Exception:
            self.conn.rollback()
            raise
        return self.get_designathon_team(team_id)
