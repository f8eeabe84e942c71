"""EventsMixin: audit event recording and queries.

All methods access ``self.conn``, ``self.get_requirement()``, etc. via
Python's MRO when composed into ``StrideDB``.
"""

from __future__ import annotations

from typing import cast

from stridetrack.db_base import DBMixinProtocol, _now_iso
from stridetrack.types.events import EventRecord, EventRecordWithTitle


class EventsMixin(DBMixinProtocol):
    """Event recording and audit queries.

    Inherits ``DBMixinProtocol`` for type-safe access to shared attributes
    (``self.conn``, ``self.get_requirement()``, etc.). Actual implementations
    provided by ``StrideDB`` at composition time via MRO.
    """

    # -- Events (private) ----------------------------------------------------

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
    ) -> None:
        """Insert an event row. Caller owns the transaction (commit/rollback)."""
        self.conn.execute(
            "INSERT INTO events (requirement_id, event_type, actor, old_value, new_value, comment, created_at) "
            "VALUES (?, ?, ?, ?, ?, ?, ?)",
            (requirement_id, event_type, actor, old_value, new_value, comment, now or _now_iso()),
        )

    def get_recent_events(self, limit: int = 20) -> list[EventRecordWithTitle]:
        rows = self.conn.execute(
            "SELECT e.*, r.title as requirement_title FROM events e "
            "JOIN requirements r ON e.requirement_id = r.id "
            "ORDER BY e.created_at DESC, e.id DESC LIMIT ?",
            (limit,),
        ).fetchall()
        return cast(list[EventRecordWithTitle], [dict(r) for r in rows])

    def get_events_since(self, since: str, *, limit: int = 100) -> list[EventRecordWithTitle]:
        """Get events since a given ISO timestamp, ordered chronologically."""
        rows = self.conn.execute(
            "SELECT e.*, r.title as requirement_title FROM events e "
            "JOIN requirements r ON e.requirement_id = r.id "
            "WHERE e.created_at > ? "
            "ORDER BY e.created_at ASC, e.id ASC LIMIT ?",
            (since, limit),
        ).fetchall()
        return cast(list[EventRecordWithTitle], [dict(r) for r in rows])

    def get_requirement_events(self, requirement_id: str, *, limit: int = 50) -> list[EventRecord]:
        """Get events for a specific requirement, newest first."""
        self.get_requirement(requirement_id)  # raises KeyError if not found
        rows = self.conn.execute(
            "SELECT * FROM events WHERE requirement_id = ? ORDER BY created_at DESC, id DESC LIMIT ?",
            (requirement_id, limit),
        ).fetchall()
        return cast(list[EventRecord], [dict(r) for r in rows])
