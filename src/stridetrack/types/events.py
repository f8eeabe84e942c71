"""TypedDicts for db_events.py return types."""

from __future__ import annotations

from typing import TypedDict

from stridetrack.types.core import ISOTimestamp


class EventRecord(TypedDict):
    """Row from the events table (SELECT * FROM events).

    Returned by ``get_requirement_events()``.  ``get_recent_events()`` joins on
    ``requirements`` and adds ``requirement_title``, so it returns
    ``EventRecordWithTitle`` instead.
    """

    id: int
    requirement_id: str
    event_type: str
    actor: str
    old_value: str | None
    new_value: str | None
    comment: str
    created_at: ISOTimestamp


class EventRecordWithTitle(EventRecord):
    requirement_title: str
