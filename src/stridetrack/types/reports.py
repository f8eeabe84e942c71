"""TypedDicts for history, committee, and pipeline report shapes."""

from __future__ import annotations

from typing import Any, TypedDict

from stridetrack.types.core import ISOTimestamp, PhaseFeedbackDict


class HistoryEntry(TypedDict):
    """One accepted transition joined with the feedback captured for it."""

    from_state: str
    to_state: str
    from_label: str
    to_label: str
    notes: str
    actor: str
    created_at: ISOTimestamp
    feedback: PhaseFeedbackDict | None


class AgingAlert(TypedDict):
    requirement_id: str
    title: str
    priority: str
    current_state: str
    state_label: str
    phase: str
    days_in_phase: int
    threshold: int
    overdue_by: int
    severity: str


class CommitteeSummary(TypedDict):
    requirement_id: str
    revision_number: int
    reviews: list[dict[str, Any]]
    review_count: int
    average_score: float | None
    decision: dict[str, Any] | None


class PipelineStats(TypedDict):
    total: int
    by_state: dict[str, int]
    by_phase: dict[str, int]
    by_priority: dict[str, int]
    by_source: dict[str, int]
    active_p1: int
    production_ready: int
    aging: int
    average_completeness: float
    age_buckets: dict[str, dict[str, int]]
    revisions: int
