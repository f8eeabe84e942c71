"""Foundational TypedDicts for dataclass to_dict() returns."""

from __future__ import annotations

from typing import Any, NewType, TypedDict

ISOTimestamp = NewType("ISOTimestamp", str)


class ProjectConfig(TypedDict, total=False):
    """Shape of .stridetrack/config.json."""

    prefix: str
    name: str
    version: int
    aging_thresholds: dict[str, int]
    attestation_roles: dict[str, list[str]]


class RequirementDict(TypedDict):
    id: str
    title: str
    description: str
    source_type: str
    priority: str
    tech_level: str
    therapy_domains: list[str]
    disability_types: list[str]
    gap_flags: list[str]
    market_price: float | None
    target_price: float | None
    current_state: str
    state_label: str
    phase: str
    path_assignment: str | None
    path_justification: str
    revision_number: int
    created_by: str
    created_at: ISOTimestamp
    updated_at: ISOTimestamp


class StateTransitionDict(TypedDict):
    id: int
    requirement_id: str
    from_state: str
    to_state: str
    notes: str
    actor: str
    created_at: ISOTimestamp


class PhaseFeedbackDict(TypedDict):
    id: int
    requirement_id: str
    from_state: str
    to_state: str
    phase_notes: str
    blockers_resolved: list[str]
    key_decisions: list[str]
    phase_data: dict[str, Any]
    gate_checks: dict[str, bool]
    submitted_by: str
    created_at: ISOTimestamp
