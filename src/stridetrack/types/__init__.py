# IMPORT CONSTRAINT: types/ modules must only import from typing, stdlib, and each other.
# NEVER import from core.py, db_base.py, or any mixin, to avoid circular imports.
"""Typed return-value contracts for stridetrack core and API layers."""

from __future__ import annotations

from stridetrack.types.core import (
    ISOTimestamp,
    PhaseFeedbackDict,
    ProjectConfig,
    RequirementDict,
    StateTransitionDict,
)
from stridetrack.types.events import EventRecord, EventRecordWithTitle
from stridetrack.types.reports import AgingAlert, CommitteeSummary, HistoryEntry, PipelineStats

__all__ = [
    "AgingAlert",
    "CommitteeSummary",
    "EventRecord",
    "EventRecordWithTitle",
    "HistoryEntry",
    "ISOTimestamp",
    "PhaseFeedbackDict",
    "PipelineStats",
    "ProjectConfig",
    "RequirementDict",
    "StateTransitionDict",
]
