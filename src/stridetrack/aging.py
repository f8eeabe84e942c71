"""Aging policy -- how long a requirement may sit in a phase before it is flagged."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any, Literal

from stridetrack.lifecycle import default_registry
from stridetrack.lifecycle_data import AGING_THRESHOLDS

logger = logging.getLogger(__name__)

AlertSeverity = Literal["critical", "warning", "notice"]

AGE_BUCKETS: tuple[str, ...] = ("<7d", "7-14d", "14-30d", "30d+")


@dataclass(frozen=True)
class AgingResult:
    aging: bool
    days_in_phase: int
    threshold: int
    overdue_by: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "aging": self.aging,
            "days_in_phase": self.days_in_phase,
            "threshold": self.threshold,
            "overdue_by": self.overdue_by,
        }


def as_utc(dt: datetime) -> datetime:
    """Naive datetimes are taken to be UTC."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=UTC)
    return dt


def parse_iso(ts: str) -> datetime:
    """Parse an ISO timestamp, treating naive values as UTC."""
    return as_utc(datetime.fromisoformat(ts))


def merge_thresholds(overrides: Mapping[str, Any] | None) -> dict[str, int]:
    """Apply per-project overrides on top of the built-in thresholds.

    Unknown prefixes and non-positive or non-integer values are ignored
    with a warning.
    """
    merged = dict(AGING_THRESHOLDS)
    for key, value in (overrides or {}).items():
        if key not in AGING_THRESHOLDS:
            logger.warning("Ignoring aging threshold for unknown prefix '%s'", key)
            continue
        if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
            logger.warning("Ignoring invalid aging threshold %r for '%s'", value, key)
            continue
        merged[key] = value
    return merged


def threshold_for(state: str, thresholds: Mapping[str, int] | None = None) -> int:
    """Days allowed in *state*, chosen by the longest matching state prefix."""
    table = thresholds or AGING_THRESHOLDS
    prefixes = sorted((k for k in table if k != "default"), key=len, reverse=True)
    for prefix in prefixes:
        if state.startswith(prefix):
            return table[prefix]
    return table.get("default", AGING_THRESHOLDS["default"])


def is_aging(
    state: str,
    reference: datetime | str,
    now: datetime | None = None,
    *,
    thresholds: Mapping[str, int] | None = None,
) -> AgingResult:
    """Evaluate whether a requirement has been in *state* too long.

    *reference* is when the requirement entered the state. Days are whole
    days, floored. The terminal state never ages.
    """
    reference = parse_iso(reference) if isinstance(reference, str) else as_utc(reference)
    now = as_utc(now) if now is not None else datetime.now(UTC)
    threshold = threshold_for(state, thresholds)
    days = max(0, (now - reference).days)
    if default_registry().is_terminal(state):
        return AgingResult(aging=False, days_in_phase=days, threshold=threshold, overdue_by=0)
    overdue = max(0, days - threshold)
    return AgingResult(aging=days > threshold, days_in_phase=days, threshold=threshold, overdue_by=overdue)


def alert_severity(overdue_by: int) -> AlertSeverity:
    if overdue_by > 30:
        return "critical"
    if overdue_by > 14:
        return "warning"
    return "notice"


def age_bucket(days: int) -> str:
    """Leadership-view bucket for a days-in-phase count."""
    if days < 7:
        return "<7d"
    if days < 14:
        return "7-14d"
    if days < 30:
        return "14-30d"
    return "30d+"
