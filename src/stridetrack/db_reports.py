"""ReportsMixin: aging alerts and pipeline statistics.

All methods access ``self.conn``, ``self.lifecycle``, etc. via Python's MRO
when composed into ``StrideDB``.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

from stridetrack.aging import AGE_BUCKETS, age_bucket, alert_severity, is_aging
from stridetrack.db_base import DBMixinProtocol

if TYPE_CHECKING:
    from stridetrack.core import Requirement
    from stridetrack.lifecycle import LifecycleRegistry
    from stridetrack.types.reports import AgingAlert, PipelineStats

_COMPLETENESS_FIELDS = (
    "title",
    "description",
    "source_type",
    "priority",
    "tech_level",
    "disability_types",
    "therapy_domains",
    "market_price",
    "target_price",
)


def data_completeness(req: Requirement) -> int:
    """Percentage (0-100) of the nine descriptive attributes that are filled in."""
    filled = 0
    for name in _COMPLETENESS_FIELDS:
        value: Any = getattr(req, name)
        if value is None:
            continue
        if isinstance(value, str | list) and not value:
            continue
        if isinstance(value, str) and not value.strip():
            continue
        filled += 1
    return round(filled * 100 / len(_COMPLETENESS_FIELDS))


class ReportsMixin(DBMixinProtocol):
    """Read-only pipeline views.

    Inherits ``DBMixinProtocol`` for type-safe access to shared attributes.
    Actual implementations provided by ``StrideDB`` at composition time via MRO.
    """

    if TYPE_CHECKING:
        # From LifecycleMixin
        @property
        def lifecycle(self) -> LifecycleRegistry: ...

        # From RequirementsMixin
        def _build_requirement(self, row: Any) -> Requirement: ...

    def _state_entered_index(self) -> dict[str, str]:
        """requirement_id -> created_at of its latest transition, in one query."""
        rows = self.conn.execute(
            "SELECT t.requirement_id, t.created_at FROM state_transitions t "
            "JOIN (SELECT requirement_id, MAX(id) AS max_id FROM state_transitions GROUP BY requirement_id) m "
            "ON t.id = m.max_id"
        ).fetchall()
        return {r["requirement_id"]: r["created_at"] for r in rows}

    def _all_requirements(self) -> list[Requirement]:
        rows = self.conn.execute("SELECT * FROM requirements ORDER BY created_at, id").fetchall()
        return [self._build_requirement(r) for r in rows]

    def get_aging_alerts(self, *, now: datetime | None = None, include_all: bool = False) -> list[AgingAlert]:
        """Requirements past their phase threshold, most overdue first.

        With ``include_all`` every non-terminal requirement is listed, with
        ``overdue_by`` 0 for those still within their threshold.
        """
        now = now or datetime.now(UTC)
        entered = self._state_entered_index()
        alerts: list[AgingAlert] = []
        for req in self._all_requirements():
            if self.lifecycle.is_terminal(req.current_state):
                continue
            result = is_aging(
                req.current_state,
                entered.get(req.id, req.created_at),
                now,
                thresholds=self.aging_thresholds,
            )
            if not result.aging and not include_all:
                continue
            alerts.append(
                {
                    "requirement_id": req.id,
                    "title": req.title,
                    "priority": req.priority,
                    "current_state": req.current_state,
                    "state_label": req.state_label,
                    "phase": req.phase,
                    "days_in_phase": result.days_in_phase,
                    "threshold": result.threshold,
                    "overdue_by": result.overdue_by,
                    "severity": alert_severity(result.overdue_by) if result.aging else "ok",
                }
            )
        alerts.sort(key=lambda a: (-a["overdue_by"], -a["days_in_phase"], a["requirement_id"]))
        return alerts

    def get_pipeline_stats(self, *, now: datetime | None = None) -> PipelineStats:
        now = now or datetime.now(UTC)
        entered = self._state_entered_index()
        requirements = self._all_requirements()

        by_state: dict[str, int] = {s.id: 0 for s in self.lifecycle.list_states()}
        by_phase: dict[str, int] = {}
        by_priority: dict[str, int] = {}
        by_source: dict[str, int] = {}
        age_buckets: dict[str, dict[str, int]] = {}
        active_p1 = production_ready = aging = revisions = 0
        completeness_total = 0

        for req in requirements:
            by_state[req.current_state] = by_state.get(req.current_state, 0) + 1
            by_phase[req.phase] = by_phase.get(req.phase, 0) + 1
            by_priority[req.priority] = by_priority.get(req.priority, 0) + 1
            by_source[req.source_type] = by_source.get(req.source_type, 0) + 1
            completeness_total += data_completeness(req)
            if req.revision_number > 0:
                revisions += 1
            if self.lifecycle.is_terminal(req.current_state):
                production_ready += 1
                continue
            if req.priority == "P1":
                active_p1 += 1
            result = is_aging(
                req.current_state,
                entered.get(req.id, req.created_at),
                now,
                thresholds=self.aging_thresholds,
            )
            if result.aging:
                aging += 1
            buckets = age_buckets.setdefault(req.current_state, dict.fromkeys(AGE_BUCKETS, 0))
            buckets[age_bucket(result.days_in_phase)] += 1

        return {
            "total": len(requirements),
            "by_state": by_state,
            "by_phase": by_phase,
            "by_priority": by_priority,
            "by_source": by_source,
            "active_p1": active_p1,
            "production_ready": production_ready,
            "aging": aging,
            "average_completeness": round(completeness_total / len(requirements), 1) if requirements else 0.0,
            "age_buckets": age_buckets,
            "revisions": revisions,
        }
