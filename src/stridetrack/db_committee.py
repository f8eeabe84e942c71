"""CommitteeMixin: convergence committee reviews and decisions.

Reviews are weighted scorecards collected while a requirement sits in
committee review; the decision is recorded once per revision. Neither moves
the requirement: the operator still calls ``advance`` and attests the
matching gate criterion.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from stridetrack.db_base import DBMixinProtocol, _now_iso

if TYPE_CHECKING:
    from stridetrack.types.reports import CommitteeSummary

logger = logging.getLogger(__name__)

SCORE_WEIGHTS: dict[str, float] = {
    "user_need": 0.25,
    "technical_feasibility": 0.20,
    "doe_results": 0.25,
    "cost_effectiveness": 0.15,
    "safety": 0.15,
}
RECOMMENDATIONS: tuple[str, ...] = ("APPROVE", "REVISE", "REJECT")
REVIEW_STATES: tuple[str, ...] = ("H-DOE-3", "H-DOE-4")
DECISION_STATE = "H-DOE-4"


def weighted_total(scores: dict[str, float]) -> float:
    return round(sum(SCORE_WEIGHTS[k] * scores[k] for k in SCORE_WEIGHTS), 1)


def _validate_scores(scores: dict[str, Any]) -> dict[str, float]:
    missing = [k for k in SCORE_WEIGHTS if k not in scores]
    if missing:
        msg = f"Missing scores: {', '.join(missing)}"
        raise ValueError(msg)
    unknown = sorted(set(scores) - set(SCORE_WEIGHTS))
    if unknown:
        msg = f"Unknown score criteria: {', '.join(unknown)}"
        raise ValueError(msg)
    result: dict[str, float] = {}
    for key in SCORE_WEIGHTS:
        value = scores[key]
        if isinstance(value, bool) or not isinstance(value, int | float):
            msg = f"Score '{key}' must be a number, got {type(value).__name__}"
            raise ValueError(msg)
        if not 0 <= value <= 10 or (value * 2) % 1 != 0:
            msg = f"Score '{key}' must be between 0 and 10 in steps of 0.5, got {value}"
            raise ValueError(msg)
        result[key] = float(value)
    return result


class CommitteeMixin(DBMixinProtocol):
    """Committee scorecards and per-revision decisions.

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

    def add_committee_review(
        self,
        requirement_id: str,
        *,
        reviewer: str,
        scores: dict[str, Any],
        recommendation: str,
        feedback_text: str = "",
        conditions: str = "",
    ) -> dict[str, Any]:
        req = self.get_requirement(requirement_id)
        if req.current_state not in REVIEW_STATES:
            msg = f"Committee reviews are only accepted in {', '.join(REVIEW_STATES)}; {requirement_id} is in {req.current_state}"
            raise ValueError(msg)
        if not reviewer or not reviewer.strip():
            msg = "Reviewer cannot be empty"
            raise ValueError(msg)
        if recommendation not in RECOMMENDATIONS:
            msg = f"Invalid recommendation '{recommendation}'. Valid values: {', '.join(RECOMMENDATIONS)}"
            raise ValueError(msg)
        clean = _validate_scores(scores)
        total = weighted_total(clean)
        now = _now_iso()

        try:
            cursor = self.conn.execute(
                "INSERT INTO committee_reviews (requirement_id, revision_number, reviewer, user_need, "
                "technical_feasibility, doe_results, cost_effectiveness, safety, weighted_total, "
                "recommendation, feedback_text, conditions, created_at) "
                "VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
                (
                    requirement_id,
                    req.revision_number,
                    reviewer.strip(),
                    clean["user_need"],
                    clean["technical_feasibility"],
                    clean["doe_results"],
                    clean["cost_effectiveness"],
                    clean["safety"],
                    total,
                    recommendation,
                    feedback_text,
                    conditions,
                    now,
                ),
            )
            self._record_event(
                requirement_id,
                "committee_review",
                actor=reviewer.strip(),
                new_value=f"{recommendation} ({total})",
                now=now,
            )
            self.conn.commit()
        except Exception:
            self.conn.rollback()
            raise
        row = self.conn.execute("SELECT * FROM committee_reviews WHERE id = ?", (cursor.lastrowid,)).fetchone()
        return dict(row)

    def get_committee_reviews(self, requirement_id: str, *, revision_number: int | None = None) -> list[dict[str, Any]]:
        """Reviews for one revision (default: the current one), oldest first."""
        req = self.get_requirement(requirement_id)
        revision = req.revision_number if revision_number is None else revision_number
        rows = self.conn.execute(
            "SELECT * FROM committee_reviews WHERE requirement_id = ? AND revision_number = ? ORDER BY id",
            (requirement_id, revision),
        ).fetchall()
        return [dict(r) for r in rows]

    def record_committee_decision(
        self,
        requirement_id: str,
        decision: str,
        *,
        revision_instructions: str = "",
        conditions: str = "",
        decided_by: str = "",
    ) -> dict[str, Any]:
        req = self.get_requirement(requirement_id)
        if req.current_state != DECISION_STATE:
            msg = f"Committee decisions are only recorded in {DECISION_STATE}; {requirement_id} is in {req.current_state}"
            raise ValueError(msg)
        if decision not in RECOMMENDATIONS:
            msg = f"Invalid decision '{decision}'. Valid values: {', '.join(RECOMMENDATIONS)}"
            raise ValueError(msg)
        if decision == "REVISE" and not revision_instructions.strip():
            msg = "A REVISE decision needs revision instructions"
            raise ValueError(msg)
        if not self.get_committee_reviews(requirement_id):
            msg = f"No committee reviews recorded for {requirement_id} revision {req.revision_number}"
            raise ValueError(msg)
        if self.get_committee_decision(requirement_id) is not None:
            msg = f"A decision is already recorded for {requirement_id} revision {req.revision_number}"
            raise ValueError(msg)

        now = _now_iso()
        try:
            self.conn.execute(
                "INSERT INTO committee_decisions (requirement_id, revision_number, decision, "
                "revision_instructions, conditions, decided_by, created_at) VALUES (?, ?, ?, ?, ?, ?, ?)",
                (requirement_id, req.revision_number, decision, revision_instructions, conditions, decided_by, now),
            )
            self._record_event(requirement_id, "committee_decision", actor=decided_by, new_value=decision, now=now)
            self.conn.commit()
        except Exception:
            self.conn.rollback()
            raise
        logger.info("Committee decision %s recorded for %s (revision %d)", decision, requirement_id, req.revision_number)
        row = self.conn.execute(
            "SELECT * FROM committee_decisions WHERE requirement_id = ? AND revision_number = ?",
            (requirement_id, req.revision_number),
        ).fetchone()
        return dict(row)

    def get_committee_decision(self, requirement_id: str, *, revision_number: int | None = None) -> dict[str, Any] | None:
        req = self.get_requirement(requirement_id)
        revision = req.revision_number if revision_number is None else revision_number
        row = self.conn.execute(
            "SELECT * FROM committee_decisions WHERE requirement_id = ? AND revision_number = ?",
            (requirement_id, revision),
        ).fetchone()
        return dict(row) if row is not None else None

    def get_committee_summary(self, requirement_id: str) -> CommitteeSummary:
        req = self.get_requirement(requirement_id)
        reviews = self.get_committee_reviews(requirement_id)
        average = round(sum(r["weighted_total"] for r in reviews) / len(reviews), 1) if reviews else None
        return {
            "requirement_id": requirement_id,
            "revision_number": req.revision_number,
            "reviews": reviews,
            "review_count": len(reviews),
            "average_score": average,
            "decision": self.get_committee_decision(requirement_id),
        }
