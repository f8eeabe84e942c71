"""DoEMixin: design-of-experiments records for the convergence phase.

One record per requirement revision. Pre- and post-test scores are kept per
metric and the improvement (post minus pre) is derived on every save.
"""

from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING, Any

from stridetrack.db_base import DBMixinProtocol, _now_iso

logger = logging.getLogger(__name__)

DOE_METRICS: tuple[str, ...] = ("Functionality", "Comfort", "Durability", "Ease of Use", "Safety")
DOE_STATES: tuple[str, ...] = ("H-DOE-1", "H-DOE-2", "H-DOE-3", "H-DOE-4")


def _validate_metric_scores(label: str, scores: dict[str, Any] | None) -> dict[str, float]:
    """Scores per metric, 0-10 in steps of 0.5. Metrics left out count as 0."""
    scores = scores or {}
    if not isinstance(scores, dict):
        msg = f"{label} scores must be an object keyed by metric"
        raise ValueError(msg)
    unknown = sorted(set(scores) - set(DOE_METRICS))
    if unknown:
        msg = f"Unknown DoE metrics in {label}: {', '.join(unknown)}. Valid metrics: {', '.join(DOE_METRICS)}"
        raise ValueError(msg)
    result: dict[str, float] = {}
    for metric in DOE_METRICS:
        value = scores.get(metric, 0)
        if isinstance(value, bool) or not isinstance(value, int | float):
            msg = f"{label} score for '{metric}' must be a number, got {type(value).__name__}"
            raise ValueError(msg)
        if not 0 <= value <= 10 or (value * 2) % 1 != 0:
            msg = f"{label} score for '{metric}' must be between 0 and 10 in steps of 0.5, got {value}"
            raise ValueError(msg)
        result[metric] = float(value)
    return result


def improvement_metrics(pre: dict[str, float], post: dict[str, float]) -> dict[str, float]:
    return {m: round(post[m] - pre[m], 1) for m in DOE_METRICS}


def _doe_row_to_dict(row: Any) -> dict[str, Any]:
    data = dict(row)
    for key in ("pre_test_data", "post_test_data", "improvement_metrics"):
        data[key] = json.loads(data[key] or "{}")
    improvements = data["improvement_metrics"].values()
    data["average_improvement"] = round(sum(improvements) / len(DOE_METRICS), 2)
    return data


class DoEMixin(DBMixinProtocol):
    """Upsert and read DoE records.

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

    def record_doe(
        self,
        requirement_id: str,
        *,
        testing_protocol: str = "",
        sample_size: int | None = None,
        pre_test: dict[str, Any] | None = None,
        post_test: dict[str, Any] | None = None,
        results_summary: str = "",
        beneficiary_feedback: str = "",
        recorded_by: str = "",
    ) -> dict[str, Any]:
        """Create or replace the DoE record for the requirement's current revision."""
        req = self.get_requirement(requirement_id)
        if req.current_state not in DOE_STATES:
            msg = f"DoE data is only captured in {DOE_STATES[0]}..{DOE_STATES[-1]}; {requirement_id} is in {req.current_state}"
            raise ValueError(msg)
        if sample_size is not None and (
            isinstance(sample_size, bool) or not isinstance(sample_size, int) or sample_size <= 0
        ):
            msg = f"sample_size must be a positive integer, got {sample_size!r}"
            raise ValueError(msg)
        pre = _validate_metric_scores("pre-test", pre_test)
        post = _validate_metric_scores("post-test", post_test)
        improvements = improvement_metrics(pre, post)
        now = _now_iso()

        try:
            self.conn.execute(
                "INSERT INTO doe_records (requirement_id, revision_number, testing_protocol, sample_size, "
                "pre_test_data, post_test_data, improvement_metrics, results_summary, beneficiary_feedback, "
                "recorded_by, created_at, updated_at) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?) "
                "ON CONFLICT (requirement_id, revision_number) DO UPDATE SET "
                "testing_protocol = excluded.testing_protocol, sample_size = excluded.sample_size, "
                "pre_test_data = excluded.pre_test_data, post_test_data = excluded.post_test_data, "
                "improvement_metrics = excluded.improvement_metrics, results_summary = excluded.results_summary, "
                "beneficiary_feedback = excluded.beneficiary_feedback, recorded_by = excluded.recorded_by, "
                "updated_at = excluded.updated_at",
                (
                    requirement_id,
                    req.revision_number,
                    testing_protocol,
                    sample_size,
                    json.dumps(pre),
                    json.dumps(post),
                    json.dumps(improvements),
                    results_summary,
                    beneficiary_feedback,
                    recorded_by,
                    now,
                    now,
                ),
            )
            self._record_event(requirement_id, "doe_recorded", actor=recorded_by, new_value=req.current_state, now=now)
            self.conn.commit()
        except Exception:
            self.conn.rollback()
            raise
        logger.info("DoE record saved for %s (revision %d)", requirement_id, req.revision_number)
        row = self.conn.execute(
            "SELECT * FROM doe_records WHERE requirement_id = ? AND revision_number = ?",
            (requirement_id, req.revision_number),
        ).fetchone()
        return _doe_row_to_dict(row)

    def get_doe_record(self, requirement_id: str, *, revision_number: int | None = None) -> dict[str, Any] | None:
        """The DoE record for one revision (default: the current one), or None."""
        req = self.get_requirement(requirement_id)
        revision = req.revision_number if revision_number is None else revision_number
        row = self.conn.execute(
            "SELECT * FROM doe_records WHERE requirement_id = ? AND revision_number = ?",
            (requirement_id, revision),
        ).fetchone()
        return _doe_row_to_dict(row) if row is not None else None
