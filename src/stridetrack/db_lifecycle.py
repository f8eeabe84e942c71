"""LifecycleMixin: the engine that moves requirements through the pipeline.

``advance`` and ``assign_path`` are the only writers of ``current_state``,
``path_assignment`` and ``revision_number``. Both follow the same shape:
read the requirement, validate every precondition before touching the
database, then apply all writes inside one ``BEGIN IMMEDIATE`` transaction
guarded by a compare-and-set on ``(current_state, updated_at)``.
"""

from __future__ import annotations

import contextlib
import json
import logging
import sqlite3
from collections.abc import Iterator, Mapping
from typing import TYPE_CHECKING, Any

from stridetrack.aging import AgingResult, is_aging
from stridetrack.db_base import DBMixinProtocol, _now_iso
from stridetrack.lifecycle import (
    Actor,
    AttestationNotPermittedError,
    ConcurrentModificationError,
    GateCriteriaNotMetError,
    InvalidTransitionError,
    LifecycleError,
    LifecycleRegistry,
    MissingPhaseDataError,
    MissingPhaseNotesError,
    PathAlreadyAssignedError,
    PhaseFeedbackInput,
    StorageUnavailableError,
    TransitionOption,
    default_registry,
)
from stridetrack.lifecycle_data import PATHS

if TYPE_CHECKING:
    from stridetrack.core import PhaseFeedback, Requirement, StateTransition
    from stridetrack.types.reports import HistoryEntry

logger = logging.getLogger(__name__)


def as_actor(actor: Actor | str) -> Actor:
    return actor if isinstance(actor, Actor) else Actor(id=actor)


class LifecycleMixin(DBMixinProtocol):
    """State transitions, path assignment, and transition history.

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

    @property
    def lifecycle(self) -> LifecycleRegistry:
        """Lazy-loaded lifecycle registry."""
        if self._lifecycle is None:
            self._lifecycle = default_registry()
        return self._lifecycle

    # -- Transactions --------------------------------------------------------

    def _rollback_quietly(self) -> None:
        with contextlib.suppress(sqlite3.Error):
            self.conn.rollback()

    @contextlib.contextmanager
    def _write_transaction(self, operation: str) -> Iterator[None]:
        """Run the body inside BEGIN IMMEDIATE ... COMMIT.

        SQLite operational failures (locked, read-only, I/O) are rolled back
        and surfaced as StorageUnavailableError; everything else is rolled
        back and re-raised unchanged.
        """
        try:
            if self.conn.in_transaction:
                self.conn.commit()
            self.conn.execute("BEGIN IMMEDIATE")
        except sqlite3.OperationalError as exc:
            logger.error("Storage unavailable starting %s: %s", operation, exc)
            raise StorageUnavailableError(operation, exc) from exc
        try:
            yield
            self.conn.commit()
        except sqlite3.OperationalError as exc:
            self._rollback_quietly()
            logger.error("Storage unavailable during %s: %s", operation, exc)
            raise StorageUnavailableError(operation, exc) from exc
        except BaseException:
            self._rollback_quietly()
            raise

    def _compare_and_set(self, req: Requirement, assignments: str, params: list[Any]) -> None:
        """Apply an UPDATE only if the requirement is unchanged since *req* was read."""
        cursor = self.conn.execute(
            f"UPDATE requirements SET {assignments} WHERE id = ? AND current_state = ? AND updated_at = ?",
            [*params, req.id, req.current_state, req.updated_at],
        )
        if cursor.rowcount == 0:
            row = self.conn.execute("SELECT current_state FROM requirements WHERE id = ?", (req.id,)).fetchone()
            raise ConcurrentModificationError(req.id, req.current_state, row["current_state"] if row else None)

    # -- Queries -------------------------------------------------------------

    def get_next_states(self, requirement_id: str) -> list[str]:
        req = self.get_requirement(requirement_id)
        return self.lifecycle.next_states(req.current_state, req.path_assignment)

    def get_transition_options(
        self,
        requirement_id: str,
        *,
        checks: Mapping[str, Any] | None = None,
        values: Mapping[str, Any] | None = None,
    ) -> list[TransitionOption]:
        """Every legal next state with its checklist and readiness against *checks*/*values*."""
        req = self.get_requirement(requirement_id)
        return self.lifecycle.transition_options(req.current_state, req.path_assignment, checks, values)

    def get_transitions(self, requirement_id: str) -> list[StateTransition]:
        """Transition log, oldest first. The last entry always ends at ``current_state``."""
        from stridetrack.core import StateTransition

        self.get_requirement(requirement_id)  # raises KeyError if not found
        rows = self.conn.execute(
            "SELECT * FROM state_transitions WHERE requirement_id = ? ORDER BY id",
            (requirement_id,),
        ).fetchall()
        return [
            StateTransition(
                id=r["id"],
                requirement_id=r["requirement_id"],
                from_state=r["from_state"],
                to_state=r["to_state"],
                notes=r["notes"] or "",
                actor=r["actor"] or "",
                created_at=r["created_at"],
            )
            for r in rows
        ]

    def get_feedback(self, requirement_id: str) -> list[PhaseFeedback]:
        from stridetrack.core import PhaseFeedback

        self.get_requirement(requirement_id)  # raises KeyError if not found
        rows = self.conn.execute(
            "SELECT * FROM phase_feedbacks WHERE requirement_id = ? ORDER BY id",
            (requirement_id,),
        ).fetchall()
        return [
            PhaseFeedback(
                id=r["id"],
                requirement_id=r["requirement_id"],
                from_state=r["from_state"],
                to_state=r["to_state"],
                phase_notes=r["phase_notes"],
                blockers_resolved=json.loads(r["blockers_resolved"] or "[]"),
                key_decisions=json.loads(r["key_decisions"] or "[]"),
                phase_data=json.loads(r["phase_data"] or "{}"),
                gate_checks=json.loads(r["gate_checks"] or "{}"),
                submitted_by=r["submitted_by"] or "",
                created_at=r["created_at"],
            )
            for r in rows
        ]

    def get_history(self, requirement_id: str) -> list[HistoryEntry]:
        """Transitions joined with the feedback written alongside each one."""
        feedback_by_edge = {(f.from_state, f.to_state, f.created_at): f for f in self.get_feedback(requirement_id)}
        history: list[HistoryEntry] = []
        for t in self.get_transitions(requirement_id):
            fb = feedback_by_edge.get((t.from_state, t.to_state, t.created_at))
            history.append(
                {
                    "from_state": t.from_state,
                    "to_state": t.to_state,
                    "from_label": self.lifecycle.lookup(t.from_state).label,
                    "to_label": self.lifecycle.lookup(t.to_state).label,
                    "notes": t.notes,
                    "actor": t.actor,
                    "created_at": t.created_at,  # type: ignore[typeddict-item]
                    "feedback": fb.to_dict() if fb is not None else None,
                }
            )
        return history

    def get_state_entered_at(self, requirement_id: str) -> str:
        """When the requirement entered its current state (last transition, else creation)."""
        req = self.get_requirement(requirement_id)
        row = self.conn.execute(
            "SELECT created_at FROM state_transitions WHERE requirement_id = ? ORDER BY id DESC LIMIT 1",
            (requirement_id,),
        ).fetchone()
        return row["created_at"] if row is not None else req.created_at

    def get_aging(self, requirement_id: str) -> AgingResult:
        req = self.get_requirement(requirement_id)
        return is_aging(
            req.current_state,
            self.get_state_entered_at(requirement_id),
            thresholds=self.aging_thresholds,
        )

    # -- Validation ----------------------------------------------------------

    def _check_advance(self, req: Requirement, to_state: str, feedback: PhaseFeedbackInput, actor: Actor) -> None:
        """Raise the first failing precondition, in a fixed order."""
        lc = self.lifecycle
        from_state = req.current_state
        allowed = lc.next_states(from_state, req.path_assignment)
        if to_state not in allowed:
            reason = ""
            if lc.requires_path_assignment(from_state) and not req.path_assignment:
                reason = "assign a path first"
            elif lc.is_terminal(from_state):
                reason = f"'{from_state}' is terminal"
            raise InvalidTransitionError(from_state, to_state, allowed, reason)

        if not self._attestation_check(actor, from_state, to_state):
            raise AttestationNotPermittedError(actor, from_state, to_state)

        unmet = lc.unmet_gate_criteria(from_state, to_state, feedback.gate_checks)
        if unmet:
            raise GateCriteriaNotMetError(from_state, to_state, unmet)

        missing = lc.missing_phase_fields(from_state, to_state, feedback.phase_data)
        if missing:
            raise MissingPhaseDataError(from_state, to_state, missing)

        if not feedback.notes or not feedback.notes.strip():
            raise MissingPhaseNotesError(from_state, to_state)

    # -- Operations ----------------------------------------------------------

    def advance(
        self,
        requirement_id: str,
        to_state: str,
        feedback: PhaseFeedbackInput,
        actor: Actor | str = "",
    ) -> Requirement:
        """Move a requirement along one edge, capturing its phase feedback.

        Preconditions are checked in order: edge legality, attestation
        permission, gate criteria, phase fields, notes. The first failure is
        raised as its LifecycleError subclass and nothing is written.

        On success the state change, the feedback record and the transition
        record are committed together with one shared timestamp. Taking a
        revision edge bumps ``revision_number`` by one.

        Raises:
            KeyError: Unknown requirement.
            LifecycleError: A precondition failed, another writer got there
                first (ConcurrentModification), or SQLite could not complete
                the write (StorageUnavailable).
        """
        who = as_actor(actor)
        req = self.get_requirement(requirement_id)
        from_state = req.current_state
        try:
            self._check_advance(req, to_state, feedback, who)
        except LifecycleError as exc:
            logger.debug("Rejected %s %s -> %s: %s", requirement_id, from_state, to_state, exc.kind)
            raise

        is_revision = self.lifecycle.is_revision_edge(from_state, to_state)
        revision = req.revision_number + 1 if is_revision else req.revision_number
        now = _now_iso()
        notes = feedback.notes.strip()
        phase_data = {
            f.id: feedback.phase_data[f.id]
            for f in self.lifecycle.phase_fields(from_state, to_state)
            if f.id in feedback.phase_data
        }
        gate_checks = {g.id: feedback.gate_checks.get(g.id) is True for g in self.lifecycle.gate_criteria(from_state, to_state)}

        with self._write_transaction("advance"):
            self._compare_and_set(
                req,
                "current_state = ?, revision_number = ?, updated_at = ?",
                [to_state, revision, now],
            )
            self.conn.execute(
                "INSERT INTO phase_feedbacks (requirement_id, from_state, to_state, phase_notes, blockers_resolved, "
                "key_decisions, phase_data, gate_checks, submitted_by, created_at) "
                "VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
                (
                    requirement_id,
                    from_state,
                    to_state,
                    notes,
                    json.dumps(list(feedback.blockers_resolved)),
                    json.dumps(list(feedback.key_decisions)),
                    json.dumps(phase_data),
                    json.dumps(gate_checks),
                    who.id,
                    now,
                ),
            )
            self.conn.execute(
                "INSERT INTO state_transitions (requirement_id, from_state, to_state, notes, actor, created_at) "
                "VALUES (?, ?, ?, ?, ?, ?)",
                (requirement_id, from_state, to_state, notes, who.id, now),
            )
            self._record_event(
                requirement_id,
                "revision_started" if is_revision else "state_changed",
                actor=who.id,
                old_value=from_state,
                new_value=to_state,
                now=now,
            )

        logger.info(
            "Requirement %s advanced %s -> %s by '%s'%s",
            requirement_id,
            from_state,
            to_state,
            who.id,
            f" (revision {revision})" if is_revision else "",
        )
        return self.get_requirement(requirement_id)

    def assign_path(
        self,
        requirement_id: str,
        path: str,
        justification: str,
        actor: Actor | str = "",
    ) -> Requirement:
        """Record the build-path decision for a requirement at the path-decision state.

        The assignment is final. It does not change state; it only unlocks the
        matching branch in ``next_states``.

        Raises:
            KeyError: Unknown requirement.
            ValueError: Unknown path or blank justification.
            LifecycleError: Wrong state (InvalidTransition), path already set
                (PathAlreadyAssigned), ConcurrentModification, StorageUnavailable.
        """
        who = as_actor(actor)
        if path not in PATHS:
            msg = f"Invalid path '{path}'. Valid values: {', '.join(PATHS)}"
            raise ValueError(msg)
        if not justification or not justification.strip():
            msg = "Path justification cannot be empty"
            raise ValueError(msg)

        req = self.get_requirement(requirement_id)
        if not self.lifecycle.requires_path_assignment(req.current_state):
            raise InvalidTransitionError(
                req.current_state,
                self.lifecycle.path_targets[path],
                self.lifecycle.next_states(req.current_state, req.path_assignment),
                f"a path can only be assigned at '{self.lifecycle.path_state}'",
            )
        if req.path_assignment:
            raise PathAlreadyAssignedError(requirement_id, req.path_assignment)

        now = _now_iso()
        with self._write_transaction("assign_path"):
            self._compare_and_set(
                req,
                "path_assignment = ?, path_justification = ?, updated_at = ?",
                [path, justification.strip(), now],
            )
            self._record_event(
                requirement_id,
                "path_assigned",
                actor=who.id,
                new_value=path,
                comment=justification.strip(),
                now=now,
            )
        logger.info("Requirement %s assigned path %s by '%s'", requirement_id, path, who.id)
        return self.get_requirement(requirement_id)
