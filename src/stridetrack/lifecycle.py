# src/stridetrack/lifecycle.py
"""Requirement lifecycle -- state registry, transition table, and catalogs.

Provides LifecycleRegistry, the pure rule layer behind every state change:
which states exist, which edges are legal, which gate criteria must be
attested and which phase-specific fields must be captured for an edge.
Nothing here touches storage; the record layer in db_lifecycle.py calls in.
"""

from __future__ import annotations

import functools
import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from typing import Any, Literal

from stridetrack.lifecycle_data import LIFECYCLE, PATHS

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Type aliases
# ---------------------------------------------------------------------------

PhaseTag = Literal["SENSING", "HARMONIZING", "DESIGNATHON", "CONVERGENCE", "UNKNOWN"]
FieldType = Literal["text", "long-text", "select"]
PathAssignment = Literal["INTERNAL", "DESIGNATHON"]

_VALID_PHASES: frozenset[str] = frozenset({"SENSING", "HARMONIZING", "DESIGNATHON", "CONVERGENCE"})
_VALID_FIELD_TYPES: frozenset[str] = frozenset({"text", "long-text", "select"})


def edge_key(from_state: str, to_state: str) -> str:
    """Catalog key for an edge, e.g. ``"S1->S2"``."""
    return f"{from_state}->{to_state}"


# ---------------------------------------------------------------------------
# Frozen dataclasses
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class StateDefinition:
    """A pipeline stage and the phase it belongs to."""

    id: str
    label: str
    phase: PhaseTag

    def __post_init__(self) -> None:
        if not self.id or not self.id.strip():
            msg = "State id cannot be empty"
            raise ValueError(msg)
        if self.phase not in _VALID_PHASES and self.phase != "UNKNOWN":
            allowed = sorted(_VALID_PHASES)
            msg = f"Invalid phase '{self.phase}' for state '{self.id}': must be one of {allowed}"
            raise ValueError(msg)

    def to_dict(self) -> dict[str, str]:
        return {"id": self.id, "label": self.label, "phase": self.phase}


@dataclass(frozen=True)
class GateCriterion:
    """A checklist item an operator attests before an edge may be taken."""

    id: str
    label: str
    required: bool = True

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "label": self.label, "required": self.required}


@dataclass(frozen=True)
class PhaseField:
    """A structured value captured when an edge is taken."""

    id: str
    label: str
    type: FieldType
    options: tuple[str, ...] = ()
    required: bool = False

    def __post_init__(self) -> None:
        if self.type not in _VALID_FIELD_TYPES:
            allowed = sorted(_VALID_FIELD_TYPES)
            msg = f"Invalid field type '{self.type}' for field '{self.id}': must be one of {allowed}"
            raise ValueError(msg)
        if self.type == "select" and not self.options:
            msg = f"Select field '{self.id}' must declare options"
            raise ValueError(msg)

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {"id": self.id, "label": self.label, "type": self.type, "required": self.required}
        if self.options:
            result["options"] = list(self.options)
        return result


@dataclass(frozen=True)
class TransitionOption:
    """A possible next state, with how ready the caller is to take it."""

    to: str
    label: str
    phase: PhaseTag
    is_revision: bool
    gate_criteria: tuple[GateCriterion, ...]
    phase_fields: tuple[PhaseField, ...]
    unmet_gates: tuple[str, ...]
    missing_fields: tuple[str, ...]
    ready: bool

    def to_dict(self) -> dict[str, Any]:
        return {
            "to": self.to,
            "label": self.label,
            "phase": self.phase,
            "is_revision": self.is_revision,
            "gate_criteria": [g.to_dict() for g in self.gate_criteria],
            "phase_fields": [f.to_dict() for f in self.phase_fields],
            "unmet_gates": list(self.unmet_gates),
            "missing_fields": list(self.missing_fields),
            "ready": self.ready,
        }


@dataclass(frozen=True)
class Actor:
    """Who is asking for a state change, and in what capacity."""

    id: str
    role: str = "operator"


@dataclass(frozen=True)
class PhaseFeedbackInput:
    """Caller-supplied feedback for one ``advance`` call."""

    notes: str
    gate_checks: Mapping[str, bool] = field(default_factory=dict)
    phase_data: Mapping[str, Any] = field(default_factory=dict)
    blockers_resolved: tuple[str, ...] = ()
    key_decisions: tuple[str, ...] = ()

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> PhaseFeedbackInput:
        """Build from a JSON body. Shape errors raise ValueError; content is checked by ``advance``."""
        notes = raw.get("notes", "")
        if not isinstance(notes, str):
            msg = "notes must be a string"
            raise ValueError(msg)
        mappings: dict[str, Mapping[str, Any]] = {}
        for key in ("gate_checks", "phase_data"):
            value = raw.get(key) or {}
            if not isinstance(value, Mapping):
                msg = f"{key} must be an object"
                raise ValueError(msg)
            mappings[key] = value
        lists: dict[str, tuple[str, ...]] = {}
        for key in ("blockers_resolved", "key_decisions"):
            value = raw.get(key) or []
            if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
                msg = f"{key} must be a list of strings"
                raise ValueError(msg)
            lists[key] = tuple(value)
        return cls(
            notes=notes,
            gate_checks=mappings["gate_checks"],
            phase_data=mappings["phase_data"],
            blockers_resolved=lists["blockers_resolved"],
            key_decisions=lists["key_decisions"],
        )


# ---------------------------------------------------------------------------
# Custom exceptions
# ---------------------------------------------------------------------------


class LifecycleError(ValueError):
    """Base for every rejected lifecycle operation.

    ``kind`` is the stable error name surfaces report; ``detail`` carries the
    structured context (unmet gate ids, allowed targets, ...). ``retryable``
    separates "try again later" failures from "fix your input" failures.
    """

    kind = "LifecycleError"
    retryable = False

    def __init__(self, message: str, detail: dict[str, Any] | None = None) -> None:
        self.detail: dict[str, Any] = detail or {}
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        return {"error": self.kind, "message": str(self), "detail": self.detail}


class InvalidTransitionError(LifecycleError):
    """Raised when the target state is not reachable from the current state."""

    kind = "InvalidTransition"

    def __init__(self, from_state: str, to_state: str, allowed: list[str], reason: str = "") -> None:
        self.from_state = from_state
        self.to_state = to_state
        self.allowed = allowed
        msg = f"Transition '{from_state}' -> '{to_state}' is not allowed"
        if reason:
            msg += f": {reason}"
        msg += f". Allowed targets: {', '.join(allowed) if allowed else '(none)'}"
        super().__init__(msg, {"from": from_state, "to": to_state, "allowed": allowed})


class AttestationNotPermittedError(LifecycleError):
    """Raised when the actor may not attest gate criteria for this edge."""

    kind = "AttestationNotPermitted"

    def __init__(self, actor: Actor, from_state: str, to_state: str) -> None:
        self.actor = actor
        super().__init__(
            f"Actor '{actor.id}' (role '{actor.role}') may not attest gates for '{from_state}' -> '{to_state}'",
            {"actor": actor.id, "role": actor.role, "from": from_state, "to": to_state},
        )


class GateCriteriaNotMetError(LifecycleError):
    """Raised when required gate criteria were not attested."""

    kind = "GateCriteriaNotMet"

    def __init__(self, from_state: str, to_state: str, unmet: list[str]) -> None:
        self.unmet = unmet
        super().__init__(
            f"Cannot transition '{from_state}' -> '{to_state}': unmet gate criteria: {', '.join(unmet)}",
            {"unmet": unmet},
        )


class MissingPhaseDataError(LifecycleError):
    """Raised when required phase fields are blank or hold an invalid option."""

    kind = "MissingPhaseData"

    def __init__(self, from_state: str, to_state: str, missing: list[str]) -> None:
        self.missing = missing
        super().__init__(
            f"Cannot transition '{from_state}' -> '{to_state}': missing phase data: {', '.join(missing)}",
            {"missing": missing},
        )


class MissingPhaseNotesError(LifecycleError):
    """Raised when the feedback notes are empty or whitespace."""

    kind = "MissingPhaseNotes"

    def __init__(self, from_state: str, to_state: str) -> None:
        super().__init__(
            f"Cannot transition '{from_state}' -> '{to_state}': phase notes are required",
            {"from": from_state, "to": to_state},
        )


class PathAlreadyAssignedError(LifecycleError):
    """Raised when a path is assigned to a requirement that already has one."""

    kind = "PathAlreadyAssigned"

    def __init__(self, requirement_id: str, current_path: str) -> None:
        self.current_path = current_path
        super().__init__(
            f"Requirement {requirement_id} already has path '{current_path}'; path assignment is final",
            {"requirement_id": requirement_id, "path": current_path},
        )


class ConcurrentModificationError(LifecycleError):
    """Raised when another writer changed the requirement between read and write."""

    kind = "ConcurrentModification"
    retryable = True

    def __init__(self, requirement_id: str, expected_state: str, actual_state: str | None) -> None:
        super().__init__(
            f"Requirement {requirement_id} was modified concurrently "
            f"(expected state '{expected_state}', found '{actual_state}'). Re-read and retry.",
            {"requirement_id": requirement_id, "expected_state": expected_state, "actual_state": actual_state},
        )


class StorageUnavailableError(LifecycleError):
    """Raised when the database could not complete the write."""

    kind = "StorageUnavailable"
    retryable = True

    def __init__(self, operation: str, cause: BaseException) -> None:
        self.cause = cause
        super().__init__(f"Storage unavailable during {operation}: {cause}", {"operation": operation})


# ---------------------------------------------------------------------------
# Attestation policies
# ---------------------------------------------------------------------------

AttestationCheck = Callable[[Actor, str, str], bool]


def allow_all_attestations(actor: Actor, from_state: str, to_state: str) -> bool:
    return True


def role_attestation_policy(roles: Mapping[str, list[str]]) -> AttestationCheck:
    """Build an attestation check from an edge -> allowed-roles mapping.

    Keys are ``"FROM->TO"`` edge strings or ``"*"`` for every edge without its
    own entry. Edges with neither are open to any role.
    """
    table = {k: frozenset(v) for k, v in roles.items()}

    def check(actor: Actor, from_state: str, to_state: str) -> bool:
        allowed = table.get(edge_key(from_state, to_state), table.get("*"))
        return allowed is None or actor.role in allowed

    return check


# ---------------------------------------------------------------------------
# LifecycleRegistry
# ---------------------------------------------------------------------------


class LifecycleRegistry:
    """Parses, validates, and queries a lifecycle definition.

    The definition is parsed once and indexed into dict caches, so every
    query is a dict lookup. Instances are immutable after construction.
    """

    def __init__(
        self,
        states: tuple[StateDefinition, ...],
        transitions: dict[str, tuple[str, ...]],
        gates: dict[str, tuple[GateCriterion, ...]],
        phase_fields: dict[str, tuple[PhaseField, ...]],
        *,
        initial_state: str,
        terminal_states: frozenset[str],
        path_state: str,
        path_targets: dict[str, str],
        revision_edges: frozenset[tuple[str, str]],
    ) -> None:
        self._states = states
        self._state_index: dict[str, StateDefinition] = {s.id: s for s in states}
        self._transitions = transitions
        self._gates = gates
        self._phase_fields = phase_fields
        self.initial_state = initial_state
        self.terminal_states = terminal_states
        self.path_state = path_state
        self.path_targets = path_targets
        self.revision_edges = revision_edges

    # -- Parsing (from dict/JSON) -------------------------------------------

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> LifecycleRegistry:
        """Parse and validate a lifecycle definition.

        Raises:
            ValueError: If the definition is malformed or internally inconsistent.
        """
        raw_states = raw.get("states")
        if not isinstance(raw_states, list) or not raw_states:
            msg = f"'states' must be a non-empty list, got {type(raw_states).__name__}"
            raise ValueError(msg)
        for i, s in enumerate(raw_states):
            if not isinstance(s, dict) or not {"id", "label", "phase"} <= s.keys():
                msg = f"state at index {i} must be a dict with 'id', 'label' and 'phase'"
                raise ValueError(msg)

        raw_transitions = raw.get("transitions")
        if not isinstance(raw_transitions, dict):
            msg = f"'transitions' must be a dict, got {type(raw_transitions).__name__}"
            raise ValueError(msg)

        for section in ("gates", "phase_fields"):
            value = raw.get(section, {})
            if not isinstance(value, dict) or not all(isinstance(v, list) for v in value.values()):
                msg = f"'{section}' must map edge keys to lists"
                raise ValueError(msg)

        # StateDefinition/PhaseField __post_init__ validate phase tags and field types
        states = tuple(StateDefinition(id=s["id"], label=s["label"], phase=s["phase"]) for s in raw_states)
        transitions = {k: tuple(v) for k, v in raw_transitions.items()}
        gates = {
            k: tuple(GateCriterion(id=g["id"], label=g["label"], required=bool(g.get("required", True))) for g in v)
            for k, v in raw.get("gates", {}).items()
        }
        fields = {
            k: tuple(
                PhaseField(
                    id=f["id"],
                    label=f["label"],
                    type=f["type"],
                    options=tuple(f.get("options", [])),
                    required=bool(f.get("required", False)),
                )
                for f in v
            )
            for k, v in raw.get("phase_fields", {}).items()
        }

        registry = cls(
            states,
            transitions,
            gates,
            fields,
            initial_state=raw["initial_state"],
            terminal_states=frozenset(raw.get("terminal_states", [])),
            path_state=raw.get("path_state", ""),
            path_targets=dict(raw.get("path_targets", {})),
            revision_edges=frozenset((a, b) for a, b in raw.get("revision_edges", [])),
        )
        errors = registry.validate()
        if errors:
            msg = "Invalid lifecycle definition: " + "; ".join(errors)
            raise ValueError(msg)
        for warning in registry.check_quality():
            logger.warning("Lifecycle definition: %s", warning)
        logger.debug("Loaded lifecycle: %d states, %d edges", len(states), len(registry.edges()))
        return registry

    def validate(self) -> list[str]:
        """Check the definition for internal consistency.

        Returns:
            List of error messages. Empty list means valid.
        """
        errors: list[str] = []
        state_ids = [s.id for s in self._states]
        known = set(state_ids)

        if len(known) != len(state_ids):
            seen: set[str] = set()
            for sid in state_ids:
                if sid in seen:
                    errors.append(f"duplicate state id '{sid}'")
                seen.add(sid)

        if self.initial_state not in known:
            errors.append(f"initial_state '{self.initial_state}' is not in states list")
        for t in sorted(self.terminal_states - known):
            errors.append(f"terminal state '{t}' is not in states list")

        for src, targets in self._transitions.items():
            if src not in known:
                errors.append(f"transition source '{src}' is not in states list")
            for dst in targets:
                if dst not in known:
                    errors.append(f"transition {src}->{dst} targets an unknown state")

        edges = set(self.edges())
        edge_keys = {edge_key(a, b) for a, b in edges}
        for section, catalog in (("gates", self._gates), ("phase_fields", self._phase_fields)):
            for key in catalog:
                if key not in edge_keys:
                    errors.append(f"{section} entry '{key}' does not name a transition")
        for key, items in self._gates.items():
            ids = [g.id for g in items]
            if len(set(ids)) != len(ids):
                errors.append(f"gates entry '{key}' has duplicate criterion ids")

        for edge in sorted(self.revision_edges):
            if edge not in edges:
                errors.append(f"revision edge {edge_key(*edge)} is not a transition")
        if self.path_state:
            for path, target in self.path_targets.items():
                if path not in PATHS:
                    errors.append(f"unknown path '{path}'")
                if (self.path_state, target) not in edges:
                    errors.append(f"path target {edge_key(self.path_state, target)} is not a transition")

        # Reachability: every state should be reachable from the initial state
        if self.initial_state in known:
            reachable: set[str] = set()
            queue = [self.initial_state]
            while queue:
                current = queue.pop(0)
                if current in reachable:
                    continue
                reachable.add(current)
                queue.extend(t for t in self._transitions.get(current, ()) if t not in reachable)
            for s in sorted(known - reachable):
                errors.append(f"state '{s}' is unreachable from initial_state '{self.initial_state}'")

        return errors

    def check_quality(self) -> list[str]:
        """Non-blocking warnings: dead ends and edges without a gate checklist."""
        warnings: list[str] = []
        for s in self._states:
            if s.id not in self.terminal_states and not self._transitions.get(s.id):
                warnings.append(f"state '{s.id}' has no outgoing transitions (dead end)")
        for a, b in self.edges():
            if edge_key(a, b) not in self._gates:
                warnings.append(f"transition {edge_key(a, b)} has no gate checklist")
        return warnings

    # -- Queries ------------------------------------------------------------

    def lookup(self, state_id: str) -> StateDefinition:
        """Label and phase for a state. Unknown ids get an UNKNOWN placeholder."""
        state = self._state_index.get(state_id)
        if state is None:
            return StateDefinition(id=state_id or "?", label=state_id or "?", phase="UNKNOWN")
        return state

    def is_known_state(self, state_id: str) -> bool:
        return state_id in self._state_index

    def list_states(self) -> list[StateDefinition]:
        return list(self._states)

    def states_in_phase(self, phase: str) -> list[str]:
        return [s.id for s in self._states if s.phase == phase]

    def edges(self) -> list[tuple[str, str]]:
        return [(src, dst) for src, targets in self._transitions.items() for dst in targets]

    def successors(self, state: str) -> list[str]:
        """Every table edge out of *state*, regardless of path assignment."""
        return list(self._transitions.get(state, ()))

    def next_states(self, current_state: str, path_assignment: str | None = None) -> list[str]:
        """Legal targets from *current_state*.

        At the path-decision state only the assigned path's entry state is
        offered, and nothing at all until a path is assigned. Revision
        targets from the committee decision state are never filtered.
        """
        targets = list(self._transitions.get(current_state, ()))
        if current_state == self.path_state:
            target = self.path_targets.get(path_assignment or "")
            return [target] if target in targets else []
        return targets

    def requires_path_assignment(self, state_id: str) -> bool:
        return state_id == self.path_state

    def is_revision_edge(self, from_state: str, to_state: str) -> bool:
        return (from_state, to_state) in self.revision_edges

    def is_terminal(self, state_id: str) -> bool:
        return state_id in self.terminal_states

    def gate_criteria(self, from_state: str, to_state: str) -> list[GateCriterion]:
        return list(self._gates.get(edge_key(from_state, to_state), ()))

    def phase_fields(self, from_state: str, to_state: str) -> list[PhaseField]:
        return list(self._phase_fields.get(edge_key(from_state, to_state), ()))

    # -- Validation ---------------------------------------------------------

    @staticmethod
    def _is_field_populated(value: Any) -> bool:
        """None, empty strings, and whitespace-only strings are unpopulated."""
        if value is None:
            return False
        return not (isinstance(value, str) and value.strip() == "")

    def unmet_gate_criteria(self, from_state: str, to_state: str, checks: Mapping[str, Any]) -> list[str]:
        """Required criterion ids not attested as exactly ``True``, in catalog order."""
        return [g.id for g in self.gate_criteria(from_state, to_state) if g.required and checks.get(g.id) is not True]

    def all_required_gates_satisfied(self, from_state: str, to_state: str, checks: Mapping[str, Any]) -> bool:
        return not self.unmet_gate_criteria(from_state, to_state, checks)

    def missing_phase_fields(self, from_state: str, to_state: str, values: Mapping[str, Any]) -> list[str]:
        """Field ids that are required-and-blank, or hold a value outside their options."""
        missing: list[str] = []
        for f in self.phase_fields(from_state, to_state):
            value = values.get(f.id)
            populated = self._is_field_populated(value)
            if f.required and not populated:
                missing.append(f.id)
            elif populated and f.type == "select" and value not in f.options:
                missing.append(f.id)
        return missing

    def all_required_phase_fields_filled(self, from_state: str, to_state: str, values: Mapping[str, Any]) -> bool:
        return not self.missing_phase_fields(from_state, to_state, values)

    def transition_options(
        self,
        current_state: str,
        path_assignment: str | None = None,
        checks: Mapping[str, Any] | None = None,
        values: Mapping[str, Any] | None = None,
    ) -> list[TransitionOption]:
        """Every legal next state with its checklist, fields and readiness."""
        checks = checks or {}
        values = values or {}
        options: list[TransitionOption] = []
        for to_state in self.next_states(current_state, path_assignment):
            target = self.lookup(to_state)
            unmet = tuple(self.unmet_gate_criteria(current_state, to_state, checks))
            missing = tuple(self.missing_phase_fields(current_state, to_state, values))
            options.append(
                TransitionOption(
                    to=to_state,
                    label=target.label,
                    phase=target.phase,
                    is_revision=self.is_revision_edge(current_state, to_state),
                    gate_criteria=tuple(self.gate_criteria(current_state, to_state)),
                    phase_fields=tuple(self.phase_fields(current_state, to_state)),
                    unmet_gates=unmet,
                    missing_fields=missing,
                    ready=not unmet and not missing,
                )
            )
        return options


@functools.lru_cache(maxsize=1)
def default_registry() -> LifecycleRegistry:
    """The built-in lifecycle, parsed once per process."""
    return LifecycleRegistry.from_dict(LIFECYCLE)


# ---------------------------------------------------------------------------
# Module-level shortcuts over the built-in lifecycle
# ---------------------------------------------------------------------------


def lookup(state_id: str) -> StateDefinition:
    return default_registry().lookup(state_id)


def next_states(current_state: str, path_assignment: str | None = None) -> list[str]:
    return default_registry().next_states(current_state, path_assignment)


def gate_criteria(from_state: str, to_state: str) -> list[GateCriterion]:
    return default_registry().gate_criteria(from_state, to_state)


def phase_fields(from_state: str, to_state: str) -> list[PhaseField]:
    return default_registry().phase_fields(from_state, to_state)


def is_revision_edge(from_state: str, to_state: str) -> bool:
    return default_registry().is_revision_edge(from_state, to_state)


def is_terminal(state_id: str) -> bool:
    return default_registry().is_terminal(state_id)
