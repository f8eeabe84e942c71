"""RequirementsMixin: requirement CRUD, filtering, and bulk import.

All methods access ``self.conn``, ``self.lifecycle``, etc. via Python's MRO
when composed into ``StrideDB``. Lifecycle attributes (``current_state``,
``path_assignment``, ``revision_number``) are never written here after
creation; only db_lifecycle.py moves a requirement through the pipeline.
"""

from __future__ import annotations

import json
import logging
import sqlite3
import uuid
from collections.abc import Iterable, Sequence
from typing import TYPE_CHECKING, Any

from stridetrack.db_base import DBMixinProtocol, _now_iso
from stridetrack.lifecycle_data import (
    DISABILITY_TYPES,
    GAP_FLAGS,
    PATHS,
    PRIORITIES,
    SOURCE_TYPES,
    TECH_LEVELS,
    THERAPY_DOMAINS,
)

if TYPE_CHECKING:
    from stridetrack.core import Requirement
    from stridetrack.lifecycle import LifecycleRegistry

logger = logging.getLogger(__name__)

NEW_STATE = "NEW"
CAPTURE_NOTE = "Requirement captured"
IMPORT_NOTE = "Imported from document"

_LIST_ATTRIBUTES: dict[str, tuple[str, ...]] = {
    "therapy_domains": THERAPY_DOMAINS,
    "disability_types": DISABILITY_TYPES,
    "gap_flags": GAP_FLAGS,
}
_CHOICE_ATTRIBUTES: dict[str, tuple[str, ...]] = {
    "source_type": SOURCE_TYPES,
    "priority": PRIORITIES,
    "tech_level": TECH_LEVELS,
}
_PRICE_ATTRIBUTES = ("market_price", "target_price")
_TEXT_ATTRIBUTES = ("title", "description")

EDITABLE_ATTRIBUTES: tuple[str, ...] = (
    *_TEXT_ATTRIBUTES,
    *_CHOICE_ATTRIBUTES,
    *_LIST_ATTRIBUTES,
    *_PRICE_ATTRIBUTES,
)


def _validate_choice(name: str, value: object, allowed: Sequence[str]) -> str:
    if not isinstance(value, str) or value not in allowed:
        msg = f"Invalid {name} '{value}'. Valid values: {', '.join(allowed)}"
        raise ValueError(msg)
    return value


def _validate_multi(name: str, value: object, allowed: Sequence[str]) -> list[str]:
    """Validate a multi-select attribute; duplicates are dropped, order kept."""
    if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
        msg = f"{name} must be a list of strings"
        raise TypeError(msg)
    unknown = [v for v in value if v not in allowed]
    if unknown:
        msg = f"Invalid {name}: {', '.join(unknown)}. Valid values: {', '.join(allowed)}"
        raise ValueError(msg)
    return list(dict.fromkeys(value))


def _validate_price(name: str, value: object) -> float | None:
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, int | float):
        msg = f"{name} must be a number, got {type(value).__name__}"
        raise TypeError(msg)
    if value < 0:
        msg = f"{name} cannot be negative, got {value}"
        raise ValueError(msg)
    return float(value)


def _validate_title(value: object) -> str:
    if not isinstance(value, str) or not value.strip():
        msg = "Title cannot be empty"
        raise ValueError(msg)
    return value.strip()


def normalize_attributes(raw: dict[str, Any], *, partial: bool = False) -> dict[str, Any]:
    """Validate and normalize requirement attributes.

    With ``partial=False`` missing attributes get their creation defaults.
    With ``partial=True`` only the keys present in *raw* are returned.

    Raises:
        ValueError: On unknown keys, empty titles, or out-of-vocabulary values.
        TypeError: On wrongly-typed list or price values.
    """
    unknown = sorted(set(raw) - set(EDITABLE_ATTRIBUTES))
    if unknown:
        msg = f"Unknown requirement attributes: {', '.join(unknown)}"
        raise ValueError(msg)

    defaults: dict[str, Any] = {
        "title": None,
        "description": "",
        "source_type": "OTHER",
        "priority": "P2",
        "tech_level": "LOW",
        "therapy_domains": [],
        "disability_types": [],
        "gap_flags": [],
        "market_price": None,
        "target_price": None,
    }
    values = dict(raw) if partial else {**defaults, **{k: v for k, v in raw.items() if v is not None}}

    result: dict[str, Any] = {}
    for key, value in values.items():
        if key == "title":
            result[key] = _validate_title(value)
        elif key == "description":
            result[key] = "" if value is None else str(value)
        elif key in _CHOICE_ATTRIBUTES:
            result[key] = _validate_choice(key, value, _CHOICE_ATTRIBUTES[key])
        elif key in _LIST_ATTRIBUTES:
            result[key] = _validate_multi(key, value or [], _LIST_ATTRIBUTES[key])
        elif key in _PRICE_ATTRIBUTES:
            result[key] = _validate_price(key, value)
    return result


class RequirementsMixin(DBMixinProtocol):
    """Requirement CRUD, filtering, and bulk import.

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

        # From LifecycleMixin
        @property
        def lifecycle(self) -> LifecycleRegistry: ...

    # -- ID generation -------------------------------------------------------

    def _generate_unique_id(self, table: str) -> str:
        """Generate a unique ID using O(1) EXISTS checks against the PK index.

        *table* is always a hardcoded literal at the call site (never user input).
        """
        for _ in range(10):
            candidate = f"{self.prefix}-{uuid.uuid4().hex[:10]}"
            if self.conn.execute(f"SELECT 1 FROM {table} WHERE id = ?", (candidate,)).fetchone() is None:
                return candidate
        return f"{self.prefix}-{uuid.uuid4().hex[:16]}"

    # -- Requirement CRUD ----------------------------------------------------

    def _insert_requirement(self, attrs: dict[str, Any], *, actor: str, note: str, now: str) -> str:
        """Insert a requirement at the initial state. Caller owns the transaction."""
        requirement_id = self._generate_unique_id("requirements")
        initial = self.lifecycle.initial_state
        self.conn.execute(
            "INSERT INTO requirements (id, title, description, source_type, priority, tech_level, "
            "therapy_domains, disability_types, gap_flags, market_price, target_price, "
            "current_state, revision_number, created_by, created_at, updated_at) "
            "VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, 0, ?, ?, ?)",
            (
                requirement_id,
                attrs["title"],
                attrs["description"],
                attrs["source_type"],
                attrs["priority"],
                attrs["tech_level"],
                json.dumps(attrs["therapy_domains"]),
                json.dumps(attrs["disability_types"]),
                json.dumps(attrs["gap_flags"]),
                attrs["market_price"],
                attrs["target_price"],
                initial,
                actor,
                now,
                now,
            ),
        )
        self.conn.execute(
            "INSERT INTO state_transitions (requirement_id, from_state, to_state, notes, actor, created_at) "
            "VALUES (?, ?, ?, ?, ?, ?)",
            (requirement_id, NEW_STATE, initial, note, actor, now),
        )
        self._record_event(requirement_id, "created", actor=actor, new_value=attrs["title"], now=now)
        return requirement_id

    def create_requirement(
        self,
        title: str,
        *,
        description: str = "",
        source_type: str = "OTHER",
        priority: str = "P2",
        tech_level: str = "LOW",
        therapy_domains: list[str] | None = None,
        disability_types: list[str] | None = None,
        gap_flags: list[str] | None = None,
        market_price: float | None = None,
        target_price: float | None = None,
        actor: str = "",
    ) -> Requirement:
        attrs = normalize_attributes(
            {
                "title": title,
                "description": description,
                "source_type": source_type,
                "priority": priority,
                "tech_level": tech_level,
                "therapy_domains": therapy_domains,
                "disability_types": disability_types,
                "gap_flags": gap_flags,
                "market_price": market_price,
                "target_price": target_price,
            }
        )
        now = _now_iso()
        try:
            requirement_id = self._insert_requirement(attrs, actor=actor, note=CAPTURE_NOTE, now=now)
            self.conn.commit()
        except Exception:
            self.conn.rollback()
            raise
        logger.info("Requirement %s captured by '%s'", requirement_id, actor)
        return self.get_requirement(requirement_id)

    def import_requirements(self, records: Iterable[dict[str, Any]], *, actor: str = "") -> list[Requirement]:
        """Create many requirements in one transaction.

        Every record is validated before any write; one bad record rejects
        the whole batch with a ValueError naming its index.
        """
        prepared: list[dict[str, Any]] = []
        for i, record in enumerate(records):
            if not isinstance(record, dict):
                msg = f"Record {i}: expected an object, got {type(record).__name__}"
                raise ValueError(msg)
            try:
                prepared.append(normalize_attributes(record))
            except (TypeError, ValueError) as exc:
                msg = f"Record {i}: {exc}"
                raise ValueError(msg) from exc

        now = _now_iso()
        created: list[str] = []
        try:
            for attrs in prepared:
                created.append(self._insert_requirement(attrs, actor=actor, note=IMPORT_NOTE, now=now))
            self.conn.commit()
        except Exception:
            self.conn.rollback()
            raise
        logger.info("Imported %d requirements", len(created))
        return [self.get_requirement(rid) for rid in created]

    def get_requirement(self, requirement_id: str) -> Requirement:
        row = self.conn.execute("SELECT * FROM requirements WHERE id = ?", (requirement_id,)).fetchone()
        if row is None:
            msg = f"Requirement not found: {requirement_id}"
            raise KeyError(msg)
        return self._build_requirement(row)

    def _build_requirement(self, row: sqlite3.Row) -> Requirement:
        from stridetrack.core import Requirement

        state = self.lifecycle.lookup(row["current_state"])
        return Requirement(
            id=row["id"],
            title=row["title"],
            description=row["description"] or "",
            source_type=row["source_type"],
            priority=row["priority"],
            tech_level=row["tech_level"],
            therapy_domains=json.loads(row["therapy_domains"] or "[]"),
            disability_types=json.loads(row["disability_types"] or "[]"),
            gap_flags=json.loads(row["gap_flags"] or "[]"),
            market_price=row["market_price"],
            target_price=row["target_price"],
            current_state=row["current_state"],
            path_assignment=row["path_assignment"],
            path_justification=row["path_justification"] or "",
            revision_number=row["revision_number"],
            created_by=row["created_by"] or "",
            created_at=row["created_at"],
            updated_at=row["updated_at"],
            state_label=state.label,
            phase=state.phase,
        )

    def list_requirements(
        self,
        *,
        state: str | None = None,
        phase: str | None = None,
        priority: str | None = None,
        source_type: str | None = None,
        path: str | None = None,
        limit: int = 100,
        offset: int = 0,
    ) -> list[Requirement]:
        """Filtered listing, P1 first, oldest first within a priority."""
        conditions: list[str] = []
        params: list[Any] = []

        if state is not None:
            conditions.append("current_state = ?")
            params.append(state)
        if phase is not None:
            phase_states = self.lifecycle.states_in_phase(phase)
            if not phase_states:
                return []
            conditions.append(f"current_state IN ({','.join('?' * len(phase_states))})")
            params.extend(phase_states)
        if priority is not None:
            conditions.append("priority = ?")
            params.append(priority)
        if source_type is not None:
            conditions.append("source_type = ?")
            params.append(source_type)
        if path is not None:
            if path not in PATHS:
                msg = f"Invalid path '{path}'. Valid values: {', '.join(PATHS)}"
                raise ValueError(msg)
            conditions.append("path_assignment = ?")
            params.append(path)

        where = f" WHERE {' AND '.join(conditions)}" if conditions else ""
        rows = self.conn.execute(
            f"SELECT * FROM requirements{where} ORDER BY priority, created_at, id LIMIT ? OFFSET ?",
            [*params, limit, offset],
        ).fetchall()
        return [self._build_requirement(r) for r in rows]

    def update_requirement(self, requirement_id: str, *, actor: str = "", **changes: Any) -> Requirement:
        """Edit non-lifecycle attributes, recording one ``<attr>_changed`` event each.

        ``None`` values are treated as "leave unchanged", except for the two
        prices, which are cleared by passing ``None`` explicitly.
        """
        current = self.get_requirement(requirement_id)
        changes = {k: v for k, v in changes.items() if v is not None or k in _PRICE_ATTRIBUTES}
        updates = normalize_attributes(changes, partial=True)

        old_values = current.to_dict()
        diff = {k: v for k, v in updates.items() if old_values[k] != v}  # type: ignore[literal-required]
        if not diff:
            return current

        now = _now_iso()
        assignments = ", ".join(f"{k} = ?" for k in diff)
        params = [json.dumps(v) if k in _LIST_ATTRIBUTES else v for k, v in diff.items()]
        try:
            self.conn.execute(
                f"UPDATE requirements SET {assignments}, updated_at = ? WHERE id = ?",
                [*params, now, requirement_id],
            )
            for key, value in diff.items():
                self._record_event(
                    requirement_id,
                    f"{key}_changed",
                    actor=actor,
                    old_value=_event_value(old_values[key]),  # type: ignore[literal-required]
                    new_value=_event_value(value),
                    now=now,
                )
            self.conn.commit()
        except Exception:
            self.conn.rollback()
            raise
        return self.get_requirement(requirement_id)


def _event_value(value: Any) -> str | None:
    if value is None:
        return None
    if isinstance(value, list):
        return ", ".join(value)
    return str(value)
