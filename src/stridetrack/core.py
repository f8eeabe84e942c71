"""Core database operations for the requirement tracker.

Single source of truth for all SQLite operations. The CLI, the MCP server
and the dashboard all import from this module. No daemon and no sync, just
direct SQLite with WAL mode.

Convention-based discovery: each project has a `.stridetrack/` directory
containing `stridetrack.db` (SQLite) and `config.json` (id prefix, aging
threshold overrides, attestation roles).
"""

from __future__ import annotations

import contextlib
import json
import logging
import os
import sqlite3
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Any

from stridetrack.aging import merge_thresholds
from stridetrack.db_committee import CommitteeMixin
from stridetrack.db_designathon import DesignathonMixin
from stridetrack.db_doe import DoEMixin
from stridetrack.db_events import EventsMixin
from stridetrack.db_lifecycle import LifecycleMixin
from stridetrack.db_reports import ReportsMixin
from stridetrack.db_requirements import RequirementsMixin
from stridetrack.db_schema import CURRENT_SCHEMA_VERSION, SCHEMA_SQL
from stridetrack.lifecycle import AttestationCheck, allow_all_attestations, role_attestation_policy
from stridetrack.types.core import PhaseFeedbackDict, ProjectConfig, RequirementDict, StateTransitionDict

if TYPE_CHECKING:
    from stridetrack.lifecycle import LifecycleRegistry

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Convention-based discovery
# ---------------------------------------------------------------------------

STRIDETRACK_DIR_NAME = ".stridetrack"
DB_FILENAME = "stridetrack.db"
CONFIG_FILENAME = "config.json"
SUMMARY_FILENAME = "pulse.md"


def find_stridetrack_root(start: Path | None = None) -> Path:
    """Walk up from start (default cwd) looking for .stridetrack/ directory.

    Returns the .stridetrack/ directory path (not the project root).
    """
    current = (start or Path.cwd()).resolve()
    for parent in [current, *current.parents]:
        candidate = parent / STRIDETRACK_DIR_NAME
        if candidate.is_dir():
            return candidate
    msg = f"No {STRIDETRACK_DIR_NAME}/ directory found in {current} or any parent"
    raise FileNotFoundError(msg)


def read_config(stride_dir: Path) -> ProjectConfig:
    """Read .stridetrack/config.json. Returns defaults if missing or corrupt."""
    defaults = ProjectConfig(prefix="stride", version=1)
    config_path = stride_dir / CONFIG_FILENAME
    if not config_path.exists():
        return defaults
    try:
        result = json.loads(config_path.read_text())
    except (json.JSONDecodeError, OSError) as exc:
        logger.warning("Failed to read %s, using defaults: %s", config_path, exc)
        return defaults
    if not isinstance(result, dict):
        logger.warning("Ignoring %s: expected a JSON object", config_path)
        return defaults
    config: ProjectConfig = result  # type: ignore[assignment]
    return config


def write_config(stride_dir: Path, config: dict[str, Any] | ProjectConfig) -> None:
    """Write .stridetrack/config.json."""
    config_path = stride_dir / CONFIG_FILENAME
    config_path.write_text(json.dumps(config, indent=2) + "\n")


def write_atomic(path: Path, content: str) -> None:
    """Write content to path atomically via temp file + os.replace()."""
    tmp = path.with_suffix(path.suffix + ".tmp")
    try:
        tmp.write_text(content, encoding="utf-8")
        os.replace(tmp, path)
    except BaseException:
        with contextlib.suppress(OSError):
            tmp.unlink()
        raise


def attestation_check_from_config(config: ProjectConfig) -> AttestationCheck:
    roles = config.get("attestation_roles")
    if not roles:
        return allow_all_attestations
    if not isinstance(roles, dict) or not all(isinstance(v, list) for v in roles.values()):
        logger.warning("Ignoring malformed attestation_roles in config; attestation is open to all roles")
        return allow_all_attestations
    return role_attestation_policy(roles)


# ---------------------------------------------------------------------------
# Data classes
# ---------------------------------------------------------------------------


@dataclass
class Requirement:
    id: str
    title: str
    description: str = ""
    source_type: str = "OTHER"
    priority: str = "P2"
    tech_level: str = "LOW"
    therapy_domains: list[str] = field(default_factory=list)
    disability_types: list[str] = field(default_factory=list)
    gap_flags: list[str] = field(default_factory=list)
    market_price: float | None = None
    target_price: float | None = None
    current_state: str = "S1"
    path_assignment: str | None = None
    path_justification: str = ""
    revision_number: int = 0
    created_by: str = ""
    created_at: str = ""
    updated_at: str = ""
    # Computed (not stored directly)
    state_label: str = ""
    phase: str = ""

    def to_dict(self) -> RequirementDict:
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "source_type": self.source_type,
            "priority": self.priority,
            "tech_level": self.tech_level,
            "therapy_domains": self.therapy_domains,
            "disability_types": self.disability_types,
            "gap_flags": self.gap_flags,
            "market_price": self.market_price,
            "target_price": self.target_price,
            "current_state": self.current_state,
            "state_label": self.state_label,
            "phase": self.phase,
            "path_assignment": self.path_assignment,
            "path_justification": self.path_justification,
            "revision_number": self.revision_number,
            "created_by": self.created_by,
            "created_at": self.created_at,  # type: ignore[typeddict-item]
            "updated_at": self.updated_at,  # type: ignore[typeddict-item]
        }


@dataclass
class StateTransition:
    id: int
    requirement_id: str
    from_state: str
    to_state: str
    notes: str = ""
    actor: str = ""
    created_at: str = ""

    def to_dict(self) -> StateTransitionDict:
        return {
            "id": self.id,
            "requirement_id": self.requirement_id,
            "from_state": self.from_state,
            "to_state": self.to_state,
            "notes": self.notes,
            "actor": self.actor,
            "created_at": self.created_at,  # type: ignore[typeddict-item]
        }


@dataclass
class PhaseFeedback:
    id: int
    requirement_id: str
    from_state: str
    to_state: str
    phase_notes: str
    blockers_resolved: list[str] = field(default_factory=list)
    key_decisions: list[str] = field(default_factory=list)
    phase_data: dict[str, Any] = field(default_factory=dict)
    gate_checks: dict[str, bool] = field(default_factory=dict)
    submitted_by: str = ""
    created_at: str = ""

    def to_dict(self) -> PhaseFeedbackDict:
        return {
            "id": self.id,
            "requirement_id": self.requirement_id,
            "from_state": self.from_state,
            "to_state": self.to_state,
            "phase_notes": self.phase_notes,
            "blockers_resolved": self.blockers_resolved,
            "key_decisions": self.key_decisions,
            "phase_data": self.phase_data,
            "gate_checks": self.gate_checks,
            "submitted_by": self.submitted_by,
            "created_at": self.created_at,  # type: ignore[typeddict-item]
        }


# ---------------------------------------------------------------------------
# StrideDB: the main interface
# ---------------------------------------------------------------------------


class StrideDB(
    EventsMixin, LifecycleMixin, CommitteeMixin, DoEMixin, DesignathonMixin, ReportsMixin, RequirementsMixin
):
    """Direct SQLite operations. No daemon, no sync. Importable by CLI, MCP and dashboard."""

    def __init__(
        self,
        db_path: str | Path,
        *,
        prefix: str = "stride",
        lifecycle: LifecycleRegistry | None = None,
        attestation_check: AttestationCheck | None = None,
        aging_thresholds: dict[str, Any] | None = None,
        check_same_thread: bool = True,
    ) -> None:
        self.db_path = Path(db_path)
        self.prefix = prefix
        self.aging_thresholds = merge_thresholds(aging_thresholds)
        self._conn: sqlite3.Connection | None = None
        self._check_same_thread = check_same_thread
        self._lifecycle: LifecycleRegistry | None = lifecycle
        self._attestation_check: AttestationCheck = attestation_check or allow_all_attestations

    @classmethod
    def from_project(cls, project_path: Path | None = None, *, check_same_thread: bool = True) -> StrideDB:
        """Create a StrideDB by discovering .stridetrack/ from project_path (or cwd)."""
        stride_dir = find_stridetrack_root(project_path)
        config = read_config(stride_dir)
        db = cls(
            stride_dir / DB_FILENAME,
            prefix=config.get("prefix", "stride"),
            attestation_check=attestation_check_from_config(config),
            aging_thresholds=config.get("aging_thresholds"),
            check_same_thread=check_same_thread,
        )
        db.initialize()
        return db

    def __enter__(self) -> StrideDB:
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()

    @property
    def conn(self) -> sqlite3.Connection:
        if self._conn is None:
            self._conn = sqlite3.connect(
                str(self.db_path),
                isolation_level="DEFERRED",
                check_same_thread=self._check_same_thread,
            )
            self._conn.row_factory = sqlite3.Row
            self._conn.execute("PRAGMA journal_mode=WAL")
            self._conn.execute("PRAGMA foreign_keys=ON")
            self._conn.execute("PRAGMA busy_timeout=5000")
        return self._conn

    def initialize(self) -> None:
        """Create or upgrade the schema, then stamp its version."""
        current_version = self.get_schema_version()
        if current_version == 0:
            self.conn.executescript(SCHEMA_SQL)
            self.conn.execute(f"PRAGMA user_version = {CURRENT_SCHEMA_VERSION}")
        elif current_version < CURRENT_SCHEMA_VERSION:
            # Every upgrade so far only adds tables, which SCHEMA_SQL creates idempotently
            self.conn.executescript(SCHEMA_SQL)
            self.conn.execute(f"PRAGMA user_version = {CURRENT_SCHEMA_VERSION}")
            logger.info("Upgraded %s from schema %d to %d", self.db_path, current_version, CURRENT_SCHEMA_VERSION)
        elif current_version > CURRENT_SCHEMA_VERSION:
            msg = (
                f"Database schema version {current_version} is newer than this stridetrack "
                f"supports ({CURRENT_SCHEMA_VERSION}). Upgrade stridetrack."
            )
            raise RuntimeError(msg)
        self.conn.commit()

    def get_schema_version(self) -> int:
        """Return the current schema version from PRAGMA user_version."""
        result: int = self.conn.execute("PRAGMA user_version").fetchone()[0]
        return result

    def close(self) -> None:
        if self._conn is not None:
            self._conn.close()
            self._conn = None
