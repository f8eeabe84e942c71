"""Shared utilities, types, and Protocol for DB mixins."""

from __future__ import annotations

import sqlite3
from datetime import UTC, datetime
from pathlib import Path
from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from stridetrack.core import Requirement
    from stridetrack.lifecycle import AttestationCheck, LifecycleRegistry


def _now_iso() -> str:
    return datetime.now(UTC).isoformat()


class DBMixinProtocol(Protocol):
    """Shared attributes and methods that DB mixins access via self.

    Mixins inherit this Protocol so mypy can type-check self.conn,
    self.get_requirement(), etc. without ``type: ignore`` on every call.
    Actual implementations are provided by StrideDB at composition time.
    """

    db_path: Path
    prefix: str
    aging_thresholds: dict[str, int]
    _conn: sqlite3.Connection | None
    _lifecycle: LifecycleRegistry | None
    _attestation_check: AttestationCheck

    @property
    def conn(self) -> sqlite3.Connection: ...

    def get_requirement(self, requirement_id: str) -> Requirement: ...
