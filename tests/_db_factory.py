"""Shared StrideDB factory for test fixtures.

Importable by any conftest.py or test file in the test suite.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

from stridetrack.core import (
    DB_FILENAME,
    STRIDETRACK_DIR_NAME,
    StrideDB,
    write_config,
)


def make_db(
    tmp_path: Path,
    *,
    prefix: str = "test",
    config: dict[str, Any] | None = None,
    check_same_thread: bool = True,
) -> StrideDB:
    """Factory for StrideDB instances in tests.

    Without *config* the database lives directly in *tmp_path*. With
    *config*, a .stridetrack/ directory holding config.json is created and
    the database is opened through ``from_project`` so the config is applied
    the way production code applies it.
    """
    if config is None:
        d = StrideDB(tmp_path / DB_FILENAME, prefix=prefix, check_same_thread=check_same_thread)
        d.initialize()
        return d
    stride_dir = tmp_path / STRIDETRACK_DIR_NAME
    stride_dir.mkdir(exist_ok=True)
    write_config(stride_dir, {"prefix": prefix, "version": 1, **config})
    return StrideDB.from_project(tmp_path, check_same_thread=check_same_thread)
