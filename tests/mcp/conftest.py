"""Fixtures for MCP server tests."""

from __future__ import annotations

import json
from collections.abc import Generator
from pathlib import Path
from typing import Any

import pytest

import stridetrack.mcp_server as mcp_mod
from stridetrack.core import DB_FILENAME, STRIDETRACK_DIR_NAME, SUMMARY_FILENAME, StrideDB, write_config


def _parse(result: list[Any]) -> Any:
    """Extract text content from MCP response and parse as JSON if possible."""
    text = result[0].text
    try:
        return json.loads(text)
    except json.JSONDecodeError:
        return text


@pytest.fixture
def mcp_db(tmp_path: Path) -> Generator[StrideDB, None, None]:
    """Set up a StrideDB and patch the MCP module globals."""
    stride_dir = tmp_path / STRIDETRACK_DIR_NAME
    stride_dir.mkdir()
    write_config(stride_dir, {"prefix": "mcp", "version": 1})
    (stride_dir / SUMMARY_FILENAME).write_text("# test\n")

    d = StrideDB(stride_dir / DB_FILENAME, prefix="mcp")
    d.initialize()

    original_db = mcp_mod.db
    original_dir = mcp_mod._stride_dir
    mcp_mod.db = d
    mcp_mod._stride_dir = stride_dir

    yield d

    mcp_mod.db = original_db
    mcp_mod._stride_dir = original_dir
    d.close()
