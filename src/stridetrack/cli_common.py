"""Shared CLI helpers for ``cli.py`` and the ``cli_commands/*.py`` modules.

Provides ``get_db()``, ``refresh_pulse()`` and the error-reporting helpers
so command modules can reach them without circular imports.
"""

from __future__ import annotations

import json as json_mod
import sys
from typing import NoReturn

import click

from stridetrack.core import (
    STRIDETRACK_DIR_NAME,
    SUMMARY_FILENAME,
    StrideDB,
    find_stridetrack_root,
)
from stridetrack.lifecycle import Actor, LifecycleError
from stridetrack.reports import write_pulse


def get_db() -> StrideDB:
    """Discover .stridetrack/ and return an initialized StrideDB."""
    try:
        return StrideDB.from_project()
    except FileNotFoundError:
        click.echo(f"No {STRIDETRACK_DIR_NAME}/ found. Run 'stridetrack init' first.", err=True)
        sys.exit(1)


def refresh_pulse(db: StrideDB) -> None:
    """Regenerate pulse.md after mutations."""
    try:
        stride_dir = find_stridetrack_root()
    except FileNotFoundError:
        return
    write_pulse(db, stride_dir / SUMMARY_FILENAME)


def get_actor(ctx: click.Context) -> Actor:
    return Actor(id=ctx.obj["actor"], role=ctx.obj["role"])


def fail(message: str, *, as_json: bool = False, code: str = "error") -> NoReturn:
    """Report an error the way the command was asked to output, then exit 1."""
    if as_json:
        click.echo(json_mod.dumps({"error": message, "code": code}))
    else:
        click.echo(f"Error: {message}", err=True)
    sys.exit(1)


def fail_lifecycle(exc: LifecycleError, *, as_json: bool = False) -> NoReturn:
    if as_json:
        click.echo(json_mod.dumps(exc.to_dict(), indent=2))
    else:
        click.echo(f"Error [{exc.kind}]: {exc}", err=True)
        if exc.retryable:
            click.echo("This failure is transient; retry the command.", err=True)
    sys.exit(1)
