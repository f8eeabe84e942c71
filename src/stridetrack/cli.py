"""CLI for the stridetrack requirement tracker.

Convention-based: discovers .stridetrack/ by walking up from cwd.

Usage:
    stridetrack init                                    # Initialize .stridetrack/ in cwd
    stridetrack create "Grip aid" --source CDC          # Capture a requirement (S1)
    stridetrack show <id>                               # Show requirement details
    stridetrack list --phase SENSING                    # List requirements
    stridetrack next <id>                               # What can this requirement do next?
    stridetrack advance <id> S2 --notes ... --check ... # Move along one edge
    stridetrack assign-path <id> INTERNAL -j ...        # Choose the build path at S4
    stridetrack history <id>                            # Transition log with feedback
    stridetrack doe record <id> --pre Comfort=4 ...     # Save DoE results (H-DOE-1..4)
    stridetrack designathon events                      # Designathon events and teams
    stridetrack aging                                   # Requirements stuck in a phase
    stridetrack stats                                   # Pipeline statistics
    stridetrack report 2026-03                          # Monthly report
    stridetrack dashboard                               # JSON API on localhost
"""

from __future__ import annotations

from pathlib import Path

import click

from stridetrack import __version__
from stridetrack.cli_commands import committee as _committee
from stridetrack.cli_commands import designathon as _designathon
from stridetrack.cli_commands import doe as _doe
from stridetrack.cli_commands import lifecycle as _lifecycle
from stridetrack.cli_commands import reports as _reports
from stridetrack.cli_commands import requirements as _requirements
from stridetrack.cli_commands import server as _server
from stridetrack.core import (
    DB_FILENAME,
    STRIDETRACK_DIR_NAME,
    SUMMARY_FILENAME,
    StrideDB,
    read_config,
    write_config,
)
from stridetrack.reports import write_pulse
from stridetrack.validation import sanitize_actor, sanitize_role


@click.group()
@click.version_option(version=__version__, prog_name="stridetrack")
@click.option("--actor", default="cli", help="Actor identity for audit trail (default: cli)")
@click.option("--role", default="operator", help="Role used for gate attestation checks (default: operator)")
@click.pass_context
def cli(ctx: click.Context, actor: str, role: str) -> None:
    """Stridetrack: device-requirement pipeline tracker."""
    cleaned_actor, err = sanitize_actor(actor)
    if err:
        raise click.BadParameter(err, param_hint="--actor")
    cleaned_role, err = sanitize_role(role)
    if err:
        raise click.BadParameter(err, param_hint="--role")
    ctx.ensure_object(dict)
    ctx.obj["actor"] = cleaned_actor
    ctx.obj["role"] = cleaned_role


@cli.command()
@click.option("--prefix", default=None, help="ID prefix for requirements (default: directory name)")
def init(prefix: str | None) -> None:
    """Initialize .stridetrack/ in the current directory."""
    cwd = Path.cwd()
    stride_dir = cwd / STRIDETRACK_DIR_NAME

    if stride_dir.exists():
        click.echo(f"{STRIDETRACK_DIR_NAME}/ already exists in {cwd}")
        config = read_config(stride_dir)
        db = StrideDB(stride_dir / DB_FILENAME, prefix=config.get("prefix", "stride"))
        db.initialize()
        db.close()
        return

    prefix = prefix or cwd.name
    stride_dir.mkdir()
    write_config(stride_dir, {"prefix": prefix, "version": 1})

    db = StrideDB(stride_dir / DB_FILENAME, prefix=prefix)
    db.initialize()
    write_pulse(db, stride_dir / SUMMARY_FILENAME)
    db.close()

    click.echo(f"Initialized {STRIDETRACK_DIR_NAME}/ in {cwd}")
    click.echo(f"  Prefix: {prefix}")
    click.echo(f"  Database: {stride_dir / DB_FILENAME}")


_requirements.register(cli)
_lifecycle.register(cli)
_committee.register(cli)
_doe.register(cli)
_designathon.register(cli)
_reports.register(cli)
_server.register(cli)


if __name__ == "__main__":
    cli()
