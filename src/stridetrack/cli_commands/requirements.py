"""CLI commands for requirement records: create, show, list, update, import, events."""

from __future__ import annotations

import json as json_mod
import sys
from pathlib import Path
from typing import Any

import click

from stridetrack.cli_common import fail, get_db, refresh_pulse
from stridetrack.db_reports import data_completeness
from stridetrack.lifecycle_data import (
    DISABILITY_TYPES,
    GAP_FLAGS,
    PATHS,
    PRIORITIES,
    SOURCE_TYPES,
    TECH_LEVELS,
    THERAPY_DOMAINS,
)


@click.command()
@click.argument("title")
@click.option("--source", "source_type", type=click.Choice(SOURCE_TYPES), default="OTHER", help="Where the need came from")
@click.option("--priority", "-p", type=click.Choice(PRIORITIES), default="P2", help="Priority (default P2)")
@click.option("--tech", "tech_level", type=click.Choice(TECH_LEVELS), default="LOW", help="Tech level (default LOW)")
@click.option("--therapy", multiple=True, type=click.Choice(THERAPY_DOMAINS), help="Therapy domain (repeatable)")
@click.option("--disability", multiple=True, type=click.Choice(DISABILITY_TYPES), help="Disability type (repeatable)")
@click.option("--gap", multiple=True, type=click.Choice(GAP_FLAGS), help="Gap flag (repeatable)")
@click.option("--market-price", type=float, default=None, help="Current market price")
@click.option("--target-price", type=float, default=None, help="Target build price")
@click.option("--description", "-d", default="", help="Description")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.pass_context
def create(
    ctx: click.Context,
    title: str,
    source_type: str,
    priority: str,
    tech_level: str,
    therapy: tuple[str, ...],
    disability: tuple[str, ...],
    gap: tuple[str, ...],
    market_price: float | None,
    target_price: float | None,
    description: str,
    as_json: bool,
) -> None:
    """Capture a new requirement in S1."""
    with get_db() as db:
        try:
            req = db.create_requirement(
                title,
                description=description,
                source_type=source_type,
                priority=priority,
                tech_level=tech_level,
                therapy_domains=list(therapy),
                disability_types=list(disability),
                gap_flags=list(gap),
                market_price=market_price,
                target_price=target_price,
                actor=ctx.obj["actor"],
            )
        except (TypeError, ValueError) as e:
            fail(str(e), as_json=as_json)
        if as_json:
            click.echo(json_mod.dumps(req.to_dict(), indent=2, default=str))
        else:
            click.echo(f"Created {req.id}: {req.title} [{req.current_state} {req.state_label}]")
            click.echo(f"Next: stridetrack next {req.id}")
        refresh_pulse(db)


@click.command()
@click.argument("requirement_id")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def show(requirement_id: str, as_json: bool) -> None:
    """Show requirement details."""
    with get_db() as db:
        try:
            req = db.get_requirement(requirement_id)
        except KeyError:
            click.echo(f"Not found: {requirement_id}", err=True)
            sys.exit(1)
        aging = db.get_aging(requirement_id)

        if as_json:
            data: dict[str, Any] = dict(req.to_dict())
            data["aging"] = aging.to_dict()
            data["data_completeness"] = data_completeness(req)
            click.echo(json_mod.dumps(data, indent=2, default=str))
            return

        click.echo(f"ID:        {req.id}")
        click.echo(f"Title:     {req.title}")
        click.echo(f"Stage:     {req.current_state} {req.state_label} ({req.phase})")
        click.echo(f"Priority:  {req.priority}")
        click.echo(f"Tech:      {req.tech_level}")
        click.echo(f"Source:    {req.source_type}")
        if req.path_assignment:
            click.echo(f"Path:      {req.path_assignment} ({req.path_justification})")
        if req.revision_number:
            click.echo(f"Revision:  {req.revision_number}")
        if req.therapy_domains:
            click.echo(f"Therapy:   {', '.join(req.therapy_domains)}")
        if req.disability_types:
            click.echo(f"Disability: {', '.join(req.disability_types)}")
        if req.gap_flags:
            click.echo(f"Gaps:      {', '.join(req.gap_flags)}")
        if req.market_price is not None:
            click.echo(f"Market:    {req.market_price:.2f}")
        if req.target_price is not None:
            click.echo(f"Target:    {req.target_price:.2f}")
        click.echo(f"Created:   {req.created_at}")
        click.echo(f"In phase:  {aging.days_in_phase}d of {aging.threshold}d{' (AGING)' if aging.aging else ''}")
        click.echo(f"Complete:  {data_completeness(req)}%")
        if req.description:
            click.echo(f"\n--- Description ---\n{req.description}")


@click.command("list")
@click.option("--state", default=None, help="Filter by state id (e.g. S2, H-DOE-1)")
@click.option(
    "--phase",
    type=click.Choice(["SENSING", "HARMONIZING", "DESIGNATHON", "CONVERGENCE"]),
    default=None,
    help="Filter by phase",
)
@click.option("--priority", "-p", type=click.Choice(PRIORITIES), default=None, help="Filter by priority")
@click.option("--source", "source_type", type=click.Choice(SOURCE_TYPES), default=None, help="Filter by source")
@click.option("--path", type=click.Choice(PATHS), default=None, help="Filter by assigned path")
@click.option("--limit", default=100, type=int, help="Max results (default 100)")
@click.option("--offset", default=0, type=int, help="Skip first N results")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def list_requirements(
    state: str | None,
    phase: str | None,
    priority: str | None,
    source_type: str | None,
    path: str | None,
    limit: int,
    offset: int,
    as_json: bool,
) -> None:
    """List requirements with optional filters."""
    with get_db() as db:
        reqs = db.list_requirements(
            state=state,
            phase=phase,
            priority=priority,
            source_type=source_type,
            path=path,
            limit=limit,
            offset=offset,
        )
        if as_json:
            click.echo(json_mod.dumps([r.to_dict() for r in reqs], indent=2, default=str))
            return
        for r in reqs:
            click.echo(f"{r.id}  {r.priority}  {r.current_state:<8} {r.state_label:<22} {r.title}")
        click.echo(f"\n{len(reqs)} requirements")


@click.command()
@click.argument("requirement_id")
@click.option("--title", default=None, help="New title")
@click.option("--description", "-d", default=None, help="New description")
@click.option("--source", "source_type", type=click.Choice(SOURCE_TYPES), default=None, help="New source")
@click.option("--priority", "-p", type=click.Choice(PRIORITIES), default=None, help="New priority")
@click.option("--tech", "tech_level", type=click.Choice(TECH_LEVELS), default=None, help="New tech level")
@click.option("--therapy", multiple=True, type=click.Choice(THERAPY_DOMAINS), help="Replace therapy domains")
@click.option("--disability", multiple=True, type=click.Choice(DISABILITY_TYPES), help="Replace disability types")
@click.option("--gap", multiple=True, type=click.Choice(GAP_FLAGS), help="Replace gap flags")
@click.option("--clear-gaps", is_flag=True, help="Remove all gap flags")
@click.option("--market-price", type=float, default=None, help="New market price")
@click.option("--target-price", type=float, default=None, help="New target price")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.pass_context
def update(
    ctx: click.Context,
    requirement_id: str,
    title: str | None,
    description: str | None,
    source_type: str | None,
    priority: str | None,
    tech_level: str | None,
    therapy: tuple[str, ...],
    disability: tuple[str, ...],
    gap: tuple[str, ...],
    clear_gaps: bool,
    market_price: float | None,
    target_price: float | None,
    as_json: bool,
) -> None:
    """Edit a requirement's descriptive attributes (never its stage)."""
    changes: dict[str, Any] = {
        "title": title,
        "description": description,
        "source_type": source_type,
        "priority": priority,
        "tech_level": tech_level,
    }
    if therapy:
        changes["therapy_domains"] = list(therapy)
    if disability:
        changes["disability_types"] = list(disability)
    if gap or clear_gaps:
        changes["gap_flags"] = [] if clear_gaps else list(gap)
    if market_price is not None:
        changes["market_price"] = market_price
    if target_price is not None:
        changes["target_price"] = target_price

    with get_db() as db:
        try:
            req = db.update_requirement(requirement_id, actor=ctx.obj["actor"], **changes)
        except KeyError:
            click.echo(f"Not found: {requirement_id}", err=True)
            sys.exit(1)
        except (TypeError, ValueError) as e:
            fail(str(e), as_json=as_json)
        if as_json:
            click.echo(json_mod.dumps(req.to_dict(), indent=2, default=str))
        else:
            click.echo(f"Updated {req.id}: {req.title}")
        refresh_pulse(db)


@click.command("import")
@click.argument("file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.pass_context
def import_cmd(ctx: click.Context, file: Path, as_json: bool) -> None:
    """Bulk-import requirements from a JSON list of objects.

    All records are validated first; one bad record imports nothing.
    """
    try:
        records = json_mod.loads(file.read_text(encoding="utf-8"))
    except json_mod.JSONDecodeError as e:
        fail(f"{file} is not valid JSON: {e}", as_json=as_json)
    if not isinstance(records, list):
        fail(f"{file} must contain a JSON list of requirement objects", as_json=as_json)

    with get_db() as db:
        try:
            created = db.import_requirements(records, actor=ctx.obj["actor"])
        except ValueError as e:
            fail(str(e), as_json=as_json)
        if as_json:
            click.echo(json_mod.dumps([r.to_dict() for r in created], indent=2, default=str))
        else:
            for r in created:
                click.echo(f"  {r.id}: {r.title}")
            click.echo(f"Imported {len(created)} requirements")
        refresh_pulse(db)


@click.command()
@click.argument("requirement_id")
@click.option("--limit", default=50, type=int, help="Max events (default 50)")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def events(requirement_id: str, limit: int, as_json: bool) -> None:
    """Show the audit events for a requirement, newest first."""
    with get_db() as db:
        try:
            rows = db.get_requirement_events(requirement_id, limit=limit)
        except KeyError:
            click.echo(f"Not found: {requirement_id}", err=True)
            sys.exit(1)
        if as_json:
            click.echo(json_mod.dumps(rows, indent=2, default=str))
            return
        for e in rows:
            change = ""
            if e["old_value"] and e["new_value"]:
                change = f" {e['old_value']} -> {e['new_value']}"
            elif e["new_value"]:
                change = f" {e['new_value']}"
            click.echo(f"{e['created_at'][:19]}  {e['event_type']:<20} {e['actor'] or '-':<12}{change}")


def register(cli: click.Group) -> None:
    """Register requirement commands with the CLI group."""
    cli.add_command(create)
    cli.add_command(show)
    cli.add_command(list_requirements)
    cli.add_command(update)
    cli.add_command(import_cmd)
    cli.add_command(events)
