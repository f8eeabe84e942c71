"""CLI commands for designathon events and teams."""

from __future__ import annotations

import json as json_mod
import sys
from typing import Any

import click

from stridetrack.cli_common import fail, get_db
from stridetrack.db_designathon import EVENT_STATUSES


def _emit(data: Any, as_json: bool, text: str) -> None:
    click.echo(json_mod.dumps(data, indent=2, default=str) if as_json else text)


@click.group()
def designathon() -> None:
    """Manage designathon events and their teams."""


@designathon.command("create-event")
@click.argument("title")
@click.option("--description", default="", help="Event description")
@click.option("--start", "start_date", default=None, help="Start date (YYYY-MM-DD)")
@click.option("--end", "end_date", default=None, help="End date (YYYY-MM-DD)")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.pass_context
def create_event(
    ctx: click.Context,
    title: str,
    description: str,
    start_date: str | None,
    end_date: str | None,
    as_json: bool,
) -> None:
    """Create a designathon event (status: planned)."""
    with get_db() as db:
        try:
            event = db.create_designathon_event(
                title,
                description=description,
                start_date=start_date,
                end_date=end_date,
                created_by=ctx.obj["actor"],
            )
        except ValueError as e:
            fail(str(e), as_json=as_json)
    _emit(event, as_json, f"Created event {event['id']}: {event['title']}")


@designathon.command("events")
@click.option("--status", type=click.Choice(EVENT_STATUSES), default=None, help="Filter by status")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def list_events(status: str | None, as_json: bool) -> None:
    """List events, newest first."""
    with get_db() as db:
        events = db.list_designathon_events(status=status)
    if as_json:
        click.echo(json_mod.dumps(events, indent=2, default=str))
        return
    if not events:
        click.echo("No designathon events.")
        return
    for e in events:
        dates = f"{e['start_date'] or '?'}..{e['end_date'] or '?'}"
        click.echo(f"{e['id']:>4}  {e['status']:<10} {dates:<22} {e['team_count']} teams  {e['title']}")


@designathon.command("event")
@click.argument("event_id", type=int)
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def show_event(event_id: int, as_json: bool) -> None:
    """Show one event with its teams."""
    with get_db() as db:
        try:
            event = db.get_designathon_event(event_id)
        except KeyError:
            click.echo(f"Not found: {event_id}", err=True)
            sys.exit(1)
    if as_json:
        click.echo(json_mod.dumps(event, indent=2, default=str))
        return
    click.echo(f"{event['title']} [{event['status']}]")
    if event["description"]:
        click.echo(f"  {event['description']}")
    for t in event["teams"]:
        score = "-" if t["score"] is None else f"{t['score']:g}"
        linked = t["requirement_id"] or "(unlinked)"
        click.echo(f"  {t['id']:>4}  {t['team_name']:<20} {linked:<16} score {score}  {', '.join(t['members'])}")


@designathon.command("event-status")
@click.argument("event_id", type=int)
@click.argument("status", type=click.Choice(EVENT_STATUSES))
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def event_status(event_id: int, status: str, as_json: bool) -> None:
    """Move an event to planned, active or completed."""
    with get_db() as db:
        try:
            event = db.set_designathon_event_status(event_id, status)
        except KeyError:
            click.echo(f"Not found: {event_id}", err=True)
            sys.exit(1)
        except ValueError as e:
            fail(str(e), as_json=as_json)
    _emit(event, as_json, f"Event {event_id} is now {event['status']}")


@designathon.command("add-team")
@click.argument("event_id", type=int)
@click.argument("team_name")
@click.option("--member", "members", multiple=True, help="Team member (repeatable)")
@click.option("--requirement", "requirement_id", default=None, help="Requirement the team builds for")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.pass_context
def add_team(
    ctx: click.Context,
    event_id: int,
    team_name: str,
    members: tuple[str, ...],
    requirement_id: str | None,
    as_json: bool,
) -> None:
    """Add a team to an event, optionally linked to a requirement."""
    with get_db() as db:
        try:
            team = db.add_designathon_team(
                event_id,
                team_name,
                members=list(members),
                requirement_id=requirement_id,
                actor=ctx.obj["actor"],
            )
        except KeyError as e:
            click.echo(f"Not found: {e.args[0] if e.args else event_id}", err=True)
            sys.exit(1)
        except ValueError as e:
            fail(str(e), as_json=as_json)
    _emit(team, as_json, f"Added team {team['id']}: {team['team_name']}")


@designathon.command("update-team")
@click.argument("team_id", type=int)
@click.option("--url", "submission_url", default=None, help="Submission URL")
@click.option("--score", type=float, default=None, help="Judging score 0-100")
@click.option("--requirement", "requirement_id", default=None, help="Link to a requirement")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.pass_context
def update_team(
    ctx: click.Context,
    team_id: int,
    submission_url: str | None,
    score: float | None,
    requirement_id: str | None,
    as_json: bool,
) -> None:
    """Record a submission, a score or a requirement link for a team."""
    with get_db() as db:
        try:
            team = db.update_designathon_team(
                team_id,
                submission_url=submission_url,
                score=score,
                requirement_id=requirement_id,
                actor=ctx.obj["actor"],
            )
        except KeyError as e:
            click.echo(f"Not found: {e.args[0] if e.args else team_id}", err=True)
            sys.exit(1)
        except ValueError as e:
            fail(str(e), as_json=as_json)
    _emit(team, as_json, f"Updated team {team_id}: {team['team_name']}")


def register(cli: click.Group) -> None:
    """Register designathon commands with the CLI group."""
    cli.add_command(designathon)
