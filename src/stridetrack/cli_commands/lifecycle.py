"""CLI commands for moving requirements through the pipeline."""

from __future__ import annotations

import json as json_mod
import sys

import click

from stridetrack.cli_common import fail, fail_lifecycle, get_actor, get_db, refresh_pulse
from stridetrack.lifecycle import LifecycleError, PhaseFeedbackInput, default_registry
from stridetrack.lifecycle_data import PATHS
from stridetrack.validation import parse_key_values


@click.command()
@click.option("--phase", default=None, help="Only states in this phase")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def states(phase: str | None, as_json: bool) -> None:
    """List every pipeline state and its outgoing edges."""
    registry = default_registry()
    defs = [s for s in registry.list_states() if phase is None or s.phase == phase.upper()]
    if as_json:
        data = [
            {
                **s.to_dict(),
                "next": registry.successors(s.id),
                "terminal": registry.is_terminal(s.id),
            }
            for s in defs
        ]
        click.echo(json_mod.dumps(data, indent=2))
        return
    for s in defs:
        targets = ", ".join(registry.successors(s.id)) or "(terminal)"
        click.echo(f"{s.id:<8} {s.label:<22} {s.phase:<12} -> {targets}")


@click.command("next")
@click.argument("requirement_id")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def next_cmd(requirement_id: str, as_json: bool) -> None:
    """Show the legal next states with their gate checklists and fields."""
    with get_db() as db:
        try:
            req = db.get_requirement(requirement_id)
            options = db.get_transition_options(requirement_id)
        except KeyError:
            click.echo(f"Not found: {requirement_id}", err=True)
            sys.exit(1)

        if as_json:
            click.echo(
                json_mod.dumps(
                    {
                        "requirement_id": req.id,
                        "current_state": req.current_state,
                        "path_assignment": req.path_assignment,
                        "options": [o.to_dict() for o in options],
                    },
                    indent=2,
                )
            )
            return

        click.echo(f"{req.id} is at {req.current_state} ({req.state_label})")
        if db.lifecycle.requires_path_assignment(req.current_state) and not req.path_assignment:
            click.echo(f"  No path assigned yet: stridetrack assign-path {req.id} <{'|'.join(PATHS)}> -j <why>")
            return
        if not options:
            click.echo("  Terminal state: no further transitions.")
            return
        for opt in options:
            marker = " [revision]" if opt.is_revision else ""
            click.echo(f"\n-> {opt.to} {opt.label} ({opt.phase}){marker}")
            for g in opt.gate_criteria:
                click.echo(f"   [{'required' if g.required else 'optional'}] check {g.id}: {g.label}")
            for f in opt.phase_fields:
                hint = f" one of: {', '.join(f.options)}" if f.options else ""
                click.echo(f"   [{'required' if f.required else 'optional'}] field {f.id} ({f.type}){hint}")


@click.command()
@click.argument("from_state")
@click.argument("to_state")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def gates(from_state: str, to_state: str, as_json: bool) -> None:
    """Show the gate checklist and phase fields for one edge."""
    registry = default_registry()
    criteria = registry.gate_criteria(from_state, to_state)
    fields = registry.phase_fields(from_state, to_state)
    if as_json:
        click.echo(
            json_mod.dumps(
                {
                    "from": from_state,
                    "to": to_state,
                    "gate_criteria": [g.to_dict() for g in criteria],
                    "phase_fields": [f.to_dict() for f in fields],
                },
                indent=2,
            )
        )
        return
    if not criteria and not fields:
        click.echo(f"No gates or fields defined for {from_state} -> {to_state}")
        return
    for g in criteria:
        click.echo(f"check {g.id:<24} {'required' if g.required else 'optional':<9} {g.label}")
    for f in fields:
        click.echo(f"field {f.id:<24} {'required' if f.required else 'optional':<9} {f.label} ({f.type})")


@click.command()
@click.argument("requirement_id")
@click.argument("to_state")
@click.option("--notes", "-n", default="", help="Phase notes (required)")
@click.option("--check", "checks", multiple=True, help="Gate criterion id to attest (repeatable)")
@click.option("--field", "fields", multiple=True, help="Phase field as key=value (repeatable)")
@click.option("--blocker", "blockers", multiple=True, help="Blocker resolved in this phase (repeatable)")
@click.option("--decision", "decisions", multiple=True, help="Key decision made in this phase (repeatable)")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.pass_context
def advance(
    ctx: click.Context,
    requirement_id: str,
    to_state: str,
    notes: str,
    checks: tuple[str, ...],
    fields: tuple[str, ...],
    blockers: tuple[str, ...],
    decisions: tuple[str, ...],
    as_json: bool,
) -> None:
    """Move a requirement to TO_STATE, attesting gates and recording feedback."""
    try:
        phase_data = parse_key_values(fields)
    except ValueError as e:
        fail(str(e), as_json=as_json)
    feedback = PhaseFeedbackInput(
        notes=notes,
        gate_checks=dict.fromkeys(checks, True),
        phase_data=phase_data,
        blockers_resolved=blockers,
        key_decisions=decisions,
    )

    with get_db() as db:
        try:
            from_state = db.get_requirement(requirement_id).current_state
            req = db.advance(requirement_id, to_state, feedback, get_actor(ctx))
        except KeyError:
            click.echo(f"Not found: {requirement_id}", err=True)
            sys.exit(1)
        except LifecycleError as e:
            fail_lifecycle(e, as_json=as_json)
        if as_json:
            click.echo(json_mod.dumps(req.to_dict(), indent=2, default=str))
        else:
            suffix = f" (revision {req.revision_number})" if db.lifecycle.is_revision_edge(from_state, to_state) else ""
            click.echo(f"Advanced {req.id} to {req.current_state} {req.state_label}{suffix}")
        refresh_pulse(db)


@click.command("assign-path")
@click.argument("requirement_id")
@click.argument("path", type=click.Choice(PATHS))
@click.option("--justification", "-j", required=True, help="Why this build path")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.pass_context
def assign_path(ctx: click.Context, requirement_id: str, path: str, justification: str, as_json: bool) -> None:
    """Choose the build path (INTERNAL or DESIGNATHON) at the path-decision state."""
    with get_db() as db:
        try:
            req = db.assign_path(requirement_id, path, justification, get_actor(ctx))
        except KeyError:
            click.echo(f"Not found: {requirement_id}", err=True)
            sys.exit(1)
        except LifecycleError as e:
            fail_lifecycle(e, as_json=as_json)
        except ValueError as e:
            fail(str(e), as_json=as_json)
        if as_json:
            click.echo(json_mod.dumps(req.to_dict(), indent=2, default=str))
        else:
            target = db.lifecycle.path_targets[path]
            click.echo(f"Assigned {req.id} to {path}. Next: stridetrack advance {req.id} {target}")
        refresh_pulse(db)


@click.command()
@click.argument("requirement_id")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def history(requirement_id: str, as_json: bool) -> None:
    """Show the transition log with the feedback captured on each edge."""
    with get_db() as db:
        try:
            entries = db.get_history(requirement_id)
        except KeyError:
            click.echo(f"Not found: {requirement_id}", err=True)
            sys.exit(1)
        if as_json:
            click.echo(json_mod.dumps(entries, indent=2, default=str))
            return
        for h in entries:
            click.echo(f"{h['created_at'][:19]}  {h['from_state']} -> {h['to_state']} {h['to_label']}  ({h['actor'] or '-'})")
            click.echo(f"    {h['notes']}")
            fb = h["feedback"]
            if fb is None:
                continue
            for key, value in fb["phase_data"].items():
                click.echo(f"    {key}: {value}")
            for blocker in fb["blockers_resolved"]:
                click.echo(f"    blocker resolved: {blocker}")
            for decision in fb["key_decisions"]:
                click.echo(f"    decision: {decision}")


def register(cli: click.Group) -> None:
    """Register lifecycle commands with the CLI group."""
    cli.add_command(states)
    cli.add_command(next_cmd)
    cli.add_command(gates)
    cli.add_command(advance)
    cli.add_command(assign_path)
    cli.add_command(history)
