"""CLI commands for pipeline views: aging, stats, monthly report, device document."""

from __future__ import annotations

import json as json_mod
import sys

import click

from stridetrack.cli_common import fail, get_db
from stridetrack.reports import device_document, format_monthly_report, monthly_report


@click.command()
@click.option("--all", "include_all", is_flag=True, help="Include requirements still within their threshold")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def aging(include_all: bool, as_json: bool) -> None:
    """List requirements that have sat in their phase past its threshold."""
    with get_db() as db:
        alerts = db.get_aging_alerts(include_all=include_all)
        if as_json:
            click.echo(json_mod.dumps(alerts, indent=2, default=str))
            return
        if not alerts:
            click.echo("No aging requirements.")
            return
        for a in alerts:
            click.echo(
                f"[{a['severity']:<8}] {a['requirement_id']}  {a['current_state']:<8} "
                f"{a['days_in_phase']:>4}d / {a['threshold']}d  {a['title']}"
            )
        click.echo(f"\n{sum(1 for a in alerts if a['severity'] != 'ok')} aging")


@click.command()
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def stats(as_json: bool) -> None:
    """Show pipeline statistics."""
    with get_db() as db:
        data = db.get_pipeline_stats()
        if as_json:
            click.echo(json_mod.dumps(data, indent=2, default=str))
            return
        click.echo(f"Total:            {data['total']}")
        click.echo(f"Active P1:        {data['active_p1']}")
        click.echo(f"Production-ready: {data['production_ready']}")
        click.echo(f"Aging:            {data['aging']}")
        click.echo(f"In revision:      {data['revisions']}")
        click.echo(f"Avg completeness: {data['average_completeness']}%")
        click.echo("\nBy phase:")
        for phase, count in sorted(data["by_phase"].items()):
            click.echo(f"  {phase:<12} {count}")
        click.echo("\nBy state:")
        for state, count in data["by_state"].items():
            if count:
                click.echo(f"  {state:<8} {count}")


@click.command()
@click.argument("month")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def report(month: str, as_json: bool) -> None:
    """Monthly report for MONTH (YYYY-MM)."""
    with get_db() as db:
        try:
            data = monthly_report(db, month)
        except ValueError as e:
            fail(str(e), as_json=as_json)
        if as_json:
            click.echo(json_mod.dumps(data, indent=2, default=str))
        else:
            click.echo(format_monthly_report(data))


@click.command()
@click.argument("requirement_id")
@click.option("--output", "-o", type=click.Path(dir_okay=False), default=None, help="Write to file instead of stdout")
def doc(requirement_id: str, output: str | None) -> None:
    """Render the device dossier for one requirement as markdown."""
    with get_db() as db:
        try:
            text = device_document(db, requirement_id)
        except KeyError:
            click.echo(f"Not found: {requirement_id}", err=True)
            sys.exit(1)
    if output:
        with open(output, "w", encoding="utf-8") as f:
            f.write(text)
        click.echo(f"Wrote {output}")
    else:
        click.echo(text)


def register(cli: click.Group) -> None:
    """Register report commands with the CLI group."""
    cli.add_command(aging)
    cli.add_command(stats)
    cli.add_command(report)
    cli.add_command(doc)
