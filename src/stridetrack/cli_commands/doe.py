"""CLI commands for design-of-experiments records."""

from __future__ import annotations

import json as json_mod
import sys
from typing import Any

import click

from stridetrack.cli_common import fail, get_db, refresh_pulse
from stridetrack.db_doe import DOE_METRICS
from stridetrack.validation import parse_key_values


def _parse_scores(pairs: tuple[str, ...], option: str) -> dict[str, Any]:
    scores: dict[str, Any] = {}
    for metric, raw in parse_key_values(pairs, option=option).items():
        try:
            scores[metric] = float(raw)
        except ValueError:
            msg = f"--{option} score for '{metric}' must be a number, got '{raw}'"
            raise ValueError(msg) from None
    return scores


@click.group()
def doe() -> None:
    """Record and show DoE results for requirements in H-DOE-1..H-DOE-4."""


@doe.command("record")
@click.argument("requirement_id")
@click.option("--protocol", "testing_protocol", default="", help="Testing protocol followed")
@click.option("--sample-size", type=int, default=None, help="Number of beneficiaries tested")
@click.option("--pre", "pre_pairs", multiple=True, help="Pre-test score as Metric=value (repeatable)")
@click.option("--post", "post_pairs", multiple=True, help="Post-test score as Metric=value (repeatable)")
@click.option("--summary", "results_summary", default="", help="Results summary")
@click.option("--feedback", "beneficiary_feedback", default="", help="Beneficiary feedback")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.pass_context
def doe_record(
    ctx: click.Context,
    requirement_id: str,
    testing_protocol: str,
    sample_size: int | None,
    pre_pairs: tuple[str, ...],
    post_pairs: tuple[str, ...],
    results_summary: str,
    beneficiary_feedback: str,
    as_json: bool,
) -> None:
    """Save the DoE record for the current revision, replacing any earlier one."""
    with get_db() as db:
        try:
            record = db.record_doe(
                requirement_id,
                testing_protocol=testing_protocol,
                sample_size=sample_size,
                pre_test=_parse_scores(pre_pairs, "pre"),
                post_test=_parse_scores(post_pairs, "post"),
                results_summary=results_summary,
                beneficiary_feedback=beneficiary_feedback,
                recorded_by=ctx.obj["actor"],
            )
        except KeyError:
            click.echo(f"Not found: {requirement_id}", err=True)
            sys.exit(1)
        except ValueError as e:
            fail(str(e), as_json=as_json)
        if as_json:
            click.echo(json_mod.dumps(record, indent=2, default=str))
        else:
            click.echo(
                f"Saved DoE record for {requirement_id} revision {record['revision_number']} "
                f"(average improvement {record['average_improvement']:+g})"
            )
        refresh_pulse(db)


@doe.command("show")
@click.argument("requirement_id")
@click.option("--revision", "revision_number", type=int, default=None, help="Revision (default: current)")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def doe_show(requirement_id: str, revision_number: int | None, as_json: bool) -> None:
    """Show the DoE record with per-metric improvements."""
    with get_db() as db:
        try:
            record = db.get_doe_record(requirement_id, revision_number=revision_number)
        except KeyError:
            click.echo(f"Not found: {requirement_id}", err=True)
            sys.exit(1)
    if record is None:
        if as_json:
            click.echo("null")
        else:
            click.echo(f"No DoE record for {requirement_id}")
        return
    if as_json:
        click.echo(json_mod.dumps(record, indent=2, default=str))
        return
    click.echo(f"{requirement_id} revision {record['revision_number']}")
    if record["testing_protocol"]:
        click.echo(f"  Protocol:    {record['testing_protocol']}")
    if record["sample_size"] is not None:
        click.echo(f"  Sample size: {record['sample_size']}")
    for metric in DOE_METRICS:
        pre = record["pre_test_data"][metric]
        post = record["post_test_data"][metric]
        delta = record["improvement_metrics"][metric]
        click.echo(f"  {metric:<14} {pre:>4g} -> {post:<4g} ({delta:+g})")
    click.echo(f"Average improvement: {record['average_improvement']:+g}")


def register(cli: click.Group) -> None:
    """Register DoE commands with the CLI group."""
    cli.add_command(doe)
