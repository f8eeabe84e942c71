"""CLI commands for convergence committee scorecards and decisions."""

from __future__ import annotations

import json as json_mod
import sys

import click

from stridetrack.cli_common import fail, get_db, refresh_pulse
from stridetrack.db_committee import RECOMMENDATIONS, SCORE_WEIGHTS


@click.command()
@click.argument("requirement_id")
@click.option("--reviewer", "-r", required=True, help="Committee member name")
@click.option("--user-need", type=float, required=True, help="Score 0-10")
@click.option("--feasibility", "technical_feasibility", type=float, required=True, help="Score 0-10")
@click.option("--doe-results", type=float, required=True, help="Score 0-10")
@click.option("--cost", "cost_effectiveness", type=float, required=True, help="Score 0-10")
@click.option("--safety", type=float, required=True, help="Score 0-10")
@click.option("--recommendation", type=click.Choice(RECOMMENDATIONS), required=True)
@click.option("--feedback", "feedback_text", default="", help="Free-text feedback")
@click.option("--conditions", default="", help="Conditions attached to the recommendation")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def review(
    requirement_id: str,
    reviewer: str,
    user_need: float,
    technical_feasibility: float,
    doe_results: float,
    cost_effectiveness: float,
    safety: float,
    recommendation: str,
    feedback_text: str,
    conditions: str,
    as_json: bool,
) -> None:
    """Record one committee member's weighted scorecard."""
    scores = {
        "user_need": user_need,
        "technical_feasibility": technical_feasibility,
        "doe_results": doe_results,
        "cost_effectiveness": cost_effectiveness,
        "safety": safety,
    }
    with get_db() as db:
        try:
            row = db.add_committee_review(
                requirement_id,
                reviewer=reviewer,
                scores=scores,
                recommendation=recommendation,
                feedback_text=feedback_text,
                conditions=conditions,
            )
        except KeyError:
            click.echo(f"Not found: {requirement_id}", err=True)
            sys.exit(1)
        except ValueError as e:
            fail(str(e), as_json=as_json)
        if as_json:
            click.echo(json_mod.dumps(row, indent=2, default=str))
        else:
            click.echo(f"Recorded review by {row['reviewer']}: {row['recommendation']} (weighted {row['weighted_total']})")
        refresh_pulse(db)


@click.command()
@click.argument("requirement_id")
@click.argument("decision", type=click.Choice(RECOMMENDATIONS))
@click.option("--instructions", "revision_instructions", default="", help="Required for REVISE")
@click.option("--conditions", default="", help="Conditions attached to the decision")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.pass_context
def decide(
    ctx: click.Context,
    requirement_id: str,
    decision: str,
    revision_instructions: str,
    conditions: str,
    as_json: bool,
) -> None:
    """Record the committee's decision for the current revision."""
    with get_db() as db:
        try:
            row = db.record_committee_decision(
                requirement_id,
                decision,
                revision_instructions=revision_instructions,
                conditions=conditions,
                decided_by=ctx.obj["actor"],
            )
        except KeyError:
            click.echo(f"Not found: {requirement_id}", err=True)
            sys.exit(1)
        except ValueError as e:
            fail(str(e), as_json=as_json)
        if as_json:
            click.echo(json_mod.dumps(row, indent=2, default=str))
        else:
            click.echo(f"Decision for {requirement_id} revision {row['revision_number']}: {row['decision']}")
        refresh_pulse(db)


@click.command()
@click.argument("requirement_id")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def committee(requirement_id: str, as_json: bool) -> None:
    """Show the scorecards and decision for the current revision."""
    with get_db() as db:
        try:
            summary = db.get_committee_summary(requirement_id)
        except KeyError:
            click.echo(f"Not found: {requirement_id}", err=True)
            sys.exit(1)
        if as_json:
            click.echo(json_mod.dumps(summary, indent=2, default=str))
            return
        click.echo(f"{requirement_id} revision {summary['revision_number']}: {summary['review_count']} reviews")
        for r in summary["reviews"]:
            parts = " ".join(f"{k}={r[k]:g}" for k in SCORE_WEIGHTS)
            click.echo(f"  {r['reviewer']:<16} {r['recommendation']:<8} {r['weighted_total']:>4}  {parts}")
        if summary["average_score"] is not None:
            click.echo(f"Average weighted score: {summary['average_score']}")
        decision = summary["decision"]
        click.echo(f"Decision: {decision['decision'] if decision else '(pending)'}")


def register(cli: click.Group) -> None:
    """Register committee commands with the CLI group."""
    cli.add_command(review)
    cli.add_command(decide)
    cli.add_command(committee)
