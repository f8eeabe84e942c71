"""Markdown and JSON reports built from the tracker database.

Read-only: nothing here writes to SQLite. ``write_pulse`` regenerates the
``pulse.md`` summary after CLI mutations.
"""

from __future__ import annotations

import re
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from stridetrack.aging import parse_iso
from stridetrack.core import StrideDB, write_atomic
from stridetrack.db_reports import data_completeness

_CONTROL_CHARS_RE = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f\x7f-\x9f]")
_MONTH_RE = re.compile(r"^(\d{4})-(\d{2})$")


def _sanitize(text: str, limit: int = 200) -> str:
    """Strip control characters and newlines so text is safe inside one markdown line."""
    text = _CONTROL_CHARS_RE.sub("", text)
    text = " ".join(text.replace("\r", " ").replace("\n", " ").split())
    if len(text) > limit:
        text = text[: limit - 3] + "..."
    return text


def month_bounds(month: str) -> tuple[datetime, datetime]:
    """``"2026-03"`` -> (2026-03-01T00:00Z, 2026-04-01T00:00Z)."""
    m = _MONTH_RE.match(month)
    if m is None or not 1 <= int(m.group(2)) <= 12:
        msg = f"Invalid month '{month}': expected YYYY-MM"
        raise ValueError(msg)
    year, mon = int(m.group(1)), int(m.group(2))
    start = datetime(year, mon, 1, tzinfo=UTC)
    end = datetime(year + 1, 1, 1, tzinfo=UTC) if mon == 12 else datetime(year, mon + 1, 1, tzinfo=UTC)
    return start, end


# ---------------------------------------------------------------------------
# Monthly report
# ---------------------------------------------------------------------------


def monthly_report(db: StrideDB, month: str) -> dict[str, Any]:
    """Intake, throughput and savings for one calendar month."""
    start, end = month_bounds(month)
    terminal = sorted(db.lifecycle.terminal_states)
    requirements = db.list_requirements(limit=1_000_000)
    existing = [r for r in requirements if parse_iso(r.created_at) < end]

    new_this_month = [r for r in existing if parse_iso(r.created_at) >= start]

    ph = ",".join("?" * len(terminal))
    ready_rows = db.conn.execute(
        f"SELECT DISTINCT requirement_id FROM state_transitions WHERE to_state IN ({ph}) "
        f"AND created_at >= ? AND created_at < ?",
        [*terminal, start.isoformat(), end.isoformat()],
    ).fetchall()
    ready_ids = {r["requirement_id"] for r in ready_rows}
    ready_this_month = [r for r in existing if r.id in ready_ids]

    savings = 0.0
    savings_items: list[dict[str, Any]] = []
    for r in ready_this_month:
        if r.market_price is not None and r.target_price is not None:
            saved = r.market_price - r.target_price
            savings += saved
            savings_items.append({"requirement_id": r.id, "title": r.title, "saving": round(saved, 2)})

    by_source: dict[str, int] = {}
    for r in existing:
        by_source[r.source_type] = by_source.get(r.source_type, 0) + 1

    pipeline: dict[str, int] = {}
    for r in existing:
        pipeline[r.current_state] = pipeline.get(r.current_state, 0) + 1

    return {
        "month": month,
        "total_requirements": len(existing),
        "new_this_month": len(new_this_month),
        "new_by_priority": {p: sum(1 for r in new_this_month if r.priority == p) for p in ("P1", "P2", "P3")},
        "production_ready_this_month": len(ready_this_month),
        "production_ready_total": sum(1 for r in existing if db.lifecycle.is_terminal(r.current_state)),
        "cost_savings": round(savings, 2),
        "savings_items": savings_items,
        "by_source": by_source,
        "pipeline": pipeline,
        "aging": [a for a in db.get_aging_alerts() if a["requirement_id"] in {r.id for r in existing}],
    }


def format_monthly_report(report: dict[str, Any]) -> str:
    lines = [f"# Monthly Report: {report['month']}", ""]
    lines.append("## Summary")
    lines.append(f"- Requirements on file: {report['total_requirements']}")
    lines.append(f"- New this month: {report['new_this_month']}")
    lines.append(f"- Production-ready this month: {report['production_ready_this_month']}")
    lines.append(f"- Production-ready overall: {report['production_ready_total']}")
    lines.append(f"- Cost savings: {report['cost_savings']:.2f}")
    lines.append("")
    lines.append("## Sources")
    for source, count in sorted(report["by_source"].items()):
        lines.append(f"- {source}: {count}")
    if not report["by_source"]:
        lines.append("- (none)")
    lines.append("")
    lines.append("## Pipeline")
    for state, count in report["pipeline"].items():
        lines.append(f"- {state}: {count}")
    if not report["pipeline"]:
        lines.append("- (empty)")
    lines.append("")
    lines.append("## Aging")
    for alert in report["aging"]:
        lines.append(
            f"- [{alert['severity']}] {alert['requirement_id']} \"{_sanitize(alert['title'])}\" "
            f"{alert['current_state']} {alert['days_in_phase']}d (+{alert['overdue_by']}d)"
        )
    if not report["aging"]:
        lines.append("- (none)")
    lines.append("")
    return "\n".join(lines)


# ---------------------------------------------------------------------------
# Device documentation
# ---------------------------------------------------------------------------


def device_document(db: StrideDB, requirement_id: str) -> str:
    """Deterministic dossier for one requirement: attributes, path, phase log and DoE results."""
    req = db.get_requirement(requirement_id)
    history = db.get_history(requirement_id)

    lines = [f"# {_sanitize(req.title)}", ""]
    lines.append(f"- ID: {req.id}")
    lines.append(f"- Stage: {req.current_state} {req.state_label} ({req.phase})")
    lines.append(f"- Priority: {req.priority} | Tech level: {req.tech_level} | Source: {req.source_type}")
    if req.therapy_domains:
        lines.append(f"- Therapy domains: {', '.join(req.therapy_domains)}")
    if req.disability_types:
        lines.append(f"- Disability types: {', '.join(req.disability_types)}")
    if req.market_price is not None or req.target_price is not None:
        market = f"{req.market_price:.2f}" if req.market_price is not None else "n/a"
        target = f"{req.target_price:.2f}" if req.target_price is not None else "n/a"
        lines.append(f"- Market price: {market} | Target price: {target}")
    if req.path_assignment:
        lines.append(f"- Path: {req.path_assignment}: {_sanitize(req.path_justification)}")
    if req.revision_number:
        lines.append(f"- Revision: {req.revision_number}")
    lines.append(f"- Data completeness: {data_completeness(req)}%")
    lines.append("")

    if req.description:
        lines.append("## Description")
        lines.append(req.description.strip())
        lines.append("")

    lines.append("## Phase Log")
    for entry in history:
        lines.append(f"### {entry['from_state']} → {entry['to_state']} ({entry['created_at'][:10]}, {entry['actor'] or 'unknown'})")
        lines.append(_sanitize(entry["notes"], limit=2000))
        fb = entry["feedback"]
        if fb is not None:
            for key, value in fb["phase_data"].items():
                lines.append(f"- {key}: {_sanitize(str(value), limit=500)}")
            for blocker in fb["blockers_resolved"]:
                lines.append(f"- Blocker resolved: {_sanitize(blocker)}")
            for decision in fb["key_decisions"]:
                lines.append(f"- Decision: {_sanitize(decision)}")
        lines.append("")

    doe = db.get_doe_record(requirement_id)
    if doe is not None:
        lines.append("## DoE Report")
        if doe["testing_protocol"]:
            lines.append(f"- Protocol: {_sanitize(doe['testing_protocol'], limit=1000)}")
        if doe["sample_size"]:
            lines.append(f"- Sample size: {doe['sample_size']}")
        for metric, delta in doe["improvement_metrics"].items():
            pre, post = doe["pre_test_data"][metric], doe["post_test_data"][metric]
            lines.append(f"- {metric}: {pre:g} -> {post:g} ({delta:+g})")
        if doe["results_summary"]:
            lines.append(f"- Results: {_sanitize(doe['results_summary'], limit=2000)}")
        if doe["beneficiary_feedback"]:
            lines.append(f"- Beneficiary feedback: {_sanitize(doe['beneficiary_feedback'], limit=2000)}")
        lines.append("")
    return "\n".join(lines)


# ---------------------------------------------------------------------------
# Pipeline pulse
# ---------------------------------------------------------------------------


def generate_pulse(db: StrideDB, *, now: datetime | None = None) -> str:
    """Compact markdown overview of the whole pipeline."""
    now = now or datetime.now(UTC)
    stats = db.get_pipeline_stats(now=now)
    alerts = db.get_aging_alerts(now=now)
    recent = db.get_recent_events(limit=10)

    lines = [f"# Pipeline Pulse (auto-generated {now.isoformat(timespec='seconds')})", ""]
    lines.append("## Vitals")
    lines.append(
        f"Total: {stats['total']} | Active P1: {stats['active_p1']} | Production-ready: {stats['production_ready']} "
        f"| Aging: {stats['aging']} | Avg completeness: {stats['average_completeness']}%"
    )
    lines.append("")

    lines.append("## By Phase")
    for phase in ("SENSING", "HARMONIZING", "DESIGNATHON", "CONVERGENCE"):
        lines.append(f"- {phase}: {stats['by_phase'].get(phase, 0)}")
    lines.append("")

    lines.append("## Aging Alerts")
    for alert in alerts[:12]:
        lines.append(
            f"- [{alert['severity']}] {alert['requirement_id']} \"{_sanitize(alert['title'])}\" "
            f"{alert['current_state']} {alert['days_in_phase']}d (threshold {alert['threshold']}d)"
        )
    if not alerts:
        lines.append("- (none)")
    lines.append("")

    lines.append("## Recent Activity")
    for evt in recent:
        detail = ""
        if evt["old_value"] and evt["new_value"]:
            detail = f" {evt['old_value']}→{evt['new_value']}"
        elif evt["new_value"]:
            detail = f" {_sanitize(evt['new_value'], limit=50)}"
        lines.append(f'- {evt["event_type"]} {evt["requirement_id"]} "{_sanitize(evt["requirement_title"])}"{detail}')
    if not recent:
        lines.append("- (no recent activity)")
    lines.append("")
    return "\n".join(lines)


def write_pulse(db: StrideDB, output_path: str | Path) -> None:
    """Generate and write the pulse atomically (write-temp then rename)."""
    write_atomic(Path(output_path), generate_pulse(db))
