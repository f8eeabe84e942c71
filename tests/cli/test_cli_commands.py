"""CLI tests for requirement, lifecycle, committee, DoE, designathon and report commands."""

from __future__ import annotations

import json
import os
from datetime import UTC, datetime
from pathlib import Path

from click.testing import CliRunner, Result

from stridetrack.cli import cli
from stridetrack.core import DB_FILENAME, STRIDETRACK_DIR_NAME, SUMMARY_FILENAME, StrideDB, read_config, write_config
from tests._pipeline import advance_to
from tests.cli.conftest import _extract_id

S1_CHECKS = ["--check", "title_complete", "--check", "source_identified", "--check", "description_present"]


def _create(runner: CliRunner, *args: str) -> str:
    result = runner.invoke(cli, ["create", *args])
    assert result.exit_code == 0, result.output
    return _extract_id(result.output)


def _walk(project: Path, requirement_id: str, target: str) -> None:
    with StrideDB.from_project(project) as d:
        advance_to(d, requirement_id, target)


class TestInit:
    def test_init_creates_project(self, tmp_path: Path, cli_runner: CliRunner) -> None:
        original = os.getcwd()
        os.chdir(str(tmp_path))
        try:
            result = cli_runner.invoke(cli, ["init", "--prefix", "myproj"])
            assert result.exit_code == 0
            stride_dir = tmp_path / STRIDETRACK_DIR_NAME
            assert (stride_dir / DB_FILENAME).exists()
            assert (stride_dir / SUMMARY_FILENAME).read_text().startswith("# Pipeline Pulse")
            assert read_config(stride_dir)["prefix"] == "myproj"
        finally:
            os.chdir(original)

    def test_init_already_exists(self, cli_in_project: tuple[CliRunner, Path]) -> None:
        runner, _ = cli_in_project
        result = runner.invoke(cli, ["init"])
        assert result.exit_code == 0
        assert "already exists" in result.output

    def test_commands_outside_project(self, tmp_path: Path, cli_runner: CliRunner) -> None:
        original = os.getcwd()
        os.chdir(str(tmp_path))
        try:
            result = cli_runner.invoke(cli, ["list"])
            assert result.exit_code == 1
            assert "stridetrack init" in result.output
        finally:
            os.chdir(original)


class TestGlobalOptions:
    def test_empty_actor_rejected(self, cli_in_project: tuple[CliRunner, Path]) -> None:
        runner, _ = cli_in_project
        result = runner.invoke(cli, ["--actor", "  ", "list"])
        assert result.exit_code == 2
        assert "actor must not be empty" in result.output

    def test_bad_role_rejected(self, cli_in_project: tuple[CliRunner, Path]) -> None:
        runner, _ = cli_in_project
        result = runner.invoke(cli, ["--role", "has space", "list"])
        assert result.exit_code == 2

    def test_actor_recorded_on_create(self, cli_in_project: tuple[CliRunner, Path]) -> None:
        runner, _ = cli_in_project
        result = runner.invoke(cli, ["--actor", "asha", "create", "Grip aid", "--json"])
        assert json.loads(result.output)["created_by"] == "asha"


class TestRequirementCommands:
    def test_create(self, cli_in_project: tuple[CliRunner, Path]) -> None:
        runner, _ = cli_in_project
        result = runner.invoke(cli, ["create", "Grip aid", "--source", "CDC", "-p", "P1", "--therapy", "OT"])
        assert result.exit_code == 0
        rid = _extract_id(result.output)
        assert rid.startswith("test-")
        assert "[S1 Captured]" in result.output
        assert f"Next: stridetrack next {rid}" in result.output

    def test_create_json(self, cli_in_project: tuple[CliRunner, Path]) -> None:
        runner, _ = cli_in_project
        result = runner.invoke(cli, ["create", "Grip aid", "--gap", "RED", "--market-price", "30", "--json"])
        data = json.loads(result.output)
        assert data["current_state"] == "S1"
        assert data["gap_flags"] == ["RED"]
        assert data["market_price"] == 30.0

    def test_create_negative_price(self, cli_in_project: tuple[CliRunner, Path]) -> None:
        runner, _ = cli_in_project
        result = runner.invoke(cli, ["create", "Grip aid", "--target-price", "-1"])
        assert result.exit_code == 1
        assert "Error:" in result.output

    def test_create_bad_choice(self, cli_in_project: tuple[CliRunner, Path]) -> None:
        runner, _ = cli_in_project
        result = runner.invoke(cli, ["create", "Grip aid", "--source", "NOPE"])
        assert result.exit_code == 2

    def test_create_refreshes_pulse(self, cli_in_project: tuple[CliRunner, Path]) -> None:
        runner, project = cli_in_project
        _create(runner, "Grip aid")
        pulse = (project / STRIDETRACK_DIR_NAME / SUMMARY_FILENAME).read_text()
        assert "Total: 1" in pulse

    def test_show(self, cli_in_project: tuple[CliRunner, Path]) -> None:
        runner, _ = cli_in_project
        rid = _create(runner, "Grip aid", "-d", "Long description")
        result = runner.invoke(cli, ["show", rid])
        assert result.exit_code == 0
        assert "Stage:     S1 Captured (SENSING)" in result.output
        assert "Long description" in result.output

    def test_show_json(self, cli_in_project: tuple[CliRunner, Path]) -> None:
        runner, _ = cli_in_project
        rid = _create(runner, "Grip aid")
        data = json.loads(runner.invoke(cli, ["show", rid, "--json"]).output)
        assert data["aging"]["days_in_phase"] == 0
        assert data["aging"]["aging"] is False
        assert 0 < data["data_completeness"] < 100

    def test_show_not_found(self, cli_in_project: tuple[CliRunner, Path]) -> None:
        runner, _ = cli_in_project
        result = runner.invoke(cli, ["show", "test-nope"])
        assert result.exit_code == 1
        assert "Not found: test-nope" in result.output

    def test_list_filters(self, cli_in_project: tuple[CliRunner, Path]) -> None:
        runner, project = cli_in_project
        low = _create(runner, "Low one", "-p", "P3")
        high = _create(runner, "High one", "-p", "P1")
        _walk(project, low, "S3")
        result = runner.invoke(cli, ["list", "--priority", "P1"])
        assert high in result.output
        assert low not in result.output
        data = json.loads(runner.invoke(cli, ["list", "--state", "S3", "--json"]).output)
        assert [r["id"] for r in data] == [low]

    def test_list_orders_by_priority(self, cli_in_project: tuple[CliRunner, Path]) -> None:
        runner, _ = cli_in_project
        _create(runner, "Later", "-p", "P3")
        first = _create(runner, "Urgent", "-p", "P1")
        data = json.loads(runner.invoke(cli, ["list", "--json"]).output)
        assert data[0]["id"] == first

    def test_update(self, cli_in_project: tuple[CliRunner, Path]) -> None:
        runner, _ = cli_in_project
        rid = _create(runner, "Grip aid", "--gap", "RED")
        result = runner.invoke(cli, ["update", rid, "--title", "Better grip", "--clear-gaps"])
        assert result.exit_code == 0
        assert f"Updated {rid}: Better grip" in result.output
        data = json.loads(runner.invoke(cli, ["show", rid, "--json"]).output)
        assert data["gap_flags"] == []
        assert data["current_state"] == "S1"

    def test_update_not_found(self, cli_in_project: tuple[CliRunner, Path]) -> None:
        runner, _ = cli_in_project
        result = runner.invoke(cli, ["update", "test-nope", "--title", "X"])
        assert result.exit_code == 1
        assert "Not found" in result.output

    def test_update_empty_title(self, cli_in_project: tuple[CliRunner, Path]) -> None:
        runner, _ = cli_in_project
        rid = _create(runner, "Grip aid")
        result = runner.invoke(cli, ["update", rid, "--title", "   ", "--json"])
        assert result.exit_code == 1
        assert json.loads(result.output)["code"] == "error"

    def test_events(self, cli_in_project: tuple[CliRunner, Path]) -> None:
        runner, _ = cli_in_project
        rid = _create(runner, "Grip aid")
        runner.invoke(cli, ["update", rid, "-p", "P1"])
        result = runner.invoke(cli, ["events", rid])
        assert "priority_changed" in result.output
        assert "P2 -> P1" in result.output
        data = json.loads(runner.invoke(cli, ["events", rid, "--json"]).output)
        assert [e["event_type"] for e in data] == ["priority_changed", "created"]


class TestImport:
    def test_import(self, cli_in_project: tuple[CliRunner, Path]) -> None:
        runner, project = cli_in_project
        path = project / "batch.json"
        path.write_text(json.dumps([{"title": "Spoon", "priority": "P1"}, {"title": "Ruler", "source_type": "BLIND"}]))
        result = runner.invoke(cli, ["import", str(path)])
        assert result.exit_code == 0
        assert "Imported 2 requirements" in result.output

    def test_bad_record_imports_nothing(self, cli_in_project: tuple[CliRunner, Path]) -> None:
        runner, project = cli_in_project
        path = project / "batch.json"
        path.write_text(json.dumps([{"title": "Spoon"}, {"title": "Ruler", "priority": "P7"}]))
        result = runner.invoke(cli, ["import", str(path)])
        assert result.exit_code == 1
        assert "Record 1:" in result.output
        assert json.loads(runner.invoke(cli, ["list", "--json"]).output) == []

    def test_not_a_list(self, cli_in_project: tuple[CliRunner, Path]) -> None:
        runner, project = cli_in_project
        path = project / "batch.json"
        path.write_text(json.dumps({"title": "Spoon"}))
        result = runner.invoke(cli, ["import", str(path), "--json"])
        assert result.exit_code == 1
        assert "JSON list" in json.loads(result.output)["error"]

    def test_invalid_json(self, cli_in_project: tuple[CliRunner, Path]) -> None:
        runner, project = cli_in_project
        path = project / "batch.json"
        path.write_text("[{")
        result = runner.invoke(cli, ["import", str(path)])
        assert result.exit_code == 1
        assert "not valid JSON" in result.output


class TestLifecycleCommands:
    def test_states(self, cli_in_project: tuple[CliRunner, Path]) -> None:
        runner, _ = cli_in_project
        result = runner.invoke(cli, ["states"])
        assert result.exit_code == 0
        assert "Captured" in result.output
        assert "(terminal)" in result.output
        data = json.loads(runner.invoke(cli, ["states", "--json"]).output)
        assert len(data) == 17
        assert [s["id"] for s in data if s["terminal"]] == ["H-DOE-5"]
        assert next(s for s in data if s["id"] == "S4")["next"] == ["H-INT-1", "H-DES-1"]

    def test_states_by_phase(self, cli_in_project: tuple[CliRunner, Path]) -> None:
        runner, _ = cli_in_project
        data = json.loads(runner.invoke(cli, ["states", "--phase", "sensing", "--json"]).output)
        assert [s["id"] for s in data] == ["S1", "S2", "S3", "S4"]

    def test_gates(self, cli_in_project: tuple[CliRunner, Path]) -> None:
        runner, _ = cli_in_project
        result = runner.invoke(cli, ["gates", "S1", "S2"])
        assert "check title_complete" in result.output
        assert "field reviewer_name" in result.output
        data = json.loads(runner.invoke(cli, ["gates", "S3", "S4", "--json"]).output)
        assert {g["id"]: g["required"] for g in data["gate_criteria"]}["pricing_estimated"] is False

    def test_gates_unknown_edge(self, cli_in_project: tuple[CliRunner, Path]) -> None:
        runner, _ = cli_in_project
        result = runner.invoke(cli, ["gates", "S1", "S3"])
        assert "No gates or fields defined" in result.output

    def test_next(self, cli_in_project: tuple[CliRunner, Path]) -> None:
        runner, _ = cli_in_project
        rid = _create(runner, "Grip aid")
        result = runner.invoke(cli, ["next", rid])
        assert result.exit_code == 0
        assert "-> S2 Under Review (SENSING)" in result.output
        assert "[required] check title_complete" in result.output
        assert "[optional] field initial_assessment" in result.output

    def test_next_at_path_decision(self, cli_in_project: tuple[CliRunner, Path]) -> None:
        runner, project = cli_in_project
        rid = _create(runner, "Grip aid")
        _walk(project, rid, "S4")
        result = runner.invoke(cli, ["next", rid])
        assert "No path assigned yet" in result.output
        data = json.loads(runner.invoke(cli, ["next", rid, "--json"]).output)
        assert data["options"] == []

    def test_next_not_found(self, cli_in_project: tuple[CliRunner, Path]) -> None:
        runner, _ = cli_in_project
        assert runner.invoke(cli, ["next", "test-nope"]).exit_code == 1

    def test_advance(self, cli_in_project: tuple[CliRunner, Path]) -> None:
        runner, _ = cli_in_project
        rid = _create(runner, "Grip aid")
        result = runner.invoke(
            cli,
            ["advance", rid, "S2", "--notes", "Clear need", *S1_CHECKS, "--field", "reviewer_name=Asha"],
        )
        assert result.exit_code == 0, result.output
        assert f"Advanced {rid} to S2 Under Review" in result.output

    def test_advance_records_history(self, cli_in_project: tuple[CliRunner, Path]) -> None:
        runner, _ = cli_in_project
        rid = _create(runner, "Grip aid")
        runner.invoke(
            cli,
            [
                "--actor",
                "asha",
                "advance",
                rid,
                "S2",
                "-n",
                "Clear need",
                *S1_CHECKS,
                "--field",
                "reviewer_name=Asha",
                "--blocker",
                "Missing photos",
                "--decision",
                "Keep it low-tech",
            ],
        )
        result = runner.invoke(cli, ["history", rid])
        assert "S1 -> S2 Under Review  (asha)" in result.output
        assert "reviewer_name: Asha" in result.output
        assert "blocker resolved: Missing photos" in result.output
        assert "decision: Keep it low-tech" in result.output
        data = json.loads(runner.invoke(cli, ["history", rid, "--json"]).output)
        assert data[0]["feedback"] is None
        assert data[-1]["feedback"]["key_decisions"] == ["Keep it low-tech"]

    def test_advance_unmet_gates(self, cli_in_project: tuple[CliRunner, Path]) -> None:
        runner, _ = cli_in_project
        rid = _create(runner, "Grip aid")
        result = runner.invoke(cli, ["advance", rid, "S2", "-n", "x", "--check", "title_complete"])
        assert result.exit_code == 1
        assert "Error [GateCriteriaNotMet]" in result.output
        assert "source_identified" in result.output

    def test_advance_missing_field_json(self, cli_in_project: tuple[CliRunner, Path]) -> None:
        runner, _ = cli_in_project
        rid = _create(runner, "Grip aid")
        result = runner.invoke(cli, ["advance", rid, "S2", "-n", "x", *S1_CHECKS, "--json"])
        assert result.exit_code == 1
        data = json.loads(result.output)
        assert data["error"] == "MissingPhaseData"
        assert data["detail"]["missing"] == ["reviewer_name"]

    def test_advance_missing_notes(self, cli_in_project: tuple[CliRunner, Path]) -> None:
        runner, _ = cli_in_project
        rid = _create(runner, "Grip aid")
        result = runner.invoke(cli, ["advance", rid, "S2", *S1_CHECKS, "--field", "reviewer_name=Asha"])
        assert result.exit_code == 1
        assert "Error [MissingPhaseNotes]" in result.output

    def test_advance_skipping_a_state(self, cli_in_project: tuple[CliRunner, Path]) -> None:
        runner, _ = cli_in_project
        rid = _create(runner, "Grip aid")
        result = runner.invoke(cli, ["advance", rid, "S3", "-n", "x", "--json"])
        data = json.loads(result.output)
        assert data["error"] == "InvalidTransition"
        assert data["detail"]["allowed"] == ["S2"]

    def test_advance_malformed_field(self, cli_in_project: tuple[CliRunner, Path]) -> None:
        runner, _ = cli_in_project
        rid = _create(runner, "Grip aid")
        result = runner.invoke(cli, ["advance", rid, "S2", "-n", "x", "--field", "reviewer_name"])
        assert result.exit_code == 1
        assert "key=value" in result.output

    def test_advance_not_found(self, cli_in_project: tuple[CliRunner, Path]) -> None:
        runner, _ = cli_in_project
        result = runner.invoke(cli, ["advance", "test-nope", "S2", "-n", "x"])
        assert result.exit_code == 1
        assert "Not found" in result.output

    def test_attestation_roles_from_config(self, cli_in_project: tuple[CliRunner, Path]) -> None:
        runner, project = cli_in_project
        write_config(
            project / STRIDETRACK_DIR_NAME,
            {"prefix": "test", "version": 1, "attestation_roles": {"S1->S2": ["lead"]}},
        )
        rid = _create(runner, "Grip aid")
        args = ["advance", rid, "S2", "-n", "ok", *S1_CHECKS, "--field", "reviewer_name=Asha"]
        denied = runner.invoke(cli, args)
        assert denied.exit_code == 1
        assert "Error [AttestationNotPermitted]" in denied.output
        allowed = runner.invoke(cli, ["--role", "lead", *args])
        assert allowed.exit_code == 0, allowed.output

    def test_assign_path(self, cli_in_project: tuple[CliRunner, Path]) -> None:
        runner, project = cli_in_project
        rid = _create(runner, "Grip aid")
        _walk(project, rid, "S4")
        result = runner.invoke(cli, ["assign-path", rid, "INTERNAL", "-j", "Designer free"])
        assert result.exit_code == 0
        assert f"Assigned {rid} to INTERNAL. Next: stridetrack advance {rid} H-INT-1" in result.output
        again = runner.invoke(cli, ["assign-path", rid, "DESIGNATHON", "-j", "Changed mind", "--json"])
        assert again.exit_code == 1
        assert json.loads(again.output)["error"] == "PathAlreadyAssigned"

    def test_assign_path_wrong_state(self, cli_in_project: tuple[CliRunner, Path]) -> None:
        runner, _ = cli_in_project
        rid = _create(runner, "Grip aid")
        result = runner.invoke(cli, ["assign-path", rid, "INTERNAL", "-j", "Too early"])
        assert result.exit_code == 1
        assert "Error [InvalidTransition]" in result.output

    def test_assign_path_blank_justification(self, cli_in_project: tuple[CliRunner, Path]) -> None:
        runner, project = cli_in_project
        rid = _create(runner, "Grip aid")
        _walk(project, rid, "S4")
        result = runner.invoke(cli, ["assign-path", rid, "INTERNAL", "-j", "   "])
        assert result.exit_code == 1
        assert "Error:" in result.output

    def test_path_gates_next_options(self, cli_in_project: tuple[CliRunner, Path]) -> None:
        runner, project = cli_in_project
        rid = _create(runner, "Grip aid")
        _walk(project, rid, "S4")
        runner.invoke(cli, ["assign-path", rid, "DESIGNATHON", "-j", "Community build"])
        data = json.loads(runner.invoke(cli, ["next", rid, "--json"]).output)
        assert data["path_assignment"] == "DESIGNATHON"
        assert [o["to"] for o in data["options"]] == ["H-DES-1"]


class TestCommitteeCommands:
    def _at_decision(self, runner: CliRunner, project: Path) -> str:
        rid = _create(runner, "Grip aid")
        _walk(project, rid, "H-DOE-4")
        return rid

    def _review(self, runner: CliRunner, rid: str, *extra: str) -> Result:
        return runner.invoke(
            cli,
            [
                "review",
                rid,
                "-r",
                "Asha",
                "--user-need",
                "8",
                "--feasibility",
                "8",
                "--doe-results",
                "8",
                "--cost",
                "8",
                "--safety",
                "8",
                "--recommendation",
                "APPROVE",
                *extra,
            ],
        )

    def test_review(self, cli_in_project: tuple[CliRunner, Path]) -> None:
        runner, project = cli_in_project
        rid = self._at_decision(runner, project)
        result = self._review(runner, rid)
        assert result.exit_code == 0
        assert "Recorded review by Asha: APPROVE (weighted 8.0)" in result.output

    def test_review_out_of_range(self, cli_in_project: tuple[CliRunner, Path]) -> None:
        runner, project = cli_in_project
        rid = self._at_decision(runner, project)
        result = runner.invoke(
            cli,
            [
                "review",
                rid,
                "-r",
                "Asha",
                "--user-need",
                "11",
                "--feasibility",
                "8",
                "--doe-results",
                "8",
                "--cost",
                "8",
                "--safety",
                "8",
                "--recommendation",
                "REJECT",
            ],
        )
        assert result.exit_code == 1
        assert "between 0 and 10" in result.output

    def test_review_too_early(self, cli_in_project: tuple[CliRunner, Path]) -> None:
        runner, _ = cli_in_project
        rid = _create(runner, "Grip aid")
        result = self._review(runner, rid)
        assert result.exit_code == 1
        assert "only accepted in" in result.output

    def test_decide_and_summary(self, cli_in_project: tuple[CliRunner, Path]) -> None:
        runner, project = cli_in_project
        rid = self._at_decision(runner, project)
        self._review(runner, rid)
        result = runner.invoke(cli, ["--actor", "chair", "decide", rid, "APPROVE"])
        assert result.exit_code == 0
        assert f"Decision for {rid} revision 0: APPROVE" in result.output
        summary = runner.invoke(cli, ["committee", rid])
        assert f"{rid} revision 0: 1 reviews" in summary.output
        assert "Average weighted score: 8.0" in summary.output
        assert "Decision: APPROVE" in summary.output

    def test_decide_revise_needs_instructions(self, cli_in_project: tuple[CliRunner, Path]) -> None:
        runner, project = cli_in_project
        rid = self._at_decision(runner, project)
        self._review(runner, rid)
        result = runner.invoke(cli, ["decide", rid, "REVISE", "--json"])
        assert result.exit_code == 1
        assert "revision instructions" in json.loads(result.output)["error"]

    def test_committee_pending(self, cli_in_project: tuple[CliRunner, Path]) -> None:
        runner, project = cli_in_project
        rid = self._at_decision(runner, project)
        result = runner.invoke(cli, ["committee", rid])
        assert "0 reviews" in result.output
        assert "Decision: (pending)" in result.output


class TestDoECommands:
    def _in_doe(self, runner: CliRunner, project: Path) -> str:
        rid = _create(runner, "Grip aid")
        _walk(project, rid, "H-DOE-1")
        return rid

    def test_record_and_show(self, cli_in_project: tuple[CliRunner, Path]) -> None:
        runner, project = cli_in_project
        rid = self._in_doe(runner, project)
        result = runner.invoke(
            cli,
            [
                "doe",
                "record",
                rid,
                "--protocol",
                "Home trial",
                "--sample-size",
                "6",
                "--pre",
                "Comfort=4",
                "--post",
                "Comfort=7.5",
                "--post",
                "Safety=2",
            ],
        )
        assert result.exit_code == 0, result.output
        assert f"Saved DoE record for {rid} revision 0 (average improvement +1.1)" in result.output
        shown = runner.invoke(cli, ["doe", "show", rid])
        assert "Sample size: 6" in shown.output
        assert "(+3.5)" in shown.output
        data = json.loads(runner.invoke(cli, ["doe", "show", rid, "--json"]).output)
        assert data["improvement_metrics"]["Safety"] == 2.0

    def test_show_without_record(self, cli_in_project: tuple[CliRunner, Path]) -> None:
        runner, project = cli_in_project
        rid = self._in_doe(runner, project)
        assert f"No DoE record for {rid}" in runner.invoke(cli, ["doe", "show", rid]).output
        assert runner.invoke(cli, ["doe", "show", rid, "--json"]).output.strip() == "null"

    def test_record_outside_doe_states(self, cli_in_project: tuple[CliRunner, Path]) -> None:
        runner, _ = cli_in_project
        rid = _create(runner, "Grip aid")
        result = runner.invoke(cli, ["doe", "record", rid, "--json"])
        assert result.exit_code == 1
        assert "only captured in" in json.loads(result.output)["error"]

    def test_record_bad_score(self, cli_in_project: tuple[CliRunner, Path]) -> None:
        runner, project = cli_in_project
        rid = self._in_doe(runner, project)
        for bad in ("Comfort=high", "Comfort", "Beauty=3", "Comfort=12"):
            result = runner.invoke(cli, ["doe", "record", rid, "--pre", bad])
            assert result.exit_code == 1, bad
            assert "Error:" in result.output

    def test_not_found(self, cli_in_project: tuple[CliRunner, Path]) -> None:
        runner, _ = cli_in_project
        assert runner.invoke(cli, ["doe", "show", "test-nope"]).exit_code == 1
        assert runner.invoke(cli, ["doe", "record", "test-nope"]).exit_code == 1


class TestDesignathonCommands:
    def _event(self, runner: CliRunner) -> int:
        result = runner.invoke(cli, ["designathon", "create-event", "Spring build", "--start", "2026-04-01", "--json"])
        assert result.exit_code == 0, result.output
        return int(json.loads(result.output)["id"])

    def test_create_and_list(self, cli_in_project: tuple[CliRunner, Path]) -> None:
        runner, _ = cli_in_project
        event_id = self._event(runner)
        listed = runner.invoke(cli, ["designathon", "events"])
        assert "planned" in listed.output
        assert "Spring build" in listed.output
        assert runner.invoke(cli, ["designathon", "events", "--status", "active"]).output.strip() == (
            "No designathon events."
        )
        assert f"Event {event_id} is now active" in runner.invoke(
            cli, ["designathon", "event-status", str(event_id), "active"]
        ).output

    def test_create_bad_dates(self, cli_in_project: tuple[CliRunner, Path]) -> None:
        runner, _ = cli_in_project
        result = runner.invoke(
            cli, ["designathon", "create-event", "X", "--start", "2026-04-03", "--end", "2026-04-01"]
        )
        assert result.exit_code == 1
        assert "before start_date" in result.output

    def test_teams(self, cli_in_project: tuple[CliRunner, Path]) -> None:
        runner, project = cli_in_project
        event_id = self._event(runner)
        rid = _create(runner, "Stair climber")
        with StrideDB.from_project(project) as d:
            advance_to(d, rid, "H-DES-1", path="DESIGNATHON")
        added = runner.invoke(
            cli,
            ["designathon", "add-team", str(event_id), "Team A", "--member", "Ravi", "--requirement", rid, "--json"],
        )
        assert added.exit_code == 0, added.output
        team_id = json.loads(added.output)["id"]
        updated = runner.invoke(cli, ["designathon", "update-team", str(team_id), "--score", "91", "--json"])
        assert json.loads(updated.output)["score"] == 91.0
        shown = runner.invoke(cli, ["designathon", "event", str(event_id)])
        assert "Team A" in shown.output
        assert rid in shown.output
        assert "score 91" in shown.output

    def test_team_on_wrong_phase(self, cli_in_project: tuple[CliRunner, Path]) -> None:
        runner, _ = cli_in_project
        event_id = self._event(runner)
        rid = _create(runner, "Grip aid")
        result = runner.invoke(cli, ["designathon", "add-team", str(event_id), "Team A", "--requirement", rid])
        assert result.exit_code == 1
        assert "designathon state" in result.output

    def test_bad_score(self, cli_in_project: tuple[CliRunner, Path]) -> None:
        runner, _ = cli_in_project
        event_id = self._event(runner)
        team = json.loads(runner.invoke(cli, ["designathon", "add-team", str(event_id), "Team A", "--json"]).output)
        result = runner.invoke(cli, ["designathon", "update-team", str(team["id"]), "--score", "150"])
        assert result.exit_code == 1
        assert "between 0 and 100" in result.output

    def test_not_found(self, cli_in_project: tuple[CliRunner, Path]) -> None:
        runner, _ = cli_in_project
        assert runner.invoke(cli, ["designathon", "event", "99"]).exit_code == 1
        assert runner.invoke(cli, ["designathon", "add-team", "99", "Team A"]).exit_code == 1
        assert runner.invoke(cli, ["designathon", "update-team", "99", "--score", "5"]).exit_code == 1


class TestReportCommands:
    def test_aging_empty(self, cli_in_project: tuple[CliRunner, Path]) -> None:
        runner, _ = cli_in_project
        _create(runner, "Grip aid")
        result = runner.invoke(cli, ["aging"])
        assert "No aging requirements." in result.output

    def test_aging_all(self, cli_in_project: tuple[CliRunner, Path]) -> None:
        runner, _ = cli_in_project
        rid = _create(runner, "Grip aid")
        data = json.loads(runner.invoke(cli, ["aging", "--all", "--json"]).output)
        assert [(a["requirement_id"], a["severity"]) for a in data] == [(rid, "ok")]
        text = runner.invoke(cli, ["aging", "--all"]).output
        assert "0 aging" in text

    def test_stats(self, cli_in_project: tuple[CliRunner, Path]) -> None:
        runner, _ = cli_in_project
        _create(runner, "Grip aid", "-p", "P1")
        result = runner.invoke(cli, ["stats"])
        assert "Total:            1" in result.output
        assert "Active P1:        1" in result.output
        data = json.loads(runner.invoke(cli, ["stats", "--json"]).output)
        assert data["by_phase"] == {"SENSING": 1}

    def test_report(self, cli_in_project: tuple[CliRunner, Path]) -> None:
        runner, _ = cli_in_project
        _create(runner, "Grip aid")
        month = datetime.now(UTC).strftime("%Y-%m")
        result = runner.invoke(cli, ["report", month])
        assert result.output.startswith(f"# Monthly Report: {month}")
        data = json.loads(runner.invoke(cli, ["report", month, "--json"]).output)
        assert data["new_this_month"] == 1

    def test_report_bad_month(self, cli_in_project: tuple[CliRunner, Path]) -> None:
        runner, _ = cli_in_project
        result = runner.invoke(cli, ["report", "March"])
        assert result.exit_code == 1
        assert "YYYY-MM" in result.output

    def test_doc(self, cli_in_project: tuple[CliRunner, Path]) -> None:
        runner, project = cli_in_project
        rid = _create(runner, "Grip aid")
        assert runner.invoke(cli, ["doc", rid]).output.startswith("# Grip aid")
        out = project / "grip.md"
        result = runner.invoke(cli, ["doc", rid, "-o", str(out)])
        assert result.exit_code == 0
        assert out.read_text().startswith("# Grip aid")

    def test_doc_not_found(self, cli_in_project: tuple[CliRunner, Path]) -> None:
        runner, _ = cli_in_project
        assert runner.invoke(cli, ["doc", "test-nope"]).exit_code == 1
