"""Tests for screengate.orchestrator."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from screengate.orchestrator import BatchRejectedError, Orchestrator, PlanError
from tests._fixtures.batch_builder import BatchBuilder, clean_evidence


def _standard_batch(builder: BatchBuilder) -> None:
    builder.add_screen("home", "/")
    builder.add_screen("posts", "/posts", "medium", navigates_to=["/"])
    builder.add_screen("editor", "/posts/{id}/edit", "high", navigates_to=["/posts"])


def test_validate_manifests_writes_report_without_plan(batch_builder: BatchBuilder) -> None:
    _standard_batch(batch_builder)

    outcome = Orchestrator().run_validate_manifests(str(batch_builder.path()))

    report = batch_builder.read_json(outcome.report_path)
    assert outcome.ok
    assert report["totalScreens"] == 3
    assert report["totalErrors"] == 0
    assert report["executionPlan"] == {
        "valid": False,
        "expectedOrder": [],
        "actualOrder": [],
        "reason": "missing file",
    }


def test_validate_manifests_includes_plan_check_once_built(batch_builder: BatchBuilder) -> None:
    _standard_batch(batch_builder)
    orchestrator = Orchestrator()
    orchestrator.run_build_plan(str(batch_builder.path()))

    outcome = orchestrator.run_validate_manifests(str(batch_builder.path()))

    report = batch_builder.read_json(outcome.report_path)
    assert outcome.ok
    assert report["executionPlan"]["valid"] is True
    assert report["executionPlan"]["actualOrder"] == ["home", "posts", "editor"]


def test_validate_manifests_reports_blocking_errors(batch_builder: BatchBuilder) -> None:
    batch_builder.add_screen("home", "/", components={})
    batch_builder.add_screen("posts", "/posts", states=())

    outcome = Orchestrator().run_validate_manifests(str(batch_builder.path()))

    report = batch_builder.read_json(outcome.report_path)
    assert not outcome.ok
    assert report["totalIssues"] == 2
    assert report["totalErrors"] == 1
    assert {issue["screenId"] for issue in report["issues"]} == {"home", "posts"}
    assert report["executionPlan"]["reason"] == "manifest errors"


def test_build_plan_fails_closed_on_manifest_errors(batch_builder: BatchBuilder) -> None:
    batch_builder.add_screen("home", "/", components={})
    batch_builder.add_screen("posts", "/posts")

    with pytest.raises(BatchRejectedError) as excinfo:
        Orchestrator().run_build_plan(str(batch_builder.path()))

    assert excinfo.value.report_path.exists()
    assert not (batch_builder.manifests_dir / "_execution-plan.json").exists()


def test_build_plan_never_overwrites_existing_plan(batch_builder: BatchBuilder) -> None:
    _standard_batch(batch_builder)
    orchestrator = Orchestrator()
    first = orchestrator.run_build_plan(str(batch_builder.path()))
    plan_path = first.path
    tampered = json.loads(plan_path.read_text(encoding="utf-8"))
    tampered["screens"].reverse()
    plan_path.write_text(json.dumps(tampered), encoding="utf-8")

    second = orchestrator.run_build_plan(str(batch_builder.path()))

    assert first.created and not second.created
    assert not second.ok
    assert second.validation is not None
    assert "order_mismatch" in second.validation.codes()
    assert json.loads(plan_path.read_text(encoding="utf-8")) == tampered

    forced = orchestrator.run_build_plan(str(batch_builder.path()), force=True)
    assert forced.created and forced.ok


def test_build_plan_is_byte_stable(batch_builder: BatchBuilder) -> None:
    _standard_batch(batch_builder)
    orchestrator = Orchestrator()

    first = orchestrator.run_build_plan(str(batch_builder.path())).path.read_bytes()
    second = orchestrator.run_build_plan(str(batch_builder.path()), force=True).path.read_bytes()

    assert first == second


def test_build_plan_reports_cycle_in_validation_report(batch_builder: BatchBuilder) -> None:
    batch_builder.add_screen("a", "/a", navigates_to=["/b"])
    batch_builder.add_screen("b", "/b", navigates_to=["/a"])

    outcome = Orchestrator().run_build_plan(str(batch_builder.path()))

    assert not outcome.ok
    assert outcome.errors[0].cycle == ("a", "b", "a")
    report = batch_builder.read_json(batch_builder.manifests_dir / "_manifest-validation-report.json")
    assert report["issues"][0]["screenId"] == "_execution-plan"
    assert report["issues"][0]["cycle"] == ["a", "b", "a"]


def test_validate_plan_detects_drift_after_manifest_change(batch_builder: BatchBuilder) -> None:
    _standard_batch(batch_builder)
    orchestrator = Orchestrator()
    orchestrator.run_build_plan(str(batch_builder.path()))
    batch_builder.add_screen("settings", "/settings")

    outcome = orchestrator.run_validate_plan(str(batch_builder.path()))

    assert not outcome.ok
    assert outcome.validation is not None
    assert "missing_screen" in outcome.validation.codes()
    written = batch_builder.read_json(outcome.report_path)
    assert written["valid"] is False


def test_score_requires_valid_plan(batch_builder: BatchBuilder) -> None:
    _standard_batch(batch_builder)

    with pytest.raises(PlanError):
        Orchestrator().run_score(str(batch_builder.path()))


def test_score_writes_scorecards_and_summary(batch_builder: BatchBuilder) -> None:
    _standard_batch(batch_builder)
    tables = clean_evidence(["home", "posts", "editor"])
    tables["structural.json"]["editor"] = {"1920-default": [{"severity": "critical"}]}
    batch_builder.write_evidence(tables)
    orchestrator = Orchestrator()
    orchestrator.run_build_plan(str(batch_builder.path()))

    outcome = orchestrator.run_score(str(batch_builder.path()))

    assert [card.screen_id for card in outcome.scorecards] == ["home", "posts", "editor"]
    summary = batch_builder.read_json(outcome.summary_path)
    assert summary["total"] == 3
    assert summary["pass"] == 2
    assert summary["fail"] == 1
    assert summary["criticalFailures"] == 1
    assert summary["decision"] == "retry"
    editor = batch_builder.read_json(batch_builder.reports_dir / "scorecards" / "editor.json")
    assert editor["dimensions"]["structuralParity"] == {"status": "FAIL", "criticalDeltas": 1, "captures": 1}


def test_remediate_exhausts_and_writes_exceptions_queue(batch_builder: BatchBuilder) -> None:
    batch_builder.write_config("remediation:\n  maxCycles: 2\n")
    _standard_batch(batch_builder)
    tables = clean_evidence(["home", "posts"])
    batch_builder.write_evidence(tables)
    orchestrator = Orchestrator()
    orchestrator.run_build_plan(str(batch_builder.path()))

    outcome = orchestrator.run_remediate(str(batch_builder.path()), prompt=False)

    assert outcome.state.value == "exhausted"
    assert len(outcome.cycles) == 2
    queue = batch_builder.read_json(batch_builder.reports_dir / "_exceptions-queue.json")
    assert [screen["screenId"] for screen in queue["screens"]] == ["editor"]
    history = batch_builder.read_json(batch_builder.reports_dir / "_remediation.json")
    assert history["state"] == "exhausted"
    assert history["policy"]["maxCycles"] == 2
    assert [record["decision"] for record in history["cycles"]] == ["retry", "exhausted"]
    assert not (batch_builder.reports_dir / "_remediation-request.json").exists()


def test_remediate_accepts_after_fix_step(batch_builder: BatchBuilder) -> None:
    _standard_batch(batch_builder)
    batch_builder.write_evidence(clean_evidence(["home", "posts"]))
    orchestrator = Orchestrator()
    orchestrator.run_build_plan(str(batch_builder.path()))

    class _Fixer:
        def __init__(self) -> None:
            self.cycles: list[int] = []

        def apply(self, report) -> None:  # type: ignore[no-untyped-def]
            self.cycles.append(report.cycle)
            batch_builder.write_evidence(clean_evidence(["home", "posts", "editor"]))

    fixer = _Fixer()
    outcome = orchestrator.run_remediate(str(batch_builder.path()), fix_step=fixer)

    assert outcome.accepted
    assert fixer.cycles == [1]
    assert not (batch_builder.reports_dir / "_exceptions-queue.json").exists()
    assert not (batch_builder.reports_dir / "_remediation-request.json").exists()
    summary = batch_builder.read_json(batch_builder.reports_dir / "_summary.json")
    assert summary["decision"] == "accept"


def test_remediate_with_loop_disabled_stops_after_one_evaluation(batch_builder: BatchBuilder) -> None:
    batch_builder.write_config("remediation:\n  enabled: false\n")
    _standard_batch(batch_builder)
    batch_builder.write_evidence(clean_evidence(["home", "posts"]))
    orchestrator = Orchestrator()
    orchestrator.run_build_plan(str(batch_builder.path()))

    outcome = orchestrator.run_remediate(str(batch_builder.path()), prompt=False)

    assert outcome.state.value == "stopped"
    assert len(outcome.cycles) == 1
    assert not (batch_builder.reports_dir / "_exceptions-queue.json").exists()
    summary = batch_builder.read_json(batch_builder.reports_dir / "_summary.json")
    assert summary["decision"] == "retry"


def test_missing_manifest_directory_raises(tmp_path: Path) -> None:
    with pytest.raises(FileNotFoundError):
        Orchestrator().run_build_plan(str(tmp_path))
