"""Tests for JSON report writing."""

from __future__ import annotations

import json
from pathlib import Path

from screengate.manifests import ManifestStore
from screengate.models import ExecutionPlan, ExecutionPlanEntry
from screengate.plan import ExecutionPlanValidator
from screengate.reports import ReportWriter, validation_report, write_json
from tests._fixtures.batch_builder import manifest_record


def test_validation_report_shape() -> None:
    loaded = ManifestStore().load([manifest_record("a", "/a"), manifest_record("b", "/b", states=())])
    plan = ExecutionPlan(
        entries=(
            ExecutionPlanEntry(screen_id="b", route="/b", complexity="low", phase="standard"),
            ExecutionPlanEntry(screen_id="a", route="/a", complexity="low", phase="standard"),
        )
    )
    validation = ExecutionPlanValidator().validate(plan, loaded.manifests)

    report = validation_report(loaded, plan_validation=validation, generated_at="2024-01-01T00:00:00Z")

    assert report["generatedAt"] == "2024-01-01T00:00:00Z"
    assert report["totalScreens"] == 2
    assert report["totalIssues"] == 2
    assert report["totalErrors"] == 1
    assert report["executionPlan"] == {"valid": False, "expectedOrder": ["a", "b"], "actualOrder": ["b", "a"]}
    assert report["issues"][0] == {
        "screenId": "b",
        "severity": "warn",
        "message": "No uiStates defined",
        "kind": "semantic",
    }
    assert report["issues"][1]["screenId"] == "_execution-plan"
    assert report["issues"][1]["code"] == "order_mismatch"


def test_write_json_is_sorted_and_newline_terminated(tmp_path: Path) -> None:
    path = write_json(tmp_path / "nested" / "out.json", {"b": 1, "a": 2})

    text = path.read_text(encoding="utf-8")
    assert text.endswith("\n")
    assert text.index('"a"') < text.index('"b"')


def test_plan_file_keeps_field_order(tmp_path: Path) -> None:
    writer = ReportWriter(tmp_path / "manifests", tmp_path / "reports")
    plan = ExecutionPlan(entries=(ExecutionPlanEntry(screen_id="a", route="/a", complexity="low", phase="standard"),))

    path = writer.write_plan(plan)

    data = json.loads(path.read_text(encoding="utf-8"))
    assert list(data) == ["planVersion", "orderingRules", "screens"]
    assert list(data["screens"][0]) == ["screenId", "route", "complexity", "phase", "priority", "dependencies"]
