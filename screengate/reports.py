"""JSON report files written alongside a batch."""

from __future__ import annotations

import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

from .manifests.store import ManifestLoadResult
from .models import BatchSummary, ExecutionPlan, ScreenScorecard
from .plan.validator import PlanValidation
from .remediation.controller import FailureReport, RemediationOutcome
from .results import Violation

PLAN_FILENAME = "_execution-plan.json"
VALIDATION_REPORT_FILENAME = "_manifest-validation-report.json"
PLAN_VALIDATION_FILENAME = "_execution-plan.validation.json"
SUMMARY_FILENAME = "_summary.json"
REMEDIATION_FILENAME = "_remediation.json"
REMEDIATION_REQUEST_FILENAME = "_remediation-request.json"
EXCEPTIONS_QUEUE_FILENAME = "_exceptions-queue.json"
SCORECARD_DIRNAME = "scorecards"

# Plan-level issues are attributed to the plan file rather than to a screen.
PLAN_ISSUE_ID = "_execution-plan"


def utc_timestamp() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


def write_json(path: Path, data: Any) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(data, indent=2, sort_keys=True) + "\n", encoding="utf-8")
    return path


def plan_issue(violation: Violation) -> Dict[str, Any]:
    data: Dict[str, Any] = {
        "screenId": PLAN_ISSUE_ID,
        "severity": "error",
        "message": violation.message,
        "kind": violation.kind.value,
        "code": violation.code,
    }
    if violation.cycle:
        data["cycle"] = list(violation.cycle)
    return data


def validation_report(
    loaded: ManifestLoadResult,
    *,
    plan_validation: Optional[PlanValidation] = None,
    plan_errors: Sequence[Violation] = (),
    plan_reason: Optional[str] = None,
    generated_at: Optional[str] = None,
) -> Dict[str, Any]:
    """Assemble the manifest validation report.

    ``plan_errors`` covers problems found before the plan could be checked
    (missing file, schema errors); ``plan_reason`` explains a skipped check.
    """
    issues: List[Dict[str, Any]] = [issue.to_dict() for issue in loaded.issues]
    issues.extend(plan_issue(error) for error in plan_errors)

    if plan_validation is not None:
        issues.extend(plan_issue(error) for error in plan_validation.errors)
        plan_section: Dict[str, Any] = {
            "valid": plan_validation.valid,
            "expectedOrder": list(plan_validation.expected_order),
            "actualOrder": list(plan_validation.actual_order),
        }
    else:
        plan_section = {"valid": False, "expectedOrder": [], "actualOrder": []}
        if plan_reason:
            plan_section["reason"] = plan_reason

    return {
        "generatedAt": generated_at or utc_timestamp(),
        "totalScreens": loaded.total_records,
        "totalIssues": len(issues),
        "totalErrors": sum(1 for issue in issues if issue["severity"] == "error"),
        "executionPlan": plan_section,
        "issues": issues,
    }


class ReportWriter:
    """Writes plan, validation, scoring and remediation reports for one batch."""

    def __init__(self, manifests_dir: Path, reports_dir: Path) -> None:
        self.manifests_dir = Path(manifests_dir)
        self.reports_dir = Path(reports_dir)

    @property
    def plan_path(self) -> Path:
        return self.manifests_dir / PLAN_FILENAME

    @property
    def remediation_request_path(self) -> Path:
        return self.reports_dir / REMEDIATION_REQUEST_FILENAME

    def write_plan(self, plan: ExecutionPlan) -> Path:
        # Plan text must stay byte-stable, so it keeps its own key order.
        self.plan_path.parent.mkdir(parents=True, exist_ok=True)
        self.plan_path.write_text(plan.to_json(), encoding="utf-8")
        return self.plan_path

    def write_validation_report(self, report: Dict[str, Any]) -> Path:
        return write_json(self.manifests_dir / VALIDATION_REPORT_FILENAME, report)

    def write_plan_validation(self, validation: PlanValidation) -> Path:
        data = validation.to_dict()
        data["generatedAt"] = utc_timestamp()
        return write_json(self.manifests_dir / PLAN_VALIDATION_FILENAME, data)

    def write_scorecards(self, scorecards: Sequence[ScreenScorecard]) -> List[Path]:
        directory = self.reports_dir / SCORECARD_DIRNAME
        return [write_json(directory / f"{card.screen_id}.json", card.to_dict()) for card in scorecards]

    def write_summary(self, summary: BatchSummary) -> Path:
        data = summary.to_dict()
        data["generatedAt"] = utc_timestamp()
        return write_json(self.reports_dir / SUMMARY_FILENAME, data)

    def write_remediation_request(self, report: FailureReport) -> Path:
        data = report.to_dict()
        data["generatedAt"] = utc_timestamp()
        return write_json(self.remediation_request_path, data)

    def clear_remediation_request(self) -> None:
        """Drop the pending fix request once the loop has nothing left to ask for."""
        self.remediation_request_path.unlink(missing_ok=True)

    def write_remediation(self, outcome: RemediationOutcome, policy: Dict[str, Any]) -> Path:
        data = outcome.to_dict()
        data["policy"] = policy
        data["generatedAt"] = utc_timestamp()
        return write_json(self.reports_dir / REMEDIATION_FILENAME, data)

    def write_exceptions_queue(self, outcome: RemediationOutcome) -> Path:
        data = {
            "generatedAt": utc_timestamp(),
            "screens": [screen.to_dict() for screen in outcome.exceptions_queue],
        }
        return write_json(self.reports_dir / EXCEPTIONS_QUEUE_FILENAME, data)


__all__ = [
    "EXCEPTIONS_QUEUE_FILENAME",
    "PLAN_FILENAME",
    "PLAN_ISSUE_ID",
    "PLAN_VALIDATION_FILENAME",
    "REMEDIATION_FILENAME",
    "REMEDIATION_REQUEST_FILENAME",
    "ReportWriter",
    "SCORECARD_DIRNAME",
    "SUMMARY_FILENAME",
    "VALIDATION_REPORT_FILENAME",
    "plan_issue",
    "utc_timestamp",
    "validation_report",
    "write_json",
]
