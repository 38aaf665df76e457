"""Pipeline orchestration for the manifest, plan, scoring and remediation stages."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Sequence, TextIO, Tuple

from .config import ScreenGateConfig, load_config
from .logging import get_logger
from .manifests.store import ManifestLoadResult, ManifestStore
from .models import BatchSummary, Decision, ExecutionPlan, ScreenManifest, ScreenScorecard
from .plan.builder import ExecutionPlanBuilder
from .plan.validator import ExecutionPlanValidator, PlanValidation, load_plan
from .remediation.controller import (
    CycleRecord,
    EvidenceSource,
    FixStep,
    RemediationController,
    RemediationOutcome,
)
from .remediation.policy import evaluate_policy
from .remediation.steps import CommandFixStep, DirectoryEvidenceSource, PromptFixStep
from .reports import ReportWriter, validation_report
from .results import Err, Violation
from .scoring.aggregator import ScoreAggregator
from .scoring.evidence import EvidenceLoader
from .scoring.summary import BatchSummarizer


class BatchRejectedError(RuntimeError):
    """Raised when manifest errors block every downstream stage."""

    def __init__(self, message: str, report_path: Path) -> None:
        super().__init__(message)
        self.report_path = report_path


class PlanError(RuntimeError):
    """Raised when a stage needs a valid execution plan and does not have one."""

    def __init__(self, message: str, violations: Sequence[Violation]) -> None:
        super().__init__(message)
        self.violations = list(violations)


@dataclass
class ManifestValidationOutcome:
    """Result of validating the manifest batch and, when present, its plan."""

    loaded: ManifestLoadResult
    report_path: Path
    plan_validation: Optional[PlanValidation] = None
    plan_errors: List[Violation] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        plan_ok = self.plan_validation is None or self.plan_validation.valid
        return self.loaded.total_records > 0 and self.loaded.ok and plan_ok and not self.plan_errors


@dataclass
class PlanBuildOutcome:
    """Result of a build-plan run."""

    plan: Optional[ExecutionPlan]
    path: Path
    created: bool = False
    errors: List[Violation] = field(default_factory=list)
    validation: Optional[PlanValidation] = None

    @property
    def ok(self) -> bool:
        if self.errors:
            return False
        return self.validation is None or self.validation.valid


@dataclass
class PlanValidationOutcome:
    report_path: Path
    validation: Optional[PlanValidation] = None
    errors: List[Violation] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors and self.validation is not None and self.validation.valid


@dataclass
class ScoreOutcome:
    scorecards: List[ScreenScorecard]
    summary: BatchSummary
    summary_path: Path

    @property
    def accepted(self) -> bool:
        return self.summary.decision is Decision.ACCEPT


class Orchestrator:
    """Coordinates the batch stages and writes their reports."""

    def __init__(self, config: ScreenGateConfig | None = None) -> None:
        self._config_override = config
        self.validator = ExecutionPlanValidator()
        self.summarizer = BatchSummarizer()
        self.logger = get_logger("orchestrator")

    def run_validate_manifests(self, path: str) -> ManifestValidationOutcome:
        """Validate every manifest and, if one exists, the stored plan."""
        config, writer = self._setup(path)
        loaded = self._load_manifests(config)

        plan_validation: Optional[PlanValidation] = None
        plan_errors: List[Violation] = []
        reason: Optional[str] = None
        if not loaded.ok:
            reason = "manifest errors"
        elif not writer.plan_path.exists():
            reason = "missing file"
        else:
            parsed = load_plan(writer.plan_path, config.schemas.execution_plan)
            if isinstance(parsed, Err):
                plan_errors = list(parsed.error)
                reason = "schema errors"
            else:
                plan_validation = self.validator.validate(parsed.value, loaded.manifests)

        report = validation_report(
            loaded, plan_validation=plan_validation, plan_errors=plan_errors, plan_reason=reason
        )
        report_path = writer.write_validation_report(report)
        self.logger.info("Validation report written to %s", report_path)
        return ManifestValidationOutcome(
            loaded=loaded, report_path=report_path, plan_validation=plan_validation, plan_errors=plan_errors
        )

    def run_build_plan(self, path: str, *, force: bool = False) -> PlanBuildOutcome:
        """Build the execution plan; an existing plan is only re-validated unless ``force``."""
        config, writer = self._setup(path)
        loaded = self._require_manifests(config, writer)

        if writer.plan_path.exists() and not force:
            self.logger.info("Execution plan exists at %s; re-validating instead of rebuilding", writer.plan_path)
            parsed = load_plan(writer.plan_path, config.schemas.execution_plan)
            if isinstance(parsed, Err):
                return PlanBuildOutcome(plan=None, path=writer.plan_path, errors=list(parsed.error))
            validation = self.validator.validate(parsed.value, loaded.manifests)
            writer.write_plan_validation(validation)
            return PlanBuildOutcome(plan=parsed.value, path=writer.plan_path, validation=validation)

        builder = ExecutionPlanBuilder(break_mutual_links=config.planning.break_mutual_links)
        built = builder.build(loaded.manifests)
        if isinstance(built, Err):
            writer.write_validation_report(
                validation_report(loaded, plan_errors=built.error, plan_reason="build failed")
            )
            return PlanBuildOutcome(plan=None, path=writer.plan_path, errors=list(built.error))

        plan_path = writer.write_plan(built.value)
        self.logger.info("Execution plan written to %s", plan_path)
        return PlanBuildOutcome(plan=built.value, path=plan_path, created=True)

    def run_validate_plan(self, path: str) -> PlanValidationOutcome:
        config, writer = self._setup(path)
        loaded = self._require_manifests(config, writer)
        parsed = load_plan(writer.plan_path, config.schemas.execution_plan)
        if isinstance(parsed, Err):
            report_path = writer.write_validation_report(
                validation_report(loaded, plan_errors=parsed.error, plan_reason="unreadable plan")
            )
            return PlanValidationOutcome(report_path=report_path, errors=list(parsed.error))
        validation = self.validator.validate(parsed.value, loaded.manifests)
        report_path = writer.write_plan_validation(validation)
        return PlanValidationOutcome(report_path=report_path, validation=validation)

    def run_score(self, path: str) -> ScoreOutcome:
        """Score the current evidence once and apply the acceptance policy."""
        config, writer = self._setup(path)
        _, plan, manifests = self._require_plan(config, writer)
        evidence = EvidenceLoader(config.paths.evidence).load(manifests)
        scorecards = ScoreAggregator(config.scoring).score_batch(
            evidence, plan.order, max_workers=config.workers
        )
        summary = self.summarizer.summarize(scorecards)
        summary.decision = evaluate_policy(summary, config.remediation)
        writer.write_scorecards(scorecards)
        summary_path = writer.write_summary(summary)
        return ScoreOutcome(scorecards=scorecards, summary=summary, summary_path=summary_path)

    def run_remediate(
        self,
        path: str,
        *,
        fix_command: str | None = None,
        capture_command: str | None = None,
        prompt: bool = True,
        fix_step: FixStep | None = None,
        evidence_source: EvidenceSource | None = None,
        stdin: TextIO | None = None,
    ) -> RemediationOutcome:
        """Drive the remediation loop until the batch is accepted or exhausted."""
        config, writer = self._setup(path)
        _, plan, manifests = self._require_plan(config, writer)

        source = evidence_source or DirectoryEvidenceSource(
            config.paths.evidence,
            manifests,
            capture_command=capture_command or config.commands.capture,
            cwd=config.root,
        )
        step = fix_step or self._resolve_fix_step(config, writer, fix_command, prompt, stdin)

        def record_cycle(record: CycleRecord) -> None:
            writer.write_scorecards(record.scorecards)
            writer.write_summary(record.summary)
            if record.decision is Decision.RETRY:
                writer.write_remediation_request(record.failure_report())

        controller = RemediationController(
            plan.order,
            source,
            fix_step=step,
            policy=config.remediation,
            aggregator=ScoreAggregator(config.scoring),
            summarizer=self.summarizer,
            on_cycle=record_cycle,
            workers=config.workers,
        )
        outcome = controller.run()
        writer.clear_remediation_request()
        writer.write_remediation(outcome, config.remediation.to_dict())
        if outcome.exceptions_queue:
            writer.write_exceptions_queue(outcome)
        return outcome

    def _setup(self, path: str) -> Tuple[ScreenGateConfig, ReportWriter]:
        root = Path(path).expanduser().resolve()
        config = self._config_override or load_config(root)
        self.logger.debug("Using manifests at %s", config.paths.manifests)
        return config, ReportWriter(config.paths.manifests, config.paths.reports)

    def _load_manifests(self, config: ScreenGateConfig) -> ManifestLoadResult:
        store = ManifestStore(schema=config.schemas.manifest)
        return store.load(config.paths.manifests)

    def _require_manifests(self, config: ScreenGateConfig, writer: ReportWriter) -> ManifestLoadResult:
        loaded = self._load_manifests(config)
        if not loaded.total_records:
            raise FileNotFoundError(f"No screen manifests found in {config.paths.manifests}")
        if not loaded.ok:
            report_path = writer.write_validation_report(
                validation_report(loaded, plan_reason="manifest errors")
            )
            raise BatchRejectedError(
                f"Batch rejected: {len(loaded.errors)} manifest error(s); see {report_path}",
                report_path,
            )
        return loaded

    def _require_plan(
        self, config: ScreenGateConfig, writer: ReportWriter
    ) -> Tuple[ManifestLoadResult, ExecutionPlan, List[ScreenManifest]]:
        loaded = self._require_manifests(config, writer)
        parsed = load_plan(writer.plan_path, config.schemas.execution_plan)
        if isinstance(parsed, Err):
            raise PlanError(parsed.error[0].message, parsed.error)
        validation = self.validator.validate(parsed.value, loaded.manifests)
        if not validation.valid:
            writer.write_plan_validation(validation)
            raise PlanError(
                f"Execution plan invalid: {len(validation.errors)} error(s); run validate-plan for details",
                validation.errors,
            )
        by_id = loaded.by_id()
        manifests = [by_id[screen_id] for screen_id in parsed.value.order]
        return loaded, parsed.value, manifests

    def _resolve_fix_step(
        self,
        config: ScreenGateConfig,
        writer: ReportWriter,
        fix_command: str | None,
        prompt: bool,
        stdin: TextIO | None,
    ) -> Optional[FixStep]:
        command = fix_command or config.commands.fix
        if command:
            return CommandFixStep(command, cwd=config.root, request_path=writer.remediation_request_path)
        if prompt:
            return PromptFixStep(stdin=stdin)
        return None


__all__ = [
    "BatchRejectedError",
    "ManifestValidationOutcome",
    "Orchestrator",
    "PlanBuildOutcome",
    "PlanError",
    "PlanValidationOutcome",
    "ScoreOutcome",
]
