"""Bounded validate, fix, re-validate loop over a batch of screens."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, List, Mapping, Optional, Protocol, Sequence

from ..config import RemediationPolicy
from ..logging import get_logger
from ..models import BatchSummary, Decision, ScreenScorecard, Status
from ..scoring.aggregator import ScoreAggregator
from ..scoring.evidence import ScreenEvidence
from ..scoring.summary import BatchSummarizer
from .policy import evaluate_policy


class ControllerState(str, Enum):
    RUNNING = "running"
    ACCEPTED = "accepted"
    EXHAUSTED = "exhausted"
    STOPPED = "stopped"


@dataclass
class ScreenFailure:
    """Dimensions that kept one screen from passing in a cycle."""

    screen_id: str
    overall: Status
    failed: List[str] = field(default_factory=list)
    needs_review: List[str] = field(default_factory=list)

    @classmethod
    def from_scorecard(cls, card: ScreenScorecard) -> "ScreenFailure":
        return cls(
            screen_id=card.screen_id,
            overall=card.overall,
            failed=card.dimensions_with(Status.FAIL),
            needs_review=card.dimensions_with(Status.NEEDS_REVIEW),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "screenId": self.screen_id,
            "overall": self.overall.value,
            "failedDimensions": list(self.failed),
            "needsReviewDimensions": list(self.needs_review),
        }


@dataclass
class FailureReport:
    """What the fix step is handed: every non-passing screen of the cycle."""

    cycle: int
    summary: BatchSummary
    screens: List[ScreenFailure] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "cycle": self.cycle,
            "summary": self.summary.to_dict(),
            "screens": [screen.to_dict() for screen in self.screens],
        }


@dataclass
class CycleRecord:
    cycle: int
    scorecards: List[ScreenScorecard]
    summary: BatchSummary
    decision: Decision

    @property
    def failures(self) -> List[ScreenFailure]:
        return [ScreenFailure.from_scorecard(card) for card in self.scorecards if card.overall is not Status.PASS]

    def failure_report(self) -> FailureReport:
        return FailureReport(cycle=self.cycle, summary=self.summary, screens=self.failures)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "cycle": self.cycle,
            "decision": self.decision.value,
            "summary": self.summary.to_dict(),
            "screens": {card.screen_id: card.overall.value for card in self.scorecards},
        }


@dataclass
class RemediationOutcome:
    """Terminal state of a loop plus the full cycle history."""

    state: ControllerState
    cycles: List[CycleRecord] = field(default_factory=list)
    exceptions_queue: List[ScreenFailure] = field(default_factory=list)

    @property
    def accepted(self) -> bool:
        return self.state is ControllerState.ACCEPTED

    @property
    def final(self) -> Optional[CycleRecord]:
        return self.cycles[-1] if self.cycles else None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "state": self.state.value,
            "cycles": [record.to_dict() for record in self.cycles],
            "exceptionsQueue": [screen.to_dict() for screen in self.exceptions_queue],
        }


class EvidenceSource(Protocol):
    """Produces fresh evidence for the current code state."""

    def collect(self, cycle: int) -> Mapping[str, ScreenEvidence]:
        """Return evidence keyed by screen id for ``cycle``."""


class FixStep(Protocol):
    """External fixer; returning means the fix for this cycle has completed."""

    def apply(self, report: FailureReport) -> None:
        """Block until the fixer has acted on ``report``."""


class RemediationController:
    """Runs cycles until the policy accepts the batch or ``max_cycles`` is reached.

    Each cycle collects evidence, scores every screen, summarises the batch and
    evaluates the policy. A rejected cycle below the cap calls the fix step and
    waits for it before starting the next cycle. At the cap the loop ends in
    EXHAUSTED and every non-passing screen goes to the exceptions queue. When
    the policy is disabled exactly one cycle runs, the fix step is never
    called and a rejected batch ends in STOPPED with its decision reported
    as is.
    """

    def __init__(
        self,
        screen_ids: Sequence[str],
        evidence_source: EvidenceSource,
        *,
        fix_step: FixStep | None = None,
        policy: RemediationPolicy | None = None,
        aggregator: ScoreAggregator | None = None,
        summarizer: BatchSummarizer | None = None,
        on_cycle: Callable[[CycleRecord], None] | None = None,
        workers: int = 4,
    ) -> None:
        self.screen_ids = list(screen_ids)
        self.evidence_source = evidence_source
        self.fix_step = fix_step
        self.policy = policy or RemediationPolicy()
        self.aggregator = aggregator or ScoreAggregator()
        self.summarizer = summarizer or BatchSummarizer()
        self.on_cycle = on_cycle
        self.workers = workers
        self.state = ControllerState.RUNNING
        self.cycle = 1
        self.logger = get_logger("remediation.controller")

    @property
    def max_cycles(self) -> int:
        return self.policy.max_cycles if self.policy.enabled else 1

    def run(self) -> RemediationOutcome:
        history: List[CycleRecord] = []
        self.state = ControllerState.RUNNING
        self.cycle = 1
        while True:
            record = self._run_cycle(self.cycle)
            history.append(record)
            if self.on_cycle is not None:
                self.on_cycle(record)
            if self.state is not ControllerState.RUNNING:
                break
            self._fix(record)
            self.cycle += 1

        queue: List[ScreenFailure] = []
        if self.state is ControllerState.EXHAUSTED:
            queue = history[-1].failures
            self.logger.warning(
                "Max cycles reached; %d screen(s) routed to the exceptions queue", len(queue)
            )
        elif self.state is ControllerState.STOPPED:
            self.logger.info("Remediation loop disabled; stopping after the initial evaluation")
        else:
            self.logger.info("Batch accepted after %d cycle(s)", len(history))
        return RemediationOutcome(state=self.state, cycles=history, exceptions_queue=queue)

    def _run_cycle(self, cycle: int) -> CycleRecord:
        self.logger.info("[Loop %d/%d] scoring %d screen(s)", cycle, self.max_cycles, len(self.screen_ids))
        evidence = self.evidence_source.collect(cycle)
        scorecards = self.aggregator.score_batch(evidence, self.screen_ids, max_workers=self.workers)
        summary = self.summarizer.summarize(scorecards)
        decision = evaluate_policy(summary, self.policy)
        if decision is Decision.ACCEPT:
            self.state = ControllerState.ACCEPTED
        elif not self.policy.enabled:
            self.state = ControllerState.STOPPED
        elif cycle >= self.max_cycles:
            decision = Decision.EXHAUSTED
            self.state = ControllerState.EXHAUSTED
        summary.decision = decision
        return CycleRecord(cycle=cycle, scorecards=scorecards, summary=summary, decision=decision)

    def _fix(self, record: CycleRecord) -> None:
        report = record.failure_report()
        if self.fix_step is None:
            self.logger.info("No fix step configured; re-collecting evidence for cycle %d", record.cycle + 1)
            return
        self.logger.info("Waiting for fix step (%d screen(s) need attention)", len(report.screens))
        self.fix_step.apply(report)


__all__ = [
    "ControllerState",
    "CycleRecord",
    "EvidenceSource",
    "FailureReport",
    "FixStep",
    "RemediationController",
    "RemediationOutcome",
    "ScreenFailure",
]
