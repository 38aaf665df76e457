"""Per-screen scorecard computation from verification evidence."""

from __future__ import annotations

import math
from concurrent.futures import ThreadPoolExecutor
from typing import Dict, List, Mapping, Optional, Sequence

from ..config import ScoringThresholds
from ..logging import get_logger
from ..models import DimensionResult, ScreenScorecard, Status, worst_status
from .evidence import (
    AccessibilityEvidence,
    FunctionalEvidence,
    PerformanceEvidence,
    ScreenEvidence,
    StateCoverageEvidence,
    StructuralEvidence,
    VisualEvidence,
)


class ScoreAggregator:
    """Turns raw evidence into one status per dimension plus an overall status.

    Absent evidence always yields NEEDS_REVIEW for that dimension. The overall
    status is the most severe dimension status, so a single FAIL fails the
    screen.
    """

    def __init__(self, thresholds: ScoringThresholds | None = None) -> None:
        self.thresholds = thresholds or ScoringThresholds()
        self.logger = get_logger("scoring.aggregator")

    def score(self, screen_id: str, evidence: Optional[ScreenEvidence]) -> ScreenScorecard:
        evidence = evidence or ScreenEvidence()
        dimensions: Dict[str, DimensionResult] = {
            "visualFidelity": self.visual_fidelity(evidence.visual),
            "structuralParity": self.structural_parity(evidence.structural),
            "functionalParity": self.functional_parity(evidence.functional),
            "uiStateCoverage": self.ui_state_coverage(evidence.states, evidence.declared_states),
            "accessibilityBaseline": self.accessibility_baseline(evidence.accessibility),
            "performanceGuardrail": self.performance_guardrail(evidence.performance),
        }
        overall = worst_status([result.status for result in dimensions.values()])
        self.logger.debug("Scored %s: %s", screen_id, overall.value)
        return ScreenScorecard(screen_id=screen_id, dimensions=dimensions, overall=overall)

    def score_batch(
        self,
        evidence: Mapping[str, Optional[ScreenEvidence]],
        screen_ids: Sequence[str],
        *,
        max_workers: int = 4,
    ) -> List[ScreenScorecard]:
        """Score screens concurrently; results follow ``screen_ids`` order."""
        if not screen_ids:
            return []
        with ThreadPoolExecutor(max_workers=max(1, max_workers)) as pool:
            return list(pool.map(lambda screen_id: self.score(screen_id, evidence.get(screen_id)), screen_ids))

    def visual_fidelity(self, evidence: Optional[VisualEvidence]) -> DimensionResult:
        if evidence is None or evidence.compared_pairs == 0:
            return DimensionResult(Status.NEEDS_REVIEW, {"maxDiffPercent": None})
        diff = None if _unusable(evidence.max_diff_percent) else evidence.max_diff_percent
        measurement = {
            "maxDiffPercent": diff,
            "comparedPairs": evidence.compared_pairs,
            "missingPairs": evidence.missing_pairs,
        }
        if evidence.dimension_mismatch:
            measurement["dimensionMismatch"] = True
            return DimensionResult(Status.FAIL, measurement)
        if diff is None:
            return DimensionResult(Status.NEEDS_REVIEW, measurement)
        if diff > self.thresholds.visual_fail_above:
            status = Status.FAIL
        elif diff >= self.thresholds.visual_pass_below:
            status = Status.NEEDS_REVIEW
        else:
            # A clean diff over an incomplete set of captures is still inconclusive.
            status = Status.NEEDS_REVIEW if evidence.missing_pairs > 0 else Status.PASS
        return DimensionResult(status, measurement)

    def structural_parity(self, evidence: Optional[StructuralEvidence]) -> DimensionResult:
        if evidence is None:
            return DimensionResult(Status.NEEDS_REVIEW, {"criticalDeltas": None})
        status = Status.PASS if evidence.critical_deltas == 0 else Status.FAIL
        return DimensionResult(status, {"criticalDeltas": evidence.critical_deltas, "captures": evidence.captures})

    def functional_parity(self, evidence: Optional[FunctionalEvidence]) -> DimensionResult:
        if evidence is None or evidence.total == 0:
            passed = evidence.passed if evidence else 0
            return DimensionResult(Status.NEEDS_REVIEW, {"e2ePassed": passed, "e2eFailed": 0})
        status = Status.FAIL if evidence.failed > 0 else Status.PASS
        return DimensionResult(status, {"e2ePassed": evidence.passed, "e2eFailed": evidence.failed})

    def ui_state_coverage(self, evidence: Optional[StateCoverageEvidence], declared: int) -> DimensionResult:
        if declared == 0:
            captured = evidence.captured if evidence else 0
            return DimensionResult(Status.PASS, {"statesCovered": captured, "statesTotal": 0})
        if evidence is None:
            return DimensionResult(Status.NEEDS_REVIEW, {"statesCovered": None, "statesTotal": declared})
        status = Status.PASS if evidence.captured >= declared else Status.FAIL
        return DimensionResult(status, {"statesCovered": evidence.captured, "statesTotal": declared})

    def accessibility_baseline(self, evidence: Optional[AccessibilityEvidence]) -> DimensionResult:
        if evidence is None:
            return DimensionResult(Status.NEEDS_REVIEW, {"criticalViolations": None})
        status = Status.PASS if evidence.critical_violations == 0 else Status.FAIL
        return DimensionResult(status, {"criticalViolations": evidence.critical_violations})

    def performance_guardrail(self, evidence: Optional[PerformanceEvidence]) -> DimensionResult:
        if evidence is None:
            return DimensionResult(Status.NEEDS_REVIEW, {"loadTimeMs": None, "maxBundleKb": None})
        load_time = None if _unusable(evidence.load_time_ms) else evidence.load_time_ms
        bundle = None if _unusable(evidence.max_bundle_kb) else evidence.max_bundle_kb
        measurement = {"loadTimeMs": load_time, "maxBundleKb": bundle}
        over_budget = (load_time is not None and load_time > self.thresholds.max_load_time_ms) or (
            bundle is not None and bundle > self.thresholds.max_bundle_kb
        )
        if over_budget:
            return DimensionResult(Status.FAIL, measurement)
        if load_time is None or bundle is None:
            return DimensionResult(Status.NEEDS_REVIEW, measurement)
        return DimensionResult(Status.PASS, measurement)


def _unusable(value: Optional[float]) -> bool:
    return value is None or not math.isfinite(value) or value < 0


__all__ = ["ScoreAggregator"]
