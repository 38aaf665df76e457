"""Tests for per-screen scorecard computation."""

from __future__ import annotations

import pytest

from screengate.config import ScoringThresholds
from screengate.models import Status
from screengate.scoring import ScoreAggregator, ScreenEvidence
from screengate.scoring.evidence import (
    AccessibilityEvidence,
    FunctionalEvidence,
    PerformanceEvidence,
    StateCoverageEvidence,
    StructuralEvidence,
    VisualEvidence,
)


def _clean(**overrides: object) -> ScreenEvidence:
    values = {
        "visual": VisualEvidence(max_diff_percent=1.5),
        "structural": StructuralEvidence(critical_deltas=0),
        "functional": FunctionalEvidence(passed=4, failed=0),
        "states": StateCoverageEvidence(captured=2),
        "accessibility": AccessibilityEvidence(critical_violations=0),
        "performance": PerformanceEvidence(load_time_ms=1200, max_bundle_kb=80),
        "declared_states": 2,
    }
    values.update(overrides)
    return ScreenEvidence(**values)  # type: ignore[arg-type]


def test_clean_screen_passes_every_dimension() -> None:
    card = ScoreAggregator().score("home", _clean())

    assert card.overall is Status.PASS
    assert card.dimensions_with(Status.PASS) == [
        "visualFidelity",
        "structuralParity",
        "functionalParity",
        "uiStateCoverage",
        "accessibilityBaseline",
        "performanceGuardrail",
    ]
    assert card.dimensions["performanceGuardrail"].measurement == {"loadTimeMs": 1200, "maxBundleKb": 80}


def test_single_structural_delta_fails_screen() -> None:
    card = ScoreAggregator().score("home", _clean(visual=VisualEvidence(0.5), structural=StructuralEvidence(1)))

    assert card.overall is Status.FAIL
    assert card.dimensions_with(Status.FAIL) == ["structuralParity"]
    assert card.is_critical_failure


def test_visual_only_failure_is_not_critical() -> None:
    card = ScoreAggregator().score("home", _clean(visual=VisualEvidence(15.0)))

    assert card.overall is Status.FAIL
    assert card.dimensions_with(Status.FAIL) == ["visualFidelity"]
    assert not card.is_critical_failure


@pytest.mark.parametrize(
    ("diff", "expected"),
    [
        (0.0, Status.PASS),
        (1.99, Status.PASS),
        (2.0, Status.NEEDS_REVIEW),
        (10.0, Status.NEEDS_REVIEW),
        (10.01, Status.FAIL),
    ],
)
def test_visual_thresholds(diff: float, expected: Status) -> None:
    assert ScoreAggregator().visual_fidelity(VisualEvidence(diff)).status is expected


def test_visual_dimension_mismatch_fails_outright() -> None:
    result = ScoreAggregator().visual_fidelity(VisualEvidence(0.1, dimension_mismatch=True))

    assert result.status is Status.FAIL
    assert result.measurement["dimensionMismatch"] is True


def test_visual_missing_pairs_degrade_pass_to_review() -> None:
    result = ScoreAggregator().visual_fidelity(VisualEvidence(0.1, compared_pairs=3, missing_pairs=1))

    assert result.status is Status.NEEDS_REVIEW


def test_visual_with_nothing_compared_is_absent() -> None:
    assert ScoreAggregator().visual_fidelity(VisualEvidence(0.0, compared_pairs=0)).status is Status.NEEDS_REVIEW


def test_absent_evidence_is_needs_review_not_pass_or_fail() -> None:
    card = ScoreAggregator().score("home", ScreenEvidence(declared_states=1))

    assert card.overall is Status.NEEDS_REVIEW
    assert card.dimensions_with(Status.NEEDS_REVIEW) == [
        "visualFidelity",
        "structuralParity",
        "functionalParity",
        "uiStateCoverage",
        "accessibilityBaseline",
        "performanceGuardrail",
    ]


def test_missing_evidence_object_scores_as_absent() -> None:
    assert ScoreAggregator().score("home", None).overall is Status.NEEDS_REVIEW


def test_functional_requires_at_least_one_check() -> None:
    aggregator = ScoreAggregator()

    assert aggregator.functional_parity(FunctionalEvidence(0, 0)).status is Status.NEEDS_REVIEW
    assert aggregator.functional_parity(FunctionalEvidence(3, 1)).status is Status.FAIL
    assert aggregator.functional_parity(FunctionalEvidence(1, 0)).status is Status.PASS


def test_state_coverage_rules() -> None:
    aggregator = ScoreAggregator()

    assert aggregator.ui_state_coverage(None, 0).status is Status.PASS
    assert aggregator.ui_state_coverage(None, 2).status is Status.NEEDS_REVIEW
    assert aggregator.ui_state_coverage(StateCoverageEvidence(1), 2).status is Status.FAIL
    assert aggregator.ui_state_coverage(StateCoverageEvidence(3), 2).status is Status.PASS


def test_accessibility_rules() -> None:
    aggregator = ScoreAggregator()

    assert aggregator.accessibility_baseline(None).status is Status.NEEDS_REVIEW
    assert aggregator.accessibility_baseline(AccessibilityEvidence(0)).status is Status.PASS
    assert aggregator.accessibility_baseline(AccessibilityEvidence(2)).status is Status.FAIL


@pytest.mark.parametrize(
    ("load", "bundle", "expected"),
    [
        (3000, 250, Status.PASS),
        (3001, 100, Status.FAIL),
        (1000, 251, Status.FAIL),
        (None, 100, Status.NEEDS_REVIEW),
        (9000, None, Status.FAIL),
    ],
)
def test_performance_rules(load: float | None, bundle: float | None, expected: Status) -> None:
    result = ScoreAggregator().performance_guardrail(PerformanceEvidence(load, bundle))

    assert result.status is expected


def test_custom_thresholds_apply() -> None:
    aggregator = ScoreAggregator(ScoringThresholds(visual_pass_below=0.5, max_load_time_ms=1000))

    assert aggregator.visual_fidelity(VisualEvidence(1.0)).status is Status.NEEDS_REVIEW
    assert aggregator.performance_guardrail(PerformanceEvidence(1200, 80)).status is Status.FAIL


def test_score_batch_preserves_requested_order() -> None:
    evidence = {"b": _clean(), "a": _clean(structural=StructuralEvidence(2))}

    cards = ScoreAggregator().score_batch(evidence, ["b", "a", "c"], max_workers=3)

    assert [card.screen_id for card in cards] == ["b", "a", "c"]
    assert [card.overall for card in cards] == [Status.PASS, Status.FAIL, Status.NEEDS_REVIEW]


def test_scorecard_dict_carries_status_and_measurement() -> None:
    data = ScoreAggregator().score("home", _clean()).to_dict()

    assert data["screenId"] == "home"
    assert data["overall"] == "PASS"
    assert data["dimensions"]["visualFidelity"]["status"] == "PASS"
    assert data["dimensions"]["visualFidelity"]["maxDiffPercent"] == 1.5
    assert data["dimensions"]["functionalParity"] == {"status": "PASS", "e2ePassed": 4, "e2eFailed": 0}


@pytest.mark.parametrize("diff", [float("nan"), float("inf"), -1.0])
def test_unusable_visual_diff_is_never_pass(diff: float) -> None:
    result = ScoreAggregator().visual_fidelity(VisualEvidence(diff, compared_pairs=2))

    assert result.status is Status.NEEDS_REVIEW
    assert result.measurement["maxDiffPercent"] is None


@pytest.mark.parametrize(
    ("load", "bundle", "expected"),
    [
        (float("nan"), float("nan"), Status.NEEDS_REVIEW),
        (float("nan"), 100, Status.NEEDS_REVIEW),
        (1000, float("inf"), Status.NEEDS_REVIEW),
        (-5, 100, Status.NEEDS_REVIEW),
        (float("nan"), 900, Status.FAIL),
    ],
)
def test_unusable_performance_values_are_treated_as_missing(
    load: float, bundle: float, expected: Status
) -> None:
    assert ScoreAggregator().performance_guardrail(PerformanceEvidence(load, bundle)).status is expected
