"""Tests for screengate.models."""

from __future__ import annotations

import pytest

from screengate.models import ScreenScorecard, Status


def test_scorecard_from_dict_reads_status_and_measurement() -> None:
    card = ScreenScorecard.from_dict(
        {
            "screenId": "home",
            "overall": "FAIL",
            "dimensions": {"structuralParity": {"status": "FAIL", "criticalDeltas": 2}},
        }
    )

    assert card.overall is Status.FAIL
    assert card.dimensions["structuralParity"].measurement == {"criticalDeltas": 2}
    assert card.is_critical_failure


def test_scorecard_from_dict_names_the_missing_field() -> None:
    with pytest.raises(ValueError, match="overall"):
        ScreenScorecard.from_dict({"screenId": "home", "dimensions": {}})

    with pytest.raises(ValueError, match="visualFidelity"):
        ScreenScorecard.from_dict({"screenId": "home", "overall": "PASS", "dimensions": {"visualFidelity": {}}})
