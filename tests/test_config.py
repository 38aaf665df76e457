"""Tests for screengate.config."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from screengate.config import (
    ConfigError,
    RemediationPolicy,
    ScoringThresholds,
    ScreenGateConfig,
    load_config,
    parse_policy,
)


def test_load_config_returns_defaults_when_missing(tmp_path: Path) -> None:
    config = load_config(tmp_path)

    assert isinstance(config, ScreenGateConfig)
    assert config.root == tmp_path.resolve()
    assert config.paths.manifests == tmp_path.resolve() / "artifacts" / "manifests"
    assert config.paths.evidence == tmp_path.resolve() / "artifacts" / "validation"
    assert config.paths.reports == tmp_path.resolve() / "artifacts" / "reports"
    assert config.schemas.manifest is None
    assert config.planning.break_mutual_links is False
    assert config.scoring == ScoringThresholds()
    assert config.remediation == RemediationPolicy()
    assert config.commands.capture is None
    assert config.workers == 4


def test_load_config_parses_expected_fields(tmp_path: Path) -> None:
    schema_path = tmp_path / "schemas" / "screen.json"
    schema_path.parent.mkdir()
    schema_path.write_text(json.dumps({"type": "object", "required": ["screenId"]}), encoding="utf-8")
    config_file = tmp_path / ".screengate.yml"
    config_file.write_text(
        """
paths:
  manifests: out/manifests
  evidence: out/evidence
  reports: out/reports
schemas:
  manifest: schemas/screen.json
planning:
  break_mutual_links: true
scoring:
  visual_pass_below: 1.5
  maxLoadTimeMs: 2500
remediation:
  maxCycles: 5
  minPassRate: 0.9
  max_needs_review_rate: 0.05
  strictPassRequired: true
commands:
  capture: npm run capture
  fix: ./fix.sh
workers: 8
""",
        encoding="utf-8",
    )

    config = load_config(config_file)

    assert config.paths.manifests == tmp_path.resolve() / "out" / "manifests"
    assert config.paths.evidence == tmp_path.resolve() / "out" / "evidence"
    assert config.schemas.manifest == {"type": "object", "required": ["screenId"]}
    assert config.planning.break_mutual_links is True
    assert config.scoring.visual_pass_below == pytest.approx(1.5)
    assert config.scoring.visual_fail_above == pytest.approx(10.0)
    assert config.scoring.max_load_time_ms == pytest.approx(2500.0)
    assert config.remediation.max_cycles == 5
    assert config.remediation.min_pass_rate == pytest.approx(0.9)
    assert config.remediation.max_needs_review_rate == pytest.approx(0.05)
    assert config.remediation.strict_pass_required is True
    assert config.remediation.require_zero_critical_failures is True
    assert config.commands.capture == "npm run capture"
    assert config.commands.fix == "./fix.sh"
    assert config.workers == 8


def test_remediation_loop_alias_is_accepted(tmp_path: Path) -> None:
    (tmp_path / ".screengate.yml").write_text("remediationLoop:\n  enabled: false\n", encoding="utf-8")

    config = load_config(tmp_path)

    assert config.remediation.enabled is False


def test_missing_schema_file_is_config_error(tmp_path: Path) -> None:
    (tmp_path / ".screengate.yml").write_text("schemas:\n  manifest: nope.json\n", encoding="utf-8")

    with pytest.raises(ConfigError, match="schema not found"):
        load_config(tmp_path)


def test_non_mapping_config_is_rejected(tmp_path: Path) -> None:
    (tmp_path / ".screengate.yml").write_text("- a\n- b\n", encoding="utf-8")

    with pytest.raises(ConfigError):
        load_config(tmp_path)


def test_invalid_yaml_is_config_error(tmp_path: Path) -> None:
    (tmp_path / ".screengate.yml").write_text("paths: [unclosed\n", encoding="utf-8")

    with pytest.raises(ConfigError, match="Failed to parse"):
        load_config(tmp_path)


def test_inverted_visual_thresholds_are_rejected(tmp_path: Path) -> None:
    (tmp_path / ".screengate.yml").write_text(
        "scoring:\n  visual_pass_below: 12\n  visual_fail_above: 10\n", encoding="utf-8"
    )

    with pytest.raises(ConfigError):
        load_config(tmp_path)


@pytest.mark.parametrize(
    "data",
    [
        {"maxCycles": 0},
        {"minPassRate": 1.5},
        {"maxNeedsReviewRate": -0.1},
    ],
)
def test_parse_policy_rejects_out_of_range_values(data: dict) -> None:
    with pytest.raises(ConfigError):
        parse_policy(data)


def test_policy_round_trips_to_camel_case() -> None:
    policy = parse_policy({"max_cycles": 2, "requireZeroCriticalFailures": False})

    assert policy.to_dict() == {
        "enabled": True,
        "maxCycles": 2,
        "minPassRate": 1.0,
        "maxNeedsReviewRate": 0.0,
        "requireZeroCriticalFailures": False,
        "strictPassRequired": False,
    }
