"""Per-dimension verification evidence and loading it from the capture stage.

The capture stage writes one JSON file per dimension into the evidence
directory, each mapping ``screenId`` to a record:

``visual.json``
    ``{"maxDiffPercentage": 1.4, "comparedPairs": 4, "missingPairs": 0, "dimensionMismatch": false}``
``structural.json``
    ``{"1920-default": [{"severity": "critical", "metric": "elementCount", ...}], ...}``
    (a flat list of deltas is treated as a single capture)
``e2e.json``
    ``{"passed": 3, "failed": 0}``
``states.json``
    ``{"captured": ["default-loaded", "validation-errors"]}`` or ``{"captured": 2}``
``a11y.json``
    ``{"criticalViolations": 0}``
``perf.json``
    ``{"loadTimeMs": 1200, "maxBundleKb": 80}``

Missing files, missing screens and malformed records all become absent
evidence for that dimension; nothing here raises on bad input. Numbers must
be finite and non-negative (``json`` accepts ``NaN`` and ``Infinity``).
"""

from __future__ import annotations

import json
import math
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Sequence

from ..logging import get_logger
from ..models import ScreenManifest

logger = get_logger("scoring.evidence")

EVIDENCE_FILES = {
    "visual": "visual.json",
    "structural": "structural.json",
    "functional": "e2e.json",
    "states": "states.json",
    "accessibility": "a11y.json",
    "performance": "perf.json",
}


@dataclass(frozen=True)
class VisualEvidence:
    max_diff_percent: float
    compared_pairs: int = 1
    missing_pairs: int = 0
    dimension_mismatch: bool = False


@dataclass(frozen=True)
class StructuralEvidence:
    critical_deltas: int
    captures: int = 1


@dataclass(frozen=True)
class FunctionalEvidence:
    passed: int
    failed: int

    @property
    def total(self) -> int:
        return self.passed + self.failed


@dataclass(frozen=True)
class StateCoverageEvidence:
    captured: int


@dataclass(frozen=True)
class AccessibilityEvidence:
    critical_violations: int


@dataclass(frozen=True)
class PerformanceEvidence:
    load_time_ms: Optional[float]
    max_bundle_kb: Optional[float]


@dataclass(frozen=True)
class ScreenEvidence:
    """Everything the capture stage produced for one screen in one cycle."""

    visual: Optional[VisualEvidence] = None
    structural: Optional[StructuralEvidence] = None
    functional: Optional[FunctionalEvidence] = None
    states: Optional[StateCoverageEvidence] = None
    accessibility: Optional[AccessibilityEvidence] = None
    performance: Optional[PerformanceEvidence] = None
    declared_states: int = 0

    @classmethod
    def from_dict(cls, data: Mapping[str, Any], *, declared_states: int = 0) -> "ScreenEvidence":
        """Parse the per-dimension records of one screen (keys as in ``EVIDENCE_FILES``)."""
        return cls(
            visual=parse_visual(data.get("visual")),
            structural=parse_structural(data.get("structural")),
            functional=parse_functional(data.get("functional")),
            states=parse_states(data.get("states")),
            accessibility=parse_accessibility(data.get("accessibility")),
            performance=parse_performance(data.get("performance")),
            declared_states=declared_states,
        )


def _number(value: Any) -> Optional[float]:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)) and math.isfinite(value):
        return float(value)
    return None


def _measure(value: Any) -> Optional[float]:
    number = _number(value)
    if number is None or number < 0:
        return None
    return number


def _count(value: Any) -> Optional[int]:
    number = _measure(value)
    return None if number is None else int(number)


def parse_visual(raw: Any) -> Optional[VisualEvidence]:
    if not isinstance(raw, Mapping):
        return None
    diff = _measure(raw.get("maxDiffPercentage", raw.get("maxDiffPercent")))
    mismatch = raw.get("dimensionMismatch") is True
    if diff is None and not mismatch:
        return None
    compared = _count(raw.get("comparedPairs"))
    missing = _count(raw.get("missingPairs"))
    return VisualEvidence(
        max_diff_percent=diff if diff is not None else 100.0,
        compared_pairs=1 if compared is None else compared,
        missing_pairs=missing or 0,
        dimension_mismatch=mismatch,
    )


def parse_structural(raw: Any) -> Optional[StructuralEvidence]:
    if isinstance(raw, list):
        groups: Sequence[Any] = [raw]
    elif isinstance(raw, Mapping):
        groups = [value for value in raw.values() if isinstance(value, list)]
    else:
        return None
    if not groups:
        return None
    critical = sum(
        1
        for group in groups
        for delta in group
        if isinstance(delta, Mapping) and delta.get("severity") == "critical"
    )
    return StructuralEvidence(critical_deltas=critical, captures=len(groups))


def parse_functional(raw: Any) -> Optional[FunctionalEvidence]:
    if not isinstance(raw, Mapping):
        return None
    passed = _count(raw.get("passed"))
    failed = _count(raw.get("failed"))
    if passed is None and failed is None:
        return None
    return FunctionalEvidence(passed=passed or 0, failed=failed or 0)


def parse_states(raw: Any) -> Optional[StateCoverageEvidence]:
    if not isinstance(raw, Mapping):
        return None
    captured = raw.get("captured")
    if isinstance(captured, list):
        count = len({str(name) for name in captured})
    else:
        count = _count(captured)
        if count is None:
            return None
    return StateCoverageEvidence(captured=count)


def parse_accessibility(raw: Any) -> Optional[AccessibilityEvidence]:
    if not isinstance(raw, Mapping):
        return None
    violations = _count(raw.get("criticalViolations"))
    if violations is None:
        return None
    return AccessibilityEvidence(critical_violations=violations)


def parse_performance(raw: Any) -> Optional[PerformanceEvidence]:
    if not isinstance(raw, Mapping):
        return None
    load_time = _measure(raw.get("loadTimeMs"))
    bundle = _measure(raw.get("maxBundleKb"))
    if load_time is None and bundle is None:
        return None
    return PerformanceEvidence(load_time_ms=load_time, max_bundle_kb=bundle)


class EvidenceLoader:
    """Reads the evidence directory written by the external capture stage."""

    def __init__(self, directory: Path) -> None:
        self.directory = Path(directory)

    def load(self, manifests: Sequence[ScreenManifest]) -> Dict[str, ScreenEvidence]:
        """Return evidence for every manifest, absent where nothing was captured."""
        tables = {dimension: self._read_table(filename) for dimension, filename in EVIDENCE_FILES.items()}
        evidence: Dict[str, ScreenEvidence] = {}
        for manifest in manifests:
            screen_id = manifest.screen_id
            record = {dimension: table.get(screen_id) for dimension, table in tables.items()}
            evidence[screen_id] = ScreenEvidence.from_dict(record, declared_states=len(manifest.ui_states))
            missing = [dimension for dimension, value in record.items() if value is None]
            if missing:
                logger.debug("No %s evidence for %s", ", ".join(missing), screen_id)
        return evidence

    def _read_table(self, filename: str) -> Mapping[str, Any]:
        path = self.directory / filename
        if not path.exists():
            logger.warning("Evidence file missing: %s", path)
            return {}
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as exc:
            logger.warning("Ignoring unreadable evidence file %s: %s", path, exc)
            return {}
        if not isinstance(data, Mapping):
            logger.warning("Ignoring evidence file %s: expected a mapping of screenId to record", path)
            return {}
        return data


__all__ = [
    "AccessibilityEvidence",
    "EVIDENCE_FILES",
    "EvidenceLoader",
    "FunctionalEvidence",
    "PerformanceEvidence",
    "ScreenEvidence",
    "StateCoverageEvidence",
    "StructuralEvidence",
    "VisualEvidence",
]
