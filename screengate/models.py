"""Core data models shared across screengate components."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple


class Complexity(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class Phase(str, Enum):
    FOUNDATION = "foundation"
    STANDARD = "standard"
    GUIDED = "guided"


class Status(str, Enum):
    """Verdict for one dimension or one screen, ordered by severity."""

    PASS = "PASS"
    NEEDS_REVIEW = "NEEDS_REVIEW"
    FAIL = "FAIL"

    @property
    def severity(self) -> int:
        return _STATUS_SEVERITY[self]


class Decision(str, Enum):
    ACCEPT = "accept"
    RETRY = "retry"
    EXHAUSTED = "exhausted"


class Severity(str, Enum):
    ERROR = "error"
    WARN = "warn"


_STATUS_SEVERITY = {Status.PASS: 0, Status.NEEDS_REVIEW: 1, Status.FAIL: 2}

PHASE_ORDER: Tuple[str, ...] = tuple(phase.value for phase in Phase)
COMPLEXITY_ORDER: Tuple[str, ...] = tuple(level.value for level in Complexity)
ORDERING_RULES: Tuple[str, ...] = (
    "phase(foundation,standard,guided)",
    "complexity(low,medium,high)",
    "dependencyCount(asc)",
    "screenId(asc)",
)
PLAN_VERSION = "1.0"
DEFAULT_PRIORITY = 100


@dataclass(frozen=True)
class InteractiveContract:
    """Declared interaction on a screen, optionally navigating elsewhere."""

    contract_id: str
    trigger: str
    action_type: Optional[str] = None
    target: Optional[str] = None
    confidence: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "InteractiveContract":
        action = data.get("action") if isinstance(data.get("action"), Mapping) else {}
        target = action.get("to")
        return cls(
            contract_id=str(data.get("contractId", "")),
            trigger=str(data.get("trigger", "")),
            action_type=action.get("type") if isinstance(action.get("type"), str) else None,
            target=target if isinstance(target, str) and target else None,
            confidence=data.get("confidence") if isinstance(data.get("confidence"), str) else None,
        )


@dataclass(frozen=True)
class UiState:
    name: str
    trigger: Optional[str] = None


@dataclass(frozen=True)
class ScreenManifest:
    """Structured description of one screen, immutable for the batch."""

    screen_id: str
    route: str
    complexity: Complexity
    interactive_contracts: Tuple[InteractiveContract, ...] = ()
    ui_states: Tuple[UiState, ...] = ()
    components: Mapping[str, Any] = field(default_factory=dict)
    data_sources: Tuple[Mapping[str, Any], ...] = ()
    page_title: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ScreenManifest":
        """Build a manifest from a record that already passed schema validation."""
        render_model = data.get("renderModel") or {}
        return cls(
            screen_id=str(data["screenId"]),
            route=str(data["route"]),
            complexity=Complexity(data["complexity"]),
            interactive_contracts=tuple(
                InteractiveContract.from_dict(item) for item in data.get("interactiveContracts", [])
            ),
            ui_states=tuple(
                UiState(name=str(item.get("name", "")), trigger=item.get("trigger"))
                for item in data.get("uiStates", [])
            ),
            components=dict(render_model.get("components") or {}),
            data_sources=tuple(data.get("dataSources", [])),
            page_title=data.get("pageTitle") if isinstance(data.get("pageTitle"), str) else None,
        )

    @property
    def navigation_targets(self) -> List[str]:
        return [contract.target for contract in self.interactive_contracts if contract.target]


@dataclass(frozen=True)
class ExecutionPlanEntry:
    """One screen's slot in the execution plan."""

    screen_id: str
    route: str
    complexity: str
    phase: str
    dependencies: Tuple[str, ...] = ()
    priority: int = DEFAULT_PRIORITY

    def to_dict(self) -> Dict[str, Any]:
        return {
            "screenId": self.screen_id,
            "route": self.route,
            "complexity": self.complexity,
            "phase": self.phase,
            "priority": self.priority,
            "dependencies": list(self.dependencies),
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ExecutionPlanEntry":
        dependencies = data.get("dependencies")
        priority = data.get("priority")
        return cls(
            screen_id=str(data.get("screenId") or ""),
            route=str(data.get("route") or data.get("primaryRoute") or ""),
            complexity=str(data.get("complexity", "")),
            phase=str(data.get("phase", "")),
            dependencies=tuple(str(dep) for dep in dependencies) if isinstance(dependencies, list) else (),
            priority=priority if isinstance(priority, int) else DEFAULT_PRIORITY,
        )


@dataclass(frozen=True)
class ExecutionPlan:
    """Ordered plan entries plus the rules used to order them."""

    entries: Tuple[ExecutionPlanEntry, ...]
    ordering_rules: Tuple[str, ...] = ORDERING_RULES
    plan_version: str = PLAN_VERSION

    @property
    def order(self) -> List[str]:
        return [entry.screen_id for entry in self.entries]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "planVersion": self.plan_version,
            "orderingRules": list(self.ordering_rules),
            "screens": [entry.to_dict() for entry in self.entries],
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), indent=2) + "\n"

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ExecutionPlan":
        screens = data.get("screens")
        rules = data.get("orderingRules")
        return cls(
            entries=tuple(
                ExecutionPlanEntry.from_dict(item)
                for item in (screens if isinstance(screens, list) else [])
                if isinstance(item, Mapping)
            ),
            ordering_rules=tuple(str(rule) for rule in rules) if isinstance(rules, list) else ORDERING_RULES,
            plan_version=str(data.get("planVersion", PLAN_VERSION)),
        )


@dataclass(frozen=True)
class DimensionResult:
    """Status for one verification dimension plus the measurement behind it."""

    status: Status
    measurement: Mapping[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"status": self.status.value}
        data.update(self.measurement)
        return data


DIMENSIONS: Tuple[str, ...] = (
    "visualFidelity",
    "structuralParity",
    "functionalParity",
    "uiStateCoverage",
    "accessibilityBaseline",
    "performanceGuardrail",
)

# Dimensions whose failure is too risky to defer; visual drift alone is excluded.
CRITICAL_DIMENSIONS: Tuple[str, ...] = (
    "structuralParity",
    "functionalParity",
    "accessibilityBaseline",
    "performanceGuardrail",
)


@dataclass(frozen=True)
class ScreenScorecard:
    """Per-screen, per-dimension verdict."""

    screen_id: str
    dimensions: Mapping[str, DimensionResult]
    overall: Status

    def status_of(self, dimension: str) -> Status:
        return self.dimensions[dimension].status

    def dimensions_with(self, status: Status) -> List[str]:
        return [name for name in DIMENSIONS if name in self.dimensions and self.dimensions[name].status is status]

    @property
    def is_critical_failure(self) -> bool:
        return any(self.status_of(name) is Status.FAIL for name in CRITICAL_DIMENSIONS if name in self.dimensions)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "screenId": self.screen_id,
            "overall": self.overall.value,
            "dimensions": {name: self.dimensions[name].to_dict() for name in DIMENSIONS if name in self.dimensions},
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ScreenScorecard":
        """Parse a scorecard dict; raises ``ValueError`` on a missing or invalid field."""
        for key in ("screenId", "overall"):
            if key not in data:
                raise ValueError(f"Scorecard is missing required field '{key}'")
        screen_id = str(data["screenId"])
        raw_dimensions = data.get("dimensions") or {}
        if not isinstance(raw_dimensions, Mapping):
            raise ValueError(f"Scorecard {screen_id}: 'dimensions' must be an object")
        dimensions: Dict[str, DimensionResult] = {}
        for name, raw in raw_dimensions.items():
            if not isinstance(raw, Mapping) or "status" not in raw:
                raise ValueError(f"Scorecard {screen_id}: dimension '{name}' is missing 'status'")
            measurement = {key: value for key, value in raw.items() if key != "status"}
            dimensions[name] = DimensionResult(status=Status(raw["status"]), measurement=measurement)
        return cls(screen_id=screen_id, dimensions=dimensions, overall=Status(data["overall"]))


@dataclass
class BatchSummary:
    """Batch-level counts derived from all scorecards of one cycle."""

    total: int = 0
    passed: int = 0
    needs_review: int = 0
    failed: int = 0
    critical_failures: int = 0
    decision: Optional[Decision] = None

    @property
    def pass_rate(self) -> float:
        return self.passed / max(1, self.total)

    @property
    def needs_review_rate(self) -> float:
        return self.needs_review / max(1, self.total)

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "total": self.total,
            "pass": self.passed,
            "needsReview": self.needs_review,
            "fail": self.failed,
            "criticalFailures": self.critical_failures,
        }
        if self.decision is not None:
            data["decision"] = self.decision.value
        return data

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "BatchSummary":
        decision = data.get("decision")
        return cls(
            total=int(data.get("total", 0)),
            passed=int(data.get("pass", 0)),
            needs_review=int(data.get("needsReview", 0)),
            failed=int(data.get("fail", 0)),
            critical_failures=int(data.get("criticalFailures", 0)),
            decision=Decision(decision) if decision else None,
        )


def worst_status(statuses: Sequence[Status]) -> Status:
    """Return the most severe status (FAIL > NEEDS_REVIEW > PASS)."""
    if not statuses:
        return Status.NEEDS_REVIEW
    return max(statuses, key=lambda status: status.severity)
