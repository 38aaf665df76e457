"""Re-validation of a previously produced execution plan."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Sequence

from jsonschema import Draft202012Validator

from ..logging import get_logger
from ..manifests.schema import EXECUTION_PLAN_SCHEMA
from ..models import COMPLEXITY_ORDER, PHASE_ORDER, ExecutionPlan, ScreenManifest
from ..results import Err, Ok, Result, Violation, ViolationKind, cycle_violation, graph_violation
from .graph import canonical_order, find_cycle


@dataclass
class PlanValidation:
    """Outcome of validating a plan against the current manifest set."""

    valid: bool
    errors: List[Violation] = field(default_factory=list)
    expected_order: List[str] = field(default_factory=list)
    actual_order: List[str] = field(default_factory=list)

    @property
    def cycle(self) -> Optional[List[str]]:
        for error in self.errors:
            if error.code == "dependency_cycle":
                return list(error.cycle)
        return None

    def codes(self) -> List[str]:
        return [error.code for error in self.errors]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "valid": self.valid,
            "expectedOrder": list(self.expected_order),
            "actualOrder": list(self.actual_order),
            "errors": [error.to_dict() for error in self.errors],
        }


class ExecutionPlanValidator:
    """Checks coverage, graph shape, manifest consistency and canonical ordering."""

    def __init__(self) -> None:
        self.logger = get_logger("plan.validator")

    def validate(self, plan: ExecutionPlan, manifests: Sequence[ScreenManifest]) -> PlanValidation:
        """Run every plan check and report all violations together.

        Only the first dependency cycle found is reported.
        """
        manifest_by_id: Dict[str, ScreenManifest] = {manifest.screen_id: manifest for manifest in manifests}
        errors: List[Violation] = []

        if not plan.entries:
            errors.append(graph_violation("empty_plan", "Plan must contain at least one screen"))

        seen: set[str] = set()
        actual_order: List[str] = []
        graph: Dict[str, List[str]] = {}

        for entry in plan.entries:
            screen_id = entry.screen_id
            if not screen_id:
                errors.append(graph_violation("missing_screen_id", "Execution plan item missing screenId"))
                continue
            if screen_id in seen:
                errors.append(
                    graph_violation("duplicate_screen", f"Duplicate screenId in plan: {screen_id}", screen_id=screen_id)
                )
            seen.add(screen_id)
            actual_order.append(screen_id)
            graph.setdefault(screen_id, list(entry.dependencies))

            manifest = manifest_by_id.get(screen_id)
            if manifest is None:
                errors.append(
                    graph_violation("unknown_screen", f"Unknown screenId in plan: {screen_id}", screen_id=screen_id)
                )
            else:
                if entry.route != manifest.route:
                    errors.append(
                        graph_violation(
                            "route_mismatch",
                            f"Route mismatch for {screen_id}: plan='{entry.route}' manifest='{manifest.route}'",
                            screen_id=screen_id,
                        )
                    )
                if entry.complexity != manifest.complexity.value:
                    errors.append(
                        graph_violation(
                            "complexity_mismatch",
                            f"Complexity mismatch for {screen_id}: plan='{entry.complexity}' "
                            f"manifest='{manifest.complexity.value}'",
                            screen_id=screen_id,
                        )
                    )

            if entry.phase not in PHASE_ORDER:
                errors.append(
                    graph_violation("invalid_phase", f"Invalid phase for {screen_id}: {entry.phase}", screen_id=screen_id)
                )
            if entry.complexity not in COMPLEXITY_ORDER:
                errors.append(
                    graph_violation(
                        "invalid_complexity",
                        f"Invalid complexity for {screen_id}: {entry.complexity}",
                        screen_id=screen_id,
                    )
                )

            listed: set[str] = set()
            for dep in entry.dependencies:
                if dep in listed:
                    errors.append(
                        graph_violation(
                            "duplicate_dependency",
                            f"Duplicate dependency for {screen_id}: {dep}",
                            screen_id=screen_id,
                        )
                    )
                listed.add(dep)
                if dep == screen_id:
                    errors.append(
                        graph_violation(
                            "self_dependency", f"Self dependency not allowed for {screen_id}", screen_id=screen_id
                        )
                    )
                if dep not in manifest_by_id:
                    errors.append(
                        graph_violation(
                            "unknown_dependency",
                            f"Unknown dependency '{dep}' referenced by {screen_id}",
                            screen_id=screen_id,
                        )
                    )

        for screen_id in sorted(manifest_by_id):
            if screen_id not in seen:
                errors.append(
                    graph_violation("missing_screen", f"Missing screen in plan: {screen_id}", screen_id=screen_id)
                )

        cycle = find_cycle(graph)
        if cycle:
            errors.append(cycle_violation(cycle))

        expected_order = [entry.screen_id for entry in canonical_order(list(plan.entries))]
        if expected_order != [entry.screen_id for entry in plan.entries]:
            errors.append(
                Violation(
                    kind=ViolationKind.ORDERING,
                    code="order_mismatch",
                    message="Plan order does not match deterministic ordering rules "
                    "(phase, complexity, dependencyCount, screenId).",
                )
            )

        result = PlanValidation(
            valid=not errors,
            errors=errors,
            expected_order=expected_order,
            actual_order=actual_order,
        )
        if result.valid:
            self.logger.info("Execution plan valid (%d screens)", len(actual_order))
        else:
            self.logger.warning("Execution plan invalid: %d error(s)", len(errors))
        return result


def parse_plan(
    data: Any, schema: Optional[Mapping[str, Any]] = None
) -> Result[ExecutionPlan, List[Violation]]:
    """Check a raw plan record against the plan schema before building the model."""
    validator = Draft202012Validator(dict(schema or EXECUTION_PLAN_SCHEMA))
    problems = sorted(validator.iter_errors(data), key=lambda error: ("/".join(map(str, error.absolute_path)), error.message))
    if problems:
        return Err(
            [
                Violation(
                    kind=ViolationKind.SCHEMA,
                    code="plan_schema",
                    message=f"Schema: /{'/'.join(map(str, error.absolute_path))} {error.message}",
                )
                for error in problems
            ]
        )
    return Ok(ExecutionPlan.from_dict(data))


def load_plan(path: Path, schema: Optional[Mapping[str, Any]] = None) -> Result[ExecutionPlan, List[Violation]]:
    """Read and schema-check a plan file."""
    if not path.exists():
        return Err(
            [Violation(kind=ViolationKind.SCHEMA, code="plan_missing", message=f"Missing required file: {path}")]
        )
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as exc:
        return Err(
            [Violation(kind=ViolationKind.SCHEMA, code="plan_unreadable", message=f"Unreadable plan {path}: {exc}")]
        )
    return parse_plan(data, schema)


__all__ = ["ExecutionPlanValidator", "PlanValidation", "load_plan", "parse_plan"]
