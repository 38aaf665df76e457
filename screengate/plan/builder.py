"""Deterministic execution plan construction."""

from __future__ import annotations

from collections import Counter
from typing import Dict, List, Sequence, Tuple

from ..logging import get_logger
from ..models import (
    COMPLEXITY_ORDER,
    PHASE_ORDER,
    Complexity,
    ExecutionPlan,
    ExecutionPlanEntry,
    Phase,
    ScreenManifest,
)
from ..results import Err, Ok, Result, Violation, cycle_violation, graph_violation
from .graph import canonical_order, derive_dependencies, find_cycle, rank


def phase_for(complexity: Complexity) -> Phase:
    return Phase.GUIDED if complexity is Complexity.HIGH else Phase.STANDARD


class ExecutionPlanBuilder:
    """Derives screen dependencies and produces the canonical processing order."""

    def __init__(self, *, break_mutual_links: bool = False) -> None:
        self.break_mutual_links = break_mutual_links
        self.logger = get_logger("plan.builder")

    def build(self, manifests: Sequence[ScreenManifest]) -> Result[ExecutionPlan, List[Violation]]:
        """Return ``Ok(plan)`` or ``Err(violations)`` when the graph is unusable.

        The output depends only on the set of manifests, not on their order.
        """
        ordered = sorted(manifests, key=lambda manifest: manifest.screen_id)
        if not ordered:
            return Err([graph_violation("empty_plan", "No screens available to plan")])

        counts = Counter(manifest.screen_id for manifest in ordered)
        duplicates = sorted(screen_id for screen_id, count in counts.items() if count > 1)
        if duplicates:
            return Err(
                [
                    graph_violation("duplicate_screen", f"Duplicate screenId: {screen_id}", screen_id=screen_id)
                    for screen_id in duplicates
                ]
            )

        dependencies = derive_dependencies(ordered)
        if self.break_mutual_links:
            dependencies = _drop_back_links(ordered, dependencies)

        cycle = find_cycle(dependencies)
        if cycle:
            self.logger.warning("Refusing to build plan: %s", " -> ".join(cycle))
            return Err([cycle_violation(cycle)])

        entries = [
            ExecutionPlanEntry(
                screen_id=manifest.screen_id,
                route=manifest.route,
                complexity=manifest.complexity.value,
                phase=phase_for(manifest.complexity).value,
                dependencies=tuple(dependencies[manifest.screen_id]),
            )
            for manifest in ordered
        ]
        plan = ExecutionPlan(entries=tuple(canonical_order(entries)))
        self.logger.info("Built execution plan with %d screen(s)", len(plan.entries))
        return Ok(plan)


def _drop_back_links(
    manifests: Sequence[ScreenManifest], dependencies: Dict[str, List[str]]
) -> Dict[str, List[str]]:
    """For each mutual pair keep only the edge out of the later-ranked screen."""

    def standing(manifest: ScreenManifest) -> Tuple[int, int, str]:
        return (
            rank(PHASE_ORDER, phase_for(manifest.complexity).value),
            rank(COMPLEXITY_ORDER, manifest.complexity.value),
            manifest.screen_id,
        )

    by_id = {manifest.screen_id: manifest for manifest in manifests}
    pruned: Dict[str, List[str]] = {}
    for screen_id, deps in dependencies.items():
        kept = []
        for dep in deps:
            mutual = screen_id in dependencies.get(dep, [])
            if mutual and standing(by_id[screen_id]) < standing(by_id[dep]):
                continue
            kept.append(dep)
        pruned[screen_id] = kept
    return pruned


__all__ = ["ExecutionPlanBuilder", "phase_for"]
