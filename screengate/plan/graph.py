"""Dependency graph helpers shared by the plan builder and validator."""

from __future__ import annotations

from collections import defaultdict
from typing import Dict, Iterator, List, Mapping, Optional, Sequence, Set, Tuple

from ..models import COMPLEXITY_ORDER, PHASE_ORDER, ExecutionPlanEntry, ScreenManifest


def rank(order: Sequence[str], value: str) -> int:
    """Position of ``value`` in ``order``; unknown values rank after every known one."""
    try:
        return order.index(value)
    except ValueError:
        return len(order)


def canonical_key(entry: ExecutionPlanEntry) -> Tuple[int, int, int, str]:
    return (
        rank(PHASE_ORDER, entry.phase),
        rank(COMPLEXITY_ORDER, entry.complexity),
        len(entry.dependencies),
        entry.screen_id,
    )


def canonical_order(entries: Sequence[ExecutionPlanEntry]) -> List[ExecutionPlanEntry]:
    """Sort entries by phase, complexity, dependency count, then screen id."""
    return sorted(entries, key=canonical_key)


def _segments(route: str) -> List[str]:
    path = route.split("?", 1)[0].split("#", 1)[0]
    return [segment for segment in path.split("/") if segment]


def _is_parameter(segment: str) -> bool:
    return (segment.startswith("{") and segment.endswith("}")) or segment.startswith(":")


def route_matches(target: str, route: str) -> bool:
    """Return True when a navigation target lands on ``route``.

    ``{id}`` and ``:id`` segments in the route accept any single target segment.
    """
    if target == route:
        return True
    target_parts = _segments(target)
    route_parts = _segments(route)
    if len(target_parts) != len(route_parts):
        return False
    return all(r == t or _is_parameter(r) for t, r in zip(target_parts, route_parts))


class RouteIndex:
    """Resolves navigation targets to screen ids."""

    def __init__(self, manifests: Sequence[ScreenManifest]) -> None:
        self._exact: Dict[str, List[str]] = defaultdict(list)
        self._routes: List[Tuple[str, str]] = []
        for manifest in manifests:
            self._exact[manifest.route].append(manifest.screen_id)
            self._routes.append((manifest.route, manifest.screen_id))

    def resolve(self, target: str) -> List[str]:
        exact = self._exact.get(target)
        if exact:
            return sorted(exact)
        return sorted({screen_id for route, screen_id in self._routes if route_matches(target, route)})


def derive_dependencies(manifests: Sequence[ScreenManifest]) -> Dict[str, List[str]]:
    """Map each screen id to the sorted screen ids it navigates to."""
    index = RouteIndex(manifests)
    dependencies: Dict[str, List[str]] = {}
    for manifest in manifests:
        found: Set[str] = set()
        for target in manifest.navigation_targets:
            for screen_id in index.resolve(target):
                if screen_id != manifest.screen_id:
                    found.add(screen_id)
        dependencies[manifest.screen_id] = sorted(found)
    return dependencies


def find_cycle(graph: Mapping[str, Sequence[str]]) -> Optional[List[str]]:
    """Return the first dependency cycle as ``[a, ..., a]`` or None.

    Depth-first traversal over ``graph`` in insertion order, using an explicit
    stack instead of recursion so large batches do not hit the recursion limit.
    """
    visited: Set[str] = set()
    on_stack: Set[str] = set()
    trail: List[str] = []

    for root in graph:
        if root in visited:
            continue
        visited.add(root)
        on_stack.add(root)
        trail.append(root)
        stack: List[Tuple[str, Iterator[str]]] = [(root, iter(graph.get(root, ())))]
        while stack:
            node, pending = stack[-1]
            descended = False
            for dep in pending:
                if dep not in visited:
                    visited.add(dep)
                    on_stack.add(dep)
                    trail.append(dep)
                    stack.append((dep, iter(graph.get(dep, ()))))
                    descended = True
                    break
                if dep in on_stack:
                    start = trail.index(dep)
                    return trail[start:] + [dep]
            if not descended:
                stack.pop()
                on_stack.discard(node)
                trail.pop()
    return None


__all__ = [
    "RouteIndex",
    "canonical_key",
    "canonical_order",
    "derive_dependencies",
    "find_cycle",
    "rank",
    "route_matches",
]
