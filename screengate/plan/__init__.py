"""Execution plan construction and validation."""

from .builder import ExecutionPlanBuilder, phase_for
from .graph import canonical_order, derive_dependencies, find_cycle, route_matches
from .validator import ExecutionPlanValidator, PlanValidation, load_plan, parse_plan

__all__ = [
    "ExecutionPlanBuilder",
    "ExecutionPlanValidator",
    "PlanValidation",
    "canonical_order",
    "derive_dependencies",
    "find_cycle",
    "load_plan",
    "parse_plan",
    "phase_for",
    "route_matches",
]
