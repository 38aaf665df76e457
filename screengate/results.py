"""Result and violation types shared by the core components."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Generic, Optional, Sequence, Tuple, TypeVar, Union

T = TypeVar("T")
E = TypeVar("E")


class ViolationKind(str, Enum):
    """Taxonomy of problems the core can report."""

    SCHEMA = "schema"
    SEMANTIC = "semantic"
    GRAPH = "graph"
    ORDERING = "ordering"
    EVIDENCE_MISSING = "evidence_missing"
    CONFIG = "config"


@dataclass(frozen=True)
class Violation:
    """A single named problem found while checking a batch or a plan."""

    kind: ViolationKind
    code: str
    message: str
    screen_id: Optional[str] = None
    cycle: Tuple[str, ...] = field(default_factory=tuple)

    def to_dict(self) -> Dict[str, object]:
        data: Dict[str, object] = {
            "kind": self.kind.value,
            "code": self.code,
            "message": self.message,
        }
        if self.screen_id is not None:
            data["screenId"] = self.screen_id
        if self.cycle:
            data["cycle"] = list(self.cycle)
        return data


@dataclass(frozen=True)
class Ok(Generic[T]):
    """Successful outcome carrying a value."""

    value: T

    @property
    def ok(self) -> bool:
        return True


@dataclass(frozen=True)
class Err(Generic[E]):
    """Failed outcome carrying the reasons."""

    error: E

    @property
    def ok(self) -> bool:
        return False


Result = Union[Ok[T], Err[E]]


def graph_violation(code: str, message: str, *, screen_id: str | None = None) -> Violation:
    return Violation(kind=ViolationKind.GRAPH, code=code, message=message, screen_id=screen_id)


def cycle_violation(cycle: Sequence[str]) -> Violation:
    path = tuple(cycle)
    return Violation(
        kind=ViolationKind.GRAPH,
        code="dependency_cycle",
        message=f"Dependency cycle detected: {' -> '.join(path)}",
        screen_id=path[0] if path else None,
        cycle=path,
    )


__all__ = [
    "Err",
    "Ok",
    "Result",
    "Violation",
    "ViolationKind",
    "cycle_violation",
    "graph_violation",
]
