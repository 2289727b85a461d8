"""
core/model.py - Graph data model

Nodes carry a label, a normalized layout position and a numeric value; in
expression mode they also carry the source text that defines the value.
Edges are either derived from expressions (identity = endpoint pair) or
first-class typed edges with their own id.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional, Tuple
import math


class EdgeKind(str, Enum):
    """Effect a typed edge has on its target during impulse propagation."""
    INCREMENT = "increment"
    DECREMENT = "decrement"

    @property
    def delta(self) -> int:
        return 1 if self is EdgeKind.INCREMENT else -1

    @property
    def past_tense(self) -> str:
        return f"{self.value}ed"


@dataclass(frozen=True)
class Position:
    """Normalized layout position; both coordinates lie in [0, 1]."""
    x: float = 0.5
    y: float = 0.5

    def is_in_bounds(self) -> bool:
        return 0.0 <= self.x <= 1.0 and 0.0 <= self.y <= 1.0

    def clamped(self) -> "Position":
        return Position(
            x=min(1.0, max(0.0, self.x)),
            y=min(1.0, max(0.0, self.y)),
        )

    def to_tuple(self) -> Tuple[float, float]:
        return (self.x, self.y)

    @classmethod
    def coerce(cls, value: Any) -> "Position":
        """Accept a Position, an (x, y) pair or a {"x", "y"} mapping."""
        if isinstance(value, Position):
            return value
        if isinstance(value, dict):
            return cls(x=float(value["x"]), y=float(value["y"]))
        x, y = value
        return cls(x=float(x), y=float(y))


@dataclass
class Node:
    """A graph node."""
    id: int
    label: str
    position: Position = field(default_factory=Position)
    value: float = 0.0

    # Expression mode only; None in typed-edge mode
    expression: Optional[str] = None

    def __post_init__(self):
        if not math.isfinite(self.value):
            raise ValueError(f"Node {self.id} value must be finite, got {self.value}")

    def copy(self) -> "Node":
        return Node(
            id=self.id,
            label=self.label,
            position=self.position,
            value=self.value,
            expression=self.expression,
        )

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "id": self.id,
            "label": self.label,
            "x": self.position.x,
            "y": self.position.y,
            "value": self.value,
        }
        if self.expression is not None:
            data["expression"] = self.expression
        return data


@dataclass(frozen=True)
class DerivedEdge:
    """Expression-mode edge: target's expression references source's label."""
    source: int
    target: int

    def to_dict(self) -> Dict[str, Any]:
        return {"source": self.source, "target": self.target}


@dataclass
class TypedEdge:
    """Typed-edge mode edge, created and edited directly."""
    id: int
    source: int
    target: int
    kind: EdgeKind = EdgeKind.INCREMENT

    def copy(self) -> "TypedEdge":
        return TypedEdge(id=self.id, source=self.source, target=self.target, kind=self.kind)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "source": self.source,
            "target": self.target,
            "kind": self.kind.value,
        }
