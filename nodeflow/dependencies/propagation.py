"""
nodeflow Propagation

Two stepwise propagation modes:

- ImpulsePropagator (typed-edge graphs): charged nodes push +1/-1 along
  their outgoing typed edges; the targets become the next step's impulses.
- GenerationalPropagator (expression graphs): walks derived edges one
  generation at a time from a root and wraps back to the root once a
  generation comes up empty.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence
import logging

from ..core.model import EdgeKind, Node, TypedEdge
from .graph import DependencyGraph

logger = logging.getLogger(__name__)


def unique(ids: Iterable[int]) -> List[int]:
    """De-duplicate keeping first-seen order."""
    return list(dict.fromkeys(ids))


# =============================================================================
# IMPULSE PROPAGATION
# =============================================================================

class PropagatorState(Enum):
    """Impulse propagator lifecycle."""
    IDLE = "idle"          # Nothing charged since the last reset
    CHARGED = "charged"    # Impulse set is non-empty
    SPENT = "spent"        # Impulses ran out; stays until reset


@dataclass
class ImpulseApplication:
    """One edge firing during a step."""
    edge_id: int
    source: int
    target: int
    kind: EdgeKind
    old_value: float
    new_value: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            "edge_id": self.edge_id,
            "source": self.source,
            "target": self.target,
            "kind": self.kind.value,
            "old_value": self.old_value,
            "new_value": self.new_value,
        }


@dataclass
class PropagationStep:
    """Result of one propagate invocation."""
    step_index: int
    impulses_before: List[int] = field(default_factory=list)
    impulses_after: List[int] = field(default_factory=list)
    applied: List[ImpulseApplication] = field(default_factory=list)

    @property
    def changed(self) -> bool:
        return bool(self.applied)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "step_index": self.step_index,
            "impulses_before": list(self.impulses_before),
            "impulses_after": list(self.impulses_after),
            "applied": [a.to_dict() for a in self.applied],
            "changed": self.changed,
        }


class ImpulsePropagator:
    """
    Holds the impulse set and advances it one step at a time.

    Converging edges each apply their delta, but a target appears once in
    the next impulse set. Every node touched since the last reset stays
    marked until reset.
    """

    def __init__(self):
        self._impulses: List[int] = []
        self._marked: List[int] = []
        self._step_count = 0

    @property
    def impulses(self) -> List[int]:
        return list(self._impulses)

    @property
    def marked(self) -> List[int]:
        return list(self._marked)

    @property
    def step_count(self) -> int:
        return self._step_count

    @property
    def state(self) -> PropagatorState:
        if self._impulses:
            return PropagatorState.CHARGED
        if self._marked or self._step_count:
            return PropagatorState.SPENT
        return PropagatorState.IDLE

    def charge(self, node_ids: Iterable[int]) -> List[int]:
        """Add nodes to the impulse set; returns the new set."""
        self._impulses = unique(list(self._impulses) + list(node_ids))
        self._marked = unique(self._marked + self._impulses)
        return self.impulses

    def step(self, nodes: Mapping[int, Node], edges: Sequence[TypedEdge]) -> PropagationStep:
        """
        Fire every outgoing edge of every impulsed node once.

        Target values are updated in place on the given nodes.
        """
        self._step_count += 1
        result = PropagationStep(
            step_index=self._step_count,
            impulses_before=list(self._impulses),
        )

        collected: List[int] = []
        for node_id in self._impulses:
            for edge in edges:
                if edge.source != node_id:
                    continue
                target = nodes.get(edge.target)
                if target is None:
                    logger.warning(f"Edge {edge.id} targets missing node {edge.target}, skipped")
                    continue

                old_value = target.value
                target.value = old_value + edge.kind.delta
                collected.append(target.id)
                result.applied.append(ImpulseApplication(
                    edge_id=edge.id,
                    source=edge.source,
                    target=target.id,
                    kind=edge.kind,
                    old_value=old_value,
                    new_value=target.value,
                ))

        self._impulses = unique(collected)
        self._marked = unique(self._marked + self._impulses)
        result.impulses_after = list(self._impulses)

        logger.debug(
            f"Impulse step {result.step_index}: {len(result.applied)} edges fired, "
            f"impulses {result.impulses_before} -> {result.impulses_after}"
        )
        return result

    def discard(self, node_id: int) -> None:
        """Forget a node that no longer exists."""
        self._impulses = [i for i in self._impulses if i != node_id]
        self._marked = [i for i in self._marked if i != node_id]

    def reset(self) -> None:
        """Clear impulses and marks; back to IDLE."""
        self._impulses = []
        self._marked = []
        self._step_count = 0


# =============================================================================
# GENERATIONAL PROPAGATION
# =============================================================================

@dataclass
class GenerationStep:
    """One generation of a depth-limited walk."""
    root_id: int
    depth: int
    node_ids: List[int] = field(default_factory=list)
    wrapped: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "root_id": self.root_id,
            "depth": self.depth,
            "node_ids": list(self.node_ids),
            "wrapped": self.wrapped,
        }


class GenerationalPropagator:
    """
    Walks downstream of a root one generation per step.

    Depth 0 is the root. When generation depth+1 is empty the walk wraps:
    depth returns to 0 and the root is targeted again.
    """

    def __init__(self, root_id: Optional[int] = None):
        self._root_id = root_id
        self._depth = 0

    @property
    def root_id(self) -> Optional[int]:
        return self._root_id

    @property
    def depth(self) -> int:
        return self._depth

    def retarget(self, root_id: int) -> None:
        """Start over from a new root at depth 0."""
        self._root_id = root_id
        self._depth = 0

    def reset(self) -> None:
        self._depth = 0

    def step(self, graph: DependencyGraph) -> GenerationStep:
        """Advance one generation."""
        if self._root_id is None:
            raise ValueError("GenerationalPropagator has no root")

        next_generation = graph.get_nodes_at_depth(self._root_id, self._depth + 1)
        if next_generation:
            self._depth += 1
            return GenerationStep(
                root_id=self._root_id,
                depth=self._depth,
                node_ids=next_generation,
            )

        logger.debug(
            f"Generation {self._depth + 1} from node {self._root_id} is empty, "
            f"wrapping to depth 0"
        )
        self._depth = 0
        return GenerationStep(
            root_id=self._root_id,
            depth=0,
            node_ids=[self._root_id],
            wrapped=True,
        )
