"""
store/graph_store.py - Authoritative graph state

A store owns the node and edge collections of one graph and is the only
thing that mutates them. Every mutation runs to completion (including any
edge re-derivation and re-evaluation) and returns a MutationResult holding
the new consistent snapshot, the trigger-log entries it produced and any
evaluation failures.

Rules shared by all mutations:
- Unknown node or edge ids raise UnknownIdError before anything changes.
- Evaluation failures never escape a mutation. They are reported as
  GraphError records and the failing node keeps its last good value.

Two stores:
- ExpressionGraphStore: values come from expressions, edges are derived.
- TypedGraphStore: values are plain numbers, edges are typed and edited
  directly, values move by impulse propagation.
"""

from __future__ import annotations
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple, Union
import logging
import math
import uuid

from ..config import StoreConfig, get_store_config
from ..core.model import DerivedEdge, EdgeKind, Node, Position, TypedEdge
from ..dependencies.graph import DependencyGraph, derive_edges
from ..dependencies.propagation import (
    GenerationStep,
    GenerationalPropagator,
    ImpulsePropagator,
    PropagationStep,
    PropagatorState,
)
from ..dependencies.trigger_log import TriggerEntry, TriggerLog, TriggerType
from ..errors import GraphError, GraphStoreError, UnknownIdError
from ..expressions.references import rename_references
from ..expressions.resolver import DependencyResolver
from .snapshot import EdgeRecord, GraphSnapshot, NodeRecord, SelectionRecord

logger = logging.getLogger(__name__)

PositionLike = Union[Position, Tuple[float, float], Dict[str, float]]

DEFAULT_LABEL = "New node"


def _edge_kind(kind: Union[EdgeKind, str]) -> EdgeKind:
    try:
        return EdgeKind(kind)
    except ValueError:
        raise GraphStoreError(
            f"Unknown edge kind {kind!r}; expected one of {[k.value for k in EdgeKind]}"
        ) from None


def format_value(value: float) -> str:
    """Display form of a node value: 2.0 -> '2', 2.5 -> '2.5'."""
    if float(value).is_integer() and abs(value) < 1e16:
        return str(int(value))
    return repr(float(value))


# =============================================================================
# SELECTION / RESULTS
# =============================================================================

@dataclass(frozen=True)
class Selection:
    """The selected element: ("node", id) or ("edge", id)."""
    kind: str
    id: int


@dataclass
class MutationResult:
    """Outcome of one store operation."""
    mutation_id: str
    operation: str
    snapshot: GraphSnapshot
    events: List[TriggerEntry] = field(default_factory=list)
    failures: List[GraphError] = field(default_factory=list)

    # Element the operation created or targeted
    node_id: Optional[int] = None
    edge_id: Optional[int] = None

    # Propagation detail for step operations
    propagation: Optional[PropagationStep] = None
    generation: Optional[GenerationStep] = None

    @property
    def success(self) -> bool:
        return not self.failures

    @property
    def messages(self) -> List[str]:
        return [e.message for e in self.events if e.message]

    def failure_for(self, node_id: int) -> Optional[GraphError]:
        for failure in self.failures:
            if failure.node_id == node_id:
                return failure
        return None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "mutation_id": self.mutation_id,
            "operation": self.operation,
            "success": self.success,
            "snapshot": self.snapshot.to_dict(),
            "events": [e.to_dict() for e in self.events],
            "failures": [f.to_dict() for f in self.failures],
            "node_id": self.node_id,
            "edge_id": self.edge_id,
            "propagation": self.propagation.to_dict() if self.propagation else None,
            "generation": self.generation.to_dict() if self.generation else None,
        }


# =============================================================================
# BASE STORE
# =============================================================================

class GraphStore(ABC):
    """Node ownership, ids, positions, selection and the trigger log."""

    MODE = ""

    def __init__(self, config: Optional[StoreConfig] = None):
        self._config = config or get_store_config()
        self._nodes: Dict[int, Node] = {}
        self._next_node_id = 1
        self._selected: Optional[Selection] = None
        self._log = TriggerLog(max_entries=self._config.max_log_entries)

        # Current mutation
        self._mutation_id: Optional[str] = None
        self._events: List[TriggerEntry] = []

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    @property
    def config(self) -> StoreConfig:
        return self._config

    @property
    def trigger_log(self) -> TriggerLog:
        return self._log

    @property
    def selected(self) -> Optional[Selection]:
        return self._selected

    def get_node(self, node_id: int) -> Node:
        """Copy of a node. Raises UnknownIdError."""
        return self._require_node(node_id).copy()

    def list_nodes(self) -> List[Node]:
        return [node.copy() for node in self._nodes.values()]

    def __len__(self) -> int:
        return len(self._nodes)

    def __contains__(self, node_id: object) -> bool:
        return node_id in self._nodes

    @abstractmethod
    def list_edges(self) -> List[Any]:
        """Current edges."""

    def _edge_records(self) -> List[EdgeRecord]:
        return []

    def _impulse_ids(self) -> List[int]:
        return []

    def snapshot(self) -> GraphSnapshot:
        """Consistent snapshot of the whole graph."""
        return GraphSnapshot(
            mode=self.MODE,
            nodes=[NodeRecord.from_node(n) for n in self._nodes.values()],
            edges=self._edge_records(),
            impulses=self._impulse_ids(),
            selected=(
                SelectionRecord(kind=self._selected.kind, id=self._selected.id)
                if self._selected else None
            ),
        )

    def export_json(self, path: Path) -> int:
        """
        Write the snapshot to a JSON file.

        Returns:
            Number of nodes written
        """
        snapshot = self.snapshot()
        Path(path).write_text(snapshot.to_json())
        logger.info(f"Exported {len(snapshot.nodes)} nodes, {len(snapshot.edges)} edges to {path}")
        return len(snapshot.nodes)

    # -------------------------------------------------------------------------
    # Mutation plumbing
    # -------------------------------------------------------------------------

    def _require_node(self, node_id: int) -> Node:
        node = self._nodes.get(node_id)
        if node is None:
            raise UnknownIdError("node", node_id)
        return node

    def _allocate_node_id(self) -> int:
        node_id = self._next_node_id
        self._next_node_id += 1
        return node_id

    def _normalize_position(self, position: PositionLike) -> Position:
        pos = Position.coerce(position)
        if not (math.isfinite(pos.x) and math.isfinite(pos.y)):
            raise GraphStoreError(f"Position must be finite, got {pos.to_tuple()}")
        if pos.is_in_bounds():
            return pos
        if not self._config.clamp_positions:
            raise GraphStoreError(f"Position {pos.to_tuple()} is outside [0, 1]")
        return pos.clamped()

    def _begin(self) -> str:
        self._mutation_id = str(uuid.uuid4())[:8]
        self._events = []
        return self._mutation_id

    def _record(self, trigger_type: TriggerType, message: str, **kwargs: Any) -> TriggerEntry:
        entry = self._log.record(
            trigger_type,
            message,
            source=type(self).__name__,
            mutation_id=self._mutation_id,
            **kwargs,
        )
        self._events.append(entry)
        return entry

    def _finish(self, operation: str, **kwargs: Any) -> MutationResult:
        result = MutationResult(
            mutation_id=self._mutation_id or "",
            operation=operation,
            snapshot=self.snapshot(),
            events=list(self._events),
            **kwargs,
        )
        self._mutation_id = None
        self._events = []

        if result.failures:
            logger.info(f"{operation} completed with {len(result.failures)} evaluation failure(s)")
        else:
            logger.debug(f"{operation} completed ({len(result.events)} events)")
        return result

    def _seed_ids(self) -> None:
        self._next_node_id = max(self._nodes, default=0) + 1

    # -------------------------------------------------------------------------
    # Shared mutations
    # -------------------------------------------------------------------------

    def select_node(self, node_id: Optional[int]) -> MutationResult:
        """Select a node, or clear the selection with None."""
        if node_id is not None:
            self._require_node(node_id)
        self._begin()
        self._selected = Selection("node", node_id) if node_id is not None else None
        return self._finish("select_node", node_id=node_id)

    def clear_selection(self) -> MutationResult:
        self._begin()
        self._selected = None
        return self._finish("clear_selection")

    def move_node(self, node_id: int, position: PositionLike) -> MutationResult:
        """Pure position update; nothing is re-evaluated."""
        node = self._require_node(node_id)
        new_position = self._normalize_position(position)

        self._begin()
        old_position = node.position
        node.position = new_position
        self._record(
            TriggerType.NODE_MOVED,
            f"'{node.label}' moved to ({new_position.x}, {new_position.y})",
            node_id=node.id,
            label=node.label,
            old_value=old_position.to_tuple(),
            new_value=new_position.to_tuple(),
            was_clamped=new_position != Position.coerce(position),
        )
        return self._finish("move_node", node_id=node.id)

    def _clear_selection_of(self, kind: str, element_id: int) -> None:
        if self._selected == Selection(kind, element_id):
            self._selected = None


# =============================================================================
# EXPRESSION MODE
# =============================================================================

class ExpressionGraphStore(GraphStore):
    """
    Graph whose node values are defined by expressions.

    Edges are re-derived from scratch after every mutation that can change
    them. Values are re-resolved on create (the new node only), on
    expression edits (the edited node and, when propagate_on_edit is set,
    everything downstream), on generation steps, and on explicit evaluate.
    Renames, moves and deletes leave values alone.
    """

    MODE = "expression"

    def __init__(self, config: Optional[StoreConfig] = None):
        super().__init__(config)
        self._dependency_graph = DependencyGraph()
        self._generations = GenerationalPropagator()
        self._failures: Dict[int, GraphError] = {}

    @classmethod
    def from_snapshot(
        cls,
        snapshot: GraphSnapshot,
        config: Optional[StoreConfig] = None,
    ) -> "ExpressionGraphStore":
        """
        Rebuild a store from a snapshot.

        Stored values are kept as they are; edges are re-derived from the
        expressions rather than read from the snapshot.
        """
        store = cls(config)
        for record in snapshot.nodes:
            node = record.to_node()
            if node.expression is None:
                node.expression = format_value(node.value)
            store._nodes[node.id] = node
        store._seed_ids()
        if snapshot.selected and snapshot.selected.kind == "node" and snapshot.selected.id in store._nodes:
            store._selected = Selection("node", snapshot.selected.id)
        store._rederive()
        logger.info(f"Loaded expression graph: {len(store._nodes)} nodes, {len(store.list_edges())} edges")
        return store

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    @property
    def dependency_graph(self) -> DependencyGraph:
        return self._dependency_graph

    @property
    def generation_root(self) -> Optional[int]:
        return self._generations.root_id

    @property
    def generation_depth(self) -> int:
        return self._generations.depth

    def list_edges(self) -> List[DerivedEdge]:
        return self._dependency_graph.edges()

    def derived_edges(self) -> List[DerivedEdge]:
        """Derive the edge set on demand from the current nodes."""
        return derive_edges(self._nodes.values(), self._config.reference_delimiter)

    def _edge_records(self) -> List[EdgeRecord]:
        return [EdgeRecord.from_derived(e) for e in self.list_edges()]

    def last_failure(self, node_id: int) -> Optional[GraphError]:
        """Failure from the node's most recent evaluation, if it failed."""
        return self._failures.get(node_id)

    def resolve(self, node_id: int) -> float:
        """
        Resolve a node's value without storing it.

        Raises the evaluation error directly; use evaluate() for the
        structured form.
        """
        node = self._require_node(node_id)
        return self._resolver().resolve(node)

    # -------------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------------

    def _resolver(self) -> DependencyResolver:
        return DependencyResolver(self._nodes.values(), self._config.reference_delimiter)

    def _rederive(self) -> None:
        self._dependency_graph = DependencyGraph.build(
            self._nodes.values(), self._config.reference_delimiter
        )

    def _evaluate_ids(self, node_ids: Sequence[int]) -> List[GraphError]:
        """Re-resolve the given nodes, storing values and collecting failures."""
        resolver = self._resolver()
        failures: List[GraphError] = []

        for node_id in node_ids:
            node = self._nodes[node_id]
            outcome = resolver.try_resolve(node)

            if outcome.success:
                old_value = node.value
                node.value = outcome.value
                self._failures.pop(node_id, None)
                self._record(
                    TriggerType.NODE_EVALUATED,
                    f"'{node.label}' evaluated to {format_value(node.value)}",
                    node_id=node.id,
                    label=node.label,
                    old_value=old_value,
                    new_value=node.value,
                )
            else:
                error = outcome.error
                self._failures[node_id] = error
                failures.append(error)
                self._record(
                    TriggerType.EVALUATION_FAILED,
                    f"'{node.label}' could not be evaluated: {error.message}",
                    node_id=node.id,
                    label=node.label,
                    old_value=node.value,
                    error_code=error.code.value,
                )

        return failures

    def _check_label(self, label: str) -> None:
        delimiter = self._config.reference_delimiter
        if not isinstance(label, str):
            raise GraphStoreError("Label must be a string")
        if delimiter in label:
            raise GraphStoreError(f"Label may not contain the reference delimiter {delimiter!r}")

    @staticmethod
    def _initial_expression(expression_or_value: Union[str, int, float]) -> str:
        if isinstance(expression_or_value, bool):
            raise GraphStoreError("Node expression must be a string or a number")
        if isinstance(expression_or_value, int):
            return str(expression_or_value)
        if isinstance(expression_or_value, float):
            if not math.isfinite(expression_or_value):
                raise GraphStoreError(f"Node value must be finite, got {expression_or_value}")
            return format_value(expression_or_value)
        if isinstance(expression_or_value, str):
            return expression_or_value
        raise GraphStoreError("Node expression must be a string or a number")

    # -------------------------------------------------------------------------
    # Mutations
    # -------------------------------------------------------------------------

    def create_node(
        self,
        expression_or_value: Union[str, int, float] = 1,
        label: str = DEFAULT_LABEL,
        position: PositionLike = (0.5, 0.5),
    ) -> MutationResult:
        """
        Add a node, compute its value once and select it.

        A failing initial expression leaves the configured default value and
        is reported in the result.
        """
        self._check_label(label)
        expression = self._initial_expression(expression_or_value)
        new_position = self._normalize_position(position)

        self._begin()
        node = Node(
            id=self._allocate_node_id(),
            label=label,
            position=new_position,
            value=self._config.default_value,
            expression=expression,
        )
        self._nodes[node.id] = node
        self._rederive()

        self._record(
            TriggerType.NODE_CREATED,
            f"'{node.label}' created with expression {expression}",
            node_id=node.id,
            label=node.label,
            new_value=expression,
        )
        failures = self._evaluate_ids([node.id])
        self._selected = Selection("node", node.id)

        return self._finish("create_node", failures=failures, node_id=node.id)

    def rename_node(self, node_id: int, new_label: str) -> MutationResult:
        """
        Change a label and rewrite every other expression that referenced it.

        Rewritten expressions are always persisted, so references keep
        pointing at the same node. Values are not re-evaluated.
        A label already carried by another node is rejected, since the
        rewritten references would then resolve to that node.
        """
        node = self._require_node(node_id)
        self._check_label(new_label)
        delimiter = self._config.reference_delimiter
        if any(n.label == new_label for n in self._nodes.values() if n.id != node.id):
            raise GraphStoreError(
                f"Label '{new_label}' is already used by another node; "
                f"references to '{node.label}' would resolve to it"
            )

        self._begin()
        old_label = node.label
        if new_label == old_label:
            return self._finish("rename_node", node_id=node.id)

        node.label = new_label
        self._record(
            TriggerType.NODE_RENAMED,
            f"label: {old_label} -> {new_label}",
            node_id=node.id,
            label=new_label,
            old_value=old_label,
            new_value=new_label,
        )

        for other in self._nodes.values():
            if other.id == node.id or other.expression is None:
                continue
            rewritten = rename_references(other.expression, old_label, new_label, delimiter)
            if rewritten != other.expression:
                old_expression = other.expression
                other.expression = rewritten
                self._record(
                    TriggerType.EXPRESSION_REWRITTEN,
                    f"'{other.label}' expression: {old_expression} -> {rewritten}",
                    node_id=other.id,
                    label=other.label,
                    old_value=old_expression,
                    new_value=rewritten,
                )

        self._rederive()
        return self._finish("rename_node", node_id=node.id)

    def edit_expression(self, node_id: int, new_expression: str) -> MutationResult:
        """
        Replace a node's expression, re-derive edges and re-resolve.

        With propagate_on_edit every transitive dependent is re-resolved as
        well, dependencies first.
        """
        node = self._require_node(node_id)
        if not isinstance(new_expression, str):
            raise GraphStoreError("Expression must be a string")

        self._begin()
        old_expression = node.expression
        node.expression = new_expression
        self._record(
            TriggerType.EXPRESSION_EDITED,
            f"'{node.label}' expression: {old_expression} -> {new_expression}",
            node_id=node.id,
            label=node.label,
            old_value=old_expression,
            new_value=new_expression,
        )
        self._rederive()

        to_evaluate = [node.id]
        if self._config.propagate_on_edit:
            for dependent in self._dependency_graph.get_recalculation_order([node.id]):
                if dependent != node.id:
                    to_evaluate.append(dependent)

        failures = self._evaluate_ids(to_evaluate)
        return self._finish("edit_expression", failures=failures, node_id=node.id)

    def evaluate(self, node_id: Optional[int] = None) -> MutationResult:
        """Explicit evaluate step for one node, or every node when None."""
        if node_id is not None:
            self._require_node(node_id)
            targets = [node_id]
        else:
            targets = self._dependency_graph.get_computation_order(self._nodes)

        self._begin()
        failures = self._evaluate_ids(targets)
        logger.info(f"Evaluated {len(targets)} node(s), {len(failures)} failure(s)")
        return self._finish("evaluate", failures=failures, node_id=node_id)

    def delete_node(self, node_id: int) -> MutationResult:
        """
        Remove a node and every derived edge touching it.

        Nodes that referenced it keep their values; their next evaluation
        reports the reference as unresolved.
        """
        node = self._require_node(node_id)

        self._begin()
        incident = [
            e for e in self._dependency_graph.edges()
            if node_id in (e.source, e.target)
        ]
        del self._nodes[node_id]
        self._failures.pop(node_id, None)
        self._clear_selection_of("node", node_id)
        if self._generations.root_id == node_id:
            self._generations = GenerationalPropagator()

        self._rederive()
        self._record(
            TriggerType.NODE_DELETED,
            f"'{node.label}' deleted",
            node_id=node.id,
            label=node.label,
            old_value=node.value,
            removed_edges=[e.to_dict() for e in incident],
        )
        return self._finish("delete_node", node_id=node_id)

    def step_generation(self, root_id: Optional[int] = None) -> MutationResult:
        """
        Re-resolve the next generation downstream of the root.

        Passing a root different from the current one restarts at depth 0.
        After the deepest generation the walk wraps back to the root.
        """
        if root_id is not None:
            self._require_node(root_id)
            if root_id != self._generations.root_id:
                self._generations.retarget(root_id)
        elif self._generations.root_id is None:
            raise GraphStoreError("No generation root; pass root_id")

        self._begin()
        step = self._generations.step(self._dependency_graph)
        root = self._nodes[step.root_id]
        self._record(
            TriggerType.GENERATION_STEP,
            (
                f"'{root.label}' wrapped to depth 0"
                if step.wrapped else
                f"'{root.label}' generation {step.depth}: "
                f"{', '.join(self._nodes[i].label for i in step.node_ids)}"
            ),
            node_id=root.id,
            label=root.label,
            new_value=step.depth,
            node_ids=list(step.node_ids),
            wrapped=step.wrapped,
        )
        failures = self._evaluate_ids(step.node_ids)
        return self._finish(
            "step_generation",
            failures=failures,
            node_id=root.id,
            generation=step,
        )


# =============================================================================
# TYPED-EDGE MODE
# =============================================================================

class TypedGraphStore(GraphStore):
    """
    Graph with plain numeric values and typed increment/decrement edges.

    Edges are first-class: created, edited and deleted directly, and always
    reference existing nodes.
    """

    MODE = "typed"

    def __init__(self, config: Optional[StoreConfig] = None):
        super().__init__(config)
        self._edges: Dict[int, TypedEdge] = {}
        self._next_edge_id = 1
        self._propagator = ImpulsePropagator()

    @classmethod
    def from_snapshot(
        cls,
        snapshot: GraphSnapshot,
        config: Optional[StoreConfig] = None,
    ) -> "TypedGraphStore":
        """Rebuild a store, including its impulse set, from a snapshot."""
        store = cls(config)
        for record in snapshot.nodes:
            node = record.to_node()
            node.expression = None
            store._nodes[node.id] = node
        for record in snapshot.edges:
            edge = record.to_typed()
            store._edges[edge.id] = edge
        store._seed_ids()
        store._next_edge_id = max(store._edges, default=0) + 1
        if snapshot.impulses:
            store._propagator.charge(snapshot.impulses)
        if snapshot.selected:
            known = store._nodes if snapshot.selected.kind == "node" else store._edges
            if snapshot.selected.id in known:
                store._selected = Selection(snapshot.selected.kind, snapshot.selected.id)
        logger.info(f"Loaded typed graph: {len(store._nodes)} nodes, {len(store._edges)} edges")
        return store

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    @property
    def impulses(self) -> List[int]:
        return self._propagator.impulses

    @property
    def marked(self) -> List[int]:
        """Nodes touched by impulses since the last reset."""
        return self._propagator.marked

    @property
    def propagator_state(self) -> PropagatorState:
        return self._propagator.state

    def get_edge(self, edge_id: int) -> TypedEdge:
        return self._require_edge(edge_id).copy()

    def list_edges(self) -> List[TypedEdge]:
        return [edge.copy() for edge in self._edges.values()]

    def outgoing_edges(self, node_id: int) -> List[TypedEdge]:
        return [e.copy() for e in self._edges.values() if e.source == node_id]

    def _edge_records(self) -> List[EdgeRecord]:
        return [EdgeRecord.from_typed(e) for e in self._edges.values()]

    def _impulse_ids(self) -> List[int]:
        return self._propagator.impulses

    def _require_edge(self, edge_id: int) -> TypedEdge:
        edge = self._edges.get(edge_id)
        if edge is None:
            raise UnknownIdError("edge", edge_id)
        return edge

    def _first_unconnected_pair(self) -> Tuple[int, int]:
        if len(self._nodes) < 2:
            raise GraphStoreError("Create at least two nodes before creating an edge")

        connected = {(e.source, e.target) for e in self._edges.values()}
        for source in self._nodes:
            for target in self._nodes:
                if source != target and (source, target) not in connected:
                    return source, target
        raise GraphStoreError("Graph is fully connected; no edge can be added")

    # -------------------------------------------------------------------------
    # Node mutations
    # -------------------------------------------------------------------------

    def create_node(
        self,
        value: float = 1.0,
        label: str = DEFAULT_LABEL,
        position: PositionLike = (0.5, 0.5),
    ) -> MutationResult:
        """Add a node and select it."""
        if isinstance(value, bool) or not isinstance(value, (int, float)) or not math.isfinite(value):
            raise GraphStoreError(f"Node value must be a finite number, got {value!r}")
        new_position = self._normalize_position(position)

        self._begin()
        node = Node(
            id=self._allocate_node_id(),
            label=label,
            position=new_position,
            value=float(value),
        )
        self._nodes[node.id] = node
        self._selected = Selection("node", node.id)
        self._record(
            TriggerType.NODE_CREATED,
            f"'{node.label}' created with value {format_value(node.value)}",
            node_id=node.id,
            label=node.label,
            new_value=node.value,
        )
        return self._finish("create_node", node_id=node.id)

    def rename_node(self, node_id: int, new_label: str) -> MutationResult:
        node = self._require_node(node_id)

        self._begin()
        old_label = node.label
        if new_label != old_label:
            node.label = new_label
            self._record(
                TriggerType.NODE_RENAMED,
                f"label: {old_label} -> {new_label}",
                node_id=node.id,
                label=new_label,
                old_value=old_label,
                new_value=new_label,
            )
        return self._finish("rename_node", node_id=node.id)

    def delete_node(self, node_id: int) -> MutationResult:
        """Remove a node and every edge into or out of it."""
        node = self._require_node(node_id)

        self._begin()
        incident = [
            e for e in self._edges.values()
            if node_id in (e.source, e.target)
        ]
        for edge in incident:
            del self._edges[edge.id]
            self._clear_selection_of("edge", edge.id)
            self._record(
                TriggerType.EDGE_DELETED,
                f"edge {edge.id} removed with '{node.label}'",
                edge_id=edge.id,
                old_value=edge.to_dict(),
            )

        del self._nodes[node_id]
        self._propagator.discard(node_id)
        self._clear_selection_of("node", node_id)
        self._record(
            TriggerType.NODE_DELETED,
            f"'{node.label}' deleted",
            node_id=node.id,
            label=node.label,
            old_value=node.value,
        )
        return self._finish("delete_node", node_id=node_id)

    def _adjust(self, node_id: int, delta: int, operation: str) -> MutationResult:
        node = self._require_node(node_id)

        self._begin()
        old_value = node.value
        node.value = old_value + delta
        self._propagator.charge([node.id])
        verb = "incremented" if delta > 0 else "decremented"
        self._record(
            TriggerType.VALUE_ADJUSTED,
            f"'{node.label}' manually {verb} to {format_value(node.value)}",
            node_id=node.id,
            label=node.label,
            old_value=old_value,
            new_value=node.value,
        )
        return self._finish(operation, node_id=node.id)

    def increment_node(self, node_id: int) -> MutationResult:
        """Add 1 to a node's value and charge it as an impulse."""
        return self._adjust(node_id, 1, "increment_node")

    def decrement_node(self, node_id: int) -> MutationResult:
        """Subtract 1 from a node's value and charge it as an impulse."""
        return self._adjust(node_id, -1, "decrement_node")

    # -------------------------------------------------------------------------
    # Edge mutations
    # -------------------------------------------------------------------------

    def select_edge(self, edge_id: Optional[int]) -> MutationResult:
        """Select an edge, or clear the selection with None."""
        if edge_id is not None:
            self._require_edge(edge_id)
        self._begin()
        self._selected = Selection("edge", edge_id) if edge_id is not None else None
        return self._finish("select_edge", edge_id=edge_id)

    def create_edge(
        self,
        source: Optional[int] = None,
        target: Optional[int] = None,
        kind: Union[EdgeKind, str] = EdgeKind.INCREMENT,
    ) -> MutationResult:
        """
        Add a typed edge and select it.

        Without endpoints the first ordered pair of distinct nodes that is
        not yet connected is used.
        """
        kind = _edge_kind(kind)
        if source is None and target is None:
            source, target = self._first_unconnected_pair()
        elif source is None or target is None:
            raise GraphStoreError("Pass both source and target, or neither")
        else:
            self._require_node(source)
            self._require_node(target)

        self._begin()
        edge = TypedEdge(id=self._next_edge_id, source=source, target=target, kind=kind)
        self._next_edge_id += 1
        self._edges[edge.id] = edge
        self._selected = Selection("edge", edge.id)
        self._record(
            TriggerType.EDGE_CREATED,
            f"'{self._nodes[source].label}' -> '{self._nodes[target].label}' ({kind.value})",
            edge_id=edge.id,
            new_value=edge.to_dict(),
        )
        return self._finish("create_edge", edge_id=edge.id)

    def update_edge(
        self,
        edge_id: int,
        source: Optional[int] = None,
        target: Optional[int] = None,
        kind: Optional[Union[EdgeKind, str]] = None,
    ) -> MutationResult:
        """Change any of an edge's endpoints or kind."""
        edge = self._require_edge(edge_id)
        if source is not None:
            self._require_node(source)
        if target is not None:
            self._require_node(target)
        new_kind = _edge_kind(kind) if kind is not None else None

        self._begin()
        before = edge.to_dict()
        if source is not None:
            edge.source = source
        if target is not None:
            edge.target = target
        if new_kind is not None:
            edge.kind = new_kind

        if edge.to_dict() != before:
            self._record(
                TriggerType.EDGE_UPDATED,
                f"edge {edge.id}: '{self._nodes[edge.source].label}' -> "
                f"'{self._nodes[edge.target].label}' ({edge.kind.value})",
                edge_id=edge.id,
                old_value=before,
                new_value=edge.to_dict(),
            )
        return self._finish("update_edge", edge_id=edge.id)

    def delete_edge(self, edge_id: int) -> MutationResult:
        edge = self._require_edge(edge_id)

        self._begin()
        del self._edges[edge_id]
        self._clear_selection_of("edge", edge_id)
        self._record(
            TriggerType.EDGE_DELETED,
            f"edge {edge.id} deleted",
            edge_id=edge.id,
            old_value=edge.to_dict(),
        )
        return self._finish("delete_edge", edge_id=edge_id)

    # -------------------------------------------------------------------------
    # Impulses
    # -------------------------------------------------------------------------

    def charge(self, node_ids: Iterable[int]) -> MutationResult:
        """Add nodes to the impulse set without changing their values."""
        ids = list(node_ids)
        for node_id in ids:
            self._require_node(node_id)

        self._begin()
        self._propagator.charge(ids)
        return self._finish("charge")

    def propagate(self) -> MutationResult:
        """
        Advance impulses one step.

        An empty impulse set is not an error: the step reports no change.
        """
        self._begin()
        step = self._propagator.step(self._nodes, list(self._edges.values()))

        for applied in step.applied:
            target = self._nodes[applied.target]
            self._record(
                TriggerType.IMPULSE_APPLIED,
                f"'{target.label}' {applied.kind.past_tense} to {format_value(applied.new_value)}",
                node_id=target.id,
                edge_id=applied.edge_id,
                label=target.label,
                old_value=applied.old_value,
                new_value=applied.new_value,
            )

        if not step.changed:
            logger.debug("Propagate: no impulses to push")
        return self._finish("propagate", propagation=step)

    def reset_impulses(self) -> MutationResult:
        """Clear the impulse set and all marks."""
        self._begin()
        cleared = self._propagator.impulses
        self._propagator.reset()
        self._record(
            TriggerType.IMPULSES_RESET,
            "impulses reset",
            old_value=cleared,
        )
        return self._finish("reset_impulses")
