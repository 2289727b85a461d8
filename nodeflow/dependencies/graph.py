"""
nodeflow Dependency Graph

Derives the directed edge set of an expression graph from node expressions
and answers downstream queries over it.

Edges are never stored independently: an edge source -> target exists iff
the target's expression references the source's current label. The edge
set is rebuilt from scratch on every call, so deriving twice over the same
nodes yields the same edges.
"""

from __future__ import annotations
from typing import Any, Dict, Iterable, List, Set
import logging

import networkx as nx

from ..core.model import DerivedEdge, Node
from ..expressions.references import DEFAULT_DELIMITER, extract_references
from ..expressions.resolver import build_label_index

logger = logging.getLogger(__name__)


# =============================================================================
# EDGE DERIVATION
# =============================================================================

def derive_edges(nodes: Iterable[Node], delimiter: str = DEFAULT_DELIMITER) -> List[DerivedEdge]:
    """
    Build the complete edge set from node expressions.

    One edge per (referenced node -> referencing node) pair, in node order
    then reference order. Unresolvable labels are skipped; a label may be
    mid-edit. Repeated references produce a single edge.
    """
    node_list = list(nodes)
    by_label = build_label_index(node_list)

    edges: List[DerivedEdge] = []
    seen: Set[DerivedEdge] = set()

    for node in node_list:
        if node.expression is None:
            continue
        for label in extract_references(node.expression, delimiter):
            source = by_label.get(label)
            if source is None:
                continue
            edge = DerivedEdge(source=source.id, target=node.id)
            if edge not in seen:
                seen.add(edge)
                edges.append(edge)

    return edges


# =============================================================================
# DEPENDENCY GRAPH
# =============================================================================

class DependencyGraph:
    """
    networkx view of derived edges.

    Node ids are graph nodes; an edge u -> v means v depends on u.
    """

    def __init__(self):
        self._graph = nx.DiGraph()
        self._edges: List[DerivedEdge] = []
        self._order: Dict[int, int] = {}

    @classmethod
    def build(cls, nodes: Iterable[Node], delimiter: str = DEFAULT_DELIMITER) -> "DependencyGraph":
        """Build the graph for the current node collection."""
        node_list = list(nodes)
        graph = cls()

        for position, node in enumerate(node_list):
            graph._graph.add_node(node.id, label=node.label)
            graph._order[node.id] = position

        graph._edges = derive_edges(node_list, delimiter)
        for edge in graph._edges:
            graph._graph.add_edge(edge.source, edge.target)

        logger.debug(
            f"Dependency graph built: {graph._graph.number_of_nodes()} nodes, "
            f"{graph._graph.number_of_edges()} edges"
        )
        return graph

    @property
    def graph(self) -> nx.DiGraph:
        """Get the underlying networkx graph."""
        return self._graph

    def edges(self) -> List[DerivedEdge]:
        """Derived edges in derivation order."""
        return list(self._edges)

    def has_node(self, node_id: int) -> bool:
        return node_id in self._graph

    def _in_store_order(self, ids: Iterable[int]) -> List[int]:
        return sorted(ids, key=lambda i: self._order.get(i, len(self._order)))

    def get_direct_dependencies(self, node_id: int) -> List[int]:
        """Nodes this node's expression references."""
        if node_id not in self._graph:
            return []
        return self._in_store_order(self._graph.predecessors(node_id))

    def get_direct_dependents(self, node_id: int) -> List[int]:
        """Nodes whose expressions reference this node."""
        if node_id not in self._graph:
            return []
        return self._in_store_order(self._graph.successors(node_id))

    def get_all_dependencies(self, node_id: int) -> Set[int]:
        """All upstream nodes (transitive closure)."""
        if node_id not in self._graph:
            return set()
        return set(nx.ancestors(self._graph, node_id))

    def get_all_downstream(self, node_id: int) -> Set[int]:
        """All downstream dependents (transitive closure)."""
        if node_id not in self._graph:
            return set()
        return set(nx.descendants(self._graph, node_id))

    def get_nodes_at_depth(self, root_id: int, depth: int) -> List[int]:
        """
        Nodes whose shortest derived-edge distance from root is exactly depth.

        Depth 0 is the root itself.
        """
        if root_id not in self._graph or depth < 0:
            return []
        return self._in_store_order(nx.descendants_at_distance(self._graph, root_id, depth))

    def get_computation_order(self, node_ids: Iterable[int]) -> List[int]:
        """
        Order node ids dependencies first.

        Members of a reference cycle have no valid order among themselves
        and keep store order within their strongly connected component.
        """
        wanted = set(node_ids)
        if not wanted:
            return []

        condensed = nx.condensation(self._graph)
        members = condensed.graph["mapping"]

        def component_key(component: int) -> int:
            ids = condensed.nodes[component]["members"]
            return min(self._order.get(i, len(self._order)) for i in ids)

        ordered: List[int] = []
        for component in nx.lexicographical_topological_sort(condensed, key=component_key):
            ids = condensed.nodes[component]["members"]
            ordered.extend(i for i in self._in_store_order(ids) if i in wanted)

        # Ids not in the graph go last
        ordered.extend(self._in_store_order(i for i in wanted if i not in members))
        return ordered

    def get_recalculation_order(self, changed: Iterable[int]) -> List[int]:
        """All downstream dependents of the changed nodes, dependencies first."""
        to_recalculate: Set[int] = set()
        for node_id in changed:
            to_recalculate.update(self.get_all_downstream(node_id))
        return self.get_computation_order(to_recalculate)

    def find_cycles(self) -> List[List[int]]:
        """Reference cycles, each as a list of node ids."""
        return [list(cycle) for cycle in nx.simple_cycles(self._graph)]

    def is_acyclic(self) -> bool:
        return nx.is_directed_acyclic_graph(self._graph)

    def to_dict(self) -> Dict[str, Any]:
        """Serialize for inspection."""
        return {
            "nodes": {
                node_id: {
                    "label": data.get("label"),
                    "depends_on": self.get_direct_dependencies(node_id),
                    "depended_by": self.get_direct_dependents(node_id),
                }
                for node_id, data in self._graph.nodes(data=True)
            },
            "edges": [edge.to_dict() for edge in self.edges()],
        }
