"""
expressions/resolver.py - Recursive value resolution

Resolves a node's value from its expression: every referenced node is
resolved through its own expression (never its cached value, which may be
stale), the results are substituted and the arithmetic is evaluated.

The reference chain is walked with an explicit stack rather than Python
recursion, so long chains do not exhaust the interpreter stack. Revisiting a
node that is still on the chain raises CyclicDependencyError.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional
import logging

from ..core.model import Node
from ..errors import (
    CyclicDependencyError,
    GraphError,
    NodeFlowError,
    UnresolvedReferenceError,
    error_from_exception,
)
from .evaluator import evaluate_arithmetic
from .references import DEFAULT_DELIMITER, extract_references, substitute_references

logger = logging.getLogger(__name__)


def build_label_index(nodes: Iterable[Node]) -> Dict[str, Node]:
    """Map label -> node. With duplicate labels the first node wins."""
    index: Dict[str, Node] = {}
    for node in nodes:
        if node.label in index:
            logger.warning(
                f"Duplicate label '{node.label}' on nodes {index[node.label].id} and {node.id}; "
                f"references resolve to node {index[node.label].id}"
            )
            continue
        index[node.label] = node
    return index


@dataclass
class EvaluationOutcome:
    """Result of resolving one node: a value or a structured failure."""
    node_id: int
    value: Optional[float] = None
    error: Optional[GraphError] = None

    @property
    def success(self) -> bool:
        return self.error is None


@dataclass
class _Frame:
    """A node on the reference chain and the references it is waiting on."""
    node: Node
    references: List[str]
    position: int = 0
    pending: Optional[str] = None
    values: Dict[str, float] = field(default_factory=dict)


class DependencyResolver:
    """
    Resolves node values over a fixed node collection.

    Build a new resolver after the node collection changes: the label index
    is computed once at construction and resolved values are kept for the
    resolver's lifetime.
    """

    def __init__(self, nodes: Iterable[Node], delimiter: str = DEFAULT_DELIMITER):
        self._nodes: List[Node] = list(nodes)
        self._delimiter = delimiter
        self._by_label = build_label_index(self._nodes)
        self._resolved: Dict[int, float] = {}

    def resolve(self, node: Node) -> float:
        """
        Compute a node's value from its expression.

        Raises:
            MalformedExpressionError: arithmetic failure in this node or a dependency
            UnresolvedReferenceError: a referenced label matches no node
            CyclicDependencyError: the reference chain loops back
        """
        if node.expression is None:
            return node.value

        resolved = self._resolved
        if node.id in resolved:
            return resolved[node.id]

        # Reference chain currently being resolved, root first
        chain: List[_Frame] = [self._frame(node)]
        on_chain: Dict[int, int] = {node.id: 0}

        while chain:
            frame = chain[-1]

            if frame.position < len(frame.references):
                label = frame.references[frame.position]
                frame.position += 1

                referenced = self._by_label.get(label)
                if referenced is None:
                    raise UnresolvedReferenceError(label)
                if referenced.expression is None:
                    frame.values[label] = referenced.value
                    continue
                if referenced.id in resolved:
                    frame.values[label] = resolved[referenced.id]
                    continue
                if referenced.id in on_chain:
                    start = on_chain[referenced.id]
                    raise CyclicDependencyError(
                        [f.node.label for f in chain[start:]] + [referenced.label]
                    )

                frame.pending = label
                on_chain[referenced.id] = len(chain)
                chain.append(self._frame(referenced))
                continue

            substituted = substitute_references(frame.node.expression, frame.values, self._delimiter)
            value = evaluate_arithmetic(substituted)
            resolved[frame.node.id] = value

            chain.pop()
            del on_chain[frame.node.id]
            if chain:
                parent = chain[-1]
                parent.values[parent.pending] = value

        return resolved[node.id]

    def _frame(self, node: Node) -> "_Frame":
        # Repeated labels are resolved once
        references = list(dict.fromkeys(extract_references(node.expression, self._delimiter)))
        return _Frame(node=node, references=references)

    def try_resolve(self, node: Node) -> EvaluationOutcome:
        """Resolve a node, reporting failures as a GraphError instead of raising."""
        try:
            value = self.resolve(node)
        except NodeFlowError as e:
            logger.warning(f"Evaluation of '{node.label}' (id {node.id}) failed: {e}")
            return EvaluationOutcome(
                node_id=node.id,
                error=error_from_exception(
                    e,
                    node_id=node.id,
                    node_label=node.label,
                    expression=node.expression,
                ),
            )
        return EvaluationOutcome(node_id=node.id, value=value)
