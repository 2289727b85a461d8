"""
nodeflow - computing and propagating values over a mutable dependency graph

Expression mode: node values are expressions referencing other nodes by
quoted label; edges are derived from the expressions.
Typed-edge mode: increment/decrement edges and stepwise impulse propagation.
"""

__version__ = "1.0.0"

from .config import StoreConfig, get_store_config, set_store_config
from .core import DerivedEdge, EdgeKind, Node, Position, TypedEdge
from .errors import (
    CyclicDependencyError,
    GraphError,
    GraphStoreError,
    MalformedExpressionError,
    NodeFlowError,
    UnknownIdError,
    UnresolvedReferenceError,
)
from .store import (
    ExpressionGraphStore,
    GraphSnapshot,
    MutationResult,
    TypedGraphStore,
)

__all__ = [
    "__version__",
    "StoreConfig",
    "get_store_config",
    "set_store_config",
    "DerivedEdge",
    "EdgeKind",
    "Node",
    "Position",
    "TypedEdge",
    "CyclicDependencyError",
    "GraphError",
    "GraphStoreError",
    "MalformedExpressionError",
    "NodeFlowError",
    "UnknownIdError",
    "UnresolvedReferenceError",
    "ExpressionGraphStore",
    "GraphSnapshot",
    "MutationResult",
    "TypedGraphStore",
]
