"""
store/ - Graph stores and snapshot contract
"""

from .graph_store import (
    DEFAULT_LABEL,
    ExpressionGraphStore,
    GraphStore,
    MutationResult,
    Selection,
    TypedGraphStore,
    format_value,
)
from .snapshot import (
    SCHEMA_VERSION,
    EdgeRecord,
    GraphSnapshot,
    NodeRecord,
    SelectionRecord,
)

__all__ = [
    # Stores
    "DEFAULT_LABEL",
    "ExpressionGraphStore",
    "GraphStore",
    "MutationResult",
    "Selection",
    "TypedGraphStore",
    "format_value",
    # Snapshot
    "SCHEMA_VERSION",
    "EdgeRecord",
    "GraphSnapshot",
    "NodeRecord",
    "SelectionRecord",
]
