"""
core/ - Graph data model
"""

from .model import (
    EdgeKind,
    Position,
    Node,
    DerivedEdge,
    TypedEdge,
)

__all__ = [
    "EdgeKind",
    "Position",
    "Node",
    "DerivedEdge",
    "TypedEdge",
]
