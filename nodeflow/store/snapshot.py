"""
store/snapshot.py - Graph snapshot contract

Canonical structured export of a graph: nodes with every attribute, edges
(derived pairs or typed edges), and the process-scoped impulse set and
selection. Snapshots round-trip through JSON unchanged in meaning; floats
are written with full precision.

Typed edges also accept the key "type" for their kind, the name used by
older exported graph files.
"""

from __future__ import annotations
from typing import Any, Dict, List, Literal, Optional
import logging

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, model_validator

from ..core.model import DerivedEdge, EdgeKind, Node, Position, TypedEdge

logger = logging.getLogger(__name__)

SCHEMA_VERSION = "1.0.0"

GraphMode = Literal["expression", "typed"]


class NodeRecord(BaseModel):
    """Serialized node."""
    model_config = ConfigDict(extra="ignore")

    id: int
    label: str
    x: float = Field(ge=0.0, le=1.0)
    y: float = Field(ge=0.0, le=1.0)
    value: float = Field(allow_inf_nan=False)
    expression: Optional[str] = None

    @classmethod
    def from_node(cls, node: Node) -> "NodeRecord":
        return cls(
            id=node.id,
            label=node.label,
            x=node.position.x,
            y=node.position.y,
            value=node.value,
            expression=node.expression,
        )

    def to_node(self) -> Node:
        return Node(
            id=self.id,
            label=self.label,
            position=Position(x=self.x, y=self.y),
            value=self.value,
            expression=self.expression,
        )


class EdgeRecord(BaseModel):
    """Serialized edge; id and kind are set for typed edges only."""
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    source: int
    target: int
    id: Optional[int] = None
    kind: Optional[EdgeKind] = Field(
        default=None,
        validation_alias=AliasChoices("kind", "type"),
    )

    @classmethod
    def from_derived(cls, edge: DerivedEdge) -> "EdgeRecord":
        return cls(source=edge.source, target=edge.target)

    @classmethod
    def from_typed(cls, edge: TypedEdge) -> "EdgeRecord":
        return cls(source=edge.source, target=edge.target, id=edge.id, kind=edge.kind)

    def to_typed(self) -> TypedEdge:
        if self.id is None:
            raise ValueError(f"Typed edge {self.source}->{self.target} has no id")
        return TypedEdge(
            id=self.id,
            source=self.source,
            target=self.target,
            kind=self.kind or EdgeKind.INCREMENT,
        )


class SelectionRecord(BaseModel):
    """Currently selected element."""
    kind: Literal["node", "edge"]
    id: int


class GraphSnapshot(BaseModel):
    """Complete, consistent graph state returned by every mutation."""
    model_config = ConfigDict(extra="ignore")

    schema_version: str = SCHEMA_VERSION
    mode: GraphMode = "expression"
    nodes: List[NodeRecord] = Field(default_factory=list)
    edges: List[EdgeRecord] = Field(default_factory=list)
    impulses: List[int] = Field(default_factory=list)
    selected: Optional[SelectionRecord] = None

    @model_validator(mode="after")
    def _check_references(self) -> "GraphSnapshot":
        node_ids = [n.id for n in self.nodes]
        if len(set(node_ids)) != len(node_ids):
            raise ValueError("Duplicate node ids in snapshot")

        known = set(node_ids)
        for edge in self.edges:
            if edge.source not in known or edge.target not in known:
                raise ValueError(
                    f"Edge {edge.source}->{edge.target} references a missing node"
                )
            if self.mode == "typed" and edge.id is None:
                raise ValueError(f"Typed edge {edge.source}->{edge.target} has no id")

        if self.mode == "typed":
            edge_ids = [e.id for e in self.edges]
            if len(set(edge_ids)) != len(edge_ids):
                raise ValueError("Duplicate edge ids in snapshot")

        for node_id in self.impulses:
            if node_id not in known:
                raise ValueError(f"Impulse references missing node {node_id}")
        return self

    def node(self, node_id: int) -> Optional[NodeRecord]:
        for record in self.nodes:
            if record.id == node_id:
                return record
        return None

    def values(self) -> Dict[str, float]:
        """label -> value, first node wins on duplicate labels."""
        result: Dict[str, float] = {}
        for record in self.nodes:
            result.setdefault(record.label, record.value)
        return result

    def to_dict(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", exclude_none=True)

    def to_json(self, indent: Optional[int] = 2) -> str:
        return self.model_dump_json(indent=indent, exclude_none=True)

    @classmethod
    def from_json(cls, data: str) -> "GraphSnapshot":
        return cls.model_validate_json(data)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "GraphSnapshot":
        return cls.model_validate(data)
