"""
errors/taxonomy.py - Error classification for graph evaluation

Two layers:
- Exceptions (NodeFlowError and subclasses) raised by the expression
  pipeline and the stores.
- GraphError records: structured, serializable failures that the stores
  attach to a node instead of letting an evaluation exception escape a
  mutation.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence
import uuid


class ErrorSeverity(Enum):
    """Error severity levels."""
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class ErrorCategory(Enum):
    """Error categories."""
    # Expression syntax / arithmetic (1xxx)
    EXPRESSION = "expression"

    # Reference resolution (2xxx)
    REFERENCE = "reference"

    # Dependency structure (3xxx)
    DEPENDENCY = "dependency"

    # Store / mutation errors (4xxx)
    STATE = "state"


class ErrorCode(Enum):
    """Specific error codes."""

    # Expression (1xxx)
    EXP_MALFORMED = 1001
    EXP_DIVISION_BY_ZERO = 1002
    EXP_NON_FINITE = 1003

    # Reference (2xxx)
    REF_UNRESOLVED = 2001

    # Dependency (3xxx)
    DEP_CYCLIC = 3001

    # State (4xxx)
    STA_UNKNOWN_ID = 4001
    STA_INVALID_MUTATION = 4002


# =============================================================================
# EXCEPTIONS
# =============================================================================

class NodeFlowError(Exception):
    """Base exception for graph evaluation and mutation errors."""

    code: ErrorCode = ErrorCode.STA_INVALID_MUTATION
    category: ErrorCategory = ErrorCategory.STATE


class MalformedExpressionError(NodeFlowError):
    """Arithmetic syntax error, division by zero or non-finite result."""

    category = ErrorCategory.EXPRESSION

    def __init__(
        self,
        message: str,
        expression: str = "",
        position: Optional[int] = None,
        code: ErrorCode = ErrorCode.EXP_MALFORMED,
    ):
        self.expression = expression
        self.position = position
        self.code = code
        super().__init__(message)


class UnresolvedReferenceError(NodeFlowError):
    """A quoted label does not match any live node."""

    code = ErrorCode.REF_UNRESOLVED
    category = ErrorCategory.REFERENCE

    def __init__(self, label: str):
        self.label = label
        super().__init__(f"Unresolved reference: '{label}'")


class CyclicDependencyError(NodeFlowError):
    """A reference chain revisits a label already being resolved."""

    code = ErrorCode.DEP_CYCLIC
    category = ErrorCategory.DEPENDENCY

    def __init__(self, cycle: Sequence[str]):
        self.cycle = list(cycle)
        super().__init__(f"Cyclic dependency detected: {' -> '.join(self.cycle)}")


class UnknownIdError(NodeFlowError, KeyError):
    """A mutation references a node or edge id not present in the graph."""

    code = ErrorCode.STA_UNKNOWN_ID

    def __init__(self, kind: str, element_id: Any):
        self.kind = kind
        self.element_id = element_id
        super().__init__(f"Unknown {kind} id: {element_id}")

    def __str__(self) -> str:
        # KeyError would repr() the message
        return self.args[0]


class GraphStoreError(NodeFlowError):
    """A mutation is rejected because it cannot be applied."""

    code = ErrorCode.STA_INVALID_MUTATION


# =============================================================================
# STRUCTURED ERROR RECORD
# =============================================================================

@dataclass
class GraphError:
    """Structured error representation attached to a node."""

    error_id: str = field(default_factory=lambda: uuid.uuid4().hex[:8])

    code: ErrorCode = ErrorCode.EXP_MALFORMED
    category: ErrorCategory = ErrorCategory.EXPRESSION
    severity: ErrorSeverity = ErrorSeverity.ERROR

    message: str = ""
    detail: str = ""

    # Context
    source: str = ""
    node_id: Optional[int] = None
    node_label: Optional[str] = None
    expression: Optional[str] = None

    # Cycle members or the unresolved label
    related: List[str] = field(default_factory=list)

    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "error_id": self.error_id,
            "code": self.code.value,
            "category": self.category.value,
            "severity": self.severity.value,
            "message": self.message,
            "detail": self.detail,
            "source": self.source,
            "node_id": self.node_id,
            "node_label": self.node_label,
            "expression": self.expression,
            "related": list(self.related),
            "created_at": self.created_at.isoformat(),
        }


def error_from_exception(
    exc: NodeFlowError,
    node_id: Optional[int] = None,
    node_label: Optional[str] = None,
    expression: Optional[str] = None,
    source: str = "DependencyResolver",
) -> GraphError:
    """Factory turning a raised NodeFlowError into a GraphError record."""
    related: List[str] = []
    if isinstance(exc, CyclicDependencyError):
        related = list(exc.cycle)
    elif isinstance(exc, UnresolvedReferenceError):
        related = [exc.label]

    return GraphError(
        code=exc.code,
        category=exc.category,
        severity=ErrorSeverity.ERROR,
        message=str(exc),
        detail=type(exc).__name__,
        source=source,
        node_id=node_id,
        node_label=node_label,
        expression=expression,
        related=related,
    )
