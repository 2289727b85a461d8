"""
errors/ - Error Taxonomy

Exceptions raised by the expression pipeline and graph stores, plus the
structured GraphError record attached to nodes whose evaluation failed.
"""

from .taxonomy import (
    ErrorSeverity,
    ErrorCategory,
    ErrorCode,
    NodeFlowError,
    MalformedExpressionError,
    UnresolvedReferenceError,
    CyclicDependencyError,
    UnknownIdError,
    GraphStoreError,
    GraphError,
    error_from_exception,
)

__all__ = [
    "ErrorSeverity",
    "ErrorCategory",
    "ErrorCode",
    "NodeFlowError",
    "MalformedExpressionError",
    "UnresolvedReferenceError",
    "CyclicDependencyError",
    "UnknownIdError",
    "GraphStoreError",
    "GraphError",
    "error_from_exception",
]
