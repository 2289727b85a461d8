"""
expressions/ - Value expression pipeline

extract references -> resolve referenced nodes -> substitute -> evaluate.
"""

from .references import (
    DEFAULT_DELIMITER,
    extract_references,
    substitute_references,
    rename_references,
    format_number,
)
from .evaluator import (
    ArithmeticParser,
    evaluate_arithmetic,
    tokenize,
)
from .resolver import (
    DependencyResolver,
    EvaluationOutcome,
    build_label_index,
)

__all__ = [
    # References
    "DEFAULT_DELIMITER",
    "extract_references",
    "substitute_references",
    "rename_references",
    "format_number",
    # Evaluator
    "ArithmeticParser",
    "evaluate_arithmetic",
    "tokenize",
    # Resolver
    "DependencyResolver",
    "EvaluationOutcome",
    "build_label_index",
]
