"""
expressions/references.py - Label references inside value expressions

A reference is a node label enclosed in a pair of delimiter characters
(double quote by default): '"A" + 1' references the node labelled A.

Delimiters pair up left to right. A trailing delimiter without a partner
does not close anything and the text after it yields no reference.
"""

from __future__ import annotations
from typing import List, Mapping, Tuple
import logging
import math

from ..errors import ErrorCode, MalformedExpressionError, UnresolvedReferenceError

logger = logging.getLogger(__name__)

DEFAULT_DELIMITER = '"'


def _split_segments(expression: str, delimiter: str) -> Tuple[List[str], bool]:
    """
    Split an expression on the delimiter.

    Odd-indexed segments are quoted. Returns the segments and whether the
    final odd-indexed segment is unterminated (odd delimiter count).
    """
    segments = expression.split(delimiter)
    dangling = (len(segments) - 1) % 2 == 1
    return segments, dangling


def extract_references(expression: str, delimiter: str = DEFAULT_DELIMITER) -> List[str]:
    """
    Return the quoted labels of an expression in order, duplicates kept.

    Never raises: non-string input and malformed quoting degrade to fewer
    (or no) references.
    """
    if not isinstance(expression, str) or delimiter not in expression:
        return []

    segments, dangling = _split_segments(expression, delimiter)
    references = segments[1::2]
    if dangling:
        references = references[:-1]
    return references


def format_number(value: float) -> str:
    """String form of a resolved value, safe to splice into arithmetic."""
    text = repr(float(value))
    if value < 0 or text.startswith("-"):
        return f"({text})"
    return text


def substitute_references(
    expression: str,
    values: Mapping[str, float],
    delimiter: str = DEFAULT_DELIMITER,
) -> str:
    """
    Replace every quoted label with the string form of its value.

    Delimiters of replaced references are dropped, everything else is kept
    verbatim (including an unterminated trailing fragment). Inserted numbers
    are never re-scanned.

    Raises:
        UnresolvedReferenceError: a referenced label has no entry in values
        MalformedExpressionError: a referenced value is not finite
    """
    segments, dangling = _split_segments(expression, delimiter)
    last_quoted = len(segments) - 1 if dangling else None

    parts: List[str] = []
    for index, segment in enumerate(segments):
        if index % 2 == 0:
            parts.append(segment)
        elif index == last_quoted:
            parts.append(delimiter + segment)
        else:
            if segment not in values:
                raise UnresolvedReferenceError(segment)
            value = values[segment]
            if not math.isfinite(value):
                raise MalformedExpressionError(
                    f"Value for '{segment}' is not finite: {value}",
                    expression=expression,
                    code=ErrorCode.EXP_NON_FINITE,
                )
            parts.append(format_number(value))

    return "".join(parts)


def rename_references(
    expression: str,
    old_label: str,
    new_label: str,
    delimiter: str = DEFAULT_DELIMITER,
) -> str:
    """
    Rewrite quoted references to old_label so they name new_label.

    Only exact quoted occurrences change; the same text outside delimiters
    or inside a longer label is left alone.
    """
    if not isinstance(expression, str) or delimiter not in expression:
        return expression

    segments, dangling = _split_segments(expression, delimiter)
    last_quoted = len(segments) - 1 if dangling else None

    for index in range(1, len(segments), 2):
        if index != last_quoted and segments[index] == old_label:
            segments[index] = new_label

    return delimiter.join(segments)

