"""
Unit tests for expressions/references.py

Tests reference extraction, substitution and rename rewriting.
"""

import pytest

from nodeflow.errors import ErrorCode, MalformedExpressionError, UnresolvedReferenceError
from nodeflow.expressions.references import (
    extract_references,
    format_number,
    rename_references,
    substitute_references,
)


class TestExtractReferences:
    """Test extract_references."""

    def test_no_references(self):
        assert extract_references("1 + 2") == []

    def test_single_reference(self):
        assert extract_references('"A" + 1') == ["A"]

    def test_order_and_duplicates_preserved(self):
        """References come back in order, repeated ones included."""
        assert extract_references('"B" * "A" + "B"') == ["B", "A", "B"]

    def test_labels_with_spaces(self):
        assert extract_references('"New node" / 2') == ["New node"]

    def test_unterminated_reference_dropped(self):
        """A dangling delimiter yields no reference for its segment."""
        assert extract_references('"A" + "B') == ["A"]
        assert extract_references('1 + "A') == []

    def test_empty_and_non_string(self):
        assert extract_references("") == []
        assert extract_references(None) == []

    def test_custom_delimiter(self):
        assert extract_references("'A' + 'B'", delimiter="'") == ["A", "B"]


class TestSubstituteReferences:
    """Test substitute_references."""

    def test_replaces_references(self):
        assert substitute_references('"A" + 1', {"A": 2.0}) == "2.0 + 1"

    def test_preserves_other_characters(self):
        result = substitute_references('( "A"*"B" )', {"A": 1.5, "B": 4.0})
        assert result == "( 1.5*4.0 )"

    def test_negative_values_parenthesized(self):
        assert substitute_references('2-"A"', {"A": -3.0}) == "2-(-3.0)"

    def test_missing_mapping_raises(self):
        with pytest.raises(UnresolvedReferenceError) as exc_info:
            substitute_references('"A" + "Z"', {"A": 1.0})
        assert exc_info.value.label == "Z"

    def test_inserted_text_not_rescanned(self):
        """A label containing digits is replaced once, not re-substituted."""
        result = substitute_references('"1" + "2"', {"1": 2.0, "2": 1.0})
        assert result == "2.0 + 1.0"

    def test_dangling_fragment_kept_verbatim(self):
        assert substitute_references('"A" + "B', {"A": 1.0}) == '1.0 + "B'

    def test_non_finite_value_is_malformed(self):
        with pytest.raises(MalformedExpressionError) as exc_info:
            substitute_references('"A" + 1', {"A": float("inf")})
        assert exc_info.value.code == ErrorCode.EXP_NON_FINITE


class TestFormatNumber:
    """Test format_number."""

    def test_full_precision(self):
        assert float(format_number(0.1 + 0.2)) == 0.1 + 0.2

    def test_negative(self):
        assert format_number(-1.0) == "(-1.0)"


class TestRenameReferences:
    """Test rename_references."""

    def test_rewrites_exact_references(self):
        assert rename_references('"A" + "A" * 2', "A", "Z") == '"Z" + "Z" * 2'

    def test_leaves_other_labels(self):
        assert rename_references('"AB" + "A"', "A", "Z") == '"AB" + "Z"'

    def test_leaves_unquoted_text(self):
        assert rename_references('A + "B"', "A", "Z") == 'A + "B"'

    def test_leaves_dangling_fragment(self):
        assert rename_references('"B" + "A', "A", "Z") == '"B" + "A'
