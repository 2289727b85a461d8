"""
expressions/evaluator.py - Arithmetic evaluation of substituted expressions

Recursive-descent evaluator for the grammar left after reference
substitution:

    expression := term (('+' | '-') term)*
    term       := factor (('*' | '/') factor)*
    factor     := ('+' | '-') factor | number | '(' expression ')'
    number     := digits ['.' digits] [('e' | 'E') ['+' | '-'] digits]

Binary operators are left-associative. Whitespace is ignored.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import List
import logging
import math

from ..errors import ErrorCode, MalformedExpressionError

logger = logging.getLogger(__name__)


# =============================================================================
# TOKENS
# =============================================================================

@dataclass(frozen=True)
class Token:
    """A lexical token: 'number', 'op', 'lparen', 'rparen' or 'end'."""
    kind: str
    text: str
    position: int
    value: float = 0.0


_OPERATORS = "+-*/"

# Parentheses and unary signs nested deeper than this are rejected
MAX_NESTING_DEPTH = 100


def tokenize(text: str) -> List[Token]:
    """Split an arithmetic string into tokens."""
    tokens: List[Token] = []
    i = 0
    length = len(text)

    while i < length:
        char = text[i]

        if char.isspace():
            i += 1
            continue

        if char in _OPERATORS:
            tokens.append(Token("op", char, i))
            i += 1
            continue

        if char == "(":
            tokens.append(Token("lparen", char, i))
            i += 1
            continue

        if char == ")":
            tokens.append(Token("rparen", char, i))
            i += 1
            continue

        if char.isdigit() or char == ".":
            start = i
            while i < length and text[i].isdigit():
                i += 1
            if i < length and text[i] == ".":
                i += 1
                while i < length and text[i].isdigit():
                    i += 1
            # Exponent only if digits follow
            if i < length and text[i] in "eE":
                j = i + 1
                if j < length and text[j] in "+-":
                    j += 1
                if j < length and text[j].isdigit():
                    while j < length and text[j].isdigit():
                        j += 1
                    i = j

            literal = text[start:i]
            try:
                value = float(literal)
            except ValueError:
                raise MalformedExpressionError(
                    f"Invalid number '{literal}' at position {start}",
                    expression=text,
                    position=start,
                )
            tokens.append(Token("number", literal, start, value))
            continue

        raise MalformedExpressionError(
            f"Unexpected character '{char}' at position {i}",
            expression=text,
            position=i,
        )

    tokens.append(Token("end", "", length))
    return tokens


# =============================================================================
# PARSER
# =============================================================================

class ArithmeticParser:
    """Evaluates a token stream while parsing it."""

    def __init__(self, text: str):
        self._text = text
        self._tokens = tokenize(text)
        self._index = 0
        self._depth = 0

    def _peek(self) -> Token:
        return self._tokens[self._index]

    def _advance(self) -> Token:
        token = self._tokens[self._index]
        self._index += 1
        return token

    def _error(self, message: str, token: Token) -> MalformedExpressionError:
        return MalformedExpressionError(
            f"{message} at position {token.position}",
            expression=self._text,
            position=token.position,
        )

    def parse(self) -> float:
        if self._peek().kind == "end":
            raise self._error("Empty expression", self._peek())

        result = self._expression()

        token = self._peek()
        if token.kind != "end":
            raise self._error(f"Unexpected '{token.text}'", token)
        return result

    def _expression(self) -> float:
        result = self._term()
        while self._peek().kind == "op" and self._peek().text in "+-":
            op = self._advance().text
            right = self._term()
            result = result + right if op == "+" else result - right
        return result

    def _term(self) -> float:
        result = self._factor()
        while self._peek().kind == "op" and self._peek().text in "*/":
            op_token = self._advance()
            right = self._factor()
            if op_token.text == "*":
                result = result * right
            else:
                if right == 0:
                    raise MalformedExpressionError(
                        f"Division by zero at position {op_token.position}",
                        expression=self._text,
                        position=op_token.position,
                        code=ErrorCode.EXP_DIVISION_BY_ZERO,
                    )
                result = result / right
        return result

    def _factor(self) -> float:
        token = self._peek()

        if token.kind in ("op", "lparen"):
            self._depth += 1
            if self._depth > MAX_NESTING_DEPTH:
                raise MalformedExpressionError(
                    f"Expression nested deeper than {MAX_NESTING_DEPTH} levels at position {token.position}",
                    expression=self._text,
                    position=token.position,
                )
            try:
                return self._nested_factor(token)
            finally:
                self._depth -= 1

        return self._nested_factor(token)

    def _nested_factor(self, token: Token) -> float:
        if token.kind == "op" and token.text in "+-":
            self._advance()
            operand = self._factor()
            return operand if token.text == "+" else -operand

        if token.kind == "number":
            self._advance()
            return token.value

        if token.kind == "lparen":
            self._advance()
            result = self._expression()
            closing = self._peek()
            if closing.kind != "rparen":
                raise self._error("Expected ')'", closing)
            self._advance()
            return result

        if token.kind == "end":
            raise self._error("Unexpected end of expression", token)
        raise self._error(f"Unexpected '{token.text}'", token)


def evaluate_arithmetic(text: str) -> float:
    """
    Evaluate a fully substituted arithmetic expression.

    Raises:
        MalformedExpressionError: syntax error, division by zero or a
            non-finite result
    """
    if not isinstance(text, str):
        raise MalformedExpressionError(f"Expression must be a string, got {type(text).__name__}")

    result = ArithmeticParser(text).parse()

    if not math.isfinite(result):
        raise MalformedExpressionError(
            f"Expression '{text}' does not evaluate to a finite number",
            expression=text,
            code=ErrorCode.EXP_NON_FINITE,
        )

    logger.debug(f"Evaluated '{text}' -> {result}")
    return result
