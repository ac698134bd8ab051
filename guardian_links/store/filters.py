"""Filter-string helpers for record store queries.

The record store takes textual filters such as::

    student_id = "s1" || student_id = "s2"
    (guardian_id = "g1" && relationship != "other")

Callers build them with :func:`equals_clause` / :func:`build_or_filter`, which
escape every interpolated value. :func:`parse_filter` turns a filter string
into a small expression tree and :func:`build_filter_expression` compiles the
tree into a SQLAlchemy clause for the SQL-backed store.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from typing import Any, Iterable

from sqlalchemy import and_, not_, or_
from sqlalchemy.sql.elements import ClauseElement


class FilterSyntaxError(ValueError):
    """Raised when a filter string cannot be parsed or compiled."""


class FilterOperator(str, Enum):
    """Supported comparison operators."""

    EQUALS = "="
    NOT_EQUALS = "!="
    CONTAINS = "~"
    NOT_CONTAINS = "!~"


class LogicalOperator(str, Enum):
    """Supported boolean operators for filter composition."""

    AND = "&&"
    OR = "||"


@dataclass(frozen=True, slots=True)
class Comparison:
    """Single ``field <op> value`` clause."""

    field: str
    operator: FilterOperator
    value: Any

    def __post_init__(self) -> None:
        if not self.field or not self.field.strip():
            raise FilterSyntaxError("Comparison field cannot be empty.")
        if self.operator in (FilterOperator.CONTAINS, FilterOperator.NOT_CONTAINS) and not isinstance(
            self.value, str
        ):
            raise FilterSyntaxError(f"Operator '{self.operator.value}' expects a string value.")


@dataclass(frozen=True, slots=True)
class BooleanFilter:
    """Boolean composition of comparisons."""

    operator: LogicalOperator
    operands: tuple["FilterExpression", ...]

    def __post_init__(self) -> None:
        if len(self.operands) < 2:
            raise FilterSyntaxError(f"'{self.operator.value}' requires two or more operands.")


FilterExpression = Comparison | BooleanFilter


# ----------------------------------------------------------------- Builders
def escape_filter_value(value: str) -> str:
    """Escape backslashes and double quotes for interpolation into a filter."""
    return value.replace("\\", "\\\\").replace('"', '\\"')


def equals_clause(field: str, value: str) -> str:
    return f'{field} = "{escape_filter_value(value)}"'


def build_or_filter(field: str, values: Iterable[str]) -> str:
    """OR together one exact-match clause per value; ``""`` for no values."""
    return " || ".join(equals_clause(field, value) for value in values)


# ------------------------------------------------------------------ Parsing
_TOKEN_RE = re.compile(
    r"""
    (?P<lparen>\()
    |(?P<rparen>\))
    |(?P<and>&&)
    |(?P<or>\|\|)
    |(?P<op>!=|!~|=|~)
    |(?P<string>"(?:[^"\\]|\\.)*"|'(?:[^'\\]|\\.)*')
    |(?P<number>-?\d+(?:\.\d+)?)
    |(?P<word>[A-Za-z_][A-Za-z0-9_.]*)
    """,
    re.VERBOSE,
)
_ESCAPE_RE = re.compile(r"\\(.)", re.DOTALL)
_KEYWORDS = {"true": True, "false": False, "null": None}


@dataclass(frozen=True, slots=True)
class _Token:
    kind: str
    text: str
    position: int


def _tokenize(source: str) -> list[_Token]:
    tokens: list[_Token] = []
    position = 0
    length = len(source)
    while position < length:
        if source[position].isspace():
            position += 1
            continue
        match = _TOKEN_RE.match(source, position)
        if match is None:
            raise FilterSyntaxError(
                f"Unexpected character {source[position]!r} at position {position}."
            )
        tokens.append(_Token(match.lastgroup or "", match.group(), position))
        position = match.end()
    return tokens


class _Parser:
    def __init__(self, tokens: list[_Token]):
        self._tokens = tokens
        self._index = 0

    def parse(self) -> FilterExpression:
        expression = self._parse_or()
        if self._index < len(self._tokens):
            token = self._tokens[self._index]
            raise FilterSyntaxError(f"Unexpected {token.text!r} at position {token.position}.")
        return expression

    def _peek(self) -> _Token | None:
        return self._tokens[self._index] if self._index < len(self._tokens) else None

    def _next(self, expected: str) -> _Token:
        token = self._peek()
        if token is None:
            raise FilterSyntaxError(f"Unexpected end of filter, expected {expected}.")
        self._index += 1
        return token

    def _parse_or(self) -> FilterExpression:
        operands = [self._parse_and()]
        while (token := self._peek()) is not None and token.kind == "or":
            self._index += 1
            operands.append(self._parse_and())
        if len(operands) == 1:
            return operands[0]
        return BooleanFilter(LogicalOperator.OR, tuple(operands))

    def _parse_and(self) -> FilterExpression:
        operands = [self._parse_primary()]
        while (token := self._peek()) is not None and token.kind == "and":
            self._index += 1
            operands.append(self._parse_primary())
        if len(operands) == 1:
            return operands[0]
        return BooleanFilter(LogicalOperator.AND, tuple(operands))

    def _parse_primary(self) -> FilterExpression:
        token = self._next("a comparison or '('")
        if token.kind == "lparen":
            expression = self._parse_or()
            closing = self._next("')'")
            if closing.kind != "rparen":
                raise FilterSyntaxError(f"Expected ')' at position {closing.position}.")
            return expression
        if token.kind != "word" or token.text in _KEYWORDS:
            raise FilterSyntaxError(f"Expected a field name at position {token.position}.")

        operator = self._next("an operator")
        if operator.kind != "op":
            raise FilterSyntaxError(f"Expected an operator at position {operator.position}.")
        value = self._parse_value(self._next("a value"))
        return Comparison(token.text, FilterOperator(operator.text), value)

    @staticmethod
    def _parse_value(token: _Token) -> Any:
        if token.kind == "string":
            return _ESCAPE_RE.sub(r"\1", token.text[1:-1])
        if token.kind == "number":
            return float(token.text) if "." in token.text else int(token.text)
        if token.kind == "word" and token.text in _KEYWORDS:
            return _KEYWORDS[token.text]
        raise FilterSyntaxError(f"Expected a literal value at position {token.position}.")


def parse_filter(source: str) -> FilterExpression | None:
    """Parse a filter string; blank input yields ``None`` (no filtering)."""
    if not source or not source.strip():
        return None
    return _Parser(_tokenize(source)).parse()


# ---------------------------------------------------------------- Compiling
def _resolve_column(model, field: str):
    columns = model.__table__.columns
    if field not in columns:
        raise FilterSyntaxError(f"Unknown filter field '{field}' for {model.__tablename__}.")
    return getattr(model, field)


def _build_comparison(model, comparison: Comparison) -> ClauseElement:
    column = _resolve_column(model, comparison.field)
    operator = comparison.operator
    value = comparison.value

    if operator is FilterOperator.EQUALS:
        return column.is_(None) if value is None else column == value
    if operator is FilterOperator.NOT_EQUALS:
        # NULL counts as different from any concrete value.
        return column.is_not(None) if value is None else column.is_distinct_from(value)
    if operator is FilterOperator.CONTAINS:
        return column.contains(value, autoescape=True)
    if operator is FilterOperator.NOT_CONTAINS:
        return or_(column.is_(None), not_(column.contains(value, autoescape=True)))

    raise FilterSyntaxError(f"Unsupported filter operator: {operator}")


def build_filter_expression(model, filter_expression: FilterExpression) -> ClauseElement:
    """Construct a SQLAlchemy expression for the provided filter expression."""
    if isinstance(filter_expression, Comparison):
        return _build_comparison(model, filter_expression)
    if isinstance(filter_expression, BooleanFilter):
        compiled_operands = [
            build_filter_expression(model, operand) for operand in filter_expression.operands
        ]
        if filter_expression.operator is LogicalOperator.AND:
            return and_(*compiled_operands)
        if filter_expression.operator is LogicalOperator.OR:
            return or_(*compiled_operands)
        raise FilterSyntaxError(f"Unsupported logical operator: {filter_expression.operator}")

    raise TypeError(f"Unsupported filter expression type: {type(filter_expression)!r}")


__all__ = [
    "BooleanFilter",
    "Comparison",
    "FilterExpression",
    "FilterOperator",
    "FilterSyntaxError",
    "LogicalOperator",
    "build_filter_expression",
    "build_or_filter",
    "equals_clause",
    "escape_filter_value",
    "parse_filter",
]
