"""Condition expressions and their compiler.

A WHERE / HAVING / ON predicate is either raw SQL text or a small tree:

    And(Or(Raw("a = :a"), Leaf("IN", "b", [1, 2])), Leaf("LIKE", "c", "x%"))

which compiles to::

    ((a = :a) OR (`b` IN (1, 2))) AND (`c` LIKE 'x%')

Leaf values are inlined through the dialect's literal quoting; equality
against a bound parameter is written as a :class:`Raw` fragment
(``"`name` = :name"``) so the value travels as a parameter.

The positional list form ``["AND", cond, ...]`` / ``["IN", col, values]``
and plain strings are accepted anywhere a condition is and coerced by
:func:`to_condition`.

Examples:
    >>> compiler = ConditionCompiler(lambda c: f"`{c}`", repr)
    >>> compiler.compile(and_())
    ''
    >>> compiler.compile(in_("id", []))
    '0'
    >>> compiler.compile(["OR", "a = 1", ["NOT IN", "b", [2]]])
    '(a = 1) OR (`b` NOT IN (2))'
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from dataclasses import dataclass
from enum import Enum
from typing import Any, Union

from tinyrecord.errors import InvalidOperatorError


class Operator(str, Enum):
    """Leaf operators."""

    IN = "IN"
    NOT_IN = "NOT IN"
    LIKE = "LIKE"
    NOT_LIKE = "NOT LIKE"
    OR_LIKE = "OR LIKE"
    OR_NOT_LIKE = "OR NOT LIKE"


@dataclass(frozen=True)
class Raw:
    """SQL text used verbatim."""

    text: str


@dataclass(frozen=True)
class And:
    operands: tuple[Any, ...] = ()


@dataclass(frozen=True)
class Or:
    operands: tuple[Any, ...] = ()


@dataclass(frozen=True)
class Leaf:
    """``column <operator> values`` with values inlined as literals."""

    operator: str
    column: str | None
    values: Any = None


Condition = Union[Raw, And, Or, Leaf]


def to_condition(value: Any) -> Condition | None:
    """Coerce a string, a legacy list or a condition into a condition."""
    if value is None:
        return None
    if isinstance(value, (Raw, And, Or, Leaf)):
        return value
    if isinstance(value, str):
        return Raw(value)
    if isinstance(value, (list, tuple)):
        if not value:
            return None
        head = str(value[0]).upper()
        if head == "AND":
            return And(tuple(value[1:]))
        if head == "OR":
            return Or(tuple(value[1:]))
        column = value[1] if len(value) > 1 else None
        values = value[2] if len(value) > 2 else None
        return Leaf(head, column, values)
    raise TypeError(f"Cannot use {type(value).__name__} as a condition")


# -- Builders ----------------------------------------------------------------


def and_(*operands: Any) -> And:
    return And(tuple(operands))


def or_(*operands: Any) -> Or:
    return Or(tuple(operands))


def in_(column: str, values: Any) -> Leaf:
    return Leaf(Operator.IN.value, column, values)


def not_in(column: str, values: Any) -> Leaf:
    return Leaf(Operator.NOT_IN.value, column, values)


def like(column: str, values: Any) -> Leaf:
    """Every pattern must match."""
    return Leaf(Operator.LIKE.value, column, values)


def not_like(column: str, values: Any) -> Leaf:
    return Leaf(Operator.NOT_LIKE.value, column, values)


def or_like(column: str, values: Any) -> Leaf:
    """Any pattern may match."""
    return Leaf(Operator.OR_LIKE.value, column, values)


def or_not_like(column: str, values: Any) -> Leaf:
    return Leaf(Operator.OR_NOT_LIKE.value, column, values)


# -- Compiler ----------------------------------------------------------------

_OPERATORS = {op.value for op in Operator}


class ConditionCompiler:
    """Compile condition expressions to SQL text.

    Args:
        quote_column: Identifier quoting for leaf columns.
        quote_literal: Literal quoting for leaf values.
    """

    def __init__(
        self,
        quote_column: Callable[[str], str],
        quote_literal: Callable[[Any], str],
    ) -> None:
        self.quote_column = quote_column
        self.quote_literal = quote_literal

    def compile(self, condition: Any) -> str:
        condition = to_condition(condition)
        if condition is None:
            return ""
        if isinstance(condition, Raw):
            return condition.text
        if isinstance(condition, And):
            return self._join("AND", condition.operands)
        if isinstance(condition, Or):
            return self._join("OR", condition.operands)
        return self._compile_leaf(condition)

    __call__ = compile

    def _join(self, keyword: str, operands: Iterable[Any]) -> str:
        parts = [self.compile(operand) for operand in operands]
        return f" {keyword} ".join(f"({part})" for part in parts if part != "")

    def _compile_leaf(self, leaf: Leaf) -> str:
        operator = str(leaf.operator).upper()
        if operator not in _OPERATORS:
            raise InvalidOperatorError(operator)
        if leaf.column is None or leaf.values is None:
            return ""

        column = self.quote_column(leaf.column)
        values = _as_list(leaf.values)

        if operator in (Operator.IN, Operator.NOT_IN):
            if not values:
                return "0" if operator == Operator.IN else ""
            literals = ", ".join(self.quote_literal(v) for v in values)
            return f"{column} {operator} ({literals})"

        if not values:
            return "0" if operator in (Operator.LIKE, Operator.OR_LIKE) else ""
        if operator in (Operator.LIKE, Operator.NOT_LIKE):
            keyword = "AND"
        else:
            keyword = "OR"
            operator = operator[len("OR ") :]
        terms = [f"{column} {operator} {self.quote_literal(v)}" for v in values]
        return f" {keyword} ".join(terms)


def _as_list(values: Any) -> list[Any]:
    if isinstance(values, (list, tuple, set, frozenset)):
        return list(values)
    return [values]


__all__ = [
    "Operator",
    "Raw",
    "And",
    "Or",
    "Leaf",
    "Condition",
    "to_condition",
    "and_",
    "or_",
    "in_",
    "not_in",
    "like",
    "not_like",
    "or_like",
    "or_not_like",
    "ConditionCompiler",
]
