"""Store-agnostic row predicates.

Predicates are small immutable value objects. Adapters translate them to
their own query language (SQLAlchemy expressions, in-memory filtering).

Example:
    >>> from gmao.foundation.domain.predicates import eq, ne
    >>> where = eq("group_id", "g-1") & ne("equipment_id", "eq-1")
    >>> where.matches({"group_id": "g-1", "equipment_id": "eq-2"})
    True
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from enum import StrEnum
from typing import Any, assert_never


class Operator(StrEnum):
    """Comparison operators supported by every data store adapter."""

    EQ = "eq"
    NE = "ne"
    IN = "in"
    NOT_NULL = "not_null"


@dataclass(frozen=True, slots=True)
class Condition:
    """A single column comparison.

    Attributes:
        column: Column name.
        op: Comparison operator.
        value: Operand (a tuple for IN, ignored for NOT_NULL).
    """

    column: str
    op: Operator
    value: Any = None

    def matches(self, row: Mapping[str, Any]) -> bool:
        """Evaluate the condition against a row mapping."""
        actual = row.get(self.column)
        match self.op:
            case Operator.EQ:
                return actual == self.value
            case Operator.NE:
                # SQL semantics: NULL never compares unequal
                return actual is not None and actual != self.value
            case Operator.IN:
                return actual in self.value
            case Operator.NOT_NULL:
                return actual is not None
            case _:
                assert_never(self.op)


@dataclass(frozen=True, slots=True)
class Predicate:
    """Conjunction of conditions. An empty predicate matches every row."""

    conditions: tuple[Condition, ...] = ()

    def __and__(self, other: Predicate) -> Predicate:
        return Predicate(self.conditions + other.conditions)

    def matches(self, row: Mapping[str, Any]) -> bool:
        """True when every condition holds for the row."""
        return all(condition.matches(row) for condition in self.conditions)

    @property
    def columns(self) -> tuple[str, ...]:
        """Columns referenced by the predicate, in declaration order."""
        return tuple(condition.column for condition in self.conditions)

    def __str__(self) -> str:
        if not self.conditions:
            return "ALL"
        return " AND ".join(f"{c.column} {c.op.value} {c.value!r}" for c in self.conditions)


ALL = Predicate()


def eq(column: str, value: Any) -> Predicate:
    """``column = value``."""
    return Predicate((Condition(column, Operator.EQ, value),))


def ne(column: str, value: Any) -> Predicate:
    """``column <> value``."""
    return Predicate((Condition(column, Operator.NE, value),))


def in_(column: str, values: Iterable[Any]) -> Predicate:
    """``column IN (values)``. An empty collection matches nothing."""
    return Predicate((Condition(column, Operator.IN, tuple(values)),))


def not_null(column: str) -> Predicate:
    """``column IS NOT NULL``."""
    return Predicate((Condition(column, Operator.NOT_NULL),))
