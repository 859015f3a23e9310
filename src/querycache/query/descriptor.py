"""Immutable description of a pending query.

A Query names its target table, projection, filter clauses and paging, plus
the per-call cache controls (use_cache, group_value). Builder methods return
modified copies so a Query can be shared between calls without leaking state.

Example:
    query = Query("orders").where("companyId", 1).where("amount", ">", 50)
    uncached = query.cache(False)
    scoped = Query("orders").for_group(1)
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field, replace
from typing import Any, Final


class _Unset:
    """Marker for an argument that was not supplied."""

    def __repr__(self) -> str:
        return "UNSET"


UNSET: Final = _Unset()

EQUALITY_OPERATORS = frozenset({"=", "=="})


@dataclass(frozen=True)
class Predicate:
    """A single filter clause: column, operator, value."""

    column: str
    operator: str
    value: Any

    def __post_init__(self) -> None:
        object.__setattr__(self, "operator", self.operator.strip().lower())

    @property
    def is_equality(self) -> bool:
        return self.operator in EQUALITY_OPERATORS

    def matches(self, column: str) -> bool:
        """True if the clause targets column, ignoring a table qualifier."""
        return self.column.rsplit(".", 1)[-1] == column


@dataclass(frozen=True)
class Query:
    """Target table and clauses of a read or write."""

    table: str
    columns: tuple[str, ...] = ("*",)
    wheres: tuple[Predicate, ...] = ()
    order_by: tuple[tuple[str, bool], ...] = ()
    limit: int | None = None
    offset: int | None = None
    # None defers to the global enabled flag
    use_cache: bool | None = None
    group_value: Any = field(default=UNSET)

    def select(self, *columns: str) -> Query:
        return replace(self, columns=columns or ("*",))

    def where(self, column: str, operator: Any, value: Any = UNSET) -> Query:
        """Add a filter clause. where("id", 5) is shorthand for where("id", "=", 5)."""
        if value is UNSET:
            operator, value = "=", operator
        return replace(self, wheres=(*self.wheres, Predicate(column, str(operator), value)))

    def where_in(self, column: str, values: Iterable[Any]) -> Query:
        return self.where(column, "in", tuple(values))

    def order(self, column: str, desc: bool = False) -> Query:
        return replace(self, order_by=(*self.order_by, (column, desc)))

    def take(self, limit: int) -> Query:
        return replace(self, limit=limit)

    def skip(self, offset: int) -> Query:
        return replace(self, offset=offset)

    def cache(self, enabled: bool = True) -> Query:
        """Opt this query out of caching, or back in while caching is globally on."""
        return replace(self, use_cache=enabled)

    def for_group(self, value: Any) -> Query:
        """Name the cache group value explicitly, overriding resolution from data."""
        return replace(self, group_value=value)

    @property
    def has_group_value(self) -> bool:
        return self.group_value is not UNSET

    def equality_value(self, column: str) -> Any:
        """Value of the first equality clause on column, or UNSET."""
        for predicate in self.wheres:
            if predicate.is_equality and predicate.matches(column):
                return predicate.value
        return UNSET
