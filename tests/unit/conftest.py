"""Shared fixtures for query cache unit tests."""

from __future__ import annotations

from collections.abc import Awaitable, Callable, Mapping, Sequence
from typing import Any

import pytest

from querycache.cache.memory import MemoryStore
from querycache.observability.metrics import CacheMetrics
from querycache.query.descriptor import Query
from querycache.query.executor import Row, Values, as_rows


class FakeExecutor:
    """QueryExecutor double that renders SQL text and records every call."""

    def __init__(self, rows: dict[str, list[Row]] | None = None) -> None:
        self.rows = rows or {}
        self.calls: list[tuple[str, Query]] = []
        self.before_write: Callable[[str], Awaitable[None]] | None = None

    @property
    def select_count(self) -> int:
        return sum(1 for name, _ in self.calls if name == "select")

    def to_sql(self, query: Query) -> tuple[str, list[Any]]:
        sql = f"select {', '.join(query.columns)} from {query.table}"
        if query.wheres:
            clauses = " and ".join(f"{p.column} {p.operator} ?" for p in query.wheres)
            sql = f"{sql} where {clauses}"
        return sql, [p.value for p in query.wheres]

    async def select(self, query: Query) -> list[Row]:
        self.calls.append(("select", query))
        return [dict(row) for row in self.rows.get(query.table, [])]

    async def _write(self, name: str, query: Query) -> None:
        if self.before_write is not None:
            await self.before_write(name)
        self.calls.append((name, query))

    async def insert(self, query: Query, values: Values) -> int:
        await self._write("insert", query)
        return len(as_rows(values))

    async def insert_get_id(
        self, query: Query, values: Mapping[str, Any], sequence: str | None = None
    ) -> Any:
        await self._write("insert_get_id", query)
        return 42

    async def insert_or_ignore(self, query: Query, values: Values) -> int:
        await self._write("insert_or_ignore", query)
        return len(as_rows(values))

    async def insert_using(self, query: Query, columns: Sequence[str], source: Query) -> int:
        await self._write("insert_using", query)
        return 0

    async def upsert(
        self,
        query: Query,
        values: Values,
        unique_by: Sequence[str],
        update: Sequence[str] | None = None,
    ) -> int:
        await self._write("upsert", query)
        return len(as_rows(values))

    async def update(self, query: Query, values: Mapping[str, Any]) -> int:
        await self._write("update", query)
        return 1

    async def delete(self, query: Query, id: Any = None) -> int:
        await self._write("delete", query)
        return 1

    async def truncate(self, query: Query) -> None:
        await self._write("truncate", query)


@pytest.fixture
def store() -> MemoryStore:
    """Empty in-process store."""
    return MemoryStore()


@pytest.fixture
def metrics() -> CacheMetrics:
    """Metrics on a private registry."""
    return CacheMetrics(enabled=True)


@pytest.fixture
def executor() -> FakeExecutor:
    """Executor double with a few users and orders."""
    return FakeExecutor(
        rows={
            "users": [{"id": 5, "name": "alice"}],
            "orders": [
                {"id": 1, "companyId": 1, "amount": 100},
                {"id": 2, "companyId": 2, "amount": 250},
            ],
            "audit": [],
        }
    )
