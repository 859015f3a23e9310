"""Query executor contract and its SQLAlchemy Core implementation.

The executor is the collaborator that turns a Query into SQL, runs reads and
runs every write operation. The caching layer wraps an executor and exposes
the same interface.
"""

from __future__ import annotations

import operator
from collections.abc import Callable, Mapping, Sequence
from typing import Any, Protocol, TypeVar

from sqlalchemy import Delete, MetaData, Select, Table, Update, delete, insert, select, text, update
from sqlalchemy.ext.asyncio import AsyncConnection
from sqlalchemy.sql.elements import ColumnElement

from querycache.query.descriptor import Predicate, Query

Row = dict[str, Any]
Values = Mapping[str, Any] | Sequence[Mapping[str, Any]]

StmtT = TypeVar("StmtT", Select[Any], Update, Delete)

_OPERATORS: dict[str, Callable[[Any, Any], ColumnElement[bool]]] = {
    "=": operator.eq,
    "==": operator.eq,
    "!=": operator.ne,
    "<>": operator.ne,
    "<": operator.lt,
    "<=": operator.le,
    ">": operator.gt,
    ">=": operator.ge,
    "in": lambda column, value: column.in_(value),
    "not in": lambda column, value: column.not_in(value),
    "like": lambda column, value: column.like(value),
    "not like": lambda column, value: column.not_like(value),
    "ilike": lambda column, value: column.ilike(value),
    "not ilike": lambda column, value: column.not_ilike(value),
    "is": lambda column, value: column.is_(value),
    "is not": lambda column, value: column.is_not(value),
}


def as_rows(values: Values) -> list[Mapping[str, Any]]:
    """Normalize a single record or a batch of records to a list."""
    if isinstance(values, Mapping):
        return [values]
    return list(values)


class QueryExecutor(Protocol):
    """Runs reads and writes described by Query objects."""

    def to_sql(self, query: Query) -> tuple[str, list[Any]]:
        """Final SQL text and ordered bindings of a read."""
        ...

    async def select(self, query: Query) -> list[Row]: ...

    async def insert(self, query: Query, values: Values) -> int: ...

    async def insert_get_id(
        self, query: Query, values: Mapping[str, Any], sequence: str | None = None
    ) -> Any: ...

    async def insert_or_ignore(self, query: Query, values: Values) -> int: ...

    async def insert_using(self, query: Query, columns: Sequence[str], source: Query) -> int: ...

    async def upsert(
        self,
        query: Query,
        values: Values,
        unique_by: Sequence[str],
        update: Sequence[str] | None = None,
    ) -> int: ...

    async def update(self, query: Query, values: Mapping[str, Any]) -> int: ...

    async def delete(self, query: Query, id: Any = None) -> int: ...

    async def truncate(self, query: Query) -> None: ...


class SqlAlchemyExecutor:
    """QueryExecutor over an async SQLAlchemy connection.

    Tables are looked up by name in the given MetaData. Transaction control
    stays with the caller that owns the connection.
    """

    def __init__(self, connection: AsyncConnection, metadata: MetaData):
        self.connection = connection
        self.metadata = metadata

    @property
    def dialect_name(self) -> str:
        return self.connection.dialect.name

    def _table(self, name: str) -> Table:
        try:
            return self.metadata.tables[name]
        except KeyError:
            raise ValueError(f"Unknown table: {name}") from None

    @staticmethod
    def _column(table: Table, name: str) -> Any:
        return table.c[name.rsplit(".", 1)[-1]]

    def _clause(self, table: Table, predicate: Predicate) -> ColumnElement[bool]:
        try:
            build = _OPERATORS[predicate.operator]
        except KeyError:
            raise ValueError(f"Unsupported operator: {predicate.operator}") from None
        return build(self._column(table, predicate.column), predicate.value)

    def _filtered(self, stmt: StmtT, table: Table, query: Query) -> StmtT:
        for predicate in query.wheres:
            stmt = stmt.where(self._clause(table, predicate))
        return stmt

    def _select(self, query: Query) -> Select[Any]:
        table = self._table(query.table)
        if query.columns == ("*",):
            stmt = select(table)
        else:
            stmt = select(*(self._column(table, c) for c in query.columns))

        stmt = self._filtered(stmt, table, query)
        for column, desc in query.order_by:
            col = self._column(table, column)
            stmt = stmt.order_by(col.desc() if desc else col)
        if query.limit is not None:
            stmt = stmt.limit(query.limit)
        if query.offset is not None:
            stmt = stmt.offset(query.offset)
        return stmt

    def _dialect_insert(self, table: Table) -> Any:
        name = self.dialect_name
        if name == "postgresql":
            from sqlalchemy.dialects.postgresql import insert as pg_insert

            return pg_insert(table)
        if name == "sqlite":
            from sqlalchemy.dialects.sqlite import insert as sqlite_insert

            return sqlite_insert(table)
        if name in ("mysql", "mariadb"):
            from sqlalchemy.dialects.mysql import insert as mysql_insert

            return mysql_insert(table)
        raise NotImplementedError(f"Conflict handling is not supported on {name}")

    def to_sql(self, query: Query) -> tuple[str, list[Any]]:
        compiled = self._select(query).compile(dialect=self.connection.dialect)
        params = compiled.params
        if compiled.positiontup:
            bindings = [params[name] for name in compiled.positiontup]
        else:
            bindings = list(params.values())
        return str(compiled), bindings

    async def select(self, query: Query) -> list[Row]:
        result = await self.connection.execute(self._select(query))
        return [dict(row) for row in result.mappings()]

    async def insert(self, query: Query, values: Values) -> int:
        rows = as_rows(values)
        if not rows:
            return 0
        await self.connection.execute(insert(self._table(query.table)), [dict(r) for r in rows])
        return len(rows)

    async def insert_get_id(
        self, query: Query, values: Mapping[str, Any], sequence: str | None = None
    ) -> Any:
        table = self._table(query.table)
        stmt = insert(table).values(**values)
        if sequence is not None:
            result = await self.connection.execute(stmt.returning(self._column(table, sequence)))
            return result.scalar_one()
        result = await self.connection.execute(stmt)
        return result.inserted_primary_key[0]

    async def insert_or_ignore(self, query: Query, values: Values) -> int:
        rows = as_rows(values)
        if not rows:
            return 0
        stmt = self._dialect_insert(self._table(query.table)).values([dict(r) for r in rows])
        if self.dialect_name in ("mysql", "mariadb"):
            stmt = stmt.prefix_with("IGNORE")
        else:
            stmt = stmt.on_conflict_do_nothing()
        result = await self.connection.execute(stmt)
        return result.rowcount

    async def insert_using(self, query: Query, columns: Sequence[str], source: Query) -> int:
        table = self._table(query.table)
        stmt = insert(table).from_select(list(columns), self._select(source))
        result = await self.connection.execute(stmt)
        return result.rowcount

    async def upsert(
        self,
        query: Query,
        values: Values,
        unique_by: Sequence[str],
        update: Sequence[str] | None = None,
    ) -> int:
        rows = as_rows(values)
        if not rows:
            return 0
        if update is None:
            update = [c for c in rows[0] if c not in unique_by]

        stmt = self._dialect_insert(self._table(query.table)).values([dict(r) for r in rows])
        if self.dialect_name in ("mysql", "mariadb"):
            stmt = stmt.on_duplicate_key_update({c: stmt.inserted[c] for c in update})
        elif update:
            stmt = stmt.on_conflict_do_update(
                index_elements=list(unique_by),
                set_={c: stmt.excluded[c] for c in update},
            )
        else:
            stmt = stmt.on_conflict_do_nothing(index_elements=list(unique_by))
        result = await self.connection.execute(stmt)
        return result.rowcount

    async def update(self, query: Query, values: Mapping[str, Any]) -> int:
        table = self._table(query.table)
        stmt = self._filtered(update(table), table, query).values(**values)
        result = await self.connection.execute(stmt)
        return result.rowcount

    async def delete(self, query: Query, id: Any = None) -> int:
        if id is not None:
            query = query.where("id", id)
        table = self._table(query.table)
        result = await self.connection.execute(self._filtered(delete(table), table, query))
        return result.rowcount

    async def truncate(self, query: Query) -> None:
        table = self._table(query.table)
        if self.dialect_name == "sqlite":
            await self.connection.execute(delete(table))
            return
        preparer = self.connection.dialect.identifier_preparer
        await self.connection.execute(text(f"TRUNCATE TABLE {preparer.format_table(table)}"))
