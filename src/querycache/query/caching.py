"""Caching layer around a query executor.

CachingExecutor wraps any QueryExecutor and exposes the same interface.

Reads go through PolicyCheck -> KeyDerivation -> CacheLookup and either
return the cached rows or execute, populate the cache and return the fresh
rows. Writes go through PolicyCheck -> ScopeResolution -> Invalidate ->
ExecuteWrite: the affected scope is invalidated before the write runs.

Example:
    policy = CachePolicy(ttl=300, groups={"orders": "companyId"})
    cached = CachingExecutor(SqlAlchemyExecutor(conn, metadata), store, policy)

    rows = await cached.select(Query("orders").where("companyId", 1))
    await cached.insert(Query("orders"), {"companyId": 1, "amount": 100})

The scope of a call is resolved into an immutable Scope and passed along,
so nothing about one call is kept on the executor for the next.

Cache failures never fail a query: lookups that hit a store error fall back
to direct execution, and populate or invalidation errors are logged and
counted. Stale entries left behind by a failed invalidation live at most
until their TTL expires.

Every read returns rows in the form the codec gives back from the cache,
whether it was served from the cache, bypassed it or fell back on an outage.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass
from typing import Any

from querycache.cache.codec import decode_rows, encode_rows, normalize_rows
from querycache.cache.registry import GroupRegistry
from querycache.cache.store import CacheStore
from querycache.config import settings
from querycache.errors import CacheBackendError, ConfigurationError, SerializationError
from querycache.observability.metrics import CacheMetrics, get_metrics
from querycache.query.descriptor import UNSET, Query
from querycache.query.executor import QueryExecutor, Row, Values, as_rows
from querycache.query.policy import CachePolicy

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Scope:
    """Invalidation scope of one call: a whole table or one group of it."""

    table: str
    group_field: str | None = None
    group_value: Any = None

    @property
    def is_group(self) -> bool:
        return self.group_field is not None


class CachingExecutor:
    """QueryExecutor decorator adding result caching and scope invalidation."""

    def __init__(
        self,
        executor: QueryExecutor,
        store: CacheStore,
        policy: CachePolicy | None = None,
        metrics: CacheMetrics | None = None,
    ):
        self.executor = executor
        self.store = store
        self.policy = policy or CachePolicy.from_settings(settings)
        self.metrics = metrics or get_metrics()
        self.keys = self.policy.keys
        self.registry = GroupRegistry(store)

    def to_sql(self, query: Query) -> tuple[str, list[Any]]:
        return self.executor.to_sql(query)

    # -------------------------------------------------------------------------
    # Read path
    # -------------------------------------------------------------------------

    def _read_scope(self, query: Query) -> tuple[Scope | None, str | None]:
        """Resolve the scope of a read, or the reason it must bypass the cache."""
        if not self.policy.is_enabled(query.use_cache):
            return None, "disabled"
        if self.policy.excluded_predicate(query) is not None:
            return None, "excluded_operator"

        group_field = self.policy.group_field(query.table)
        if group_field is None:
            return Scope(query.table), None

        group_value = query.equality_value(group_field)
        if group_value is UNSET:
            return None, "no_group_value"
        return Scope(query.table, group_field, group_value), None

    async def select(self, query: Query) -> list[Row]:
        """Run a read, serving it from the cache when the policy allows."""
        scope, reason = self._read_scope(query)
        if scope is None:
            logger.debug("cache bypass", extra={"table": query.table, "reason": reason})
            self.metrics.bypass_total.labels(table=query.table, reason=reason).inc()
            return self._shaped(await self.executor.select(query))

        sql, bindings = self.executor.to_sql(query)
        key = self.keys.derive(scope.table, sql, bindings, scope.group_field, scope.group_value)

        try:
            cached = await self.store.get(key)
        except CacheBackendError as e:
            logger.warning(
                "Cache lookup failed, executing uncached: %s",
                e,
                extra={"table": scope.table, "key": key, "operation": e.operation},
            )
            self.metrics.backend_errors_total.labels(operation=e.operation).inc()
            return self._shaped(await self.executor.select(query))

        # An empty result set is cached as "[]"; only None is a miss
        if cached is not None:
            try:
                rows = decode_rows(cached)
            except SerializationError as e:
                logger.warning(
                    "Discarding undecodable cache entry: %s",
                    e,
                    extra={"table": scope.table, "key": key},
                )
                self.metrics.serialization_errors_total.labels(table=scope.table).inc()
            else:
                logger.debug("cache hit", extra={"table": scope.table, "key": key})
                self.metrics.hits_total.labels(table=scope.table).inc()
                return rows

        logger.debug("cache miss", extra={"table": scope.table, "key": key})
        self.metrics.misses_total.labels(table=scope.table).inc()
        rows = await self.executor.select(query)
        return await self._populate(scope, key, rows)

    async def _populate(self, scope: Scope, key: str, rows: list[Row]) -> list[Row]:
        """Store rows under key and register key in its scopes.

        Returns the rows as a later cache hit will return them.
        """
        try:
            payload = encode_rows(rows)
        except SerializationError as e:
            logger.warning(
                "Result is not cacheable: %s", e, extra={"table": scope.table, "key": key}
            )
            self.metrics.serialization_errors_total.labels(table=scope.table).inc()
            return rows

        ttl = self.policy.ttl
        try:
            # Register first: a scope member without a value is harmless,
            # a value missing from its scope could never be invalidated.
            await self.registry.register(self.keys.table_scope(scope.table), key, ttl)
            if scope.is_group:
                group_scope = self.keys.group_scope(
                    scope.table, scope.group_field, scope.group_value
                )
                await self.registry.register(group_scope, key, ttl)
            await self.store.set(key, payload, ttl)
        except CacheBackendError as e:
            logger.warning(
                "Failed to populate cache entry: %s",
                e,
                extra={"table": scope.table, "key": key, "operation": e.operation},
            )
            self.metrics.backend_errors_total.labels(operation=e.operation).inc()

        return decode_rows(payload)

    @staticmethod
    def _shaped(rows: list[Row]) -> list[Row]:
        """Rows in the form a cache hit returns them."""
        try:
            return normalize_rows(rows)
        except SerializationError:
            # Never cached, so no path returns them any other way
            return rows

    # -------------------------------------------------------------------------
    # Write path
    # -------------------------------------------------------------------------

    def _write_scopes(
        self,
        query: Query,
        rows: Sequence[Mapping[str, Any]] = (),
        include_filter: bool = False,
    ) -> list[Scope]:
        """Scopes touched by a write, de-duplicated, in first-seen order.

        The group value comes from the explicit override, else from each
        written record, else from an equality clause on the group column.

        Raises:
            ConfigurationError: If the table is grouped and some record's
                group value cannot be determined
        """
        group_field = self.policy.group_field(query.table)
        if group_field is None:
            return [Scope(query.table)]
        if query.has_group_value:
            return [Scope(query.table, group_field, query.group_value)]

        filter_value = query.equality_value(group_field)
        values = [row.get(group_field, filter_value) for row in rows] or [filter_value]
        # An update may move rows out of the group named in its filter
        if include_filter and filter_value is not UNSET:
            values.append(filter_value)
        if any(value is UNSET for value in values):
            raise ConfigurationError(query.table, group_field)

        scopes: dict[str, Scope] = {}
        for value in values:
            scope_key = self.keys.group_scope(query.table, group_field, value)
            scopes.setdefault(scope_key, Scope(query.table, group_field, value))
        return list(scopes.values())

    async def _invalidate(self, scopes: Iterable[Scope]) -> None:
        for scope in scopes:
            table_scope = self.keys.table_scope(scope.table)
            scope_key = table_scope
            if scope.is_group:
                scope_key = self.keys.group_scope(scope.table, scope.group_field, scope.group_value)

            try:
                await self.registry.invalidate(
                    scope_key, table_scope=table_scope if scope.is_group else None
                )
            except CacheBackendError as e:
                logger.error(
                    "Cache invalidation failed for %s; stale entries may be served "
                    "until they expire: %s",
                    scope_key,
                    e,
                    extra={"table": scope.table, "scope": scope_key, "operation": e.operation},
                )
                self.metrics.backend_errors_total.labels(operation=e.operation).inc()
            else:
                self.metrics.invalidations_total.labels(
                    table=scope.table, scope="group" if scope.is_group else "table"
                ).inc()

    async def _before_write(
        self,
        query: Query,
        rows: Sequence[Mapping[str, Any]] = (),
        include_filter: bool = False,
        table_wide: bool = False,
    ) -> None:
        if not self.policy.enabled:
            return
        if table_wide:
            scopes = [Scope(query.table)]
        else:
            scopes = self._write_scopes(query, rows, include_filter)
        await self._invalidate(scopes)

    async def insert(self, query: Query, values: Values) -> int:
        rows = as_rows(values)
        if not rows:
            return 0
        await self._before_write(query, rows)
        return await self.executor.insert(query, rows)

    async def insert_get_id(
        self, query: Query, values: Mapping[str, Any], sequence: str | None = None
    ) -> Any:
        await self._before_write(query, [values])
        return await self.executor.insert_get_id(query, values, sequence)

    async def insert_or_ignore(self, query: Query, values: Values) -> int:
        await self._before_write(query, table_wide=True)
        return await self.executor.insert_or_ignore(query, values)

    async def insert_using(self, query: Query, columns: Sequence[str], source: Query) -> int:
        await self._before_write(query, table_wide=True)
        return await self.executor.insert_using(query, columns, source)

    async def upsert(
        self,
        query: Query,
        values: Values,
        unique_by: Sequence[str],
        update: Sequence[str] | None = None,
    ) -> int:
        await self._before_write(query, table_wide=True)
        return await self.executor.upsert(query, values, unique_by, update)

    async def update(self, query: Query, values: Mapping[str, Any]) -> int:
        await self._before_write(query, [values], include_filter=True)
        return await self.executor.update(query, values)

    async def delete(self, query: Query, id: Any = None) -> int:
        await self._before_write(query)
        return await self.executor.delete(query, id)

    async def truncate(self, query: Query) -> None:
        await self._before_write(query, table_wide=True)
        await self.executor.truncate(query)

    # -------------------------------------------------------------------------
    # Maintenance
    # -------------------------------------------------------------------------

    async def flush(self, table: str, group_value: Any = UNSET) -> int:
        """Invalidate a table, or one group of it, outside of any write.

        Unlike write-triggered invalidation, store errors propagate.

        Returns:
            Number of cached result keys that were registered in the scope.
        """
        if not self.policy.enabled:
            return 0

        table_scope = self.keys.table_scope(table)
        group_field = self.policy.group_field(table)
        if group_value is UNSET or group_field is None:
            return await self.registry.invalidate(table_scope)

        group_scope = self.keys.group_scope(table, group_field, group_value)
        return await self.registry.invalidate(group_scope, table_scope=table_scope)
