"""Scope registry for bulk cache invalidation.

Every cached result key is recorded in the set of its table scope and, when
the table is grouped, in the set of its group scope as well. Invalidating a
scope reads the set, deletes the member values and then the set itself.

Example:
    registry = GroupRegistry(store)
    await registry.register("cacheable:orders", key, ttl=300)
    await registry.register("cacheable:orders:companyId1", key, ttl=300)

    # Drop every cached result of company 1 only
    await registry.invalidate(
        "cacheable:orders:companyId1", table_scope="cacheable:orders"
    )
"""

from __future__ import annotations

import logging

from querycache.cache.store import CacheStore

logger = logging.getLogger(__name__)


class GroupRegistry:
    """Tracks which cached result keys belong to which invalidation scope.

    Store errors are not handled here; they surface as CacheBackendError so
    the caller decides whether the failure is fatal.
    """

    def __init__(self, store: CacheStore):
        self.store = store

    async def register(self, scope_key: str, cache_key: str, ttl: int | None = None) -> None:
        """Add cache_key to the scope set, creating the set if needed.

        Idempotent. The set TTL is refreshed to ttl, so the set lives at least
        as long as the newest value it points at.
        """
        await self.store.set_add(scope_key, cache_key, ttl)

    async def members(self, scope_key: str) -> set[str]:
        """Cache keys currently registered under scope_key."""
        return await self.store.set_members(scope_key)

    async def invalidate(self, scope_key: str, table_scope: str | None = None) -> int:
        """Tear down a scope and every cached value registered in it.

        Args:
            scope_key: Table or group scope to invalidate
            table_scope: Table scope enclosing scope_key, when scope_key is a
                group scope. Its set loses the invalidated members too.

        Returns:
            Number of member keys that were registered in the scope.
        """
        members = await self.store.set_members(scope_key)
        logger.debug(
            "flush-cache-for: %s (%d keys)", scope_key, len(members), extra={"scope": scope_key}
        )

        if members:
            # Already-expired members are a no-op for the store
            await self.store.delete_many(members)
        await self.store.delete(scope_key)

        if table_scope is not None and table_scope != scope_key and members:
            await self.store.set_remove(table_scope, *members)

        return len(members)
