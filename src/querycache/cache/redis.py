"""Redis cache store.

Provides async Redis operations for caching query results and the scope
sets used for invalidation. Uses redis-py async client for connection pooling.
"""

from __future__ import annotations

from collections.abc import Awaitable, Iterable
from typing import TYPE_CHECKING, TypeVar, cast

import redis.asyncio as redis
from redis.exceptions import RedisError

from querycache.config import settings
from querycache.errors import CacheBackendError

if TYPE_CHECKING:
    from redis.asyncio import Redis

T = TypeVar("T")

# Module-level connection pool
_redis_client: Redis | None = None


async def get_redis(url: str | None = None) -> Redis:
    """Get or create the Redis client.

    Uses connection pooling for efficient connection management.
    """
    global _redis_client
    if _redis_client is None:
        _redis_client = redis.from_url(  # type: ignore[no-untyped-call]
            url or settings.redis_url,
            decode_responses=False,  # Values are stored as bytes
        )
    return _redis_client


async def close_redis() -> None:
    """Close Redis connections."""
    global _redis_client
    if _redis_client is not None:
        await _redis_client.aclose()
        _redis_client = None


class RedisStore:
    """CacheStore backed by Redis strings and sets.

    Every redis-py error is re-raised as CacheBackendError naming the
    failed operation.
    """

    def __init__(self, client: Redis):
        self.client = client

    async def _call(self, operation: str, awaitable: Awaitable[T]) -> T:
        try:
            return await awaitable
        except RedisError as e:
            raise CacheBackendError(operation, str(e)) from e

    async def get(self, key: str) -> bytes | None:
        return cast(bytes | None, await self._call("get", self.client.get(key)))

    async def set(self, key: str, value: bytes, ttl: int) -> None:
        await self._call("set", self.client.setex(key, ttl, value))

    async def delete(self, key: str) -> None:
        await self._call("delete", self.client.delete(key))

    async def delete_many(self, keys: Iterable[str]) -> None:
        keys = list(keys)
        if keys:
            await self._call("delete_many", self.client.delete(*keys))

    async def set_add(self, set_key: str, member: str, ttl: int | None = None) -> None:
        await self._call("set_add", cast(Awaitable[int], self.client.sadd(set_key, member)))
        if ttl is not None:
            await self._call("set_add", self.client.expire(set_key, ttl))

    async def set_members(self, set_key: str) -> set[str]:
        members = await self._call(
            "set_members", cast(Awaitable[set[bytes]], self.client.smembers(set_key))
        )
        return {m.decode() if isinstance(m, bytes) else m for m in members}

    async def set_remove(self, set_key: str, *members: str) -> None:
        if members:
            await self._call(
                "set_remove", cast(Awaitable[int], self.client.srem(set_key, *members))
            )

    async def health_check(self) -> bool:
        """Check Redis connectivity."""
        try:
            await cast(Awaitable[bool], self.client.ping())
            return True
        except RedisError:
            return False
