"""Tests for the Redis cache store."""

from unittest.mock import AsyncMock

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from querycache.cache.redis import RedisStore
from querycache.errors import CacheBackendError


class TestRedisStore:
    """Tests for RedisStore with a mocked client."""

    @pytest.fixture
    def mock_redis(self) -> AsyncMock:
        """Create mock Redis client."""
        mock = AsyncMock()
        mock.get = AsyncMock(return_value=None)
        mock.setex = AsyncMock(return_value=True)
        mock.delete = AsyncMock(return_value=1)
        mock.sadd = AsyncMock(return_value=1)
        mock.expire = AsyncMock(return_value=True)
        mock.smembers = AsyncMock(return_value=set())
        mock.srem = AsyncMock(return_value=1)
        mock.ping = AsyncMock(return_value=True)
        return mock

    @pytest.fixture
    def redis_store(self, mock_redis: AsyncMock) -> RedisStore:
        return RedisStore(mock_redis)

    @pytest.mark.asyncio
    async def test_set_uses_setex(self, redis_store: RedisStore, mock_redis: AsyncMock) -> None:
        """Values are written with their TTL."""
        await redis_store.set("k", b"[]", ttl=300)
        mock_redis.setex.assert_awaited_once_with("k", 300, b"[]")

    @pytest.mark.asyncio
    async def test_set_add_refreshes_ttl(
        self, redis_store: RedisStore, mock_redis: AsyncMock
    ) -> None:
        """Adding to a set with a TTL issues SADD then EXPIRE."""
        await redis_store.set_add("scope", "key", ttl=300)
        mock_redis.sadd.assert_awaited_once_with("scope", "key")
        mock_redis.expire.assert_awaited_once_with("scope", 300)

    @pytest.mark.asyncio
    async def test_set_add_without_ttl(
        self, redis_store: RedisStore, mock_redis: AsyncMock
    ) -> None:
        """No EXPIRE is sent when no TTL is given."""
        await redis_store.set_add("scope", "key")
        mock_redis.expire.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_set_members_decodes(
        self, redis_store: RedisStore, mock_redis: AsyncMock
    ) -> None:
        """Members come back as str."""
        mock_redis.smembers.return_value = {b"a", b"b"}
        assert await redis_store.set_members("scope") == {"a", "b"}

    @pytest.mark.asyncio
    async def test_delete_many_empty_is_noop(
        self, redis_store: RedisStore, mock_redis: AsyncMock
    ) -> None:
        """DEL is not sent without keys."""
        await redis_store.delete_many([])
        mock_redis.delete.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_delete_many(self, redis_store: RedisStore, mock_redis: AsyncMock) -> None:
        """Several keys are deleted in one command."""
        await redis_store.delete_many(["a", "b"])
        mock_redis.delete.assert_awaited_once_with("a", "b")

    @pytest.mark.asyncio
    async def test_errors_translated(self, redis_store: RedisStore, mock_redis: AsyncMock) -> None:
        """Redis errors surface as CacheBackendError naming the operation."""
        mock_redis.get.side_effect = RedisConnectionError("down")

        with pytest.raises(CacheBackendError) as exc_info:
            await redis_store.get("k")

        assert exc_info.value.operation == "get"

    @pytest.mark.asyncio
    async def test_health_check(self, redis_store: RedisStore, mock_redis: AsyncMock) -> None:
        """Health check reports ping failures as False."""
        assert await redis_store.health_check() is True
        mock_redis.ping.side_effect = RedisConnectionError("down")
        assert await redis_store.health_check() is False
