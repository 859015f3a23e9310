"""Cache layer: key schema, stores and the scope registry.

Provides the storage side of the cache-aside pattern:
- Deterministic result keys scoped to table and cache group
- Redis and in-process stores behind one protocol
- Scope sets enabling bulk invalidation of a table or group
"""

from querycache.cache.codec import decode_rows, encode_rows, normalize_rows
from querycache.cache.keys import CacheKeys
from querycache.cache.memory import MemoryStore
from querycache.cache.redis import RedisStore, close_redis, get_redis
from querycache.cache.registry import GroupRegistry
from querycache.cache.store import CacheStore

__all__ = [
    "CacheKeys",
    "CacheStore",
    "GroupRegistry",
    "MemoryStore",
    "RedisStore",
    "get_redis",
    "close_redis",
    "encode_rows",
    "decode_rows",
    "normalize_rows",
]
