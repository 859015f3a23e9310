"""Transparent result cache for relational queries.

Wraps a query executor so that reads are served from a key-value store and
writes invalidate the cached results of the table, or of one cache group
of it, that they touch.
"""

from querycache.cache import CacheKeys, CacheStore, GroupRegistry, MemoryStore, RedisStore
from querycache.errors import (
    CacheBackendError,
    ConfigurationError,
    QueryCacheError,
    SerializationError,
)
from querycache.query import (
    CachePolicy,
    CachingExecutor,
    Predicate,
    Query,
    QueryExecutor,
    Scope,
    SqlAlchemyExecutor,
)

__version__ = "0.1.0"

__all__ = [
    # Query layer
    "CachingExecutor",
    "CachePolicy",
    "Query",
    "Predicate",
    "QueryExecutor",
    "Scope",
    "SqlAlchemyExecutor",
    # Cache layer
    "CacheKeys",
    "CacheStore",
    "GroupRegistry",
    "MemoryStore",
    "RedisStore",
    # Errors
    "QueryCacheError",
    "ConfigurationError",
    "CacheBackendError",
    "SerializationError",
]
