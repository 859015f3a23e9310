"""Exception taxonomy for the query cache.

Only ConfigurationError ever reaches callers of the caching executor.
CacheBackendError and SerializationError are raised by the store and codec
layers and handled by the interception layer, which degrades to uncached
execution instead of failing the query.
"""

from __future__ import annotations


class QueryCacheError(Exception):
    """Base class for query cache errors."""


class ConfigurationError(QueryCacheError):
    """Grouping is configured but the group value of a write cannot be resolved."""

    def __init__(self, table: str, group_field: str, message: str | None = None) -> None:
        self.table = table
        self.group_field = group_field
        super().__init__(
            message
            or f"Cannot resolve value of cache group field '{group_field}' "
            f"for write on table '{table}'"
        )


class CacheBackendError(QueryCacheError):
    """A cache store operation failed."""

    def __init__(self, operation: str, message: str) -> None:
        self.operation = operation
        super().__init__(f"Cache {operation} failed: {message}")


class SerializationError(QueryCacheError):
    """A cached value could not be encoded or decoded."""
