"""Key-value store contract used by the query cache.

Implementations must make each individual operation atomic. Nothing in the
cache layer spans several operations in a transaction.
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import Protocol


class CacheStore(Protocol):
    """Protocol for cache backends (Redis, in-process)."""

    async def get(self, key: str) -> bytes | None:
        """Return the stored value, or None when absent or expired."""
        ...

    async def set(self, key: str, value: bytes, ttl: int) -> None:
        """Store value with a TTL in seconds."""
        ...

    async def delete(self, key: str) -> None:
        """Remove key. Missing keys are not an error."""
        ...

    async def delete_many(self, keys: Iterable[str]) -> None:
        """Remove several keys. Missing keys are not an error."""
        ...

    async def set_add(self, set_key: str, member: str, ttl: int | None = None) -> None:
        """Add member to a set, creating it if needed, and refresh its TTL."""
        ...

    async def set_members(self, set_key: str) -> set[str]:
        """Return members of a set, or an empty set when absent."""
        ...

    async def set_remove(self, set_key: str, *members: str) -> None:
        """Remove members from a set."""
        ...
