"""In-process cache store.

Implements the CacheStore protocol with plain dicts and lazy TTL expiry on
a monotonic clock. Suitable for tests and single-process deployments; it
is not shared between processes.
"""

from __future__ import annotations

import time
from collections.abc import Callable, Iterable


class MemoryStore:
    """Dict-backed CacheStore with per-key expiry."""

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self._values: dict[str, bytes] = {}
        self._sets: dict[str, set[str]] = {}
        self._expiry: dict[str, float] = {}

    def _expired(self, key: str) -> bool:
        deadline = self._expiry.get(key)
        if deadline is not None and deadline <= self._clock():
            self._values.pop(key, None)
            self._sets.pop(key, None)
            del self._expiry[key]
            return True
        return False

    def _expire(self, key: str, ttl: int | None) -> None:
        if ttl is None:
            self._expiry.pop(key, None)
        else:
            self._expiry[key] = self._clock() + ttl

    async def get(self, key: str) -> bytes | None:
        if self._expired(key):
            return None
        return self._values.get(key)

    async def set(self, key: str, value: bytes, ttl: int) -> None:
        self._values[key] = value
        self._expire(key, ttl)

    async def delete(self, key: str) -> None:
        self._values.pop(key, None)
        self._sets.pop(key, None)
        self._expiry.pop(key, None)

    async def delete_many(self, keys: Iterable[str]) -> None:
        for key in keys:
            await self.delete(key)

    async def set_add(self, set_key: str, member: str, ttl: int | None = None) -> None:
        self._expired(set_key)
        self._sets.setdefault(set_key, set()).add(member)
        if ttl is not None:
            self._expire(set_key, ttl)

    async def set_members(self, set_key: str) -> set[str]:
        if self._expired(set_key):
            return set()
        return set(self._sets.get(set_key, ()))

    async def set_remove(self, set_key: str, *members: str) -> None:
        if self._expired(set_key):
            return
        current = self._sets.get(set_key)
        if current is None:
            return
        current.difference_update(members)
        if not current:
            # Redis drops empty sets
            del self._sets[set_key]
            self._expiry.pop(set_key, None)

    def keys(self) -> list[str]:
        """Live keys, values and sets alike."""
        live = [k for k in [*self._values, *self._sets] if not self._expired(k)]
        return sorted(set(live))
