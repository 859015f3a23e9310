"""Cache policy: when a query may use the cache and how it is scoped."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import TYPE_CHECKING

from querycache.cache.keys import CacheKeys
from querycache.query.descriptor import Predicate, Query

if TYPE_CHECKING:
    from querycache.config import Settings

DEFAULT_EXCLUDED_OPERATORS = frozenset({"like", "not like", "ilike", "not ilike"})


@dataclass(frozen=True)
class CachePolicy:
    """Global cache configuration as seen by the interception layer.

    Attributes:
        enabled: Global switch; Query.cache(False) can only turn it off per call
        ttl: Lifetime of cached results and scope sets, in seconds
        prefix: Namespace of every key written by the cache
        excluded_operators: Predicates using these operators bypass the cache
        groups: Table name to cache group column
    """

    enabled: bool = True
    ttl: int = 300
    prefix: str = "cacheable"
    excluded_operators: frozenset[str] = DEFAULT_EXCLUDED_OPERATORS
    groups: Mapping[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(
            self,
            "excluded_operators",
            frozenset(op.strip().lower() for op in self.excluded_operators),
        )
        object.__setattr__(self, "groups", MappingProxyType(dict(self.groups)))

    @classmethod
    def from_settings(cls, settings: Settings) -> CachePolicy:
        return cls(
            enabled=settings.enabled,
            ttl=settings.ttl,
            prefix=settings.prefix,
            excluded_operators=frozenset(settings.excluded_operators),
            groups=settings.groups,
        )

    @property
    def keys(self) -> CacheKeys:
        return CacheKeys(self.prefix)

    def is_enabled(self, override: bool | None = None) -> bool:
        """Whether a call may use the cache.

        A globally disabled cache stays off; the per-call override can only
        turn caching off.
        """
        return self.enabled and override is not False

    def excluded_predicate(self, query: Query) -> Predicate | None:
        """First clause whose operator rules out caching, if any."""
        for predicate in query.wheres:
            if predicate.operator in self.excluded_operators:
                return predicate
        return None

    def group_field(self, table: str) -> str | None:
        return self.groups.get(table)

