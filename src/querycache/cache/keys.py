"""Cache key schema for query results.

Key format: {prefix}:{table}[:{group_field}{group_value}]:{digest}

Where:
- prefix: namespace for the cache (default "cacheable")
- table: table the query reads from
- group_field/group_value: optional cache group, e.g. "companyId1"
- digest: 16 hex chars derived from the SQL text and its bindings

Scope keys drop the digest and name the Redis set holding every result key
cached for the table ({prefix}:{table}) or for one group of it
({prefix}:{table}:{group_field}{group_value}).
"""

from __future__ import annotations

import hashlib
from collections.abc import Sequence
from typing import Any

import orjson

SEPARATOR = ":"
BINDING_SEPARATOR = "_"


def _binding_token(value: Any) -> str:
    """Render a binding so that 1 and "1" produce different tokens."""
    return orjson.dumps(value, default=str, option=orjson.OPT_SORT_KEYS).decode()


class CacheKeys:
    """Cache key generator following consistent naming convention."""

    def __init__(self, prefix: str = "cacheable"):
        self.prefix = prefix

    def table_scope(self, table: str) -> str:
        """Key of the set holding every cached result for a table."""
        return f"{self.prefix}{SEPARATOR}{table}"

    def group_scope(self, table: str, group_field: str, group_value: Any) -> str:
        """Key of the set holding cached results for one group of a table."""
        return f"{self.table_scope(table)}{SEPARATOR}{group_field}{group_value}"

    def scope(self, table: str, group_field: str | None = None, group_value: Any = None) -> str:
        if group_field is None:
            return self.table_scope(table)
        return self.group_scope(table, group_field, group_value)

    @staticmethod
    def digest(sql: str, bindings: Sequence[Any]) -> str:
        """Fixed-width content hash of a statement and its ordered bindings."""
        payload = sql
        if bindings:
            joined = BINDING_SEPARATOR.join(_binding_token(b) for b in bindings)
            payload = f"{sql}{BINDING_SEPARATOR}{joined}"
        return hashlib.md5(payload.encode("utf-8"), usedforsecurity=False).hexdigest()[8:-8]

    def derive(
        self,
        table: str,
        sql: str,
        bindings: Sequence[Any],
        group_field: str | None = None,
        group_value: Any = None,
    ) -> str:
        """Key for a cached query result.

        The key is qualified by table, and by group field and value when the
        query is grouped. Identical SQL and bindings under the same scope always
        yield the same key.
        """
        scope = self.scope(table, group_field, group_value)
        return f"{scope}{SEPARATOR}{self.digest(sql, bindings)}"

    def parse(self, key: str) -> dict[str, str] | None:
        """Parse a result key into its components.

        Returns None if the key doesn't match the expected format.
        """
        parts = key.split(SEPARATOR)
        if len(parts) not in (3, 4) or parts[0] != self.prefix:
            return None

        return {
            "prefix": parts[0],
            "table": parts[1],
            "group": parts[2] if len(parts) == 4 else "",
            "digest": parts[-1],
        }
