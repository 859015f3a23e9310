"""Tests for cache key derivation."""

import re

from querycache.cache.keys import CacheKeys


class TestScopeKeys:
    """Test scope set key generation."""

    def test_table_scope(self) -> None:
        """Table scope is prefix and table."""
        assert CacheKeys("cacheable").table_scope("users") == "cacheable:users"

    def test_group_scope(self) -> None:
        """Group scope appends field and value without separator."""
        key = CacheKeys("cacheable").group_scope("orders", "companyId", 1)
        assert key == "cacheable:orders:companyId1"

    def test_scope_without_group_is_table_scope(self) -> None:
        """scope() falls back to the table scope when no group field is given."""
        keys = CacheKeys("cacheable")
        assert keys.scope("users") == keys.table_scope("users")


class TestDerive:
    """Test result key derivation."""

    def test_key_format(self) -> None:
        """Result key is the table scope plus a 16 hex char digest."""
        key = CacheKeys("cacheable").derive("users", "select * from users where id = ?", [5])
        assert re.fullmatch(r"cacheable:users:[0-9a-f]{16}", key)

    def test_group_key_format(self) -> None:
        """Grouped result key sits under the group scope."""
        key = CacheKeys("cacheable").derive(
            "orders", "select * from orders where companyId = ?", [1], "companyId", 1
        )
        assert re.fullmatch(r"cacheable:orders:companyId1:[0-9a-f]{16}", key)

    def test_deterministic(self) -> None:
        """Same statement and bindings give the same key across instances."""
        first = CacheKeys("cacheable").derive("users", "select * from users where id = ?", [5])
        second = CacheKeys("cacheable").derive("users", "select * from users where id = ?", [5])
        assert first == second

    def test_known_digest(self) -> None:
        """Digest is the middle of an MD5 over SQL and bindings, so it survives restarts."""
        import hashlib

        payload = b"select * from users where id = ?_5_\"x\""
        expected = hashlib.md5(payload).hexdigest()[8:-8]
        assert CacheKeys.digest("select * from users where id = ?", [5, "x"]) == expected

    def test_digest_without_bindings_hashes_sql_only(self) -> None:
        """Empty bindings add no separator to the hashed payload."""
        import hashlib

        sql = "select * from users"
        expected = hashlib.md5(sql.encode()).hexdigest()[8:-8]
        assert CacheKeys.digest(sql, []) == expected

    def test_different_bindings_differ(self) -> None:
        """Different binding values give different keys."""
        keys = CacheKeys("cacheable")
        sql = "select * from users where id = ?"
        assert keys.derive("users", sql, [5]) != keys.derive("users", sql, [6])

    def test_binding_order_matters(self) -> None:
        """Bindings are ordered."""
        keys = CacheKeys("cacheable")
        sql = "select * from t where a = ? and b = ?"
        assert keys.derive("t", sql, [1, 2]) != keys.derive("t", sql, [2, 1])

    def test_binding_types_distinguished(self) -> None:
        """Integer 1 and string "1" do not collide."""
        keys = CacheKeys("cacheable")
        sql = "select * from users where id = ?"
        assert keys.derive("users", sql, [1]) != keys.derive("users", sql, ["1"])

    def test_separator_in_values_does_not_collide(self) -> None:
        """Values containing the binding separator stay distinct."""
        keys = CacheKeys("cacheable")
        sql = "select * from t where a = ? and b = ?"
        assert keys.derive("t", sql, ["x_y", "z"]) != keys.derive("t", sql, ["x", "y_z"])

    def test_different_sql_differs(self) -> None:
        """Different statements give different keys."""
        keys = CacheKeys("cacheable")
        assert keys.derive("users", "select id from users", []) != keys.derive(
            "users", "select name from users", []
        )

    def test_prefix_changes_key(self) -> None:
        """Keys are namespaced by prefix."""
        sql = "select * from users"
        assert CacheKeys("a").derive("users", sql, []).startswith("a:users:")
        assert CacheKeys("b").derive("users", sql, []).startswith("b:users:")


class TestParse:
    """Test key parsing."""

    def test_parse_table_key(self) -> None:
        """Table-scoped result key is parsed correctly."""
        keys = CacheKeys("cacheable")
        result = keys.parse(keys.derive("users", "select * from users", []))
        assert result is not None
        assert result["prefix"] == "cacheable"
        assert result["table"] == "users"
        assert result["group"] == ""
        assert len(result["digest"]) == 16

    def test_parse_group_key(self) -> None:
        """Group-scoped result key exposes the group segment."""
        keys = CacheKeys("cacheable")
        result = keys.parse(keys.derive("orders", "select 1", [], "companyId", 7))
        assert result is not None
        assert result["table"] == "orders"
        assert result["group"] == "companyId7"

    def test_parse_invalid_key_returns_none(self) -> None:
        """Invalid key returns None."""
        keys = CacheKeys("cacheable")
        assert keys.parse("invalid") is None
        assert keys.parse("other:users:abc") is None
