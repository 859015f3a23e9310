"""Tests for environment-driven settings."""

import pytest
from pydantic import ValidationError

from querycache.config import Settings


class TestSettings:
    """Tests for Settings."""

    def test_defaults(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Defaults match the shipped configuration."""
        for name in ("CACHEABLE_ENABLED", "CACHEABLE_TTL", "CACHEABLE_PREFIX", "CACHEABLE_GROUPS"):
            monkeypatch.delenv(name, raising=False)

        settings = Settings(_env_file=None)

        assert settings.enabled is True
        assert settings.ttl == 300
        assert settings.prefix == "cacheable"
        assert settings.groups == {}
        assert "like" in settings.excluded_operators

    def test_from_environment(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """CACHEABLE_* variables override the defaults."""
        monkeypatch.setenv("CACHEABLE_ENABLED", "false")
        monkeypatch.setenv("CACHEABLE_TTL", "60")
        monkeypatch.setenv("CACHEABLE_PREFIX", "qc")
        monkeypatch.setenv("CACHEABLE_GROUPS", '{"orders": "companyId"}')
        monkeypatch.setenv("REDIS_URL", "redis://cache:6379/1")

        settings = Settings(_env_file=None)

        assert settings.enabled is False
        assert settings.ttl == 60
        assert settings.prefix == "qc"
        assert settings.groups == {"orders": "companyId"}
        assert settings.redis_url == "redis://cache:6379/1"

    def test_ttl_must_be_positive(self) -> None:
        """A zero TTL is rejected."""
        with pytest.raises(ValidationError):
            Settings(_env_file=None, ttl=0)

    def test_prefix_must_not_contain_separator(self) -> None:
        """The prefix cannot contain the key separator."""
        with pytest.raises(ValidationError):
            Settings(_env_file=None, prefix="a:b")
