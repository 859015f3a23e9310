from __future__ import annotations

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="CACHEABLE_", env_file=".env", extra="ignore")

    # Query cache
    enabled: bool = True
    ttl: int = 300
    prefix: str = "cacheable"

    # Table name -> group column, e.g. {"orders": "companyId"}
    groups: dict[str, str] = Field(default_factory=dict)

    # Predicates using these operators are never cached
    excluded_operators: list[str] = Field(
        default_factory=lambda: ["like", "not like", "ilike", "not ilike"]
    )

    # Redis
    redis_url: str = Field(default="redis://localhost:6379/0", validation_alias="REDIS_URL")

    # Observability
    enable_metrics: bool = True
    log_level: str = "INFO"
    log_json: bool = False

    @field_validator("ttl")
    @classmethod
    def _positive_ttl(cls, value: int) -> int:
        if value <= 0:
            raise ValueError("ttl must be a positive number of seconds")
        return value

    @field_validator("prefix")
    @classmethod
    def _non_empty_prefix(cls, value: str) -> str:
        if not value or ":" in value:
            raise ValueError("prefix must be non-empty and must not contain ':'")
        return value


settings = Settings()
