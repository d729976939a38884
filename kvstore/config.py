"""Store Configuration — environment-driven settings via pydantic-settings.

Invariants:
    - Every setting is read from a KVSTORE_-prefixed environment variable or .env
    - get_settings() is cached (lru_cache), one instance per process
    - Intervals and timeouts are positive when set

Design Decisions:
    - pydantic-settings over raw os.environ: validation, type coercion, .env file support
    - Defaults describe a plain in-memory store: no adapter, no timer, no versioning
"""

from functools import lru_cache

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from kvstore.core.domain_types import DEFAULT_TABLE_NAME, AdapterKind


class Settings(BaseSettings):
    """Store settings from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="KVSTORE_", env_file=".env", case_sensitive=False, extra="ignore",
    )

    # Persistence
    adapter: AdapterKind = AdapterKind.NONE
    file_path: str = "kvstore.json"
    sql_path: str = "kvstore.db"
    sql_table_name: str = DEFAULT_TABLE_NAME

    # Engine
    sync_interval_ms: int | None = None
    enable_versioning: bool = False
    adapter_timeout_seconds: float | None = None

    # Observability
    log_level: str = "INFO"
    log_format: str = "json"

    @field_validator("sync_interval_ms", "adapter_timeout_seconds")
    @classmethod
    def must_be_positive(cls, v: float | None) -> float | None:
        if v is not None and v <= 0:
            raise ValueError("must be positive")
        return v

    @field_validator("log_level")
    @classmethod
    def known_log_level(cls, v: str) -> str:
        v = v.upper()
        if v not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"unknown log_level {v!r}")
        return v

    @field_validator("log_format")
    @classmethod
    def known_log_format(cls, v: str) -> str:
        v = v.lower()
        if v not in ("json", "text"):
            raise ValueError("log_format must be 'json' or 'text'")
        return v


@lru_cache
def get_settings() -> Settings:
    return Settings()
