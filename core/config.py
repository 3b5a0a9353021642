"""
core/config.py -- Centralized application configuration via pydantic-settings.

All environment variable reads for ipguard happen here. No module should call
os.getenv() or os.environ.get() directly -- import get_settings() instead.

Singleton via lru_cache: get_settings() instantiates Settings once at first
call and returns the cached instance on every subsequent call. In tests, call
get_settings.cache_clear() after changing the environment.

Layer rule: core/ is the kernel. This module may not import from api/.
"""

import logging
from functools import lru_cache

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables and .env file.

    Every field has a default so Settings() works without a .env file.
    List fields are read from the environment as JSON, e.g.
    DNS_NAMESERVERS='["1.1.1.1", "8.8.8.8"]'.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ------------------------------------------------------------------
    # Core
    # ------------------------------------------------------------------

    # Passed to FastAPI(debug=...).
    debug: bool = False
    log_level: str = "INFO"

    # ------------------------------------------------------------------
    # Rate limiting
    # ------------------------------------------------------------------

    rate_limit_window_seconds: int = 60
    blacklist_rate_limit: int = 20

    # ------------------------------------------------------------------
    # DNS
    # ------------------------------------------------------------------

    dns_timeout_seconds: float = 5.0
    # Empty list means "use the system resolver configuration".
    dns_nameservers: list[str] = []

    # ------------------------------------------------------------------
    # HTTP
    # ------------------------------------------------------------------

    cors_origins: list[str] = []

    # ------------------------------------------------------------------
    # Validators
    # ------------------------------------------------------------------

    @field_validator("rate_limit_window_seconds", "blacklist_rate_limit", "dns_timeout_seconds")
    @classmethod
    def must_be_positive(cls, value):
        if value <= 0:
            raise ValueError("must be greater than zero")
        return value

    @field_validator("log_level")
    @classmethod
    def normalize_log_level(cls, value: str) -> str:
        level = value.strip().upper()
        if level not in logging.getLevelNamesMapping():
            raise ValueError(f"unknown log level {value!r}")
        return level


@lru_cache
def get_settings() -> Settings:
    """Return the application Settings singleton."""
    return Settings()
