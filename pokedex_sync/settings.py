"""Centralized configuration management for the Pokedex sync engine."""

from __future__ import annotations

import logging
import os
from functools import lru_cache
from typing import Literal

from dotenv import load_dotenv
from pydantic import Field, PrivateAttr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Load variables from a local .env file before the settings singleton is built so
# every consumer importing :mod:`pokedex_sync.settings` observes the same values.
load_dotenv()

# -- Application-wide constants -------------------------------------------------

DEFAULT_CATALOG_BASE_URL = "https://pokeapi.co/api/v2"
DEFAULT_PAGE_SIZE = 20
DEFAULT_SEARCH_RESULT_LIMIT = 50
DEFAULT_NAME_INDEX_LIMIT = 2000
DEFAULT_SQLITE_DATABASE_URL = "sqlite+aiosqlite:///./data/pokedex.db"
DEFAULT_REDIS_URL = "redis://localhost:6379/0"
DEFAULT_LOG_LEVEL = "INFO"

CacheBackendName = Literal["sqlite", "redis", "memory"]


class AppSettings(BaseSettings):
    """Typed configuration surface built on top of ``pydantic-settings``.

    Besides the raw environment values the class exposes a few derived helpers
    (probe URL fallback, numeric log level, configuration warnings) so the
    wiring code never has to repeat that parsing.
    """

    _explicit_redis_url: bool = PrivateAttr(default=False)

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    def __init__(self, **values: object) -> None:
        """Capture explicit overrides prior to delegating to ``BaseSettings``."""

        normalized_keys = {str(key).lower() for key in values}
        super().__init__(**values)
        self._explicit_redis_url = "redis_url" in normalized_keys
        redis_env = os.getenv("REDIS_URL")
        if redis_env is not None and redis_env.strip():
            self._explicit_redis_url = True

    catalog_base_url: str = Field(
        default=DEFAULT_CATALOG_BASE_URL,
        alias="CATALOG_BASE_URL",
        description="Root of the remote catalog API (PokeAPI compatible).",
    )
    page_size: int = Field(
        default=DEFAULT_PAGE_SIZE,
        gt=0,
        alias="CATALOG_PAGE_SIZE",
        description="Number of catalog entries requested per page.",
    )
    search_result_limit: int = Field(
        default=DEFAULT_SEARCH_RESULT_LIMIT,
        gt=0,
        alias="SEARCH_RESULT_LIMIT",
        description="Maximum number of entries returned by the substring search.",
    )
    name_index_limit: int = Field(
        default=DEFAULT_NAME_INDEX_LIMIT,
        gt=0,
        alias="NAME_INDEX_LIMIT",
        description=(
            "Listing limit used when downloading the full name index for the"
            " fallback substring search."
        ),
    )
    request_timeout_seconds: float = Field(
        default=10.0,
        gt=0,
        alias="REQUEST_TIMEOUT_SECONDS",
        description="Timeout applied to every catalog HTTP request.",
    )
    detail_fetch_concurrency: int = Field(
        default=8,
        gt=0,
        alias="DETAIL_FETCH_CONCURRENCY",
        description=(
            "Maximum number of detail requests issued in parallel while"
            " resolving favorites that are not part of the loaded pages."
        ),
    )
    database_url: str = Field(
        default=DEFAULT_SQLITE_DATABASE_URL,
        alias="DATABASE_URL",
        description="SQLAlchemy async URL for the durable local store.",
    )
    cache_backend: CacheBackendName = Field(
        default="sqlite",
        alias="CACHE_BACKEND",
        description="Blob backend used for the offline favorites snapshot.",
    )
    redis_url: str = Field(
        default=DEFAULT_REDIS_URL,
        alias="REDIS_URL",
        description="Redis connection string used when CACHE_BACKEND=redis.",
    )
    connectivity_probe_url: str | None = Field(
        default=None,
        alias="CONNECTIVITY_PROBE_URL",
        description="URL polled to detect connectivity; defaults to the catalog URL.",
    )
    connectivity_poll_interval_seconds: float = Field(
        default=15.0,
        gt=0,
        alias="CONNECTIVITY_POLL_INTERVAL_SECONDS",
        description="Delay between two connectivity probes.",
    )
    log_level: str = Field(
        default=DEFAULT_LOG_LEVEL,
        alias="LOG_LEVEL",
        description="Root logging level (e.g. INFO, DEBUG, WARNING).",
    )

    @field_validator("cache_backend", mode="before")
    @classmethod
    def _normalize_backend(cls, value: object) -> object:
        if isinstance(value, str):
            return value.strip().lower()
        return value

    @field_validator("catalog_base_url")
    @classmethod
    def _strip_trailing_slash(cls, value: str) -> str:
        return value.strip().rstrip("/")

    @property
    def resolved_probe_url(self) -> str:
        """Return the connectivity probe URL, falling back to the catalog root."""

        if self.connectivity_probe_url and self.connectivity_probe_url.strip():
            return self.connectivity_probe_url.strip()
        return self.catalog_base_url

    @property
    def log_level_numeric(self) -> int:
        """Translate ``log_level`` into the numeric constant expected by logging."""

        candidate = logging.getLevelName(self.log_level.upper())
        if isinstance(candidate, int):
            return candidate
        return logging.INFO

    def optional_config_warnings(self) -> list[str]:
        """Return human-readable warnings for questionable configuration."""

        warnings: list[str] = []

        if self.cache_backend == "memory":
            warnings.append(
                "CACHE_BACKEND=memory - the offline favorites snapshot will not "
                "survive a restart"
            )

        if (
            self.cache_backend == "redis"
            and not self._explicit_redis_url
            and self.redis_url == DEFAULT_REDIS_URL
        ):
            warnings.append(
                "REDIS_URL is not set - the offline cache will use the default "
                "localhost instance"
            )

        return warnings


@lru_cache(maxsize=1)
def get_settings() -> AppSettings:
    """Return a cached instance of :class:`AppSettings`."""

    return AppSettings()


__all__ = [
    "AppSettings",
    "CacheBackendName",
    "DEFAULT_CATALOG_BASE_URL",
    "DEFAULT_LOG_LEVEL",
    "DEFAULT_NAME_INDEX_LIMIT",
    "DEFAULT_PAGE_SIZE",
    "DEFAULT_REDIS_URL",
    "DEFAULT_SEARCH_RESULT_LIMIT",
    "DEFAULT_SQLITE_DATABASE_URL",
    "get_settings",
]
