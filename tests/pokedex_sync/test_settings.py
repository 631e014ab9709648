"""Unit tests covering the typed application settings implementation."""

from __future__ import annotations

import logging

import pytest

from pokedex_sync.logging_config import configure_logging
from pokedex_sync.settings import (
    DEFAULT_CATALOG_BASE_URL,
    DEFAULT_PAGE_SIZE,
    DEFAULT_REDIS_URL,
    DEFAULT_SQLITE_DATABASE_URL,
    AppSettings,
)

_ENV_KEYS = (
    "CATALOG_BASE_URL",
    "CATALOG_PAGE_SIZE",
    "CACHE_BACKEND",
    "REDIS_URL",
    "DATABASE_URL",
    "CONNECTIVITY_PROBE_URL",
    "LOG_LEVEL",
)


@pytest.fixture(autouse=True)
def _clean_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    for key in _ENV_KEYS:
        monkeypatch.delenv(key, raising=False)


def test_defaults() -> None:
    configured = AppSettings(_env_file=None)

    assert configured.catalog_base_url == DEFAULT_CATALOG_BASE_URL
    assert configured.page_size == DEFAULT_PAGE_SIZE
    assert configured.database_url == DEFAULT_SQLITE_DATABASE_URL
    assert configured.cache_backend == "sqlite"
    assert configured.resolved_probe_url == DEFAULT_CATALOG_BASE_URL
    assert configured.optional_config_warnings() == []


def test_environment_overrides(monkeypatch: pytest.MonkeyPatch) -> None:
    """Environment aliases should populate the typed fields."""

    monkeypatch.setenv("CATALOG_BASE_URL", "https://mirror.test/api/v2/")
    monkeypatch.setenv("CATALOG_PAGE_SIZE", "50")
    monkeypatch.setenv("CACHE_BACKEND", " Redis ")
    monkeypatch.setenv("CONNECTIVITY_PROBE_URL", "https://status.test/ping")
    configured = AppSettings(_env_file=None)

    assert configured.catalog_base_url == "https://mirror.test/api/v2"
    assert configured.page_size == 50
    assert configured.cache_backend == "redis"
    assert configured.resolved_probe_url == "https://status.test/ping"


def test_invalid_page_size_is_rejected(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("CATALOG_PAGE_SIZE", "0")

    with pytest.raises(ValueError):
        AppSettings(_env_file=None)


def test_log_level_numeric_falls_back_to_info() -> None:
    assert AppSettings(_env_file=None, log_level="debug").log_level_numeric == logging.DEBUG
    assert AppSettings(_env_file=None, log_level="chatty").log_level_numeric == logging.INFO


def test_redis_backend_warns_without_explicit_url() -> None:
    configured = AppSettings(_env_file=None, cache_backend="redis")

    warnings = configured.optional_config_warnings()

    assert any("REDIS_URL" in warning for warning in warnings)


def test_redis_warning_clears_when_url_provided(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("REDIS_URL", DEFAULT_REDIS_URL)
    configured = AppSettings(_env_file=None, cache_backend="redis")

    assert configured.optional_config_warnings() == []


def test_configure_logging_reports_warnings(caplog: pytest.LogCaptureFixture) -> None:
    candidate = AppSettings(_env_file=None, cache_backend="memory")

    with caplog.at_level(logging.WARNING):
        configure_logging(candidate)

    assert "Environment Configuration Warnings:" in caplog.text
    assert "CACHE_BACKEND=memory" in caplog.text
