"""Tests for the production wiring of the sync engine."""

from __future__ import annotations

import pytest

from pokedex_sync.cache import MemoryBlobBackend, SqlBlobBackend
from pokedex_sync.services.dependencies import build_sync_engine
from pokedex_sync.services.identity_service import SqlIdentitySource
from pokedex_sync.services.sync_engine import CatalogSyncEngine
from pokedex_sync.settings import AppSettings


@pytest.mark.asyncio
async def test_build_sync_engine_with_memory_backend(settings: AppSettings) -> None:
    pytest.importorskip("aiosqlite")
    engine, close = await build_sync_engine(settings, user_id="ash")
    try:
        assert isinstance(engine, CatalogSyncEngine)
        assert isinstance(engine._cache_store.backend, MemoryBlobBackend)
        assert isinstance(engine._identity, SqlIdentitySource)
        assert engine.state.window.page_size == settings.page_size
        assert engine.offline is False
    finally:
        await close()


@pytest.mark.asyncio
async def test_build_sync_engine_defaults_to_sql_backend(settings: AppSettings) -> None:
    pytest.importorskip("aiosqlite")
    sqlite_settings = settings.model_copy(update={"cache_backend": "sqlite"})

    engine, close = await build_sync_engine(sqlite_settings, initial_online=False)
    try:
        assert isinstance(engine._cache_store.backend, SqlBlobBackend)
        assert engine._identity is None
        assert engine.offline is True
        assert await engine._cache_store.load() == []
    finally:
        await close()


@pytest.mark.asyncio
async def test_unreachable_redis_falls_back_to_memory(
    settings: AppSettings, caplog: pytest.LogCaptureFixture
) -> None:
    pytest.importorskip("aiosqlite")
    redis_settings = settings.model_copy(
        update={"cache_backend": "redis", "redis_url": "redis://127.0.0.1:1/0"}
    )

    with caplog.at_level("WARNING"):
        engine, close = await build_sync_engine(redis_settings)
    try:
        assert isinstance(engine._cache_store.backend, MemoryBlobBackend)
        assert "falling back to in-memory cache backend" in caplog.text
    finally:
        await close()
