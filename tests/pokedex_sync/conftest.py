"""Shared fixtures for the sync engine test suite."""

from __future__ import annotations

from collections.abc import AsyncIterator

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from pokedex_sync.db.connection import create_session_factory, init_models
from pokedex_sync.settings import AppSettings, get_settings
from tests.pokedex_sync.support.doubles import BASE_URL


@pytest.fixture(autouse=True)
def _reset_settings_cache() -> None:
    get_settings.cache_clear()


@pytest.fixture
def settings() -> AppSettings:
    return AppSettings(
        catalog_base_url=BASE_URL,
        database_url="sqlite+aiosqlite:///:memory:",
        cache_backend="memory",
    )


@pytest_asyncio.fixture
async def session_factory() -> AsyncIterator[sessionmaker[AsyncSession]]:
    """Provide a session factory bound to a fresh in-memory SQLite database."""

    pytest.importorskip("aiosqlite")
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:", future=True, poolclass=StaticPool
    )
    await init_models(engine)
    yield create_session_factory(engine)
    await engine.dispose()
