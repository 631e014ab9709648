from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncIterator

from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker

from pokedex_sync.db.models import Base
from pokedex_sync.settings import AppSettings

logger = logging.getLogger(__name__)


def _ensure_sqlite_directory(database_url: str) -> None:
    """Create the parent directory of a file-backed SQLite database."""

    url = make_url(database_url)
    if not url.drivername.startswith("sqlite"):
        return
    database = url.database
    if not database or database == ":memory:":
        return
    Path(database).expanduser().parent.mkdir(parents=True, exist_ok=True)


def create_engine(settings: AppSettings) -> AsyncEngine:
    """Create the async SQLAlchemy engine for the local store."""

    database_url = settings.database_url.strip()
    if not database_url:
        raise RuntimeError(
            "DATABASE_URL is set but empty. Provide a SQLAlchemy async URL such as "
            "'sqlite+aiosqlite:///./data/pokedex.db'."
        )
    _ensure_sqlite_directory(database_url)
    return create_async_engine(database_url, future=True, echo=False)


def create_session_factory(engine: AsyncEngine) -> sessionmaker[AsyncSession]:
    return sessionmaker(engine, expire_on_commit=False, class_=AsyncSession)


async def init_models(engine: AsyncEngine) -> None:
    """Create any missing tables; the local store has no migrations."""

    async with engine.begin() as connection:
        await connection.run_sync(Base.metadata.create_all)
    logger.debug("Local store tables ensured on %s", engine.url)


@asynccontextmanager
async def session_scope(
    session_factory: sessionmaker[AsyncSession],
) -> AsyncIterator[AsyncSession]:
    """Yield a session that commits on success and rolls back on error."""

    async with session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


__all__ = [
    "create_engine",
    "create_session_factory",
    "init_models",
    "session_scope",
]
