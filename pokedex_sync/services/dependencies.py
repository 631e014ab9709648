"""Wiring for the sync engine and its adapters.

Keeping construction here leaves the service modules free of configuration
concerns, so tests build engines from doubles while the CLI and embedding
applications go through :func:`build_sync_engine`.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable

from pokedex_sync.cache import (
    BlobBackend,
    LocalCacheStore,
    MemoryBlobBackend,
    RedisBlobBackend,
    SqlBlobBackend,
)
from pokedex_sync.clients.catalog_client import CatalogClient
from pokedex_sync.db.connection import create_engine, create_session_factory, init_models
from pokedex_sync.services.connectivity import ConnectivityMonitor
from pokedex_sync.services.identity_service import SqlIdentitySource
from pokedex_sync.services.sync_engine import CatalogSyncEngine
from pokedex_sync.settings import AppSettings, get_settings

logger = logging.getLogger(__name__)

CloseCallback = Callable[[], Awaitable[None]]


async def _select_backend(
    settings: AppSettings, sql_backend: SqlBlobBackend
) -> tuple[BlobBackend, RedisBlobBackend | None]:
    if settings.cache_backend == "memory":
        logger.info("Cache backend selected: memory")
        return MemoryBlobBackend(), None

    if settings.cache_backend == "redis":
        redis_backend = RedisBlobBackend.from_url(settings.redis_url)
        if await redis_backend.ping():
            logger.info("Cache backend selected: redis")
            return redis_backend, redis_backend
        await redis_backend.aclose()
        logger.warning(
            "Redis unavailable at %s; falling back to in-memory cache backend",
            settings.redis_url,
        )
        return MemoryBlobBackend(), None

    logger.info("Cache backend selected: sqlite")
    return sql_backend, None


async def build_sync_engine(
    settings: AppSettings | None = None,
    *,
    user_id: str | None = None,
    initial_online: bool = True,
) -> tuple[CatalogSyncEngine, CloseCallback]:
    """Create a fully-wired :class:`CatalogSyncEngine` and its closing callable.

    Without ``user_id`` the engine runs without an identity: toggling favorites
    is refused and rebuilds are skipped.
    """

    resolved = settings or get_settings()

    db_engine = create_engine(resolved)
    await init_models(db_engine)
    session_factory = create_session_factory(db_engine)

    backend, redis_backend = await _select_backend(
        resolved, SqlBlobBackend(session_factory)
    )
    cache_store = LocalCacheStore(backend, base_url=resolved.catalog_base_url)
    identity = (
        SqlIdentitySource(session_factory, user_id=user_id) if user_id else None
    )
    catalog = CatalogClient(resolved)
    connectivity = ConnectivityMonitor(
        resolved.resolved_probe_url,
        poll_interval=resolved.connectivity_poll_interval_seconds,
        timeout=resolved.request_timeout_seconds,
        initial=initial_online,
    )

    engine = CatalogSyncEngine(
        catalog=catalog,
        cache_store=cache_store,
        connectivity=connectivity,
        identity=identity,
        page_size=resolved.page_size,
        search_result_limit=resolved.search_result_limit,
        detail_fetch_concurrency=resolved.detail_fetch_concurrency,
    )

    async def _close() -> None:
        engine.close()
        await connectivity.stop()
        await catalog.aclose()
        if redis_backend is not None:
            await redis_backend.aclose()
        await db_engine.dispose()

    return engine, _close


__all__ = ["CloseCallback", "build_sync_engine"]
