"""Durable blob storage for the offline favorites snapshot.

:class:`LocalCacheStore` speaks in :class:`CatalogEntry` values and delegates
the raw string storage to a :class:`BlobBackend`:

* :class:`SqlBlobBackend`: default, a row per key in the local SQLite store.
* :class:`RedisBlobBackend`: a Redis instance; connection failures degrade to
  "no data" exactly like the rest of the caching layer.
* :class:`MemoryBlobBackend`: process-local, used by tests and ``CACHE_BACKEND=memory``.
"""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, Protocol, runtime_checkable

from redis.asyncio import Redis as RedisClient
from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import TimeoutError as RedisTimeoutError
from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import sessionmaker

from pokedex_sync.db.connection import session_scope
from pokedex_sync.db.models import CacheBlob
from pokedex_sync.errors import CacheStoreError
from pokedex_sync.schemas.catalog import CatalogEntry

logger = logging.getLogger(__name__)

FAVORITES_CACHE_KEY = "favorited_pokemon_cache"


@runtime_checkable
class BlobBackend(Protocol):
    """Minimal string key-value surface required by :class:`LocalCacheStore`."""

    async def get_blob(self, key: str) -> str | None: ...

    async def set_blob(self, key: str, value: str) -> None: ...

    async def delete_blob(self, key: str) -> None: ...


class MemoryBlobBackend:
    def __init__(self) -> None:
        self._store: dict[str, str] = {}
        self._lock = asyncio.Lock()

    async def get_blob(self, key: str) -> str | None:
        async with self._lock:
            return self._store.get(key)

    async def set_blob(self, key: str, value: str) -> None:
        async with self._lock:
            self._store[key] = value

    async def delete_blob(self, key: str) -> None:
        async with self._lock:
            self._store.pop(key, None)


class SqlBlobBackend:
    """Store blobs in the ``cache_blobs`` table of the local database.

    Database failures surface as :class:`CacheStoreError`.
    """

    def __init__(self, session_factory: sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def get_blob(self, key: str) -> str | None:
        try:
            async with session_scope(self._session_factory) as session:
                result = await session.execute(
                    select(CacheBlob.payload).where(CacheBlob.key == key)
                )
                return result.scalar_one_or_none()
        except SQLAlchemyError as exc:
            raise CacheStoreError(f"Could not read cache key {key}: {exc}") from exc

    async def set_blob(self, key: str, value: str) -> None:
        try:
            async with session_scope(self._session_factory) as session:
                row = await session.get(CacheBlob, key)
                if row is None:
                    session.add(CacheBlob(key=key, payload=value))
                else:
                    row.payload = value
        except SQLAlchemyError as exc:
            raise CacheStoreError(f"Could not write cache key {key}: {exc}") from exc

    async def delete_blob(self, key: str) -> None:
        try:
            async with session_scope(self._session_factory) as session:
                await session.execute(delete(CacheBlob).where(CacheBlob.key == key))
        except SQLAlchemyError as exc:
            raise CacheStoreError(f"Could not delete cache key {key}: {exc}") from exc


def _is_redis_connection_error(exc: BaseException) -> bool:
    """Return ``True`` when ``exc`` represents a Redis connection failure."""

    return isinstance(exc, (RedisConnectionError, RedisTimeoutError, OSError))


class RedisBlobBackend:
    """Store blobs in Redis without expiry; the snapshot must outlive sessions."""

    def __init__(self, redis: RedisClient) -> None:
        self._redis = redis

    @classmethod
    def from_url(cls, redis_url: str) -> RedisBlobBackend:
        return cls(RedisClient.from_url(redis_url, decode_responses=True, encoding="utf-8"))

    async def ping(self) -> bool:
        try:
            await self._redis.ping()
        except Exception as exc:  # type: ignore[broad-except]
            if _is_redis_connection_error(exc):
                logger.warning(f"Redis connection failed: {exc}")
                return False
            raise
        return True

    async def get_blob(self, key: str) -> str | None:
        try:
            return await self._redis.get(key)
        except Exception as exc:  # type: ignore[broad-except]
            if _is_redis_connection_error(exc):
                logger.warning(f"Redis get failed for key {key}: {exc}")
                return None
            raise

    async def set_blob(self, key: str, value: str) -> None:
        try:
            await self._redis.set(key, value)
        except Exception as exc:  # type: ignore[broad-except]
            if _is_redis_connection_error(exc):
                logger.warning(f"Redis set failed for key {key}: {exc}")
                return
            raise

    async def delete_blob(self, key: str) -> None:
        try:
            await self._redis.delete(key)
        except Exception as exc:  # type: ignore[broad-except]
            if _is_redis_connection_error(exc):
                logger.warning(f"Redis delete failed for key {key}: {exc}")
                return
            raise

    async def aclose(self) -> None:
        await self._redis.aclose()


def encode_snapshot(entries: list[CatalogEntry], *, base_url: str) -> str:
    return json.dumps([entry.to_cache_record(base_url) for entry in entries])


def decode_snapshot(payload: str) -> list[CatalogEntry]:
    """Decode a snapshot string, raising :class:`CacheStoreError` when malformed."""

    try:
        records: Any = json.loads(payload)
    except json.JSONDecodeError as exc:
        raise CacheStoreError(f"Favorites snapshot is not valid JSON: {exc}") from exc
    if not isinstance(records, list):
        raise CacheStoreError("Favorites snapshot must be a JSON array")
    try:
        return [CatalogEntry.from_cache_record(record) for record in records]
    except (KeyError, TypeError, ValueError) as exc:
        raise CacheStoreError(f"Malformed favorites snapshot record: {exc}") from exc


class LocalCacheStore:
    """Save, load and clear the favorited-entries snapshot."""

    def __init__(
        self,
        backend: BlobBackend,
        *,
        base_url: str,
        key: str = FAVORITES_CACHE_KEY,
    ) -> None:
        self._backend = backend
        self._base_url = base_url
        self._key = key

    @property
    def backend(self) -> BlobBackend:
        return self._backend

    async def save(self, entries: list[CatalogEntry]) -> None:
        """Overwrite the snapshot with ``entries``."""

        await self._backend.set_blob(
            self._key, encode_snapshot(entries, base_url=self._base_url)
        )

    async def load(self) -> list[CatalogEntry]:
        """Return the stored snapshot; a missing or corrupt snapshot reads as empty."""

        try:
            payload = await self._backend.get_blob(self._key)
            if payload is None:
                return []
            return decode_snapshot(payload)
        except CacheStoreError as exc:
            logger.warning(f"Ignoring unreadable favorites snapshot: {exc}")
            return []

    async def clear(self) -> None:
        await self._backend.delete_blob(self._key)


__all__ = [
    "BlobBackend",
    "FAVORITES_CACHE_KEY",
    "LocalCacheStore",
    "MemoryBlobBackend",
    "RedisBlobBackend",
    "SqlBlobBackend",
    "decode_snapshot",
    "encode_snapshot",
]
