"""Immutable state models owned by :class:`~pokedex_sync.services.sync_engine.CatalogSyncEngine`.

Every command produces a new :class:`EngineState` through the pure transitions
in :mod:`pokedex_sync.services.sync_state`; nothing in this module mutates.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

from pokedex_sync.schemas.catalog import CatalogDetail, CatalogEntry
from pokedex_sync.settings import DEFAULT_PAGE_SIZE

NO_CONNECTION_MESSAGE = "no connection"


class SyncPhase(str, Enum):
    IDLE = "idle"
    LOADING = "loading"
    LOADING_MORE = "loading_more"
    ERROR = "error"


class SyncStatus(BaseModel):
    """Tagged status; ``message`` is only set for :attr:`SyncPhase.ERROR`."""

    model_config = ConfigDict(frozen=True)

    phase: SyncPhase = SyncPhase.IDLE
    message: str | None = None

    @classmethod
    def idle(cls) -> SyncStatus:
        return cls(phase=SyncPhase.IDLE)

    @classmethod
    def loading(cls) -> SyncStatus:
        return cls(phase=SyncPhase.LOADING)

    @classmethod
    def loading_more(cls) -> SyncStatus:
        return cls(phase=SyncPhase.LOADING_MORE)

    @classmethod
    def error(cls, message: str) -> SyncStatus:
        return cls(phase=SyncPhase.ERROR, message=message)

    @property
    def is_error(self) -> bool:
        return self.phase is SyncPhase.ERROR


class CatalogPageWindow(BaseModel):
    """Pagination cursor.

    ``offset`` counts entries fetched through paging only; entries injected by
    favorites reconciliation never move it.
    """

    model_config = ConfigDict(frozen=True)

    offset: int = Field(default=0, ge=0)
    page_size: int = Field(default=DEFAULT_PAGE_SIZE, gt=0)
    has_more: bool = True
    loaded_entries: tuple[CatalogEntry, ...] = ()

    @property
    def loaded_ids(self) -> frozenset[int]:
        return frozenset(entry.id for entry in self.loaded_entries)


class SearchState(BaseModel):
    model_config = ConfigDict(frozen=True)

    query: str = ""
    results: tuple[CatalogEntry, ...] = ()

    @property
    def active(self) -> bool:
        return bool(self.query.strip())


class FavoritesState(BaseModel):
    """Favorites view assembled from the identity source and the offline snapshot.

    Online, ``resolved_cache`` holds the favorites that are *not* part of the
    loaded page window; offline it mirrors ``offline_cache``. It is rebuilt
    wholesale, never patched.
    """

    model_config = ConfigDict(frozen=True)

    favorite_ids: frozenset[int] = frozenset()
    offline_cache: dict[int, CatalogEntry] = Field(default_factory=dict)
    resolved_cache: dict[int, CatalogEntry] = Field(default_factory=dict)


class EngineState(BaseModel):
    model_config = ConfigDict(frozen=True)

    window: CatalogPageWindow = Field(default_factory=CatalogPageWindow)
    search: SearchState = Field(default_factory=SearchState)
    favorites: FavoritesState = Field(default_factory=FavoritesState)
    status: SyncStatus = Field(default_factory=SyncStatus)
    offline: bool = False
    # favorites_only = manual toggle OR offline override.
    favorites_only_manual: bool = False
    favorites_only_forced: bool = False
    selected: CatalogDetail | None = None

    @property
    def favorites_only(self) -> bool:
        return self.favorites_only_manual or self.favorites_only_forced


__all__ = [
    "CatalogPageWindow",
    "EngineState",
    "FavoritesState",
    "NO_CONNECTION_MESSAGE",
    "SearchState",
    "SyncPhase",
    "SyncStatus",
]
