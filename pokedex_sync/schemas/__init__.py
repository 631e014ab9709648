"""Pydantic models shared by the catalog adapters and the sync engine."""

from .catalog import (
    CatalogDetail,
    CatalogEntry,
    CatalogPage,
    CatalogStat,
    EvolutionStage,
    entry_id_from_url,
)
from .sync import (
    CatalogPageWindow,
    EngineState,
    FavoritesState,
    SearchState,
    SyncPhase,
    SyncStatus,
)

__all__ = [
    "CatalogDetail",
    "CatalogEntry",
    "CatalogPage",
    "CatalogPageWindow",
    "CatalogStat",
    "EngineState",
    "EvolutionStage",
    "FavoritesState",
    "SearchState",
    "SyncPhase",
    "SyncStatus",
    "entry_id_from_url",
]
