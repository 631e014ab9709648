"""Pure state transitions, one per engine command phase.

Each function takes the current :class:`EngineState` plus the outcome of an
adapter call and returns the next state. The engine performs the I/O and
applies these in order; all cross-field rules live here.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping

from pokedex_sync.schemas.catalog import CatalogDetail, CatalogEntry, CatalogPage
from pokedex_sync.schemas.sync import (
    NO_CONNECTION_MESSAGE,
    CatalogPageWindow,
    EngineState,
    FavoritesState,
    SearchState,
    SyncPhase,
    SyncStatus,
)


def initial_state(page_size: int) -> EngineState:
    return EngineState(window=CatalogPageWindow(page_size=page_size))


# -- pagination -----------------------------------------------------------------


def first_page_blocked_offline(state: EngineState) -> EngineState:
    return state.model_copy(
        update={
            "status": SyncStatus.error(NO_CONNECTION_MESSAGE),
            "favorites_only_forced": True,
        }
    )


def first_page_started(state: EngineState) -> EngineState:
    window = CatalogPageWindow(page_size=state.window.page_size)
    return state.model_copy(update={"window": window, "status": SyncStatus.loading()})


def first_page_loaded(state: EngineState, page: CatalogPage) -> EngineState:
    page_size = state.window.page_size
    window = CatalogPageWindow(
        offset=page_size,
        page_size=page_size,
        has_more=page.has_more,
        loaded_entries=tuple(page.entries),
    )
    return state.model_copy(update={"window": window, "status": SyncStatus.idle()})


def first_page_failed(state: EngineState, message: str) -> EngineState:
    # The window stays cleared: a failed fresh load does not restore the old page.
    return state.model_copy(update={"status": SyncStatus.error(message)})


def more_started(state: EngineState) -> EngineState:
    return state.model_copy(update={"status": SyncStatus.loading_more()})


def more_loaded(state: EngineState, page: CatalogPage) -> EngineState:
    window = state.window
    next_window = window.model_copy(
        update={
            "offset": window.offset + window.page_size,
            "has_more": page.has_more,
            "loaded_entries": window.loaded_entries + tuple(page.entries),
        }
    )
    return state.model_copy(update={"window": next_window, "status": SyncStatus.idle()})


def more_failed(state: EngineState) -> EngineState:
    return state.model_copy(update={"status": SyncStatus.idle()})


# -- search ---------------------------------------------------------------------


def search_cleared(state: EngineState) -> EngineState:
    return state.model_copy(update={"search": SearchState()})


def search_started(state: EngineState, query: str) -> EngineState:
    search = SearchState(query=query, results=state.search.results)
    return state.model_copy(update={"search": search, "status": SyncStatus.loading()})


def search_resolved(state: EngineState, results: Iterable[CatalogEntry]) -> EngineState:
    search = state.search.model_copy(update={"results": tuple(results)})
    return state.model_copy(update={"search": search, "status": SyncStatus.idle()})


def search_failed(state: EngineState, message: str) -> EngineState:
    return state.model_copy(update={"status": SyncStatus.error(message)})


def search_abandoned(state: EngineState) -> EngineState:
    """Settle the status of a search whose query was cleared while in flight."""

    if state.search.active or state.status.phase is not SyncPhase.LOADING:
        return state
    return state.model_copy(update={"status": SyncStatus.idle()})


# -- favorites ------------------------------------------------------------------


def favorites_rebuilt(
    state: EngineState,
    favorite_ids: Iterable[int],
    resolved_cache: Mapping[int, CatalogEntry],
    snapshot: Iterable[CatalogEntry],
) -> EngineState:
    favorites = FavoritesState(
        favorite_ids=frozenset(favorite_ids),
        offline_cache={entry.id: entry for entry in snapshot},
        resolved_cache=dict(resolved_cache),
    )
    return state.model_copy(update={"favorites": favorites})


def offline_snapshot_loaded(
    state: EngineState,
    snapshot: Iterable[CatalogEntry],
    favorite_ids: Iterable[int] | None = None,
) -> EngineState:
    """Serve the persisted snapshot as the resolved cache, without network calls.

    When ``favorite_ids`` is given it replaces the favorite set, so the snapshot
    only supplies display records. Otherwise snapshot ids are merged into the
    current set: the snapshot only ever holds confirmed favorites.
    """

    cached = {entry.id: entry for entry in snapshot}
    if favorite_ids is None:
        ids = state.favorites.favorite_ids | frozenset(cached)
    else:
        ids = frozenset(favorite_ids)
    favorites = FavoritesState(
        favorite_ids=ids,
        offline_cache=cached,
        resolved_cache=dict(cached),
    )
    return state.model_copy(
        update={"favorites": favorites, "favorites_only_forced": True}
    )


def favorites_only_toggled(state: EngineState) -> EngineState:
    return state.model_copy(
        update={
            "favorites_only_manual": not state.favorites_only,
            "favorites_only_forced": False,
        }
    )


# -- connectivity ---------------------------------------------------------------


def went_offline(state: EngineState) -> EngineState:
    return state.model_copy(update={"offline": True, "favorites_only_forced": True})


def went_online(state: EngineState) -> EngineState:
    # favorites_only_forced stays set until the user toggles the filter.
    update: dict[str, object] = {"offline": False}
    if state.status.is_error and state.status.message == NO_CONNECTION_MESSAGE:
        update["status"] = SyncStatus.idle()
    return state.model_copy(update=update)


# -- selection ------------------------------------------------------------------


def selection_started(state: EngineState) -> EngineState:
    return state.model_copy(update={"selected": None, "status": SyncStatus.loading()})


def selection_loaded(state: EngineState, detail: CatalogDetail) -> EngineState:
    return state.model_copy(update={"selected": detail, "status": SyncStatus.idle()})


def selection_failed(state: EngineState, message: str) -> EngineState:
    return state.model_copy(update={"status": SyncStatus.error(message)})


def selection_cleared(state: EngineState) -> EngineState:
    return state.model_copy(update={"selected": None})


__all__ = [
    "favorites_only_toggled",
    "favorites_rebuilt",
    "first_page_blocked_offline",
    "first_page_failed",
    "first_page_loaded",
    "first_page_started",
    "initial_state",
    "more_failed",
    "more_loaded",
    "more_started",
    "offline_snapshot_loaded",
    "search_abandoned",
    "search_cleared",
    "search_failed",
    "search_resolved",
    "search_started",
    "selection_cleared",
    "selection_failed",
    "selection_loaded",
    "selection_started",
    "went_offline",
    "went_online",
]
