"""Catalog synchronization and favorites reconciliation engine.

:class:`CatalogSyncEngine` merges three asynchronous sources into a single
read model:

* the paginated remote catalog (:class:`CatalogSource`),
* the user's remote favorite id set (:class:`IdentitySource`),
* the offline favorites snapshot (:class:`LocalCacheStore`),

while a :class:`ConnectivityMonitor` drives the online/offline transitions.

The engine is cooperative and single-owner: commands run on one event loop,
perform their I/O, then fold the outcome into an immutable
:class:`EngineState` through :mod:`pokedex_sync.services.sync_state`. Listeners
registered with :meth:`CatalogSyncEngine.subscribe` receive every new state.
Adapter failures never escape a command; they become ``Error``/``Idle`` status
or skipped ids as described on each method.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from typing import Protocol, runtime_checkable

from pokedex_sync.cache import LocalCacheStore
from pokedex_sync.errors import CacheStoreError, CatalogError, IdentityError
from pokedex_sync.schemas.catalog import (
    CatalogDetail,
    CatalogEntry,
    CatalogPage,
    EvolutionStage,
)
from pokedex_sync.schemas.sync import EngineState, SyncPhase, SyncStatus
from pokedex_sync.services import sync_state
from pokedex_sync.services.connectivity import ConnectivityMonitor
from pokedex_sync.services.identity_service import IdentitySource
from pokedex_sync.services.reconciliation import (
    compute_display_set,
    filter_by_substring,
    snapshot_for_cache,
    unresolved_favorite_ids,
)
from pokedex_sync.settings import (
    DEFAULT_PAGE_SIZE,
    DEFAULT_SEARCH_RESULT_LIMIT,
)

logger = logging.getLogger(__name__)

StateListener = Callable[[EngineState], None]


@runtime_checkable
class CatalogSource(Protocol):
    """Catalog surface required by the engine (see :class:`CatalogClient`)."""

    async def fetch_page(self, offset: int, limit: int) -> CatalogPage: ...

    async def fetch_detail(self, id_or_name: int | str) -> CatalogDetail: ...

    async def fetch_name_index(self) -> list[CatalogEntry]: ...

    async def fetch_description(self, entry_id: int) -> str | None: ...

    async def fetch_evolution_chain(self, entry_id: int) -> list[EvolutionStage]: ...


class CatalogSyncEngine:
    def __init__(
        self,
        *,
        catalog: CatalogSource,
        cache_store: LocalCacheStore,
        connectivity: ConnectivityMonitor,
        identity: IdentitySource | None = None,
        page_size: int = DEFAULT_PAGE_SIZE,
        search_result_limit: int = DEFAULT_SEARCH_RESULT_LIMIT,
        detail_fetch_concurrency: int = 8,
    ) -> None:
        self._catalog = catalog
        self._cache_store = cache_store
        self._connectivity = connectivity
        self._identity = identity
        self._search_result_limit = search_result_limit
        self._detail_fetch_concurrency = max(1, detail_fetch_concurrency)
        self._state = sync_state.initial_state(page_size).model_copy(
            update={"offline": not connectivity.current()}
        )
        self._listeners: list[StateListener] = []
        self._searches_in_flight: set[str] = set()
        self._unsubscribe_connectivity: Callable[[], None] | None = None

    # -- read model -------------------------------------------------------------

    @property
    def state(self) -> EngineState:
        return self._state

    @property
    def display_set(self) -> list[CatalogEntry]:
        return compute_display_set(self._state)

    @property
    def status(self) -> SyncStatus:
        return self._state.status

    @property
    def offline(self) -> bool:
        return self._state.offline

    def subscribe(self, listener: StateListener) -> Callable[[], None]:
        """Register ``listener`` for every state change; returns an unsubscribe hook."""

        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    def _apply(self, state: EngineState) -> None:
        self._state = state
        for listener in list(self._listeners):
            try:
                listener(state)
            except Exception:  # pragma: no cover
                logger.exception("State listener %r failed", listener)

    # -- lifecycle --------------------------------------------------------------

    async def start(self) -> None:
        """Attach to connectivity and perform the initial load for the current status."""

        if self._unsubscribe_connectivity is None:
            self._unsubscribe_connectivity = self._connectivity.on_change(
                self._on_connectivity_change
            )

        if not self._connectivity.current():
            logger.info("Engine starting offline; serving cached favorites")
            self._apply(sync_state.went_offline(self._state))
            await self.load_offline_favorites()
            return

        logger.info("Engine starting online")
        await self.fetch_first_page()
        await self.rebuild_favorites()

    def close(self) -> None:
        if self._unsubscribe_connectivity is not None:
            self._unsubscribe_connectivity()
            self._unsubscribe_connectivity = None

    # -- pagination -------------------------------------------------------------

    async def fetch_first_page(self) -> None:
        """Replace the page window with a fresh first page.

        While offline this only records ``Error("no connection")`` and forces the
        favorites filter. A failed fetch leaves the window empty.
        """

        if self._state.offline:
            self._apply(sync_state.first_page_blocked_offline(self._state))
            return

        self._apply(sync_state.first_page_started(self._state))
        try:
            page = await self._catalog.fetch_page(0, self._state.window.page_size)
        except CatalogError as exc:
            logger.warning("First page fetch failed: %s", exc.message)
            self._apply(sync_state.first_page_failed(self._state, exc.message))
            return
        self._apply(sync_state.first_page_loaded(self._state, page))

    async def load_more(self) -> None:
        """Append the next page; a no-op while loading, exhausted or searching."""

        state = self._state
        if (
            state.status.phase in (SyncPhase.LOADING, SyncPhase.LOADING_MORE)
            or not state.window.has_more
            or state.search.active
        ):
            logger.debug("load_more ignored (status=%s)", state.status.phase.value)
            return

        requested_offset = state.window.offset
        self._apply(sync_state.more_started(state))
        try:
            page = await self._catalog.fetch_page(
                requested_offset, self._state.window.page_size
            )
        except CatalogError as exc:
            logger.debug("load_more failed at offset %d: %s", requested_offset, exc.message)
            if self._state.status.phase is SyncPhase.LOADING_MORE:
                self._apply(sync_state.more_failed(self._state))
            return

        if self._state.window.offset != requested_offset:
            # A fresh first page replaced the window while this page was in flight.
            logger.debug("Dropping stale page fetched at offset %d", requested_offset)
            if self._state.status.phase is SyncPhase.LOADING_MORE:
                self._apply(sync_state.more_failed(self._state))
            return
        self._apply(sync_state.more_loaded(self._state, page))

    # -- search -----------------------------------------------------------------

    async def search(self, query: str) -> None:
        """Search by exact id/name first, then by substring over the name index."""

        normalized = query.strip().lower()
        if not normalized:
            self._apply(sync_state.search_cleared(self._state))
            return
        if normalized in self._searches_in_flight:
            return

        self._searches_in_flight.add(normalized)
        try:
            self._apply(sync_state.search_started(self._state, normalized))
            try:
                results = await self._resolve_search(normalized)
            except CatalogError as exc:
                logger.warning("Search for %r failed: %s", normalized, exc.message)
                if self._state.search.query == normalized:
                    self._apply(sync_state.search_failed(self._state, exc.message))
                else:
                    self._apply(sync_state.search_abandoned(self._state))
                return
            if self._state.search.query == normalized:
                self._apply(sync_state.search_resolved(self._state, results))
            else:
                logger.debug("Discarding stale results for %r", normalized)
                self._apply(sync_state.search_abandoned(self._state))
        finally:
            self._searches_in_flight.discard(normalized)

    async def _resolve_search(self, query: str) -> list[CatalogEntry]:
        try:
            detail = await self._catalog.fetch_detail(query)
        except CatalogError as exc:
            logger.debug("Exact-match lookup missed for %r: %s", query, exc.message)
        else:
            return [detail.to_entry()]

        index = await self._catalog.fetch_name_index()
        return filter_by_substring(index, query, limit=self._search_result_limit)

    def clear_search(self) -> None:
        self._apply(sync_state.search_cleared(self._state))

    # -- favorites --------------------------------------------------------------

    def toggle_favorites_only(self) -> None:
        self._apply(sync_state.favorites_only_toggled(self._state))

    async def toggle_favorite(self, entry_id: int) -> bool:
        """Flip ``entry_id`` in the remote favorite set, then rebuild the favorites view.

        Returns ``False`` without touching state when there is no identity or the
        remote mutation fails.
        """

        if self._identity is None:
            logger.warning("toggle_favorite(%s) ignored: no identity", entry_id)
            return False

        try:
            current = await self._identity.current_favorite_ids()
            if entry_id in current:
                succeeded = await self._identity.remove_favorite(entry_id)
            else:
                succeeded = await self._identity.add_favorite(entry_id)
        except IdentityError as exc:
            logger.warning("toggle_favorite(%s) failed: %s", entry_id, exc)
            return False

        if not succeeded:
            return False
        await self.rebuild_favorites()
        return True

    async def rebuild_favorites(self) -> None:
        """Resolve every favorite outside the page window and refresh the snapshot.

        Detail fetches run with bounded concurrency; failed ids are logged and
        skipped. While offline the snapshot is loaded instead and only the
        favorite ids are re-read, so an offline rebuild never overwrites it.
        """

        if self._identity is None:
            return
        if self._state.offline:
            await self._rebuild_offline(self._identity)
            return

        try:
            favorite_ids = await self._identity.current_favorite_ids()
        except IdentityError as exc:
            logger.warning("Favorites rebuild skipped: %s", exc)
            return

        loaded = self._state.window.loaded_entries
        resolved = await self._resolve_details(
            unresolved_favorite_ids(favorite_ids, loaded)
        )
        snapshot = snapshot_for_cache(loaded, resolved, favorite_ids)
        self._apply(
            sync_state.favorites_rebuilt(self._state, favorite_ids, resolved, snapshot)
        )

        try:
            await self._cache_store.save(snapshot)
        except CacheStoreError as exc:
            logger.warning("Could not persist favorites snapshot: %s", exc)

    async def _resolve_details(self, entry_ids: list[int]) -> dict[int, CatalogEntry]:
        semaphore = asyncio.Semaphore(self._detail_fetch_concurrency)

        async def _fetch(entry_id: int) -> CatalogEntry | None:
            async with semaphore:
                try:
                    detail = await self._catalog.fetch_detail(entry_id)
                except CatalogError as exc:
                    logger.warning("Skipping favorite %s: %s", entry_id, exc.message)
                    return None
            return detail.to_entry()

        fetched = await asyncio.gather(*(_fetch(entry_id) for entry_id in entry_ids))
        resolved: dict[int, CatalogEntry] = {}
        for entry_id, entry in zip(entry_ids, fetched):
            if entry is not None:
                resolved[entry_id] = entry
        return resolved

    async def load_offline_favorites(self) -> None:
        snapshot = await self._cache_store.load()
        logger.info("Loaded %d cached favorites", len(snapshot))
        self._apply(sync_state.offline_snapshot_loaded(self._state, snapshot))

    async def _rebuild_offline(self, identity: IdentitySource) -> None:
        snapshot = await self._cache_store.load()
        favorite_ids: set[int] | None
        try:
            favorite_ids = await identity.current_favorite_ids()
        except IdentityError as exc:
            logger.warning("Using cached favorite ids while offline: %s", exc)
            favorite_ids = None
        self._apply(
            sync_state.offline_snapshot_loaded(self._state, snapshot, favorite_ids)
        )

    # -- connectivity -----------------------------------------------------------

    async def _on_connectivity_change(self, online: bool) -> None:
        if not online:
            if self._state.offline:
                return
            self._apply(sync_state.went_offline(self._state))
            await self.load_offline_favorites()
            return

        if not self._state.offline:
            return
        self._apply(sync_state.went_online(self._state))
        if not self._state.window.loaded_entries:
            await self.fetch_first_page()
        await self.rebuild_favorites()

    # -- selection --------------------------------------------------------------

    async def select_entry(self, entry_id: int) -> None:
        """Load the full detail, description and evolution chain of one entry."""

        self._apply(sync_state.selection_started(self._state))
        try:
            detail = await self._catalog.fetch_detail(entry_id)
        except CatalogError as exc:
            self._apply(sync_state.selection_failed(self._state, exc.message))
            return

        description, evolution_chain = await asyncio.gather(
            self._catalog.fetch_description(detail.id),
            self._catalog.fetch_evolution_chain(detail.id),
        )
        detail = detail.model_copy(
            update={
                "description": description,
                "evolution_chain": tuple(evolution_chain),
            }
        )
        self._apply(sync_state.selection_loaded(self._state, detail))

    def clear_selection(self) -> None:
        self._apply(sync_state.selection_cleared(self._state))


__all__ = ["CatalogSource", "CatalogSyncEngine", "StateListener"]
