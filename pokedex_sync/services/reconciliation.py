"""Pure merge functions behind the favorites view and the display set.

Everything here works on immutable snapshots and returns new values, which
keeps the id-dedup rules testable without an engine, a network or a clock.

Merge rule: entries are keyed by id. The first source to mention an id fixes
its position and its value, so loaded page entries always win over resolved or
cached copies of the same id, and at most one entry per id survives.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping

from pokedex_sync.schemas.catalog import CatalogEntry
from pokedex_sync.schemas.sync import EngineState


def merge_by_id(*sources: Iterable[CatalogEntry]) -> list[CatalogEntry]:
    merged: dict[int, CatalogEntry] = {}
    for source in sources:
        for entry in source:
            merged.setdefault(entry.id, entry)
    return list(merged.values())


def unresolved_favorite_ids(
    favorite_ids: Iterable[int], loaded_entries: Iterable[CatalogEntry]
) -> list[int]:
    """Favorite ids with no entry in the page window, in ascending order."""

    loaded_ids = {entry.id for entry in loaded_entries}
    return sorted(set(favorite_ids) - loaded_ids)


def favorites_view(
    loaded_entries: Iterable[CatalogEntry],
    resolved_cache: Mapping[int, CatalogEntry],
    favorite_ids: Iterable[int],
) -> list[CatalogEntry]:
    """Loaded favorites in page order, then resolved favorites in id order."""

    wanted = set(favorite_ids)
    from_pages = [entry for entry in loaded_entries if entry.id in wanted]
    from_resolved = [
        resolved_cache[entry_id]
        for entry_id in sorted(resolved_cache)
        if entry_id in wanted
    ]
    return merge_by_id(from_pages, from_resolved)


def snapshot_for_cache(
    loaded_entries: Iterable[CatalogEntry],
    resolved_cache: Mapping[int, CatalogEntry],
    favorite_ids: Iterable[int],
) -> list[CatalogEntry]:
    """Entries to persist as the offline snapshot after a favorites rebuild.

    Resolved entries come first because they carry their types, while listing
    entries from the page window usually do not.
    """

    wanted = set(favorite_ids)
    resolved = [
        resolved_cache[entry_id]
        for entry_id in sorted(resolved_cache)
        if entry_id in wanted
    ]
    loaded = [entry for entry in loaded_entries if entry.id in wanted]
    return merge_by_id(resolved, loaded)


def compute_display_set(state: EngineState) -> list[CatalogEntry]:
    """Derive the single read model exposed to presentation."""

    if state.search.active:
        return merge_by_id(state.search.results)
    if state.favorites_only:
        return favorites_view(
            state.window.loaded_entries,
            state.favorites.resolved_cache,
            state.favorites.favorite_ids,
        )
    return merge_by_id(state.window.loaded_entries)


def filter_by_substring(
    entries: Iterable[CatalogEntry], query: str, *, limit: int
) -> list[CatalogEntry]:
    """Entries whose name contains ``query`` (case-insensitive), in catalog order."""

    needle = query.strip().lower()
    matches: list[CatalogEntry] = []
    if not needle or limit <= 0:
        return matches
    for entry in entries:
        if needle in entry.name.lower():
            matches.append(entry)
            if len(matches) >= limit:
                break
    return matches


__all__ = [
    "compute_display_set",
    "favorites_view",
    "filter_by_substring",
    "merge_by_id",
    "snapshot_for_cache",
    "unresolved_favorite_ids",
]
