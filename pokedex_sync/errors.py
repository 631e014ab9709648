"""Exception hierarchy raised by the catalog, identity and cache adapters.

Only adapters raise these types. The sync engine catches them at well defined
boundaries and converts them into :class:`~pokedex_sync.schemas.sync.SyncStatus`
values, so nothing here is ever fatal to the process.
"""

from __future__ import annotations


class CatalogError(Exception):
    """Base class for every failure reported by the catalog client."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class CatalogTransportError(CatalogError):
    """Network failure, timeout, or an unexpected HTTP status code."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class CatalogNotFoundError(CatalogError):
    """The catalog has no entry for the requested id or name."""

    def __init__(self, identifier: int | str) -> None:
        super().__init__(f"No catalog entry found for {identifier!r}")
        self.identifier = identifier


class CatalogPayloadError(CatalogError):
    """The catalog answered with a body that cannot be interpreted."""


class IdentityError(Exception):
    """The identity source could not read or mutate the favorite set."""


class CacheStoreError(Exception):
    """The offline cache could not be read, written or decoded."""


__all__ = [
    "CacheStoreError",
    "CatalogError",
    "CatalogNotFoundError",
    "CatalogPayloadError",
    "CatalogTransportError",
    "IdentityError",
]
