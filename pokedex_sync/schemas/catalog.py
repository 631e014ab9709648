"""Catalog value objects produced by :mod:`pokedex_sync.clients.catalog_client`."""

from __future__ import annotations

from typing import Any
from urllib.parse import urlsplit

from pydantic import BaseModel, ConfigDict, Field, PositiveInt

_STAT_DISPLAY_NAMES: dict[str, str] = {
    "hp": "HP",
    "attack": "Attack",
    "defense": "Defense",
    "special-attack": "Sp. Atk",
    "special-defense": "Sp. Def",
    "speed": "Speed",
}


def entry_id_from_url(url: str) -> int:
    """Return the numeric id encoded in the trailing segment of a listing URL.

    ``https://pokeapi.co/api/v2/pokemon/25/`` yields ``25``. A ``ValueError`` is
    raised when the trailing segment is missing or not a positive integer.
    """

    segments = [segment for segment in urlsplit(url.strip()).path.split("/") if segment]
    if not segments:
        raise ValueError(f"Listing URL has no path segments: {url!r}")
    entry_id = int(segments[-1])
    if entry_id <= 0:
        raise ValueError(f"Listing URL does not end with a positive id: {url!r}")
    return entry_id


class CatalogEntry(BaseModel):
    """Lightweight listing record; two entries with the same ``id`` are the same entity."""

    model_config = ConfigDict(frozen=True)

    id: PositiveInt
    name: str
    types: tuple[str, ...] = ()

    @classmethod
    def from_listing(
        cls, name: str, url: str, types: tuple[str, ...] | list[str] = ()
    ) -> CatalogEntry:
        return cls(id=entry_id_from_url(url), name=name, types=tuple(types))

    def listing_url(self, base_url: str) -> str:
        return f"{base_url.rstrip('/')}/pokemon/{self.id}/"

    def to_cache_record(self, base_url: str) -> dict[str, Any]:
        """Serialize into the ``{name, url, types}`` layout of the offline snapshot."""

        return {
            "name": self.name,
            "url": self.listing_url(base_url),
            "types": list(self.types),
        }

    @classmethod
    def from_cache_record(cls, record: dict[str, Any]) -> CatalogEntry:
        """Inverse of :meth:`to_cache_record`; also accepts records keyed by ``id``."""

        types = tuple(str(item) for item in record.get("types") or ())
        if record.get("url"):
            return cls.from_listing(str(record["name"]), str(record["url"]), types)
        return cls(id=int(record["id"]), name=str(record["name"]), types=types)


class CatalogPage(BaseModel):
    entries: list[CatalogEntry] = Field(default_factory=list)
    total_count: int = 0
    has_more: bool = False


class CatalogStat(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    base_stat: int

    @property
    def display_name(self) -> str:
        return _STAT_DISPLAY_NAMES.get(self.name, self.name)


class EvolutionStage(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: PositiveInt
    name: str
    image_url: str
    min_level: int | None = None
    trigger: str | None = None

    @property
    def display_name(self) -> str:
        if not self.name:
            return self.name
        return self.name[0].upper() + self.name[1:]


class CatalogDetail(BaseModel):
    """Full record for a single entry, as returned by a detail lookup.

    ``description`` and ``evolution_chain`` are only populated when the entry is
    explicitly selected; the exact-match search lookup and the favorites rebuild
    only need :meth:`to_entry`.
    """

    model_config = ConfigDict(frozen=True)

    id: PositiveInt
    name: str
    types: tuple[str, ...] = ()
    image_url: str = ""
    stats: tuple[CatalogStat, ...] = ()
    height: int = 0
    weight: int = 0
    abilities: tuple[str, ...] = ()
    description: str | None = None
    evolution_chain: tuple[EvolutionStage, ...] = ()

    def to_entry(self) -> CatalogEntry:
        return CatalogEntry(id=self.id, name=self.name, types=self.types)


__all__ = [
    "CatalogDetail",
    "CatalogEntry",
    "CatalogPage",
    "CatalogStat",
    "EvolutionStage",
    "entry_id_from_url",
]
