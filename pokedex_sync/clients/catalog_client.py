"""HTTP adapter for the remote catalog (PokeAPI compatible).

The client is a pure network adapter. Its only state is the memoized name
index used by the fallback substring search, downloaded at most once per
client lifetime.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any

import httpx

from pokedex_sync.errors import (
    CatalogError,
    CatalogNotFoundError,
    CatalogPayloadError,
    CatalogTransportError,
)
from pokedex_sync.schemas.catalog import (
    CatalogDetail,
    CatalogEntry,
    CatalogPage,
    CatalogStat,
    EvolutionStage,
    entry_id_from_url,
)
from pokedex_sync.settings import AppSettings

logger = logging.getLogger(__name__)

SPRITE_URL_TEMPLATE = (
    "https://raw.githubusercontent.com/PokeAPI/sprites/master/sprites/pokemon/{id}.png"
)
CLIENT_HEADERS = {
    "User-Agent": "pokedex-sync/0.1 (+https://pokeapi.co)",
    "Accept": "application/json",
}


def _parse_listing(results: Any) -> list[CatalogEntry]:
    if not isinstance(results, list):
        raise CatalogPayloadError("Listing payload is missing the 'results' array")
    try:
        return [
            CatalogEntry.from_listing(item["name"], item["url"]) for item in results
        ]
    except (KeyError, TypeError, ValueError) as exc:
        raise CatalogPayloadError(f"Malformed listing record: {exc}") from exc


def _parse_types(payload: dict[str, Any]) -> tuple[str, ...]:
    return tuple(item["type"]["name"] for item in payload.get("types") or [])


def _parse_image_url(payload: dict[str, Any]) -> str:
    sprites = payload.get("sprites") or {}
    artwork = ((sprites.get("other") or {}).get("official-artwork") or {}).get(
        "front_default"
    )
    return artwork or sprites.get("front_default") or ""


def parse_detail(payload: dict[str, Any]) -> CatalogDetail:
    """Build a :class:`CatalogDetail` from a raw ``/pokemon/{id}`` body."""

    try:
        return CatalogDetail(
            id=payload["id"],
            name=payload["name"],
            types=_parse_types(payload),
            image_url=_parse_image_url(payload),
            stats=tuple(
                CatalogStat(name=item["stat"]["name"], base_stat=item["base_stat"])
                for item in payload.get("stats") or []
            ),
            height=payload.get("height") or 0,
            weight=payload.get("weight") or 0,
            abilities=tuple(
                item["ability"]["name"] for item in payload.get("abilities") or []
            ),
        )
    except (KeyError, TypeError, ValueError) as exc:
        raise CatalogPayloadError(f"Malformed detail payload: {exc}") from exc


def parse_description(payload: dict[str, Any]) -> str | None:
    """Return the first English flavour text with layout characters flattened."""

    for entry in payload.get("flavor_text_entries") or []:
        if (entry.get("language") or {}).get("name") == "en":
            text = entry.get("flavor_text") or ""
            return text.replace("\n", " ").replace("\f", " ")
    return None


def flatten_evolution_chain(chain: dict[str, Any]) -> list[EvolutionStage]:
    """Flatten an evolution tree depth-first, parents before children."""

    stages: list[EvolutionStage] = []
    pending = [chain]
    while pending:
        node = pending.pop()
        species = node["species"]
        stage_id = entry_id_from_url(species["url"])
        min_level: int | None = None
        trigger: str | None = None
        details = node.get("evolution_details") or []
        if details:
            min_level = details[0].get("min_level")
            trigger = (details[0].get("trigger") or {}).get("name")
        stages.append(
            EvolutionStage(
                id=stage_id,
                name=species["name"],
                image_url=SPRITE_URL_TEMPLATE.format(id=stage_id),
                min_level=min_level,
                trigger=trigger,
            )
        )
        # Reverse so the first branch is visited first.
        pending.extend(reversed(node.get("evolves_to") or []))
    return stages


class CatalogClient:
    """Async catalog adapter built on :class:`httpx.AsyncClient`."""

    def __init__(
        self,
        settings: AppSettings,
        *,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self._base_url = settings.catalog_base_url
        self._name_index_limit = settings.name_index_limit
        self._owns_client = http_client is None
        self._http = http_client or httpx.AsyncClient(
            headers=CLIENT_HEADERS,
            timeout=settings.request_timeout_seconds,
        )
        self._name_index: list[CatalogEntry] | None = None
        self._name_index_lock = asyncio.Lock()

    @property
    def base_url(self) -> str:
        return self._base_url

    async def __aenter__(self) -> CatalogClient:
        return self

    async def __aexit__(self, *_exc_info: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self._http.aclose()

    async def _get_json(
        self, path: str, *, params: dict[str, Any] | None = None
    ) -> dict[str, Any]:
        url = path if path.startswith("http") else f"{self._base_url}/{path}"
        try:
            response = await self._http.get(url, params=params)
        except httpx.HTTPError as exc:
            raise CatalogTransportError(f"Request to {url} failed: {exc}") from exc

        if response.status_code == 404:
            raise CatalogNotFoundError(path.rsplit("/", 1)[-1])
        if response.status_code != 200:
            raise CatalogTransportError(
                f"Catalog responded with HTTP {response.status_code} for {url}",
                status_code=response.status_code,
            )
        try:
            payload = response.json()
        except ValueError as exc:
            raise CatalogPayloadError(f"Response from {url} is not JSON") from exc
        if not isinstance(payload, dict):
            raise CatalogPayloadError(f"Response from {url} is not a JSON object")
        return payload

    async def fetch_page(self, offset: int, limit: int) -> CatalogPage:
        """Fetch one listing page; ``has_more`` mirrors the server's ``next`` link."""

        payload = await self._get_json(
            "pokemon", params={"limit": limit, "offset": offset}
        )
        entries = _parse_listing(payload.get("results"))
        return CatalogPage(
            entries=entries,
            total_count=int(payload.get("count") or 0),
            has_more=payload.get("next") is not None,
        )

    async def fetch_detail(self, id_or_name: int | str) -> CatalogDetail:
        identifier = str(id_or_name).strip().lower()
        if not identifier:
            raise CatalogNotFoundError(id_or_name)
        payload = await self._get_json(f"pokemon/{identifier}")
        return parse_detail(payload)

    async def fetch_name_index(self) -> list[CatalogEntry]:
        """Return every catalog entry name, downloading the index only once.

        Failed downloads are not memoized, so the next search retries.
        """

        if self._name_index is not None:
            return self._name_index

        async with self._name_index_lock:
            if self._name_index is not None:
                return self._name_index

            payload = await self._get_json(
                "pokemon", params={"limit": self._name_index_limit, "offset": 0}
            )
            self._name_index = _parse_listing(payload.get("results"))
            logger.info("Catalog name index fetched (%d entries)", len(self._name_index))
            return self._name_index

    async def fetch_description(self, entry_id: int) -> str | None:
        try:
            payload = await self._get_json(f"pokemon-species/{entry_id}")
        except CatalogError as exc:
            logger.debug("Description lookup failed for %s: %s", entry_id, exc)
            return None
        return parse_description(payload)

    async def fetch_evolution_chain(self, entry_id: int) -> list[EvolutionStage]:
        try:
            species = await self._get_json(f"pokemon-species/{entry_id}")
            chain_url = species["evolution_chain"]["url"]
            payload = await self._get_json(chain_url)
            return flatten_evolution_chain(payload["chain"])
        except (
            CatalogError,
            KeyError,
            TypeError,
            ValueError,
        ) as exc:
            logger.debug("Evolution chain lookup failed for %s: %s", entry_id, exc)
            return []


__all__ = [
    "CatalogClient",
    "SPRITE_URL_TEMPLATE",
    "flatten_evolution_chain",
    "parse_description",
    "parse_detail",
]
