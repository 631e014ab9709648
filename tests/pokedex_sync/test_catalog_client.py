"""Catalog client parsing and error mapping over ``httpx.MockTransport``."""

from __future__ import annotations

from collections.abc import AsyncIterator, Callable

import httpx
import pytest
import pytest_asyncio

from pokedex_sync.clients.catalog_client import CatalogClient, flatten_evolution_chain
from pokedex_sync.errors import (
    CatalogNotFoundError,
    CatalogPayloadError,
    CatalogTransportError,
)
from pokedex_sync.settings import AppSettings
from tests.pokedex_sync.support.doubles import BASE_URL

PIKACHU_DETAIL = {
    "id": 25,
    "name": "pikachu",
    "height": 4,
    "weight": 60,
    "types": [{"slot": 1, "type": {"name": "electric"}}],
    "abilities": [{"ability": {"name": "static"}}, {"ability": {"name": "lightning-rod"}}],
    "stats": [
        {"base_stat": 35, "stat": {"name": "hp"}},
        {"base_stat": 50, "stat": {"name": "special-defense"}},
    ],
    "sprites": {
        "front_default": "https://sprites.test/25.png",
        "other": {"official-artwork": {"front_default": "https://art.test/25.png"}},
    },
}

EVOLUTION_CHAIN = {
    "chain": {
        "species": {"name": "pichu", "url": f"{BASE_URL}/pokemon-species/172/"},
        "evolution_details": [],
        "evolves_to": [
            {
                "species": {"name": "pikachu", "url": f"{BASE_URL}/pokemon-species/25/"},
                "evolution_details": [{"min_level": None, "trigger": {"name": "level-up"}}],
                "evolves_to": [
                    {
                        "species": {
                            "name": "raichu",
                            "url": f"{BASE_URL}/pokemon-species/26/",
                        },
                        "evolution_details": [
                            {"min_level": None, "trigger": {"name": "use-item"}}
                        ],
                        "evolves_to": [],
                    }
                ],
            }
        ],
    }
}


def _listing(offset: int, limit: int, total: int = 5) -> dict:
    names = ["bulbasaur", "ivysaur", "venusaur", "charmander", "charmeleon"]
    results = [
        {"name": names[index], "url": f"{BASE_URL}/pokemon/{index + 1}/"}
        for index in range(offset, min(offset + limit, total))
    ]
    return {
        "count": total,
        "next": None if offset + limit >= total else f"{BASE_URL}/pokemon?offset={offset + limit}",
        "results": results,
    }


def _default_handler(request: httpx.Request) -> httpx.Response:
    path = request.url.path.rstrip("/")
    if path == "/api/v2/pokemon":
        offset = int(request.url.params.get("offset", 0))
        limit = int(request.url.params.get("limit", 20))
        return httpx.Response(200, json=_listing(offset, limit))
    if path in {"/api/v2/pokemon/pikachu", "/api/v2/pokemon/25"}:
        return httpx.Response(200, json=PIKACHU_DETAIL)
    if path == "/api/v2/pokemon-species/25":
        return httpx.Response(
            200,
            json={
                "flavor_text_entries": [
                    {"flavor_text": "Quand il\nest", "language": {"name": "fr"}},
                    {
                        "flavor_text": "When several of\nthese POKéMON\fgather",
                        "language": {"name": "en"},
                    },
                ],
                "evolution_chain": {"url": f"{BASE_URL}/evolution-chain/10/"},
            },
        )
    if path == "/api/v2/evolution-chain/10":
        return httpx.Response(200, json=EVOLUTION_CHAIN)
    return httpx.Response(404, json={"detail": "Not found"})


@pytest.fixture
def client_factory(
    settings: AppSettings,
) -> Callable[[Callable[[httpx.Request], httpx.Response]], CatalogClient]:
    def _build(handler: Callable[[httpx.Request], httpx.Response]) -> CatalogClient:
        http_client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        return CatalogClient(settings, http_client=http_client)

    return _build


@pytest_asyncio.fixture
async def client(client_factory) -> AsyncIterator[CatalogClient]:
    catalog = client_factory(_default_handler)
    yield catalog
    await catalog._http.aclose()


@pytest.mark.asyncio
async def test_fetch_page_parses_ids_and_has_more(client: CatalogClient) -> None:
    page = await client.fetch_page(0, 3)

    assert [entry.id for entry in page.entries] == [1, 2, 3]
    assert [entry.name for entry in page.entries] == ["bulbasaur", "ivysaur", "venusaur"]
    assert page.total_count == 5
    assert page.has_more is True

    last = await client.fetch_page(3, 3)
    assert [entry.id for entry in last.entries] == [4, 5]
    assert last.has_more is False


@pytest.mark.asyncio
async def test_fetch_detail_parses_full_record(client: CatalogClient) -> None:
    detail = await client.fetch_detail(" Pikachu ")

    assert detail.id == 25
    assert detail.types == ("electric",)
    assert detail.image_url == "https://art.test/25.png"
    assert detail.abilities == ("static", "lightning-rod")
    assert [stat.display_name for stat in detail.stats] == ["HP", "Sp. Def"]
    assert detail.to_entry().types == ("electric",)


@pytest.mark.asyncio
async def test_fetch_detail_maps_404_to_not_found(client: CatalogClient) -> None:
    with pytest.raises(CatalogNotFoundError) as excinfo:
        await client.fetch_detail("missingno")

    assert excinfo.value.identifier == "missingno"


@pytest.mark.asyncio
async def test_blank_detail_lookup_is_not_found_without_request(client_factory) -> None:
    calls: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(200, json={})

    catalog = client_factory(handler)
    with pytest.raises(CatalogNotFoundError):
        await catalog.fetch_detail("   ")
    assert calls == []


@pytest.mark.asyncio
async def test_server_error_maps_to_transport_error(client_factory) -> None:
    catalog = client_factory(lambda request: httpx.Response(503, text="down"))

    with pytest.raises(CatalogTransportError) as excinfo:
        await catalog.fetch_page(0, 20)

    assert excinfo.value.status_code == 503


@pytest.mark.asyncio
async def test_network_failure_maps_to_transport_error(client_factory) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    catalog = client_factory(handler)

    with pytest.raises(CatalogTransportError):
        await catalog.fetch_page(0, 20)


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "response",
    [
        httpx.Response(200, text="<html>"),
        httpx.Response(200, json=["not", "an", "object"]),
        httpx.Response(200, json={"count": 1, "results": [{"name": "x"}]}),
    ],
)
async def test_malformed_listing_maps_to_payload_error(
    client_factory, response: httpx.Response
) -> None:
    catalog = client_factory(lambda request: response)

    with pytest.raises(CatalogPayloadError):
        await catalog.fetch_page(0, 20)


@pytest.mark.asyncio
async def test_name_index_is_memoized(client_factory) -> None:
    calls: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return _default_handler(request)

    catalog = client_factory(handler)

    first = await catalog.fetch_name_index()
    second = await catalog.fetch_name_index()

    assert first == second
    assert len(first) == 5
    assert len(calls) == 1
    assert calls[0].url.params["limit"] == "2000"


@pytest.mark.asyncio
async def test_failed_name_index_is_retried(client_factory) -> None:
    responses = [httpx.Response(500), httpx.Response(200, json=_listing(0, 2000))]

    catalog = client_factory(lambda request: responses.pop(0))

    with pytest.raises(CatalogTransportError):
        await catalog.fetch_name_index()
    assert len(await catalog.fetch_name_index()) == 5


@pytest.mark.asyncio
async def test_description_uses_first_english_entry(client: CatalogClient) -> None:
    description = await client.fetch_description(25)

    assert description == "When several of these POKéMON gather"


@pytest.mark.asyncio
async def test_description_failure_degrades_to_none(client: CatalogClient) -> None:
    assert await client.fetch_description(9999) is None


@pytest.mark.asyncio
async def test_evolution_chain_is_flattened_depth_first(client: CatalogClient) -> None:
    stages = await client.fetch_evolution_chain(25)

    assert [stage.id for stage in stages] == [172, 25, 26]
    assert [stage.display_name for stage in stages] == ["Pichu", "Pikachu", "Raichu"]
    assert stages[0].trigger is None
    assert stages[2].trigger == "use-item"
    assert stages[1].image_url.endswith("/25.png")


@pytest.mark.asyncio
async def test_evolution_chain_failure_degrades_to_empty(client: CatalogClient) -> None:
    assert await client.fetch_evolution_chain(9999) == []


def test_flatten_visits_branches_in_order() -> None:
    chain = {
        "species": {"name": "eevee", "url": f"{BASE_URL}/pokemon-species/133/"},
        "evolves_to": [
            {
                "species": {"name": "vaporeon", "url": f"{BASE_URL}/pokemon-species/134/"},
                "evolution_details": [{"min_level": None, "trigger": {"name": "use-item"}}],
                "evolves_to": [],
            },
            {
                "species": {"name": "jolteon", "url": f"{BASE_URL}/pokemon-species/135/"},
                "evolution_details": [{"min_level": 20, "trigger": {"name": "level-up"}}],
                "evolves_to": [],
            },
        ],
    }

    stages = flatten_evolution_chain(chain)

    assert [stage.name for stage in stages] == ["eevee", "vaporeon", "jolteon"]
    assert stages[2].min_level == 20
