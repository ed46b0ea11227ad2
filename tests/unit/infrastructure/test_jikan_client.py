"""Tests for JikanCatalogClient."""

from __future__ import annotations

from typing import Any

import httpx
import pytest
import respx

from animarr.domain.entities import UpstreamFetchError
from animarr.infrastructure.catalog.jikan_client import (
    JikanCatalogClient,
    record_from_jikan,
)

_BASE = "https://api.jikan.moe/v4"

_FRIEREN = {
    "mal_id": 52991,
    "title": "Sousou no Frieren",
    "title_english": "Frieren: Beyond Journey's End",
    "title_japanese": "葬送のフリーレン",
    "title_synonyms": ["Frieren at the Funeral"],
    "type": "TV",
    "year": 2023,
    "season": "fall",
    "studios": [{"mal_id": 11, "name": "Madhouse"}],
    "source": "Manga",
    "status": "Finished Airing",
    "score": 9.3,
    "genres": [{"name": "Adventure"}, {"name": "Drama"}],
    "images": {"jpg": {"large_image_url": "https://cdn.example/l.jpg"}},
    "aired": {"from": "2023-09-29T00:00:00+00:00"},
}


def _client(http: httpx.AsyncClient, cache: Any) -> JikanCatalogClient:
    return JikanCatalogClient(http_client=http, cache=cache)


class TestRecordFromJikan:
    def test_maps_fields(self) -> None:
        record = record_from_jikan(_FRIEREN)
        assert record.id == 52991
        assert record.synonyms == ("Frieren at the Funeral",)
        assert record.studios == ("Madhouse",)
        assert record.genres == ("Adventure", "Drama")
        assert record.cover_url == "https://cdn.example/l.jpg"
        assert record.aired_from == "2023-09-29T00:00:00+00:00"

    def test_year_falls_back_to_aired(self) -> None:
        data = {
            "mal_id": 1,
            "title": "Movie",
            "year": None,
            "aired": {"prop": {"from": {"year": 2019}}},
        }
        assert record_from_jikan(data).year == 2019

    def test_missing_optional_fields(self) -> None:
        record = record_from_jikan({"mal_id": 2, "title": "Bare"})
        assert record.year is None
        assert record.studios == ()
        assert record.cover_url == ""
        assert record.aired_from is None


class TestById:
    @respx.mock
    async def test_fetch_and_cache(self, memory_cache: Any) -> None:
        route = respx.get(f"{_BASE}/anime/52991").respond(200, json={"data": _FRIEREN})
        async with httpx.AsyncClient() as http:
            client = _client(http, memory_cache)
            first = await client.by_id(52991)
            second = await client.by_id(52991)

        assert first is not None and first.title == "Sousou no Frieren"
        assert second == first
        assert route.call_count == 1
        assert memory_cache.data["catalog:id:52991"]["mal_id"] == 52991
        assert memory_cache.ttls["catalog:id:52991"] == 86_400

    @respx.mock
    async def test_not_found(self, memory_cache: Any) -> None:
        respx.get(f"{_BASE}/anime/999999").respond(404, json={"status": 404})
        async with httpx.AsyncClient() as http:
            assert await _client(http, memory_cache).by_id(999999) is None
        assert memory_cache.data == {}

    @respx.mock
    async def test_server_error_raises(self, memory_cache: Any) -> None:
        respx.get(f"{_BASE}/anime/1").respond(500)
        async with httpx.AsyncClient() as http:
            with pytest.raises(UpstreamFetchError) as exc_info:
                await _client(http, memory_cache).by_id(1)
        assert exc_info.value.status_code == 500

    @respx.mock
    async def test_network_error_raises(self, memory_cache: Any) -> None:
        respx.get(f"{_BASE}/anime/1").mock(side_effect=httpx.ConnectError("down"))
        async with httpx.AsyncClient() as http:
            with pytest.raises(UpstreamFetchError):
                await _client(http, memory_cache).by_id(1)

    @respx.mock
    async def test_non_json_raises(self, memory_cache: Any) -> None:
        respx.get(f"{_BASE}/anime/1").respond(200, text="<html>maintenance</html>")
        async with httpx.AsyncClient() as http:
            with pytest.raises(UpstreamFetchError):
                await _client(http, memory_cache).by_id(1)


class TestSearch:
    @respx.mock
    async def test_search_params_and_cache(self, memory_cache: Any) -> None:
        route = respx.get(f"{_BASE}/anime").respond(200, json={"data": [_FRIEREN]})
        async with httpx.AsyncClient() as http:
            client = _client(http, memory_cache)
            results = await client.search("  Frieren ")
            again = await client.search("frieren")

        assert [r.id for r in results] == [52991]
        assert again == results
        assert route.call_count == 1
        params = route.calls.last.request.url.params
        assert params["q"] == "Frieren"
        assert params["limit"] == "25"
        assert params["sfw"] == "false"
        assert memory_cache.ttls["catalog:search:frieren"] == 3_600

    async def test_blank_query(self, mock_cache: Any) -> None:
        async with httpx.AsyncClient() as http:
            assert await _client(http, mock_cache).search("   ") == []
        mock_cache.get.assert_not_awaited()

    @respx.mock
    async def test_malformed_items_skipped(self, memory_cache: Any) -> None:
        respx.get(f"{_BASE}/anime").respond(
            200, json={"data": [{"title": "no id"}, _FRIEREN]}
        )
        async with httpx.AsyncClient() as http:
            results = await _client(http, memory_cache).search("frieren")
        assert [r.id for r in results] == [52991]
