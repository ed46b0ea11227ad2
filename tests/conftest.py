"""Shared test fixtures for the animarr test suite."""

from __future__ import annotations

from typing import Any
from unittest.mock import AsyncMock

import pytest

from animarr.domain.entities import (
    CatalogRecord,
    EpisodeRef,
    ListingEntry,
    RawSource,
    ScrapedCandidate,
)

# ---------------------------------------------------------------------------
# Domain entity fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def catalog_record() -> CatalogRecord:
    """A TV series record with studio and source metadata."""
    return CatalogRecord(
        id=52991,
        title="Sousou no Frieren",
        title_english="Frieren: Beyond Journey's End",
        title_japanese="葬送のフリーレン",
        synonyms=("Frieren at the Funeral",),
        type="TV",
        year=2023,
        season="fall",
        studios=("Madhouse",),
        source="Manga",
        status="Finished Airing",
        score=9.3,
        genres=("Adventure", "Drama", "Fantasy"),
        cover_url="https://cdn.myanimelist.net/images/anime/1015/138006l.jpg",
    )


@pytest.fixture()
def scraped_candidate() -> ScrapedCandidate:
    """Provider detail page that matches ``catalog_record``."""
    return ScrapedCandidate(
        provider="animasu",
        slug="sousou-no-frieren",
        title="Sousou no Frieren",
        type="TV",
        year=2023,
        studio="Madhouse",
        source="Manga",
        episodes=(
            EpisodeRef(number=1, title="The Journey's End", url="https://a/ep-1"),
            EpisodeRef(number=2, url="https://a/ep-2"),
        ),
    )


# ---------------------------------------------------------------------------
# Fakes
# ---------------------------------------------------------------------------


class FakeCache:
    """In-memory CachePort; TTLs are recorded but never enforced."""

    def __init__(self) -> None:
        self.data: dict[str, Any] = {}
        self.ttls: dict[str, int | None] = {}

    async def get(self, key: str) -> Any:
        return self.data.get(key)

    async def set(self, key: str, value: Any, *, ttl: int | None = None) -> None:
        self.data[key] = value
        self.ttls[key] = ttl

    async def delete(self, key: str) -> bool:
        self.ttls.pop(key, None)
        return self.data.pop(key, None) is not None

    async def exists(self, key: str) -> bool:
        return key in self.data

    async def clear(self) -> None:
        self.data.clear()
        self.ttls.clear()

    async def aclose(self) -> None:
        return None

    async def __aenter__(self) -> FakeCache:
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        return None


class FakeProvider:
    """Scraper adapter serving canned details, listings and sources."""

    def __init__(
        self,
        name: str = "animasu",
        *,
        details: dict[str, ScrapedCandidate] | None = None,
        listing: list[ListingEntry] | None = None,
        latest: list[ListingEntry] | None = None,
        sources: list[RawSource] | None = None,
    ) -> None:
        self.name = name
        self.details = details or {}
        self.listing_entries = listing or []
        self.latest_entries = latest or []
        self.sources = sources or []
        self.detail_calls: list[str] = []
        self.listing_calls = 0
        self.source_calls: list[tuple[str, int]] = []

    async def listing(self) -> list[ListingEntry]:
        self.listing_calls += 1
        return list(self.listing_entries)

    async def latest(self) -> list[ListingEntry]:
        return list(self.latest_entries)

    async def detail(self, slug: str) -> ScrapedCandidate | None:
        self.detail_calls.append(slug)
        return self.details.get(slug)

    async def episode_sources(self, slug: str, episode: int) -> list[RawSource]:
        self.source_calls.append((slug, episode))
        return list(self.sources)

    def episode_url(self, slug: str, episode: int) -> str:
        return f"https://{self.name}.example/{slug}-episode-{episode}/"


class FakeProviderRegistry:
    """ProviderRegistryPort over a fixed list of adapters."""

    def __init__(self, providers: list[Any]) -> None:
        self._providers = {p.name: p for p in providers}

    def discover(self) -> None:
        return None

    def list_names(self) -> list[str]:
        return sorted(self._providers)

    def get(self, name: str) -> Any:
        return self._providers[name]

    def load_all(self) -> list[Any]:
        return [self._providers[n] for n in sorted(self._providers)]


@pytest.fixture()
def memory_cache() -> FakeCache:
    return FakeCache()


@pytest.fixture()
def mock_cache() -> AsyncMock:
    """Mock CachePort."""
    cache = AsyncMock()
    cache.get = AsyncMock(return_value=None)
    cache.set = AsyncMock()
    cache.delete = AsyncMock(return_value=True)
    cache.exists = AsyncMock(return_value=False)
    cache.clear = AsyncMock()
    cache.aclose = AsyncMock()
    return cache


@pytest.fixture()
def make_provider() -> type[FakeProvider]:
    """FakeProvider class, for tests that build several adapters."""
    return FakeProvider


@pytest.fixture()
def make_registry() -> type[FakeProviderRegistry]:
    return FakeProviderRegistry
