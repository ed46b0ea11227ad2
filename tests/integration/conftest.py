"""Shared fixtures for integration tests.

These tests use real infrastructure components (DiskcacheAdapter,
repositories, extractors, DeliveryProxy) with mocked HTTP via respx.
"""

from __future__ import annotations

from pathlib import Path

import httpx
import pytest
import respx

from animarr.infrastructure.cache.diskcache_adapter import DiskcacheAdapter


@pytest.fixture()
async def http_client() -> httpx.AsyncClient:
    """Real httpx.AsyncClient for use with respx mocking."""
    async with httpx.AsyncClient() as client:
        yield client


@pytest.fixture()
async def diskcache(tmp_path: Path) -> DiskcacheAdapter:
    """Real DiskcacheAdapter backed by tmp_path (auto-cleaned)."""
    adapter = DiskcacheAdapter(
        directory=tmp_path / "cache",
        ttl_seconds=3600,
        max_concurrent=5,
    )
    async with adapter:
        yield adapter


@pytest.fixture()
def respx_mock() -> respx.MockRouter:
    """Explicit respx mock router for request interception."""
    with respx.mock(assert_all_called=False) as router:
        yield router


@pytest.fixture()
def plugin_dir(tmp_path: Path) -> Path:
    """Directory holding one provider plugin that serves a Blogger embed."""
    directory = tmp_path / "plugins"
    directory.mkdir()
    (directory / "animasu.py").write_text(
        '''
from animarr.domain.entities import ListingEntry, RawSource, ScrapedCandidate


class _Animasu:
    name = "animasu"

    async def listing(self):
        return [ListingEntry(slug="sousou-no-frieren", title="Sousou no Frieren")]

    async def detail(self, slug):
        if slug != "sousou-no-frieren":
            return None
        return ScrapedCandidate(
            provider=self.name,
            slug=slug,
            title="Sousou no Frieren",
            type="TV",
            year=2023,
            studio="Madhouse",
            source="Manga",
        )

    async def episode_sources(self, slug, episode):
        return [
            RawSource(
                provider=self.name,
                embed_url=f"https://www.blogger.com/video.g?token={slug}-{episode}",
                resolution="720p",
                server=1,
            )
        ]

    def episode_url(self, slug, episode):
        return f"https://animasu.example/{slug}-episode-{episode}/"


plugin = _Animasu()
''',
        encoding="utf-8",
    )
    return directory
