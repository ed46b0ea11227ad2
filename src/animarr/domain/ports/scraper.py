"""Port for provider scraper adapters and their registry."""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from animarr.domain.entities import ListingEntry, RawSource, ScrapedCandidate


@runtime_checkable
class ScraperAdapterPort(Protocol):
    """One provider site: listing, detail, and episode source scraping.

    A Python provider plugin must export a module-level variable named
    ``plugin`` that satisfies this protocol.
    Plugins may also define ``async latest() -> list[ListingEntry]`` for
    the home feed and ``async cleanup()``; both are looked up with
    ``getattr`` and are not part of the protocol.
    """

    name: str

    def episode_url(self, slug: str, episode: int) -> str:
        """Deterministic episode page URL for (slug, episode)."""
        ...

    async def listing(self) -> list[ListingEntry]:
        """Full catalog listing of the provider (slug + display title)."""
        ...

    async def detail(self, slug: str) -> ScrapedCandidate | None:
        """Scrape the detail page. None = slug does not exist."""
        ...

    async def episode_sources(self, slug: str, episode: int) -> list[RawSource]:
        """Scrape embed references for one episode (empty = no sources)."""
        ...


@runtime_checkable
class ProviderRegistryPort(Protocol):
    """Synchronous interface for provider discovery, listing, and retrieval."""

    def discover(self) -> None: ...
    def list_names(self) -> list[str]: ...
    def get(self, name: str) -> ScraperAdapterPort: ...
    def load_all(self) -> list[ScraperAdapterPort]: ...
