"""Catalog and scraped-candidate entities.

Pure value objects: no framework dependencies, no I/O.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Literal

CatalogType = Literal["tv", "movie", "ova", "ona", "special", "unknown"]


@dataclass(frozen=True)
class CatalogRecord:
    """Immutable snapshot of one title from the catalog service."""

    id: int
    title: str
    title_english: str | None = None
    title_japanese: str | None = None
    synonyms: tuple[str, ...] = ()
    type: str = ""  # "TV", "Movie", "OVA", ... as reported by the catalog
    year: int | None = None
    season: str | None = None  # "spring", "fall", ...
    studios: tuple[str, ...] = ()
    source: str | None = None  # "Manga", "Light novel", ...
    status: str = ""
    score: float | None = None
    synopsis: str | None = None
    genres: tuple[str, ...] = ()
    cover_url: str = ""
    aired_from: str | None = None  # ISO 8601 start of airing


@dataclass(frozen=True)
class EpisodeRef:
    """One episode listed on a provider's detail page."""

    number: int
    title: str = ""
    url: str = ""
    release_date: str | None = None


@dataclass(frozen=True)
class ScrapedCandidate:
    """Metadata and episode list scraped from one provider detail page."""

    provider: str
    slug: str
    title: str
    title_english: str | None = None
    title_japanese: str | None = None
    synonyms: tuple[str, ...] = ()
    type: str = ""
    year: int | None = None
    season: str | None = None
    studio: str | None = None
    source: str | None = None
    episodes: tuple[EpisodeRef, ...] = ()


@dataclass(frozen=True)
class ListingEntry:
    """One title from a provider listing or its latest-updates page."""

    slug: str
    title: str = ""
    cover_url: str = ""
    last_episode: int | None = None


@dataclass
class UnifiedEpisode:
    """Episode merged across providers (number is the join key)."""

    number: int
    title: str = ""
    release_date: str | None = None
    urls: dict[str, str] = field(default_factory=dict)  # provider -> episode url


@dataclass
class CatalogDetail:
    """Catalog record enriched with provider slugs and merged episodes."""

    record: CatalogRecord
    slugs: dict[str, str | None] = field(default_factory=dict)
    confidence: dict[str, float | None] = field(default_factory=dict)
    episodes: list[UnifiedEpisode] = field(default_factory=list)


@dataclass(frozen=True)
class HomeFeedItem:
    """A recently updated title, matched to its catalog record."""

    catalog_id: int
    name: str
    cover_url: str = ""
    aired_from: str | None = None
    last_episode: int | None = None
