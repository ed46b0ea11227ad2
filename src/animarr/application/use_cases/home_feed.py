"""Home feed use case.

Provider latest-updates pages -> titles merged across providers ->
each title matched to a catalog record by search -> cached feed.
"""

from __future__ import annotations

import asyncio
from datetime import datetime, timedelta, timezone

import structlog

from animarr.domain.entities import (
    CatalogRecord,
    HomeFeedItem,
    ListingEntry,
    UpstreamFetchError,
)
from animarr.domain.ports import CatalogClientPort, HomeFeedCache, ProviderRegistryPort
from animarr.infrastructure.identity.title_matcher import (
    dice_coefficient,
    normalize_title,
)

log = structlog.get_logger(__name__)

MATCH_THRESHOLD = 0.6
NEW_WINDOW = timedelta(hours=24)


def merge_latest(per_provider: list[list[ListingEntry]]) -> list[ListingEntry]:
    """Distinct titles in provider order; the first spelling seen wins.

    Two titles are the same when they agree after lowercasing, or after
    ``normalize_title``.
    """
    seen: set[str] = set()
    merged: list[ListingEntry] = []
    for entries in per_provider:
        for entry in entries:
            title = entry.title.strip()
            if not title:
                continue
            keys = {title.lower(), normalize_title(title)}
            if keys & seen:
                log.debug("home_feed_title_merged", title=title)
                continue
            seen |= keys
            merged.append(entry)
    return merged


def _record_titles(record: CatalogRecord) -> list[str]:
    titles = [record.title, record.title_english, record.title_japanese]
    titles.extend(record.synonyms)
    return [t for t in titles if t]


def best_catalog_match(
    title: str, records: list[CatalogRecord], threshold: float = MATCH_THRESHOLD
) -> CatalogRecord | None:
    """Search hit whose closest title reaches ``threshold`` (Dice)."""
    scraped = normalize_title(title)
    if not scraped:
        return None
    best: CatalogRecord | None = None
    best_score = 0.0
    for record in records:
        for candidate in _record_titles(record):
            normalized = normalize_title(candidate)
            if not normalized:
                continue
            score = dice_coefficient(scraped, normalized)
            if score > best_score:
                best, best_score = record, score
    return best if best_score >= threshold else None


def fallback_query(title: str) -> str | None:
    """Up to three leading words longer than two characters, if two exist."""
    words = [w for w in title.split() if len(w) > 2]
    if len(words) < 2:
        return None
    query = " ".join(words[:3])
    return query if query != title.strip() else None


def is_new(aired_from: str | None, now: datetime | None = None) -> bool:
    """Started airing within the last 24 hours."""
    if not aired_from:
        return False
    try:
        aired = datetime.fromisoformat(aired_from)
    except ValueError:
        return False
    if aired.tzinfo is None:
        aired = aired.replace(tzinfo=timezone.utc)
    now = now or datetime.now(timezone.utc)
    return now - aired <= NEW_WINDOW


class HomeFeedUseCase:
    """Build (or serve from cache) the matched home feed."""

    def __init__(
        self,
        *,
        catalog: CatalogClientPort,
        providers: ProviderRegistryPort,
        feed_cache: HomeFeedCache,
        provider_timeout: float = 30.0,
        search_interval: float = 0.35,
        max_titles: int = 60,
    ) -> None:
        self._catalog = catalog
        self._providers = providers
        self._feed_cache = feed_cache
        self._provider_timeout = provider_timeout
        self._search_interval = search_interval
        self._max_titles = max_titles

    async def execute(self) -> list[HomeFeedItem]:
        """Matched feed, newest provider updates first.

        Raises:
            UpstreamFetchError: no provider returned any title.
        """
        cached = await self._feed_cache.get()
        if cached is not None:
            log.debug("home_feed_cache_hit", count=len(cached))
            return cached

        names = self._providers.list_names()
        per_provider = await asyncio.gather(*(self._latest(n) for n in names))
        if not any(per_provider):
            raise UpstreamFetchError("Failed to scrape any anime from every provider")

        titles = merge_latest(list(per_provider))[: self._max_titles]
        items = await self._match_all(titles)
        await self._feed_cache.save(items)

        log.info(
            "home_feed_built",
            scraped={n: len(e) for n, e in zip(names, per_provider)},
            titles=len(titles),
            matched=len(items),
        )
        return items

    async def _latest(self, name: str) -> list[ListingEntry]:
        try:
            adapter = self._providers.get(name)
            latest = getattr(adapter, "latest", None)
            if latest is None:
                return []
            return list(await asyncio.wait_for(latest(), self._provider_timeout))
        except Exception:
            log.warning("home_feed_provider_failed", provider=name, exc_info=True)
            return []

    async def _match_all(self, titles: list[ListingEntry]) -> list[HomeFeedItem]:
        items: dict[int, HomeFeedItem] = {}
        unmatched: list[str] = []
        searches = 0

        for entry in titles:
            record = None
            for query in (entry.title, fallback_query(entry.title)):
                if query is None:
                    continue
                if searches and self._search_interval > 0:
                    await asyncio.sleep(self._search_interval)
                searches += 1
                record = await self._search(entry.title, query)
                if record is not None:
                    break

            if record is None:
                unmatched.append(entry.title)
                continue
            if record.id in items:
                log.debug(
                    "home_feed_duplicate", catalog_id=record.id, title=entry.title
                )
                continue
            items[record.id] = HomeFeedItem(
                catalog_id=record.id,
                name=record.title,
                cover_url=record.cover_url or entry.cover_url,
                aired_from=record.aired_from,
                last_episode=entry.last_episode,
            )

        if unmatched:
            log.warning("home_feed_unmatched", count=len(unmatched), titles=unmatched)
        return list(items.values())

    async def _search(self, title: str, query: str) -> CatalogRecord | None:
        try:
            results = await self._catalog.search(query)
        except UpstreamFetchError as exc:
            log.warning("home_feed_search_failed", query=query, error=str(exc))
            return None
        return best_catalog_match(title, results)


def home_item_to_dict(
    item: HomeFeedItem, now: datetime | None = None
) -> dict[str, object]:
    """Public JSON shape of one feed entry."""
    return {
        "id": item.catalog_id,
        "name": item.name,
        "cover": item.cover_url,
        "last_episode": item.last_episode,
        "is_new": is_new(item.aired_from, now),
    }
