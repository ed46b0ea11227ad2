"""Streaming aggregation use case.

Slug mapping + episode -> parallel provider scrape -> deny-list
-> extraction -> delivery codes -> sort -> cache -> ledger merge.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field, replace
from typing import Protocol
from urllib.parse import quote
from uuid import uuid4

import structlog

from animarr.domain.entities import (
    ArchiveQueueItem,
    InvalidRequestError,
    RawSource,
    ResolutionRank,
    ResolvedStream,
    StorageLedgerEntry,
    StreamingSource,
)
from animarr.domain.ports import (
    ArchiveDispatcherPort,
    ArchiveQueueRepository,
    DeliveryCodeRepository,
    ProviderRegistryPort,
    SlugMappingRepository,
    StorageLedgerRepository,
    StreamingCacheRepository,
)
from animarr.infrastructure.extractors.quota_queue import QuotaQueue

log = structlog.get_logger(__name__)

# ---------------------------------------------------------------------------
# Protocols: what this use case needs from its collaborators.
# ---------------------------------------------------------------------------


class _StreamingConfig(Protocol):
    """Configuration values consumed by StreamingAggregationUseCase."""

    deny_list: list[str]
    public_base_url: str
    provider_timeout_seconds: float
    extract_concurrency: int


class _Extractors(Protocol):
    """Subset of ExtractorRegistry used for aggregation."""

    def is_quota_limited(self, url: str) -> bool: ...

    async def extract(self, url: str) -> str | None: ...

    async def extract_stream(self, url: str) -> ResolvedStream | None: ...


# ---------------------------------------------------------------------------
# Pure helpers
# ---------------------------------------------------------------------------


def sort_key(source: StreamingSource) -> tuple[str, int, int]:
    """Provider ascending, resolution rank descending, server ascending."""
    return (
        source.provider,
        -ResolutionRank.from_label(source.resolution),
        source.server,
    )


def sort_sources(sources: list[StreamingSource]) -> list[StreamingSource]:
    return sorted(sources, key=sort_key)


def is_denied(url: str, deny_list: list[str]) -> bool:
    return any(pattern and pattern in url for pattern in deny_list)


def proxy_url(public_base_url: str, resolved_url: str) -> str:
    return f"{public_base_url}/video-proxy?url={quote(resolved_url, safe='')}"


def merge_ledger(
    sources: list[StreamingSource],
    ledger: list[StorageLedgerEntry],
    public_base_url: str,
) -> list[StreamingSource]:
    """Overlay archived copies onto sources with the same resolution+server."""
    archived = {
        (entry.resolution, entry.server): entry.primary_url
        for entry in ledger
        if entry.primary_url
    }
    if not archived:
        return sources

    merged: list[StreamingSource] = []
    for source in sources:
        url = archived.get((source.resolution, source.server))
        if url is None:
            merged.append(source)
            continue
        merged.append(
            replace(
                source,
                resolved_url=url,
                public_proxy_url=proxy_url(public_base_url, url),
                storage_tier="archived",
            )
        )
    return merged


@dataclass
class StreamingResult:
    """Aggregated response for one (catalog id, episode)."""

    catalog_id: int
    episode: int
    sources: list[StreamingSource] = field(default_factory=list)
    saved_videos: list[StorageLedgerEntry] = field(default_factory=list)
    anime_title: str | None = None

    def to_dict(self) -> dict[str, object]:
        data: dict[str, object] = {
            "catalog_id": self.catalog_id,
            "episode": self.episode,
        }
        if self.anime_title:
            data["anime_title"] = self.anime_title
        data["sources"] = [s.to_dict() for s in self.sources]
        if self.saved_videos:
            data["saved_videos"] = [v.to_dict() for v in self.saved_videos]
        return data


# ---------------------------------------------------------------------------
# Use case
# ---------------------------------------------------------------------------


class StreamingAggregationUseCase:
    """Aggregate playable sources for a catalog id and episode.

    Flow:
        1. Cache hit: re-apply the deny-list, re-sort, merge the ledger.
        2. Cache miss: scrape every provider with a known slug (wait-all).
        3. Drop denied embed URLs.
        4. Extract: quota-limited sources sequentially, others in parallel.
        5. Mint one delivery code per source and persist the snapshot.
        6. Sort, cache, merge archived copies, optionally enqueue archival.

    Never runs identity resolution; a catalog id without a slug mapping
    yields an empty source list.
    """

    def __init__(
        self,
        *,
        mappings: SlugMappingRepository,
        providers: ProviderRegistryPort,
        extractors: _Extractors,
        streaming_cache: StreamingCacheRepository,
        delivery_codes: DeliveryCodeRepository,
        ledger: StorageLedgerRepository,
        config: _StreamingConfig,
        archive_queue: ArchiveQueueRepository | None = None,
        dispatcher: ArchiveDispatcherPort | None = None,
    ) -> None:
        self._mappings = mappings
        self._providers = providers
        self._extractors = extractors
        self._streaming_cache = streaming_cache
        self._delivery_codes = delivery_codes
        self._ledger = ledger
        self._deny_list = list(config.deny_list)
        self._public_base_url = config.public_base_url
        self._provider_timeout = config.provider_timeout_seconds
        self._extract_concurrency = config.extract_concurrency
        self._archive_queue = archive_queue
        self._dispatcher = dispatcher
        self._background: set[asyncio.Task[bool]] = set()

    async def execute(self, catalog_id: int, episode: int) -> StreamingResult:
        if catalog_id <= 0:
            raise InvalidRequestError("Invalid MAL ID. Must be a positive integer.")
        if episode <= 0:
            raise InvalidRequestError(
                "Invalid episode number. Must be a positive integer."
            )

        cached = await self._streaming_cache.get(catalog_id, episode)
        if cached is not None:
            log.info("streaming_cache_hit", catalog_id=catalog_id, episode=episode)
            sources = sort_sources(
                [s for s in cached if not is_denied(s.raw_url, self._deny_list)]
            )
            return await self._with_ledger(catalog_id, episode, sources)

        log.debug("streaming_cache_miss", catalog_id=catalog_id, episode=episode)
        mapping = await self._mappings.get(catalog_id)
        if mapping is None:
            log.warning("slug_mapping_missing", catalog_id=catalog_id)
            return StreamingResult(catalog_id=catalog_id, episode=episode)

        raw = await self._scrape_all(mapping.slugs, episode)
        raw = [r for r in raw if not is_denied(r.embed_url, self._deny_list)]

        resolved = await self._extract_all(raw)
        sources = sort_sources(await self._mint_codes(raw, resolved))

        if sources:
            await self._streaming_cache.save(catalog_id, episode, sources)

        result = await self._with_ledger(catalog_id, episode, sources)
        if self._archive_queue is not None:
            await self._enqueue_archival(catalog_id, episode, sources, result)

        log.info(
            "streaming_aggregated",
            catalog_id=catalog_id,
            episode=episode,
            raw=len(raw),
            resolved=sum(1 for s in sources if s.resolved_url),
        )
        return result

    async def aclose(self) -> None:
        """Wait for in-flight dispatch notifications."""
        if self._background:
            await asyncio.gather(*self._background, return_exceptions=True)

    # -- scraping ------------------------------------------------------------

    async def _scrape_all(
        self, slugs: dict[str, str | None], episode: int
    ) -> list[RawSource]:
        targets = [(name, slug) for name, slug in sorted(slugs.items()) if slug]
        batches = await asyncio.gather(
            *(self._scrape_one(name, slug, episode) for name, slug in targets)
        )
        return [source for batch in batches for source in batch]

    async def _scrape_one(
        self, provider: str, slug: str, episode: int
    ) -> list[RawSource]:
        try:
            adapter = self._providers.get(provider)
            sources = await asyncio.wait_for(
                adapter.episode_sources(slug, episode), self._provider_timeout
            )
        except asyncio.TimeoutError:
            log.warning("provider_scrape_timeout", provider=provider, slug=slug)
            return []
        except Exception:
            log.warning(
                "provider_scrape_failed",
                provider=provider,
                slug=slug,
                episode=episode,
                exc_info=True,
            )
            return []
        log.debug("provider_scraped", provider=provider, count=len(sources))
        return list(sources)

    # -- extraction ----------------------------------------------------------

    async def _extract_all(self, raw: list[RawSource]) -> dict[int, str]:
        """Resolved URL per index into ``raw`` (misses are absent)."""
        quota_idx: list[int] = []
        other_idx: list[int] = []
        for i, source in enumerate(raw):
            if self._extractors.is_quota_limited(source.embed_url):
                quota_idx.append(i)
            else:
                other_idx.append(i)

        resolved: dict[int, str] = {}
        sem = asyncio.Semaphore(self._extract_concurrency)

        async def _bounded(i: int) -> None:
            async with sem:
                url = await self._extractors.extract(raw[i].embed_url)
            if url:
                resolved[i] = url

        await asyncio.gather(
            asyncio.gather(*(_bounded(i) for i in other_idx)),
            self._drain_quota(raw, quota_idx, resolved),
        )
        return resolved

    async def _drain_quota(
        self, raw: list[RawSource], indices: list[int], resolved: dict[int, str]
    ) -> None:
        if not indices:
            return
        by_identity = {id(raw[i]): i for i in indices}
        report = await QuotaQueue([raw[i] for i in indices]).drain(self._extract_url)
        for result in report.resolved:
            if result.resolved_url:
                resolved[by_identity[id(result.source)]] = result.resolved_url
        if report.skipped:
            log.info(
                "quota_sources_skipped",
                skipped=len(report.skipped),
                failed=len(report.failed),
            )

    async def _extract_url(self, url: str) -> str | None:
        stream = await self._extractors.extract_stream(url)
        return stream.video_url if stream else None

    # -- delivery codes ------------------------------------------------------

    async def _mint_codes(
        self, raw: list[RawSource], resolved: dict[int, str]
    ) -> list[StreamingSource]:
        sources: list[StreamingSource] = []
        for i, r in enumerate(raw):
            url = resolved.get(i)
            sources.append(
                StreamingSource(
                    code=uuid4().hex,
                    provider=r.provider,
                    resolution=r.resolution,
                    server=r.server,
                    raw_url=r.embed_url,
                    resolved_url=url,
                    public_proxy_url=(
                        proxy_url(self._public_base_url, url) if url else None
                    ),
                )
            )
        await asyncio.gather(*(self._delivery_codes.save(s) for s in sources))
        return sources

    # -- archive ledger ------------------------------------------------------

    async def _with_ledger(
        self, catalog_id: int, episode: int, sources: list[StreamingSource]
    ) -> StreamingResult:
        ledger = await self._ledger.list_for(catalog_id, episode)
        title = next((e.anime_title for e in ledger if e.anime_title), None)
        return StreamingResult(
            catalog_id=catalog_id,
            episode=episode,
            sources=merge_ledger(sources, ledger, self._public_base_url),
            saved_videos=ledger,
            anime_title=title,
        )

    async def _enqueue_archival(
        self,
        catalog_id: int,
        episode: int,
        sources: list[StreamingSource],
        result: StreamingResult,
    ) -> None:
        if self._archive_queue is None:
            return
        archived = {(v.resolution, v.server) for v in result.saved_videos}
        queued = 0
        for source in sources:
            if not source.resolved_url:
                continue
            if (source.resolution, source.server) in archived:
                continue
            item = ArchiveQueueItem(
                id=(
                    f"{catalog_id}-{episode}-{source.provider}"
                    f"-{source.resolution}-{source.server}"
                ),
                catalog_id=catalog_id,
                episode=episode,
                code=source.code,
                provider=source.provider,
                resolution=source.resolution,
                server=source.server,
                url=source.resolved_url,
                anime_title=result.anime_title or "",
            )
            if await self._archive_queue.enqueue(item):
                queued += 1

        if queued and self._dispatcher is not None:
            task = asyncio.create_task(
                self._dispatcher.dispatch(
                    {"catalog_id": catalog_id, "episode": episode, "queued": queued}
                )
            )
            self._background.add(task)
            task.add_done_callback(self._background.discard)
