"""Unified catalog detail use case.

Catalog id -> catalog record -> slug mapping (resolved once, persisted)
-> per-provider detail fetch -> episodes merged by number.
"""

from __future__ import annotations

import asyncio
from typing import Protocol

import structlog

from animarr.domain.entities import (
    CatalogDetail,
    CatalogRecord,
    InvalidRequestError,
    NotFoundError,
    ScrapedCandidate,
    SlugMapping,
    UnifiedEpisode,
)
from animarr.domain.ports import (
    CatalogClientPort,
    CatalogDetailCache,
    ProviderRegistryPort,
)

log = structlog.get_logger(__name__)


class _IdentityResolver(Protocol):
    """Resolves (and persists) provider slugs for a catalog record."""

    async def resolve(self, record: CatalogRecord) -> SlugMapping: ...

    async def invalidate(self, catalog_id: int) -> bool: ...


def merge_episodes(candidates: list[ScrapedCandidate]) -> list[UnifiedEpisode]:
    """Join provider episode lists on episode number, ascending.

    The first provider that reports a title or release date for an
    episode wins; every provider contributes its own URL.
    """
    merged: dict[int, UnifiedEpisode] = {}
    for candidate in candidates:
        for ep in candidate.episodes:
            unified = merged.setdefault(ep.number, UnifiedEpisode(number=ep.number))
            if not unified.title and ep.title:
                unified.title = ep.title
            if unified.release_date is None and ep.release_date:
                unified.release_date = ep.release_date
            if ep.url:
                unified.urls.setdefault(candidate.provider, ep.url)
    return [merged[n] for n in sorted(merged)]


class CatalogDetailUseCase:
    """Build the unified detail view for one catalog id."""

    def __init__(
        self,
        *,
        catalog: CatalogClientPort,
        identity: _IdentityResolver,
        providers: ProviderRegistryPort,
        detail_cache: CatalogDetailCache,
        provider_timeout: float = 30.0,
    ) -> None:
        self._catalog = catalog
        self._identity = identity
        self._providers = providers
        self._detail_cache = detail_cache
        self._provider_timeout = provider_timeout

    async def execute(self, catalog_id: int) -> CatalogDetail:
        """Return the unified detail.

        Raises:
            InvalidRequestError: ``catalog_id`` is not a positive integer.
            NotFoundError: the catalog does not know the id.
        """
        if catalog_id <= 0:
            raise InvalidRequestError("Invalid MAL ID. Must be a positive integer.")

        cached = await self._detail_cache.get(catalog_id)
        if cached is not None:
            log.debug("catalog_detail_cache_hit", catalog_id=catalog_id)
            return cached

        record = await self._catalog.by_id(catalog_id)
        if record is None:
            raise NotFoundError(f"Anime not found: {catalog_id}")

        mapping = await self._identity.resolve(record)
        candidates = await self._fetch_details(mapping)

        detail = CatalogDetail(
            record=record,
            slugs=dict(mapping.slugs),
            confidence=dict(mapping.confidence),
            episodes=merge_episodes(candidates),
        )
        await self._detail_cache.save(detail)

        log.info(
            "catalog_detail_built",
            catalog_id=catalog_id,
            providers=mapping.resolved_providers,
            episodes=len(detail.episodes),
        )
        return detail

    async def invalidate(self, catalog_id: int) -> bool:
        """Forget the slug mapping and cached detail for one catalog id.

        Returns True when either was present.
        """
        mapping_dropped = await self._identity.invalidate(catalog_id)
        detail_dropped = await self._detail_cache.delete(catalog_id)
        log.info(
            "catalog_detail_invalidated",
            catalog_id=catalog_id,
            mapping_dropped=mapping_dropped,
            detail_dropped=detail_dropped,
        )
        return mapping_dropped or detail_dropped

    async def _fetch_details(self, mapping: SlugMapping) -> list[ScrapedCandidate]:
        names = [
            name
            for name in self._providers.list_names()
            if mapping.slug_for(name) is not None
        ]
        results = await asyncio.gather(
            *(self._fetch_one(name, mapping.slug_for(name) or "") for name in names)
        )
        return [r for r in results if r is not None]

    async def _fetch_one(self, provider: str, slug: str) -> ScrapedCandidate | None:
        try:
            adapter = self._providers.get(provider)
            return await asyncio.wait_for(adapter.detail(slug), self._provider_timeout)
        except Exception:
            log.warning(
                "catalog_detail_provider_failed",
                provider=provider,
                slug=slug,
                exc_info=True,
            )
            return None


def detail_to_dict(detail: CatalogDetail) -> dict[str, object]:
    """Public JSON shape of a CatalogDetail."""
    record = detail.record
    return {
        "id": record.id,
        "title": record.title,
        "title_english": record.title_english,
        "title_japanese": record.title_japanese,
        "synonyms": list(record.synonyms),
        "type": record.type,
        "year": record.year,
        "season": record.season,
        "studios": list(record.studios),
        "source": record.source,
        "status": record.status,
        "score": record.score,
        "synopsis": record.synopsis,
        "genres": list(record.genres),
        "cover_url": record.cover_url,
        "slugs": dict(detail.slugs),
        "confidence": dict(detail.confidence),
        "episodes": [
            {
                "number": ep.number,
                "title": ep.title,
                "release_date": ep.release_date,
                "urls": dict(ep.urls),
            }
            for ep in detail.episodes
        ],
    }
