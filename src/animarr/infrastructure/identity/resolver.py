"""Identity resolution: catalog record -> per-provider slug mapping.

Per provider the engine runs a small state machine::

    SCANNING(candidate slugs) -> ACCEPTED
                              -> FALLBACK(listing) -> ACCEPTED | UNRESOLVED

SCANNING tries the generated slug variations in order and accepts a match
at confidence >= 75, stopping early at >= 95. FALLBACK ranks the provider's
live listing by slug similarity, tries the top five and accepts >= 80.
"""

from __future__ import annotations

import asyncio
import enum
from collections.abc import Sequence
from dataclasses import dataclass

import structlog

from animarr.domain.entities import (
    CatalogRecord,
    MatchResult,
    ProviderSlug,
    SlugMapping,
)
from animarr.domain.ports import (
    ProviderRegistryPort,
    ScraperAdapterPort,
    SlugMappingRepository,
)
from animarr.infrastructure.identity.listing_memo import ListingMemo
from animarr.infrastructure.identity.slugs import slug_variations
from animarr.infrastructure.identity.title_matcher import (
    ACCEPT_THRESHOLD,
    dice_coefficient,
    match_candidate,
)

log = structlog.get_logger(__name__)

EARLY_STOP_CONFIDENCE = 95.0
FALLBACK_ACCEPT_CONFIDENCE = 80.0
FALLBACK_MIN_SIMILARITY = 0.70
FALLBACK_ATTEMPT_LIMIT = 5


class ResolutionState(enum.Enum):
    SCANNING = "scanning"
    FALLBACK = "fallback"
    ACCEPTED = "accepted"
    UNRESOLVED = "unresolved"


@dataclass(frozen=True)
class ProviderResolution:
    """Terminal state of one provider's resolution run."""

    provider: str
    state: ResolutionState
    match: MatchResult | None = None
    attempted: int = 0

    @property
    def slug(self) -> ProviderSlug | None:
        if self.state is not ResolutionState.ACCEPTED or self.match is None:
            return None
        return ProviderSlug(
            provider=self.provider,
            slug=self.match.slug,
            confidence=self.match.confidence,
        )


def rank_listing_slugs(
    variations: Sequence[str],
    live_slugs: Sequence[str],
    *,
    min_similarity: float = FALLBACK_MIN_SIMILARITY,
    limit: int = FALLBACK_ATTEMPT_LIMIT,
) -> list[tuple[str, float]]:
    """Live slugs most similar to any variation, best first.

    Similarity is the bigram Dice coefficient against the closest
    variation, the same measure the title layer uses.
    """
    if not variations:
        return []
    scored: list[tuple[str, float]] = []
    for live in live_slugs:
        similarity = max(dice_coefficient(v, live) for v in variations)
        if similarity >= min_similarity:
            scored.append((live, similarity))
    scored.sort(key=lambda item: (-item[1], item[0]))
    return scored[:limit]


class IdentityResolutionEngine:
    """Resolves and persists provider slugs for catalog records."""

    def __init__(
        self,
        *,
        providers: ProviderRegistryPort,
        mappings: SlugMappingRepository,
        listing_memo: ListingMemo,
        detail_timeout: float = 30.0,
    ) -> None:
        self._providers = providers
        self._mappings = mappings
        self._memo = listing_memo
        self._detail_timeout = detail_timeout
        self._locks: dict[int, asyncio.Lock] = {}

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def resolve(self, record: CatalogRecord) -> SlugMapping:
        """Existing mapping, or resolve every provider once and persist.

        A stored mapping is returned as-is: null slugs are not re-attempted
        until ``invalidate`` removes the row. Concurrent calls for the same
        catalog id share one resolution.
        """
        existing = await self._mappings.get(record.id)
        if existing is not None:
            return existing

        lock = self._locks.setdefault(record.id, asyncio.Lock())
        try:
            async with lock:
                existing = await self._mappings.get(record.id)
                if existing is not None:
                    return existing
                mapping = await self._resolve_all(record)
                await self._mappings.upsert(mapping)
                return mapping
        finally:
            if not lock.locked():
                self._locks.pop(record.id, None)

    async def invalidate(self, catalog_id: int) -> bool:
        """Drop the stored mapping so the next ``resolve`` starts over."""
        return await self._mappings.delete(catalog_id)

    async def resolve_provider(
        self, record: CatalogRecord, adapter: ScraperAdapterPort
    ) -> ProviderResolution:
        """Run the state machine for one provider (never raises)."""
        variations = slug_variations(record.title, record.title_english)
        state = ResolutionState.SCANNING
        log.debug(
            "identity_scanning",
            provider=adapter.name,
            catalog_id=record.id,
            candidates=variations,
        )

        best, attempted = await self._scan(
            record, adapter, variations, accept_at=ACCEPT_THRESHOLD
        )
        if best is not None:
            state = ResolutionState.ACCEPTED
        else:
            state = ResolutionState.FALLBACK
            best, extra = await self._fallback(record, adapter, variations)
            attempted += extra
            state = (
                ResolutionState.ACCEPTED
                if best is not None
                else ResolutionState.UNRESOLVED
            )

        log.info(
            "identity_resolved",
            provider=adapter.name,
            catalog_id=record.id,
            state=state.value,
            slug=best.slug if best else None,
            confidence=best.confidence if best else None,
            attempted=attempted,
        )
        return ProviderResolution(
            provider=adapter.name, state=state, match=best, attempted=attempted
        )

    # ------------------------------------------------------------------
    # State transitions
    # ------------------------------------------------------------------

    async def _resolve_all(self, record: CatalogRecord) -> SlugMapping:
        adapters = self._providers.load_all()
        results = await asyncio.gather(
            *(self._safe_resolve_provider(record, a) for a in adapters)
        )

        mapping = SlugMapping(catalog_id=record.id)
        for adapter, result in zip(adapters, results):
            accepted = result.slug if result else None
            mapping.slugs[adapter.name] = accepted.slug if accepted else None
            mapping.confidence[adapter.name] = (
                round(accepted.confidence, 2) if accepted else None
            )
        return mapping

    async def _safe_resolve_provider(
        self, record: CatalogRecord, adapter: ScraperAdapterPort
    ) -> ProviderResolution | None:
        try:
            return await self.resolve_provider(record, adapter)
        except Exception:
            log.warning(
                "identity_provider_failed",
                provider=adapter.name,
                catalog_id=record.id,
                exc_info=True,
            )
            return None

    async def _scan(
        self,
        record: CatalogRecord,
        adapter: ScraperAdapterPort,
        slugs: Sequence[str],
        *,
        accept_at: float,
    ) -> tuple[MatchResult | None, int]:
        best: MatchResult | None = None
        attempted = 0
        for slug in slugs:
            result = await self._attempt(record, adapter, slug)
            attempted += 1
            if result is None or not result.is_match:
                continue
            if result.confidence < accept_at:
                continue
            if best is None or result.confidence > best.confidence:
                best = result
            if result.confidence >= EARLY_STOP_CONFIDENCE:
                break
        return best, attempted

    async def _fallback(
        self,
        record: CatalogRecord,
        adapter: ScraperAdapterPort,
        variations: Sequence[str],
    ) -> tuple[MatchResult | None, int]:
        listing = await self._memo.get(adapter)
        tried = set(variations)
        live = [entry.slug for entry in listing if entry.slug not in tried]
        ranked = rank_listing_slugs(variations, live)
        log.debug(
            "identity_fallback",
            provider=adapter.name,
            catalog_id=record.id,
            listing_size=len(listing),
            shortlist=ranked,
        )
        return await self._scan(
            record,
            adapter,
            [slug for slug, _ in ranked],
            accept_at=FALLBACK_ACCEPT_CONFIDENCE,
        )

    async def _attempt(
        self, record: CatalogRecord, adapter: ScraperAdapterPort, slug: str
    ) -> MatchResult | None:
        try:
            candidate = await asyncio.wait_for(
                adapter.detail(slug), self._detail_timeout
            )
        except Exception:
            log.warning(
                "identity_detail_failed",
                provider=adapter.name,
                slug=slug,
                exc_info=True,
            )
            return None
        if candidate is None:
            return None

        result = match_candidate(record, candidate)
        log.debug(
            "identity_candidate_scored",
            provider=adapter.name,
            slug=slug,
            confidence=result.confidence,
            is_match=result.is_match,
            warnings=list(result.warnings),
        )
        return result
