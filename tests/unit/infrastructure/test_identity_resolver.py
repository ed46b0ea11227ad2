"""Tests for the identity resolution engine."""

from __future__ import annotations

import asyncio
from dataclasses import replace
from typing import Any

import pytest

from animarr.domain.entities import (
    CatalogRecord,
    ListingEntry,
    ScrapedCandidate,
    SlugMapping,
)
from animarr.infrastructure.identity.listing_memo import ListingMemo
from animarr.infrastructure.identity.resolver import (
    IdentityResolutionEngine,
    ResolutionState,
    rank_listing_slugs,
)
from animarr.infrastructure.identity.title_matcher import dice_coefficient
from animarr.infrastructure.persistence.slug_mapping_cache import (
    CacheSlugMappingRepository,
)


def _engine(registry: Any, cache: Any) -> IdentityResolutionEngine:
    return IdentityResolutionEngine(
        providers=registry,
        mappings=CacheSlugMappingRepository(cache),
        listing_memo=ListingMemo(),
        detail_timeout=1.0,
    )


class TestRankListingSlugs:
    def test_filters_and_orders(self) -> None:
        ranked = rank_listing_slugs(
            ["sousou-no-frieren"],
            ["sousou-no-frieren-sub", "one-piece", "sousou-no-frieren-tv"],
        )
        slugs = [slug for slug, _ in ranked]
        assert "one-piece" not in slugs
        assert slugs == sorted(slugs, key=lambda s: (-dict(ranked)[s], s))

    def test_limit(self) -> None:
        live = [f"show-{i}" for i in range(10)]
        assert len(rank_listing_slugs(["show"], live, limit=5)) == 5

    def test_no_variations(self) -> None:
        assert rank_listing_slugs([], ["a"]) == []

    def test_reordered_words_still_ranked(self) -> None:
        # bigram overlap survives word reordering; edit distance does not
        ranked = rank_listing_slugs(
            ["kimetsu-no-yaiba", "kimetsu-no-yaiba-season-2"],
            ["yaiba-kimetsu-no", "kimetsu-no-yaiba-yuukaku-hen", "one-piece"],
        )
        scores = dict(ranked)
        assert scores["yaiba-kimetsu-no"] == pytest.approx(0.8667, abs=1e-3)
        assert "one-piece" not in scores
        assert ranked[0][0] == "yaiba-kimetsu-no"

    def test_scores_match_title_similarity(self) -> None:
        ranked = rank_listing_slugs(["sousou-no-frieren"], ["sousou-no-frieren-tv"])
        assert ranked == [
            (
                "sousou-no-frieren-tv",
                dice_coefficient("sousou-no-frieren", "sousou-no-frieren-tv"),
            )
        ]


class TestResolveProvider:
    async def test_accepts_direct_slug(
        self,
        catalog_record: CatalogRecord,
        scraped_candidate: ScrapedCandidate,
        make_provider: Any,
        make_registry: Any,
        memory_cache: Any,
    ) -> None:
        provider = make_provider(details={"sousou-no-frieren": scraped_candidate})
        engine = _engine(make_registry([provider]), memory_cache)

        result = await engine.resolve_provider(catalog_record, provider)

        assert result.state is ResolutionState.ACCEPTED
        assert result.slug is not None
        assert result.slug.slug == "sousou-no-frieren"
        # Early stop at >= 95 confidence.
        assert provider.detail_calls == ["sousou-no-frieren"]
        assert provider.listing_calls == 0

    async def test_falls_back_to_listing(
        self,
        catalog_record: CatalogRecord,
        scraped_candidate: ScrapedCandidate,
        make_provider: Any,
        make_registry: Any,
        memory_cache: Any,
    ) -> None:
        live = replace(scraped_candidate, slug="sousou-no-frieren-subtitle")
        provider = make_provider(
            details={"sousou-no-frieren-subtitle": live},
            listing=[
                ListingEntry(slug="one-piece"),
                ListingEntry(slug="sousou-no-frieren-subtitle"),
            ],
        )
        engine = _engine(make_registry([provider]), memory_cache)

        result = await engine.resolve_provider(catalog_record, provider)

        assert result.state is ResolutionState.ACCEPTED
        assert result.slug is not None
        assert result.slug.slug == "sousou-no-frieren-subtitle"
        assert provider.listing_calls == 1
        assert "one-piece" not in provider.detail_calls

    async def test_unresolved(
        self,
        catalog_record: CatalogRecord,
        make_provider: Any,
        make_registry: Any,
        memory_cache: Any,
    ) -> None:
        provider = make_provider()
        engine = _engine(make_registry([provider]), memory_cache)

        result = await engine.resolve_provider(catalog_record, provider)

        assert result.state is ResolutionState.UNRESOLVED
        assert result.slug is None

    async def test_detail_errors_are_misses(
        self,
        catalog_record: CatalogRecord,
        make_provider: Any,
        make_registry: Any,
        memory_cache: Any,
    ) -> None:
        provider = make_provider()

        async def _boom(slug: str) -> ScrapedCandidate | None:
            raise RuntimeError("site down")

        provider.detail = _boom
        engine = _engine(make_registry([provider]), memory_cache)

        result = await engine.resolve_provider(catalog_record, provider)
        assert result.state is ResolutionState.UNRESOLVED


class TestResolve:
    async def test_persists_mapping_with_nulls(
        self,
        catalog_record: CatalogRecord,
        scraped_candidate: ScrapedCandidate,
        make_provider: Any,
        make_registry: Any,
        memory_cache: Any,
    ) -> None:
        found = make_provider(
            "animasu", details={"sousou-no-frieren": scraped_candidate}
        )
        missing = make_provider("samehadaku")
        engine = _engine(make_registry([found, missing]), memory_cache)

        mapping = await engine.resolve(catalog_record)

        assert mapping.slugs == {"animasu": "sousou-no-frieren", "samehadaku": None}
        assert mapping.confidence["samehadaku"] is None
        assert mapping.confidence["animasu"] == pytest.approx(100.0)
        assert f"slugmap:{catalog_record.id}" in memory_cache.data
        assert memory_cache.ttls[f"slugmap:{catalog_record.id}"] == 0

    async def test_existing_mapping_is_authoritative(
        self,
        catalog_record: CatalogRecord,
        make_provider: Any,
        make_registry: Any,
        memory_cache: Any,
    ) -> None:
        provider = make_provider()
        engine = _engine(make_registry([provider]), memory_cache)
        await CacheSlugMappingRepository(memory_cache).upsert(
            SlugMapping(catalog_id=catalog_record.id, slugs={"animasu": None})
        )

        mapping = await engine.resolve(catalog_record)

        assert mapping.slugs == {"animasu": None}
        assert provider.detail_calls == []

    async def test_concurrent_resolves_share_work(
        self,
        catalog_record: CatalogRecord,
        scraped_candidate: ScrapedCandidate,
        make_provider: Any,
        make_registry: Any,
        memory_cache: Any,
    ) -> None:
        provider = make_provider(details={"sousou-no-frieren": scraped_candidate})
        engine = _engine(make_registry([provider]), memory_cache)

        first, second = await asyncio.gather(
            engine.resolve(catalog_record), engine.resolve(catalog_record)
        )

        assert first.slugs == second.slugs
        assert provider.detail_calls == ["sousou-no-frieren"]

    async def test_invalidate_allows_reresolution(
        self,
        catalog_record: CatalogRecord,
        scraped_candidate: ScrapedCandidate,
        make_provider: Any,
        make_registry: Any,
        memory_cache: Any,
    ) -> None:
        provider = make_provider(details={"sousou-no-frieren": scraped_candidate})
        engine = _engine(make_registry([provider]), memory_cache)

        await engine.resolve(catalog_record)
        assert await engine.invalidate(catalog_record.id) is True
        await engine.resolve(catalog_record)

        assert provider.detail_calls == ["sousou-no-frieren", "sousou-no-frieren"]
