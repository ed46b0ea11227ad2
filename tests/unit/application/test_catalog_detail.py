"""Tests for CatalogDetailUseCase."""

from __future__ import annotations

import json
from typing import Any
from unittest.mock import AsyncMock

import pytest

from animarr.application.use_cases.catalog_detail import (
    CatalogDetailUseCase,
    detail_to_dict,
    merge_episodes,
)
from animarr.domain.entities import (
    CatalogRecord,
    EpisodeRef,
    InvalidRequestError,
    NotFoundError,
    ScrapedCandidate,
    SlugMapping,
)
from animarr.infrastructure.persistence.catalog_detail_cache import (
    CacheCatalogDetailRepository,
)


def _candidate(provider: str, *episodes: EpisodeRef) -> ScrapedCandidate:
    return ScrapedCandidate(
        provider=provider, slug="frieren", title="Frieren", episodes=episodes
    )


def _use_case(
    cache: Any,
    registry: Any,
    record: CatalogRecord | None,
    mapping: SlugMapping,
) -> tuple[CatalogDetailUseCase, AsyncMock, AsyncMock]:
    catalog = AsyncMock()
    catalog.by_id = AsyncMock(return_value=record)
    identity = AsyncMock()
    identity.resolve = AsyncMock(return_value=mapping)
    use_case = CatalogDetailUseCase(
        catalog=catalog,
        identity=identity,
        providers=registry,
        detail_cache=CacheCatalogDetailRepository(cache),
        provider_timeout=5.0,
    )
    return use_case, catalog, identity


class TestMergeEpisodes:
    def test_joins_on_number(self) -> None:
        merged = merge_episodes(
            [
                _candidate(
                    "animasu",
                    EpisodeRef(2, url="https://a/2"),
                    EpisodeRef(1, url="https://a/1"),
                ),
                _candidate(
                    "samehadaku",
                    EpisodeRef(1, title="Journey's End", url="https://s/1"),
                    EpisodeRef(3, url="https://s/3", release_date="2023-10-13"),
                ),
            ]
        )

        assert [e.number for e in merged] == [1, 2, 3]
        assert merged[0].urls == {"animasu": "https://a/1", "samehadaku": "https://s/1"}
        assert merged[0].title == "Journey's End"
        assert merged[2].release_date == "2023-10-13"

    def test_first_title_wins(self) -> None:
        merged = merge_episodes(
            [
                _candidate("a", EpisodeRef(1, title="First")),
                _candidate("b", EpisodeRef(1, title="Second")),
            ]
        )
        assert merged[0].title == "First"
        assert merged[0].urls == {}

    def test_empty(self) -> None:
        assert merge_episodes([]) == []


class TestExecute:
    async def test_builds_detail(
        self,
        memory_cache: Any,
        make_provider: Any,
        make_registry: Any,
        catalog_record: CatalogRecord,
        scraped_candidate: ScrapedCandidate,
    ) -> None:
        animasu = make_provider(
            "animasu", details={"sousou-no-frieren": scraped_candidate}
        )
        mapping = SlugMapping(
            catalog_id=catalog_record.id,
            slugs={"animasu": "sousou-no-frieren", "samehadaku": None},
            confidence={"animasu": 100.0, "samehadaku": None},
        )
        use_case, _, identity = _use_case(
            memory_cache,
            make_registry([animasu, make_provider("samehadaku")]),
            catalog_record,
            mapping,
        )

        detail = await use_case.execute(catalog_record.id)

        assert detail.record == catalog_record
        assert detail.slugs == {"animasu": "sousou-no-frieren", "samehadaku": None}
        assert [e.number for e in detail.episodes] == [1, 2]
        assert detail.episodes[0].urls == {"animasu": "https://a/ep-1"}
        identity.resolve.assert_awaited_once_with(catalog_record)
        assert animasu.detail_calls == ["sousou-no-frieren"]

    async def test_cached_detail_short_circuits(
        self,
        memory_cache: Any,
        make_registry: Any,
        catalog_record: CatalogRecord,
    ) -> None:
        mapping = SlugMapping(catalog_id=catalog_record.id)
        use_case, catalog, _ = _use_case(
            memory_cache, make_registry([]), catalog_record, mapping
        )
        first = await use_case.execute(catalog_record.id)
        second = await use_case.execute(catalog_record.id)

        assert second == first
        catalog.by_id.assert_awaited_once()

    async def test_unknown_id(self, memory_cache: Any, make_registry: Any) -> None:
        use_case, _, identity = _use_case(
            memory_cache, make_registry([]), None, SlugMapping(catalog_id=9)
        )
        with pytest.raises(NotFoundError):
            await use_case.execute(9)
        identity.resolve.assert_not_awaited()

    async def test_invalid_id(self, memory_cache: Any, make_registry: Any) -> None:
        use_case, catalog, _ = _use_case(
            memory_cache, make_registry([]), None, SlugMapping(catalog_id=0)
        )
        with pytest.raises(InvalidRequestError):
            await use_case.execute(0)
        catalog.by_id.assert_not_awaited()

    async def test_provider_failure_tolerated(
        self,
        memory_cache: Any,
        make_provider: Any,
        make_registry: Any,
        catalog_record: CatalogRecord,
        scraped_candidate: ScrapedCandidate,
    ) -> None:
        broken = make_provider("samehadaku")

        async def detail(slug: str) -> ScrapedCandidate | None:
            raise RuntimeError("blocked")

        broken.detail = detail
        mapping = SlugMapping(
            catalog_id=catalog_record.id,
            slugs={"animasu": "sousou-no-frieren", "samehadaku": "frieren"},
        )
        use_case, _, _ = _use_case(
            memory_cache,
            make_registry(
                [
                    make_provider(
                        "animasu", details={"sousou-no-frieren": scraped_candidate}
                    ),
                    broken,
                ]
            ),
            catalog_record,
            mapping,
        )

        detail_view = await use_case.execute(catalog_record.id)

        assert [e.number for e in detail_view.episodes] == [1, 2]
        assert all(set(e.urls) == {"animasu"} for e in detail_view.episodes)


class TestDetailToDict:
    async def test_json_shape(
        self,
        memory_cache: Any,
        make_provider: Any,
        make_registry: Any,
        catalog_record: CatalogRecord,
        scraped_candidate: ScrapedCandidate,
    ) -> None:
        mapping = SlugMapping(
            catalog_id=catalog_record.id,
            slugs={"animasu": "sousou-no-frieren"},
            confidence={"animasu": 100.0},
        )
        use_case, _, _ = _use_case(
            memory_cache,
            make_registry(
                [
                    make_provider(
                        "animasu", details={"sousou-no-frieren": scraped_candidate}
                    )
                ]
            ),
            catalog_record,
            mapping,
        )

        data = detail_to_dict(await use_case.execute(catalog_record.id))

        assert data["id"] == 52991
        assert data["studios"] == ["Madhouse"]
        assert data["confidence"] == {"animasu": 100.0}
        assert data["episodes"][0] == {
            "number": 1,
            "title": "The Journey's End",
            "release_date": None,
            "urls": {"animasu": "https://a/ep-1"},
        }
        json.dumps(data)


class TestInvalidate:
    async def test_drops_mapping_and_cached_detail(
        self,
        memory_cache: Any,
        make_registry: Any,
        make_provider: Any,
        catalog_record: CatalogRecord,
        scraped_candidate: ScrapedCandidate,
    ) -> None:
        mapping = SlugMapping(
            catalog_id=catalog_record.id, slugs={"animasu": "sousou-no-frieren"}
        )
        registry = make_registry(
            [make_provider("animasu", details={"sousou-no-frieren": scraped_candidate})]
        )
        use_case, catalog, identity = _use_case(
            memory_cache, registry, catalog_record, mapping
        )
        identity.invalidate = AsyncMock(return_value=True)
        await use_case.execute(catalog_record.id)
        assert "catalog:detail:52991" in memory_cache.data

        assert await use_case.invalidate(catalog_record.id) is True

        identity.invalidate.assert_awaited_once_with(52991)
        assert "catalog:detail:52991" not in memory_cache.data
        await use_case.execute(catalog_record.id)
        assert catalog.by_id.await_count == 2
        assert identity.resolve.await_count == 2

    async def test_nothing_stored(
        self, memory_cache: Any, make_registry: Any
    ) -> None:
        use_case, _, identity = _use_case(
            memory_cache, make_registry([]), None, SlugMapping(catalog_id=7)
        )
        identity.invalidate = AsyncMock(return_value=False)

        assert await use_case.invalidate(7) is False
