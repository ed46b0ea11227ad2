"""Tests for the cache-backed repositories."""

from __future__ import annotations

import json
from typing import Any

from animarr.domain.entities import (
    ArchivedCopy,
    ArchiveQueueItem,
    CatalogDetail,
    CatalogRecord,
    HomeFeedItem,
    SlugMapping,
    StorageLedgerEntry,
    StreamingSource,
    UnifiedEpisode,
)
from animarr.infrastructure.persistence.archive_queue_cache import (
    CacheArchiveQueueRepository,
)
from animarr.infrastructure.persistence.catalog_detail_cache import (
    CacheCatalogDetailRepository,
)
from animarr.infrastructure.persistence.delivery_code_cache import (
    CacheDeliveryCodeRepository,
)
from animarr.infrastructure.persistence.home_feed_cache import (
    CacheHomeFeedRepository,
)
from animarr.infrastructure.persistence.resolved_url_cache import (
    CacheResolvedUrlRepository,
)
from animarr.infrastructure.persistence.slug_mapping_cache import (
    CacheSlugMappingRepository,
)
from animarr.infrastructure.persistence.storage_ledger_cache import (
    CacheStorageLedgerRepository,
)
from animarr.infrastructure.persistence.streaming_cache import (
    CacheStreamingRepository,
)


def _source(code: str = "c1", **kwargs: Any) -> StreamingSource:
    fields: dict[str, Any] = {
        "provider": "animasu",
        "resolution": "720p",
        "server": 1,
        "raw_url": "https://blogger.com/video.g?token=x",
    }
    fields.update(kwargs)
    return StreamingSource(code=code, **fields)


def _queue_item(item_id: str = "1-1-animasu-720p-1") -> ArchiveQueueItem:
    return ArchiveQueueItem(
        id=item_id,
        catalog_id=1,
        episode=1,
        code="c1",
        provider="animasu",
        resolution="720p",
        server=1,
        url="https://cdn/v.mp4",
    )


class TestSlugMappingRepository:
    async def test_roundtrip_without_expiry(self, memory_cache: Any) -> None:
        repo = CacheSlugMappingRepository(memory_cache)
        await repo.upsert(
            SlugMapping(
                catalog_id=7,
                slugs={"animasu": "show", "samehadaku": None},
                confidence={"animasu": 91.5, "samehadaku": None},
            )
        )

        mapping = await repo.get(7)

        assert mapping is not None
        assert mapping.slugs == {"animasu": "show", "samehadaku": None}
        assert mapping.confidence["animasu"] == 91.5
        assert mapping.created_at is not None
        assert memory_cache.ttls["slugmap:7"] == 0

    async def test_upsert_keeps_created_at(self, memory_cache: Any) -> None:
        repo = CacheSlugMappingRepository(memory_cache)
        await repo.upsert(SlugMapping(catalog_id=7, slugs={"a": "x"}))
        first = await repo.get(7)
        await repo.upsert(SlugMapping(catalog_id=7, slugs={"a": "y"}))
        second = await repo.get(7)

        assert first is not None and second is not None
        assert second.created_at == first.created_at
        assert second.slugs == {"a": "y"}

    async def test_corrupt_row(self, memory_cache: Any) -> None:
        memory_cache.data["slugmap:7"] = "{not json"
        assert await CacheSlugMappingRepository(memory_cache).get(7) is None

    async def test_delete(self, memory_cache: Any) -> None:
        repo = CacheSlugMappingRepository(memory_cache)
        await repo.upsert(SlugMapping(catalog_id=7))
        assert await repo.delete(7) is True
        assert await repo.get(7) is None


class TestStreamingRepository:
    async def test_roundtrip_with_ttl(self, memory_cache: Any) -> None:
        repo = CacheStreamingRepository(memory_cache, ttl_seconds=1200)
        sources = [_source("a"), _source("b", resolution="1080p")]
        await repo.save(1, 2, sources)

        assert await repo.get(1, 2) == sources
        assert memory_cache.ttls["streaming:1:2"] == 1200

    async def test_miss(self, memory_cache: Any) -> None:
        assert await CacheStreamingRepository(memory_cache).get(1, 2) is None


class TestDeliveryCodeRepository:
    async def test_snapshot_roundtrip(self, memory_cache: Any) -> None:
        repo = CacheDeliveryCodeRepository(memory_cache, ttl_seconds=86400)
        source = _source("abc", resolved_url="https://cdn/v.mp4")
        await repo.save(source)

        assert await repo.get("abc") == source
        assert memory_cache.ttls["video:code:abc"] == 86400

    async def test_unknown_code(self, mock_cache: Any) -> None:
        assert await CacheDeliveryCodeRepository(mock_cache).get("nope") is None
        mock_cache.get.assert_awaited_once_with("video:code:nope")


class TestResolvedUrlRepository:
    async def test_keyed_by_extractor_and_url(self, memory_cache: Any) -> None:
        repo = CacheResolvedUrlRepository(memory_cache)
        await repo.save("https://embed/1", "blogger", "https://cdn/1.mp4")

        assert await repo.get("https://embed/1", "blogger") == "https://cdn/1.mp4"
        assert await repo.get("https://embed/1", "filedon") is None
        assert await repo.get("https://embed/2", "blogger") is None
        assert all(k.startswith("resolved:blogger:") for k in memory_cache.data)

    async def test_empty_url_not_saved(self, memory_cache: Any) -> None:
        await CacheResolvedUrlRepository(memory_cache).save("https://e", "x", "")
        assert memory_cache.data == {}


class TestStorageLedgerRepository:
    async def test_add_replaces_same_slot(self, memory_cache: Any) -> None:
        repo = CacheStorageLedgerRepository(memory_cache)
        old = StorageLedgerEntry(
            catalog_id=1,
            episode=1,
            resolution="720p",
            server=1,
            archived_urls=(ArchivedCopy(account="a", url="https://old"),),
        )
        new = StorageLedgerEntry(
            catalog_id=1,
            episode=1,
            resolution="720p",
            server=1,
            archived_urls=(ArchivedCopy(account="a", url="https://new"),),
            anime_title="Show",
        )
        other = StorageLedgerEntry(catalog_id=1, episode=1, resolution="480p", server=1)

        await repo.add(old)
        await repo.add(other)
        await repo.add(new)

        entries = await repo.list_for(1, 1)
        assert [e.resolution for e in entries] == ["480p", "720p"]
        assert entries[1].primary_url == "https://new"
        assert entries[1].anime_title == "Show"
        assert memory_cache.ttls["storage:1:1"] == 0

    async def test_empty(self, memory_cache: Any) -> None:
        assert await CacheStorageLedgerRepository(memory_cache).list_for(1, 1) == []


class TestArchiveQueueRepository:
    async def test_enqueue_and_list(self, memory_cache: Any) -> None:
        repo = CacheArchiveQueueRepository(memory_cache)
        assert await repo.enqueue(_queue_item()) is True

        pending = await repo.list_pending()

        assert [i.id for i in pending] == ["1-1-animasu-720p-1"]
        assert pending[0].created_at

    async def test_duplicate_pending_rejected(self, memory_cache: Any) -> None:
        repo = CacheArchiveQueueRepository(memory_cache)
        await repo.enqueue(_queue_item())
        assert await repo.enqueue(_queue_item()) is False
        assert json.loads(memory_cache.data["archive:index"]) == ["1-1-animasu-720p-1"]

    async def test_requeue_after_failure(self, memory_cache: Any) -> None:
        repo = CacheArchiveQueueRepository(memory_cache)
        await repo.enqueue(_queue_item())
        await repo.set_status("1-1-animasu-720p-1", "failed", "upload error")
        assert await repo.enqueue(_queue_item()) is True

    async def test_set_status(self, memory_cache: Any) -> None:
        repo = CacheArchiveQueueRepository(memory_cache)
        await repo.enqueue(_queue_item())

        item = await repo.set_status("1-1-animasu-720p-1", "completed")

        assert item is not None
        assert item.status == "completed"
        assert await repo.list_pending() == []

    async def test_set_status_unknown(self, memory_cache: Any) -> None:
        repo = CacheArchiveQueueRepository(memory_cache)
        assert await repo.set_status("missing", "completed") is None

    async def test_expired_items_pruned_from_index(self, memory_cache: Any) -> None:
        repo = CacheArchiveQueueRepository(memory_cache)
        await repo.enqueue(_queue_item("a"))
        await repo.enqueue(_queue_item("b"))
        del memory_cache.data["archive:item:a"]

        pending = await repo.list_pending()

        assert [i.id for i in pending] == ["b"]
        assert json.loads(memory_cache.data["archive:index"]) == ["b"]


class TestCatalogDetailRepository:
    async def test_roundtrip(
        self, memory_cache: Any, catalog_record: CatalogRecord
    ) -> None:
        repo = CacheCatalogDetailRepository(memory_cache, ttl_seconds=1200)
        detail = CatalogDetail(
            record=catalog_record,
            slugs={"animasu": "sousou-no-frieren"},
            confidence={"animasu": 100.0},
            episodes=[UnifiedEpisode(number=1, urls={"animasu": "https://a/1"})],
        )
        await repo.save(detail)

        restored = await repo.get(catalog_record.id)

        assert restored == detail
        assert memory_cache.ttls[f"catalog:detail:{catalog_record.id}"] == 1200

    async def test_record_without_aired_from(
        self, memory_cache: Any, catalog_record: CatalogRecord
    ) -> None:
        repo = CacheCatalogDetailRepository(memory_cache)
        await repo.save(CatalogDetail(record=catalog_record))
        payload = json.loads(memory_cache.data["catalog:detail:52991"])
        del payload["record"]["aired_from"]
        memory_cache.data["catalog:detail:52991"] = json.dumps(payload)

        restored = await repo.get(52991)

        assert restored is not None
        assert restored.record.aired_from is None


class TestHomeFeedRepository:
    async def test_roundtrip_keeps_order(self, memory_cache: Any) -> None:
        repo = CacheHomeFeedRepository(memory_cache, ttl_seconds=21_600)
        items = [
            HomeFeedItem(catalog_id=21, name="One Piece", last_episode=1090),
            HomeFeedItem(
                catalog_id=52991,
                name="Sousou no Frieren",
                cover_url="https://cdn/f.jpg",
                aired_from="2023-09-29T00:00:00+00:00",
            ),
        ]
        await repo.save(items)

        assert await repo.get() == items
        assert memory_cache.ttls["home:feed"] == 21_600

    async def test_empty_feed_not_saved(self, memory_cache: Any) -> None:
        repo = CacheHomeFeedRepository(memory_cache)
        await repo.save([])
        assert await repo.get() is None
        assert memory_cache.data == {}

    async def test_corrupt_payload(self, memory_cache: Any) -> None:
        memory_cache.data["home:feed"] = "{not json"
        assert await CacheHomeFeedRepository(memory_cache).get() is None
