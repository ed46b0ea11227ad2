"""Ports for cache-backed persistence."""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from animarr.domain.entities import (
    ArchiveQueueItem,
    CatalogDetail,
    HomeFeedItem,
    QueueStatus,
    SlugMapping,
    StorageLedgerEntry,
    StreamingSource,
)


@runtime_checkable
class SlugMappingRepository(Protocol):
    """Durable catalog id -> provider slug store."""

    async def get(self, catalog_id: int) -> SlugMapping | None: ...

    async def upsert(self, mapping: SlugMapping) -> None: ...

    async def delete(self, catalog_id: int) -> bool: ...


@runtime_checkable
class StreamingCacheRepository(Protocol):
    """Short-lived cache of aggregated sources per (catalog id, episode)."""

    async def get(
        self, catalog_id: int, episode: int
    ) -> list[StreamingSource] | None: ...

    async def save(
        self, catalog_id: int, episode: int, sources: list[StreamingSource]
    ) -> None: ...


@runtime_checkable
class ResolvedUrlCache(Protocol):
    """Successful extraction results keyed by (embed url, extractor)."""

    async def get(self, embed_url: str, extractor: str) -> str | None: ...

    async def save(self, embed_url: str, extractor: str, video_url: str) -> None: ...


@runtime_checkable
class DeliveryCodeRepository(Protocol):
    """Opaque delivery code -> source snapshot."""

    async def get(self, code: str) -> StreamingSource | None: ...

    async def save(self, source: StreamingSource) -> None: ...


@runtime_checkable
class StorageLedgerRepository(Protocol):
    """Archived videos per (catalog id, episode)."""

    async def list_for(
        self, catalog_id: int, episode: int
    ) -> list[StorageLedgerEntry]: ...

    async def add(self, entry: StorageLedgerEntry) -> None: ...


@runtime_checkable
class ArchiveQueueRepository(Protocol):
    """Pending archival jobs consumed by the external worker."""

    async def enqueue(self, item: ArchiveQueueItem) -> bool:
        """Add an item. False when an identical item is already queued."""
        ...

    async def list_pending(self) -> list[ArchiveQueueItem]: ...

    async def get(self, item_id: str) -> ArchiveQueueItem | None: ...

    async def set_status(
        self, item_id: str, status: QueueStatus, error_message: str | None = None
    ) -> ArchiveQueueItem | None: ...


@runtime_checkable
class CatalogDetailCache(Protocol):
    """Short-lived cache of unified catalog details."""

    async def get(self, catalog_id: int) -> CatalogDetail | None: ...

    async def save(self, detail: CatalogDetail) -> None: ...

    async def delete(self, catalog_id: int) -> bool: ...


@runtime_checkable
class HomeFeedCache(Protocol):
    """Matched home feed, stored whole with a fixed lifetime."""

    async def get(self) -> list[HomeFeedItem] | None: ...

    async def save(self, items: list[HomeFeedItem]) -> None: ...
