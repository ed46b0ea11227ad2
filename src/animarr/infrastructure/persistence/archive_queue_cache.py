"""Archival job queue backed by CachePort.

Items live under ``archive:item:{id}``; ``archive:index`` holds the ids in
insertion order.
"""

from __future__ import annotations

import json
from dataclasses import asdict
from datetime import datetime, timezone

import structlog

from animarr.domain.entities import ArchiveQueueItem, QueueStatus
from animarr.domain.ports import CachePort

log = structlog.get_logger(__name__)

_INDEX_KEY = "archive:index"


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _deserialize_item(data: str) -> ArchiveQueueItem:
    d = json.loads(data)
    return ArchiveQueueItem(
        id=d["id"],
        catalog_id=int(d["catalog_id"]),
        episode=int(d["episode"]),
        code=d.get("code", ""),
        provider=d.get("provider", ""),
        resolution=d.get("resolution", "unknown"),
        server=int(d.get("server", 0)),
        url=d["url"],
        anime_title=d.get("anime_title", ""),
        status=d.get("status", "pending"),
        error_message=d.get("error_message"),
        created_at=d.get("created_at", ""),
        updated_at=d.get("updated_at", ""),
        extra=dict(d.get("extra") or {}),
    )


class CacheArchiveQueueRepository:
    def __init__(self, cache: CachePort, ttl_seconds: int = 604800) -> None:
        self.cache = cache
        self.ttl = ttl_seconds

    async def _index(self) -> list[str]:
        raw = await self.cache.get(_INDEX_KEY)
        if not raw:
            return []
        try:
            return [str(i) for i in json.loads(raw)]
        except (json.JSONDecodeError, TypeError) as e:
            log.error("archive_index_deserialize_error", error=str(e))
            return []

    async def _write(self, item: ArchiveQueueItem) -> None:
        await self.cache.set(
            f"archive:item:{item.id}", json.dumps(asdict(item)), ttl=self.ttl
        )

    async def get(self, item_id: str) -> ArchiveQueueItem | None:
        data = await self.cache.get(f"archive:item:{item_id}")
        if data is None:
            return None
        try:
            return _deserialize_item(data)
        except (json.JSONDecodeError, KeyError, ValueError, TypeError) as e:
            log.error("archive_item_deserialize_error", item_id=item_id, error=str(e))
            return None

    async def enqueue(self, item: ArchiveQueueItem) -> bool:
        existing = await self.get(item.id)
        if existing is not None and existing.status in ("pending", "processing"):
            return False

        item.created_at = item.created_at or _now()
        item.updated_at = _now()
        await self._write(item)

        index = await self._index()
        if item.id not in index:
            index.append(item.id)
            await self.cache.set(_INDEX_KEY, json.dumps(index), ttl=self.ttl)
        log.info(
            "archive_item_enqueued",
            item_id=item.id,
            catalog_id=item.catalog_id,
            episode=item.episode,
            provider=item.provider,
        )
        return True

    async def list_pending(self) -> list[ArchiveQueueItem]:
        items: list[ArchiveQueueItem] = []
        live_ids: list[str] = []
        index = await self._index()
        for item_id in index:
            item = await self.get(item_id)
            if item is None:
                continue
            live_ids.append(item_id)
            if item.status == "pending":
                items.append(item)
        if live_ids != index:
            await self.cache.set(_INDEX_KEY, json.dumps(live_ids), ttl=self.ttl)
        return items

    async def set_status(
        self, item_id: str, status: QueueStatus, error_message: str | None = None
    ) -> ArchiveQueueItem | None:
        item = await self.get(item_id)
        if item is None:
            return None
        item.status = status
        item.error_message = error_message
        item.updated_at = _now()
        await self._write(item)
        log.info("archive_item_status", item_id=item_id, status=status)
        return item
