"""Storage ledger: archived copies per (catalog id, episode)."""

from __future__ import annotations

import json

import structlog

from animarr.domain.entities import ArchivedCopy, StorageLedgerEntry
from animarr.domain.ports import CachePort

log = structlog.get_logger(__name__)

_NO_EXPIRY = 0


def _deserialize_entry(d: dict) -> StorageLedgerEntry:
    return StorageLedgerEntry(
        catalog_id=int(d["catalog_id"]),
        episode=int(d["episode"]),
        resolution=d.get("resolution", "unknown"),
        server=int(d.get("server", 0)),
        archived_urls=tuple(
            ArchivedCopy(account=c.get("account", ""), url=c["url"])
            for c in d.get("archived_urls") or []
        ),
        anime_title=d.get("anime_title", ""),
        file_name=d.get("file_name", ""),
        file_size_bytes=d.get("file_size_bytes"),
        release_tag=d.get("release_tag", ""),
        created_at=d.get("created_at", ""),
    )


class CacheStorageLedgerRepository:
    """Entries for one episode live in a single JSON list.

    ``add`` replaces an existing entry with the same resolution and server.
    """

    def __init__(self, cache: CachePort) -> None:
        self.cache = cache

    @staticmethod
    def _key(catalog_id: int, episode: int) -> str:
        return f"storage:{catalog_id}:{episode}"

    async def list_for(self, catalog_id: int, episode: int) -> list[StorageLedgerEntry]:
        data = await self.cache.get(self._key(catalog_id, episode))
        if data is None:
            return []
        try:
            return [_deserialize_entry(d) for d in json.loads(data)]
        except (json.JSONDecodeError, KeyError, ValueError, TypeError) as e:
            log.error(
                "storage_ledger_deserialize_error",
                catalog_id=catalog_id,
                episode=episode,
                error=str(e),
            )
            return []

    async def add(self, entry: StorageLedgerEntry) -> None:
        entries = [
            e
            for e in await self.list_for(entry.catalog_id, entry.episode)
            if (e.resolution, e.server) != (entry.resolution, entry.server)
        ]
        entries.append(entry)
        await self.cache.set(
            self._key(entry.catalog_id, entry.episode),
            json.dumps([e.to_dict() for e in entries]),
            ttl=_NO_EXPIRY,
        )
        log.info(
            "storage_ledger_entry_added",
            catalog_id=entry.catalog_id,
            episode=entry.episode,
            resolution=entry.resolution,
            server=entry.server,
            copies=len(entry.archived_urls),
        )
