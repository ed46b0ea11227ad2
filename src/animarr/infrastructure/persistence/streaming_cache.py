"""Aggregated streaming sources per (catalog id, episode)."""

from __future__ import annotations

import json

import structlog

from animarr.domain.entities import StreamingSource
from animarr.domain.ports import CachePort

log = structlog.get_logger(__name__)


class CacheStreamingRepository:
    """Stores the sorted source set as a JSON list under ``streaming:{id}:{ep}``."""

    def __init__(self, cache: CachePort, ttl_seconds: int = 1200) -> None:
        self.cache = cache
        self.ttl = ttl_seconds

    async def get(self, catalog_id: int, episode: int) -> list[StreamingSource] | None:
        data = await self.cache.get(f"streaming:{catalog_id}:{episode}")
        if data is None:
            return None
        try:
            return [StreamingSource.from_dict(d) for d in json.loads(data)]
        except (json.JSONDecodeError, KeyError, ValueError, TypeError) as e:
            log.error(
                "streaming_cache_deserialize_error",
                catalog_id=catalog_id,
                episode=episode,
                error=str(e),
            )
            return None

    async def save(
        self, catalog_id: int, episode: int, sources: list[StreamingSource]
    ) -> None:
        payload = json.dumps([s.to_dict() for s in sources])
        await self.cache.set(f"streaming:{catalog_id}:{episode}", payload, ttl=self.ttl)
        log.debug(
            "streaming_cache_saved",
            catalog_id=catalog_id,
            episode=episode,
            count=len(sources),
            ttl=self.ttl,
        )
