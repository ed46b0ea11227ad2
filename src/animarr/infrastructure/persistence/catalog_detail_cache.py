"""Unified catalog detail cache."""

from __future__ import annotations

import json
from dataclasses import asdict

import structlog

from animarr.domain.entities import CatalogDetail, CatalogRecord, UnifiedEpisode
from animarr.domain.ports import CachePort

log = structlog.get_logger(__name__)

_TUPLE_FIELDS = ("synonyms", "studios", "genres")


def _deserialize_detail(data: str) -> CatalogDetail:
    d = json.loads(data)
    record = dict(d["record"])
    for name in _TUPLE_FIELDS:
        record[name] = tuple(record.get(name) or ())
    return CatalogDetail(
        record=CatalogRecord(**record),
        slugs=dict(d.get("slugs") or {}),
        confidence=dict(d.get("confidence") or {}),
        episodes=[UnifiedEpisode(**e) for e in d.get("episodes") or []],
    )


class CacheCatalogDetailRepository:
    def __init__(self, cache: CachePort, ttl_seconds: int = 1200) -> None:
        self.cache = cache
        self.ttl = ttl_seconds

    async def get(self, catalog_id: int) -> CatalogDetail | None:
        data = await self.cache.get(f"catalog:detail:{catalog_id}")
        if data is None:
            return None
        try:
            return _deserialize_detail(data)
        except (json.JSONDecodeError, KeyError, ValueError, TypeError) as e:
            log.error(
                "catalog_detail_deserialize_error", catalog_id=catalog_id, error=str(e)
            )
            return None

    async def save(self, detail: CatalogDetail) -> None:
        await self.cache.set(
            f"catalog:detail:{detail.record.id}",
            json.dumps(asdict(detail)),
            ttl=self.ttl,
        )

    async def delete(self, catalog_id: int) -> bool:
        return await self.cache.delete(f"catalog:detail:{catalog_id}")
