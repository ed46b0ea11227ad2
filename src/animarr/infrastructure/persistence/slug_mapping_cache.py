"""Slug mapping repository backed by CachePort (diskcache/redis).

Rows never expire; only an explicit delete lets the identity engine
re-resolve a catalog id.
"""

from __future__ import annotations

import json
from datetime import datetime, timezone

import structlog

from animarr.domain.entities import SlugMapping
from animarr.domain.ports import CachePort

log = structlog.get_logger(__name__)

_NO_EXPIRY = 0


def _serialize_mapping(mapping: SlugMapping) -> str:
    return json.dumps(
        {
            "catalog_id": mapping.catalog_id,
            "slugs": mapping.slugs,
            "confidence": mapping.confidence,
            "created_at": mapping.created_at.isoformat()
            if mapping.created_at
            else None,
            "updated_at": mapping.updated_at.isoformat()
            if mapping.updated_at
            else None,
        }
    )


def _deserialize_mapping(data: str) -> SlugMapping:
    d = json.loads(data)
    created = d.get("created_at")
    updated = d.get("updated_at")
    return SlugMapping(
        catalog_id=int(d["catalog_id"]),
        slugs=dict(d.get("slugs") or {}),
        confidence=dict(d.get("confidence") or {}),
        created_at=datetime.fromisoformat(created) if created else None,
        updated_at=datetime.fromisoformat(updated) if updated else None,
    )


class CacheSlugMappingRepository:
    """One row per catalog id under ``slugmap:{id}``."""

    def __init__(self, cache: CachePort) -> None:
        self.cache = cache

    @staticmethod
    def _key(catalog_id: int) -> str:
        return f"slugmap:{catalog_id}"

    async def get(self, catalog_id: int) -> SlugMapping | None:
        data = await self.cache.get(self._key(catalog_id))
        if data is None:
            return None
        try:
            return _deserialize_mapping(data)
        except (json.JSONDecodeError, KeyError, ValueError, TypeError) as e:
            log.error(
                "slug_mapping_deserialize_error", catalog_id=catalog_id, error=str(e)
            )
            return None

    async def upsert(self, mapping: SlugMapping) -> None:
        """Idempotent write; keeps the first ``created_at``."""
        now = datetime.now(timezone.utc)
        existing = await self.get(mapping.catalog_id)
        mapping.created_at = (
            existing.created_at if existing and existing.created_at else now
        )
        mapping.updated_at = now
        await self.cache.set(
            self._key(mapping.catalog_id), _serialize_mapping(mapping), ttl=_NO_EXPIRY
        )
        log.info(
            "slug_mapping_saved",
            catalog_id=mapping.catalog_id,
            providers=mapping.resolved_providers,
        )

    async def delete(self, catalog_id: int) -> bool:
        deleted = await self.cache.delete(self._key(catalog_id))
        log.info("slug_mapping_deleted", catalog_id=catalog_id, deleted=deleted)
        return deleted
