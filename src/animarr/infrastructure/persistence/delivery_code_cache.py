"""Delivery code -> StreamingSource snapshot."""

from __future__ import annotations

import json

import structlog

from animarr.domain.entities import StreamingSource
from animarr.domain.ports import CachePort

log = structlog.get_logger(__name__)


class CacheDeliveryCodeRepository:
    def __init__(self, cache: CachePort, ttl_seconds: int = 86400) -> None:
        self.cache = cache
        self.ttl = ttl_seconds

    async def save(self, source: StreamingSource) -> None:
        await self.cache.set(
            f"video:code:{source.code}", json.dumps(source.to_dict()), ttl=self.ttl
        )

    async def get(self, code: str) -> StreamingSource | None:
        data = await self.cache.get(f"video:code:{code}")
        if data is None:
            log.debug("delivery_code_not_found", code=code)
            return None
        try:
            return StreamingSource.from_dict(json.loads(data))
        except (json.JSONDecodeError, KeyError, ValueError, TypeError) as e:
            log.error("delivery_code_deserialize_error", code=code, error=str(e))
            return None
