"""Successful extraction results keyed by (embed url, extractor)."""

from __future__ import annotations

import hashlib

import structlog

from animarr.domain.ports import CachePort

log = structlog.get_logger(__name__)


class CacheResolvedUrlRepository:
    """Plain string values; failures are never written."""

    def __init__(self, cache: CachePort, ttl_seconds: int = 21600) -> None:
        self.cache = cache
        self.ttl = ttl_seconds

    @staticmethod
    def _key(embed_url: str, extractor: str) -> str:
        digest = hashlib.sha256(embed_url.encode("utf-8")).hexdigest()[:32]
        return f"resolved:{extractor}:{digest}"

    async def get(self, embed_url: str, extractor: str) -> str | None:
        value = await self.cache.get(self._key(embed_url, extractor))
        return value if isinstance(value, str) and value else None

    async def save(self, embed_url: str, extractor: str, video_url: str) -> None:
        if not video_url:
            return
        await self.cache.set(self._key(embed_url, extractor), video_url, ttl=self.ttl)
        log.debug("resolved_url_saved", extractor=extractor, ttl=self.ttl)
