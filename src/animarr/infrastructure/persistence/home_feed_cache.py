"""Home feed cache: one JSON list under a single key."""

from __future__ import annotations

import json
from dataclasses import asdict

import structlog

from animarr.domain.entities import HomeFeedItem
from animarr.domain.ports import CachePort

log = structlog.get_logger(__name__)

_KEY = "home:feed"


class CacheHomeFeedRepository:
    """Stores the matched feed in order; an empty feed is never saved."""

    def __init__(self, cache: CachePort, ttl_seconds: int = 21_600) -> None:
        self.cache = cache
        self.ttl = ttl_seconds

    async def get(self) -> list[HomeFeedItem] | None:
        data = await self.cache.get(_KEY)
        if data is None:
            return None
        try:
            items = [HomeFeedItem(**d) for d in json.loads(data)]
        except (json.JSONDecodeError, KeyError, ValueError, TypeError) as e:
            log.error("home_feed_deserialize_error", error=str(e))
            return None
        return items or None

    async def save(self, items: list[HomeFeedItem]) -> None:
        if not items:
            return
        await self.cache.set(
            _KEY, json.dumps([asdict(i) for i in items]), ttl=self.ttl
        )
        log.debug("home_feed_saved", count=len(items), ttl=self.ttl)
