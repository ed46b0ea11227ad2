"""In-process memo of provider catalog listings.

Each provider's snapshot is replaced as a whole, so concurrent readers see
either the old or the new list, never a partial one.
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Callable

import structlog

from animarr.domain.entities import ListingEntry
from animarr.domain.ports import ScraperAdapterPort

log = structlog.get_logger(__name__)


class ListingMemo:
    """Per-provider listing snapshots with a fixed TTL.

    Args:
        ttl_seconds: Snapshot lifetime.
        clock: Monotonic seconds source, injectable for tests.
        fetch_timeout: Upper bound for one ``listing()`` call.
    """

    def __init__(
        self,
        *,
        ttl_seconds: float = 300.0,
        clock: Callable[[], float] = time.monotonic,
        fetch_timeout: float = 30.0,
    ) -> None:
        self._ttl = ttl_seconds
        self._clock = clock
        self._fetch_timeout = fetch_timeout
        self._snapshots: dict[str, tuple[float, tuple[ListingEntry, ...]]] = {}

    def peek(self, provider: str) -> tuple[ListingEntry, ...] | None:
        """Fresh snapshot or None (no fetch)."""
        snapshot = self._snapshots.get(provider)
        if snapshot is None:
            return None
        fetched_at, entries = snapshot
        if self._clock() - fetched_at >= self._ttl:
            return None
        return entries

    async def get(self, adapter: ScraperAdapterPort) -> tuple[ListingEntry, ...]:
        """Fresh snapshot, fetching through the adapter when expired.

        A failed fetch returns an empty tuple and is not memoized.
        """
        cached = self.peek(adapter.name)
        if cached is not None:
            return cached

        try:
            entries = await asyncio.wait_for(adapter.listing(), self._fetch_timeout)
        except Exception:
            log.warning("listing_fetch_failed", provider=adapter.name, exc_info=True)
            return ()

        snapshot = tuple(entries)
        self._snapshots[adapter.name] = (self._clock(), snapshot)
        log.info("listing_memo_refreshed", provider=adapter.name, count=len(snapshot))
        return snapshot

    def clear(self) -> None:
        self._snapshots = {}
