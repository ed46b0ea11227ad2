"""Ports for turning embed URLs into directly fetchable video URLs."""

from __future__ import annotations

from collections.abc import AsyncIterator
from typing import Protocol, runtime_checkable

from animarr.domain.entities import ResolvedStream


@runtime_checkable
class VideoExtractorPort(Protocol):
    """Resolves one family of embed pages to a direct video URL.

    Implementations handle site-specific extraction logic (JS unpacking,
    embedded JSON, follow-up API calls, etc.).
    """

    @property
    def name(self) -> str:
        """Extractor name (e.g. 'blogger', 'vidhide')."""
        ...

    def matches(self, url: str) -> bool:
        """True when this extractor claims the embed URL."""
        ...

    async def extract(self, url: str) -> ResolvedStream | None:
        """Resolve an embed URL.

        Returns None if extraction fails (page offline, markup changed, etc.).
        Quota-limited extractors raise RateLimitedError when throttled.
        """
        ...


@runtime_checkable
class RangeReaderPort(Protocol):
    """Byte-range reader for remote-storage descriptors that need decryption."""

    def handles(self, url: str) -> bool: ...

    async def size(self, url: str) -> int:
        """Total plaintext size in bytes."""
        ...

    async def open_range(
        self, url: str, start: int, end: int
    ) -> AsyncIterator[bytes]:
        """Open plaintext bytes ``start..end`` (inclusive) for reading.

        Upstream failures raise here, before any byte is relayed.
        """
        ...
