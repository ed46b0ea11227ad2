"""Video URL extractors and their capability table."""

from __future__ import annotations

import httpx

from .berkasdrive import BerkasDriveExtractor
from .blogger import BloggerExtractor
from .direct import DirectLinkExtractor
from .filedon import FiledonExtractor
from .mega import MegaExtractor
from .mp4upload import Mp4UploadExtractor
from .quota_queue import QueueOutcome, QuotaQueue, QuotaQueueReport
from .registry import ExtractorRegistry
from .vidhide import VidhideExtractor
from .wibufile import WibufileExtractor

__all__ = [
    "BerkasDriveExtractor",
    "BloggerExtractor",
    "DirectLinkExtractor",
    "ExtractorRegistry",
    "FiledonExtractor",
    "MegaExtractor",
    "Mp4UploadExtractor",
    "QueueOutcome",
    "QuotaQueue",
    "QuotaQueueReport",
    "VidhideExtractor",
    "WibufileExtractor",
    "default_extractors",
]


def default_extractors(
    http_client: httpx.AsyncClient,
    *,
    chunk_size: int = 65536,
    storage_timeout: float = 30.0,
) -> list:
    """Built-in extractors in dispatch order (direct links last)."""
    return [
        BloggerExtractor(http_client),
        VidhideExtractor(http_client),
        FiledonExtractor(http_client),
        BerkasDriveExtractor(http_client),
        Mp4UploadExtractor(http_client),
        WibufileExtractor(http_client),
        MegaExtractor(
            http_client, chunk_size=chunk_size, timeout_seconds=storage_timeout
        ),
        DirectLinkExtractor(),
    ]
