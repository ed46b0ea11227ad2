"""Capability table that dispatches embed URLs to extractors.

Extractors are kept in registration order; the first one whose
``matches(url)`` is true handles the URL. Successful results are cached
per (embed url, extractor) through ``ResolvedUrlCache``; failures are
never cached.
"""

from __future__ import annotations

import asyncio

import httpx
import structlog

from animarr.domain.entities import (
    AnimarrError,
    RateLimitedError,
    ResolvedStream,
)
from animarr.domain.ports import RangeReaderPort, ResolvedUrlCache, VideoExtractorPort

log = structlog.get_logger(__name__)


class ExtractorRegistry:
    """Ordered ``(matcher, extractor)`` table with a resolved-URL cache."""

    def __init__(
        self,
        extractors: list[VideoExtractorPort] | None = None,
        *,
        url_cache: ResolvedUrlCache | None = None,
        extract_timeout: float = 30.0,
    ) -> None:
        self._table: list[VideoExtractorPort] = []
        self._url_cache = url_cache
        self._extract_timeout = extract_timeout
        for extractor in extractors or []:
            self.register(extractor)

    def register(self, extractor: VideoExtractorPort) -> None:
        """Append an extractor; earlier registrations win on overlap."""
        self._table.append(extractor)
        log.debug("extractor_registered", extractor=extractor.name)

    @property
    def names(self) -> list[str]:
        return [e.name for e in self._table]

    def find(self, url: str) -> VideoExtractorPort | None:
        for extractor in self._table:
            if extractor.matches(url):
                return extractor
        return None

    def is_quota_limited(self, url: str) -> bool:
        extractor = self.find(url)
        return bool(extractor and getattr(extractor, "quota_limited", False))

    def range_reader_for(self, url: str) -> RangeReaderPort | None:
        """Extractor that also reads byte ranges for ``url`` (remote storage)."""
        for extractor in self._table:
            if isinstance(extractor, RangeReaderPort) and extractor.handles(url):
                return extractor
        return None

    async def cleanup(self) -> None:
        for extractor in self._table:
            cleanup_fn = getattr(extractor, "cleanup", None)
            if cleanup_fn is not None:
                await cleanup_fn()

    async def extract(self, url: str) -> str | None:
        """Resolved URL for an embed reference; None on any failure."""
        try:
            stream = await self.extract_stream(url)
        except RateLimitedError:
            return None
        return stream.video_url if stream else None

    async def extract_stream(self, url: str) -> ResolvedStream | None:
        """Like ``extract`` but keeps the stream details.

        ``RateLimitedError`` is the only exception that escapes, so the
        quota queue can tell throttling apart from a plain miss.
        """
        extractor = self.find(url)
        if extractor is None:
            log.debug("extractor_no_match", url=url)
            return None

        if self._url_cache is not None:
            cached = await self._url_cache.get(url, extractor.name)
            if cached:
                log.debug("extractor_cache_hit", extractor=extractor.name)
                return ResolvedStream(video_url=cached, is_hls=".m3u8" in cached)

        result = await self._try_extractor(extractor, url)
        if result is not None and self._url_cache is not None:
            await self._url_cache.save(url, extractor.name, result.video_url)
        return result

    async def _try_extractor(
        self, extractor: VideoExtractorPort, url: str
    ) -> ResolvedStream | None:
        try:
            result = await asyncio.wait_for(
                extractor.extract(url), self._extract_timeout
            )
        except RateLimitedError:
            log.warning("extractor_rate_limited", extractor=extractor.name, url=url)
            raise
        except (asyncio.TimeoutError, httpx.TimeoutException):
            log.warning("extractor_timeout", extractor=extractor.name, url=url)
            return None
        except httpx.HTTPError as exc:
            log.warning(
                "extractor_http_error",
                extractor=extractor.name,
                url=url,
                error=str(exc),
            )
            return None
        except AnimarrError as exc:
            log.warning(
                "extractor_failed",
                extractor=extractor.name,
                url=url,
                error=str(exc),
            )
            return None
        except Exception:
            log.exception("extractor_error", extractor=extractor.name, url=url)
            return None

        if result is None:
            log.warning("extractor_no_result", extractor=extractor.name, url=url)
            return None
        log.info("extractor_success", extractor=extractor.name, is_hls=result.is_hls)
        return result
