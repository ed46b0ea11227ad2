"""Delivery-code playback use case."""

from __future__ import annotations

from typing import Protocol

import structlog

from animarr.domain.entities import NotFoundError
from animarr.domain.ports import DeliveryCodeRepository
from animarr.infrastructure.delivery.proxy import ProxyResponse

log = structlog.get_logger(__name__)


class _Extractor(Protocol):
    async def extract(self, url: str) -> str | None: ...


class _Proxy(Protocol):
    async def deliver(
        self, url: str, range_header: str | None = None
    ) -> ProxyResponse: ...


class VideoDeliveryUseCase:
    """Resolve a delivery code to a playable URL and proxy it.

    URL precedence: the snapshot's resolved URL, then a fresh extraction
    of the embed reference, then the raw embed reference itself.
    """

    def __init__(
        self,
        *,
        delivery_codes: DeliveryCodeRepository,
        extractors: _Extractor,
        proxy: _Proxy,
    ) -> None:
        self._codes = delivery_codes
        self._extractors = extractors
        self._proxy = proxy

    async def target_url(self, code: str) -> str:
        source = await self._codes.get(code)
        if source is None:
            raise NotFoundError("Video code not found or expired")

        if source.resolved_url:
            return source.resolved_url

        log.debug("video_code_reextract", code=code, provider=source.provider)
        url = await self._extractors.extract(source.raw_url)
        if url:
            return url

        log.warning("video_code_fallback_embed", code=code, provider=source.provider)
        return source.raw_url

    async def execute(
        self, code: str, range_header: str | None = None
    ) -> ProxyResponse:
        """Raises NotFoundError for unknown or expired codes."""
        url = await self.target_url(code)
        return await self._proxy.deliver(url, range_header)
