"""BerkasDrive streaming pages (``dl.berkasdrive.com/streaming``)."""

from __future__ import annotations

import httpx
import structlog

from animarr.domain.entities import ParseError, ResolvedStream
from animarr.infrastructure.common.html_selectors import extract_attr, parse_html
from animarr.infrastructure.extractors._fetch import fetch_text

log = structlog.get_logger(__name__)


class BerkasDriveExtractor:
    quota_limited = False

    def __init__(self, http_client: httpx.AsyncClient) -> None:
        self._http = http_client

    @property
    def name(self) -> str:
        return "berkasdrive"

    def matches(self, url: str) -> bool:
        return "dl.berkasdrive.com/streaming" in url

    async def extract(self, url: str) -> ResolvedStream | None:
        html = await fetch_text(self._http, url)
        src = extract_attr(
            parse_html(html),
            'source[type="video/mp4"]',
            "src",
            "video source[src]",
        )
        if not src:
            raise ParseError("mp4 <source> not found in berkasdrive page")
        log.debug("berkasdrive_extracted", is_cdn="cdn-cf.berkasdrive.com" in src)
        return ResolvedStream(video_url=src)
