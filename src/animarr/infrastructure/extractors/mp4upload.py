"""MP4Upload embeds (``mp4upload.com/embed-<id>.html``).

The player is configured with ``player.src({type: ..., src: "https://...mp4"})``.
The CDN only serves the file with the mp4upload Referer, which the delivery
proxy attaches.
"""

from __future__ import annotations

import re

import httpx

from animarr.domain.entities import ParseError, ResolvedStream
from animarr.infrastructure.extractors._fetch import fetch_text

_SRC_RE = re.compile(r'src:\s*"([^"]+\.mp4[^"]*)"')

REFERER = "https://www.mp4upload.com/"


class Mp4UploadExtractor:
    quota_limited = False

    def __init__(self, http_client: httpx.AsyncClient) -> None:
        self._http = http_client

    @property
    def name(self) -> str:
        return "mp4upload"

    def matches(self, url: str) -> bool:
        return "mp4upload.com/embed-" in url

    async def extract(self, url: str) -> ResolvedStream | None:
        html = await fetch_text(self._http, url)
        m = _SRC_RE.search(html)
        if m is None:
            raise ParseError("player src not found in mp4upload page")
        return ResolvedStream(
            video_url=m.group(1),
            headers={"Referer": REFERER, "Origin": REFERER.rstrip("/")},
        )
