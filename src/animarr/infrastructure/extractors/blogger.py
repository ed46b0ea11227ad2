"""Blogger video embeds (``blogger.com/video.g``).

The player page inlines ``var VIDEO_CONFIG = {...}``; the first stream's
``play_url`` is a signed googlevideo URL.
"""

from __future__ import annotations

import json
import re

import httpx
import structlog

from animarr.domain.entities import ParseError, ResolvedStream
from animarr.infrastructure.extractors._fetch import fetch_text

log = structlog.get_logger(__name__)

_VIDEO_CONFIG_RE = re.compile(
    r"var VIDEO_CONFIG = (\{.*?\});?\s*</script>", re.DOTALL
)


class BloggerExtractor:
    quota_limited = False

    def __init__(self, http_client: httpx.AsyncClient) -> None:
        self._http = http_client

    @property
    def name(self) -> str:
        return "blogger"

    def matches(self, url: str) -> bool:
        return "blogger.com/video.g" in url

    async def extract(self, url: str) -> ResolvedStream | None:
        html = await fetch_text(self._http, url)
        m = _VIDEO_CONFIG_RE.search(html)
        if m is None:
            raise ParseError("VIDEO_CONFIG not found in blogger page")
        try:
            config = json.loads(m.group(1))
        except json.JSONDecodeError as exc:
            raise ParseError(f"VIDEO_CONFIG is not JSON: {exc}") from exc

        streams = config.get("streams") or []
        play_url = streams[0].get("play_url") if streams else None
        if not play_url:
            log.warning("blogger_no_streams", url=url)
            return None
        return ResolvedStream(video_url=play_url)
