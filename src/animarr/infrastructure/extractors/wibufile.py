"""Wibufile embeds (``api.wibufile.com/embed/``).

Two steps: the embed page names an API query (``url: "//api.wibufile.com/api/?..."``),
and the API answers ``{"status": "ok", "sources": [{"file": ...}]}``.
"""

from __future__ import annotations

import re

import httpx
import structlog

from animarr.domain.entities import ParseError, ResolvedStream, UpstreamFetchError
from animarr.infrastructure.extractors._fetch import fetch_text

log = structlog.get_logger(__name__)

_API_URL_RE = re.compile(r'url:\s*"(https?:)?//api\.wibufile\.com/api/\?([^"]+)"')
_API_BASE = "https://api.wibufile.com/api/?"
_EMBED_REFERER = "https://samehadaku.how/"


class WibufileExtractor:
    quota_limited = False

    def __init__(self, http_client: httpx.AsyncClient) -> None:
        self._http = http_client

    @property
    def name(self) -> str:
        return "wibufile"

    def matches(self, url: str) -> bool:
        return "api.wibufile.com/embed/" in url

    async def extract(self, url: str) -> ResolvedStream | None:
        html = await fetch_text(self._http, url, headers={"Referer": _EMBED_REFERER})
        m = _API_URL_RE.search(html)
        if m is None:
            raise ParseError("wibufile API url not found in embed page")

        resp = await self._http.get(
            f"{_API_BASE}{m.group(2)}",
            headers={"Referer": url, "Accept": "application/json"},
            timeout=30.0,
        )
        if resp.status_code >= 400:
            raise UpstreamFetchError(
                f"wibufile API returned {resp.status_code}",
                status_code=resp.status_code,
            )
        try:
            data = resp.json()
        except ValueError as exc:
            raise ParseError(f"wibufile API answered non-JSON: {exc}") from exc

        if not isinstance(data, dict):
            raise ParseError("wibufile API answered a non-object")
        sources = data.get("sources") or []
        if data.get("status") != "ok" or not sources or not sources[0].get("file"):
            log.warning("wibufile_no_sources", url=url, status=data.get("status"))
            return None
        return ResolvedStream(video_url=sources[0]["file"])
