"""Filedon embeds (``filedon.co/embed/``).

The page is an Inertia app: the root element's ``data-page`` attribute holds
HTML-escaped JSON whose ``props.url`` is the file URL.
"""

from __future__ import annotations

import json

import httpx
import structlog

from animarr.domain.entities import ParseError, ResolvedStream
from animarr.infrastructure.common.html_selectors import extract_attr, parse_html
from animarr.infrastructure.extractors._fetch import fetch_text

log = structlog.get_logger(__name__)


class FiledonExtractor:
    quota_limited = False

    def __init__(self, http_client: httpx.AsyncClient) -> None:
        self._http = http_client

    @property
    def name(self) -> str:
        return "filedon"

    def matches(self, url: str) -> bool:
        return "filedon.co/embed/" in url

    async def extract(self, url: str) -> ResolvedStream | None:
        html = await fetch_text(self._http, url)
        # BeautifulSoup unescapes the attribute value.
        raw = extract_attr(parse_html(html), "[data-page]", "data-page")
        if not raw:
            raise ParseError("data-page attribute not found in filedon page")
        try:
            page = json.loads(raw)
        except json.JSONDecodeError as exc:
            raise ParseError(f"data-page is not JSON: {exc}") from exc

        video_url = (page.get("props") or {}).get("url")
        if not video_url:
            log.warning("filedon_no_url", url=url)
            return None
        files = (page.get("props") or {}).get("files") or {}
        log.debug("filedon_extracted", file_name=files.get("name", "unknown"))
        return ResolvedStream(video_url=video_url)
