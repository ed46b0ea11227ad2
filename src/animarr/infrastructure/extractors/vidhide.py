"""VidHide-family embeds (vidhidepro.com, callistanise.com, ...).

The embed page hides its player config inside a packed script. After
unpacking, a ``var links = {"hls2": ..., "hls3": ..., "hls4": ...}`` object
lists stream tiers; the highest tier wins.
"""

from __future__ import annotations

from urllib.parse import urlparse

import httpx
import structlog

from animarr.domain.entities import ParseError, ResolvedStream
from animarr.infrastructure.extractors import packer
from animarr.infrastructure.extractors._fetch import fetch_text

log = structlog.get_logger(__name__)

_DOMAINS = frozenset({"vidhidepro.com", "vidhidefast.com", "callistanise.com"})

REFERER = "https://callistanise.com/"


class VidhideExtractor:
    quota_limited = False

    def __init__(self, http_client: httpx.AsyncClient) -> None:
        self._http = http_client

    @property
    def name(self) -> str:
        return "vidhide"

    @property
    def supported_domains(self) -> frozenset[str]:
        return _DOMAINS

    def matches(self, url: str) -> bool:
        host = (urlparse(url).hostname or "").lower()
        return any(host == d or host.endswith("." + d) for d in _DOMAINS)

    async def extract(self, url: str) -> ResolvedStream | None:
        html = await fetch_text(self._http, url)
        source = packer.unpack(html)
        if source is None:
            raise ParseError("packed player script not found in vidhide page")

        tiers = packer.stream_tiers(source)
        video_url = packer.best_tier_url(tiers, url)
        if not video_url:
            log.warning("vidhide_no_stream_tiers", url=url)
            return None
        log.debug("vidhide_extracted", tiers=sorted(tiers), chosen=max(tiers))
        return ResolvedStream(
            video_url=video_url,
            headers={"Referer": REFERER},
            is_hls=".m3u8" in video_url,
        )
