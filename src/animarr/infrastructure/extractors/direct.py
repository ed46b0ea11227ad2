"""Passthrough for embed references that already are media URLs."""

from __future__ import annotations

from urllib.parse import urlparse

from animarr.domain.entities import ResolvedStream

_MEDIA_SUFFIXES = (".mp4", ".m3u8", ".webm", ".mkv", ".ts")
_MEDIA_HOSTS = ("googlevideo.com", "githubusercontent.com")


class DirectLinkExtractor:
    """Registered last: claims only URLs that look like media files."""

    quota_limited = False

    @property
    def name(self) -> str:
        return "direct"

    def matches(self, url: str) -> bool:
        parsed = urlparse(url)
        if parsed.scheme not in ("http", "https"):
            return False
        host = (parsed.hostname or "").lower()
        if any(host == h or host.endswith("." + h) for h in _MEDIA_HOSTS):
            return True
        return parsed.path.lower().endswith(_MEDIA_SUFFIXES)

    async def extract(self, url: str) -> ResolvedStream | None:
        return ResolvedStream(video_url=url, is_hls=".m3u8" in url)
