"""Host rules for the delivery proxy: allow-list and outbound headers."""

from __future__ import annotations

from collections.abc import Iterable
from urllib.parse import urlparse

DEFAULT_ALLOWED_DOMAINS: tuple[str, ...] = (
    "googlevideo.com",
    "blogger.com",
    "blogspot.com",
    "mp4upload.com",
    "callistanise.com",
    "dramiyos-cdn.com",
    "technologyportal.site",
    "vidhidepro.com",
    "vidhidefast.com",
    "filedon.co",
    "berkasdrive.com",
    "wibufile.com",
    "mega.nz",
    "mega.co.nz",
    "github.com",
    "githubusercontent.com",
)

# Hosts that reject requests carrying an automated-client User-Agent.
_NO_USER_AGENT = ("googlevideo.com",)

_MP4UPLOAD_REFERER = "https://www.mp4upload.com/"
_VIDHIDE_REFERER = "https://callistanise.com/"

_REFERERS: tuple[tuple[str, dict[str, str]], ...] = (
    (
        "mp4upload.com",
        {"Referer": _MP4UPLOAD_REFERER, "Origin": _MP4UPLOAD_REFERER.rstrip("/")},
    ),
    ("callistanise.com", {"Referer": _VIDHIDE_REFERER}),
    ("dramiyos-cdn.com", {"Referer": _VIDHIDE_REFERER}),
    ("technologyportal.site", {"Referer": _VIDHIDE_REFERER}),
    ("vidhidepro.com", {"Referer": _VIDHIDE_REFERER}),
    ("vidhidefast.com", {"Referer": _VIDHIDE_REFERER}),
)


def host_of(url: str) -> str:
    return (urlparse(url).hostname or "").lower()


def host_matches(host: str, suffix: str) -> bool:
    """``host`` equals ``suffix`` or is a subdomain of it."""
    suffix = suffix.lower().lstrip(".")
    return host == suffix or host.endswith("." + suffix)


class HostPolicy:
    """Which hosts may be proxied, and which headers they need."""

    def __init__(
        self, allowed_domains: Iterable[str] = DEFAULT_ALLOWED_DOMAINS
    ) -> None:
        self.allowed_domains = tuple(d.lower() for d in allowed_domains if d)

    def is_allowed(self, url: str) -> bool:
        parsed = urlparse(url)
        if parsed.scheme not in ("http", "https"):
            return False
        host = (parsed.hostname or "").lower()
        return bool(host) and any(host_matches(host, d) for d in self.allowed_domains)

    def omit_user_agent(self, url: str) -> bool:
        host = host_of(url)
        return any(host_matches(host, d) for d in _NO_USER_AGENT)

    def outbound_headers(
        self, url: str, range_header: str | None = None
    ) -> dict[str, str]:
        """Request headers for one upstream fetch (User-Agent handled separately)."""
        headers = {"Accept": "*/*"}
        host = host_of(url)
        for suffix, extra in _REFERERS:
            if host_matches(host, suffix):
                headers.update(extra)
                break
        if range_header:
            headers["Range"] = range_header
        return headers
