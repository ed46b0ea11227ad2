"""HLS manifest helpers."""

from __future__ import annotations

from urllib.parse import urljoin, urlparse

HLS_CONTENT_TYPE = "application/vnd.apple.mpegurl"


def cdn_base_from_url(video_url: str) -> str:
    """Base directory of a manifest URL (query dropped).

    >>> cdn_base_from_url("https://host/path/master.m3u8?t=abc")
    'https://host/path/'
    """
    parsed = urlparse(video_url)
    path = parsed.path
    last_slash = path.rfind("/")
    base_path = path[: last_slash + 1] if last_slash >= 0 else "/"
    return f"{parsed.scheme}://{parsed.netloc}{base_path}"


def is_manifest(url: str, content_type: str | None) -> bool:
    ct = (content_type or "").lower()
    return "mpegurl" in ct or ".m3u8" in urlparse(url).path.lower()


def rewrite_manifest(content: str, base: str) -> str:
    """Make every URI line absolute against ``base``.

    Tag/comment lines (``#...``), blank lines and lines that already are
    absolute ``http(s)`` URLs are left untouched.
    """
    lines: list[str] = []
    for line in content.splitlines(keepends=True):
        stripped = line.strip()
        if stripped and not stripped.startswith(("#", "http")):
            ending = line[len(line.rstrip("\r\n")) :]
            line = urljoin(base, stripped) + ending
        lines.append(line)
    return "".join(lines)
