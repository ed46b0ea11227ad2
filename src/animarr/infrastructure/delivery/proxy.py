"""Delivery proxy: relay media bytes from an allow-listed host.

The proxy never buffers media: bodies are relayed chunk by chunk. HLS
manifests are the exception; they are read as text and rewritten so every
segment URI is absolute. Remote-storage descriptors bypass HTTP entirely
and are served from a byte-range reader with locally computed headers.
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from dataclasses import dataclass, field
from urllib.parse import urlparse

import httpx
import structlog

from animarr.domain.entities import AnimarrError, RateLimitedError, UpstreamFetchError
from animarr.domain.ports import RangeReaderPort
from animarr.infrastructure.delivery.hls import (
    HLS_CONTENT_TYPE,
    cdn_base_from_url,
    is_manifest,
    rewrite_manifest,
)
from animarr.infrastructure.delivery.policy import HostPolicy
from animarr.infrastructure.delivery.ranges import RangeNotSatisfiable, parse_range

log = structlog.get_logger(__name__)

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Headers": "Range",
    "Access-Control-Expose-Headers": "Content-Length, Content-Range, Accept-Ranges",
}
_CACHE_CONTROL = "public, max-age=3600"
_GENERIC_TYPES = ("application/octet-stream", "binary/octet-stream", "")
_MIRRORED = ("content-length", "content-range")


@dataclass
class ProxyResponse:
    """Transport-neutral response the HTTP layer turns into a real one."""

    status_code: int
    headers: dict[str, str] = field(default_factory=dict)
    media_type: str | None = None
    text: str | None = None
    json_body: dict | None = None
    stream: AsyncIterator[bytes] | None = None


def error_response(status_code: int, message: str) -> ProxyResponse:
    return ProxyResponse(
        status_code=status_code,
        headers=dict(CORS_HEADERS),
        json_body={"error": message},
    )


def guess_content_type(url: str) -> str:
    path = urlparse(url).path.lower()
    if path.endswith(".m3u8"):
        return HLS_CONTENT_TYPE
    if path.endswith(".ts"):
        return "video/mp2t"
    if path.endswith(".webm"):
        return "video/webm"
    return "video/mp4"


def _media_headers(content_type: str) -> dict[str, str]:
    return {
        **CORS_HEADERS,
        "Content-Type": content_type,
        "Content-Disposition": "inline",
        "Cache-Control": _CACHE_CONTROL,
    }


class DeliveryProxy:
    """Fetches allow-listed media and shapes the client response."""

    def __init__(
        self,
        *,
        http_client: httpx.AsyncClient,
        policy: HostPolicy,
        range_readers: list[RangeReaderPort] | None = None,
        timeout_seconds: float = 30.0,
        chunk_size: int = 65536,
    ) -> None:
        self._http = http_client
        self._policy = policy
        self._range_readers = list(range_readers or [])
        self._timeout = timeout_seconds
        self._chunk_size = chunk_size

    def is_allowed(self, url: str) -> bool:
        return self._policy.is_allowed(url)

    async def deliver(self, url: str, range_header: str | None = None) -> ProxyResponse:
        """Proxy ``url``; 403 without any upstream call when not allow-listed."""
        if not self._policy.is_allowed(url):
            log.warning("delivery_domain_rejected", host=urlparse(url).hostname)
            return error_response(403, "Domain not allowed")

        for reader in self._range_readers:
            if reader.handles(url):
                return await self._deliver_range(reader, url, range_header)
        return await self._deliver_http(url, range_header)

    # ------------------------------------------------------------------
    # Generic HTTP relay
    # ------------------------------------------------------------------

    async def _deliver_http(self, url: str, range_header: str | None) -> ProxyResponse:
        request = self._http.build_request(
            "GET",
            url,
            headers=self._policy.outbound_headers(url, range_header),
            timeout=self._timeout,
        )
        if self._policy.omit_user_agent(url):
            request.headers.pop("User-Agent", None)

        try:
            resp = await self._http.send(request, stream=True, follow_redirects=True)
        except httpx.TimeoutException:
            log.warning("delivery_upstream_timeout", url=url)
            return error_response(504, "Video source timed out")
        except httpx.HTTPError as exc:
            log.warning("delivery_upstream_error", url=url, error=str(exc))
            return error_response(502, "Video source unreachable")

        if resp.status_code >= 400:
            await resp.aclose()
            log.warning("delivery_upstream_status", url=url, status=resp.status_code)
            return error_response(
                resp.status_code, f"Video source returned {resp.status_code}"
            )

        upstream_type = resp.headers.get("content-type", "")
        if is_manifest(url, upstream_type):
            return await self._deliver_manifest(resp, url)

        content_type = upstream_type
        if content_type.split(";")[0].strip().lower() in _GENERIC_TYPES:
            content_type = guess_content_type(url)

        headers = _media_headers(content_type)
        headers["Accept-Ranges"] = resp.headers.get("accept-ranges", "bytes")
        for name in _MIRRORED:
            value = resp.headers.get(name)
            if value:
                headers[name.title()] = value

        log.debug(
            "delivery_streaming",
            url=url,
            status=resp.status_code,
            content_type=content_type,
            ranged=bool(range_header),
        )
        return ProxyResponse(
            status_code=resp.status_code,
            headers=headers,
            media_type=content_type,
            stream=self._relay(resp),
        )

    async def _deliver_manifest(self, resp: httpx.Response, url: str) -> ProxyResponse:
        try:
            await resp.aread()
            text = resp.text
        except httpx.HTTPError as exc:
            log.warning("delivery_manifest_read_failed", url=url, error=str(exc))
            return error_response(502, "Video source unreachable")
        finally:
            await resp.aclose()

        base = cdn_base_from_url(str(resp.url))
        rewritten = rewrite_manifest(text, base)
        headers = _media_headers(HLS_CONTENT_TYPE)
        headers["Accept-Ranges"] = "bytes"
        return ProxyResponse(
            status_code=200,
            headers=headers,
            media_type=HLS_CONTENT_TYPE,
            text=rewritten,
        )

    async def _relay(self, resp: httpx.Response) -> AsyncIterator[bytes]:
        try:
            async for chunk in resp.aiter_bytes(chunk_size=self._chunk_size):
                yield chunk
        finally:
            await resp.aclose()

    # ------------------------------------------------------------------
    # Remote storage (byte-range reader)
    # ------------------------------------------------------------------

    async def _deliver_range(
        self, reader: RangeReaderPort, url: str, range_header: str | None
    ) -> ProxyResponse:
        try:
            size = await reader.size(url)
        except (httpx.HTTPError, AnimarrError) as exc:
            return self._storage_failure(url, exc)

        content_type = guess_content_type(url)
        headers = _media_headers(content_type)
        headers["Accept-Ranges"] = "bytes"

        try:
            requested = parse_range(range_header, size)
        except RangeNotSatisfiable:
            return ProxyResponse(
                status_code=416,
                headers={**CORS_HEADERS, "Content-Range": f"bytes */{size}"},
                json_body={"error": "Requested range not satisfiable"},
            )

        if requested is None:
            start, end, status = 0, size - 1, 200
        else:
            start, end, status = requested.start, requested.end, 206
            headers["Content-Range"] = f"bytes {start}-{end}/{size}"
        headers["Content-Length"] = str(end - start + 1 if size else 0)

        try:
            stream = await reader.open_range(url, start, end)
        except (httpx.HTTPError, AnimarrError) as exc:
            return self._storage_failure(url, exc)

        return ProxyResponse(
            status_code=status,
            headers=headers,
            media_type=content_type,
            stream=stream,
        )

    def _storage_failure(self, url: str, exc: Exception) -> ProxyResponse:
        if isinstance(exc, RateLimitedError):
            log.warning("delivery_storage_throttled", url=url, error=str(exc))
            return error_response(429, "Video source is rate limited")
        if isinstance(exc, httpx.TimeoutException):
            log.warning("delivery_storage_timeout", url=url)
            return error_response(504, "Video source timed out")
        if isinstance(exc, UpstreamFetchError) and exc.status_code:
            log.warning("delivery_storage_status", url=url, status=exc.status_code)
            return error_response(
                exc.status_code, f"Video source returned {exc.status_code}"
            )
        log.warning("delivery_storage_error", url=url, error=str(exc))
        return error_response(502, "Video source unreachable")
