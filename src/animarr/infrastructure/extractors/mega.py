"""MEGA remote-storage embeds (``mega.nz/embed/<id>#<key>``).

Resolution is metadata-only: one ``g`` API call validates the file and
reads its encrypted attributes; the cached result is the canonical
``https://mega.nz/file/<id>#<key>`` descriptor. Content is fetched later,
per byte range, by ``open_range``: MEGA serves AES-128-CTR ciphertext, so
ranges are aligned to 16-byte blocks and decrypted on the fly.

The storage API throttles hard; its throttling codes raise
``RateLimitedError`` so the caller can stop its sequential queue.
"""

from __future__ import annotations

import base64
import json
import re
import struct
import time
from collections.abc import AsyncIterator, Callable
from dataclasses import dataclass

import httpx
import structlog
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes

from animarr.domain.entities import (
    ParseError,
    RateLimitedError,
    ResolvedStream,
    UpstreamFetchError,
)

log = structlog.get_logger(__name__)

_API_URL = "https://g.api.mega.co.nz/cs"
_BLOCK = 16
_INFO_TTL = 300.0
_INFO_MAX_ENTRIES = 256
_API_TIMEOUT = 30.0

# EAGAIN, ERATELIMIT, ETOOMANY, EOVERQUOTA, ETEMPUNAVAIL
_THROTTLE_CODES = frozenset({-3, -4, -6, -17, -18})
_NOT_FOUND_CODES = frozenset({-9, -16})

_LINK_RE = re.compile(r"mega(?:\.co)?\.nz/(?:embed|file)/([^#/?]+)#([A-Za-z0-9_-]+)")
_LEGACY_LINK_RE = re.compile(r"mega(?:\.co)?\.nz/(?:embed)?#!([^!]+)!([A-Za-z0-9_-]+)")


@dataclass(frozen=True)
class MegaFileKey:
    aes_key: bytes
    nonce: bytes


@dataclass(frozen=True)
class MegaFileInfo:
    file_id: str
    size: int
    name: str
    download_url: str
    key: MegaFileKey


def _b64url_decode(data: str) -> bytes:
    data = data.replace("-", "+").replace("_", "/").replace(",", "")
    return base64.b64decode(data + "=" * (-len(data) % 4))


def parse_link(url: str) -> tuple[str, str] | None:
    """(file id, key) from an embed/file link, or None."""
    m = _LINK_RE.search(url) or _LEGACY_LINK_RE.search(url)
    return (m.group(1), m.group(2)) if m else None


def descriptor_url(file_id: str, key: str) -> str:
    return f"https://mega.nz/file/{file_id}#{key}"


def derive_key(key: str) -> MegaFileKey:
    """Split the 256-bit link key into the AES key and the CTR nonce."""
    raw = _b64url_decode(key)
    if len(raw) != 32:
        raise ParseError(f"unexpected MEGA file key length: {len(raw)}")
    a = struct.unpack(">8I", raw)
    aes_key = struct.pack(">4I", a[0] ^ a[4], a[1] ^ a[5], a[2] ^ a[6], a[3] ^ a[7])
    nonce = struct.pack(">2I", a[4], a[5])
    return MegaFileKey(aes_key=aes_key, nonce=nonce)


def decrypt_attributes(encoded: str, key: MegaFileKey) -> dict:
    """AES-CBC (zero IV) decrypt of the ``MEGA{...}`` attribute blob."""
    blob = _b64url_decode(encoded)
    if not blob or len(blob) % _BLOCK:
        raise ParseError("MEGA attribute blob is not block aligned")
    cipher = Cipher(algorithms.AES(key.aes_key), modes.CBC(b"\0" * _BLOCK))
    decryptor = cipher.decryptor()
    plain = decryptor.update(blob) + decryptor.finalize()
    text = plain.rstrip(b"\0").decode("utf-8", errors="replace")
    if not text.startswith("MEGA{"):
        raise ParseError("MEGA attributes did not decrypt (wrong key?)")
    try:
        return json.loads(text[4:])
    except json.JSONDecodeError as exc:
        raise ParseError(f"MEGA attributes are not JSON: {exc}") from exc


def ctr_decryptor(key: MegaFileKey, offset: int):
    """Decryptor positioned at the block containing ``offset``."""
    counter = key.nonce + struct.pack(">Q", offset // _BLOCK)
    return Cipher(algorithms.AES(key.aes_key), modes.CTR(counter)).decryptor()


async def _no_bytes() -> AsyncIterator[bytes]:
    return
    yield b""


class MegaExtractor:
    """Remote-storage extractor and byte-range reader for MEGA files.

    Args:
        http_client: Shared client for the API and storage downloads.
        chunk_size: Relay chunk size for ``open_range``.
        timeout_seconds: Bound on every storage call, including each
            chunk read of a download.
        clock: Monotonic seconds source for the metadata memo.
    """

    quota_limited = True

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        *,
        chunk_size: int = 65536,
        timeout_seconds: float = _API_TIMEOUT,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._http = http_client
        self._chunk_size = chunk_size
        self._timeout = httpx.Timeout(timeout_seconds)
        self._clock = clock
        self._seq = int(time.time())
        self._info: dict[str, tuple[float, MegaFileInfo]] = {}

    @property
    def name(self) -> str:
        return "mega"

    def matches(self, url: str) -> bool:
        return "mega.nz/embed" in url

    def handles(self, url: str) -> bool:
        return parse_link(url) is not None

    async def extract(self, url: str) -> ResolvedStream | None:
        link = parse_link(url)
        if link is None:
            raise ParseError(f"not a MEGA link: {url}")
        info = await self.load(url)
        if info is None:
            return None
        log.info(
            "mega_attributes_loaded",
            file_id=info.file_id,
            name=info.name,
            size_mb=round(info.size / 1024 / 1024, 2),
        )
        return ResolvedStream(video_url=descriptor_url(*link), size=info.size)

    async def size(self, url: str) -> int:
        info = await self.load(url)
        if info is None:
            raise UpstreamFetchError("MEGA file not found", status_code=404)
        return info.size

    async def load(self, url: str) -> MegaFileInfo | None:
        """File metadata via the ``g`` API call (memoized briefly)."""
        link = parse_link(url)
        if link is None:
            return None
        file_id, key_str = link

        cached = self._cached(file_id)
        if cached is not None:
            return cached

        key = derive_key(key_str)
        reply = await self._api({"a": "g", "g": 1, "ssl": 2, "p": file_id})
        if reply is None:
            return None
        attributes = decrypt_attributes(reply.get("at", ""), key)
        info = MegaFileInfo(
            file_id=file_id,
            size=int(reply["s"]),
            name=str(attributes.get("n", "")),
            download_url=str(reply["g"]),
            key=key,
        )
        self._remember(info)
        return info

    async def open_range(self, url: str, start: int, end: int) -> AsyncIterator[bytes]:
        """Open the download for plaintext bytes ``start..end`` (inclusive).

        The storage status is checked before the iterator is returned, so
        throttling raises ``RateLimitedError`` here and never mid-stream.
        The iterator closes the download when exhausted or closed.
        """
        info = await self.load(url)
        if info is None:
            raise UpstreamFetchError("MEGA file not found", status_code=404)
        end = min(end, info.size - 1)
        if start > end:
            return _no_bytes()

        aligned = start - (start % _BLOCK)
        request = self._http.build_request(
            "GET", f"{info.download_url}/{aligned}-{end}", timeout=self._timeout
        )
        resp = await self._http.send(request, stream=True)
        if resp.status_code >= 400:
            await resp.aclose()
            if resp.status_code in (429, 509):
                raise RateLimitedError(
                    f"MEGA storage throttled ({resp.status_code})",
                    status_code=resp.status_code,
                )
            raise UpstreamFetchError(
                f"MEGA storage returned {resp.status_code}",
                status_code=resp.status_code,
            )
        return self._decrypt(
            resp,
            ctr_decryptor(info.key, aligned),
            skip=start - aligned,
            remaining=end - start + 1,
        )

    async def _decrypt(
        self, resp: httpx.Response, decryptor, *, skip: int, remaining: int
    ) -> AsyncIterator[bytes]:
        try:
            async for chunk in resp.aiter_bytes(chunk_size=self._chunk_size):
                plain = decryptor.update(chunk)
                if skip:
                    dropped = min(skip, len(plain))
                    plain = plain[dropped:]
                    skip -= dropped
                if not plain:
                    continue
                if len(plain) > remaining:
                    plain = plain[:remaining]
                remaining -= len(plain)
                yield plain
                if remaining <= 0:
                    break
        finally:
            await resp.aclose()

    # ------------------------------------------------------------------
    # Metadata memo
    # ------------------------------------------------------------------

    def _cached(self, file_id: str) -> MegaFileInfo | None:
        entry = self._info.get(file_id)
        if entry is None:
            return None
        if self._clock() - entry[0] >= _INFO_TTL:
            del self._info[file_id]
            return None
        return entry[1]

    def _remember(self, info: MegaFileInfo) -> None:
        now = self._clock()
        self._info = {
            file_id: entry
            for file_id, entry in self._info.items()
            if now - entry[0] < _INFO_TTL
        }
        # oldest first; dicts keep insertion order
        while len(self._info) >= _INFO_MAX_ENTRIES:
            del self._info[next(iter(self._info))]
        self._info[info.file_id] = (now, info)

    async def _api(self, command: dict) -> dict | None:
        self._seq += 1
        resp = await self._http.post(
            _API_URL,
            params={"id": self._seq},
            json=[command],
            timeout=self._timeout,
        )
        if resp.status_code >= 400:
            raise UpstreamFetchError(
                f"MEGA API returned {resp.status_code}", status_code=resp.status_code
            )
        try:
            data = resp.json()
        except ValueError as exc:
            raise ParseError(f"MEGA API answered non-JSON: {exc}") from exc

        if isinstance(data, list) and data:
            data = data[0]
        if isinstance(data, int):
            if data in _THROTTLE_CODES:
                raise RateLimitedError(f"MEGA API throttled (code {data})")
            if data in _NOT_FOUND_CODES:
                log.info("mega_file_not_found", code=data)
                return None
            raise UpstreamFetchError(f"MEGA API error code {data}")
        if not isinstance(data, dict) or "g" not in data or "s" not in data:
            raise ParseError("MEGA API reply lacks download url or size")
        return data
