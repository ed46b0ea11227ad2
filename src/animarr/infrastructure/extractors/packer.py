"""Pure-string unpacker for Dean Edwards ``p,a,c,k,e,d`` packed scripts.

Format::

    eval(function(p,a,c,k,e,d){...}('payload',radix,count,'w0|w1|...'.split('|')))

Nothing is executed: the payload is rebuilt by substituting every
standalone base-``radix`` token with its dictionary word, scanning token
indexes from ``count - 1`` down to ``0``.
"""

from __future__ import annotations

import json
import re
from dataclasses import dataclass
from urllib.parse import urljoin, urlparse

# Digit alphabet of the packer's encoder: 0-9, a-z, then A-Z (radix <= 62).
_ALPHABET = "0123456789abcdefghijklmnopqrstuvwxyz" "ABCDEFGHIJKLMNOPQRSTUVWXYZ"

PACKED_SIGNATURE_RE = re.compile(
    r"eval\s*\(\s*function\s*\(\s*p\s*,\s*a\s*,\s*c\s*,\s*k\s*,\s*e\s*,\s*d\s*\)"
)
_ARGS_RE = re.compile(
    r"}\s*\(\s*'(.*?)',\s*(\d+),\s*(\d+),\s*'([^']*)'\s*\.split\('\|'\)",
    re.DOTALL,
)

_LINKS_OBJECT_RE = re.compile(r"var\s+\w+\s*=\s*(\{[^}]*\"hls[^}]*\})")
_TIER_RE = re.compile(r"[\"']?hls(\d+)[\"']?\s*:\s*[\"']([^\"']+)[\"']")


@dataclass(frozen=True)
class PackedScript:
    payload: str
    radix: int
    count: int
    dictionary: tuple[str, ...]


def encode_base(num: int, radix: int) -> str:
    """Encode ``num`` the way the packer names its tokens."""
    if not 2 <= radix <= len(_ALPHABET):
        raise ValueError(f"unsupported radix: {radix}")
    if num < 0:
        raise ValueError("negative token index")
    digits = []
    while True:
        num, rem = divmod(num, radix)
        digits.append(_ALPHABET[rem])
        if num == 0:
            break
    return "".join(reversed(digits))


def find_packed(text: str) -> PackedScript | None:
    """Locate the first packed block in ``text`` and parse its arguments."""
    signature = PACKED_SIGNATURE_RE.search(text)
    if signature is None:
        return None
    m = _ARGS_RE.search(text, signature.end())
    if m is None:
        return None
    return PackedScript(
        payload=m.group(1),
        radix=int(m.group(2)),
        count=int(m.group(3)),
        dictionary=tuple(m.group(4).split("|")),
    )


def unpack_payload(
    payload: str, radix: int, count: int, dictionary: tuple[str, ...] | list[str]
) -> str:
    """Substitute tokens ``count-1 .. 0``; empty dictionary entries are skipped."""
    result = payload
    for index in range(count - 1, -1, -1):
        word = dictionary[index] if index < len(dictionary) else ""
        if not word:
            continue
        token = re.compile(rf"\b{re.escape(encode_base(index, radix))}\b", re.ASCII)
        result = token.sub(lambda _m, w=word: w, result)
    return result


def unpack(text: str) -> str | None:
    """Reconstruct the packed source in ``text``; None when not packed."""
    packed = find_packed(text)
    if packed is None:
        return None
    try:
        return unpack_payload(
            packed.payload, packed.radix, packed.count, packed.dictionary
        )
    except ValueError:
        return None


def stream_tiers(source: str) -> dict[int, str]:
    """Ranked stream URLs (``hls2``, ``hls3``, ...) found in unpacked source."""
    tiers: dict[int, str] = {}
    m = _LINKS_OBJECT_RE.search(source)
    if m is not None:
        try:
            links = json.loads(m.group(1))
        except json.JSONDecodeError:
            links = None
        if isinstance(links, dict):
            for key, value in links.items():
                if key.startswith("hls") and key[3:].isdigit() and value:
                    tiers[int(key[3:])] = str(value)
            if tiers:
                return tiers

    normalized = source.replace("\\'", "'").replace('\\"', '"')
    for tier, url in _TIER_RE.findall(normalized):
        tiers.setdefault(int(tier), url)
    return tiers


def best_tier_url(tiers: dict[int, str], embed_url: str) -> str | None:
    """Highest tier, absolutized against the embed page origin when relative."""
    if not tiers:
        return None
    url = tiers[max(tiers)]
    if url.startswith("/"):
        parsed = urlparse(embed_url)
        return urljoin(f"{parsed.scheme}://{parsed.netloc}/", url)
    return url
