"""Provider slug variations derived from catalog titles."""

from __future__ import annotations

import re

from unidecode import unidecode as _unidecode

_SEQUENCE_RES = (
    re.compile(r"\bpart\s+(\d+)", re.IGNORECASE),
    re.compile(r"\b(\d+)(?:st|nd|rd|th)\s+season", re.IGNORECASE),
    re.compile(r"\bseason\s+(\d+)", re.IGNORECASE),
    re.compile(r"\bcour\s+(\d+)", re.IGNORECASE),
)
_ROMAN_RE = re.compile(r"\b(I{1,3}|IV|V|VI{0,3}|IX|X)$", re.IGNORECASE)
_ROMAN_VALUES = {
    "I": 1,
    "II": 2,
    "III": 3,
    "IV": 4,
    "V": 5,
    "VI": 6,
    "VII": 7,
    "VIII": 8,
    "IX": 9,
    "X": 10,
}

# Applied in order. The roman pattern is case-sensitive.
_BASE_STRIP_RES = (
    re.compile(r"\s+part\s+\d+", re.IGNORECASE),
    re.compile(r"\s+\d+(st|nd|rd|th)\s+season", re.IGNORECASE),
    re.compile(r"\s+season\s+\d+", re.IGNORECASE),
    re.compile(r"\s+cour\s+\d+", re.IGNORECASE),
    re.compile(r"\s+[IVX]+$"),
    re.compile(r"\s+\d+$"),
)

_NON_SLUG_RE = re.compile(r"[^\w\s-]")
_WS_RE = re.compile(r"\s+")
_DASHES_RE = re.compile(r"-+")


def to_slug(text: str) -> str:
    """``"Kimi no Na wa."`` -> ``"kimi-no-na-wa"``."""
    text = _unidecode(text).lower()
    text = _NON_SLUG_RE.sub("", text)
    text = _WS_RE.sub("-", text.strip())
    return _DASHES_RE.sub("-", text).strip("-")


def sequence_number(title: str) -> int | None:
    """Part/season/cour number or trailing roman numeral I-X."""
    for pattern in _SEQUENCE_RES:
        m = pattern.search(title)
        if m:
            return int(m.group(1))
    m = _ROMAN_RE.search(title.strip())
    if m:
        return _ROMAN_VALUES[m.group(1).upper()]
    return None


def base_title(title: str) -> str:
    for pattern in _BASE_STRIP_RES:
        title = pattern.sub("", title)
    return title.strip()


def slug_variations(title: str, english: str | None = None) -> list[str]:
    """Ordered, de-duplicated slug guesses for one catalog record.

    >>> slug_variations("Example Season 2")[:4]
    ['example-season-2', 'example-part-2', 'example-cour-2', 'example-s2']
    """
    titles = [t for t in (title, english) if t]
    candidates = [to_slug(t) for t in titles]

    seq = None
    for t in titles:
        seq = sequence_number(t)
        if seq is not None:
            break

    if seq is not None and seq > 1:
        bases = [to_slug(base_title(t)) for t in titles]
        for base in bases:
            if not base:
                continue
            candidates += [
                f"{base}-part-{seq}",
                f"{base}-cour-{seq}",
                f"{base}-season-{seq}",
                f"{base}-s{seq}",
                f"{base}-{seq}",
            ]
        candidates += bases

    seen: set[str] = set()
    ordered: list[str] = []
    for slug in candidates:
        if slug and slug not in seen:
            seen.add(slug)
            ordered.append(slug)
    return ordered
