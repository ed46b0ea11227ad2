"""Four-layer scorer: catalog record vs. scraped provider candidate.

Pure transformation logic, no I/O.

Layers:
  L1  quick filters (type class, year within one), hard gate
  L2  best bigram Dice similarity over all title-variant pairs
  L3  metadata bonus (studio, production source)
  L4  season-ordinal and special-content cross-check
"""

from __future__ import annotations

import re
from collections import Counter

from rapidfuzz.distance import Levenshtein

from animarr.domain.entities import CatalogRecord, MatchResult, ScrapedCandidate

BASE_CONFIDENCE = 25.0
TITLE_WEIGHT = 0.5
NEAR_EXACT_TITLE = 95.0
NEAR_EXACT_BONUS = 10.0
SEASON_PENALTY = 30.0
STUDIO_BONUS = 15
SOURCE_BONUS = 10
ACCEPT_THRESHOLD = 75.0
YEAR_TOLERANCE = 1

_PUNCT_RE = re.compile(r"[^\w\s]")
_WS_RE = re.compile(r"\s+")

_SUFFIX_RES = (
    re.compile(r"\s+(season|s)\s*\d+$", re.IGNORECASE),
    re.compile(r"\s+(part|cour)\s*\d+$", re.IGNORECASE),
    re.compile(r"\s+\d+(st|nd|rd|th)\s+season$", re.IGNORECASE),
    re.compile(r"\s+(tv|ova|ona|special)$", re.IGNORECASE),
    re.compile(r"\s+sub\s+indo$", re.IGNORECASE),
)

_SEASON_RES = (
    re.compile(r"season\s*(\d+)", re.IGNORECASE),
    re.compile(r"s(\d+)$", re.IGNORECASE),
    re.compile(r"(\d+)(st|nd|rd|th)\s+season", re.IGNORECASE),
    re.compile(r"\s+(\d+)$"),
)

_SPECIAL_KEYWORDS = (
    "ova",
    "oad",
    "special",
    "movie",
    "film",
    "episode of",
    "recap",
    "summary",
    "lost girls",
    "lost memories",
    "picture drama",
)

_TYPE_KEYWORDS = {
    "movie": "movie",
    "ova": "ova",
    "ona": "ona",
    "special": "special",
}


def normalize_title(text: str) -> str:
    """Lowercase, strip punctuation, collapse whitespace."""
    text = _PUNCT_RE.sub(" ", text.lower())
    return _WS_RE.sub(" ", text).strip()


def remove_suffixes(text: str) -> str:
    """Drop trailing season/part/cour/format markers from a raw title."""
    for pattern in _SUFFIX_RES:
        text = pattern.sub("", text)
    return text.strip()


def extract_season_number(title: str) -> int | None:
    """Explicit season ordinal encoded in a raw title, if any."""
    for pattern in _SEASON_RES:
        m = pattern.search(title)
        if m:
            return int(m.group(1))
    return None


def is_special_content(title: str, type_: str) -> bool:
    lowered = title.lower()
    if any(keyword in lowered for keyword in _SPECIAL_KEYWORDS):
        return True
    kind = type_.lower()
    return kind != "tv" and "tv" not in kind and "serial" not in kind


def dice_coefficient(first: str, second: str) -> float:
    """Bigram-multiset Dice similarity, whitespace ignored (0.0-1.0)."""
    a = _WS_RE.sub("", first)
    b = _WS_RE.sub("", second)
    if a == b:
        return 1.0
    if len(a) < 2 or len(b) < 2:
        return 0.0

    bigrams_a = Counter(a[i : i + 2] for i in range(len(a) - 1))
    bigrams_b = Counter(b[i : i + 2] for i in range(len(b) - 1))
    overlap = sum((bigrams_a & bigrams_b).values())
    return 2.0 * overlap / (len(a) + len(b) - 2)


# ------------------------------------------------------------------
# Layers
# ------------------------------------------------------------------


def _type_matches(catalog_type: str, scraped_type: str) -> bool:
    kind = catalog_type.lower()
    scraped = scraped_type.lower()
    if kind == "tv":
        return "tv" in scraped or "serial" in scraped
    keyword = _TYPE_KEYWORDS.get(kind)
    return keyword is not None and keyword in scraped


def _year_matches(catalog_year: int | None, scraped_year: int | None) -> bool:
    if catalog_year is None or scraped_year is None:
        return True
    return abs(catalog_year - scraped_year) <= YEAR_TOLERANCE


def _title_variants(
    title: str,
    english: str | None,
    japanese: str | None,
    synonyms: tuple[str, ...],
) -> list[str]:
    variants: list[str] = []
    if title:
        variants += [normalize_title(title), normalize_title(remove_suffixes(title))]
    if english:
        variants += [
            normalize_title(english),
            normalize_title(remove_suffixes(english)),
        ]
    if japanese:
        variants.append(normalize_title(japanese))
    for synonym in synonyms:
        variants += [
            normalize_title(synonym),
            normalize_title(remove_suffixes(synonym)),
        ]
    return variants


def title_similarity(
    record: CatalogRecord, candidate: ScrapedCandidate
) -> tuple[float, str]:
    """Best Dice over all title pairs, scaled to 0-100, plus the pair label.

    Ties are broken by the smaller Levenshtein distance.
    """
    catalog_titles = _title_variants(
        record.title, record.title_english, record.title_japanese, record.synonyms
    )
    scraped_titles = _title_variants(
        candidate.title,
        candidate.title_english,
        candidate.title_japanese,
        candidate.synonyms,
    )

    best_dice = 0.0
    best_distance: int | None = None
    best_pair = ""
    for left in catalog_titles:
        for right in scraped_titles:
            dice = dice_coefficient(left, right)
            distance = Levenshtein.distance(left, right)
            if dice > best_dice or (
                dice == best_dice
                and (best_distance is None or distance < best_distance)
            ):
                best_dice = dice
                best_distance = distance
                best_pair = f'"{left}" vs "{right}"'
    return best_dice * 100.0, best_pair


def metadata_score(record: CatalogRecord, candidate: ScrapedCandidate) -> int:
    score = 0
    scraped_studio = normalize_title(candidate.studio or "")
    if scraped_studio and record.studios:
        for studio in record.studios:
            name = normalize_title(studio)
            if name in scraped_studio or scraped_studio in name:
                score += STUDIO_BONUS
                break

    if record.source and candidate.source:
        if normalize_title(record.source) == normalize_title(candidate.source):
            score += SOURCE_BONUS
    return score


def season_check(
    record: CatalogRecord, candidate: ScrapedCandidate
) -> tuple[bool, str | None]:
    """L4: explicit season ordinals must agree; special vs series must agree."""
    catalog_season = extract_season_number(record.title)
    scraped_season = extract_season_number(candidate.title)
    if (
        catalog_season is not None
        and scraped_season is not None
        and catalog_season != scraped_season
    ):
        return False, (
            f"Season mismatch: catalog has S{catalog_season}, "
            f"site has S{scraped_season}"
        )

    if is_special_content(record.title, record.type) != is_special_content(
        candidate.title, candidate.type
    ):
        return False, "Special content type mismatch (OVA/Movie vs TV Series)"
    return True, None


def combine_confidence(similarity: float, metadata: int, season_valid: bool) -> float:
    """Confidence for a candidate that passed L1, clamped to [0, 100]."""
    confidence = BASE_CONFIDENCE + TITLE_WEIGHT * similarity + metadata
    if similarity >= NEAR_EXACT_TITLE:
        confidence += NEAR_EXACT_BONUS
    if not season_valid:
        confidence -= SEASON_PENALTY
    return max(0.0, min(100.0, confidence))


def match_candidate(record: CatalogRecord, candidate: ScrapedCandidate) -> MatchResult:
    """Score one scraped candidate against the catalog record."""
    warnings: list[str] = []
    type_ok = _type_matches(record.type, candidate.type)
    year_ok = _year_matches(record.year, candidate.year)

    if not (type_ok and year_ok):
        return MatchResult(
            slug=candidate.slug,
            is_match=False,
            confidence=0.0,
            quick_filters_passed=False,
            type_match=type_ok,
            year_match=year_ok,
        )

    if (
        record.season
        and candidate.season
        and record.season.lower() != candidate.season.lower()
    ):
        warnings.append(f"Season mismatch: {record.season} vs {candidate.season}")

    similarity, pair = title_similarity(record, candidate)
    metadata = metadata_score(record, candidate)
    season_valid, season_warning = season_check(record, candidate)
    if season_warning:
        warnings.append(season_warning)

    confidence = combine_confidence(similarity, metadata, season_valid)
    return MatchResult(
        slug=candidate.slug,
        is_match=season_valid and confidence >= ACCEPT_THRESHOLD,
        confidence=confidence,
        quick_filters_passed=True,
        type_match=True,
        year_match=True,
        title_similarity=similarity,
        best_pair=pair,
        metadata_score=metadata,
        season_valid=season_valid,
        warnings=tuple(warnings),
    )
