"""Tests for slug generation from catalog titles."""

from __future__ import annotations

from animarr.infrastructure.identity.slugs import (
    base_title,
    sequence_number,
    slug_variations,
    to_slug,
)


class TestToSlug:
    def test_punctuation_removed(self) -> None:
        assert to_slug("Kimi no Na wa.") == "kimi-no-na-wa"

    def test_transliterates_accents(self) -> None:
        assert to_slug("Pokémon: Mezase") == "pokemon-mezase"

    def test_collapses_dashes(self) -> None:
        assert to_slug("  A -- B  ") == "a-b"


class TestSequenceNumber:
    def test_season(self) -> None:
        assert sequence_number("Example Season 2") == 2

    def test_ordinal_season(self) -> None:
        assert sequence_number("Example 3rd Season") == 3

    def test_part(self) -> None:
        assert sequence_number("Example Part 2") == 2

    def test_cour(self) -> None:
        assert sequence_number("Example Cour 2") == 2

    def test_roman(self) -> None:
        assert sequence_number("Example III") == 3

    def test_none(self) -> None:
        assert sequence_number("Example") is None


class TestBaseTitle:
    def test_strips_season_marker(self) -> None:
        assert base_title("Example Season 2") == "Example"

    def test_strips_roman_numeral(self) -> None:
        assert base_title("Example II") == "Example"

    def test_keeps_plain_title(self) -> None:
        assert base_title("Example") == "Example"


class TestSlugVariations:
    def test_sequel_variations_in_order(self) -> None:
        assert slug_variations("Example Season 2") == [
            "example-season-2",
            "example-part-2",
            "example-cour-2",
            "example-s2",
            "example-2",
            "example",
        ]

    def test_first_entry_is_direct_slug(self) -> None:
        assert slug_variations("Sousou no Frieren")[0] == "sousou-no-frieren"

    def test_english_title_included(self) -> None:
        slugs = slug_variations("Sousou no Frieren", "Frieren")
        assert slugs == ["sousou-no-frieren", "frieren"]

    def test_no_duplicates(self) -> None:
        slugs = slug_variations("Example Season 2", "Example Season 2")
        assert len(slugs) == len(set(slugs))

    def test_first_season_adds_no_variants(self) -> None:
        assert slug_variations("Example Season 1") == ["example-season-1"]
