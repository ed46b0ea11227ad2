"""Tests for the shared router helpers."""

from __future__ import annotations

import pytest

from animarr.interfaces.api.responses import parse_positive_int


class TestParsePositiveInt:
    @pytest.mark.parametrize("value, expected", [("1", 1), ("52991", 52991)])
    def test_plain_digits(self, value: str, expected: int) -> None:
        assert parse_positive_int(value) == expected

    def test_leading_zeros_allowed(self) -> None:
        assert parse_positive_int("007") == 7

    @pytest.mark.parametrize(
        "value", ["", "0", "000", "-3", "+5", " 5", "5 ", "1_0", "1.0", "abc", "٣"]
    )
    def test_rejected(self, value: str) -> None:
        assert parse_positive_int(value) is None
