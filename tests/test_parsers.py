"""Tests for localized financial text normalization.

Covers the documented conversions, the zero/None fallbacks, the
asymmetric signed delta format and degraded-parse tracking, plus
property-based checks that parsers never raise.
"""

import math

import pytest
from hypothesis import given
from hypothesis import strategies as st

from mfcrawler.parsers import (
    format_signed_delta,
    format_yen,
    normalize_date_to_iso,
    parse_decimal,
    parse_large_unit_integer,
    parse_percentage,
    resolve_year,
    track_parses,
)


class TestParseLargeUnitInteger:
    """Test suite for 万/億 aware integer parsing."""

    @pytest.mark.parametrize(
        ("text", "expected"),
        [
            ("1億2345万6789", 123_456_789),
            ("1億", 100_000_000),
            ("2345万", 23_450_000),
            ("3億5万", 300_050_000),
            ("12万3456円", 123_456),
            ("¥1,234,567", 1_234_567),
            ("1,234円", 1234),
            ("$ 1,234", 1234),
            ("１，２３４円", 1234),
        ],
    )
    def test_parses_amounts(self, text: str, expected: int) -> None:
        assert parse_large_unit_integer(text) == expected

    @pytest.mark.parametrize("text", ["▲1,234", "−1,234", "-1,234", "1,234-", "¥-1,234"])
    def test_sign_markers_anywhere_make_value_negative(self, text: str) -> None:
        assert parse_large_unit_integer(text) == -1234

    def test_negative_with_units(self) -> None:
        assert parse_large_unit_integer("▲1億2345万6789") == -123_456_789

    def test_leading_plus_ignored(self) -> None:
        assert parse_large_unit_integer("+1,234") == 1234

    @pytest.mark.parametrize("text", ["", None, "abc", "円", "-", "---"])
    def test_unparsable_degrades_to_zero(self, text: str | None) -> None:
        assert parse_large_unit_integer(text) == 0

    @given(
        oku=st.integers(min_value=1, max_value=9999),
        man=st.integers(min_value=1, max_value=9999),
        rest=st.integers(min_value=0, max_value=9999),
    )
    def test_unit_sum_property(self, oku: int, man: int, rest: int) -> None:
        text = f"{oku}億{man}万{rest}"
        assert parse_large_unit_integer(text) == oku * 100_000_000 + man * 10_000 + rest

    @given(st.text())
    def test_never_raises(self, text: str) -> None:
        assert isinstance(parse_large_unit_integer(text), int)


class TestParseDecimal:
    """Test suite for decimal amount parsing."""

    @pytest.mark.parametrize(
        ("text", "expected"),
        [
            ("1,234.56", 1234.56),
            ("¥12,345.5", 12345.5),
            ("▲0.25", -0.25),
            ("−3.5円", -3.5),
            ("+10", 10.0),
        ],
    )
    def test_parses_decimals(self, text: str, expected: float) -> None:
        assert parse_decimal(text) == pytest.approx(expected)

    @pytest.mark.parametrize("text", ["", None, "n/a"])
    def test_unparsable_degrades_to_zero(self, text: str | None) -> None:
        assert parse_decimal(text) == 0.0

    @given(st.text())
    def test_never_returns_nan(self, text: str) -> None:
        assert not math.isnan(parse_decimal(text))


class TestParsePercentage:
    """Test suite for percentage parsing."""

    @pytest.mark.parametrize(
        ("text", "expected"),
        [
            ("+2.2%", 2.2),
            ("1.5％", 1.5),
            ("-0.75 %", -0.75),
            ("−3%", -3.0),
            ("0%", 0.0),
        ],
    )
    def test_parses_percentages(self, text: str, expected: float) -> None:
        assert parse_percentage(text) == pytest.approx(expected)

    @pytest.mark.parametrize("text", ["", None, "abc", "%"])
    def test_unparsable_is_none_not_zero(self, text: str | None) -> None:
        assert parse_percentage(text) is None


class TestNormalizeDateToIso:
    """Test suite for short date normalization."""

    @pytest.mark.parametrize(
        ("text", "expected"),
        [
            ("04/22(火)", "2026-04-22"),
            ("4/5", "2026-04-05"),
            ("12/31", "2026-12-31"),
            ("０１／０２(金)", "2026-01-02"),
            ("2025-12-31", "2025-12-31"),
        ],
    )
    def test_normalizes(self, text: str, expected: str) -> None:
        assert normalize_date_to_iso(text, 2026) == expected

    def test_empty_input_returns_empty(self) -> None:
        assert normalize_date_to_iso("", 2026) == ""
        assert normalize_date_to_iso(None, 2026) == ""

    def test_unrecognised_text_returned_unchanged(self) -> None:
        assert normalize_date_to_iso("昨日", 2026) == "昨日"

    @pytest.mark.parametrize("text", [" 2025-12-31 ", "2025-12-31T09:00", "ｎ／ａ", " 未確定 "])
    def test_passthrough_keeps_original_text(self, text: str) -> None:
        assert normalize_date_to_iso(text, 2026) == text

    @given(text=st.text(), year=st.integers(min_value=1900, max_value=2100))
    def test_idempotent(self, text: str, year: int) -> None:
        once = normalize_date_to_iso(text, year)
        assert normalize_date_to_iso(once, year) == once


class TestResolveYear:
    """Test suite for year rollover."""

    def test_earlier_month_rolls_to_next_year(self) -> None:
        assert resolve_year(1, 2025, 12) == 2026

    def test_same_or_later_month_keeps_year(self) -> None:
        assert resolve_year(12, 2025, 12) == 2025
        assert resolve_year(5, 2025, 4) == 2025


class TestFormatting:
    """Test suite for display formatting."""

    @pytest.mark.parametrize(
        ("current", "previous", "expected"),
        [
            ("2,000", "1,000", "+¥1,000"),
            ("1,000", "2,000", "¥-1,000"),
            ("1,000", "1,000", "+¥0"),
            ("1億", "9999万", "+¥10,000"),
        ],
    )
    def test_format_signed_delta(self, current: str, previous: str, expected: str) -> None:
        assert format_signed_delta(current, previous) == expected

    def test_format_yen(self) -> None:
        assert format_yen(1_234_567) == "¥1,234,567"
        assert format_yen(-500) == "¥-500"


class TestTrackParses:
    """Test suite for degraded-parse tracking."""

    def test_counts_total_and_degraded(self) -> None:
        with track_parses() as stats:
            parse_large_unit_integer("1,000")
            parse_large_unit_integer("oops")
            parse_decimal("1.5")
            parse_decimal("n/a")

        assert stats.total == 4
        assert stats.degraded == 2
        assert stats.degraded_ratio == pytest.approx(0.5)
        assert stats.samples == ["oops", "n/a"]

    def test_blank_and_placeholder_cells_not_degraded(self) -> None:
        with track_parses() as stats:
            parse_large_unit_integer("")
            parse_large_unit_integer("  ")
            parse_large_unit_integer("-")

        assert stats.total == 1
        assert stats.degraded == 0

    def test_nothing_recorded_outside_block(self) -> None:
        with track_parses() as stats:
            pass
        parse_large_unit_integer("oops")

        assert stats.total == 0

    def test_return_values_unaffected(self) -> None:
        with track_parses():
            assert parse_large_unit_integer("oops") == 0
            assert parse_large_unit_integer("▲1,234") == -1234
