"""Tests for estimate_report — USD, token amount and percent formatting."""

from decimal import Decimal

import pytest

from estimate_report import (
    format_percent,
    format_token_amount,
    format_usd,
    format_usd_compact,
)

# ── format_usd ────────────────────────────────────────────────────


class TestFormatUsd:
    @pytest.mark.parametrize(
        "value, expected",
        [
            (Decimal("1234.567"), "$1,234.57"),
            (Decimal("-1.45"), "-$1.45"),
            (Decimal("0"), "$0.00"),
            (Decimal("-0.001"), "$0.00"),
            (Decimal("0.00000123"), "$0.0₅1230"),
        ],
    )
    def test_values(self, value, expected):
        assert format_usd(value) == expected

    def test_custom_decimals(self):
        assert format_usd(Decimal("1.23456"), 4) == "$1.2346"

    def test_rounding_carry_drops_a_leading_zero(self):
        assert format_usd(Decimal("0.0000999996")) == "$0.0₃1000"


class TestFormatUsdCompact:
    @pytest.mark.parametrize(
        "value, expected",
        [
            (Decimal("0.004"), "<$0.01"),
            (Decimal("-0.004"), "-<$0.01"),
            (Decimal("0"), "$0.00"),
            (Decimal("0.05"), "$0.05"),
        ],
    )
    def test_values(self, value, expected):
        assert format_usd_compact(value) == expected


# ── format_token_amount ───────────────────────────────────────────


class TestFormatTokenAmount:
    @pytest.mark.parametrize(
        "value, expected",
        [
            (Decimal("10"), "10"),
            (Decimal("1234.5"), "1,234.5"),
            (Decimal("0"), "0"),
            (Decimal("0.00001234"), "0.0₄1234"),
            (Decimal("-0.00001234"), "-0.0₄1234"),
            (Decimal("1E-13"), "0.0₁₂1000"),
        ],
    )
    def test_values(self, value, expected):
        assert format_token_amount(value) == expected

    def test_rounding_carry_drops_a_leading_zero(self):
        # 0.000099996 is ~0.0001, not 0.00001.
        assert format_token_amount(Decimal("0.000099996")) == "0.0₃1000"

    def test_rounding_carry_leaves_subscript_range(self):
        assert format_token_amount(Decimal("0.00099996")) == "0.001"


# ── format_percent ────────────────────────────────────────────────


class TestFormatPercent:
    def test_none(self):
        assert format_percent(None) == "n/a"

    def test_rounds_half_up(self):
        assert format_percent(Decimal("-0.725")) == "-0.73%"

    def test_signed(self):
        assert format_percent(Decimal("32.3"), signed=True) == "+32.30%"
        assert format_percent(Decimal("0"), signed=True) == "0.00%"
        assert format_percent(Decimal("-4"), signed=True) == "-4.00%"
