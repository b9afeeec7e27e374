"""
Unit tests for utils.py module.

Tests clamping, conversions, and formatting utilities.
"""

import pytest

from canfin.utils import (
    clamp,
    clamp_age,
    clamp_rate,
    compound,
    format_currency,
    format_percent,
    monthly_to_annual_amount,
    non_negative,
    pct_to_fraction,
    round_money,
)


class TestClamping:
    """Test clamping helpers."""

    def test_clamp(self):
        assert clamp(5, 0, 10) == 5
        assert clamp(-5, 0, 10) == 0
        assert clamp(15, 0, 10) == 10

    def test_non_negative(self):
        assert non_negative(None) == 0.0
        assert non_negative(-100) == 0.0
        assert non_negative(250) == 250.0

    def test_clamp_rate(self):
        assert clamp_rate(0.05) == 0.05
        assert clamp_rate(2.0) == 1.0
        assert clamp_rate(-3.0) == -1.0
        assert clamp_rate(None, default=0.07) == 0.07

    def test_clamp_age(self):
        assert clamp_age(None) is None
        assert clamp_age(-1) == 0
        assert clamp_age(200) == 120
        assert clamp_age(71) == 71


class TestConversions:
    """Test rate and amount conversions."""

    def test_pct_to_fraction(self):
        assert pct_to_fraction(5) == pytest.approx(0.05)
        assert pct_to_fraction(0) == 0.0

    def test_monthly_to_annual_amount(self):
        assert monthly_to_annual_amount(727.67) == pytest.approx(8_732.04)
        assert monthly_to_annual_amount(None) == 0.0
        assert monthly_to_annual_amount(-10) == 0.0

    def test_compound(self):
        assert compound(400_000, 0.05, 5) == pytest.approx(510_512.625)
        assert compound(1_000, 0.05, 0) == 1_000
        assert compound(1_000, 0.05, -3) == 1_000


class TestFormatting:
    """Test presentation helpers."""

    def test_round_money(self):
        assert round_money(497_280.4) == 497_280
        assert round_money(26_399.6) == 26_400
        assert isinstance(round_money(1.0), int)

    def test_format_currency(self):
        assert format_currency(497_280.4) == "$497,280"
        assert format_currency(0) == "$0"
        assert format_currency(-1_500) == "-$1,500"

    def test_format_currency_symbol(self):
        assert format_currency(1_000, symbol="C$") == "C$1,000"

    def test_format_percent(self):
        assert format_percent(0.2965) == "29.6%" or format_percent(0.2965) == "29.7%"
        assert format_percent(0.2965, 2) == "29.65%"
        assert format_percent(0.05, 0) == "5%"
