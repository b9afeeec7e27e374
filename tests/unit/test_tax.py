"""
Unit tests for tax.py.

Tests combined federal + provincial income tax with non-refundable credits.
"""

import pytest

from canfin.brackets import compute_bracket_tax
from canfin.exceptions import JurisdictionError
from canfin.tax import IncomeTaxCalculator, jurisdiction_tax


class TestJurisdictionTax:
    """Tests for jurisdiction_tax credits."""

    def test_basic_personal_amount_credit(self, data):
        fed = data.federal
        expected = compute_bracket_tax(50_000, fed.brackets) - 0.15 * 16_129

        assert jurisdiction_tax(50_000, fed) == pytest.approx(expected)

    def test_income_below_credits_is_zero(self, data):
        assert jurisdiction_tax(10_000, data.federal) == 0.0

    def test_age_amount_from_65(self, data):
        fed = data.federal
        at_64 = jurisdiction_tax(60_000, fed, age=64)
        at_65 = jurisdiction_tax(60_000, fed, age=65)

        assert at_64 - at_65 == pytest.approx(0.15 * 8_790)

    def test_pension_credit_capped(self, data):
        fed = data.federal
        small = jurisdiction_tax(60_000, fed, pension_income=1_000)
        large = jurisdiction_tax(60_000, fed, pension_income=50_000)
        none = jurisdiction_tax(60_000, fed)

        assert none - small == pytest.approx(0.15 * 1_000)
        assert none - large == pytest.approx(0.15 * 2_000)


class TestIncomeTaxCalculator:
    """Tests for IncomeTaxCalculator."""

    def test_ontario_80k(self, ontario):
        """Federal 10,825.03 + Ontario 4,611.53."""
        breakdown = ontario.income_tax(80_000)

        assert breakdown.federal == pytest.approx(10_825.025)
        assert breakdown.provincial == pytest.approx(4_611.5315)
        assert breakdown.total == pytest.approx(15_436.5565)

    def test_total_tax_matches_breakdown(self, ontario):
        assert ontario.total_tax(120_000) == pytest.approx(ontario.income_tax(120_000).total)

    def test_zero_and_negative_income(self, ontario):
        assert ontario.total_tax(0) == 0.0
        assert ontario.total_tax(-1_000) == 0.0

    def test_average_rate(self, ontario):
        breakdown = ontario.income_tax(80_000)
        assert breakdown.average_rate == pytest.approx(15_436.5565 / 80_000)

    def test_marginal_rate(self, ontario):
        assert ontario.marginal_rate(80_000) == pytest.approx(0.2965)
        assert ontario.marginal_rate(300_000) == pytest.approx(0.33 + 0.1316)

    def test_province_code(self, ontario):
        assert ontario.province == "ON"

    def test_unknown_province_raises(self):
        with pytest.raises(JurisdictionError):
            IncomeTaxCalculator.for_province("ZZ")

    def test_provinces_differ(self, data):
        ab = IncomeTaxCalculator.for_province("AB", data=data).total_tax(100_000)
        qc = IncomeTaxCalculator.for_province("QC", data=data).total_tax(100_000)
        assert qc > ab

    def test_monotonic(self, ontario):
        taxes = [ontario.total_tax(y) for y in range(0, 300_001, 5_000)]
        assert all(b >= a for a, b in zip(taxes, taxes[1:]))

    def test_senior_pays_less(self, ontario):
        assert ontario.total_tax(40_000, age=70, pension_income=20_000) < ontario.total_tax(40_000)


class TestIncrementalTax:
    """Tests for incremental_tax."""

    def test_difference_of_totals(self, ontario):
        expected = ontario.total_tax(60_000) - ontario.total_tax(50_000)
        assert ontario.incremental_tax(50_000, 10_000) == pytest.approx(expected)

    def test_zero_extra(self, ontario):
        assert ontario.incremental_tax(50_000, 0) == 0.0

    def test_extra_inside_credits_is_free(self, ontario):
        assert ontario.incremental_tax(0, 5_000) == 0.0

    def test_pension_credit_removed_with_extra(self, ontario):
        """Without the extra, the pension credit only covers what remains."""
        with_extra = ontario.total_tax(60_000, age=70, pension_income=30_000)
        without = ontario.total_tax(30_000, age=70, pension_income=0)

        assert ontario.incremental_tax(30_000, 30_000, age=70, pension_income=30_000) == \
            pytest.approx(with_extra - without)
