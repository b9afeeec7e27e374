"""
Unit tests for benefits.py.

Tests OAS amounts, the recovery tax, GIS / Allowance phase-outs and the
OAS/GIS estimate with deferral scenarios.
"""

import pytest

from canfin.benefits import (
    allowance_monthly,
    estimate_oas_gis,
    gis_monthly,
    oas_deferral_boost,
    oas_monthly_amount,
    oas_recovery_rule,
    oas_recovery_tax,
)
from canfin.config import OASGISInputs


# ---------------------------------------------------------------------------
# OAS
# ---------------------------------------------------------------------------

class TestOAS:
    """Tests for OAS amounts and recovery tax."""

    def test_deferral_boost(self, data):
        assert oas_deferral_boost(65, data.oas) == 0.0
        assert oas_deferral_boost(68, data.oas) == pytest.approx(0.216)
        assert oas_deferral_boost(70, data.oas) == pytest.approx(0.36)

    def test_deferral_boost_capped_at_70(self, data):
        assert oas_deferral_boost(75, data.oas) == pytest.approx(0.36)

    def test_monthly_amount_full(self, data):
        assert oas_monthly_amount(data.oas, age=66) == pytest.approx(727.67)

    def test_monthly_amount_75_plus(self, data):
        assert oas_monthly_amount(data.oas, age=76) == pytest.approx(800.44)

    def test_monthly_amount_prorated(self, data):
        assert oas_monthly_amount(data.oas, age=66, years_in_canada=20) == pytest.approx(727.67 / 2)

    def test_monthly_amount_before_start(self, data):
        assert oas_monthly_amount(data.oas, age=66, start_age=68) == 0.0

    def test_monthly_amount_deferred(self, data):
        assert oas_monthly_amount(data.oas, age=70, start_age=70) == pytest.approx(727.67 * 1.36)

    def test_recovery_tax(self, data):
        """15% of income above 93,454."""
        assert oas_recovery_tax(100_000, 8_732.04, data.oas) == pytest.approx(0.15 * 6_546)

    def test_recovery_tax_capped_at_oas(self, data):
        assert oas_recovery_tax(250_000, 8_732.04, data.oas) == pytest.approx(8_732.04)

    def test_recovery_rule(self, data):
        assert oas_recovery_rule(data) is data.oas.recovery


# ---------------------------------------------------------------------------
# GIS / Allowance
# ---------------------------------------------------------------------------

class TestGIS:
    """Tests for gis_monthly and allowance_monthly."""

    def test_single_maximum(self, data):
        assert gis_monthly(0, "single", data.gis) == pytest.approx(1_057.01)

    def test_single_phase_out(self, data):
        """50 cents per dollar of annual income, applied monthly."""
        assert gis_monthly(12_000, "single", data.gis) == pytest.approx(1_057.01 - 500)

    def test_hard_cut_at_income_limit(self, data):
        assert gis_monthly(22_055, "single", data.gis) > 0
        assert gis_monthly(22_056, "single", data.gis) == 0.0

    def test_widowed_uses_single_rates(self, data):
        assert gis_monthly(5_000, "widowed", data.gis) == gis_monthly(5_000, "single", data.gis)

    def test_couple_both_oas(self, data):
        """Couples phase out at half the rate."""
        assert gis_monthly(12_000, "couple_both_oas", data.gis) == pytest.approx(636.26 - 250)

    def test_couple_one_oas(self, data):
        assert gis_monthly(0, "couple_one_oas", data.gis) == pytest.approx(1_010.53)

    def test_unknown_status_raises(self, data):
        with pytest.raises(ValueError, match="marital status"):
            gis_monthly(0, "married", data.gis)

    def test_allowance_for_partner_60_64(self, data):
        amount = allowance_monthly(12_000, "couple_both_oas", data.gis, age=67, partner_age=62)
        assert amount == pytest.approx(1_381.90 - 250)

    def test_no_allowance_for_partner_65(self, data):
        assert allowance_monthly(0, "couple_both_oas", data.gis, age=67, partner_age=65) == 0.0

    def test_survivor_allowance(self, data):
        assert allowance_monthly(0, "widowed", data.gis, age=62) == pytest.approx(1_647.34)

    def test_no_allowance_for_single(self, data):
        assert allowance_monthly(0, "single", data.gis, age=62) == 0.0


# ---------------------------------------------------------------------------
# Estimate
# ---------------------------------------------------------------------------

class TestEstimateOASGIS:
    """Tests for estimate_oas_gis."""

    def test_insufficient_inputs(self, data):
        assert estimate_oas_gis(OASGISInputs(net_income=20_000), data) is None
        assert estimate_oas_gis(OASGISInputs(current_age=66), data) is None
        assert estimate_oas_gis(OASGISInputs(current_age=50, net_income=0), data) is None
        assert estimate_oas_gis(OASGISInputs(current_age=90, net_income=0), data) is None

    def test_low_income_single(self, data):
        """20,000 income: full OAS, GIS on income less OAS."""
        estimate = estimate_oas_gis(OASGISInputs(current_age=66, net_income=20_000), data)

        assert estimate.net_oas_monthly == pytest.approx(727.67)
        assert estimate.clawback_annual == 0.0
        assert estimate.gis_income_test == pytest.approx(20_000 - 727.67 * 12)
        assert estimate.gis_monthly == pytest.approx(1_057.01 - (20_000 - 727.67 * 12) / 24)
        assert estimate.allowance_monthly == 0.0

    def test_zero_income_is_valid(self, data):
        estimate = estimate_oas_gis(OASGISInputs(current_age=66, net_income=0), data)
        assert estimate.gis_monthly == pytest.approx(1_057.01)

    def test_high_income_fully_clawed_back(self, data):
        estimate = estimate_oas_gis(OASGISInputs(current_age=66, net_income=200_000), data)

        assert estimate.net_oas_monthly == 0.0
        assert estimate.fully_clawed_back
        assert estimate.gis_monthly == 0.0

    def test_partial_residency(self, data):
        estimate = estimate_oas_gis(
            OASGISInputs(current_age=66, net_income=50_000, years_in_canada=30), data
        )
        assert estimate.proration == pytest.approx(0.75)
        assert not estimate.is_full_oas
        assert estimate.gross_oas_monthly == pytest.approx(727.67 * 0.75)

    def test_couple_adds_partner_income(self, data):
        estimate = estimate_oas_gis(OASGISInputs(
            current_age=66, net_income=10_000,
            marital_status="couple_both_oas", partner_income=5_000, partner_age=62,
        ), data)

        assert estimate.gis_income_test == pytest.approx(10_000 - 727.67 * 12 + 5_000)
        assert estimate.allowance_monthly > 0

    def test_totals(self, data):
        estimate = estimate_oas_gis(OASGISInputs(current_age=66, net_income=20_000, cpp_monthly=400), data)

        expected = estimate.net_oas_monthly + estimate.gis_monthly + 400
        assert estimate.total_monthly == pytest.approx(expected)
        assert estimate.total_annual == pytest.approx(expected * 12)

    def test_start_age_clamped(self):
        assert OASGISInputs(start_age=72).start_age == 70
        assert OASGISInputs(start_age=60).start_age == 65


class TestDeferralScenarios:
    """Tests for the 65-70 deferral scenarios."""

    @pytest.fixture
    def scenarios(self, data):
        estimate = estimate_oas_gis(OASGISInputs(current_age=64, net_income=40_000), data)
        return {s.start_age: s for s in estimate.deferral_scenarios}

    def test_one_scenario_per_start_age(self, scenarios):
        assert sorted(scenarios) == [65, 66, 67, 68, 69, 70]

    def test_boost_grows_with_start_age(self, scenarios):
        boosts = [scenarios[a].boost for a in range(65, 71)]
        assert boosts == sorted(boosts)
        assert scenarios[70].monthly == pytest.approx(727.67 * 1.36)

    def test_no_break_even_for_65(self, scenarios):
        assert scenarios[65].break_even_age is None

    def test_break_even_at_70(self, scenarios):
        """Five missed years recovered from the 36% boost by about 84."""
        assert 83 < scenarios[70].break_even_age < 85

    def test_lifetime_to_90(self, scenarios):
        assert scenarios[65].lifetime_to_90 == pytest.approx(727.67 * 12 * 25)
        assert scenarios[70].lifetime_to_90 == pytest.approx(727.67 * 1.36 * 12 * 20)
