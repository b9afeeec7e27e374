"""
Unit tests for thresholds.py.

Tests the linear claw-back / phase-in evaluator and its matching-grant form.
"""

import pytest

from canfin.exceptions import ReferenceDataError
from canfin.thresholds import (
    ThresholdRule,
    evaluate_matching_rule,
    evaluate_threshold_rule,
    recovery_amount,
)


@pytest.fixture
def oas_rule() -> ThresholdRule:
    """OAS recovery tax: 15% above $93,454."""
    return ThresholdRule(threshold=93_454, rate=0.15)


class TestThresholdRule:
    """Tests for ThresholdRule validation."""

    def test_negative_rate_raises(self):
        with pytest.raises(ReferenceDataError, match="rate"):
            ThresholdRule(threshold=0, rate=-0.1)

    def test_infinite_threshold_raises(self):
        with pytest.raises(ReferenceDataError, match="threshold"):
            ThresholdRule(threshold=float("inf"), rate=0.1)

    def test_cap_below_floor_raises(self):
        with pytest.raises(ReferenceDataError, match="cap"):
            ThresholdRule(threshold=0, rate=0.1, cap=10, floor=20)

    def test_repr(self, oas_rule):
        assert "93,454.00" in repr(oas_rule)


class TestEvaluateThresholdRule:
    """Tests for evaluate_threshold_rule."""

    def test_below_threshold_keeps_full_base(self, oas_rule):
        assert evaluate_threshold_rule(50_000, oas_rule, base=8_732.04) == pytest.approx(8_732.04)

    def test_at_threshold_is_continuous(self, oas_rule):
        at = evaluate_threshold_rule(93_454, oas_rule, base=8_732.04)
        just_above = evaluate_threshold_rule(93_454.01, oas_rule, base=8_732.04)

        assert at == pytest.approx(8_732.04)
        assert at - just_above == pytest.approx(0.0015)

    def test_linear_reduction(self, oas_rule):
        """100,000 → base − 0.15 × 6,546."""
        assert evaluate_threshold_rule(100_000, oas_rule, base=8_732.04) == pytest.approx(7_750.14)

    def test_never_negative(self, oas_rule):
        assert evaluate_threshold_rule(1_000_000, oas_rule, base=8_732.04) == 0.0

    def test_never_above_base(self, oas_rule):
        assert evaluate_threshold_rule(-10_000, oas_rule, base=1_000) == 1_000

    def test_negative_base_is_zero(self, oas_rule):
        assert evaluate_threshold_rule(0, oas_rule, base=-500) == 0.0

    def test_cap_and_floor_bound_result(self):
        rule = ThresholdRule(threshold=0, rate=0.5, cap=800, floor=100)

        assert evaluate_threshold_rule(0, rule, base=1_000) == 800
        assert evaluate_threshold_rule(10_000, rule, base=1_000) == 100

    def test_floor_never_exceeds_base(self):
        rule = ThresholdRule(threshold=0, rate=0.5, floor=100)
        assert evaluate_threshold_rule(10_000, rule, base=50) == 50


class TestRecoveryAmount:
    """Tests for recovery_amount."""

    def test_complements_retained_amount(self, oas_rule):
        retained = evaluate_threshold_rule(120_000, oas_rule, base=8_732.04)
        assert recovery_amount(120_000, oas_rule, base=8_732.04) == pytest.approx(8_732.04 - retained)

    def test_capped_at_base(self, oas_rule):
        assert recovery_amount(500_000, oas_rule, base=8_732.04) == pytest.approx(8_732.04)

    def test_zero_below_threshold(self, oas_rule):
        assert recovery_amount(60_000, oas_rule, base=8_732.04) == 0.0


class TestEvaluateMatchingRule:
    """Tests for evaluate_matching_rule (grant matching)."""

    @pytest.fixture
    def cesg(self) -> ThresholdRule:
        return ThresholdRule(threshold=2_500, rate=0.20, cap=500)

    def test_partial_contribution(self, cesg):
        assert evaluate_matching_rule(1_000, cesg) == pytest.approx(200)

    def test_contribution_above_eligible_amount(self, cesg):
        assert evaluate_matching_rule(4_000, cesg) == pytest.approx(500)

    def test_zero_and_negative_contribution(self, cesg):
        assert evaluate_matching_rule(0, cesg) == 0.0
        assert evaluate_matching_rule(-100, cesg) == 0.0

    def test_cap_applies(self):
        rule = ThresholdRule(threshold=10_000, rate=0.5, cap=1_000)
        assert evaluate_matching_rule(5_000, rule) == 1_000
