"""
Unit tests for retirement.py.

Tests the household retirement income projection: growth to retirement,
benefit start ages, TFSA drawdown, spouse income and pension splitting.
"""

import pytest

from canfin.config import RetirementIncomeInputs, SpouseInputs
from canfin.retirement import calculate_retirement_income, retirement_parameters


@pytest.fixture
def inputs() -> RetirementIncomeInputs:
    return RetirementIncomeInputs(
        current_age=60,
        retirement_age=65,
        rrif_balance=400_000,
        cpp_monthly=900,
        oas_monthly=727.67,
    )


class TestCalculateRetirementIncome:
    """Tests for calculate_retirement_income."""

    def test_schedule_span(self, inputs, data):
        result = calculate_retirement_income(inputs, data)

        assert result.rows[0].age == 65
        assert result.rows[-1].age == 95
        assert len(result.rows) == 31

    def test_balances_grow_to_retirement(self, inputs, data):
        result = calculate_retirement_income(inputs, data)

        assert result.rrif_at_retirement == pytest.approx(400_000 * 1.05 ** 5)
        assert result.tfsa_at_retirement == 0.0
        assert result.rows[0].opening_balance == pytest.approx(result.rrif_at_retirement)

    def test_first_year_income(self, inputs, data, ontario):
        first = calculate_retirement_income(inputs, data).first_year
        rrif_w = 400_000 * 1.05 ** 5 * data.rrif_minimum.factor(65)
        taxable = rrif_w + 10_800 + 727.67 * 12

        assert first.withdrawal == pytest.approx(rrif_w)
        assert first.taxable_income == pytest.approx(taxable)
        assert first.tax_owed == pytest.approx(ontario.total_tax(taxable, age=65, pension_income=rrif_w))

    def test_monthly_net(self, inputs, data):
        result = calculate_retirement_income(inputs, data)
        assert result.first_year_monthly_net == pytest.approx(result.first_year.net_income / 12)

    def test_insufficient_inputs(self, data):
        assert calculate_retirement_income(RetirementIncomeInputs(current_age=60), data) is None
        assert calculate_retirement_income(RetirementIncomeInputs(retirement_age=65), data) is None

    def test_retirement_past_end_age(self, data):
        inputs = RetirementIncomeInputs(current_age=60, retirement_age=96)
        assert calculate_retirement_income(inputs, data) is None

    def test_already_retired(self, data):
        result = calculate_retirement_income(
            RetirementIncomeInputs(current_age=70, retirement_age=65, rrif_balance=100_000), data
        )

        assert result.rows[0].age == 70
        assert result.rrif_at_retirement == pytest.approx(100_000)

    def test_deferred_benefits_start_later(self, data):
        result = calculate_retirement_income(RetirementIncomeInputs(
            current_age=65, retirement_age=65, cpp_monthly=1_000, cpp_start_age=70,
        ), data)

        assert result.row_at(69).other_income == 0.0
        assert result.row_at(70).other_income == pytest.approx(12_000)

    def test_tfsa_withdrawals_are_tax_free(self, data):
        result = calculate_retirement_income(RetirementIncomeInputs(
            current_age=65, retirement_age=65, tfsa_balance=100_000, tfsa_monthly_withdrawal=1_000,
        ), data)
        first = result.first_year

        assert first.withdrawal == pytest.approx(12_000)
        assert first.taxable_income == 0.0
        assert first.net_income == pytest.approx(12_000)

    def test_first_clawback_age(self, data):
        result = calculate_retirement_income(RetirementIncomeInputs(
            current_age=65, retirement_age=65, pension_monthly=10_000, oas_monthly=727.67,
        ), data)
        assert result.first_clawback_age == 65

    def test_no_clawback(self, inputs, data):
        assert calculate_retirement_income(inputs, data).first_clawback_age is None

    def test_milestones(self, inputs, data):
        milestones = calculate_retirement_income(inputs, data).milestones

        assert milestones[75].age == 75
        assert milestones[85].age == 85

    def test_real_incomes_deflated(self, inputs, data):
        result = calculate_retirement_income(inputs, data)
        real = result.real_net_incomes

        assert real[0] == pytest.approx(result.rows[0].net_income)
        assert real[10] == pytest.approx(result.rows[10].net_income / 1.025 ** 10)


class TestSpouse:
    """Tests for the spouse's income and pension splitting."""

    @pytest.fixture
    def couple(self) -> RetirementIncomeInputs:
        return RetirementIncomeInputs(
            current_age=65,
            retirement_age=65,
            pension_monthly=5_000,
            spouse=SpouseInputs(age=63, cpp_monthly=500),
        )

    def test_spouse_ages_on_rows(self, couple, data):
        rows = calculate_retirement_income(couple, data).rows

        assert rows[0].spouse_age == 63
        assert rows[-1].spouse_age == 93

    def test_pension_split(self, couple, data):
        first = calculate_retirement_income(couple, data).first_year
        assert first.split_amount == pytest.approx(30_000)

    def test_spouse_benefits_start_at_their_age(self, couple, data):
        result = calculate_retirement_income(couple, data)

        assert result.row_at(65).other_income == pytest.approx(60_000)
        assert result.row_at(67).other_income == pytest.approx(66_000)

    def test_splitting_enabled_only_with_spouse(self, couple, inputs, data):
        assert retirement_parameters(couple, data).pension_splitting
        assert not retirement_parameters(inputs, data).pension_splitting

    def test_spouse_rrif(self, data):
        result = calculate_retirement_income(RetirementIncomeInputs(
            current_age=60, retirement_age=65,
            spouse=SpouseInputs(age=62, rrif_balance=100_000),
        ), data)

        assert result.spouse_rrif_at_retirement == pytest.approx(100_000 * 1.05 ** 5)
        assert result.first_year.account("Spouse RRIF").owner == "spouse"
