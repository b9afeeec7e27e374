"""
Retirement income calculator for CanFin.

Purpose
-------
Projects household retirement income from the retirement age to 95:

- RRIF and TFSA balances compound from today to retirement, then draw down
  (RRIF at the prescribed minimum, TFSA at a chosen tax-free amount).
- CPP and OAS start at their chosen ages; workplace pension and other
  income run for life.
- An optional spouse brings their own CPP, OAS, pension and RRIF.
- Eligible pension income is split between spouses to narrow the gap in
  taxable income; each person is taxed separately and repays OAS above
  the recovery threshold.

Example
-------
>>> from canfin.config import RetirementIncomeInputs
>>> result = calculate_retirement_income(RetirementIncomeInputs(
...     current_age=60, retirement_age=65, rrif_balance=400_000,
...     cpp_monthly=900, oas_monthly=727.67,
... ))
>>> result.rows[0].age, result.rows[-1].age
(65, 95)
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional

from .config import RetirementIncomeInputs
from .constants import MONTHS_PER_YEAR
from .projection import (
    SPOUSE,
    AccountSpec,
    IncomeStream,
    PeriodRow,
    ProjectionParameters,
    ProjectionResult,
    project,
    summarize,
)
from .reference import TaxYearData, load_tax_year
from .tax import IncomeTaxCalculator
from .utils import compound, monthly_to_annual_amount, non_negative

__all__ = [
    "RetirementIncomeResult",
    "retirement_parameters",
    "calculate_retirement_income",
]

MILESTONE_AGES = (75, 85)


@dataclass(frozen=True)
class RetirementIncomeResult:
    """
    Output of :func:`calculate_retirement_income`.

    Attributes
    ----------
    rows : list of PeriodRow
        One row per age, retirement age to end age.
    summary : ProjectionResult
    rrif_at_retirement, tfsa_at_retirement, spouse_rrif_at_retirement : float
        Balances after compounding to the retirement age.
    """
    inputs: RetirementIncomeInputs
    rows: List[PeriodRow]
    summary: ProjectionResult
    rrif_at_retirement: float
    tfsa_at_retirement: float
    spouse_rrif_at_retirement: float

    @property
    def first_year(self) -> PeriodRow:
        return self.rows[0]

    @property
    def first_year_monthly_net(self) -> float:
        return self.first_year.net_income / MONTHS_PER_YEAR

    def row_at(self, age: int) -> Optional[PeriodRow]:
        return next((r for r in self.rows if r.age == age), None)

    @property
    def milestones(self) -> dict:
        """Rows at ages 75 and 85 (None when outside the schedule)."""
        return {age: self.row_at(age) for age in MILESTONE_AGES}

    @property
    def first_clawback_age(self) -> Optional[int]:
        """First age with an OAS recovery tax, if any."""
        return next((r.age for r in self.rows if r.clawback > 0), None)

    @property
    def real_net_incomes(self) -> List[float]:
        """Net income per row in retirement-year dollars."""
        return [r.real_net_income for r in self.rows]


def retirement_parameters(
    inputs: RetirementIncomeInputs,
    data: TaxYearData,
) -> ProjectionParameters:
    """Build the drawdown projection (retirement age → end age)."""
    start = max(inputs.retirement_age, inputs.current_age)
    years_to_retirement = max(0, inputs.retirement_age - inputs.current_age)
    spouse = inputs.spouse

    accounts = [
        AccountSpec(
            name="RRIF",
            opening_balance=compound(non_negative(inputs.rrif_balance), inputs.rrif_return, years_to_retirement),
            growth_rate=inputs.rrif_return,
            withdrawal_table=data.rrif_minimum,
            pension_eligible=True,
        ),
        AccountSpec(
            name="TFSA",
            opening_balance=compound(non_negative(inputs.tfsa_balance), inputs.tfsa_return, years_to_retirement),
            growth_rate=inputs.tfsa_return,
            fixed_withdrawal=monthly_to_annual_amount(inputs.tfsa_monthly_withdrawal),
            taxable_withdrawals=False,
        ),
    ]
    streams = [
        IncomeStream("CPP", monthly_to_annual_amount(inputs.cpp_monthly), start_age=inputs.cpp_start_age),
        IncomeStream("OAS", monthly_to_annual_amount(inputs.oas_monthly), start_age=inputs.oas_start_age, oas=True),
        IncomeStream("Pension", monthly_to_annual_amount(inputs.pension_monthly), pension_eligible=True),
        IncomeStream("Other income", monthly_to_annual_amount(inputs.other_monthly)),
    ]

    spouse_age = None
    if spouse is not None and spouse.age is not None:
        spouse_age = spouse.age
        accounts.append(AccountSpec(
            name="Spouse RRIF",
            owner=SPOUSE,
            opening_balance=compound(non_negative(spouse.rrif_balance), inputs.rrif_return, years_to_retirement),
            growth_rate=inputs.rrif_return,
            withdrawal_table=data.rrif_minimum,
            pension_eligible=True,
        ))
        streams += [
            IncomeStream("Spouse CPP", monthly_to_annual_amount(spouse.cpp_monthly),
                         start_age=spouse.cpp_start_age, owner=SPOUSE),
            IncomeStream("Spouse OAS", monthly_to_annual_amount(spouse.oas_monthly),
                         start_age=spouse.oas_start_age, owner=SPOUSE, oas=True),
            IncomeStream("Spouse pension", monthly_to_annual_amount(spouse.pension_monthly),
                         owner=SPOUSE, pension_eligible=True),
        ]

    return ProjectionParameters.age_range(
        start,
        inputs.end_age,
        accounts=tuple(accounts),
        income_streams=tuple(s for s in streams if s.annual_amount > 0),
        spouse_start_age=spouse_age,
        tax_calculator=IncomeTaxCalculator.for_province(inputs.province, data=data),
        oas_recovery=data.oas.recovery,
        pension_splitting=spouse_age is not None,
        inflation_rate=inputs.inflation_rate,
    )


def calculate_retirement_income(
    inputs: RetirementIncomeInputs,
    data: Optional[TaxYearData] = None,
) -> Optional[RetirementIncomeResult]:
    """
    Project retirement income from the retirement age to ``end_age``.

    Parameters
    ----------
    inputs : RetirementIncomeInputs
        ``current_age`` and ``retirement_age`` are required; a retirement
        age at or below the current age means already retired.
    data : TaxYearData, optional
        Reference data (default: ``inputs.tax_year``).

    Returns
    -------
    RetirementIncomeResult or None
        None while required inputs are missing or the retirement age is
        past ``end_age``.
    """
    if inputs.current_age is None or inputs.retirement_age is None:
        return None
    if max(inputs.retirement_age, inputs.current_age) > inputs.end_age:
        return None

    data = data if data is not None else load_tax_year(inputs.tax_year)
    params = retirement_parameters(inputs, data)
    rows = project(params)
    spouse_rrif = params.account("Spouse RRIF").opening_balance if params.has_spouse else 0.0
    return RetirementIncomeResult(
        inputs=inputs,
        rows=rows,
        summary=summarize(rows, name="Retirement"),
        rrif_at_retirement=params.account("RRIF").opening_balance,
        tfsa_at_retirement=params.account("TFSA").opening_balance,
        spouse_rrif_at_retirement=spouse_rrif,
    )
