"""
RRIF drawdown calculator for CanFin.

Purpose
-------
Projects a Registered Retirement Income Fund from the current age to a
chosen horizon (90, 95 or 100): mandatory minimum withdrawals from the
prescribed factor table, optional extra withdrawals, income tax on the
withdrawals plus other income (CPP, OAS, other), and the OAS recovery tax.

Spouse-age election
-------------------
When elected and the spouse is younger, the factor is looked up at
``age + (spouse_age − current_age)``, never below 55. This lowers the
minimums and leaves more in the fund.

Example
-------
>>> from canfin.config import RRIFInputs
>>> result = calculate_rrif(RRIFInputs(current_age=71, rrif_balance=500_000))
>>> round(result.first_year.minimum_withdrawal)
26400
>>> round(result.rows[0].closing_balance)
497280
>>> calculate_rrif(RRIFInputs(current_age=50, rrif_balance=500_000)) is None
True
"""

from __future__ import annotations

from dataclasses import dataclass
import logging
from typing import Dict, List, Optional, Tuple

from .config import RRIFInputs
from .constants import MONTHS_PER_YEAR, OAS_BASE_AGE, RRIF_MIN_AGE
from .projection import (
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
from .thresholds import recovery_amount
from .utils import monthly_to_annual_amount, non_negative

__all__ = [
    "RRIF_ACCOUNT",
    "RRIFFirstYear",
    "RRIFResult",
    "rrif_parameters",
    "calculate_rrif",
]

logger = logging.getLogger(__name__)

RRIF_ACCOUNT = "RRIF"
MILESTONE_AGES: Tuple[int, ...] = (80, 85, 90)


@dataclass(frozen=True)
class RRIFFirstYear:
    """Headline figures for the first projected year."""
    factor: float
    factor_age: int
    minimum_withdrawal: float
    withdrawal: float
    total_income: float
    tax: float
    oas_recovery: float
    marginal_rate: float

    @property
    def minimum_monthly(self) -> float:
        return self.minimum_withdrawal / MONTHS_PER_YEAR

    @property
    def after_tax_income(self) -> float:
        return self.total_income - self.tax - self.oas_recovery

    @property
    def effective_rate(self) -> float:
        """(Tax + OAS recovery) / total income."""
        if self.total_income <= 0:
            return 0.0
        return (self.tax + self.oas_recovery) / self.total_income

    @property
    def oas_recovery_triggered(self) -> bool:
        return self.oas_recovery > 0


@dataclass(frozen=True)
class RRIFResult:
    """
    Output of :func:`calculate_rrif`.

    Attributes
    ----------
    rows : list of PeriodRow
        One row per age, current age to the projection end age.
    summary : ProjectionResult
    first_year : RRIFFirstYear
    after_tax_withdrawals : tuple of float
        Per row: withdrawal less the tax and OAS recovery it causes.
    """
    inputs: RRIFInputs
    rows: List[PeriodRow]
    summary: ProjectionResult
    first_year: RRIFFirstYear
    after_tax_withdrawals: Tuple[float, ...]

    @property
    def depletion_age(self) -> Optional[int]:
        return self.summary.depletion_age

    def balance_at(self, age: int) -> float:
        """Closing balance in the year the owner is *age* (0 outside the schedule)."""
        for row in self.rows:
            if row.age == age:
                return row.closing_balance
        return 0.0

    @property
    def milestone_balances(self) -> Dict[int, float]:
        return {age: self.balance_at(age) for age in MILESTONE_AGES}


def _factor_age_offset(inputs: RRIFInputs) -> int:
    if inputs.use_spouse_age and inputs.spouse_age is not None and inputs.spouse_age < inputs.current_age:
        return inputs.spouse_age - inputs.current_age
    return 0


def rrif_parameters(inputs: RRIFInputs, data: TaxYearData) -> ProjectionParameters:
    """
    Build projection parameters for a RRIF drawdown.

    The projection runs from ``current_age`` to ``projection_end_age``
    (at least one year when the current age is already past the horizon).
    """
    calc = IncomeTaxCalculator.for_province(inputs.province, data=data)
    account = AccountSpec(
        name=RRIF_ACCOUNT,
        opening_balance=non_negative(inputs.rrif_balance),
        growth_rate=inputs.return_rate,
        withdrawal_table=data.rrif_minimum,
        factor_age_offset=_factor_age_offset(inputs),
        min_factor_age=RRIF_MIN_AGE,
        extra_withdrawal=non_negative(inputs.extra_withdrawal),
        pension_eligible=True,
    )
    streams = (
        IncomeStream("Other income", non_negative(inputs.other_income)),
        IncomeStream("CPP", monthly_to_annual_amount(inputs.cpp_monthly)),
        IncomeStream("OAS", monthly_to_annual_amount(inputs.oas_monthly), oas=True),
    )
    end_age = max(inputs.projection_end_age, inputs.current_age)
    return ProjectionParameters.age_range(
        inputs.current_age,
        end_age,
        accounts=(account,),
        income_streams=tuple(s for s in streams if s.annual_amount > 0),
        tax_calculator=calc,
        oas_recovery=data.oas.recovery,
    )


def _after_tax_withdrawal(row: PeriodRow, params: ProjectionParameters) -> float:
    w = row.withdrawal
    if w <= 0:
        return 0.0
    calc = params.tax_calculator
    pension = w if row.age >= OAS_BASE_AGE else 0.0
    tax = calc.incremental_tax(row.taxable_income - w, w, age=row.age, pension_income=pension)
    clawback = 0.0
    if row.oas_received > 0:
        rule = params.oas_recovery
        clawback = (
            recovery_amount(row.taxable_income, rule, row.oas_received)
            - recovery_amount(row.taxable_income - w, rule, row.oas_received)
        )
    return max(0.0, w - tax - clawback)


def calculate_rrif(
    inputs: RRIFInputs,
    data: Optional[TaxYearData] = None,
) -> Optional[RRIFResult]:
    """
    Project a RRIF drawdown.

    Parameters
    ----------
    inputs : RRIFInputs
        Calculator inputs; ``current_age`` >= 55 and ``rrif_balance`` > 0
        are required.
    data : TaxYearData, optional
        Reference data (default: ``inputs.tax_year``).

    Returns
    -------
    RRIFResult or None
        None while the required inputs are missing or out of range.

    Raises
    ------
    JurisdictionError
        If the province or tax year is unknown.
    """
    if inputs.current_age is None or inputs.current_age < RRIF_MIN_AGE:
        return None
    if not inputs.rrif_balance or inputs.rrif_balance <= 0:
        return None

    data = data if data is not None else load_tax_year(inputs.tax_year)
    params = rrif_parameters(inputs, data)
    rows = project(params)
    summary = summarize(rows, name=RRIF_ACCOUNT)

    first = rows[0]
    acct = first.account(RRIF_ACCOUNT)
    account_spec = params.account(RRIF_ACCOUNT)
    first_year = RRIFFirstYear(
        factor=acct.factor,
        factor_age=max(RRIF_MIN_AGE, first.age + account_spec.factor_age_offset),
        minimum_withdrawal=acct.minimum_withdrawal,
        withdrawal=acct.withdrawal,
        total_income=first.taxable_income,
        tax=first.tax_owed,
        oas_recovery=first.clawback,
        marginal_rate=first.marginal_rate,
    )
    logger.debug("RRIF projection: %r", summary)
    return RRIFResult(
        inputs=inputs,
        rows=rows,
        summary=summary,
        first_year=first_year,
        after_tax_withdrawals=tuple(_after_tax_withdrawal(r, params) for r in rows),
    )
