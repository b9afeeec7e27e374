"""
TFSA vs RRSP comparison for CanFin.

Purpose
-------
Compares putting the same pre-tax dollars into a TFSA or an RRSP every
year for a number of years:

- TFSA: funded with after-tax dollars, ``contribution · (1 − marginal)``,
  withdrawn tax-free.
- RRSP: the full contribution goes in; the final balance is taxed at the
  retirement rate.
- RRSP + refund: as RRSP, with each year's tax refund
  (``contribution · marginal``) invested alongside.

The current marginal rate comes from the bracket tables at the entered
income. Without an explicit retirement rate the estimate is
``max(15%, 60% × current marginal)``. The three plans are independent
projections run through the scenario driver.

Example
-------
>>> from canfin.config import TFSAvsRRSPInputs
>>> result = compare_tfsa_rrsp(TFSAvsRRSPInputs(annual_income=80_000, contribution=5_000))
>>> result.winner
'RRSP'
>>> round(result.current_rate, 4)
0.2965
"""

from __future__ import annotations

from dataclasses import dataclass
import logging
from typing import Dict, List, Optional

from .config import TFSAvsRRSPInputs
from .projection import AccountSpec, PeriodRow, ProjectionParameters, ProjectionResult, summarize
from .reference import TaxYearData, load_tax_year
from .scenario import ParameterOverride, break_even_period, project_scenarios
from .tax import IncomeTaxCalculator
from .utils import non_negative

__all__ = [
    "TFSA",
    "RRSP",
    "RRSP_WITH_REFUND",
    "ComparisonYear",
    "TFSAvsRRSPResult",
    "estimate_retirement_rate",
    "compare_tfsa_rrsp",
]

logger = logging.getLogger(__name__)

TFSA = "TFSA"
RRSP = "RRSP"
RRSP_WITH_REFUND = "RRSP (+ refund)"

SAVINGS_ACCOUNT = "Savings"
REFUND_ACCOUNT = "Refund"

MIN_RETIREMENT_RATE = 0.15
RETIREMENT_RATE_RATIO = 0.60
MILESTONE_YEARS = (5, 10, 15, 20, 25, 30)


def estimate_retirement_rate(current_rate: float) -> float:
    """
    Default marginal rate on RRSP withdrawals.

    Examples
    --------
    >>> round(estimate_retirement_rate(0.2965), 4)
    0.1779
    >>> estimate_retirement_rate(0.20)
    0.15
    """
    return max(MIN_RETIREMENT_RATE, current_rate * RETIREMENT_RATE_RATIO)


@dataclass(frozen=True)
class ComparisonYear:
    """Balances at the end of one year of saving."""
    year: int
    tfsa_balance: float
    rrsp_balance: float
    rrsp_after_tax: float
    rrsp_plus_refund: float

    @property
    def tfsa_ahead(self) -> bool:
        return self.tfsa_balance > self.rrsp_after_tax


@dataclass(frozen=True)
class TFSAvsRRSPResult:
    """
    Output of :func:`compare_tfsa_rrsp`.

    Attributes
    ----------
    current_rate : float
        Combined marginal rate at the entered income.
    retirement_rate : float
        Rate applied to the final RRSP balance.
    tfsa, rrsp, rrsp_refund : ProjectionResult
        Summary of each plan; ``rrsp_refund`` includes the refund account.
    years : list of ComparisonYear
    """
    inputs: TFSAvsRRSPInputs
    current_rate: float
    retirement_rate: float
    after_tax_contribution: float
    annual_refund: float
    tfsa: ProjectionResult
    rrsp: ProjectionResult
    rrsp_refund: ProjectionResult
    refund_invested: float
    years: List[ComparisonYear]

    @property
    def tfsa_balance(self) -> float:
        return self.tfsa.final_balance

    @property
    def tfsa_after_tax(self) -> float:
        return self.tfsa.final_balance

    @property
    def rrsp_balance(self) -> float:
        return self.rrsp.final_balance

    @property
    def rrsp_after_tax(self) -> float:
        return self.rrsp_balance * (1.0 - self.retirement_rate)

    @property
    def rrsp_tax_on_withdrawal(self) -> float:
        return self.rrsp_balance * self.retirement_rate

    @property
    def rrsp_plus_refund(self) -> float:
        return self.rrsp_after_tax + self.refund_invested

    @property
    def cumulative_refund(self) -> float:
        return self.annual_refund * len(self.years)

    @property
    def winner(self) -> str:
        """TFSA on ties."""
        return TFSA if self.tfsa_after_tax >= self.rrsp_after_tax else RRSP

    @property
    def refund_winner(self) -> str:
        return TFSA if self.tfsa_after_tax >= self.rrsp_plus_refund else RRSP_WITH_REFUND

    @property
    def difference(self) -> float:
        return abs(self.tfsa_after_tax - self.rrsp_after_tax)

    @property
    def difference_with_refund(self) -> float:
        return abs(self.tfsa_after_tax - self.rrsp_plus_refund)

    @property
    def break_even_rate(self) -> float:
        """Retirement rate at which both plans end with the same after-tax value."""
        if self.rrsp_balance <= 0:
            return 0.0
        return 1.0 - self.tfsa_after_tax / self.rrsp_balance

    @property
    def rrsp_overtakes_year(self) -> Optional[int]:
        """First year (1-based) the RRSP's after-tax value exceeds the TFSA."""
        period = break_even_period(
            [y.rrsp_after_tax for y in self.years],
            [y.tfsa_balance for y in self.years],
        )
        return None if period is None else period + 1

    @property
    def milestones(self) -> Dict[int, ComparisonYear]:
        return {y.year: y for y in self.years if y.year in MILESTONE_YEARS}


def _comparison_years(
    schedules: Dict[str, List[PeriodRow]],
    retirement_rate: float,
) -> List[ComparisonYear]:
    years = []
    for tfsa, rrsp, refund in zip(schedules[TFSA], schedules[RRSP], schedules[RRSP_WITH_REFUND]):
        rrsp_after_tax = rrsp.closing_balance * (1.0 - retirement_rate)
        years.append(ComparisonYear(
            year=tfsa.period_index + 1,
            tfsa_balance=tfsa.closing_balance,
            rrsp_balance=rrsp.closing_balance,
            rrsp_after_tax=rrsp_after_tax,
            rrsp_plus_refund=rrsp_after_tax + refund.account(REFUND_ACCOUNT).closing,
        ))
    return years


def compare_tfsa_rrsp(
    inputs: TFSAvsRRSPInputs,
    data: Optional[TaxYearData] = None,
) -> Optional[TFSAvsRRSPResult]:
    """
    Compare TFSA and RRSP savings after tax.

    Parameters
    ----------
    inputs : TFSAvsRRSPInputs
        ``annual_income``, ``contribution``, ``return_rate`` and ``years``
        must all be positive.
    data : TaxYearData, optional
        Reference data (default: ``inputs.tax_year``).

    Returns
    -------
    TFSAvsRRSPResult or None
        None while the required inputs are missing or not positive.
    """
    income = non_negative(inputs.annual_income)
    contribution = non_negative(inputs.contribution)
    if income <= 0 or contribution <= 0 or inputs.return_rate <= 0 or inputs.years <= 0:
        return None

    data = data if data is not None else load_tax_year(inputs.tax_year)
    calc = IncomeTaxCalculator.for_province(inputs.province, data=data)
    current_rate = calc.marginal_rate(income)
    retirement_rate = (
        inputs.retirement_rate
        if inputs.retirement_rate is not None
        else estimate_retirement_rate(current_rate)
    )
    after_tax_contribution = contribution * (1.0 - current_rate)
    annual_refund = contribution * current_rate

    # Growth and withdrawals are not taxed inside any of the plans;
    # the retirement rate applies to the final RRSP balance.
    savings = AccountSpec(
        name=SAVINGS_ACCOUNT,
        growth_rate=inputs.return_rate,
        contribution=contribution,
    )
    refund = AccountSpec(
        name=REFUND_ACCOUNT,
        growth_rate=inputs.return_rate,
        contribution=annual_refund,
        taxable_withdrawals=False,
    )
    base = ProjectionParameters(start_age=0, periods=inputs.years, accounts=(savings,))
    schedules = project_scenarios(base, [
        ParameterOverride(
            name=TFSA,
            account_changes={SAVINGS_ACCOUNT: {
                "contribution": after_tax_contribution,
                "taxable_withdrawals": False,
            }},
        ),
        ParameterOverride(name=RRSP),
        ParameterOverride(name=RRSP_WITH_REFUND, changes={"accounts": (savings, refund)}),
    ])

    refund_rows = schedules[RRSP_WITH_REFUND]
    result = TFSAvsRRSPResult(
        inputs=inputs,
        current_rate=current_rate,
        retirement_rate=retirement_rate,
        after_tax_contribution=after_tax_contribution,
        annual_refund=annual_refund,
        tfsa=summarize(schedules[TFSA], name=TFSA),
        rrsp=summarize(schedules[RRSP], name=RRSP),
        rrsp_refund=summarize(refund_rows, name=RRSP_WITH_REFUND),
        refund_invested=refund_rows[-1].account(REFUND_ACCOUNT).closing,
        years=_comparison_years(schedules, retirement_rate),
    )
    logger.debug(
        "TFSA vs RRSP: tfsa=%.0f rrsp_after_tax=%.0f winner=%s",
        result.tfsa_after_tax, result.rrsp_after_tax, result.winner,
    )
    return result
