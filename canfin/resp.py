"""
RESP growth calculator for CanFin.

Purpose
-------
Projects a Registered Education Savings Plan from the child's current age
until contributions end (age 18) with the government grants paid on
contributions:

- CESG: 20% on the first $2,500 per year (max $500/yr, $7,200 lifetime)
- A-CESG: extra 20% / 10% on the first $500 for low / middle family income
- CLB: $500 at birth then $100/yr to 15 for low income families, no
  contribution required ($2,000 lifetime)
- QESI (Quebec): 10% on the first $2,500 (max $250/yr, $3,600 lifetime)

Grant amounts and income bands come from the reference data; this module
only decides eligibility and wires the grants into the projection. A
second run through the scenario driver shows the balance when
contributing $2,500 per year to collect the full CESG.

Example
-------
>>> from canfin.config import RESPInputs
>>> result = calculate_resp(RESPInputs(child_age=0, annual_contribution=2_500))
>>> result.years_left, round(result.grant_totals["CESG"])
(18, 7200)
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

from .config import GrantConfig, RESPInputs
from .constants import RESP_MAX_CHILD_AGE
from .projection import (
    AccountSpec,
    GrantRule,
    PeriodRow,
    ProjectionParameters,
    ProjectionResult,
    summarize,
)
from .reference import RESPParameters, TaxYearData, load_tax_year
from .scenario import ParameterOverride, project_scenarios
from .thresholds import ThresholdRule
from .utils import monthly_to_annual_amount, non_negative

__all__ = [
    "RESP_ACCOUNT",
    "grant_rule",
    "resp_grants",
    "RESPResult",
    "resp_parameters",
    "calculate_resp",
]

RESP_ACCOUNT = "RESP"
MAX_CESG_SCENARIO = "Maximum CESG"
MAX_CESG_CONTRIBUTION = 2_500.0
BASIC_GRANT = "CESG"


def grant_rule(config: GrantConfig) -> GrantRule:
    """Translate a reference-data grant into an engine GrantRule."""
    match = None
    if config.rate > 0:
        match = ThresholdRule(
            threshold=config.eligible_contribution,
            rate=config.rate,
            cap=config.annual_max,
        )
    return GrantRule(
        name=config.name,
        match=match,
        fixed_amount=config.fixed_amount,
        initial_age=config.initial_age,
        initial_amount=config.initial_amount,
        max_age=config.max_age,
        lifetime_cap=config.lifetime_max,
    )


def _eligible(config: GrantConfig, family_income: float, province: str) -> bool:
    if config.province is not None and config.province != province:
        return False
    if config.min_family_income is not None and not family_income > config.min_family_income:
        return False
    if config.max_family_income is not None and family_income > config.max_family_income:
        return False
    return True


def resp_grants(
    family_income: Optional[float],
    province: str,
    params: RESPParameters,
) -> Tuple[GrantRule, ...]:
    """
    Grants the beneficiary qualifies for.

    Parameters
    ----------
    family_income : float, optional
        Adjusted family net income; missing means 0, which only keeps the
        income-free CESG.
    province : str
        Province code (QESI is Quebec only).
    params : RESPParameters

    Examples
    --------
    >>> params = load_tax_year(2025).resp
    >>> [g.name for g in resp_grants(40_000, "QC", params)]
    ['CESG', 'A-CESG low', 'CLB', 'QESI']
    >>> [g.name for g in resp_grants(None, "ON", params)]
    ['CESG']
    """
    income = non_negative(family_income)
    return tuple(
        grant_rule(g) for g in params.grants if _eligible(g, income, province.upper())
    )


@dataclass(frozen=True)
class RESPResult:
    """
    Output of :func:`calculate_resp`.

    Attributes
    ----------
    rows : list of PeriodRow
        One row per year of contributions (child age to 17).
    summary : ProjectionResult
    max_cesg : ProjectionResult
        Same plan contributing $2,500/yr with the basic CESG only.
    """
    inputs: RESPInputs
    rows: List[PeriodRow]
    summary: ProjectionResult
    max_cesg: ProjectionResult
    annual_contribution: float
    years_left: int
    lifetime_contribution_limit: float
    annual_education_cost: float
    education_years: int

    @property
    def final_balance(self) -> float:
        return self.summary.final_balance

    @property
    def total_invested(self) -> float:
        """Opening balance plus all contributions."""
        return self.summary.opening_balance + self.summary.total_contributed

    @property
    def grant_totals(self) -> Dict[str, float]:
        return dict(self.summary.grant_totals)

    @property
    def total_grants(self) -> float:
        return self.summary.total_grants

    @property
    def total_growth(self) -> float:
        return self.summary.total_growth

    @property
    def grant_boost(self) -> float:
        """Grants as a fraction of the money invested."""
        return self.total_grants / self.total_invested if self.total_invested > 0 else 0.0

    @property
    def education_cost_total(self) -> float:
        return self.annual_education_cost * self.education_years

    @property
    def years_funded(self) -> float:
        """Years of post-secondary costs the final balance covers."""
        if self.annual_education_cost <= 0:
            return 0.0
        return self.final_balance / self.annual_education_cost

    @property
    def remaining_contribution_room(self) -> float:
        return max(0.0, self.lifetime_contribution_limit - self.summary.total_contributed)


def resp_parameters(inputs: RESPInputs, data: TaxYearData) -> ProjectionParameters:
    """Projection from the child's age to the last contribution year."""
    if inputs.use_monthly:
        contribution = monthly_to_annual_amount(inputs.monthly_contribution)
    else:
        contribution = non_negative(inputs.annual_contribution)
    account = AccountSpec(
        name=RESP_ACCOUNT,
        opening_balance=non_negative(inputs.current_balance),
        growth_rate=inputs.return_rate,
        contribution=contribution,
        taxable_withdrawals=False,
        grants=resp_grants(inputs.family_income, inputs.province, data.resp),
    )
    return ProjectionParameters.age_range(
        inputs.child_age,
        data.resp.contribution_end_age - 1,
        accounts=(account,),
    )


def calculate_resp(
    inputs: RESPInputs,
    data: Optional[TaxYearData] = None,
) -> Optional[RESPResult]:
    """
    Project RESP growth with grants.

    Parameters
    ----------
    inputs : RESPInputs
        ``child_age`` (0-17) is required, plus a positive contribution or
        current balance.
    data : TaxYearData, optional
        Reference data (default: ``inputs.tax_year``).

    Returns
    -------
    RESPResult or None
        None while the required inputs are missing or out of range.
    """
    if inputs.child_age is None or inputs.child_age > RESP_MAX_CHILD_AGE:
        return None

    data = data if data is not None else load_tax_year(inputs.tax_year)
    params = resp_parameters(inputs, data)
    account = params.account(RESP_ACCOUNT)
    if account.contribution <= 0 and account.opening_balance <= 0:
        return None

    cesg_only = tuple(
        grant_rule(g) for g in data.resp.grants if g.name == BASIC_GRANT
    )
    schedules = project_scenarios(params, [
        ParameterOverride(name=RESP_ACCOUNT),
        ParameterOverride(
            name=MAX_CESG_SCENARIO,
            account_changes={RESP_ACCOUNT: {
                "contribution": MAX_CESG_CONTRIBUTION,
                "grants": cesg_only,
            }},
        ),
    ])
    rows = schedules[RESP_ACCOUNT]
    return RESPResult(
        inputs=inputs,
        rows=rows,
        summary=summarize(rows, name=RESP_ACCOUNT),
        max_cesg=summarize(schedules[MAX_CESG_SCENARIO], name=MAX_CESG_SCENARIO),
        annual_contribution=account.contribution,
        years_left=params.periods,
        lifetime_contribution_limit=data.resp.lifetime_contribution_limit,
        annual_education_cost=data.resp.annual_education_cost,
        education_years=data.resp.education_years,
    )
