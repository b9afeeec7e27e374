"""
Government benefits module for CanFin.

Purpose
-------
Old Age Security and Guaranteed Income Supplement amounts, expressed
through the shared threshold evaluator:

- OAS: residency proration, deferral boost (65-70), 75+ rate, and the
  recovery tax (claw-back above the net income threshold).
- GIS / Allowance: monthly maximum reduced linearly with the income test,
  with a hard eligibility cut at the annual income limit.
- estimate_oas_gis: the OAS/GIS calculator (current entitlement plus
  deferral scenarios 65-70).

Formulas
--------
    boost      = min(12·(start_age − 65)·deferral_rate, max_boost)
    oas_gross  = base_monthly · (1 + boost) · min(years / 40, 1)
    recovery   = min(0.15 · max(0, income − threshold), 12·oas_gross)
    gis        = max(0, gis_max − phase_rate · income_test / 12)   (income_test < limit)

Couples have their income test phased at half the rate.

Example
-------
>>> from canfin.config import OASGISInputs
>>> estimate = estimate_oas_gis(OASGISInputs(current_age=66, net_income=20_000))
>>> round(estimate.net_oas_monthly, 2)
727.67
"""

from __future__ import annotations

from dataclasses import dataclass
import math
from typing import Optional, Tuple

from .config import OASGISInputs
from .constants import MONTHS_PER_YEAR, OAS_BASE_AGE
from .reference import GISParameters, OASParameters, TaxYearData, load_tax_year
from .thresholds import ThresholdRule, evaluate_threshold_rule, recovery_amount
from .utils import non_negative

__all__ = [
    "oas_recovery_rule",
    "oas_deferral_boost",
    "oas_monthly_amount",
    "oas_recovery_tax",
    "gis_monthly",
    "allowance_monthly",
    "DeferralScenario",
    "OASGISEstimate",
    "estimate_oas_gis",
]

OAS_ESTIMATE_MIN_AGE = 55
OAS_ESTIMATE_MAX_AGE = 85
OAS_SUPPLEMENT_AGE = 75
ALLOWANCE_MIN_AGE = 60
LIFETIME_HORIZON_AGE = 90
BREAK_EVEN_CUTOFF_AGE = 100
COUPLE_PHASE_FACTOR = 0.5


# ---------------------------------------------------------------------------
# OAS
# ---------------------------------------------------------------------------

def oas_recovery_rule(data: TaxYearData) -> ThresholdRule:
    """Recovery tax rule (threshold, 15% rate) for the tax year."""
    return data.oas.recovery


def oas_deferral_boost(start_age: int, params: OASParameters) -> float:
    """
    Permanent increase for starting OAS after 65.

    Examples
    --------
    >>> params = load_tax_year(2025).oas
    >>> oas_deferral_boost(65, params), round(oas_deferral_boost(70, params), 4)
    (0.0, 0.36)
    """
    start = min(int(start_age), params.max_deferral_age)
    months = max(0, start - OAS_BASE_AGE) * MONTHS_PER_YEAR
    return min(months * params.deferral_rate_per_month, params.max_deferral_boost)


def oas_monthly_amount(
    params: OASParameters,
    *,
    age: int,
    start_age: int = OAS_BASE_AGE,
    years_in_canada: Optional[int] = None,
) -> float:
    """
    Gross monthly OAS before the recovery tax.

    Parameters
    ----------
    params : OASParameters
        Reference amounts.
    age : int
        Recipient's current age (75+ uses the higher base amount).
    start_age : int, default 65
        Age OAS starts (deferral boost up to 70).
    years_in_canada : int, optional
        Residency after 18; ``None`` assumes full residency.

    Returns
    -------
    float
        Monthly amount; 0 before ``start_age``.
    """
    if age < start_age:
        return 0.0
    base = params.full_monthly_75_plus if age >= OAS_SUPPLEMENT_AGE else params.full_monthly
    years = params.full_residency_years if years_in_canada is None else years_in_canada
    proration = min(max(0, years) / params.full_residency_years, 1.0)
    return base * (1.0 + oas_deferral_boost(start_age, params)) * proration


def oas_recovery_tax(net_income: float, annual_oas: float, params: OASParameters) -> float:
    """Annual OAS recovery tax, never more than the OAS received."""
    return recovery_amount(net_income, params.recovery, annual_oas)


# ---------------------------------------------------------------------------
# GIS / Allowance
# ---------------------------------------------------------------------------

def _phase_out(monthly_max: float, annual_income: float, rate: float, limit: float) -> float:
    if annual_income >= limit:
        return 0.0
    rule = ThresholdRule(threshold=0.0, rate=rate / MONTHS_PER_YEAR)
    return evaluate_threshold_rule(annual_income, rule, monthly_max)


def gis_monthly(income_test: float, marital_status: str, params: GISParameters) -> float:
    """
    Monthly GIS for the OAS recipient.

    Parameters
    ----------
    income_test : float
        Annual income for the GIS test (own income excluding OAS for
        singles, combined income for couples).
    marital_status : {"single", "widowed", "couple_both_oas", "couple_one_oas"}
    params : GISParameters

    Returns
    -------
    float
        Monthly supplement, 0 at or above the income limit.

    Examples
    --------
    >>> params = load_tax_year(2025).gis
    >>> gis_monthly(0, "single", params)
    1057.01
    >>> gis_monthly(30_000, "single", params)
    0.0
    """
    income = non_negative(income_test)
    if marital_status in ("single", "widowed"):
        return _phase_out(params.single_max, income, params.phase_out_rate, params.single_threshold)
    rate = params.phase_out_rate * COUPLE_PHASE_FACTOR
    if marital_status == "couple_both_oas":
        return _phase_out(params.couple_both_oas_max, income, rate, params.couple_threshold)
    if marital_status == "couple_one_oas":
        return _phase_out(params.couple_one_oas_max, income, rate, params.couple_threshold)
    raise ValueError(f"Unknown marital status {marital_status!r}")


def allowance_monthly(
    income_test: float,
    marital_status: str,
    params: GISParameters,
    *,
    age: Optional[int] = None,
    partner_age: Optional[int] = None,
) -> float:
    """
    Allowance paid to a 60-64 spouse of a GIS recipient, or the survivor
    Allowance for a widowed 60-64 applicant.

    Returns 0 when neither applies.
    """
    income = non_negative(income_test)
    if marital_status == "couple_both_oas":
        if partner_age is not None and ALLOWANCE_MIN_AGE <= partner_age < OAS_BASE_AGE:
            rate = params.phase_out_rate * COUPLE_PHASE_FACTOR
            rule = ThresholdRule(threshold=0.0, rate=rate / MONTHS_PER_YEAR)
            return evaluate_threshold_rule(income, rule, params.allowance_max)
        return 0.0
    if marital_status == "widowed" and age is not None and ALLOWANCE_MIN_AGE <= age < OAS_BASE_AGE:
        rule = ThresholdRule(threshold=0.0, rate=params.phase_out_rate / MONTHS_PER_YEAR)
        return evaluate_threshold_rule(income, rule, params.survivor_allowance_max)
    return 0.0


# ---------------------------------------------------------------------------
# OAS / GIS estimate
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class DeferralScenario:
    """
    OAS outcome for one start age.

    Attributes
    ----------
    start_age : int
    boost : float
        Deferral increase (fraction).
    monthly, annual : float
        Net OAS after the recovery tax.
    break_even_age : float, optional
        Age at which cumulative payments overtake starting at 65;
        None when never reached before 100 (and for 65 itself).
    lifetime_to_90 : float
        Net OAS received from ``start_age`` to 90.
    """
    start_age: int
    boost: float
    monthly: float
    annual: float
    break_even_age: Optional[float]
    lifetime_to_90: float


@dataclass(frozen=True)
class OASGISEstimate:
    """Result of :func:`estimate_oas_gis` (monthly amounts unless noted)."""
    proration: float
    is_full_oas: bool
    base_monthly: float
    deferral_boost: float
    gross_oas_monthly: float
    clawback_monthly: float
    clawback_annual: float
    net_oas_monthly: float
    fully_clawed_back: bool
    gis_income_test: float
    gis_monthly: float
    allowance_monthly: float
    cpp_monthly: float
    deferral_scenarios: Tuple[DeferralScenario, ...]

    @property
    def total_monthly(self) -> float:
        return self.net_oas_monthly + self.gis_monthly + self.allowance_monthly + self.cpp_monthly

    @property
    def total_annual(self) -> float:
        return self.total_monthly * MONTHS_PER_YEAR

    def __repr__(self) -> str:
        return (
            f"OASGISEstimate(oas=${self.net_oas_monthly:,.2f}/mo, gis=${self.gis_monthly:,.2f}/mo, "
            f"total=${self.total_monthly:,.2f}/mo)"
        )


def _net_after_recovery(gross_monthly: float, income: float, params: OASParameters) -> float:
    annual = gross_monthly * MONTHS_PER_YEAR
    return max(0.0, gross_monthly - oas_recovery_tax(income, annual, params) / MONTHS_PER_YEAR)


def _deferral_scenarios(base_monthly: float, proration: float, income: float,
                        params: OASParameters) -> Tuple[DeferralScenario, ...]:
    scenarios = []
    for start in range(OAS_BASE_AGE, params.max_deferral_age + 1):
        boost = oas_deferral_boost(start, params)
        gross = base_monthly * (1.0 + boost) * proration
        net = _net_after_recovery(gross, income, params)
        # Recovery at the deferred amount, applied to the 65 start for comparison
        clawback = gross - net
        base_net = max(0.0, base_monthly * proration - clawback)
        gain = net - base_net
        missed = base_net * (start - OAS_BASE_AGE) * MONTHS_PER_YEAR
        break_even = None
        if gain > 0:
            age = start + math.ceil(missed / gain) / MONTHS_PER_YEAR
            if age < BREAK_EVEN_CUTOFF_AGE:
                break_even = age
        scenarios.append(DeferralScenario(
            start_age=start,
            boost=boost,
            monthly=net,
            annual=net * MONTHS_PER_YEAR,
            break_even_age=break_even,
            lifetime_to_90=net * MONTHS_PER_YEAR * max(0, LIFETIME_HORIZON_AGE - start),
        ))
    return tuple(scenarios)


def estimate_oas_gis(
    inputs: OASGISInputs,
    data: Optional[TaxYearData] = None,
) -> Optional[OASGISEstimate]:
    """
    Estimate OAS, GIS and Allowance for one applicant.

    Parameters
    ----------
    inputs : OASGISInputs
        Applicant details. ``current_age`` (55-85) and ``net_income`` are
        required; 0 is a valid income.
    data : TaxYearData, optional
        Reference data (default: ``inputs.tax_year``).

    Returns
    -------
    OASGISEstimate or None
        None while required inputs are missing or out of range.

    Notes
    -----
    - GIS income test = net income less the net OAS received; couples add
      the partner's income.
    - The recovery tax is computed on net income, including OAS.
    """
    age = inputs.current_age
    if age is None or not OAS_ESTIMATE_MIN_AGE <= age <= OAS_ESTIMATE_MAX_AGE:
        return None
    if inputs.net_income is None:
        return None

    data = data if data is not None else load_tax_year(inputs.tax_year)
    oas = data.oas
    income = inputs.net_income
    years = oas.full_residency_years if inputs.years_in_canada is None else inputs.years_in_canada
    proration = min(years / oas.full_residency_years, 1.0)

    base_monthly = oas.full_monthly_75_plus if age >= OAS_SUPPLEMENT_AGE else oas.full_monthly
    boost = oas_deferral_boost(inputs.start_age, oas)
    gross = base_monthly * (1.0 + boost) * proration
    clawback_annual = oas_recovery_tax(income, gross * MONTHS_PER_YEAR, oas)
    net_oas = max(0.0, gross - clawback_annual / MONTHS_PER_YEAR)

    income_test = max(0.0, income - net_oas * MONTHS_PER_YEAR)
    status = inputs.marital_status
    if status in ("couple_both_oas", "couple_one_oas"):
        income_test_gis = income_test + non_negative(inputs.partner_income)
    else:
        income_test_gis = income_test

    return OASGISEstimate(
        proration=proration,
        is_full_oas=years >= oas.full_residency_years,
        base_monthly=base_monthly,
        deferral_boost=boost,
        gross_oas_monthly=gross,
        clawback_monthly=clawback_annual / MONTHS_PER_YEAR,
        clawback_annual=clawback_annual,
        net_oas_monthly=net_oas,
        fully_clawed_back=gross > 0 and net_oas == 0.0,
        gis_income_test=income_test_gis,
        gis_monthly=gis_monthly(income_test_gis, status, data.gis),
        allowance_monthly=allowance_monthly(
            income_test_gis, status, data.gis, age=age, partner_age=inputs.partner_age
        ),
        cpp_monthly=non_negative(inputs.cpp_monthly),
        deferral_scenarios=_deferral_scenarios(base_monthly, proration, income, oas),
    )
