"""
Year-by-year projection engine for CanFin.

Purpose
-------
One pure, deterministic engine shared by every calculator. Given an
immutable ProjectionParameters it walks the periods in order and emits
one PeriodRow per year; calculators differ only in how they build the
parameters and what they read back from the rows.

Per-period recurrence (per account)
-----------------------------------
    c_i       = contribution · (1 + contribution_growth)^i      (within contribution_periods)
    g_i       = Σ grants(age, c_i, paid_to_date)
    w_min     = opening · factor(age + factor_age_offset)
    w_i       = min(opening, w_min + extra + fixed)
    base      = opening − w_i + c_i + g_i
    closing   = max(0, base · (1 + rate)),   growth = closing − base

Per-person taxation
-------------------
    taxable   = taxable withdrawals of owned accounts + taxable streams
    split     = min(split_fraction · pension(higher), (higher − lower) / 2)
    tax       = calculator.total_tax(taxable, age, pension income)
    clawback  = recovery_amount(taxable, oas_recovery, OAS received)

Guarantees
----------
- Rows are produced in order, one per period; never mutated.
- Withdrawals never exceed the opening balance; closing balances are >= 0.
- Depleted accounts keep emitting zero slices (uniform schedule length);
  income streams and their tax keep being computed.
- Float throughout; rounding belongs to presentation.

Example
-------
>>> from canfin.reference import load_tax_year
>>> rrif = AccountSpec(
...     name="RRIF",
...     opening_balance=500_000,
...     growth_rate=0.05,
...     withdrawal_table=load_tax_year(2025).rrif_minimum,
... )
>>> rows = project(ProjectionParameters(start_age=71, periods=1, accounts=(rrif,)))
>>> round(rows[0].withdrawal, 2), round(rows[0].closing_balance, 2)
(26400.0, 497280.0)
"""

from __future__ import annotations

from dataclasses import dataclass, field
import logging
from typing import Dict, List, Mapping, Optional, Sequence, Tuple

import numpy as np
import pandas as pd

from .constants import DEFAULT_SPLIT_FRACTION, OAS_BASE_AGE
from .exceptions import ValidationError
from .reference import MinimumWithdrawalTable
from .tax import IncomeTaxCalculator
from .thresholds import ThresholdRule, evaluate_matching_rule, recovery_amount

__all__ = [
    "PRIMARY",
    "SPOUSE",
    "IncomeStream",
    "GrantRule",
    "AccountSpec",
    "ProjectionParameters",
    "AccountPeriod",
    "PeriodRow",
    "ProjectionResult",
    "project",
    "summarize",
    "schedule_frame",
]

logger = logging.getLogger(__name__)

PRIMARY = "primary"
SPOUSE = "spouse"
OWNERS = (PRIMARY, SPOUSE)


# ---------------------------------------------------------------------------
# Inputs
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class IncomeStream:
    """
    Named annual income amount active over an age window.

    Parameters
    ----------
    name : str
        Label ("CPP", "OAS", "Pension").
    annual_amount : float
        Amount per year (negative values act as 0).
    start_age : int, default 0
        First age (of the owner) the stream pays.
    end_age : int, optional
        Last age the stream pays (inclusive); None = for life.
    owner : {"primary", "spouse"}
    taxable : bool, default True
        Counts toward taxable income.
    pension_eligible : bool, default False
        Counts for the pension credit and pension splitting.
    oas : bool, default False
        Old Age Security: base amount for the recovery tax.
    """
    name: str
    annual_amount: float
    start_age: int = 0
    end_age: Optional[int] = None
    owner: str = PRIMARY
    taxable: bool = True
    pension_eligible: bool = False
    oas: bool = False

    def amount_at(self, age: Optional[int]) -> float:
        """Amount paid in the year the owner is *age* (0 outside the window)."""
        if age is None or age < self.start_age:
            return 0.0
        if self.end_age is not None and age > self.end_age:
            return 0.0
        return max(0.0, float(self.annual_amount))


@dataclass(frozen=True)
class GrantRule:
    """
    Government grant paid into an account alongside contributions.

    Parameters
    ----------
    name : str
        Label used in per-grant totals ("CESG", "CLB").
    match : ThresholdRule, optional
        Matching rule: ``threshold`` = eligible contribution,
        ``rate`` = match rate, ``cap`` = annual maximum.
    fixed_amount : float, default 0.0
        Amount paid every eligible year regardless of contributions.
    initial_age, initial_amount : optional
        Replaces ``fixed_amount`` in the year the beneficiary is ``initial_age``.
    min_age, max_age : int
        Beneficiary age window (inclusive).
    lifetime_cap : float, optional
        Maximum paid over the projection.

    Examples
    --------
    >>> cesg = GrantRule("CESG", match=ThresholdRule(2_500, 0.20, cap=500), lifetime_cap=7_200)
    >>> cesg.amount_for(age=5, contribution=2_000, paid_to_date=0.0)
    400.0
    >>> cesg.amount_for(age=5, contribution=2_000, paid_to_date=7_000)
    200.0
    """
    name: str
    match: Optional[ThresholdRule] = None
    fixed_amount: float = 0.0
    initial_age: Optional[int] = None
    initial_amount: Optional[float] = None
    min_age: int = 0
    max_age: Optional[int] = None
    lifetime_cap: Optional[float] = None

    def amount_for(self, age: int, contribution: float, paid_to_date: float) -> float:
        """Grant earned this period, after the age window and lifetime cap."""
        if age < self.min_age or (self.max_age is not None and age > self.max_age):
            return 0.0
        amount = 0.0
        if self.match is not None:
            amount += evaluate_matching_rule(contribution, self.match)
        if self.initial_age is not None and self.initial_amount is not None and age == self.initial_age:
            amount += self.initial_amount
        else:
            amount += self.fixed_amount
        if self.lifetime_cap is not None:
            amount = min(amount, max(0.0, self.lifetime_cap - paid_to_date))
        return max(0.0, amount)


@dataclass(frozen=True)
class AccountSpec:
    """
    Balance-carrying account (RRIF, TFSA, RESP, RRSP...).

    Parameters
    ----------
    name : str
        Unique within a projection.
    opening_balance : float
        Balance at the start of period 0.
    growth_rate : float
        Annual return (fraction).
    owner : {"primary", "spouse"}
        Person whose age drives factors/grants and who is taxed on
        withdrawals.
    contribution : float
        Contribution in period 0.
    contribution_growth : float
        Annual escalation of the contribution.
    contribution_periods : int, optional
        Number of periods with contributions (None = all).
    withdrawal_table : MinimumWithdrawalTable, optional
        Mandatory minimum withdrawal factors.
    factor_age_offset : int
        Added to the owner's age before the factor lookup (spouse-age election).
    min_factor_age : int, optional
        Floor on the age used for the factor lookup.
    extra_withdrawal, fixed_withdrawal : float
        Requested on top of the minimum each period.
    taxable_withdrawals : bool
        Withdrawals count toward taxable income.
    pension_eligible : bool
        Withdrawals at 65+ count as pension income (credit and splitting).
    grants : tuple of GrantRule
        Grants earned on contributions.
    """
    name: str
    opening_balance: float = 0.0
    growth_rate: float = 0.0
    owner: str = PRIMARY
    contribution: float = 0.0
    contribution_growth: float = 0.0
    contribution_periods: Optional[int] = None
    withdrawal_table: Optional[MinimumWithdrawalTable] = None
    factor_age_offset: int = 0
    min_factor_age: Optional[int] = None
    extra_withdrawal: float = 0.0
    fixed_withdrawal: float = 0.0
    taxable_withdrawals: bool = True
    pension_eligible: bool = False
    grants: Tuple[GrantRule, ...] = ()

    def contribution_at(self, period: int) -> float:
        if self.contribution_periods is not None and period >= self.contribution_periods:
            return 0.0
        return max(0.0, self.contribution) * (1.0 + self.contribution_growth) ** period

    def minimum_factor(self, owner_age: int) -> float:
        """Minimum withdrawal factor for the owner's age (0 without a table)."""
        if self.withdrawal_table is None:
            return 0.0
        age = owner_age + self.factor_age_offset
        if self.min_factor_age is not None:
            age = max(self.min_factor_age, age)
        return self.withdrawal_table.factor(age)


@dataclass(frozen=True)
class ProjectionParameters:
    """
    Immutable input to one projection run.

    Parameters
    ----------
    start_age : int
        Primary person's age in period 0.
    periods : int
        Number of yearly periods (<= 0 produces no rows).
    accounts : tuple of AccountSpec
    income_streams : tuple of IncomeStream
    spouse_start_age : int, optional
        Spouse's age in period 0; required for spouse-owned items.
    tax_calculator : IncomeTaxCalculator, optional
        None disables income tax.
    oas_recovery : ThresholdRule, optional
        None disables the OAS recovery tax.
    pension_splitting : bool
        Split eligible pension income between spouses.
    split_fraction : float
        Maximum fraction of eligible pension income that can move.
    inflation_rate : float
        Used for the real-dollar factor on each row.

    Raises
    ------
    ValidationError
        Duplicate account names, unknown owners, or spouse-owned items
        without ``spouse_start_age``.
    """
    start_age: int
    periods: int
    accounts: Tuple[AccountSpec, ...] = ()
    income_streams: Tuple[IncomeStream, ...] = ()
    spouse_start_age: Optional[int] = None
    tax_calculator: Optional[IncomeTaxCalculator] = None
    oas_recovery: Optional[ThresholdRule] = None
    pension_splitting: bool = False
    split_fraction: float = DEFAULT_SPLIT_FRACTION
    inflation_rate: float = 0.0

    def __post_init__(self):
        object.__setattr__(self, "accounts", tuple(self.accounts))
        object.__setattr__(self, "income_streams", tuple(self.income_streams))

        names = [a.name for a in self.accounts]
        dupes = sorted({n for n in names if names.count(n) > 1})
        if dupes:
            raise ValidationError(f"Account names must be unique, got duplicates: {dupes}")

        for item in (*self.accounts, *self.income_streams):
            if item.owner not in OWNERS:
                raise ValidationError(
                    f"{item.name!r} has unknown owner {item.owner!r} (expected one of {OWNERS})"
                )
            if item.owner == SPOUSE and self.spouse_start_age is None:
                raise ValidationError(
                    f"{item.name!r} is owned by the spouse but spouse_start_age is not set"
                )
        if not 0.0 <= self.split_fraction <= 1.0:
            raise ValidationError(f"split_fraction must be in [0, 1], got {self.split_fraction}")

    @classmethod
    def age_range(cls, start_age: int, end_age: int, **kwargs) -> "ProjectionParameters":
        """
        Parameters covering ages ``start_age``..``end_age`` inclusive.

        Examples
        --------
        >>> ProjectionParameters.age_range(71, 90).periods
        20
        """
        return cls(start_age=start_age, periods=max(0, end_age - start_age + 1), **kwargs)

    @property
    def has_spouse(self) -> bool:
        return self.spouse_start_age is not None

    @property
    def end_age(self) -> int:
        return self.start_age + self.periods - 1

    def account(self, name: str) -> AccountSpec:
        for a in self.accounts:
            if a.name == name:
                return a
        raise ValidationError(f"No account named {name!r}")


# ---------------------------------------------------------------------------
# Outputs
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class AccountPeriod:
    """Per-account slice of one period."""
    name: str
    owner: str
    opening: float
    contribution: float
    grant: float
    grants: Mapping[str, float]
    withdrawal: float
    minimum_withdrawal: float
    factor: float
    growth: float
    closing: float
    depleted: bool


@dataclass(frozen=True)
class PeriodRow:
    """
    One period of a projection schedule.

    Balances are summed over accounts; income and tax over both persons.
    ``net_income = withdrawal + other_income − tax_owed − clawback``.
    ``inflation_factor`` is the price level relative to period 0;
    divide by it for today's dollars.
    """
    period_index: int
    age: int
    spouse_age: Optional[int]
    opening_balance: float
    contribution: float
    grant: float
    withdrawal: float
    gross_growth: float
    other_income: float
    taxable_income: float
    tax_owed: float
    clawback: float
    net_income: float
    closing_balance: float
    cumulative_contributed: float
    cumulative_withdrawn: float
    cumulative_tax: float
    split_amount: float
    marginal_rate: float
    inflation_factor: float
    depleted: bool
    accounts: Tuple[AccountPeriod, ...] = ()
    oas_received: float = 0.0

    def account(self, name: str) -> AccountPeriod:
        for a in self.accounts:
            if a.name == name:
                return a
        raise KeyError(name)

    @property
    def real_net_income(self) -> float:
        return self.net_income / self.inflation_factor if self.inflation_factor else self.net_income

    def __repr__(self) -> str:
        return (
            f"PeriodRow(i={self.period_index}, age={self.age}, open=${self.opening_balance:,.0f}, "
            f"w=${self.withdrawal:,.0f}, tax=${self.tax_owed:,.0f}, close=${self.closing_balance:,.0f})"
        )


@dataclass(frozen=True)
class ProjectionResult:
    """
    Summary reduced from a schedule (see :func:`summarize`).

    Attributes
    ----------
    effective_tax_rate : float
        ``(total_tax + total_clawback) / total_taxable_income`` (0 if no income).
    contribution_multiple : float, optional
        ``final_balance / total_contributed`` (None without contributions).
    """
    name: Optional[str]
    periods: int
    opening_balance: float
    final_balance: float
    total_contributed: float
    total_grants: float
    total_withdrawn: float
    total_growth: float
    total_tax: float
    total_clawback: float
    total_taxable_income: float
    total_net_income: float
    depletion_period: Optional[int]
    depletion_age: Optional[int]
    effective_tax_rate: float
    contribution_multiple: Optional[float]
    grant_totals: Mapping[str, float] = field(default_factory=dict)

    @property
    def depleted(self) -> bool:
        return self.depletion_period is not None

    def __repr__(self) -> str:
        label = f"{self.name!r}, " if self.name else ""
        return (
            f"ProjectionResult({label}periods={self.periods}, final=${self.final_balance:,.0f}, "
            f"withdrawn=${self.total_withdrawn:,.0f}, tax=${self.total_tax:,.0f})"
        )


# ---------------------------------------------------------------------------
# Engine
# ---------------------------------------------------------------------------

def _split_pension(
    taxable: Dict[str, float],
    pension: Dict[str, float],
    fraction: float,
) -> float:
    """Move eligible pension income from the higher to the lower income spouse in place."""
    hi, lo = (PRIMARY, SPOUSE) if taxable[PRIMARY] >= taxable[SPOUSE] else (SPOUSE, PRIMARY)
    gap = taxable[hi] - taxable[lo]
    split = max(0.0, min(fraction * pension[hi], gap / 2.0))
    if split > 0:
        taxable[hi] -= split
        taxable[lo] += split
        pension[hi] -= split
        pension[lo] += split
    return split


def project(params: ProjectionParameters) -> List[PeriodRow]:
    """
    Run the projection.

    Parameters
    ----------
    params : ProjectionParameters

    Returns
    -------
    list of PeriodRow
        ``params.periods`` rows in period order (empty when periods <= 0).
    """
    logger.debug(
        "Projecting %d periods from age %d (%d accounts, %d streams)",
        params.periods, params.start_age, len(params.accounts), len(params.income_streams),
    )
    balances = {a.name: max(0.0, a.opening_balance) for a in params.accounts}
    funded = {a.name: balances[a.name] > 0 for a in params.accounts}
    grants_paid: Dict[Tuple[str, str], float] = {}
    cum_contrib = cum_withdrawn = cum_tax = 0.0
    calc = params.tax_calculator
    rows: List[PeriodRow] = []

    for i in range(max(0, params.periods)):
        ages = {PRIMARY: params.start_age + i}
        ages[SPOUSE] = None if params.spouse_start_age is None else params.spouse_start_age + i

        taxable = {PRIMARY: 0.0, SPOUSE: 0.0}
        pension = {PRIMARY: 0.0, SPOUSE: 0.0}
        oas_base = {PRIMARY: 0.0, SPOUSE: 0.0}

        # 1. Contributions, grants, withdrawals, growth per account
        slices: List[AccountPeriod] = []
        for acct in params.accounts:
            owner_age = ages[acct.owner]
            opening = balances[acct.name]
            contribution = acct.contribution_at(i)

            grant_amounts: Dict[str, float] = {}
            for rule in acct.grants:
                key = (acct.name, rule.name)
                amount = rule.amount_for(owner_age, contribution, grants_paid.get(key, 0.0))
                grants_paid[key] = grants_paid.get(key, 0.0) + amount
                grant_amounts[rule.name] = amount
            grant_total = sum(grant_amounts.values())

            factor = acct.minimum_factor(owner_age)
            minimum = opening * factor
            requested = minimum + max(0.0, acct.extra_withdrawal) + max(0.0, acct.fixed_withdrawal)
            withdrawal = min(opening, requested)

            base = opening - withdrawal + contribution + grant_total
            closing = max(0.0, base * (1.0 + acct.growth_rate))
            growth = closing - base
            funded[acct.name] = funded[acct.name] or contribution > 0 or grant_total > 0
            balances[acct.name] = closing

            if acct.taxable_withdrawals:
                taxable[acct.owner] += withdrawal
                if acct.pension_eligible and owner_age >= OAS_BASE_AGE:
                    pension[acct.owner] += withdrawal

            slices.append(AccountPeriod(
                name=acct.name,
                owner=acct.owner,
                opening=opening,
                contribution=contribution,
                grant=grant_total,
                grants=grant_amounts,
                withdrawal=withdrawal,
                minimum_withdrawal=min(opening, minimum),
                factor=factor,
                growth=growth,
                closing=closing,
                depleted=funded[acct.name] and closing <= 0.0,
            ))

        # 2. Income streams
        other_income = 0.0
        for stream in params.income_streams:
            amount = stream.amount_at(ages[stream.owner])
            other_income += amount
            if stream.taxable:
                taxable[stream.owner] += amount
                if stream.pension_eligible:
                    pension[stream.owner] += amount
            if stream.oas:
                oas_base[stream.owner] += amount

        # 3. Pension splitting, tax, OAS recovery
        split = 0.0
        if params.pension_splitting and params.has_spouse:
            split = _split_pension(taxable, pension, params.split_fraction)

        people = (PRIMARY, SPOUSE) if params.has_spouse else (PRIMARY,)
        tax = clawback = 0.0
        for person in people:
            if calc is not None:
                tax += calc.total_tax(taxable[person], age=ages[person], pension_income=pension[person])
            if params.oas_recovery is not None and oas_base[person] > 0:
                clawback += recovery_amount(taxable[person], params.oas_recovery, oas_base[person])
        marginal = calc.marginal_rate(taxable[PRIMARY]) if calc is not None else 0.0

        # 4. Emit
        contribution = sum(s.contribution for s in slices)
        withdrawal = sum(s.withdrawal for s in slices)
        cum_contrib += contribution
        cum_withdrawn += withdrawal
        cum_tax += tax
        rows.append(PeriodRow(
            period_index=i,
            age=ages[PRIMARY],
            spouse_age=ages[SPOUSE],
            opening_balance=sum(s.opening for s in slices),
            contribution=contribution,
            grant=sum(s.grant for s in slices),
            withdrawal=withdrawal,
            gross_growth=sum(s.growth for s in slices),
            other_income=other_income,
            taxable_income=sum(taxable[p] for p in people),
            tax_owed=tax,
            clawback=clawback,
            net_income=withdrawal + other_income - tax - clawback,
            closing_balance=sum(s.closing for s in slices),
            cumulative_contributed=cum_contrib,
            cumulative_withdrawn=cum_withdrawn,
            cumulative_tax=cum_tax,
            split_amount=split,
            marginal_rate=marginal,
            inflation_factor=(1.0 + params.inflation_rate) ** i,
            depleted=bool(slices) and all(s.depleted for s in slices),
            accounts=tuple(slices),
            oas_received=sum(oas_base[p] for p in people),
        ))

    return rows


# ---------------------------------------------------------------------------
# Reductions
# ---------------------------------------------------------------------------

def summarize(rows: Sequence[PeriodRow], name: Optional[str] = None) -> ProjectionResult:
    """
    Reduce a schedule to its totals.

    Parameters
    ----------
    rows : sequence of PeriodRow
        Output of :func:`project`.
    name : str, optional
        Label carried into the result (scenario name).

    Returns
    -------
    ProjectionResult
        Zero totals for an empty schedule.
    """
    if not rows:
        return ProjectionResult(
            name=name, periods=0, opening_balance=0.0, final_balance=0.0,
            total_contributed=0.0, total_grants=0.0, total_withdrawn=0.0,
            total_growth=0.0, total_tax=0.0, total_clawback=0.0,
            total_taxable_income=0.0, total_net_income=0.0,
            depletion_period=None, depletion_age=None,
            effective_tax_rate=0.0, contribution_multiple=None,
        )

    def total(attr: str) -> float:
        return float(np.sum([getattr(r, attr) for r in rows]))

    depletion = next(
        (r for r in rows if r.opening_balance > 0 and r.closing_balance <= 0.0), None
    )
    grant_totals: Dict[str, float] = {}
    for r in rows:
        for acct in r.accounts:
            for grant_name, amount in acct.grants.items():
                grant_totals[grant_name] = grant_totals.get(grant_name, 0.0) + amount

    taxable = total("taxable_income")
    tax = total("tax_owed")
    clawback = total("clawback")
    contributed = rows[-1].cumulative_contributed
    final = rows[-1].closing_balance
    return ProjectionResult(
        name=name,
        periods=len(rows),
        opening_balance=rows[0].opening_balance,
        final_balance=final,
        total_contributed=contributed,
        total_grants=total("grant"),
        total_withdrawn=rows[-1].cumulative_withdrawn,
        total_growth=total("gross_growth"),
        total_tax=tax,
        total_clawback=clawback,
        total_taxable_income=taxable,
        total_net_income=total("net_income"),
        depletion_period=None if depletion is None else depletion.period_index,
        depletion_age=None if depletion is None else depletion.age,
        effective_tax_rate=(tax + clawback) / taxable if taxable > 0 else 0.0,
        contribution_multiple=final / contributed if contributed > 0 else None,
        grant_totals=grant_totals,
    )


_ACCOUNT_COLUMNS = ("opening", "contribution", "grant", "withdrawal", "growth", "closing")


def schedule_frame(rows: Sequence[PeriodRow]) -> pd.DataFrame:
    """
    Schedule as a DataFrame indexed by ``period_index``.

    Row fields become columns; each account adds ``<name>_<field>``
    columns for opening, contribution, grant, withdrawal, growth, closing.

    Examples
    --------
    >>> df = schedule_frame(rows)
    >>> df[["age", "withdrawal", "closing_balance"]].head()
    """
    records = []
    for r in rows:
        record = {k: v for k, v in r.__dict__.items() if k != "accounts"}
        for acct in r.accounts:
            for col in _ACCOUNT_COLUMNS:
                record[f"{acct.name}_{col}"] = getattr(acct, col)
        records.append(record)
    if not records:
        columns = [f for f in PeriodRow.__dataclass_fields__ if f != "accounts"]
        return pd.DataFrame(columns=columns).set_index("period_index")
    return pd.DataFrame(records).set_index("period_index")
