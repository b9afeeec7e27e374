"""
Income tax module for CanFin.

Purpose
-------
Combined federal + provincial personal income tax for one taxpayer and
one year, built on the shared bracket function. Every calculator that
needs tax (RRIF, retirement income, TFSA vs RRSP) goes through
IncomeTaxCalculator so that the same inputs always produce the same tax.

Tax Model
---------
For each jurisdiction j (federal, provincial):

    credits_j = BPA_j + age_j·[age >= 65] + min(pension_income, pension_max_j)
    tax_j     = max(0, bracket_tax(income, brackets_j) − lowest_rate_j · credits_j)
    total     = tax_fed + tax_prov

Non-refundable credits are valued at the jurisdiction's lowest bracket
rate. The age amount is not income-tested (simplification); surtaxes,
dividend credits and other deductions are not modelled.

Example
-------
>>> calc = IncomeTaxCalculator.for_province("ON")
>>> round(calc.income_tax(80_000).total, 2)
15436.56
>>> round(calc.marginal_rate(80_000), 4)
0.2965
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from .brackets import compute_bracket_tax, marginal_rate_at
from .constants import DEFAULT_TAX_YEAR, OAS_BASE_AGE
from .reference import Jurisdiction, TaxYearData, load_tax_year

__all__ = [
    "TaxBreakdown",
    "IncomeTaxCalculator",
    "jurisdiction_tax",
]


def jurisdiction_tax(
    income: float,
    jurisdiction: Jurisdiction,
    *,
    age: Optional[int] = None,
    pension_income: float = 0.0,
) -> float:
    """
    Tax owed to one jurisdiction after non-refundable credits.

    Parameters
    ----------
    income : float
        Taxable income; negatives are treated as 0.
    jurisdiction : Jurisdiction
        Federal or provincial schedule with its credit amounts.
    age : int, optional
        Taxpayer age; the age amount applies at 65+.
    pension_income : float, default 0.0
        Income eligible for the pension credit (RRIF withdrawals at 65+,
        workplace pension).

    Returns
    -------
    float
        Tax, never negative.
    """
    gross = compute_bracket_tax(income, jurisdiction.brackets)
    credit_base = jurisdiction.basic_personal_amount
    if age is not None and age >= OAS_BASE_AGE:
        credit_base += jurisdiction.age_amount
    credit_base += min(max(0.0, pension_income), jurisdiction.pension_credit_max)
    return max(0.0, gross - jurisdiction.brackets.lowest_rate * credit_base)


@dataclass(frozen=True)
class TaxBreakdown:
    """
    Income tax split by jurisdiction.

    Attributes
    ----------
    income : float
        Taxable income the tax was computed on.
    federal, provincial, total : float
        Tax owed.
    """
    income: float
    federal: float
    provincial: float

    @property
    def total(self) -> float:
        return self.federal + self.provincial

    @property
    def average_rate(self) -> float:
        """Total tax / income (0 when income is 0)."""
        return self.total / self.income if self.income > 0 else 0.0

    def __repr__(self) -> str:
        return (
            f"TaxBreakdown(income=${self.income:,.0f}, federal=${self.federal:,.2f}, "
            f"provincial=${self.provincial:,.2f}, total=${self.total:,.2f})"
        )


@dataclass(frozen=True)
class IncomeTaxCalculator:
    """
    Federal + provincial income tax for one province and tax year.

    Parameters
    ----------
    federal : Jurisdiction
        Federal schedule.
    provincial : Jurisdiction
        Provincial/territorial schedule.

    Examples
    --------
    >>> calc = IncomeTaxCalculator.for_province("BC", tax_year=2025)
    >>> calc.income_tax(0).total
    0.0
    >>> calc.income_tax(60_000, age=71, pension_income=30_000).federal < \\
    ...     calc.income_tax(60_000).federal
    True
    """
    federal: Jurisdiction
    provincial: Jurisdiction

    @classmethod
    def for_province(
        cls,
        province: str,
        tax_year: int = DEFAULT_TAX_YEAR,
        data: Optional[TaxYearData] = None,
    ) -> "IncomeTaxCalculator":
        """
        Build a calculator from reference data.

        Raises
        ------
        JurisdictionError
            If the province code or tax year is unknown.
        """
        data = data if data is not None else load_tax_year(tax_year)
        return cls(federal=data.federal, provincial=data.province(province))

    @property
    def province(self) -> str:
        return self.provincial.code

    def federal_tax(self, income: float, *, age: Optional[int] = None,
                    pension_income: float = 0.0) -> float:
        return jurisdiction_tax(income, self.federal, age=age, pension_income=pension_income)

    def provincial_tax(self, income: float, *, age: Optional[int] = None,
                       pension_income: float = 0.0) -> float:
        return jurisdiction_tax(income, self.provincial, age=age, pension_income=pension_income)

    def income_tax(self, income: float, *, age: Optional[int] = None,
                   pension_income: float = 0.0) -> TaxBreakdown:
        """
        Tax owed on *income* with both jurisdictions' credits applied.

        Parameters
        ----------
        income : float
            Taxable income for the year (negatives treated as 0).
        age : int, optional
            Taxpayer age (age amount at 65+).
        pension_income : float, default 0.0
            Portion of income eligible for the pension credit.

        Returns
        -------
        TaxBreakdown
        """
        income = max(0.0, float(income))
        return TaxBreakdown(
            income=income,
            federal=self.federal_tax(income, age=age, pension_income=pension_income),
            provincial=self.provincial_tax(income, age=age, pension_income=pension_income),
        )

    def total_tax(self, income: float, *, age: Optional[int] = None,
                  pension_income: float = 0.0) -> float:
        return self.income_tax(income, age=age, pension_income=pension_income).total

    def marginal_rate(self, income: float) -> float:
        """Combined statutory marginal rate (federal + provincial bracket rates)."""
        return (
            marginal_rate_at(income, self.federal.brackets)
            + marginal_rate_at(income, self.provincial.brackets)
        )

    def incremental_tax(self, base_income: float, extra_income: float, *,
                        age: Optional[int] = None, pension_income: float = 0.0) -> float:
        """
        Extra tax caused by adding *extra_income* on top of *base_income*.

        Used to value a withdrawal after tax: ``extra − incremental_tax``.
        """
        base = max(0.0, float(base_income))
        extra = max(0.0, float(extra_income))
        with_extra = self.total_tax(base + extra, age=age, pension_income=pension_income)
        without = self.total_tax(
            base, age=age, pension_income=max(0.0, pension_income - extra)
        )
        return max(0.0, with_extra - without)

    def __repr__(self) -> str:
        return f"IncomeTaxCalculator({self.federal.code}+{self.provincial.code})"
