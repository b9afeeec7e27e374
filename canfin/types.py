"""
Type definitions for CanFin.

Purpose
-------
TypedDict definitions for the dictionary shapes that cross module
boundaries: exported schedules and summaries. Dataclasses stay the
in-memory representation; these describe their JSON form.

Usage
-----
>>> from canfin.types import PeriodRowDict
>>> row: PeriodRowDict = projection_to_dict(rows, summary)["rows"][0]

Type Definitions
----------------
BracketDict
    One tax band in export form: {"lower", "upper", "rate"}

AccountPeriodDict
    Per-account slice of a period

PeriodRowDict
    One schedule row, money rounded to whole dollars

ProjectionSummaryDict
    Totals reduced from a schedule
"""

from typing import Dict, List, Optional
from typing_extensions import TypedDict, NotRequired

__all__ = [
    "BracketDict",
    "AccountPeriodDict",
    "PeriodRowDict",
    "ProjectionSummaryDict",
    "ProjectionExportDict",
]


class BracketDict(TypedDict):
    """
    Tax band in export form.

    ``upper`` is None for the unbounded top band (JSON has no infinity).

    Examples
    --------
    >>> band: BracketDict = {"lower": 57375.0, "upper": 114750.0, "rate": 0.205}
    """

    lower: float
    upper: Optional[float]
    rate: float


class AccountPeriodDict(TypedDict):
    """Per-account slice of one period."""

    name: str
    opening: int
    contribution: int
    grant: int
    grants: Dict[str, int]
    withdrawal: int
    minimum_withdrawal: int
    growth: int
    closing: int
    depleted: bool


class PeriodRowDict(TypedDict):
    """
    One period of a projection schedule.

    Money fields are whole dollars; rates stay fractions.
    """

    period_index: int
    age: int
    spouse_age: Optional[int]
    opening_balance: int
    contribution: int
    grant: int
    withdrawal: int
    gross_growth: int
    other_income: int
    taxable_income: int
    tax_owed: int
    clawback: int
    net_income: int
    closing_balance: int
    cumulative_contributed: int
    cumulative_withdrawn: int
    cumulative_tax: int
    split_amount: int
    marginal_rate: float
    inflation_factor: float
    depleted: bool
    accounts: NotRequired[List[AccountPeriodDict]]


class ProjectionSummaryDict(TypedDict):
    """Totals reduced from a schedule."""

    periods: int
    final_balance: int
    total_contributed: int
    total_grants: int
    total_withdrawn: int
    total_growth: int
    total_tax: int
    total_clawback: int
    depletion_period: Optional[int]
    depletion_age: Optional[int]
    effective_tax_rate: float
    contribution_multiple: Optional[float]


class ProjectionExportDict(TypedDict):
    """Top-level JSON document written by ``save_projection``."""

    schema_version: str
    calculator: str
    created: str
    inputs: NotRequired[Dict[str, object]]
    summary: ProjectionSummaryDict
    rows: List[PeriodRowDict]
