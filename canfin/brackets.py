"""
Progressive bracket tax module for CanFin.

Purpose
-------
Single shared implementation of progressive (bracketed) tax. Every
calculator that needs income tax walks the same immutable
TaxBracketTable, so calculators that use the same tax year always agree.

Mathematical Framework
----------------------
For brackets b_k = [L_k, U_k) with marginal rate τ_k:

    tax(y) = Σ_k τ_k · max(0, min(y, U_k) − L_k)

The sum stops at the first bracket with y <= L_k. The top bracket has
U = ∞, so its slice is y − L_top.

Key components
--------------
- TaxBracket:
    One band of the schedule (lower bound, upper bound, marginal rate).

- TaxBracketTable:
    Ordered, contiguous sequence of TaxBracket covering [0, ∞).
    Validated once at construction; malformed tables raise
    ReferenceDataError.

- compute_bracket_tax / marginal_rate_at:
    Pure functions over a table.

Example
-------
>>> table = TaxBracketTable.from_upper_bounds([(57375, 0.15), (114750, 0.205), (None, 0.26)])
>>> compute_bracket_tax(80_000, table)
13244.375
>>> marginal_rate_at(80_000, table)
0.205
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Iterable, Iterator, Optional, Sequence, Tuple

from .exceptions import ReferenceDataError

__all__ = [
    "TaxBracket",
    "TaxBracketTable",
    "compute_bracket_tax",
    "marginal_rate_at",
]


# ---------------------------------------------------------------------------
# Bracket (single band)
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class TaxBracket:
    """
    One band of a progressive tax schedule.

    Parameters
    ----------
    lower : float
        Income at which the band starts.
    upper : float
        Income at which the band ends (``math.inf`` for the top band).
    rate : float
        Marginal rate applied to income inside the band (fraction 0-1).
    """
    lower: float
    upper: float
    rate: float

    @property
    def is_unbounded(self) -> bool:
        return math.isinf(self.upper)

    def slice_tax(self, income: float) -> float:
        """Tax on the part of *income* that falls inside this band."""
        return max(0.0, min(income, self.upper) - self.lower) * self.rate

    def __repr__(self) -> str:
        upper = "inf" if self.is_unbounded else f"{self.upper:,.0f}"
        return f"TaxBracket({self.lower:,.0f}-{upper} @ {self.rate:.4f})"


# ---------------------------------------------------------------------------
# Bracket table (ordered collection)
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class TaxBracketTable:
    """
    Immutable progressive tax schedule covering ``[0, ∞)``.

    Parameters
    ----------
    brackets : tuple of TaxBracket
        Bands in ascending order.

    Raises
    ------
    ReferenceDataError
        If the table is empty, does not start at 0, has gaps or overlaps,
        has a non-increasing band, a negative/non-finite rate, or does not
        end in an unbounded band.

    Notes
    -----
    - Validation happens here, once; the tax functions never re-check.
    - Rates are usually non-decreasing but this is not enforced
      (some provincial schedules are not strictly progressive).

    Examples
    --------
    >>> table = TaxBracketTable((
    ...     TaxBracket(0, 57_375, 0.15),
    ...     TaxBracket(57_375, math.inf, 0.205),
    ... ))
    >>> len(table)
    2
    """
    brackets: Tuple[TaxBracket, ...]

    def __post_init__(self) -> None:
        brackets = tuple(self.brackets)
        object.__setattr__(self, "brackets", brackets)

        if not brackets:
            raise ReferenceDataError("Bracket table must contain at least one bracket.")
        if brackets[0].lower != 0:
            raise ReferenceDataError(
                f"First bracket must start at 0, got {brackets[0].lower}."
            )

        for k, b in enumerate(brackets):
            if not math.isfinite(b.rate) or b.rate < 0:
                raise ReferenceDataError(
                    f"Bracket {k} rate must be finite and non-negative, got {b.rate}."
                )
            if not b.lower < b.upper:
                raise ReferenceDataError(
                    f"Bracket {k} must have lower < upper, got [{b.lower}, {b.upper})."
                )
            if b.is_unbounded and k != len(brackets) - 1:
                raise ReferenceDataError(
                    f"Only the last bracket may be unbounded (bracket {k} is)."
                )
            if k > 0 and b.lower != brackets[k - 1].upper:
                raise ReferenceDataError(
                    f"Bracket {k} starts at {b.lower} but previous bracket ends at "
                    f"{brackets[k - 1].upper}. Bracket tables must be contiguous."
                )

        if not brackets[-1].is_unbounded:
            raise ReferenceDataError(
                f"Last bracket must be unbounded, ends at {brackets[-1].upper}."
            )

    @classmethod
    def from_upper_bounds(
        cls,
        bands: Iterable[Tuple[Optional[float], float]],
    ) -> "TaxBracketTable":
        """
        Build a contiguous table from ``(upper, rate)`` pairs.

        Parameters
        ----------
        bands : iterable of (upper, rate)
            Upper bound of each band in ascending order; the last upper may
            be ``None`` or ``math.inf`` for the unbounded top band.

        Returns
        -------
        TaxBracketTable

        Examples
        --------
        >>> TaxBracketTable.from_upper_bounds([(57375, 0.15), (None, 0.205)])
        TaxBracketTable([TaxBracket(0-57,375 @ 0.1500), TaxBracket(57,375-inf @ 0.2050)])
        """
        brackets = []
        lower = 0.0
        for upper, rate in bands:
            upper_f = math.inf if upper is None else float(upper)
            brackets.append(TaxBracket(lower=lower, upper=upper_f, rate=float(rate)))
            lower = upper_f
        return cls(tuple(brackets))

    @property
    def lowest_rate(self) -> float:
        """Rate of the first band (used to value non-refundable credits)."""
        return self.brackets[0].rate

    @property
    def top_rate(self) -> float:
        return self.brackets[-1].rate

    def __iter__(self) -> Iterator[TaxBracket]:
        return iter(self.brackets)

    def __len__(self) -> int:
        return len(self.brackets)

    def __getitem__(self, k: int) -> TaxBracket:
        return self.brackets[k]

    def __repr__(self) -> str:
        return f"TaxBracketTable({list(self.brackets)!r})"


# ---------------------------------------------------------------------------
# Tax functions
# ---------------------------------------------------------------------------

def compute_bracket_tax(income: float, brackets: TaxBracketTable | Sequence[TaxBracket]) -> float:
    """
    Progressive tax owed on *income*.

    Parameters
    ----------
    income : float
        Taxable income. Negative values are clamped to 0.
    brackets : TaxBracketTable
        Validated schedule.

    Returns
    -------
    float
        Total tax, always >= 0 and non-decreasing in income.

    Examples
    --------
    >>> table = TaxBracketTable.from_upper_bounds([(220_000, 0.29), (None, 0.33)])
    >>> compute_bracket_tax(300_000, table) - compute_bracket_tax(220_000, table)
    26400.0
    """
    y = max(0.0, float(income))
    tax = 0.0
    for b in brackets:
        if y <= b.lower:
            break
        tax += b.slice_tax(y)
    return tax


def marginal_rate_at(income: float, brackets: TaxBracketTable | Sequence[TaxBracket]) -> float:
    """
    Marginal rate of the band containing *income*.

    Bands are read as ``(lower, upper]``: an income exactly on a bound
    belongs to the lower band, and income <= 0 maps to the first band.

    Examples
    --------
    >>> table = TaxBracketTable.from_upper_bounds([(57375, 0.15), (None, 0.205)])
    >>> marginal_rate_at(57_375, table), marginal_rate_at(57_376, table)
    (0.15, 0.205)
    """
    rate = brackets[0].rate
    for b in brackets:
        if income > b.lower:
            rate = b.rate
        if income <= b.upper:
            break
    return rate
