"""General utilities for CanFin

Contents
--------
- Clamping helpers (non-negative amounts, rates, ages)
- Rate and amount conversions (percent ↔ fraction, monthly ↔ annual, compounding)
- Presentation helpers (round_money, format_currency, format_percent)
"""

from __future__ import annotations

from typing import Optional

from .constants import MAX_AGE, MAX_GROWTH_RATE, MIN_AGE, MIN_GROWTH_RATE, MONEY_DECIMALS, MONTHS_PER_YEAR

__all__ = [
    # Clamping
    "clamp",
    "non_negative",
    "clamp_rate",
    "clamp_age",
    # Conversions
    "pct_to_fraction",
    "monthly_to_annual_amount",
    "compound",
    # Presentation
    "round_money",
    "format_currency",
    "format_percent",
]

# ---------------------------------------------------------------------------
# Clamping helpers
# ---------------------------------------------------------------------------

def clamp(value: float, lower: float, upper: float) -> float:
    """Clamp *value* into ``[lower, upper]``."""
    return max(lower, min(value, upper))


def non_negative(value: Optional[float]) -> float:
    """Map ``None`` and negative amounts to 0.0."""
    if value is None:
        return 0.0
    return max(0.0, float(value))


def clamp_rate(rate: Optional[float], *, default: float = 0.0) -> float:
    """Clamp a growth rate into ``[MIN_GROWTH_RATE, MAX_GROWTH_RATE]``."""
    if rate is None:
        return default
    return clamp(float(rate), MIN_GROWTH_RATE, MAX_GROWTH_RATE)


def clamp_age(age: Optional[int]) -> Optional[int]:
    """Clamp an age into ``[MIN_AGE, MAX_AGE]``; ``None`` passes through."""
    if age is None:
        return None
    return int(clamp(int(age), MIN_AGE, MAX_AGE))


# ---------------------------------------------------------------------------
# Conversions
# ---------------------------------------------------------------------------

def pct_to_fraction(pct: float) -> float:
    """Convert a percentage (5.0) to a fraction (0.05)."""
    return float(pct) / 100.0


def monthly_to_annual_amount(monthly: Optional[float]) -> float:
    """Annualize a monthly amount; ``None`` and negatives become 0.0."""
    return non_negative(monthly) * MONTHS_PER_YEAR


def compound(balance: float, rate: float, years: int) -> float:
    """Grow *balance* at *rate* for *years* whole periods.

    Uses: balance * (1 + rate) ** years. Negative years are treated as 0.
    """
    return float(balance) * (1.0 + float(rate)) ** max(0, int(years))


# ---------------------------------------------------------------------------
# Presentation helpers
# ---------------------------------------------------------------------------

def round_money(value: float) -> int:
    """Round a money amount to whole dollars for presentation.

    Only presentation code calls this; projections carry full precision.
    """
    return int(round(float(value), MONEY_DECIMALS))


def format_currency(value: float, symbol: str = "$") -> str:
    """
    Format a money amount in whole dollars with thousands separators.

    Parameters
    ----------
    value : float
        Amount in dollars.
    symbol : str, default '$'
        Currency symbol prefix.

    Returns
    -------
    str
        Formatted string; negatives carry a leading minus sign.

    Examples
    --------
    >>> format_currency(497280.4)
    '$497,280'
    >>> format_currency(-1500)
    '-$1,500'
    """
    rounded = round_money(value)
    sign = "-" if rounded < 0 else ""
    return f"{sign}{symbol}{abs(rounded):,}"


def format_percent(fraction: float, decimals: int = 1) -> str:
    """Format a fraction (0.2965) as a percentage string ('29.7%')."""
    return f"{fraction * 100:.{decimals}f}%"
