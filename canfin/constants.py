"""
Global constants for CanFin.

Purpose
-------
Centralizes default values and magic numbers used throughout the CanFin
codebase. Jurisdiction-specific amounts (brackets, thresholds, grant
limits) are reference data and live in ``canfin/data``; only defaults and
structural constants belong here.

Usage
-----
>>> from canfin.constants import DEFAULT_TAX_YEAR, DEFAULT_PROVINCE
>>>
>>> data = load_tax_year(DEFAULT_TAX_YEAR)
>>> calc = IncomeTaxCalculator.for_province(DEFAULT_PROVINCE)

Categories
----------
- Reference data: tax year, province, schema version
- Ages: RRIF/retirement/RESP age bounds
- Rates: default growth and inflation assumptions
- Presentation: currency rounding
"""

from typing import Tuple

__all__ = [
    # Reference data
    "DEFAULT_TAX_YEAR",
    "DEFAULT_PROVINCE",
    "REFERENCE_SCHEMA_VERSION",
    "FEDERAL_CODE",
    # Ages
    "MIN_AGE",
    "MAX_AGE",
    "RRIF_MIN_AGE",
    "RRIF_PROJECTION_END_AGES",
    "RETIREMENT_END_AGE",
    "RESP_MAX_CHILD_AGE",
    "OAS_BASE_AGE",
    # Rates
    "DEFAULT_RRIF_RETURN",
    "DEFAULT_RESP_RETURN",
    "DEFAULT_TFSA_RRSP_RETURN",
    "DEFAULT_INFLATION",
    "DEFAULT_SPLIT_FRACTION",
    "MIN_GROWTH_RATE",
    "MAX_GROWTH_RATE",
    "MONTHS_PER_YEAR",
    # Presentation
    "MONEY_DECIMALS",
]


# =============================================================================
# Reference Data
# =============================================================================

DEFAULT_TAX_YEAR: int = 2025
"""Tax year whose reference data is loaded when none is requested."""

DEFAULT_PROVINCE: str = "ON"
"""Default province/territory code (Ontario)."""

REFERENCE_SCHEMA_VERSION: str = "1.0"
"""Schema version expected in reference data files."""

FEDERAL_CODE: str = "CA"
"""Jurisdiction code used for the federal table."""


# =============================================================================
# Ages
# =============================================================================

MIN_AGE: int = 0
"""Youngest age accepted by any calculator (RESP beneficiaries)."""

MAX_AGE: int = 120
"""Oldest age accepted; larger inputs are clamped."""

RRIF_MIN_AGE: int = 55
"""Youngest age the RRIF calculator projects from."""

RRIF_PROJECTION_END_AGES: Tuple[int, ...] = (90, 95, 100)
"""Projection horizons offered by the RRIF calculator."""

RETIREMENT_END_AGE: int = 95
"""Last age projected by the retirement income calculator."""

RESP_MAX_CHILD_AGE: int = 17
"""Oldest beneficiary age for which an RESP projection is produced."""

OAS_BASE_AGE: int = 65
"""Age at which OAS can start without deferral."""


# =============================================================================
# Rates
# =============================================================================

DEFAULT_RRIF_RETURN: float = 0.05
"""Default annual return on RRIF/RRSP balances (5%)."""

DEFAULT_RESP_RETURN: float = 0.06
"""Default annual return on RESP balances (6%)."""

DEFAULT_TFSA_RRSP_RETURN: float = 0.07
"""Default annual return in the TFSA vs RRSP comparison (7%)."""

DEFAULT_INFLATION: float = 0.025
"""Default annual inflation used for real-dollar factors (2.5%)."""

DEFAULT_SPLIT_FRACTION: float = 0.5
"""Maximum fraction of eligible pension income that can be split."""

MIN_GROWTH_RATE: float = -1.0
"""Lower clamp for user growth rates (total loss each period)."""

MAX_GROWTH_RATE: float = 1.0
"""Upper clamp for user growth rates (doubling each period)."""

MONTHS_PER_YEAR: int = 12
"""Number of months in a year (monthly ↔ annual amounts)."""


# =============================================================================
# Presentation
# =============================================================================

MONEY_DECIMALS: int = 0
"""Money is presented in whole dollars."""
