"""
Custom exceptions for CanFin.

Purpose
-------
Provides a unified exception hierarchy for consistent error handling
across all CanFin modules. All exceptions inherit from CanFinError,
enabling catch-all handling when needed.

User-input anomalies are never raised: calculators clamp out-of-domain
values and return ``None`` while required inputs are missing. Exceptions
are reserved for programming and reference-data errors.

Exception Hierarchy
-------------------
CanFinError (base)
├── ConfigurationError - Invalid configuration or reference data
│   ├── ReferenceDataError - Malformed bracket tables, rules or data files
│   └── JurisdictionError - Unknown province/territory code or tax year
└── ValidationError - Invalid parameter objects built in code

Usage
-----
>>> from canfin.exceptions import ReferenceDataError
>>>
>>> # Raise specific exception
>>> raise ReferenceDataError("bracket 2 lower bound 57000 != previous upper 57375")
>>>
>>> # Catch all CanFin exceptions
>>> try:
...     data = load_tax_year(2019)
... except CanFinError as e:
...     print(f"CanFin error: {e}")
"""


class CanFinError(Exception):
    """
    Base exception for all CanFin errors.

    Examples
    --------
    >>> try:
    ...     calculator = IncomeTaxCalculator.for_province("XX")
    ... except CanFinError as e:
    ...     logger.error(f"Calculator setup failed: {e}")
    """
    pass


class ConfigurationError(CanFinError):
    """
    Invalid configuration or reference data.

    Raised before any projection runs, so bad reference data never
    silently produces wrong financial numbers.
    """
    pass


class ReferenceDataError(ConfigurationError):
    """
    Malformed reference data.

    Raised when static tax-year data fails validation, such as:
    - Bracket tables with gaps, overlaps or an unbounded bracket that is not last
    - Negative or non-finite marginal rates
    - Threshold rules with cap < floor
    - Data files that do not match the TaxYearConfig schema

    Examples
    --------
    >>> raise ReferenceDataError(
    ...     "Bracket 1 starts at 57000 but previous bracket ends at 57375. "
    ...     "Bracket tables must be contiguous."
    ... )
    """
    pass


class JurisdictionError(ConfigurationError):
    """
    Unknown jurisdiction or tax year.

    Examples
    --------
    >>> raise JurisdictionError(
    ...     "Unknown province code 'XX'. Available: AB, BC, MB, ..."
    ... )
    """
    pass


class ValidationError(CanFinError):
    """
    Invalid parameter objects built in code.

    Raised for programming errors that no clamp can repair:
    - Duplicate account names in a projection
    - Spouse-owned accounts or income without a spouse start age
    - Scenario overrides naming unknown fields or accounts

    Examples
    --------
    >>> raise ValidationError(
    ...     "Account names must be unique, got duplicates: ['RRIF']"
    ... )
    """
    pass
