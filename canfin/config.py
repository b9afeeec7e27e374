"""
Configuration management module for CanFin.

Purpose
-------
Centralized configuration using Pydantic models for type-safe parameter
management, validation, and serialization. Three families live here:

- Reference data schema (TaxYearConfig and its parts): the versioned
  per-tax-year constants shipped in ``canfin/data``. Strictly validated;
  a file that does not match fails at load time.
- Calculator inputs (RRIFInputs, RetirementIncomeInputs, RESPInputs,
  TFSAvsRRSPInputs, OASGISInputs): every field optional until the
  calculator's minimum set is present. Out-of-domain values are clamped
  by validators, never rejected.
- AppSettings: environment-driven application settings.

Design Principles
-----------------
- Type-safe: Pydantic enforces types
- Immutable: Frozen models prevent accidental mutation
- Serializable: Easy conversion to/from JSON for config files
- Environment-aware: Supports .env files via pydantic-settings
- Units: money in dollars, rates as fractions (0.05 for 5%)

Example
-------
>>> from canfin.config import RRIFInputs
>>> inputs = RRIFInputs(current_age=71, rrif_balance=500_000)
>>> inputs.return_rate
0.05
>>> RRIFInputs(current_age=71, rrif_balance=-10).rrif_balance  # clamped
0.0
>>>
>>> # Serialize to dict/JSON
>>> data = inputs.model_dump()
>>> loaded = RRIFInputs.model_validate(data)
"""

from __future__ import annotations
from typing import Dict, List, Literal, Optional
from typing_extensions import Annotated
from pathlib import Path

from pydantic import AfterValidator, BaseModel, Field, field_validator, ConfigDict
from pydantic_settings import BaseSettings, SettingsConfigDict

from .constants import (
    DEFAULT_INFLATION,
    DEFAULT_PROVINCE,
    DEFAULT_RESP_RETURN,
    DEFAULT_RRIF_RETURN,
    DEFAULT_TAX_YEAR,
    DEFAULT_TFSA_RRSP_RETURN,
    OAS_BASE_AGE,
    REFERENCE_SCHEMA_VERSION,
    RETIREMENT_END_AGE,
)
from .utils import clamp, clamp_age, clamp_rate

__all__ = [
    # Reference data
    "BracketConfig",
    "JurisdictionConfig",
    "OASConfig",
    "GISConfig",
    "MinimumWithdrawalConfig",
    "GrantConfig",
    "RESPConfig",
    "TaxYearConfig",
    # Calculator inputs
    "RRIFInputs",
    "SpouseInputs",
    "RetirementIncomeInputs",
    "RESPInputs",
    "TFSAvsRRSPInputs",
    "OASGISInputs",
    # Settings
    "AppSettings",
]


# ---------------------------------------------------------------------------
# Reference Data Schema
# ---------------------------------------------------------------------------

class BracketConfig(BaseModel):
    """One tax band in "max-only" layout: the band ends at ``upper``."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    upper: Optional[float] = Field(
        default=None,
        gt=0,
        description="Upper bound of the band (None = unbounded top band)"
    )
    rate: float = Field(
        ge=0,
        le=1,
        description="Marginal rate (fraction)"
    )


class JurisdictionConfig(BaseModel):
    """
    Tax schedule and credit amounts for one jurisdiction.

    Attributes
    ----------
    name : str
        Display name ("Ontario", "Federal").
    basic_personal_amount : float
        Basic personal amount, credited at the lowest bracket rate.
    age_amount : float
        Age amount for taxpayers 65+ (federal only in the shipped data).
    pension_credit_max : float
        Maximum eligible pension income for the pension credit.
    brackets : list of BracketConfig
        Bands in ascending order, last one unbounded.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    name: str = Field(min_length=1, max_length=100)
    basic_personal_amount: float = Field(ge=0)
    age_amount: float = Field(default=0.0, ge=0)
    pension_credit_max: float = Field(default=0.0, ge=0)
    brackets: List[BracketConfig] = Field(min_length=1)


class OASConfig(BaseModel):
    """Old Age Security amounts, recovery tax and deferral parameters."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    full_monthly: float = Field(gt=0, description="Full monthly OAS, ages 65-74")
    full_monthly_75_plus: float = Field(gt=0, description="Full monthly OAS, ages 75+")
    recovery_threshold: float = Field(ge=0, description="Net income threshold for recovery tax")
    recovery_rate: float = Field(ge=0, le=1, description="Recovery per dollar above threshold")
    deferral_rate_per_month: float = Field(ge=0, le=0.1)
    max_deferral_boost: float = Field(ge=0, le=1)
    max_deferral_age: int = Field(ge=OAS_BASE_AGE, le=80)
    full_residency_years: int = Field(gt=0, le=60)


class GISConfig(BaseModel):
    """Guaranteed Income Supplement and Allowance maximums (monthly) and phase-out."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    single_max: float = Field(ge=0)
    couple_both_oas_max: float = Field(ge=0)
    couple_one_oas_max: float = Field(ge=0)
    allowance_max: float = Field(ge=0)
    survivor_allowance_max: float = Field(ge=0)
    single_threshold: float = Field(ge=0, description="Annual income limit, single")
    couple_threshold: float = Field(ge=0, description="Annual combined income limit, couple")
    phase_out_rate: float = Field(ge=0, le=1, description="Reduction per dollar of income")


class MinimumWithdrawalConfig(BaseModel):
    """
    RRIF minimum withdrawal factors.

    Below the first tabulated age the factor is ``1 / (formula_age - age)``;
    at or above ``terminal_age`` it is ``terminal_factor``.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    factors: Dict[int, float] = Field(min_length=1)
    formula_age: int = Field(default=90, gt=0)
    terminal_age: int = Field(default=95, gt=0)
    terminal_factor: float = Field(default=0.20, gt=0, le=1)

    @field_validator("factors")
    @classmethod
    def validate_factors(cls, v):
        """Factors must be fractions in (0, 1]."""
        bad = {age: f for age, f in v.items() if not 0 < f <= 1}
        if bad:
            raise ValueError(f"Minimum withdrawal factors must be in (0, 1], got {bad}")
        return v


class GrantConfig(BaseModel):
    """
    Education savings grant paid into an RESP.

    A grant either matches contributions (``rate`` on up to
    ``eligible_contribution``, capped at ``annual_max``) or pays a fixed
    amount per year (``fixed_amount``, optionally ``initial_amount`` at
    ``initial_age``). Family-income and province gates decide eligibility.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    name: str = Field(min_length=1, max_length=20)
    rate: float = Field(default=0.0, ge=0, le=1)
    eligible_contribution: float = Field(default=0.0, ge=0)
    annual_max: Optional[float] = Field(default=None, ge=0)
    lifetime_max: Optional[float] = Field(default=None, ge=0)
    fixed_amount: float = Field(default=0.0, ge=0)
    initial_amount: Optional[float] = Field(default=None, ge=0)
    initial_age: Optional[int] = Field(default=None, ge=0)
    max_age: Optional[int] = Field(default=None, ge=0)
    min_family_income: Optional[float] = Field(
        default=None,
        ge=0,
        description="Exclusive lower bound of the eligible income band"
    )
    max_family_income: Optional[float] = Field(
        default=None,
        ge=0,
        description="Inclusive upper bound of the eligible income band"
    )
    province: Optional[str] = Field(
        default=None,
        min_length=2,
        max_length=2,
        description="Only paid to residents of this province"
    )


class RESPConfig(BaseModel):
    """RESP grants and limits."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    grants: List[GrantConfig] = Field(default_factory=list)
    lifetime_contribution_limit: float = Field(ge=0)
    contribution_end_age: int = Field(gt=0, le=40)
    annual_education_cost: float = Field(ge=0)
    education_years: int = Field(ge=0, le=10)

    @field_validator("grants")
    @classmethod
    def validate_unique_names(cls, v):
        """Grant names are used as keys and must be unique."""
        names = [g.name for g in v]
        dupes = sorted({n for n in names if names.count(n) > 1})
        if dupes:
            raise ValueError(f"Grant names must be unique, got duplicates: {dupes}")
        return v


class TaxYearConfig(BaseModel):
    """
    Complete reference data for one tax year.

    Examples
    --------
    >>> import json
    >>> config = TaxYearConfig.model_validate(json.load(open("tax_2025.json")))
    >>> config.tax_year
    2025
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    schema_version: str = Field(default=REFERENCE_SCHEMA_VERSION)
    tax_year: int = Field(ge=2000, le=2100)
    federal: JurisdictionConfig
    provinces: Dict[str, JurisdictionConfig] = Field(min_length=1)
    oas: OASConfig
    gis: GISConfig
    rrif_minimum: MinimumWithdrawalConfig
    resp: RESPConfig

    @field_validator("provinces")
    @classmethod
    def validate_codes(cls, v):
        """Province codes are two upper-case letters."""
        bad = [code for code in v if len(code) != 2 or not code.isupper()]
        if bad:
            raise ValueError(f"Province codes must be two upper-case letters, got {bad}")
        return v


# ---------------------------------------------------------------------------
# Calculator Inputs
# ---------------------------------------------------------------------------

# Inputs never fail validation for out-of-domain numbers: they are clamped.
Amount = Annotated[Optional[float], AfterValidator(lambda v: None if v is None else max(0.0, v))]
"""Money amount; negatives clamp to 0, None means "not provided"."""

Age = Annotated[Optional[int], AfterValidator(clamp_age)]
"""Age in whole years, clamped into [0, 120]."""

GrowthRate = Annotated[float, AfterValidator(clamp_rate)]
"""Annual rate as a fraction, clamped into [-1, 1]."""

ProvinceCode = Annotated[
    str,
    Field(min_length=2, max_length=2),
    AfterValidator(lambda v: v.upper()),
]


class RRIFInputs(BaseModel):
    """
    Inputs for the RRIF drawdown calculator.

    Required for a result: ``current_age`` (55+) and ``rrif_balance`` (> 0).

    Clamping
    --------
    - Money fields: negatives → 0
    - Ages: into [0, 120]
    - return_rate: into [-1, 1]
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    province: ProvinceCode = DEFAULT_PROVINCE
    current_age: Age = Field(default=None, description="Age on January 1")
    rrif_balance: Amount = Field(default=None, description="RRIF balance on January 1")
    return_rate: GrowthRate = Field(default=DEFAULT_RRIF_RETURN, description="Annual return (fraction)")
    extra_withdrawal: Amount = Field(default=None, description="Annual withdrawal above the minimum")
    other_income: Amount = Field(default=None, description="Other taxable income (annual)")
    oas_monthly: Amount = Field(default=None, description="OAS received (monthly)")
    cpp_monthly: Amount = Field(default=None, description="CPP received (monthly)")
    use_spouse_age: bool = Field(default=False, description="Base minimums on a younger spouse's age")
    spouse_age: Age = None
    projection_end_age: Literal[90, 95, 100] = 90
    tax_year: int = DEFAULT_TAX_YEAR


class SpouseInputs(BaseModel):
    """Spouse/partner details for the retirement income calculator."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    age: Age = Field(default=None, description="Spouse age when the primary retires")
    cpp_monthly: Amount = None
    oas_monthly: Amount = None
    cpp_start_age: Age = OAS_BASE_AGE
    oas_start_age: Age = OAS_BASE_AGE
    rrif_balance: Amount = None
    pension_monthly: Amount = None


class RetirementIncomeInputs(BaseModel):
    """
    Inputs for the retirement income drawdown calculator.

    Required for a result: ``current_age`` and ``retirement_age``.
    Balances and income amounts default to 0 when missing.

    Clamping
    --------
    - Money fields: negatives → 0
    - Ages: into [0, 120]; retirement_age below current_age means "already retired"
    - Rates: into [-1, 1]
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    current_age: Age = None
    retirement_age: Age = None
    province: ProvinceCode = DEFAULT_PROVINCE
    rrif_balance: Amount = None
    rrif_return: GrowthRate = DEFAULT_RRIF_RETURN
    tfsa_balance: Amount = None
    tfsa_return: GrowthRate = DEFAULT_RRIF_RETURN
    tfsa_monthly_withdrawal: Amount = None
    cpp_monthly: Amount = None
    oas_monthly: Amount = None
    cpp_start_age: Age = OAS_BASE_AGE
    oas_start_age: Age = OAS_BASE_AGE
    pension_monthly: Amount = None
    other_monthly: Amount = None
    spouse: Optional[SpouseInputs] = None
    inflation_rate: GrowthRate = DEFAULT_INFLATION
    end_age: Age = RETIREMENT_END_AGE
    tax_year: int = DEFAULT_TAX_YEAR


class RESPInputs(BaseModel):
    """
    Inputs for the RESP growth calculator.

    Required for a result: ``child_age`` in 0-17 and either a positive
    contribution or a positive current balance.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    child_age: Age = None
    current_balance: Amount = None
    annual_contribution: Amount = None
    monthly_contribution: Amount = None
    use_monthly: bool = False
    return_rate: GrowthRate = DEFAULT_RESP_RETURN
    family_income: Amount = None
    province: ProvinceCode = DEFAULT_PROVINCE
    tax_year: int = DEFAULT_TAX_YEAR


class TFSAvsRRSPInputs(BaseModel):
    """
    Inputs for the TFSA vs RRSP comparison.

    Required for a result: positive ``annual_income``, ``contribution``,
    ``return_rate`` and ``years``.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    province: ProvinceCode = DEFAULT_PROVINCE
    annual_income: Amount = None
    contribution: Amount = None
    return_rate: GrowthRate = DEFAULT_TFSA_RRSP_RETURN
    years: int = 25
    retirement_rate: Optional[float] = Field(
        default=None,
        description="Expected marginal rate on RRSP withdrawals (None = estimate)"
    )
    tax_year: int = DEFAULT_TAX_YEAR

    @field_validator("retirement_rate")
    @classmethod
    def clamp_retirement_rate(cls, v):
        """Tax rates live in [0, 1]."""
        if v is None:
            return None
        return clamp(float(v), 0.0, 1.0)

    @field_validator("years")
    @classmethod
    def clamp_years(cls, v):
        return int(clamp(v, 0, 100))


MaritalStatus = Literal["single", "couple_both_oas", "couple_one_oas", "widowed"]


class OASGISInputs(BaseModel):
    """
    Inputs for the OAS / GIS estimate.

    Required for a result: ``current_age`` in 55-85 and ``net_income``
    (0 is a valid income). ``start_age`` snaps into 65-70.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    current_age: Age = None
    start_age: int = OAS_BASE_AGE
    years_in_canada: Age = None
    net_income: Amount = None
    marital_status: MaritalStatus = "single"
    partner_income: Amount = None
    partner_age: Age = None
    cpp_monthly: Amount = None
    tax_year: int = DEFAULT_TAX_YEAR

    @field_validator("start_age")
    @classmethod
    def clamp_start_age(cls, v):
        return int(clamp(v, OAS_BASE_AGE, 70))


# ---------------------------------------------------------------------------
# Application Settings (Environment Variables)
# ---------------------------------------------------------------------------

class AppSettings(BaseSettings):
    """
    Global application settings loaded from environment variables.

    Supports .env files for local development. Environment variables
    should be prefixed with CANFIN_ (e.g., CANFIN_LOG_LEVEL=DEBUG).

    Attributes
    ----------
    log_level : str
        Logging level: "DEBUG", "INFO", "WARNING", "ERROR"
    tax_year : int
        Default reference data year.
    province : str
        Default province/territory code.
    data_dir : Path, optional
        Directory holding ``tax_<year>.json`` files. None uses the
        packaged data.

    Examples
    --------
    >>> settings = AppSettings()
    >>> settings.tax_year
    2025

    # With .env file:
    # CANFIN_PROVINCE=BC
    >>> AppSettings(_env_file=".env").province
    'BC'
    """

    model_config = SettingsConfigDict(
        env_prefix="CANFIN_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="WARNING",
        description="Logging level"
    )
    tax_year: int = Field(
        default=DEFAULT_TAX_YEAR,
        ge=2000,
        le=2100,
        description="Reference data year"
    )
    province: str = Field(
        default=DEFAULT_PROVINCE,
        min_length=2,
        max_length=2,
        description="Default province/territory code"
    )
    data_dir: Optional[Path] = Field(
        default=None,
        description="Directory with tax_<year>.json reference files"
    )
