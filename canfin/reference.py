"""
Reference data module for CanFin.

Purpose
-------
Loads the versioned per-tax-year constants (bracket tables, credit
amounts, benefit rules, RRIF minimum factors, RESP grants) from
``canfin/data/tax_<year>.json`` and turns them into immutable runtime
objects. Calculators never hard-code a rate or a threshold; they ask
this module.

Pipeline
--------
JSON file → TaxYearConfig (pydantic, strict) → TaxYearData (frozen
dataclasses, TaxBracketTable / ThresholdRule / MinimumWithdrawalTable)

Loads are cached per (year, path): the same TaxYearData instance is
returned for repeated calls and is never mutated.

Example
-------
>>> from canfin.reference import load_tax_year
>>> data = load_tax_year(2025)
>>> data.province("ON").name
'Ontario'
>>> data.rrif_minimum.factor(71)
0.0528
"""

from __future__ import annotations

from dataclasses import dataclass, field
from functools import lru_cache
from pathlib import Path
from typing import Dict, Mapping, Optional, Tuple
import json
import logging
import warnings

from pydantic import ValidationError as PydanticValidationError

from .brackets import TaxBracketTable
from .config import GrantConfig, JurisdictionConfig, TaxYearConfig
from .constants import DEFAULT_TAX_YEAR, FEDERAL_CODE, REFERENCE_SCHEMA_VERSION
from .exceptions import JurisdictionError, ReferenceDataError
from .thresholds import ThresholdRule

__all__ = [
    "Jurisdiction",
    "MinimumWithdrawalTable",
    "OASParameters",
    "GISParameters",
    "RESPParameters",
    "TaxYearData",
    "DATA_DIR",
    "load_tax_year",
    "parse_tax_year",
    "available_tax_years",
]

logger = logging.getLogger(__name__)

DATA_DIR: Path = Path(__file__).parent / "data"
"""Directory with the packaged ``tax_<year>.json`` files."""


# ---------------------------------------------------------------------------
# Runtime reference objects
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Jurisdiction:
    """
    Tax schedule and non-refundable credit amounts of one jurisdiction.

    Parameters
    ----------
    code : str
        "CA" for federal, two-letter province/territory code otherwise.
    name : str
        Display name.
    brackets : TaxBracketTable
        Validated progressive schedule.
    basic_personal_amount : float
        Credited at ``brackets.lowest_rate``.
    age_amount : float
        Additional credit base at 65+.
    pension_credit_max : float
        Cap on eligible pension income for the pension credit.
    """
    code: str
    name: str
    brackets: TaxBracketTable
    basic_personal_amount: float = 0.0
    age_amount: float = 0.0
    pension_credit_max: float = 0.0

    @classmethod
    def from_config(cls, code: str, config: JurisdictionConfig) -> "Jurisdiction":
        brackets = TaxBracketTable.from_upper_bounds(
            (b.upper, b.rate) for b in config.brackets
        )
        return cls(
            code=code,
            name=config.name,
            brackets=brackets,
            basic_personal_amount=config.basic_personal_amount,
            age_amount=config.age_amount,
            pension_credit_max=config.pension_credit_max,
        )

    def __repr__(self) -> str:
        return f"Jurisdiction({self.code}, {self.name!r}, {len(self.brackets)} brackets)"


@dataclass(frozen=True)
class MinimumWithdrawalTable:
    """
    RRIF minimum withdrawal factors by age (January 1 age).

    Factor rules
    ------------
    - age < first tabulated age: ``1 / (formula_age - age)``
    - tabulated ages: table value
    - age >= terminal_age: ``terminal_factor``

    Examples
    --------
    >>> table = load_tax_year(2025).rrif_minimum
    >>> table.factor(71), table.factor(50), table.factor(101)
    (0.0528, 0.025, 0.2)
    """
    factors: Mapping[int, float]
    formula_age: int = 90
    terminal_age: int = 95
    terminal_factor: float = 0.20

    def __post_init__(self):
        if not self.factors:
            raise ReferenceDataError("Minimum withdrawal table must contain at least one age.")
        object.__setattr__(self, "factors", dict(sorted(self.factors.items())))

    @property
    def first_age(self) -> int:
        return next(iter(self.factors))

    def factor(self, age: int) -> float:
        """Minimum withdrawal as a fraction of the January 1 balance."""
        age = int(age)
        if age >= self.terminal_age:
            return self.terminal_factor
        if age in self.factors:
            return self.factors[age]
        if age < self.first_age:
            return 1.0 / max(1, self.formula_age - age)
        # Gap inside the table: nearest tabulated age below
        below = [a for a in self.factors if a < age]
        return self.factors[below[-1]]


@dataclass(frozen=True)
class OASParameters:
    """Old Age Security amounts (monthly) with the recovery tax rule."""
    full_monthly: float
    full_monthly_75_plus: float
    recovery: ThresholdRule
    deferral_rate_per_month: float
    max_deferral_boost: float
    max_deferral_age: int
    full_residency_years: int


@dataclass(frozen=True)
class GISParameters:
    """GIS / Allowance monthly maximums and income test."""
    single_max: float
    couple_both_oas_max: float
    couple_one_oas_max: float
    allowance_max: float
    survivor_allowance_max: float
    single_threshold: float
    couple_threshold: float
    phase_out_rate: float


@dataclass(frozen=True)
class RESPParameters:
    """RESP grant definitions and plan limits."""
    grants: Tuple[GrantConfig, ...]
    lifetime_contribution_limit: float
    contribution_end_age: int
    annual_education_cost: float
    education_years: int

    def grant(self, name: str) -> GrantConfig:
        for g in self.grants:
            if g.name == name:
                return g
        raise ReferenceDataError(f"No RESP grant named {name!r}.")


@dataclass(frozen=True)
class TaxYearData:
    """
    Everything the calculators need for one tax year.

    Use :func:`load_tax_year` rather than building this by hand.
    """
    tax_year: int
    federal: Jurisdiction
    provinces: Mapping[str, Jurisdiction]
    oas: OASParameters
    gis: GISParameters
    rrif_minimum: MinimumWithdrawalTable
    resp: RESPParameters
    schema_version: str = REFERENCE_SCHEMA_VERSION
    source: Optional[Path] = field(default=None, compare=False)

    def province(self, code: str) -> Jurisdiction:
        """
        Jurisdiction for a province/territory code (case-insensitive).

        Raises
        ------
        JurisdictionError
            If the code is not in the reference data.
        """
        key = str(code).upper()
        try:
            return self.provinces[key]
        except KeyError:
            known = ", ".join(sorted(self.provinces))
            raise JurisdictionError(
                f"Unknown province/territory {code!r} for {self.tax_year}. Known: {known}"
            ) from None

    @property
    def province_codes(self) -> Tuple[str, ...]:
        return tuple(sorted(self.provinces))

    @classmethod
    def from_config(cls, config: TaxYearConfig, source: Optional[Path] = None) -> "TaxYearData":
        """Convert a validated TaxYearConfig into runtime objects."""
        provinces: Dict[str, Jurisdiction] = {
            code: Jurisdiction.from_config(code, cfg)
            for code, cfg in config.provinces.items()
        }
        oas = config.oas
        gis = config.gis
        resp = config.resp
        return cls(
            tax_year=config.tax_year,
            federal=Jurisdiction.from_config(FEDERAL_CODE, config.federal),
            provinces=provinces,
            oas=OASParameters(
                full_monthly=oas.full_monthly,
                full_monthly_75_plus=oas.full_monthly_75_plus,
                recovery=ThresholdRule(
                    threshold=oas.recovery_threshold,
                    rate=oas.recovery_rate,
                ),
                deferral_rate_per_month=oas.deferral_rate_per_month,
                max_deferral_boost=oas.max_deferral_boost,
                max_deferral_age=oas.max_deferral_age,
                full_residency_years=oas.full_residency_years,
            ),
            gis=GISParameters(**gis.model_dump()),
            rrif_minimum=MinimumWithdrawalTable(
                factors=dict(config.rrif_minimum.factors),
                formula_age=config.rrif_minimum.formula_age,
                terminal_age=config.rrif_minimum.terminal_age,
                terminal_factor=config.rrif_minimum.terminal_factor,
            ),
            resp=RESPParameters(
                grants=tuple(resp.grants),
                lifetime_contribution_limit=resp.lifetime_contribution_limit,
                contribution_end_age=resp.contribution_end_age,
                annual_education_cost=resp.annual_education_cost,
                education_years=resp.education_years,
            ),
            schema_version=config.schema_version,
            source=source,
        )

    def __repr__(self) -> str:
        return f"TaxYearData({self.tax_year}, provinces={list(self.province_codes)})"


# ---------------------------------------------------------------------------
# Loading
# ---------------------------------------------------------------------------

def _data_file(year: int, data_dir: Optional[Path]) -> Path:
    return Path(data_dir or DATA_DIR) / f"tax_{int(year)}.json"


def available_tax_years(data_dir: Optional[Path] = None) -> Tuple[int, ...]:
    """Tax years with a ``tax_<year>.json`` file in *data_dir* (default: packaged data)."""
    years = []
    for p in Path(data_dir or DATA_DIR).glob("tax_*.json"):
        suffix = p.stem.split("_", 1)[1]
        if suffix.isdigit():
            years.append(int(suffix))
    return tuple(sorted(years))


def parse_tax_year(raw: Mapping, source: Optional[Path] = None) -> TaxYearData:
    """
    Validate a raw reference-data mapping and build TaxYearData.

    Raises
    ------
    ReferenceDataError
        If the mapping does not match the schema or a table is malformed.

    Warns
    -----
    UserWarning
        If the file's schema version differs from the supported one.
    """
    version = raw.get("schema_version") if isinstance(raw, Mapping) else None
    if version is not None and version != REFERENCE_SCHEMA_VERSION:
        warnings.warn(
            f"Reference data schema version mismatch: file={version}, "
            f"current={REFERENCE_SCHEMA_VERSION}. Attempting to load anyway.",
            UserWarning,
            stacklevel=3,
        )
    try:
        config = TaxYearConfig.model_validate(raw)
    except PydanticValidationError as e:
        where = f" in {source}" if source else ""
        raise ReferenceDataError(f"Invalid reference data{where}:\n{e}") from e
    return TaxYearData.from_config(config, source=source)


@lru_cache(maxsize=None)
def _load_cached(path: Path) -> TaxYearData:
    logger.debug("Loading reference data from %s", path)
    try:
        with open(path, "r", encoding="utf-8") as f:
            raw = json.load(f)
    except json.JSONDecodeError as e:
        raise ReferenceDataError(f"Reference data file {path} is not valid JSON: {e}") from e
    data = parse_tax_year(raw, source=path)
    logger.debug("Loaded %r", data)
    return data


def load_tax_year(
    year: int = DEFAULT_TAX_YEAR,
    path: Optional[Path] = None,
    data_dir: Optional[Path] = None,
) -> TaxYearData:
    """
    Load (and cache) reference data for a tax year.

    Parameters
    ----------
    year : int, default DEFAULT_TAX_YEAR
        Tax year to load.
    path : Path, optional
        Explicit file to load instead of ``tax_<year>.json`` (``year`` is
        then ignored).
    data_dir : Path, optional
        Directory to look in instead of the packaged data.

    Returns
    -------
    TaxYearData

    Raises
    ------
    JurisdictionError
        If no data file exists for the year.
    ReferenceDataError
        If the file is malformed or an explicit file is missing.

    Examples
    --------
    >>> load_tax_year(2025) is load_tax_year(2025)
    True
    >>> load_tax_year(1999)
    Traceback (most recent call last):
    ...
    canfin.exceptions.JurisdictionError: No reference data for tax year 1999 ...
    """
    file = Path(path) if path is not None else _data_file(year, data_dir)
    if not file.is_file():
        if path is not None:
            raise ReferenceDataError(f"Reference data file not found: {file}")
        years = ", ".join(str(y) for y in available_tax_years(data_dir)) or "none"
        raise JurisdictionError(
            f"No reference data for tax year {year} (available: {years})."
        )
    return _load_cached(file.resolve())
