"""
Pytest configuration and fixtures for the CanFin test suite.

This module provides reusable fixtures for testing all CanFin components.
Fixtures follow the principle of "arrange-act-assert" with clear separation.
"""

import math

import pytest

from canfin.brackets import TaxBracket, TaxBracketTable
from canfin.projection import AccountSpec, IncomeStream, ProjectionParameters
from canfin.reference import TaxYearData, load_tax_year
from canfin.tax import IncomeTaxCalculator


# ---------------------------------------------------------------------------
# Reference Data Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def data() -> TaxYearData:
    """Packaged 2025 reference data."""
    return load_tax_year(2025)


@pytest.fixture
def ontario(data) -> IncomeTaxCalculator:
    """Federal + Ontario tax calculator."""
    return IncomeTaxCalculator.for_province("ON", data=data)


@pytest.fixture
def two_band_table() -> TaxBracketTable:
    """
    First two 2025 federal bands, second one left open.

    0 - 57,375 @ 15%, 57,375+ @ 20.5%
    """
    return TaxBracketTable((
        TaxBracket(0, 57_375, 0.15),
        TaxBracket(57_375, math.inf, 0.205),
    ))


# ---------------------------------------------------------------------------
# Projection Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def rrif_account(data) -> AccountSpec:
    """
    RRIF of $500,000 at 5% drawn at the prescribed minimum.
    """
    return AccountSpec(
        name="RRIF",
        opening_balance=500_000,
        growth_rate=0.05,
        withdrawal_table=data.rrif_minimum,
        pension_eligible=True,
    )


@pytest.fixture
def savings_account() -> AccountSpec:
    """Account with $1,000/yr contributions at 5%, no withdrawals."""
    return AccountSpec(name="Savings", growth_rate=0.05, contribution=1_000)


@pytest.fixture
def rrif_params(rrif_account, ontario, data) -> ProjectionParameters:
    """RRIF from 71 to 90 with CPP and OAS, Ontario tax and OAS recovery."""
    return ProjectionParameters.age_range(
        71, 90,
        accounts=(rrif_account,),
        income_streams=(
            IncomeStream("CPP", 10_800),
            IncomeStream("OAS", 8_732.04, oas=True),
        ),
        tax_calculator=ontario,
        oas_recovery=data.oas.recovery,
    )
