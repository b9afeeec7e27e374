"""
CanFin — Canadian personal finance projections

Year-by-year projections of registered accounts and retirement income
under Canadian federal and provincial tax rules.

Modules
-------
- brackets    : Progressive bracket tax function
- thresholds  : Threshold/credit evaluator (clawbacks, phase-outs, grant matching)
- reference   : Versioned tax-year reference data (brackets, OAS, GIS, RRIF, RESP)
- tax         : Federal + provincial income tax calculator
- projection  : Year-by-year projection engine shared by every calculator
- scenario    : Scenario/comparison driver
- rrif, retirement, resp, tfsa_rrsp, benefits : Calculators
- serialization : JSON export of schedules and summaries
"""

__version__ = "0.1.0"

from .brackets import TaxBracket, TaxBracketTable, compute_bracket_tax
from .thresholds import ThresholdRule, evaluate_threshold_rule
from .reference import TaxYearData, load_tax_year
from .tax import IncomeTaxCalculator
from .projection import (
    AccountSpec,
    IncomeStream,
    GrantRule,
    ProjectionParameters,
    PeriodRow,
    ProjectionResult,
    project,
    summarize,
)
from .scenario import ParameterOverride, compare_scenarios
from .rrif import calculate_rrif
from .retirement import calculate_retirement_income
from .resp import calculate_resp
from .tfsa_rrsp import compare_tfsa_rrsp
from .benefits import estimate_oas_gis
from . import utils

__all__ = [
    "__version__",
    "TaxBracket",
    "TaxBracketTable",
    "compute_bracket_tax",
    "ThresholdRule",
    "evaluate_threshold_rule",
    "TaxYearData",
    "load_tax_year",
    "IncomeTaxCalculator",
    "AccountSpec",
    "IncomeStream",
    "GrantRule",
    "ProjectionParameters",
    "PeriodRow",
    "ProjectionResult",
    "project",
    "summarize",
    "ParameterOverride",
    "compare_scenarios",
    "calculate_rrif",
    "calculate_retirement_income",
    "calculate_resp",
    "compare_tfsa_rrsp",
    "estimate_oas_gis",
    "utils",
]
