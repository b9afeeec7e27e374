"""
Serialization module for CanFin projection export.

Purpose
-------
Provides JSON export of projection schedules and summaries, and loading of
calculator inputs from JSON files, so results can be archived, diffed and
shared.

Supports serialization of:
- PeriodRow schedules (with per-account slices)
- ProjectionResult summaries
- Bracket tables (for ``canfin data show``)
- Calculator inputs (any of the pydantic ``*Inputs`` models)

Design Principles
-----------------
- Presentation rounding: money is written in whole dollars, rates as
  fractions; in-memory results keep full precision.
- Type-safe: inputs are validated by their pydantic models on load.
- Backward compatible: exports carry ``schema_version``; loading a
  different version warns instead of failing.

Example
-------
>>> from pathlib import Path
>>> from canfin.rrif import calculate_rrif
>>> from canfin.config import RRIFInputs
>>> result = calculate_rrif(RRIFInputs(current_age=71, rrif_balance=500_000))
>>> save_projection(Path("rrif.json"), result.rows, result.summary, calculator="rrif")
>>> load_projection(Path("rrif.json"))["summary"]["final_balance"]
"""

from __future__ import annotations
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Type, TypeVar
import json
import logging
import warnings

from pydantic import BaseModel

from .brackets import TaxBracketTable
from .projection import AccountPeriod, PeriodRow, ProjectionResult
from .types import (
    AccountPeriodDict,
    BracketDict,
    PeriodRowDict,
    ProjectionExportDict,
    ProjectionSummaryDict,
)
from .utils import round_money

__all__ = [
    "SCHEMA_VERSION",
    "account_period_to_dict",
    "row_to_dict",
    "summary_to_dict",
    "brackets_to_dict",
    "projection_to_dict",
    "save_projection",
    "load_projection",
    "load_inputs",
]

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)


# ---------------------------------------------------------------------------
# Schema Version
# ---------------------------------------------------------------------------

SCHEMA_VERSION = "1.0.0"

_ROW_MONEY_FIELDS = (
    "opening_balance",
    "contribution",
    "grant",
    "withdrawal",
    "gross_growth",
    "other_income",
    "taxable_income",
    "tax_owed",
    "clawback",
    "net_income",
    "closing_balance",
    "cumulative_contributed",
    "cumulative_withdrawn",
    "cumulative_tax",
    "split_amount",
)

_SUMMARY_MONEY_FIELDS = (
    "final_balance",
    "total_contributed",
    "total_grants",
    "total_withdrawn",
    "total_growth",
    "total_tax",
    "total_clawback",
)


# ---------------------------------------------------------------------------
# Schedule Serialization
# ---------------------------------------------------------------------------

def account_period_to_dict(acct: AccountPeriod) -> AccountPeriodDict:
    """Per-account slice with money in whole dollars."""
    return {
        "name": acct.name,
        "opening": round_money(acct.opening),
        "contribution": round_money(acct.contribution),
        "grant": round_money(acct.grant),
        "grants": {k: round_money(v) for k, v in acct.grants.items()},
        "withdrawal": round_money(acct.withdrawal),
        "minimum_withdrawal": round_money(acct.minimum_withdrawal),
        "growth": round_money(acct.growth),
        "closing": round_money(acct.closing),
        "depleted": acct.depleted,
    }


def row_to_dict(row: PeriodRow, include_accounts: bool = True) -> PeriodRowDict:
    """
    Convert a PeriodRow to its export form.

    Parameters
    ----------
    row : PeriodRow
        Row to serialize
    include_accounts : bool
        Whether to include per-account slices

    Returns
    -------
    PeriodRowDict
        Money fields rounded to whole dollars; rates unchanged.
    """
    result: Dict[str, Any] = {
        "period_index": row.period_index,
        "age": row.age,
        "spouse_age": row.spouse_age,
    }
    for name in _ROW_MONEY_FIELDS:
        result[name] = round_money(getattr(row, name))
    result["marginal_rate"] = row.marginal_rate
    result["inflation_factor"] = row.inflation_factor
    result["depleted"] = row.depleted
    if include_accounts:
        result["accounts"] = [account_period_to_dict(a) for a in row.accounts]
    return result  # type: ignore[return-value]


def summary_to_dict(summary: ProjectionResult) -> ProjectionSummaryDict:
    """Convert a ProjectionResult to its export form."""
    result: Dict[str, Any] = {"periods": summary.periods}
    for name in _SUMMARY_MONEY_FIELDS:
        result[name] = round_money(getattr(summary, name))
    result["depletion_period"] = summary.depletion_period
    result["depletion_age"] = summary.depletion_age
    result["effective_tax_rate"] = summary.effective_tax_rate
    result["contribution_multiple"] = summary.contribution_multiple
    return result  # type: ignore[return-value]


def brackets_to_dict(table: TaxBracketTable) -> List[BracketDict]:
    """
    Bracket table in export form (``upper`` None for the top band).

    Examples
    --------
    >>> brackets_to_dict(load_tax_year(2025).federal.brackets)[0]
    {'lower': 0.0, 'upper': 57375.0, 'rate': 0.15}
    """
    return [
        {
            "lower": b.lower,
            "upper": None if b.is_unbounded else b.upper,
            "rate": b.rate,
        }
        for b in table
    ]


def projection_to_dict(
    rows: Sequence[PeriodRow],
    summary: ProjectionResult,
    calculator: str,
    inputs: Optional[BaseModel] = None,
    include_accounts: bool = True,
) -> ProjectionExportDict:
    """
    Build the JSON document for a projection.

    Parameters
    ----------
    rows : sequence of PeriodRow
        Schedule to export
    summary : ProjectionResult
        Totals for the schedule
    calculator : str
        Calculator that produced the schedule ("rrif", "resp", ...)
    inputs : BaseModel, optional
        Calculator inputs, stored for reproducibility
    include_accounts : bool
        Whether rows include per-account slices

    Returns
    -------
    ProjectionExportDict
    """
    document: Dict[str, Any] = {
        "schema_version": SCHEMA_VERSION,
        "calculator": calculator,
        "created": datetime.now(timezone.utc).isoformat(timespec="seconds"),
    }
    if inputs is not None:
        document["inputs"] = inputs.model_dump(mode="json")
    document["summary"] = summary_to_dict(summary)
    document["rows"] = [row_to_dict(r, include_accounts) for r in rows]
    return document  # type: ignore[return-value]


# ---------------------------------------------------------------------------
# File I/O
# ---------------------------------------------------------------------------

def save_projection(
    path: Path,
    rows: Sequence[PeriodRow],
    summary: ProjectionResult,
    calculator: str,
    inputs: Optional[BaseModel] = None,
    include_accounts: bool = True,
) -> None:
    """
    Save a projection to a JSON file.

    Parameters
    ----------
    path : Path
        Output file path; parent directories are created.

    Examples
    --------
    >>> from pathlib import Path
    >>> save_projection(Path("out/resp.json"), result.rows, result.summary, "resp")
    """
    document = projection_to_dict(rows, summary, calculator, inputs, include_accounts)
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w") as f:
        json.dump(document, f, indent=2)
    logger.debug("Saved %d rows to %s", len(document["rows"]), path)


def load_projection(path: Path) -> ProjectionExportDict:
    """
    Load an exported projection document.

    Warns (UserWarning) when the file's schema version differs from
    :data:`SCHEMA_VERSION`.
    """
    with open(path, "r") as f:
        document = json.load(f)

    schema_version = document.get("schema_version", "0.0.0")
    if schema_version != SCHEMA_VERSION:
        warnings.warn(
            f"Projection schema version {schema_version} differs from current "
            f"version {SCHEMA_VERSION}. May encounter compatibility issues.",
            UserWarning,
        )
    return document


def load_inputs(path: Path, model_cls: Type[ModelT]) -> ModelT:
    """
    Load calculator inputs from a JSON file.

    Parameters
    ----------
    path : Path
        JSON object with the model's fields
    model_cls : type
        One of the ``*Inputs`` models

    Raises
    ------
    pydantic.ValidationError
        If the file has unknown fields or wrong types.

    Examples
    --------
    >>> from canfin.config import RESPInputs
    >>> inputs = load_inputs(Path("child.json"), RESPInputs)
    """
    with open(path, "r") as f:
        data = json.load(f)
    return model_cls.model_validate(data)
