"""
Scenario and comparison driver for CanFin

Purpose
-------
Runs several independent projections that differ only by a few
parameters (contribution level, account type, retirement tax rate) and
lines their results up for comparison:

- ParameterOverride: named set of field changes applied with
  ``dataclasses.replace`` to a base ProjectionParameters.
- compare_scenarios / project_scenarios: one projection per override,
  no shared state between runs.
- break_even_period: first period at which one series overtakes another.

Design goals
------------
- Base parameters are never mutated; each variation gets a fresh copy.
- Unknown field or account names fail loudly (ValidationError) instead
  of silently running the base case.
"""
from __future__ import annotations

from dataclasses import dataclass, field, fields, replace
from typing import Any, Dict, List, Mapping, Optional, Sequence

import numpy as np

from .exceptions import ValidationError
from .projection import AccountSpec, PeriodRow, ProjectionParameters, ProjectionResult, project, summarize

__all__ = [
    "ParameterOverride",
    "compare_scenarios",
    "project_scenarios",
    "break_even_period",
]


def _field_names(cls) -> set:
    return {f.name for f in fields(cls)}


@dataclass(frozen=True)
class ParameterOverride:
    """
    Named variation of a projection.

    Parameters
    ----------
    name : str
        Scenario label ("TFSA", "RRSP + refund", "max CESG").
    changes : mapping, optional
        ProjectionParameters fields to replace.
    account_changes : mapping of str → mapping, optional
        Per-account AccountSpec field replacements, keyed by account name.

    Examples
    --------
    >>> more = ParameterOverride("max", account_changes={"RESP": {"contribution": 2_500}})
    >>> more.apply(base).account("RESP").contribution
    2500
    """
    name: str
    changes: Mapping[str, Any] = field(default_factory=dict)
    account_changes: Mapping[str, Mapping[str, Any]] = field(default_factory=dict)

    def apply(self, base: ProjectionParameters) -> ProjectionParameters:
        """
        Fresh parameters with the changes applied; *base* is untouched.

        Raises
        ------
        ValidationError
            If a field or account name does not exist.
        """
        unknown = set(self.changes) - _field_names(ProjectionParameters)
        if unknown:
            raise ValidationError(
                f"Scenario {self.name!r}: unknown projection fields {sorted(unknown)}"
            )
        account_fields = _field_names(AccountSpec)
        known_accounts = {a.name for a in base.accounts}
        missing = set(self.account_changes) - known_accounts
        if missing:
            raise ValidationError(
                f"Scenario {self.name!r}: unknown accounts {sorted(missing)}"
            )

        accounts = []
        for acct in base.accounts:
            updates = self.account_changes.get(acct.name, {})
            bad = set(updates) - account_fields
            if bad:
                raise ValidationError(
                    f"Scenario {self.name!r}: unknown fields {sorted(bad)} for account {acct.name!r}"
                )
            accounts.append(replace(acct, **updates) if updates else acct)

        changes = dict(self.changes)
        if self.account_changes:
            changes["accounts"] = tuple(accounts)
        return replace(base, **changes)


def project_scenarios(
    base: ProjectionParameters,
    variations: Sequence[ParameterOverride],
) -> Dict[str, List[PeriodRow]]:
    """
    Run one projection per variation.

    Returns
    -------
    dict
        Row schedules keyed by variation name, in input order.

    Raises
    ------
    ValidationError
        On duplicate variation names or invalid overrides.
    """
    names = [v.name for v in variations]
    if len(set(names)) != len(names):
        raise ValidationError(f"Scenario names must be unique, got {names}")
    return {v.name: project(v.apply(base)) for v in variations}


def compare_scenarios(
    base: ProjectionParameters,
    variations: Sequence[ParameterOverride],
) -> List[ProjectionResult]:
    """
    Summaries of independent projections, one per variation.

    Parameters
    ----------
    base : ProjectionParameters
        Shared starting point; never mutated.
    variations : sequence of ParameterOverride
        An override with no changes reproduces the base case.

    Returns
    -------
    list of ProjectionResult
        Same order as *variations*; each result carries its scenario name.
    """
    schedules = project_scenarios(base, variations)
    return [summarize(rows, name=name) for name, rows in schedules.items()]


def break_even_period(a: Sequence[float], b: Sequence[float]) -> Optional[int]:
    """
    First index at which series *a* strictly exceeds series *b*.

    Parameters
    ----------
    a, b : sequence of float
        Per-period values (e.g., after-tax balances); compared over the
        shorter length.

    Returns
    -------
    int or None
        None when *a* never overtakes *b*.

    Examples
    --------
    >>> break_even_period([1, 2, 3], [2, 2, 2])
    2
    >>> break_even_period([1, 1], [2, 2]) is None
    True
    """
    n = min(len(a), len(b))
    ahead = np.asarray(a[:n], dtype=float) > np.asarray(b[:n], dtype=float)
    hits = np.flatnonzero(ahead)
    return int(hits[0]) if hits.size else None
