"""
Threshold and credit rules for CanFin.

Purpose
-------
Generic evaluator for the linear claw-back / phase-in shape shared by
government benefits and grants:

    benefit(y) = clamp(base − rate · max(0, y − threshold), floor, min(base, cap))

Used three ways:
- OAS recovery tax: gross benefit reduced 15 cents per dollar above the threshold
- GIS / Allowance phase-out: maximum supplement reduced linearly with income
- CESG / A-CESG / QESI: grant grows with the contribution up to an
  eligible amount (the same clamp read in the inverted sense, see
  evaluate_matching_rule)

Guarantees
----------
- Result never negative and never above the supplied base.
- Continuous in income: no jump at the threshold.
"""

from __future__ import annotations

from dataclasses import dataclass
import math
from typing import Optional

from .exceptions import ReferenceDataError
from .utils import clamp

__all__ = [
    "ThresholdRule",
    "evaluate_threshold_rule",
    "recovery_amount",
    "evaluate_matching_rule",
]


@dataclass(frozen=True)
class ThresholdRule:
    """
    Linear claw-back or phase-in rule.

    Parameters
    ----------
    threshold : float
        Income above which the reduction starts (or, for matching rules,
        the eligible contribution cap).
    rate : float
        Reduction per dollar above the threshold (or match rate).
    cap : float, optional
        Upper clamp. For claw-backs the supplied base is also an upper clamp.
    floor : float, default 0.0
        Lower clamp.

    Raises
    ------
    ReferenceDataError
        If any field is negative or non-finite, or cap < floor.

    Examples
    --------
    >>> oas = ThresholdRule(threshold=93_454, rate=0.15)
    >>> evaluate_threshold_rule(100_000, oas, base=8_732.04)
    7750.14
    """
    threshold: float
    rate: float
    cap: Optional[float] = None
    floor: float = 0.0

    def __post_init__(self):
        """Validate rule parameters."""
        for name in ("threshold", "rate", "floor"):
            value = getattr(self, name)
            if not math.isfinite(value) or value < 0:
                raise ReferenceDataError(
                    f"ThresholdRule.{name} must be finite and non-negative, got {value}"
                )
        if self.cap is not None:
            if not math.isfinite(self.cap) or self.cap < 0:
                raise ReferenceDataError(
                    f"ThresholdRule.cap must be finite and non-negative, got {self.cap}"
                )
            if self.cap < self.floor:
                raise ReferenceDataError(
                    f"ThresholdRule.cap ({self.cap}) must be >= floor ({self.floor})"
                )

    def __repr__(self) -> str:
        cap = "" if self.cap is None else f", cap={self.cap:,.2f}"
        return f"ThresholdRule(threshold={self.threshold:,.2f}, rate={self.rate:.4f}{cap})"


def evaluate_threshold_rule(income: float, rule: ThresholdRule, base: float) -> float:
    """
    Amount of *base* retained after the rule's reduction.

    Parameters
    ----------
    income : float
        Income tested against the threshold. Negative values act as 0.
    rule : ThresholdRule
        Reduction parameters.
    base : float
        Full benefit before reduction (e.g., annual OAS, GIS maximum).
        Negative bases are treated as 0.

    Returns
    -------
    float
        Value in ``[0, base]``, equal to base at or below the threshold.
    """
    base = max(0.0, float(base))
    upper = base if rule.cap is None else min(base, rule.cap)
    lower = min(rule.floor, upper)
    excess = max(0.0, float(income) - rule.threshold)
    return clamp(base - rule.rate * excess, lower, upper)


def recovery_amount(income: float, rule: ThresholdRule, base: float) -> float:
    """Amount clawed back from *base*: ``base − evaluate_threshold_rule(...)``."""
    return max(0.0, float(base)) - evaluate_threshold_rule(income, rule, base)


def evaluate_matching_rule(amount: float, rule: ThresholdRule) -> float:
    """
    Matching grant earned on *amount* (inverted sense of the same clamp).

    The rule's threshold is the eligible amount, rate the match rate and
    cap the annual maximum:

        grant = clamp(rate · min(max(0, amount), threshold), floor, cap)

    Examples
    --------
    >>> cesg = ThresholdRule(threshold=2_500, rate=0.20, cap=500)
    >>> evaluate_matching_rule(1_000, cesg), evaluate_matching_rule(4_000, cesg)
    (200.0, 500.0)
    """
    eligible = min(max(0.0, float(amount)), rule.threshold)
    grant = rule.rate * eligible
    upper = math.inf if rule.cap is None else rule.cap
    return clamp(grant, rule.floor, upper)
