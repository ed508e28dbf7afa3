"""
Regression-layer exceptions and the division guard.
"""

from __future__ import annotations

import math
from collections.abc import Sequence


class RegressionError(Exception):
    """Base exception for failures that abort a fit request."""


class InsufficientDataError(RegressionError):
    """
    Raised when a cohort leaves no residual degrees of freedom.

    ``n - p - 1`` must be at least 1, where ``p`` is the predictor count.
    """

    def __init__(self, observation_count: int, predictor_count: int) -> None:
        self.observation_count = observation_count
        self.predictor_count = predictor_count
        required = predictor_count + 2
        super().__init__(
            f"Insufficient data: a {predictor_count}-predictor model needs at least "
            f"{required} observations, got {observation_count}."
        )


class SingularMatrixError(RegressionError):
    """Raised when the design matrix is rank-deficient."""

    def __init__(self, dependent_predictors: Sequence[str]) -> None:
        self.dependent_predictors = tuple(dependent_predictors)
        names = ", ".join(self.dependent_predictors) or "unknown"
        super().__init__(
            f"Design matrix is singular: predictors are perfectly collinear ({names})."
        )


class DivisionGuardError(ArithmeticError):
    """Internal: a ratio with an undefined denominator. Never leaves this module."""


def _checked_divide(numerator: float, denominator: float) -> float:
    if denominator == 0 or not math.isfinite(denominator):
        raise DivisionGuardError(f"{numerator!r} / {denominator!r}")
    result = numerator / denominator
    if not math.isfinite(result):
        raise DivisionGuardError(f"{numerator!r} / {denominator!r}")
    return result


def safe_ratio(numerator: float, denominator: float | None) -> float | None:
    """
    Return ``numerator / denominator`` or ``None`` when it is undefined.
    """
    if denominator is None:
        return None
    try:
        return _checked_divide(numerator, denominator)
    except DivisionGuardError:
        return None


def finite_or_none(value: float) -> float | None:
    """Map NaN and infinities to ``None``."""
    value = float(value)
    return value if math.isfinite(value) else None
