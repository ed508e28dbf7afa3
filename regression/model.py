"""
regression/model.py

Immutable result types for a fitted SER regression.

A :class:`RegressionModel` is published once and never mutated; re-fitting
a cohort produces a new instance which replaces the old one in the
:mod:`regression.store`.  All per-observation and per-coefficient series
are tuples.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum

from fleet.observation import CohortKey, VehicleType


class PredictorSet(str, Enum):
    """
    Shape of the predictor set used by a fit.

    Every computation that depends on the number of predictors reads
    :attr:`columns` instead of testing for a missing tonnage value.
    """

    SIMPLE = "simple"
    WITH_TONNAGE = "with_tonnage"

    @classmethod
    def for_vehicle_type(cls, vehicle_type: VehicleType) -> PredictorSet:
        if vehicle_type.transports_goods:
            return cls.WITH_TONNAGE
        return cls.SIMPLE

    @property
    def columns(self) -> tuple[str, ...]:
        if self is PredictorSet.WITH_TONNAGE:
            return ("distance", "tonnage")
        return ("distance",)

    @property
    def predictor_count(self) -> int:
        return len(self.columns)

    @property
    def min_observations(self) -> int:
        # intercept + predictors + at least one residual degree of freedom
        return self.predictor_count + 2

    @property
    def coefficient_names(self) -> tuple[str, ...]:
        return ("intercept",) + self.columns


@dataclass(frozen=True)
class RegressionCoefficients:
    distance: float
    tonnage: float | None = None


@dataclass(frozen=True)
class AnovaRow:
    degrees_of_freedom: int
    sum_of_squares: float
    mean_square: float | None


@dataclass(frozen=True)
class AnovaTable:
    """
    Analysis-of-variance table for the fit.

    ``f_statistic`` and ``significance_f`` are ``None`` when the residual
    mean square is zero (perfect fit).
    """

    regression: AnovaRow
    residual: AnovaRow
    total: AnovaRow
    f_statistic: float | None
    significance_f: float | None


@dataclass(frozen=True)
class RegressionModel:
    """
    Output of one fit for one cohort.

    Coefficient-level series are ordered ``(intercept, distance[, tonnage])``.
    ``predicted_values`` and ``residuals`` are aligned 1:1 with the cohort's
    observations.  Statistics that are mathematically undefined for the
    sample (e.g. a t-stat with a zero standard error) are ``None``.
    """

    key: CohortKey
    predictor_set: PredictorSet
    coefficients: RegressionCoefficients
    intercept: float
    observation_count: int
    degrees_of_freedom: int
    predicted_values: tuple[float, ...]
    residuals: tuple[float, ...]

    # Filled in by regression.diagnostics.diagnose
    r_squared: float | None = None
    adjusted_r_squared: float | None = None
    multiple_r: float | None = None
    standard_error: float | None = None
    mse: float | None = None
    rmse: float | None = None
    mae: float | None = None
    aic: float | None = None
    bic: float | None = None
    anova: AnovaTable | None = None
    standard_errors: tuple[float | None, ...] = ()
    t_stats: tuple[float | None, ...] = ()
    p_values: tuple[float | None, ...] = ()
    lower_confidence_95: tuple[float | None, ...] = ()
    upper_confidence_95: tuple[float | None, ...] = ()
    variance_inflation_factors: tuple[float | None, ...] = ()
    standardized_residuals: tuple[float, ...] = ()
    outlier_indices: tuple[int, ...] = ()
    multicollinear_predictors: tuple[str, ...] = ()
    warnings: tuple[str, ...] = ()
    equation: str = ""
    is_diagnosed: bool = False
    fitted_at: datetime = field(default_factory=lambda: datetime.now(tz=timezone.utc))

    @property
    def has_outliers(self) -> bool:
        return bool(self.outlier_indices)

    @property
    def has_multicollinearity(self) -> bool:
        return bool(self.multicollinear_predictors)

    @property
    def parameter_vector(self) -> tuple[float, ...]:
        """Coefficients in design-matrix column order."""
        if self.predictor_set is PredictorSet.WITH_TONNAGE:
            return (self.intercept, self.coefficients.distance, self.coefficients.tonnage or 0.0)
        return (self.intercept, self.coefficients.distance)

    # Flat ANOVA accessors matching the published JSON contract.

    @property
    def sum_of_squares(self) -> float | None:
        return None if self.anova is None else self.anova.total.sum_of_squares

    @property
    def mean_square(self) -> float | None:
        return None if self.anova is None else self.anova.regression.mean_square

    @property
    def f_statistic(self) -> float | None:
        return None if self.anova is None else self.anova.f_statistic

    @property
    def significance_f(self) -> float | None:
        return None if self.anova is None else self.anova.significance_f
