"""
regression/fitter.py

Ordinary least squares fit of fuel consumption on distance (and tonnage).

    Y = a·X1 (+ b·X2) + c

The design matrix has the columns ``intercept, distance[, tonnage]`` and
is solved through ``numpy.linalg.lstsq`` (SVD based), which stays stable
when tonnage is strongly correlated with distance.  Perfectly collinear
predictors are rejected rather than silently dropped.
"""

from __future__ import annotations

import logging

import numpy as np

from fleet.observation import RegressionCohort
from regression.base import BaseRegressionFit
from regression.errors import InsufficientDataError, SingularMatrixError
from regression.model import PredictorSet, RegressionCoefficients, RegressionModel

logger = logging.getLogger(__name__)


def build_design_matrix(
    cohort: RegressionCohort,
    predictor_set: PredictorSet,
) -> tuple[np.ndarray, np.ndarray]:
    """
    Build ``(X, y)`` for *cohort*.

    Returns
    -------
    X:
        Float array of shape ``(n, p + 1)``; column 0 is the intercept.
    y:
        Fuel consumed (liters), shape ``(n,)``.
    """
    n = len(cohort.observations)
    columns = predictor_set.columns
    X = np.ones((n, len(columns) + 1), dtype=np.float64)
    y = np.empty(n, dtype=np.float64)

    for i, observation in enumerate(cohort.observations):
        X[i, 1] = observation.distance_km
        if predictor_set is PredictorSet.WITH_TONNAGE:
            X[i, 2] = observation.tonnage or 0.0
        y[i] = observation.fuel_liters

    return X, y


def dependent_predictors(X: np.ndarray, predictor_set: PredictorSet) -> list[str]:
    """
    Name the predictors that can be dropped without lowering the rank of *X*.

    A constant predictor is reported as collinear with the intercept.
    """
    full_rank = np.linalg.matrix_rank(X)
    names: list[str] = []
    for j, name in enumerate(predictor_set.columns, start=1):
        reduced = np.delete(X, j, axis=1)
        if np.linalg.matrix_rank(reduced) < full_rank:
            continue
        if np.ptp(X[:, j]) == 0.0:
            names.append(f"{name} (constant, collinear with intercept)")
        else:
            names.append(name)
    return names


class OLSRegressionFit(BaseRegressionFit):
    """
    Multiple linear regression by ordinary least squares.

    The fit is order independent: permuting the cohort's observations
    permutes ``predicted_values`` and ``residuals`` accordingly and leaves
    the coefficients unchanged up to floating-point tolerance.
    """

    # Residual degrees of freedom required for standard errors to exist.
    MIN_DEGREES_OF_FREEDOM: int = 1

    def fit(
        self,
        cohort: RegressionCohort,
        predictor_set: PredictorSet | None = None,
    ) -> RegressionModel:
        if predictor_set is None:
            predictor_set = PredictorSet.for_vehicle_type(cohort.key.vehicle_type)

        n = len(cohort.observations)
        p = predictor_set.predictor_count
        degrees_of_freedom = n - p - 1
        if degrees_of_freedom < self.MIN_DEGREES_OF_FREEDOM:
            raise InsufficientDataError(observation_count=n, predictor_count=p)

        X, y = build_design_matrix(cohort, predictor_set)

        beta, _ss_res, rank, _singular_values = np.linalg.lstsq(X, y, rcond=None)
        if rank < X.shape[1]:
            raise SingularMatrixError(dependent_predictors(X, predictor_set))

        predicted = X @ beta
        residuals = y - predicted

        coefficients = RegressionCoefficients(
            distance=float(beta[1]),
            tonnage=float(beta[2]) if predictor_set is PredictorSet.WITH_TONNAGE else None,
        )
        logger.debug(
            "OLS fit cohort=%s n=%d predictors=%s coefficients=%s",
            cohort.key,
            n,
            predictor_set.value,
            np.round(beta, 6).tolist(),
        )

        return RegressionModel(
            key=cohort.key,
            predictor_set=predictor_set,
            coefficients=coefficients,
            intercept=float(beta[0]),
            observation_count=n,
            degrees_of_freedom=degrees_of_freedom,
            predicted_values=tuple(float(v) for v in predicted),
            residuals=tuple(float(v) for v in residuals),
        )


_DEFAULT_FIT = OLSRegressionFit()


def fit(
    cohort: RegressionCohort,
    predictor_set: PredictorSet | None = None,
) -> RegressionModel:
    """Fit *cohort* with the default OLS implementation."""
    return _DEFAULT_FIT.fit(cohort, predictor_set)
