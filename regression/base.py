"""
regression/base.py

Abstract base class for SER regression fit implementations.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from fleet.observation import RegressionCohort
from regression.model import PredictorSet, RegressionModel


class BaseRegressionFit(ABC):
    """
    Contract for regression fit implementations.

    Subclasses receive a cohort of observations and return an undiagnosed
    :class:`RegressionModel` carrying coefficients, predictions and
    residuals.  Inferential statistics are attached afterwards by
    :func:`regression.diagnostics.diagnose`.

    No I/O, no persistence, and no side effects are permitted inside
    :meth:`fit`.
    """

    @abstractmethod
    def fit(
        self,
        cohort: RegressionCohort,
        predictor_set: PredictorSet | None = None,
    ) -> RegressionModel:
        """
        Fit the cohort and return the resulting model.

        Parameters
        ----------
        cohort:
            Observations sharing one :class:`fleet.observation.CohortKey`.
        predictor_set:
            Predictor shape to fit; defaults to the shape implied by the
            cohort's vehicle type.

        Raises
        ------
        regression.errors.InsufficientDataError
            When the cohort leaves no residual degree of freedom.
        regression.errors.SingularMatrixError
            When the predictors are perfectly collinear.
        """
