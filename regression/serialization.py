"""
regression/serialization.py

Lossless JSON document for a :class:`RegressionModel`.

Used by the SQL model store to persist a fitted model in a JSONB column
and to rebuild the identical frozen domain object on read.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel

from fleet.observation import CohortKey, VehicleType
from regression.model import (
    AnovaRow,
    AnovaTable,
    PredictorSet,
    RegressionCoefficients,
    RegressionModel,
)

SCHEMA_VERSION = 1


class AnovaRowDocument(BaseModel):
    degrees_of_freedom: int
    sum_of_squares: float
    mean_square: float | None = None


class AnovaDocument(BaseModel):
    regression: AnovaRowDocument
    residual: AnovaRowDocument
    total: AnovaRowDocument
    f_statistic: float | None = None
    significance_f: float | None = None


class RegressionModelDocument(BaseModel):
    """Snake-case persisted form; field names mirror :class:`RegressionModel`."""

    schema_version: int = SCHEMA_VERSION
    vehicle_type: VehicleType
    year: int
    region: str | None = None
    predictor_set: PredictorSet
    distance_coefficient: float
    tonnage_coefficient: float | None = None
    intercept: float
    observation_count: int
    degrees_of_freedom: int
    predicted_values: list[float]
    residuals: list[float]
    r_squared: float | None = None
    adjusted_r_squared: float | None = None
    multiple_r: float | None = None
    standard_error: float | None = None
    mse: float | None = None
    rmse: float | None = None
    mae: float | None = None
    aic: float | None = None
    bic: float | None = None
    anova: AnovaDocument | None = None
    standard_errors: list[float | None] = []
    t_stats: list[float | None] = []
    p_values: list[float | None] = []
    lower_confidence_95: list[float | None] = []
    upper_confidence_95: list[float | None] = []
    variance_inflation_factors: list[float | None] = []
    standardized_residuals: list[float] = []
    outlier_indices: list[int] = []
    multicollinear_predictors: list[str] = []
    warnings: list[str] = []
    equation: str = ""
    is_diagnosed: bool = False
    fitted_at: datetime

    @classmethod
    def from_domain(cls, model: RegressionModel) -> RegressionModelDocument:
        anova = None
        if model.anova is not None:
            anova = AnovaDocument(
                regression=_row_document(model.anova.regression),
                residual=_row_document(model.anova.residual),
                total=_row_document(model.anova.total),
                f_statistic=model.anova.f_statistic,
                significance_f=model.anova.significance_f,
            )
        return cls(
            vehicle_type=model.key.vehicle_type,
            year=model.key.year,
            region=model.key.region,
            predictor_set=model.predictor_set,
            distance_coefficient=model.coefficients.distance,
            tonnage_coefficient=model.coefficients.tonnage,
            intercept=model.intercept,
            observation_count=model.observation_count,
            degrees_of_freedom=model.degrees_of_freedom,
            predicted_values=list(model.predicted_values),
            residuals=list(model.residuals),
            r_squared=model.r_squared,
            adjusted_r_squared=model.adjusted_r_squared,
            multiple_r=model.multiple_r,
            standard_error=model.standard_error,
            mse=model.mse,
            rmse=model.rmse,
            mae=model.mae,
            aic=model.aic,
            bic=model.bic,
            anova=anova,
            standard_errors=list(model.standard_errors),
            t_stats=list(model.t_stats),
            p_values=list(model.p_values),
            lower_confidence_95=list(model.lower_confidence_95),
            upper_confidence_95=list(model.upper_confidence_95),
            variance_inflation_factors=list(model.variance_inflation_factors),
            standardized_residuals=list(model.standardized_residuals),
            outlier_indices=list(model.outlier_indices),
            multicollinear_predictors=list(model.multicollinear_predictors),
            warnings=list(model.warnings),
            equation=model.equation,
            is_diagnosed=model.is_diagnosed,
            fitted_at=model.fitted_at,
        )

    def to_domain(self) -> RegressionModel:
        anova = None
        if self.anova is not None:
            anova = AnovaTable(
                regression=AnovaRow(**self.anova.regression.model_dump()),
                residual=AnovaRow(**self.anova.residual.model_dump()),
                total=AnovaRow(**self.anova.total.model_dump()),
                f_statistic=self.anova.f_statistic,
                significance_f=self.anova.significance_f,
            )
        return RegressionModel(
            key=CohortKey(vehicle_type=self.vehicle_type, year=self.year, region=self.region),
            predictor_set=self.predictor_set,
            coefficients=RegressionCoefficients(
                distance=self.distance_coefficient,
                tonnage=self.tonnage_coefficient,
            ),
            intercept=self.intercept,
            observation_count=self.observation_count,
            degrees_of_freedom=self.degrees_of_freedom,
            predicted_values=tuple(self.predicted_values),
            residuals=tuple(self.residuals),
            r_squared=self.r_squared,
            adjusted_r_squared=self.adjusted_r_squared,
            multiple_r=self.multiple_r,
            standard_error=self.standard_error,
            mse=self.mse,
            rmse=self.rmse,
            mae=self.mae,
            aic=self.aic,
            bic=self.bic,
            anova=anova,
            standard_errors=tuple(self.standard_errors),
            t_stats=tuple(self.t_stats),
            p_values=tuple(self.p_values),
            lower_confidence_95=tuple(self.lower_confidence_95),
            upper_confidence_95=tuple(self.upper_confidence_95),
            variance_inflation_factors=tuple(self.variance_inflation_factors),
            standardized_residuals=tuple(self.standardized_residuals),
            outlier_indices=tuple(self.outlier_indices),
            multicollinear_predictors=tuple(self.multicollinear_predictors),
            warnings=tuple(self.warnings),
            equation=self.equation,
            is_diagnosed=self.is_diagnosed,
            fitted_at=self.fitted_at,
        )


def dump_model(model: RegressionModel) -> dict[str, Any]:
    """JSON-compatible dict for a JSONB column."""
    return RegressionModelDocument.from_domain(model).model_dump(mode="json")


def load_model(payload: dict[str, Any]) -> RegressionModel:
    return RegressionModelDocument.model_validate(payload).to_domain()


def _row_document(row: AnovaRow) -> AnovaRowDocument:
    return AnovaRowDocument(
        degrees_of_freedom=row.degrees_of_freedom,
        sum_of_squares=row.sum_of_squares,
        mean_square=row.mean_square,
    )
