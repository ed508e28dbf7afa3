"""
app/schemas/ser.py

Request/response schemas for the SER regression endpoints.

Responses are serialised in camelCase (``rSquared``, ``fStatistic``,
``lowerConfidence`` ...) to match the published regression JSON contract.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from regression.formatter import format_labeled_equation
from regression.model import RegressionModel
from ser.orchestrator import ObservationAssessment, SERReport
from ser.reference import MonthlyDataPoint


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ---------------------------------------------------------------------------
# Requests
# ---------------------------------------------------------------------------


class AnalyzeRequest(_CamelModel):
    vehicle_type: str = Field(..., min_length=1)
    year: int = Field(..., ge=1900, le=2100)
    region: str | None = None
    force: bool = True


# ---------------------------------------------------------------------------
# Responses
# ---------------------------------------------------------------------------


class CoefficientsResponse(_CamelModel):
    distance: float
    tonnage: float | None = None


class RegressionModelResponse(_CamelModel):
    """
    Flat regression result.

    Per-coefficient arrays are ordered ``intercept, distance[, tonnage]``;
    ``predictedValues`` and ``residuals`` follow the cohort order.
    """

    vehicle_type: str
    year: int
    region: str | None
    predictor_set: str
    coefficients: CoefficientsResponse
    intercept: float
    r_squared: float | None
    adjusted_r_squared: float | None
    multiple_r: float | None
    standard_error: float | None
    observations: int
    mse: float | None
    rmse: float | None
    mae: float | None
    aic: float | None
    bic: float | None
    degrees_of_freedom: int
    sum_of_squares: float | None
    mean_square: float | None
    f_statistic: float | None
    significance_f: float | None
    standard_errors: list[float | None]
    t_stats: list[float | None]
    p_values: list[float | None]
    lower_confidence: list[float | None]
    upper_confidence: list[float | None]
    predicted_values: list[float]
    residuals: list[float]
    variance_inflation_factors: list[float | None]
    warnings: list[str]
    has_outliers: bool
    has_multicollinearity: bool
    equation: str
    labeled_equation: str
    fitted_at: datetime

    @classmethod
    def from_domain(cls, model: RegressionModel) -> RegressionModelResponse:
        return cls(
            vehicle_type=model.key.vehicle_type.value,
            year=model.key.year,
            region=model.key.region,
            predictor_set=model.predictor_set.value,
            coefficients=CoefficientsResponse(
                distance=model.coefficients.distance,
                tonnage=model.coefficients.tonnage,
            ),
            intercept=model.intercept,
            r_squared=model.r_squared,
            adjusted_r_squared=model.adjusted_r_squared,
            multiple_r=model.multiple_r,
            standard_error=model.standard_error,
            observations=model.observation_count,
            mse=model.mse,
            rmse=model.rmse,
            mae=model.mae,
            aic=model.aic,
            bic=model.bic,
            degrees_of_freedom=model.degrees_of_freedom,
            sum_of_squares=model.sum_of_squares,
            mean_square=model.mean_square,
            f_statistic=model.f_statistic,
            significance_f=model.significance_f,
            standard_errors=list(model.standard_errors),
            t_stats=list(model.t_stats),
            p_values=list(model.p_values),
            lower_confidence=list(model.lower_confidence_95),
            upper_confidence=list(model.upper_confidence_95),
            predicted_values=list(model.predicted_values),
            residuals=list(model.residuals),
            variance_inflation_factors=list(model.variance_inflation_factors),
            warnings=list(model.warnings),
            has_outliers=model.has_outliers,
            has_multicollinearity=model.has_multicollinearity,
            equation=model.equation,
            labeled_equation=format_labeled_equation(model),
            fitted_at=model.fitted_at,
        )


class RegressionSearchResponse(_CamelModel):
    used_year: int
    is_fallback: bool
    model: RegressionModelResponse


class MonthlyDataResponse(_CamelModel):
    month: str
    kilometrage: float
    tonnage: float
    consommation: float
    reference_consommation: float
    improvement_percentage: float | None
    target_consommation: float

    @classmethod
    def from_domain(cls, point: MonthlyDataPoint) -> MonthlyDataResponse:
        return cls(
            month=point.month,
            kilometrage=point.kilometrage,
            tonnage=point.tonnage,
            consommation=point.consommation,
            reference_consommation=point.reference_consommation,
            improvement_percentage=point.improvement_percentage,
            target_consommation=point.target_consommation,
        )


class MonthlyDataListResponse(_CamelModel):
    vehicle_type: str
    year: int
    region: str | None
    used_year: int | None
    improvement_goal: float
    equation: str | None
    items: list[MonthlyDataResponse]

    @classmethod
    def from_report(cls, report: SERReport) -> MonthlyDataListResponse:
        return cls(
            vehicle_type=report.key.vehicle_type.value,
            year=report.key.year,
            region=report.key.region,
            used_year=report.used_year,
            improvement_goal=report.improvement_goal,
            equation=report.equation,
            items=[MonthlyDataResponse.from_domain(point) for point in report.monthly_data],
        )


class AnomalyResponse(_CamelModel):
    matricule: str
    region: str
    month: str
    severity: str | None
    exceeds_reference: bool
    ipe: float | None
    ipe_per_tonne: float | None
    reference_ipe: float | None
    reference_ipe_per_tonne: float | None
    message: str
    notification: dict[str, Any]

    @classmethod
    def from_assessment(
        cls,
        assessment: ObservationAssessment,
        model: RegressionModel | None = None,
    ) -> AnomalyResponse:
        observation = assessment.observation
        verdict = assessment.verdict
        return cls(
            matricule=observation.matricule,
            region=observation.region,
            month=observation.month_label,
            severity=verdict.severity.value if verdict.severity else None,
            exceeds_reference=verdict.exceeds_reference,
            ipe=verdict.actual_ipe,
            ipe_per_tonne=verdict.actual_ipe_per_tonne,
            reference_ipe=verdict.reference_ipe,
            reference_ipe_per_tonne=verdict.reference_ipe_per_tonne,
            message=verdict.message,
            notification=verdict.to_notification(observation, model),
        )


class AnomalyListResponse(_CamelModel):
    vehicle_type: str
    year: int
    region: str | None
    used_year: int | None
    total_records: int
    anomalies: list[AnomalyResponse]

    @classmethod
    def from_report(cls, report: SERReport) -> AnomalyListResponse:
        return cls(
            vehicle_type=report.key.vehicle_type.value,
            year=report.key.year,
            region=report.key.region,
            used_year=report.used_year,
            total_records=len(report.rows),
            anomalies=[
                AnomalyResponse.from_assessment(row, report.model) for row in report.anomalies
            ],
        )


class HealthResponse(BaseModel):
    status: str
    service: str
