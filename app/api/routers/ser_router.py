"""
app/api/routers/ser_router.py

SER regression endpoints: fit, lookup, monthly reference table, anomalies.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.api.dependencies import get_ser_orchestrator, parse_cohort_key
from app.logging_utils import cohort_fields, log_event
from app.schemas.ser import (
    AnalyzeRequest,
    AnomalyListResponse,
    MonthlyDataListResponse,
    RegressionModelResponse,
    RegressionSearchResponse,
)
from db.session import get_db
from regression.errors import InsufficientDataError, SingularMatrixError
from regression.store import ModelNotFoundError
from ser.orchestrator import SEROrchestrator

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/regression", tags=["regression"])


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------


@router.post("/analyze", response_model=RegressionModelResponse)
def analyze_cohort(
    body: AnalyzeRequest,
    orchestrator: SEROrchestrator = Depends(get_ser_orchestrator),
    db: Session = Depends(get_db),
) -> RegressionModelResponse:
    """
    Fit (or re-fit when ``force``) the model for one cohort and store it.

    Raises HTTP 422 when the cohort is too small or its predictors are
    perfectly collinear; nothing is stored in that case.
    """
    key = parse_cohort_key(body.vehicle_type, body.year, body.region)
    try:
        model = orchestrator.analyze(key, force=body.force)
        db.commit()
    except (InsufficientDataError, SingularMatrixError) as exc:
        db.rollback()
        log_event(logger, logging.WARNING, "ser.analyze.rejected", error=str(exc), **cohort_fields(key))
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=str(exc),
        ) from exc
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception("Persisting regression model for %s failed", key)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Regression model could not be stored.",
        ) from exc

    log_event(
        logger,
        logging.INFO,
        "ser.analyze.completed",
        observations=model.observation_count,
        r_squared=model.r_squared,
        warnings=len(model.warnings),
        **cohort_fields(key),
    )
    return RegressionModelResponse.from_domain(model)


@router.get("/search", response_model=RegressionSearchResponse)
def search_model(
    vehicle_type: str = Query(..., alias="type"),
    year: int = Query(...),
    region: str | None = Query(default=None),
    orchestrator: SEROrchestrator = Depends(get_ser_orchestrator),
) -> RegressionSearchResponse:
    """
    Return the model for a cohort, falling back to earlier years and to the
    all-regions model.  HTTP 404 when nothing is found.
    """
    key = parse_cohort_key(vehicle_type, year, region)
    lookup = orchestrator.find_model(key)
    if lookup is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=str(ModelNotFoundError(key, orchestrator.options.fallback_years)),
        )
    return RegressionSearchResponse(
        used_year=lookup.used_year,
        is_fallback=lookup.is_fallback,
        model=RegressionModelResponse.from_domain(lookup.model),
    )


@router.get("/monthly-data", response_model=MonthlyDataListResponse)
def monthly_data(
    vehicle_type: str = Query(..., alias="type"),
    year: int = Query(...),
    region: str | None = Query(default=None),
    improvement_goal: float | None = Query(default=None, alias="improvementGoal", ge=0.0, lt=1.0),
    orchestrator: SEROrchestrator = Depends(get_ser_orchestrator),
) -> MonthlyDataListResponse:
    """
    Monthly totals with reference, improvement and target consumption.
    HTTP 404 when no model exists for the cohort or its fallbacks.
    """
    key = parse_cohort_key(vehicle_type, year, region)
    report = orchestrator.evaluate(key, improvement_goal=improvement_goal)
    if report.model is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=str(ModelNotFoundError(key, orchestrator.options.fallback_years)),
        )
    return MonthlyDataListResponse.from_report(report)


@router.get("/anomalies", response_model=AnomalyListResponse)
def anomalies(
    vehicle_type: str = Query(..., alias="type"),
    year: int = Query(...),
    region: str | None = Query(default=None),
    orchestrator: SEROrchestrator = Depends(get_ser_orchestrator),
) -> AnomalyListResponse:
    """
    IPE anomalies for a cohort with their notification payloads.
    Works without a model: goods vehicles then never exceed a reference.
    """
    key = parse_cohort_key(vehicle_type, year, region)
    report = orchestrator.evaluate(key)
    log_event(
        logger,
        logging.INFO,
        "ser.anomalies.evaluated",
        records=len(report.rows),
        anomalies=len(report.anomalies),
        used_year=report.used_year,
        **cohort_fields(key),
    )
    return AnomalyListResponse.from_report(report)
