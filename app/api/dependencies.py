"""
app/api/dependencies.py

Shared FastAPI dependencies for the SER endpoints.
"""

from __future__ import annotations

from fastapi import Depends, HTTPException, status
from sqlalchemy.orm import Session

from app.config import build_ser_options
from db.repositories import SQLAlchemyModelStore, SQLAlchemyObservationRepository
from db.session import get_db
from fleet.observation import CohortKey, UnsupportedVehicleTypeError, VehicleType
from ser.orchestrator import SEROrchestrator


def get_ser_orchestrator(db: Session = Depends(get_db)) -> SEROrchestrator:
    """
    Build a request-scoped orchestrator bound to the request's session.
    """

    return SEROrchestrator(
        repository=SQLAlchemyObservationRepository(db),
        store=SQLAlchemyModelStore(db),
        options=build_ser_options(),
    )


def parse_cohort_key(vehicle_type: str, year: int, region: str | None = None) -> CohortKey:
    """
    Resolve request parameters into a cohort key.

    Raises HTTP 400 for an unknown vehicle type label.
    """

    try:
        resolved = VehicleType.parse(vehicle_type)
    except UnsupportedVehicleTypeError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(exc),
        ) from exc
    region = (region or "").strip() or None
    return CohortKey(vehicle_type=resolved, year=year, region=region)
