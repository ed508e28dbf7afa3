"""
db/repositories/vehicle_record_repository.py

Read-only access to ``vehicle_records`` for the SER engine.
"""

from __future__ import annotations

import logging

from sqlalchemy import select
from sqlalchemy.orm import Session

from db.models.vehicle_record import VehicleRecord
from fleet.observation import CohortKey, Observation, UnsupportedVehicleTypeError, VehicleType
from fleet.repository import ObservationRepository, sort_cohort_keys

logger = logging.getLogger(__name__)


class SQLAlchemyObservationRepository(ObservationRepository):
    """
    Resolves cohort parameters into observations.

    Rows with an unknown ``vehicle_type`` label are skipped when listing
    cohort keys.  This repository never writes.
    """

    def __init__(self, session: Session) -> None:
        self._session = session

    def fetch(
        self,
        vehicle_type: VehicleType,
        year: int,
        region: str | None = None,
    ) -> list[Observation]:
        stmt = (
            select(VehicleRecord)
            .where(
                VehicleRecord.vehicle_type == vehicle_type.value,
                VehicleRecord.year == year,
            )
            .order_by(VehicleRecord.month, VehicleRecord.matricule)
        )
        if region is not None:
            stmt = stmt.where(VehicleRecord.region == region)

        records = self._session.scalars(stmt).all()
        return [record.to_observation() for record in records]

    def list_cohort_keys(self) -> list[CohortKey]:
        stmt = select(
            VehicleRecord.vehicle_type,
            VehicleRecord.year,
            VehicleRecord.region,
        ).distinct()

        keys: set[CohortKey] = set()
        for raw_type, year, region in self._session.execute(stmt).all():
            try:
                vehicle_type = VehicleType.parse(raw_type)
            except UnsupportedVehicleTypeError:
                logger.warning("Skipping vehicle_records rows with type %r", raw_type)
                continue
            keys.add(CohortKey(vehicle_type=vehicle_type, year=year))
            keys.add(CohortKey(vehicle_type=vehicle_type, year=year, region=region))
        return sort_cohort_keys(keys)
