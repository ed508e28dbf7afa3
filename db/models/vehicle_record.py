"""
db/models/vehicle_record.py

Ingested vehicle-month fuel records.
One row per vehicle per month; written by the ingestion pipeline, read by
the SER engine.
"""

from __future__ import annotations

from sqlalchemy import CheckConstraint, Float, Index, Integer, SmallInteger, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from db.base import Base, TimestampMixin, UUIDPrimaryKeyMixin
from fleet.observation import Observation, VehicleType

_UNIQUE_CONSTRAINT = "uq_vehicle_records_vehicle_period"


class VehicleRecord(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    """
    ``vehicle_type`` stores the :class:`fleet.observation.VehicleType` value
    (``TRUCK``, ``CAR``, ``FORKLIFT``).  ``tonnage`` is only populated for
    goods-transporting vehicles.
    """

    __tablename__ = "vehicle_records"

    vehicle_type: Mapped[str] = mapped_column(String(16), nullable=False)
    matricule: Mapped[str] = mapped_column(
        String(64),
        nullable=False,
        comment="Vehicle registration / fleet identifier",
    )
    region: Mapped[str] = mapped_column(String(128), nullable=False)
    year: Mapped[int] = mapped_column(Integer, nullable=False)
    month: Mapped[int] = mapped_column(SmallInteger, nullable=False)
    distance_km: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    fuel_liters: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    cost: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    tonnage: Mapped[float | None] = mapped_column(Float, nullable=True)

    __table_args__ = (
        UniqueConstraint(
            "vehicle_type",
            "matricule",
            "year",
            "month",
            name=_UNIQUE_CONSTRAINT,
        ),
        CheckConstraint("month BETWEEN 1 AND 12", name="ck_vehicle_records_month"),
        Index("ix_vehicle_records_type_year", "vehicle_type", "year"),
        Index("ix_vehicle_records_type_year_region", "vehicle_type", "year", "region"),
    )

    def to_observation(self) -> Observation:
        return Observation(
            vehicle_type=VehicleType.parse(self.vehicle_type),
            matricule=self.matricule,
            region=self.region,
            year=self.year,
            month=self.month,
            distance_km=self.distance_km,
            fuel_liters=self.fuel_liters,
            cost=self.cost,
            tonnage=self.tonnage,
        )
