"""
fleet/observation.py

Vehicle-month observation records and the cohort they are fitted in.

Observations are produced by ingestion (outside this project) and are
immutable once built.  Derived energy performance indices (IPE) are
computed on access and are ``None`` whenever the underlying division is
undefined; they never carry NaN or infinity.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Iterable

from regression.errors import safe_ratio

logger = logging.getLogger(__name__)


class UnsupportedVehicleTypeError(ValueError):
    """Raised when a vehicle type label cannot be mapped to :class:`VehicleType`."""


class VehicleType(str, Enum):
    TRUCK = "TRUCK"
    CAR = "CAR"
    FORKLIFT = "FORKLIFT"

    @classmethod
    def parse(cls, raw: str | VehicleType) -> VehicleType:
        """
        Map a vehicle type label to the enum.

        Accepts the enum values and the sheet/business labels found in the
        ingested workbooks (``CAMION``, ``voitures``, ``chariots`` ...).
        """
        if isinstance(raw, VehicleType):
            return raw
        label = (raw or "").strip().upper()
        resolved = _VEHICLE_TYPE_ALIASES.get(label)
        if resolved is None:
            raise UnsupportedVehicleTypeError(f"Unsupported vehicle type: {raw!r}")
        return resolved

    @property
    def transports_goods(self) -> bool:
        return self is VehicleType.TRUCK


_VEHICLE_TYPE_ALIASES: dict[str, VehicleType] = {
    "TRUCK": VehicleType.TRUCK,
    "TRUCKS": VehicleType.TRUCK,
    "CAMION": VehicleType.TRUCK,
    "CAMIONS": VehicleType.TRUCK,
    "CAR": VehicleType.CAR,
    "CARS": VehicleType.CAR,
    "VOITURE": VehicleType.CAR,
    "VOITURES": VehicleType.CAR,
    "FORKLIFT": VehicleType.FORKLIFT,
    "FORKLIFTS": VehicleType.FORKLIFT,
    "CHARIOT": VehicleType.FORKLIFT,
    "CHARIOTS": VehicleType.FORKLIFT,
}


# ---------------------------------------------------------------------------
# Observation
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Observation:
    """
    One vehicle-month record.

    ``tonnage`` is only meaningful for vehicle types that transport goods;
    it is ``None`` when the record carries no tonnage figure.
    """

    vehicle_type: VehicleType
    matricule: str
    region: str
    year: int
    month: int
    distance_km: float
    fuel_liters: float
    cost: float = 0.0
    tonnage: float | None = None

    def __post_init__(self) -> None:
        if not 1 <= self.month <= 12:
            raise ValueError(f"month must be within 1..12, got {self.month!r}.")
        for name in ("distance_km", "fuel_liters", "cost"):
            if getattr(self, name) < 0:
                raise ValueError(f"{name} must be >= 0, got {getattr(self, name)!r}.")
        if self.tonnage is not None and self.tonnage < 0:
            raise ValueError(f"tonnage must be >= 0, got {self.tonnage!r}.")

    @property
    def period(self) -> tuple[int, int]:
        return (self.year, self.month)

    @property
    def month_label(self) -> str:
        return f"{self.year:04d}-{self.month:02d}"

    @property
    def ipe_per_100km(self) -> float | None:
        """Liters per 100 km; ``None`` when no distance was driven."""
        per_km = safe_ratio(self.fuel_liters, self.distance_km)
        return None if per_km is None else per_km * 100.0

    @property
    def ipe_per_100km_per_tonne(self) -> float | None:
        """Liters per 100 km per tonne, trucks only."""
        if not self.vehicle_type.transports_goods or self.tonnage is None:
            return None
        ipe = self.ipe_per_100km
        if ipe is None:
            return None
        return safe_ratio(ipe, self.tonnage)


# ---------------------------------------------------------------------------
# Cohorts
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class CohortKey:
    """
    Identity of a fitting sample and of the model fitted on it.

    ``region=None`` denotes the all-regions cohort.
    """

    vehicle_type: VehicleType
    year: int
    region: str | None = None

    def general(self) -> CohortKey:
        return CohortKey(vehicle_type=self.vehicle_type, year=self.year, region=None)

    def with_year(self, year: int) -> CohortKey:
        return CohortKey(vehicle_type=self.vehicle_type, year=year, region=self.region)

    def __str__(self) -> str:
        region = self.region or "*"
        return f"{self.vehicle_type.value}/{self.year}/{region}"


@dataclass(frozen=True)
class RegressionCohort:
    """All observations sharing a :class:`CohortKey`, in a fixed order."""

    key: CohortKey
    observations: tuple[Observation, ...]

    def __len__(self) -> int:
        return len(self.observations)

    @property
    def size(self) -> int:
        return len(self.observations)

    @classmethod
    def usable(cls, key: CohortKey, observations: Iterable[Observation]) -> RegressionCohort:
        """
        Build a cohort keeping only records usable as fitting samples.

        Records with no distance are dropped; for goods-transporting types
        records without a positive tonnage are dropped as well.
        """
        kept: list[Observation] = []
        dropped = 0
        for observation in observations:
            if _is_usable(observation):
                kept.append(observation)
            else:
                dropped += 1
        if dropped:
            logger.info(
                "Cohort %s: excluded %d record(s) with zero distance or missing tonnage",
                key,
                dropped,
            )
        return cls(key=key, observations=tuple(kept))


def _is_usable(observation: Observation) -> bool:
    if observation.distance_km <= 0:
        return False
    if observation.vehicle_type.transports_goods:
        return observation.tonnage is not None and observation.tonnage > 0
    return True
