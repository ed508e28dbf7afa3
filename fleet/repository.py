"""
fleet/repository.py

Observation repository adapter.

Resolves ``(vehicle_type, year, region)`` into the raw vehicle-month
records of a cohort.  The SQL implementation lives in
:mod:`db.repositories.vehicle_record_repository`; the in-memory one wraps
an observation list the caller already holds.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Iterable

from fleet.observation import CohortKey, Observation, RegressionCohort, VehicleType


class ObservationRepository(ABC):
    @abstractmethod
    def fetch(
        self,
        vehicle_type: VehicleType,
        year: int,
        region: str | None = None,
    ) -> list[Observation]:
        """Records of one vehicle type and year, optionally scoped to a region.

        Ordered by ``(month, matricule)``.
        """

    @abstractmethod
    def list_cohort_keys(self) -> list[CohortKey]:
        """Every ``(vehicle_type, year)`` key plus its per-region keys."""


class InMemoryObservationRepository(ObservationRepository):
    def __init__(self, observations: Iterable[Observation] = ()) -> None:
        self._observations = list(observations)

    def add(self, observation: Observation) -> None:
        self._observations.append(observation)

    def fetch(
        self,
        vehicle_type: VehicleType,
        year: int,
        region: str | None = None,
    ) -> list[Observation]:
        rows = [
            o
            for o in self._observations
            if o.vehicle_type is vehicle_type
            and o.year == year
            and (region is None or o.region == region)
        ]
        return sorted(rows, key=lambda o: (o.month, o.matricule))

    def list_cohort_keys(self) -> list[CohortKey]:
        keys: set[CohortKey] = set()
        for o in self._observations:
            keys.add(CohortKey(vehicle_type=o.vehicle_type, year=o.year))
            keys.add(CohortKey(vehicle_type=o.vehicle_type, year=o.year, region=o.region))
        return sort_cohort_keys(keys)


def load_cohort(repository: ObservationRepository, key: CohortKey) -> RegressionCohort:
    """Fetch the records for *key* and keep the ones usable for fitting."""
    observations = repository.fetch(key.vehicle_type, key.year, key.region)
    return RegressionCohort.usable(key, observations)


def sort_cohort_keys(keys: Iterable[CohortKey]) -> list[CohortKey]:
    # general (region=None) key first within a (type, year)
    return sorted(keys, key=lambda k: (k.vehicle_type.value, k.year, k.region or ""))
