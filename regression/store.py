"""
regression/store.py

Explicit store of the current fitted model per cohort key.

A published :class:`~regression.model.RegressionModel` is never mutated;
re-fitting a cohort produces a new instance and :meth:`ModelStore.replace`
swaps it in atomically.  Readers holding the previous instance keep a
consistent (if stale) model.
"""

from __future__ import annotations

import logging
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass

from fleet.observation import CohortKey, VehicleType
from regression.errors import RegressionError
from regression.model import RegressionModel

logger = logging.getLogger(__name__)

DEFAULT_FALLBACK_YEARS = 5


class ModelNotFoundError(RegressionError):
    """Raised when no model exists for a key or any of its fallbacks."""

    def __init__(self, key: CohortKey, years_back: int = 0) -> None:
        self.key = key
        self.years_back = years_back
        detail = f" (searched {years_back} earlier year(s))" if years_back else ""
        super().__init__(f"No regression model found for {key}{detail}.")


@dataclass(frozen=True)
class ModelLookup:
    """Result of :meth:`ModelStore.find_with_fallback`."""

    model: RegressionModel
    used_year: int
    requested_key: CohortKey

    @property
    def is_fallback(self) -> bool:
        return self.model.key != self.requested_key


class ModelStore(ABC):
    """Current-model registry keyed by ``(vehicle_type, year, region)``."""

    @abstractmethod
    def get_current(self, key: CohortKey) -> RegressionModel | None:
        """Return the current model for *key*, or ``None``."""

    @abstractmethod
    def replace(self, model: RegressionModel) -> RegressionModel:
        """Publish *model* as the current model for ``model.key``."""

    @abstractmethod
    def keys(self) -> list[CohortKey]:
        """Every key that currently has a model."""

    def require(self, key: CohortKey) -> RegressionModel:
        model = self.get_current(key)
        if model is None:
            raise ModelNotFoundError(key)
        return model

    def find_with_fallback(
        self,
        vehicle_type: VehicleType,
        year: int,
        region: str | None = None,
        max_years_back: int = DEFAULT_FALLBACK_YEARS,
    ) -> ModelLookup | None:
        """
        Find the most relevant model for a cohort.

        Years are searched from *year* down to ``year - max_years_back``.
        Within a year the region-specific model wins over the all-regions
        model.
        """
        requested = CohortKey(vehicle_type=vehicle_type, year=year, region=region)
        for offset in range(max(0, max_years_back) + 1):
            candidate_year = year - offset
            for key in _candidate_keys(requested.with_year(candidate_year)):
                model = self.get_current(key)
                if model is not None:
                    if key != requested:
                        logger.info("Model lookup for %s fell back to %s", requested, key)
                    return ModelLookup(model=model, used_year=candidate_year, requested_key=requested)
        logger.info(
            "No model found for %s within %d year(s) back",
            requested,
            max_years_back,
        )
        return None


def _candidate_keys(key: CohortKey) -> list[CohortKey]:
    if key.region is None:
        return [key]
    return [key, key.general()]


class InMemoryModelStore(ModelStore):
    """Process-local store; safe for concurrent readers and writers."""

    def __init__(self, models: list[RegressionModel] | None = None) -> None:
        self._lock = threading.Lock()
        self._models: dict[CohortKey, RegressionModel] = {}
        for model in models or []:
            self.replace(model)

    def get_current(self, key: CohortKey) -> RegressionModel | None:
        with self._lock:
            return self._models.get(key)

    def replace(self, model: RegressionModel) -> RegressionModel:
        with self._lock:
            previous = self._models.get(model.key)
            self._models[model.key] = model
        if previous is not None:
            logger.debug("Replaced model for %s fitted at %s", model.key, previous.fitted_at)
        return model

    def keys(self) -> list[CohortKey]:
        with self._lock:
            return list(self._models)
