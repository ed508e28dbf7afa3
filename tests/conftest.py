"""
tests/conftest.py

Shared fixtures.  No database; every test runs on in-memory repositories
and stores.
"""

from __future__ import annotations

from typing import Callable

import pytest

from fleet.observation import CohortKey, Observation, RegressionCohort, VehicleType
from regression.model import PredictorSet, RegressionCoefficients, RegressionModel
from tests.factories import SMALL_NOISE, truck_year


@pytest.fixture()
def truck_observations() -> list[Observation]:
    """Known truck relationship plus small noise."""
    return truck_year(noise=SMALL_NOISE)


@pytest.fixture()
def exact_truck_observations() -> list[Observation]:
    """Zero-noise truck records."""
    return truck_year(matricule="TR-200")


@pytest.fixture()
def cohort_factory() -> Callable[[list[Observation]], RegressionCohort]:
    def _build(observations: list[Observation]) -> RegressionCohort:
        first = observations[0]
        key = CohortKey(vehicle_type=first.vehicle_type, year=first.year)
        return RegressionCohort(key=key, observations=tuple(observations))

    return _build


@pytest.fixture()
def model_factory() -> Callable[..., RegressionModel]:
    """Build an undiagnosed model with chosen coefficients."""

    def _build(
        distance: float,
        intercept: float,
        tonnage: float | None = None,
        *,
        vehicle_type: VehicleType | None = None,
        year: int = 2024,
        region: str | None = None,
        equation: str = "",
    ) -> RegressionModel:
        predictor_set = PredictorSet.SIMPLE if tonnage is None else PredictorSet.WITH_TONNAGE
        if vehicle_type is None:
            vehicle_type = VehicleType.CAR if tonnage is None else VehicleType.TRUCK
        return RegressionModel(
            key=CohortKey(vehicle_type=vehicle_type, year=year, region=region),
            predictor_set=predictor_set,
            coefficients=RegressionCoefficients(distance=distance, tonnage=tonnage),
            intercept=intercept,
            observation_count=predictor_set.min_observations,
            degrees_of_freedom=1,
            predicted_values=(),
            residuals=(),
            equation=equation,
        )

    return _build
