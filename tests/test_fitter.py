"""
tests/test_fitter.py

Unit tests for the OLS fitter.

Coverage
--------
- Exact recovery of known coefficients (zero noise)
- Permutation invariance
- Degrees-of-freedom boundary for 1 and 2 predictors
- Singular design matrices name the dependent predictors
- Predictor set selection by vehicle type
"""

from __future__ import annotations

import random

import pytest

from fleet.observation import CohortKey, RegressionCohort, VehicleType
from regression.diagnostics import diagnose
from regression.errors import InsufficientDataError, SingularMatrixError
from regression.fitter import OLSRegressionFit, build_design_matrix, fit
from regression.model import PredictorSet
from tests.factories import (
    TRUCK_DISTANCE_COEF,
    TRUCK_INTERCEPT,
    TRUCK_TONNAGE_COEF,
    make_observation,
)


def _cars(points: list[tuple[float, float]]) -> RegressionCohort:
    key = CohortKey(VehicleType.CAR, 2024)
    observations = tuple(
        make_observation(distance_km=x, fuel_liters=y, month=i % 12 + 1, matricule=f"C-{i}")
        for i, (x, y) in enumerate(points)
    )
    return RegressionCohort(key=key, observations=observations)


def _trucks(points: list[tuple[float, float, float]]) -> RegressionCohort:
    key = CohortKey(VehicleType.TRUCK, 2024)
    observations = tuple(
        make_observation(
            VehicleType.TRUCK,
            distance_km=d,
            tonnage=t,
            fuel_liters=y,
            month=i % 12 + 1,
            matricule=f"T-{i}",
        )
        for i, (d, t, y) in enumerate(points)
    )
    return RegressionCohort(key=key, observations=observations)


class TestRoundTrip:
    def test_recovers_truck_coefficients_exactly(self, exact_truck_observations, cohort_factory) -> None:
        cohort = cohort_factory(exact_truck_observations)
        model = fit(cohort)

        assert model.predictor_set is PredictorSet.WITH_TONNAGE
        assert model.coefficients.distance == pytest.approx(TRUCK_DISTANCE_COEF, abs=1e-9)
        assert model.coefficients.tonnage == pytest.approx(TRUCK_TONNAGE_COEF, abs=1e-9)
        assert model.intercept == pytest.approx(TRUCK_INTERCEPT, abs=1e-9)

        diagnosed = diagnose(cohort, model)
        assert diagnosed.r_squared == pytest.approx(1.0, abs=1e-12)

    def test_recovers_car_coefficients_exactly(self) -> None:
        cohort = _cars([(x, 0.08 * x + 4.0) for x in (120.0, 340.0, 515.0, 610.0, 880.0)])
        model = fit(cohort)
        assert model.predictor_set is PredictorSet.SIMPLE
        assert model.coefficients.tonnage is None
        assert model.coefficients.distance == pytest.approx(0.08, abs=1e-9)
        assert model.intercept == pytest.approx(4.0, abs=1e-9)

    def test_predictions_and_residuals_align_with_observations(self, truck_observations, cohort_factory) -> None:
        cohort = cohort_factory(truck_observations)
        model = fit(cohort)
        assert len(model.predicted_values) == len(cohort.observations)
        for obs, predicted, residual in zip(cohort.observations, model.predicted_values, model.residuals):
            assert obs.fuel_liters - predicted == pytest.approx(residual, abs=1e-9)


class TestPermutationInvariance:
    def test_shuffled_cohort_gives_same_model(self, truck_observations, cohort_factory) -> None:
        shuffled = list(truck_observations)
        random.Random(7).shuffle(shuffled)

        baseline = diagnose(cohort_factory(truck_observations), fit(cohort_factory(truck_observations)))
        permuted = diagnose(cohort_factory(shuffled), fit(cohort_factory(shuffled)))

        assert list(permuted.parameter_vector) == pytest.approx(list(baseline.parameter_vector), rel=1e-9)
        assert permuted.r_squared == pytest.approx(baseline.r_squared, rel=1e-9)
        assert permuted.standard_error == pytest.approx(baseline.standard_error, rel=1e-9)
        assert permuted.f_statistic == pytest.approx(baseline.f_statistic, rel=1e-9)
        assert list(permuted.standard_errors) == pytest.approx(list(baseline.standard_errors), rel=1e-9)
        assert list(permuted.p_values) == pytest.approx(list(baseline.p_values), rel=1e-6, abs=1e-15)
        assert sorted(permuted.residuals) == pytest.approx(sorted(baseline.residuals), abs=1e-9)


class TestDegreesOfFreedomBoundary:
    def test_single_predictor_needs_three_observations(self) -> None:
        with pytest.raises(InsufficientDataError) as excinfo:
            fit(_cars([(100.0, 10.0), (200.0, 18.0)]))
        assert excinfo.value.observation_count == 2
        assert excinfo.value.predictor_count == 1

    def test_single_predictor_fits_with_one_degree_of_freedom(self) -> None:
        model = fit(_cars([(100.0, 10.0), (200.0, 18.0), (300.0, 27.0)]))
        assert model.degrees_of_freedom == 1

    def test_two_predictors_need_four_observations(self) -> None:
        with pytest.raises(InsufficientDataError):
            fit(_trucks([(100.0, 5.0, 30.0), (200.0, 9.0, 55.0), (300.0, 4.0, 70.0)]))

    def test_two_predictors_fit_with_one_degree_of_freedom(self) -> None:
        model = fit(_trucks([(100.0, 5.0, 30.0), (200.0, 9.0, 55.0), (300.0, 4.0, 70.0), (250.0, 12.0, 68.0)]))
        assert model.degrees_of_freedom == 1

    def test_empty_cohort_is_insufficient(self) -> None:
        with pytest.raises(InsufficientDataError):
            fit(RegressionCohort(key=CohortKey(VehicleType.CAR, 2024), observations=()))

    def test_min_observations_matches_boundary(self) -> None:
        assert PredictorSet.SIMPLE.min_observations == 3
        assert PredictorSet.WITH_TONNAGE.min_observations == 4


class TestSingularMatrix:
    def test_tonnage_proportional_to_distance(self) -> None:
        cohort = _trucks([(d, d / 50.0, 0.3 * d + 20.0) for d in (100.0, 250.0, 400.0, 520.0, 700.0)])
        with pytest.raises(SingularMatrixError) as excinfo:
            fit(cohort)
        assert "tonnage" in excinfo.value.dependent_predictors
        assert "distance" in excinfo.value.dependent_predictors
        assert "collinear" in str(excinfo.value)

    def test_constant_tonnage_is_collinear_with_intercept(self) -> None:
        cohort = _trucks([(d, 12.0, 0.3 * d + 20.0) for d in (100.0, 250.0, 400.0, 520.0, 700.0)])
        with pytest.raises(SingularMatrixError) as excinfo:
            fit(cohort)
        assert excinfo.value.dependent_predictors == ("tonnage (constant, collinear with intercept)",)

    def test_constant_distance_for_cars(self) -> None:
        with pytest.raises(SingularMatrixError):
            fit(_cars([(100.0, 10.0), (100.0, 12.0), (100.0, 11.0)]))


class TestDesignMatrix:
    def test_columns_follow_predictor_set(self, truck_observations, cohort_factory) -> None:
        cohort = cohort_factory(truck_observations)
        X, y = build_design_matrix(cohort, PredictorSet.WITH_TONNAGE)
        assert X.shape == (12, 3)
        assert (X[:, 0] == 1.0).all()
        assert X[0, 1] == truck_observations[0].distance_km
        assert X[0, 2] == truck_observations[0].tonnage
        assert y[0] == truck_observations[0].fuel_liters

    def test_truck_cohort_can_be_fitted_on_distance_only(self, truck_observations, cohort_factory) -> None:
        model = OLSRegressionFit().fit(cohort_factory(truck_observations), PredictorSet.SIMPLE)
        assert model.predictor_set is PredictorSet.SIMPLE
        assert model.coefficients.tonnage is None
        assert len(model.parameter_vector) == 2
