"""
tests/test_reference.py

Unit tests for the reference & target calculator.

Coverage
--------
- Worked truck example (reference, improvement, target, reference IPEs)
- Division guards (zero fuel, zero distance, zero tonnage)
- Negative coefficients are applied as fitted
- Reference monotonic in distance for a non-negative distance coefficient
- Improvement goal validation and target monotonicity
- Monthly aggregation
"""

from __future__ import annotations

import pytest

from fleet.observation import VehicleType
from ser.reference import (
    DEFAULT_IMPROVEMENT_GOAL,
    compute_monthly_data,
    compute_reference,
    improvement_percentage,
    predict_consumption,
    validate_improvement_goal,
)
from tests.factories import make_observation


@pytest.fixture()
def truck_model(model_factory):
    return model_factory(0.2, 100.0, tonnage=1.5)


def _truck(distance_km: float = 1000.0, tonnage: float | None = 20.0, fuel_liters: float = 350.0, **kwargs):
    return make_observation(
        VehicleType.TRUCK,
        distance_km=distance_km,
        tonnage=tonnage,
        fuel_liters=fuel_liters,
        **kwargs,
    )


class TestComputeReference:
    def test_worked_truck_example(self, truck_model) -> None:
        point = compute_reference(_truck(), truck_model, improvement_goal=0.03)

        assert point.reference_consumption == pytest.approx(330.0)
        assert point.improvement_percentage == pytest.approx(5.714285714, rel=1e-9)
        assert point.target_consumption == pytest.approx(339.5)
        assert point.improvement_goal == 0.03
        assert point.reference_ipe_per_100km == pytest.approx(33.0)
        assert point.reference_ipe_per_100km_per_tonne == pytest.approx(1.65)

    def test_default_goal_is_three_percent(self, truck_model) -> None:
        point = compute_reference(_truck(), truck_model)
        assert point.improvement_goal == DEFAULT_IMPROVEMENT_GOAL
        assert point.target_consumption == pytest.approx(350.0 * 0.97)

    def test_cars_have_no_per_tonne_reference(self, model_factory) -> None:
        model = model_factory(0.07, 2.0)
        point = compute_reference(make_observation(distance_km=500.0, fuel_liters=40.0), model)
        assert point.reference_consumption == pytest.approx(37.0)
        assert point.reference_ipe_per_100km == pytest.approx(7.4)
        assert point.reference_ipe_per_100km_per_tonne is None

    def test_worse_than_reference_gives_negative_improvement(self, model_factory) -> None:
        model = model_factory(0.07, 2.0)
        point = compute_reference(make_observation(distance_km=500.0, fuel_liters=30.0), model)
        assert point.improvement_percentage == pytest.approx((30.0 - 37.0) / 30.0 * 100.0)

    @pytest.mark.parametrize("distance_coefficient", [0.0, 0.2, 1.3])
    def test_reference_never_drops_as_distance_grows(self, model_factory, distance_coefficient: float) -> None:
        model = model_factory(distance_coefficient, 100.0, tonnage=1.5)
        references = [
            compute_reference(_truck(distance_km=distance, tonnage=20.0), model).reference_consumption
            for distance in (0.0, 50.0, 400.0, 1000.0, 1000.5, 8000.0)
        ]
        assert references == sorted(references)

    def test_negative_distance_coefficient_is_applied_as_fitted(self, model_factory) -> None:
        model = model_factory(-0.05, 100.0, tonnage=1.5)
        references = [
            compute_reference(_truck(distance_km=distance, tonnage=20.0), model).reference_consumption
            for distance in (0.0, 1000.0, 4000.0)
        ]
        assert references == pytest.approx([130.0, 80.0, -70.0])


class TestDivisionGuards:
    def test_zero_fuel_leaves_improvement_undefined(self, truck_model) -> None:
        point = compute_reference(_truck(fuel_liters=0.0), truck_model)
        assert point.improvement_percentage is None
        assert point.target_consumption == 0.0

    def test_zero_distance_leaves_reference_ipe_undefined(self, truck_model) -> None:
        point = compute_reference(_truck(distance_km=0.0), truck_model)
        assert point.reference_consumption == pytest.approx(130.0)
        assert point.reference_ipe_per_100km is None
        assert point.reference_ipe_per_100km_per_tonne is None

    def test_zero_tonnage_leaves_per_tonne_undefined(self, truck_model) -> None:
        point = compute_reference(_truck(tonnage=0.0), truck_model)
        assert point.reference_ipe_per_100km == pytest.approx(30.0)
        assert point.reference_ipe_per_100km_per_tonne is None

    def test_improvement_percentage_helper(self) -> None:
        assert improvement_percentage(200.0, 150.0) == pytest.approx(25.0)
        assert improvement_percentage(0.0, 150.0) is None


class TestNegativeCoefficients:
    def test_negative_tonnage_coefficient_is_not_clamped(self, model_factory) -> None:
        model = model_factory(0.3, 50.0, tonnage=-0.5)
        assert predict_consumption(model, 1000.0, 40.0) == pytest.approx(330.0)

    def test_negative_intercept_is_not_clamped(self, model_factory) -> None:
        model = model_factory(0.1, -20.0)
        assert predict_consumption(model, 100.0, None) == pytest.approx(-10.0)

    def test_missing_tonnage_counts_as_zero(self, truck_model) -> None:
        assert predict_consumption(truck_model, 1000.0, None) == pytest.approx(300.0)


class TestImprovementGoal:
    @pytest.mark.parametrize("goal", [-0.01, 1.0, 1.5])
    def test_out_of_range_goal_rejected(self, truck_model, goal: float) -> None:
        with pytest.raises(ValueError):
            compute_reference(_truck(), truck_model, improvement_goal=goal)

    def test_zero_goal_keeps_actual_as_target(self, truck_model) -> None:
        assert compute_reference(_truck(), truck_model, improvement_goal=0.0).target_consumption == 350.0

    def test_validate_returns_float(self) -> None:
        assert validate_improvement_goal(0) == 0.0
        assert isinstance(validate_improvement_goal(0), float)

    def test_target_decreases_as_goal_grows(self, truck_model) -> None:
        targets = [
            compute_reference(_truck(), truck_model, improvement_goal=goal).target_consumption
            for goal in (0.0, 0.01, 0.03, 0.1, 0.5)
        ]
        assert targets == sorted(targets, reverse=True)
        assert len(set(targets)) == len(targets)


class TestMonthlyData:
    def test_sums_per_month_and_sorts(self, truck_model) -> None:
        observations = [
            _truck(distance_km=1000.0, tonnage=20.0, fuel_liters=350.0, month=2, matricule="A"),
            _truck(distance_km=500.0, tonnage=10.0, fuel_liters=180.0, month=2, matricule="B"),
            _truck(distance_km=800.0, tonnage=12.0, fuel_liters=290.0, month=1, matricule="A"),
        ]
        rows = compute_monthly_data(observations, truck_model, improvement_goal=0.05)

        assert [row.month for row in rows] == ["2024-01", "2024-02"]
        january, february = rows
        assert january.kilometrage == 800.0
        assert january.reference_consommation == pytest.approx(0.2 * 800 + 1.5 * 12 + 100.0)

        assert february.kilometrage == 1500.0
        assert february.tonnage == 30.0
        assert february.consommation == 530.0
        # intercept counted once per vehicle-month
        assert february.reference_consommation == pytest.approx(330.0 + 215.0)
        assert february.target_consommation == pytest.approx(530.0 * 0.95)
        assert february.improvement_percentage == pytest.approx((530.0 - 545.0) / 530.0 * 100.0)

    def test_empty_input_gives_no_rows(self, truck_model) -> None:
        assert compute_monthly_data([], truck_model) == []

    def test_invalid_goal_rejected(self, truck_model) -> None:
        with pytest.raises(ValueError):
            compute_monthly_data([_truck()], truck_model, improvement_goal=2.0)
