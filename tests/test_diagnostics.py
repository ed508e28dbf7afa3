"""
tests/test_diagnostics.py

Unit tests for regression diagnostics.

The textbook sample x = 1..5, y = (2, 4, 5, 4, 5) has closed-form results:
slope 0.6, intercept 2.2, R² 0.6, SS_res 2.4, F 4.5.

Coverage
--------
- Goodness of fit, ANOVA, coefficient inference against closed forms
- Extra metrics (MSE, RMSE, MAE, AIC, BIC)
- VIF and multicollinearity warnings
- Outlier detection
- Perfect fit and zero-variance sentinels
- Range warnings ordering
"""

from __future__ import annotations

import math

import numpy as np
import pytest
from scipy import stats

from fleet.observation import CohortKey, RegressionCohort, VehicleType
from regression.diagnostics import DiagnosticsConfig, analyze, diagnose, variance_inflation_factors
from regression.fitter import fit
from regression.validation import ValidationRanges
from tests.factories import make_observation


def _cars(points: list[tuple[float, float]]) -> RegressionCohort:
    observations = tuple(
        make_observation(distance_km=x, fuel_liters=y, month=i % 12 + 1, matricule=f"C-{i}")
        for i, (x, y) in enumerate(points)
    )
    return RegressionCohort(key=CohortKey(VehicleType.CAR, 2024), observations=observations)


def _trucks(points: list[tuple[float, float, float]]) -> RegressionCohort:
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
    return RegressionCohort(key=CohortKey(VehicleType.TRUCK, 2024), observations=observations)


@pytest.fixture()
def textbook():
    cohort = _cars([(1.0, 2.0), (2.0, 4.0), (3.0, 5.0), (4.0, 4.0), (5.0, 5.0)])
    return analyze(cohort)


class TestGoodnessOfFit:
    def test_coefficients_and_r_squared(self, textbook) -> None:
        assert textbook.coefficients.distance == pytest.approx(0.6)
        assert textbook.intercept == pytest.approx(2.2)
        assert textbook.r_squared == pytest.approx(0.6)
        assert textbook.adjusted_r_squared == pytest.approx(1 - 0.4 * 4 / 3)
        assert textbook.multiple_r == pytest.approx(math.sqrt(0.6))

    def test_standard_error_and_error_metrics(self, textbook) -> None:
        assert textbook.standard_error == pytest.approx(math.sqrt(0.8))
        assert textbook.mse == pytest.approx(0.8)
        assert textbook.rmse == pytest.approx(math.sqrt(0.8))
        assert textbook.mae == pytest.approx(0.64)
        assert textbook.aic == pytest.approx(5 * math.log(0.8) + 4)
        assert textbook.bic == pytest.approx(5 * math.log(0.8) + 2 * math.log(5))

    def test_anova_table(self, textbook) -> None:
        anova = textbook.anova
        assert anova.regression.sum_of_squares == pytest.approx(3.6)
        assert anova.residual.sum_of_squares == pytest.approx(2.4)
        assert anova.total.sum_of_squares == pytest.approx(6.0)
        assert anova.regression.degrees_of_freedom == 1
        assert anova.residual.degrees_of_freedom == 3
        assert anova.total.degrees_of_freedom == 4
        assert textbook.f_statistic == pytest.approx(4.5)
        assert textbook.significance_f == pytest.approx(stats.f.sf(4.5, 1, 3))
        assert textbook.sum_of_squares == pytest.approx(6.0)
        assert textbook.mean_square == pytest.approx(3.6)

    def test_coefficient_inference(self, textbook) -> None:
        se_slope = math.sqrt(0.8 / 10.0)
        se_intercept = math.sqrt(0.8 * (1 / 5 + 9 / 10))
        t_slope = 0.6 / se_slope
        t_crit = stats.t.ppf(0.975, 3)

        assert list(textbook.standard_errors) == pytest.approx([se_intercept, se_slope])
        assert textbook.t_stats[1] == pytest.approx(t_slope)
        assert textbook.p_values[1] == pytest.approx(2 * stats.t.sf(t_slope, 3))
        assert textbook.lower_confidence_95[1] == pytest.approx(0.6 - t_crit * se_slope)
        assert textbook.upper_confidence_95[1] == pytest.approx(0.6 + t_crit * se_slope)

    def test_single_predictor_f_test_matches_slope_t_test(self, textbook) -> None:
        assert textbook.significance_f == pytest.approx(textbook.p_values[1])
        assert textbook.f_statistic == pytest.approx(textbook.t_stats[1] ** 2)

    def test_single_predictor_has_no_vif(self, textbook) -> None:
        assert textbook.variance_inflation_factors == ()
        assert not textbook.has_multicollinearity

    def test_diagnosed_model_carries_equation(self, textbook) -> None:
        assert textbook.is_diagnosed
        assert textbook.equation == "Y = 0.6000×X1 + 2.2000"


class TestAgainstNumpy:
    def test_two_predictor_statistics_match_manual_computation(self, truck_observations, cohort_factory) -> None:
        cohort = cohort_factory(truck_observations)
        model = analyze(cohort)

        X = np.array([[1.0, o.distance_km, o.tonnage] for o in truck_observations])
        y = np.array([o.fuel_liters for o in truck_observations])
        beta = np.linalg.solve(X.T @ X, X.T @ y)
        residuals = y - X @ beta
        df = len(y) - 3
        sigma2 = residuals @ residuals / df
        se = np.sqrt(np.diag(sigma2 * np.linalg.inv(X.T @ X)))
        r2 = 1 - (residuals @ residuals) / np.sum((y - y.mean()) ** 2)

        assert list(model.parameter_vector) == pytest.approx(beta.tolist(), rel=1e-8)
        assert list(model.standard_errors) == pytest.approx(se.tolist(), rel=1e-8)
        assert model.r_squared == pytest.approx(r2, rel=1e-10)
        assert model.degrees_of_freedom == df
        assert model.r_squared > 0.99


class TestMulticollinearity:
    def test_highly_correlated_predictors_flagged(self) -> None:
        distances = [100.0 * k for k in range(1, 13)]
        wiggle = [0.3, -0.2, 0.1, -0.4, 0.2, 0.0, -0.1, 0.3, -0.3, 0.2, -0.2, 0.1]
        tonnages = [d / 10.0 + w for d, w in zip(distances, wiggle)]
        noise = [0.5, -0.4, 0.2, 0.1, -0.3, 0.4, -0.2, 0.0, 0.3, -0.5, 0.2, -0.1]
        cohort = _trucks(
            [(d, t, 0.3 * d + 1.5 * t + 50.0 + e) for d, t, e in zip(distances, tonnages, noise)]
        )
        assert np.corrcoef(distances, tonnages)[0, 1] >= 0.99

        model = analyze(cohort)

        assert len(model.variance_inflation_factors) == 2
        assert all(v > 50.0 for v in model.variance_inflation_factors)
        assert model.has_multicollinearity
        assert model.multicollinear_predictors == ("distance", "tonnage")
        assert any("Multicollinearity detected" in w for w in model.warnings)

    def test_independent_predictors_not_flagged(self, truck_observations, cohort_factory) -> None:
        model = analyze(cohort_factory(truck_observations))
        assert all(1.0 - 1e-9 <= v < 5.0 for v in model.variance_inflation_factors)
        assert not model.has_multicollinearity

    def test_vif_of_orthogonal_columns_is_one(self) -> None:
        X = np.array(
            [[1.0, -1.0, -1.0], [1.0, -1.0, 1.0], [1.0, 1.0, -1.0], [1.0, 1.0, 1.0]]
        )
        assert variance_inflation_factors(X) == pytest.approx([1.0, 1.0])


class TestOutliers:
    def test_spike_is_flagged(self) -> None:
        noise = [0.5, -0.3, 0.2, -0.4, 0.1, 15.0, -0.2, 0.3, -0.1, 0.2]
        cohort = _cars([(100.0 * k, 0.1 * 100.0 * k + 20.0 + e) for k, e in zip(range(1, 11), noise)])
        model = analyze(cohort)

        assert model.outlier_indices == (5,)
        assert model.has_outliers
        assert any(w.startswith("Outlier detected: observation 5") for w in model.warnings)
        assert abs(model.standardized_residuals[5]) > 2.0

    def test_threshold_is_configurable(self) -> None:
        noise = [0.5, -0.3, 0.2, -0.4, 0.1, 15.0, -0.2, 0.3, -0.1, 0.2]
        cohort = _cars([(100.0 * k, 0.1 * 100.0 * k + 20.0 + e) for k, e in zip(range(1, 11), noise)])
        model = analyze(cohort, DiagnosticsConfig(outlier_z_threshold=10.0))
        assert not model.has_outliers


class TestDegenerateFits:
    def test_perfect_fit_uses_sentinels(self) -> None:
        cohort = _cars([(x, 0.2 * x + 10.0) for x in (50.0, 120.0, 260.0, 400.0)])
        model = analyze(cohort)

        assert model.r_squared == 1.0
        assert model.standard_error == 0.0
        assert model.t_stats == (None, None)
        assert model.p_values == (None, None)
        assert model.f_statistic is None
        assert model.significance_f is None
        assert model.aic is None and model.bic is None
        assert list(model.lower_confidence_95) == pytest.approx(list(model.parameter_vector))
        assert not model.has_outliers

    def test_constant_fuel_gives_zero_r_squared(self) -> None:
        cohort = _cars([(x, 25.0) for x in (50.0, 120.0, 260.0, 400.0)])
        model = analyze(cohort)
        assert model.r_squared == 0.0
        assert model.coefficients.distance == pytest.approx(0.0, abs=1e-12)

    def test_no_statistic_is_nan_or_infinite(self) -> None:
        model = analyze(_cars([(x, 0.2 * x + 10.0) for x in (50.0, 120.0, 260.0, 400.0)]))
        scalars = [model.r_squared, model.adjusted_r_squared, model.standard_error, model.mse, model.mae]
        series = [*model.standard_errors, *model.lower_confidence_95, *model.upper_confidence_95]
        for value in scalars + series:
            assert value is None or math.isfinite(value)

    def test_mismatched_cohort_rejected(self) -> None:
        model = fit(_cars([(1.0, 2.0), (2.0, 4.0), (3.0, 5.0), (4.0, 4.0)]))
        with pytest.raises(ValueError):
            diagnose(_cars([(1.0, 2.0), (2.0, 4.0), (3.0, 5.0)]), model)


class TestRangeWarnings:
    def test_range_warnings_come_first(self) -> None:
        noise = [0.5, -0.3, 0.2, -0.4, 0.1, 15.0, -0.2, 0.3, -0.1, 0.2]
        points = [(100.0 * k, 0.1 * 100.0 * k + 20.0 + e) for k, e in zip(range(1, 11), noise)]
        model = analyze(_cars(points), DiagnosticsConfig(ranges=ValidationRanges(max_fuel_liters=100.0)))

        assert model.warnings[0].startswith("Range warning: consumption")
        assert model.has_outliers
        assert model.warnings[-1].startswith("Outlier detected")
