"""
regression/diagnostics.py

Inferential statistics for a fitted SER regression.

Given the cohort and the undiagnosed model returned by
:mod:`regression.fitter`, :func:`diagnose` rebuilds the exact design
matrix used by the fit and attaches:

    R²              = 1 - SS_res / SS_tot
    adjusted R²     = 1 - (1 - R²)(n - 1) / (n - p - 1)
    standard error  = sqrt(SS_res / df)
    se(β)           = sqrt(diag(σ² (XᵀX)⁻¹))
    t               = β / se(β),   p = 2·P(T_df > |t|)
    95 % CI         = β ± t(0.975, df)·se(β)
    F               = (SS_reg / p) / (SS_res / df),  significance = P(F(p, df) > F)
    VIF_j           = 1 / (1 - R²_j)
    MSE, RMSE, MAE, AIC = n·ln(MSE) + 2k, BIC = n·ln(MSE) + k·ln(n)

plus outlier (standardized residual) and multicollinearity (VIF) warnings.
Every value that is undefined for the sample is reported as ``None``.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, replace

import numpy as np
from scipy import stats

from fleet.observation import RegressionCohort
from regression.errors import finite_or_none, safe_ratio
from regression.fitter import build_design_matrix, fit
from regression.formatter import format_equation
from regression.model import AnovaRow, AnovaTable, RegressionModel
from regression.validation import ValidationRanges, range_warnings

logger = logging.getLogger(__name__)

# SS_res below this fraction of yᵀy is floating-point noise around an exact fit.
_PERFECT_FIT_RTOL = 1e-16
_CONFIDENCE_LEVEL = 0.95


@dataclass(frozen=True)
class DiagnosticsConfig:
    vif_threshold: float = 5.0
    outlier_z_threshold: float = 2.0
    ranges: ValidationRanges = ValidationRanges()


def diagnose(
    cohort: RegressionCohort,
    model: RegressionModel,
    config: DiagnosticsConfig | None = None,
) -> RegressionModel:
    """
    Return a copy of *model* with every diagnostic statistic attached.

    Raises
    ------
    ValueError
        If *model* was not fitted on *cohort* (size or prediction mismatch).
    """
    config = config or DiagnosticsConfig()

    X, y = build_design_matrix(cohort, model.predictor_set)
    n, k = X.shape
    p = k - 1
    df = n - k
    if n != model.observation_count or df != model.degrees_of_freedom:
        raise ValueError(
            f"Model for {model.key} was fitted on {model.observation_count} observations, "
            f"cohort has {n}."
        )

    beta = np.asarray(model.parameter_vector, dtype=np.float64)
    predicted = X @ beta
    residuals = y - predicted
    if not np.allclose(predicted, model.predicted_values, rtol=1e-9, atol=1e-9):
        raise ValueError(f"Model for {model.key} was not fitted on this cohort.")

    # --- sums of squares ---------------------------------------------------
    mean_y = float(np.mean(y))
    ss_tot = float(np.sum((y - mean_y) ** 2))
    ss_res = float(np.sum(residuals ** 2))
    if ss_res <= _PERFECT_FIT_RTOL * float(y @ y):
        ss_res = 0.0
    ss_reg = float(np.sum((predicted - mean_y) ** 2))

    r_squared = 1.0 - ss_res / ss_tot if ss_tot > 0.0 else 0.0
    adjusted_r_squared = 1.0 - (1.0 - r_squared) * (n - 1) / df
    multiple_r = math.sqrt(max(r_squared, 0.0))

    mse = ss_res / df
    standard_error = math.sqrt(mse)
    mae = float(np.mean(np.abs(residuals))) if ss_res > 0.0 else 0.0
    aic, bic = _information_criteria(n=n, k=k, mse=mse)

    # --- coefficient inference --------------------------------------------
    coef_se = np.sqrt(mse * np.diag(_xtx_inverse(X)))
    t_critical = float(stats.t.ppf(0.5 + _CONFIDENCE_LEVEL / 2.0, df))

    standard_errors: list[float | None] = []
    t_stats: list[float | None] = []
    p_values: list[float | None] = []
    lower: list[float | None] = []
    upper: list[float | None] = []
    for coefficient, se in zip(beta, coef_se):
        se = float(se)
        standard_errors.append(finite_or_none(se))
        t_value = safe_ratio(float(coefficient), se)
        t_stats.append(t_value)
        p_values.append(
            None if t_value is None else finite_or_none(2.0 * stats.t.sf(abs(t_value), df))
        )
        lower.append(finite_or_none(coefficient - t_critical * se))
        upper.append(finite_or_none(coefficient + t_critical * se))

    # --- ANOVA -------------------------------------------------------------
    f_statistic = safe_ratio(ss_reg / p, mse)
    significance_f = (
        None if f_statistic is None else finite_or_none(stats.f.sf(f_statistic, p, df))
    )
    anova = AnovaTable(
        regression=AnovaRow(degrees_of_freedom=p, sum_of_squares=ss_reg, mean_square=ss_reg / p),
        residual=AnovaRow(degrees_of_freedom=df, sum_of_squares=ss_res, mean_square=mse),
        total=AnovaRow(
            degrees_of_freedom=n - 1,
            sum_of_squares=ss_tot,
            mean_square=safe_ratio(ss_tot, n - 1),
        ),
        f_statistic=f_statistic,
        significance_f=significance_f,
    )

    # --- warnings ------------------------------------------------------------
    warnings = range_warnings(cohort, config.ranges)

    vifs = variance_inflation_factors(X)
    multicollinear: list[str] = []
    for name, vif in zip(model.predictor_set.columns[: len(vifs)], vifs):
        if vif is None or vif > config.vif_threshold:
            multicollinear.append(name)
            shown = "unbounded" if vif is None else f"{vif:.2f}"
            warnings.append(
                f"Multicollinearity detected: VIF for {name} is {shown} "
                f"(threshold {config.vif_threshold:g})"
            )

    if standard_error > 0.0:
        standardized = residuals / standard_error
    else:
        standardized = np.zeros(n)
    outliers: list[int] = []
    for i, z in enumerate(standardized):
        if abs(z) > config.outlier_z_threshold:
            outliers.append(i)
            observation = cohort.observations[i]
            warnings.append(
                f"Outlier detected: observation {i} ({observation.matricule} "
                f"{observation.month_label}) has standardized residual {z:+.2f}"
            )

    diagnosed = replace(
        model,
        r_squared=r_squared,
        adjusted_r_squared=adjusted_r_squared,
        multiple_r=multiple_r,
        standard_error=standard_error,
        mse=mse,
        rmse=math.sqrt(mse),
        mae=mae,
        aic=aic,
        bic=bic,
        anova=anova,
        standard_errors=tuple(standard_errors),
        t_stats=tuple(t_stats),
        p_values=tuple(p_values),
        lower_confidence_95=tuple(lower),
        upper_confidence_95=tuple(upper),
        variance_inflation_factors=tuple(vifs),
        standardized_residuals=tuple(float(z) for z in standardized),
        outlier_indices=tuple(outliers),
        multicollinear_predictors=tuple(multicollinear),
        warnings=tuple(warnings),
        is_diagnosed=True,
    )
    diagnosed = replace(diagnosed, equation=format_equation(diagnosed))

    logger.debug(
        "Diagnostics cohort=%s r2=%.6f df=%d outliers=%d multicollinear=%s",
        model.key,
        r_squared,
        df,
        len(outliers),
        multicollinear,
    )
    return diagnosed


def analyze(
    cohort: RegressionCohort,
    config: DiagnosticsConfig | None = None,
) -> RegressionModel:
    """Fit *cohort* and attach diagnostics in one call."""
    return diagnose(cohort, fit(cohort), config)


def variance_inflation_factors(X: np.ndarray) -> list[float | None]:
    """
    VIF for every non-intercept column of *X*.

    Each predictor is regressed on the remaining columns (intercept
    included).  A single-predictor design has no VIF and yields ``[]``.
    """
    n_columns = X.shape[1]
    if n_columns <= 2:
        return []

    vifs: list[float | None] = []
    for j in range(1, n_columns):
        target = X[:, j]
        others = np.delete(X, j, axis=1)
        gamma, *_ = np.linalg.lstsq(others, target, rcond=None)
        aux_residuals = target - others @ gamma
        ss_tot = float(np.sum((target - target.mean()) ** 2))
        ss_res = float(np.sum(aux_residuals ** 2))
        r_squared_j = 1.0 - ss_res / ss_tot if ss_tot > 0.0 else 1.0
        vifs.append(safe_ratio(1.0, 1.0 - r_squared_j))
    return vifs


def _xtx_inverse(X: np.ndarray) -> np.ndarray:
    # (XᵀX)⁻¹ = V·diag(1/s²)·Vᵀ from the thin SVD of X
    _u, s, vt = np.linalg.svd(X, full_matrices=False)
    return (vt.T / (s ** 2)) @ vt


def _information_criteria(*, n: int, k: int, mse: float) -> tuple[float | None, float | None]:
    if mse <= 0.0:
        return None, None
    log_mse = math.log(mse)
    return n * log_mse + 2 * k, n * log_mse + k * math.log(n)
