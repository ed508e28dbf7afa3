"""
app/config.py

Application-level configuration helpers.

Every setting is read from the process environment (after loading the
project ``.env`` files once) into a frozen dataclass behind an
``lru_cache`` getter.  Invalid numeric values fall back to the default.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache

from db.config import load_env_files
from regression.diagnostics import DiagnosticsConfig
from regression.validation import ValidationRanges
from ser.classifier import AnomalyRules
from ser.orchestrator import SEROptions

_ALLOWED_APP_MODES = {"cloud", "local"}


@lru_cache(maxsize=1)
def _load_env_once() -> None:
    """
    Ensure project `.env` files are loaded once before reading app settings.
    """

    load_env_files()


def _require_app_mode() -> str:
    """
    Read and validate APP_MODE from the environment.

    APP_MODE must be explicitly set; a missing or unknown value raises
    RuntimeError instead of silently picking a mode.
    """

    _load_env_once()
    raw = os.getenv("APP_MODE")
    if raw is None:
        raise RuntimeError(f"APP_MODE must be explicitly set to one of {sorted(_ALLOWED_APP_MODES)}.")
    mode = raw.strip().lower()
    if mode not in _ALLOWED_APP_MODES:
        raise RuntimeError(
            f"APP_MODE '{raw.strip()}' is not valid. "
            f"Allowed values: {sorted(_ALLOWED_APP_MODES)}."
        )
    return mode


@dataclass(frozen=True)
class AppSettings:
    """
    Top-level application mode settings.
    """

    mode: str


@lru_cache(maxsize=1)
def get_app_settings() -> AppSettings:
    """
    Return cached application settings.

    Raises RuntimeError if APP_MODE is missing or invalid.
    """

    return AppSettings(mode=_require_app_mode())


def _get_bool_env(name: str, default: bool) -> bool:
    """
    Read a boolean from environment variables with safe fallback.
    """

    _load_env_once()
    raw_value = os.getenv(name)
    if raw_value is None:
        return default
    return raw_value.strip().lower() in {"1", "true", "yes", "on"}


def _get_int_env(name: str, default: int) -> int:
    """
    Read an integer from environment variables with safe fallback.
    """

    _load_env_once()
    raw_value = os.getenv(name)
    if raw_value is None:
        return default
    try:
        return int(raw_value)
    except ValueError:
        return default


def _get_float_env(name: str, default: float) -> float:
    """
    Read a float from environment variables with safe fallback.
    """

    _load_env_once()
    raw_value = os.getenv(name)
    if raw_value is None:
        return default
    try:
        return float(raw_value)
    except ValueError:
        return default


# ---------------------------------------------------------------------------
# SER settings
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class SERSettings:
    """
    Regression and reference settings.
    """

    improvement_goal: float = 0.03
    vif_threshold: float = 5.0
    outlier_z_threshold: float = 2.0
    fallback_years: int = 5


@dataclass(frozen=True)
class AnomalySettings:
    """
    IPE thresholds in L/100km and the reference rule for non-goods vehicles.
    """

    low_threshold: float = 30.0
    medium_threshold: float = 40.0
    high_threshold: float = 50.0
    require_reference_for_all_types: bool = False


@dataclass(frozen=True)
class ValidationRangeSettings:
    """
    Upper bounds above which input values are reported as range warnings.
    """

    max_distance_km: float = 500_000.0
    max_fuel_liters: float = 50_000.0
    max_tonnage: float = 500_000.0


@dataclass(frozen=True)
class SchedulerSettings:
    """
    Batch jobs: nightly re-analysis and daily anomaly scan (UTC hours).
    """

    enabled: bool = True
    reanalysis_hour: int = 1
    anomaly_scan_hour: int = 6


@lru_cache(maxsize=1)
def get_ser_settings() -> SERSettings:
    """
    Return cached SER settings from environment variables.
    """

    goal = _get_float_env("SER_IMPROVEMENT_GOAL", 0.03)
    if not 0.0 <= goal < 1.0:
        goal = 0.03
    return SERSettings(
        improvement_goal=goal,
        vif_threshold=max(1.0, _get_float_env("SER_VIF_THRESHOLD", 5.0)),
        outlier_z_threshold=max(0.1, _get_float_env("SER_OUTLIER_Z_THRESHOLD", 2.0)),
        fallback_years=max(0, _get_int_env("SER_FALLBACK_YEARS", 5)),
    )


@lru_cache(maxsize=1)
def get_anomaly_settings() -> AnomalySettings:
    """
    Return cached anomaly thresholds from environment variables.
    """

    return AnomalySettings(
        low_threshold=_get_float_env("ANOMALY_LOW_THRESHOLD", 30.0),
        medium_threshold=_get_float_env("ANOMALY_MEDIUM_THRESHOLD", 40.0),
        high_threshold=_get_float_env("ANOMALY_HIGH_THRESHOLD", 50.0),
        require_reference_for_all_types=_get_bool_env("ANOMALY_REQUIRE_REFERENCE_ALL_TYPES", False),
    )


@lru_cache(maxsize=1)
def get_validation_range_settings() -> ValidationRangeSettings:
    """
    Return cached input range bounds from environment variables.
    """

    return ValidationRangeSettings(
        max_distance_km=max(0.0, _get_float_env("SER_MAX_DISTANCE_KM", 500_000.0)),
        max_fuel_liters=max(0.0, _get_float_env("SER_MAX_FUEL_LITERS", 50_000.0)),
        max_tonnage=max(0.0, _get_float_env("SER_MAX_TONNAGE", 500_000.0)),
    )


@lru_cache(maxsize=1)
def get_scheduler_settings() -> SchedulerSettings:
    """
    Return cached scheduler settings from environment variables.
    """

    return SchedulerSettings(
        enabled=_get_bool_env("SCHEDULER_ENABLED", True),
        reanalysis_hour=min(23, max(0, _get_int_env("SCHEDULER_REANALYSIS_HOUR", 1))),
        anomaly_scan_hour=min(23, max(0, _get_int_env("SCHEDULER_ANOMALY_SCAN_HOUR", 6))),
    )


def build_ser_options(
    ser: SERSettings | None = None,
    anomaly: AnomalySettings | None = None,
    ranges: ValidationRangeSettings | None = None,
) -> SEROptions:
    """
    Translate settings into the engine's option objects.

    Arguments default to the cached environment settings.
    """

    ser = ser or get_ser_settings()
    anomaly = anomaly or get_anomaly_settings()
    ranges = ranges or get_validation_range_settings()
    return SEROptions(
        improvement_goal=ser.improvement_goal,
        fallback_years=ser.fallback_years,
        diagnostics=DiagnosticsConfig(
            vif_threshold=ser.vif_threshold,
            outlier_z_threshold=ser.outlier_z_threshold,
            ranges=ValidationRanges(
                max_distance_km=ranges.max_distance_km,
                max_fuel_liters=ranges.max_fuel_liters,
                max_tonnage=ranges.max_tonnage,
            ),
        ),
        anomaly_rules=AnomalyRules(
            low_threshold=anomaly.low_threshold,
            medium_threshold=anomaly.medium_threshold,
            high_threshold=anomaly.high_threshold,
            require_reference_for_all_types=anomaly.require_reference_for_all_types,
        ),
    )
