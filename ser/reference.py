"""
ser/reference.py

Reference & target calculator.

For one observation and a fitted model:

    reference   = c + a·distance (+ b·tonnage)
    improvement = (actual - reference) / actual × 100
    target      = actual × (1 - improvement_goal)

plus the reference IPEs (IPE_SER) used by the anomaly classifier.  Every
ratio goes through :func:`regression.errors.safe_ratio`, so a zero
distance, tonnage or consumption yields ``None`` instead of NaN/inf.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass
from typing import Iterable

from fleet.observation import Observation
from regression.errors import safe_ratio
from regression.model import PredictorSet, RegressionModel

logger = logging.getLogger(__name__)

DEFAULT_IMPROVEMENT_GOAL = 0.03


@dataclass(frozen=True)
class ReferencePoint:
    """Per-observation reference values derived from a :class:`RegressionModel`."""

    reference_consumption: float
    improvement_percentage: float | None
    target_consumption: float
    improvement_goal: float
    reference_ipe_per_100km: float | None = None
    reference_ipe_per_100km_per_tonne: float | None = None


@dataclass(frozen=True)
class MonthlyDataPoint:
    """One row of the monthly SER table (totals over the cohort's vehicles)."""

    month: str
    kilometrage: float
    tonnage: float
    consommation: float
    reference_consommation: float
    improvement_percentage: float | None
    target_consommation: float


def validate_improvement_goal(improvement_goal: float) -> float:
    if not 0.0 <= improvement_goal < 1.0:
        raise ValueError(
            f"improvement_goal must be within [0, 1), got {improvement_goal!r}."
        )
    return float(improvement_goal)


def predict_consumption(model: RegressionModel, distance_km: float, tonnage: float | None) -> float:
    """Fuel predicted by *model*; negative coefficients are applied as fitted."""
    predicted = model.intercept + model.coefficients.distance * distance_km
    if model.predictor_set is PredictorSet.WITH_TONNAGE:
        predicted += (model.coefficients.tonnage or 0.0) * (tonnage or 0.0)
    return predicted


def improvement_percentage(actual: float, reference: float) -> float | None:
    ratio = safe_ratio(actual - reference, actual)
    return None if ratio is None else ratio * 100.0


def compute_reference(
    observation: Observation,
    model: RegressionModel,
    improvement_goal: float = DEFAULT_IMPROVEMENT_GOAL,
) -> ReferencePoint:
    """
    Reference point for *observation* under *model*.

    Raises
    ------
    ValueError
        If *improvement_goal* is outside ``[0, 1)``.
    """
    goal = validate_improvement_goal(improvement_goal)
    reference = predict_consumption(model, observation.distance_km, observation.tonnage)

    per_km = safe_ratio(reference, observation.distance_km)
    reference_ipe = None if per_km is None else per_km * 100.0
    reference_ipe_per_tonne = None
    if observation.vehicle_type.transports_goods and reference_ipe is not None:
        reference_ipe_per_tonne = safe_ratio(reference_ipe, observation.tonnage)

    return ReferencePoint(
        reference_consumption=reference,
        improvement_percentage=improvement_percentage(observation.fuel_liters, reference),
        target_consumption=observation.fuel_liters * (1.0 - goal),
        improvement_goal=goal,
        reference_ipe_per_100km=reference_ipe,
        reference_ipe_per_100km_per_tonne=reference_ipe_per_tonne,
    )


def compute_monthly_data(
    observations: Iterable[Observation],
    model: RegressionModel,
    improvement_goal: float = DEFAULT_IMPROVEMENT_GOAL,
) -> list[MonthlyDataPoint]:
    """
    Aggregate *observations* per month and attach reference and target totals.

    The monthly reference is the sum of the per-observation references, so
    the intercept is counted once per vehicle-month.
    """
    goal = validate_improvement_goal(improvement_goal)

    totals: dict[str, list[float]] = defaultdict(lambda: [0.0, 0.0, 0.0, 0.0])
    for observation in observations:
        bucket = totals[observation.month_label]
        bucket[0] += observation.distance_km
        bucket[1] += observation.tonnage or 0.0
        bucket[2] += observation.fuel_liters
        bucket[3] += predict_consumption(model, observation.distance_km, observation.tonnage)

    rows: list[MonthlyDataPoint] = []
    for month in sorted(totals):
        distance, tonnage, fuel, reference = totals[month]
        rows.append(
            MonthlyDataPoint(
                month=month,
                kilometrage=distance,
                tonnage=tonnage,
                consommation=fuel,
                reference_consommation=reference,
                improvement_percentage=improvement_percentage(fuel, reference),
                target_consommation=fuel * (1.0 - goal),
            )
        )
    logger.debug("Monthly SER table for %s: %d month(s)", model.key, len(rows))
    return rows
