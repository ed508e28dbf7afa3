"""
Plausibility checks on cohort inputs.

Out-of-range values do not stop a fit; they are reported as warnings on
the resulting model so analysts can review the source records.
"""

from __future__ import annotations

from dataclasses import dataclass

from fleet.observation import RegressionCohort


@dataclass(frozen=True)
class ValidationRanges:
    max_distance_km: float = 500_000.0
    max_fuel_liters: float = 50_000.0
    max_tonnage: float = 500_000.0


def range_warnings(cohort: RegressionCohort, ranges: ValidationRanges | None = None) -> list[str]:
    """Return one warning per field value outside its expected range."""
    ranges = ranges or ValidationRanges()
    warnings: list[str] = []
    for observation in cohort.observations:
        where = f"{observation.matricule} {observation.month_label}"
        if observation.distance_km > ranges.max_distance_km:
            warnings.append(
                f"Range warning: distance {observation.distance_km:.2f} km for "
                f"{where} is outside the expected range"
            )
        if observation.fuel_liters > ranges.max_fuel_liters:
            warnings.append(
                f"Range warning: consumption {observation.fuel_liters:.2f} L for "
                f"{where} is outside the expected range"
            )
        if observation.tonnage is not None and observation.tonnage > ranges.max_tonnage:
            warnings.append(
                f"Range warning: tonnage {observation.tonnage:.2f} t for "
                f"{where} is outside the expected range"
            )
    return warnings
