"""
tests/factories.py

Deterministic fleet records shared by the test modules.
"""

from __future__ import annotations

from fleet.observation import Observation, VehicleType

# Known SER relationship used to generate truck records.
TRUCK_DISTANCE_COEF = 0.22
TRUCK_TONNAGE_COEF = 1.1
TRUCK_INTERCEPT = 40.0

TRUCK_DISTANCES = [1200.0, 950.0, 1430.0, 780.0, 1610.0, 1105.0, 890.0, 1340.0, 1010.0, 1525.0, 700.0, 1270.0]
TRUCK_TONNAGES = [32.0, 41.0, 18.0, 27.0, 36.0, 22.0, 45.0, 30.0, 15.0, 25.0, 38.0, 20.0]
SMALL_NOISE = [1.5, -2.0, 0.8, -1.1, 1.9, -0.4, 0.6, -1.7, 1.2, -0.9, 0.3, -0.2]


def truck_fuel(distance: float, tonnage: float) -> float:
    return TRUCK_DISTANCE_COEF * distance + TRUCK_TONNAGE_COEF * tonnage + TRUCK_INTERCEPT


def make_observation(
    vehicle_type: VehicleType = VehicleType.CAR,
    *,
    distance_km: float,
    fuel_liters: float,
    tonnage: float | None = None,
    matricule: str = "V-001",
    region: str = "North",
    year: int = 2024,
    month: int = 1,
    cost: float = 0.0,
) -> Observation:
    return Observation(
        vehicle_type=vehicle_type,
        matricule=matricule,
        region=region,
        year=year,
        month=month,
        distance_km=distance_km,
        fuel_liters=fuel_liters,
        cost=cost,
        tonnage=tonnage,
    )


def truck_year(
    *,
    noise: list[float] | None = None,
    matricule: str = "TR-100",
    region: str = "North",
    year: int = 2024,
) -> list[Observation]:
    """12 monthly records of one truck following the known relationship."""
    noise = noise or [0.0] * len(TRUCK_DISTANCES)
    return [
        make_observation(
            VehicleType.TRUCK,
            distance_km=d,
            tonnage=t,
            fuel_liters=truck_fuel(d, t) + e,
            matricule=matricule,
            region=region,
            year=year,
            month=month,
        )
        for month, (d, t, e) in enumerate(zip(TRUCK_DISTANCES, TRUCK_TONNAGES, noise), start=1)
    ]
