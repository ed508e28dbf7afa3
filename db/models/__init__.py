"""
Model package exports.

Import all SQLAlchemy models here so metadata registration and Alembic
autogeneration work without extra imports.
"""

from db.models.regression_model_record import RegressionModelRecord
from db.models.vehicle_record import VehicleRecord

__all__ = [
    "RegressionModelRecord",
    "VehicleRecord",
]
