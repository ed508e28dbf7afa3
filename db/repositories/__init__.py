"""
Repository layer exports.
"""

from db.repositories.regression_model_repository import SQLAlchemyModelStore
from db.repositories.vehicle_record_repository import SQLAlchemyObservationRepository

__all__ = [
    "SQLAlchemyModelStore",
    "SQLAlchemyObservationRepository",
]
