"""
db/models/regression_model_record.py

Current fitted SER model per cohort key.
One row per (vehicle_type, year, region); re-fitting replaces the row.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from sqlalchemy import DateTime, Float, Index, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from db.base import Base, TimestampMixin, UUIDPrimaryKeyMixin

UPSERT_CONSTRAINT = "uq_regression_models_key"

# Stored in place of a NULL region so the unique constraint covers the
# all-regions model.
ALL_REGIONS = ""


class RegressionModelRecord(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    """
    ``payload`` is the lossless JSON document produced by
    :func:`regression.serialization.dump_model`; the scalar columns are
    copies kept for listing and filtering.
    """

    __tablename__ = "regression_models"

    vehicle_type: Mapped[str] = mapped_column(String(16), nullable=False)
    year: Mapped[int] = mapped_column(Integer, nullable=False)
    region: Mapped[str] = mapped_column(
        String(128),
        nullable=False,
        default=ALL_REGIONS,
        comment="Empty string for the all-regions model",
    )
    predictor_set: Mapped[str] = mapped_column(String(32), nullable=False)
    observation_count: Mapped[int] = mapped_column(Integer, nullable=False)
    r_squared: Mapped[float | None] = mapped_column(Float, nullable=True)
    equation: Mapped[str] = mapped_column(Text, nullable=False, default="")
    fitted_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    payload: Mapped[dict[str, Any]] = mapped_column(nullable=False)

    __table_args__ = (
        UniqueConstraint("vehicle_type", "year", "region", name=UPSERT_CONSTRAINT),
        Index("ix_regression_models_type_year", "vehicle_type", "year"),
    )
