"""
db/repositories/regression_model_repository.py

PostgreSQL-backed :class:`regression.store.ModelStore`.

The caller controls commit/rollback; this repository never commits on its
own.  Replacement is a single ``INSERT ... ON CONFLICT DO UPDATE`` on the
cohort key, so readers see either the previous or the new model.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone

from sqlalchemy import select
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.orm import Session

from db.models.regression_model_record import (
    ALL_REGIONS,
    UPSERT_CONSTRAINT,
    RegressionModelRecord,
)
from fleet.observation import CohortKey, VehicleType
from regression.model import RegressionModel
from regression.serialization import dump_model, load_model
from regression.store import ModelStore

_KEY_COLUMNS = frozenset({"vehicle_type", "year", "region"})


class SQLAlchemyModelStore(ModelStore):
    def __init__(self, session: Session) -> None:
        self._session = session

    # ------------------------------------------------------------------
    # Write
    # ------------------------------------------------------------------

    def replace(self, model: RegressionModel) -> RegressionModel:
        """
        Upsert the row for ``model.key``.

        Returns
        -------
        RegressionModel
            *model* itself (the row is not yet committed).
        """
        payload = dump_model(model)
        values = {
            "vehicle_type": model.key.vehicle_type.value,
            "year": model.key.year,
            "region": _region_column(model.key.region),
            "predictor_set": model.predictor_set.value,
            "observation_count": model.observation_count,
            "r_squared": model.r_squared,
            "equation": model.equation,
            "fitted_at": model.fitted_at,
            "payload": payload,
        }
        stmt = (
            insert(RegressionModelRecord)
            .values(id=uuid.uuid4(), **values)
            .on_conflict_do_update(
                constraint=UPSERT_CONSTRAINT,
                set_={
                    **{
                        name: value
                        for name, value in values.items()
                        if name not in _KEY_COLUMNS
                    },
                    "updated_at": datetime.now(tz=timezone.utc),
                },
            )
        )
        self._session.execute(stmt)
        return model

    # ------------------------------------------------------------------
    # Read
    # ------------------------------------------------------------------

    def get_current(self, key: CohortKey) -> RegressionModel | None:
        stmt = select(RegressionModelRecord.payload).where(
            RegressionModelRecord.vehicle_type == key.vehicle_type.value,
            RegressionModelRecord.year == key.year,
            RegressionModelRecord.region == _region_column(key.region),
        )
        payload = self._session.scalars(stmt).first()
        if payload is None:
            return None
        return load_model(payload)

    def keys(self) -> list[CohortKey]:
        stmt = select(
            RegressionModelRecord.vehicle_type,
            RegressionModelRecord.year,
            RegressionModelRecord.region,
        ).order_by(
            RegressionModelRecord.vehicle_type,
            RegressionModelRecord.year,
            RegressionModelRecord.region,
        )
        return [
            CohortKey(
                vehicle_type=VehicleType.parse(vehicle_type),
                year=year,
                region=region or None,
            )
            for vehicle_type, year, region in self._session.execute(stmt).all()
        ]


def _region_column(region: str | None) -> str:
    return ALL_REGIONS if region is None else region
