"""
Run SER regression analysis from CLI.

Fits (or re-fits) one cohort, or every cohort found in ``vehicle_records``
when no vehicle type is given, and prints a JSON summary per cohort.
"""

from __future__ import annotations

import argparse
import json
from typing import Any

from sqlalchemy.orm import Session

from app.config import build_ser_options
from db.repositories import SQLAlchemyModelStore, SQLAlchemyObservationRepository
from db.session import SessionLocal
from fleet.observation import CohortKey, VehicleType
from regression.errors import RegressionError
from ser.orchestrator import SEROrchestrator


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Fit SER regression models.")
    parser.add_argument(
        "--type",
        dest="vehicle_type",
        default=None,
        help="Vehicle type (TRUCK, CAR, FORKLIFT or a business alias). Omit to fit every cohort.",
    )
    parser.add_argument("--year", type=int, default=None, help="Cohort year; required with --type.")
    parser.add_argument("--region", default=None, help="Optional region; omit for all regions.")
    parser.add_argument(
        "--no-force",
        dest="force",
        action="store_false",
        help="Reuse a stored model instead of re-fitting.",
    )
    return parser


def resolve_keys(args: argparse.Namespace, orchestrator: SEROrchestrator) -> list[CohortKey]:
    if args.vehicle_type is None:
        return orchestrator.repository.list_cohort_keys()
    if args.year is None:
        raise SystemExit("--year is required when --type is given.")
    region = (args.region or "").strip() or None
    return [CohortKey(VehicleType.parse(args.vehicle_type), args.year, region)]


def run(
    orchestrator: SEROrchestrator,
    db: Session,
    keys: list[CohortKey],
    force: bool = True,
) -> list[dict[str, Any]]:
    """Analyze *keys* one by one, committing each stored model."""
    summaries: list[dict[str, Any]] = []
    for key in keys:
        try:
            model = orchestrator.analyze(key, force=force)
            db.commit()
        except RegressionError as exc:
            db.rollback()
            summaries.append({"cohort": str(key), "status": "skipped", "error": str(exc)})
            continue
        summaries.append(
            {
                "cohort": str(key),
                "status": "fitted",
                "observations": model.observation_count,
                "r_squared": model.r_squared,
                "equation": model.equation,
                "warnings": list(model.warnings),
            }
        )
    return summaries


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)

    with SessionLocal() as db:
        orchestrator = SEROrchestrator(
            repository=SQLAlchemyObservationRepository(db),
            store=SQLAlchemyModelStore(db),
            options=build_ser_options(),
        )
        summaries = run(orchestrator, db, resolve_keys(args, orchestrator), force=args.force)

    print(json.dumps(summaries, indent=2, ensure_ascii=False))
    return 0 if all(s["status"] == "fitted" for s in summaries) else 1


if __name__ == "__main__":
    raise SystemExit(main())
