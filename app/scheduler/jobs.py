"""
app/scheduler/jobs.py

APScheduler-based batch scheduler for SER recomputation.

Cohort discovery
----------------
Cohort keys are resolved at job runtime from the distinct
``(vehicle_type, year, region)`` values in ``vehicle_records``; every
type/year also gets its all-regions key.

Schedule (all times UTC, hours configurable via SchedulerSettings)
-------------------------------------------------------------------
  nightly_reanalysis  - 01:00 every day, force re-fit of every cohort
  daily_anomaly_scan  - 06:00 every day, classify records of every region

Lifecycle
----------
Call ``build_scheduler()`` once to get a configured ``BackgroundScheduler``.
Start it on app boot; shut it down gracefully on app shutdown.
The scheduler is wired into FastAPI via the ``lifespan`` context in main.py.
"""

from __future__ import annotations

import logging
from collections import Counter
from contextlib import contextmanager
from typing import Iterator

from apscheduler.schedulers.background import BackgroundScheduler
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.config import build_ser_options, get_scheduler_settings
from app.logging_utils import cohort_fields, log_event
from db.repositories import SQLAlchemyModelStore, SQLAlchemyObservationRepository
from db.session import SessionLocal
from regression.errors import RegressionError
from ser.orchestrator import SEROrchestrator

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Session helper
# ---------------------------------------------------------------------------


@contextmanager
def _session_scope() -> Iterator[Session]:
    """Yield a fresh session and ensure it is closed on exit."""
    session: Session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


def _build_orchestrator(session: Session) -> SEROrchestrator:
    return SEROrchestrator(
        repository=SQLAlchemyObservationRepository(session),
        store=SQLAlchemyModelStore(session),
        options=build_ser_options(),
    )


# ---------------------------------------------------------------------------
# Job: Nightly re-analysis
# ---------------------------------------------------------------------------


def run_nightly_reanalysis() -> None:
    """
    Force a re-fit of every cohort found in ``vehicle_records``.
    Commits per cohort on success; rolls back on failure.  Cohorts that
    cannot be fitted (too few records, collinear predictors) are skipped.
    """
    logger.info("Scheduler: nightly_reanalysis starting")
    fitted = skipped = failed = 0

    with _session_scope() as db:
        orchestrator = _build_orchestrator(db)
        keys = orchestrator.repository.list_cohort_keys()
        if not keys:
            logger.warning("Scheduler: nightly_reanalysis: no cohorts found, skipping")
            return

        for key in keys:
            try:
                model = orchestrator.analyze(key, force=True)
                db.commit()
                fitted += 1
                log_event(
                    logger,
                    logging.INFO,
                    "scheduler.reanalysis.fitted",
                    observations=model.observation_count,
                    r_squared=model.r_squared,
                    **cohort_fields(key),
                )
            except RegressionError as exc:
                db.rollback()
                skipped += 1
                log_event(
                    logger,
                    logging.INFO,
                    "scheduler.reanalysis.skipped",
                    reason=str(exc),
                    **cohort_fields(key),
                )
            except SQLAlchemyError as exc:
                db.rollback()
                failed += 1
                logger.warning("Scheduler: nightly_reanalysis failed cohort=%s: %s", key, exc)

    logger.info(
        "Scheduler: nightly_reanalysis complete fitted=%d skipped=%d failed=%d",
        fitted,
        skipped,
        failed,
    )


# ---------------------------------------------------------------------------
# Job: Daily anomaly scan
# ---------------------------------------------------------------------------


def run_daily_anomaly_scan() -> None:
    """
    Classify every record against its cohort's model and log the anomaly
    counts by severity.  Read-only; notifications are delivered elsewhere.
    """
    logger.info("Scheduler: daily_anomaly_scan starting")

    with _session_scope() as db:
        orchestrator = _build_orchestrator(db)
        try:
            anomalies = orchestrator.scan_anomalies()
        except SQLAlchemyError as exc:
            logger.warning("Scheduler: daily_anomaly_scan failed: %s", exc)
            return

    by_severity = Counter(
        a.verdict.severity.value for a in anomalies if a.verdict.severity is not None
    )
    log_event(
        logger,
        logging.INFO,
        "scheduler.anomaly_scan.completed",
        anomalies=len(anomalies),
        by_severity=dict(by_severity),
    )
    logger.info("Scheduler: daily_anomaly_scan complete")


# ---------------------------------------------------------------------------
# Scheduler factory
# ---------------------------------------------------------------------------


def build_scheduler() -> BackgroundScheduler:
    """
    Build and register all periodic jobs.

    Returns a configured but *not yet started* ``BackgroundScheduler``.
    The caller must call ``.start()`` and ``.shutdown(wait=True)`` at the
    appropriate lifecycle points.
    """
    settings = get_scheduler_settings()
    scheduler = BackgroundScheduler(timezone="UTC")

    scheduler.add_job(
        run_nightly_reanalysis,
        trigger="cron",
        hour=settings.reanalysis_hour,
        minute=0,
        id="nightly_reanalysis",
        name="Nightly SER re-analysis",
        replace_existing=True,
        misfire_grace_time=3600,
    )
    scheduler.add_job(
        run_daily_anomaly_scan,
        trigger="cron",
        hour=settings.anomaly_scan_hour,
        minute=0,
        id="daily_anomaly_scan",
        name="Daily IPE anomaly scan",
        replace_existing=True,
        misfire_grace_time=3600,
    )

    return scheduler
