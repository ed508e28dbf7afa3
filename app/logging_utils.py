"""
Structured logging helpers for SER pipeline milestones.
"""

from __future__ import annotations

import json
import logging
from typing import Any

from fleet.observation import CohortKey


def log_event(
    logger: logging.Logger,
    level: int,
    event: str,
    **fields: Any,
) -> None:
    """
    Emit one structured log line as compact JSON.
    """

    payload = {"event": event, **fields}
    logger.log(level, json.dumps(payload, default=str, sort_keys=True))


def cohort_fields(key: CohortKey) -> dict[str, Any]:
    """
    Standard fields identifying a cohort in structured log lines.
    """

    return {
        "vehicle_type": key.vehicle_type.value,
        "year": key.year,
        "region": key.region,
    }
