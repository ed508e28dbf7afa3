"""
ser/classifier.py

IPE anomaly classifier.

Severity comes from the actual IPE in L/100km, never from the distance to
the reference:

    IPE > high    -> HIGH
    IPE > medium  -> MEDIUM
    IPE > low     -> LOW
    otherwise     -> not anomalous

Decision table by vehicle type:

    TRUCK          anomaly = IPE > low AND IPE/tonne > reference IPE/tonne
    CAR, FORKLIFT  anomaly = IPE > low
                   (AND IPE > reference IPE when
                    ``AnomalyRules.require_reference_for_all_types`` is set)

The classifier is stateless and never sends anything; it returns a verdict
with a pre-formatted message and can build the notification payload.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from enum import Enum
from typing import Any

from fleet.observation import Observation
from regression.model import RegressionModel
from ser.reference import ReferencePoint

logger = logging.getLogger(__name__)


class Severity(str, Enum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"


@dataclass(frozen=True)
class AnomalyRules:
    low_threshold: float = 30.0
    medium_threshold: float = 40.0
    high_threshold: float = 50.0
    require_reference_for_all_types: bool = False

    def __post_init__(self) -> None:
        if not self.low_threshold <= self.medium_threshold <= self.high_threshold:
            raise ValueError(
                "Anomaly thresholds must satisfy low <= medium <= high, got "
                f"{self.low_threshold}/{self.medium_threshold}/{self.high_threshold}."
            )

    def severity_for(self, ipe: float | None) -> Severity | None:
        if ipe is None or ipe <= self.low_threshold:
            return None
        if ipe > self.high_threshold:
            return Severity.HIGH
        if ipe > self.medium_threshold:
            return Severity.MEDIUM
        return Severity.LOW


@dataclass(frozen=True)
class AnomalyVerdict:
    exceeds_reference: bool
    is_anomaly: bool
    severity: Severity | None
    actual_ipe: float | None
    actual_ipe_per_tonne: float | None = None
    reference_ipe: float | None = None
    reference_ipe_per_tonne: float | None = None
    message: str = ""

    def to_notification(
        self,
        observation: Observation,
        model: RegressionModel | None = None,
    ) -> dict[str, Any]:
        """
        Payload for the external notification collaborator.

        Returns an empty dict when the verdict is not an anomaly.
        """
        if not self.is_anomaly:
            return {}

        metadata: dict[str, Any] = {
            "month": observation.month_label,
            "ipeValue": self.actual_ipe,
            "ipeTonneValue": self.actual_ipe_per_tonne,
            "predictedValue": (
                self.reference_ipe_per_tonne
                if observation.vehicle_type.transports_goods
                else self.reference_ipe
            ),
        }
        if model is not None:
            metadata["regressionEquation"] = model.equation
            metadata["rSquared"] = model.r_squared

        return {
            "title": f"IPE anomaly detected - {observation.vehicle_type.value}",
            "message": self.message,
            "type": "ANOMALY",
            "severity": self.severity.value if self.severity else None,
            "vehicleId": observation.matricule,
            "vehicleType": observation.vehicle_type.value,
            "region": observation.region,
            "year": observation.year,
            "metadata": metadata,
        }


class AnomalyClassifier:
    """Applies :class:`AnomalyRules` to one observation at a time."""

    def __init__(self, rules: AnomalyRules | None = None) -> None:
        self.rules = rules or AnomalyRules()

    def classify(
        self,
        observation: Observation,
        reference: ReferencePoint | None = None,
    ) -> AnomalyVerdict:
        ipe = observation.ipe_per_100km
        ipe_per_tonne = observation.ipe_per_100km_per_tonne
        reference_ipe = reference.reference_ipe_per_100km if reference else None
        reference_ipe_per_tonne = reference.reference_ipe_per_100km_per_tonne if reference else None

        severity = self.rules.severity_for(ipe)
        above_threshold = severity is not None

        if observation.vehicle_type.transports_goods:
            exceeds_reference = _exceeds(ipe_per_tonne, reference_ipe_per_tonne)
        elif self.rules.require_reference_for_all_types:
            exceeds_reference = _exceeds(ipe, reference_ipe)
        else:
            exceeds_reference = above_threshold

        is_anomaly = above_threshold and exceeds_reference
        verdict = AnomalyVerdict(
            exceeds_reference=exceeds_reference,
            is_anomaly=is_anomaly,
            severity=severity if is_anomaly else None,
            actual_ipe=ipe,
            actual_ipe_per_tonne=ipe_per_tonne,
            reference_ipe=reference_ipe,
            reference_ipe_per_tonne=reference_ipe_per_tonne,
        )
        if is_anomaly:
            verdict = _with_message(verdict, observation)
            logger.debug(
                "Anomaly %s %s %s severity=%s",
                observation.vehicle_type.value,
                observation.matricule,
                observation.month_label,
                verdict.severity.value if verdict.severity else None,
            )
        return verdict


def _exceeds(actual: float | None, reference: float | None) -> bool:
    if actual is None or reference is None:
        return False
    return actual > reference


def _with_message(verdict: AnomalyVerdict, observation: Observation) -> AnomalyVerdict:
    parts = [
        f"Vehicle {observation.matricule} ({observation.vehicle_type.value}) shows abnormal "
        f"consumption in {observation.month_label}: IPE {verdict.actual_ipe:.2f} L/100km"
    ]
    if observation.vehicle_type.transports_goods:
        parts.append(f", IPE/tonne {_fmt(verdict.actual_ipe_per_tonne)} L/100km.t")
        parts.append(f" (reference {_fmt(verdict.reference_ipe_per_tonne)} L/100km.t)")
    elif verdict.reference_ipe is not None:
        parts.append(f" (reference {verdict.reference_ipe:.2f} L/100km)")
    return replace(verdict, message="".join(parts) + ".")


def _fmt(value: float | None) -> str:
    return "n/a" if value is None else f"{value:.2f}"
