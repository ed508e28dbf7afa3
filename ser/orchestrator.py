"""
ser/orchestrator.py

SER pipeline orchestrator.

Wires repository → fitter → diagnostics → model store → reference
calculator → anomaly classifier.  No math lives here; every layer keeps
its own responsibility:

    ObservationRepository  - resolves a cohort key into records
    BaseRegressionFit      - OLS coefficients, predictions, residuals
    diagnose               - inferential statistics and warnings
    ModelStore             - current model per key, atomic replace
    compute_reference      - reference / improvement / target per record
    AnomalyClassifier      - IPE verdicts

Failure contract
----------------
- Too few usable records   → InsufficientDataError, nothing is stored
- Collinear predictors     → SingularMatrixError, nothing is stored
- No model for evaluation  → rows are still classified, without references
                             (trucks then never exceed their reference)
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field

from fleet.observation import CohortKey, Observation
from fleet.repository import ObservationRepository, load_cohort
from regression.base import BaseRegressionFit
from regression.diagnostics import DiagnosticsConfig, diagnose
from regression.fitter import OLSRegressionFit
from regression.model import RegressionModel
from regression.store import DEFAULT_FALLBACK_YEARS, ModelLookup, ModelStore
from ser.classifier import AnomalyClassifier, AnomalyRules, AnomalyVerdict
from ser.reference import (
    DEFAULT_IMPROVEMENT_GOAL,
    MonthlyDataPoint,
    ReferencePoint,
    compute_monthly_data,
    compute_reference,
    validate_improvement_goal,
)

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Options and results
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class SEROptions:
    improvement_goal: float = DEFAULT_IMPROVEMENT_GOAL
    fallback_years: int = DEFAULT_FALLBACK_YEARS
    diagnostics: DiagnosticsConfig = field(default_factory=DiagnosticsConfig)
    anomaly_rules: AnomalyRules = field(default_factory=AnomalyRules)


@dataclass(frozen=True)
class ObservationAssessment:
    observation: Observation
    reference: ReferencePoint | None
    verdict: AnomalyVerdict

    @property
    def is_anomaly(self) -> bool:
        return self.verdict.is_anomaly


@dataclass(frozen=True)
class SERReport:
    """
    Evaluation of one cohort against its (possibly fallback) model.

    Attributes
    ----------
    model:
        Model used for references, ``None`` when no model was found.
    used_year:
        Year of the model actually used; differs from ``key.year`` on
        fallback.
    monthly_data:
        Per-month totals with reference and target; empty without a model.
    rows:
        One assessment per record, in repository order.
    """

    key: CohortKey
    model: RegressionModel | None
    used_year: int | None
    improvement_goal: float
    monthly_data: tuple[MonthlyDataPoint, ...]
    rows: tuple[ObservationAssessment, ...]

    @property
    def equation(self) -> str | None:
        return None if self.model is None else self.model.equation

    @property
    def anomalies(self) -> tuple[ObservationAssessment, ...]:
        return tuple(row for row in self.rows if row.is_anomaly)


# ---------------------------------------------------------------------------
# Orchestrator
# ---------------------------------------------------------------------------


class SEROrchestrator:
    """
    Coordinates fitting and evaluation for cohort keys.

    Synchronous and free of shared mutable state apart from the store, so
    independent keys may be processed from several threads.
    """

    def __init__(
        self,
        repository: ObservationRepository,
        store: ModelStore,
        options: SEROptions | None = None,
        fitter: BaseRegressionFit | None = None,
    ) -> None:
        self.repository = repository
        self.store = store
        self.options = options or SEROptions()
        self.fitter = fitter or OLSRegressionFit()
        self.classifier = AnomalyClassifier(self.options.anomaly_rules)

    # ------------------------------------------------------------------
    # Fitting
    # ------------------------------------------------------------------

    def analyze(self, key: CohortKey, force: bool = False) -> RegressionModel:
        """
        Return the current model for *key*, fitting it when missing or *force*.

        Raises
        ------
        regression.errors.InsufficientDataError
        regression.errors.SingularMatrixError
        """
        if not force:
            current = self.store.get_current(key)
            if current is not None:
                logger.debug("SER analyze %s: using stored model", key)
                return current

        run_start = time.monotonic()
        cohort = load_cohort(self.repository, key)
        model = self.fitter.fit(cohort)
        model = diagnose(cohort, model, self.options.diagnostics)
        self.store.replace(model)

        logger.info(
            "SER analyze %s completed n=%d r2=%.4f warnings=%d elapsed=%.3fs",
            key,
            model.observation_count,
            model.r_squared if model.r_squared is not None else float("nan"),
            len(model.warnings),
            time.monotonic() - run_start,
        )
        return model

    # ------------------------------------------------------------------
    # Evaluation
    # ------------------------------------------------------------------

    def find_model(self, key: CohortKey) -> ModelLookup | None:
        return self.store.find_with_fallback(
            key.vehicle_type,
            key.year,
            key.region,
            max_years_back=self.options.fallback_years,
        )

    def evaluate(self, key: CohortKey, improvement_goal: float | None = None) -> SERReport:
        goal = validate_improvement_goal(
            self.options.improvement_goal if improvement_goal is None else improvement_goal
        )
        lookup = self.find_model(key)
        model = lookup.model if lookup else None
        observations = self.repository.fetch(key.vehicle_type, key.year, key.region)

        rows = tuple(self._assess(observation, model, goal) for observation in observations)
        monthly = tuple(compute_monthly_data(observations, model, goal)) if model else ()

        report = SERReport(
            key=key,
            model=model,
            used_year=lookup.used_year if lookup else None,
            improvement_goal=goal,
            monthly_data=monthly,
            rows=rows,
        )
        logger.info(
            "SER evaluate %s records=%d anomalies=%d model_year=%s",
            key,
            len(rows),
            len(report.anomalies),
            report.used_year,
        )
        return report

    def scan_anomalies(self, keys: list[CohortKey] | None = None) -> list[ObservationAssessment]:
        """
        Evaluate *keys* and return every anomalous assessment.

        By default every regional key in the repository is scanned; each
        record belongs to exactly one regional key and regional lookups
        fall back to the all-regions model.
        """
        if keys is None:
            keys = [k for k in self.repository.list_cohort_keys() if k.region is not None]

        anomalies: list[ObservationAssessment] = []
        for key in keys:
            anomalies.extend(self.evaluate(key).anomalies)
        logger.info("SER anomaly scan keys=%d anomalies=%d", len(keys), len(anomalies))
        return anomalies

    def predict_ipe(self, key: CohortKey, observation: Observation) -> float | None:
        """
        Predicted IPE for one record: L/100km per tonne for goods vehicles,
        L/100km otherwise.  ``None`` without a model or when undefined.
        """
        lookup = self.find_model(key)
        if lookup is None:
            return None
        reference = compute_reference(observation, lookup.model, self.options.improvement_goal)
        if observation.vehicle_type.transports_goods:
            return reference.reference_ipe_per_100km_per_tonne
        return reference.reference_ipe_per_100km

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _assess(
        self,
        observation: Observation,
        model: RegressionModel | None,
        goal: float,
    ) -> ObservationAssessment:
        reference = compute_reference(observation, model, goal) if model else None
        return ObservationAssessment(
            observation=observation,
            reference=reference,
            verdict=self.classifier.classify(observation, reference),
        )
