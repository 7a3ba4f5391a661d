"""
Leakage Risk Scorer

Deterministic weighted heuristic estimating how likely a discharged patient
is to miss required follow-up care. Pure: the same snapshot and reference
date always yield the same result, and nothing is persisted.
"""

import math
from collections.abc import Iterable
from datetime import date
from typing import Optional

from structlog import get_logger

from care_platform.config import CoordinationConfig, get_config
from care_platform.domain.normalization import PatientInput, normalize_patient
from care_platform.errors import ValidationError

from . import factors
from .models import (
    DEFAULT_RISK_WEIGHTS,
    FACTOR_NAMES,
    PatientRiskProfile,
    RiskFactors,
    RiskLevel,
    RiskResult,
    RiskWeights,
)

logger = get_logger()


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


class RiskScorer:
    """
    Computes leakage risk from a patient snapshot.

    Weights and level thresholds are injectable; defaults come from
    DEFAULT_RISK_WEIGHTS and the coordination config.
    """

    def __init__(
        self,
        weights: RiskWeights = DEFAULT_RISK_WEIGHTS,
        high_threshold: Optional[int] = None,
        medium_threshold: Optional[int] = None,
        config: Optional[CoordinationConfig] = None,
    ):
        """
        Initialize risk scorer.

        Args:
            weights: Factor weights (must sum to 1)
            high_threshold: Minimum score for HIGH (uses config default if not provided)
            medium_threshold: Minimum score for MEDIUM (uses config default if not provided)
            config: Optional configuration (uses cached config if not provided)
        """
        config = config or get_config()
        self.weights = weights
        self.high_threshold = high_threshold if high_threshold is not None else config.risk_high_threshold
        self.medium_threshold = (
            medium_threshold if medium_threshold is not None else config.risk_medium_threshold
        )

        if not 0 <= self.medium_threshold < self.high_threshold <= 100:
            raise ValidationError(
                "Risk thresholds must satisfy 0 <= medium < high <= 100",
                details={"high": self.high_threshold, "medium": self.medium_threshold},
            )

    def classify(self, score: int) -> RiskLevel:
        """Map a 0-100 score onto its risk band."""
        if score >= self.high_threshold:
            return RiskLevel.HIGH
        if score >= self.medium_threshold:
            return RiskLevel.MEDIUM
        return RiskLevel.LOW

    def compute(self, patient: PatientInput, as_of: Optional[date] = None) -> RiskResult:
        """
        Compute leakage risk.

        Args:
            patient: Patient snapshot or raw record
            as_of: Reference date for age and elapsed days (today if not provided)

        Returns:
            Score, level, per-factor breakdown and the factors that were defaulted

        Raises:
            ValidationError: If patient id, diagnosis or discharge date is missing
        """
        snapshot = normalize_patient(patient)
        as_of = as_of or date.today()
        defaulted: list[str] = []

        def _or_neutral(name: str, value: Optional[int]) -> int:
            if value is None:
                defaulted.append(name)
                return factors.NEUTRAL_FACTOR_SCORE
            return value

        age = (
            factors.age_risk(factors.calculate_age(snapshot.date_of_birth, as_of))
            if snapshot.date_of_birth
            else None
        )
        days = factors.calculate_days_since_discharge(snapshot.discharge_date, as_of)
        insurance = factors.insurance_risk(snapshot.insurance) if snapshot.insurance else None
        history = (
            factors.referral_history_risk(snapshot.prior_unsuccessful_referrals)
            if snapshot.prior_unsuccessful_referrals is not None
            else None
        )

        risk_factors = RiskFactors(
            age=_or_neutral("age", age),
            diagnosis_complexity=factors.diagnosis_complexity_risk(snapshot.diagnosis),
            time_since_discharge=factors.time_since_discharge_risk(days),
            insurance_type=_or_neutral("insurance_type", insurance),
            geographic_factors=_or_neutral(
                "geographic_factors",
                factors.geographic_risk(snapshot.location, snapshot.address),
            ),
            previous_referral_history=_or_neutral("previous_referral_history", history),
        )

        weighted = sum(
            getattr(risk_factors, name) * getattr(self.weights, name) for name in FACTOR_NAMES
        )
        score = min(100, max(0, _round_half_up(weighted)))
        level = self.classify(score)

        logger.debug(
            "leakage_risk_computed",
            patient_id=snapshot.patient_id,
            score=score,
            level=level.value,
            defaulted_factors=defaulted,
        )

        return RiskResult(
            score=score,
            level=level,
            factors=risk_factors,
            defaulted_factors=tuple(defaulted),
        )

    def enrich(self, patient: PatientInput, as_of: Optional[date] = None) -> PatientRiskProfile:
        """Attach derived age, days since discharge and freshly computed risk."""
        snapshot = normalize_patient(patient)
        as_of = as_of or date.today()

        return PatientRiskProfile(
            patient=snapshot,
            age=factors.calculate_age(snapshot.date_of_birth, as_of) if snapshot.date_of_birth else None,
            days_since_discharge=factors.calculate_days_since_discharge(snapshot.discharge_date, as_of),
            leakage_risk=self.compute(snapshot, as_of),
        )

    def rank_patients(
        self, patients: Iterable[PatientInput], as_of: Optional[date] = None
    ) -> list[PatientRiskProfile]:
        """Worklist order: highest risk first, ties by patient id."""
        as_of = as_of or date.today()
        profiles = [self.enrich(patient, as_of) for patient in patients]
        profiles.sort(key=lambda p: (-p.leakage_risk.score, p.patient.patient_id))
        return profiles


def compute_risk(patient: PatientInput, as_of: Optional[date] = None) -> RiskResult:
    """Compute leakage risk with default weights and configured thresholds."""
    return RiskScorer().compute(patient, as_of)


def enrich_patient(patient: PatientInput, as_of: Optional[date] = None) -> PatientRiskProfile:
    """Patient snapshot plus derived fields and risk, computed on demand."""
    return RiskScorer().enrich(patient, as_of)


def rank_patients_by_risk(
    patients: Iterable[PatientInput], as_of: Optional[date] = None
) -> list[PatientRiskProfile]:
    """Order patients for the follow-up worklist, riskiest first."""
    return RiskScorer().rank_patients(patients, as_of)
