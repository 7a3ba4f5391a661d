"""
Risk Scoring

Leakage-risk scoring for discharged patients.
"""

from .factors import calculate_age, calculate_days_since_discharge
from .models import (
    DEFAULT_RISK_WEIGHTS,
    PatientRiskProfile,
    RiskFactors,
    RiskLevel,
    RiskResult,
    RiskWeights,
)
from .scorer import RiskScorer, compute_risk, enrich_patient, rank_patients_by_risk

__all__ = [
    "RiskScorer",
    "compute_risk",
    "enrich_patient",
    "rank_patients_by_risk",
    "calculate_age",
    "calculate_days_since_discharge",
    "RiskLevel",
    "RiskFactors",
    "RiskResult",
    "RiskWeights",
    "DEFAULT_RISK_WEIGHTS",
    "PatientRiskProfile",
]
