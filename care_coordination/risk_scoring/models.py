"""
Risk Scoring Models

Result types for leakage-risk scoring and the overridable factor weights.
"""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from care_platform.domain.models import PatientSnapshot

FACTOR_NAMES = (
    "age",
    "diagnosis_complexity",
    "time_since_discharge",
    "insurance_type",
    "geographic_factors",
    "previous_referral_history",
)


class RiskLevel(str, Enum):
    """Leakage risk band."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class RiskFactors(BaseModel):
    """Per-factor risk, each normalized to 0-100 (higher is riskier)."""

    model_config = ConfigDict(frozen=True)

    age: int = Field(..., ge=0, le=100)
    diagnosis_complexity: int = Field(..., ge=0, le=100)
    time_since_discharge: int = Field(..., ge=0, le=100)
    insurance_type: int = Field(..., ge=0, le=100)
    geographic_factors: int = Field(..., ge=0, le=100)
    previous_referral_history: int = Field(..., ge=0, le=100)


class RiskWeights(BaseModel):
    """
    Relative importance of each factor in the final score.

    Weights must be non-negative and sum to 1.
    """

    model_config = ConfigDict(frozen=True)

    age: float = Field(default=0.25, ge=0.0)
    diagnosis_complexity: float = Field(default=0.25, ge=0.0)
    time_since_discharge: float = Field(default=0.20, ge=0.0)
    insurance_type: float = Field(default=0.15, ge=0.0)
    geographic_factors: float = Field(default=0.10, ge=0.0)
    previous_referral_history: float = Field(default=0.05, ge=0.0)

    @model_validator(mode="after")
    def validate_total(self) -> "RiskWeights":
        """Reject weight sets that do not sum to 1."""
        total = sum(getattr(self, name) for name in FACTOR_NAMES)
        if abs(total - 1.0) > 1e-6:
            raise ValueError(f"risk weights must sum to 1.0, got {total:.4f}")
        return self


DEFAULT_RISK_WEIGHTS = RiskWeights()


class RiskResult(BaseModel):
    """Leakage risk for one patient snapshot."""

    model_config = ConfigDict(frozen=True)

    score: int = Field(..., ge=0, le=100)
    level: RiskLevel
    factors: RiskFactors
    defaulted_factors: tuple[str, ...] = Field(
        default=(), description="Factors scored at the neutral value because input was missing"
    )

    @property
    def has_defaults(self) -> bool:
        """True when at least one factor was scored without its input."""
        return bool(self.defaulted_factors)


class PatientRiskProfile(BaseModel):
    """Patient snapshot enriched with derived fields and freshly computed risk."""

    model_config = ConfigDict(frozen=True)

    patient: PatientSnapshot
    age: Optional[int] = None
    days_since_discharge: int
    leakage_risk: RiskResult
