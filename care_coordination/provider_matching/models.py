"""
Provider Matching Models

Options, weights and ranked results for provider matching.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from care_platform.domain.models import GeoPoint, ProviderSnapshot

MATCH_FACTOR_NAMES = ("insurance", "proximity", "specialty", "availability", "rating")


class MatchWeights(BaseModel):
    """
    Relative importance of each matching factor.

    Weights must be non-negative and sum to 1.
    """

    model_config = ConfigDict(frozen=True)

    insurance: float = Field(default=0.30, ge=0.0)
    proximity: float = Field(default=0.25, ge=0.0)
    specialty: float = Field(default=0.20, ge=0.0)
    availability: float = Field(default=0.15, ge=0.0)
    rating: float = Field(default=0.10, ge=0.0)

    @model_validator(mode="after")
    def validate_total(self) -> "MatchWeights":
        """Reject weight sets that do not sum to 1."""
        total = sum(getattr(self, name) for name in MATCH_FACTOR_NAMES)
        if abs(total - 1.0) > 1e-6:
            raise ValueError(f"match weights must sum to 1.0, got {total:.4f}")
        return self


DEFAULT_MATCH_WEIGHTS = MatchWeights()


class MatchOptions(BaseModel):
    """Ranking options supplied by the caller."""

    model_config = ConfigDict(frozen=True)

    limit: Optional[int] = Field(default=None, ge=1, description="Max results (config default if not provided)")
    max_distance: Optional[float] = Field(default=None, ge=0.0, description="Miles")
    min_rating: Optional[float] = Field(default=None, ge=0.0, le=5.0)
    include_unlocated: Optional[bool] = Field(
        default=None, description="Override of the include_unlocated_providers setting"
    )


class MatchBreakdown(BaseModel):
    """Per-factor match scores on a 0-100 scale."""

    model_config = ConfigDict(frozen=True)

    insurance: int = Field(..., ge=0, le=100)
    proximity: int = Field(..., ge=0, le=100)
    specialty: int = Field(..., ge=0, le=100)
    availability: int = Field(..., ge=0, le=100)
    rating: float = Field(..., ge=0.0, le=100.0)


class RankedProvider(BaseModel):
    """One provider in a ranked match list, with its explanation."""

    model_config = ConfigDict(frozen=True)

    provider: ProviderSnapshot
    match_score: int = Field(..., ge=0, le=100)
    distance: Optional[float] = Field(None, description="Miles, one decimal; None when unknown")
    in_network: bool
    specialty_match: bool
    explanation: str
    reasons: list[str] = Field(default_factory=list)
    breakdown: MatchBreakdown

    @property
    def provider_id(self) -> str:
        return self.provider.provider_id


class ProviderCriteria(BaseModel):
    """Criteria search over providers, without scoring."""

    model_config = ConfigDict(frozen=True)

    specialty: Optional[str] = None
    insurance: Optional[str] = None
    max_distance: Optional[float] = Field(default=None, ge=0.0)
    origin: Optional[GeoPoint] = Field(default=None, description="Point max_distance is measured from")
    min_rating: Optional[float] = Field(default=None, ge=0.0, le=5.0)
