"""
Provider Matcher

Multi-factor provider ranking for a discharged patient's follow-up care.

Scores each candidate on:
- Insurance network membership
- Geographic proximity
- Specialty match with the required follow-up service
- Next availability
- Patient rating

and explains every ranking in plain language.
"""

import math
from collections.abc import Iterable, Mapping
from datetime import date
from typing import Any, Optional, Union

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError
from structlog import get_logger

from care_platform.config import CoordinationConfig, get_config
from care_platform.domain.geo import approximate_coordinates, distance_between
from care_platform.domain.models import GeoPoint, PatientSnapshot, ProviderSnapshot
from care_platform.domain.normalization import (
    PatientInput,
    ProviderInput,
    normalize_patient,
    normalize_providers,
)
from care_platform.errors import ValidationError

from . import scoring
from .models import (
    DEFAULT_MATCH_WEIGHTS,
    MatchBreakdown,
    MatchOptions,
    MatchWeights,
    ProviderCriteria,
    RankedProvider,
)

logger = get_logger()

# Factor scores at or above this raise a match; below LOWERING_FACTOR_SCORE they drag it down
RAISING_FACTOR_SCORE = 70
LOWERING_FACTOR_SCORE = 40

FACTOR_LABELS = {
    "insurance": "insurance network",
    "proximity": "distance",
    "specialty": "specialty",
    "availability": "availability",
    "rating": "rating",
}


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def _coerce(model: type[BaseModel], entity: str, value: Any) -> Any:
    """Accept a model instance, a mapping of its fields, or None for defaults."""
    if value is None:
        return model()
    if isinstance(value, model):
        return value
    if not isinstance(value, Mapping):
        raise ValidationError(
            f"{entity.capitalize()} must be a mapping, got {type(value).__name__}",
            details={"entity": entity},
        )
    try:
        return model.model_validate(dict(value))
    except PydanticValidationError as e:
        raise ValidationError.from_pydantic(entity, e) from e


def _join(parts: list[str]) -> str:
    if len(parts) <= 1:
        return "".join(parts)
    return ", ".join(parts[:-1]) + " and " + parts[-1]


def patient_location(patient: PatientSnapshot) -> Optional[GeoPoint]:
    """Patient coordinates, falling back to the address locality."""
    return patient.location or approximate_coordinates(patient.address)


def _distance_reason(distance: Optional[float]) -> str:
    if distance is None:
        return "Distance unknown"
    if distance < 1:
        return "Very close to the patient (< 1 mile)"
    if distance < 5:
        return f"Close to the patient ({distance:.1f} miles)"
    if distance < 15:
        return f"{distance:.1f} miles from the patient"
    return f"Far from the patient ({distance:.1f} miles)"


def _availability_reason(score: int) -> str:
    if score >= 95:
        return "Available immediately or tomorrow"
    if score >= 80:
        return "Available this week"
    if score >= 60:
        return "Available next week"
    if score >= 40:
        return "Available within a month"
    if score == 0:
        return "Availability unknown"
    return "Limited availability"


def _rating_reason(rating: float) -> str:
    if rating >= 4.8:
        return "Exceptionally highly rated (4.8+ stars)"
    if rating >= 4.5:
        return "Highly rated by patients (4.5+ stars)"
    if rating >= 4.0:
        return "Well-rated provider (4.0+ stars)"
    if rating >= 3.5:
        return "Average rating (3.5+ stars)"
    return "Below average rating"


def build_reasons(
    provider: ProviderSnapshot,
    patient: PatientSnapshot,
    distance: Optional[float],
    in_network: bool,
    specialty_match: bool,
    breakdown: MatchBreakdown,
) -> list[str]:
    """Short per-factor reasons, strongest factor first."""
    reasons = []

    if not patient.insurance:
        reasons.append("No insurance plan on file")
    elif in_network:
        reasons.append(f"In network for {patient.insurance}")
    else:
        reasons.append(f"Out of network for {patient.insurance} (higher costs)")

    if not patient.required_followup:
        reasons.append("No follow-up service specified")
    elif specialty_match:
        reasons.append(f"Specializes in {patient.required_followup}")
    else:
        reasons.append(f"May not specialize in {patient.required_followup}")

    reasons.append(_distance_reason(distance))
    reasons.append(_availability_reason(breakdown.availability))
    reasons.append(_rating_reason(provider.rating))
    return reasons


def build_explanation(
    provider: ProviderSnapshot,
    patient: PatientSnapshot,
    distance: Optional[float],
    in_network: bool,
    specialty_match: bool,
    breakdown: MatchBreakdown,
) -> str:
    """
    Plain-language explanation of one match.

    Names the provider, the patient's plan, the distance, the required
    service, the rating and the availability, then lists which factors
    raised or lowered the score.
    """
    plan = patient.insurance or "no insurance plan on file"
    service = patient.required_followup or "the required follow-up"

    facts = [
        f"{'is in network' if in_network else 'is out of network'} for {plan}",
        f"is {distance:.1f} miles away" if distance is not None else "is at an unknown distance",
        f"{'specializes in' if specialty_match else 'may not specialize in'} {service}",
        f"is rated {provider.rating:.1f}/5",
        f"is next available {provider.availability_next}"
        if provider.availability_next
        else "has no published availability",
    ]
    explanation = f"{provider.name} {_join(facts)}."

    factor_scores = breakdown.model_dump()
    raised = [FACTOR_LABELS[name] for name, value in factor_scores.items() if value >= RAISING_FACTOR_SCORE]
    lowered = [FACTOR_LABELS[name] for name, value in factor_scores.items() if value < LOWERING_FACTOR_SCORE]

    if raised:
        explanation += f" Raised the score: {_join(raised)}."
    if lowered:
        explanation += f" Lowered the score: {_join(lowered)}."
    return explanation


class ProviderMatcher:
    """
    Ranks candidate providers for a patient.

    Pure: the matcher holds only weights and policy, never candidate state.
    """

    def __init__(
        self,
        weights: MatchWeights = DEFAULT_MATCH_WEIGHTS,
        config: Optional[CoordinationConfig] = None,
    ):
        self.weights = weights
        self.config = config or get_config()

    def evaluate(
        self,
        provider: ProviderSnapshot,
        patient: PatientSnapshot,
        origin: Optional[GeoPoint],
        as_of: date,
    ) -> RankedProvider:
        """Score a single provider against the patient."""
        distance = None
        if origin is not None and provider.location is not None:
            distance = round(distance_between(origin, provider.location), 1)

        in_network = scoring.is_in_network(provider, patient.insurance)
        specialty_match = scoring.has_specialty_match(provider, patient.required_followup)

        breakdown = MatchBreakdown(
            insurance=scoring.IN_NETWORK_SCORE if in_network else scoring.OUT_OF_NETWORK_SCORE,
            proximity=scoring.proximity_score(distance),
            specialty=scoring.SPECIALTY_MATCH_SCORE if specialty_match else scoring.SPECIALTY_MISMATCH_SCORE,
            availability=scoring.availability_score(provider.availability_next, as_of),
            rating=scoring.rating_score(provider.rating),
        )

        weighted = (
            breakdown.insurance * self.weights.insurance
            + breakdown.proximity * self.weights.proximity
            + breakdown.specialty * self.weights.specialty
            + breakdown.availability * self.weights.availability
            + breakdown.rating * self.weights.rating
        )

        return RankedProvider(
            provider=provider,
            match_score=min(100, max(0, _round_half_up(weighted))),
            distance=distance,
            in_network=in_network,
            specialty_match=specialty_match,
            explanation=build_explanation(provider, patient, distance, in_network, specialty_match, breakdown),
            reasons=build_reasons(provider, patient, distance, in_network, specialty_match, breakdown),
            breakdown=breakdown,
        )

    def rank(
        self,
        providers: Iterable[ProviderInput],
        patient: PatientInput,
        options: Union[MatchOptions, Mapping[str, Any], None] = None,
        as_of: Optional[date] = None,
    ) -> list[RankedProvider]:
        """
        Rank providers for a patient.

        Args:
            providers: Candidate provider snapshots or raw records
            patient: Patient snapshot or raw record
            options: limit, max_distance (miles), min_rating, include_unlocated
            as_of: Reference date for availability scoring (today if not provided)

        Returns:
            Best matches first, at most `limit` entries

        Raises:
            ValidationError: If options are out of range or an input record is malformed
        """
        match_options = _coerce(MatchOptions, "match options", options)
        snapshot = normalize_patient(patient)
        candidates = normalize_providers(providers)
        as_of = as_of or date.today()

        limit = match_options.limit or self.config.default_match_limit
        include_unlocated = (
            match_options.include_unlocated
            if match_options.include_unlocated is not None
            else self.config.include_unlocated_providers
        )
        origin = patient_location(snapshot)

        ranked = []
        excluded_unlocated = 0
        for provider in candidates:
            if match_options.min_rating is not None and provider.rating < match_options.min_rating:
                continue

            match = self.evaluate(provider, snapshot, origin, as_of)

            if match.distance is None:
                if match_options.max_distance is not None or not include_unlocated:
                    excluded_unlocated += 1
                    continue
            elif match_options.max_distance is not None and match.distance > match_options.max_distance:
                continue

            ranked.append(match)

        ranked.sort(
            key=lambda m: (
                -m.match_score,
                -m.provider.rating,
                m.distance is None,
                m.distance if m.distance is not None else 0.0,
                m.provider.provider_id,
            )
        )

        logger.info(
            "providers_ranked",
            patient_id=snapshot.patient_id,
            candidates=len(candidates),
            matched=len(ranked),
            returned=min(limit, len(ranked)),
            excluded_unlocated=excluded_unlocated,
            patient_located=origin is not None,
        )

        return ranked[:limit]


def rank_providers(
    providers: Iterable[ProviderInput],
    patient: PatientInput,
    options: Union[MatchOptions, Mapping[str, Any], None] = None,
    as_of: Optional[date] = None,
) -> list[RankedProvider]:
    """Rank providers with default weights and configured policy."""
    return ProviderMatcher().rank(providers, patient, options, as_of)


def filter_providers(
    providers: Iterable[ProviderInput],
    criteria: Union[ProviderCriteria, Mapping[str, Any], None] = None,
) -> list[ProviderSnapshot]:
    """
    Criteria search over providers, preserving input order.

    Args:
        providers: Candidate provider snapshots or raw records
        criteria: specialty, insurance, max_distance (from origin), min_rating

    Raises:
        ValidationError: If max_distance is given without an origin
    """
    search = _coerce(ProviderCriteria, "provider criteria", criteria)
    if search.max_distance is not None and search.origin is None:
        raise ValidationError(
            "max_distance requires an origin to measure from",
            details={"entity": "provider criteria", "fields": ["origin"]},
        )

    results = []
    for provider in normalize_providers(providers):
        if search.specialty and not scoring.has_specialty_match(provider, search.specialty):
            continue
        if search.insurance and not scoring.is_in_network(provider, search.insurance):
            continue
        if search.min_rating is not None and provider.rating < search.min_rating:
            continue
        if search.max_distance is not None:
            if provider.location is None:
                continue
            if distance_between(search.origin, provider.location) > search.max_distance:
                continue
        results.append(provider)
    return results


def top_providers_for_service(
    providers: Iterable[ProviderInput],
    service_type: str,
    limit: Optional[int] = None,
) -> list[ProviderSnapshot]:
    """Highest-rated providers offering a service, ties by provider id."""
    if not service_type or not service_type.strip():
        raise ValidationError("service_type is required", details={"fields": ["service_type"]})
    if limit is not None and limit < 1:
        raise ValidationError("limit must be at least 1", details={"fields": ["limit"], "limit": limit})

    limit = limit or get_config().default_match_limit
    matching = [
        provider
        for provider in normalize_providers(providers)
        if scoring.has_specialty_match(provider, service_type)
    ]
    matching.sort(key=lambda p: (-p.rating, p.provider_id))
    return matching[:limit]


def describe_scoring(weights: MatchWeights = DEFAULT_MATCH_WEIGHTS) -> dict[str, Any]:
    """Structured description of the matching factors and their weights."""
    return {
        "description": "Multi-factor provider matching across five weighted dimensions",
        "factors": [
            {
                "name": "insurance",
                "weight": weights.insurance,
                "description": f"In-network providers score {scoring.IN_NETWORK_SCORE}, "
                f"out-of-network {scoring.OUT_OF_NETWORK_SCORE}",
            },
            {
                "name": "proximity",
                "weight": weights.proximity,
                "description": "Closer providers score higher in distance tiers; unknown distance scores 0",
            },
            {
                "name": "specialty",
                "weight": weights.specialty,
                "description": f"Providers covering the required service score {scoring.SPECIALTY_MATCH_SCORE}, "
                f"others {scoring.SPECIALTY_MISMATCH_SCORE}",
            },
            {
                "name": "availability",
                "weight": weights.availability,
                "description": "Earlier availability scores higher (immediate 100, missing 0)",
            },
            {
                "name": "rating",
                "weight": weights.rating,
                "description": "Five-star rating converted to the 100-point scale",
            },
        ],
        "total_weight": round(
            weights.insurance + weights.proximity + weights.specialty + weights.availability + weights.rating,
            6,
        ),
        "score_range": (0, 100),
    }
