"""
Provider Matching

Ranks and explains candidate follow-up providers for a patient.
"""

from care_platform.domain.geo import approximate_coordinates, calculate_distance

from .matcher import (
    ProviderMatcher,
    describe_scoring,
    filter_providers,
    rank_providers,
    top_providers_for_service,
)
from .models import (
    DEFAULT_MATCH_WEIGHTS,
    MatchBreakdown,
    MatchOptions,
    MatchWeights,
    ProviderCriteria,
    RankedProvider,
)
from .scoring import availability_score, has_specialty_match, is_in_network, proximity_score

__all__ = [
    "ProviderMatcher",
    "rank_providers",
    "filter_providers",
    "top_providers_for_service",
    "describe_scoring",
    "calculate_distance",
    "approximate_coordinates",
    "is_in_network",
    "has_specialty_match",
    "proximity_score",
    "availability_score",
    "MatchOptions",
    "MatchWeights",
    "MatchBreakdown",
    "RankedProvider",
    "ProviderCriteria",
    "DEFAULT_MATCH_WEIGHTS",
]
