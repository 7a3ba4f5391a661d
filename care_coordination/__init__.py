"""
Care Coordination

Post-discharge follow-up coordination: leakage-risk scoring, provider
matching and the referral lifecycle.
"""

from care_platform.referral_store.models import Referral, ReferralHistoryEntry, ReferralStatus

from .provider_matching import (
    MatchOptions,
    ProviderMatcher,
    RankedProvider,
    describe_scoring,
    filter_providers,
    rank_providers,
    top_providers_for_service,
)
from .referral_lifecycle import (
    ReferralLifecycle,
    allowed_transitions,
    can_transition,
    patient_referral_status,
)
from .risk_scoring import (
    PatientRiskProfile,
    RiskLevel,
    RiskResult,
    RiskScorer,
    compute_risk,
    enrich_patient,
    rank_patients_by_risk,
)

__all__ = [
    "compute_risk",
    "enrich_patient",
    "rank_patients_by_risk",
    "RiskScorer",
    "RiskResult",
    "RiskLevel",
    "PatientRiskProfile",
    "rank_providers",
    "filter_providers",
    "top_providers_for_service",
    "describe_scoring",
    "ProviderMatcher",
    "MatchOptions",
    "RankedProvider",
    "ReferralLifecycle",
    "allowed_transitions",
    "can_transition",
    "patient_referral_status",
    "Referral",
    "ReferralHistoryEntry",
    "ReferralStatus",
]
