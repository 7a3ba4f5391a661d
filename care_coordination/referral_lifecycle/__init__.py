"""
Referral Lifecycle

Referral state machine and the guarded lifecycle operations.
"""

from .service import ReferralLifecycle
from .state_machine import (
    ALLOWED_TRANSITIONS,
    allowed_transitions,
    can_transition,
    patient_referral_status,
)

__all__ = [
    "ReferralLifecycle",
    "ALLOWED_TRANSITIONS",
    "allowed_transitions",
    "can_transition",
    "patient_referral_status",
]
