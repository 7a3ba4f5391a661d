"""
Referral State Machine

Legal referral status edges and the mapping from referral status to the
patient's worklist status.
"""

from typing import Union

from care_platform.errors import ValidationError
from care_platform.referral_store.models import ReferralStatus

ALLOWED_TRANSITIONS: dict[ReferralStatus, frozenset[ReferralStatus]] = {
    ReferralStatus.NEEDED: frozenset({ReferralStatus.SENT}),
    ReferralStatus.SENT: frozenset({ReferralStatus.SCHEDULED, ReferralStatus.CANCELLED}),
    ReferralStatus.SCHEDULED: frozenset({ReferralStatus.COMPLETED, ReferralStatus.CANCELLED}),
    ReferralStatus.COMPLETED: frozenset(),
    ReferralStatus.CANCELLED: frozenset(),
}

# Patient worklist status implied by each referral status
PATIENT_REFERRAL_STATUS: dict[ReferralStatus, str] = {
    ReferralStatus.NEEDED: "sent",
    ReferralStatus.SENT: "sent",
    ReferralStatus.SCHEDULED: "scheduled",
    ReferralStatus.COMPLETED: "completed",
    ReferralStatus.CANCELLED: "needed",  # Patient needs a new referral
}


def _status(value: Union[ReferralStatus, str]) -> ReferralStatus:
    try:
        return ReferralStatus(value)
    except ValueError as e:
        raise ValidationError(f"Unknown referral status: {value}", details={"status": str(value)}) from e


def allowed_transitions(status: Union[ReferralStatus, str]) -> frozenset[ReferralStatus]:
    """Statuses reachable in one step from `status`."""
    return ALLOWED_TRANSITIONS[_status(status)]


def can_transition(old: Union[ReferralStatus, str], new: Union[ReferralStatus, str]) -> bool:
    """Check whether `old -> new` is a legal edge."""
    return _status(new) in allowed_transitions(old)


def patient_referral_status(status: Union[ReferralStatus, str]) -> str:
    """Map a referral status to the patient's worklist status."""
    return PATIENT_REFERRAL_STATUS[_status(status)]
