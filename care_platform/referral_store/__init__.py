"""
Referral Store

Referral and history models plus the storage contract, with in-memory and
MongoDB implementations.
"""

from .db_service import MongoReferralRepository
from .models import TERMINAL_STATUSES, Referral, ReferralHistoryEntry, ReferralStatus
from .repository import InMemoryReferralRepository, ReferralRepository

__all__ = [
    "Referral",
    "ReferralHistoryEntry",
    "ReferralStatus",
    "TERMINAL_STATUSES",
    "ReferralRepository",
    "InMemoryReferralRepository",
    "MongoReferralRepository",
]
