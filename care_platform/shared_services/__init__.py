"""
Shared Services

Domain event bus and read access to patient/provider snapshots.
"""

from .care_directory import CareDirectory, InMemoryCareDirectory, ProviderCatalog
from .event_bus import ReferralEvent, ReferralEventBus, ReferralTransition

__all__ = [
    "CareDirectory",
    "InMemoryCareDirectory",
    "ProviderCatalog",
    "ReferralEvent",
    "ReferralEventBus",
    "ReferralTransition",
]
