"""
Referral Repository

Storage contract for referrals and their history, with an in-memory
implementation for tests and local development.

The contract requires "read current version, write iff unchanged" semantics:
`apply_transition` must persist the updated referral and its history entry
together, and only when the stored version still equals the version the
caller read.
"""

import asyncio
from abc import ABC, abstractmethod
from typing import Optional

from structlog import get_logger

from ..errors import ConflictError
from .models import Referral, ReferralHistoryEntry

logger = get_logger()


class ReferralRepository(ABC):
    """Abstract base class for referral persistence."""

    @abstractmethod
    async def insert_referral(self, referral: Referral, entry: ReferralHistoryEntry) -> None:
        """
        Persist a new referral with its creation history entry.

        Raises:
            ConflictError: If the patient already has an active referral
        """

    @abstractmethod
    async def get_referral(self, referral_id: str) -> Optional[Referral]:
        """Get referral by ID."""

    @abstractmethod
    async def get_active_referral(self, patient_id: str) -> Optional[Referral]:
        """Get the patient's non-terminal referral, if any."""

    @abstractmethod
    async def list_referrals_for_patient(self, patient_id: str) -> list[Referral]:
        """List every referral for a patient, newest first."""

    @abstractmethod
    async def apply_transition(
        self,
        expected_version: int,
        updated: Referral,
        entry: ReferralHistoryEntry,
    ) -> bool:
        """
        Compare-and-swap a referral to its next state and append history.

        Args:
            expected_version: Version the caller read before computing `updated`
            updated: Referral in its new state (version already incremented)
            entry: History entry describing the transition

        Returns:
            True if written, False if the stored version no longer matches
        """

    @abstractmethod
    async def list_history(self, referral_id: str) -> list[ReferralHistoryEntry]:
        """List history entries oldest first."""


class InMemoryReferralRepository(ReferralRepository):
    """In-memory implementation for testing and development."""

    def __init__(self) -> None:
        self._referrals: dict[str, Referral] = {}
        self._history: dict[str, list[ReferralHistoryEntry]] = {}
        self._active_by_patient: dict[str, str] = {}
        self._lock = asyncio.Lock()

    async def insert_referral(self, referral: Referral, entry: ReferralHistoryEntry) -> None:
        async with self._lock:
            active_id = self._active_by_patient.get(referral.patient_id)
            if active_id is not None:
                raise ConflictError(referral.patient_id, active_id)

            self._referrals[referral.referral_id] = referral
            self._history[referral.referral_id] = [entry]
            if referral.is_active:
                self._active_by_patient[referral.patient_id] = referral.referral_id

        logger.debug("inmemory_referral_inserted", referral_id=referral.referral_id)

    async def get_referral(self, referral_id: str) -> Optional[Referral]:
        return self._referrals.get(referral_id)

    async def get_active_referral(self, patient_id: str) -> Optional[Referral]:
        active_id = self._active_by_patient.get(patient_id)
        return self._referrals.get(active_id) if active_id else None

    async def list_referrals_for_patient(self, patient_id: str) -> list[Referral]:
        results = [r for r in self._referrals.values() if r.patient_id == patient_id]
        return sorted(results, key=lambda r: r.created_at, reverse=True)

    async def apply_transition(
        self,
        expected_version: int,
        updated: Referral,
        entry: ReferralHistoryEntry,
    ) -> bool:
        async with self._lock:
            current = self._referrals.get(updated.referral_id)
            if current is None or current.version != expected_version:
                return False

            self._referrals[updated.referral_id] = updated
            self._history.setdefault(updated.referral_id, []).append(entry)
            if not updated.is_active and self._active_by_patient.get(updated.patient_id) == updated.referral_id:
                del self._active_by_patient[updated.patient_id]

        return True

    async def list_history(self, referral_id: str) -> list[ReferralHistoryEntry]:
        return sorted(self._history.get(referral_id, []), key=lambda e: e.sequence)
