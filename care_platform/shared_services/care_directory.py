"""
Care Directory

Read access to patient and provider snapshots owned by the external store.
The provider catalog is copy-on-write: readers always get an immutable
snapshot, and writers swap in a new tuple, so concurrent rankings against
the same candidate set never observe a half-updated cache.
"""

import threading
from abc import ABC, abstractmethod
from collections.abc import Iterable
from typing import Optional

from structlog import get_logger

from ..domain.models import PatientSnapshot, ProviderSnapshot
from ..domain.normalization import (
    PatientInput,
    ProviderInput,
    normalize_patient,
    normalize_provider,
    normalize_providers,
)

logger = get_logger()


class ProviderCatalog:
    """Copy-on-write cache of provider snapshots."""

    def __init__(self, providers: Iterable[ProviderInput] = ()):
        self._providers: tuple[ProviderSnapshot, ...] = normalize_providers(providers)
        self._write_lock = threading.Lock()

    def snapshot(self) -> tuple[ProviderSnapshot, ...]:
        """Current provider set; never mutated after it is returned."""
        return self._providers

    def get(self, provider_id: str) -> Optional[ProviderSnapshot]:
        """Get provider by ID from the current snapshot."""
        for provider in self._providers:
            if provider.provider_id == provider_id:
                return provider
        return None

    def get_many(self, provider_ids: Iterable[str]) -> dict[str, ProviderSnapshot]:
        """Batch lookup against a single snapshot."""
        wanted = set(provider_ids)
        return {p.provider_id: p for p in self._providers if p.provider_id in wanted}

    def replace(self, providers: Iterable[ProviderInput]) -> None:
        """Swap in a whole new provider set."""
        new_snapshot = normalize_providers(providers)
        with self._write_lock:
            self._providers = new_snapshot
        logger.info("provider_catalog_replaced", provider_count=len(new_snapshot))

    def upsert(self, provider: ProviderInput) -> ProviderSnapshot:
        """Add or replace one provider, publishing a new snapshot."""
        snapshot = normalize_provider(provider)
        with self._write_lock:
            others = tuple(p for p in self._providers if p.provider_id != snapshot.provider_id)
            self._providers = others + (snapshot,)
        return snapshot

    def __len__(self) -> int:
        return len(self._providers)


class CareDirectory(ABC):
    """Lookup contract for the identities a referral links together."""

    @abstractmethod
    async def get_patient(self, patient_id: str) -> Optional[PatientSnapshot]:
        """Get patient snapshot by ID."""

    @abstractmethod
    async def get_provider(self, provider_id: str) -> Optional[ProviderSnapshot]:
        """Get provider snapshot by ID."""


class InMemoryCareDirectory(CareDirectory):
    """In-memory directory for testing and development."""

    def __init__(
        self,
        patients: Iterable[PatientInput] = (),
        providers: Iterable[ProviderInput] = (),
    ) -> None:
        self._patients: dict[str, PatientSnapshot] = {}
        for patient in patients:
            self.add_patient(patient)
        self.providers = ProviderCatalog(providers)

    def add_patient(self, patient: PatientInput) -> PatientSnapshot:
        """Register or replace a patient snapshot."""
        snapshot = normalize_patient(patient)
        self._patients[snapshot.patient_id] = snapshot
        return snapshot

    async def get_patient(self, patient_id: str) -> Optional[PatientSnapshot]:
        return self._patients.get(patient_id)

    async def get_provider(self, provider_id: str) -> Optional[ProviderSnapshot]:
        return self.providers.get(provider_id)
