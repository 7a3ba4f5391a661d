"""
Boundary Normalization

Single conversion point from raw store rows or partial dictionaries into
validated snapshots. Engines downstream never re-check for missing fields.
"""

from collections.abc import Iterable, Mapping
from typing import Any, Union

from pydantic import ValidationError as PydanticValidationError
from structlog import get_logger

from ..errors import ValidationError
from .models import PatientSnapshot, ProviderSnapshot

logger = get_logger()

PatientInput = Union[PatientSnapshot, Mapping[str, Any]]
ProviderInput = Union[ProviderSnapshot, Mapping[str, Any]]


def normalize_patient(raw: PatientInput) -> PatientSnapshot:
    """
    Convert raw patient input into a validated snapshot.

    Args:
        raw: Existing snapshot or mapping of store fields

    Returns:
        Patient snapshot

    Raises:
        ValidationError: If patient id, diagnosis or discharge date is missing or malformed
    """
    if isinstance(raw, PatientSnapshot):
        return raw
    if not isinstance(raw, Mapping):
        raise ValidationError(
            f"Patient input must be a mapping, got {type(raw).__name__}",
            details={"entity": "patient"},
        )

    try:
        return PatientSnapshot.model_validate(dict(raw))
    except PydanticValidationError as e:
        logger.warning("patient_normalization_failed", patient_id=raw.get("patient_id") or raw.get("id"))
        raise ValidationError.from_pydantic("patient", e) from e


def normalize_provider(raw: ProviderInput) -> ProviderSnapshot:
    """
    Convert raw provider input into a validated snapshot.

    Raises:
        ValidationError: If the provider record is malformed
    """
    if isinstance(raw, ProviderSnapshot):
        return raw
    if not isinstance(raw, Mapping):
        raise ValidationError(
            f"Provider input must be a mapping, got {type(raw).__name__}",
            details={"entity": "provider"},
        )

    try:
        return ProviderSnapshot.model_validate(dict(raw))
    except PydanticValidationError as e:
        logger.warning("provider_normalization_failed", provider_id=raw.get("provider_id") or raw.get("id"))
        raise ValidationError.from_pydantic("provider", e) from e


def normalize_providers(raw_providers: Iterable[ProviderInput]) -> tuple[ProviderSnapshot, ...]:
    """Normalize a batch of providers, preserving input order."""
    return tuple(normalize_provider(raw) for raw in raw_providers)
