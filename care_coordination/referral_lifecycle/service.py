"""
Referral Lifecycle Service

Creates referrals and moves them through the lifecycle:

    needed -> sent -> scheduled -> completed
              sent -> cancelled, scheduled -> cancelled

Every transition is a compare-and-swap on the referral version and writes
exactly one history entry. Successful transitions are published to the
event bus for notification delivery.
"""

from datetime import date, datetime, time, timezone
from typing import Any, Optional, Union

from structlog import get_logger

from care_platform.config import CoordinationConfig, get_config
from care_platform.errors import (
    ConcurrencyConflictError,
    InvalidTransitionError,
    NotFoundError,
    ValidationError,
)
from care_platform.referral_store.models import (
    Referral,
    ReferralHistoryEntry,
    ReferralStatus,
    utc_now,
)
from care_platform.referral_store.repository import ReferralRepository
from care_platform.shared_services.care_directory import CareDirectory
from care_platform.shared_services.event_bus import (
    ReferralEvent,
    ReferralEventBus,
    ReferralTransition,
)

from .state_machine import can_transition

logger = get_logger()

DEFAULT_SENT_NOTE = "Referral sent to provider"
DEFAULT_SCHEDULED_NOTE = "Appointment scheduled for {date}"
DEFAULT_COMPLETED_NOTE = "Care completed"
DEFAULT_CANCELLED_NOTE = "Referral cancelled"

DateInput = Union[date, datetime, str]


def _require(value: Optional[str], field: str) -> str:
    if value is None or not str(value).strip():
        raise ValidationError(f"{field} is required", details={"fields": [field]})
    return str(value).strip()


def _to_datetime(value: DateInput, field: str) -> datetime:
    """Accept a date, an aware or naive datetime, or an ISO string; return aware UTC."""
    if isinstance(value, str):
        try:
            value = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
        except ValueError as e:
            raise ValidationError(
                f"{field} is not an ISO date: {value}", details={"fields": [field]}
            ) from e

    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    if isinstance(value, date):
        return datetime.combine(value, time.min, tzinfo=timezone.utc)

    raise ValidationError(
        f"{field} must be a date, got {type(value).__name__}", details={"fields": [field]}
    )


class ReferralLifecycle:
    """
    Referral lifecycle operations over a pluggable referral store.

    Transitions are never retried here: a lost race surfaces as
    ConcurrencyConflictError and the caller decides what to do.
    """

    def __init__(
        self,
        repository: ReferralRepository,
        event_bus: Optional[ReferralEventBus] = None,
        directory: Optional[CareDirectory] = None,
        config: Optional[CoordinationConfig] = None,
    ):
        """
        Initialize lifecycle service.

        Args:
            repository: Referral store
            event_bus: Receives an event after every successful transition
            directory: When given, patient and provider ids are checked on create
            config: Optional configuration (uses cached config if not provided)
        """
        self.repository = repository
        self.event_bus = event_bus
        self.directory = directory
        self.config = config or get_config()

    async def create_referral(
        self,
        patient_id: str,
        provider_id: str,
        service_type: str,
        notes: Optional[str] = None,
        actor: Optional[str] = None,
    ) -> Referral:
        """
        Create a referral and send it to the provider.

        The referral is persisted directly in `sent` (version 1) with a
        `needed -> sent` history entry.

        Raises:
            ValidationError: If an id or the service type is blank
            NotFoundError: If the care directory does not know the patient or provider
            ConflictError: If the patient already has an active referral
        """
        patient_id = _require(patient_id, "patient_id")
        provider_id = _require(provider_id, "provider_id")
        service_type = _require(service_type, "service_type")
        actor = actor or self.config.default_actor

        if self.directory is not None:
            if await self.directory.get_patient(patient_id) is None:
                raise NotFoundError("patient", patient_id)
            if await self.directory.get_provider(provider_id) is None:
                raise NotFoundError("provider", provider_id)

        now = utc_now()
        referral = Referral(
            patient_id=patient_id,
            provider_id=provider_id,
            service_type=service_type,
            status=ReferralStatus.SENT,
            created_at=now,
            updated_at=now,
            notes=notes,
        )
        entry = ReferralHistoryEntry(
            referral_id=referral.referral_id,
            sequence=referral.version,
            old_status=ReferralStatus.NEEDED,
            new_status=ReferralStatus.SENT,
            notes=notes or DEFAULT_SENT_NOTE,
            actor=actor,
            timestamp=now,
        )

        await self.repository.insert_referral(referral, entry)

        logger.info(
            "referral_created",
            referral_id=referral.referral_id,
            patient_id=patient_id,
            provider_id=provider_id,
            service_type=service_type,
            actor=actor,
        )

        await self._publish(referral, ReferralTransition.CREATED, ReferralStatus.NEEDED, actor)
        return referral

    async def schedule_referral(
        self,
        referral_id: str,
        scheduled_date: DateInput,
        notes: Optional[str] = None,
        actor: Optional[str] = None,
        expected_version: Optional[int] = None,
    ) -> Referral:
        """
        Record the booked appointment for a sent referral.

        Raises:
            ValidationError: If the scheduled date is missing or malformed
            NotFoundError: If the referral does not exist
            InvalidTransitionError: If the referral is not in `sent`
            ConcurrencyConflictError: If the referral changed since it was read
        """
        if scheduled_date is None:
            raise ValidationError("scheduled_date is required", details={"fields": ["scheduled_date"]})
        appointment = _to_datetime(scheduled_date, "scheduled_date")

        return await self._transition(
            referral_id,
            ReferralStatus.SCHEDULED,
            ReferralTransition.SCHEDULED,
            notes=notes,
            default_note=DEFAULT_SCHEDULED_NOTE.format(date=appointment.date().isoformat()),
            actor=actor,
            expected_version=expected_version,
            changes={"scheduled_date": appointment},
        )

    async def complete_referral(
        self,
        referral_id: str,
        notes: Optional[str] = None,
        actor: Optional[str] = None,
        expected_version: Optional[int] = None,
    ) -> Referral:
        """
        Mark care as delivered for a scheduled referral.

        Raises:
            NotFoundError: If the referral does not exist
            InvalidTransitionError: If the referral is not in `scheduled`
            ConcurrencyConflictError: If the referral changed since it was read
        """
        return await self._transition(
            referral_id,
            ReferralStatus.COMPLETED,
            ReferralTransition.COMPLETED,
            notes=notes,
            default_note=DEFAULT_COMPLETED_NOTE,
            actor=actor,
            expected_version=expected_version,
            changes={"completed_date": utc_now()},
        )

    async def cancel_referral(
        self,
        referral_id: str,
        notes: Optional[str] = None,
        actor: Optional[str] = None,
        expected_version: Optional[int] = None,
    ) -> Referral:
        """
        Withdraw a sent or scheduled referral, freeing the patient for a new one.

        Raises:
            NotFoundError: If the referral does not exist
            InvalidTransitionError: If the referral is already completed or cancelled
            ConcurrencyConflictError: If the referral changed since it was read
        """
        return await self._transition(
            referral_id,
            ReferralStatus.CANCELLED,
            ReferralTransition.CANCELLED,
            notes=notes,
            default_note=DEFAULT_CANCELLED_NOTE,
            actor=actor,
            expected_version=expected_version,
        )

    async def get_referral(self, referral_id: str) -> Referral:
        """
        Get referral by ID.

        Raises:
            NotFoundError: If the referral does not exist
        """
        referral = await self.repository.get_referral(_require(referral_id, "referral_id"))
        if referral is None:
            raise NotFoundError("referral", referral_id)
        return referral

    async def get_history(self, referral_id: str) -> list[ReferralHistoryEntry]:
        """
        Status history of a referral, oldest first.

        Raises:
            NotFoundError: If the referral does not exist
        """
        referral = await self.get_referral(referral_id)
        return await self.repository.list_history(referral.referral_id)

    async def list_patient_referrals(self, patient_id: str) -> list[Referral]:
        """All referrals for a patient, newest first."""
        return await self.repository.list_referrals_for_patient(_require(patient_id, "patient_id"))

    async def get_active_referral(self, patient_id: str) -> Optional[Referral]:
        """The patient's sent or scheduled referral, if any."""
        return await self.repository.get_active_referral(_require(patient_id, "patient_id"))

    async def count_unsuccessful_referrals(self, patient_id: str) -> int:
        """Number of the patient's referrals that ended cancelled."""
        referrals = await self.list_patient_referrals(patient_id)
        return sum(1 for r in referrals if r.status == ReferralStatus.CANCELLED)

    async def _transition(
        self,
        referral_id: str,
        target: ReferralStatus,
        transition: ReferralTransition,
        notes: Optional[str],
        default_note: str,
        actor: Optional[str],
        expected_version: Optional[int],
        changes: Optional[dict[str, Any]] = None,
    ) -> Referral:
        """Validate the edge, then compare-and-swap the referral with its history entry."""
        referral = await self.get_referral(referral_id)
        actor = actor or self.config.default_actor
        log = logger.bind(
            referral_id=referral.referral_id,
            patient_id=referral.patient_id,
            from_status=referral.status.value,
            to_status=target.value,
        )

        if expected_version is not None and expected_version != referral.version:
            log.warning(
                "referral_version_mismatch",
                expected_version=expected_version,
                actual_version=referral.version,
            )
            raise ConcurrencyConflictError(referral.referral_id, expected_version, referral.version)

        if not can_transition(referral.status, target):
            log.warning("referral_transition_rejected")
            raise InvalidTransitionError(referral.referral_id, referral.status.value, target.value)

        now = utc_now()
        update: dict[str, Any] = {
            "status": target,
            "updated_at": now,
            "version": referral.version + 1,
            **(changes or {}),
        }
        if notes:
            update["notes"] = notes
        updated = referral.model_copy(update=update)

        entry = ReferralHistoryEntry(
            referral_id=referral.referral_id,
            sequence=updated.version,
            old_status=referral.status,
            new_status=target,
            notes=notes or default_note,
            actor=actor,
            timestamp=now,
        )

        written = await self.repository.apply_transition(referral.version, updated, entry)
        if not written:
            current = await self.repository.get_referral(referral.referral_id)
            actual_version = current.version if current else None
            log.warning(
                "referral_concurrent_modification",
                expected_version=referral.version,
                actual_version=actual_version,
            )
            raise ConcurrencyConflictError(referral.referral_id, referral.version, actual_version)

        log.info("referral_transitioned", version=updated.version, actor=actor)

        await self._publish(updated, transition, referral.status, actor)
        return updated

    async def _publish(
        self,
        referral: Referral,
        transition: ReferralTransition,
        old_status: ReferralStatus,
        actor: str,
    ) -> None:
        if self.event_bus is None:
            return

        await self.event_bus.publish(
            ReferralEvent(
                referral=referral,
                transition=transition,
                old_status=old_status,
                new_status=referral.status,
                actor=actor,
            )
        )
