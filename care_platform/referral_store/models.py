"""
Referral Data Models

Referral entity and its append-only status history, as persisted by the
referral store.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, field_validator


def utc_now() -> datetime:
    """Timezone-aware current time."""
    return datetime.now(timezone.utc)


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Attach UTC to naive datetimes, as read back from the store."""
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class ReferralStatus(str, Enum):
    """Referral lifecycle status."""

    NEEDED = "needed"  # Follow-up identified, nothing sent yet
    SENT = "sent"  # Transmitted to the provider
    SCHEDULED = "scheduled"  # Appointment booked
    COMPLETED = "completed"  # Care delivered (terminal)
    CANCELLED = "cancelled"  # Withdrawn (terminal)

    @property
    def is_terminal(self) -> bool:
        """Completed and cancelled referrals never change again."""
        return self in TERMINAL_STATUSES


TERMINAL_STATUSES = frozenset({ReferralStatus.COMPLETED, ReferralStatus.CANCELLED})


class Referral(BaseModel):
    """
    Tracked request linking a patient to a provider for follow-up care.

    `version` starts at 1 and increases by one on every transition; it is the
    compare-and-swap token for optimistic concurrency.
    """

    model_config = ConfigDict(frozen=True)

    referral_id: str = Field(default_factory=lambda: str(uuid4()))
    patient_id: str = Field(..., min_length=1)
    provider_id: str = Field(..., min_length=1)
    service_type: str = Field(..., min_length=1)
    status: ReferralStatus

    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)
    scheduled_date: Optional[datetime] = None
    completed_date: Optional[datetime] = None
    notes: Optional[str] = None

    version: int = Field(default=1, ge=1)

    @field_validator("created_at", "updated_at", "scheduled_date", "completed_date")
    @classmethod
    def assume_utc(cls, value: Optional[datetime]) -> Optional[datetime]:
        return as_utc(value)

    @property
    def is_active(self) -> bool:
        """Non-terminal referrals block new referrals for the same patient."""
        return not self.status.is_terminal

    def to_document(self) -> dict[str, Any]:
        """Store representation, with the status flattened and the active flag indexed."""
        doc = self.model_dump()
        doc["status"] = self.status.value
        doc["active"] = self.is_active
        return doc

    @classmethod
    def from_document(cls, doc: dict[str, Any]) -> "Referral":
        """Rebuild a referral from its store representation."""
        data = {k: v for k, v in doc.items() if k not in ("_id", "active")}
        return cls(**data)


class ReferralHistoryEntry(BaseModel):
    """
    Immutable audit record of a single referral status transition.

    Keyed by (referral_id, sequence); `sequence` equals the referral version
    the transition produced.
    """

    model_config = ConfigDict(frozen=True)

    entry_id: str = Field(default_factory=lambda: str(uuid4()))
    referral_id: str
    sequence: int = Field(..., ge=1)
    old_status: ReferralStatus
    new_status: ReferralStatus
    notes: Optional[str] = None
    actor: str
    timestamp: datetime = Field(default_factory=utc_now)

    @field_validator("timestamp")
    @classmethod
    def assume_utc(cls, value: datetime) -> datetime:
        return as_utc(value)

    def to_document(self) -> dict[str, Any]:
        """Store representation with flattened statuses."""
        doc = self.model_dump()
        doc["old_status"] = self.old_status.value
        doc["new_status"] = self.new_status.value
        return doc

    @classmethod
    def from_document(cls, doc: dict[str, Any]) -> "ReferralHistoryEntry":
        """Rebuild a history entry from its store representation."""
        data = {k: v for k, v in doc.items() if k != "_id"}
        return cls(**data)
