"""
Snapshot Data Models

Immutable patient and provider snapshots consumed by the scoring and
matching engines. Snapshots are owned by the external store; the core only
reads them.
"""

from datetime import date, datetime
from typing import Any, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator


class GeoPoint(BaseModel):
    """Latitude/longitude pair in decimal degrees."""

    model_config = ConfigDict(frozen=True)

    latitude: float = Field(..., ge=-90.0, le=90.0)
    longitude: float = Field(..., ge=-180.0, le=180.0)


def _blank_to_none(v: Any) -> Any:
    if isinstance(v, str) and not v.strip():
        return None
    return v


def _coerce_date(v: Any) -> Any:
    """Accept dates, datetimes and ISO timestamps where a calendar date is expected."""
    if isinstance(v, datetime):
        return v.date()
    if isinstance(v, str) and "T" in v:
        return datetime.fromisoformat(v.replace("Z", "+00:00")).date()
    return v


class PatientSnapshot(BaseModel):
    """
    Read-only view of a discharged patient.

    `patient_id`, `diagnosis` and `discharge_date` are structurally required;
    everything else is optional and degrades scoring to neutral values.
    """

    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)

    patient_id: str = Field(
        ..., min_length=1, validation_alias=AliasChoices("patient_id", "id")
    )
    name: Optional[str] = None
    date_of_birth: Optional[date] = None
    diagnosis: str = Field(..., min_length=1)
    discharge_date: date
    insurance: Optional[str] = None
    address: Optional[str] = None
    latitude: Optional[float] = Field(default=None, ge=-90.0, le=90.0)
    longitude: Optional[float] = Field(default=None, ge=-180.0, le=180.0)
    required_followup: Optional[str] = None
    prior_unsuccessful_referrals: Optional[int] = Field(
        default=None, ge=0, description="Count of missed or cancelled prior referrals"
    )

    @field_validator("name", "insurance", "address", "required_followup", mode="before")
    @classmethod
    def blank_optional_strings(cls, v: Any) -> Any:
        """Treat empty optional strings as absent."""
        return _blank_to_none(v)

    @field_validator("date_of_birth", "discharge_date", mode="before")
    @classmethod
    def coerce_dates(cls, v: Any) -> Any:
        """Reduce timestamps to calendar dates."""
        return _coerce_date(_blank_to_none(v))

    @property
    def location(self) -> Optional[GeoPoint]:
        """Explicit coordinates, when both are present."""
        if self.latitude is None or self.longitude is None:
            return None
        return GeoPoint(latitude=self.latitude, longitude=self.longitude)


class ProviderSnapshot(BaseModel):
    """Read-only view of a candidate follow-up provider."""

    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)

    provider_id: str = Field(
        ..., min_length=1, validation_alias=AliasChoices("provider_id", "id")
    )
    name: str = Field(..., min_length=1)
    type: str = Field(default="")
    specialties: frozenset[str] = Field(default_factory=frozenset)
    accepted_insurance: frozenset[str] = Field(default_factory=frozenset)
    in_network_plans: frozenset[str] = Field(default_factory=frozenset)
    rating: float = Field(default=0.0, ge=0.0, le=5.0)
    latitude: Optional[float] = Field(default=None, ge=-90.0, le=90.0)
    longitude: Optional[float] = Field(default=None, ge=-180.0, le=180.0)
    availability_next: Optional[str] = Field(
        default=None, description="Free text ('Tomorrow', 'Next week') or an ISO date"
    )
    address: Optional[str] = None
    phone: Optional[str] = None

    @field_validator("specialties", "accepted_insurance", "in_network_plans", mode="before")
    @classmethod
    def drop_empty_entries(cls, v: Any) -> Any:
        """Missing lists become empty sets; blank entries are discarded."""
        if v is None:
            return frozenset()
        if isinstance(v, str):
            v = [v]
        return frozenset(item.strip() for item in v if isinstance(item, str) and item.strip())

    @field_validator("type", mode="before")
    @classmethod
    def default_type(cls, v: Any) -> Any:
        """Missing provider type becomes an empty string."""
        return "" if v is None else v

    @field_validator("availability_next", "address", "phone", mode="before")
    @classmethod
    def blank_optional_strings(cls, v: Any) -> Any:
        """Treat empty optional strings as absent."""
        return _blank_to_none(v)

    @property
    def location(self) -> Optional[GeoPoint]:
        """Explicit coordinates, when both are present."""
        if self.latitude is None or self.longitude is None:
            return None
        return GeoPoint(latitude=self.latitude, longitude=self.longitude)
