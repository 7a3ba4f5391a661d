"""
Care Coordination Exception Hierarchy

Specific exception types for each failure category, carrying structured
error information that callers can surface or serialize.
"""

from typing import Any, Optional

from pydantic import ValidationError as PydanticValidationError


class CareCoordinationError(Exception):
    """Base exception for all care coordination errors."""

    def __init__(
        self,
        message: str,
        code: str = "UNKNOWN_ERROR",
        details: Optional[dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to dictionary for callers and audit records."""
        return {
            "error": self.code,
            "message": self.message,
            "details": self.details,
        }


class ValidationError(CareCoordinationError):
    """Malformed or missing required input. Never retried."""

    def __init__(self, message: str, details: Optional[dict[str, Any]] = None):
        super().__init__(message=message, code="VALIDATION_ERROR", details=details)

    @classmethod
    def from_pydantic(cls, entity: str, error: PydanticValidationError) -> "ValidationError":
        """Wrap a pydantic validation failure, listing the offending fields."""
        fields = [".".join(str(part) for part in err["loc"]) for err in error.errors()]
        return cls(
            f"Invalid {entity}: {', '.join(fields) or 'malformed input'}",
            details={"entity": entity, "fields": fields, "errors": error.errors(include_url=False)},
        )


class NotFoundError(CareCoordinationError):
    """Unknown patient, provider or referral identifier."""

    def __init__(self, entity: str, identifier: str):
        super().__init__(
            message=f"{entity.capitalize()} '{identifier}' not found",
            code="NOT_FOUND",
            details={"entity": entity, "identifier": identifier},
        )
        self.entity = entity
        self.identifier = identifier


class ConflictError(CareCoordinationError):
    """A referral is already active for the patient."""

    def __init__(self, patient_id: str, active_referral_id: Optional[str] = None):
        super().__init__(
            message=f"Patient '{patient_id}' already has an active referral",
            code="CONFLICT",
            details={"patient_id": patient_id, "active_referral_id": active_referral_id},
        )
        self.patient_id = patient_id
        self.active_referral_id = active_referral_id


class InvalidTransitionError(CareCoordinationError):
    """Requested lifecycle edge is not legal from the current status."""

    def __init__(self, referral_id: str, from_status: str, to_status: str):
        super().__init__(
            message=f"Referral '{referral_id}' cannot move from {from_status} to {to_status}",
            code="INVALID_TRANSITION",
            details={
                "referral_id": referral_id,
                "from_status": from_status,
                "to_status": to_status,
            },
        )
        self.from_status = from_status
        self.to_status = to_status


class ConcurrencyConflictError(CareCoordinationError):
    """
    Optimistic concurrency check failed.

    The caller should refetch the referral and decide whether to retry.
    """

    def __init__(
        self,
        referral_id: str,
        expected_version: int,
        actual_version: Optional[int] = None,
    ):
        super().__init__(
            message=f"Referral '{referral_id}' was modified concurrently",
            code="CONCURRENCY_CONFLICT",
            details={
                "referral_id": referral_id,
                "expected_version": expected_version,
                "actual_version": actual_version,
            },
        )
        self.expected_version = expected_version
        self.actual_version = actual_version


class StoreError(CareCoordinationError):
    """Persistence failure that is not a domain conflict."""

    def __init__(self, message: str, details: Optional[dict[str, Any]] = None):
        super().__init__(message=message, code="STORE_ERROR", details=details)
