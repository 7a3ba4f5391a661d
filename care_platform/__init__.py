"""
Care Platform

Configuration, error taxonomy, logging, snapshot models and the referral
store shared by the care coordination engines.
"""

from .config import CoordinationConfig, Environment, get_config
from .errors import (
    CareCoordinationError,
    ConcurrencyConflictError,
    ConflictError,
    InvalidTransitionError,
    NotFoundError,
    StoreError,
    ValidationError,
)
from .observability import configure_logging

__all__ = [
    "CoordinationConfig",
    "Environment",
    "get_config",
    "configure_logging",
    "CareCoordinationError",
    "ValidationError",
    "NotFoundError",
    "ConflictError",
    "InvalidTransitionError",
    "ConcurrencyConflictError",
    "StoreError",
]
