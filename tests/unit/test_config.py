"""
Unit tests for configuration, errors and logging setup.
"""

import pytest
import structlog
from pydantic import ValidationError as PydanticValidationError

from care_platform.config import CoordinationConfig, Environment
from care_platform.errors import (
    CareCoordinationError,
    ConcurrencyConflictError,
    ConflictError,
    InvalidTransitionError,
    NotFoundError,
    StoreError,
    ValidationError,
)
from care_platform.observability import configure_logging


class TestCoordinationConfig:
    """Tests for CoordinationConfig."""

    def test_defaults(self, config):
        """Test default policy values."""
        assert config.default_actor == "Care Coordinator"
        assert config.risk_high_threshold == 70
        assert config.risk_medium_threshold == 40
        assert config.include_unlocated_providers is True

    def test_log_level_normalized(self):
        """Test log level names are uppercased."""
        assert CoordinationConfig(log_level="debug").log_level == "DEBUG"

    def test_invalid_log_level(self):
        """Test unknown log levels are rejected."""
        with pytest.raises(PydanticValidationError):
            CoordinationConfig(log_level="chatty")

    def test_threshold_order(self):
        """Test medium threshold must be below high."""
        with pytest.raises(PydanticValidationError):
            CoordinationConfig(risk_high_threshold=50, risk_medium_threshold=60)

    def test_threshold_range(self):
        """Test thresholds stay on the score scale."""
        with pytest.raises(PydanticValidationError):
            CoordinationConfig(risk_high_threshold=120)

    def test_environment_from_env(self, monkeypatch):
        """Test settings are read from environment variables."""
        monkeypatch.setenv("ENVIRONMENT", "prod")
        monkeypatch.setenv("DEFAULT_ACTOR", "Discharge Nurse")

        config = CoordinationConfig()

        assert config.environment == Environment.PROD
        assert config.is_production
        assert config.default_actor == "Discharge Nurse"


class TestErrors:
    """Tests for the error taxonomy."""

    @pytest.mark.parametrize(
        "error,code",
        [
            (ValidationError("bad input"), "VALIDATION_ERROR"),
            (NotFoundError("referral", "r-1"), "NOT_FOUND"),
            (ConflictError("pat-1", "r-1"), "CONFLICT"),
            (InvalidTransitionError("r-1", "completed", "cancelled"), "INVALID_TRANSITION"),
            (ConcurrencyConflictError("r-1", 1, 2), "CONCURRENCY_CONFLICT"),
            (StoreError("down"), "STORE_ERROR"),
        ],
    )
    def test_codes(self, error, code):
        """Test every error carries its code and serializes."""
        assert isinstance(error, CareCoordinationError)
        assert error.code == code
        assert error.to_dict()["error"] == code
        assert error.to_dict()["message"] == error.message

    def test_not_found_details(self):
        """Test NotFoundError names the entity and identifier."""
        error = NotFoundError("referral", "r-1")

        assert error.details == {"entity": "referral", "identifier": "r-1"}
        assert "r-1" in str(error)


class TestConfigureLogging:
    """Tests for structlog setup."""

    def test_json_renderer(self):
        """Test JSON output is selected by configuration."""
        try:
            configure_logging(CoordinationConfig(log_json=True, log_level="WARNING"))
            processors = structlog.get_config()["processors"]

            assert isinstance(processors[-1], structlog.processors.JSONRenderer)
        finally:
            structlog.reset_defaults()

    def test_console_renderer(self):
        """Test console output is the default."""
        try:
            configure_logging(CoordinationConfig(log_json=False))
            processors = structlog.get_config()["processors"]

            assert isinstance(processors[-1], structlog.dev.ConsoleRenderer)
        finally:
            structlog.reset_defaults()
