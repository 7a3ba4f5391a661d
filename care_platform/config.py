"""
Coordination Configuration Management

Centralizes all configuration for the follow-up coordination core.
Supports multiple environments (local, dev, prod) loaded from environment
variables with .env file support.
"""

from enum import Enum
from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Environment(str, Enum):
    """Supported deployment environments."""

    LOCAL = "local"
    DEV = "dev"
    PROD = "prod"


class CoordinationConfig(BaseSettings):
    """
    Coordination-wide configuration settings.

    Scoring weights live next to the engines as named constants; this class
    holds the thresholds and policies operators are expected to tune.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Environment
    environment: Environment = Field(default=Environment.LOCAL)

    # Referral store
    mongo_db_url: str = Field(default="mongodb://localhost:27017")
    mongo_db_name: str = Field(default="followup_coordination")
    referrals_collection: str = Field(default="referrals")
    referral_history_collection: str = Field(default="referral_history")
    store_max_retries: int = Field(default=3, ge=0)

    # Logging
    log_level: str = Field(default="INFO")
    log_json: bool = Field(default=False)

    # Referral lifecycle
    default_actor: str = Field(default="Care Coordinator")

    # Risk scoring
    risk_high_threshold: int = Field(default=70)
    risk_medium_threshold: int = Field(default=40)

    # Provider matching
    default_match_limit: int = Field(default=5, ge=1)
    include_unlocated_providers: bool = Field(
        default=True,
        description="Return providers without coordinates (unranked by distance) "
        "when no max_distance filter is supplied",
    )

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Normalize and check the log level name."""
        level = v.upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Unsupported log level: {v}")
        return level

    @field_validator("risk_high_threshold", "risk_medium_threshold")
    @classmethod
    def validate_threshold_range(cls, v: int) -> int:
        """Ensure risk thresholds are on the 0-100 score scale."""
        if not 0 <= v <= 100:
            raise ValueError("risk thresholds must be between 0 and 100")
        return v

    @field_validator("risk_medium_threshold")
    @classmethod
    def validate_threshold_order(cls, v: int, info) -> int:
        """Medium threshold must sit strictly below the high threshold."""
        high = info.data.get("risk_high_threshold", 70)
        if v >= high:
            raise ValueError("risk_medium_threshold must be lower than risk_high_threshold")
        return v

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.environment == Environment.PROD

    @property
    def is_local(self) -> bool:
        """Check if running in local development environment."""
        return self.environment == Environment.LOCAL


@lru_cache()
def get_config() -> CoordinationConfig:
    """
    Get cached coordination configuration.

    Uses lru_cache to ensure config is loaded only once.
    """
    return CoordinationConfig()
