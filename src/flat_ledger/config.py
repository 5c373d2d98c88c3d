"""Configuration management for flat-ledger."""

from pathlib import Path
from typing import Literal

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .exceptions import ConfigurationError
from .ledger.reliability import ReliabilityPolicy


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="FLAT_LEDGER_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Household data
    household_file: Path | None = None  # JSON snapshot used when no path is given
    default_flat_id: str | None = None  # Scope to this flat when a file holds several

    # Logging
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "WARNING"

    # Reliability scoring
    grace_period_days: int = 3  # Days after the due date still counted on time
    missed_after_days: int = 7  # Unpaid bill shares older than this count as missed
    neutral_score: int = 75  # Score for members with no payment history
    history_baseline_points: float = 30.0
    trailing_months: int = 6  # Months shown in the monthly behaviour trend

    @field_validator("log_level", mode="before")
    @classmethod
    def normalize_log_level(cls, value):
        """Accept log levels in any case."""
        return value.upper() if isinstance(value, str) else value

    def reliability_policy(self) -> ReliabilityPolicy:
        """Build the scoring policy from these settings."""
        return ReliabilityPolicy(
            grace_period_days=self.grace_period_days,
            missed_after_days=self.missed_after_days,
            neutral_score=self.neutral_score,
            history_baseline_points=self.history_baseline_points,
            trailing_months=self.trailing_months,
        )


def load_settings() -> Settings:
    """Load application settings from environment variables."""
    try:
        return Settings()
    except Exception as e:
        raise ConfigurationError(
            f"Failed to load settings. Check the FLAT_LEDGER_* environment "
            f"variables and your .env file.\n"
            f"Error: {e}"
        ) from e
