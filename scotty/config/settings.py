"""
Configuration Management for Scotty

Uses pydantic-settings for type-safe configuration from environment variables.

All tunables live here: where the backend is, how long each bounded
operation may take, and the heuristics the local engine runs on.
"""

from functools import lru_cache
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class BackendSettings(BaseSettings):
    """Remote backend location and time budgets."""

    model_config = SettingsConfigDict(
        env_prefix="SCOTTY_BACKEND_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    base_url: str = Field(
        default="http://localhost:3001",
        description="Backend root URL (the API lives under /api)"
    )
    user_id: str = Field(
        default="user_1",
        description="User the client acts on behalf of"
    )

    # Time budgets (seconds)
    probe_timeout_seconds: float = Field(
        default=2.0,
        gt=0,
        le=10,
        description="Bound on the initial reachability probe"
    )
    upgrade_timeout_seconds: float = Field(
        default=12.0,
        gt=0,
        le=60,
        description="Bound on the whole upgrade sequence"
    )
    resource_timeout_seconds: float = Field(
        default=4.0,
        gt=0,
        description="Bound on each wave 1 and wave 2 fetch; a slow resource falls back alone"
    )
    daily_payload_timeout_seconds: float = Field(
        default=8.0,
        gt=0,
        description="Bound on the daily payload fetch (may trigger generation)"
    )
    quest_timeout_seconds: float = Field(
        default=3.0,
        gt=0,
        description="Bound on the active quest fetch"
    )
    request_timeout_seconds: float = Field(
        default=10.0,
        gt=0,
        description="Per-request HTTP timeout"
    )

    # Retry policy for idempotent reads
    read_retry_attempts: int = Field(
        default=2,
        ge=1,
        le=5,
        description="Attempts for a read that fails at the transport level"
    )
    transaction_history_days: int = Field(
        default=30,
        ge=1,
        le=365,
        description="How many days of transactions to request"
    )
    upcoming_days_ahead: int = Field(
        default=30,
        ge=1,
        le=365,
        description="Look-ahead window for upcoming recurring charges"
    )

    @field_validator('base_url')
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        """Normalize the base URL so paths can be appended directly."""
        return v.rstrip("/")

    @property
    def api_url(self) -> str:
        return f"{self.base_url}/api"

    @property
    def health_url(self) -> str:
        return f"{self.base_url}/health"


class AppSettings(BaseSettings):
    """
    Main application settings.

    Loads configuration from environment variables and .env file.
    """

    model_config = SettingsConfigDict(
        env_prefix="SCOTTY_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    debug_mode: bool = Field(
        default=False,
        description="Log at DEBUG instead of INFO"
    )

    # Health score heuristics
    impulse_merchants: str = Field(
        default="DoorDash,Uber Eats,Amazon,Shein,Steam",
        description="Comma-separated merchant names counted as impulse purchases"
    )
    impulse_threshold: int = Field(
        default=5,
        ge=1,
        description="Impulse purchase count that halves the impulse score"
    )

    # Local seed data
    seed_history_days: int = Field(
        default=30,
        ge=1,
        le=365,
        description="Days of sample transactions generated at startup"
    )
    seed_transactions_per_day: int = Field(
        default=3,
        ge=1,
        le=20,
        description="Average sample transactions per day"
    )
    seed_random_seed: Optional[int] = Field(
        default=None,
        description="Fix the sample data generator (None = random)"
    )

    # Pet economy
    starting_food_credits: int = Field(
        default=10,
        ge=0,
        description="Food credits the pet starts the session with"
    )
    achievement_reward_credits: int = Field(
        default=10,
        ge=0,
        description="Credits granted when an achievement is completed"
    )
    achievement_reward_happiness: int = Field(
        default=10,
        ge=0,
        le=100,
        description="Happiness granted when an achievement is completed"
    )

    @property
    def impulse_merchants_list(self) -> list[str]:
        """Get impulse merchants as a list."""
        return [m.strip() for m in self.impulse_merchants.split(",") if m.strip()]


class Settings(BaseSettings):
    """
    Root settings container.

    Aggregates all sub-settings for easy access.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    @property
    def backend(self) -> BackendSettings:
        return BackendSettings()

    @property
    def app(self) -> AppSettings:
        return AppSettings()


@lru_cache()
def get_settings() -> Settings:
    """
    Get application settings (cached).

    Call get_settings.cache_clear() to reload if needed.
    """
    return Settings()


def validate_all_settings() -> dict[str, bool]:
    """
    Validate all settings are properly configured.

    Returns a dict of {setting_name: is_valid}.
    Useful for startup checks.
    """
    results = {}

    settings = get_settings()

    try:
        _ = settings.backend
        results["backend"] = True
    except Exception as e:
        results["backend"] = False
        results["backend_error"] = str(e)

    try:
        _ = settings.app
        results["app"] = True
    except Exception as e:
        results["app"] = False
        results["app_error"] = str(e)

    return results
