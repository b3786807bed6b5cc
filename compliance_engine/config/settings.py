"""
Compliance Engine - Configuration Settings

Engine configuration using Pydantic Settings.
Environment variables (prefix COMPLIANCE_) are loaded from an optional .env file.

Rate tables (tax brackets, thresholds, contribution rates, fees, base
currency, exchange rates) are versioned data and live in
compliance_engine.config.rate_tables, not here.
"""

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Engine settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="COMPLIANCE_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ===========================================
    # APPLICATION CONFIGURATION
    # ===========================================
    app_name: str = "Agency Compliance Engine"
    app_env: str = "development"
    debug: bool = False
    log_level: str = "INFO"

    # ===========================================
    # ACTION PLAN WINDOWS (days)
    # ===========================================
    action_deadline_window_days: int = 30     # deadline becomes a recommendation
    upcoming_deadline_window_days: int = 60   # deadline listed as upcoming
    due_soon_note_days: int = 30              # assessor adds a "due in N days" note

    # ===========================================
    # BATCH PROCESSING
    # ===========================================
    batch_concurrency: int = 10
    deadline_notification_threshold_days: int = 30

    @property
    def is_production(self) -> bool:
        """Check if running in production mode."""
        return self.app_env.lower() == "production"

    @property
    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.app_env.lower() == "development"


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.
    Uses lru_cache to avoid reading .env file on every call.
    """
    return Settings()
