"""Application configuration."""

import os

from pydantic_settings import BaseSettings, SettingsConfigDict

_ENVIRONMENT = os.getenv("ENVIRONMENT", "local")


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    supabase_url: str
    supabase_service_key: str
    admin_token: str
    environment: str = _ENVIRONMENT
    log_level: str = "INFO"

    plan_staleness_hours: float = 24.0
    plan_wait_timeout_seconds: float = 5.0
    calorie_floor_kcal: int = 1200
    significance_calorie_kcal: int = 50
    significance_ratio: float = 0.10
    storage_retry_attempts: int = 1

    recompute_page_size: int = 1000
    recompute_concurrency: int = 10
    recompute_page_delay_seconds: float = 0.0
    recompute_cron: str = "0 3 * * mon"
    scheduler_enabled: bool = False

    model_config = SettingsConfigDict(
        env_file=(f".env.{_ENVIRONMENT}", ".env"),
        extra="ignore",
    )
