"""
Centralized configuration for the Stickerlab backend.

All settings are loaded from environment variables with sensible defaults.
Module-specific settings should be namespaced (e.g., APPLE_*, GOOGLE_*, RETRY_*).
"""

from decimal import Decimal
from functools import lru_cache
from typing import Literal
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_name: str = "Stickerlab API"
    app_version: str = "0.1.0"
    debug: bool = False
    log_level: str = "INFO"

    # Server
    host: str = "0.0.0.0"
    port: int = 8000
    reload: bool = False
    # Import string of the ASGI app served by run_api.py
    app_module: str = "api:app"

    # CORS settings
    cors_origins: list[str] = ["http://localhost:8081", "http://localhost:3000"]
    cors_allow_credentials: bool = True
    cors_allow_methods: list[str] = ["*"]
    cors_allow_headers: list[str] = ["*"]

    # Supabase
    supabase_url: str = ""
    supabase_anon_key: str = ""
    supabase_service_role_key: str = ""
    supabase_jwt_secret: str = ""
    # Direct Postgres connection string, used only by run_migrations.py
    supabase_db_url: str = ""

    # Storage backend for the ledger and purchase records
    storage_backend: Literal["memory", "supabase"] = "memory"

    # Credits
    initial_credits: int = 10
    generation_cost: int = 1

    # Retry defaults for external calls (seconds)
    retry_max_attempts: int = 3
    retry_base_delay: float = 1.0
    retry_max_delay: float = 10.0
    retry_backoff_factor: float = 2.0

    # App Store receipt validation
    apple_shared_secret: str = ""
    apple_use_sandbox: bool = False

    # Google Play receipt validation
    google_package_name: str = ""
    google_access_token: str = ""

    # Generative image model
    gemini_api_key: str = ""
    gemini_model: str = "gemini-2.5-flash-image-preview"
    generation_timeout: float = 60.0
    # Estimated USD cost per generated image, reported to monitoring
    generation_unit_cost: Decimal = Decimal("0.039")

    # Monitoring: spend above these USD thresholds is logged as an alert
    cost_alert_daily: Decimal = Decimal("100")
    cost_alert_monthly: Decimal = Decimal("2000")
    cost_alert_user_monthly: Decimal = Decimal("50")
    # Generation events older than this are dropped from the in-memory sink
    monitoring_retention_days: int = 62
    monitoring_max_events: int = 100_000


@lru_cache
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Uses lru_cache to ensure settings are only loaded once.
    """
    return Settings()
