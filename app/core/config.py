# app/core/config.py
from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Global application configuration.

    Values are loaded from environment variables (or a local `.env` file) at
    runtime. Tests construct an explicit instance and hand it to `create_app`.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    APP_NAME: str = "Class Session Calendar"
    APP_ENV: str = Field("local", description="Environment name: local/dev/stage/prod")
    LOG_LEVEL: str = Field("INFO", description="Root log level for the service.")

    DB_URL: str = Field(
        "sqlite+aiosqlite:///./class_sessions.db",
        description="SQLAlchemy-compatible async database URL",
    )

    INTERNAL_API_KEY: str | None = Field(
        default=None,
        description="API key required for hitting /internal endpoints",
    )

    # --- Schedule engine ---
    SCHEDULE_ENGINE_ENABLED: bool = Field(
        default=True,
        description="Start the periodic reconciliation timer on application startup.",
    )
    SCHEDULE_ENGINE_INTERVAL_MINUTES: int = Field(
        default=5,
        ge=1,
        description="Minutes between two reconciliation passes.",
    )
    SCHEDULE_ENGINE_LOOKAHEAD_MINUTES: int = Field(
        default=60,
        ge=1,
        description="Length of the rolling window materialized on each pass.",
    )
    SCHEDULE_PREVIEW_LOOKAHEAD_MINUTES: int = Field(
        default=180,
        ge=1,
        description="Default window length for the calendar preview.",
    )
    SCHEDULE_PREVIEW_LIMIT: int = Field(
        default=200,
        ge=1,
        description="Maximum number of occurrences returned by the preview.",
    )

    # --- Session materialization ---
    SESSION_UPSERT_MAX_RETRIES: int = Field(
        default=2,
        ge=0,
        description="Extra attempts after a uniqueness conflict while creating a session.",
    )
    SESSION_UPSERT_RETRY_DELAY_MS: int = Field(
        default=10,
        ge=0,
        description="Base delay between conflict retries, multiplied by the attempt number.",
    )

    # --- Attendance tokens ---
    TOKEN_VALID_LEAD_MINUTES: int = Field(
        default=15,
        ge=0,
        description="How long before the session start an issued token becomes valid.",
    )
    TOKEN_GRACE_MINUTES: int = Field(
        default=15,
        ge=0,
        description="How long after the session end an issued token stays valid.",
    )


@lru_cache()
def get_settings() -> Settings:
    """
    Cached accessor for application settings.

    Using LRU cache ensures settings are read and validated only once,
    while still being easily importable across the app.
    """
    return Settings()
