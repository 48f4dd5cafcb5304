"""
Configuration settings for the integration sync retry service.

All settings are loaded from environment variables with sensible defaults.
Use .env file for local development.
"""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # === Application ===
    APP_NAME: str = "Integration Sync Retry"
    APP_VERSION: str = "0.1.0"
    ENVIRONMENT: str = "development"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    # === Circuit Breaker ===
    CIRCUIT_FAILURE_THRESHOLD: int = 5  # Consecutive failures before opening
    CIRCUIT_RESET_TIMEOUT_MS: int = 60_000  # Open -> half_open after this
    CIRCUIT_HALF_OPEN_MAX_PROBES: int = 1  # Trial attempts per half-open window

    # === Retry & Backoff ===
    RETRY_BASE_DELAY_MS: int = 5_000
    RETRY_MAX_DELAY_MS: int = 300_000
    RETRY_JITTER_FRACTION: float = 0.25
    SCHEDULER_CONFLICT_RETRIES: int = 3  # Re-reads on version conflict
    ERROR_MESSAGE_MAX_LENGTH: int = 2_000  # chars of error history kept per entry

    # === Batch Processing ===
    RETRY_BATCH_SIZE: int = 50
    RETRY_QUEUE_INTERVAL_SECONDS: int = 60
    PROCESSOR_LOCK_TIMEOUT: int = 300  # seconds, must exceed a full batch run

    # === Sync Log Store ===
    STORE_BACKEND: str = "redis"  # "redis" or "memory" (local dev only)
    REDIS_URL: str = "redis://redis:6379/0"
    REDIS_MAX_CONNECTIONS: int = 50
    REDIS_KEY_PREFIX: str = "sync"
    CIRCUIT_SNAPSHOT_TTL_SECONDS: int = 3600

    # === Celery ===
    CELERY_BROKER_URL: str = "redis://redis:6379/0"
    CELERY_RESULT_BACKEND: str = "redis://redis:6379/1"
    CELERY_TASK_TIME_LIMIT: int = 300  # seconds

    # === External System Adapters ===
    ADAPTER_TIMEOUT_SECONDS: float = 30.0
    SYSTEM_ENDPOINTS: dict[str, str] = {}  # e.g., {"sap": "http://sap-gateway:8080"}
    MOCK_SYSTEMS: list[str] = []  # Systems served by the mock adapter

    # === Monitoring ===
    PROMETHEUS_ENABLED: bool = True


# Global settings instance
settings = Settings()
