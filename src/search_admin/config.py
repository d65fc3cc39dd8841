"""
Configuration settings for the search admin client.

All settings are loaded from environment variables with sensible defaults.
Use .env file for local development.
"""

from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Optional


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # === Application ===
    APP_NAME: str = "Search Admin Client"
    APP_VERSION: str = "0.1.0"
    LOG_LEVEL: str = "INFO"
    ENVIRONMENT: str = "development"

    # === Target API ===
    SEARCH_BASE_URL: str = "https://localhost:9200"
    SEARCH_USERNAME: Optional[str] = None
    SEARCH_PASSWORD: Optional[str] = None

    # === HTTP Transport ===
    HTTP_TIMEOUT: float = 30.0  # seconds, per attempt
    HTTP_MAX_CONNECTIONS: int = 20
    HTTP_MAX_KEEPALIVE: int = 10

    # === Retry ===
    RETRY_MAX_ATTEMPTS: int = 5  # first try + 4 retries
    RETRY_WAIT_MIN: float = 0.2  # seconds
    RETRY_WAIT_MAX: float = 30.0  # seconds

    # === TLS ===
    TLS_VERIFY: bool = True  # False skips certificate verification
    TLS_CA_BUNDLE: Optional[str] = None  # Custom CA bundle path

    # === Executor ===
    EXECUTOR_MAX_WORKERS: int = 8

    # === Monitoring ===
    PROMETHEUS_ENABLED: bool = True


# Global settings instance
settings = Settings()
