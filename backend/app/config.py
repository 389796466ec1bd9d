"""Application configuration using Pydantic settings."""

from functools import lru_cache
from typing import Optional

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Application
    APP_NAME: str = "Master Parenthood"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False
    ENVIRONMENT: str = "development"  # development, staging, production

    # Database (document store backing)
    DATABASE_URL: str = "sqlite+aiosqlite:///./master_parenthood.db"
    DB_ECHO: bool = False
    DB_POOL_SIZE: int = 20
    DB_MAX_OVERFLOW: int = 10

    # Session credentials
    SECRET_KEY: str
    ALGORITHM: str = "HS256"
    SESSION_TOKEN_EXPIRE_MINUTES: int = 60
    SESSION_TOKEN_ISSUER: str = "master-parenthood"
    SIGNING_TIMEOUT_SECONDS: float = 5.0

    # Federated identity providers
    FEDERATED_PROVIDERS: list[str] = ["vk", "yandex"]
    PROVIDER_TIMEOUT_SECONDS: float = 10.0
    VK_API_URL: str = "https://api.vk.com/method/users.get"
    VK_API_VERSION: str = "5.131"
    YANDEX_INFO_URL: str = "https://login.yandex.ru/info"
    YANDEX_AVATAR_URL: str = "https://avatars.yandex.net/get-yapic/{avatar_id}/islands-200"

    # Celery
    CELERY_BROKER_URL: str = "redis://localhost:6379/0"
    CELERY_RESULT_BACKEND: str = "redis://localhost:6379/0"

    # Pet stat decay (runs once a day in DECAY_TIMEZONE)
    DECAY_TIMEZONE: str = "Europe/Moscow"
    DECAY_HOUR: int = 0
    DECAY_MINUTE: int = 0
    DECAY_BATCH_SIZE: int = 500

    # Story retention
    STORY_RETENTION_CAP: int = 100

    # CORS
    CORS_ORIGINS: list[str] = ["http://localhost:3000", "http://localhost:5173"]

    # Monitoring
    SENTRY_DSN: Optional[str] = None
    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: str = "text"  # 'text' or 'json' (json for production)

    # Prometheus Metrics (served on a separate admin port)
    METRICS_ENABLED: bool = True
    METRICS_ADMIN_PORT: int = 9090
    METRICS_USERNAME: str = "admin"
    METRICS_PASSWORD: str = "metrics_admin"

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=True, extra="ignore")

    @field_validator("SECRET_KEY")
    @classmethod
    def validate_secret_key(cls, v: str) -> str:
        """Validate SECRET_KEY is not using insecure defaults in production."""
        insecure_defaults = [
            "dev-secret-key-change-in-production",
            "your-secret-key-here",
            "change-me",
            "secret",
        ]

        # Get ENVIRONMENT from environment variable directly (before Settings is fully initialized)
        import os

        environment = os.getenv("ENVIRONMENT", "development")

        if environment == "production" and (v in insecure_defaults or len(v) < 32):
            raise ValueError(
                "Insecure SECRET_KEY detected in production! "
                "Generate a secure key with: openssl rand -hex 32"
            )

        return v

    @field_validator("STORY_RETENTION_CAP", "DECAY_BATCH_SIZE")
    @classmethod
    def validate_positive(cls, v: int) -> int:
        """Caps and batch sizes must be positive."""
        if v < 1:
            raise ValueError("must be a positive integer")
        return v


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


settings = get_settings()
