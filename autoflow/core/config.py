"""Application configuration (settings and environment).

Single source of truth for all configuration. Uses pydantic-settings
with .env support. Values are validated at load time.
"""

from functools import lru_cache

from pydantic import SecretStr, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment and .env."""

    # App
    app_name: str = "autoflow"
    app_version: str = "1.0.0"
    debug: bool = False

    # Database (SQLAlchemy async URL: postgresql+asyncpg://... or sqlite+aiosqlite://...)
    database_url: str = "sqlite+aiosqlite:///./autoflow.db"
    database_echo: bool = False
    # Create tables on startup (dev/test). Production sets this False and runs `alembic upgrade head`.
    database_auto_create: bool = True

    # Redis pub/sub (domain event source)
    redis_enabled: bool = False
    redis_host: str = "localhost"
    redis_port: int = 6379
    redis_db: int = 0
    redis_password: SecretStr | None = None
    event_channel: str = "domain_events"

    # Execution
    resume_poll_interval_seconds: float = 15.0
    resume_batch_size: int = 50
    # A claimed continuation whose run has not recorded a step by then is claimed again.
    resume_claim_lease_seconds: float = 900.0
    run_in_background: bool = True
    # In-flight runs get this long to finish or suspend before shutdown cancels them.
    shutdown_grace_seconds: float = 10.0
    # Manual "execute now" on an inactive workflow is allowed unless this is set.
    manual_execute_requires_active: bool = False

    # HTTP
    org_header_name: str = "X-Org-ID"
    default_page_size: int = 20
    max_page_size: int = 100

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="AUTOFLOW_",
        extra="ignore",
        case_sensitive=False,
    )

    @model_validator(mode="after")
    def validate_execution(self) -> "Settings":
        """Reject scheduler and paging values that would stall or misbehave."""
        if self.resume_poll_interval_seconds <= 0:
            raise ValueError("resume_poll_interval_seconds must be positive")
        if self.resume_batch_size <= 0:
            raise ValueError("resume_batch_size must be positive")
        if self.resume_claim_lease_seconds <= 0:
            raise ValueError("resume_claim_lease_seconds must be positive")
        if self.shutdown_grace_seconds < 0:
            raise ValueError("shutdown_grace_seconds must not be negative")
        if self.default_page_size <= 0 or self.max_page_size < self.default_page_size:
            raise ValueError(
                "default_page_size must be positive and not exceed max_page_size"
            )
        return self


@lru_cache
def get_settings() -> Settings:
    """Return cached application settings (single instance per process).

    In tests, call get_settings.cache_clear() before overriding env vars so the
    next get_settings() uses the new values.
    """
    return Settings()
