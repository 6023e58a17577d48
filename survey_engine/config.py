"""Application Configuration — environment-driven settings via pydantic-settings.

Invariants:
    - All secrets come from environment variables (never hardcoded in deployments)
    - get_settings() is cached (lru_cache): single instance per process
    - lifecycle_max_write_attempts >= 1 bounds the compare-and-swap retry loop

Design Decisions:
    - pydantic-settings over raw os.environ: validation, type coercion, .env support
    - Defaults provided for all non-secret settings
"""

from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False)

    # Database
    database_url: str = "postgresql+asyncpg://surveys:surveys@db:5432/surveys"

    @field_validator("database_url", mode="before")
    @classmethod
    def convert_postgres_url(cls, v: str) -> str:
        """Hosted providers hand out postgresql:// but asyncpg needs postgresql+asyncpg://."""
        if isinstance(v, str) and v.startswith("postgresql://"):
            return v.replace("postgresql://", "postgresql+asyncpg://", 1)
        return v

    database_pool_size: int = 20
    database_max_overflow: int = 10

    # Identity
    jwt_secret: str = "change-me-in-production"
    jwt_algorithm: str = "HS256"

    # Lifecycle
    lifecycle_max_write_attempts: int = Field(default=3, ge=1, le=10)

    # Listing
    default_page_size: int = 10
    max_page_size: int = 100

    # Anthropic
    anthropic_api_key: str = "sk-ant-placeholder"
    anthropic_max_retries: int = 3
    anthropic_timeout_seconds: int = 120
    anthropic_base_delay_ms: int = 1000
    anthropic_max_delay_ms: int = 30_000
    assistant_model: str = "claude-sonnet-4-5"
    assistant_max_tokens: int = 1024

    # API
    cors_origins: list[str] = ["http://localhost:3000"]

    # Observability
    log_level: str = "INFO"
    log_format: str = "json"


@lru_cache
def get_settings() -> Settings:
    return Settings()
