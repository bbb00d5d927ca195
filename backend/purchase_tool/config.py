"""Application Configuration — environment-driven settings via pydantic-settings.

Invariants:
    - All secrets come from environment variables (never hardcoded)
    - get_settings() is cached (lru_cache) — single instance per process

Design Decisions:
    - pydantic-settings over raw os.environ: validation, type coercion, .env file support (ADR: developer UX)
    - Defaults provided for all non-secret settings: works out-of-the-box with docker-compose
"""

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from functools import lru_cache


class Settings(BaseSettings):
    """Application settings from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False)

    # Database
    database_url: str = (
        "postgresql+asyncpg://shop:shop@db:5432/shop"
    )

    @field_validator("database_url", mode="before")
    @classmethod
    def convert_postgres_url(cls, v: str) -> str:
        """Hosted Postgres hands out postgresql:// but asyncpg needs postgresql+asyncpg://."""
        if isinstance(v, str) and v.startswith("postgresql://"):
            return v.replace("postgresql://", "postgresql+asyncpg://", 1)
        return v

    database_pool_size: int = 20
    database_max_overflow: int = 10

    # Image lookup (Unsplash-compatible search API)
    image_lookup_base_url: str = "https://api.unsplash.com"
    image_lookup_access_key: str = "unsplash-placeholder"
    image_lookup_timeout_seconds: float = 10.0
    image_lookup_max_retries: int = 2
    image_lookup_base_delay_ms: int = 500
    image_lookup_max_delay_ms: int = 8_000

    # Workflows
    # ADR: every collaborator await is bounded so a hung call can't leave
    # the submitting flag set forever.
    collaborator_timeout_seconds: float = 30.0
    purchase_record_path_template: str = "/lightning/r/Purchase__c/{purchase_id}/view"

    # API
    cors_origins: list[str] = ["http://localhost:5173"]

    # Observability
    log_level: str = "INFO"
    log_format: str = "json"


@lru_cache
def get_settings() -> Settings:
    return Settings()
