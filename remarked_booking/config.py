"""Configuration handling for the booking service."""

from functools import lru_cache
from pydantic_settings import BaseSettings, SettingsConfigDict

from .remarked_types import ReserveSource


class Settings(BaseSettings):
    """Application configuration loaded from environment variables."""

    remarked_base_url: str = "https://app.remarked.ru/api/v1"
    remarked_timeout_seconds: float = 30
    # Provider token validity is undocumented; assumed to be one hour.
    remarked_token_ttl_seconds: int = 55 * 60
    remarked_reserve_source: ReserveSource = "site"
    redis_url: str | None = None
    restaurant_cache_ttl_seconds: int = 3600
    database_url: str = "sqlite:///./app.db"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )


@lru_cache
def get_settings() -> Settings:
    """Return cached Settings instance."""
    return Settings()
