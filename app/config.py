"""Application settings loaded from the environment."""

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Runtime configuration.

    Values come from environment variables or a local ``.env`` file.
    """

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    app_name: str = "Logistics Import"
    debug: bool = False
    log_level: str = "INFO"

    database_url: str = "sqlite:///./logistics.db"

    # Auth
    secret_key: str = "change-me-in-production"
    access_token_expire_minutes: int = 60

    # Imports
    import_session_ttl_minutes: int = 30
    max_import_file_mb: int = 10


@lru_cache
def get_settings() -> Settings:
    """Return the cached settings instance."""
    return Settings()
