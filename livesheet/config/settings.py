"""Application settings using Pydantic Settings for environment-based configuration."""

from functools import lru_cache
from typing import Literal

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Central configuration for the livesheet updater.

    All settings can be overridden via environment variables.
    Prefix is not used so the deployed env names (e.g., STREAMSOURCE_EMAIL,
    KNOWN_STREAMERS_ONLY) keep working unchanged.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Environment
    environment: Literal["development", "staging", "production"] = "development"
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    debug: bool = False

    # Modes
    known_streamers_only: bool = False

    # StreamSource API
    streamsource_api_url: str = "https://api.streamsource.com"
    streamsource_email: str | None = None
    streamsource_password: SecretStr | None = None
    streamsource_timeout_seconds: float = Field(default=30.0, gt=0.0)

    # Known streamers watch list (JSON file)
    watch_list_path: str | None = None

    # Status detection
    detector_timeout_seconds: float = Field(default=15.0, gt=0.0)

    # Observability
    metrics_port: int = 8000

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.environment == "production"

    @property
    def streamsource_configured(self) -> bool:
        """Check if StreamSource credentials are configured."""
        return (
            self.streamsource_email is not None
            and self.streamsource_password is not None
        )


@lru_cache
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Uses lru_cache to ensure settings are loaded only once.
    Clear cache with get_settings.cache_clear() if needed.
    """
    return Settings()
