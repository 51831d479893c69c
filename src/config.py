"""Application configuration using Pydantic Settings."""

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Google Cloud / Firestore
    google_cloud_project: str = ""

    # Application
    app_env: str = "development"
    app_debug: bool = True
    app_host: str = "0.0.0.0"
    app_port: int = 8080
    log_level: str = "INFO"

    # CORS
    cors_origins: str = "http://localhost:3000,http://localhost:8080"

    # Rate limiting
    rate_limit_per_minute: int = 60

    # Used when a clinic has not configured its own business hours
    default_weekday_start: str = "08:00"
    default_weekday_end: str = "18:00"
    # IANA zone of clinics that do not store their own
    default_timezone: str = "UTC"

    # Longest start/end window accepted by the clinic endpoints
    max_window_days: int = 366

    @property
    def cors_origins_list(self) -> list[str]:
        return [origin.strip() for origin in self.cors_origins.split(",")]


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
