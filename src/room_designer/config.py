"""Application configuration."""

import os

from pydantic_settings import BaseSettings, SettingsConfigDict

_ENVIRONMENT = os.getenv("ENVIRONMENT", "local")


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    api_url: str = "http://localhost:8000"
    static_files_base_url: str | None = None
    handoff_scheme: str = "http"
    handoff_host: str | None = None
    handoff_port: int = 3000
    upload_poll_interval: float = 3.0
    project_poll_interval: float = 5.0
    poll_max_consecutive_failures: int = 5
    poll_backoff_max: float = 30.0
    project_poll_max_attempts: int = 360
    http_timeout: float = 15.0
    furniture_cache_ttl_seconds: int = 300
    environment: str = _ENVIRONMENT

    model_config = SettingsConfigDict(
        env_file=(f".env.{_ENVIRONMENT}", ".env"),
        extra="ignore",
    )

    @property
    def backend_url(self) -> str:
        return normalize_base_url(self.api_url)

    @property
    def static_base_url(self) -> str:
        """Base URL that serves reconstructed model files."""
        return normalize_base_url(self.static_files_base_url or self.api_url)


def normalize_base_url(raw: str) -> str:
    """Strip whitespace and trailing slashes from a base URL."""
    return raw.strip().rstrip("/")
