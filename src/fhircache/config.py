"""
Configuration management using pydantic-settings.

Loads configuration from environment variables and .env files.
Validates required fields and provides typed access to settings.
"""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    Required:
        FHIR_API_HOST: Base URL of the remote FHIR API (http or https)

    Optional:
        FHIR_API_PATH: Extra path prefix appended to the host
        FHIR_API_TIMEOUT_SECONDS: HTTP timeout for remote reads
        CACHE_NAMESPACE: Leading segment of every cache key
        CACHE_DIR: Directory for the persistent document store
        LOG_LEVEL: Logging level
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    FHIR_API_HOST: str = Field(
        ...,
        description="Base URL of the remote FHIR API, e.g. https://host:444/FHIRService",
    )
    FHIR_API_PATH: str = Field(
        default="", description="Path prefix appended to FHIR_API_HOST"
    )
    FHIR_API_TIMEOUT_SECONDS: float = Field(
        default=30.0, gt=0.0, description="Timeout for remote FHIR reads"
    )

    CACHE_NAMESPACE: str = Field(
        default="Fhir", min_length=1, description="Leading segment of cache keys"
    )
    CACHE_DIR: Path = Field(default=Path(".cache"), description="Cache directory")

    LOG_LEVEL: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO", description="Logging level"
    )

    @field_validator("FHIR_API_HOST")
    @classmethod
    def validate_host_scheme(cls, v: str) -> str:
        """Validate that FHIR_API_HOST is an http(s) URL."""
        v = v.strip()
        if not v.startswith(("http://", "https://")):
            raise ValueError("FHIR_API_HOST must start with http:// or https://")
        return v.rstrip("/")

    @property
    def api_host(self) -> str:
        """Get API host (lowercase alias)."""
        return self.FHIR_API_HOST

    @property
    def api_path(self) -> str:
        """Get API path prefix (lowercase alias)."""
        return self.FHIR_API_PATH

    @property
    def cache_namespace(self) -> str:
        """Get cache namespace (lowercase alias)."""
        return self.CACHE_NAMESPACE

    def ensure_directories(self) -> None:
        """Create the cache directory if it doesn't exist."""
        self.CACHE_DIR.mkdir(parents=True, exist_ok=True)

    def redacted_display(self) -> dict[str, str | float | None]:
        """Return settings for display.

        Credentials embedded in the host URL (user:password@) are redacted.
        """
        host = self.FHIR_API_HOST
        scheme, sep, rest = host.partition("://")
        if "@" in rest:
            rest = "***@" + rest.split("@", 1)[1]
            host = f"{scheme}{sep}{rest}"

        return {
            "FHIR_API_HOST": host,
            "FHIR_API_PATH": self.FHIR_API_PATH or None,
            "FHIR_API_TIMEOUT_SECONDS": self.FHIR_API_TIMEOUT_SECONDS,
            "CACHE_NAMESPACE": self.CACHE_NAMESPACE,
            "CACHE_DIR": str(self.CACHE_DIR),
            "LOG_LEVEL": self.LOG_LEVEL,
        }


@lru_cache
def get_settings() -> Settings:
    """Get cached settings singleton.

    Returns:
        Settings instance loaded from environment.

    Raises:
        ValidationError: If required settings are missing or invalid.
    """
    return Settings()


def clear_settings_cache() -> None:
    """Clear the settings cache (useful for testing)."""
    get_settings.cache_clear()
