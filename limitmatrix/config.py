from typing import Final

from pydantic import Field, computed_field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .constants import (
    COMBINATION_FETCH_SIZE,
    DEFAULT_POLICY_SERVICE_URL,
    DEFAULT_PORT,
    DEFAULT_UPSTREAM_TIMEOUT,
)


class Settings(BaseSettings):
    """Application settings loaded from environment variables and .env files."""

    # Server configuration
    debug: bool = Field(default=True, description="Enable debug mode")
    host: str = Field(default="0.0.0.0", description="Server host")
    port: int = Field(default=DEFAULT_PORT, ge=1, le=65535, description="Server port")

    # Database configuration (linked combinations live here)
    database_url: str = Field(
        default="sqlite:///./limitmatrix.db", description="Database connection URL"
    )

    # Application configuration
    app_name: str = Field(default="limitmatrix", description="Application name")
    version: str = Field(default="0.1.0", description="Application version")

    # Upstream policy service
    policy_service_url: str = Field(
        default=DEFAULT_POLICY_SERVICE_URL,
        description="Base URL of the policy/pricing backend",
    )
    policy_service_timeout: float = Field(
        default=DEFAULT_UPSTREAM_TIMEOUT,
        gt=0,
        description="Timeout in seconds for calls to the policy backend",
    )
    combination_fetch_size: int = Field(
        default=COMBINATION_FETCH_SIZE,
        ge=1,
        description="Page size used when loading all combinations of a contract",
    )

    # Logging configuration
    log_level: str | None = Field(
        default=None, description="Override log level (defaults from debug flag)"
    )
    log_to_file: bool = Field(
        default=False, description="Force logging to file even in debug mode"
    )

    # Telemetry
    enable_telemetry: bool = Field(
        default=False, description="Enable OpenTelemetry tracing and metrics"
    )

    # Pydantic Settings configuration
    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", case_sensitive=False, extra="ignore"
    )

    @field_validator("policy_service_url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        """Normalize the backend URL so paths can be appended safely."""
        v = v.strip()
        if not v:
            raise ValueError("Policy service URL cannot be empty")
        return v.rstrip("/")

    @computed_field  # type: ignore[prop-decorator]
    @property
    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.debug

    @computed_field  # type: ignore[prop-decorator]
    @property
    def is_production(self) -> bool:
        """Check if running in production mode."""
        return not self.debug


# Global settings instance
settings: Final = Settings()
