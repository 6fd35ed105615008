"""Rebuild settings with pydantic-settings.

Every workflow parameter is fixed per run: the orchestrator receives a
Settings instance and never reads the environment itself.

Required fields are declared optional so that a partially configured
environment still loads; `Settings.missing_fields()` lists every gap at once
and the orchestrator turns that list into a ConfigurationError.

Usage:
    from render_rebuild.config import get_settings

    settings = get_settings()
    missing = settings.missing_fields()
"""

from functools import lru_cache
from typing import Literal

from pydantic import Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .polling import PollPolicy

REQUIRED_FIELDS = (
    "database_name",
    "database_env_key",
    "region",
    "render_api_key",
    "render_api_url",
)


class Settings(BaseSettings):
    """Render rebuild settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # === Required for a rebuild ===

    database_name: str | None = Field(
        default=None,
        description="Display name of the database to create",
    )
    database_env_key: str | None = Field(
        default=None,
        description="Env var that receives the internal connection string",
        examples=["DATABASE_URL"],
    )
    region: str | None = Field(
        default=None,
        description="Render region for the new database",
        examples=["oregon", "frankfurt"],
    )
    render_api_key: SecretStr | None = Field(
        default=None,
        description="Render API key",
    )
    render_api_url: str | None = Field(
        default="https://api.render.com/v1",
        description="Render REST API base URL",
    )

    # === Database shape ===

    database_plan: str = Field(default="free", description="Plan tier for the new database")
    database_version: str = Field(default="16", description="PostgreSQL major version")
    service_type: str = Field(
        default="web_service",
        description="Service type redeployed after a rebuild",
    )

    # === Polling ===

    database_poll_interval: float = Field(default=10.0, ge=0)
    database_poll_max_attempts: int | None = Field(default=180, ge=1)
    deploy_poll_interval: float = Field(default=10.0, ge=0)
    deploy_poll_max_attempts: int | None = Field(default=180, ge=1)
    poll_backoff: float = Field(default=1.0, ge=1.0, description="Delay multiplier per attempt")
    poll_max_interval: float = Field(default=60.0, ge=0)
    poll_jitter: float = Field(default=0.0, ge=0, le=1.0, description="Fraction of delay")

    # === Logging ===

    service_name: str = Field(default="render-rebuild")
    log_format: Literal["json", "console"] = Field(default="console")
    log_level: str = Field(default="INFO")

    @field_validator("region")
    @classmethod
    def lowercase_region(cls, v: str | None) -> str | None:
        """Render region slugs are lower-case."""
        return v.strip().lower() if v else v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Ensure log level is valid."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        upper_v = v.upper()
        if upper_v not in valid_levels:
            raise ValueError(f"Invalid log level: {v}. Must be one of {valid_levels}")
        return upper_v

    def missing_fields(self) -> list[str]:
        """Return every required field that has no usable value."""
        missing = []
        for name in REQUIRED_FIELDS:
            value = getattr(self, name)
            if isinstance(value, SecretStr):
                value = value.get_secret_value()
            if not value or not str(value).strip():
                missing.append(name)
        return missing

    def api_key(self) -> str:
        return self.render_api_key.get_secret_value() if self.render_api_key else ""

    def database_poll_policy(self) -> PollPolicy:
        return PollPolicy(
            interval=self.database_poll_interval,
            max_attempts=self.database_poll_max_attempts,
            backoff=self.poll_backoff,
            max_interval=self.poll_max_interval,
            jitter=self.poll_jitter,
        )

    def deploy_poll_policy(self) -> PollPolicy:
        return PollPolicy(
            interval=self.deploy_poll_interval,
            max_attempts=self.deploy_poll_max_attempts,
            backoff=self.poll_backoff,
            max_interval=self.poll_max_interval,
            jitter=self.poll_jitter,
        )


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance.

    Never raises for missing rebuild fields; see Settings.missing_fields().
    """
    return Settings()
