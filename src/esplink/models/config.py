from __future__ import annotations

from pydantic_settings import BaseSettings, SettingsConfigDict


class AppSettings(BaseSettings):
    """Application-wide settings populated from environment variables and .env file."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="ESPLINK_",
        extra="ignore",
    )

    address: str | None = None
    output_format: str | None = None
    config_file: str | None = None
    http_timeout: float = 5.0
