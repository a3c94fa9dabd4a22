"""Configuration using pydantic-settings."""

from pathlib import Path
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """image-provider configuration.

    Every field can be set through an ``IMAGE_PROVIDER_``-prefixed
    environment variable or a ``.env`` file.
    """

    model_config = SettingsConfigDict(
        env_prefix="IMAGE_PROVIDER_",
        env_file=".env",
        case_sensitive=True,
        extra="ignore",
    )

    # R2 Configuration
    R2_ENDPOINT_URL: str = ""
    R2_REGION: str = "auto"
    R2_ACCESS_KEY_ID: str = ""
    R2_SECRET_ACCESS_KEY: str = ""
    SIGNED_URL_EXPIRES_IN: int = 3600  # seconds

    # Downloads
    DOWNLOAD_TIMEOUT: float = 30.0  # seconds
    DOWNLOAD_WORKERS: int = 4

    # Logging
    LOG_DIR: Optional[Path] = None


def get_settings() -> Settings:
    """Load settings from the environment.

    Returns:
        Freshly loaded Settings
    """
    return Settings()
