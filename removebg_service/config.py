"""
Configuration loader for the remove.bg workflow service.

Environment variables are centralized here so the API key and storage
credentials are injected at startup and never baked into the code.
"""

from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .errors import ConfigError

FIVE_MIB = 5 * 1024 * 1024


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False)

    # remove.bg
    removebg_api_key: str = Field(...)
    removebg_endpoint: str = Field("https://api.remove.bg/v1.0/removebg")
    max_upload_bytes: int = Field(FIVE_MIB)

    # Output
    download_dir: Path = Field(Path("."))
    output_filename: str = Field("background-removed.png")
    share_title: str = Field("Background Removed Image")

    # Cloudflare R2 / S3-compatible storage used for sharing
    r2_endpoint: Optional[str] = Field(None)
    r2_access_key_id: Optional[str] = Field(None)
    r2_secret_access_key: Optional[str] = Field(None)
    r2_bucket_name: Optional[str] = Field(None)
    r2_public_base_url: Optional[str] = Field(None)

    # API
    request_timeout_seconds: int = Field(30)
    log_level: str = Field("INFO")

    @field_validator("max_upload_bytes")
    @classmethod
    def validate_max_upload(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("MAX_UPLOAD_BYTES must be positive")
        return v

    @property
    def share_storage_configured(self) -> bool:
        required = [
            self.r2_endpoint,
            self.r2_access_key_id,
            self.r2_secret_access_key,
            self.r2_bucket_name,
        ]
        return all(v for v in required)


@lru_cache()
def get_settings() -> Settings:
    """Return cached settings to avoid reparsing env on every call."""
    try:
        settings = Settings()
    except ValueError as exc:
        raise ConfigError(f"Invalid configuration: {exc}") from exc
    if not settings.removebg_api_key.strip():
        raise ConfigError("REMOVEBG_API_KEY is required")
    return settings
