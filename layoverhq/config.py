from __future__ import annotations

from functools import lru_cache
from typing import Optional

from dotenv import load_dotenv
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

load_dotenv()


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(populate_by_name=True, extra="ignore")

    api_url: str = Field(
        "https://api.layoverhq.com/api/v1", alias="LAYOVERHQ_API_URL"
    )
    api_token: str = Field("", alias="LAYOVERHQ_API_TOKEN")
    booking_url: Optional[str] = Field(None, alias="LAYOVERHQ_BOOKING_URL")
    http_timeout: float = Field(15.0, alias="LAYOVERHQ_HTTP_TIMEOUT")
    preview_size: int = Field(10, alias="LAYOVERHQ_PREVIEW_SIZE")
    reference_prefix: str = Field("LHQ", alias="LAYOVERHQ_REFERENCE_PREFIX")
    reference_dir: Optional[str] = Field(None, alias="LAYOVERHQ_REFERENCE_DIR")
    log_level: str = Field("INFO", alias="LAYOVERHQ_LOG_LEVEL")
    log_file: Optional[str] = Field(None, alias="LAYOVERHQ_LOG_FILE")

    @field_validator("http_timeout")
    @classmethod
    def _timeout_positive(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("LAYOVERHQ_HTTP_TIMEOUT must be greater than 0")
        return v

    @field_validator("preview_size")
    @classmethod
    def _preview_positive(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("LAYOVERHQ_PREVIEW_SIZE must be greater than 0")
        return v

    @field_validator("reference_prefix")
    @classmethod
    def _prefix_non_empty(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError(
                "LAYOVERHQ_REFERENCE_PREFIX must be a non-empty string"
            )
        return v.strip().upper()

    @field_validator("log_level")
    @classmethod
    def _upper_level(cls, v: str) -> str:
        return v.strip().upper() or "INFO"

    @property
    def booking_base_url(self) -> str:
        return (self.booking_url or self.api_url).rstrip("/")


@lru_cache()
def get_settings() -> Settings:
    """Return application settings loaded from the environment."""
    return Settings()  # type: ignore[call-arg]


__all__ = ["Settings", "get_settings"]
