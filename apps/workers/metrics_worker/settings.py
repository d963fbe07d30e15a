# apps/workers/metrics_worker/settings.py
import os
from pathlib import Path
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource, SettingsConfigDict

BASE_DIR = Path(__file__).resolve().parent


class Settings(BaseSettings):
    RO_DATABASE_URL: str = Field(..., description="read-only replica DSN is required")
    RW_DATABASE_URL: str = Field(..., description="read-write primary DSN is required")

    LOG_LEVEL: str = "INFO"
    NOISY_LEVEL: str = "WARNING"

    APP_NAME: Optional[str] = "MetricsWorker"

    MAX_CONCURRENT_QUERIES: int = 10
    UPLOAD_TYPES: list[str] = ["Car", "Blob", "Multipart", "Remote", "Nft"]
    PIN_STATUSES: list[str] = ["PinQueued", "Pinning", "Pinned", "PinError"]

    PG_POOL_MIN_SIZE: int = 1
    PG_POOL_MAX_SIZE: Optional[int] = None  # None → MAX_CONCURRENT_QUERIES
    PG_COMMAND_TIMEOUT_S: Optional[float] = None

    @field_validator("MAX_CONCURRENT_QUERIES")
    @classmethod
    def _positive_concurrency(cls, v: int) -> int:
        if v < 1:
            raise ValueError("MAX_CONCURRENT_QUERIES must be >= 1")
        return v

    @property
    def pool_max_size(self) -> int:
        return self.PG_POOL_MAX_SIZE or self.MAX_CONCURRENT_QUERIES

    @classmethod
    def settings_customise_sources(
            cls,
            settings_cls,
            init_settings,
            env_settings,
            dotenv_settings,
            file_secret_settings,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        if os.getenv("APP_ENV") == "production":
            return env_settings, init_settings, file_secret_settings

        return env_settings, init_settings, file_secret_settings, dotenv_settings

    # ── pydantic v2
    model_config = SettingsConfigDict(
        env_file=(BASE_DIR / ".env", BASE_DIR / ".env.local"),
        env_file_encoding="utf-8",
        extra="ignore",
    )
