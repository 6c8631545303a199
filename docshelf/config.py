from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

_BASE_DIR = Path(__file__).resolve().parent.parent
_ROOT_ENV = _BASE_DIR / ".env"

DEFAULT_MAX_UPLOAD_BYTES = 10 * 1024 * 1024


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=str(_ROOT_ENV),
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    environment: str = Field(default="development", alias="APP_ENV")
    host: str = Field(default="0.0.0.0", alias="HOST")
    port: int = Field(default=4000, alias="PORT", ge=1, le=65535)
    max_upload_bytes: int = Field(default=DEFAULT_MAX_UPLOAD_BYTES, alias="MAX_UPLOAD_BYTES", ge=0)
    storage_dir: Path = Field(default=_BASE_DIR / "uploads", alias="STORAGE_DIR")
    metadata_path: Path = Field(default=_BASE_DIR / "database.sqlite", alias="METADATA_PATH")
    database_url: Optional[str] = Field(default=None, alias="DATABASE_URL")
    allow_origins: list[str] | str = Field(default_factory=lambda: ["*"], alias="CORS_ALLOW_ORIGINS")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    metrics_enabled: bool = Field(default=True, alias="METRICS_ENABLED")
    sentry_dsn: Optional[str] = Field(default=None, alias="SENTRY_DSN")
    sentry_traces_sample_rate: float = Field(default=0.0, alias="SENTRY_TRACES_SAMPLE_RATE")
    sentry_profiles_sample_rate: float = Field(default=0.0, alias="SENTRY_PROFILES_SAMPLE_RATE")

    @model_validator(mode="after")
    def normalize(self) -> "Settings":
        """Derive the database URL and split comma-separated origins."""
        if not self.database_url:
            self.database_url = f"sqlite:///{self.metadata_path}"

        if isinstance(self.allow_origins, str):
            self.allow_origins = [origin.strip() for origin in self.allow_origins.split(",") if origin.strip()]

        self.log_level = self.log_level.upper()
        return self


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()  # type: ignore[call-arg]
