"""Runtime configuration, read from the environment once at start-up."""

from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    secret_key: str = Field(min_length=1, description="Shared secret for the web login")
    base_url: str = Field(min_length=1, description="Public origin serving the stored objects")

    landingpage_title: str = "Image gateway"
    max_file_mb: int = Field(default=15, ge=1)
    allowed_hosts: str = "*"
    force_https: bool = False

    telegram_bot_token: str | None = None
    chat_id: str = Field(default="", description="Comma-separated Telegram chat ids allowed to upload")

    storage_backend: Literal["minio", "memory"] = "minio"
    minio_endpoint: str = "localhost:9000"
    minio_access_key: str = ""
    minio_secret_key: str = ""
    minio_secure: bool = True
    bucket_name: str = "images"
    metadata_bucket: str = "imagegate-meta"

    default_page_size: int = Field(default=50, ge=1)
    max_page_size: int = Field(default=500, ge=1)

    log_level: str = "INFO"
    log_format: str = "json"

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    @field_validator("base_url")
    @classmethod
    def _normalize_base_url(cls, value: str) -> str:
        value = value.strip()
        if value.startswith("http://"):
            value = "https://" + value[len("http://"):]
        elif not value.startswith("https://"):
            value = "https://" + value
        return value.rstrip("/")

    @property
    def allowed_chat_ids(self) -> set[str]:
        return {c.strip() for c in self.chat_id.split(",") if c.strip()}

    @property
    def allowed_host_list(self) -> list[str]:
        return [h.strip() for h in self.allowed_hosts.split(",") if h.strip()]

    @property
    def max_upload_bytes(self) -> int:
        return self.max_file_mb * 1024 * 1024


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
