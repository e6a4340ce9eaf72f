"""Application configuration for the session broker."""
from __future__ import annotations

from functools import lru_cache
from typing import Annotated

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict


class Settings(BaseSettings):
    """Runtime configuration."""

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False, extra="ignore")

    app_env: str = Field(default="development")
    log_level: str = Field(default="INFO")
    cors_allow_origins: Annotated[list[str], NoDecode] = Field(default_factory=lambda: ["*"])

    redis_host: str = Field(default="localhost")
    redis_port: int = Field(default=6379)
    redis_password: str | None = Field(default=None)
    redis_db: int = Field(default=0)
    redis_ssl: bool = Field(default=False)

    agora_app_id: str = Field(default="")
    agora_app_certificate: str = Field(default="")

    netless_app_identifier: str = Field(default="")
    netless_sdk_token: str = Field(default="")
    netless_api_base: str = Field(default="https://shunt-api.netless.link")

    we_chat_app_id: str = Field(default="")
    we_chat_app_secret: str = Field(default="")
    we_chat_api_base: str = Field(default="https://api.weixin.qq.com")

    session_eta_seconds: int = Field(default=60 * 60, ge=1)
    session_key_retention_seconds: int = Field(default=24 * 60 * 60, ge=0)
    session_expiry_enforced: bool = Field(default=True)

    http_timeout_seconds: float = Field(default=10.0, gt=0)

    @field_validator("cors_allow_origins", mode="before")
    @classmethod
    def _split_origins(cls, value: object) -> object:
        """Allow comma-separated env values for CORS origins."""

        if isinstance(value, str):
            return [item.strip() for item in value.split(",") if item.strip()]
        return value


@lru_cache
def get_settings() -> Settings:
    """Return cached settings instance."""

    return Settings()


settings = get_settings()
