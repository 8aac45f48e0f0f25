"""
Application configuration models and helpers.

Centralizes settings management so the FastAPI app, the credential stores and
the Discord client share a consistent configuration surface.
"""

from functools import lru_cache
from pathlib import Path
from typing import Annotated, Literal, Optional

import os

from pydantic import AnyHttpUrl, Field, HttpUrl, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict


def _load_env_file(path: str = ".env") -> None:
    """Best-effort load key=value pairs from a .env file without extra deps."""
    env_path = Path(path)
    if not env_path.exists():
        return
    for raw_line in env_path.read_text().splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#"):
            continue
        key, sep, value = line.partition("=")
        if not sep:
            continue
        key = key.strip()
        if not key or key in os.environ:
            continue
        cleaned = value.strip().strip('"').strip("'")
        os.environ[key] = cleaned


_load_env_file()

_SETTINGS_CONFIG = SettingsConfigDict(populate_by_name=True, extra="ignore")


class DiscordSettings(BaseSettings):
    """Configuration required for the Discord OAuth2 and REST APIs."""

    model_config = _SETTINGS_CONFIG

    client_id: str = Field(..., validation_alias="OAUTH2_CLIENT_ID")
    client_secret: str = Field(..., validation_alias="OAUTH2_CLIENT_SECRET")
    redirect_uri: AnyHttpUrl = Field(..., validation_alias="REDIRECT_URI")
    authorize_url: str = Field(
        "https://discord.com/oauth2/authorize",
        validation_alias="OAUTH2_AUTHORIZE_URL",
    )
    token_url: str = Field(
        "https://discord.com/api/oauth2/token",
        validation_alias="OAUTH2_TOKEN_URL",
    )
    api_url: str = Field("https://discord.com/api", validation_alias="DISCORD_API_URL")
    scopes: Annotated[tuple[str, ...], NoDecode] = Field(
        ("identify", "guilds.join"),
        validation_alias="SCOPES",
    )
    guild_id: str = Field("935952657884008518", validation_alias="GUILD_ID")
    bot_token: Optional[str] = Field(
        None,
        validation_alias="DISCORD_BOT_TOKEN",
        description="Bot token used to add authenticated users to the DAO guild.",
    )
    default_role: str = Field(
        "1041894768931782686", validation_alias="DISCORD_DEFAULT_ROLE"
    )
    timeout_seconds: float = Field(10.0, validation_alias="DISCORD_TIMEOUT_SECONDS")

    @field_validator("scopes", mode="before")
    @classmethod
    def _split_scopes(
        cls, value: str | tuple[str, ...] | list[str]
    ) -> tuple[str, ...]:
        """Support providing scopes as a comma-separated string."""
        if isinstance(value, tuple):
            return value
        if isinstance(value, list):
            return tuple(value)
        return tuple(
            scope.strip() for scope in value.replace(" ", ",").split(",") if scope.strip()
        )


class AWSSettings(BaseSettings):
    """Settings for AWS services and the credential store backend."""

    model_config = _SETTINGS_CONFIG

    region_name: str = Field("us-east-1", validation_alias="AWS_REGION")
    dynamodb_table_name: str = Field("arena-auth", validation_alias="DYNAMODB_TABLE")
    credential_backend: Literal["dynamodb", "sqlite"] = Field(
        "dynamodb",
        validation_alias="CREDENTIAL_STORE_BACKEND",
        description="Where credential records live; sqlite is meant for local runs.",
    )
    credential_db_path: str = Field(
        "data/credentials.sqlite3", validation_alias="CREDENTIAL_DB_PATH"
    )
    store_timeout_seconds: float = Field(5.0, validation_alias="STORE_TIMEOUT_SECONDS")
    upload_bucket_name: str = Field("arena.dao.images", validation_alias="BUCKET_NAME")
    upload_region_name: str = Field("us-east-2", validation_alias="UPLOAD_AWS_REGION")


class SecuritySettings(BaseSettings):
    """Security-related configuration."""

    model_config = _SETTINGS_CONFIG

    encryption_key: str = Field(
        ...,
        validation_alias="ENCRYPTION_KEY",
        description=(
            "64 hex characters used as the AES-256 key, or any secret to derive one from."
        ),
    )
    session_ttl_seconds: int = Field(
        604800, validation_alias="SESSION_EXPIRATION_SECONDS", gt=0
    )
    refresh_single_flight: bool = Field(
        False,
        validation_alias="REFRESH_SINGLE_FLIGHT",
        description="Persist refreshed tokens with compare-and-swap semantics.",
    )
    cookie_secure: bool = Field(True, validation_alias="SESSION_COOKIE_SECURE")


class AppSettings(BaseSettings):
    """Root settings object for the FastAPI application."""

    model_config = SettingsConfigDict(
        populate_by_name=True,
        extra="ignore",
        env_file=".env",
        env_file_encoding="utf-8",
    )

    environment: str = Field("development", validation_alias="APP_ENV")
    log_level: str = Field("INFO", validation_alias="APP_LOG_LEVEL")
    login_complete_url: HttpUrl = Field(
        "https://arenadao.org/oauth/callback",
        validation_alias="LOGIN_COMPLETE_URL",
        description="Front-end page users land on after the OAuth callback.",
    )
    security: SecuritySettings = Field(default_factory=SecuritySettings)
    discord: DiscordSettings = Field(default_factory=DiscordSettings)
    aws: AWSSettings = Field(default_factory=AWSSettings)


@lru_cache()
def get_settings() -> AppSettings:
    """Return a cached settings object."""
    return AppSettings()  # type: ignore[call-arg]


__all__ = [
    "AppSettings",
    "AWSSettings",
    "DiscordSettings",
    "SecuritySettings",
    "get_settings",
]
