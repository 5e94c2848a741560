"""Configuration classes for the quota monitor.

This module contains all configuration classes organized by domain.
Configuration is loaded from environment variables and .env files; every
field has a default so the monitor runs without any configuration at all.
"""

from typing import Any
from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


def str_to_bool(value: Any) -> bool:
    """Convert various string representations to boolean values.

    Args:
        value: The value to convert. Can be bool, str, int, or any other type.

    Returns:
        bool: The converted boolean value.

    Examples:
        >>> str_to_bool("true")
        True
        >>> str_to_bool("0")
        False
        >>> str_to_bool("yes")
        True
    """
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        return value.lower() in ("true", "1", "yes", "on", "enabled")
    if isinstance(value, int):
        return bool(value)
    return bool(value)


class DiscoveryConfig(BaseSettings):
    """Language server process discovery settings."""

    process_signature: str = Field(default="language_server", alias="QUOTA_PROCESS_SIGNATURE")
    auth_token_flag: str = Field(default="--csrf_token", alias="QUOTA_AUTH_TOKEN_FLAG")

    @field_validator("process_signature", "auth_token_flag")
    @classmethod
    def validate_not_blank(cls, v: str) -> str:
        """Reject empty signatures, they would match every process."""
        if not v.strip():
            raise ValueError("value must not be blank")
        return v.strip()


class ProbeConfig(BaseSettings):
    """Quota endpoint probe settings."""

    probe_host: str = "127.0.0.1"
    service_path: str = Field(
        default="exa.language_server_pb.LanguageServerService/GetUserStatus",
        alias="QUOTA_SERVICE_PATH",
    )
    auth_header: str = "X-Codeium-Csrf-Token"
    protocol_version_header: str = "Connect-Protocol-Version"
    protocol_version: str = "1"
    probe_timeout: float = Field(default=5.0, alias="QUOTA_PROBE_TIMEOUT")

    # Client metadata, only used for server-side attribution
    ide_name: str = "antigravity"
    extension_name: str = "antigravity"
    locale: str = "en"

    @field_validator("service_path")
    @classmethod
    def validate_service_path(cls, v: str) -> str:
        """Store the path without a leading slash."""
        return v.lstrip("/")


class SchedulerConfig(BaseSettings):
    """Refresh scheduling settings."""

    refresh_interval: float = Field(default=300.0, alias="QUOTA_REFRESH_INTERVAL")
    display_tick_interval: float = Field(default=1.0, alias="QUOTA_DISPLAY_TICK_INTERVAL")
    refresh_on_start: bool = Field(default=True, alias="QUOTA_REFRESH_ON_START")

    @field_validator("refresh_on_start", mode="before")
    @classmethod
    def validate_refresh_on_start(cls, v) -> bool:
        """Convert string boolean values to actual boolean."""
        return str_to_bool(v)


class MonitoringConfig(BaseSettings):
    """Logging configuration settings."""

    app_version: str = "1.0.0"
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    log_json: bool = Field(default=False, alias="LOG_JSON")

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v.upper() not in valid_levels:
            raise ValueError(f"log_level must be one of: {valid_levels}")
        return v.upper()

    @field_validator("log_json", mode="before")
    @classmethod
    def validate_log_json(cls, v) -> bool:
        """Convert string boolean values to actual boolean."""
        return str_to_bool(v)


class MonitorConfig(
    DiscoveryConfig,
    ProbeConfig,
    SchedulerConfig,
    MonitoringConfig,
    BaseSettings
):
    """Main monitor configuration that combines all configuration domains."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    @model_validator(mode="after")
    def validate_intervals(self) -> "MonitorConfig":
        """The display tick must be finer grained than the network refresh."""
        for name in ("refresh_interval", "display_tick_interval", "probe_timeout"):
            if getattr(self, name) <= 0:
                raise ValueError(f"{name} must be positive")
        if self.display_tick_interval >= self.refresh_interval:
            raise ValueError("display_tick_interval must be shorter than refresh_interval")
        return self
