"""Configuration management for the quota monitor.

This module handles all configuration loading and validation using Pydantic BaseSettings.
Configuration is loaded from environment variables and .env files.
"""

from .config import (
    MonitorConfig,
    DiscoveryConfig,
    ProbeConfig,
    SchedulerConfig,
    MonitoringConfig,
    str_to_bool,
)


def load_config(**overrides) -> MonitorConfig:
    """Load and validate monitor configuration."""
    return MonitorConfig(**overrides)


__all__ = [
    "MonitorConfig",
    "DiscoveryConfig",
    "ProbeConfig",
    "SchedulerConfig",
    "MonitoringConfig",
    "load_config",
    "str_to_bool",
]
