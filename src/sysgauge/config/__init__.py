"""Settings models and YAML loading."""

from .loader import ConfigError, load_settings, load_yaml
from .models import (
    CommandSettings,
    DriveSettings,
    LoggingSettings,
    SamplingSettings,
    Settings,
)

__all__ = [
    "CommandSettings",
    "ConfigError",
    "DriveSettings",
    "LoggingSettings",
    "SamplingSettings",
    "Settings",
    "load_settings",
    "load_yaml",
]
