"""Config – 12-factor settings and validation errors."""

from espm.config.settings import (
    DatabaseSettings,
    EnvSettingsLoader,
    RedisSettings,
    Settings,
    SettingsFactory,
    SettingsLoader,
)
from espm.config.validation import (
    ConfigError,
    InvalidSettingValueError,
    MissingRequiredSettingError,
)

__all__ = [
    "ConfigError",
    "DatabaseSettings",
    "EnvSettingsLoader",
    "InvalidSettingValueError",
    "MissingRequiredSettingError",
    "RedisSettings",
    "Settings",
    "SettingsFactory",
    "SettingsLoader",
]
