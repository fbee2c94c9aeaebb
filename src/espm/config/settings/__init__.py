"""Config settings – 12-factor env-based configuration."""
from espm.config.settings.base import Settings
from espm.config.settings.factory import SettingsFactory
from espm.config.settings.loaders import EnvSettingsLoader, SettingsLoader
from espm.config.settings.stores import DatabaseSettings, RedisSettings

__all__ = [
    "DatabaseSettings",
    "EnvSettingsLoader",
    "RedisSettings",
    "Settings",
    "SettingsFactory",
    "SettingsLoader",
]
