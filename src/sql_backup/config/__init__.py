"""Configuration management."""

from sql_backup.config.settings import (
    DEFAULT_PORTS,
    BackupConfig,
    DatabaseConfig,
    LoggingConfig,
    Settings,
    get_settings,
    load_settings,
    reset_settings,
)

__all__ = [
    "DEFAULT_PORTS",
    "BackupConfig",
    "DatabaseConfig",
    "LoggingConfig",
    "Settings",
    "get_settings",
    "load_settings",
    "reset_settings",
]
