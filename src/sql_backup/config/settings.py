"""Application settings loaded from environment variables.

Variables:
    DB_HOST, DB_PORT, DB_NAME, DB_USERNAME, DB_PASSWORD, DB_TYPE,
    DB_CONNECT_TIMEOUT, DB_CONNECT_ATTEMPTS, DB_CONNECT_RETRY_DELAY
    BACKUP_PATH, BACKUP_SCHEDULE, RETENTION_DAYS, BACKUP_BATCH_SIZE
    LOG_LEVEL, LOG_FILE

An optional ``.env`` file in the working directory is read as well.
"""

import logging
from typing import Any

from apscheduler.triggers.cron import CronTrigger
from pydantic import AliasChoices, BaseModel, Field, ValidationError, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from sql_backup.models.backup import ConnectionTarget, DatabaseType
from sql_backup.models.errors import ConfigurationError

DEFAULT_PORTS: dict[DatabaseType, int] = {
    DatabaseType.MYSQL: 3306,
    DatabaseType.POSTGRESQL: 5432,
    DatabaseType.SQLSERVER: 1433,
}


class DatabaseConfig(BaseSettings):
    """Source database connection settings."""

    model_config = SettingsConfigDict(
        env_prefix="DB_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    host: str = "localhost"
    port: int | None = Field(default=None, gt=0, lt=65536)
    name: str = ""
    username: str = ""
    password: str = Field(default="", repr=False)
    type: DatabaseType = DatabaseType.MYSQL

    connect_timeout: float = Field(default=30.0, gt=0)
    connect_attempts: int = Field(default=1, ge=1)
    connect_retry_delay: float = Field(default=2.0, ge=0)

    @field_validator("type", mode="before")
    @classmethod
    def normalize_type(cls, value: Any) -> Any:
        if isinstance(value, str):
            return value.strip().lower()
        return value

    @model_validator(mode="after")
    def check_required(self) -> "DatabaseConfig":
        if not self.name:
            raise ValueError("DB_NAME is required")
        if not self.username:
            raise ValueError("DB_USERNAME is required")
        return self

    @property
    def resolved_port(self) -> int:
        """Configured port, or the engine's default port."""
        return self.port if self.port is not None else DEFAULT_PORTS[self.type]

    def to_target(self) -> ConnectionTarget:
        """Build the immutable connection target for one export run."""
        return ConnectionTarget(
            host=self.host,
            port=self.resolved_port,
            database=self.name,
            username=self.username,
            password=self.password,
        )


class BackupConfig(BaseSettings):
    """Export destination, schedule and retention settings."""

    model_config = SettingsConfigDict(
        env_prefix="BACKUP_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    path: str = "./backups"
    schedule: str = "0 2 * * *"
    retention_days: int = Field(
        default=7,
        ge=0,
        validation_alias=AliasChoices("RETENTION_DAYS", "BACKUP_RETENTION_DAYS", "retention_days"),
    )
    batch_size: int = Field(default=100, ge=1)

    @field_validator("schedule")
    @classmethod
    def validate_schedule(cls, value: str) -> str:
        value = value.strip()
        try:
            CronTrigger.from_crontab(value)
        except ValueError as e:
            raise ValueError(f"Invalid cron expression '{value}': {e}") from e
        return value


class LoggingConfig(BaseSettings):
    """Log sink settings."""

    model_config = SettingsConfigDict(
        env_prefix="LOG_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    level: str = "INFO"
    file: str = "./logs/backup.log"

    @field_validator("level")
    @classmethod
    def validate_level(cls, value: str) -> str:
        level = value.strip().upper()
        if level not in logging.getLevelNamesMapping():
            raise ValueError(f"Unknown log level: {value}")
        return level


class Settings(BaseModel):
    """Complete application settings."""

    database: DatabaseConfig
    backup: BackupConfig = Field(default_factory=BackupConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)


def _format_validation_error(error: ValidationError) -> str:
    parts = []
    for item in error.errors():
        message = item["msg"].removeprefix("Value error, ")
        location = ".".join(str(part) for part in item["loc"])
        parts.append(f"{location}: {message}" if location else message)
    return "; ".join(parts)


def load_settings() -> Settings:
    """Load and validate settings from the environment.

    Returns:
        Settings: Validated settings.

    Raises:
        ConfigurationError: If any setting is missing or invalid.
    """
    try:
        return Settings(
            database=DatabaseConfig(),
            backup=BackupConfig(),
            logging=LoggingConfig(),
        )
    except ValidationError as e:
        raise ConfigurationError(f"Invalid configuration: {_format_validation_error(e)}") from e


_settings: Settings | None = None


def get_settings() -> Settings:
    """Return the process-wide settings, loading them on first use."""
    global _settings
    if _settings is None:
        _settings = load_settings()
    return _settings


def reset_settings() -> None:
    """Drop the cached settings (used by tests)."""
    global _settings
    _settings = None
