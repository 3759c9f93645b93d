"""Backup service - runs one export cycle.

Selects the dump strategy for the configured engine, makes sure the output
directory exists, runs the export and prunes old files when the export succeeded.
"""

from pathlib import Path

import structlog

from sql_backup.config.settings import BackupConfig, DatabaseConfig, Settings
from sql_backup.models.backup import ExportResult
from sql_backup.models.errors import WriteError, describe_error
from sql_backup.resilience.retry import RetryConfig
from sql_backup.services.retention import RetentionManager, format_bytes
from sql_backup.strategies.base import DumpStrategy
from sql_backup.strategies.registry import strategy_registry


class BackupService:
    """Coordinates one export run followed by the retention pass.

    Example:
        >>> service = BackupService.from_settings(load_settings())
        >>> result = await service.execute()
        >>> if result.success:
        ...     print(result.file_path)
    """

    def __init__(
        self,
        database: DatabaseConfig,
        backup: BackupConfig,
        strategy: DumpStrategy | None = None,
        retention: RetentionManager | None = None,
        logger: structlog.stdlib.BoundLogger | None = None,
    ) -> None:
        """Initialize the service.

        Args:
            database: Source database settings.
            backup: Output directory and retention settings.
            strategy: Dump strategy; built from ``database.type`` if None.
            retention: Retention manager; a default one is created if None.
            logger: Logger handle shared with the default collaborators.

        Raises:
            ConfigurationError: If ``database.type`` is not a supported engine.
        """
        self.database = database
        self.backup = backup
        self.logger = logger or structlog.get_logger(__name__)
        self.strategy = strategy or strategy_registry.get_strategy(
            database.type,
            batch_size=backup.batch_size,
            connect_timeout=database.connect_timeout,
            retry_config=RetryConfig(
                max_attempts=database.connect_attempts,
                initial_delay=database.connect_retry_delay,
                max_delay=max(60.0, database.connect_retry_delay),
            ),
            logger=self.logger,
        )
        self.retention = retention or RetentionManager(logger=self.logger)

    @classmethod
    def from_settings(cls, settings: Settings) -> "BackupService":
        return cls(settings.database, settings.backup)

    @property
    def output_dir(self) -> Path:
        return Path(self.backup.path)

    def ensure_directory(self) -> None:
        """Create the output directory (and parents) if it is missing.

        Raises:
            WriteError: If the directory cannot be created.
        """
        if self.output_dir.is_dir():
            return
        try:
            self.output_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise WriteError(f"Cannot create backup directory {self.output_dir}: {e.strerror or e}") from e
        self.logger.info("directory_created", path=str(self.output_dir))

    async def execute(self) -> ExportResult:
        """Run one export cycle.

        A failed export is logged and returned; retention is skipped so older
        files are kept. Unexpected errors (directory creation, cleanup) are
        logged and re-raised for the caller.

        Returns:
            ExportResult: Result of the export.
        """
        self.logger.info(
            "backup_process_started",
            engine=self.strategy.engine_name,
            database=self.database.name,
        )
        try:
            self.ensure_directory()

            result = await self.strategy.backup(self.database.to_target(), self.output_dir)

            if result.success:
                self.logger.info(
                    "backup_successful",
                    file=result.file_path,
                    size=format_bytes(result.file_size_bytes or 0),
                )
                self.retention.clean(self.output_dir, self.backup.retention_days)
                self.retention.log_storage_info(self.output_dir)
            else:
                self.logger.error("backup_unsuccessful", error=result.error)

            self.logger.info("backup_process_completed", success=result.success)
            return result
        except Exception as e:
            self.logger.error(
                "backup_process_error",
                error=describe_error(e),
                error_type=type(e).__name__,
            )
            raise
