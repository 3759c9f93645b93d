"""Scheduled logical backups of relational databases into SQL scripts."""

from sql_backup.models.backup import ConnectionTarget, DatabaseType, ExportResult
from sql_backup.services.backup_service import BackupService
from sql_backup.strategies.registry import strategy_registry

__version__ = "0.1.0"

__all__ = [
    "ConnectionTarget",
    "DatabaseType",
    "ExportResult",
    "BackupService",
    "strategy_registry",
    "__version__",
]
