"""Backup service, retention and scheduling."""

from sql_backup.services.backup_service import BackupService
from sql_backup.services.retention import RetentionManager, format_bytes
from sql_backup.services.scheduler import BackupScheduler, parse_schedule

__all__ = [
    "BackupService",
    "RetentionManager",
    "format_bytes",
    "BackupScheduler",
    "parse_schedule",
]
