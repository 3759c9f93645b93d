"""Data models and error types."""

from sql_backup.models.backup import (
    CleanupResult,
    ColumnDescriptor,
    ConnectionTarget,
    DatabaseType,
    ExportResult,
    RowBatch,
    TableDescriptor,
)
from sql_backup.models.errors import (
    BackupError,
    CleanupError,
    ConfigurationError,
    DatabaseConnectionError,
    ErrorCode,
    QueryError,
    WriteError,
    describe_error,
)

__all__ = [
    "CleanupResult",
    "ColumnDescriptor",
    "ConnectionTarget",
    "DatabaseType",
    "ExportResult",
    "RowBatch",
    "TableDescriptor",
    "BackupError",
    "CleanupError",
    "ConfigurationError",
    "DatabaseConnectionError",
    "ErrorCode",
    "QueryError",
    "WriteError",
    "describe_error",
]
