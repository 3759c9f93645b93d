"""Error taxonomy for the backup service.

Every failure that can happen during an export run is mapped onto one of the
classes below. Driver and filesystem exceptions are wrapped at the boundary where
they occur so that nothing engine-specific escapes a dump strategy.
"""

from enum import Enum


class ErrorCode(str, Enum):
    """Machine-readable error codes."""

    CONFIGURATION_ERROR = "configuration_error"
    CONNECTION_ERROR = "connection_error"
    QUERY_ERROR = "query_error"
    WRITE_ERROR = "write_error"
    CLEANUP_ERROR = "cleanup_error"
    INTERNAL_ERROR = "internal_error"


class BackupError(Exception):
    """Base class for all backup service errors.

    Attributes:
        message: Human-readable description.
        code: Error code classifying the failure.
    """

    code: ErrorCode = ErrorCode.INTERNAL_ERROR

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class ConfigurationError(BackupError):
    """Missing or invalid settings, or an unsupported database engine."""

    code = ErrorCode.CONFIGURATION_ERROR


class DatabaseConnectionError(BackupError):
    """The database could not be reached or rejected the credentials."""

    code = ErrorCode.CONNECTION_ERROR


class QueryError(BackupError):
    """A catalog or data query failed while the export was running.

    Attributes:
        sql: The statement that failed (trimmed for logging).
    """

    code = ErrorCode.QUERY_ERROR

    def __init__(self, message: str, sql: str | None = None) -> None:
        super().__init__(message)
        self.sql = " ".join(sql.split())[:200] if sql else None


class WriteError(BackupError):
    """The export file could not be created or written."""

    code = ErrorCode.WRITE_ERROR


class CleanupError(BackupError):
    """A filesystem error occurred while pruning old export files."""

    code = ErrorCode.CLEANUP_ERROR


def describe_error(error: BaseException) -> str:
    """Return the message recorded on a failed export.

    Args:
        error: Exception raised during the export.

    Returns:
        The error message, or the exception type name when it carries no text.
    """
    if isinstance(error, BackupError):
        return error.message
    message = str(error)
    return message if message else type(error).__name__
