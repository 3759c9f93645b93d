"""Retention policy for export files."""

import os
import time
from collections.abc import Callable
from pathlib import Path

import structlog

from sql_backup.models.backup import CleanupResult
from sql_backup.models.errors import CleanupError

SECONDS_PER_DAY = 24 * 60 * 60
_SIZE_UNITS = ["Bytes", "KB", "MB", "GB", "TB"]


def format_bytes(size: int) -> str:
    """Human-readable size, e.g. ``0 Bytes``, ``1.5 KB``, ``11.77 MB``."""
    if size <= 0:
        return "0 Bytes"
    value = float(size)
    unit = 0
    while value >= 1024 and unit < len(_SIZE_UNITS) - 1:
        value /= 1024
        unit += 1
    return f"{round(value, 2):g} {_SIZE_UNITS[unit]}"


class RetentionManager:
    """Deletes export files older than the retention window.

    Only regular files directly inside the directory are considered; deletion is
    permanent.
    """

    def __init__(
        self,
        logger: structlog.stdlib.BoundLogger | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        """Initialize the manager.

        Args:
            logger: Logger handle; a module logger is used if None.
            clock: Returns the current time as a POSIX timestamp.
        """
        self.logger = logger or structlog.get_logger(__name__)
        self.clock = clock

    def clean(self, directory: Path | str, retention_days: int) -> CleanupResult:
        """Delete files whose age exceeds ``retention_days``.

        A file is deleted only when it is strictly older than the window. Files
        removed by someone else during the scan are skipped.

        Args:
            directory: Export directory to scan (non-recursive).
            retention_days: Maximum age in days.

        Returns:
            CleanupResult: Number of files deleted and bytes freed.

        Raises:
            CleanupError: If the directory cannot be read or a file cannot be deleted.
        """
        result = CleanupResult()
        directory = Path(directory)
        if not directory.exists():
            return result

        now = self.clock()
        max_age = retention_days * SECONDS_PER_DAY

        try:
            with os.scandir(directory) as entries:
                for entry in entries:
                    if not entry.is_file(follow_symlinks=False):
                        continue
                    try:
                        stat = entry.stat(follow_symlinks=False)
                        if now - stat.st_mtime <= max_age:
                            continue
                        os.remove(entry.path)
                    except FileNotFoundError:
                        continue

                    result.deleted_count += 1
                    result.freed_bytes += stat.st_size
                    result.deleted_files.append(entry.name)
                    self.logger.info(
                        "old_backup_deleted",
                        file=entry.name,
                        size=format_bytes(stat.st_size),
                    )
        except OSError as e:
            raise CleanupError(f"Cleanup of {directory} failed: {e.strerror or e}") from e

        if result.deleted_count > 0:
            self.logger.info(
                "cleanup_completed",
                deleted=result.deleted_count,
                freed=format_bytes(result.freed_bytes),
            )
        return result

    def storage_summary(self, directory: Path | str) -> tuple[int, int]:
        """Return ``(file_count, total_bytes)`` for the files in a directory."""
        directory = Path(directory)
        if not directory.exists():
            return 0, 0
        count = 0
        total = 0
        for path in directory.iterdir():
            if path.is_file():
                count += 1
                total += path.stat().st_size
        return count, total

    def directory_size(self, directory: Path | str) -> int:
        return self.storage_summary(directory)[1]

    def log_storage_info(self, directory: Path | str) -> None:
        count, total = self.storage_summary(directory)
        self.logger.info("backup_storage", files=count, total=format_bytes(total))
