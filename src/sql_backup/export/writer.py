"""Script file writer.

Text is written sequentially to the export file. Row groups are emitted as one
multi-row INSERT statement each. A failure while writing leaves the partial file on
disk; there is no temporary file or atomic rename.
"""

import os
from datetime import datetime
from pathlib import Path
from types import TracebackType

from sql_backup.models.errors import WriteError


def format_timestamp(moment: datetime) -> str:
    """ISO-8601 UTC timestamp with millisecond precision and a ``Z`` suffix."""
    return moment.strftime("%Y-%m-%dT%H:%M:%S") + f".{moment.microsecond // 1000:03d}Z"


def build_export_filename(database: str, moment: datetime) -> str:
    """File name for an export: ``<database>_<timestamp>.sql``.

    Colons and dots in the timestamp are replaced by dashes so the name is valid on
    every filesystem, e.g. ``shop_2024-03-01T02-00-00-123Z.sql``.
    """
    stamp = format_timestamp(moment).replace(":", "-").replace(".", "-")
    return f"{database}_{stamp}.sql"


class ScriptWriter:
    """Writes SQL script text to a destination file.

    Example:
        >>> with ScriptWriter(Path("/backups/shop.sql")) as writer:
        ...     writer.write("SET NAMES utf8mb4;\\n")
        ...     writer.write_insert("`orders`", ["`id`"], ["(1)", "(2)"])
    """

    def __init__(self, path: Path | str) -> None:
        self.path = Path(path)
        self.bytes_written = 0
        self.statement_count = 0
        try:
            self._file = open(self.path, "w", encoding="utf-8", newline="\n")
        except OSError as e:
            raise WriteError(f"Cannot create export file {self.path}: {e.strerror or e}") from e

    def write(self, text: str) -> None:
        """Append raw text to the script."""
        try:
            self._file.write(text)
        except OSError as e:
            raise WriteError(f"Cannot write export file {self.path}: {e.strerror or e}") from e
        self.bytes_written += len(text.encode("utf-8"))

    def write_insert(
        self,
        table: str,
        columns: list[str],
        value_tuples: list[str],
        terminator: str = "",
    ) -> None:
        """Write one multi-row INSERT statement.

        Args:
            table: Quoted table identifier.
            columns: Quoted column identifiers.
            value_tuples: Serialized ``(v1, v2, ...)`` tuples, one per row.
            terminator: Extra text written after the statement (e.g. ``GO``).
        """
        if not value_tuples:
            return
        values = ",\n  ".join(value_tuples)
        self.write(f"INSERT INTO {table} ({', '.join(columns)}) VALUES\n  {values};\n{terminator}")
        self.statement_count += 1

    def close(self) -> None:
        """Flush buffered text to disk and close the file."""
        if self._file.closed:
            return
        try:
            self._file.flush()
            os.fsync(self._file.fileno())
        except OSError as e:
            raise WriteError(f"Cannot flush export file {self.path}: {e.strerror or e}") from e
        finally:
            self._file.close()

    @property
    def closed(self) -> bool:
        return self._file.closed

    def __enter__(self) -> "ScriptWriter":
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        if exc_type is None:
            self.close()
            return
        # The in-flight error takes precedence over a close failure
        try:
            self.close()
        except WriteError:
            pass
