"""Base classes for per-engine dump strategies.

Every engine follows the same pipeline: connect, write header and preamble, list
tables, then for each table write DDL and the batched row data, write the closing
directives, flush and report. Subclasses only supply the dialect: how to connect,
which catalog queries to run and how identifiers and directives are written.
"""

import time
from abc import ABC, abstractmethod
from collections.abc import AsyncGenerator, AsyncIterator, Callable
from contextlib import aclosing, asynccontextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, ClassVar, Protocol

import structlog

from sql_backup.export.serializer import ValueSerializer, get_serializer
from sql_backup.export.writer import ScriptWriter, build_export_filename, format_timestamp
from sql_backup.models.backup import ConnectionTarget, DatabaseType, ExportResult, RowBatch, TableDescriptor
from sql_backup.models.errors import BackupError, DatabaseConnectionError, describe_error
from sql_backup.resilience.retry import RetryConfig, retry_async

DEFAULT_BATCH_SIZE = 100


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class DatabaseSession(Protocol):
    """Minimal query interface over one driver connection.

    Implementations wrap driver errors in QueryError.
    """

    async def fetch(self, sql: str, *params: Any) -> list[dict[str, Any]]:
        """Run a query and return all rows as dictionaries."""
        ...

    def iter_batches(self, sql: str, batch_size: int) -> AsyncGenerator[RowBatch, None]:
        """Stream the rows of a query in chunks of at most ``batch_size``.

        The driver cursor is released when the generator is closed.
        """
        ...

    async def close(self) -> None:
        """Release the underlying connection."""
        ...


class SchemaIntrospector(ABC):
    """Catalog queries for one engine."""

    def __init__(self, session: DatabaseSession) -> None:
        self.session = session

    @abstractmethod
    async def list_tables(self) -> list[str]:
        """Return the names of the tables to export, in output order."""

    @abstractmethod
    async def describe_table(self, table: str) -> TableDescriptor:
        """Return column metadata (or verbatim DDL) for a table."""

    @abstractmethod
    def select_all_sql(self, table: str) -> str:
        """Return the statement that reads every row of a table."""

    def iter_rows(self, table: str, batch_size: int) -> AsyncGenerator[RowBatch, None]:
        return self.session.iter_batches(self.select_all_sql(table), batch_size)


async def rebatch(
    batches: AsyncGenerator[RowBatch, None],
    size: int,
) -> AsyncGenerator[RowBatch, None]:
    """Regroup a stream of row chunks into chunks of exactly ``size`` rows.

    Only the final chunk may be shorter. Row order is preserved. Closing the
    returned generator closes ``batches`` as well.
    """
    pending: RowBatch = []
    async with aclosing(batches):
        async for batch in batches:
            pending.extend(batch)
            while len(pending) >= size:
                yield pending[:size]
                pending = pending[size:]
    if pending:
        yield pending


class DumpStrategy(ABC):
    """Exports one database into a replayable SQL script.

    Subclasses must set ``db_type`` and ``engine_name`` and implement the
    connection, introspection and DDL hooks.
    """

    db_type: ClassVar[DatabaseType]
    engine_name: ClassVar[str]
    # Text written after every DML statement (SQL Server batch separator)
    statement_terminator: ClassVar[str] = ""

    def __init__(
        self,
        batch_size: int = DEFAULT_BATCH_SIZE,
        connect_timeout: float = 30.0,
        retry_config: RetryConfig | None = None,
        logger: structlog.stdlib.BoundLogger | None = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        """Initialize the strategy.

        Args:
            batch_size: Rows per INSERT statement.
            connect_timeout: Connection establishment timeout in seconds.
            retry_config: Retry policy for connecting (single attempt if None).
            logger: Logger handle; a module logger is used if None.
            clock: Returns the current UTC time (file name and header).
        """
        if batch_size < 1:
            raise ValueError("batch_size must be >= 1")
        self.batch_size = batch_size
        self.connect_timeout = connect_timeout
        self.retry_config = retry_config or RetryConfig(max_attempts=1)
        self.logger = logger or structlog.get_logger(__name__)
        self.clock = clock
        self.serializer: ValueSerializer = get_serializer(self.db_type)

    # Dialect hooks

    @abstractmethod
    async def open_session(self, target: ConnectionTarget) -> DatabaseSession:
        """Open a driver connection. Driver errors propagate unchanged."""

    @abstractmethod
    def create_introspector(self, session: DatabaseSession) -> SchemaIntrospector:
        """Build the catalog reader for an open session."""

    @abstractmethod
    def quote_identifier(self, name: str) -> str:
        """Quote a table or column name."""

    @abstractmethod
    def write_table_schema(self, writer: ScriptWriter, table: TableDescriptor) -> None:
        """Write the table comment, DROP and CREATE statements."""

    def write_preamble(self, writer: ScriptWriter, target: ConnectionTarget) -> None:
        pass

    def write_data_start(self, writer: ScriptWriter, table: TableDescriptor) -> None:
        writer.write(f"-- Data for table: {table.name}\n")

    def write_data_end(self, writer: ScriptWriter, table: TableDescriptor) -> None:
        writer.write("\n")

    def write_closing(self, writer: ScriptWriter) -> None:
        pass

    # Pipeline

    @asynccontextmanager
    async def session_scope(self, target: ConnectionTarget) -> AsyncIterator[DatabaseSession]:
        """Open a session and guarantee it is closed on every exit path.

        Raises:
            DatabaseConnectionError: If the connection cannot be established.
        """
        try:
            session = await retry_async(self.open_session, self.retry_config, target)
        except BackupError:
            raise
        except Exception as e:
            raise DatabaseConnectionError(
                f"Cannot connect to {self.engine_name} database '{target.database}' "
                f"at {target.host}:{target.port}: {describe_error(e)}"
            ) from e
        try:
            yield session
        finally:
            await session.close()

    async def backup(self, target: ConnectionTarget, output_dir: Path | str) -> ExportResult:
        """Export the target database into a new script file in ``output_dir``.

        Never raises for connection, query or write failures: they are returned as
        a failed ExportResult. A partially written file is left on disk.

        Args:
            target: Connection parameters.
            output_dir: Existing directory that receives the export file.

        Returns:
            ExportResult: Path and size on success, error description on failure.
        """
        start_time = time.monotonic()
        self.logger.info("backup_started", engine=self.engine_name, database=target.database)

        try:
            async with self.session_scope(target) as session:
                introspector = self.create_introspector(session)
                started_at = self.clock()
                path = Path(output_dir) / build_export_filename(target.database, started_at)

                with ScriptWriter(path) as writer:
                    writer.write(
                        f"-- {self.engine_name} Backup\n"
                        f"-- Database: {target.database}\n"
                        f"-- Date: {format_timestamp(started_at)}\n\n"
                    )
                    self.write_preamble(writer, target)

                    tables = await introspector.list_tables()
                    row_count = 0
                    for table in tables:
                        row_count += await self.dump_table(writer, introspector, table)

                    self.write_closing(writer)

                file_size = path.stat().st_size
        except Exception as e:
            error = describe_error(e)
            elapsed_ms = int((time.monotonic() - start_time) * 1000)
            self.logger.error(
                "backup_failed",
                engine=self.engine_name,
                database=target.database,
                error=error,
                error_type=type(e).__name__,
            )
            return ExportResult.failed(error, export_time_ms=elapsed_ms)

        elapsed_ms = int((time.monotonic() - start_time) * 1000)
        self.logger.info(
            "backup_completed",
            engine=self.engine_name,
            file=str(path),
            size_bytes=file_size,
            tables=len(tables),
            rows=row_count,
            duration_ms=elapsed_ms,
        )
        return ExportResult.succeeded(
            file_path=str(path),
            file_size_bytes=file_size,
            table_count=len(tables),
            row_count=row_count,
            export_time_ms=elapsed_ms,
        )

    async def dump_table(
        self,
        writer: ScriptWriter,
        introspector: SchemaIntrospector,
        table: str,
    ) -> int:
        """Write DDL and all rows of one table.

        Returns:
            Number of rows written.
        """
        self.logger.info("table_backup_started", table=table)

        descriptor = await introspector.describe_table(table)
        self.write_table_schema(writer, descriptor)

        table_ident = self.quote_identifier(table)
        columns: list[str] | None = None
        column_idents: list[str] = []
        row_count = 0

        # The cursor must be released before the session is closed, also when
        # serializing or writing a batch fails
        batches = rebatch(introspector.iter_rows(table, self.batch_size), self.batch_size)
        async with aclosing(batches):
            async for batch in batches:
                if columns is None:
                    columns = list(batch[0].keys())
                    column_idents = [self.quote_identifier(column) for column in columns]
                    self.write_data_start(writer, descriptor)
                value_tuples = [self.serializer.serialize_row(row, columns) for row in batch]
                writer.write_insert(table_ident, column_idents, value_tuples, self.statement_terminator)
                row_count += len(batch)

        if columns is not None:
            self.write_data_end(writer, descriptor)

        self.logger.info("table_backup_completed", table=table, rows=row_count)
        return row_count
