"""PostgreSQL dump strategy.

Only tables of the ``public`` schema are exported. PostgreSQL has no
``SHOW CREATE TABLE``, so the CREATE statement is rebuilt from ``pg_attribute``:
column names, formatted types and NOT NULL constraints. Defaults, keys and
indexes are not reproduced.
"""

from collections.abc import AsyncGenerator
from typing import Any

import asyncpg

from sql_backup.export.writer import ScriptWriter
from sql_backup.models.backup import (
    ColumnDescriptor,
    ConnectionTarget,
    DatabaseType,
    RowBatch,
    TableDescriptor,
)
from sql_backup.models.errors import QueryError
from sql_backup.strategies.base import DatabaseSession, DumpStrategy, SchemaIntrospector

LIST_TABLES_SQL = """
    SELECT tablename
    FROM pg_tables
    WHERE schemaname = 'public'
    ORDER BY tablename
"""

DESCRIBE_TABLE_SQL = """
    SELECT
        a.attname AS column_name,
        format_type(a.atttypid, a.atttypmod) AS data_type,
        a.attnotnull AS not_null
    FROM pg_attribute a
    JOIN pg_class c ON a.attrelid = c.oid
    JOIN pg_namespace n ON c.relnamespace = n.oid
    WHERE c.relname = $1
      AND n.nspname = 'public'
      AND a.attnum > 0
      AND NOT a.attisdropped
    ORDER BY a.attnum
"""

_DRIVER_ERRORS = (asyncpg.PostgresError, asyncpg.InterfaceError)


def quote_pg_identifier(name: str) -> str:
    return '"' + name.replace('"', '""') + '"'


class PostgreSQLSession:
    """DatabaseSession over an asyncpg connection."""

    def __init__(self, connection: asyncpg.Connection) -> None:
        self._conn = connection

    async def fetch(self, sql: str, *params: Any) -> list[dict[str, Any]]:
        try:
            records = await self._conn.fetch(sql, *params)
        except _DRIVER_ERRORS as e:
            raise QueryError(f"PostgreSQL query failed: {e}", sql) from e
        return [dict(record) for record in records]

    async def iter_batches(self, sql: str, batch_size: int) -> AsyncGenerator[RowBatch, None]:
        try:
            # Server-side cursors only exist inside a transaction
            async with self._conn.transaction(readonly=True):
                cursor = await self._conn.cursor(sql)
                while True:
                    records = await cursor.fetch(batch_size)
                    if not records:
                        break
                    yield [dict(record) for record in records]
        except _DRIVER_ERRORS as e:
            raise QueryError(f"PostgreSQL query failed: {e}", sql) from e

    async def close(self) -> None:
        try:
            await self._conn.close(timeout=10)
        except (OSError, TimeoutError, *_DRIVER_ERRORS):
            self._conn.terminate()


class PostgreSQLIntrospector(SchemaIntrospector):
    """Reads the catalog through pg_tables and pg_attribute."""

    async def list_tables(self) -> list[str]:
        rows = await self.session.fetch(LIST_TABLES_SQL)
        return [row["tablename"] for row in rows]

    async def describe_table(self, table: str) -> TableDescriptor:
        rows = await self.session.fetch(DESCRIBE_TABLE_SQL, table)
        columns = [
            ColumnDescriptor(
                name=row["column_name"],
                data_type=row["data_type"],
                nullable=not row["not_null"],
            )
            for row in rows
        ]
        return TableDescriptor(name=table, columns=columns)

    def select_all_sql(self, table: str) -> str:
        return f"SELECT * FROM {quote_pg_identifier(table)}"


def render_create_table(table: TableDescriptor) -> str:
    """Render ``CREATE TABLE`` from column metadata on a single line."""
    definitions = []
    for column in table.columns:
        definition = f"{quote_pg_identifier(column.name)} {column.data_type}"
        if not column.nullable:
            definition += " NOT NULL"
        definitions.append(definition)
    return f"CREATE TABLE {quote_pg_identifier(table.name)} ({', '.join(definitions)});"


class PostgreSQLStrategy(DumpStrategy):
    """Dump strategy for PostgreSQL."""

    db_type = DatabaseType.POSTGRESQL
    engine_name = "PostgreSQL"

    async def open_session(self, target: ConnectionTarget) -> DatabaseSession:
        connection = await asyncpg.connect(
            host=target.host,
            port=target.port,
            user=target.username,
            password=target.password,
            database=target.database,
            timeout=self.connect_timeout,
        )
        return PostgreSQLSession(connection)

    def create_introspector(self, session: DatabaseSession) -> SchemaIntrospector:
        return PostgreSQLIntrospector(session)

    def quote_identifier(self, name: str) -> str:
        return quote_pg_identifier(name)

    def write_preamble(self, writer: ScriptWriter, target: ConnectionTarget) -> None:
        writer.write("SET client_encoding = 'UTF8';\nSET standard_conforming_strings = on;\n\n")

    def write_table_schema(self, writer: ScriptWriter, table: TableDescriptor) -> None:
        writer.write(
            f"\n-- Table: {table.name}\n"
            f"DROP TABLE IF EXISTS {quote_pg_identifier(table.name)} CASCADE;\n"
        )
        if table.columns:
            writer.write(f"{render_create_table(table)}\n\n")
