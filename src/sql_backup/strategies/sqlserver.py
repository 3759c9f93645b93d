"""SQL Server dump strategy.

pymssql is a blocking DB-API driver; every call runs in a worker thread through
``asyncio.to_thread`` so the export stays a single sequential coroutine. The
script uses ``GO`` batch separators, as expected by sqlcmd.
"""

import asyncio
from collections.abc import AsyncGenerator
from typing import Any

import pymssql

from sql_backup.export.serializer import quote_string
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
    SELECT TABLE_NAME
    FROM INFORMATION_SCHEMA.TABLES
    WHERE TABLE_TYPE = 'BASE TABLE'
    ORDER BY TABLE_NAME
"""

DESCRIBE_TABLE_SQL = """
    SELECT
        COLUMN_NAME,
        DATA_TYPE,
        CHARACTER_MAXIMUM_LENGTH,
        NUMERIC_PRECISION,
        NUMERIC_SCALE,
        IS_NULLABLE,
        COLUMNPROPERTY(
            OBJECT_ID(QUOTENAME(TABLE_SCHEMA) + '.' + QUOTENAME(TABLE_NAME)),
            COLUMN_NAME,
            'IsIdentity'
        ) AS IS_IDENTITY
    FROM INFORMATION_SCHEMA.COLUMNS
    WHERE TABLE_NAME = %s
    ORDER BY ORDINAL_POSITION
"""

# Types whose declared precision/scale must be kept in the DDL
_PRECISION_TYPES = {"decimal", "numeric"}
# Types that report a maximum length but do not accept one
_UNSIZED_TYPES = {"text", "ntext", "image", "xml"}


def quote_mssql_identifier(name: str) -> str:
    return "[" + name.replace("]", "]]") + "]"


class SQLServerSession:
    """DatabaseSession over a pymssql connection."""

    def __init__(self, connection: pymssql.Connection) -> None:
        self._conn = connection

    def _fetch_all(self, sql: str, params: tuple[Any, ...]) -> list[dict[str, Any]]:
        cursor = self._conn.cursor(as_dict=True)
        try:
            cursor.execute(sql, params or None)
            return list(cursor.fetchall())
        except pymssql.Error as e:
            raise QueryError(f"SQL Server query failed: {e}", sql) from e
        finally:
            cursor.close()

    async def fetch(self, sql: str, *params: Any) -> list[dict[str, Any]]:
        return await asyncio.to_thread(self._fetch_all, sql, params)

    async def iter_batches(self, sql: str, batch_size: int) -> AsyncGenerator[RowBatch, None]:
        cursor = self._conn.cursor(as_dict=True)
        try:
            await asyncio.to_thread(cursor.execute, sql)
            while True:
                rows = await asyncio.to_thread(cursor.fetchmany, batch_size)
                if not rows:
                    break
                yield list(rows)
        except pymssql.Error as e:
            raise QueryError(f"SQL Server query failed: {e}", sql) from e
        finally:
            cursor.close()

    async def close(self) -> None:
        await asyncio.to_thread(self._conn.close)


class SQLServerIntrospector(SchemaIntrospector):
    """Reads the catalog through INFORMATION_SCHEMA views."""

    async def list_tables(self) -> list[str]:
        rows = await self.session.fetch(LIST_TABLES_SQL)
        return [row["TABLE_NAME"] for row in rows]

    async def describe_table(self, table: str) -> TableDescriptor:
        rows = await self.session.fetch(DESCRIBE_TABLE_SQL, table)
        columns = [
            ColumnDescriptor(
                name=row["COLUMN_NAME"],
                data_type=row["DATA_TYPE"],
                nullable=row["IS_NULLABLE"] != "NO",
                max_length=row.get("CHARACTER_MAXIMUM_LENGTH"),
                precision=row.get("NUMERIC_PRECISION"),
                scale=row.get("NUMERIC_SCALE"),
                is_identity=bool(row.get("IS_IDENTITY")),
            )
            for row in rows
        ]
        return TableDescriptor(name=table, columns=columns)

    def select_all_sql(self, table: str) -> str:
        return f"SELECT * FROM {quote_mssql_identifier(table)}"


def has_identity(table: TableDescriptor) -> bool:
    return any(column.is_identity for column in table.columns)


def render_column(column: ColumnDescriptor) -> str:
    """Render one column definition, e.g. ``[name] nvarchar(50) NOT NULL``."""
    definition = f"{quote_mssql_identifier(column.name)} {column.data_type}"
    if column.max_length and column.data_type.lower() not in _UNSIZED_TYPES:
        definition += "(MAX)" if column.max_length == -1 else f"({column.max_length})"
    elif column.data_type.lower() in _PRECISION_TYPES and column.precision is not None:
        definition += f"({column.precision},{column.scale or 0})"
    if column.is_identity:
        definition += " IDENTITY(1,1)"
    definition += " NULL" if column.nullable else " NOT NULL"
    return definition


class SQLServerStrategy(DumpStrategy):
    """Dump strategy for Microsoft SQL Server."""

    db_type = DatabaseType.SQLSERVER
    engine_name = "SQL Server"
    statement_terminator = "GO\n"

    async def open_session(self, target: ConnectionTarget) -> DatabaseSession:
        connection = await asyncio.to_thread(
            pymssql.connect,
            server=target.host,
            port=str(target.port),
            user=target.username,
            password=target.password,
            database=target.database,
            login_timeout=int(self.connect_timeout),
            charset="UTF-8",
            autocommit=True,
        )
        return SQLServerSession(connection)

    def create_introspector(self, session: DatabaseSession) -> SchemaIntrospector:
        return SQLServerIntrospector(session)

    def quote_identifier(self, name: str) -> str:
        return quote_mssql_identifier(name)

    def write_preamble(self, writer: ScriptWriter, target: ConnectionTarget) -> None:
        writer.write(f"USE {quote_mssql_identifier(target.database)};\nGO\n\n")

    def write_table_schema(self, writer: ScriptWriter, table: TableDescriptor) -> None:
        ident = quote_mssql_identifier(table.name)
        column_defs = ",\n".join(f"  {render_column(column)}" for column in table.columns)
        writer.write(
            f"\n-- Table: {table.name}\n"
            f"IF OBJECT_ID({quote_string(ident)}, 'U') IS NOT NULL DROP TABLE {ident};\nGO\n"
            f"CREATE TABLE {ident} (\n{column_defs}\n);\nGO\n\n"
        )

    def write_data_start(self, writer: ScriptWriter, table: TableDescriptor) -> None:
        super().write_data_start(writer, table)
        # Explicit identity values are rejected unless IDENTITY_INSERT is on,
        # and turning it on fails for tables without an identity column
        if has_identity(table):
            writer.write(f"SET IDENTITY_INSERT {quote_mssql_identifier(table.name)} ON;\nGO\n")

    def write_data_end(self, writer: ScriptWriter, table: TableDescriptor) -> None:
        if has_identity(table):
            writer.write(f"SET IDENTITY_INSERT {quote_mssql_identifier(table.name)} OFF;\nGO\n")
        writer.write("\n")
