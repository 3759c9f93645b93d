"""MySQL dump strategy.

DDL is taken verbatim from ``SHOW CREATE TABLE``. Row data is read through an
unbuffered cursor so large tables are streamed instead of loaded at once.
"""

from collections.abc import AsyncGenerator
from typing import Any

import aiomysql

from sql_backup.export.writer import ScriptWriter
from sql_backup.models.backup import ConnectionTarget, DatabaseType, RowBatch, TableDescriptor
from sql_backup.models.errors import QueryError
from sql_backup.strategies.base import DatabaseSession, DumpStrategy, SchemaIntrospector


def quote_mysql_identifier(name: str) -> str:
    return "`" + name.replace("`", "``") + "`"


class MySQLSession:
    """DatabaseSession over an aiomysql connection."""

    def __init__(self, connection: aiomysql.Connection) -> None:
        self._conn = connection

    async def fetch(self, sql: str, *params: Any) -> list[dict[str, Any]]:
        try:
            async with self._conn.cursor(aiomysql.DictCursor) as cursor:
                await cursor.execute(sql, params or None)
                return list(await cursor.fetchall())
        except aiomysql.Error as e:
            raise QueryError(f"MySQL query failed: {e}", sql) from e

    async def iter_batches(self, sql: str, batch_size: int) -> AsyncGenerator[RowBatch, None]:
        try:
            async with self._conn.cursor(aiomysql.SSDictCursor) as cursor:
                await cursor.execute(sql)
                while True:
                    rows = await cursor.fetchmany(batch_size)
                    if not rows:
                        break
                    yield list(rows)
        except aiomysql.Error as e:
            raise QueryError(f"MySQL query failed: {e}", sql) from e

    async def close(self) -> None:
        self._conn.close()


class MySQLIntrospector(SchemaIntrospector):
    """Reads the table list and DDL with SHOW statements."""

    async def list_tables(self) -> list[str]:
        rows = await self.session.fetch("SHOW FULL TABLES")
        tables = []
        for row in rows:
            # Views are listed too; only base tables carry data to export
            if row.get("Table_type", "BASE TABLE") != "BASE TABLE":
                continue
            # The name column is called Tables_in_<database>
            tables.append(next(iter(row.values())))
        return tables

    async def describe_table(self, table: str) -> TableDescriptor:
        sql = f"SHOW CREATE TABLE {quote_mysql_identifier(table)}"
        rows = await self.session.fetch(sql)
        if not rows or "Create Table" not in rows[0]:
            raise QueryError(f"SHOW CREATE TABLE returned no definition for {table}", sql)
        return TableDescriptor(name=table, create_statement=rows[0]["Create Table"])

    def select_all_sql(self, table: str) -> str:
        return f"SELECT * FROM {quote_mysql_identifier(table)}"


class MySQLStrategy(DumpStrategy):
    """Dump strategy for MySQL and MariaDB."""

    db_type = DatabaseType.MYSQL
    engine_name = "MySQL"

    async def open_session(self, target: ConnectionTarget) -> DatabaseSession:
        connection = await aiomysql.connect(
            host=target.host,
            port=target.port,
            user=target.username,
            password=target.password,
            db=target.database,
            charset="utf8mb4",
            connect_timeout=self.connect_timeout,
            autocommit=True,
        )
        return MySQLSession(connection)

    def create_introspector(self, session: DatabaseSession) -> SchemaIntrospector:
        return MySQLIntrospector(session)

    def quote_identifier(self, name: str) -> str:
        return quote_mysql_identifier(name)

    def write_preamble(self, writer: ScriptWriter, target: ConnectionTarget) -> None:
        writer.write("SET NAMES utf8mb4;\nSET FOREIGN_KEY_CHECKS=0;\n\n")

    def write_table_schema(self, writer: ScriptWriter, table: TableDescriptor) -> None:
        writer.write(
            f"-- Table: {table.name}\n"
            f"DROP TABLE IF EXISTS {quote_mysql_identifier(table.name)};\n"
            f"{table.create_statement};\n\n"
        )

    def write_data_start(self, writer: ScriptWriter, table: TableDescriptor) -> None:
        super().write_data_start(writer, table)
        writer.write(f"LOCK TABLES {quote_mysql_identifier(table.name)} WRITE;\n")

    def write_data_end(self, writer: ScriptWriter, table: TableDescriptor) -> None:
        writer.write("UNLOCK TABLES;\n\n")

    def write_closing(self, writer: ScriptWriter) -> None:
        writer.write("SET FOREIGN_KEY_CHECKS=1;\n")
