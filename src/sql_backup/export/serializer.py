"""Value to SQL literal serialization.

Encoding dispatches on the runtime type of the value returned by the driver, not on
the declared column type. Each engine gets its own serializer because booleans,
timestamps and binary data are written differently.
"""

import json
import math
from datetime import date, datetime, time, timedelta, timezone
from decimal import Decimal
from typing import Any, ClassVar

import asyncpg

from sql_backup.models.backup import DatabaseType


def quote_string(value: str) -> str:
    """Single-quote a string, doubling embedded single quotes."""
    return "'" + value.replace("'", "''") + "'"


def _double_quote(value: str) -> str:
    """Quote an array element or range bound, escaping backslashes and double quotes."""
    return '"' + value.replace("\\", "\\\\").replace('"', '\\"') + '"'


def _to_utc_naive(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


class ValueSerializer:
    """Base serializer with the rules shared by all engines.

    Subclasses override the ``format_*`` / ``serialize_*`` hooks where their
    dialect differs.
    """

    dialect: ClassVar[DatabaseType]

    def serialize(self, value: Any) -> str:
        """Render a single value as a SQL literal.

        Args:
            value: Value as returned by the database driver.

        Returns:
            Literal text ready to be placed in a VALUES list.
        """
        if value is None:
            return "NULL"
        # bool is a subclass of int, so it must be checked first
        if isinstance(value, bool):
            return self.serialize_bool(value)
        if isinstance(value, (int, float, Decimal)):
            return self.serialize_number(value)
        if isinstance(value, datetime):
            return quote_string(self.format_datetime(value))
        if isinstance(value, date):
            return quote_string(value.isoformat())
        if isinstance(value, time):
            return quote_string(self.format_time(value))
        if isinstance(value, timedelta):
            return quote_string(self.format_timedelta(value))
        if isinstance(value, (bytes, bytearray, memoryview)):
            return self.serialize_binary(bytes(value))
        if isinstance(value, (dict, list)):
            return self.serialize_structured(value)
        return quote_string(str(value))

    def serialize_row(self, row: dict[str, Any], columns: list[str]) -> str:
        """Render one row as a parenthesised value tuple in column order."""
        return "(" + ", ".join(self.serialize(row.get(column)) for column in columns) + ")"

    def serialize_bool(self, value: bool) -> str:
        return "1" if value else "0"

    def serialize_number(self, value: int | float | Decimal) -> str:
        if isinstance(value, int):
            return str(value)
        if not math.isfinite(value):
            # Only PostgreSQL accepts these, and only as quoted literals
            if math.isnan(value):
                return "'NaN'"
            return "'Infinity'" if value > 0 else "'-Infinity'"
        if isinstance(value, Decimal):
            return format(value, "f")
        return repr(value)

    def format_datetime(self, value: datetime) -> str:
        return value.isoformat()

    def format_time(self, value: time) -> str:
        return value.isoformat()

    def format_timedelta(self, value: timedelta) -> str:
        sign = "-" if value < timedelta(0) else ""
        total = abs(value)
        hours, remainder = divmod(total.days * 86400 + total.seconds, 3600)
        minutes, seconds = divmod(remainder, 60)
        text = f"{sign}{hours:02d}:{minutes:02d}:{seconds:02d}"
        if total.microseconds:
            text += f".{total.microseconds:06d}"
        return text

    def serialize_binary(self, value: bytes) -> str:
        return "0x" + value.hex()

    def serialize_structured(self, value: dict | list) -> str:
        return quote_string(json.dumps(value, default=str, ensure_ascii=False))


class MySQLValueSerializer(ValueSerializer):
    """MySQL literals.

    MySQL has no boolean type of its own, so booleans are written as numbers.
    Timestamps are truncated to second precision.
    """

    dialect = DatabaseType.MYSQL

    def format_datetime(self, value: datetime) -> str:
        return _to_utc_naive(value).strftime("%Y-%m-%d %H:%M:%S")

    def format_time(self, value: time) -> str:
        return value.strftime("%H:%M:%S")

    def serialize_binary(self, value: bytes) -> str:
        # A bare 0x is not a valid MySQL literal
        if not value:
            return "X''"
        return "0x" + value.hex()


class PostgreSQLValueSerializer(ValueSerializer):
    """PostgreSQL literals: native booleans, full ISO-8601 timestamps, bytea hex.

    Lists are written as array literals (``'{1,2}'``) and asyncpg ranges in range
    syntax (``'[1,5)'``). Dicts are JSON documents.
    """

    dialect = DatabaseType.POSTGRESQL

    def serialize(self, value: Any) -> str:
        if isinstance(value, asyncpg.Range):
            return quote_string(self.format_range(value))
        return super().serialize(value)

    def format_range(self, value: asyncpg.Range) -> str:
        if value.isempty:
            return "empty"
        lower = "" if value.lower_inf else self._format_bound(value.lower)
        upper = "" if value.upper_inf else self._format_bound(value.upper)
        return ("[" if value.lower_inc else "(") + lower + "," + upper + ("]" if value.upper_inc else ")")

    def format_array(self, value: list) -> str:
        return "{" + ",".join(self._format_element(item) for item in value) + "}"

    def _format_bound(self, value: Any) -> str:
        if isinstance(value, (int, float, Decimal)) and not isinstance(value, bool):
            return self._format_plain(value)
        return _double_quote(self._format_plain(value))

    def _format_element(self, value: Any) -> str:
        if value is None:
            return "NULL"
        if isinstance(value, list):
            return self.format_array(value)
        if isinstance(value, bool):
            return "t" if value else "f"
        if isinstance(value, (int, float, Decimal)):
            return self._format_plain(value)
        return _double_quote(self._format_plain(value))

    def _format_plain(self, value: Any) -> str:
        """Text form of a value nested inside an array or range literal."""
        if isinstance(value, float) and not math.isfinite(value):
            if math.isnan(value):
                return "NaN"
            return "Infinity" if value > 0 else "-Infinity"
        if isinstance(value, Decimal):
            return format(value, "f")
        if isinstance(value, (datetime, date, time)):
            return value.isoformat()
        if isinstance(value, timedelta):
            return self.format_timedelta(value)
        if isinstance(value, (bytes, bytearray, memoryview)):
            return "\\x" + bytes(value).hex()
        if isinstance(value, dict):
            return json.dumps(value, default=str, ensure_ascii=False)
        if isinstance(value, asyncpg.Range):
            return self.format_range(value)
        return str(value)

    def serialize_bool(self, value: bool) -> str:
        return "true" if value else "false"

    def format_timedelta(self, value: timedelta) -> str:
        return f"{value.days} days {value.seconds} seconds {value.microseconds} microseconds"

    def serialize_binary(self, value: bytes) -> str:
        return "'\\x" + value.hex() + "'"

    def serialize_structured(self, value: dict | list) -> str:
        if isinstance(value, list):
            return quote_string(self.format_array(value))
        return quote_string(json.dumps(value, default=str, ensure_ascii=False))


class SQLServerValueSerializer(ValueSerializer):
    """SQL Server literals: bit booleans, ISO-8601 timestamps to milliseconds."""

    dialect = DatabaseType.SQLSERVER

    def format_datetime(self, value: datetime) -> str:
        value = _to_utc_naive(value)
        return value.strftime("%Y-%m-%dT%H:%M:%S") + f".{value.microsecond // 1000:03d}"

    def format_time(self, value: time) -> str:
        return value.isoformat(timespec="milliseconds")


SERIALIZERS: dict[DatabaseType, type[ValueSerializer]] = {
    DatabaseType.MYSQL: MySQLValueSerializer,
    DatabaseType.POSTGRESQL: PostgreSQLValueSerializer,
    DatabaseType.SQLSERVER: SQLServerValueSerializer,
}


def get_serializer(dialect: DatabaseType | str) -> ValueSerializer:
    """Return a serializer instance for an engine.

    Raises:
        ValueError: If the engine is not supported.
    """
    try:
        return SERIALIZERS[DatabaseType(dialect)]()
    except (KeyError, ValueError):
        raise ValueError(f"Unsupported database type: {dialect}") from None
