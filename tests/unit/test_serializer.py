"""Unit tests for SQL literal serialization."""

import json
import uuid
from datetime import date, datetime, time, timedelta, timezone
from decimal import Decimal

import asyncpg
import pytest

from sql_backup.export.serializer import (
    MySQLValueSerializer,
    PostgreSQLValueSerializer,
    SQLServerValueSerializer,
    get_serializer,
    quote_string,
)
from sql_backup.models.backup import DatabaseType

ALL_SERIALIZERS = [MySQLValueSerializer(), PostgreSQLValueSerializer(), SQLServerValueSerializer()]


def unquote(literal: str) -> str:
    """Parse a single-quoted SQL string literal the way the engines do."""
    assert literal.startswith("'") and literal.endswith("'")
    body = literal[1:-1]
    result = []
    i = 0
    while i < len(body):
        if body[i] == "'":
            # Inside the literal a quote must always be doubled
            assert body[i + 1] == "'", f"unescaped quote in {literal!r}"
            result.append("'")
            i += 2
        else:
            result.append(body[i])
            i += 1
    return "".join(result)


@pytest.mark.parametrize("serializer", ALL_SERIALIZERS, ids=lambda s: s.dialect.value)
def test_null_is_bare_keyword(serializer):
    """Test None renders as NULL for every engine."""
    assert serializer.serialize(None) == "NULL"


@pytest.mark.parametrize("serializer", ALL_SERIALIZERS, ids=lambda s: s.dialect.value)
def test_numbers_are_unquoted(serializer):
    """Test numeric values keep their decimal text form."""
    assert serializer.serialize(42) == "42"
    assert serializer.serialize(-7) == "-7"
    assert serializer.serialize(3.25) == "3.25"
    assert serializer.serialize(Decimal("1234.5600")) == "1234.5600"
    assert serializer.serialize(Decimal("1E+3")) == "1000"
    assert float(serializer.serialize(0.1)) == 0.1


@pytest.mark.parametrize(
    "value",
    ["O'Brien", "'", "''", "it's a 'quoted' word", "trailing'", "'leading", "plain"],
)
@pytest.mark.parametrize("serializer", ALL_SERIALIZERS, ids=lambda s: s.dialect.value)
def test_strings_double_single_quotes(serializer, value):
    """Test every single quote is doubled and the literal re-parses to the input."""
    literal = serializer.serialize(value)
    assert literal == "'" + value.replace("'", "''") + "'"
    assert unquote(literal) == value


def test_quote_string_only_escapes_quotes():
    """Test no escaping other than quote doubling is applied."""
    assert quote_string("a\\b -- c; /* d */") == "'a\\b -- c; /* d */'"


def test_boolean_literals_per_engine():
    """Test booleans use each engine's native form."""
    assert PostgreSQLValueSerializer().serialize(True) == "true"
    assert PostgreSQLValueSerializer().serialize(False) == "false"
    assert SQLServerValueSerializer().serialize(True) == "1"
    assert SQLServerValueSerializer().serialize(False) == "0"
    # MySQL has no boolean type; booleans follow the number rule
    assert MySQLValueSerializer().serialize(True) == "1"
    assert MySQLValueSerializer().serialize(False) == "0"


def test_mysql_datetime_truncated_to_seconds():
    """Test MySQL timestamps use 'YYYY-MM-DD HH:MM:SS'."""
    value = datetime(2024, 3, 1, 14, 5, 9, 987654)
    assert MySQLValueSerializer().serialize(value) == "'2024-03-01 14:05:09'"


def test_mysql_aware_datetime_converted_to_utc():
    """Test timezone-aware timestamps are written in UTC."""
    value = datetime(2024, 3, 1, 16, 0, 0, tzinfo=timezone(timedelta(hours=2)))
    assert MySQLValueSerializer().serialize(value) == "'2024-03-01 14:00:00'"


def test_postgresql_datetime_full_iso():
    """Test PostgreSQL timestamps keep full ISO-8601 precision."""
    naive = datetime(2024, 3, 1, 14, 5, 9, 987654)
    aware = datetime(2024, 3, 1, 14, 5, 9, 987654, tzinfo=timezone.utc)
    assert PostgreSQLValueSerializer().serialize(naive) == "'2024-03-01T14:05:09.987654'"
    assert PostgreSQLValueSerializer().serialize(aware) == "'2024-03-01T14:05:09.987654+00:00'"


def test_sqlserver_datetime_millisecond_precision():
    """Test SQL Server timestamps are ISO-8601 truncated to milliseconds."""
    value = datetime(2024, 3, 1, 14, 5, 9, 987654)
    assert SQLServerValueSerializer().serialize(value) == "'2024-03-01T14:05:09.987'"
    assert SQLServerValueSerializer().serialize(datetime(2024, 3, 1)) == "'2024-03-01T00:00:00.000'"


@pytest.mark.parametrize("serializer", ALL_SERIALIZERS, ids=lambda s: s.dialect.value)
def test_dates_are_quoted_iso(serializer):
    """Test plain dates render as quoted ISO dates."""
    assert serializer.serialize(date(2023, 12, 31)) == "'2023-12-31'"


def test_time_values():
    """Test time-of-day values per engine."""
    value = time(8, 30, 15, 250000)
    assert MySQLValueSerializer().serialize(value) == "'08:30:15'"
    assert PostgreSQLValueSerializer().serialize(value) == "'08:30:15.250000'"
    assert SQLServerValueSerializer().serialize(value) == "'08:30:15.250'"


def test_mysql_timedelta_as_time():
    """Test MySQL TIME columns (returned as timedelta) render as HH:MM:SS."""
    serializer = MySQLValueSerializer()
    assert serializer.serialize(timedelta(hours=26, minutes=3, seconds=4)) == "'26:03:04'"
    assert serializer.serialize(timedelta(seconds=-90)) == "'-00:01:30'"


def test_postgresql_timedelta_as_interval():
    """Test PostgreSQL intervals render with explicit units."""
    value = timedelta(days=2, seconds=30, microseconds=5)
    assert PostgreSQLValueSerializer().serialize(value) == "'2 days 30 seconds 5 microseconds'"


def test_binary_hex_encoding():
    """Test binary values are hex-encoded per engine."""
    data = bytes([0x00, 0xAB, 0xFF, 0x10])
    assert MySQLValueSerializer().serialize(data) == "0x00abff10"
    assert SQLServerValueSerializer().serialize(data) == "0x00abff10"
    assert PostgreSQLValueSerializer().serialize(data) == "'\\x00abff10'"
    assert MySQLValueSerializer().serialize(bytearray(b"\x01")) == "0x01"
    assert PostgreSQLValueSerializer().serialize(memoryview(b"\x02")) == "'\\x02'"


def test_binary_hex_decodes_back():
    """Test the hex payload decodes to the original bytes."""
    data = bytes(range(256))
    literal = SQLServerValueSerializer().serialize(data)
    assert bytes.fromhex(literal[2:]) == data


def test_mysql_empty_binary():
    """Test empty binary values use the X'' form."""
    assert MySQLValueSerializer().serialize(b"") == "X''"


def test_postgresql_structured_values_json_encoded():
    """Test dict values are JSON-encoded with quotes doubled."""
    value = {"name": "O'Neil", "tags": ["a", "b"], "count": 2}
    literal = PostgreSQLValueSerializer().serialize(value)
    assert "O''Neil" in literal
    assert json.loads(unquote(literal)) == value


def test_mysql_structured_values_json_encoded():
    """Test dicts are written as JSON rather than a Python repr."""
    assert MySQLValueSerializer().serialize({"a": 1, "b": None}) == "'{\"a\": 1, \"b\": null}'"
    assert SQLServerValueSerializer().serialize(["x", True]) == "'[\"x\", true]'"


def test_postgresql_list_as_array_literal():
    serializer = PostgreSQLValueSerializer()
    assert serializer.serialize([1, 2]) == "'{1,2}'"
    assert serializer.serialize([]) == "'{}'"
    assert serializer.serialize([[1, 2], [3, 4]]) == "'{{1,2},{3,4}}'"
    assert serializer.serialize([True, False, None]) == "'{t,f,NULL}'"


def test_postgresql_array_elements_quoted():
    """Test text elements are double-quoted with backslash escapes inside the SQL literal."""
    serializer = PostgreSQLValueSerializer()
    literal = serializer.serialize(["a", 'O\'x "q"', "back\\slash", None])
    assert literal == r"""'{"a","O''x \"q\"","back\\slash",NULL}'"""
    assert serializer.serialize([date(2024, 3, 1)]) == "'{\"2024-03-01\"}'"


def test_postgresql_range_literal():
    serializer = PostgreSQLValueSerializer()
    assert serializer.serialize(asyncpg.Range(1, 5)) == "'[1,5)'"
    assert serializer.serialize(asyncpg.Range(1, 5, lower_inc=False, upper_inc=True)) == "'(1,5]'"
    assert serializer.serialize(asyncpg.Range(None, 10)) == "'(,10)'"
    assert serializer.serialize(asyncpg.Range(empty=True)) == "'empty'"
    assert (
        serializer.serialize(asyncpg.Range(date(2024, 1, 1), date(2024, 2, 1)))
        == "'[\"2024-01-01\",\"2024-02-01\")'"
    )


def test_other_types_fall_back_to_string():
    """Test unknown types are written as quoted strings."""
    value = uuid.UUID("12345678-1234-5678-1234-567812345678")
    assert MySQLValueSerializer().serialize(value) == "'12345678-1234-5678-1234-567812345678'"


def test_non_finite_floats_are_quoted():
    """Test NaN and infinities do not produce bare identifiers."""
    serializer = PostgreSQLValueSerializer()
    assert serializer.serialize(float("nan")) == "'NaN'"
    assert serializer.serialize(float("inf")) == "'Infinity'"
    assert serializer.serialize(float("-inf")) == "'-Infinity'"


def test_serialize_row_follows_column_order():
    """Test row tuples follow the given column order."""
    row = {"b": "x", "a": 1, "c": None}
    assert MySQLValueSerializer().serialize_row(row, ["a", "b", "c"]) == "(1, 'x', NULL)"


def test_get_serializer():
    """Test serializer lookup by engine."""
    assert isinstance(get_serializer(DatabaseType.MYSQL), MySQLValueSerializer)
    assert isinstance(get_serializer("postgresql"), PostgreSQLValueSerializer)
    assert isinstance(get_serializer("sqlserver"), SQLServerValueSerializer)
    with pytest.raises(ValueError, match="Unsupported database type"):
        get_serializer("oracle")
