"""SQL script generation: literal serialization and file writing."""

from sql_backup.export.serializer import (
    MySQLValueSerializer,
    PostgreSQLValueSerializer,
    SQLServerValueSerializer,
    ValueSerializer,
    get_serializer,
    quote_string,
)
from sql_backup.export.writer import ScriptWriter, build_export_filename, format_timestamp

__all__ = [
    "MySQLValueSerializer",
    "PostgreSQLValueSerializer",
    "SQLServerValueSerializer",
    "ValueSerializer",
    "get_serializer",
    "quote_string",
    "ScriptWriter",
    "build_export_filename",
    "format_timestamp",
]
