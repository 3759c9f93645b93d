"""Data model shared by the dump strategies and the backup service."""

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator


class DatabaseType(str, Enum):
    """Supported database engines."""

    MYSQL = "mysql"
    POSTGRESQL = "postgresql"
    SQLSERVER = "sqlserver"


class ConnectionTarget(BaseModel):
    """Connection parameters for one export run."""

    model_config = ConfigDict(frozen=True)

    host: str
    port: int
    database: str
    username: str
    password: str = Field(default="", repr=False)


class ColumnDescriptor(BaseModel):
    """Column metadata used to render DDL."""

    name: str
    data_type: str
    nullable: bool = True
    max_length: int | None = None  # -1 means MAX on SQL Server
    precision: int | None = None
    scale: int | None = None
    is_identity: bool = False


class TableDescriptor(BaseModel):
    """Table metadata produced by schema introspection."""

    name: str
    columns: list[ColumnDescriptor] = Field(default_factory=list)
    create_statement: str | None = None  # Verbatim DDL when the engine exposes it


# A batch of rows, each row mapping column name to the value returned by the driver.
RowBatch = list[dict[str, Any]]


class ExportResult(BaseModel):
    """Outcome of one export run.

    A successful result carries the file path and size, a failed one carries the
    error description. Never both.
    """

    success: bool
    file_path: str | None = None
    file_size_bytes: int | None = None
    error: str | None = None
    table_count: int = 0
    row_count: int = 0
    export_time_ms: int = 0

    @model_validator(mode="after")
    def check_shape(self) -> "ExportResult":
        if self.success:
            if self.file_path is None or self.file_size_bytes is None:
                raise ValueError("successful result requires file_path and file_size_bytes")
            if self.error is not None:
                raise ValueError("successful result cannot carry an error")
        else:
            if not self.error:
                raise ValueError("failed result requires an error description")
            if self.file_path is not None or self.file_size_bytes is not None:
                raise ValueError("failed result cannot carry file information")
        return self

    @classmethod
    def succeeded(
        cls,
        file_path: str,
        file_size_bytes: int,
        table_count: int = 0,
        row_count: int = 0,
        export_time_ms: int = 0,
    ) -> "ExportResult":
        """Build a successful result."""
        return cls(
            success=True,
            file_path=file_path,
            file_size_bytes=file_size_bytes,
            table_count=table_count,
            row_count=row_count,
            export_time_ms=export_time_ms,
        )

    @classmethod
    def failed(cls, error: str, export_time_ms: int = 0) -> "ExportResult":
        """Build a failed result."""
        return cls(success=False, error=error, export_time_ms=export_time_ms)


class CleanupResult(BaseModel):
    """Summary of a retention pass."""

    deleted_count: int = 0
    freed_bytes: int = 0
    deleted_files: list[str] = Field(default_factory=list)
