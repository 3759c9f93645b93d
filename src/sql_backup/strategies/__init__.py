"""Per-engine dump strategies."""

from sql_backup.strategies.base import (
    DEFAULT_BATCH_SIZE,
    DatabaseSession,
    DumpStrategy,
    SchemaIntrospector,
)
from sql_backup.strategies.mysql import MySQLStrategy
from sql_backup.strategies.postgresql import PostgreSQLStrategy
from sql_backup.strategies.registry import StrategyRegistry, strategy_registry
from sql_backup.strategies.sqlserver import SQLServerStrategy

__all__ = [
    "DEFAULT_BATCH_SIZE",
    "DatabaseSession",
    "DumpStrategy",
    "SchemaIntrospector",
    "MySQLStrategy",
    "PostgreSQLStrategy",
    "SQLServerStrategy",
    "StrategyRegistry",
    "strategy_registry",
]
