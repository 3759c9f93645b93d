"""Dump strategy registry - maps engine identifiers to strategy classes."""

from typing import Any

from sql_backup.models.backup import DatabaseType
from sql_backup.models.errors import ConfigurationError
from sql_backup.strategies.base import DumpStrategy
from sql_backup.strategies.mysql import MySQLStrategy
from sql_backup.strategies.postgresql import PostgreSQLStrategy
from sql_backup.strategies.sqlserver import SQLServerStrategy


class StrategyRegistry:
    """Registry of dump strategies - Factory pattern."""

    def __init__(self) -> None:
        self._strategies: dict[DatabaseType, type[DumpStrategy]] = {}

    def register(self, db_type: DatabaseType, strategy_class: type[DumpStrategy]) -> None:
        """Register a strategy class for an engine."""
        self._strategies[db_type] = strategy_class

    def get_strategy(self, db_type: DatabaseType | str, **kwargs: Any) -> DumpStrategy:
        """
        Build the strategy for an engine.

        Args:
            db_type: Engine identifier, e.g. "mysql"
            **kwargs: Passed to the strategy constructor

        Returns:
            DumpStrategy: New strategy instance

        Raises:
            ConfigurationError: If the engine is not supported
        """
        try:
            strategy_class = self._strategies[DatabaseType(db_type)]
        except (KeyError, ValueError):
            raise ConfigurationError(f"Unsupported database type: {db_type}") from None
        return strategy_class(**kwargs)

    def list_types(self) -> list[str]:
        """List supported engine identifiers."""
        return [db_type.value for db_type in self._strategies]


# Global registry instance
strategy_registry = StrategyRegistry()

strategy_registry.register(DatabaseType.MYSQL, MySQLStrategy)
strategy_registry.register(DatabaseType.POSTGRESQL, PostgreSQLStrategy)
strategy_registry.register(DatabaseType.SQLSERVER, SQLServerStrategy)
