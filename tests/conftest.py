"""Pytest configuration and shared fixtures.

This module provides shared fixtures and configuration for all tests.
"""

from collections.abc import Callable
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

import pytest

from sql_backup.config.settings import BackupConfig, DatabaseConfig, reset_settings
from sql_backup.models.backup import ConnectionTarget
from sql_backup.strategies.base import DumpStrategy
from tests.mocks.database_mock import MockDatabaseSession

FIXED_NOW = datetime(2024, 3, 1, 2, 0, 0, 123456, tzinfo=timezone.utc)
FIXED_FILENAME_STAMP = "2024-03-01T02-00-00-123Z"

ORDERS_DDL = (
    "CREATE TABLE `orders` (\n"
    "  `id` int NOT NULL AUTO_INCREMENT,\n"
    "  `customer` varchar(100) DEFAULT NULL,\n"
    "  `note` text,\n"
    "  PRIMARY KEY (`id`)\n"
    ") ENGINE=InnoDB DEFAULT CHARSET=utf8mb4"
)


@pytest.fixture(autouse=True)
def reset_config() -> None:
    """Reset global settings before each test."""
    reset_settings()


@pytest.fixture
def mock_session() -> MockDatabaseSession:
    """Provide an empty mock database session."""
    return MockDatabaseSession()


@pytest.fixture
def make_strategy() -> Callable[..., DumpStrategy]:
    """Build a strategy whose connection is replaced by a mock session.

    Returns:
        Factory ``(strategy_class, session, **kwargs) -> strategy``.
    """

    def factory(
        strategy_class: type[DumpStrategy],
        session: MockDatabaseSession,
        **kwargs: Any,
    ) -> DumpStrategy:
        kwargs.setdefault("clock", lambda: FIXED_NOW)
        strategy = strategy_class(**kwargs)

        async def open_session(target: ConnectionTarget) -> MockDatabaseSession:
            return session

        strategy.open_session = open_session  # type: ignore[method-assign]
        return strategy

    return factory


@pytest.fixture
def shop_target() -> ConnectionTarget:
    """Connection target for the ``shop`` database."""
    return ConnectionTarget(
        host="db.internal",
        port=3306,
        database="shop",
        username="backup",
        password="secret",
    )


@pytest.fixture
def mysql_shop_session() -> MockDatabaseSession:
    """MySQL ``shop`` database with one ``orders`` table of three rows."""
    session = MockDatabaseSession()
    session.set_query_result(
        "SHOW FULL TABLES",
        [{"Tables_in_shop": "orders", "Table_type": "BASE TABLE"}],
    )
    session.set_query_result(
        "SHOW CREATE TABLE `orders`",
        [{"Table": "orders", "Create Table": ORDERS_DDL}],
    )
    session.set_query_result(
        "SELECT * FROM `orders`",
        [
            {"id": 1, "customer": "Alice", "note": "first order"},
            {"id": 2, "customer": None, "note": "walk-in"},
            {"id": 3, "customer": "Bob", "note": "O'Brien's gift"},
        ],
    )
    return session


@pytest.fixture
def database_config() -> DatabaseConfig:
    """Valid MySQL database settings."""
    return DatabaseConfig(host="db.internal", name="shop", username="backup", password="secret", type="mysql")


@pytest.fixture
def backup_config(tmp_path: Path) -> BackupConfig:
    """Backup settings pointing at a temporary directory."""
    return BackupConfig(path=str(tmp_path / "backups"), retention_days=7, schedule="0 2 * * *")
