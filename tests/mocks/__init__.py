"""Mock implementations for testing.

This package provides mock database sessions so the dump strategies can be
exercised without a running database server, and mock driver connections for
testing the session adapters that wrap each driver.
"""

from tests.mocks.database_mock import MockDatabaseSession
from tests.mocks.driver_mock import MockMSSQLConnection, MockMySQLConnection, MockPostgresConnection

__all__ = ["MockDatabaseSession", "MockMSSQLConnection", "MockMySQLConnection", "MockPostgresConnection"]
