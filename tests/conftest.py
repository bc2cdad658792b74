"""Pytest configuration and shared fixtures for structure tests"""

import os
import sys
from typing import Any, AsyncGenerator, Optional

import pytest
from dotenv import load_dotenv

from db_structure_mcp.adapters.base import BaseAdapter
from db_structure_mcp.adapters.mysql import MySQLAdapter
from db_structure_mcp.core import DatabaseConnection
from db_structure_mcp.models.config import DatabaseConfig, StructureConfig
from db_structure_mcp.models.operation import StatementOutcome
from db_structure_mcp.models.table import TableDescriptor

# Load environment variables
load_dotenv()

if sys.platform == "win32":
    import asyncio

    asyncio.set_event_loop_policy(asyncio.WindowsSelectorEventLoopPolicy())  # type: ignore[attr-defined]


TEST_SECRET = "unit-test-confirmation-secret"


class FakeExecutor:
    """
    In-memory stand-in for StatementExecutor.

    Records every statement sent and every FOREIGN_KEY_CHECKS transition.
    Statements listed in ``failures`` fail with the given server message.
    """

    def __init__(self):
        self.adapter: BaseAdapter = MySQLAdapter()
        self.conn = object()
        self.statements: list[str] = []
        self.databases_used: list[str] = []
        self.failures: dict[str, str] = {}
        self.foreign_key_checks = True
        self.fk_history: list[bool] = []
        self.views: set[str] = set()
        self.descriptors: list[TableDescriptor] = []
        self.exact_counts: dict[str, int] = {}
        self.exact_count_calls: list[tuple[str, str, bool]] = []
        self.bounded_counts: dict[str, int] = {}
        self.bounded_count_calls: list[tuple[str, str, int]] = []
        self.remaining_tables = 0
        self.databases: list[str] = []
        self.privilege_copies: list[tuple[str, str, str, str]] = []
        self.privilege_failures: dict[str, str] = {}
        self.forgotten: list[tuple[str, list[str]]] = []

    async def use_database(self, database: str) -> None:
        self.databases_used.append(database)

    def _outcome(self, sql: str, rows: Optional[list[dict[str, Any]]] = None) -> StatementOutcome:
        self.statements.append(sql)
        if sql in self.failures:
            return StatementOutcome(sql=sql, success=False, error_message=self.failures[sql])
        return StatementOutcome(sql=sql, success=True, rows=rows)

    async def execute_statement(self, sql: str) -> StatementOutcome:
        return self._outcome(sql)

    async def query_rows(self, sql: str) -> StatementOutcome:
        return self._outcome(
            sql, [{"Table": "db.t", "Op": "check", "Msg_type": "status", "Msg_text": "OK"}]
        )

    async def get_foreign_key_checks(self) -> bool:
        return self.foreign_key_checks

    async def set_foreign_key_checks(self, enabled: bool) -> None:
        self.foreign_key_checks = enabled
        self.fk_history.append(enabled)

    async def classify_views(self, database: str, names: list[str]) -> set[str]:
        return self.views.intersection(names)

    async def get_table_descriptors(self, database: str) -> list[TableDescriptor]:
        return list(self.descriptors)

    async def count_rows_exact(
        self, database: str, table: str, use_cache: bool = True
    ) -> int:
        self.exact_count_calls.append((database, table, use_cache))
        return self.exact_counts.get(table, 0)

    async def count_rows_bounded(
        self, database: str, table: str, cap: int
    ) -> tuple[int, bool]:
        self.bounded_count_calls.append((database, table, cap))
        count = min(self.bounded_counts.get(table, 0), cap)
        return count, count >= cap

    async def count_tables(self, database: str) -> int:
        return self.remaining_tables

    async def list_databases(self) -> list[str]:
        return list(self.databases)

    async def copy_privileges(
        self,
        source_database: str,
        source_table: str,
        target_database: str,
        target_table: str,
    ) -> Optional[str]:
        self.privilege_copies.append(
            (source_database, source_table, target_database, target_table)
        )
        return self.privilege_failures.get(source_table)

    def forget_row_counts(self, database: str, tables: list[str]) -> None:
        self.forgotten.append((database, tables))


class RecordingRelationStore:
    """Relation store remembering which tables were reported dropped."""

    def __init__(self):
        self.dropped: list[tuple[str, str]] = []
        self.connections: list[Any] = []

    async def table_dropped(self, conn: Any, database: str, table: str) -> None:
        self.connections.append(conn)
        self.dropped.append((database, table))


class RecordingCentralColumns:
    """Central column store remembering each call."""

    def __init__(self, error: Optional[str] = None):
        self.calls: list[tuple[str, str, list[str]]] = []
        self.connections: list[Any] = []
        self.error = error

    async def sync_unique_columns(
        self, conn: Any, database: str, tables: list[str]
    ) -> Optional[str]:
        self.connections.append(conn)
        self.calls.append(("sync", database, tables))
        return self.error

    async def delete_columns(
        self, conn: Any, database: str, tables: list[str]
    ) -> Optional[str]:
        self.connections.append(conn)
        self.calls.append(("delete", database, tables))
        return self.error

    async def make_consistent(
        self, conn: Any, database: str, tables: list[str]
    ) -> Optional[str]:
        self.connections.append(conn)
        self.calls.append(("consistent", database, tables))
        return self.error


# ==================== Fake Fixtures ====================


@pytest.fixture
def fake_executor() -> FakeExecutor:
    """Executor recording statements instead of sending them"""
    return FakeExecutor()


@pytest.fixture
def relation_store() -> RecordingRelationStore:
    """Relation store recording dropped tables"""
    return RecordingRelationStore()


@pytest.fixture
def central_columns() -> RecordingCentralColumns:
    """Central column store recording calls"""
    return RecordingCentralColumns()


@pytest.fixture
def structure_config() -> StructureConfig:
    """Structure settings with a test signing secret"""
    return StructureConfig(confirmation_secret=TEST_SECRET, max_exact_count=500)


# ==================== Configuration Fixtures ====================


@pytest.fixture(scope="session")
def mysql_database_url() -> Optional[str]:
    """MySQL test database URL from environment"""
    return os.getenv("MYSQL_TEST_DATABASE_URL")


# ==================== MySQL Fixtures ====================


@pytest.fixture
async def mysql_config(mysql_database_url: Optional[str]) -> DatabaseConfig:
    """MySQL database configuration"""
    if not mysql_database_url:
        pytest.skip("MYSQL_TEST_DATABASE_URL not set in environment")
    return DatabaseConfig(url=mysql_database_url)


@pytest.fixture
async def mysql_adapter(mysql_config: DatabaseConfig) -> BaseAdapter:
    """MySQL adapter instance"""
    return MySQLAdapter()


@pytest.fixture
async def mysql_connection(
    mysql_config: DatabaseConfig,
) -> AsyncGenerator[DatabaseConnection, None]:
    """MySQL database connection with proper cleanup"""
    connection = DatabaseConnection(mysql_config)
    await connection.initialize()
    try:
        yield connection
    finally:
        await connection.dispose()


# ==================== Pytest Configuration ====================


def pytest_configure(config):
    """Register custom markers"""
    config.addinivalue_line("markers", "mysql: MySQL-specific tests")
    config.addinivalue_line(
        "markers", "integration: Integration tests requiring database"
    )
    config.addinivalue_line("markers", "slow: Slow-running tests")
