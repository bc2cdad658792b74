"""Database connection management with SQLAlchemy."""

from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncConnection, AsyncEngine, create_async_engine

from db_structure_mcp.models.config import DatabaseConfig


class DatabaseConnection:
    """Manages SQLAlchemy async engine and connection pool."""

    def __init__(self, config: DatabaseConfig):
        """
        Initialize database connection.

        Args:
            config: Database configuration with connection URL and pool settings
        """
        self.config = config
        self.engine: Optional[AsyncEngine] = None
        self._dialect = config.dialect
        self._driver = config.driver

    async def initialize(self) -> None:
        """Initialize the async engine."""
        if self.engine is not None:
            return  # Already initialized

        # Every statement commits on its own; batches are never rolled back
        self.engine = create_async_engine(
            self.config.url,
            pool_size=self.config.pool_size,
            max_overflow=self.config.max_overflow,
            pool_timeout=self.config.pool_timeout,
            pool_pre_ping=True,  # Verify connections before using
            echo=self.config.echo_sql,
            isolation_level="AUTOCOMMIT",
        )

    async def dispose(self) -> None:
        """Dispose of the connection pool and cleanup resources."""
        if self.engine is not None:
            await self.engine.dispose()
            self.engine = None

    @asynccontextmanager
    async def get_connection(self) -> AsyncGenerator[AsyncConnection, None]:
        """
        Get a connection from the pool as an async context manager.

        Session variables (FOREIGN_KEY_CHECKS, ...) set on the yielded
        connection stay in effect until the block exits.

        Yields:
            AsyncConnection for executing statements

        Raises:
            RuntimeError: If engine not initialized
        """
        if self.engine is None:
            raise RuntimeError(
                "DatabaseConnection not initialized. Call initialize() first."
            )

        async with self.engine.connect() as conn:
            # Set statement timeout if configured
            if self.config.statement_timeout:
                await self._set_timeout(conn, self.config.statement_timeout)

            yield conn

    async def _set_timeout(self, conn: AsyncConnection, timeout: int) -> None:
        """Set SELECT timeout for the session."""
        timeout_ms = timeout * 1000

        if self._dialect == "mariadb":
            await conn.execute(text(f"SET SESSION max_statement_time = {timeout}"))
        else:
            await conn.execute(text(f"SET SESSION max_execution_time = {timeout_ms}"))

    @property
    def dialect(self) -> str:
        """Get database dialect name."""
        return self._dialect

    @property
    def driver(self) -> str:
        """Get database driver name."""
        return self._driver

    @property
    def is_initialized(self) -> bool:
        """Check if engine is initialized."""
        return self.engine is not None

    async def test_connection(self) -> bool:
        """
        Test database connectivity.

        Returns:
            True if connection successful, False otherwise
        """
        try:
            async with self.get_connection() as conn:
                await conn.execute(text("SELECT 1"))
            return True
        except Exception:
            return False

    async def get_current_database(self) -> Optional[str]:
        """Name of the default database of new sessions."""
        async with self.get_connection() as conn:
            result = await conn.execute(text("SELECT DATABASE()"))
            row = result.fetchone()
            return str(row[0]) if row and row[0] else None

    async def __aenter__(self) -> "DatabaseConnection":
        """Async context manager entry."""
        await self.initialize()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        """Async context manager exit."""
        await self.dispose()
