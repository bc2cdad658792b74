"""Statement execution on a single database session."""

import logging
from typing import TYPE_CHECKING, Optional

from sqlalchemy import text
from sqlalchemy.exc import DBAPIError
from sqlalchemy.ext.asyncio import AsyncConnection

from db_structure_mcp.core.cache import RowCountCache
from db_structure_mcp.models.operation import StatementOutcome
from db_structure_mcp.models.table import TableDescriptor
from db_structure_mcp.utils import backquote, convert_rows_to_json_safe

if TYPE_CHECKING:
    from db_structure_mcp.adapters.base import BaseAdapter

logger = logging.getLogger(__name__)


def format_server_error(error: DBAPIError) -> str:
    """Render a driver error the way the server reported it (#code - message)."""
    orig = getattr(error, "orig", None)
    args = getattr(orig, "args", ())
    if len(args) >= 2 and isinstance(args[0], int):
        return f"#{args[0]} - {args[1]}"
    return str(orig if orig is not None else error)


class StatementExecutor:
    """
    Runs statements and dictionary queries on one connection.

    All calls share the connection, so session variables such as
    FOREIGN_KEY_CHECKS and the default database persist between them.
    """

    def __init__(
        self,
        conn: AsyncConnection,
        adapter: "BaseAdapter",
        row_counts: Optional[RowCountCache] = None,
    ):
        """
        Initialize statement executor.

        Args:
            conn: Connection used for every statement
            adapter: Database-specific adapter
            row_counts: Shared cache of live row counts
        """
        self.conn = conn
        self.adapter = adapter
        self.row_counts = row_counts if row_counts is not None else RowCountCache(ttl=0)

    async def use_database(self, database: str) -> None:
        """Make ``database`` the default for unqualified names."""
        await self.conn.execute(text(f"USE {backquote(database)}"))

    async def execute_statement(self, sql: str) -> StatementOutcome:
        """
        Send one statement and report whether the server accepted it.

        Args:
            sql: Statement to run

        Returns:
            Outcome with the raw server error on failure
        """
        try:
            await self.conn.execute(text(sql))
        except DBAPIError as e:
            message = format_server_error(e)
            logger.warning(f"Statement failed: {sql} ({message})")
            return StatementOutcome(sql=sql, success=False, error_message=message)

        return StatementOutcome(sql=sql, success=True)

    async def query_rows(self, sql: str) -> StatementOutcome:
        """
        Send one statement and capture the rows it returns.

        Args:
            sql: Statement producing a result set

        Returns:
            Outcome carrying JSON-safe rows, or the raw server error
        """
        try:
            result = await self.conn.execute(text(sql))
            columns = list(result.keys())
            rows = [dict(zip(columns, row)) for row in result.fetchall()]
        except DBAPIError as e:
            message = format_server_error(e)
            logger.warning(f"Statement failed: {sql} ({message})")
            return StatementOutcome(sql=sql, success=False, error_message=message)

        return StatementOutcome(
            sql=sql, success=True, rows=convert_rows_to_json_safe(rows)
        )

    async def get_foreign_key_checks(self) -> bool:
        return await self.adapter.get_foreign_key_checks(self.conn)

    async def set_foreign_key_checks(self, enabled: bool) -> None:
        await self.adapter.set_foreign_key_checks(self.conn, enabled)

    async def classify_views(self, database: str, names: list[str]) -> set[str]:
        """Names among ``names`` that are views."""
        return await self.adapter.get_view_names(self.conn, database, names)

    async def get_table_descriptors(self, database: str) -> list[TableDescriptor]:
        return await self.adapter.get_table_descriptors(self.conn, database)

    async def count_rows_exact(
        self, database: str, table: str, use_cache: bool = True
    ) -> int:
        """
        Exact row count, served from the cache when still fresh.

        Args:
            database: Database name
            table: Table name
            use_cache: Whether a cached count may be returned

        Returns:
            Number of rows
        """
        if use_cache:
            cached = self.row_counts.get(database, table)
            if cached is not None:
                return cached

        count = await self.adapter.count_rows(self.conn, database, table)
        self.row_counts.put(database, table, count)
        return count

    async def count_rows_bounded(
        self, database: str, table: str, cap: int
    ) -> tuple[int, bool]:
        """
        Count rows but read no more than ``cap`` of them.

        Returns:
            Tuple of (count, whether the cap was reached)
        """
        count = await self.adapter.count_rows(self.conn, database, table, limit=cap)
        return count, count >= cap

    async def count_tables(self, database: str) -> int:
        return await self.adapter.count_tables(self.conn, database)

    async def list_databases(self) -> list[str]:
        return await self.adapter.list_databases(self.conn)

    async def copy_privileges(
        self,
        source_database: str,
        source_table: str,
        target_database: str,
        target_table: str,
    ) -> Optional[str]:
        """
        Copy grants to a copied table.

        Returns:
            Server error message, or None on success
        """
        try:
            await self.adapter.copy_privileges(
                self.conn, source_database, source_table, target_database, target_table
            )
        except DBAPIError as e:
            return format_server_error(e)
        return None

    def forget_row_counts(self, database: str, tables: list[str]) -> None:
        self.row_counts.forget(database, tables)
