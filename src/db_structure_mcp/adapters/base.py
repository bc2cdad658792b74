"""Base adapter abstract class for database-specific implementations."""

from abc import ABC, abstractmethod
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncConnection

from db_structure_mcp.models.table import TableDescriptor
from db_structure_mcp.utils.sql import qualified_name


class BaseAdapter(ABC):
    """Base adapter defining database-specific dictionary and session queries."""

    SYSTEM_SCHEMAS: frozenset[str] = frozenset()

    @abstractmethod
    async def get_table_descriptors(
        self, conn: AsyncConnection, database: str
    ) -> list[TableDescriptor]:
        """
        Read dictionary metadata for every table and view of a database.

        Args:
            conn: Database connection
            database: Database name

        Returns:
            Table descriptors ordered by name
        """
        ...

    @abstractmethod
    async def get_view_names(
        self, conn: AsyncConnection, database: str, names: list[str]
    ) -> set[str]:
        """
        Report which of the given names are views.

        Args:
            conn: Database connection
            database: Database name
            names: Candidate object names

        Returns:
            Subset of names that are views
        """
        ...

    @abstractmethod
    async def count_rows(
        self,
        conn: AsyncConnection,
        database: str,
        table: str,
        limit: Optional[int] = None,
    ) -> int:
        """
        Count rows with a live query.

        Args:
            conn: Database connection
            database: Database name
            table: Table or view name
            limit: Stop counting at this many rows (None for an exact count)

        Returns:
            Number of rows, at most ``limit`` when given
        """
        ...

    @abstractmethod
    async def count_tables(self, conn: AsyncConnection, database: str) -> int:
        """Number of tables and views in a database."""
        ...

    @abstractmethod
    async def list_databases(self, conn: AsyncConnection) -> list[str]:
        """Names of the databases visible to the current user."""
        ...

    @abstractmethod
    async def get_foreign_key_checks(self, conn: AsyncConnection) -> bool:
        """Current session value of foreign key checking."""
        ...

    @abstractmethod
    async def set_foreign_key_checks(
        self, conn: AsyncConnection, enabled: bool
    ) -> None:
        """Change the session value of foreign key checking."""
        ...

    @abstractmethod
    async def copy_privileges(
        self,
        conn: AsyncConnection,
        source_database: str,
        source_table: str,
        target_database: str,
        target_table: str,
    ) -> None:
        """
        Grant on the copied table the privileges held on the source table.

        Args:
            conn: Database connection
            source_database: Database of the original table
            source_table: Original table name
            target_database: Database of the copy
            target_table: Name of the copy
        """
        ...

    def is_system_schema(self, database: str) -> bool:
        """Whether the database is one of the server's own schemas."""
        return database.lower() in self.SYSTEM_SCHEMAS

    def _build_table_reference(self, table_name: str, database: Optional[str]) -> str:
        """Build qualified table reference."""
        return qualified_name(table_name, database)
