"""Relation metadata kept alongside user tables in a configuration storage database."""

import logging
from abc import ABC, abstractmethod
from typing import Optional

from sqlalchemy import text
from sqlalchemy.exc import DBAPIError
from sqlalchemy.ext.asyncio import AsyncConnection

from db_structure_mcp.utils.sql import qualified_name

logger = logging.getLogger(__name__)

DEFAULT_STORAGE_TABLES = {
    "relation": "pma__relation",
    "table_info": "pma__table_info",
    "column_info": "pma__column_info",
    "table_coords": "pma__table_coords",
}


class RelationMetadataStore(ABC):
    """Tracks display and foreign-key relations between tables."""

    @abstractmethod
    async def table_dropped(
        self, conn: AsyncConnection, database: str, table: str
    ) -> None:
        """Forget everything recorded about a table that is being dropped."""
        ...


class NullRelationStore(RelationMetadataStore):
    """Used when no configuration storage database is set up."""

    async def table_dropped(
        self, conn: AsyncConnection, database: str, table: str
    ) -> None:
        logger.debug(f"No relation storage configured; skipping {database}.{table}")


class ConfigStorageRelationStore(RelationMetadataStore):
    """
    Relation metadata stored in tables of a dedicated database.

    Statements run on the caller's connection, so cleanup never needs a
    second pooled connection.
    """

    def __init__(self, storage_db: str, tables: Optional[dict[str, str]] = None):
        """
        Initialize relation store.

        Args:
            storage_db: Database holding the relation tables
            tables: Override of the storage table names
        """
        self.storage_db = storage_db
        self.tables = {**DEFAULT_STORAGE_TABLES, **(tables or {})}

    def _table(self, key: str) -> str:
        return qualified_name(self.tables[key], self.storage_db)

    def cleanup_queries(self) -> list[str]:
        """DELETE statements removing a table from every storage table."""
        return [
            f"DELETE FROM {self._table('column_info')} "
            "WHERE db_name = :database AND table_name = :table",
            f"DELETE FROM {self._table('table_info')} "
            "WHERE db_name = :database AND table_name = :table",
            f"DELETE FROM {self._table('table_coords')} "
            "WHERE db_name = :database AND table_name = :table",
            f"DELETE FROM {self._table('relation')} "
            "WHERE master_db = :database AND master_table = :table",
            f"DELETE FROM {self._table('relation')} "
            "WHERE foreign_db = :database AND foreign_table = :table",
        ]

    async def table_dropped(
        self, conn: AsyncConnection, database: str, table: str
    ) -> None:
        params = {"database": database, "table": table}
        for query in self.cleanup_queries():
            try:
                await conn.execute(text(query), params)
            except DBAPIError as e:
                # Missing storage tables must not block the drop itself
                logger.warning(
                    f"Relation cleanup for {database}.{table} failed: {e.orig}"
                )
