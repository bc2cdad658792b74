"""MySQL/MariaDB adapter."""

import logging
from typing import Optional

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncConnection

from db_structure_mcp.adapters.base import BaseAdapter
from db_structure_mcp.models.table import VIEW_TABLE_TYPES, TableDescriptor

logger = logging.getLogger(__name__)


class MySQLAdapter(BaseAdapter):
    """MySQL and MariaDB dictionary and session queries."""

    SYSTEM_SCHEMAS = frozenset(
        {"information_schema", "performance_schema", "mysql", "sys"}
    )

    async def get_table_descriptors(
        self, conn: AsyncConnection, database: str
    ) -> list[TableDescriptor]:
        """Read table status from information_schema.TABLES."""
        query = text("""
            SELECT
                TABLE_NAME,
                ENGINE,
                TABLE_TYPE,
                TABLE_ROWS,
                DATA_LENGTH,
                INDEX_LENGTH,
                DATA_FREE,
                TABLE_COLLATION,
                TABLE_COMMENT,
                CREATE_TIME,
                UPDATE_TIME,
                CHECK_TIME
            FROM information_schema.TABLES
            WHERE TABLE_SCHEMA = :database
            ORDER BY TABLE_NAME
        """)

        result = await conn.execute(query, {"database": database})
        rows = result.fetchall()

        return [
            TableDescriptor(
                name=row[0],
                engine=row[1],
                table_type=row[2] or "BASE TABLE",
                rows=int(row[3]) if row[3] is not None else None,
                data_length=int(row[4]) if row[4] else 0,
                index_length=int(row[5]) if row[5] else 0,
                data_free=int(row[6]) if row[6] is not None else None,
                collation=row[7] or None,
                comment=row[8] or None,
                create_time=row[9],
                update_time=row[10],
                check_time=row[11],
            )
            for row in rows
        ]

    async def get_view_names(
        self, conn: AsyncConnection, database: str, names: list[str]
    ) -> set[str]:
        """Select the views among the given names."""
        if not names:
            return set()

        query = text("""
            SELECT TABLE_NAME, TABLE_TYPE
            FROM information_schema.TABLES
            WHERE TABLE_SCHEMA = :database
        """)

        result = await conn.execute(query, {"database": database})
        views = {row[0] for row in result.fetchall() if row[1] in VIEW_TABLE_TYPES}
        return views.intersection(names)

    async def count_rows(
        self,
        conn: AsyncConnection,
        database: str,
        table: str,
        limit: Optional[int] = None,
    ) -> int:
        """Count rows, optionally stopping at ``limit`` rows."""
        table_ref = self._build_table_reference(table, database)

        if limit is None:
            query = text(f"SELECT COUNT(*) FROM {table_ref}")
        else:
            # Reading at most `limit` rows keeps complex views cheap to count
            query = text(
                f"SELECT COUNT(*) FROM (SELECT 1 FROM {table_ref} LIMIT {int(limit)}) AS bounded"
            )

        result = await conn.execute(query)
        row = result.fetchone()
        count = int(row[0]) if row and row[0] is not None else 0
        logger.debug(f"Counted {count} rows in {table_ref} (limit={limit})")
        return count

    async def count_tables(self, conn: AsyncConnection, database: str) -> int:
        """Count tables and views in a database."""
        query = text("""
            SELECT COUNT(*)
            FROM information_schema.TABLES
            WHERE TABLE_SCHEMA = :database
        """)

        result = await conn.execute(query, {"database": database})
        row = result.fetchone()
        return int(row[0]) if row and row[0] else 0

    async def list_databases(self, conn: AsyncConnection) -> list[str]:
        """List databases visible to the current user."""
        result = await conn.execute(text("SHOW DATABASES"))
        return [str(row[0]) for row in result.fetchall()]

    async def get_foreign_key_checks(self, conn: AsyncConnection) -> bool:
        """Read @@SESSION.foreign_key_checks."""
        result = await conn.execute(text("SELECT @@SESSION.foreign_key_checks"))
        row = result.fetchone()
        return bool(row and int(row[0]))

    async def set_foreign_key_checks(
        self, conn: AsyncConnection, enabled: bool
    ) -> None:
        """Set FOREIGN_KEY_CHECKS for the current session."""
        await conn.execute(text(f"SET FOREIGN_KEY_CHECKS = {1 if enabled else 0}"))

    async def copy_privileges(
        self,
        conn: AsyncConnection,
        source_database: str,
        source_table: str,
        target_database: str,
        target_table: str,
    ) -> None:
        """Duplicate table and column grants of the source table."""
        params = {
            "source_database": source_database,
            "source_table": source_table,
            "target_database": target_database,
            "target_table": target_table,
        }

        await conn.execute(
            text("""
                INSERT IGNORE INTO mysql.tables_priv
                    (Host, Db, User, Table_name, Grantor, Table_priv, Column_priv)
                SELECT Host, :target_database, User, :target_table,
                       Grantor, Table_priv, Column_priv
                FROM mysql.tables_priv
                WHERE Db = :source_database AND Table_name = :source_table
            """),
            params,
        )
        await conn.execute(
            text("""
                INSERT IGNORE INTO mysql.columns_priv
                    (Host, Db, User, Table_name, Column_name, Column_priv)
                SELECT Host, :target_database, User, :target_table,
                       Column_name, Column_priv
                FROM mysql.columns_priv
                WHERE Db = :source_database AND Table_name = :source_table
            """),
            params,
        )
        await conn.execute(text("FLUSH PRIVILEGES"))
