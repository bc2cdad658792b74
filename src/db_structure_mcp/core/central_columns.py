"""Central column list: shared column definitions reused across tables."""

import logging
import re
from abc import ABC, abstractmethod
from typing import Any, Optional

from sqlalchemy import bindparam, text
from sqlalchemy.exc import DBAPIError
from sqlalchemy.ext.asyncio import AsyncConnection

from db_structure_mcp.utils.sql import backquote, qualified_name

logger = logging.getLogger(__name__)

COLUMN_TYPE_PATTERN = re.compile(r"^(?P<type>[a-zA-Z]+)(?:\((?P<length>[^)]*)\))?")


def split_column_type(column_type: str) -> tuple[str, str]:
    """Split ``varchar(64)`` into ``("varchar", "64")``."""
    match = COLUMN_TYPE_PATTERN.match(column_type)
    if not match:
        return column_type, ""
    return match.group("type"), match.group("length") or ""


class CentralColumnsStore(ABC):
    """Administrative actions on the central column list."""

    @abstractmethod
    async def sync_unique_columns(
        self, conn: AsyncConnection, database: str, tables: list[str]
    ) -> Optional[str]:
        """Add the columns of ``tables`` missing from the list. Returns an error or None."""
        ...

    @abstractmethod
    async def delete_columns(
        self, conn: AsyncConnection, database: str, tables: list[str]
    ) -> Optional[str]:
        """Remove the columns of ``tables`` from the list. Returns an error or None."""
        ...

    @abstractmethod
    async def make_consistent(
        self, conn: AsyncConnection, database: str, tables: list[str]
    ) -> Optional[str]:
        """Alter columns of ``tables`` to match the list. Returns an error or None."""
        ...


class ConfigStorageCentralColumns(CentralColumnsStore):
    """Central columns kept in a table of the configuration storage database."""

    def __init__(self, storage_db: str, table: str = "pma__central_columns"):
        self.table_ref = qualified_name(table, storage_db)

    async def _table_columns(
        self, conn: AsyncConnection, database: str, tables: list[str]
    ) -> list[dict[str, Any]]:
        query = text("""
            SELECT TABLE_NAME, COLUMN_NAME, COLUMN_TYPE, COLLATION_NAME,
                   IS_NULLABLE, EXTRA, COLUMN_DEFAULT
            FROM information_schema.COLUMNS
            WHERE TABLE_SCHEMA = :database AND TABLE_NAME IN :tables
            ORDER BY TABLE_NAME, ORDINAL_POSITION
        """).bindparams(bindparam("tables", expanding=True))

        result = await conn.execute(query, {"database": database, "tables": tables})
        columns = list(result.keys())
        return [dict(zip(columns, row)) for row in result.fetchall()]

    async def _central_columns(
        self, conn: AsyncConnection, database: str
    ) -> dict[str, dict[str, Any]]:
        result = await conn.execute(
            text(
                f"SELECT col_name, col_type, col_length, col_isNull "
                f"FROM {self.table_ref} WHERE db_name = :database"
            ),
            {"database": database},
        )
        return {
            row[0]: {"type": row[1], "length": row[2], "nullable": bool(row[3])}
            for row in result.fetchall()
        }

    async def sync_unique_columns(
        self, conn: AsyncConnection, database: str, tables: list[str]
    ) -> Optional[str]:
        try:
            existing = await self._central_columns(conn, database)
            skipped: list[str] = []
            added = 0
            for column in await self._table_columns(conn, database, tables):
                name = column["COLUMN_NAME"]
                if name in existing:
                    if name not in skipped:
                        skipped.append(name)
                    continue

                col_type, col_length = split_column_type(column["COLUMN_TYPE"])
                await conn.execute(
                    text(
                        f"INSERT INTO {self.table_ref} (db_name, col_name, col_type, "
                        "col_length, col_collation, col_isNull, col_extra, col_default) "
                        "VALUES (:database, :name, :type, :length, :collation, "
                        ":nullable, :extra, :default)"
                    ),
                    {
                        "database": database,
                        "name": name,
                        "type": col_type,
                        "length": col_length,
                        "collation": column["COLLATION_NAME"] or "",
                        "nullable": 1 if column["IS_NULLABLE"] == "YES" else 0,
                        "extra": column["EXTRA"] or "",
                        "default": column["COLUMN_DEFAULT"] or "",
                    },
                )
                existing[name] = {"type": col_type, "length": col_length}
                added += 1
        except DBAPIError as e:
            return f"Central column list unavailable: {e.orig}"

        logger.info(f"Added {added} column(s) of {database} to the central list")
        if skipped and not added:
            return (
                "Could not add "
                + ", ".join(skipped)
                + " as they already exist in the central list"
            )
        return None

    async def delete_columns(
        self, conn: AsyncConnection, database: str, tables: list[str]
    ) -> Optional[str]:
        try:
            names = sorted(
                {c["COLUMN_NAME"] for c in await self._table_columns(conn, database, tables)}
            )
            if not names:
                return None
            query = text(
                f"DELETE FROM {self.table_ref} "
                "WHERE db_name = :database AND col_name IN :names"
            ).bindparams(bindparam("names", expanding=True))
            await conn.execute(query, {"database": database, "names": names})
        except DBAPIError as e:
            return f"Central column list unavailable: {e.orig}"
        return None

    async def make_consistent(
        self, conn: AsyncConnection, database: str, tables: list[str]
    ) -> Optional[str]:
        try:
            central = await self._central_columns(conn, database)
            columns = await self._table_columns(conn, database, tables)
        except DBAPIError as e:
            return f"Central column list unavailable: {e.orig}"

        errors = []
        for column in columns:
            definition = central.get(column["COLUMN_NAME"])
            if definition is None:
                continue

            col_type = definition["type"]
            if definition["length"]:
                col_type += f"({definition['length']})"
            nullability = "NULL" if definition["nullable"] else "NOT NULL"
            table_ref = qualified_name(column["TABLE_NAME"], database)
            sql = (
                f"ALTER TABLE {table_ref} MODIFY "
                f"{backquote(column['COLUMN_NAME'])} {col_type} {nullability}"
            )
            try:
                await conn.execute(text(sql))
            except DBAPIError as e:
                errors.append(f"{column['TABLE_NAME']}.{column['COLUMN_NAME']}: {e.orig}")

        if errors:
            return "; ".join(errors)
        return None
