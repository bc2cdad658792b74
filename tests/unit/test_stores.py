"""Unit tests for configuration storage collaborators."""

from unittest.mock import AsyncMock, MagicMock

import pytest
from sqlalchemy.exc import DBAPIError

from db_structure_mcp.core.central_columns import (
    ConfigStorageCentralColumns,
    split_column_type,
)
from db_structure_mcp.core.relations import ConfigStorageRelationStore, NullRelationStore


def column_rows(*rows: tuple) -> MagicMock:
    """Result of the information_schema.COLUMNS query."""
    result = MagicMock()
    result.keys.return_value = [
        "TABLE_NAME",
        "COLUMN_NAME",
        "COLUMN_TYPE",
        "COLLATION_NAME",
        "IS_NULLABLE",
        "EXTRA",
        "COLUMN_DEFAULT",
    ]
    result.fetchall.return_value = list(rows)
    return result


class TestRelationStore:
    """Test relation cleanup statements."""

    def test_cleanup_queries_cover_every_storage_table(self):
        store = ConfigStorageRelationStore("pma_storage")

        queries = store.cleanup_queries()

        assert len(queries) == 5
        joined = "\n".join(queries)
        for table in ("pma__column_info", "pma__table_info", "pma__table_coords", "pma__relation"):
            assert f"`pma_storage`.`{table}`" in joined
        assert any("master_table = :table" in q for q in queries)
        assert any("foreign_table = :table" in q for q in queries)

    def test_table_names_can_be_overridden(self):
        store = ConfigStorageRelationStore("meta", tables={"relation": "relations"})

        queries = store.cleanup_queries()

        assert any("`meta`.`relations`" in q for q in queries)
        assert any("`meta`.`pma__table_info`" in q for q in queries)

    @pytest.mark.asyncio
    async def test_cleanup_runs_on_given_connection(self):
        conn = AsyncMock()
        store = ConfigStorageRelationStore("pma_storage")

        await store.table_dropped(conn, "shop", "users")

        assert conn.execute.await_count == 5
        for call in conn.execute.await_args_list:
            assert call.args[1] == {"database": "shop", "table": "users"}

    @pytest.mark.asyncio
    async def test_missing_storage_table_does_not_raise(self):
        conn = AsyncMock()
        conn.execute.side_effect = DBAPIError(
            "DELETE", {}, Exception("Table 'pma_storage.pma__relation' doesn't exist")
        )
        store = ConfigStorageRelationStore("pma_storage")

        await store.table_dropped(conn, "shop", "users")

        assert conn.execute.await_count == 5

    @pytest.mark.asyncio
    async def test_null_store_does_nothing(self):
        conn = AsyncMock()

        await NullRelationStore().table_dropped(conn, "shop", "users")

        conn.execute.assert_not_awaited()


class TestCentralColumns:
    """Test central column statements on the caller's connection."""

    @pytest.mark.asyncio
    async def test_delete_columns_of_selected_tables(self):
        conn = AsyncMock()
        conn.execute.side_effect = [
            column_rows(
                ("users", "id", "int(11)", None, "NO", "auto_increment", None),
                ("users", "name", "varchar(64)", "utf8mb4_general_ci", "YES", "", None),
                ("orders", "id", "int(11)", None, "NO", "", None),
            ),
            MagicMock(),
        ]
        store = ConfigStorageCentralColumns("pma_storage")

        error = await store.delete_columns(conn, "shop", ["users", "orders"])

        assert error is None
        assert conn.execute.await_count == 2
        delete_params = conn.execute.await_args_list[1].args[1]
        assert delete_params == {"database": "shop", "names": ["id", "name"]}

    @pytest.mark.asyncio
    async def test_unavailable_storage_reported(self):
        conn = AsyncMock()
        conn.execute.side_effect = DBAPIError(
            "SELECT", {}, Exception("Table 'pma_storage.pma__central_columns' doesn't exist")
        )
        store = ConfigStorageCentralColumns("pma_storage")

        error = await store.sync_unique_columns(conn, "shop", ["users"])

        assert error.startswith("Central column list unavailable")


class TestSplitColumnType:
    """Test column type parsing for the central list."""

    @pytest.mark.parametrize(
        "column_type,expected",
        [
            ("varchar(64)", ("varchar", "64")),
            ("int(10) unsigned", ("int", "10")),
            ("decimal(10,2)", ("decimal", "10,2")),
            ("enum('a','b')", ("enum", "'a','b'")),
            ("text", ("text", "")),
        ],
    )
    def test_split(self, column_type, expected):
        assert split_column_type(column_type) == expected
