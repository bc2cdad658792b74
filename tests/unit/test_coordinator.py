"""Unit tests for batch execution against a recording executor."""

import pytest

from db_structure_mcp.core.builder import build_statements
from db_structure_mcp.core.coordinator import (
    SUCCESS_MESSAGE,
    ExecutionCoordinator,
    corrected_position,
    suspended_foreign_key_checks,
)
from db_structure_mcp.models.operation import (
    BatchOperation,
    ExecutionContext,
    OperationKind,
    OperationParameters,
    Selection,
)


def make_operation(kind, names, views=(), **params) -> BatchOperation:
    return BatchOperation(
        kind=kind,
        database="shop",
        selection=Selection(names=tuple(names), views=frozenset(views)),
        parameters=OperationParameters(**params),
    )


async def run(executor, operation, relations=None, context=None):
    coordinator = ExecutionCoordinator(executor, relations)
    return await coordinator.execute(operation, build_statements(operation), context)


class TestDrop:
    """Test dropping tables and views."""

    @pytest.mark.asyncio
    async def test_drop_table_and_view(self, fake_executor, relation_store):
        operation = make_operation(OperationKind.DROP, ["users", "logs"], views=["logs"])

        result = await run(fake_executor, operation, relation_store)

        assert result.succeeded
        assert result.message == SUCCESS_MESSAGE
        assert sorted(fake_executor.statements) == ["DROP TABLE `users`", "DROP VIEW `logs`"]
        assert relation_store.dropped == [("shop", "users")]
        assert relation_store.connections == [fake_executor.conn]
        assert fake_executor.databases_used == ["shop"]

    @pytest.mark.asyncio
    async def test_view_failure_does_not_block_table_drop(self, fake_executor):
        fake_executor.failures["DROP VIEW `logs`"] = "#1051 - Unknown table 'shop.logs'"
        operation = make_operation(OperationKind.DROP, ["users", "logs"], views=["logs"])

        result = await run(fake_executor, operation)

        assert not result.succeeded
        assert "DROP TABLE `users`" in fake_executor.statements
        assert result.error_message == "#1051 - Unknown table 'shop.logs'"
        assert [o.sql for o in result.failed_statements] == ["DROP VIEW `logs`"]

    @pytest.mark.asyncio
    async def test_drop_invalidates_row_counts(self, fake_executor):
        operation = make_operation(OperationKind.DROP, ["users"])

        await run(fake_executor, operation)

        assert fake_executor.forgotten == [("shop", ["users"])]


class TestRowCountInvalidation:
    """Test which cached counts are forgotten after renames and copies."""

    @pytest.mark.asyncio
    async def test_rename_forgets_old_and_new_names(self, fake_executor):
        operation = make_operation(
            OperationKind.RENAME_REPLACE_PREFIX, ["wp_users"], from_prefix="wp_", to_prefix="blog_"
        )

        await run(fake_executor, operation)

        assert fake_executor.forgotten == [
            ("shop", ["wp_users"]),
            ("shop", ["blog_users"]),
        ]

    @pytest.mark.asyncio
    async def test_copy_forgets_target_tables(self, fake_executor):
        operation = make_operation(
            OperationKind.COPY_EXACT, ["t"], target_database="archive", copy_mode="dataonly"
        )

        await run(fake_executor, operation)

        assert ("archive", ["t"]) in fake_executor.forgotten

    @pytest.mark.asyncio
    async def test_copy_with_new_prefix_forgets_copies(self, fake_executor):
        operation = make_operation(
            OperationKind.COPY_CHANGE_PREFIX, ["wp_posts"], from_prefix="wp_", to_prefix="old_"
        )

        await run(fake_executor, operation)

        assert ("shop", ["old_posts"]) in fake_executor.forgotten

    @pytest.mark.asyncio
    async def test_maintenance_keeps_cached_counts(self, fake_executor):
        await run(fake_executor, make_operation(OperationKind.ANALYZE, ["a"]))

        assert fake_executor.forgotten == []


class TestForeignKeyChecks:
    """Test FOREIGN_KEY_CHECKS handling around destructive statements."""

    @pytest.mark.asyncio
    async def test_restored_after_success(self, fake_executor):
        fake_executor.foreign_key_checks = True
        operation = make_operation(OperationKind.TRUNCATE, ["a", "b"])

        result = await run(fake_executor, operation)

        assert result.succeeded
        assert fake_executor.fk_history == [False, True]
        assert fake_executor.foreign_key_checks is True

    @pytest.mark.asyncio
    async def test_restored_after_failed_statement(self, fake_executor):
        fake_executor.foreign_key_checks = True
        fake_executor.failures["TRUNCATE `a`"] = "#1701 - Cannot truncate a table referenced in a foreign key constraint"
        operation = make_operation(OperationKind.TRUNCATE, ["a", "b"])

        result = await run(fake_executor, operation)

        assert not result.succeeded
        assert fake_executor.foreign_key_checks is True
        assert fake_executor.fk_history == [False, True]

    @pytest.mark.asyncio
    async def test_restored_after_exception(self, fake_executor):
        fake_executor.foreign_key_checks = True

        with pytest.raises(RuntimeError):
            async with suspended_foreign_key_checks(fake_executor) as previous:
                assert previous is True
                assert fake_executor.foreign_key_checks is False
                raise RuntimeError("connection lost")

        assert fake_executor.foreign_key_checks is True

    @pytest.mark.asyncio
    async def test_requested_value_is_used(self, fake_executor):
        fake_executor.foreign_key_checks = False
        operation = make_operation(OperationKind.DROP, ["a"], foreign_key_checks=True)

        await run(fake_executor, operation)

        assert fake_executor.fk_history == [True, False]

    @pytest.mark.asyncio
    async def test_not_touched_for_renames(self, fake_executor):
        operation = make_operation(OperationKind.RENAME_ADD_PREFIX, ["a"], add_prefix="x_")

        await run(fake_executor, operation)

        assert fake_executor.fk_history == []


class TestPerItemFailures:
    """Test report-and-continue for per-item statements."""

    @pytest.mark.asyncio
    async def test_rename_continues_after_failure(self, fake_executor):
        fake_executor.failures["ALTER TABLE `b` RENAME `x_b`"] = "#1050 - Table 'x_b' already exists"
        operation = make_operation(
            OperationKind.RENAME_ADD_PREFIX, ["a", "b", "c"], add_prefix="x_"
        )

        result = await run(fake_executor, operation)

        assert fake_executor.statements == [
            "ALTER TABLE `a` RENAME `x_a`",
            "ALTER TABLE `b` RENAME `x_b`",
            "ALTER TABLE `c` RENAME `x_c`",
        ]
        assert not result.succeeded
        assert result.error_message == "#1050 - Table 'x_b' already exists"
        assert len(result.outcomes) == 3

    @pytest.mark.asyncio
    async def test_failed_create_skips_insert_of_same_table(self, fake_executor):
        fake_executor.failures["CREATE TABLE `archive`.`a` LIKE `shop`.`a`"] = "#1050 - exists"
        operation = make_operation(
            OperationKind.COPY_EXACT, ["a", "b"], target_database="archive"
        )

        result = await run(fake_executor, operation)

        assert fake_executor.statements == [
            "CREATE TABLE `archive`.`a` LIKE `shop`.`a`",
            "CREATE TABLE `archive`.`b` LIKE `shop`.`b`",
            "INSERT INTO `archive`.`b` SELECT * FROM `shop`.`b`",
        ]
        assert not result.succeeded


class TestCopyPrivileges:
    """Test privilege adjustment after copying tables."""

    @pytest.mark.asyncio
    async def test_privileges_copied_for_successful_copies(self, fake_executor):
        fake_executor.failures["CREATE TABLE `archive`.`b` LIKE `shop`.`b`"] = "#1050 - exists"
        operation = make_operation(
            OperationKind.COPY_EXACT,
            ["a", "b"],
            target_database="archive",
            adjust_privileges=True,
        )

        await run(fake_executor, operation)

        assert fake_executor.privilege_copies == [("shop", "a", "archive", "a")]

    @pytest.mark.asyncio
    async def test_privilege_failure_is_reported(self, fake_executor):
        fake_executor.privilege_failures["a"] = "#1142 - INSERT command denied"
        operation = make_operation(
            OperationKind.COPY_EXACT,
            ["a"],
            target_database="archive",
            adjust_privileges=True,
        )

        result = await run(fake_executor, operation)

        assert not result.succeeded
        assert "#1142 - INSERT command denied" in result.error_message

    @pytest.mark.asyncio
    async def test_privileges_untouched_by_default(self, fake_executor):
        operation = make_operation(OperationKind.COPY_EXACT, ["a"], target_database="archive")

        await run(fake_executor, operation)

        assert fake_executor.privilege_copies == []


class TestMaintenance:
    """Test maintenance statements returning diagnostic rows."""

    @pytest.mark.asyncio
    async def test_rows_are_collected(self, fake_executor):
        operation = make_operation(OperationKind.CHECK, ["a", "b"])

        result = await run(fake_executor, operation)

        assert result.succeeded
        assert fake_executor.statements == ["CHECK TABLE `a`, `b`"]
        assert result.rows[0]["Msg_text"] == "OK"
        assert result.sql_executed == "CHECK TABLE `a`, `b`;"
        assert fake_executor.fk_history == []


class TestPagination:
    """Test listing position correction after drop/truncate."""

    def test_position_still_valid(self):
        assert corrected_position(250, 300, 250) is None

    def test_position_zero_never_changes(self):
        assert corrected_position(0, 0, 250) is None

    def test_position_past_end(self):
        assert corrected_position(500, 400, 250) == 250

    def test_position_is_page_aligned(self):
        assert corrected_position(500, 300, 250) == 250
        assert corrected_position(750, 500, 250) == 250

    def test_everything_dropped(self):
        assert corrected_position(250, 0, 250) == 0

    def test_position_clamped_to_zero(self):
        assert corrected_position(250, 100, 250) == 0

    @pytest.mark.asyncio
    async def test_drop_adjusts_position(self, fake_executor):
        fake_executor.remaining_tables = 260
        operation = make_operation(OperationKind.DROP, ["a"])

        result = await run(
            fake_executor, operation, context=ExecutionContext(position=500, max_table_list=250)
        )

        assert result.pagination_adjusted
        assert result.position == 250

    @pytest.mark.asyncio
    async def test_failed_drop_keeps_position(self, fake_executor):
        fake_executor.failures["DROP TABLE `a`"] = "#1051 - Unknown table"
        operation = make_operation(OperationKind.DROP, ["a"])

        result = await run(
            fake_executor, operation, context=ExecutionContext(position=500)
        )

        assert not result.pagination_adjusted
        assert result.position == 500


class TestEmptyStatements:
    """Test operations without statements."""

    @pytest.mark.asyncio
    async def test_no_change(self, fake_executor):
        operation = make_operation(OperationKind.DROP, [])

        result = await run(fake_executor, operation)

        assert result.succeeded
        assert result.message == "No change"
        assert fake_executor.statements == []
        assert fake_executor.databases_used == []
