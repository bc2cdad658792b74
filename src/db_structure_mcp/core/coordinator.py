"""Execution of confirmed batch operations and their side effects."""

import logging
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING, AsyncGenerator, Optional

from db_structure_mcp.core.builder import new_names
from db_structure_mcp.core.relations import NullRelationStore, RelationMetadataStore
from db_structure_mcp.models.operation import (
    BatchOperation,
    ConfirmationState,
    ExecutionContext,
    ExecutionResult,
    OperationKind,
    Statement,
    StatementOutcome,
)

if TYPE_CHECKING:
    from db_structure_mcp.core.executor import StatementExecutor

logger = logging.getLogger(__name__)

SUCCESS_MESSAGE = "Your SQL query has been executed successfully."

ROW_COUNT_INVALIDATING_KINDS = frozenset(
    {
        OperationKind.DROP,
        OperationKind.TRUNCATE,
        OperationKind.RENAME_ADD_PREFIX,
        OperationKind.RENAME_REPLACE_PREFIX,
        OperationKind.COPY_CHANGE_PREFIX,
        OperationKind.COPY_EXACT,
    }
)


@asynccontextmanager
async def suspended_foreign_key_checks(
    executor: "StatementExecutor", enabled: bool = False
) -> AsyncGenerator[bool, None]:
    """
    Run a block with FOREIGN_KEY_CHECKS set to ``enabled``.

    The previous session value is restored on every exit path.

    Yields:
        The value in effect before the block
    """
    previous = await executor.get_foreign_key_checks()
    await executor.set_foreign_key_checks(enabled)
    try:
        yield previous
    finally:
        await executor.set_foreign_key_checks(previous)


def corrected_position(position: int, remaining: int, max_table_list: int) -> Optional[int]:
    """
    New listing offset after objects were removed, or None if still valid.

    Args:
        position: Current listing offset
        remaining: Number of objects left in the database
        max_table_list: Objects per listing page

    Returns:
        Offset of the last non-empty page, or None
    """
    if position <= 0 or position < remaining:
        return None
    return max(0, (remaining - 1) // max_table_list * max_table_list)


class ExecutionCoordinator:
    """Runs built statements and assembles the execution result."""

    def __init__(
        self,
        executor: "StatementExecutor",
        relations: Optional[RelationMetadataStore] = None,
    ):
        """
        Initialize execution coordinator.

        Args:
            executor: Statement executor bound to the request's connection
            relations: Store notified about dropped tables
        """
        self.executor = executor
        self.relations = relations or NullRelationStore()

    async def execute(
        self,
        operation: BatchOperation,
        statements: list[Statement],
        context: Optional[ExecutionContext] = None,
        confirmation: ConfirmationState = ConfirmationState.CONFIRMED_YES,
    ) -> ExecutionResult:
        """
        Execute a confirmed operation.

        Failed statements are reported, never retried or rolled back; the
        remaining statements still run.

        Args:
            operation: Confirmed operation
            statements: Statements built for the operation
            context: Listing state (position, page size)
            confirmation: How the operation was confirmed

        Returns:
            Execution result with per-statement outcomes
        """
        context = context or ExecutionContext()
        kind = operation.kind
        database = operation.database

        if not statements:
            return ExecutionResult(
                operation_kind=kind,
                succeeded=True,
                message="No change",
                position=context.position,
                confirmation=confirmation,
            )

        logger.info(
            f"Executing {kind.value} on {len(operation.selection.names)} "
            f"object(s) in {database}"
        )
        await self.executor.use_database(database)

        if kind is OperationKind.DROP:
            for table in operation.selection.tables:
                await self.relations.table_dropped(self.executor.conn, database, table)

        if kind.is_destructive:
            async with suspended_foreign_key_checks(
                self.executor, operation.parameters.foreign_key_checks
            ):
                outcomes, failed_items = await self._run_statements(kind, statements)
        else:
            outcomes, failed_items = await self._run_statements(kind, statements)

        errors = [o.error_message for o in outcomes if not o.success and o.error_message]
        errors.extend(await self._adjust_privileges(operation, failed_items))

        if kind in ROW_COUNT_INVALIDATING_KINDS:
            self.executor.forget_row_counts(database, list(operation.selection.names))
            target_database, targets = new_names(operation)
            if targets:
                self.executor.forget_row_counts(target_database, targets)

        position = context.position
        pagination_adjusted = False
        if kind.is_destructive and any(o.success for o in outcomes):
            remaining = await self.executor.count_tables(database)
            new_position = corrected_position(
                context.position, remaining, context.max_table_list
            )
            if new_position is not None:
                position = new_position
                pagination_adjusted = True

        rows = []
        for outcome in outcomes:
            rows.extend(outcome.rows or [])

        succeeded = not errors
        if not succeeded:
            logger.warning(f"{kind.value} in {database} finished with {len(errors)} error(s)")

        return ExecutionResult(
            operation_kind=kind,
            succeeded=succeeded,
            sql_executed="\n".join(f"{o.sql};" for o in outcomes),
            outcomes=outcomes,
            error_message="\n".join(errors) if errors else None,
            message=SUCCESS_MESSAGE if succeeded else None,
            pagination_adjusted=pagination_adjusted,
            position=position,
            rows=rows,
            confirmation=confirmation,
        )

    async def _run_statements(
        self, kind: OperationKind, statements: list[Statement]
    ) -> tuple[list[StatementOutcome], set[str]]:
        """
        Run statements one after another.

        Once a per-item statement fails, the remaining statements of that
        item are skipped; other items still run.

        Returns:
            Tuple of (outcomes of the statements sent, names of failed items)
        """
        outcomes = []
        failed_items: set[str] = set()

        for statement in statements:
            if not kind.is_combined and failed_items.intersection(statement.targets):
                continue

            if kind.is_maintenance:
                outcome = await self.executor.query_rows(statement.sql)
            else:
                outcome = await self.executor.execute_statement(statement.sql)

            outcomes.append(outcome)
            if not outcome.success:
                failed_items.update(statement.targets)

        return outcomes, failed_items

    async def _adjust_privileges(
        self, operation: BatchOperation, failed_items: set[str]
    ) -> list[str]:
        params = operation.parameters
        if operation.kind is not OperationKind.COPY_EXACT or not params.adjust_privileges:
            return []
        # Set for every COPY_EXACT by BatchOperation.check_parameters
        assert params.target_database is not None

        errors = []
        for name in operation.selection.names:
            if name in failed_items:
                continue
            error = await self.executor.copy_privileges(
                operation.database, name, params.target_database, name
            )
            if error:
                errors.append(f"Privileges of {name} not copied: {error}")
        return errors
