"""Entry point for batch requests on a selection of tables."""

import logging
from typing import TYPE_CHECKING, Optional, Union

from pydantic import BaseModel, Field

from db_structure_mcp.core.builder import build_statements
from db_structure_mcp.core.central_columns import CentralColumnsStore
from db_structure_mcp.core.classifier import classify
from db_structure_mcp.core.confirmation import ConfirmationWorkflow
from db_structure_mcp.core.coordinator import SUCCESS_MESSAGE, ExecutionCoordinator
from db_structure_mcp.core.relations import RelationMetadataStore
from db_structure_mcp.errors import CollaboratorUnavailableError
from db_structure_mcp.models.config import StructureConfig
from db_structure_mcp.models.operation import (
    BatchOperation,
    Classification,
    ConfirmationPolicy,
    ConfirmationState,
    CopyMode,
    CopyTargetPrompt,
    DelegatedAction,
    ExecutionContext,
    ExecutionResult,
    OperationParameters,
    Preview,
    Selection,
)

if TYPE_CHECKING:
    from db_structure_mcp.core.executor import StatementExecutor

logger = logging.getLogger(__name__)

BatchResponse = Union[Preview, ExecutionResult, CopyTargetPrompt, DelegatedAction]


class BatchRequest(BaseModel):
    """Raw batch request as submitted by the operator."""

    action: str = Field(..., description="Action identifier (drop_tbl, check_tbl, ...)")
    database: str = Field(..., description="Database holding the selected tables")
    tables: list[str] = Field(default_factory=list, description="Selected names in order")
    add_prefix: Optional[str] = Field(None, description="Prefix to prepend")
    from_prefix: Optional[str] = Field(None, description="Prefix to replace")
    to_prefix: Optional[str] = Field(None, description="Replacement prefix")
    target_database: Optional[str] = Field(None, description="Copy destination")
    copy_mode: CopyMode = Field(default="data", description="What a copy carries over")
    adjust_privileges: bool = Field(default=False, description="Copy table privileges")
    foreign_key_checks: bool = Field(
        default=False, description="FOREIGN_KEY_CHECKS value while dropping or emptying"
    )
    confirmed: bool = Field(default=False, description="Operator answered Yes to a preview")
    token: Optional[str] = Field(None, description="Token returned with the preview")
    position: int = Field(default=0, ge=0, description="Current listing offset")

    def selection(self) -> Selection:
        # Repeated names collapse onto their first occurrence
        return Selection(names=tuple(dict.fromkeys(self.tables)))

    def parameters(self) -> OperationParameters:
        return OperationParameters(
            add_prefix=self.add_prefix,
            from_prefix=self.from_prefix,
            to_prefix=self.to_prefix,
            target_database=self.target_database,
            copy_mode=self.copy_mode,
            adjust_privileges=self.adjust_privileges,
            foreign_key_checks=self.foreign_key_checks,
        )


class BatchService:
    """
    Runs a batch request through classification, confirmation and execution.

    One service is bound to the executor of a single request, so every
    statement of the request shares a connection.
    """

    def __init__(
        self,
        executor: "StatementExecutor",
        config: StructureConfig,
        relations: Optional[RelationMetadataStore] = None,
        central_columns: Optional[CentralColumnsStore] = None,
        workflow: Optional[ConfirmationWorkflow] = None,
    ):
        """
        Initialize batch service.

        Args:
            executor: Statement executor of the current request
            config: Structure settings
            relations: Store notified about dropped tables
            central_columns: Central column list for administrative actions
            workflow: Confirmation workflow (built from config when omitted)
        """
        self.executor = executor
        self.config = config
        self.central_columns = central_columns
        self.workflow = workflow or ConfirmationWorkflow(
            config.confirmation_secret, config.confirmation_ttl
        )
        self.coordinator = ExecutionCoordinator(executor, relations)

    async def submit(self, request: BatchRequest) -> BatchResponse:
        """
        Handle one batch request.

        Args:
            request: Raw request

        Returns:
            A preview awaiting confirmation, the execution result, a prompt
            for the copy destination, or a delegation marker

        Raises:
            UnknownActionError: If the action is not recognized
            InconsistentReconfirmationError: If a confirmation does not match its preview
            CollaboratorUnavailableError: If a central-column action has no storage
        """
        selection = request.selection()
        classification = classify(request.action, selection)

        if selection.is_empty:
            return ExecutionResult(
                operation_kind=classification.kind,
                succeeded=True,
                message="No change",
                position=request.position,
            )

        policy = classification.policy
        if policy is ConfirmationPolicy.DELEGATED:
            return DelegatedAction(
                action=request.action, database=request.database, selection=selection
            )

        state = self.workflow.state_for(classification, request.confirmed)
        if policy is ConfirmationPolicy.BYPASSED:
            return await self._run_administrative(classification, request, selection)

        assert classification.kind is not None
        views = await self.executor.classify_views(request.database, list(selection.names))
        selection = Selection(names=selection.names, views=frozenset(views))

        if policy is ConfirmationPolicy.TARGET_PICKER and not request.target_database:
            databases = await self.executor.list_databases()
            return CopyTargetPrompt(
                action=request.action,
                database=request.database,
                selection=selection,
                target_databases=[db for db in databases if db != request.database],
            )

        operation = BatchOperation(
            kind=classification.kind,
            database=request.database,
            selection=selection,
            parameters=request.parameters(),
        )

        if state is ConfirmationState.UNCONFIRMED:
            foreign_key_checks = await self.executor.get_foreign_key_checks()
            return self.workflow.preview(request.action, operation, foreign_key_checks)

        if policy is ConfirmationPolicy.CONFIRM:
            self.workflow.verify(request.token, request.action, operation)

        context = ExecutionContext(
            position=request.position, max_table_list=self.config.max_table_list
        )
        return await self.coordinator.execute(
            operation, build_statements(operation), context, state
        )

    async def _run_administrative(
        self,
        classification: Classification,
        request: BatchRequest,
        selection: Selection,
    ) -> ExecutionResult:
        if self.central_columns is None:
            raise CollaboratorUnavailableError(
                "Central columns require CONFIG_STORAGE_DB to be configured"
            )

        handlers = {
            "sync_unique_columns_central_list": self.central_columns.sync_unique_columns,
            "delete_unique_columns_central_list": self.central_columns.delete_columns,
            "make_consistent_with_central_list": self.central_columns.make_consistent,
        }
        handler = handlers[classification.action]

        logger.info(f"Running {classification.action} on {request.database}")
        error = await handler(
            self.executor.conn, request.database, list(selection.names)
        )
        return ExecutionResult(
            succeeded=error is None,
            error_message=error,
            message=SUCCESS_MESSAGE if error is None else None,
            position=request.position,
            confirmation=ConfirmationState.BYPASSED,
        )
