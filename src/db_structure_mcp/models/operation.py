"""Batch operation, preview and execution result models."""

from enum import Enum
from typing import Any, Literal, Optional

from pydantic import BaseModel, Field, model_validator

CopyMode = Literal["structure", "data", "dataonly"]


class OperationKind(str, Enum):
    """Internal operation applied to every selected object."""

    DROP = "drop"
    TRUNCATE = "truncate"
    RENAME_ADD_PREFIX = "rename_add_prefix"
    RENAME_REPLACE_PREFIX = "rename_replace_prefix"
    COPY_CHANGE_PREFIX = "copy_change_prefix"
    COPY_EXACT = "copy_exact"
    CHECK = "check"
    OPTIMIZE = "optimize"
    ANALYZE = "analyze"
    REPAIR = "repair"
    CHECKSUM = "checksum"

    @property
    def is_maintenance(self) -> bool:
        """Statements that answer with diagnostic rows."""
        return self in MAINTENANCE_KINDS

    @property
    def is_destructive(self) -> bool:
        """Operations that run with foreign key checks suspended."""
        return self in (OperationKind.DROP, OperationKind.TRUNCATE)

    @property
    def is_combined(self) -> bool:
        """Operations that list every target behind a single verb."""
        return self is OperationKind.DROP or self in MAINTENANCE_KINDS


MAINTENANCE_KINDS = frozenset(
    {
        OperationKind.CHECK,
        OperationKind.OPTIMIZE,
        OperationKind.ANALYZE,
        OperationKind.REPAIR,
        OperationKind.CHECKSUM,
    }
)


class ConfirmationPolicy(str, Enum):
    """How a classified action reaches execution."""

    CONFIRM = "confirm"
    AUTO_CONFIRM = "auto_confirm"
    TARGET_PICKER = "target_picker"
    DELEGATED = "delegated"
    BYPASSED = "bypassed"


class ConfirmationState(str, Enum):
    """Whether the operator has affirmed an operation."""

    UNCONFIRMED = "unconfirmed"
    CONFIRMED_YES = "confirmed_yes"
    BYPASSED = "bypassed"


class Classification(BaseModel):
    """Outcome of classifying a raw action identifier."""

    action: str = Field(..., description="Raw action identifier")
    kind: Optional[OperationKind] = Field(
        None, description="Operation kind (None for delegated/administrative actions)"
    )
    policy: ConfirmationPolicy = Field(..., description="Confirmation policy")

    model_config = {"frozen": True}


class Selection(BaseModel):
    """Ordered, distinct object names chosen by the operator."""

    names: tuple[str, ...] = Field(..., description="Selected names in order")
    views: frozenset[str] = Field(
        default_factory=frozenset, description="Selected names that are views"
    )

    model_config = {"frozen": True}

    @model_validator(mode="after")
    def check_names(self) -> "Selection":
        if len(set(self.names)) != len(self.names):
            raise ValueError("Selection contains duplicate names")
        unknown = self.views.difference(self.names)
        if unknown:
            raise ValueError(
                f"Views not part of the selection: {', '.join(sorted(unknown))}"
            )
        return self

    @property
    def is_empty(self) -> bool:
        return not self.names

    def is_view(self, name: str) -> bool:
        return name in self.views

    @property
    def tables(self) -> list[str]:
        """Selected base tables in selection order."""
        return [name for name in self.names if name not in self.views]

    @property
    def view_names(self) -> list[str]:
        """Selected views in selection order."""
        return [name for name in self.names if name in self.views]


class OperationParameters(BaseModel):
    """Kind-specific parameters carried through the preview round-trip."""

    add_prefix: Optional[str] = Field(None, description="Prefix to prepend")
    from_prefix: Optional[str] = Field(None, description="Prefix to replace")
    to_prefix: Optional[str] = Field(None, description="Replacement prefix")
    target_database: Optional[str] = Field(None, description="Copy destination")
    copy_mode: CopyMode = Field(
        default="data", description="Copy structure, structure and data, or data only"
    )
    adjust_privileges: bool = Field(
        default=False, description="Copy table privileges along with the table"
    )
    foreign_key_checks: bool = Field(
        default=False,
        description="FOREIGN_KEY_CHECKS value used while dropping or emptying",
    )

    model_config = {"frozen": True}


class BatchOperation(BaseModel):
    """One action applied to every object of a selection."""

    kind: OperationKind = Field(..., description="Operation kind")
    database: str = Field(..., description="Database holding the selection")
    selection: Selection = Field(..., description="Selected objects")
    parameters: OperationParameters = Field(
        default_factory=OperationParameters, description="Kind-specific parameters"
    )

    model_config = {"frozen": True}

    @model_validator(mode="after")
    def check_parameters(self) -> "BatchOperation":
        params = self.parameters
        if self.kind is OperationKind.RENAME_ADD_PREFIX and params.add_prefix is None:
            raise ValueError("add_prefix is required to add a prefix")
        if self.kind in (
            OperationKind.RENAME_REPLACE_PREFIX,
            OperationKind.COPY_CHANGE_PREFIX,
        ) and (params.from_prefix is None or params.to_prefix is None):
            raise ValueError("from_prefix and to_prefix are required")
        if self.kind is OperationKind.COPY_EXACT and not params.target_database:
            raise ValueError("target_database is required to copy tables")
        return self


class Statement(BaseModel):
    """A single SQL statement produced by the statement builder."""

    sql: str = Field(..., description="SQL text without trailing semicolon")
    targets: tuple[str, ...] = Field(..., description="Selected names it affects")
    is_view: bool = Field(default=False, description="Statement acts on views")

    model_config = {"frozen": True}


class StatementOutcome(BaseModel):
    """Result of sending one statement to the server."""

    sql: str = Field(..., description="Statement sent")
    success: bool = Field(..., description="Server accepted the statement")
    error_message: Optional[str] = Field(None, description="Raw server error")
    rows: Optional[list[dict[str, Any]]] = Field(
        None, description="Diagnostic rows for maintenance statements"
    )


class ExecutionContext(BaseModel):
    """Listing state handed to the coordinator and returned updated."""

    position: int = Field(default=0, ge=0, description="Current listing offset")
    max_table_list: int = Field(default=250, ge=1, description="Tables per page")


class Preview(BaseModel):
    """Dry-run rendering of an operation awaiting confirmation."""

    operation_kind: OperationKind = Field(..., description="Operation kind")
    action: str = Field(..., description="Raw action identifier to resubmit")
    database: str = Field(..., description="Database holding the selection")
    selection: Selection = Field(..., description="Selected objects")
    parameters: OperationParameters = Field(..., description="Parameters to resubmit")
    sql_text: str = Field(..., description="SQL that would run once confirmed")
    token: str = Field(..., description="Signed confirmation token")
    foreign_key_checks: Optional[bool] = Field(
        None, description="Current FOREIGN_KEY_CHECKS value on the server"
    )
    confirmation: ConfirmationState = Field(default=ConfirmationState.UNCONFIRMED)


class ExecutionResult(BaseModel):
    """Final status of a batch request."""

    operation_kind: Optional[OperationKind] = Field(
        None, description="Operation kind (None for administrative actions)"
    )
    succeeded: bool = Field(..., description="Every statement succeeded")
    sql_executed: str = Field(default="", description="SQL text actually sent")
    outcomes: list[StatementOutcome] = Field(
        default_factory=list, description="Per-statement results"
    )
    error_message: Optional[str] = Field(None, description="First server error")
    message: Optional[str] = Field(None, description="Status message for display")
    pagination_adjusted: bool = Field(
        default=False, description="Listing position had to be corrected"
    )
    position: Optional[int] = Field(None, description="Listing position to use next")
    rows: list[dict[str, Any]] = Field(
        default_factory=list, description="Diagnostic rows of maintenance statements"
    )
    confirmation: ConfirmationState = Field(
        default=ConfirmationState.CONFIRMED_YES, description="How execution was reached"
    )

    @property
    def failed_statements(self) -> list[StatementOutcome]:
        return [o for o in self.outcomes if not o.success]


class CopyTargetPrompt(BaseModel):
    """Request for a destination database before copying tables."""

    action: str = Field(default="copy_tbl", description="Raw action identifier")
    database: str = Field(..., description="Source database")
    selection: Selection = Field(..., description="Tables to copy")
    target_databases: list[str] = Field(..., description="Candidate destinations")


class DelegatedAction(BaseModel):
    """Action handled entirely by another collaborator (e.g. export)."""

    action: str = Field(..., description="Raw action identifier")
    database: str = Field(..., description="Database holding the selection")
    selection: Selection = Field(..., description="Selected objects")
