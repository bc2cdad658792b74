"""Pydantic models for structure listings and batch operations."""

from .config import DatabaseConfig, StructureConfig
from .operation import (
    BatchOperation,
    Classification,
    ConfirmationPolicy,
    ConfirmationState,
    CopyTargetPrompt,
    DelegatedAction,
    ExecutionContext,
    ExecutionResult,
    OperationKind,
    OperationParameters,
    Preview,
    Selection,
    Statement,
    StatementOutcome,
)
from .table import (
    EngineFamily,
    ListingSummary,
    TableDescriptor,
    TableListing,
    TableStatistics,
)

__all__ = [
    "DatabaseConfig",
    "StructureConfig",
    "BatchOperation",
    "Classification",
    "ConfirmationPolicy",
    "ConfirmationState",
    "CopyTargetPrompt",
    "DelegatedAction",
    "ExecutionContext",
    "ExecutionResult",
    "OperationKind",
    "OperationParameters",
    "Preview",
    "Selection",
    "Statement",
    "StatementOutcome",
    "EngineFamily",
    "ListingSummary",
    "TableDescriptor",
    "TableListing",
    "TableStatistics",
]
