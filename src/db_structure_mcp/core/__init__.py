"""Core components: connection, execution, statistics and batch operations."""

from .batch import BatchRequest, BatchService
from .builder import build_statements, render_sql
from .cache import RowCountCache
from .central_columns import CentralColumnsStore, ConfigStorageCentralColumns
from .classifier import classify
from .confirmation import ConfirmationWorkflow
from .connection import DatabaseConnection
from .coordinator import ExecutionCoordinator, suspended_foreign_key_checks
from .executor import StatementExecutor
from .relations import (
    ConfigStorageRelationStore,
    NullRelationStore,
    RelationMetadataStore,
)
from .statistics import StatisticsAggregator

__all__ = [
    "BatchRequest",
    "BatchService",
    "build_statements",
    "render_sql",
    "RowCountCache",
    "CentralColumnsStore",
    "ConfigStorageCentralColumns",
    "classify",
    "ConfirmationWorkflow",
    "DatabaseConnection",
    "ExecutionCoordinator",
    "suspended_foreign_key_checks",
    "StatementExecutor",
    "ConfigStorageRelationStore",
    "NullRelationStore",
    "RelationMetadataStore",
    "StatisticsAggregator",
]
