"""
db_structure_mcp - Database structure MCP server

A Model Context Protocol (MCP) server listing the tables of a MySQL/MariaDB
database with row counts and sizes, and running batch operations on a
selection of them.
"""

__version__ = "1.0.0"

from .models.config import DatabaseConfig, StructureConfig
from .models.operation import BatchOperation, ExecutionResult, Preview, Selection
from .models.table import TableListing, TableStatistics

__all__ = [
    "DatabaseConfig",
    "StructureConfig",
    "BatchOperation",
    "ExecutionResult",
    "Preview",
    "Selection",
    "TableListing",
    "TableStatistics",
]
