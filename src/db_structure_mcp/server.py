"""Database Structure MCP Server

A Model Context Protocol (MCP) server exposing the table listing of a MySQL or
MariaDB database and batch operations (drop, empty, rename, copy, maintenance)
on a selection of its tables.
"""

import asyncio
import json
import logging
import os
from typing import Any, Optional

from dotenv import load_dotenv
from mcp.server import Server
from mcp.types import TextContent, Tool
from pydantic import BaseModel

from db_structure_mcp.adapters import MySQLAdapter
from db_structure_mcp.core import (
    BatchRequest,
    BatchService,
    CentralColumnsStore,
    ConfigStorageCentralColumns,
    ConfigStorageRelationStore,
    DatabaseConnection,
    NullRelationStore,
    RelationMetadataStore,
    RowCountCache,
    StatementExecutor,
    StatisticsAggregator,
)
from db_structure_mcp.errors import BatchOperationError
from db_structure_mcp.models.config import DatabaseConfig, StructureConfig
from db_structure_mcp.utils import dumps

# Load environment variables
load_dotenv()

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

# Response size limits (in characters) for MCP tool responses
MAX_RESPONSE_LIST_TABLES = 10000  # Table listing with statistics
MAX_RESPONSE_ROW_COUNT = 5000  # Live row counts
MAX_RESPONSE_BATCH = 10000  # Preview, results and maintenance rows


def truncate_json_response(data: str, max_length: int) -> str:
    """
    Truncate JSON response to a maximum length while preserving JSON structure.

    Args:
        data: JSON string to truncate
        max_length: Maximum length in characters

    Returns:
        Truncated JSON string with truncation notice if needed
    """
    if len(data) <= max_length:
        return data

    truncation_msg = f"\n\n... [Response truncated: {len(data)} chars -> {max_length} chars to preserve context window]"
    available_length = max_length - len(truncation_msg)

    if available_length < 100:
        return json.dumps(
            {
                "error": "Response too large",
                "original_size": len(data),
                "limit": max_length,
                "message": "Response exceeds size limit. Select fewer tables.",
            },
            indent=2,
        )

    truncated = data[:available_length]

    # Cut at the end of a line when one is close to the limit
    last_newline = truncated.rfind("\n")
    if last_newline > available_length * 0.8:
        truncated = truncated[:last_newline]

    return truncated + truncation_msg


def _text_response(payload: Any, max_length: int) -> list[TextContent]:
    if isinstance(payload, BaseModel):
        payload = payload.model_dump(mode="json")
    return [
        TextContent(type="text", text=truncate_json_response(dumps(payload), max_length))
    ]


class StructureMCPServer:
    """MCP server for the database structure page."""

    def __init__(self, config: DatabaseConfig, structure: StructureConfig):
        """
        Initialize structure MCP server.

        Args:
            config: Database configuration
            structure: Listing and batch operation settings
        """
        self.config = config
        self.structure = structure
        self.connection = DatabaseConnection(config)
        self.adapter = MySQLAdapter()
        self.row_counts = RowCountCache(ttl=structure.row_count_cache_ttl)
        self.relations: RelationMetadataStore = NullRelationStore()
        self.central_columns: Optional[CentralColumnsStore] = None
        self.server = Server("db-structure-mcp")

    async def initialize(self) -> None:
        """Initialize all components."""
        await self.connection.initialize()

        storage_db = self.structure.config_storage_db
        if storage_db:
            self.relations = ConfigStorageRelationStore(storage_db)
            self.central_columns = ConfigStorageCentralColumns(storage_db)

        logger.info(
            f"Initialized {self.config.dialect} structure server"
            + (f" (configuration storage: {storage_db})" if storage_db else "")
        )

    async def _resolve_database(self, arguments: dict[str, Any]) -> str:
        database = arguments.get("database") or self.config.database
        if not database:
            database = await self.connection.get_current_database()
        if not database:
            raise ValueError("No database given and none selected in DATABASE_URL")
        return database

    def _create_list_tables_tool(self) -> Tool:
        """Create list_tables tool."""
        return Tool(
            name="list_tables",
            description=(
                "List tables and views of a database with row counts, size, "
                "overhead and totals"
            ),
            inputSchema={
                "type": "object",
                "properties": {
                    "database": {
                        "type": "string",
                        "description": "Database name (optional, uses the URL's database)",
                    },
                },
                "required": [],
            },
        )

    def _create_real_row_count_tool(self) -> Tool:
        """Create real_row_count tool."""
        return Tool(
            name="real_row_count",
            description="Count rows exactly, for one table or every table of a database",
            inputSchema={
                "type": "object",
                "properties": {
                    "database": {"type": "string", "description": "Database name (optional)"},
                    "table": {
                        "type": "string",
                        "description": "Table name (omit to count every table)",
                    },
                },
                "required": [],
            },
        )

    def _create_batch_operation_tool(self) -> Tool:
        """Create batch_operation tool."""
        return Tool(
            name="batch_operation",
            description=(
                "Apply one action to selected tables. Destructive actions first "
                "return a preview with the SQL and a token; resubmit the same "
                "request with confirmed=true and the token to execute."
            ),
            inputSchema={
                "type": "object",
                "properties": {
                    "action": {
                        "type": "string",
                        "enum": [
                            "drop_tbl",
                            "empty_tbl",
                            "add_prefix_tbl",
                            "replace_prefix_tbl",
                            "copy_tbl_change_prefix",
                            "copy_tbl",
                            "check_tbl",
                            "optimize_tbl",
                            "repair_tbl",
                            "analyze_tbl",
                            "checksum_tbl",
                            "export",
                            "sync_unique_columns_central_list",
                            "delete_unique_columns_central_list",
                            "make_consistent_with_central_list",
                        ],
                        "description": "Action to apply",
                    },
                    "database": {"type": "string", "description": "Database name (optional)"},
                    "tables": {
                        "type": "array",
                        "items": {"type": "string"},
                        "description": "Selected tables and views, in order",
                    },
                    "add_prefix": {"type": "string", "description": "Prefix to add"},
                    "from_prefix": {"type": "string", "description": "Prefix to replace"},
                    "to_prefix": {"type": "string", "description": "New prefix"},
                    "target_database": {
                        "type": "string",
                        "description": "Destination database for copy_tbl",
                    },
                    "copy_mode": {
                        "type": "string",
                        "enum": ["structure", "data", "dataonly"],
                        "default": "data",
                        "description": "Copy structure only, structure and data, or data only",
                    },
                    "adjust_privileges": {
                        "type": "boolean",
                        "default": False,
                        "description": "Copy table privileges to the copied tables",
                    },
                    "foreign_key_checks": {
                        "type": "boolean",
                        "default": False,
                        "description": "Keep foreign key checks on while dropping or emptying",
                    },
                    "confirmed": {
                        "type": "boolean",
                        "default": False,
                        "description": "Execute a previewed operation",
                    },
                    "token": {
                        "type": "string",
                        "description": "Token returned with the preview",
                    },
                    "position": {
                        "type": "integer",
                        "default": 0,
                        "description": "Current offset in the table listing",
                    },
                },
                "required": ["action", "tables"],
            },
        )

    def list_tool_definitions(self) -> list[Tool]:
        return [
            self._create_list_tables_tool(),
            self._create_real_row_count_tool(),
            self._create_batch_operation_tool(),
        ]

    # Tool handlers
    async def handle_list_tables(self, arguments: dict[str, Any]) -> list[TextContent]:
        """Handle list_tables request."""
        database = await self._resolve_database(arguments)

        async with self.connection.get_connection() as conn:
            executor = StatementExecutor(conn, self.adapter, self.row_counts)
            aggregator = StatisticsAggregator(
                executor,
                self.structure.max_exact_count,
                self.structure.max_exact_count_views,
            )
            listing = await aggregator.build_listing(database)

        return _text_response(listing, MAX_RESPONSE_LIST_TABLES)

    async def handle_real_row_count(
        self, arguments: dict[str, Any]
    ) -> list[TextContent]:
        """Handle real_row_count request."""
        database = await self._resolve_database(arguments)

        async with self.connection.get_connection() as conn:
            executor = StatementExecutor(conn, self.adapter, self.row_counts)
            aggregator = StatisticsAggregator(executor)
            counts = await aggregator.real_row_counts(database, arguments.get("table"))

        return _text_response(
            {"database": database, "row_counts": counts}, MAX_RESPONSE_ROW_COUNT
        )

    async def handle_batch_operation(
        self, arguments: dict[str, Any]
    ) -> list[TextContent]:
        """Handle batch_operation request."""
        database = await self._resolve_database(arguments)
        request = BatchRequest.model_validate({**arguments, "database": database})

        async with self.connection.get_connection() as conn:
            executor = StatementExecutor(conn, self.adapter, self.row_counts)
            service = BatchService(
                executor,
                self.structure,
                relations=self.relations,
                central_columns=self.central_columns,
            )
            response = await service.submit(request)

        return _text_response(response, MAX_RESPONSE_BATCH)

    async def call_tool(self, name: str, arguments: dict[str, Any]) -> list[TextContent]:
        """
        Dispatch a tool call.

        Request errors are answered with an error payload and never stop the
        server.
        """
        handlers = {
            "list_tables": self.handle_list_tables,
            "real_row_count": self.handle_real_row_count,
            "batch_operation": self.handle_batch_operation,
        }

        handler = handlers.get(name)
        if handler is None:
            raise ValueError(f"Unknown tool: {name}")

        try:
            return await handler(arguments)
        except (BatchOperationError, ValueError) as e:
            logger.warning(f"{name} rejected: {e}")
            return _text_response(
                {"error": type(e).__name__, "message": str(e)}, MAX_RESPONSE_BATCH
            )

    async def cleanup(self) -> None:
        """Cleanup resources."""
        await self.connection.dispose()
        logger.info("Structure MCP server cleaned up")


async def main() -> None:
    """Main entry point for the MCP server."""
    database_url = os.getenv("DATABASE_URL")
    if not database_url:
        raise ValueError("DATABASE_URL environment variable must be set")

    config = DatabaseConfig(url=database_url)
    structure = StructureConfig.from_env()

    mcp_server = StructureMCPServer(config, structure)

    try:
        await mcp_server.initialize()

        @mcp_server.server.list_tools()
        async def list_tools() -> list[Tool]:
            """List available tools."""
            return mcp_server.list_tool_definitions()

        @mcp_server.server.call_tool()
        async def call_tool(name: str, arguments: dict[str, Any]) -> list[TextContent]:
            """Handle tool calls."""
            return await mcp_server.call_tool(name, arguments)

        from mcp.server.stdio import stdio_server

        async with stdio_server() as (read_stream, write_stream):
            await mcp_server.server.run(
                read_stream,
                write_stream,
                mcp_server.server.create_initialization_options(),
            )

    finally:
        await mcp_server.cleanup()


def cli_entry() -> None:
    """
    Synchronous entry point for console script.

    This function is called by the 'db-structure-mcp' console script.
    It sets up the event loop and runs the async main() function.
    """
    # Windows-specific event loop policy
    if os.name == "nt":
        asyncio.set_event_loop_policy(asyncio.WindowsProactorEventLoopPolicy())  # type: ignore[attr-defined]

    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        logger.info("Server stopped by user")
    except Exception as e:
        logger.error(f"Server error: {e}", exc_info=True)
        raise


if __name__ == "__main__":
    cli_entry()
