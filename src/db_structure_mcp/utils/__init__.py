"""Utility modules for the structure MCP server."""

from db_structure_mcp.utils.formatting import format_byte_down, format_size
from db_structure_mcp.utils.serialization import (
    convert_rows_to_json_safe,
    convert_value_to_json_safe,
    dumps,
)
from db_structure_mcp.utils.sql import backquote, qualified_name

__all__ = [
    "backquote",
    "qualified_name",
    "format_byte_down",
    "format_size",
    "convert_value_to_json_safe",
    "convert_rows_to_json_safe",
    "dumps",
]
