"""Entry point for running db_structure_mcp as a module."""

from db_structure_mcp.server import cli_entry

if __name__ == "__main__":
    cli_entry()
