"""Identifier quoting helpers for MySQL statements."""

from typing import Optional


def backquote(identifier: str) -> str:
    """Quote an identifier with backticks, doubling embedded backticks."""
    return "`" + identifier.replace("`", "``") + "`"


def qualified_name(table: str, database: Optional[str] = None) -> str:
    """Build a quoted, optionally database-qualified, table reference."""
    if database:
        return f"{backquote(database)}.{backquote(table)}"
    return backquote(table)
