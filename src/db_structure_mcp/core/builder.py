"""SQL statement construction for batch operations.

Every function here is pure: the same operation always yields the same
statements, so the SQL shown in a preview is exactly the SQL executed once
the operator confirms.
"""

from db_structure_mcp.models.operation import (
    BatchOperation,
    CopyMode,
    OperationKind,
    Statement,
)
from db_structure_mcp.utils.sql import backquote, qualified_name

COMBINED_VERBS: dict[OperationKind, str] = {
    OperationKind.CHECK: "CHECK TABLE",
    OperationKind.OPTIMIZE: "OPTIMIZE TABLE",
    OperationKind.ANALYZE: "ANALYZE TABLE",
    OperationKind.REPAIR: "REPAIR TABLE",
    OperationKind.CHECKSUM: "CHECKSUM TABLE",
}


def replace_prefix(name: str, from_prefix: str, to_prefix: str) -> str:
    """
    Swap a leading prefix.

    Names that do not start with ``from_prefix`` are returned unchanged.
    """
    if name.startswith(from_prefix):
        return to_prefix + name[len(from_prefix) :]
    return name


def change_prefix(name: str, from_prefix: str, to_prefix: str) -> str:
    """Cut ``len(from_prefix)`` characters and prepend ``to_prefix``."""
    return to_prefix + name[len(from_prefix) :]


def combined_statement(verb: str, names: list[str], is_view: bool = False) -> Statement:
    """One statement listing every name behind a single verb."""
    return Statement(
        sql=f"{verb} " + ", ".join(backquote(name) for name in names),
        targets=tuple(names),
        is_view=is_view,
    )


def rename_statement(name: str, new_name: str) -> Statement:
    return Statement(
        sql=f"ALTER TABLE {backquote(name)} RENAME {backquote(new_name)}",
        targets=(name,),
    )


def copy_statements(
    source_database: str,
    source_table: str,
    target_database: str,
    target_table: str,
    mode: CopyMode,
) -> list[Statement]:
    """Statements copying one table's structure and/or rows."""
    source = qualified_name(source_table, source_database)
    target = qualified_name(target_table, target_database)

    statements = []
    if mode in ("structure", "data"):
        statements.append(
            Statement(sql=f"CREATE TABLE {target} LIKE {source}", targets=(source_table,))
        )
    if mode in ("data", "dataonly"):
        statements.append(
            Statement(
                sql=f"INSERT INTO {target} SELECT * FROM {source}",
                targets=(source_table,),
            )
        )
    return statements


def _build_drop(operation: BatchOperation) -> list[Statement]:
    selection = operation.selection
    statements = []
    if selection.tables:
        statements.append(combined_statement("DROP TABLE", selection.tables))
    if selection.view_names:
        statements.append(
            combined_statement("DROP VIEW", selection.view_names, is_view=True)
        )
    return statements


def build_statements(operation: BatchOperation) -> list[Statement]:
    """
    Build the statements for a batch operation.

    Drop and maintenance kinds produce combined statements (drop yields one
    statement for base tables and one for views). Truncate, rename and copy
    produce statements per selected object.

    Args:
        operation: Operation to build

    Returns:
        Statements in execution order (empty for an empty selection)
    """
    kind = operation.kind
    names = list(operation.selection.names)
    params = operation.parameters

    if not names:
        return []

    if kind is OperationKind.DROP:
        return _build_drop(operation)

    if kind in COMBINED_VERBS:
        return [combined_statement(COMBINED_VERBS[kind], names)]

    # BatchOperation.check_parameters guarantees the prefixes and target
    # database required by each kind below.
    if kind is OperationKind.TRUNCATE:
        return [
            Statement(sql=f"TRUNCATE {backquote(name)}", targets=(name,))
            for name in names
        ]

    if kind is OperationKind.RENAME_ADD_PREFIX:
        assert params.add_prefix is not None
        return [rename_statement(name, params.add_prefix + name) for name in names]

    if kind is OperationKind.RENAME_REPLACE_PREFIX:
        assert params.from_prefix is not None and params.to_prefix is not None
        return [
            rename_statement(
                name, replace_prefix(name, params.from_prefix, params.to_prefix)
            )
            for name in names
        ]

    if kind is OperationKind.COPY_CHANGE_PREFIX:
        assert params.from_prefix is not None and params.to_prefix is not None
        statements = []
        for name in names:
            statements.extend(
                copy_statements(
                    operation.database,
                    name,
                    operation.database,
                    change_prefix(name, params.from_prefix, params.to_prefix),
                    "data",
                )
            )
        return statements

    if kind is OperationKind.COPY_EXACT:
        assert params.target_database is not None
        statements = []
        for name in names:
            statements.extend(
                copy_statements(
                    operation.database,
                    name,
                    params.target_database,
                    name,
                    params.copy_mode,
                )
            )
        return statements

    raise ValueError(f"No statement builder for {kind.value}")


def new_names(operation: BatchOperation) -> tuple[str, list[str]]:
    """
    Tables a rename or copy creates or writes into.

    Returns:
        Tuple of (database holding them, their names); names are empty for
        kinds that produce no new tables
    """
    kind = operation.kind
    names = list(operation.selection.names)
    params = operation.parameters

    if kind is OperationKind.RENAME_ADD_PREFIX and params.add_prefix is not None:
        return operation.database, [params.add_prefix + name for name in names]
    if params.from_prefix is not None and params.to_prefix is not None:
        if kind is OperationKind.RENAME_REPLACE_PREFIX:
            return operation.database, [
                replace_prefix(name, params.from_prefix, params.to_prefix)
                for name in names
            ]
        if kind is OperationKind.COPY_CHANGE_PREFIX:
            return operation.database, [
                change_prefix(name, params.from_prefix, params.to_prefix)
                for name in names
            ]
    if kind is OperationKind.COPY_EXACT and params.target_database:
        return params.target_database, names
    return operation.database, []


def render_sql(statements: list[Statement]) -> str:
    """Join statements into the SQL text shown to the operator."""
    return "\n".join(f"{statement.sql};" for statement in statements)
