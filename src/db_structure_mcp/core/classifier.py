"""Mapping of raw batch actions to operation kinds and confirmation policies."""

from typing import Optional

from db_structure_mcp.errors import UnknownActionError
from db_structure_mcp.models.operation import (
    Classification,
    ConfirmationPolicy,
    OperationKind,
    Selection,
)

CONFIRM = ConfirmationPolicy.CONFIRM
AUTO_CONFIRM = ConfirmationPolicy.AUTO_CONFIRM

ACTION_POLICIES: dict[str, tuple[Optional[OperationKind], ConfirmationPolicy]] = {
    "drop_tbl": (OperationKind.DROP, CONFIRM),
    "empty_tbl": (OperationKind.TRUNCATE, CONFIRM),
    "add_prefix_tbl": (OperationKind.RENAME_ADD_PREFIX, CONFIRM),
    "replace_prefix_tbl": (OperationKind.RENAME_REPLACE_PREFIX, CONFIRM),
    "copy_tbl_change_prefix": (OperationKind.COPY_CHANGE_PREFIX, CONFIRM),
    "check_tbl": (OperationKind.CHECK, AUTO_CONFIRM),
    "optimize_tbl": (OperationKind.OPTIMIZE, AUTO_CONFIRM),
    "repair_tbl": (OperationKind.REPAIR, AUTO_CONFIRM),
    "analyze_tbl": (OperationKind.ANALYZE, AUTO_CONFIRM),
    "checksum_tbl": (OperationKind.CHECKSUM, AUTO_CONFIRM),
    "copy_tbl": (OperationKind.COPY_EXACT, ConfirmationPolicy.TARGET_PICKER),
    "export": (None, ConfirmationPolicy.DELEGATED),
    "sync_unique_columns_central_list": (None, ConfirmationPolicy.BYPASSED),
    "delete_unique_columns_central_list": (None, ConfirmationPolicy.BYPASSED),
    "make_consistent_with_central_list": (None, ConfirmationPolicy.BYPASSED),
}

ACTION_BY_KIND: dict[OperationKind, str] = {
    kind: action for action, (kind, _) in ACTION_POLICIES.items() if kind is not None
}


def classify(action: str, selection: Selection) -> Classification:
    """
    Classify a raw action identifier.

    The selection does not change the outcome; it is accepted so callers
    classify a complete request in one place.

    Args:
        action: Raw action identifier (``drop_tbl``, ``check_tbl``, ...)
        selection: Objects the action applies to

    Returns:
        Operation kind and confirmation policy

    Raises:
        UnknownActionError: If the action is not recognized
    """
    try:
        kind, policy = ACTION_POLICIES[action]
    except KeyError:
        raise UnknownActionError(action) from None

    return Classification(action=action, kind=kind, policy=policy)
