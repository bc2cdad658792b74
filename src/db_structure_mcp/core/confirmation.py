"""Preview/confirm workflow for destructive batch operations."""

import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

from jose import ExpiredSignatureError, JWTError, jwt

from db_structure_mcp.core.builder import build_statements, render_sql
from db_structure_mcp.errors import InconsistentReconfirmationError
from db_structure_mcp.models.operation import (
    BatchOperation,
    Classification,
    ConfirmationPolicy,
    ConfirmationState,
    Preview,
)

logger = logging.getLogger(__name__)

TOKEN_ALGORITHM = "HS256"


def operation_fingerprint(action: str, operation: BatchOperation) -> dict[str, Any]:
    """Canonical, JSON-compatible description of what an operation will do."""
    return {
        "action": action,
        "kind": operation.kind.value,
        "database": operation.database,
        "names": list(operation.selection.names),
        "views": sorted(operation.selection.views),
        "parameters": operation.parameters.model_dump(mode="json"),
    }


class ConfirmationWorkflow:
    """
    Two-phase preview → execute flow.

    A preview carries a signed token holding the exact operation shown to
    the operator. Execution of a previewed operation is only allowed when the
    resubmitted operation matches the token.
    """

    def __init__(self, secret: str, ttl: int = 900):
        """
        Initialize confirmation workflow.

        Args:
            secret: Key used to sign tokens
            ttl: Token lifetime in seconds
        """
        self._secret = secret
        self.ttl = ttl

    def state_for(
        self, classification: Classification, confirmed: bool
    ) -> ConfirmationState:
        """
        Confirmation state of an incoming request.

        Maintenance actions answer "Yes" on the operator's behalf and
        administrative actions never ask.
        """
        if classification.policy is ConfirmationPolicy.BYPASSED:
            return ConfirmationState.BYPASSED
        if classification.policy is ConfirmationPolicy.CONFIRM and not confirmed:
            return ConfirmationState.UNCONFIRMED
        return ConfirmationState.CONFIRMED_YES

    def issue_token(self, action: str, operation: BatchOperation) -> str:
        claims = {
            "op": operation_fingerprint(action, operation),
            "exp": datetime.now(timezone.utc) + timedelta(seconds=self.ttl),
        }
        return jwt.encode(claims, self._secret, algorithm=TOKEN_ALGORITHM)

    def preview(
        self,
        action: str,
        operation: BatchOperation,
        foreign_key_checks: Optional[bool] = None,
    ) -> Preview:
        """
        Render an operation without executing it.

        Args:
            action: Raw action identifier
            operation: Operation awaiting confirmation
            foreign_key_checks: Current server FOREIGN_KEY_CHECKS value

        Returns:
            Preview with the SQL that would run and a confirmation token
        """
        sql_text = render_sql(build_statements(operation))
        logger.info(
            f"Preview of {operation.kind.value} on {len(operation.selection.names)} "
            f"object(s) in {operation.database}"
        )
        return Preview(
            operation_kind=operation.kind,
            action=action,
            database=operation.database,
            selection=operation.selection,
            parameters=operation.parameters,
            sql_text=sql_text,
            token=self.issue_token(action, operation),
            foreign_key_checks=foreign_key_checks,
        )

    def verify(
        self, token: Optional[str], action: str, operation: BatchOperation
    ) -> None:
        """
        Check that a confirmation matches the previewed operation.

        Args:
            token: Token handed out with the preview
            action: Resubmitted raw action identifier
            operation: Operation rebuilt from the resubmitted parameters

        Raises:
            InconsistentReconfirmationError: If the token is missing, invalid,
                expired, or describes a different operation
        """
        if not token:
            raise InconsistentReconfirmationError(
                "Confirmation token missing; request a new preview"
            )

        try:
            claims = jwt.decode(token, self._secret, algorithms=[TOKEN_ALGORITHM])
        except ExpiredSignatureError:
            raise InconsistentReconfirmationError(
                "Confirmation expired; request a new preview"
            ) from None
        except JWTError as e:
            raise InconsistentReconfirmationError(
                f"Invalid confirmation token: {e}"
            ) from None

        if claims.get("op") != operation_fingerprint(action, operation):
            logger.warning(
                f"Rejected confirmation of {operation.kind.value} in "
                f"{operation.database}: differs from preview"
            )
            raise InconsistentReconfirmationError(
                "Confirmed operation differs from the previewed one"
            )
