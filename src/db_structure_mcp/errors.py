"""Exceptions raised by the batch operation engine."""


class BatchOperationError(Exception):
    """Base class for batch request errors reported to the operator."""


class UnknownActionError(BatchOperationError, ValueError):
    """The requested action identifier is not recognized."""

    def __init__(self, action: str):
        self.action = action
        super().__init__(f"Unknown action: {action}")


class InconsistentReconfirmationError(BatchOperationError):
    """A confirmation does not match the operation that was previewed."""


class CollaboratorUnavailableError(BatchOperationError):
    """An optional collaborator needed by the action is not configured."""
