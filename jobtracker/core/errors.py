"""Tracker error classes.

Engine operations translate these into failed OperationResult values.
Only PersistenceError is expected to escape an engine call.
"""


class TrackerError(Exception):
    """Base class for tracker errors.

    Attributes:
        code: Machine-readable error code (e.g., "NOT_FOUND").
        message: Human-readable error message.
        details: Optional list of additional human-readable messages.
    """

    def __init__(
        self,
        code: str,
        message: str,
        details: list[str] | None = None,
    ) -> None:
        self.code = code
        self.message = message
        self.details = details
        super().__init__(message)

    @property
    def messages(self) -> list[str]:
        """All human-readable messages carried by this error."""
        return list(self.details) if self.details else [self.message]


class ValidationError(TrackerError):
    """Required field missing or field value rejected.

    The operation is aborted before any mutation.
    """

    def __init__(self, errors: list[str]) -> None:
        super().__init__(
            code="VALIDATION_ERROR",
            message=errors[0] if errors else "Validation failed",
            details=errors,
        )


class NotFoundError(TrackerError):
    """Referenced application or interview does not exist."""

    def __init__(self, resource: str, resource_id: str | None = None) -> None:
        if resource_id:
            message = f"{resource} not found: {resource_id}"
        else:
            message = f"{resource} not found"
        super().__init__(code="NOT_FOUND", message=message)


class InvalidStateError(TrackerError):
    """Request is well-formed but not allowed in the current state.

    E.g., moving a closed application or closing it twice.
    """

    def __init__(self, message: str, code: str = "INVALID_STATE") -> None:
        super().__init__(code=code, message=message)


class NoChangeError(InvalidStateError):
    """Requested change would leave the record as it is."""

    def __init__(self, message: str) -> None:
        super().__init__(message, code="NO_CHANGE")


class PersistenceError(TrackerError):
    """Storage backend failed to load or write data.

    In-memory state may already reflect the attempted change.
    """

    def __init__(self, message: str, *, backend: str | None = None) -> None:
        self.backend = backend
        super().__init__(code="PERSISTENCE_ERROR", message=message)
