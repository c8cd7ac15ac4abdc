"""Operation result envelope.

Every engine operation reports success or failure through
OperationResult instead of raising, so callers can branch on
``result.success`` and show ``result.errors`` directly.
"""

from typing import Generic, TypeVar

from pydantic import BaseModel, ConfigDict

from jobtracker.core.errors import TrackerError

T = TypeVar("T")


class OperationResult(BaseModel, Generic[T]):
    """Outcome of an engine operation.

    Usage:
        result = await engine.create(data)
        if not result.success:
            show(result.errors)

    Attributes:
        success: Whether the operation completed.
        data: Payload on success (None for operations without one).
        errors: Human-readable messages on failure.
        code: Machine-readable error code on failure.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    success: bool
    data: T | None = None
    errors: list[str] = []
    code: str | None = None

    @classmethod
    def ok(cls, data: T | None = None) -> "OperationResult[T]":
        """Build a successful result."""
        return cls(success=True, data=data)

    @classmethod
    def fail(cls, error: TrackerError) -> "OperationResult[T]":
        """Build a failed result from a tracker error."""
        return cls(success=False, errors=error.messages, code=error.code)

    def __bool__(self) -> bool:
        return self.success
