"""Tests for tracker errors and the OperationResult envelope.

Tests verify:
- Each error class carries its code and readable message
- OperationResult.ok and OperationResult.fail build the expected envelope
"""

from jobtracker.core.errors import (
    InvalidStateError,
    NoChangeError,
    NotFoundError,
    PersistenceError,
    TrackerError,
    ValidationError,
)
from jobtracker.core.results import OperationResult

# =============================================================================
# Errors
# =============================================================================


class TestErrors:
    """Error classes carry a code and readable messages."""

    def test_validation_error_keeps_every_message(self) -> None:
        """The first message is the headline; all are kept."""
        error = ValidationError(["Company name is required", "Role is required"])
        assert error.code == "VALIDATION_ERROR"
        assert error.message == "Company name is required"
        assert error.messages == ["Company name is required", "Role is required"]

    def test_not_found_includes_id(self) -> None:
        """NotFoundError names the resource and id."""
        error = NotFoundError("Application", "app_123")
        assert error.code == "NOT_FOUND"
        assert str(error) == "Application not found: app_123"

    def test_not_found_without_id(self) -> None:
        """The id is optional."""
        assert NotFoundError("Interview").message == "Interview not found"

    def test_no_change_is_an_invalid_state(self) -> None:
        """NoChangeError subclasses InvalidStateError with its own code."""
        error = NoChangeError("Already there")
        assert isinstance(error, InvalidStateError)
        assert error.code == "NO_CHANGE"

    def test_persistence_error_records_backend(self) -> None:
        """PersistenceError remembers which backend failed."""
        error = PersistenceError("disk full", backend="json")
        assert error.backend == "json"
        assert error.code == "PERSISTENCE_ERROR"

    def test_all_errors_share_base(self) -> None:
        """Every error is a TrackerError."""
        for error in (
            ValidationError(["x"]),
            NotFoundError("Application"),
            InvalidStateError("closed"),
            PersistenceError("boom"),
        ):
            assert isinstance(error, TrackerError)


# =============================================================================
# OperationResult
# =============================================================================


class TestOperationResult:
    """OperationResult success/failure construction."""

    def test_ok_carries_data(self) -> None:
        """ok() succeeds with data and no errors."""
        result = OperationResult.ok({"id": "app_1"})
        assert result.success is True
        assert result.data == {"id": "app_1"}
        assert result.errors == []
        assert result.code is None

    def test_fail_copies_error_messages(self) -> None:
        """fail() copies the error's messages and code."""
        result = OperationResult.fail(ValidationError(["Role is required"]))
        assert result.success is False
        assert result.data is None
        assert result.errors == ["Role is required"]
        assert result.code == "VALIDATION_ERROR"

    def test_truthiness_follows_success(self) -> None:
        """A result is truthy only when it succeeded."""
        assert OperationResult.ok()
        assert not OperationResult.fail(NotFoundError("Application", "x"))
