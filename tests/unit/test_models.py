"""Tests for domain models.

Tests verify:
- Skill tags are de-duplicated case-insensitively
- Application defaults and camelCase document shape
- Create/update payloads reject lifecycle and identity fields
- Unknown interaction types fall back to notes
- Interview required fields and reminder window
"""

from datetime import UTC, datetime

import pydantic
import pytest

from jobtracker.models.application import (
    Application,
    ApplicationCreate,
    ApplicationUpdate,
    CloseReason,
    FinalResult,
    Interaction,
    InteractionType,
    normalize_skill_tags,
    required_field_errors,
)
from jobtracker.models.interview import (
    Interview,
    InterviewCreate,
    InterviewStatus,
    InterviewUpdate,
)

_WHEN = datetime(2026, 3, 10, 14, 0, tzinfo=UTC)

# =============================================================================
# Application
# =============================================================================


class TestSkillTags:
    """Skill tags are an ordered set."""

    def test_duplicates_removed_case_insensitively(self) -> None:
        """First spelling wins; blanks are dropped."""
        assert normalize_skill_tags(["Python", " python ", "SQL", ""]) == [
            "Python",
            "SQL",
        ]

    def test_comma_string_accepted(self) -> None:
        """A comma string is split into tags."""
        app = Application(company_name="Acme", role="SRE", skill_tags="Go, K8s, go")
        assert app.skill_tags == ["Go", "K8s"]


class TestRequiredFields:
    """Company name and role are required."""

    def test_messages(self) -> None:
        """Blank values yield one message per field."""
        assert required_field_errors("", "  ") == [
            "Company name is required",
            "Role is required",
        ]
        assert required_field_errors("Acme", "SRE") == []


class TestApplication:
    """Application defaults and JSON shape."""

    def test_defaults(self) -> None:
        """New applications start at stage 1 with an idle tracker."""
        app = Application(company_name="Acme", role="SRE")
        assert app.id.startswith("app_")
        assert app.current_stage == 1
        assert app.final_result is None
        assert app.interactions == []
        assert app.follow_up_tracker.is_active is False
        assert app.follow_up_tracker.attempts == 0

    def test_document_uses_camel_case(self) -> None:
        """Stored documents use camelCase keys."""
        doc = Application(company_name="Acme", role="SRE").to_document()
        assert doc["companyName"] == "Acme"
        assert doc["followUpTracker"]["isActive"] is False
        assert "company_name" not in doc

    def test_blank_final_result_and_missing_tracker_are_tolerated(self) -> None:
        """Legacy documents load with sensible defaults."""
        app = Application.model_validate(
            {
                "companyName": "Acme",
                "role": "SRE",
                "finalResult": "",
                "followUpTracker": None,
                "someFutureField": 1,
            }
        )
        assert app.final_result is None
        assert app.follow_up_tracker.is_active is False

    def test_naive_timestamps_become_utc(self) -> None:
        """Naive timestamps are read as UTC."""
        app = Application(
            company_name="Acme", role="SRE", created_at=datetime(2026, 1, 1, 8, 0)
        )
        assert app.created_at.tzinfo is not None
        assert app.created_at == datetime(2026, 1, 1, 8, 0, tzinfo=UTC)

    def test_close_reason_maps_to_result(self) -> None:
        """Each close reason has a matching final result."""
        assert CloseReason.GHOSTED.result is FinalResult.GHOSTED


class TestPayloadSchemas:
    """Create/update payloads reject unexpected fields."""

    def test_create_forbids_lifecycle_fields(self) -> None:
        """finalResult cannot be set on create."""
        with pytest.raises(pydantic.ValidationError):
            ApplicationCreate.model_validate(
                {"companyName": "Acme", "role": "SRE", "finalResult": "accepted"}
            )

    @pytest.mark.parametrize(
        "field",
        ["currentStage", "finalResult", "interactions", "followUpTracker", "id"],
    )
    def test_update_forbids_lifecycle_fields(self, field: str) -> None:
        """Lifecycle fields are not editable through update."""
        with pytest.raises(pydantic.ValidationError):
            ApplicationUpdate.model_validate({field: None})

    def test_update_changes_only_include_sent_fields(self) -> None:
        """changes() omits fields the caller did not send."""
        update = ApplicationUpdate.model_validate({"city": "Pune"})
        assert update.changes() == {"city": "Pune"}

    @pytest.mark.parametrize(
        "field", ["id", "applicationId", "roundNumber", "createdAt"]
    )
    def test_interview_update_forbids_identity_fields(self, field: str) -> None:
        """Interview identity fields are not editable."""
        with pytest.raises(pydantic.ValidationError):
            InterviewUpdate.model_validate({field: "x"})


class TestInteraction:
    """Interaction log entries."""

    def test_unknown_type_becomes_note(self) -> None:
        """Unrecognised types are stored as notes."""
        interaction = Interaction.model_validate({"type": "carrier_pigeon"})
        assert interaction.type is InteractionType.NOTE

    def test_is_frozen(self) -> None:
        """Logged interactions cannot be edited."""
        interaction = Interaction(notes="hi")
        with pytest.raises(pydantic.ValidationError):
            interaction.notes = "changed"


# =============================================================================
# Interview
# =============================================================================


class TestInterview:
    """Interview validation and reminder window."""

    def test_missing_fields_reported_together(self) -> None:
        """Every missing required field is reported."""
        errors = InterviewCreate().missing_field_errors()
        assert errors == [
            "Application is required",
            "Interview date/time is required",
            "Interview type is required",
            "Interview mode is required",
        ]

    def _interview(self, **fields) -> Interview:
        data = {
            "application_id": "app_1",
            "type": "technical",
            "mode": "video",
            "scheduled_at": _WHEN,
            "reminder_minutes": 30,
        }
        data.update(fields)
        return Interview(**data)

    @pytest.mark.parametrize(
        ("now", "expected"),
        [
            (datetime(2026, 3, 10, 13, 29, tzinfo=UTC), False),
            (datetime(2026, 3, 10, 13, 30, tzinfo=UTC), True),
            (datetime(2026, 3, 10, 13, 59, tzinfo=UTC), True),
            (datetime(2026, 3, 10, 14, 0, tzinfo=UTC), False),
        ],
    )
    def test_needs_reminder_window(self, now: datetime, expected: bool) -> None:
        """The window opens at the lead time and closes at the start."""
        assert self._interview().needs_reminder(now) is expected

    def test_no_reminder_when_sent_or_cancelled(self) -> None:
        """Sent or cancelled interviews need no reminder."""
        now = datetime(2026, 3, 10, 13, 45, tzinfo=UTC)
        assert self._interview(reminder_sent=True).needs_reminder(now) is False
        assert (
            self._interview(status=InterviewStatus.CANCELLED).needs_reminder(now)
            is False
        )

    def test_is_upcoming(self) -> None:
        """An interview is upcoming strictly before its start."""
        before = datetime(2026, 3, 9, tzinfo=UTC)
        assert self._interview().is_upcoming(before) is True
        assert self._interview().is_upcoming(_WHEN) is False
