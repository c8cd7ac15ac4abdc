"""Interview models - scheduled rounds tied to an application."""

from datetime import datetime, timedelta
from enum import Enum

from pydantic import Field, field_validator

from jobtracker.core.timeutils import ensure_aware, utc_now
from jobtracker.models.base import TrackerInput, TrackerModel, new_id

DEFAULT_REMINDER_MINUTES = 30
DEFAULT_DURATION_MINUTES = 60


class InterviewStatus(Enum):
    """Interview lifecycle status."""

    SCHEDULED = "scheduled"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    RESCHEDULED = "rescheduled"


class RoundOutcome(Enum):
    """Result of a single interview round."""

    PENDING = "pending"
    CLEARED = "cleared"
    NOT_CLEARED = "not_cleared"


class Interview(TrackerModel):
    """One interview round.

    ``id``, ``application_id``, ``round_number`` and ``created_at`` never
    change after creation.

    Attributes:
        application_id: Owning application.
        round_number: 1 for the first round ever scheduled for the
            application, max existing + 1 afterwards.
        type: Category key (technical, hr, manager, or a custom key).
        mode: Mode key (video, onsite, phone, or a custom key).
        scheduled_at: Start time.
        duration: Length in minutes.
        reminder_minutes: Lead time for the reminder.
        reminder_sent: Whether the reminder already fired.
        outcome: Notes written after the round.
    """

    id: str = Field(default_factory=lambda: new_id("int"))
    application_id: str
    round_number: int = Field(default=1, ge=1)
    type: str
    mode: str
    scheduled_at: datetime
    duration: int = Field(default=DEFAULT_DURATION_MINUTES, gt=0)
    meeting_link: str = ""
    location: str = ""
    interviewer_name: str = ""
    notes: str = ""
    status: InterviewStatus = InterviewStatus.SCHEDULED
    round_outcome: RoundOutcome = RoundOutcome.PENDING
    reminder_minutes: int = Field(default=DEFAULT_REMINDER_MINUTES, ge=0)
    reminder_sent: bool = False
    outcome: str = ""
    created_at: datetime = Field(default_factory=utc_now)
    created_by: str | None = None
    last_modified_by: str | None = None

    @field_validator("scheduled_at", "created_at")
    @classmethod
    def timestamps_are_aware(cls, value: datetime) -> datetime:
        return ensure_aware(value)

    @property
    def reminder_at(self) -> datetime:
        """When the reminder window opens."""
        return self.scheduled_at - timedelta(minutes=self.reminder_minutes)

    def is_upcoming(self, now: datetime) -> bool:
        """Scheduled and still in the future."""
        return self.status is InterviewStatus.SCHEDULED and self.scheduled_at > now

    def needs_reminder(self, now: datetime) -> bool:
        """Reminder due: scheduled, not yet sent, now in [reminder_at, scheduled_at)."""
        if self.reminder_sent or self.status is not InterviewStatus.SCHEDULED:
            return False
        return self.reminder_at <= now < self.scheduled_at


class InterviewCreate(TrackerInput):
    """Payload for scheduling an interview.

    Required fields are checked by ``missing_field_errors`` so every missing
    field is reported at once with a readable message.
    """

    application_id: str = ""
    type: str = ""
    mode: str = ""
    scheduled_at: datetime | None = None
    duration: int = Field(default=DEFAULT_DURATION_MINUTES, gt=0)
    meeting_link: str = ""
    location: str = ""
    interviewer_name: str = ""
    notes: str = ""
    reminder_minutes: int | None = Field(default=None, ge=0)

    def missing_field_errors(self) -> list[str]:
        """Messages for missing required fields."""
        errors: list[str] = []
        if not self.application_id.strip():
            errors.append("Application is required")
        if self.scheduled_at is None:
            errors.append("Interview date/time is required")
        if not self.type.strip():
            errors.append("Interview type is required")
        if not self.mode.strip():
            errors.append("Interview mode is required")
        return errors


class InterviewUpdate(TrackerInput):
    """Payload for editing an interview.

    Identity fields (id, application, round number, creation time) are
    rejected as unexpected input.
    """

    type: str | None = None
    mode: str | None = None
    scheduled_at: datetime | None = None
    duration: int | None = Field(default=None, gt=0)
    meeting_link: str | None = None
    location: str | None = None
    interviewer_name: str | None = None
    notes: str | None = None
    status: InterviewStatus | None = None
    round_outcome: RoundOutcome | None = None
    reminder_minutes: int | None = Field(default=None, ge=0)
    reminder_sent: bool | None = None
    outcome: str | None = None

    def changes(self) -> dict[str, object]:
        """Fields explicitly provided by the caller."""
        return {name: getattr(self, name) for name in self.model_fields_set}
