"""Application models - job opportunities, their log and follow-up state.

Application owns an ordered list of Interaction entries and exactly one
FollowUpTracker. Stage codes are plain integers checked against the stage
registry by the engine; the model does not know stage names.
"""

from datetime import datetime
from enum import Enum

from pydantic import ConfigDict, Field, field_validator

from jobtracker.core.timeutils import ensure_aware, utc_now
from jobtracker.models.base import TrackerInput, TrackerModel, new_id

# =============================================================================
# Enums
# =============================================================================


class FinalResult(Enum):
    """Outcome of an application.

    Only set through closing an application or resolving an offer.
    """

    OFFERED = "offered"
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    DECLINED = "declined"
    GHOSTED = "ghosted"
    WITHDRAWN = "withdrawn"


class CloseReason(Enum):
    """Reasons accepted when closing an application."""

    REJECTED = "rejected"
    DECLINED = "declined"
    GHOSTED = "ghosted"
    WITHDRAWN = "withdrawn"

    @property
    def result(self) -> FinalResult:
        """FinalResult recorded for this close reason."""
        return FinalResult(self.value)


class OfferOutcome(Enum):
    """Explicit offer resolutions."""

    OFFERED = "offered"
    ACCEPTED = "accepted"
    DECLINED = "declined"


class ContactType(Enum):
    """How the opportunity reached the candidate."""

    DIRECT = "direct"
    VENDOR = "vendor"


class InteractionType(Enum):
    """Kinds of log entries on an application."""

    HR_CALLED = "hr_called"
    FOLLOWED_UP = "followed_up"
    DOCUMENT_RECEIVED = "document_received"
    INTERVIEW_ROUND = "interview_round"
    NOTE = "note"
    UPDATE = "update"


_INTERACTION_TYPE_VALUES = {t.value for t in InteractionType}

RESULT_LABELS: dict[FinalResult, str] = {
    FinalResult.OFFERED: "🎉 Offer Received",
    FinalResult.ACCEPTED: "✅ Offer Accepted",
    FinalResult.REJECTED: "❌ Rejected",
    FinalResult.DECLINED: "🚫 Declined by Me",
    FinalResult.GHOSTED: "👻 Ghosted",
    FinalResult.WITHDRAWN: "🚪 Withdrawn",
}


# =============================================================================
# Helpers
# =============================================================================


def normalize_skill_tags(tags: list[str]) -> list[str]:
    """Trim tags and drop blanks and case-insensitive duplicates.

    The first spelling of a tag wins and order is preserved.

    Examples:
        >>> normalize_skill_tags([" Python", "python", "", "SQL"])
        ['Python', 'SQL']
    """
    seen: set[str] = set()
    result: list[str] = []
    for tag in tags:
        cleaned = tag.strip()
        if not cleaned or cleaned.casefold() in seen:
            continue
        seen.add(cleaned.casefold())
        result.append(cleaned)
    return result


def _split_tags(value: object) -> object:
    if isinstance(value, str):
        return value.split(",")
    return value


def required_field_errors(company_name: str | None, role: str | None) -> list[str]:
    """Messages for missing required application fields."""
    errors: list[str] = []
    if not (company_name or "").strip():
        errors.append("Company name is required")
    if not (role or "").strip():
        errors.append("Role is required")
    return errors


# =============================================================================
# Sub-records
# =============================================================================


class Interaction(TrackerModel, frozen=True):
    """Immutable timestamped log entry.

    Attributes:
        id: Unique id (``ix_`` prefix).
        type: Interaction kind; unknown strings become ``note``.
        notes: Free-text description.
        date: When it happened.
        stage: Stage set by the same operation, if any.
        interview_id: Linked interview for interview-round entries.
    """

    id: str = Field(default_factory=lambda: new_id("ix"))
    type: InteractionType = InteractionType.NOTE
    notes: str = ""
    date: datetime = Field(default_factory=utc_now)
    stage: int | None = None
    interview_id: str | None = None

    @field_validator("type", mode="before")
    @classmethod
    def coerce_unknown_type(cls, value: object) -> object:
        if isinstance(value, InteractionType):
            return value
        if isinstance(value, str) and value in _INTERACTION_TYPE_VALUES:
            return value
        return InteractionType.NOTE

    @field_validator("date")
    @classmethod
    def date_is_aware(cls, value: datetime) -> datetime:
        return ensure_aware(value)


class InteractionCreate(TrackerInput):
    """Payload for logging an interaction."""

    type: InteractionType | str = InteractionType.NOTE
    notes: str = ""
    date: datetime | None = None
    interview_id: str | None = None


class FollowUpTracker(TrackerModel):
    """Per-application follow-up reminder state.

    Ghost candidacy (attempts at or above the configured maximum) is derived
    by FollowUpService, never stored here.

    Attributes:
        is_active: Whether reminders are being tracked.
        attempts: Follow-ups sent since the last HR response.
        last_follow_up_at: When the last follow-up was sent.
        next_reminder_at: When the next nudge becomes due.
        hr_deadline_days: HR-specified wait overriding the default.
        waiting_context: What we are waiting for (e.g. "screening").
    """

    is_active: bool = False
    attempts: int = Field(default=0, ge=0)
    last_follow_up_at: datetime | None = None
    next_reminder_at: datetime | None = None
    hr_deadline_days: int | None = Field(default=None, ge=0)
    waiting_context: str | None = None

    @field_validator("last_follow_up_at", "next_reminder_at")
    @classmethod
    def timestamps_are_aware(cls, value: datetime | None) -> datetime | None:
        return ensure_aware(value) if value is not None else None


# =============================================================================
# Application
# =============================================================================


class ApplicationFields(TrackerModel):
    """Descriptive fields shared by Application and its create payload."""

    company_name: str = ""
    role: str = ""
    contact_type: ContactType = ContactType.DIRECT
    contact_person_name: str = ""
    contact_details: str = ""
    vendor_company_name: str = ""
    opportunity_type: str = ""
    location: str = ""
    city: str = ""
    expected_salary: float | None = Field(default=None, ge=0)
    notice_period: str = ""
    skill_tags: list[str] = []
    job_description: str = ""

    @field_validator("skill_tags", mode="before")
    @classmethod
    def split_skill_string(cls, value: object) -> object:
        return _split_tags(value)

    @field_validator("skill_tags")
    @classmethod
    def dedupe_skill_tags(cls, value: list[str]) -> list[str]:
        return normalize_skill_tags(value)

    @field_validator("company_name", "role")
    @classmethod
    def strip_required_text(cls, value: str) -> str:
        return value.strip()


class Application(ApplicationFields):
    """One job opportunity and its pipeline state.

    Mutated in place by the engine only; ``final_result`` and
    ``current_stage`` are not editable through ApplicationUpdate.
    """

    id: str = Field(default_factory=lambda: new_id("app"))
    current_stage: int = 1
    final_result: FinalResult | None = None
    created_at: datetime = Field(default_factory=utc_now)
    last_updated: datetime = Field(default_factory=utc_now)
    interactions: list[Interaction] = []
    follow_up_tracker: FollowUpTracker = Field(default_factory=FollowUpTracker)
    created_by: str | None = None
    last_modified_by: str | None = None

    @field_validator("final_result", mode="before")
    @classmethod
    def blank_result_is_none(cls, value: object) -> object:
        if value == "":
            return None
        return value

    @field_validator("follow_up_tracker", mode="before")
    @classmethod
    def missing_tracker_gets_defaults(cls, value: object) -> object:
        if value is None:
            return FollowUpTracker()
        return value

    @field_validator("created_at", "last_updated")
    @classmethod
    def timestamps_are_aware(cls, value: datetime) -> datetime:
        return ensure_aware(value)

    def find_interaction(self, interaction_id: str) -> Interaction | None:
        for interaction in self.interactions:
            if interaction.id == interaction_id:
                return interaction
        return None


class ApplicationCreate(ApplicationFields, TrackerInput):
    """Payload for creating an application.

    ``current_stage`` picks the starting stage (default: first stage).
    """

    model_config = ConfigDict(extra="forbid")

    current_stage: int | None = None


class ApplicationUpdate(TrackerInput):
    """Payload for editing an application's descriptive fields.

    Lifecycle fields (stage, result, timestamps, log, tracker) are rejected.
    """

    company_name: str | None = None
    role: str | None = None
    contact_type: ContactType | None = None
    contact_person_name: str | None = None
    contact_details: str | None = None
    vendor_company_name: str | None = None
    opportunity_type: str | None = None
    location: str | None = None
    city: str | None = None
    expected_salary: float | None = Field(default=None, ge=0)
    notice_period: str | None = None
    skill_tags: list[str] | None = None
    job_description: str | None = None

    @field_validator("skill_tags", mode="before")
    @classmethod
    def split_skill_string(cls, value: object) -> object:
        return _split_tags(value)

    @field_validator("skill_tags")
    @classmethod
    def dedupe_skill_tags(cls, value: list[str] | None) -> list[str] | None:
        return normalize_skill_tags(value) if value is not None else None

    def changes(self) -> dict[str, object]:
        """Fields explicitly provided by the caller."""
        return {name: getattr(self, name) for name in self.model_fields_set}
