"""Interview store and temporal queries.

Owns the in-memory interview collection and persists it through its own
DocumentStore. Day, week and month queries use calendar boundaries in the
configured timezone.

Round numbers are max existing round + 1 per application; deleted rounds
leave gaps that are never refilled.
"""

import logging
from collections.abc import Callable
from datetime import date, datetime, timedelta

import pydantic

from jobtracker.core.config import Settings
from jobtracker.core.errors import NotFoundError, ValidationError
from jobtracker.core.timeutils import Clock, day_bounds, month_bounds, utc_now
from jobtracker.models.base import format_validation_errors
from jobtracker.models.interview import Interview, InterviewCreate, InterviewUpdate
from jobtracker.repositories.base import DocumentStore

logger = logging.getLogger(__name__)


class InterviewService:
    """CRUD and queries over interview rounds.

    Mutating methods update memory first, then persist; a storage failure
    raises PersistenceError with the in-memory change already applied.

    Args:
        store: Persistence for interviews.
        settings: Provides the timezone and default reminder lead time.
        clock: Returns the current aware datetime.
        reminder_default: Returns the reminder lead time used when a
            payload leaves it unset (defaults to the settings value).
    """

    def __init__(
        self,
        store: DocumentStore[Interview],
        settings: Settings,
        *,
        clock: Clock = utc_now,
        reminder_default: Callable[[], int] | None = None,
    ) -> None:
        self._store = store
        self._settings = settings
        self._clock = clock
        self._reminder_default = reminder_default or (
            lambda: settings.default_reminder_minutes
        )
        self._tz = settings.tzinfo
        self._interviews: list[Interview] = []

    @property
    def store(self) -> DocumentStore[Interview]:
        return self._store

    async def load(self) -> None:
        """Replace the in-memory collection with the stored one."""
        self._interviews = await self._store.load()
        logger.debug("Loaded %d interviews", len(self._interviews))

    def use_store(self, store: DocumentStore[Interview]) -> None:
        """Swap the backing store (call ``load`` afterwards)."""
        self._store = store
        self._interviews = []

    # =========================================================================
    # CRUD
    # =========================================================================

    async def create(self, data: InterviewCreate, *, round_number: int) -> Interview:
        """Validate and store a new interview.

        Args:
            data: Scheduling payload.
            round_number: Round assigned by the caller.

        Raises:
            ValidationError: If a required field is missing.
        """
        errors = data.missing_field_errors()
        if errors:
            raise ValidationError(errors)
        reminder_minutes = data.reminder_minutes
        if reminder_minutes is None:
            reminder_minutes = self._reminder_default()
        fields = data.model_dump(exclude={"reminder_minutes"})
        try:
            interview = Interview(
                **fields,
                round_number=round_number,
                reminder_minutes=reminder_minutes,
                created_at=self._clock(),
                created_by=self._settings.actor_id,
                last_modified_by=self._settings.actor_id,
            )
        except pydantic.ValidationError as exc:
            raise ValidationError(format_validation_errors(exc)) from exc
        self._interviews.append(interview)
        await self._store.save_one(interview, True)
        logger.info(
            "Interview round %d scheduled for %s",
            interview.round_number,
            interview.application_id,
        )
        return interview

    async def update(self, interview_id: str, data: InterviewUpdate) -> Interview:
        """Apply the provided fields to an interview.

        Raises:
            NotFoundError: If the interview does not exist.
            ValidationError: If the result would be invalid.
        """
        index = self._index_of(interview_id)
        current = self._interviews[index]
        changes = data.changes()
        for name in ("type", "mode"):
            if name in changes and not (changes[name] or "").strip():
                raise ValidationError([f"Interview {name} is required"])
        if "scheduled_at" in changes and changes["scheduled_at"] is None:
            raise ValidationError(["Interview date/time is required"])
        changes = {k: v for k, v in changes.items() if v is not None}
        merged = {**current.model_dump(), **changes}
        merged["last_modified_by"] = self._settings.actor_id
        try:
            updated = Interview.model_validate(merged)
        except pydantic.ValidationError as exc:
            raise ValidationError(format_validation_errors(exc)) from exc
        self._interviews[index] = updated
        await self._store.save_one(updated, False)
        return updated

    async def delete(self, interview_id: str) -> bool:
        """Remove an interview; returns False if it did not exist."""
        for index, interview in enumerate(self._interviews):
            if interview.id == interview_id:
                del self._interviews[index]
                await self._store.delete(interview_id)
                return True
        return False

    async def delete_by_application(self, app_id: str) -> int:
        """Remove every interview of an application.

        Returns:
            Number of interviews removed.
        """
        doomed = [i.id for i in self._interviews if i.application_id == app_id]
        if not doomed:
            return 0
        self._interviews = [
            i for i in self._interviews if i.application_id != app_id
        ]
        for interview_id in doomed:
            await self._store.delete(interview_id)
        return len(doomed)

    def get_by_id(self, interview_id: str) -> Interview | None:
        for interview in self._interviews:
            if interview.id == interview_id:
                return interview
        return None

    def get_all(self) -> list[Interview]:
        return list(self._interviews)

    def _index_of(self, interview_id: str) -> int:
        for index, interview in enumerate(self._interviews):
            if interview.id == interview_id:
                return index
        raise NotFoundError("Interview", interview_id)

    # =========================================================================
    # Queries
    # =========================================================================

    def get_by_application(self, app_id: str) -> list[Interview]:
        """Interviews of one application, earliest first."""
        return sorted(
            (i for i in self._interviews if i.application_id == app_id),
            key=lambda i: i.scheduled_at,
        )

    def get_upcoming(self, limit: int | None = None) -> list[Interview]:
        """Scheduled interviews in the future, soonest first."""
        now = self._clock()
        upcoming = sorted(
            (i for i in self._interviews if i.is_upcoming(now)),
            key=lambda i: i.scheduled_at,
        )
        return upcoming[:limit] if limit else upcoming

    def get_by_date_range(self, start: datetime, end: datetime) -> list[Interview]:
        """Interviews with ``start <= scheduled_at <= end``, earliest first."""
        return sorted(
            (i for i in self._interviews if start <= i.scheduled_at <= end),
            key=lambda i: i.scheduled_at,
        )

    def get_today(self) -> list[Interview]:
        today = self._clock().astimezone(self._tz).date()
        return self.get_by_date_range(*day_bounds(today, self._tz))

    def get_by_week(self, week_start: date) -> list[Interview]:
        """Seven calendar days starting at local midnight of ``week_start``."""
        start, _ = day_bounds(week_start, self._tz)
        _, end = day_bounds(week_start + timedelta(days=6), self._tz)
        return self.get_by_date_range(start, end)

    def get_by_month(self, year: int, month: int) -> list[Interview]:
        """Interviews in a calendar month (``month`` is 1-12)."""
        return self.get_by_date_range(*month_bounds(year, month, self._tz))

    def get_interviews_needing_reminder(self) -> list[Interview]:
        now = self._clock()
        return [i for i in self._interviews if i.needs_reminder(now)]

    async def mark_reminder_sent(self, interview_id: str) -> bool:
        """Flag an interview's reminder as delivered.

        Returns:
            False if the interview does not exist.
        """
        for index, interview in enumerate(self._interviews):
            if interview.id == interview_id:
                updated = interview.model_copy(update={"reminder_sent": True})
                self._interviews[index] = updated
                await self._store.save_one(updated, False)
                return True
        return False

    # =========================================================================
    # Rounds
    # =========================================================================

    def get_latest_round(self, app_id: str) -> Interview | None:
        """Interview with the highest round number for an application."""
        rounds = [i for i in self._interviews if i.application_id == app_id]
        if not rounds:
            return None
        return max(rounds, key=lambda i: i.round_number)

    def get_next_round_number(self, app_id: str) -> int:
        latest = self.get_latest_round(app_id)
        return latest.round_number + 1 if latest else 1
