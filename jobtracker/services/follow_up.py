"""Follow-up reminder tracking and ghosting detection.

Decides, per application, when a follow-up nudge is due. Checking for due
reminders is a pure query that can run on a timer as often as needed; only
the explicit actions (start, record follow-up, dismiss) move the reminder
clock.

Timeline for one waiting period with the default settings:
    start_tracking      → next reminder in 3 days, attempts = 0
    record_follow_up    → attempts + 1, next reminder in 5 days
    attempts >= 3       → ghost candidate (derived, not stored)
    record_hr_response  → attempts = 0, wait clock unchanged
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta

from jobtracker.core.config import Settings
from jobtracker.core.timeutils import Clock, utc_now, whole_days_between
from jobtracker.models.application import Application, FollowUpTracker
from jobtracker.services.stages import DEFAULT_REGISTRY, StageRegistry

logger = logging.getLogger(__name__)


# =============================================================================
# Data Classes
# =============================================================================


@dataclass(frozen=True)
class FollowUpResult:
    """Outcome of recording a follow-up.

    Attributes:
        attempts: Attempts after this follow-up.
        is_ghost_candidate: Whether the maximum has been reached.
    """

    attempts: int
    is_ghost_candidate: bool


@dataclass(frozen=True)
class FollowUpReminder:
    """A follow-up nudge that is due.

    Attributes:
        app_id: Application the nudge is for.
        company_name: Company, for display.
        role: Role, for display.
        context: What we are waiting for (e.g. "screening").
        attempts: Follow-ups already sent.
        is_ghost_candidate: Whether attempts reached the maximum.
        days_since_reminder: Whole days since the reminder became due.
        next_reminder_at: When the reminder became due.
    """

    app_id: str
    company_name: str
    role: str
    context: str | None
    attempts: int
    is_ghost_candidate: bool
    days_since_reminder: int
    next_reminder_at: datetime


# =============================================================================
# Service
# =============================================================================


class FollowUpService:
    """Mutates FollowUpTracker state on applications.

    The service never persists anything; the engine saves the application
    after calling it.

    Args:
        settings: Provides wait periods and the ghosting threshold.
        clock: Returns the current aware datetime.
        registry: Stage registry (for the closed stage code).
    """

    def __init__(
        self,
        settings: Settings,
        *,
        clock: Clock = utc_now,
        registry: StageRegistry = DEFAULT_REGISTRY,
    ) -> None:
        self.initial_wait = timedelta(days=settings.follow_up_initial_wait_days)
        self.subsequent_wait = timedelta(
            days=settings.follow_up_subsequent_wait_days
        )
        self.max_attempts = settings.follow_up_max_attempts
        self._clock = clock
        self._registry = registry

    def start_tracking(
        self,
        app: Application,
        context: str,
        hr_deadline_days: int | None = None,
    ) -> FollowUpTracker:
        """Begin a fresh waiting period.

        Args:
            app: Application to track.
            context: What we are waiting for.
            hr_deadline_days: Wait requested by HR, overriding the default.

        Returns:
            The new tracker (also assigned to ``app``).
        """
        now = self._clock()
        wait = (
            timedelta(days=hr_deadline_days)
            if hr_deadline_days is not None
            else self.initial_wait
        )
        tracker = FollowUpTracker(
            is_active=True,
            attempts=0,
            last_follow_up_at=None,
            next_reminder_at=now + wait,
            hr_deadline_days=hr_deadline_days,
            waiting_context=context,
        )
        app.follow_up_tracker = tracker
        logger.debug("Follow-up tracking started for %s (%s)", app.id, context)
        return tracker

    def record_follow_up(self, app: Application) -> FollowUpResult:
        """Count a follow-up sent by the user and push the next reminder out."""
        now = self._clock()
        tracker = app.follow_up_tracker
        tracker.attempts += 1
        tracker.last_follow_up_at = now
        tracker.next_reminder_at = now + self.subsequent_wait
        return FollowUpResult(
            attempts=tracker.attempts,
            is_ghost_candidate=tracker.attempts >= self.max_attempts,
        )

    def record_hr_response(self, app: Application) -> None:
        """Reset the attempt counter; the wait clock and context are kept."""
        tracker = app.follow_up_tracker
        tracker.attempts = 0
        tracker.last_follow_up_at = None

    def stop_tracking(self, app: Application) -> None:
        tracker = app.follow_up_tracker
        tracker.is_active = False
        tracker.next_reminder_at = None

    def dismiss_nudge(self, app: Application) -> None:
        """Stop nagging about ``app`` without changing anything else."""
        self.stop_tracking(app)

    def is_ghost_candidate(self, app: Application) -> bool:
        return app.follow_up_tracker.attempts >= self.max_attempts

    def check_reminders(
        self, applications: list[Application]
    ) -> list[FollowUpReminder]:
        """Collect due nudges, oldest first. Never mutates anything."""
        now = self._clock()
        reminders: list[FollowUpReminder] = []
        for app in applications:
            tracker = app.follow_up_tracker
            if not tracker.is_active or tracker.next_reminder_at is None:
                continue
            if now < tracker.next_reminder_at:
                continue
            reminders.append(
                FollowUpReminder(
                    app_id=app.id,
                    company_name=app.company_name,
                    role=app.role,
                    context=tracker.waiting_context,
                    attempts=tracker.attempts,
                    is_ghost_candidate=tracker.attempts >= self.max_attempts,
                    days_since_reminder=whole_days_between(
                        tracker.next_reminder_at, now
                    ),
                    next_reminder_at=tracker.next_reminder_at,
                )
            )
        reminders.sort(key=lambda r: r.next_reminder_at)
        return reminders

    def get_active_follow_ups(
        self, applications: list[Application]
    ) -> list[Application]:
        """Applications with an active tracker that are not closed."""
        return [
            app
            for app in applications
            if app.follow_up_tracker.is_active
            and app.current_stage != self._registry.closed_code
        ]
