"""Reminder polling worker.

Runs a reminder pass on a fixed interval (default one minute). Each pass
collects interviews whose reminder window is open plus due follow-up nudges
and hands them to a handler in one ReminderBatch. Delivery itself (desktop
notification, e-mail, chat message) is the handler's business.

Passes are idempotent: interview reminders are marked as sent after the
handler succeeds, and each follow-up nudge is handed over once per due date
while it stays due. A failing handler marks nothing, so the same
reminders come back on the next pass.
"""

import asyncio
import contextlib
import inspect
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from datetime import datetime

import structlog

from jobtracker.core.timeutils import utc_now
from jobtracker.models.interview import Interview
from jobtracker.services.application_engine import ApplicationEngine
from jobtracker.services.follow_up import FollowUpReminder
from jobtracker.services.preferences import PreferencesService

logger = structlog.get_logger()

DEFAULT_INTERVAL_SECONDS = 60


@dataclass(frozen=True)
class ReminderBatch:
    """Reminders due in one pass.

    Attributes:
        interviews: Interviews whose reminder should fire now.
        follow_ups: Follow-up nudges that became due.
        generated_at: When the pass ran.
    """

    interviews: list[Interview] = field(default_factory=list)
    follow_ups: list[FollowUpReminder] = field(default_factory=list)
    generated_at: datetime = field(default_factory=utc_now)

    @property
    def ghost_candidates(self) -> list[FollowUpReminder]:
        return [r for r in self.follow_ups if r.is_ghost_candidate]

    @property
    def is_empty(self) -> bool:
        return not self.interviews and not self.follow_ups


ReminderHandler = Callable[[ReminderBatch], Awaitable[None] | None]


class ReminderWorker:
    """Background worker that periodically delivers due reminders.

    Lifecycle:
    - start() creates an asyncio task that runs the polling loop.
    - stop() cancels the task and waits for it to finish.
    - run_once() executes a single pass (for testing).

    Args:
        engine: Source of due reminders.
        handler: Receives each non-empty batch (sync or async).
        preferences: When given, passes are skipped while notifications
            are disabled.
        interval_seconds: Seconds between passes.
    """

    def __init__(
        self,
        engine: ApplicationEngine,
        handler: ReminderHandler,
        *,
        preferences: PreferencesService | None = None,
        interval_seconds: int = DEFAULT_INTERVAL_SECONDS,
    ) -> None:
        self._engine = engine
        self._handler = handler
        self._preferences = preferences
        self._interval_seconds = interval_seconds
        self._task: asyncio.Task[None] | None = None
        self._running = False
        self._last_run_at: datetime | None = None
        self._delivered_follow_ups: set[tuple[str, datetime]] = set()

    @property
    def is_running(self) -> bool:
        """Whether the background task is currently active."""
        return self._running and self._task is not None and not self._task.done()

    @property
    def last_run_at(self) -> datetime | None:
        return self._last_run_at

    def start(self) -> None:
        """Start the polling loop. No-op if already running.

        Must be called with a running event loop.
        """
        if self.is_running:
            logger.warning("Reminder worker already running")
            return
        self._running = True
        self._task = asyncio.create_task(self._run_loop())
        logger.info("Reminder worker started", interval=self._interval_seconds)

    async def stop(self) -> None:
        """Cancel the polling loop and wait for it to exit."""
        self._running = False
        if self._task is not None and not self._task.done():
            self._task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._task
        self._task = None
        logger.info("Reminder worker stopped")

    def _collect(self) -> ReminderBatch:
        due = self._engine.check_follow_up_reminders()
        # Keep only deliveries that are still due
        self._delivered_follow_ups &= {
            (reminder.app_id, reminder.next_reminder_at) for reminder in due
        }
        follow_ups = [
            reminder
            for reminder in due
            if (reminder.app_id, reminder.next_reminder_at)
            not in self._delivered_follow_ups
        ]
        return ReminderBatch(
            interviews=self._engine.get_interview_reminders(),
            follow_ups=follow_ups,
        )

    async def run_once(self) -> ReminderBatch:
        """Execute a single reminder pass.

        Returns:
            The batch handed to the handler (empty when nothing was due or
            notifications are disabled).

        Raises:
            Exception: Whatever the handler raised; nothing is marked.
        """
        if self._preferences is not None and not self._preferences.notifications_enabled:
            return ReminderBatch()

        batch = self._collect()
        self._last_run_at = batch.generated_at
        if batch.is_empty:
            return batch

        outcome = self._handler(batch)
        if inspect.isawaitable(outcome):
            await outcome

        for interview in batch.interviews:
            await self._engine.mark_interview_reminder_sent(interview.id)
        self._delivered_follow_ups.update(
            (reminder.app_id, reminder.next_reminder_at)
            for reminder in batch.follow_ups
        )
        logger.info(
            "Reminders delivered",
            interviews=len(batch.interviews),
            follow_ups=len(batch.follow_ups),
            ghost_candidates=len(batch.ghost_candidates),
        )
        return batch

    async def _run_loop(self) -> None:
        """Background loop: run_once → sleep → repeat."""
        try:
            while self._running:
                try:
                    await self.run_once()
                except Exception:  # noqa: BLE001
                    logger.exception("Error in reminder pass")
                await asyncio.sleep(self._interval_seconds)
        except asyncio.CancelledError:
            logger.debug("Reminder loop cancelled")
            raise
