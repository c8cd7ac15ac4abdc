"""Application engine: the single writer for tracker state.

Owns the in-memory application collection and exposes every mutating
operation. Each operation:

1. Validates input and looks up the records it touches.
2. Mutates the in-memory application (stage, tracker, interaction log).
3. Persists through the DocumentStore.
4. Publishes one ChangeEvent to subscribers.

Expected failures (validation, unknown ids, invalid state) come back as a
failed OperationResult. A storage failure raises PersistenceError after the
in-memory state has already changed; nothing is rolled back.

Stage rules:
- Any open stage can move to any other stage.
- Closing needs a reason and goes through ``close_application``.
- Closed is terminal; there is no reopen.
- Entering screening starts follow-up tracking, leaving it stops tracking.
"""

import asyncio
import json
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum

import pydantic
import structlog

from jobtracker.core.config import Settings
from jobtracker.core.errors import (
    InvalidStateError,
    NoChangeError,
    NotFoundError,
    PersistenceError,
    TrackerError,
    ValidationError,
)
from jobtracker.core.events import ChangeEvent, ChangeKind, EventBus, Listener
from jobtracker.core.filtering import ApplicationFilters, SortParams
from jobtracker.core.results import OperationResult
from jobtracker.core.timeutils import Clock, utc_now
from jobtracker.models.application import (
    RESULT_LABELS,
    Application,
    ApplicationCreate,
    ApplicationUpdate,
    CloseReason,
    FinalResult,
    FollowUpTracker,
    Interaction,
    InteractionCreate,
    InteractionType,
    OfferOutcome,
    required_field_errors,
)
from jobtracker.models.base import format_validation_errors
from jobtracker.models.interview import (
    Interview,
    InterviewCreate,
    InterviewStatus,
    InterviewUpdate,
    RoundOutcome,
)
from jobtracker.repositories.base import DocumentStore
from jobtracker.services import analytics
from jobtracker.services.application_query import (
    FilterOptions,
    filter_options,
    query_applications,
)
from jobtracker.services.follow_up import FollowUpReminder, FollowUpService
from jobtracker.services.interview_service import InterviewService
from jobtracker.services.stages import DEFAULT_REGISTRY, ActionCode, StageRegistry

logger = structlog.get_logger()

SCREENING_CONTEXT = "screening"


# =============================================================================
# Result types
# =============================================================================


class SuggestedAction(Enum):
    """What the caller should offer after a round outcome is recorded."""

    SCHEDULE_NEXT_OR_OFFER = "schedule_next_or_offer"
    CLOSE_REJECTED = "close_rejected"


@dataclass(frozen=True)
class StageTransition:
    """Outcome of a stage move.

    Attributes:
        old_stage: Stage before the call.
        new_stage: Requested stage.
        action: Prompt the caller should show next.
        applied: False when the move needs more input first (closing).
    """

    old_stage: int
    new_stage: int
    action: ActionCode
    applied: bool = True


@dataclass(frozen=True)
class RoundOutcomeResult:
    """Completed interview plus the suggested next step."""

    interview: Interview
    suggested_action: SuggestedAction


_HR_RESPONSE_TYPES = frozenset(
    {InteractionType.HR_CALLED, InteractionType.DOCUMENT_RECEIVED}
)

_SUB_STATUS_LABELS = {
    InterviewStatus.CANCELLED: "Cancelled",
    InterviewStatus.RESCHEDULED: "Rescheduled 🔁",
}

_OUTCOME_LABELS = {
    RoundOutcome.CLEARED: "Cleared ✅",
    RoundOutcome.NOT_CLEARED: "Not Cleared ❌",
    RoundOutcome.PENDING: "Awaiting Result ⏳",
}


def _parse(model: type[pydantic.BaseModel], data: object):
    """Validate a dict payload into ``model``; models pass through."""
    if isinstance(data, model):
        return data
    try:
        return model.model_validate(data)
    except pydantic.ValidationError as exc:
        raise ValidationError(format_validation_errors(exc)) from exc


def _coerce_enum(enum_cls: type[Enum], value: object, label: str):
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(value)
    except ValueError as exc:
        valid = ", ".join(member.value for member in enum_cls)
        raise ValidationError([f"Invalid {label}: {value!r}. Valid: {valid}"]) from exc


def _with_notes(text: str, notes: str) -> str:
    notes = notes.strip()
    return f"{text}: {notes}" if notes else text


class ApplicationEngine:
    """Orchestrates applications, interviews and follow-up reminders.

    Args:
        store: Persistence for applications.
        interviews: Interview service (owns its own store).
        follow_ups: Follow-up tracker service.
        settings: Tracker settings.
        registry: Stage registry.
        clock: Returns the current aware datetime.
        events: Event bus; a private one is created when omitted.
    """

    def __init__(
        self,
        store: DocumentStore[Application],
        interviews: InterviewService,
        follow_ups: FollowUpService,
        settings: Settings,
        *,
        registry: StageRegistry = DEFAULT_REGISTRY,
        clock: Clock = utc_now,
        events: EventBus[ChangeEvent] | None = None,
    ) -> None:
        self._store = store
        self._interviews = interviews
        self._follow_ups = follow_ups
        self._settings = settings
        self._registry = registry
        self._clock = clock
        self._events: EventBus[ChangeEvent] = (
            events if events is not None else EventBus()
        )
        self._lock = asyncio.Lock()
        self._applications: list[Application] = []
        self._filters = ApplicationFilters()
        self._sort = SortParams()
        self._initialized = False
        self._store_unsubscribe: Callable[[], None] | None = None

    @property
    def registry(self) -> StageRegistry:
        return self._registry

    @property
    def interviews(self) -> InterviewService:
        return self._interviews

    @property
    def follow_ups(self) -> FollowUpService:
        return self._follow_ups

    @property
    def filters(self) -> ApplicationFilters:
        return self._filters

    @property
    def sort(self) -> SortParams:
        return self._sort

    @property
    def is_initialized(self) -> bool:
        return self._initialized

    # =========================================================================
    # Lifecycle
    # =========================================================================

    async def initialize(self) -> None:
        """Load applications and interviews once; later calls are no-ops.

        Raises:
            PersistenceError: If either store cannot be read.
        """
        if self._initialized:
            return
        async with self._lock:
            await self._load_all()
            if self._store.supports_push:
                self._store_unsubscribe = self._store.subscribe(
                    self._on_remote_snapshot
                )
            self._initialized = True
        logger.info(
            "Tracker initialized",
            applications=len(self._applications),
            backend=self._store.backend_name,
        )
        await self._publish(ChangeKind.LOADED)

    async def reload(self) -> None:
        """Re-read both stores, discarding in-memory state."""
        async with self._lock:
            await self._load_all()
        await self._publish(ChangeKind.LOADED)

    async def reinitialize(
        self,
        store: DocumentStore[Application],
        interview_store: DocumentStore[Interview],
    ) -> None:
        """Switch to different stores (e.g. after login/logout) and reload."""
        self.close()
        async with self._lock:
            self._store = store
            self._interviews.use_store(interview_store)
            self._applications = []
            self._initialized = False
        await self.initialize()

    def close(self) -> None:
        """Stop listening to pushed store snapshots."""
        if self._store_unsubscribe is not None:
            self._store_unsubscribe()
            self._store_unsubscribe = None

    async def _load_all(self) -> None:
        self._applications = await self._store.load()
        await self._interviews.load()

    async def _on_remote_snapshot(self, applications: list[Application]) -> None:
        """Install a pushed snapshot, skipping records that break invariants."""
        accepted: list[Application] = []
        for app in applications:
            problems = self._record_problems(app)
            if problems:
                logger.warning(
                    "Skipping invalid pushed application",
                    app_id=app.id,
                    problems=problems,
                )
                continue
            accepted.append(app)
        async with self._lock:
            self._applications = accepted
        logger.debug(
            "Remote snapshot applied",
            applications=len(accepted),
            skipped=len(applications) - len(accepted),
        )
        await self._publish(ChangeKind.LOADED)

    # =========================================================================
    # Observers
    # =========================================================================

    def subscribe(self, listener: Listener[ChangeEvent]) -> Callable[[], None]:
        """Register a change listener; returns an unsubscribe callable."""
        return self._events.subscribe(listener)

    def unsubscribe(self, listener: Listener[ChangeEvent]) -> bool:
        return self._events.unsubscribe(listener)

    async def _publish(
        self,
        kind: ChangeKind,
        application_id: str | None = None,
        interview_id: str | None = None,
    ) -> None:
        await self._events.publish(
            ChangeEvent(
                kind=kind,
                application_id=application_id,
                interview_id=interview_id,
                occurred_at=self._clock(),
            )
        )

    # =========================================================================
    # Internal helpers
    # =========================================================================

    def _require(self, app_id: str) -> Application:
        for app in self._applications:
            if app.id == app_id:
                return app
        raise NotFoundError("Application", app_id)

    def _is_closed(self, app: Application) -> bool:
        return app.current_stage == self._registry.closed_code

    def _record_problems(self, app: Application) -> list[str]:
        """Invariant violations in a stored or imported application."""
        problems = required_field_errors(app.company_name, app.role)
        if not self._registry.is_valid(app.current_stage):
            problems.append(f"Invalid stage: {app.current_stage}")
        elif self._is_closed(app) and app.final_result is None:
            problems.append("Closed application has no final result")
        return problems

    def _touch(self, app: Application) -> None:
        """Refresh last_updated without ever moving it backwards."""
        now = self._clock()
        if now > app.last_updated:
            app.last_updated = now
        if self._settings.actor_id:
            app.last_modified_by = self._settings.actor_id

    def _log(
        self,
        app: Application,
        kind: InteractionType,
        notes: str,
        *,
        stage: int | None = None,
        interview_id: str | None = None,
    ) -> Interaction:
        interaction = Interaction(
            type=kind,
            notes=notes,
            date=self._clock(),
            stage=stage,
            interview_id=interview_id,
        )
        app.interactions.append(interaction)
        return interaction

    def _stage_label(self, old: int, new: int) -> str:
        return f"Stage: {self._registry.name_of(old)} → {self._registry.name_of(new)}"

    def _check_stage_target(self, app: Application, new_stage: object) -> None:
        if new_stage == app.current_stage:
            raise NoChangeError(
                f"Application is already in {self._registry.name_of(app.current_stage)}"
            )
        if not self._registry.is_valid(new_stage):
            raise ValidationError([f"Invalid stage: {new_stage!r}"])
        if self._is_closed(app):
            raise InvalidStateError("Closed applications cannot change stage")

    def _apply_stage_change(
        self,
        app: Application,
        new_stage: int,
        *,
        hr_deadline_days: int | None = None,
        annotate: bool = True,
    ) -> StageTransition:
        old_stage = app.current_stage
        app.current_stage = new_stage
        if new_stage == self._registry.screening_code:
            self._follow_ups.start_tracking(app, SCREENING_CONTEXT, hr_deadline_days)
        elif old_stage == self._registry.screening_code:
            self._follow_ups.stop_tracking(app)
        if annotate:
            self._log(
                app,
                InteractionType.UPDATE,
                self._stage_label(old_stage, new_stage),
                stage=new_stage,
            )
        self._touch(app)
        logger.info(
            "Stage changed", app_id=app.id, old_stage=old_stage, new_stage=new_stage
        )
        return StageTransition(
            old_stage=old_stage,
            new_stage=new_stage,
            action=self._registry.action_for(new_stage),
        )

    def _close(self, app: Application, reason: CloseReason, notes: str) -> None:
        if self._is_closed(app):
            raise InvalidStateError("Application is already closed")
        old_stage = app.current_stage
        closed = self._registry.closed_code
        app.current_stage = closed
        app.final_result = reason.result
        self._follow_ups.stop_tracking(app)
        self._log(
            app,
            InteractionType.UPDATE,
            _with_notes(f"{self._stage_label(old_stage, closed)} ({reason.value})", notes),
            stage=closed,
        )
        self._touch(app)
        logger.info("Application closed", app_id=app.id, reason=reason.value)

    async def _persist(self, app: Application, *, is_new: bool = False) -> None:
        try:
            await self._store.save_one(app, is_new)
        except PersistenceError:
            logger.exception("Failed to save application", app_id=app.id)
            raise

    async def _persist_all(self) -> None:
        try:
            await self._store.save(self._applications)
        except PersistenceError:
            logger.exception("Failed to save applications")
            raise

    # =========================================================================
    # CRUD
    # =========================================================================

    def get_all(self) -> list[Application]:
        """All applications in stored order (a new list, same objects)."""
        return list(self._applications)

    def get_by_id(self, app_id: str) -> Application | None:
        for app in self._applications:
            if app.id == app_id:
                return app
        return None

    async def create(
        self, data: ApplicationCreate | dict
    ) -> OperationResult[Application]:
        """Add a new application.

        The starting stage defaults to the first pipeline stage and may not
        be the closed stage. Starting in screening starts follow-up tracking.
        """
        async with self._lock:
            try:
                payload: ApplicationCreate = _parse(ApplicationCreate, data)
                errors = required_field_errors(payload.company_name, payload.role)
                if errors:
                    raise ValidationError(errors)
                stage = payload.current_stage
                if stage is None:
                    stage = self._registry.open_codes[0]
                if not self._registry.is_valid(stage):
                    raise ValidationError([f"Invalid stage: {stage!r}"])
                if stage == self._registry.closed_code:
                    raise ValidationError(["New applications cannot start closed"])
            except TrackerError as exc:
                return OperationResult.fail(exc)

            now = self._clock()
            app = Application(
                **payload.model_dump(exclude={"current_stage"}),
                current_stage=stage,
                created_at=now,
                last_updated=now,
                created_by=self._settings.actor_id,
                last_modified_by=self._settings.actor_id,
            )
            if stage == self._registry.screening_code:
                self._follow_ups.start_tracking(app, SCREENING_CONTEXT)
            self._applications.append(app)
            await self._persist(app, is_new=True)

        logger.info("Application created", app_id=app.id, company=app.company_name)
        await self._publish(ChangeKind.CREATED, app.id)
        return OperationResult.ok(app)

    async def update(
        self, app_id: str, data: ApplicationUpdate | dict
    ) -> OperationResult[Application]:
        """Edit descriptive fields in place. Lifecycle fields are rejected."""
        async with self._lock:
            try:
                payload: ApplicationUpdate = _parse(ApplicationUpdate, data)
                current = self._require(app_id)
                changes = {
                    name: value
                    for name, value in payload.changes().items()
                    if value is not None or name == "expected_salary"
                }
                merged = {**current.model_dump(), **changes}
                errors = required_field_errors(merged["company_name"], merged["role"])
                if errors:
                    raise ValidationError(errors)
                validated = _parse(Application, merged)
            except TrackerError as exc:
                return OperationResult.fail(exc)

            for name in changes:
                setattr(current, name, getattr(validated, name))
            self._touch(current)
            await self._persist(current)

        await self._publish(ChangeKind.UPDATED, app_id)
        return OperationResult.ok(current)

    async def delete(self, app_id: str) -> OperationResult[Application]:
        """Remove an application and every interview it owns."""
        async with self._lock:
            try:
                app = self._require(app_id)
            except TrackerError as exc:
                return OperationResult.fail(exc)
            self._applications.remove(app)
            removed = await self._interviews.delete_by_application(app_id)
            try:
                await self._store.delete(app_id)
            except PersistenceError:
                logger.exception("Failed to delete application", app_id=app_id)
                raise

        logger.info("Application deleted", app_id=app_id, interviews_removed=removed)
        await self._publish(ChangeKind.DELETED, app_id)
        return OperationResult.ok(app)

    # =========================================================================
    # Query
    # =========================================================================

    def query(
        self,
        filters: ApplicationFilters | None = None,
        sort: SortParams | None = None,
    ) -> list[Application]:
        """Filtered and sorted applications (current view state by default)."""
        return query_applications(
            self._applications,
            filters or self._filters,
            sort or self._sort,
        )

    async def set_filters(self, **changes: object) -> ApplicationFilters:
        """Merge filter changes into the current view state."""
        self._filters = self._filters.merged(**changes)
        await self._publish(ChangeKind.VIEW_CHANGED)
        return self._filters

    async def clear_filters(self) -> ApplicationFilters:
        self._filters = ApplicationFilters()
        await self._publish(ChangeKind.VIEW_CHANGED)
        return self._filters

    async def toggle_sort(self, column: str) -> SortParams:
        """Same column flips direction; a new column sorts ascending."""
        self._sort = self._sort.toggle(column)
        await self._publish(ChangeKind.VIEW_CHANGED)
        return self._sort

    def get_filter_options(self) -> FilterOptions:
        return filter_options(self._applications)

    # =========================================================================
    # Stage state machine
    # =========================================================================

    async def move_to_stage(
        self,
        app_id: str,
        new_stage: int,
        *,
        hr_deadline_days: int | None = None,
    ) -> OperationResult[StageTransition]:
        """Move an application to another open stage.

        Moving to the closed stage changes nothing and returns the
        ``prompt_close_reason`` action; the caller then asks for a reason
        and calls ``close_application``.

        Args:
            app_id: Application to move.
            new_stage: Target stage code.
            hr_deadline_days: Wait requested by HR when entering screening.

        Returns:
            Result carrying the StageTransition. Fails with NOT_FOUND,
            NO_CHANGE (same stage, nothing logged or published),
            VALIDATION_ERROR (unknown stage) or INVALID_STATE (closed).
        """
        async with self._lock:
            try:
                app = self._require(app_id)
                self._check_stage_target(app, new_stage)
                if hr_deadline_days is not None and hr_deadline_days < 0:
                    raise ValidationError(["HR deadline days cannot be negative"])
            except TrackerError as exc:
                return OperationResult.fail(exc)

            if new_stage == self._registry.closed_code:
                return OperationResult.ok(
                    StageTransition(
                        old_stage=app.current_stage,
                        new_stage=new_stage,
                        action=ActionCode.PROMPT_CLOSE_REASON,
                        applied=False,
                    )
                )

            transition = self._apply_stage_change(
                app, new_stage, hr_deadline_days=hr_deadline_days
            )
            await self._persist(app)

        await self._publish(ChangeKind.STAGE_CHANGED, app_id)
        return OperationResult.ok(transition)

    async def close_application(
        self,
        app_id: str,
        reason: CloseReason | str,
        notes: str = "",
    ) -> OperationResult[Application]:
        """Close an application for cause and record the final result."""
        async with self._lock:
            try:
                close_reason = _coerce_enum(CloseReason, reason, "close reason")
                app = self._require(app_id)
                self._close(app, close_reason, notes)
            except TrackerError as exc:
                return OperationResult.fail(exc)
            await self._persist(app)

        await self._publish(ChangeKind.CLOSED, app_id)
        return OperationResult.ok(app)

    async def mark_as_ghosted(
        self, app_id: str, notes: str = ""
    ) -> OperationResult[Application]:
        return await self.close_application(app_id, CloseReason.GHOSTED, notes)

    async def resolve_offer(
        self,
        app_id: str,
        outcome: OfferOutcome | str,
        notes: str = "",
    ) -> OperationResult[Application]:
        """Record what happened to an offer.

        - ``offered``: moves to the offer stage if needed, result ``offered``.
        - ``accepted``: result ``accepted``, tracking stops, stays open.
        - ``declined``: closes the application with reason ``declined``.
        """
        async with self._lock:
            try:
                resolution = _coerce_enum(OfferOutcome, outcome, "offer outcome")
                app = self._require(app_id)
                if self._is_closed(app):
                    raise InvalidStateError("Application is already closed")
                if resolution is OfferOutcome.DECLINED:
                    self._close(app, CloseReason.DECLINED, notes)
                    kind = ChangeKind.CLOSED
                else:
                    self._record_offer(app, resolution, notes)
                    kind = ChangeKind.UPDATED
            except TrackerError as exc:
                return OperationResult.fail(exc)
            await self._persist(app)

        await self._publish(kind, app_id)
        return OperationResult.ok(app)

    def _record_offer(
        self, app: Application, resolution: OfferOutcome, notes: str
    ) -> None:
        offer_stage = self._registry.offer_code
        if resolution is OfferOutcome.OFFERED and app.current_stage != offer_stage:
            self._apply_stage_change(app, offer_stage)
        result = FinalResult(resolution.value)
        app.final_result = result
        if result is FinalResult.ACCEPTED:
            self._follow_ups.stop_tracking(app)
        self._log(
            app,
            InteractionType.UPDATE,
            _with_notes(f"Result: {RESULT_LABELS[result]}", notes),
        )
        self._touch(app)
        logger.info("Offer resolved", app_id=app.id, result=result.value)

    def get_interview_sub_status(self, app_id: str) -> str | None:
        """Label for the latest round, e.g. ``Round 2 — Cleared ✅``.

        Returns:
            None if the application has no interviews.
        """
        latest = self._interviews.get_latest_round(app_id)
        if latest is None:
            return None
        if latest.status in _SUB_STATUS_LABELS:
            label = _SUB_STATUS_LABELS[latest.status]
        elif latest.status is InterviewStatus.COMPLETED:
            label = _OUTCOME_LABELS[latest.round_outcome]
        elif latest.round_outcome is not RoundOutcome.PENDING:
            label = _OUTCOME_LABELS[latest.round_outcome]
        elif latest.scheduled_at > self._clock():
            label = "Scheduled 📅"
        else:
            label = _OUTCOME_LABELS[RoundOutcome.PENDING]
        return f"Round {latest.round_number} — {label}"

    # =========================================================================
    # Interactions
    # =========================================================================

    async def add_interaction(
        self,
        app_id: str,
        data: InteractionCreate | dict,
        new_stage: int | None = None,
    ) -> OperationResult[Interaction]:
        """Log an interaction, optionally moving the stage in the same step.

        ``hr_called`` and ``document_received`` reset the follow-up attempt
        counter. ``followed_up`` counts a follow-up while tracking is active.
        The logged interaction carries the new stage; no separate stage
        annotation is added.
        """
        async with self._lock:
            try:
                payload: InteractionCreate = _parse(InteractionCreate, data)
                app = self._require(app_id)
                change_stage = new_stage is not None and new_stage != app.current_stage
                if change_stage:
                    self._check_stage_target(app, new_stage)
                    if new_stage == self._registry.closed_code:
                        raise InvalidStateError(
                            "Closing needs a reason; use close_application"
                        )
            except TrackerError as exc:
                return OperationResult.fail(exc)

            interaction = Interaction(
                type=payload.type,
                notes=payload.notes,
                date=payload.date or self._clock(),
                stage=new_stage if change_stage else None,
                interview_id=payload.interview_id,
            )
            app.interactions.append(interaction)
            if change_stage:
                self._apply_stage_change(app, new_stage, annotate=False)

            if interaction.type in _HR_RESPONSE_TYPES:
                self._follow_ups.record_hr_response(app)
            elif (
                interaction.type is InteractionType.FOLLOWED_UP
                and app.follow_up_tracker.is_active
            ):
                outcome = self._follow_ups.record_follow_up(app)
                if outcome.is_ghost_candidate:
                    logger.info(
                        "Ghosting candidate", app_id=app.id, attempts=outcome.attempts
                    )
            self._touch(app)
            await self._persist(app)

        kind = ChangeKind.STAGE_CHANGED if change_stage else ChangeKind.INTERACTION_ADDED
        await self._publish(kind, app_id)
        return OperationResult.ok(interaction)

    async def remove_interaction(
        self, app_id: str, interaction_id: str
    ) -> OperationResult[Interaction]:
        async with self._lock:
            try:
                app = self._require(app_id)
                interaction = app.find_interaction(interaction_id)
                if interaction is None:
                    raise NotFoundError("Interaction", interaction_id)
            except TrackerError as exc:
                return OperationResult.fail(exc)
            app.interactions.remove(interaction)
            self._touch(app)
            await self._persist(app)

        await self._publish(ChangeKind.INTERACTION_REMOVED, app_id)
        return OperationResult.ok(interaction)

    # =========================================================================
    # Interviews
    # =========================================================================

    async def schedule_interview(
        self, app_id: str, data: InterviewCreate | dict
    ) -> OperationResult[Interview]:
        """Create the next interview round for an application.

        Applications before the interview stage advance to it. Follow-up
        tracking stops and an ``interview_round`` interaction linked to the
        new interview is logged.
        """
        async with self._lock:
            try:
                payload: InterviewCreate = _parse(InterviewCreate, data)
                payload = payload.model_copy(update={"application_id": app_id or ""})
                errors = payload.missing_field_errors()
                if errors:
                    raise ValidationError(errors)
                app = self._require(app_id)
                if self._is_closed(app):
                    raise InvalidStateError(
                        "Cannot schedule interviews for a closed application"
                    )
                round_number = self._interviews.get_next_round_number(app_id)
                interview = await self._interviews.create(
                    payload, round_number=round_number
                )
            except TrackerError as exc:
                if isinstance(exc, PersistenceError):
                    raise
                return OperationResult.fail(exc)

            interview_stage = self._registry.interview_code
            advanced = self._registry.precedes(app.current_stage, interview_stage)
            if advanced:
                self._apply_stage_change(app, interview_stage)
            self._follow_ups.stop_tracking(app)
            self._log(
                app,
                InteractionType.INTERVIEW_ROUND,
                f"Round {interview.round_number} scheduled",
                stage=interview_stage if advanced else None,
                interview_id=interview.id,
            )
            self._touch(app)
            await self._persist(app)

        await self._publish(ChangeKind.INTERVIEW_CHANGED, app_id, interview.id)
        return OperationResult.ok(interview)

    async def update_interview(
        self, interview_id: str, data: InterviewUpdate | dict
    ) -> OperationResult[Interview]:
        async with self._lock:
            try:
                payload: InterviewUpdate = _parse(InterviewUpdate, data)
                interview = await self._interviews.update(interview_id, payload)
            except TrackerError as exc:
                if isinstance(exc, PersistenceError):
                    raise
                return OperationResult.fail(exc)

        await self._publish(
            ChangeKind.INTERVIEW_CHANGED, interview.application_id, interview_id
        )
        return OperationResult.ok(interview)

    async def delete_interview(self, interview_id: str) -> OperationResult[Interview]:
        async with self._lock:
            interview = self._interviews.get_by_id(interview_id)
            if interview is None:
                return OperationResult.fail(NotFoundError("Interview", interview_id))
            await self._interviews.delete(interview_id)

        await self._publish(
            ChangeKind.INTERVIEW_CHANGED, interview.application_id, interview_id
        )
        return OperationResult.ok(interview)

    async def set_round_outcome(
        self,
        interview_id: str,
        outcome: RoundOutcome | str,
        notes: str = "",
    ) -> OperationResult[RoundOutcomeResult]:
        """Complete a round and suggest the next step.

        Never changes the application's stage. A cleared round starts
        follow-up tracking for feedback on that round.
        """
        async with self._lock:
            try:
                round_outcome = _coerce_enum(RoundOutcome, outcome, "round outcome")
                if round_outcome is RoundOutcome.PENDING:
                    raise ValidationError(["Outcome must be cleared or not_cleared"])
                if self._interviews.get_by_id(interview_id) is None:
                    raise NotFoundError("Interview", interview_id)
                interview = await self._interviews.update(
                    interview_id,
                    InterviewUpdate(
                        status=InterviewStatus.COMPLETED,
                        round_outcome=round_outcome,
                        outcome=notes,
                    ),
                )
            except TrackerError as exc:
                if isinstance(exc, PersistenceError):
                    raise
                return OperationResult.fail(exc)

            app = self.get_by_id(interview.application_id)
            if app is not None:
                cleared = round_outcome is RoundOutcome.CLEARED
                if cleared and not self._is_closed(app):
                    self._follow_ups.start_tracking(
                        app, f"feedback_round_{interview.round_number}"
                    )
                verdict = "cleared" if cleared else "not cleared"
                self._log(
                    app,
                    InteractionType.INTERVIEW_ROUND,
                    _with_notes(f"Round {interview.round_number} {verdict}", notes),
                    interview_id=interview.id,
                )
                self._touch(app)
                await self._persist(app)

        suggested = (
            SuggestedAction.SCHEDULE_NEXT_OR_OFFER
            if round_outcome is RoundOutcome.CLEARED
            else SuggestedAction.CLOSE_REJECTED
        )
        await self._publish(
            ChangeKind.INTERVIEW_CHANGED, interview.application_id, interview_id
        )
        return OperationResult.ok(RoundOutcomeResult(interview, suggested))

    def get_interviews_for_application(self, app_id: str) -> list[Interview]:
        return self._interviews.get_by_application(app_id)

    def get_upcoming_interviews(self, limit: int | None = None) -> list[Interview]:
        """Upcoming interviews, at most ``upcoming_interview_limit`` by default."""
        if limit is None:
            limit = self._settings.upcoming_interview_limit
        return self._interviews.get_upcoming(limit)

    def get_todays_interviews(self) -> list[Interview]:
        return self._interviews.get_today()

    def get_interview_reminders(self) -> list[Interview]:
        """Interviews whose reminder window is open and not yet notified."""
        return self._interviews.get_interviews_needing_reminder()

    async def mark_interview_reminder_sent(self, interview_id: str) -> bool:
        async with self._lock:
            marked = await self._interviews.mark_reminder_sent(interview_id)
        if marked:
            interview = self._interviews.get_by_id(interview_id)
            await self._publish(
                ChangeKind.INTERVIEW_CHANGED,
                interview.application_id if interview else None,
                interview_id,
            )
        return marked

    # =========================================================================
    # Follow-ups
    # =========================================================================

    def check_follow_up_reminders(self) -> list[FollowUpReminder]:
        """Due follow-up nudges. Safe to call on any schedule."""
        return self._follow_ups.check_reminders(self._applications)

    def get_active_follow_ups(self) -> list[Application]:
        return self._follow_ups.get_active_follow_ups(self._applications)

    async def start_follow_up(
        self,
        app_id: str,
        context: str,
        hr_deadline_days: int | None = None,
    ) -> OperationResult[FollowUpTracker]:
        """Start a new waiting period by hand."""
        async with self._lock:
            try:
                app = self._require(app_id)
                if self._is_closed(app):
                    raise InvalidStateError("Closed applications are not tracked")
                if not context.strip():
                    raise ValidationError(["Waiting context is required"])
                if hr_deadline_days is not None and hr_deadline_days < 0:
                    raise ValidationError(["HR deadline days cannot be negative"])
            except TrackerError as exc:
                return OperationResult.fail(exc)
            tracker = self._follow_ups.start_tracking(
                app, context.strip(), hr_deadline_days
            )
            self._touch(app)
            await self._persist(app)

        await self._publish(ChangeKind.FOLLOW_UP_CHANGED, app_id)
        return OperationResult.ok(tracker)

    async def dismiss_follow_up_nudge(
        self, app_id: str
    ) -> OperationResult[FollowUpTracker]:
        async with self._lock:
            try:
                app = self._require(app_id)
            except TrackerError as exc:
                return OperationResult.fail(exc)
            self._follow_ups.dismiss_nudge(app)
            self._touch(app)
            await self._persist(app)

        await self._publish(ChangeKind.FOLLOW_UP_CHANGED, app_id)
        return OperationResult.ok(app.follow_up_tracker)

    # =========================================================================
    # Analytics
    # =========================================================================

    def get_analytics(self) -> analytics.AnalyticsSummary:
        return analytics.compute_analytics(
            self._applications,
            registry=self._registry,
            now=self._clock(),
            tz=self._settings.tzinfo,
        )

    def get_stage_counts(self) -> dict[int, int]:
        """Application count per stage code (every stage present)."""
        return {
            entry.stage: entry.count
            for entry in analytics.stage_counts(self._applications, self._registry)
        }

    # =========================================================================
    # Import / export
    # =========================================================================

    def export_data(self) -> str:
        """All applications as a JSON array (camelCase keys, 2-space indent)."""
        return json.dumps(
            [app.to_document() for app in self._applications],
            indent=2,
            ensure_ascii=False,
        )

    def _validate_import(self, text: str) -> list[Application]:
        try:
            raw = json.loads(text)
        except json.JSONDecodeError as exc:
            raise ValidationError(["Invalid JSON format"]) from exc
        if not isinstance(raw, list):
            raise ValidationError(["Invalid data format: expected array"])

        applications: list[Application] = []
        errors: list[str] = []
        seen: set[str] = set()
        for index, item in enumerate(raw):
            try:
                app = Application.model_validate(item)
            except pydantic.ValidationError as exc:
                errors.extend(
                    f"Item {index}: {message}"
                    for message in format_validation_errors(exc)
                )
                continue
            problems = self._record_problems(app)
            if app.id in seen:
                problems.append(f"Duplicate id: {app.id}")
            seen.add(app.id)
            errors.extend(f"Item {index}: {problem}" for problem in problems)
            applications.append(app)
        if errors:
            raise ValidationError(errors)
        return applications

    async def import_data(self, text: str, merge: bool = False) -> OperationResult[int]:
        """Load applications from an exported JSON array.

        Every element is validated before anything changes. Unknown fields
        are ignored.

        Args:
            text: JSON array of applications.
            merge: Keep existing applications and add only unseen ids.
                Otherwise replace the collection (interviews of applications
                that disappear are removed).

        Returns:
            Result carrying the number of applications added.
        """
        async with self._lock:
            try:
                incoming = self._validate_import(text)
            except TrackerError as exc:
                return OperationResult.fail(exc)

            if merge:
                existing = {app.id for app in self._applications}
                added = [app for app in incoming if app.id not in existing]
                self._applications.extend(added)
            else:
                kept = {app.id for app in incoming}
                for app in self._applications:
                    if app.id not in kept:
                        await self._interviews.delete_by_application(app.id)
                added = incoming
                self._applications = list(incoming)
            await self._persist_all()

        logger.info("Applications imported", count=len(added), merge=merge)
        await self._publish(ChangeKind.IMPORTED)
        return OperationResult.ok(len(added))
