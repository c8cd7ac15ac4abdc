"""Change notification bus.

The engine publishes one ChangeEvent after every successful mutation.
Listeners may be plain callables or coroutine functions. A listener that
raises is logged and skipped; the remaining listeners still run and the
publishing operation is unaffected.
"""

import inspect
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Generic, TypeVar

from jobtracker.core.timeutils import utc_now

logger = logging.getLogger(__name__)

E = TypeVar("E")

Listener = Callable[[E], Awaitable[None] | None]


class ChangeKind(Enum):
    """What kind of mutation produced a ChangeEvent."""

    LOADED = "loaded"
    CREATED = "created"
    UPDATED = "updated"
    DELETED = "deleted"
    STAGE_CHANGED = "stage_changed"
    CLOSED = "closed"
    INTERACTION_ADDED = "interaction_added"
    INTERACTION_REMOVED = "interaction_removed"
    INTERVIEW_CHANGED = "interview_changed"
    FOLLOW_UP_CHANGED = "follow_up_changed"
    IMPORTED = "imported"
    VIEW_CHANGED = "view_changed"


@dataclass(frozen=True)
class ChangeEvent:
    """Notification payload.

    Attributes:
        kind: Mutation category.
        application_id: Affected application, if a single one.
        interview_id: Affected interview, if any.
        occurred_at: When the event was published.
    """

    kind: ChangeKind
    application_id: str | None = None
    interview_id: str | None = None
    occurred_at: datetime = field(default_factory=utc_now)


class EventBus(Generic[E]):
    """Typed publish/subscribe registry.

    Usage:
        bus: EventBus[ChangeEvent] = EventBus()
        unsubscribe = bus.subscribe(on_change)
        await bus.publish(ChangeEvent(ChangeKind.CREATED, "app_1"))
        unsubscribe()
    """

    def __init__(self) -> None:
        self._listeners: list[Listener[E]] = []

    def __len__(self) -> int:
        return len(self._listeners)

    def subscribe(self, listener: Listener[E]) -> Callable[[], None]:
        """Register a listener.

        Registering the same listener twice has no effect.

        Returns:
            Zero-argument callable that removes the listener.
        """
        if listener not in self._listeners:
            self._listeners.append(listener)
        return lambda: self.unsubscribe(listener)

    def unsubscribe(self, listener: Listener[E]) -> bool:
        """Remove a listener.

        Returns:
            True if the listener was registered, False otherwise.
        """
        try:
            self._listeners.remove(listener)
        except ValueError:
            return False
        return True

    def clear(self) -> None:
        """Remove every listener."""
        self._listeners.clear()

    async def publish(self, event: E) -> int:
        """Deliver an event to every listener in registration order.

        Args:
            event: Payload passed to each listener.

        Returns:
            Number of listeners that raised.
        """
        failures = 0
        # Snapshot so listeners may unsubscribe themselves while running
        for listener in list(self._listeners):
            try:
                outcome = listener(event)
                if inspect.isawaitable(outcome):
                    await outcome
            except Exception:  # noqa: BLE001
                failures += 1
                logger.exception("Change listener %r failed", listener)
        return failures
