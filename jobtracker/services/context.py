"""Tracker context factory.

Builds the object graph once at startup: settings → stores → services →
engine. Callers hold the returned TrackerContext and pass it (or its
engine) to whatever needs it; there is no module-level engine instance.

The storage backend is chosen from ``Settings.storage_backend`` when the
context is built, and only changes through ``TrackerContext.reset``.

Example:
    context = await build_context()
    result = await context.engine.create({"companyName": "Acme", "role": "SRE"})
    ...
    await context.aclose()
"""

import logging
from dataclasses import dataclass, field

from sqlalchemy.ext.asyncio import AsyncEngine

from jobtracker.core.config import Settings
from jobtracker.core.events import ChangeEvent, EventBus
from jobtracker.core.logging import configure_logging
from jobtracker.core.timeutils import Clock, utc_now
from jobtracker.models.application import Application
from jobtracker.models.interview import Interview
from jobtracker.repositories.base import DocumentStore
from jobtracker.repositories.json_store import JsonFileDocumentStore
from jobtracker.repositories.memory_store import MemoryDocumentStore
from jobtracker.repositories.sql_store import (
    SqlDocumentStore,
    create_schema,
    create_sql_engine,
)
from jobtracker.services.application_engine import ApplicationEngine
from jobtracker.services.follow_up import FollowUpService
from jobtracker.services.interview_service import InterviewService
from jobtracker.services.preferences import PreferencesService, TrackerPreferences
from jobtracker.services.reminder_worker import ReminderHandler, ReminderWorker
from jobtracker.services.stages import DEFAULT_REGISTRY, StageRegistry

logger = logging.getLogger(__name__)

APPLICATIONS = "applications"
INTERVIEWS = "interviews"
PREFERENCES = "preferences"


@dataclass
class StoreSet:
    """Stores for every collection, all on the same backend."""

    applications: DocumentStore[Application]
    interviews: DocumentStore[Interview]
    preferences: DocumentStore[TrackerPreferences]
    sql_engine: AsyncEngine | None = None

    async def dispose(self) -> None:
        if self.sql_engine is not None:
            await self.sql_engine.dispose()


async def build_stores(settings: Settings) -> StoreSet:
    """Create stores for the configured backend.

    Raises:
        ValueError: If the backend name is unknown.
    """
    backend = settings.storage_backend
    if backend == "memory":
        return StoreSet(
            applications=MemoryDocumentStore(Application, APPLICATIONS),
            interviews=MemoryDocumentStore(Interview, INTERVIEWS),
            preferences=MemoryDocumentStore(TrackerPreferences, PREFERENCES),
        )
    if backend == "json":
        return StoreSet(
            applications=JsonFileDocumentStore(
                Application, APPLICATIONS, settings.data_dir
            ),
            interviews=JsonFileDocumentStore(Interview, INTERVIEWS, settings.data_dir),
            preferences=JsonFileDocumentStore(
                TrackerPreferences, PREFERENCES, settings.data_dir
            ),
        )
    if backend == "sql":
        engine = create_sql_engine(
            settings.database_url, echo=settings.environment == "development"
        )
        await create_schema(engine)
        actor = settings.actor_id
        return StoreSet(
            applications=SqlDocumentStore(
                Application, APPLICATIONS, engine, actor_id=actor
            ),
            interviews=SqlDocumentStore(Interview, INTERVIEWS, engine, actor_id=actor),
            preferences=SqlDocumentStore(
                TrackerPreferences, PREFERENCES, engine, actor_id=actor
            ),
            sql_engine=engine,
        )
    raise ValueError(f"Unknown storage backend: {backend}")


@dataclass
class TrackerContext:
    """Everything a caller needs, wired together.

    Attributes:
        settings: Settings the context was built from.
        stores: Active stores.
        preferences: Preferences service.
        engine: Application engine (already initialized).
        events: Change event bus shared with the engine.
    """

    settings: Settings
    stores: StoreSet
    preferences: PreferencesService
    engine: ApplicationEngine
    events: EventBus[ChangeEvent] = field(default_factory=EventBus)

    async def reset(self, stores: StoreSet | None = None) -> None:
        """Switch stores (e.g. after login or logout) and reload everything.

        Args:
            stores: New stores; rebuilt from settings when omitted.
        """
        new_stores = stores or await build_stores(self.settings)
        old_stores = self.stores
        self.stores = new_stores
        self.preferences.use_store(new_stores.preferences)
        await self.preferences.load()
        await self.engine.reinitialize(new_stores.applications, new_stores.interviews)
        if old_stores is not new_stores:
            await old_stores.dispose()
        logger.info("Tracker context reset")

    def create_reminder_worker(self, handler: ReminderHandler) -> ReminderWorker:
        return ReminderWorker(
            self.engine,
            handler,
            preferences=self.preferences,
            interval_seconds=self.settings.reminder_poll_seconds,
        )

    async def aclose(self) -> None:
        """Detach from pushed snapshots and release database connections."""
        self.engine.close()
        await self.stores.dispose()


async def build_context(
    settings: Settings | None = None,
    *,
    stores: StoreSet | None = None,
    clock: Clock = utc_now,
    registry: StageRegistry = DEFAULT_REGISTRY,
) -> TrackerContext:
    """Build and initialize a tracker context.

    Args:
        settings: Settings to use. When omitted they are loaded from the
            environment and logging is configured from them.
        stores: Pre-built stores (tests pass memory stores here).
        clock: Clock shared by every service.
        registry: Stage registry.

    Raises:
        PersistenceError: If stored data cannot be loaded.
    """
    if settings is None:
        settings = Settings()
        configure_logging(settings)
    stores = stores or await build_stores(settings)
    events: EventBus[ChangeEvent] = EventBus()

    preferences = PreferencesService(settings, stores.preferences)
    await preferences.load()

    interviews = InterviewService(
        stores.interviews,
        settings,
        clock=clock,
        reminder_default=lambda: preferences.default_reminder_minutes,
    )
    follow_ups = FollowUpService(settings, clock=clock, registry=registry)
    engine = ApplicationEngine(
        stores.applications,
        interviews,
        follow_ups,
        settings,
        registry=registry,
        clock=clock,
        events=events,
    )
    await engine.initialize()
    logger.info("Tracker context built (backend=%s)", settings.storage_backend)
    return TrackerContext(
        settings=settings,
        stores=stores,
        preferences=preferences,
        engine=engine,
        events=events,
    )
