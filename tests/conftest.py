"""Shared fixtures: a controllable clock, memory stores and a ready engine."""

from datetime import UTC, datetime, timedelta
from pathlib import Path

import pytest

from jobtracker.core.config import Settings
from jobtracker.models.application import Application
from jobtracker.models.interview import Interview
from jobtracker.repositories.memory_store import MemoryDocumentStore
from jobtracker.services.application_engine import ApplicationEngine
from jobtracker.services.follow_up import FollowUpService
from jobtracker.services.interview_service import InterviewService

# Monday, 2 March 2026, 09:00 UTC
FROZEN_NOW = datetime(2026, 3, 2, 9, 0, tzinfo=UTC)


class FrozenClock:
    """Clock that only moves when told to."""

    def __init__(self, now: datetime = FROZEN_NOW) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now

    def set(self, value: datetime) -> None:
        self.now = value


def make_settings(tmp_path: Path | None = None, **overrides: object) -> Settings:
    """Settings isolated from the developer's environment and .env file."""
    values: dict[str, object] = {"storage_backend": "memory"}
    if tmp_path is not None:
        values["data_dir"] = tmp_path
    values.update(overrides)
    return Settings(_env_file=None, **values)


@pytest.fixture
def clock() -> FrozenClock:
    """Clock frozen at FROZEN_NOW."""
    return FrozenClock()


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    """Memory-backed settings with data_dir under tmp_path."""
    return make_settings(tmp_path)


@pytest.fixture
def application_store() -> MemoryDocumentStore[Application]:
    """Empty in-memory application store."""
    return MemoryDocumentStore(Application, "applications")


@pytest.fixture
def interview_store() -> MemoryDocumentStore[Interview]:
    """Empty in-memory interview store."""
    return MemoryDocumentStore(Interview, "interviews")


@pytest.fixture
def follow_ups(settings: Settings, clock: FrozenClock) -> FollowUpService:
    """Follow-up service on the frozen clock."""
    return FollowUpService(settings, clock=clock)


@pytest.fixture
def interview_service(
    interview_store: MemoryDocumentStore[Interview],
    settings: Settings,
    clock: FrozenClock,
) -> InterviewService:
    """Interview service on the frozen clock."""
    return InterviewService(interview_store, settings, clock=clock)


@pytest.fixture
async def engine(
    application_store: MemoryDocumentStore[Application],
    interview_service: InterviewService,
    follow_ups: FollowUpService,
    settings: Settings,
    clock: FrozenClock,
) -> ApplicationEngine:
    """Initialized engine over memory stores."""
    tracker = ApplicationEngine(
        application_store,
        interview_service,
        follow_ups,
        settings,
        clock=clock,
    )
    await tracker.initialize()
    return tracker


async def create_app(
    engine: ApplicationEngine, **fields: object
) -> Application:
    """Create an application with sensible defaults and return it."""
    data: dict[str, object] = {"company_name": "Acme", "role": "Backend Engineer"}
    data.update(fields)
    result = await engine.create(data)
    assert result.success, result.errors
    return result.data


def interview_payload(
    when: datetime, **fields: object
) -> dict[str, object]:
    """Minimal valid scheduling payload."""
    data: dict[str, object] = {
        "type": "technical",
        "mode": "video",
        "scheduled_at": when,
    }
    data.update(fields)
    return data
