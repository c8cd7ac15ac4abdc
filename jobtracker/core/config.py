"""Tracker configuration loaded from environment variables.

Uses pydantic-settings for validation and .env file support. Every field can
be overridden with a ``JOBTRACKER_`` prefixed variable, e.g.
``JOBTRACKER_STORAGE_BACKEND=sql``.
"""

from pathlib import Path
from typing import Literal
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

StorageBackend = Literal["memory", "json", "sql"]


class Settings(BaseSettings):
    """Tracker settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="JOBTRACKER_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    environment: str = "development"
    log_level: str = "INFO"
    log_json: bool = False

    # Storage
    storage_backend: StorageBackend = "json"
    data_dir: Path = Path.home() / ".jobtracker"
    # e.g. sqlite+aiosqlite:///tracker.db or postgresql+asyncpg://...
    database_url: str = ""

    # Calendar day boundaries for "today", week and month queries
    timezone: str = "UTC"

    # Follow-up reminders
    follow_up_initial_wait_days: int = 3
    follow_up_subsequent_wait_days: int = 5
    follow_up_max_attempts: int = 3

    # Interview reminders
    default_reminder_minutes: int = 30
    reminder_poll_seconds: int = 60
    upcoming_interview_limit: int = 5

    # Attribution stamped on created/modified records (multi-device setups)
    actor_id: str | None = None

    @property
    def tzinfo(self) -> ZoneInfo:
        """Timezone used for calendar-day queries."""
        return ZoneInfo(self.timezone)

    @model_validator(mode="after")
    def check_consistency(self) -> "Settings":
        """Validate cross-field requirements.

        Checks:
        - Follow-up waits and max attempts are positive
        - Reminder lead time and poll interval are positive
        - Timezone name is known to the system tz database
        - The sql backend has a database URL
        """
        for name in (
            "follow_up_initial_wait_days",
            "follow_up_subsequent_wait_days",
            "follow_up_max_attempts",
            "reminder_poll_seconds",
        ):
            value = getattr(self, name)
            if value <= 0:
                msg = f"{name.upper()} must be positive. Got: {value}"
                raise ValueError(msg)

        if self.default_reminder_minutes < 0:
            msg = (
                "DEFAULT_REMINDER_MINUTES cannot be negative. "
                f"Got: {self.default_reminder_minutes}"
            )
            raise ValueError(msg)

        try:
            ZoneInfo(self.timezone)
        except (ZoneInfoNotFoundError, ValueError) as exc:
            msg = f"Unknown TIMEZONE: {self.timezone!r}"
            raise ValueError(msg) from exc

        if self.storage_backend == "sql" and not self.database_url:
            msg = "DATABASE_URL must be set when STORAGE_BACKEND=sql."
            raise ValueError(msg)

        return self
