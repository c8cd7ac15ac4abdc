"""User preferences: interview categories and reminder defaults.

The built-in interview types and modes are always present and cannot be
removed. Custom entries are keyed by a normalised key (lowercase, spaces
replaced by underscores) and map to a display name.
"""

import logging
import re

from pydantic import Field, model_validator

from jobtracker.core.config import Settings
from jobtracker.core.errors import ValidationError
from jobtracker.models.base import TrackerModel
from jobtracker.repositories.base import DocumentStore

logger = logging.getLogger(__name__)

PREFERENCES_ID = "preferences"

DEFAULT_INTERVIEW_TYPES: dict[str, str] = {
    "technical": "Technical Round",
    "hr": "HR Round",
    "round1": "Round 1",
    "round2": "Round 2",
    "round3": "Round 3",
    "final": "Final Round",
    "manager": "Manager Round",
}

DEFAULT_INTERVIEW_MODES: dict[str, str] = {
    "video": "Video Call",
    "onsite": "Onsite",
    "phone": "Phone",
}

_WHITESPACE = re.compile(r"\s+")


def normalize_key(key: str) -> str:
    """Normalise a category key.

    Examples:
        >>> normalize_key("System Design")
        'system_design'
    """
    return _WHITESPACE.sub("_", key.strip().lower())


class TrackerPreferences(TrackerModel):
    """Stored preferences document (a single record per user)."""

    id: str = PREFERENCES_ID
    interview_types: dict[str, str] = Field(
        default_factory=lambda: dict(DEFAULT_INTERVIEW_TYPES)
    )
    interview_modes: dict[str, str] = Field(
        default_factory=lambda: dict(DEFAULT_INTERVIEW_MODES)
    )
    default_reminder_minutes: int = Field(default=30, ge=0)
    notifications_enabled: bool = True

    @model_validator(mode="after")
    def include_defaults(self) -> "TrackerPreferences":
        """Built-in types and modes are always present."""
        self.interview_types = {**DEFAULT_INTERVIEW_TYPES, **self.interview_types}
        self.interview_modes = {**DEFAULT_INTERVIEW_MODES, **self.interview_modes}
        return self


class PreferencesService:
    """Reads and edits TrackerPreferences.

    Without a store, changes live in memory only.

    Args:
        settings: Supplies the initial default reminder lead time.
        store: Optional persistence for the preferences document.
    """

    def __init__(
        self,
        settings: Settings,
        store: DocumentStore[TrackerPreferences] | None = None,
    ) -> None:
        self._settings = settings
        self._store = store
        self._preferences = self._defaults()

    def _defaults(self) -> TrackerPreferences:
        return TrackerPreferences(
            default_reminder_minutes=self._settings.default_reminder_minutes
        )

    @property
    def preferences(self) -> TrackerPreferences:
        return self._preferences

    async def load(self) -> TrackerPreferences:
        """Load the stored document, falling back to defaults."""
        if self._store is not None:
            stored = await self._store.load()
            self._preferences = stored[0] if stored else self._defaults()
        return self._preferences

    async def _save(self) -> None:
        if self._store is not None:
            await self._store.save([self._preferences])

    def use_store(self, store: DocumentStore[TrackerPreferences] | None) -> None:
        """Swap the backing store (call ``load`` afterwards)."""
        self._store = store
        self._preferences = self._defaults()

    # -------------------------------------------------------------------------
    # Interview types and modes
    # -------------------------------------------------------------------------

    def get_interview_types(self) -> dict[str, str]:
        return dict(self._preferences.interview_types)

    def get_interview_modes(self) -> dict[str, str]:
        return dict(self._preferences.interview_modes)

    def is_default_type(self, key: str) -> bool:
        return key in DEFAULT_INTERVIEW_TYPES

    def is_default_mode(self, key: str) -> bool:
        return key in DEFAULT_INTERVIEW_MODES

    async def add_interview_type(self, key: str, name: str) -> str:
        """Add or rename an interview type.

        Returns:
            The normalised key.

        Raises:
            ValidationError: If the key or name is blank.
        """
        normalized = self._check_entry(key, name)
        self._preferences.interview_types[normalized] = name.strip()
        await self._save()
        return normalized

    async def add_interview_mode(self, key: str, name: str) -> str:
        """Add or rename an interview mode (see ``add_interview_type``)."""
        normalized = self._check_entry(key, name)
        self._preferences.interview_modes[normalized] = name.strip()
        await self._save()
        return normalized

    async def remove_interview_type(self, key: str) -> bool:
        """Remove a custom type. Defaults and unknown keys return False."""
        if self.is_default_type(key) or key not in self._preferences.interview_types:
            return False
        del self._preferences.interview_types[key]
        await self._save()
        return True

    async def remove_interview_mode(self, key: str) -> bool:
        """Remove a custom mode. Defaults and unknown keys return False."""
        if self.is_default_mode(key) or key not in self._preferences.interview_modes:
            return False
        del self._preferences.interview_modes[key]
        await self._save()
        return True

    @staticmethod
    def _check_entry(key: str, name: str) -> str:
        errors = []
        normalized = normalize_key(key)
        if not normalized:
            errors.append("Key is required")
        if not name.strip():
            errors.append("Name is required")
        if errors:
            raise ValidationError(errors)
        return normalized

    # -------------------------------------------------------------------------
    # General
    # -------------------------------------------------------------------------

    @property
    def default_reminder_minutes(self) -> int:
        return self._preferences.default_reminder_minutes

    async def set_default_reminder_minutes(self, minutes: int) -> None:
        if minutes < 0:
            raise ValidationError(["Reminder minutes cannot be negative"])
        self._preferences.default_reminder_minutes = minutes
        await self._save()

    @property
    def notifications_enabled(self) -> bool:
        return self._preferences.notifications_enabled

    async def set_notifications_enabled(self, enabled: bool) -> None:
        self._preferences.notifications_enabled = enabled
        await self._save()

    async def reset_to_defaults(self) -> TrackerPreferences:
        self._preferences = self._defaults()
        await self._save()
        logger.info("Preferences reset to defaults")
        return self._preferences
