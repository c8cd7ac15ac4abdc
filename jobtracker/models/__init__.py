"""Domain models for the job tracker.

All models are exported from this module for convenient imports:
    from jobtracker.models import Application, Interview, ...

Models are organized by domain:
- base.py: TrackerModel, TrackerInput, Base (SQLAlchemy)
- application.py: Application, Interaction, FollowUpTracker and payloads
- interview.py: Interview and payloads
- document.py: DocumentRecord (SQL document table)
"""

from jobtracker.models.application import (
    Application,
    ApplicationCreate,
    ApplicationUpdate,
    CloseReason,
    ContactType,
    FinalResult,
    FollowUpTracker,
    Interaction,
    InteractionCreate,
    InteractionType,
    OfferOutcome,
)
from jobtracker.models.base import Base, TrackerInput, TrackerModel
from jobtracker.models.document import DocumentRecord
from jobtracker.models.interview import (
    Interview,
    InterviewCreate,
    InterviewStatus,
    InterviewUpdate,
    RoundOutcome,
)

__all__ = [
    # Base classes
    "Base",
    "TrackerModel",
    "TrackerInput",
    # Applications
    "Application",
    "ApplicationCreate",
    "ApplicationUpdate",
    "CloseReason",
    "ContactType",
    "FinalResult",
    "FollowUpTracker",
    "Interaction",
    "InteractionCreate",
    "InteractionType",
    "OfferOutcome",
    # Interviews
    "Interview",
    "InterviewCreate",
    "InterviewStatus",
    "InterviewUpdate",
    "RoundOutcome",
    # Storage
    "DocumentRecord",
]
