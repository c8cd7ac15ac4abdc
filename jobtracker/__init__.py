"""Personal job-application tracker: pipeline stages, interviews and follow-up reminders."""

__version__ = "0.1.0"
