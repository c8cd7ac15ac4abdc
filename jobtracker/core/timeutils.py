"""Clock and calendar helpers shared by the services."""

from collections.abc import Callable
from datetime import UTC, date, datetime, time, timedelta, tzinfo

Clock = Callable[[], datetime]
"""Zero-argument callable returning the current aware datetime."""


def utc_now() -> datetime:
    """Default clock: current time in UTC."""
    return datetime.now(UTC)


def ensure_aware(value: datetime) -> datetime:
    """Attach UTC to naive datetimes; aware values pass through unchanged."""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


def week_key(value: datetime | date) -> str:
    """ISO week key for a date.

    Examples:
        >>> week_key(date(2026, 1, 1))
        '2026-W01'
        >>> week_key(date(2027, 1, 1))
        '2026-W53'
    """
    iso_year, iso_week, _ = value.isocalendar()
    return f"{iso_year}-W{iso_week:02d}"


def day_bounds(day: date, tz: tzinfo) -> tuple[datetime, datetime]:
    """First and last instant of a calendar day in ``tz``.

    Returns:
        (start, end) where end is the last microsecond of the day.
    """
    start = datetime.combine(day, time.min, tzinfo=tz)
    end = datetime.combine(day, time.max, tzinfo=tz)
    return start, end


def month_bounds(year: int, month: int, tz: tzinfo) -> tuple[datetime, datetime]:
    """First and last instant of a calendar month in ``tz``.

    Args:
        year: Four-digit year.
        month: Month number, 1-12.
    """
    if not 1 <= month <= 12:
        raise ValueError(f"Month must be 1-12. Got: {month}")
    first = date(year, month, 1)
    if month == 12:
        last = date(year, 12, 31)
    else:
        last = date(year, month + 1, 1) - timedelta(days=1)
    return day_bounds(first, tz)[0], day_bounds(last, tz)[1]


def whole_days_between(earlier: datetime, later: datetime) -> int:
    """Number of complete 24-hour periods from ``earlier`` to ``later``.

    Negative spans floor toward minus infinity.
    """
    return (later - earlier) // timedelta(days=1)
