"""Tests for clock and calendar helpers.

Tests verify:
- Naive datetimes are treated as UTC
- ISO week keys across year boundaries
- Day and month bounds in a configured timezone
- Whole-day differences truncate partial days
"""

from datetime import UTC, date, datetime, timedelta, timezone

import pytest

from jobtracker.core.timeutils import (
    day_bounds,
    ensure_aware,
    month_bounds,
    week_key,
    whole_days_between,
)

IST = timezone(timedelta(hours=5, minutes=30))


class TestEnsureAware:
    """Timezone normalisation."""

    def test_naive_becomes_utc(self) -> None:
        """A naive datetime is tagged as UTC."""
        assert ensure_aware(datetime(2026, 1, 1, 12)).tzinfo is UTC

    def test_aware_unchanged(self) -> None:
        """An aware datetime is returned as is."""
        value = datetime(2026, 1, 1, 12, tzinfo=IST)
        assert ensure_aware(value) is value


class TestWeeks:
    """ISO week keys."""

    @pytest.mark.parametrize(
        ("day", "expected"),
        [
            (date(2026, 1, 1), "2026-W01"),
            (date(2027, 1, 1), "2026-W53"),
            (date(2026, 3, 2), "2026-W10"),
        ],
    )
    def test_week_key(self, day: date, expected: str) -> None:
        """Week keys follow ISO year and week numbering."""
        assert week_key(day) == expected


class TestBounds:
    """Day and month bounds."""

    def test_day_bounds_in_timezone(self) -> None:
        """A local day starts at local midnight expressed in UTC."""
        start, end = day_bounds(date(2026, 3, 2), IST)
        assert start == datetime(2026, 3, 1, 18, 30, tzinfo=UTC)
        assert end - start == timedelta(days=1, microseconds=-1)

    def test_month_bounds_december(self) -> None:
        """December ends on the 31st without rolling the year."""
        start, end = month_bounds(2026, 12, UTC)
        assert start.date() == date(2026, 12, 1)
        assert end.date() == date(2026, 12, 31)

    def test_month_bounds_february(self) -> None:
        """Leap-year February ends on the 29th."""
        _, end = month_bounds(2028, 2, UTC)
        assert end.date() == date(2028, 2, 29)

    @pytest.mark.parametrize("month", [0, 13])
    def test_invalid_month(self, month: int) -> None:
        """Months outside 1-12 are rejected."""
        with pytest.raises(ValueError, match="1-12"):
            month_bounds(2026, month, UTC)


class TestWholeDays:
    """Whole-day differences."""

    def test_partial_days_truncate(self) -> None:
        """Two days and 23 hours count as two days."""
        start = datetime(2026, 3, 2, tzinfo=UTC)
        assert whole_days_between(start, start + timedelta(days=2, hours=23)) == 2

    def test_same_instant(self) -> None:
        """The same instant is zero days apart."""
        start = datetime(2026, 3, 2, tzinfo=UTC)
        assert whole_days_between(start, start) == 0
