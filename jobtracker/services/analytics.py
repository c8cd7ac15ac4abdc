"""Aggregate statistics over the application collection.

Pure functions: nothing here reads storage or mutates applications. Rates
are integer percentages rounded half up; an empty denominator yields 0.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta, tzinfo
from decimal import ROUND_HALF_UP, Decimal

from jobtracker.core.filtering import IN_PROGRESS_RESULT
from jobtracker.core.timeutils import utc_now, week_key
from jobtracker.models.application import RESULT_LABELS, Application, FinalResult
from jobtracker.services.stages import DEFAULT_REGISTRY, StageRegistry

TIMELINE_WEEKS = 12

IN_PROGRESS_LABEL = "⏳ In Progress"

_SUCCESS_RESULTS = frozenset({FinalResult.OFFERED, FinalResult.ACCEPTED})


# =============================================================================
# Data Classes
# =============================================================================


@dataclass(frozen=True)
class StageCount:
    stage: int
    name: str
    count: int


@dataclass(frozen=True)
class ResultCount:
    result: str
    label: str
    count: int


@dataclass(frozen=True)
class WeekCount:
    week: str
    count: int


@dataclass(frozen=True)
class AnalyticsSummary:
    """Dashboard numbers for a set of applications.

    Attributes:
        total: Number of applications.
        active: Applications not in the closed stage.
        closed: Applications in the closed stage.
        by_stage: Count per registered stage, in pipeline order.
        by_result: In-progress bucket plus every final result.
        timeline: Applications created per ISO week, oldest week first.
        success_rate: Offered or accepted, as a percentage of those with a result.
        response_rate: Not ghosted, as a percentage of those with a result.
    """

    total: int
    active: int
    closed: int
    by_stage: list[StageCount]
    by_result: list[ResultCount]
    timeline: list[WeekCount]
    success_rate: int
    response_rate: int


# =============================================================================
# Helpers
# =============================================================================


def percentage(part: int, whole: int) -> int:
    """Integer percentage, rounded half up.

    Examples:
        >>> percentage(1, 8)
        13
        >>> percentage(0, 0)
        0
    """
    if whole == 0:
        return 0
    value = Decimal(part * 100) / Decimal(whole)
    return int(value.quantize(Decimal(1), rounding=ROUND_HALF_UP))


# =============================================================================
# Computations
# =============================================================================


def stage_counts(
    applications: list[Application],
    registry: StageRegistry = DEFAULT_REGISTRY,
) -> list[StageCount]:
    counts = {code: 0 for code in registry.codes}
    for app in applications:
        if app.current_stage in counts:
            counts[app.current_stage] += 1
    return [
        StageCount(stage=stage.code, name=stage.name, count=counts[stage.code])
        for stage in registry
    ]


def result_counts(applications: list[Application]) -> list[ResultCount]:
    """Histogram of final results with zero buckets included."""
    in_progress = sum(1 for app in applications if app.final_result is None)
    counts = {result: 0 for result in FinalResult}
    for app in applications:
        if app.final_result is not None:
            counts[app.final_result] += 1
    return [
        ResultCount(IN_PROGRESS_RESULT, IN_PROGRESS_LABEL, in_progress),
        *(
            ResultCount(result.value, RESULT_LABELS[result], count)
            for result, count in counts.items()
        ),
    ]


def creation_timeline(
    applications: list[Application],
    *,
    now: datetime,
    tz: tzinfo,
    weeks: int = TIMELINE_WEEKS,
) -> list[WeekCount]:
    """Applications created in each of the trailing ``weeks`` ISO weeks.

    Creation times are bucketed by their calendar date in ``tz``.
    """
    per_week: dict[str, int] = {}
    for app in applications:
        key = week_key(app.created_at.astimezone(tz).date())
        per_week[key] = per_week.get(key, 0) + 1

    today = now.astimezone(tz).date()
    timeline: list[WeekCount] = []
    for offset in range(weeks - 1, -1, -1):
        key = week_key(today - timedelta(weeks=offset))
        timeline.append(WeekCount(week=key, count=per_week.get(key, 0)))
    return timeline


def success_rate(applications: list[Application]) -> int:
    with_result = [a for a in applications if a.final_result is not None]
    successful = sum(1 for a in with_result if a.final_result in _SUCCESS_RESULTS)
    return percentage(successful, len(with_result))


def response_rate(applications: list[Application]) -> int:
    with_result = [a for a in applications if a.final_result is not None]
    responded = sum(
        1 for a in with_result if a.final_result is not FinalResult.GHOSTED
    )
    return percentage(responded, len(with_result))


def compute_analytics(
    applications: list[Application],
    *,
    registry: StageRegistry = DEFAULT_REGISTRY,
    now: datetime | None = None,
    tz: tzinfo | None = None,
) -> AnalyticsSummary:
    """Build the full summary for ``applications``.

    Args:
        applications: Applications to aggregate.
        registry: Stage registry for the stage histogram.
        now: Reference time for the timeline (defaults to the current time).
        tz: Timezone for week bucketing (defaults to ``now``'s timezone).
    """
    now = now or utc_now()
    closed = sum(1 for a in applications if a.current_stage == registry.closed_code)
    return AnalyticsSummary(
        total=len(applications),
        active=len(applications) - closed,
        closed=closed,
        by_stage=stage_counts(applications, registry),
        by_result=result_counts(applications),
        timeline=creation_timeline(applications, now=now, tz=tz or now.tzinfo),
        success_rate=success_rate(applications),
        response_rate=response_rate(applications),
    )
