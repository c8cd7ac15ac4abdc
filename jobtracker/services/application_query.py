"""Filtering and sorting of the application list.

Examples:
    visible = filter_applications(apps, ApplicationFilters(search="acme"))
    ordered = sort_applications(visible, SortParams("company_name", "asc"))
"""

from dataclasses import dataclass
from enum import Enum

from jobtracker.core.filtering import IN_PROGRESS_RESULT, ApplicationFilters, SortParams
from jobtracker.models.application import Application

# Legacy result key used by older exports and saved filters.
_LEGACY_IN_PROGRESS = "inprogress"

_COLUMN_ALIASES = {
    "company": "company_name",
    "stage": "current_stage",
    "updated": "last_updated",
    "hr_name": "contact_person_name",
    "hrName": "contact_person_name",
}

# Columns holding nested records are not sortable.
_UNSORTABLE_FIELDS = frozenset({"interactions", "follow_up_tracker"})


@dataclass(frozen=True)
class FilterOptions:
    """Distinct values available for the type and location filters."""

    types: list[str]
    locations: list[str]


# =============================================================================
# Filtering
# =============================================================================


def matches_search(app: Application, term: str) -> bool:
    """Case-insensitive substring match over the searchable fields."""
    needle = term.strip().casefold()
    if not needle:
        return True
    haystacks = [
        app.company_name,
        app.role,
        app.contact_person_name,
        app.vendor_company_name,
        *app.skill_tags,
    ]
    return any(needle in value.casefold() for value in haystacks if value)


def _matches_result(app: Application, results: list[str]) -> bool:
    if app.final_result is None:
        return IN_PROGRESS_RESULT in results or _LEGACY_IN_PROGRESS in results
    return app.final_result.value in results


def filter_applications(
    applications: list[Application],
    filters: ApplicationFilters,
) -> list[Application]:
    """Applications matching every active filter, in input order.

    Each list filter matches any of its values (OR); different filters
    combine with AND.
    """
    filtered = list(applications)
    if filters.search.strip():
        filtered = [a for a in filtered if matches_search(a, filters.search)]
    if filters.stages:
        filtered = [a for a in filtered if a.current_stage in filters.stages]
    if filters.types:
        filtered = [a for a in filtered if a.opportunity_type in filters.types]
    if filters.locations:
        filtered = [a for a in filtered if a.location in filters.locations]
    if filters.results:
        filtered = [a for a in filtered if _matches_result(a, filters.results)]
    return filtered


def filter_options(applications: list[Application]) -> FilterOptions:
    """Distinct non-empty types and locations in first-seen order."""
    types = dict.fromkeys(a.opportunity_type for a in applications if a.opportunity_type)
    locations = dict.fromkeys(a.location for a in applications if a.location)
    return FilterOptions(types=list(types), locations=list(locations))


# =============================================================================
# Sorting
# =============================================================================


def resolve_sort_column(column: str) -> str | None:
    """Map a column name (snake_case, camelCase alias or shorthand) to a field.

    Returns:
        Attribute name on Application, or None if there is no such
        field or the field holds nested records.
    """
    column = _COLUMN_ALIASES.get(column, column)
    name = column if column in Application.model_fields else None
    if name is None:
        for field_name, field in Application.model_fields.items():
            if field.alias == column:
                name = field_name
                break
    if name in _UNSORTABLE_FIELDS:
        return None
    return name


def _sort_key(value: object) -> object:
    if isinstance(value, Enum):
        value = value.value
    if isinstance(value, str):
        return value.casefold()
    if isinstance(value, list):
        return ", ".join(str(v) for v in value).casefold()
    return value


def _is_blank(value: object) -> bool:
    return value is None or value == "" or value == []


def sort_applications(
    applications: list[Application],
    sort: SortParams,
) -> list[Application]:
    """Stable sort by one column.

    Strings compare case-insensitively. Blank values go last in either
    direction. Unknown columns leave the order unchanged.
    """
    column = resolve_sort_column(sort.column)
    if column is None:
        return list(applications)
    present = [a for a in applications if not _is_blank(getattr(a, column))]
    blank = [a for a in applications if _is_blank(getattr(a, column))]
    present.sort(
        key=lambda a: _sort_key(getattr(a, column)),
        reverse=sort.descending,
    )
    return present + blank


def query_applications(
    applications: list[Application],
    filters: ApplicationFilters,
    sort: SortParams,
) -> list[Application]:
    """Filter, then sort."""
    return sort_applications(filter_applications(applications, filters), sort)
