"""Tests for filter/sort parameters and application queries.

Tests verify:
- Comma-separated filter values are split and trimmed
- SortParams defaults to newest first and toggles direction
- Search covers company, role, contact, vendor and skills
- Sorting is case-insensitive with blanks last
- Columns holding nested records are not sortable
"""

from datetime import UTC, datetime, timedelta

import pytest

from jobtracker.core.filtering import (
    ApplicationFilters,
    SortParams,
    parse_filter_value,
)
from jobtracker.models.application import Application, FinalResult, FollowUpTracker
from jobtracker.services.application_query import (
    filter_applications,
    filter_options,
    query_applications,
    resolve_sort_column,
    sort_applications,
)

_BASE = datetime(2026, 1, 5, 12, 0, tzinfo=UTC)


def _app(company: str, role: str = "Engineer", **fields) -> Application:
    return Application(company_name=company, role=role, **fields)


@pytest.fixture
def apps() -> list[Application]:
    return [
        _app(
            "Acme",
            "Backend Engineer",
            current_stage=3,
            opportunity_type="Full-time",
            location="Remote",
            skill_tags=["Python", "SQL"],
            last_updated=_BASE,
        ),
        _app(
            "globex",
            "Data Analyst",
            current_stage=5,
            opportunity_type="Contract",
            location="Hybrid",
            contact_person_name="Priya",
            last_updated=_BASE + timedelta(days=2),
        ),
        _app(
            "Initech",
            "SRE",
            current_stage=0,
            final_result=FinalResult.REJECTED,
            vendor_company_name="TalentBridge",
            location="Remote",
            last_updated=_BASE + timedelta(days=1),
        ),
    ]


# =============================================================================
# Parameters
# =============================================================================


class TestParseFilterValue:
    """parse_filter_value splitting."""

    def test_splits_and_trims(self) -> None:
        """Values are split on commas and blanks dropped."""
        assert parse_filter_value(" Remote , Hybrid,") == ["Remote", "Hybrid"]

    def test_none_is_empty(self) -> None:
        """A missing value yields no filters."""
        assert parse_filter_value(None) == []


class TestSortParams:
    """Default sort and toggling."""

    def test_default_is_last_updated_descending(self) -> None:
        """Newest applications come first by default."""
        sort = SortParams()
        assert (sort.column, sort.direction) == ("last_updated", "desc")

    def test_toggle_same_column_flips(self) -> None:
        """Toggling the active column flips direction."""
        sort = SortParams("role", "asc").toggle("role")
        assert sort.direction == "desc"
        assert sort.toggle("role").direction == "asc"

    def test_toggle_new_column_starts_ascending(self) -> None:
        """Toggling a different column sorts it ascending."""
        sort = SortParams("role", "desc").toggle("company_name")
        assert (sort.column, sort.direction) == ("company_name", "asc")


class TestApplicationFilters:
    """Filter model parsing and merging."""

    def test_comma_strings_are_split(self) -> None:
        """Comma strings become lists, stages become ints."""
        filters = ApplicationFilters(stages="3,5", locations="Remote,Hybrid")
        assert filters.stages == [3, 5]
        assert filters.locations == ["Remote", "Hybrid"]

    def test_unknown_keys_are_ignored(self) -> None:
        """Unrecognised filter keys are dropped."""
        filters = ApplicationFilters.model_validate({"search": "acme", "color": "red"})
        assert filters.search == "acme"
        assert not hasattr(filters, "color")

    def test_merged_keeps_other_filters(self) -> None:
        """merged() replaces only the given keys."""
        filters = ApplicationFilters(search="acme").merged(stages=[3])
        assert filters.search == "acme"
        assert filters.stages == [3]


# =============================================================================
# Filtering
# =============================================================================


class TestFilterApplications:
    """Search and set filters."""

    def test_search_is_case_insensitive_over_company(
        self, apps: list[Application]
    ) -> None:
        """Search ignores case."""
        result = filter_applications(apps, ApplicationFilters(search="GLOBEX"))
        assert [a.company_name for a in result] == ["globex"]

    @pytest.mark.parametrize(
        ("term", "expected"),
        [
            ("analyst", "globex"),
            ("priya", "globex"),
            ("talentbridge", "Initech"),
            ("sql", "Acme"),
        ],
    )
    def test_search_covers_role_contact_vendor_and_skills(
        self, apps: list[Application], term: str, expected: str
    ) -> None:
        """Search matches role, contact, vendor and skill tags."""
        result = filter_applications(apps, ApplicationFilters(search=term))
        assert [a.company_name for a in result] == [expected]

    def test_stage_filter(self, apps: list[Application]) -> None:
        """Only listed stages are kept."""
        result = filter_applications(apps, ApplicationFilters(stages=[3, 5]))
        assert {a.company_name for a in result} == {"Acme", "globex"}

    def test_type_and_location_filters_combine(
        self, apps: list[Application]
    ) -> None:
        """Filters are ANDed together."""
        filters = ApplicationFilters(types=["Full-time"], locations=["Remote"])
        assert [a.company_name for a in filter_applications(apps, filters)] == ["Acme"]

    def test_in_progress_result_matches_open_applications(
        self, apps: list[Application]
    ) -> None:
        """in_progress selects applications without a final result."""
        filters = ApplicationFilters(results=["in_progress"])
        result = filter_applications(apps, filters)
        assert {a.company_name for a in result} == {"Acme", "globex"}

    def test_legacy_inprogress_key_is_accepted(
        self, apps: list[Application]
    ) -> None:
        """The older inprogress spelling still works."""
        filters = ApplicationFilters(results=["inprogress", "rejected"])
        assert len(filter_applications(apps, filters)) == 3

    def test_empty_filters_return_everything(self, apps: list[Application]) -> None:
        """No filters keeps every application."""
        assert filter_applications(apps, ApplicationFilters()) == apps


# =============================================================================
# Sorting
# =============================================================================


class TestSortApplications:
    """Column sorting."""

    def test_default_sort_newest_first(self, apps: list[Application]) -> None:
        """Default order is last_updated descending."""
        result = sort_applications(apps, SortParams())
        assert [a.company_name for a in result] == ["globex", "Initech", "Acme"]

    def test_strings_sort_case_insensitively(self, apps: list[Application]) -> None:
        """Lowercase names sort among capitalised ones."""
        result = sort_applications(apps, SortParams("company_name", "asc"))
        assert [a.company_name for a in result] == ["Acme", "globex", "Initech"]

    def test_camel_case_and_shorthand_columns(self) -> None:
        """Aliases and shorthands resolve to field names."""
        assert resolve_sort_column("companyName") == "company_name"
        assert resolve_sort_column("stage") == "current_stage"
        assert resolve_sort_column("nope") is None

    @pytest.mark.parametrize(
        "column",
        ["followUpTracker", "follow_up_tracker", "interactions"],
    )
    def test_nested_record_columns_are_not_sortable(self, column: str) -> None:
        """Columns holding nested records do not resolve."""
        assert resolve_sort_column(column) is None

    def test_sort_by_follow_up_tracker_keeps_order(
        self, apps: list[Application]
    ) -> None:
        """Sorting by the tracker column leaves the order unchanged."""
        apps[0].follow_up_tracker = FollowUpTracker(is_active=True, attempts=2)
        result = sort_applications(apps, SortParams("followUpTracker", "asc"))
        assert result == apps

    def test_blank_values_sort_last_in_both_directions(
        self, apps: list[Application]
    ) -> None:
        """Blank contact names sort after filled ones either way."""
        asc = sort_applications(apps, SortParams("contact_person_name", "asc"))
        desc = sort_applications(apps, SortParams("contact_person_name", "desc"))
        assert asc[0].company_name == "globex"
        assert desc[0].company_name == "globex"

    def test_unknown_column_keeps_order(self, apps: list[Application]) -> None:
        """Unknown columns leave the order alone."""
        assert sort_applications(apps, SortParams("nope", "asc")) == apps

    def test_query_filters_then_sorts(self, apps: list[Application]) -> None:
        """query_applications filters before sorting."""
        result = query_applications(
            apps,
            ApplicationFilters(locations=["Remote"]),
            SortParams("company_name", "desc"),
        )
        assert [a.company_name for a in result] == ["Initech", "Acme"]


class TestFilterOptions:
    """Distinct option values for filter menus."""

    def test_distinct_non_empty_values(self, apps: list[Application]) -> None:
        """Options list each non-empty value once, in first-seen order."""
        options = filter_options(apps)
        assert options.types == ["Full-time", "Contract"]
        assert options.locations == ["Remote", "Hybrid"]
