"""Filter and sort parameters for application queries.

Filtering:
    - ``parse_filter_value("Remote,Hybrid")`` - match any (OR)
    - Empty lists and empty strings mean "no filter".

Example:
    filters = ApplicationFilters(search="acme", stages="3,5")
    sort = SortParams().toggle("company_name")
"""

from dataclasses import dataclass
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, field_validator

SortDirection = Literal["asc", "desc"]

DEFAULT_SORT_COLUMN = "last_updated"

IN_PROGRESS_RESULT = "in_progress"
"""Synthetic result bucket for applications without a final result."""


def parse_filter_value(value: str | None) -> list[str]:
    """Parse a comma-separated filter value into a list (for OR matching).

    Examples:
        >>> parse_filter_value("Remote,Hybrid")
        ['Remote', 'Hybrid']

        >>> parse_filter_value("")
        []
    """
    if not value:
        return []

    return [v.strip() for v in value.split(",") if v.strip()]


@dataclass(frozen=True)
class SortParams:
    """Sort column and direction.

    Defaults to the most recently updated applications first.

    Attributes:
        column: Attribute name on Application (snake_case or camelCase alias).
        direction: "asc" or "desc".
    """

    column: str = DEFAULT_SORT_COLUMN
    direction: SortDirection = "desc"

    def toggle(self, column: str) -> "SortParams":
        """Sort state after the user clicks ``column``.

        Same column flips direction; a new column starts ascending.
        """
        if column == self.column:
            return SortParams(
                column=column,
                direction="desc" if self.direction == "asc" else "asc",
            )
        return SortParams(column=column, direction="asc")

    @property
    def descending(self) -> bool:
        return self.direction == "desc"


class ApplicationFilters(BaseModel):
    """Filter parameters for the application list.

    Attributes:
        search: Case-insensitive substring over company, role, contact
            person, vendor company and skill tags.
        stages: Stage codes to include.
        types: Opportunity types to include.
        locations: Work modes/locations to include.
        results: Final results to include; ``in_progress`` matches
            applications without a final result.
    """

    model_config = ConfigDict(extra="ignore")

    search: str = ""
    stages: list[int] = []
    types: list[str] = []
    locations: list[str] = []
    results: list[str] = []

    @field_validator("types", "locations", "results", mode="before")
    @classmethod
    def split_comma_separated(cls, value: object) -> object:
        """Accept "a,b" strings as well as lists."""
        if isinstance(value, str):
            return parse_filter_value(value)
        return value

    @field_validator("stages", mode="before")
    @classmethod
    def split_stage_codes(cls, value: object) -> object:
        """Accept "3,5" strings as well as lists."""
        if isinstance(value, str):
            return [int(v) for v in parse_filter_value(value)]
        return value

    def merged(self, **changes: Any) -> "ApplicationFilters":
        """Copy with some filters replaced (validated)."""
        return ApplicationFilters.model_validate(
            {**self.model_dump(), **changes}
        )
