"""Project summary document schema.

The document is a public contract: it is rendered slide by slide, stored,
and accepted back from users who author it by hand. Field names are
camelCase on the wire, numeric fields keep their units (hours, days,
percentages as 0-100 integers).

Numeric fields take any JSON number, integral or fractional, and keep it
as given. Strings and booleans are rejected instead of coerced.
"""

from dataclasses import dataclass
from typing import Annotated, Any

from pydantic import (
    AfterValidator,
    BaseModel,
    ConfigDict,
    Field,
    PlainValidator,
    ValidationError,
)
from pydantic.alias_generators import to_camel


def _json_number(value: Any) -> int | float:
    # bool is an int subclass
    if isinstance(value, bool) or not isinstance(value, int | float):
        raise ValueError("Input should be a number")
    return value


def _between(low: int, high: int) -> AfterValidator:
    def check(value: int | float) -> int | float:
        if not low <= value <= high:
            raise ValueError(f"Input should be between {low} and {high}")
        return value

    return AfterValidator(check)


Number = Annotated[int | float, PlainValidator(_json_number)]
HourOfDay = Annotated[Number, _between(0, 23)]
Percentage = Annotated[Number, _between(0, 100)]


class SummaryModel(BaseModel):
    """Base model: camelCase aliases, snake_case attribute access."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Contributor(SummaryModel):
    name: str
    commits: Number
    pull_requests_opened: Number
    pull_requests_reviewed: Number
    comments_written: Number
    bugs_fixed: Number
    story_points_done: Number
    avg_pr_merge_time_hours: Number | None = None
    longest_streak: Number | None = None
    favorite_hour: HourOfDay | None = None


class Module(SummaryModel):
    name: str
    commits: Number
    pull_requests: Number
    story_points_done: Number
    status: str


class Top5Entry(SummaryModel):
    """Leaderboard entry; only the field of its board is set."""

    name: str
    commits: Number | None = None
    pull_requests_opened: Number | None = None
    pull_requests_reviewed: Number | None = None
    comments_written: Number | None = None


class BusiestDay(SummaryModel):
    date: str
    commits: Number


class Top5(SummaryModel):
    most_commits: list[Top5Entry]
    most_pull_requests_opened: list[Top5Entry]
    most_pull_requests_reviewed: list[Top5Entry]
    most_comments_written: list[Top5Entry]
    busiest_days_by_commits: list[BusiestDay]
    # Streak length in days is carried in ``commits``, the field the slide reads.
    longest_streaks: list[Top5Entry] | None = None


class Milestone(SummaryModel):
    date: str
    title: str
    description: str
    icon: str


class ProjectStats(SummaryModel):
    total_commits: Number
    total_pull_requests: Number
    total_reviews: Number
    total_comments: Number
    total_bugs_fixed: Number
    total_story_points_done: Number
    sprints_completed: Number
    total_files_changed: Number | None = None
    total_repositories: Number | None = None
    longest_streak: Number | None = None
    avg_pr_merge_time_hours: Number | None = None
    total_work_items: Number | None = None
    pr_merge_rate: Percentage | None = None


class DateRange(SummaryModel):
    start: str
    end: str


class RepositoryStatsBlock(SummaryModel):
    repositories: Number = 0
    stars: Number = 0
    forks: Number = 0
    open_issues: Number = 0


class ActivityPattern(SummaryModel):
    hourly_commits: list[Number] = Field(min_length=24, max_length=24)
    daily_commits: list[Number] = Field(min_length=7, max_length=7)
    busiest_hour: HourOfDay
    busiest_day: str
    peak_productivity_time: str


class WorkItemTypeCount(SummaryModel):
    type: str
    count: Number
    done: Number = 0

class ProjectSummary(SummaryModel):
    """Root summary document."""

    project_name: str
    version: str
    date_range: DateRange
    stats: ProjectStats
    contributors: list[Contributor]
    modules: list[Module]
    top5: Top5
    highlights: list[str]
    milestones: list[Milestone]
    repository_stats: RepositoryStatsBlock | None = None
    activity_pattern: ActivityPattern | None = None
    fun_facts: list[str] | None = None
    work_item_types: list[WorkItemTypeCount] | None = None

    def to_document(self) -> dict[str, Any]:
        """Serialize to the camelCase JSON-compatible document."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


@dataclass(frozen=True)
class ValidationIssue:
    """A single schema violation.

    Attributes:
        path: Dotted field path, e.g. ``stats.totalCommits`` or ``contributors.0.name``.
        message: What is wrong with the value.
    """

    path: str
    message: str

    def __str__(self) -> str:
        return f"{self.path}: {self.message}" if self.path else self.message


class SummaryValidationError(ValueError):
    """Raised when a document does not match the summary schema."""

    def __init__(self, issues: list[ValidationIssue]) -> None:
        self.issues = issues
        super().__init__("Invalid data structure: " + ", ".join(str(i) for i in issues))


def _issues_from_error(error: ValidationError) -> list[ValidationIssue]:
    return [
        ValidationIssue(
            path=".".join(str(part) for part in err["loc"]),
            message=err["msg"],
        )
        for err in error.errors()
    ]


def validate_summary(raw: Any) -> list[ValidationIssue]:
    """Check a raw document against the schema.

    Args:
        raw: Parsed JSON value.

    Returns:
        List of issues, empty when the document is valid.
    """
    try:
        ProjectSummary.model_validate(raw)
    except ValidationError as e:
        return _issues_from_error(e)
    return []


def parse_summary(raw: Any) -> ProjectSummary:
    """Parse a raw document into a ProjectSummary.

    Raises:
        SummaryValidationError: If the document does not match the schema.
    """
    try:
        return ProjectSummary.model_validate(raw)
    except ValidationError as e:
        raise SummaryValidationError(_issues_from_error(e)) from e
