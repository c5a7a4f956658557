"""Typed activity records handed from the source adapters to the pipeline.

Adapters resolve every platform-specific payload into these closed record
types once, so the pipeline never deals with raw API dictionaries.
"""

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import UTC, date, datetime, timedelta
from enum import Enum

FALLBACK_MODULE = "General"
AREA_PATH_SEPARATOR = "\\"
DONE_STATES = frozenset({"done", "closed", "resolved", "completed"})
MAX_MERGE_DURATION = timedelta(days=365)


class PullRequestStatus(str, Enum):
    """Normalized pull request lifecycle status."""

    ACTIVE = "active"
    COMPLETED = "completed"
    ABANDONED = "abandoned"


@dataclass(frozen=True)
class FileChanges:
    """Per-commit file change counts."""

    added: int = 0
    edited: int = 0
    deleted: int = 0

    @property
    def total(self) -> int:
        """Total number of touched files."""
        return self.added + self.edited + self.deleted


@dataclass(frozen=True)
class Commit:
    """A single commit.

    Attributes:
        sha: Source-provided commit hash.
        author_name: Display name used as contributor identity.
        author_email: Author email as reported by the source.
        timestamp: Timezone-aware author timestamp.
        message: Full commit message.
        file_changes: Optional file change counts.
    """

    sha: str
    author_name: str
    author_email: str
    timestamp: datetime
    message: str = ""
    file_changes: FileChanges | None = None

    @property
    def utc_timestamp(self) -> datetime:
        """Author timestamp in UTC; naive timestamps are taken as UTC."""
        if self.timestamp.tzinfo is None:
            return self.timestamp.replace(tzinfo=UTC)
        return self.timestamp.astimezone(UTC)

    @property
    def utc_date(self) -> date:
        return self.utc_timestamp.date()


@dataclass(frozen=True)
class Reviewer:
    """A pull request reviewer and their vote."""

    name: str
    vote: int = 0


@dataclass(frozen=True)
class PullRequest:
    """A pull request with its reviewers."""

    id: int
    title: str
    status: PullRequestStatus
    author_name: str
    created_at: datetime
    closed_at: datetime | None = None
    reviewers: tuple[Reviewer, ...] = ()

    @property
    def is_completed(self) -> bool:
        return self.status is PullRequestStatus.COMPLETED

    @property
    def merge_time_hours(self) -> float | None:
        """Hours from creation to completion.

        Only completed pull requests with a positive duration under one year
        have a merge time.
        """
        if not self.is_completed or self.closed_at is None:
            return None
        duration = self.closed_at - self.created_at
        if duration <= timedelta(0) or duration >= MAX_MERGE_DURATION:
            return None
        return duration.total_seconds() / 3600


@dataclass(frozen=True)
class WorkItem:
    """A tracked work item (bug, feature, user story, issue, ...)."""

    id: int
    title: str
    type: str
    state: str
    created_at: datetime
    assignee: str | None = None
    story_points: float | None = None
    area_path: str | None = None

    @property
    def module_name(self) -> str:
        """Last segment of the area path, or the fallback module."""
        if not self.area_path:
            return FALLBACK_MODULE
        return self.area_path.split(AREA_PATH_SEPARATOR)[-1] or FALLBACK_MODULE

    @property
    def is_done(self) -> bool:
        return self.state.strip().lower() in DONE_STATES

    @property
    def is_bug(self) -> bool:
        return self.type.strip().lower() == "bug"

    @property
    def points(self) -> float:
        """Story point estimate, zero when not estimated."""
        return self.story_points or 0.0


@dataclass(frozen=True)
class RepositoryStats:
    """Repository-level counters reported by the source."""

    repositories: int = 0
    stars: int = 0
    forks: int = 0
    open_issues: int = 0


@dataclass(frozen=True)
class ActivitySnapshot:
    """Everything fetched for one reporting period.

    Attributes:
        commits: Commits in the period.
        pull_requests: Pull requests of the project.
        work_items: Work items created in the period.
        comment_counts: Comments written per display name, best effort.
        repository: Optional repository-level counters.
    """

    commits: tuple[Commit, ...] = ()
    pull_requests: tuple[PullRequest, ...] = ()
    work_items: tuple[WorkItem, ...] = ()
    comment_counts: Mapping[str, int] = field(default_factory=dict)
    repository: RepositoryStats | None = None
