"""Builders for activity records used across the test suite."""

from datetime import UTC, datetime
from itertools import count

from project_wrapped.records import (
    Commit,
    FileChanges,
    PullRequest,
    PullRequestStatus,
    Reviewer,
    WorkItem,
)


_ids = count(1)


def ts(value: str) -> datetime:
    """Parse ``YYYY-MM-DD`` or ``YYYY-MM-DDTHH:MM`` as a UTC datetime."""
    if "T" not in value:
        value = f"{value}T12:00"
    return datetime.fromisoformat(value).replace(tzinfo=UTC)


def make_commit(
    author: str,
    when: str,
    message: str = "Change things",
    file_changes: FileChanges | None = None,
) -> Commit:
    n = next(_ids)
    return Commit(
        sha=f"sha{n:05d}",
        author_name=author,
        author_email=f"{author.lower().replace(' ', '.')}@example.com",
        timestamp=ts(when),
        message=message,
        file_changes=file_changes,
    )


def make_pr(
    author: str,
    status: PullRequestStatus = PullRequestStatus.COMPLETED,
    created: str = "2024-03-01T09:00",
    closed: str | None = "2024-03-01T15:00",
    reviewers: tuple[str, ...] = (),
    title: str = "Add feature",
) -> PullRequest:
    return PullRequest(
        id=next(_ids),
        title=title,
        status=status,
        author_name=author,
        created_at=ts(created),
        closed_at=ts(closed) if closed else None,
        reviewers=tuple(Reviewer(name=r, vote=10) for r in reviewers),
    )


def make_work_item(
    type: str = "User Story",
    state: str = "Done",
    assignee: str | None = None,
    story_points: float | None = None,
    area_path: str | None = None,
    created: str = "2024-02-01",
) -> WorkItem:
    return WorkItem(
        id=next(_ids),
        title=f"{type} item",
        type=type,
        state=state,
        created_at=ts(created),
        assignee=assignee,
        story_points=story_points,
        area_path=area_path,
    )

