"""Test fixtures for project-wrapped.

Provides a small sample snapshot and reporting period shared by the
pipeline tests. Record builders live in ``helpers``.
"""

from datetime import date

import pytest
from helpers import make_commit, make_pr, make_work_item

from project_wrapped.records import (
    ActivitySnapshot,
    FileChanges,
    PullRequestStatus,
    RepositoryStats,
)


@pytest.fixture
def sample_snapshot() -> ActivitySnapshot:
    """Three contributors, a reviewer-only contributor and mixed work items."""
    commits = (
        make_commit("Alice", "2024-03-15T09:30", "Initial project skeleton"),
        make_commit("Alice", "2024-03-15T10:15"),
        make_commit("Alice", "2024-03-16T14:00"),
        make_commit("Alice", "2024-03-17T22:45"),
        make_commit("Bob", "2024-03-15T11:00", file_changes=FileChanges(1, 2, 0)),
        make_commit("Bob", "2024-03-20T16:20", file_changes=FileChanges(0, 3, 1)),
        make_commit("Carol", "2024-03-16T09:05"),
    )
    pull_requests = (
        make_pr("Alice", reviewers=("Bob", "Dave")),
        make_pr("Bob", reviewers=("Alice",)),
        make_pr("Bob", status=PullRequestStatus.ACTIVE, closed=None, reviewers=("Dave",)),
        make_pr("Carol", status=PullRequestStatus.ABANDONED, closed="2024-03-05T10:00"),
    )
    work_items = (
        make_work_item("Bug", "Done", assignee="Bob", story_points=3, area_path="Proj\\Backend\\API"),
        make_work_item("Bug", "Active", assignee="Alice", area_path="Proj\\Frontend"),
        make_work_item("User Story", "Done", assignee="Alice", story_points=5, area_path="Proj\\Frontend"),
        make_work_item("Feature", "Closed", assignee="Eve", story_points=8),
        make_work_item("Task", "New", assignee=None, story_points=2, area_path="Proj\\Backend\\API"),
    )
    return ActivitySnapshot(
        commits=commits,
        pull_requests=pull_requests,
        work_items=work_items,
        comment_counts={"Alice": 4, "Dave": 2, "Zed": 7},
        repository=RepositoryStats(repositories=2, stars=12, forks=1, open_issues=3),
    )


@pytest.fixture
def period() -> tuple[date, date]:
    return date(2024, 1, 1), date(2024, 12, 31)
