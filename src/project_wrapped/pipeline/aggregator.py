"""Per-contributor and per-module aggregation.

Folds commits, pull requests, work items and comment counts into
contributor and module statistics in a single pass over each collection.

Contributor identity is the exact display name. Commit authors, PR authors
and reviewers create contributor entries; work item assignees and comment
authors only update contributors that already exist.
"""

import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field

from project_wrapped.records import Commit, PullRequest, WorkItem
from project_wrapped.schema import Contributor, Module

logger = logging.getLogger(__name__)

DEFAULT_MODULE_STATUS = "In Progress"


@dataclass
class ContributorStats:
    """Running totals for one contributor."""

    name: str
    commits: int = 0
    pull_requests_opened: int = 0
    pull_requests_reviewed: int = 0
    comments_written: int = 0
    bugs_fixed: int = 0
    story_points_done: float = 0.0
    merge_times: list[float] = field(default_factory=list)

    @property
    def avg_pr_merge_time_hours(self) -> float | None:
        """Average merge time of the PRs this contributor opened, in hours."""
        if not self.merge_times:
            return None
        return round(sum(self.merge_times) / len(self.merge_times), 1)

    def to_model(
        self,
        longest_streak: int | None = None,
        favorite_hour: int | None = None,
    ) -> Contributor:
        """Convert to the document model, attaching derived fields."""
        return Contributor(
            name=self.name,
            commits=self.commits,
            pull_requests_opened=self.pull_requests_opened,
            pull_requests_reviewed=self.pull_requests_reviewed,
            comments_written=self.comments_written,
            bugs_fixed=self.bugs_fixed,
            story_points_done=self.story_points_done,
            avg_pr_merge_time_hours=self.avg_pr_merge_time_hours,
            longest_streak=longest_streak,
            favorite_hour=favorite_hour,
        )


@dataclass
class ModuleStats:
    """Running totals for one module (work item area path bucket)."""

    name: str
    commits: int = 0
    pull_requests: int = 0
    story_points_done: float = 0.0
    status: str = DEFAULT_MODULE_STATUS

    def to_model(self) -> Module:
        return Module(
            name=self.name,
            commits=self.commits,
            pull_requests=self.pull_requests,
            story_points_done=self.story_points_done,
            status=self.status,
        )


@dataclass
class ContributorAggregator:
    """Accumulates contributor statistics for a single aggregation call."""

    contributors: dict[str, ContributorStats] = field(default_factory=dict)

    def _get_or_create(self, name: str) -> ContributorStats:
        stats = self.contributors.get(name)
        if stats is None:
            stats = ContributorStats(name=name)
            self.contributors[name] = stats
        return stats

    def add_commit(self, commit: Commit) -> None:
        self._get_or_create(commit.author_name).commits += 1

    def add_pull_request(self, pr: PullRequest) -> None:
        """Count an opened PR for its author and a review for each reviewer.

        Reviewers become contributors even when they never committed or
        opened a pull request themselves.
        """
        author = self._get_or_create(pr.author_name)
        author.pull_requests_opened += 1

        merge_time = pr.merge_time_hours
        if merge_time is not None:
            author.merge_times.append(merge_time)

        for reviewer in pr.reviewers:
            self._get_or_create(reviewer.name).pull_requests_reviewed += 1

    def add_work_item(self, item: WorkItem) -> None:
        """Credit a work item to its assignee if already known.

        Story points are credited regardless of type or state.
        """
        if not item.assignee:
            return
        stats = self.contributors.get(item.assignee)
        if stats is None:
            return

        if item.is_bug and item.is_done:
            stats.bugs_fixed += 1
        stats.story_points_done += item.points

    def add_comments(self, name: str, count: int) -> None:
        stats = self.contributors.get(name)
        if stats is not None:
            stats.comments_written += count


def aggregate_contributors(
    commits: Iterable[Commit],
    pull_requests: Iterable[PullRequest],
    work_items: Iterable[WorkItem],
    comment_counts: Mapping[str, int] | None = None,
) -> dict[str, ContributorStats]:
    """Build the contributor map.

    Args:
        commits: All commits of the period.
        pull_requests: All pull requests.
        work_items: All work items.
        comment_counts: Comments written per display name.

    Returns:
        Mapping from display name to contributor statistics, in first-seen order.
    """
    aggregator = ContributorAggregator()

    for commit in commits:
        aggregator.add_commit(commit)

    for pr in pull_requests:
        aggregator.add_pull_request(pr)

    for item in work_items:
        aggregator.add_work_item(item)

    for name, count in (comment_counts or {}).items():
        aggregator.add_comments(name, count)

    logger.debug("Aggregated %d contributors", len(aggregator.contributors))
    return aggregator.contributors


def aggregate_modules(work_items: Iterable[WorkItem]) -> dict[str, ModuleStats]:
    """Group work items by module name.

    Each work item counts as one pull request of its module; the module
    status is never derived and stays at its default.

    Args:
        work_items: All work items.

    Returns:
        Mapping from module name to module statistics, in first-seen order.
    """
    modules: dict[str, ModuleStats] = {}

    for item in work_items:
        name = item.module_name
        if name not in modules:
            modules[name] = ModuleStats(name=name)

        module = modules[name]
        module.pull_requests += 1
        module.story_points_done += item.points

    logger.debug("Aggregated %d modules", len(modules))
    return modules


def top_contributors(
    contributors: Mapping[str, ContributorStats],
    limit: int = 10,
) -> list[ContributorStats]:
    """Contributors by commit count descending, ties by name."""
    ranked = sorted(contributors.values(), key=lambda c: (-c.commits, c.name))
    return ranked[:limit]


def top_modules(modules: Mapping[str, ModuleStats], limit: int = 6) -> list[ModuleStats]:
    """Modules by story points descending, ties by name."""
    ranked = sorted(modules.values(), key=lambda m: (-m.story_points_done, m.name))
    return ranked[:limit]
