"""Summary assembly.

Runs every pipeline stage over one activity snapshot and combines the
results with the caller's metadata into the summary document.
"""

import logging
import math
from collections.abc import Sequence
from datetime import date

from project_wrapped.config import SummarySettings
from project_wrapped.pipeline.activity import calculate_activity_pattern, favorite_hours
from project_wrapped.pipeline.aggregator import (
    aggregate_contributors,
    aggregate_modules,
    top_contributors,
    top_modules,
)
from project_wrapped.pipeline.highlights import generate_fun_facts, generate_highlights
from project_wrapped.pipeline.milestones import generate_milestones
from project_wrapped.pipeline.rankings import calculate_top5
from project_wrapped.pipeline.streaks import calculate_streaks, overall_longest_streak
from project_wrapped.records import ActivitySnapshot, PullRequest, WorkItem
from project_wrapped.schema import (
    DateRange,
    ProjectStats,
    ProjectSummary,
    RepositoryStatsBlock,
    WorkItemTypeCount,
)

logger = logging.getLogger(__name__)

SPRINT_LENGTH_DAYS = 14


def count_sprints(date_from: date | None, date_to: date | None) -> int:
    """Whole two-week sprints between the bounds, 0 without both bounds."""
    if date_from is None or date_to is None:
        return 0
    return max(0, (date_to - date_from).days // SPRINT_LENGTH_DAYS)


def merge_rate(pull_requests: Sequence[PullRequest]) -> int:
    """Percentage of completed pull requests, rounded half up."""
    if not pull_requests:
        return 0
    completed = sum(1 for pr in pull_requests if pr.is_completed)
    return math.floor(100 * completed / len(pull_requests) + 0.5)


def average_merge_time(pull_requests: Sequence[PullRequest]) -> float | None:
    """Average merge time in hours over all pull requests that have one."""
    times = [t for t in (pr.merge_time_hours for pr in pull_requests) if t is not None]
    if not times:
        return None
    return round(sum(times) / len(times), 1)


def work_item_types(work_items: Sequence[WorkItem]) -> list[WorkItemTypeCount] | None:
    """Work item counts per type, largest first."""
    if not work_items:
        return None

    counts: dict[str, list[int]] = {}
    for item in work_items:
        totals = counts.setdefault(item.type, [0, 0])
        totals[0] += 1
        if item.is_done:
            totals[1] += 1

    ordered = sorted(counts.items(), key=lambda kv: (-kv[1][0], kv[0]))
    return [WorkItemTypeCount(type=name, count=total, done=done) for name, (total, done) in ordered]


def build_summary(
    snapshot: ActivitySnapshot,
    project_name: str,
    date_from: date | None = None,
    date_to: date | None = None,
    settings: SummarySettings | None = None,
) -> ProjectSummary:
    """Build the project summary document.

    Args:
        snapshot: Complete activity of the period.
        project_name: Display name of the project.
        date_from: Start of the period, if known.
        date_to: End of the period, if known.
        settings: Pipeline settings; defaults apply when omitted.

    Returns:
        The assembled summary.
    """
    settings = settings or SummarySettings()
    commits = snapshot.commits
    pull_requests = snapshot.pull_requests
    work_items = snapshot.work_items

    logger.info(
        "Building summary for %s: %d commits, %d pull requests, %d work items",
        project_name,
        len(commits),
        len(pull_requests),
        len(work_items),
    )

    contributors = aggregate_contributors(
        commits, pull_requests, work_items, snapshot.comment_counts
    )
    modules = aggregate_modules(work_items)

    streaks = calculate_streaks(commits)
    streak_leader = overall_longest_streak(streaks)
    hours = favorite_hours(commits)
    pattern = calculate_activity_pattern(commits)
    top5 = calculate_top5(contributors, commits, streaks, settings.ranking_size)

    avg_merge_time = average_merge_time(pull_requests)
    rate = merge_rate(pull_requests)

    file_changes = [c.file_changes.total for c in commits if c.file_changes is not None]

    stats = ProjectStats(
        total_commits=len(commits),
        total_pull_requests=len(pull_requests),
        total_reviews=sum(len(pr.reviewers) for pr in pull_requests),
        total_comments=sum(snapshot.comment_counts.values()),
        total_bugs_fixed=sum(1 for wi in work_items if wi.is_bug and wi.is_done),
        total_story_points_done=sum(wi.points for wi in work_items),
        sprints_completed=count_sprints(date_from, date_to),
        total_files_changed=sum(file_changes) if file_changes else None,
        total_repositories=snapshot.repository.repositories if snapshot.repository else None,
        longest_streak=streak_leader[1] if streak_leader else None,
        avg_pr_merge_time_hours=avg_merge_time,
        total_work_items=len(work_items),
        pr_merge_rate=rate,
    )

    repository_stats = None
    if snapshot.repository is not None:
        repo = snapshot.repository
        repository_stats = RepositoryStatsBlock(
            repositories=repo.repositories,
            stars=repo.stars,
            forks=repo.forks,
            open_issues=repo.open_issues,
        )

    summary = ProjectSummary(
        project_name=project_name,
        version=settings.version,
        date_range=DateRange(
            start=date_from.isoformat() if date_from else "",
            end=date_to.isoformat() if date_to else "",
        ),
        stats=stats,
        contributors=[
            c.to_model(longest_streak=streaks.get(c.name), favorite_hour=hours.get(c.name))
            for c in top_contributors(contributors, settings.contributor_limit)
        ],
        modules=[m.to_model() for m in top_modules(modules, settings.module_limit)],
        top5=top5,
        highlights=generate_highlights(snapshot, streak_leader, settings.highlight_limit),
        milestones=generate_milestones(
            commits,
            pull_requests,
            date_from,
            date_to,
            settings.pr_milestone_threshold,
        ),
        repository_stats=repository_stats,
        activity_pattern=pattern,
        fun_facts=generate_fun_facts(
            pattern,
            streak_leader,
            avg_merge_time,
            rate if pull_requests else None,
            settings.fun_fact_limit,
        ),
        work_item_types=work_item_types(work_items),
    )

    logger.info(
        "Summary built: %d contributors, %d modules, %d highlights, %d milestones",
        len(summary.contributors),
        len(summary.modules),
        len(summary.highlights),
        len(summary.milestones),
    )
    return summary
