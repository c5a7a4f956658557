"""Highlight and fun-fact sentence generation.

Both generators walk a fixed, ordered checklist of candidate sentences.
Each candidate is gated by a condition on the aggregated numbers, fires at
most once, and the result is cut to a configurable maximum length.
"""

import logging
from collections.abc import Sequence

from project_wrapped.pipeline.activity import weekend_split
from project_wrapped.records import ActivitySnapshot, RepositoryStats, WorkItem
from project_wrapped.schema import ActivityPattern

logger = logging.getLogger(__name__)

DEFAULT_HIGHLIGHT_LIMIT = 8
DEFAULT_FUN_FACT_LIMIT = 6

MIN_STREAK_DAYS = 2
HIGH_MERGE_RATE = 80


def _format_number(value: float) -> str:
    """Thousands-separated, without a trailing ``.0`` for whole numbers."""
    if float(value).is_integer():
        return f"{int(value):,}"
    return f"{value:,.1f}"


def _count(value: float, singular: str, plural: str) -> str:
    noun = singular if value == 1 else plural
    return f"{_format_number(value)} {noun}"


def _items_of_type(work_items: Sequence[WorkItem], item_type: str) -> list[WorkItem]:
    return [wi for wi in work_items if wi.type.strip().lower() == item_type]


def generate_highlights(
    snapshot: ActivitySnapshot,
    streak_leader: tuple[str, int] | None = None,
    limit: int = DEFAULT_HIGHLIGHT_LIMIT,
) -> list[str]:
    """Headline sentences for the period.

    Args:
        snapshot: Fetched activity.
        streak_leader: Contributor holding the longest streak and its length.
        limit: Maximum number of sentences.

    Returns:
        Ordered highlight sentences.
    """
    commits = snapshot.commits
    pull_requests = snapshot.pull_requests
    work_items = snapshot.work_items
    highlights: list[str] = []

    if commits:
        highlights.append(_count(len(commits), "commit pushed", "commits pushed"))

    if pull_requests:
        merged = sum(1 for pr in pull_requests if pr.is_completed)
        highlights.append(
            _count(merged, "pull request merged", "pull requests merged")
        )

    bugs = [wi for wi in work_items if wi.is_bug]
    bugs_done = sum(1 for wi in bugs if wi.is_done)
    if bugs_done:
        highlights.append(_count(bugs_done, "bug squashed", "bugs squashed"))
    elif bugs:
        highlights.append(_count(len(bugs), "bug tracked", "bugs tracked"))

    story_points = sum(wi.points for wi in work_items)
    if story_points > 0:
        highlights.append(
            _count(story_points, "story point delivered", "story points delivered")
        )

    authors = len({c.author_name for c in commits})
    if authors:
        highlights.append(
            _count(authors, "team member contributed", "team members contributed")
        )

    stories = len(_items_of_type(work_items, "user story"))
    if stories:
        highlights.append(_count(stories, "user story completed", "user stories completed"))

    features = sum(1 for wi in _items_of_type(work_items, "feature") if wi.is_done)
    if features:
        highlights.append(_count(features, "feature shipped", "features shipped"))

    closed = sum(1 for wi in work_items if wi.is_done and not wi.is_bug)
    if closed:
        highlights.append(_count(closed, "work item closed", "work items closed"))

    if streak_leader is not None and streak_leader[1] >= MIN_STREAK_DAYS:
        name, days = streak_leader
        highlights.append(f"{days}-day commit streak by {name}")

    repository = snapshot.repository or RepositoryStats()
    if repository.stars > 0:
        highlights.append(_count(repository.stars, "star on GitHub", "stars on GitHub"))
    if repository.forks > 0:
        highlights.append(_count(repository.forks, "fork created", "forks created"))

    files_changed = sum(c.file_changes.total for c in commits if c.file_changes)
    if files_changed:
        highlights.append(_count(files_changed, "file changed", "files changed"))

    logger.debug("Generated %d highlight candidates, keeping %d", len(highlights), limit)
    return highlights[:limit]


def _hour_label(hour: int) -> str:
    return f"{hour:02d}:00"


def generate_fun_facts(
    pattern: ActivityPattern | None,
    streak_leader: tuple[str, int] | None = None,
    avg_merge_time_hours: float | None = None,
    merge_rate: int | None = None,
    limit: int = DEFAULT_FUN_FACT_LIMIT,
) -> list[str]:
    """Colloquial sentences about how the team works.

    Args:
        pattern: Activity pattern, None when there were no commits.
        streak_leader: Contributor holding the longest streak and its length.
        avg_merge_time_hours: Average merge time across completed pull requests.
        merge_rate: Share of pull requests merged, 0-100.
        limit: Maximum number of sentences.

    Returns:
        Ordered fun-fact sentences.
    """
    facts: list[str] = []

    if pattern is not None:
        hour = pattern.busiest_hour
        if hour >= 21 or hour < 5:
            facts.append(f"Night owls! Most commits land around {_hour_label(hour)}")
        elif hour < 9:
            facts.append(f"Early birds! Most commits land around {_hour_label(hour)}")
        else:
            facts.append(
                f"Peak productivity hits in the {pattern.peak_productivity_time.lower()}, "
                f"around {_hour_label(hour)}"
            )

        facts.append(f"{pattern.busiest_day} is the busiest day of the week")

        weekend, weekday = weekend_split(pattern)
        if weekend / 2 > weekday / 5:
            facts.append("Weekend warriors: weekends out-commit the average weekday")
        elif weekend + weekday > 0:
            share = round(100 * weekday / (weekend + weekday))
            facts.append(f"{share}% of commits land on weekdays")

    if streak_leader is not None and streak_leader[1] >= MIN_STREAK_DAYS:
        name, days = streak_leader
        facts.append(f"{name} kept a {days}-day commit streak alive")

    if avg_merge_time_hours is not None:
        if avg_merge_time_hours < 1:
            facts.append("Lightning fast: pull requests merge in under an hour on average")
        elif avg_merge_time_hours < 24:
            facts.append(
                f"Pull requests merge in {avg_merge_time_hours:.1f} hours on average"
            )
        elif avg_merge_time_hours < 72:
            facts.append(
                f"Pull requests merge in about {avg_merge_time_hours / 24:.1f} days on average"
            )
        else:
            facts.append(
                f"Good things take time: pull requests merge in "
                f"{avg_merge_time_hours / 24:.0f} days on average"
            )

    if merge_rate is not None and merge_rate >= HIGH_MERGE_RATE:
        facts.append(f"{merge_rate}% of pull requests made it to merge")

    return facts[:limit]
