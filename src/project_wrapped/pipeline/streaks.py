"""Commit streak detection."""

import logging
from collections import defaultdict
from collections.abc import Iterable, Mapping, Sequence
from datetime import date, timedelta

from project_wrapped.records import Commit

logger = logging.getLogger(__name__)

ONE_DAY = timedelta(days=1)


def longest_run(days: Iterable[date]) -> int:
    """Length of the longest run of consecutive calendar days.

    Duplicate days count once.
    """
    ordered = sorted(set(days))
    if not ordered:
        return 0

    best = current = 1
    for previous, day in zip(ordered, ordered[1:]):
        if day - previous == ONE_DAY:
            current += 1
            best = max(best, current)
        else:
            current = 1
    return best


def calculate_streaks(commits: Sequence[Commit]) -> dict[str, int]:
    """Longest commit streak in days per commit author.

    Args:
        commits: All commits of the period.

    Returns:
        Mapping from author name to streak length, in first-seen order.
    """
    days_by_author: dict[str, set[date]] = defaultdict(set)
    for commit in commits:
        days_by_author[commit.author_name].add(commit.utc_date)

    streaks = {name: longest_run(days) for name, days in days_by_author.items()}
    logger.debug("Calculated streaks for %d authors", len(streaks))
    return streaks


def overall_longest_streak(streaks: Mapping[str, int]) -> tuple[str, int] | None:
    """Contributor holding the longest streak, earliest name on ties."""
    if not streaks:
        return None
    name, days = min(streaks.items(), key=lambda item: (-item[1], item[0]))
    return name, days
