"""Commit activity patterns.

Buckets commit timestamps (converted to UTC) into a 24-slot hour-of-day
histogram and a 7-slot day-of-week histogram where index 0 is Sunday,
and derives the busiest hour, busiest day and a coarse time-of-day label.

Busiest hour and day resolve ties to the lowest index.
"""

import logging
from collections.abc import Sequence

import pandas as pd

from project_wrapped.records import Commit
from project_wrapped.schema import ActivityPattern

logger = logging.getLogger(__name__)

DAY_NAMES = ("Sunday", "Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday")
WEEKEND_DAYS = (0, 6)


def peak_productivity_label(hour: int) -> str:
    """Coarse time-of-day label for an hour of the day."""
    if 5 <= hour < 12:
        return "Morning"
    if 12 <= hour < 17:
        return "Afternoon"
    if 17 <= hour < 21:
        return "Evening"
    return "Night"


def _commit_frame(commits: Sequence[Commit]) -> pd.DataFrame:
    """One row per commit with author, UTC hour and Sunday-based weekday."""
    timestamps = pd.to_datetime([c.utc_timestamp for c in commits], utc=True)
    return pd.DataFrame(
        {
            "author": [c.author_name for c in commits],
            "hour": timestamps.hour,
            # pandas counts weekdays from Monday
            "weekday": (timestamps.dayofweek + 1) % 7,
        }
    )


def calculate_activity_pattern(commits: Sequence[Commit]) -> ActivityPattern | None:
    """Build the activity pattern block.

    Args:
        commits: All commits of the period.

    Returns:
        ActivityPattern, or None when there are no commits.
    """
    if not commits:
        return None

    df = _commit_frame(commits)

    hourly = df["hour"].value_counts().reindex(range(24), fill_value=0)
    daily = df["weekday"].value_counts().reindex(range(7), fill_value=0)

    # idxmax returns the first label holding the maximum
    busiest_hour = int(hourly.idxmax())
    busiest_day = int(daily.idxmax())

    logger.debug(
        "Activity pattern: busiest hour %d, busiest day %s",
        busiest_hour,
        DAY_NAMES[busiest_day],
    )

    return ActivityPattern(
        hourly_commits=[int(v) for v in hourly.tolist()],
        daily_commits=[int(v) for v in daily.tolist()],
        busiest_hour=busiest_hour,
        busiest_day=DAY_NAMES[busiest_day],
        peak_productivity_time=peak_productivity_label(busiest_hour),
    )


def favorite_hours(commits: Sequence[Commit]) -> dict[str, int]:
    """Hour of day with the most commits for each author.

    Ties resolve to the earliest hour.
    """
    if not commits:
        return {}

    df = _commit_frame(commits)
    counts = (
        df.groupby(["author", "hour"]).size().reset_index(name="commits")
        .sort_values(["author", "commits", "hour"], ascending=[True, False, True])
        .drop_duplicates("author", keep="first")
    )
    return {row.author: int(row.hour) for row in counts.itertuples(index=False)}


def weekend_split(pattern: ActivityPattern) -> tuple[int, int]:
    """Commits on weekend days and on weekdays."""
    weekend = sum(pattern.daily_commits[day] for day in WEEKEND_DAYS)
    return weekend, sum(pattern.daily_commits) - weekend
