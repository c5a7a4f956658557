"""Top-N leaderboards.

Ranks the full contributor map on commits, pull requests opened, pull
requests reviewed and comments written, plus the busiest calendar days
by commit volume and, when streaks are known, the longest commit streaks.

Every board sorts by its value descending and breaks ties by name (or
date) ascending, so a fixed input always yields the same boards.
"""

import logging
from collections.abc import Mapping, Sequence

import polars as pl

from project_wrapped.pipeline.aggregator import ContributorStats
from project_wrapped.records import Commit
from project_wrapped.schema import BusiestDay, Top5, Top5Entry

logger = logging.getLogger(__name__)

RANKED_METRICS = (
    "commits",
    "pull_requests_opened",
    "pull_requests_reviewed",
    "comments_written",
)


def calculate_top5(
    contributors: Mapping[str, ContributorStats],
    commits: Sequence[Commit],
    streaks: Mapping[str, int] | None = None,
    size: int = 5,
) -> Top5:
    """Calculate all leaderboards.

    Args:
        contributors: Full contributor map from the aggregator.
        commits: All commits of the period.
        streaks: Longest streak in days per contributor, if computed.
        size: Entries per board.

    Returns:
        Top5 block of the summary document.
    """
    frame = _contributor_frame(contributors)

    boards = {metric: _rank_metric(frame, metric, size) for metric in RANKED_METRICS}

    longest_streaks = None
    if streaks is not None:
        longest_streaks = calculate_longest_streaks(streaks, size)

    logger.debug("Ranked %d contributors across %d boards", len(frame), len(boards))

    return Top5(
        most_commits=boards["commits"],
        most_pull_requests_opened=boards["pull_requests_opened"],
        most_pull_requests_reviewed=boards["pull_requests_reviewed"],
        most_comments_written=boards["comments_written"],
        busiest_days_by_commits=calculate_busiest_days(commits, size),
        longest_streaks=longest_streaks,
    )


def calculate_busiest_days(commits: Sequence[Commit], size: int = 5) -> list[BusiestDay]:
    """Group commits by UTC calendar date and rank the dates.

    Args:
        commits: All commits of the period.
        size: Number of days to return.

    Returns:
        Busiest days, most commits first, earlier date first on ties.
    """
    if not commits:
        return []

    frame = pl.DataFrame(
        {"date": [commit.utc_date.isoformat() for commit in commits]},
        schema={"date": pl.Utf8},
    )

    busiest = (
        frame.group_by("date")
        .agg(pl.len().cast(pl.Int64).alias("commits"))
        .sort(["commits", "date"], descending=[True, False])
        .head(size)
    )

    return [
        BusiestDay(date=row["date"], commits=row["commits"])
        for row in busiest.iter_rows(named=True)
    ]


def calculate_longest_streaks(streaks: Mapping[str, int], size: int = 5) -> list[Top5Entry]:
    """Rank contributors by their longest commit streak.

    The streak length is reported in the entry's ``commits`` field.
    """
    frame = pl.DataFrame(
        {"name": list(streaks.keys()), "streak": list(streaks.values())},
        schema={"name": pl.Utf8, "streak": pl.Int64},
    ).filter(pl.col("streak") > 0)

    if frame.is_empty():
        return []

    ranked = frame.sort(["streak", "name"], descending=[True, False]).head(size)
    return [
        Top5Entry(name=row["name"], commits=row["streak"])
        for row in ranked.iter_rows(named=True)
    ]


def _contributor_frame(contributors: Mapping[str, ContributorStats]) -> pl.DataFrame:
    """Build a DataFrame with one row per contributor and the ranked metrics."""
    stats = list(contributors.values())
    return pl.DataFrame(
        {
            "name": [c.name for c in stats],
            **{metric: [getattr(c, metric) for c in stats] for metric in RANKED_METRICS},
        },
        schema={"name": pl.Utf8, **dict.fromkeys(RANKED_METRICS, pl.Int64)},
    )


def _rank_metric(frame: pl.DataFrame, metric: str, size: int) -> list[Top5Entry]:
    """Top entries of one metric column."""
    if frame.is_empty():
        return []

    ranked = (
        frame.select(["name", metric])
        .sort([metric, "name"], descending=[True, False])
        .head(size)
    )
    return [
        Top5Entry(name=row["name"], **{metric: row[metric]})
        for row in ranked.iter_rows(named=True)
    ]
