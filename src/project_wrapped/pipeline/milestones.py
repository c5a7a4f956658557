"""Timeline milestones."""

import logging
from collections.abc import Sequence
from datetime import date

from project_wrapped.config import PR_MILESTONE_THRESHOLD
from project_wrapped.records import Commit, PullRequest
from project_wrapped.schema import Milestone

logger = logging.getLogger(__name__)

FIRST_COMMIT_DESCRIPTION_LENGTH = 50


def generate_milestones(
    commits: Sequence[Commit],
    pull_requests: Sequence[PullRequest],
    date_from: date | None,
    date_to: date | None,
    pr_threshold: int = PR_MILESTONE_THRESHOLD,
) -> list[Milestone]:
    """Dated narrative events of the period, earliest first.

    Period start and end are only emitted for the bounds that are given.
    Milestones on the same date keep the order they were generated in.

    Args:
        commits: All commits of the period.
        pull_requests: All pull requests.
        date_from: Start of the period.
        date_to: End of the period.
        pr_threshold: Pull request count that earns the celebration milestone.

    Returns:
        Milestones sorted by date.
    """
    milestones: list[Milestone] = []

    if date_from is not None:
        milestones.append(
            Milestone(
                date=date_from.isoformat(),
                title="Period Start",
                description="Beginning of the tracking period",
                icon="rocket",
            )
        )

    if commits:
        ordered = sorted(commits, key=lambda c: c.utc_timestamp)
        first = ordered[0]
        milestones.append(
            Milestone(
                date=first.utc_date.isoformat(),
                title="First Commit",
                description=first.message[:FIRST_COMMIT_DESCRIPTION_LENGTH] or "Initial commit",
                icon="lightbulb",
            )
        )

        mid = len(ordered) // 2
        milestones.append(
            Milestone(
                date=ordered[mid].utc_date.isoformat(),
                title="Halfway Point",
                description=f"{mid} commits so far",
                icon="flag",
            )
        )

    if date_to is not None and len(pull_requests) >= pr_threshold:
        milestones.append(
            Milestone(
                date=date_to.isoformat(),
                title=f"{pr_threshold} PRs Milestone",
                description="Team collaboration at scale",
                icon="party",
            )
        )

    if date_to is not None:
        milestones.append(
            Milestone(
                date=date_to.isoformat(),
                title="Period End",
                description="End of tracking period",
                icon="lock",
            )
        )

    # ISO dates sort chronologically; sorted() is stable
    milestones = sorted(milestones, key=lambda m: m.date)
    logger.debug("Generated %d milestones", len(milestones))
    return milestones
