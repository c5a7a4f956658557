"""Fetch-and-summarize orchestration.

Resolves the reporting window, fetches one activity snapshot from the
configured source and runs the pipeline over it.
"""

import logging
from datetime import UTC, date, datetime, timedelta

from project_wrapped.config import Config, WindowConfig
from project_wrapped.pipeline import build_summary
from project_wrapped.schema import ProjectSummary
from project_wrapped.sources import ActivitySource, ConnectionResult, create_source

logger = logging.getLogger(__name__)

DEFAULT_WINDOW = timedelta(days=365)


def resolve_window(window: WindowConfig, today: date | None = None) -> tuple[date, date]:
    """Fill in missing window bounds.

    The end defaults to today (UTC) and the start to one year before the end.
    """
    today = today or datetime.now(UTC).date()
    date_to = window.date_to or today
    date_from = window.date_from or date_to - DEFAULT_WINDOW
    return date_from, date_to


async def collect_summary(
    config: Config,
    source: ActivitySource | None = None,
    today: date | None = None,
) -> ProjectSummary:
    """Fetch activity and build the project summary.

    Args:
        config: Application configuration.
        source: Adapter to use; built from the configuration when omitted.
        today: Reference date for the default window.

    Returns:
        The assembled summary.

    Raises:
        SourceError: If a mandatory upstream request fails.
    """
    date_from, date_to = resolve_window(config.window, today)
    source = source or create_source(config)

    logger.info(
        "Collecting %s activity for %s (%s to %s)",
        config.source.kind,
        config.source.project_name,
        date_from,
        date_to,
    )

    try:
        snapshot = await source.fetch(date_from, date_to)
    finally:
        await source.close()

    return build_summary(
        snapshot,
        project_name=config.source.project_name,
        date_from=date_from,
        date_to=date_to,
        settings=config.summary,
    )


async def check_connection(
    config: Config,
    source: ActivitySource | None = None,
) -> ConnectionResult:
    """Run the source's connectivity check."""
    source = source or create_source(config)
    try:
        return await source.test_connection()
    finally:
        await source.close()
