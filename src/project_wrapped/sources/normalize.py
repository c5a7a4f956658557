"""Helpers shared by the source adapters for turning payloads into records."""

import logging
import re
from datetime import UTC, datetime
from typing import Any

logger = logging.getLogger(__name__)

# Azure DevOps reports up to seven fractional digits; datetime takes six.
_FRACTION_PATTERN = re.compile(r"\.(\d{6})\d+")


def normalize_timestamp(ts: str | None) -> datetime | None:
    """Parse an ISO 8601 API timestamp into an aware UTC datetime.

    Handles GitHub's ``2025-01-15T10:30:00Z`` and Azure DevOps'
    ``2025-01-15T10:30:00.1234567Z`` forms.

    Args:
        ts: ISO 8601 timestamp string or None.

    Returns:
        UTC datetime object or None if input is None or invalid.
    """
    if not ts:
        return None

    try:
        cleaned = _FRACTION_PATTERN.sub(r".\1", ts.replace("Z", "+00:00"))
        dt = datetime.fromisoformat(cleaned)
    except (ValueError, AttributeError) as e:
        logger.warning("Failed to parse timestamp '%s': %s", ts, e)
        return None

    return dt.replace(tzinfo=UTC) if dt.tzinfo is None else dt.astimezone(UTC)


def label_names(labels: list[dict[str, Any]] | None) -> list[str]:
    """Label names from a GitHub labels array, in API order."""
    if not labels:
        return []
    return [label["name"] for label in labels if label.get("name")]


def display_name(identity: dict[str, Any] | None, *keys: str) -> str | None:
    """First non-empty value among ``keys`` of an identity object."""
    if not identity:
        return None
    for key in keys:
        value = identity.get(key)
        if value:
            return str(value)
    return None
