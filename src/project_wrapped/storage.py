"""JSON file storage for summary documents.

Each document is written as an envelope to ``<root>/summaries/<id>.json``::

    {
        "id": "3f2a9c0b1d4e",
        "projectName": "...",
        "createdAt": "2024-12-31T12:00:00+00:00",
        "data": {...}
    }

The identifier ``sample`` is reserved for a demonstration document shipped
with the package, so a summary can be shown without any stored data.
"""

import json
import logging
import re
import secrets
from dataclasses import dataclass
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from project_wrapped.schema import ProjectSummary, SummaryValidationError, parse_summary

logger = logging.getLogger(__name__)

ID_PATTERN = re.compile(r"^[0-9a-f]{12}$")
SAMPLE_ID = "sample"
SAMPLE_PATH = Path(__file__).parent / "data" / "sample.json"
MAX_DOCUMENT_BYTES = 5 * 1024 * 1024


class DocumentTooLargeError(ValueError):
    """Raised when a document file exceeds the accepted size."""

    def __init__(self, path: Path, size: int, limit: int = MAX_DOCUMENT_BYTES) -> None:
        self.size = size
        self.limit = limit
        super().__init__(f"{path.name} has {size:,} bytes, more than the {limit:,} byte limit")


def read_document(path: Path, max_bytes: int = MAX_DOCUMENT_BYTES) -> Any:
    """Parse a JSON document file after checking its size.

    Raises:
        DocumentTooLargeError: If the file is larger than ``max_bytes``.
        OSError: If the file cannot be read.
        json.JSONDecodeError: If the file is not valid JSON.
    """
    size = path.stat().st_size
    if size > max_bytes:
        raise DocumentTooLargeError(path, size, max_bytes)
    with path.open(encoding="utf-8") as f:
        return json.load(f)


def load_sample() -> ProjectSummary:
    """The demonstration document bundled with the package."""
    return parse_summary(read_document(SAMPLE_PATH))


@dataclass(frozen=True)
class StoredSummary:
    """Metadata of a stored document."""

    id: str
    project_name: str
    created_at: str


def new_summary_id() -> str:
    """Random identifier of 12 lowercase hex characters."""
    return secrets.token_hex(6)


class SummaryStore:
    """Saves and loads summary documents under a root directory."""

    def __init__(self, root: Path) -> None:
        self.root = Path(root)

    @property
    def summaries_dir(self) -> Path:
        return self.root / "summaries"

    def path_for(self, summary_id: str) -> Path:
        return self.summaries_dir / f"{summary_id}.json"

    def save(self, summary: ProjectSummary | dict[str, Any]) -> str:
        """Store a document.

        Args:
            summary: Summary model or raw camelCase document.

        Returns:
            Identifier of the stored document.

        Raises:
            SummaryValidationError: If a raw document does not match the schema.
        """
        if not isinstance(summary, ProjectSummary):
            summary = parse_summary(summary)

        summary_id = new_summary_id()
        while self.path_for(summary_id).exists():
            summary_id = new_summary_id()

        envelope = {
            "id": summary_id,
            "projectName": summary.project_name,
            "createdAt": datetime.now(UTC).isoformat(),
            "data": summary.to_document(),
        }

        path = self.path_for(summary_id)
        path.parent.mkdir(parents=True, exist_ok=True)
        with path.open("w") as f:
            json.dump(envelope, f, indent=2)

        logger.info("Saved summary %s for %s to %s", summary_id, summary.project_name, path)
        return summary_id

    def _read_envelope(self, path: Path) -> dict[str, Any] | None:
        try:
            with path.open() as f:
                envelope = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.warning("Failed to read stored summary %s: %s", path, e)
            return None
        if not isinstance(envelope, dict) or "data" not in envelope:
            logger.warning("Malformed summary envelope at %s", path)
            return None
        return envelope

    def load(self, summary_id: str) -> ProjectSummary | None:
        """Load a document by identifier.

        Returns:
            The summary, or None when the identifier is unknown or the
            stored file is unreadable. ``sample`` returns the bundled
            demonstration document.
        """
        if summary_id == SAMPLE_ID:
            return load_sample()

        if not ID_PATTERN.match(summary_id):
            logger.debug("Rejecting malformed summary id %r", summary_id)
            return None

        path = self.path_for(summary_id)
        if not path.exists():
            return None

        envelope = self._read_envelope(path)
        if envelope is None:
            return None

        try:
            return parse_summary(envelope["data"])
        except SummaryValidationError as e:
            logger.warning("Stored summary %s no longer validates: %s", summary_id, e)
            return None

    def list(self) -> list[StoredSummary]:
        """Stored documents, newest first."""
        if not self.summaries_dir.exists():
            return []

        entries: list[StoredSummary] = []
        for path in self.summaries_dir.glob("*.json"):
            envelope = self._read_envelope(path)
            if envelope is None:
                continue
            entries.append(
                StoredSummary(
                    id=str(envelope.get("id", path.stem)),
                    project_name=str(envelope.get("projectName", "")),
                    created_at=str(envelope.get("createdAt", "")),
                )
            )
        return sorted(entries, key=lambda e: (e.created_at, e.id), reverse=True)
