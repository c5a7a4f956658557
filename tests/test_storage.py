"""Tests for summary persistence."""

import json
from pathlib import Path

import pytest

from project_wrapped.pipeline import build_summary
from project_wrapped.schema import SummaryValidationError, validate_summary
from project_wrapped.storage import (
    ID_PATTERN,
    SAMPLE_ID,
    SAMPLE_PATH,
    DocumentTooLargeError,
    SummaryStore,
    load_sample,
    read_document,
)


@pytest.fixture
def store(tmp_path: Path) -> SummaryStore:
    return SummaryStore(tmp_path)


class TestSummaryStore:
    def test_save_and_load(self, store: SummaryStore, sample_snapshot, period) -> None:
        summary = build_summary(sample_snapshot, "Demo", *period)

        summary_id = store.save(summary)
        loaded = store.load(summary_id)

        assert ID_PATTERN.match(summary_id)
        assert loaded is not None
        assert loaded.to_document() == summary.to_document()

    def test_envelope_layout(self, store: SummaryStore, sample_snapshot) -> None:
        summary_id = store.save(build_summary(sample_snapshot, "Demo"))

        with store.path_for(summary_id).open() as f:
            envelope = json.load(f)

        assert envelope["id"] == summary_id
        assert envelope["projectName"] == "Demo"
        assert envelope["createdAt"]
        assert envelope["data"]["projectName"] == "Demo"
        assert store.path_for(summary_id).parent == store.root / "summaries"

    def test_save_raw_document_is_validated(self, store: SummaryStore) -> None:
        with pytest.raises(SummaryValidationError):
            store.save({"projectName": "Broken"})

    def test_load_unknown_id(self, store: SummaryStore) -> None:
        assert store.load("0123456789ab") is None

    def test_load_malformed_id(self, store: SummaryStore) -> None:
        assert store.load("../../etc/passwd") is None

    def test_load_corrupt_file(self, store: SummaryStore) -> None:
        store.summaries_dir.mkdir(parents=True)
        store.path_for("0123456789ab").write_text("{not json")

        assert store.load("0123456789ab") is None

    def test_list_newest_first(self, store: SummaryStore, sample_snapshot) -> None:
        first = store.save(build_summary(sample_snapshot, "First"))
        second = store.save(build_summary(sample_snapshot, "Second"))

        # Pin creation times so ordering does not depend on clock resolution
        for summary_id, created in ((first, "2024-01-01T00:00:00+00:00"), (second, "2024-06-01T00:00:00+00:00")):
            path = store.path_for(summary_id)
            envelope = json.loads(path.read_text())
            envelope["createdAt"] = created
            path.write_text(json.dumps(envelope))

        entries = store.list()

        assert [e.project_name for e in entries] == ["Second", "First"]

    def test_list_empty(self, store: SummaryStore) -> None:
        assert store.list() == []


class TestSampleDocument:
    def test_bundled_sample_validates(self) -> None:
        raw = json.loads(SAMPLE_PATH.read_text(encoding="utf-8"))

        assert validate_summary(raw) == []

    def test_load_sample(self) -> None:
        summary = load_sample()

        assert summary.project_name == "Atlas Platform"
        assert len(summary.contributors) == 5
        assert summary.activity_pattern is not None

    def test_store_serves_sample_without_files(self, store: SummaryStore) -> None:
        summary = store.load(SAMPLE_ID)

        assert summary == load_sample()
        assert not store.summaries_dir.exists()


class TestReadDocument:
    def test_reads_json(self, tmp_path: Path) -> None:
        path = tmp_path / "doc.json"
        path.write_text('{"projectName": "Small"}')

        assert read_document(path) == {"projectName": "Small"}

    def test_size_at_limit_is_accepted(self, tmp_path: Path) -> None:
        path = tmp_path / "doc.json"
        path.write_text('"0123456789"')

        assert read_document(path, max_bytes=12) == "0123456789"

    def test_larger_file_is_rejected(self, tmp_path: Path) -> None:
        path = tmp_path / "doc.json"
        path.write_text('"0123456789"')

        with pytest.raises(DocumentTooLargeError) as exc_info:
            read_document(path, max_bytes=11)

        assert exc_info.value.size == 12
        assert exc_info.value.limit == 11