"""Tests for fetch-and-summarize orchestration."""

from datetime import date

import pytest

from project_wrapped.config import Config, WindowConfig
from project_wrapped.orchestrator import check_connection, collect_summary, resolve_window
from project_wrapped.records import ActivitySnapshot
from project_wrapped.sources import ConnectionResult, SourceAuthError, create_source
from project_wrapped.sources.azure_devops import AzureDevOpsSource
from project_wrapped.sources.github import GitHubSource


class FakeSource:
    """In-memory source recording how it was driven."""

    def __init__(self, snapshot: ActivitySnapshot | None = None, error: Exception | None = None):
        self.snapshot = snapshot or ActivitySnapshot()
        self.error = error
        self.requested: tuple[date, date] | None = None
        self.closed = False

    async def fetch(self, date_from: date, date_to: date) -> ActivitySnapshot:
        self.requested = (date_from, date_to)
        if self.error:
            raise self.error
        return self.snapshot

    async def test_connection(self) -> ConnectionResult:
        return ConnectionResult(success=True, message="ok", details={"projectName": "Demo"})

    async def close(self) -> None:
        self.closed = True


@pytest.fixture
def config() -> Config:
    return Config.model_validate(
        {
            "source": {"kind": "github", "owner": "octo", "repo": "widgets"},
            "window": {"date_from": "2024-01-01", "date_to": "2024-12-31"},
        }
    )


class TestResolveWindow:
    def test_defaults_to_last_year(self) -> None:
        assert resolve_window(WindowConfig(), today=date(2025, 6, 30)) == (
            date(2024, 6, 30),
            date(2025, 6, 30),
        )

    def test_start_relative_to_explicit_end(self) -> None:
        window = WindowConfig(date_to=date(2024, 12, 31))
        assert resolve_window(window)[0] == date(2024, 1, 1)

    def test_explicit_bounds_kept(self) -> None:
        window = WindowConfig(date_from=date(2024, 3, 1), date_to=date(2024, 4, 1))
        assert resolve_window(window, today=date(2030, 1, 1)) == (date(2024, 3, 1), date(2024, 4, 1))


class TestCollectSummary:
    @pytest.mark.asyncio
    async def test_builds_summary(self, config: Config, sample_snapshot) -> None:
        source = FakeSource(sample_snapshot)

        summary = await collect_summary(config, source=source)

        assert source.requested == (date(2024, 1, 1), date(2024, 12, 31))
        assert source.closed
        assert summary.project_name == "octo/widgets"
        assert summary.date_range.start == "2024-01-01"
        assert summary.stats.total_commits == 7
        assert summary.stats.sprints_completed == 26

    @pytest.mark.asyncio
    async def test_source_closed_on_error(self, config: Config) -> None:
        source = FakeSource(error=SourceAuthError("denied"))

        with pytest.raises(SourceAuthError):
            await collect_summary(config, source=source)

        assert source.closed

    @pytest.mark.asyncio
    async def test_check_connection(self, config: Config) -> None:
        source = FakeSource()

        result = await check_connection(config, source=source)

        assert result.success
        assert source.closed


class TestCreateSource:
    def test_github(self, config: Config) -> None:
        source = create_source(config, token="ghp_" + "a" * 36)

        assert isinstance(source, GitHubSource)
        assert source.repo_path == "/repos/octo/widgets"

    def test_azure_devops(self) -> None:
        config = Config.model_validate(
            {"source": {"kind": "azure_devops", "organization": "contoso", "project": "Web"}}
        )

        source = create_source(config, token="pat")

        assert isinstance(source, AzureDevOpsSource)
        assert source._client.base_url == "https://dev.azure.com/contoso"

    def test_azure_devops_without_pat(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("AZURE_DEVOPS_PAT", raising=False)
        config = Config.model_validate(
            {"source": {"kind": "azure_devops", "organization": "contoso", "project": "Web"}}
        )

        with pytest.raises(SourceAuthError):
            create_source(config)
