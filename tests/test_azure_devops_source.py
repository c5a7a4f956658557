"""Tests for the Azure DevOps source adapter using respx."""

import asyncio
import json
from datetime import UTC, date, datetime

import httpx
import pytest
import respx

from project_wrapped.records import PullRequestStatus
from project_wrapped.sources.azure_devops import (
    AZURE_DEVOPS_URL,
    AzureDevOpsSource,
    commit_from_payload,
    pull_request_from_payload,
    wiql_query,
    work_item_from_payload,
)
from project_wrapped.sources.http import ApiClient, SourceAuthError, SourceNotFoundError

ORG_URL = f"{AZURE_DEVOPS_URL}/fabrikam"
API_URL = f"{ORG_URL}/Web/_apis"

REPOS = {"value": [{"id": "r1", "name": "frontend"}, {"id": "r2", "name": "backend"}]}

COMMIT_PAYLOAD = {
    "commitId": "abc123",
    "author": {"name": "Alice", "email": "alice@example.com", "date": "2024-03-15T09:12:00.1234567Z"},
    "comment": "Initial layout",
    "changeCounts": {"Add": 3, "Edit": 1, "Delete": 0},
}

PULL_PAYLOAD = {
    "pullRequestId": 11,
    "title": "Layout",
    "status": "completed",
    "createdBy": {"displayName": "Alice"},
    "creationDate": "2024-03-15T10:00:00Z",
    "closedDate": "2024-03-15T16:00:00Z",
    "reviewers": [{"displayName": "Bob", "vote": 10}],
}

WORK_ITEM_PAYLOAD = {
    "id": 101,
    "fields": {
        "System.Title": "Login fails",
        "System.WorkItemType": "Bug",
        "System.State": "Closed",
        "System.CreatedDate": "2024-02-01T08:00:00Z",
        "System.AssignedTo": {"displayName": "Bob"},
        "System.AreaPath": "Web\\Auth",
        "Microsoft.VSTS.Scheduling.StoryPoints": 3,
    },
}

THREADS = {
    "value": [
        {
            "comments": [
                {"commentType": "text", "author": {"displayName": "Bob"}},
                {"commentType": "system", "author": {"displayName": "Azure Pipelines"}},
                {"commentType": "text", "isDeleted": True, "author": {"displayName": "Bob"}},
            ]
        },
        {"isDeleted": True, "comments": [{"commentType": "text", "author": {"displayName": "Eve"}}]},
        {"comments": [{"commentType": "text", "author": {"displayName": "Alice"}}]},
    ]
}


@pytest.fixture
def source() -> AzureDevOpsSource:
    return AzureDevOpsSource("fabrikam", "Web", ApiClient(ORG_URL))


class TestPayloadMapping:
    def test_commit(self) -> None:
        commit = commit_from_payload(COMMIT_PAYLOAD)

        assert commit.author_name == "Alice"
        assert commit.timestamp == datetime(2024, 3, 15, 9, 12, 0, 123456, tzinfo=UTC)
        assert commit.file_changes.total == 4

    def test_commit_without_change_counts(self) -> None:
        payload = {k: v for k, v in COMMIT_PAYLOAD.items() if k != "changeCounts"}
        assert commit_from_payload(payload).file_changes is None

    def test_pull_request(self) -> None:
        pr = pull_request_from_payload(PULL_PAYLOAD)

        assert pr.status is PullRequestStatus.COMPLETED
        assert pr.merge_time_hours == 6.0
        assert pr.reviewers[0].name == "Bob"
        assert pr.reviewers[0].vote == 10

    def test_unknown_status_is_active(self) -> None:
        pr = pull_request_from_payload({**PULL_PAYLOAD, "status": "notSet"})
        assert pr.status is PullRequestStatus.ACTIVE

    def test_work_item(self) -> None:
        item = work_item_from_payload(WORK_ITEM_PAYLOAD)

        assert item.is_bug
        assert item.is_done
        assert item.module_name == "Auth"
        assert item.assignee == "Bob"
        assert item.points == 3

    def test_wiql_query_escapes_project(self) -> None:
        query = wiql_query("O'Brien", date(2024, 1, 1), date(2024, 12, 31))

        assert "[System.TeamProject] = 'O''Brien'" in query
        assert "[System.CreatedDate] >= '2024-01-01'" in query
        assert "[System.CreatedDate] <= '2024-12-31'" in query


class TestAzureDevOpsFetch:
    """Tests for fetching a full snapshot."""

    @pytest.mark.asyncio
    @respx.mock
    async def test_fetch_snapshot(self) -> None:
        source = AzureDevOpsSource("fabrikam", "Web", ApiClient(ORG_URL, max_retries=0))
        respx.get(f"{API_URL}/git/repositories").mock(return_value=httpx.Response(200, json=REPOS))
        commits_route = respx.get(f"{API_URL}/git/repositories/r1/commits").mock(
            return_value=httpx.Response(200, json={"value": [COMMIT_PAYLOAD]})
        )
        # One failing repository does not stop the collection
        respx.get(f"{API_URL}/git/repositories/r2/commits").mock(return_value=httpx.Response(500))
        respx.get(f"{API_URL}/git/repositories/r1/pullrequests").mock(
            return_value=httpx.Response(200, json={"value": [PULL_PAYLOAD]})
        )
        respx.get(f"{API_URL}/git/repositories/r2/pullrequests").mock(
            return_value=httpx.Response(200, json={"value": []})
        )
        wiql_route = respx.post(f"{API_URL}/wit/wiql").mock(
            return_value=httpx.Response(200, json={"workItems": [{"id": 101}]})
        )
        respx.get(f"{API_URL}/wit/workitems").mock(
            return_value=httpx.Response(200, json={"value": [WORK_ITEM_PAYLOAD]})
        )
        respx.get(f"{API_URL}/git/repositories/r1/pullRequests/11/threads").mock(
            return_value=httpx.Response(200, json=THREADS)
        )

        snapshot = await source.fetch(date(2024, 1, 1), date(2024, 12, 31))
        await source.close()

        assert [c.sha for c in snapshot.commits] == ["abc123"]
        assert [pr.id for pr in snapshot.pull_requests] == [11]
        assert [w.id for w in snapshot.work_items] == [101]
        assert snapshot.comment_counts == {"Bob": 1, "Alice": 1}
        assert snapshot.repository.repositories == 2

        params = commits_route.calls.last.request.url.params
        assert params["searchCriteria.fromDate"] == "2024-01-01"
        assert params["api-version"] == "7.0"
        body = json.loads(wiql_route.calls.last.request.content)
        assert "[System.TeamProject] = 'Web'" in body["query"]

    @pytest.mark.asyncio
    @respx.mock
    async def test_repository_cap(self) -> None:
        respx.get(f"{API_URL}/git/repositories").mock(return_value=httpx.Response(200, json=REPOS))
        source = AzureDevOpsSource("fabrikam", "Web", ApiClient(ORG_URL), max_repositories=1)

        repos = await source.fetch_repositories()

        assert [r["name"] for r in repos] == ["frontend"]

    @pytest.mark.asyncio
    @respx.mock
    async def test_work_item_batches(self, source: AzureDevOpsSource) -> None:
        respx.post(f"{API_URL}/wit/wiql").mock(
            return_value=httpx.Response(
                200, json={"workItems": [{"id": i} for i in range(1, 251)]}
            )
        )
        details_route = respx.get(f"{API_URL}/wit/workitems").mock(
            return_value=httpx.Response(200, json={"value": [WORK_ITEM_PAYLOAD]})
        )

        items = await source.fetch_work_items(date(2024, 1, 1), date(2024, 12, 31))

        assert details_route.call_count == 2
        assert len(items) == 2
        batch_sizes = sorted(
            len(call.request.url.params["ids"].split(",")) for call in details_route.calls
        )
        assert batch_sizes == [50, 200]

    @pytest.mark.asyncio
    @respx.mock
    async def test_unauthorized_repository_listing(self, source: AzureDevOpsSource) -> None:
        respx.get(f"{API_URL}/git/repositories").mock(return_value=httpx.Response(401))

        with pytest.raises(SourceAuthError, match="Personal Access Token"):
            await source.fetch(date(2024, 1, 1), date(2024, 12, 31))

    @pytest.mark.asyncio
    @respx.mock
    async def test_wiql_failure_is_fatal(self, source: AzureDevOpsSource) -> None:
        respx.post(f"{API_URL}/wit/wiql").mock(return_value=httpx.Response(404))

        with pytest.raises(SourceNotFoundError, match="fabrikam"):
            await source.fetch_work_items(date(2024, 1, 1), date(2024, 12, 31))

    @pytest.mark.asyncio
    @respx.mock
    async def test_wiql_failure_cancels_repository_requests(
        self, source: AzureDevOpsSource
    ) -> None:
        started = {"commits": asyncio.Event(), "pulls": asyncio.Event()}
        cancelled: list[str] = []

        def slow(key: str):
            async def handler(request: httpx.Request) -> httpx.Response:
                started[key].set()
                try:
                    await asyncio.sleep(30)
                except asyncio.CancelledError:
                    cancelled.append(key)
                    raise
                return httpx.Response(200, json={"value": []})

            return handler

        async def rejected(request: httpx.Request) -> httpx.Response:
            for event in started.values():
                await event.wait()
            return httpx.Response(401)

        respx.get(f"{API_URL}/git/repositories").mock(return_value=httpx.Response(200, json=REPOS))
        respx.get(f"{API_URL}/git/repositories/r1/commits").mock(side_effect=slow("commits"))
        respx.get(f"{API_URL}/git/repositories/r2/commits").mock(return_value=httpx.Response(500))
        respx.get(f"{API_URL}/git/repositories/r1/pullrequests").mock(side_effect=slow("pulls"))
        respx.get(f"{API_URL}/git/repositories/r2/pullrequests").mock(
            return_value=httpx.Response(200, json={"value": []})
        )
        respx.post(f"{API_URL}/wit/wiql").mock(side_effect=rejected)

        with pytest.raises(SourceAuthError, match="Personal Access Token"):
            await source.fetch(date(2024, 1, 1), date(2024, 12, 31))
        await source.close()

        assert sorted(cancelled) == ["commits", "pulls"]
        assert asyncio.all_tasks() == {asyncio.current_task()}


class TestAzureDevOpsConnection:
    @pytest.mark.asyncio
    @respx.mock
    async def test_success(self, source: AzureDevOpsSource) -> None:
        respx.get(f"{ORG_URL}/_apis/projects/Web").mock(
            return_value=httpx.Response(200, json={"name": "Web"})
        )
        respx.get(f"{API_URL}/git/repositories").mock(return_value=httpx.Response(200, json=REPOS))

        result = await source.test_connection()

        assert result.success
        assert result.details == {
            "projectName": "Web",
            "repositoryCount": 2,
            "repositories": ["frontend", "backend"],
        }

    @pytest.mark.asyncio
    @respx.mock
    async def test_forbidden(self, source: AzureDevOpsSource) -> None:
        respx.get(f"{ORG_URL}/_apis/projects/Web").mock(return_value=httpx.Response(403))

        result = await source.test_connection()

        assert not result.success
        assert result.message.startswith("Access denied")
