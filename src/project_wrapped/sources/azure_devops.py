"""Azure DevOps source adapter.

Fetches commits and pull requests of the project's repositories, work items
through a WIQL query, and comment counts from pull request threads. Repository
listing and the WIQL query are mandatory; per-repository, per-batch and
per-thread requests are best effort and only log a warning when they fail.
"""

import asyncio
import logging
from collections import Counter
from collections.abc import Awaitable, Callable
from datetime import date
from typing import Any, TypeVar

from project_wrapped.records import (
    ActivitySnapshot,
    Commit,
    FileChanges,
    PullRequest,
    PullRequestStatus,
    RepositoryStats,
    Reviewer,
    WorkItem,
)
from project_wrapped.sources.base import ConnectionResult, gather_all
from project_wrapped.sources.http import (
    ApiClient,
    SourceAuthError,
    SourceError,
    SourceHTTPError,
    SourceNotFoundError,
)
from project_wrapped.sources.normalize import display_name, normalize_timestamp

logger = logging.getLogger(__name__)

T = TypeVar("T")

AZURE_DEVOPS_URL = "https://dev.azure.com"
API_VERSION = "7.0"
COMMIT_PAGE_SIZE = 1000
PULL_REQUEST_PAGE_SIZE = 500
MAX_WORK_ITEMS = 500
WORK_ITEM_BATCH_SIZE = 200

STATUS_MAP = {
    "active": PullRequestStatus.ACTIVE,
    "completed": PullRequestStatus.COMPLETED,
    "abandoned": PullRequestStatus.ABANDONED,
}


def commit_from_payload(payload: dict[str, Any]) -> Commit | None:
    author = payload.get("author") or {}
    timestamp = normalize_timestamp(author.get("date"))
    if timestamp is None:
        logger.debug("Skipping commit %s without author date", payload.get("commitId"))
        return None

    file_changes = None
    counts = payload.get("changeCounts")
    if counts:
        file_changes = FileChanges(
            added=counts.get("Add", 0),
            edited=counts.get("Edit", 0),
            deleted=counts.get("Delete", 0),
        )

    return Commit(
        sha=payload.get("commitId", ""),
        author_name=author.get("name") or "Unknown",
        author_email=author.get("email", ""),
        timestamp=timestamp,
        message=payload.get("comment") or "",
        file_changes=file_changes,
    )


def pull_request_from_payload(payload: dict[str, Any]) -> PullRequest | None:
    created_at = normalize_timestamp(payload.get("creationDate"))
    if created_at is None:
        return None

    reviewers = tuple(
        Reviewer(name=r["displayName"], vote=r.get("vote", 0))
        for r in payload.get("reviewers") or []
        if r.get("displayName")
    )
    return PullRequest(
        id=payload.get("pullRequestId", 0),
        title=payload.get("title", ""),
        status=STATUS_MAP.get(str(payload.get("status", "")).lower(), PullRequestStatus.ACTIVE),
        author_name=display_name(payload.get("createdBy"), "displayName") or "Unknown",
        created_at=created_at,
        closed_at=normalize_timestamp(payload.get("closedDate")),
        reviewers=reviewers,
    )


def work_item_from_payload(payload: dict[str, Any]) -> WorkItem | None:
    fields = payload.get("fields") or {}
    created_at = normalize_timestamp(fields.get("System.CreatedDate"))
    if created_at is None:
        return None

    return WorkItem(
        id=payload.get("id", 0),
        title=fields.get("System.Title", ""),
        type=fields.get("System.WorkItemType", ""),
        state=fields.get("System.State", ""),
        created_at=created_at,
        assignee=display_name(fields.get("System.AssignedTo"), "displayName"),
        story_points=fields.get("Microsoft.VSTS.Scheduling.StoryPoints"),
        area_path=fields.get("System.AreaPath"),
    )


def wiql_query(project: str, date_from: date, date_to: date) -> str:
    """Work items of the project created inside the period, newest first."""
    escaped = project.replace("'", "''")
    return (
        "SELECT [System.Id] FROM workitems "
        f"WHERE [System.TeamProject] = '{escaped}' "
        f"AND [System.CreatedDate] >= '{date_from.isoformat()}' "
        f"AND [System.CreatedDate] <= '{date_to.isoformat()}' "
        "ORDER BY [System.CreatedDate] DESC"
    )


class AzureDevOpsSource:
    """Activity source for an Azure DevOps project."""

    def __init__(
        self,
        organization: str,
        project: str,
        client: ApiClient,
        max_repositories: int = 10,
        max_concurrency: int = 4,
    ) -> None:
        self.organization = organization
        self.project = project
        self._client = client
        self._max_repositories = max_repositories
        self._semaphore = asyncio.Semaphore(max_concurrency)

    def _raise_for_status(self, status_code: int, path: str) -> None:
        if status_code == 401:
            raise SourceAuthError(
                "Authentication failed. Please check your Personal Access Token has the "
                "correct permissions (Code: Read, Work Items: Read)."
            )
        if status_code == 403:
            raise SourceAuthError(
                "Access denied. Your PAT may not have sufficient permissions. "
                "Required: Code (Read), Work Items (Read)."
            )
        if status_code == 404:
            raise SourceNotFoundError(
                f"Resource not found. Please verify your organization '{self.organization}' "
                f"and project '{self.project}' names are correct."
            )
        if not 200 <= status_code < 300:
            raise SourceHTTPError(
                f"Azure DevOps API error ({status_code}) for {path}",
                status_code=status_code,
            )

    async def _request(
        self,
        method: str,
        path: str,
        params: dict[str, Any] | None = None,
        json: Any = None,
    ) -> Any:
        params = {**(params or {}), "api-version": API_VERSION}
        async with self._semaphore:
            response = await self._client.request(method, path, params=params, json=json)
        self._raise_for_status(response.status_code, path)
        return response.data or {}

    async def _best_effort(self, label: str, call: Callable[[], Awaitable[list[T]]]) -> list[T]:
        try:
            return await call()
        except SourceError as e:
            logger.warning("Failed to fetch %s: %s", label, e)
            return []

    @property
    def _project_path(self) -> str:
        return f"/{self.project}/_apis"

    async def fetch_repositories(self) -> list[dict[str, Any]]:
        """Repositories of the project, capped at the configured maximum."""
        logger.info("Fetching repositories for %s/%s", self.organization, self.project)
        data = await self._request("GET", f"{self._project_path}/git/repositories")
        repos = data.get("value", [])
        logger.info("Found %d repositories", len(repos))
        return repos[: self._max_repositories]

    async def fetch_commits(
        self, repo: dict[str, Any], date_from: date, date_to: date
    ) -> list[Commit]:
        data = await self._request(
            "GET",
            f"{self._project_path}/git/repositories/{repo['id']}/commits",
            params={
                "searchCriteria.fromDate": date_from.isoformat(),
                "searchCriteria.toDate": date_to.isoformat(),
                "$top": COMMIT_PAGE_SIZE,
            },
        )
        commits = [c for c in map(commit_from_payload, data.get("value", [])) if c is not None]
        logger.info("Found %d commits in %s", len(commits), repo.get("name"))
        return commits

    async def fetch_pull_requests(self, repo: dict[str, Any]) -> list[tuple[str, PullRequest]]:
        """Pull requests of one repository, paired with the repository id."""
        data = await self._request(
            "GET",
            f"{self._project_path}/git/repositories/{repo['id']}/pullrequests",
            params={"searchCriteria.status": "all", "$top": PULL_REQUEST_PAGE_SIZE},
        )
        pulls = [p for p in map(pull_request_from_payload, data.get("value", [])) if p is not None]
        logger.info("Found %d pull requests in %s", len(pulls), repo.get("name"))
        return [(repo["id"], pr) for pr in pulls]

    async def fetch_work_items(self, date_from: date, date_to: date) -> list[WorkItem]:
        """Run the WIQL query, then fetch item details in batches."""
        logger.info("Querying work items")
        result = await self._request(
            "POST",
            f"{self._project_path}/wit/wiql",
            json={"query": wiql_query(self.project, date_from, date_to)},
        )
        ids = [wi["id"] for wi in result.get("workItems", [])[:MAX_WORK_ITEMS]]
        logger.info("Found %d work items", len(ids))

        batches = [
            ids[i : i + WORK_ITEM_BATCH_SIZE] for i in range(0, len(ids), WORK_ITEM_BATCH_SIZE)
        ]

        async def fetch_batch(batch: list[int]) -> list[WorkItem]:
            data = await self._request(
                "GET",
                f"{self._project_path}/wit/workitems",
                params={"ids": ",".join(str(i) for i in batch)},
            )
            return [w for w in map(work_item_from_payload, data.get("value", [])) if w is not None]

        results = await gather_all(
            *(
                self._best_effort(
                    f"work item batch {n}/{len(batches)}",
                    lambda batch=batch: fetch_batch(batch),
                )
                for n, batch in enumerate(batches, 1)
            )
        )
        items = [item for batch_items in results for item in batch_items]
        logger.info("Fetched details for %d work items", len(items))
        return items

    async def fetch_thread_authors(self, repo_id: str, pr_id: int) -> list[str]:
        """Authors of the text comments in one pull request's threads."""
        data = await self._request(
            "GET",
            f"{self._project_path}/git/repositories/{repo_id}/pullRequests/{pr_id}/threads",
        )
        authors: list[str] = []
        for thread in data.get("value", []):
            if thread.get("isDeleted"):
                continue
            for comment in thread.get("comments", []):
                if comment.get("commentType") != "text" or comment.get("isDeleted"):
                    continue
                name = display_name(comment.get("author"), "displayName")
                if name:
                    authors.append(name)
        return authors

    async def fetch(self, date_from: date, date_to: date) -> ActivitySnapshot:
        """Fetch everything for the period."""
        logger.info(
            "Fetching Azure DevOps activity for %s/%s from %s to %s",
            self.organization,
            self.project,
            date_from,
            date_to,
        )
        repos = await self.fetch_repositories()

        commit_results, pr_results, work_items = await gather_all(
            gather_all(
                *(
                    self._best_effort(
                        f"commits for repository {repo.get('name')}",
                        lambda repo=repo: self.fetch_commits(repo, date_from, date_to),
                    )
                    for repo in repos
                )
            ),
            gather_all(
                *(
                    self._best_effort(
                        f"pull requests for repository {repo.get('name')}",
                        lambda repo=repo: self.fetch_pull_requests(repo),
                    )
                    for repo in repos
                )
            ),
            self.fetch_work_items(date_from, date_to),
        )

        commits = [c for repo_commits in commit_results for c in repo_commits]
        pr_pairs = [pair for repo_prs in pr_results for pair in repo_prs]

        thread_results = await gather_all(
            *(
                self._best_effort(
                    f"threads for pull request {pr.id}",
                    lambda repo_id=repo_id, pr=pr: self.fetch_thread_authors(repo_id, pr.id),
                )
                for repo_id, pr in pr_pairs
            )
        )
        comment_counts = Counter(name for authors in thread_results for name in authors)

        logger.info(
            "Fetched: %d commits, %d pull requests, %d work items",
            len(commits),
            len(pr_pairs),
            len(work_items),
        )
        return ActivitySnapshot(
            commits=tuple(commits),
            pull_requests=tuple(pr for _, pr in pr_pairs),
            work_items=tuple(work_items),
            comment_counts=dict(comment_counts),
            repository=RepositoryStats(repositories=len(repos)),
        )

    async def test_connection(self) -> ConnectionResult:
        """Fetch the project and its repository list."""
        logger.info("Testing connection to %s/%s", self.organization, self.project)
        try:
            project = await self._request("GET", f"/_apis/projects/{self.project}")
            repos = await self._request("GET", f"{self._project_path}/git/repositories")
        except SourceError as e:
            logger.error("Connection test failed: %s", e)
            return ConnectionResult(success=False, message=str(e))

        names = [r.get("name") for r in repos.get("value", [])]
        return ConnectionResult(
            success=True,
            message=f"Successfully connected to {self.project}",
            details={
                "projectName": project.get("name", self.project),
                "repositoryCount": len(names),
                "repositories": names,
            },
        )

    async def close(self) -> None:
        await self._client.close()
