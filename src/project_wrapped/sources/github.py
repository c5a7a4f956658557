"""GitHub source adapter.

Fetches repository info, commits, pull requests, issues and comments for one
repository and resolves them into activity records. Issues stand in for work
items: the first label that is not ``bug``/``enhancement`` becomes the module.
"""

import asyncio
import logging
from collections import Counter
from datetime import date
from typing import Any

from project_wrapped.records import (
    ActivitySnapshot,
    Commit,
    PullRequest,
    PullRequestStatus,
    RepositoryStats,
    Reviewer,
    WorkItem,
)
from project_wrapped.sources.base import ConnectionResult, gather_all
from project_wrapped.sources.http import (
    ApiClient,
    ApiResponse,
    SourceAuthError,
    SourceError,
    SourceHTTPError,
    SourceNotFoundError,
)
from project_wrapped.sources.normalize import display_name, label_names, normalize_timestamp

logger = logging.getLogger(__name__)

GITHUB_API_URL = "https://api.github.com"
PER_PAGE = 100
MAX_COMMIT_PAGES = 10
MAX_LIST_PAGES = 5
CLOSED_ISSUE_STORY_POINTS = 2.0
NON_MODULE_LABELS = frozenset({"bug", "enhancement"})


def commit_from_payload(payload: dict[str, Any]) -> Commit | None:
    """Build a Commit; the login wins over the git author name."""
    git_author = payload.get("commit", {}).get("author") or {}
    timestamp = normalize_timestamp(git_author.get("date"))
    if timestamp is None:
        logger.debug("Skipping commit %s without author date", payload.get("sha"))
        return None

    author = display_name(payload.get("author"), "login") or git_author.get("name") or "Unknown"
    return Commit(
        sha=payload.get("sha", ""),
        author_name=author,
        author_email=git_author.get("email", ""),
        timestamp=timestamp,
        message=payload.get("commit", {}).get("message") or "",
    )


def pull_request_from_payload(payload: dict[str, Any]) -> PullRequest | None:
    created_at = normalize_timestamp(payload.get("created_at"))
    if created_at is None:
        return None

    if payload.get("merged_at"):
        status = PullRequestStatus.COMPLETED
        closed_at = normalize_timestamp(payload["merged_at"])
    elif payload.get("state") == "closed":
        status = PullRequestStatus.ABANDONED
        closed_at = normalize_timestamp(payload.get("closed_at"))
    else:
        status = PullRequestStatus.ACTIVE
        closed_at = None

    reviewers = tuple(
        Reviewer(name=r["login"])
        for r in payload.get("requested_reviewers") or []
        if r.get("login")
    )
    return PullRequest(
        id=payload.get("number", 0),
        title=payload.get("title", ""),
        status=status,
        author_name=display_name(payload.get("user"), "login") or "Unknown",
        created_at=created_at,
        closed_at=closed_at,
        reviewers=reviewers,
    )


def work_item_from_issue(payload: dict[str, Any]) -> WorkItem | None:
    """Map an issue onto a work item; pull requests listed as issues are skipped."""
    if "pull_request" in payload:
        return None
    created_at = normalize_timestamp(payload.get("created_at"))
    if created_at is None:
        return None

    labels = label_names(payload.get("labels"))
    is_bug = any("bug" in label.lower() for label in labels)
    closed = payload.get("state") == "closed"
    area = next((label for label in labels if label.lower() not in NON_MODULE_LABELS), None)

    return WorkItem(
        id=payload.get("number", 0),
        title=payload.get("title", ""),
        type="Bug" if is_bug else "Issue",
        state="Done" if closed else "Open",
        created_at=created_at,
        assignee=display_name(payload.get("assignee"), "login"),
        story_points=CLOSED_ISSUE_STORY_POINTS if closed else None,
        area_path=area,
    )


class GitHubSource:
    """Activity source for a single GitHub repository."""

    def __init__(
        self,
        owner: str,
        repo: str,
        client: ApiClient,
        max_concurrency: int = 4,
    ) -> None:
        self.owner = owner
        self.repo = repo
        self._client = client
        self._semaphore = asyncio.Semaphore(max_concurrency)

    @property
    def repo_path(self) -> str:
        return f"/repos/{self.owner}/{self.repo}"

    async def _get(self, path: str, params: dict[str, Any] | None = None) -> ApiResponse:
        async with self._semaphore:
            response = await self._client.get(path, params=params)

        if response.status_code == 401:
            raise SourceAuthError("GitHub rejected the token. Check GITHUB_TOKEN.")
        if response.status_code == 403:
            raise SourceAuthError(
                "Access denied by GitHub. The token may lack repository access "
                "or the rate limit is exhausted."
            )
        if response.status_code == 404:
            raise SourceNotFoundError(f"Repository {self.owner}/{self.repo} not found")
        if not response.is_success:
            raise SourceHTTPError(
                f"GET {path} failed with status {response.status_code}",
                status_code=response.status_code,
            )
        return response

    async def _paginate(
        self,
        path: str,
        params: dict[str, Any],
        max_pages: int,
    ) -> list[dict[str, Any]]:
        """Collect up to ``max_pages`` pages, stopping at the first short page."""
        items: list[dict[str, Any]] = []
        for page in range(1, max_pages + 1):
            response = await self._get(path, {**params, "per_page": PER_PAGE, "page": page})
            batch = response.data if isinstance(response.data, list) else []
            items.extend(batch)
            if len(batch) < PER_PAGE:
                break
        return items

    async def fetch_repository(self) -> RepositoryStats:
        """Repository counters, zeros when they cannot be fetched."""
        try:
            response = await self._get(self.repo_path)
        except SourceError as e:
            logger.warning("Failed to fetch repository info for %s: %s", self.repo_path, e)
            return RepositoryStats(repositories=1)

        data = response.data or {}
        return RepositoryStats(
            repositories=1,
            stars=data.get("stargazers_count", 0),
            forks=data.get("forks_count", 0),
            open_issues=data.get("open_issues_count", 0),
        )

    async def fetch_commits(self, date_from: date, date_to: date) -> list[Commit]:
        logger.info("Fetching commits for %s/%s", self.owner, self.repo)
        payloads = await self._paginate(
            f"{self.repo_path}/commits",
            {
                "since": f"{date_from.isoformat()}T00:00:00Z",
                "until": f"{date_to.isoformat()}T23:59:59Z",
            },
            MAX_COMMIT_PAGES,
        )
        commits = [c for c in map(commit_from_payload, payloads) if c is not None]
        logger.info("Fetched %d commits", len(commits))
        return commits

    async def fetch_pull_requests(self) -> list[PullRequest]:
        logger.info("Fetching pull requests for %s/%s", self.owner, self.repo)
        payloads = await self._paginate(f"{self.repo_path}/pulls", {"state": "all"}, MAX_LIST_PAGES)
        pulls = [p for p in map(pull_request_from_payload, payloads) if p is not None]
        logger.info("Fetched %d pull requests", len(pulls))
        return pulls

    async def fetch_work_items(self) -> list[WorkItem]:
        logger.info("Fetching issues for %s/%s", self.owner, self.repo)
        payloads = await self._paginate(f"{self.repo_path}/issues", {"state": "all"}, MAX_LIST_PAGES)
        items = [w for w in map(work_item_from_issue, payloads) if w is not None]
        logger.info("Fetched %d issues", len(items))
        return items

    async def fetch_comment_counts(self, date_from: date) -> dict[str, int]:
        """Review and issue comments per login since the start of the period.

        Best effort: a failing endpoint contributes nothing.
        """
        counts: Counter[str] = Counter()
        since = f"{date_from.isoformat()}T00:00:00Z"
        for endpoint in ("pulls/comments", "issues/comments"):
            try:
                payloads = await self._paginate(
                    f"{self.repo_path}/{endpoint}", {"since": since}, MAX_LIST_PAGES
                )
            except SourceError as e:
                logger.warning("Failed to fetch %s for %s: %s", endpoint, self.repo_path, e)
                continue
            for payload in payloads:
                login = display_name(payload.get("user"), "login")
                if login:
                    counts[login] += 1
        return dict(counts)

    async def fetch(self, date_from: date, date_to: date) -> ActivitySnapshot:
        """Fetch everything for the period concurrently."""
        logger.info(
            "Fetching GitHub activity for %s/%s from %s to %s",
            self.owner,
            self.repo,
            date_from,
            date_to,
        )
        repository, commits, pulls, items, comments = await gather_all(
            self.fetch_repository(),
            self.fetch_commits(date_from, date_to),
            self.fetch_pull_requests(),
            self.fetch_work_items(),
            self.fetch_comment_counts(date_from),
        )
        return ActivitySnapshot(
            commits=tuple(commits),
            pull_requests=tuple(pulls),
            work_items=tuple(items),
            comment_counts=comments,
            repository=repository,
        )

    async def test_connection(self) -> ConnectionResult:
        """Check that the repository is reachable with the current credentials."""
        try:
            response = await self._get(self.repo_path)
        except SourceError as e:
            logger.error("GitHub connection test failed: %s", e)
            return ConnectionResult(success=False, message=str(e))

        data = response.data or {}
        return ConnectionResult(
            success=True,
            message=f"Successfully connected to {self.owner}/{self.repo}",
            details={
                "projectName": data.get("full_name", f"{self.owner}/{self.repo}"),
                "private": data.get("private", False),
                "defaultBranch": data.get("default_branch"),
            },
        )

    async def close(self) -> None:
        await self._client.close()
