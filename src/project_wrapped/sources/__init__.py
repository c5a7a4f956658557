"""Upstream platform adapters producing activity snapshots."""

from project_wrapped.config import Config
from project_wrapped.sources.auth import AzureDevOpsAuth, GitHubAuth
from project_wrapped.sources.azure_devops import AZURE_DEVOPS_URL, AzureDevOpsSource
from project_wrapped.sources.base import ActivitySource, ConnectionResult
from project_wrapped.sources.github import GITHUB_API_URL, GitHubSource
from project_wrapped.sources.http import (
    ApiClient,
    SourceAuthError,
    SourceError,
    SourceHTTPError,
    SourceNotFoundError,
)

__all__ = [
    "ActivitySource",
    "ConnectionResult",
    "SourceAuthError",
    "SourceError",
    "SourceHTTPError",
    "SourceNotFoundError",
    "create_source",
]


def create_source(config: Config, token: str | None = None) -> ActivitySource:
    """Build the adapter selected by the configuration.

    Args:
        config: Application configuration.
        token: Explicit access token, overriding the environment.

    Returns:
        Adapter ready to fetch.

    Raises:
        SourceAuthError: If required credentials are missing or malformed.
    """
    source = config.source
    http = config.http

    if source.kind == "github":
        gh_auth = GitHubAuth(token=token, token_env=source.default_token_env)
        client = ApiClient(
            GITHUB_API_URL,
            headers={
                "Accept": "application/vnd.github+json",
                "X-GitHub-Api-Version": "2022-11-28",
                **gh_auth.get_authorization_header(),
            },
            timeout=http.timeout,
            max_retries=http.max_retries,
        )
        return GitHubSource(
            owner=str(source.owner),
            repo=str(source.repo),
            client=client,
            max_concurrency=http.max_concurrency,
        )

    ado_auth = AzureDevOpsAuth(token=token, token_env=source.default_token_env)
    client = ApiClient(
        f"{AZURE_DEVOPS_URL}/{source.organization}",
        headers={"Content-Type": "application/json", **ado_auth.get_authorization_header()},
        timeout=http.timeout,
        max_retries=http.max_retries,
    )
    return AzureDevOpsSource(
        organization=str(source.organization),
        project=str(source.project),
        client=client,
        max_repositories=source.max_repositories,
        max_concurrency=http.max_concurrency,
    )
