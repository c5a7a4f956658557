"""Credential loading for the source platforms.

GitHub tokens come from an explicit value, an environment variable or the
GitHub CLI, and are optional for public repositories. Azure DevOps needs a
personal access token, sent with Basic authentication.
"""

import base64
import logging
import os
import re
import subprocess

from project_wrapped.sources.http import SourceAuthError

logger = logging.getLogger(__name__)

GH_CLI_TIMEOUT_SECONDS = 5


def _get_gh_cli_token() -> str | None:
    """Token printed by ``gh auth token``, None when gh is missing or logged out."""
    try:
        completed = subprocess.run(
            ["gh", "auth", "token"],
            capture_output=True,
            text=True,
            timeout=GH_CLI_TIMEOUT_SECONDS,
            check=False,
        )
    except FileNotFoundError:
        logger.debug("gh CLI is not installed")
        return None
    except subprocess.TimeoutExpired:
        logger.debug("gh auth token did not answer within %ds", GH_CLI_TIMEOUT_SECONDS)
        return None

    if completed.returncode != 0:
        logger.debug("gh auth token exited with %d", completed.returncode)
        return None
    return completed.stdout.strip() or None


class GitHubAuth:
    """GitHub token holder.

    The token is taken from the first source that has one: the ``token``
    argument, the ``token_env`` environment variable, then the GitHub CLI.
    Without a token requests are anonymous, which only reaches public
    repositories and has a low rate limit.
    """

    TOKEN_PREFIXES = ("ghp_", "gho_", "ghu_", "ghs_", "github_pat_")
    CLASSIC_TOKEN = re.compile(r"^[a-f0-9]{40}$")
    MIN_PREFIXED_LENGTH = 20

    def __init__(
        self,
        token: str | None = None,
        token_env: str = "GITHUB_TOKEN",
        use_gh_cli: bool = True,
    ) -> None:
        """Resolve and check the token.

        Raises:
            SourceAuthError: If a token is found but is not a GitHub token.
        """
        self._token = self._resolve(token, token_env, use_gh_cli)
        if self._token is None:
            logger.warning("No GitHub token found, using anonymous requests")
        else:
            self._check_format(self._token)

    @staticmethod
    def _resolve(token: str | None, token_env: str, use_gh_cli: bool) -> str | None:
        if token:
            logger.info("Using GitHub token passed explicitly")
            return token
        from_env = os.environ.get(token_env)
        if from_env:
            logger.info("Using GitHub token from %s", token_env)
            return from_env
        if use_gh_cli:
            from_cli = _get_gh_cli_token()
            if from_cli:
                logger.info("Using GitHub token from gh CLI")
            return from_cli
        return None

    def _check_format(self, token: str) -> None:
        if token.startswith(self.TOKEN_PREFIXES):
            if len(token) < self.MIN_PREFIXED_LENGTH:
                raise SourceAuthError("Token appears too short to be valid")
            return
        if not self.CLASSIC_TOKEN.match(token):
            raise SourceAuthError(
                f"Invalid token format. Expected one of the prefixes {self.TOKEN_PREFIXES} "
                "or a 40-character hex classic token"
            )

    @property
    def token(self) -> str | None:
        return self._token

    def get_authorization_header(self) -> dict[str, str]:
        """Authorization header, empty for anonymous access."""
        if self._token is None:
            return {}
        return {"Authorization": f"Bearer {self._token}"}


class AzureDevOpsAuth:
    """Azure DevOps personal access token holder."""

    def __init__(self, token: str | None = None, token_env: str = "AZURE_DEVOPS_PAT") -> None:
        """Load the PAT.

        Raises:
            SourceAuthError: If no personal access token is available.
        """
        pat = (token or os.environ.get(token_env) or "").strip()
        if not pat:
            raise SourceAuthError(
                f"Personal Access Token is required. Set the {token_env} environment variable."
            )
        logger.info("Using Azure DevOps personal access token")
        self._token = pat

    @property
    def token(self) -> str:
        return self._token

    def get_authorization_header(self) -> dict[str, str]:
        """Basic credentials with an empty user name and the PAT as password."""
        encoded = base64.b64encode(f":{self._token}".encode()).decode()
        return {"Authorization": f"Basic {encoded}"}
