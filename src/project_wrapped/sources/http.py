"""Async HTTP client shared by the source adapters.

Wraps httpx.AsyncClient with retry and exponential backoff on server
errors, timeouts and network failures, and honours ``Retry-After`` on 429.
Authentication and not-found statuses are returned to the caller.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Any

import httpx

from project_wrapped import __version__

logger = logging.getLogger(__name__)


class SourceError(Exception):
    """Base exception for upstream source failures."""


class SourceHTTPError(SourceError):
    """Raised when a request fails after retries or with an unexpected status."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        self.status_code = status_code
        super().__init__(message)


class SourceAuthError(SourceError):
    """Raised when the source rejects or lacks credentials."""


class SourceNotFoundError(SourceError):
    """Raised when the configured organization, project or repository does not exist."""


@dataclass
class ApiResponse:
    """Decoded response body plus status and headers."""

    status_code: int
    data: Any
    headers: httpx.Headers
    url: str = ""

    @property
    def is_success(self) -> bool:
        return 200 <= self.status_code < 300


def _retry_after_seconds(response: httpx.Response) -> int | None:
    value = response.headers.get("retry-after", "")
    return int(value) if value.isdigit() else None


class ApiClient:
    """Async HTTP client with retry logic.

    Statuses 401, 403 and 404 are never retried and never raised here;
    callers decide whether they are fatal.
    """

    DEFAULT_TIMEOUT = 30.0
    DEFAULT_MAX_RETRIES = 3
    INITIAL_BACKOFF = 1.0
    BACKOFF_MULTIPLIER = 2.0
    PASSTHROUGH_STATUSES = (401, 403, 404)

    def __init__(
        self,
        base_url: str,
        headers: dict[str, str] | None = None,
        timeout: float = DEFAULT_TIMEOUT,
        max_retries: int = DEFAULT_MAX_RETRIES,
    ) -> None:
        """Initialize the client.

        Args:
            base_url: Base URL every request path is resolved against.
            headers: Extra headers, typically authentication.
            timeout: Request timeout in seconds.
            max_retries: Retries allowed after the first attempt.
        """
        self._base_url = base_url.rstrip("/")
        self._headers = {
            "Accept": "application/json",
            "User-Agent": f"project-wrapped/{__version__}",
            **(headers or {}),
        }
        self._timeout = timeout
        self._max_retries = max_retries
        self._client: httpx.AsyncClient | None = None

    @property
    def base_url(self) -> str:
        return self._base_url

    async def _ensure_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self._base_url,
                timeout=self._timeout,
                headers=self._headers,
                follow_redirects=True,
            )
        return self._client

    async def _backoff(self, attempt: int, method: str, path: str) -> None:
        """Sleep before the next attempt, or give up when retries are spent.

        Raises:
            SourceHTTPError: If max retries exceeded.
        """
        if attempt >= self._max_retries:
            raise SourceHTTPError(f"Max retries ({self._max_retries}) exceeded for {method} {path}")

        wait_seconds = self.INITIAL_BACKOFF * (self.BACKOFF_MULTIPLIER**attempt)
        logger.debug(
            "Retry %d/%d for %s %s after %.1fs",
            attempt + 1,
            self._max_retries,
            method,
            path,
            wait_seconds,
        )
        await asyncio.sleep(wait_seconds)

    def _raise_for_client_error(self, response: httpx.Response, method: str, path: str) -> None:
        status = response.status_code
        if 400 <= status < 500 and status not in self.PASSTHROUGH_STATUSES:
            logger.error("Client error %d for %s %s: %s", status, method, path, response.text)
            raise SourceHTTPError(f"{method} {path} failed with status {status}", status_code=status)

    async def _send(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        """Send a request, retrying transient failures.

        Raises:
            SourceHTTPError: On failure after retries or on an unexpected
                client error.
        """
        client = await self._ensure_client()
        attempt = 0

        while True:
            logger.debug("%s %s (attempt %d)", method, path, attempt + 1)
            try:
                response = await client.request(method, path, **kwargs)
            except httpx.TimeoutException as e:
                logger.warning("Timeout for %s %s", method, path)
                if attempt >= self._max_retries:
                    raise SourceHTTPError(f"Request timeout: {e}") from e
            except httpx.NetworkError as e:
                logger.warning("Network error for %s %s: %s", method, path, e)
                if attempt >= self._max_retries:
                    raise SourceHTTPError(f"Network error: {e}") from e
            else:
                if response.status_code == 429:
                    delay = _retry_after_seconds(response)
                    if delay is not None and attempt < self._max_retries:
                        logger.warning("Rate limited. Retry after %d seconds", delay)
                        await asyncio.sleep(delay)
                        attempt += 1
                        continue
                elif response.status_code >= 500:
                    logger.warning(
                        "Server error %d for %s %s", response.status_code, method, path
                    )
                else:
                    self._raise_for_client_error(response, method, path)
                    return response

            await self._backoff(attempt, method, path)
            attempt += 1

    async def request(self, method: str, path: str, **kwargs: Any) -> ApiResponse:
        """Make an HTTP request.

        Args:
            method: HTTP method (GET, POST, etc.).
            path: API path relative to the base URL.
            **kwargs: Additional arguments passed to httpx (params, json, etc.).

        Returns:
            ApiResponse with the JSON body, or the raw text when it is not JSON.

        Raises:
            SourceHTTPError: On request failure.
        """
        response = await self._send(method, path, **kwargs)

        data = None
        if response.content:
            try:
                data = response.json()
            except ValueError as e:
                logger.warning("Failed to parse JSON response from %s: %s", path, e)
                data = response.text

        return ApiResponse(
            status_code=response.status_code,
            data=data,
            headers=response.headers,
            url=str(response.url),
        )

    async def get(self, path: str, **kwargs: Any) -> ApiResponse:
        return await self.request("GET", path, **kwargs)

    async def close(self) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> "ApiClient":
        await self._ensure_client()
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()
