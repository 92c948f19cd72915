"""Async GitHub REST client used by the kernel's event handlers.

Covers the calls the plugin kernel needs:
- Exchanging a GitHub App JWT for an installation access token
- Reading repository files (the plugin configuration)
- Looking up a repository's default branch
- Commenting on issues
- Dispatching plugin workflows

Transient failures (408/429/5xx, timeouts, transport errors) are retried
with exponential backoff and full jitter.
"""

import asyncio
import base64
import logging
import random
from typing import Any, Dict, Optional

import httpx


logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://api.github.com"


class GitHubAPIError(Exception):
    """Raised when a GitHub API request fails.

    Attributes:
        message: Human-readable error description.
        status_code: HTTP status code from the response.
        response_body: Response body from GitHub API.
        request_url: The URL that was requested.
    """

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        response_body: Optional[str] = None,
        request_url: Optional[str] = None,
    ):
        self.message = message
        self.status_code = status_code
        self.response_body = response_body
        self.request_url = request_url
        super().__init__(message)

    @property
    def status(self) -> Optional[int]:
        """Alias used when the error is surfaced as an HTTP response."""
        return self.status_code


class GitHubClient:
    """Async GitHub API client with retry logic.

    Attributes:
        token: Bearer token (installation token, or app JWT for app routes).
        base_url: Base URL for GitHub API.
        max_retries: Maximum number of retry attempts for transient failures.
        base_delay: Base delay in seconds for exponential backoff.
        max_delay: Maximum delay in seconds between retries.
        timeout: Request timeout in seconds.

    Example:
        >>> async with GitHubClient(token="ghs_xxx") as client:
        ...     await client.create_comment("owner", "repo", 123, "Hello!")
    """

    RETRYABLE_STATUS_CODES = {408, 429, 500, 502, 503, 504}

    def __init__(
        self,
        token: str,
        base_url: str = DEFAULT_BASE_URL,
        max_retries: int = 3,
        base_delay: float = 1.0,
        max_delay: float = 30.0,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.token = token
        self.base_url = base_url.rstrip("/")
        self.max_retries = max_retries
        self.base_delay = base_delay
        self.max_delay = max_delay
        self.timeout = timeout
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    @property
    def client(self) -> httpx.AsyncClient:
        """The underlying httpx client, created on first use."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                headers=self._default_headers(),
                timeout=self.timeout,
                transport=self._transport,
            )
        return self._client

    def _default_headers(self) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {self.token}",
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": "2022-11-28",
            "User-Agent": "plugin-kernel/1.0",
        }

    async def close(self) -> None:
        """Close the HTTP client and release resources."""
        if self._client is not None and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> "GitHubClient":
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()

    def _calculate_backoff(self, attempt: int) -> float:
        """Exponential backoff with full jitter for the 0-indexed attempt."""
        capped_delay = min(self.base_delay * (2 ** attempt), self.max_delay)
        return random.uniform(0, capped_delay)

    async def _request(
        self,
        method: str,
        path: str,
        json_data: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> httpx.Response:
        """Make an HTTP request, retrying transient failures.

        Raises:
            GitHubAPIError: If GitHub answers with an error status, or the
                request fails after all retries.
        """
        last_exception: Optional[Exception] = None

        for attempt in range(self.max_retries + 1):
            try:
                response = await self.client.request(
                    method=method,
                    url=path,
                    json=json_data,
                    headers=headers,
                )
            except httpx.TransportError as e:
                last_exception = e
                if attempt < self.max_retries:
                    delay = self._calculate_backoff(attempt)
                    logger.warning(
                        "Request error, retrying",
                        extra={
                            "error": str(e),
                            "attempt": attempt + 1,
                            "max_retries": self.max_retries,
                            "delay": delay,
                            "path": path,
                        },
                    )
                    await asyncio.sleep(delay)
                continue

            if (
                response.status_code in self.RETRYABLE_STATUS_CODES
                and attempt < self.max_retries
            ):
                delay = self._calculate_backoff(attempt)
                logger.warning(
                    "Retryable error from GitHub API",
                    extra={
                        "status_code": response.status_code,
                        "attempt": attempt + 1,
                        "max_retries": self.max_retries,
                        "delay": delay,
                        "path": path,
                    },
                )
                await asyncio.sleep(delay)
                continue

            if response.status_code >= 400:
                error_body = response.text
                logger.error(
                    "GitHub API error",
                    extra={
                        "status_code": response.status_code,
                        "path": path,
                        "method": method,
                        "response_body": error_body[:500],
                    },
                )
                raise GitHubAPIError(
                    message=f"GitHub API error: {response.status_code}",
                    status_code=response.status_code,
                    response_body=error_body,
                    request_url=str(response.url),
                )

            return response

        logger.error(
            "GitHub API request failed after all retries",
            extra={
                "path": path,
                "method": method,
                "max_retries": self.max_retries,
                "last_error": str(last_exception),
            },
        )
        raise GitHubAPIError(
            message=f"Request failed after {self.max_retries} retries: {last_exception}",
            request_url=f"{self.base_url}{path}",
        )

    async def create_installation_token(self, installation_id: int) -> str:
        """Exchange the app JWT held by this client for an installation token.

        The client must have been created with a GitHub App JWT as token.
        """
        response = await self._request(
            method="POST",
            path=f"/app/installations/{installation_id}/access_tokens",
        )
        token = response.json().get("token")
        if not isinstance(token, str) or not token:
            raise GitHubAPIError(
                message="GitHub returned no installation token",
                status_code=response.status_code,
                response_body=response.text,
            )
        logger.info(
            "Created installation access token",
            extra={"installation_id": installation_id},
        )
        return token

    async def get_file_contents(
        self,
        owner: str,
        repo: str,
        path: str,
        ref: Optional[str] = None,
    ) -> Optional[str]:
        """Read a text file from a repository.

        Returns:
            The decoded file contents, or None if the file does not exist.
        """
        url = f"/repos/{owner}/{repo}/contents/{path}"
        if ref:
            url = f"{url}?ref={ref}"

        try:
            response = await self._request(method="GET", path=url)
        except GitHubAPIError as e:
            if e.status_code == 404:
                logger.debug(
                    "File not found in repository",
                    extra={"owner": owner, "repo": repo, "path": path},
                )
                return None
            raise

        data = response.json()
        content = data.get("content") if isinstance(data, dict) else None
        if not isinstance(content, str):
            return None
        return base64.b64decode(content).decode("utf-8")

    async def get_default_branch(self, owner: str, repo: str) -> str:
        response = await self._request(method="GET", path=f"/repos/{owner}/{repo}")
        return response.json()["default_branch"]

    async def create_comment(
        self,
        owner: str,
        repo: str,
        issue_number: int,
        body: str,
    ) -> Dict[str, Any]:
        """Create a comment on an issue or pull request.

        Returns:
            The created comment data from GitHub API.
        """
        logger.info(
            "Creating comment on issue",
            extra={
                "owner": owner,
                "repo": repo,
                "issue_number": issue_number,
                "body_length": len(body),
            },
        )
        response = await self._request(
            method="POST",
            path=f"/repos/{owner}/{repo}/issues/{issue_number}/comments",
            json_data={"body": body},
        )
        return response.json()

    async def create_workflow_dispatch(
        self,
        owner: str,
        repo: str,
        workflow_id: str,
        ref: str,
        inputs: Dict[str, Any],
    ) -> None:
        """Trigger a ``workflow_dispatch`` run of a workflow."""
        logger.info(
            "Dispatching workflow",
            extra={
                "owner": owner,
                "repo": repo,
                "workflow_id": workflow_id,
                "ref": ref,
            },
        )
        await self._request(
            method="POST",
            path=f"/repos/{owner}/{repo}/actions/workflows/{workflow_id}/dispatches",
            json_data={"ref": ref, "inputs": inputs},
        )
