"""
GitHub REST Tracker.

Async client for the GitHub Issues REST API with:
- Bearer token authentication
- Automatic retry with exponential backoff using tenacity
- Rate limit and server error handling
"""

import logging
from typing import Any

import httpx
from tenacity import (
    AsyncRetrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from failtrack.tracker.base import (
    IssueResult,
    RetryableTrackerError,
    TrackerClient,
    TrackerError,
)

logger = logging.getLogger(__name__)

GITHUB_API_URL = "https://api.github.com"
GITHUB_API_VERSION = "2022-11-28"


class GitHubRestTracker(TrackerClient):
    """Tracker talking to the GitHub REST API over httpx.

    Usage:
        async with GitHubRestTracker(repo="octo/app", token=token) as tracker:
            result = await tracker.create_issue("Title", "Body", ["bug"])
    """

    name = "github_rest"

    def __init__(
        self,
        repo: str | None,
        token: str | None,
        api_url: str = GITHUB_API_URL,
        timeout_seconds: float = 30.0,
        max_retries: int = 3,
        retry_wait_min: float = 1.0,
        retry_wait_max: float = 30.0,
    ) -> None:
        """Initialize the client.

        Args:
            repo: Repository in owner/name form
            token: GitHub token with issues write access
            api_url: Base URL of the API (GitHub Enterprise supported)
            timeout_seconds: Request timeout
            max_retries: Maximum attempts for retryable failures
            retry_wait_min: Minimum backoff between attempts
            retry_wait_max: Maximum backoff between attempts
        """
        self._repo = repo
        self._token = token
        self._api_url = api_url.rstrip("/")
        self._timeout = timeout_seconds
        self._max_retries = max(1, max_retries)
        self._retry_wait_min = retry_wait_min
        self._retry_wait_max = retry_wait_max
        self._client: httpx.AsyncClient | None = None

    @property
    def repo(self) -> str | None:
        """Get the target repository."""
        return self._repo

    def _ensure_client(self) -> httpx.AsyncClient:
        """Ensure the HTTP client is initialized."""
        if self._client is None:
            headers = {
                "Accept": "application/vnd.github+json",
                "X-GitHub-Api-Version": GITHUB_API_VERSION,
            }
            if self._token:
                headers["Authorization"] = f"Bearer {self._token}"
            self._client = httpx.AsyncClient(
                base_url=self._api_url,
                headers=headers,
                timeout=self._timeout,
            )
        return self._client

    async def aclose(self) -> None:
        """Close the HTTP client."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def _request(
        self,
        method: str,
        path: str,
        json: dict[str, Any] | None = None,
    ) -> httpx.Response:
        """Send a request, retrying rate limits and server errors.

        Raises:
            TrackerError: On transport failure or a non-2xx response
        """
        client = self._ensure_client()
        async for attempt in AsyncRetrying(
            stop=stop_after_attempt(self._max_retries),
            wait=wait_exponential(
                multiplier=self._retry_wait_min,
                min=self._retry_wait_min,
                max=self._retry_wait_max,
            ),
            retry=retry_if_exception_type(RetryableTrackerError),
            reraise=True,
        ):
            with attempt:
                try:
                    response = await client.request(method, path, json=json)
                except httpx.HTTPError as e:
                    raise RetryableTrackerError(f"{method} {path} failed: {e}") from e
                self._check_response(response, method, path)
                return response

        # Unreachable: AsyncRetrying either returns or reraises
        raise TrackerError(f"{method} {path} failed")

    @staticmethod
    def _check_response(response: httpx.Response, method: str, path: str) -> None:
        """Raise for error responses.

        Raises:
            RetryableTrackerError: For 429 and 5xx responses
            TrackerError: For other 4xx responses
        """
        status = response.status_code
        if status < 400:
            return

        try:
            data = response.json()
        except ValueError:
            data = None
        message = data.get("message", response.text) if isinstance(data, dict) else response.text
        error_msg = f"{method} {path} returned {status}: {message}"

        if status == 429 or status >= 500:
            logger.warning(f"{error_msg} (will retry)")
            raise RetryableTrackerError(error_msg, status_code=status)
        raise TrackerError(error_msg, status_code=status)

    async def is_available(self) -> bool:
        if not self._token or not self._repo:
            logger.debug("GitHub REST tracker needs both a token and a repository")
            return False
        try:
            response = await self._request("GET", f"/repos/{self._repo}")
        except TrackerError as e:
            logger.debug(f"GitHub repository check failed: {e}")
            return False
        return response.status_code == 200

    async def create_issue(
        self,
        title: str,
        body: str,
        labels: list[str] | None = None,
    ) -> IssueResult:
        payload: dict[str, Any] = {"title": title, "body": body}
        clean_labels = [label for label in labels or [] if label]
        if clean_labels:
            payload["labels"] = clean_labels

        try:
            response = await self._request("POST", f"/repos/{self._repo}/issues", json=payload)
            data = response.json()
        except (TrackerError, ValueError) as e:
            return IssueResult.failed(str(e))

        number = data.get("number") if isinstance(data, dict) else None
        if not isinstance(number, int):
            return IssueResult.failed("Response did not include an issue number")
        return IssueResult.ok(number)

    async def close_issue(
        self,
        issue_number: int,
        comment: str | None = None,
    ) -> IssueResult:
        return await self._set_state(issue_number, "closed", comment)

    async def reopen_issue(
        self,
        issue_number: int,
        comment: str | None = None,
    ) -> IssueResult:
        return await self._set_state(issue_number, "open", comment)

    async def _set_state(
        self,
        issue_number: int,
        state: str,
        comment: str | None,
    ) -> IssueResult:
        """Change issue state, then post the comment if any.

        A failed comment is logged but does not undo the state change.
        """
        issue_path = f"/repos/{self._repo}/issues/{issue_number}"
        payload: dict[str, Any] = {"state": state}
        if state == "closed":
            payload["state_reason"] = "completed"

        try:
            await self._request("PATCH", issue_path, json=payload)
        except TrackerError as e:
            return IssueResult.failed(str(e), issue_number)

        if comment:
            try:
                await self._request("POST", f"{issue_path}/comments", json={"body": comment})
            except TrackerError as e:
                logger.warning(f"Issue #{issue_number} set to {state} but failed to comment: {e}")
        return IssueResult.ok(issue_number)
