"""Async GitHub REST client for issue and reaction listings."""

import asyncio
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime
from functools import partial
from typing import Any, Self

import httpx
from rich.console import Console

from specreactions.models import (
    Issue,
    PullRequestInfo,
    Reaction,
    ReactionSummary,
)
from specreactions.pagination import Page, PageIterator

console = Console()


class GitHubAPIError(Exception):
    """Base exception for GitHub API errors."""

    def __init__(self, message: str, status_code: int | None = None):
        """Initialize with the HTTP status, when there was a response.

        Args:
            message: Error message.
            status_code: HTTP status code of the failing response.
        """
        super().__init__(message)
        self.status_code = status_code


class RateLimitError(GitHubAPIError):
    """Raised when rate limit is exceeded and retries are exhausted."""

    def __init__(
        self,
        message: str,
        reset_at: datetime | None = None,
        retry_after: float | None = None,
        status_code: int | None = None,
    ):
        """Initialize with reset time.

        Args:
            message: Error message.
            reset_at: When rate limit resets (UTC).
            retry_after: Server-suggested delay in seconds.
            status_code: HTTP status code of the failing response.
        """
        super().__init__(message, status_code=status_code)
        self.reset_at = reset_at
        self.retry_after = retry_after


class SecondaryRateLimitError(RateLimitError):
    """Raised when the secondary (abuse) rate limit is triggered."""


class AuthenticationError(GitHubAPIError):
    """Raised for authentication failures."""


class NotFoundError(GitHubAPIError):
    """Raised when repository doesn't exist or no access."""


@dataclass(frozen=True)
class ThrottleConfig:
    """Retry budget shared by every request made through one client.

    Attributes:
        max_rate_limit_retries: Retries per request on the primary rate limit.
        max_secondary_rate_limit_retries: Retries per request on the
            secondary (abuse) rate limit.
        max_transient_retries: Attempts per request on network errors and 5xx.
        backoff_base: Base delay in seconds for transient-failure backoff.
    """

    max_rate_limit_retries: int = 2
    max_secondary_rate_limit_retries: int = 0
    max_transient_retries: int = 3
    backoff_base: float = 1.0


def _error_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text
    if isinstance(body, dict):
        return str(body.get("message") or "")
    return response.text


def _retry_delay(response: httpx.Response) -> tuple[float, datetime | None]:
    """Suggested wait before retrying a rate-limited request.

    Returns:
        Tuple of (delay in seconds, reset time if the server sent one).
    """
    reset_at = None
    reset_header = response.headers.get("X-RateLimit-Reset")
    if reset_header and reset_header.isdigit():
        reset_at = datetime.fromtimestamp(int(reset_header), tz=UTC)

    retry_after = response.headers.get("Retry-After")
    if retry_after:
        try:
            return max(0.0, float(retry_after)), reset_at
        except ValueError:
            pass

    if reset_at is not None:
        return max(0.0, (reset_at - datetime.now(UTC)).total_seconds()), reset_at

    return 60.0, reset_at


def _is_primary_rate_limit(response: httpx.Response) -> bool:
    return response.headers.get("X-RateLimit-Remaining") == "0"


def _is_secondary_rate_limit(response: httpx.Response) -> bool:
    if response.status_code == 429 or "Retry-After" in response.headers:
        return True
    message = _error_message(response).lower()
    return "secondary rate limit" in message or "abuse" in message


def _parse_issue(data: dict[str, Any]) -> Issue:
    pull_request = None
    if data.get("pull_request"):
        # The issues listing carries the draft flag at the top level.
        draft = data["pull_request"].get("draft", data.get("draft", False))
        pull_request = PullRequestInfo(draft=bool(draft))

    milestone = data.get("milestone")
    labels = [
        label.get("name", "") if isinstance(label, dict) else str(label)
        for label in data.get("labels") or []
    ]

    return Issue(
        number=data["number"],
        title=data.get("title", ""),
        html_url=data.get("html_url", ""),
        reactions=ReactionSummary.from_api(data.get("reactions")),
        milestone=milestone.get("title") if milestone else None,
        labels=labels,
        pull_request=pull_request,
    )


def _parse_reaction(data: dict[str, Any]) -> Reaction:
    created_at = datetime.fromisoformat(data["created_at"].replace("Z", "+00:00"))
    return Reaction(created_at=created_at, content=data.get("content", ""))


class GitHubClient:
    """Async client for the GitHub issues and reactions APIs.

    Handles authentication, rate limiting, and error recovery. Requests are
    made one at a time; the token's rate-limit budget is shared by every
    listing opened through the same client.

    Attributes:
        BASE_URL: GitHub API base URL.
    """

    BASE_URL = "https://api.github.com"

    def __init__(
        self,
        token: str,
        timeout: float = 30.0,
        per_page: int = 100,
        throttle: ThrottleConfig | None = None,
    ):
        """Initialize client with authentication token.

        Args:
            token: GitHub personal access token.
            timeout: Request timeout in seconds.
            per_page: Page size for listings (max 100).
            throttle: Retry policy for rate limits and transient failures.
        """
        self.token = token
        self.timeout = timeout
        self.per_page = per_page
        self.throttle = throttle or ThrottleConfig()
        self._client: httpx.AsyncClient | None = None

    async def __aenter__(self) -> Self:
        """Enter async context manager."""
        headers = {
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": "2022-11-28",
        }
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        self._client = httpx.AsyncClient(
            base_url=self.BASE_URL,
            headers=headers,
            timeout=self.timeout,
        )
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        """Exit async context manager."""
        if self._client:
            await self._client.aclose()

    async def _request(
        self,
        method: str,
        url: str,
        params: dict[str, Any] | None = None,
    ) -> httpx.Response:
        """Execute request with rate-limit and retry handling.

        Args:
            method: HTTP method.
            url: API endpoint path, or an absolute URL from a Link header.
            params: Query parameters.

        Returns:
            The successful response.

        Raises:
            RateLimitError: When the primary rate limit outlasts the retries.
            SecondaryRateLimitError: When the secondary rate limit outlasts the retries.
            AuthenticationError: For auth failures.
            NotFoundError: When resource not found.
            GitHubAPIError: For other API errors.
        """
        if not self._client:
            raise RuntimeError("Client not initialized. Use async context manager.")

        throttle = self.throttle
        rate_limit_retries = 0
        secondary_retries = 0
        attempt = 0
        last_error: GitHubAPIError | None = None

        while attempt < throttle.max_transient_retries:
            try:
                response = await self._client.request(method, url, params=params)
            except httpx.RequestError as e:
                last_error = GitHubAPIError(f"Request failed: {e}")
                attempt += 1
                await self._backoff(attempt)
                continue

            status = response.status_code

            if status == 200:
                return response

            if status == 401:
                raise AuthenticationError("Invalid or expired token", status_code=status)

            if status in (403, 429):
                delay, reset_at = _retry_delay(response)

                if _is_primary_rate_limit(response):
                    if rate_limit_retries >= throttle.max_rate_limit_retries:
                        console.print("[red]Rate limiting triggered, not retrying again![/red]")
                        raise RateLimitError(
                            f"Rate limit exceeded: {url}",
                            reset_at=reset_at,
                            retry_after=delay,
                            status_code=status,
                        )
                    rate_limit_retries += 1
                    console.print(
                        f"[yellow]Rate limiting triggered, retrying after {delay:g} seconds![/yellow]"
                    )
                    await asyncio.sleep(delay)
                    continue

                if _is_secondary_rate_limit(response):
                    if secondary_retries >= throttle.max_secondary_rate_limit_retries:
                        console.print("[red]Abuse limit triggered, not retrying![/red]")
                        raise SecondaryRateLimitError(
                            f"Secondary rate limit exceeded: {url}",
                            reset_at=reset_at,
                            retry_after=delay,
                            status_code=status,
                        )
                    secondary_retries += 1
                    console.print(
                        f"[yellow]Abuse limit triggered, retrying after {delay:g} seconds![/yellow]"
                    )
                    await asyncio.sleep(delay)
                    continue

                raise AuthenticationError(
                    "Access forbidden - check token permissions", status_code=status
                )

            if status == 404:
                raise NotFoundError(
                    f"Repository not found or no access: {url}", status_code=status
                )

            # Server errors - retry
            if status >= 500:
                last_error = GitHubAPIError(
                    f"Server error {status}: {response.text}", status_code=status
                )
                attempt += 1
                await self._backoff(attempt)
                continue

            raise GitHubAPIError(f"API error {status}: {response.text}", status_code=status)

        raise last_error or GitHubAPIError("Request failed after retries")

    async def _backoff(self, attempt: int) -> None:
        if attempt < self.throttle.max_transient_retries:
            await asyncio.sleep(self.throttle.backoff_base * 2 ** (attempt - 1))

    async def _get_page(
        self,
        path: str,
        params: dict[str, Any],
        parse: Callable[[dict[str, Any]], Any],
        url: str | None,
    ) -> Page:
        """Fetch one listing page.

        Args:
            path: Endpoint path of the first page.
            params: Query parameters of the first page.
            parse: Converter from a JSON item to a model.
            url: Absolute URL of a later page, or None for the first page.

        Returns:
            Page with parsed items and the next page URL.
        """
        if url is None:
            response = await self._request("GET", path, params=params)
        else:
            # Link URLs already carry the query string.
            response = await self._request("GET", url)

        next_link = response.links.get("next")
        return Page(
            items=[parse(item) for item in response.json()],
            next_url=next_link.get("url") if next_link else None,
        )

    def iter_issues(self, owner: str, repo: str, state: str = "all") -> PageIterator[Issue]:
        """Open a cursor over a repository's issues and pull requests.

        Args:
            owner: Repository owner/organization.
            repo: Repository name.
            state: Issue state filter ("open", "closed" or "all").

        Returns:
            Fresh cursor in the API's default order.
        """
        params = {"state": state, "per_page": self.per_page}
        return PageIterator(
            partial(self._get_page, f"/repos/{owner}/{repo}/issues", params, _parse_issue)
        )

    def iter_reactions(self, owner: str, repo: str, number: int) -> PageIterator[Reaction]:
        """Open a cursor over the reactions of one issue.

        Args:
            owner: Repository owner/organization.
            repo: Repository name.
            number: Issue number.

        Returns:
            Fresh cursor over the issue's reactions.
        """
        params = {"per_page": self.per_page}
        return PageIterator(
            partial(
                self._get_page,
                f"/repos/{owner}/{repo}/issues/{number}/reactions",
                params,
                _parse_reaction,
            )
        )
