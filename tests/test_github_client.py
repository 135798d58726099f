"""Tests for GitHub client."""

import pytest
from httpx import ConnectError, Response

from specreactions.github_client import (
    AuthenticationError,
    GitHubAPIError,
    GitHubClient,
    NotFoundError,
    RateLimitError,
    SecondaryRateLimitError,
    ThrottleConfig,
)

from .conftest import make_issue, make_reaction

NO_BACKOFF = ThrottleConfig(backoff_base=0)


def rate_limited() -> Response:
    return Response(
        403,
        headers={
            "X-RateLimit-Remaining": "0",
            "X-RateLimit-Reset": "1704067200",
        },
        json={"message": "API rate limit exceeded"},
    )


async def _list_issues(client: GitHubClient, owner: str = "acme", repo: str = "widgets"):
    return [issue async for issue in client.iter_issues(owner, repo)]


class TestGitHubClient:
    """Tests for GitHubClient class."""

    @pytest.mark.asyncio
    async def test_list_issues_success(self, mock_github_api) -> None:
        """Test successful single-page issue listing."""
        route = mock_github_api.get("/repos/acme/widgets/issues").mock(
            return_value=Response(
                200,
                json=[
                    make_issue(
                        1,
                        total_count=3,
                        labels=[{"name": "bug"}, {"name": "css"}],
                        milestone={"title": "Level 4"},
                    ),
                    make_issue(2, pull_request={"url": "x"}, draft=True),
                ],
            )
        )

        async with GitHubClient(token="test_token") as client:
            issues = await _list_issues(client)

        assert [i.number for i in issues] == [1, 2]
        assert issues[0].reactions.total_count == 3
        assert issues[0].labels == ["bug", "css"]
        assert issues[0].milestone == "Level 4"
        assert issues[0].pull_request is None
        assert issues[1].pull_request is not None
        assert issues[1].pull_request.draft is True

        request = route.calls[0].request
        assert request.url.params["per_page"] == "100"
        assert request.url.params["state"] == "all"
        assert request.headers["Authorization"] == "Bearer test_token"

    @pytest.mark.asyncio
    async def test_list_issues_follows_link_header(self, mock_github_api) -> None:
        """Test that pages are walked until there is no next link."""
        next_url = "https://api.github.com/repositories/42/issues?state=all&per_page=100&page=2"
        mock_github_api.get("/repos/acme/widgets/issues").mock(
            return_value=Response(
                200,
                json=[make_issue(1), make_issue(2)],
                headers={"Link": f'<{next_url}>; rel="next", <{next_url}>; rel="last"'},
            )
        )
        second = mock_github_api.get("/repositories/42/issues").mock(
            return_value=Response(200, json=[make_issue(3)])
        )

        async with GitHubClient(token="test_token") as client:
            cursor = client.iter_issues("acme", "widgets")
            issues = [issue async for issue in cursor]

        assert [i.number for i in issues] == [1, 2, 3]
        assert cursor.pages_fetched == 2
        assert cursor.exhausted
        assert second.calls[0].request.url.params["page"] == "2"

    @pytest.mark.asyncio
    async def test_list_reactions(self, mock_github_api) -> None:
        """Test reaction listing parses timestamps."""
        mock_github_api.get("/repos/acme/widgets/issues/7/reactions").mock(
            return_value=Response(
                200,
                json=[
                    make_reaction("2024-01-01T00:00:00Z"),
                    make_reaction("2024-02-01T10:30:00Z", content="heart"),
                ],
            )
        )

        async with GitHubClient(token="test_token") as client:
            reactions = [r async for r in client.iter_reactions("acme", "widgets", 7)]

        assert len(reactions) == 2
        assert reactions[1].content == "heart"
        assert reactions[1].created_at.isoformat() == "2024-02-01T10:30:00+00:00"

    @pytest.mark.asyncio
    async def test_authentication_error(self, mock_github_api) -> None:
        """Test authentication error handling."""
        mock_github_api.get("/repos/acme/widgets/issues").mock(
            return_value=Response(401, json={"message": "Bad credentials"})
        )

        async with GitHubClient(token="bad_token") as client:
            with pytest.raises(AuthenticationError) as exc_info:
                await _list_issues(client)

        assert exc_info.value.status_code == 401

    @pytest.mark.asyncio
    async def test_not_found_error(self, mock_github_api) -> None:
        """Test not found error handling."""
        mock_github_api.get("/repos/acme/nonexistent/issues").mock(
            return_value=Response(404, json={"message": "Not Found"})
        )

        async with GitHubClient(token="test_token") as client:
            with pytest.raises(NotFoundError) as exc_info:
                await _list_issues(client, repo="nonexistent")

        assert exc_info.value.status_code == 404

    @pytest.mark.asyncio
    async def test_rate_limit_retried_twice_then_succeeds(self, mock_github_api) -> None:
        """Test two rate limit signals are absorbed by retries."""
        route = mock_github_api.get("/repos/acme/widgets/issues").mock(
            side_effect=[rate_limited(), rate_limited(), Response(200, json=[make_issue(1)])]
        )

        async with GitHubClient(token="test_token", throttle=NO_BACKOFF) as client:
            issues = await _list_issues(client)

        assert [i.number for i in issues] == [1]
        assert route.call_count == 3

    @pytest.mark.asyncio
    async def test_rate_limit_error(self, mock_github_api) -> None:
        """Test the third consecutive rate limit signal surfaces an error."""
        route = mock_github_api.get("/repos/acme/widgets/issues").mock(
            side_effect=[rate_limited(), rate_limited(), rate_limited()]
        )

        async with GitHubClient(token="test_token", throttle=NO_BACKOFF) as client:
            with pytest.raises(RateLimitError) as exc_info:
                await _list_issues(client)

            assert exc_info.value.reset_at is not None

        assert route.call_count == 3

    @pytest.mark.asyncio
    async def test_rate_limit_budget_is_configurable(self, mock_github_api) -> None:
        """Test a larger retry budget absorbs a third rate limit signal."""
        route = mock_github_api.get("/repos/acme/widgets/issues").mock(
            side_effect=[
                rate_limited(),
                rate_limited(),
                rate_limited(),
                Response(200, json=[make_issue(1)]),
            ]
        )
        throttle = ThrottleConfig(max_rate_limit_retries=3, backoff_base=0)

        async with GitHubClient(token="test_token", throttle=throttle) as client:
            issues = await _list_issues(client)

        assert len(issues) == 1
        assert route.call_count == 4

    @pytest.mark.asyncio
    async def test_secondary_rate_limit_not_retried(self, mock_github_api) -> None:
        """Test the secondary rate limit fails without retrying."""
        route = mock_github_api.get("/repos/acme/widgets/issues").mock(
            return_value=Response(
                403,
                headers={"Retry-After": "0"},
                json={"message": "You have exceeded a secondary rate limit."},
            )
        )

        async with GitHubClient(token="test_token", throttle=NO_BACKOFF) as client:
            with pytest.raises(SecondaryRateLimitError) as exc_info:
                await _list_issues(client)

        assert exc_info.value.retry_after == 0
        assert route.call_count == 1

    @pytest.mark.asyncio
    async def test_forbidden_without_rate_limit(self, mock_github_api) -> None:
        """Test plain 403 is reported as an access failure."""
        mock_github_api.get("/repos/acme/private/issues").mock(
            return_value=Response(403, json={"message": "Resource not accessible"})
        )

        async with GitHubClient(token="test_token") as client:
            with pytest.raises(AuthenticationError):
                await _list_issues(client, repo="private")

    @pytest.mark.asyncio
    async def test_server_error_retried(self, mock_github_api) -> None:
        """Test transient server errors are retried."""
        route = mock_github_api.get("/repos/acme/widgets/issues").mock(
            side_effect=[
                Response(502, text="Bad Gateway"),
                Response(200, json=[make_issue(1)]),
            ]
        )

        async with GitHubClient(token="test_token", throttle=NO_BACKOFF) as client:
            issues = await _list_issues(client)

        assert len(issues) == 1
        assert route.call_count == 2

    @pytest.mark.asyncio
    async def test_network_errors_exhaust_retries(self, mock_github_api) -> None:
        """Test persistent network failures raise after the retry budget."""
        route = mock_github_api.get("/repos/acme/widgets/issues").mock(
            side_effect=ConnectError
        )

        async with GitHubClient(token="test_token", throttle=NO_BACKOFF) as client:
            with pytest.raises(GitHubAPIError, match="Request failed"):
                await _list_issues(client)

        assert route.call_count == 3

    @pytest.mark.asyncio
    async def test_request_requires_context_manager(self) -> None:
        """Test using the client outside its context fails clearly."""
        client = GitHubClient(token="test_token")

        with pytest.raises(RuntimeError):
            await _list_issues(client)
