"""
Tests for the GitHub REST tracker.

These tests use respx to avoid real API calls.
"""

import json

import httpx
import pytest
import respx
from httpx import Response

from failtrack.tracker.rest_client import GITHUB_API_URL, GitHubRestTracker

REPO = "octo/app"
REPO_URL = f"{GITHUB_API_URL}/repos/{REPO}"


def make_tracker(**kwargs) -> GitHubRestTracker:
    """Tracker with retries that never sleep."""
    options = {
        "repo": REPO,
        "token": "test-token",
        "max_retries": 3,
        "retry_wait_min": 0,
        "retry_wait_max": 0,
    }
    options.update(kwargs)
    return GitHubRestTracker(**options)


class TestAvailability:
    """Tests for is_available()."""

    @pytest.mark.asyncio
    async def test_missing_token_is_unavailable(self):
        """No token means no network call and no availability."""
        async with make_tracker(token=None) as tracker:
            assert await tracker.is_available() is False

    @pytest.mark.asyncio
    async def test_missing_repo_is_unavailable(self):
        async with make_tracker(repo=None) as tracker:
            assert await tracker.is_available() is False

    @pytest.mark.asyncio
    @respx.mock
    async def test_repo_lookup_succeeds(self):
        """A 200 from the repository endpoint means available."""
        route = respx.get(REPO_URL).mock(return_value=Response(200, json={"full_name": REPO}))
        async with make_tracker() as tracker:
            assert await tracker.is_available() is True
        assert route.called
        request = route.calls.last.request
        assert request.headers["Authorization"] == "Bearer test-token"

    @pytest.mark.asyncio
    @respx.mock
    async def test_repo_not_found_is_unavailable(self):
        respx.get(REPO_URL).mock(return_value=Response(404, json={"message": "Not Found"}))
        async with make_tracker() as tracker:
            assert await tracker.is_available() is False


class TestCreateIssue:
    """Tests for create_issue()."""

    @pytest.mark.asyncio
    @respx.mock
    async def test_create_returns_number(self):
        """The issue number comes from the response body."""
        route = respx.post(f"{REPO_URL}/issues").mock(
            return_value=Response(201, json={"number": 17})
        )
        async with make_tracker() as tracker:
            result = await tracker.create_issue("Title", "Body", ["bug", ""])

        assert result.success
        assert result.issue_number == 17
        payload = json.loads(route.calls.last.request.content)
        assert payload == {"title": "Title", "body": "Body", "labels": ["bug"]}

    @pytest.mark.asyncio
    @respx.mock
    async def test_create_without_labels_omits_field(self):
        route = respx.post(f"{REPO_URL}/issues").mock(
            return_value=Response(201, json={"number": 1})
        )
        async with make_tracker() as tracker:
            await tracker.create_issue("Title", "Body", [])
        assert "labels" not in json.loads(route.calls.last.request.content)

    @pytest.mark.asyncio
    @respx.mock
    async def test_client_error_is_reported_not_raised(self):
        """4xx responses become failed results without retries."""
        route = respx.post(f"{REPO_URL}/issues").mock(
            return_value=Response(422, json={"message": "Validation Failed"})
        )
        async with make_tracker() as tracker:
            result = await tracker.create_issue("Title", "Body")

        assert not result.success
        assert "422" in result.error
        assert "Validation Failed" in result.error
        assert route.call_count == 1

    @pytest.mark.asyncio
    @respx.mock
    async def test_server_errors_are_retried(self):
        """5xx responses are retried until success."""
        route = respx.post(f"{REPO_URL}/issues").mock(
            side_effect=[
                Response(502, text="Bad Gateway"),
                Response(201, json={"number": 8}),
            ]
        )
        async with make_tracker() as tracker:
            result = await tracker.create_issue("Title", "Body")

        assert result.success
        assert result.issue_number == 8
        assert route.call_count == 2

    @pytest.mark.asyncio
    @respx.mock
    async def test_rate_limit_exhausts_retries(self):
        """Persistent 429s fail after max_retries attempts."""
        route = respx.post(f"{REPO_URL}/issues").mock(
            return_value=Response(429, json={"message": "rate limited"})
        )
        async with make_tracker(max_retries=2) as tracker:
            result = await tracker.create_issue("Title", "Body")

        assert not result.success
        assert route.call_count == 2

    @pytest.mark.asyncio
    @respx.mock
    async def test_transport_error_is_reported(self):
        """Connection failures become failed results."""
        respx.post(f"{REPO_URL}/issues").mock(side_effect=httpx.ConnectError("refused"))
        async with make_tracker(max_retries=1) as tracker:
            result = await tracker.create_issue("Title", "Body")
        assert not result.success

    @pytest.mark.asyncio
    @respx.mock
    async def test_missing_number_is_failure(self):
        respx.post(f"{REPO_URL}/issues").mock(return_value=Response(201, json={}))
        async with make_tracker() as tracker:
            result = await tracker.create_issue("Title", "Body")
        assert not result.success

    @pytest.mark.asyncio
    @respx.mock
    async def test_non_object_body_is_failure(self):
        respx.post(f"{REPO_URL}/issues").mock(return_value=Response(201, json=[1, 2]))
        async with make_tracker() as tracker:
            result = await tracker.create_issue("Title", "Body")
        assert not result.success
        assert "issue number" in result.error

    @pytest.mark.asyncio
    @respx.mock
    async def test_non_object_error_body_is_reported(self):
        respx.post(f"{REPO_URL}/issues").mock(return_value=Response(403, json=["forbidden"]))
        async with make_tracker() as tracker:
            result = await tracker.create_issue("Title", "Body")
        assert not result.success
        assert "403" in result.error


class TestStateChanges:
    """Tests for close_issue() and reopen_issue()."""

    @pytest.mark.asyncio
    @respx.mock
    async def test_close_patches_state_and_comments(self):
        patch_route = respx.patch(f"{REPO_URL}/issues/5").mock(
            return_value=Response(200, json={"number": 5, "state": "closed"})
        )
        comment_route = respx.post(f"{REPO_URL}/issues/5/comments").mock(
            return_value=Response(201, json={"id": 1})
        )
        async with make_tracker() as tracker:
            result = await tracker.close_issue(5, "Fixed")

        assert result.success
        assert result.issue_number == 5
        assert json.loads(patch_route.calls.last.request.content)["state"] == "closed"
        assert json.loads(comment_route.calls.last.request.content) == {"body": "Fixed"}

    @pytest.mark.asyncio
    @respx.mock
    async def test_reopen_without_comment(self):
        patch_route = respx.patch(f"{REPO_URL}/issues/5").mock(
            return_value=Response(200, json={"number": 5, "state": "open"})
        )
        comment_route = respx.post(f"{REPO_URL}/issues/5/comments")
        async with make_tracker() as tracker:
            result = await tracker.reopen_issue(5)

        assert result.success
        assert json.loads(patch_route.calls.last.request.content) == {"state": "open"}
        assert not comment_route.called

    @pytest.mark.asyncio
    @respx.mock
    async def test_failed_state_change_skips_comment(self):
        respx.patch(f"{REPO_URL}/issues/5").mock(
            return_value=Response(404, json={"message": "Not Found"})
        )
        comment_route = respx.post(f"{REPO_URL}/issues/5/comments")
        async with make_tracker() as tracker:
            result = await tracker.close_issue(5, "Fixed")

        assert not result.success
        assert result.issue_number == 5
        assert not comment_route.called

    @pytest.mark.asyncio
    @respx.mock
    async def test_failed_comment_keeps_state_change(self):
        """The issue state is what matters; a lost comment is only logged."""
        respx.patch(f"{REPO_URL}/issues/5").mock(return_value=Response(200, json={}))
        respx.post(f"{REPO_URL}/issues/5/comments").mock(
            return_value=Response(403, json={"message": "Forbidden"})
        )
        async with make_tracker() as tracker:
            result = await tracker.reopen_issue(5, "Failing again")
        assert result.success
