"""Shared test fixtures."""

import json
from datetime import UTC, datetime
from pathlib import Path

import pytest
import respx

from specreactions.config import Settings
from specreactions.models import IssueRecord, PullRequestInfo, ReactionSummary

NOW = datetime(2024, 6, 1, 12, 0, tzinfo=UTC)


def make_issue(
    number: int,
    total_count: int = 0,
    owner: str = "acme",
    repo: str = "widgets",
    **extra,
) -> dict:
    """Issue payload as returned by the issues listing."""
    issue = {
        "id": 1000 + number,
        "number": number,
        "title": f"Issue {number}",
        "html_url": f"https://github.com/{owner}/{repo}/issues/{number}",
        "labels": [],
        "milestone": None,
        "reactions": {
            "url": f"https://api.github.com/repos/{owner}/{repo}/issues/{number}/reactions",
            "total_count": total_count,
            "+1": total_count,
            "-1": 0,
            "laugh": 0,
            "hooray": 0,
            "confused": 0,
            "heart": 0,
            "rocket": 0,
            "eyes": 0,
        },
    }
    issue.update(extra)
    return issue


def make_reaction(created_at: str, content: str = "+1") -> dict:
    """Reaction payload as returned by the reactions listing."""
    return {"id": 1, "content": content, "created_at": created_at}


@pytest.fixture
def mock_github_api():
    """Mock GitHub API responses."""
    with respx.mock(base_url="https://api.github.com") as respx_mock:
        yield respx_mock


@pytest.fixture
def temp_data_dir(tmp_path: Path) -> Path:
    """Temporary directory for test data files."""
    data_dir = tmp_path / "data"
    data_dir.mkdir()
    return data_dir


@pytest.fixture
def registry_file(tmp_path: Path) -> Path:
    """Registry with duplicate, non-GitHub and malformed repository URLs."""
    entries = [
        {"shortname": "widgets", "nightly": {"repository": "https://github.com/acme/widgets"}},
        {"shortname": "widgets-2", "nightly": {"repository": "https://github.com/acme/widgets"}},
        {"shortname": "gadgets", "nightly": {"repository": "https://github.com/acme/gadgets"}},
        {"shortname": "gitlab", "nightly": {"repository": "https://gitlab.com/acme/tools"}},
        {"shortname": "deep", "nightly": {"repository": "https://github.com/acme/specs/tree/main"}},
        {"shortname": "org", "nightly": {"repository": "https://github.com/acme"}},
        {"shortname": "norepo", "nightly": {"url": "https://example.org/spec/"}},
        {"shortname": "nullrepo", "nightly": {"repository": None}},
        {"shortname": "nonightly"},
    ]
    path = tmp_path / "index.json"
    path.write_text(json.dumps(entries), encoding="utf-8")
    return path


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    """Settings pointing at a temporary output file."""
    return Settings(
        github_token="test_token",
        output_path=tmp_path / "issues.json",
        registry_source=str(tmp_path / "index.json"),
    )


@pytest.fixture
def sample_records() -> list[IssueRecord]:
    """Sample issue records for testing."""
    return [
        IssueRecord(
            total_reactions=ReactionSummary(total_count=12, url="u1", counts={"+1": 12}),
            url="https://github.com/acme/widgets/issues/1",
            title="Support ünïcode titles",
            labels=["enhancement", "css"],
            milestone="v2",
            recent_reaction_count=3,
        ),
        IssueRecord(
            total_reactions=ReactionSummary(total_count=0, url="u2"),
            url="https://github.com/acme/widgets/pull/2",
            title="Draft PR",
            pull_request=PullRequestInfo(draft=True),
        ),
    ]
