"""Pytest configuration and fixtures."""

from datetime import datetime, timezone

import pytest

from delta.models import Commit, GitHubRepositoryPayload, GitHubUserPayload
from delta.store import ChangelogStore


@pytest.fixture(scope="session")
def anyio_backend():
    """Configure anyio backend for async tests."""
    return "asyncio"


def make_commit(
    message: str,
    when: datetime = datetime(2025, 1, 15, 9, 30, tzinfo=timezone.utc),
    sha: str = "",
    author: str = "Alice",
) -> Commit:
    return Commit(
        sha=sha or f"{abs(hash((message, when))):040x}"[:40],
        message=message,
        author_name=author,
        author_email=f"{author.lower()}@example.com",
        committed_at=when,
    )


@pytest.fixture
def three_kinds():
    """One feature, one fix and one docs commit in the same month."""
    return [
        make_commit("feat: add login", datetime(2025, 1, 20, tzinfo=timezone.utc), sha="c" * 40),
        make_commit("fix: crash on null", datetime(2025, 1, 18, tzinfo=timezone.utc), sha="b" * 40),
        make_commit("docs: update readme", datetime(2025, 1, 10, tzinfo=timezone.utc), sha="a" * 40),
    ]


@pytest.fixture
def initial_commit():
    return [make_commit("Initial commit", sha="0" * 40)]


@pytest.fixture
def busy_history():
    """Twelve commits across three months by two authors."""
    messages = [
        ("Add user profile page", 3, "Alice"),
        ("Fix pagination bug", 3, "Bob"),
        ("Improve query performance", 3, "Alice"),
        ("Merge pull request #12", 3, "Bob"),
        ("Refactor auth module", 2, "Alice"),
        ("Add tests for api.py", 2, "Bob"),
        ("Update README.md", 2, "Alice"),
        ("Bump version", 2, "Bob"),
        ("Install eslint package", 1, "Alice"),
        ("Tweak colours of the landing hero", 1, "Bob"),
        ("wip", 1, "Alice"),
        ("Configure CI environment", 1, "Bob"),
    ]
    commits = []
    for i, (msg, month, author) in enumerate(messages):
        commits.append(
            make_commit(
                msg,
                datetime(2025, month, 28 - i, 12, 0, tzinfo=timezone.utc),
                sha=f"{i:02d}" * 20,
                author=author,
            )
        )
    return commits


@pytest.fixture
def store():
    s = ChangelogStore(":memory:")
    s.connect()
    s.create_schema()
    yield s
    s.close()


@pytest.fixture
def user_payload():
    return GitHubUserPayload(id=42, login="octocat", email="octo@example.com")


@pytest.fixture
def repo_payload():
    return GitHubRepositoryPayload(
        id=1296269,
        name="Hello-World",
        full_name="octocat/Hello-World",
        html_url="https://github.com/octocat/Hello-World",
        default_branch="main",
    )
