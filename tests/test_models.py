"""Tests for the data models."""

from datetime import datetime, timedelta, timezone

import pytest
from pydantic import ValidationError

from delta.models import (
    ChangelogDraft,
    Commit,
    CommitAnalysis,
    GitHubCommitPayload,
    GitHubRepositoryPayload,
    TimeSpread,
)


class TestCommit:
    def test_naive_dates_become_utc(self):
        c = Commit(sha="abc1234567", message="Add x", author_name="Dev", committed_at=datetime(2025, 1, 1))
        assert c.committed_at.tzinfo is timezone.utc

    def test_aware_dates_kept(self):
        tz = timezone(timedelta(hours=2))
        c = Commit(sha="abc", message="Add x", author_name="Dev", committed_at=datetime(2025, 1, 1, tzinfo=tz))
        assert c.committed_at.utcoffset() == timedelta(hours=2)

    def test_short_sha_and_summary(self):
        c = Commit(
            sha="abc123def456",
            message="feat: new feature\n\nDetails here",
            author_name="Dev",
            committed_at=datetime.now(timezone.utc),
        )
        assert c.short_sha == "abc123d"
        assert c.summary == "feat: new feature"


class TestGitHubPayloads:
    def test_commit_payload_to_commit(self):
        payload = GitHubCommitPayload.model_validate(
            {
                "sha": "abc",
                "commit": {
                    "message": "Fix bug",
                    "author": {"name": "Dev", "email": "d@x.io", "date": "2025-01-15T10:00:00Z"},
                },
                "author": None,
            }
        )
        c = payload.to_commit()
        assert c.author_name == "Dev"
        assert c.committed_at == datetime(2025, 1, 15, 10, tzinfo=timezone.utc)

    def test_commit_payload_requires_date(self):
        with pytest.raises(ValidationError):
            GitHubCommitPayload.model_validate(
                {"sha": "abc", "commit": {"message": "x", "author": {"name": "Dev"}}}
            )

    def test_repository_defaults(self):
        repo = GitHubRepositoryPayload.model_validate(
            {"id": 1, "name": "r", "full_name": "o/r", "html_url": "https://github.com/o/r"}
        )
        assert repo.default_branch == "main"
        assert repo.private is False

    def test_repository_rejects_missing_id(self):
        with pytest.raises(ValidationError):
            GitHubRepositoryPayload.model_validate({"name": "r", "full_name": "o/r", "html_url": ""})


class TestCommitAnalysis:
    def test_totals(self):
        now = datetime.now(timezone.utc)
        analysis = CommitAnalysis(
            patterns={"features": ["a", "b"], "fixes": [], "other": ["c"]},
            authors={"Dev"},
            time_spread=TimeSpread(earliest=now, latest=now),
            commit_frequency=4,
        )
        assert analysis.total_changes == 3
        assert analysis.non_empty_categories == ["features", "other"]


def test_changelog_draft_defaults():
    draft = ChangelogDraft(title="t", content="c", version="v2025.01.01")
    assert draft.used_fallback is False
