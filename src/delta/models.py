"""Data models for delta."""

from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field, field_validator


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ── Raw GitHub payloads ───────────────────────────────────────────────────

class GitHubCommitAuthor(BaseModel):
    """``commit.author`` block of a GitHub commit payload."""

    name: str = "Unknown"
    email: str = ""
    date: datetime

    @field_validator("name", mode="before")
    @classmethod
    def _default_name(cls, value: object) -> object:
        return "Unknown" if not value else value

    @field_validator("email", mode="before")
    @classmethod
    def _default_email(cls, value: object) -> object:
        return "" if value is None else value


class GitHubCommitDetail(BaseModel):
    message: str = ""
    author: GitHubCommitAuthor


class GitHubCommitPayload(BaseModel):
    """One item of ``GET /repos/{owner}/{repo}/commits``."""

    sha: str
    commit: GitHubCommitDetail
    html_url: str = ""

    def to_commit(self) -> "Commit":
        return Commit(
            sha=self.sha,
            message=self.commit.message,
            author_name=self.commit.author.name,
            author_email=self.commit.author.email,
            committed_at=self.commit.author.date,
        )


class GitHubRepositoryPayload(BaseModel):
    """``GET /repos/{owner}/{repo}`` (and items of ``/user/repos``)."""

    id: int
    name: str
    full_name: str
    private: bool = False
    html_url: str
    description: Optional[str] = None
    default_branch: str = "main"
    language: Optional[str] = None
    stargazers_count: int = 0
    forks_count: int = 0


class GitHubUserPayload(BaseModel):
    """``GET /user``."""

    id: int
    login: str
    email: Optional[str] = None
    avatar_url: Optional[str] = None


# ── Pipeline data ─────────────────────────────────────────────────────────

class Commit(BaseModel):
    """A single Git commit, as the pipeline sees it."""

    sha: str
    message: str
    author_name: str
    author_email: str = ""
    committed_at: datetime

    @field_validator("committed_at")
    @classmethod
    def _assume_utc(cls, value: datetime) -> datetime:
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value

    @property
    def short_sha(self) -> str:
        return self.sha[:7]

    @property
    def summary(self) -> str:
        """First line of the message."""
        return self.message.split("\n")[0]


class GenerationStage(str, Enum):
    """Steps of one changelog generation, in order."""

    profile = "profile"
    connect = "connect"
    fetch = "fetch"
    compose = "compose"
    save = "save"
    done = "done"


class MonthGroup(BaseModel):
    """Commits that fall in one calendar month."""

    month_key: str  # "YYYY-MM"
    month_label: str  # "January 2025"
    commits: list[Commit] = Field(default_factory=list)


class TimeSpread(BaseModel):
    earliest: datetime
    latest: datetime


class CommitAnalysis(BaseModel):
    """Keyword-pattern projection of a commit sequence."""

    patterns: dict[str, list[str]] = Field(default_factory=dict)
    authors: set[str] = Field(default_factory=set)
    time_spread: TimeSpread
    commit_frequency: int = 0
    file_patterns: list[str] = Field(default_factory=list)

    @property
    def total_changes(self) -> int:
        """Number of commits filed under some category."""
        return sum(len(messages) for messages in self.patterns.values())

    @property
    def non_empty_categories(self) -> list[str]:
        return [name for name, messages in self.patterns.items() if messages]


class ChangelogDraft(BaseModel):
    """Composer output, before it is stored."""

    title: str
    content: str
    version: str
    used_fallback: bool = False


# ── Persisted entities ────────────────────────────────────────────────────

class User(BaseModel):
    id: str
    github_id: str
    username: str
    email: Optional[str] = None
    avatar_url: Optional[str] = None
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)


class Repository(BaseModel):
    """A GitHub repository connected by a user."""

    id: str
    user_id: str
    repo_name: str
    repo_full_name: str
    repo_url: str
    github_repo_id: int
    default_branch: str = "main"
    is_private: bool = False
    has_changelogs: bool = False
    connected_at: datetime = Field(default_factory=utcnow)
    last_sync_at: Optional[datetime] = None

    @property
    def owner_and_name(self) -> tuple[str, str]:
        owner, _, name = self.repo_full_name.partition("/")
        return owner, name


class RepositorySummary(BaseModel):
    """One row of the repositories overview."""

    full_name: str
    connected: bool
    changelog_count: int = 0
    last_sync_at: Optional[datetime] = None


class ChangelogCreate(BaseModel):
    """Input to :meth:`delta.store.ChangelogStore.create_changelog`."""

    repo_id: str
    title: str
    version: Optional[str] = None
    content: str
    commit_hashes: list[str] = Field(default_factory=list)
    from_commit: Optional[str] = None
    to_commit: str
    is_published: bool = False


class Changelog(BaseModel):
    """A stored changelog with its public slug."""

    id: str
    repo_id: str
    title: str
    version: Optional[str] = None
    content: str
    commit_hashes: list[str] = Field(default_factory=list)
    public_slug: str
    from_commit: Optional[str] = None
    to_commit: str
    is_published: bool = False
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)
