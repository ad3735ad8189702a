"""SQLite persistence for users, repositories, commits and changelogs.

The store owns ids, timestamps and public slugs; the generation pipeline
hands it finished drafts and never touches SQL itself.
"""

import functools
import json
import re
import sqlite3
import threading
import uuid
from datetime import datetime
from pathlib import Path
from typing import Any, Callable, Optional

from delta.errors import StoreError
from delta.logger import get_logger
from delta.models import (
    Changelog,
    ChangelogCreate,
    Commit,
    GitHubRepositoryPayload,
    GitHubUserPayload,
    Repository,
    User,
    utcnow,
)

logger = get_logger(__name__)

SCHEMA = """
CREATE TABLE IF NOT EXISTS users (
    id TEXT PRIMARY KEY,
    github_id TEXT NOT NULL UNIQUE,
    username TEXT NOT NULL,
    email TEXT,
    avatar_url TEXT,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_users_username ON users (username);

CREATE TABLE IF NOT EXISTS repositories (
    id TEXT PRIMARY KEY,
    user_id TEXT NOT NULL,
    repo_name TEXT NOT NULL,
    repo_full_name TEXT NOT NULL,
    repo_url TEXT NOT NULL,
    github_repo_id INTEGER NOT NULL UNIQUE,
    default_branch TEXT NOT NULL,
    is_private INTEGER NOT NULL DEFAULT 0,
    has_changelogs INTEGER NOT NULL DEFAULT 0,
    connected_at TEXT NOT NULL,
    last_sync_at TEXT
);
CREATE INDEX IF NOT EXISTS idx_repositories_user ON repositories (user_id);
CREATE INDEX IF NOT EXISTS idx_repositories_full_name ON repositories (repo_full_name);

CREATE TABLE IF NOT EXISTS commits (
    id TEXT PRIMARY KEY,
    repo_id TEXT NOT NULL,
    commit_hash TEXT NOT NULL UNIQUE,
    commit_message TEXT NOT NULL,
    author_name TEXT NOT NULL,
    author_email TEXT NOT NULL,
    committed_at TEXT NOT NULL,
    created_at TEXT NOT NULL,
    processed INTEGER NOT NULL DEFAULT 0
);
CREATE INDEX IF NOT EXISTS idx_commits_repo ON commits (repo_id, committed_at);

CREATE TABLE IF NOT EXISTS changelogs (
    id TEXT PRIMARY KEY,
    repo_id TEXT NOT NULL,
    title TEXT NOT NULL,
    version TEXT,
    content TEXT NOT NULL,
    commit_hashes TEXT NOT NULL,
    public_slug TEXT NOT NULL UNIQUE,
    from_commit TEXT,
    to_commit TEXT NOT NULL,
    is_published INTEGER NOT NULL DEFAULT 0,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_changelogs_repo ON changelogs (repo_id, created_at);
CREATE INDEX IF NOT EXISTS idx_changelogs_version ON changelogs (repo_id, version);
"""

SLUG_ATTEMPTS = 5


# ── Slugs ─────────────────────────────────────────────────────────────────

def slugify(title: str) -> str:
    """Lowercase, URL-safe slug: alphanumeric runs joined by single hyphens."""
    base = re.sub(r"[^a-z0-9]+", "-", title.lower()).strip("-")
    return base or "changelog"


def unique_slug(base: str, exists: Callable[[str], bool]) -> str:
    """First of ``base``, ``base-1``, ``base-2``, … for which ``exists`` is False."""
    slug = base
    counter = 1
    while exists(slug):
        slug = f"{base}-{counter}"
        counter += 1
    return slug


def _new_id() -> str:
    return uuid.uuid4().hex


def _ts(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


def _parse_ts(value: Optional[str]) -> Optional[datetime]:
    return datetime.fromisoformat(value) if value else None


class ChangelogStore:
    """SQLite-backed store.

    One connection is shared between threads (the TUI runs work in a
    worker thread) and every statement runs under ``_lock``.
    """

    def __init__(self, db_path: str | Path) -> None:
        self.db_path = Path(db_path)
        self._conn: Optional[sqlite3.Connection] = None
        self._lock = threading.RLock()

    # ── Connection ────────────────────────────────────────────────────────

    @property
    def in_memory(self) -> bool:
        return str(self.db_path) == ":memory:"

    def connect(self) -> None:
        try:
            if not self.in_memory:
                self.db_path.parent.mkdir(parents=True, exist_ok=True)
            self._conn = sqlite3.connect(str(self.db_path), check_same_thread=False)
            self._conn.row_factory = sqlite3.Row
        except (sqlite3.Error, OSError) as e:
            raise StoreError(f"Failed to open database {self.db_path}: {e}") from e

    def close(self) -> None:
        if self._conn:
            self._conn.close()
            self._conn = None

    def create_schema(self) -> None:
        """Create tables and indexes; safe to run repeatedly."""
        try:
            with self._lock:
                self._require().executescript(SCHEMA)
                self._require().commit()
        except sqlite3.Error as e:
            raise StoreError(f"Failed to create schema: {e}") from e

    def _require(self) -> sqlite3.Connection:
        if self._conn is None:
            raise StoreError("No active connection")
        return self._conn

    def _execute(self, query: str, params: tuple = ()) -> sqlite3.Cursor:
        with self._lock:
            conn = self._require()
            try:
                cursor = conn.execute(query, params)
                conn.commit()
                return cursor
            except sqlite3.IntegrityError:
                conn.rollback()
                raise
            except sqlite3.Error as e:
                conn.rollback()
                raise StoreError(f"Query failed: {e}") from e

    def _fetchone(self, query: str, params: tuple = ()) -> Optional[dict[str, Any]]:
        with self._lock:
            try:
                row = self._require().execute(query, params).fetchone()
            except sqlite3.Error as e:
                raise StoreError(f"Query failed: {e}") from e
        return dict(row) if row else None

    def _fetchall(self, query: str, params: tuple = ()) -> list[dict[str, Any]]:
        with self._lock:
            try:
                rows = self._require().execute(query, params).fetchall()
            except sqlite3.Error as e:
                raise StoreError(f"Query failed: {e}") from e
        return [dict(r) for r in rows]

    # ── Users ─────────────────────────────────────────────────────────────

    def upsert_user(self, profile: GitHubUserPayload) -> User:
        """Create or refresh the user with this GitHub id."""
        github_id = str(profile.id)
        now = utcnow()
        with self._lock:
            existing = self.get_user_by_github_id(github_id)
            if existing:
                self._execute(
                    "UPDATE users SET username = ?, email = ?, avatar_url = ?, updated_at = ? "
                    "WHERE github_id = ?",
                    (profile.login, profile.email, profile.avatar_url, _ts(now), github_id),
                )
            else:
                self._execute(
                    "INSERT INTO users (id, github_id, username, email, avatar_url, "
                    "created_at, updated_at) VALUES (?, ?, ?, ?, ?, ?, ?)",
                    (_new_id(), github_id, profile.login, profile.email,
                     profile.avatar_url, _ts(now), _ts(now)),
                )
            user = self.get_user_by_github_id(github_id)
        if user is None:
            raise StoreError(f"User {github_id} vanished after upsert")
        return user

    def get_user_by_github_id(self, github_id: str) -> Optional[User]:
        row = self._fetchone("SELECT * FROM users WHERE github_id = ?", (github_id,))
        if not row:
            return None
        row["created_at"] = _parse_ts(row["created_at"])
        row["updated_at"] = _parse_ts(row["updated_at"])
        return User(**row)

    # ── Repositories ──────────────────────────────────────────────────────

    @staticmethod
    def _repository(row: dict[str, Any]) -> Repository:
        row["is_private"] = bool(row["is_private"])
        row["has_changelogs"] = bool(row["has_changelogs"])
        row["connected_at"] = _parse_ts(row["connected_at"])
        row["last_sync_at"] = _parse_ts(row["last_sync_at"])
        return Repository(**row)

    def find_or_create_repository(
        self, user_id: str, info: GitHubRepositoryPayload
    ) -> Repository:
        """Connect ``info`` for ``user_id``, refreshing metadata if already known."""
        with self._lock:
            row = self._fetchone(
                "SELECT id FROM repositories WHERE github_repo_id = ?", (info.id,)
            )
            if row:
                repo_id = row["id"]
                self._execute(
                    "UPDATE repositories SET repo_name = ?, repo_full_name = ?, repo_url = ?, "
                    "default_branch = ?, is_private = ? WHERE id = ?",
                    (info.name, info.full_name, info.html_url, info.default_branch,
                     int(info.private), repo_id),
                )
            else:
                repo_id = _new_id()
                self._execute(
                    "INSERT INTO repositories (id, user_id, repo_name, repo_full_name, repo_url, "
                    "github_repo_id, default_branch, is_private, has_changelogs, connected_at) "
                    "VALUES (?, ?, ?, ?, ?, ?, ?, ?, 0, ?)",
                    (repo_id, user_id, info.name, info.full_name, info.html_url, info.id,
                     info.default_branch, int(info.private), _ts(utcnow())),
                )
            repo = self.get_repository(repo_id)
        if repo is None:
            raise StoreError(f"Repository {info.full_name} vanished after upsert")
        return repo

    def get_repository(self, repo_id: str) -> Optional[Repository]:
        row = self._fetchone("SELECT * FROM repositories WHERE id = ?", (repo_id,))
        return self._repository(row) if row else None

    def get_repository_by_full_name(self, full_name: str) -> Optional[Repository]:
        row = self._fetchone(
            "SELECT * FROM repositories WHERE lower(repo_full_name) = lower(?)", (full_name,)
        )
        return self._repository(row) if row else None

    def list_user_repositories(self, user_id: str) -> list[Repository]:
        rows = self._fetchall(
            "SELECT * FROM repositories WHERE user_id = ? ORDER BY connected_at DESC",
            (user_id,),
        )
        return [self._repository(r) for r in rows]

    def update_repository_sync(self, repo_id: str) -> bool:
        cursor = self._execute(
            "UPDATE repositories SET last_sync_at = ? WHERE id = ?", (_ts(utcnow()), repo_id)
        )
        return cursor.rowcount > 0

    def set_has_changelogs(self, repo_id: str, value: bool = True) -> bool:
        cursor = self._execute(
            "UPDATE repositories SET has_changelogs = ? WHERE id = ?", (int(value), repo_id)
        )
        return cursor.rowcount > 0

    def delete_repository(self, repo_id: str) -> bool:
        cursor = self._execute("DELETE FROM repositories WHERE id = ?", (repo_id,))
        return cursor.rowcount > 0

    def count_changelogs(self, repo_id: str) -> int:
        row = self._fetchone(
            "SELECT COUNT(*) AS n FROM changelogs WHERE repo_id = ?", (repo_id,)
        )
        return row["n"] if row else 0

    # ── Commits ───────────────────────────────────────────────────────────

    def store_commits(self, repo_id: str, commits: list[Commit]) -> int:
        """Record fetched commits; already-known shas are skipped.

        Returns the number of new rows.
        """
        inserted = 0
        now = _ts(utcnow())
        for c in commits:
            cursor = self._execute(
                "INSERT OR IGNORE INTO commits (id, repo_id, commit_hash, commit_message, "
                "author_name, author_email, committed_at, created_at) "
                "VALUES (?, ?, ?, ?, ?, ?, ?, ?)",
                (_new_id(), repo_id, c.sha, c.message, c.author_name, c.author_email,
                 _ts(c.committed_at), now),
            )
            inserted += cursor.rowcount
        return inserted

    def list_commits(self, repo_id: str) -> list[Commit]:
        rows = self._fetchall(
            "SELECT * FROM commits WHERE repo_id = ? ORDER BY committed_at DESC", (repo_id,)
        )
        return [
            Commit(
                sha=r["commit_hash"],
                message=r["commit_message"],
                author_name=r["author_name"],
                author_email=r["author_email"],
                committed_at=_parse_ts(r["committed_at"]),
            )
            for r in rows
        ]

    # ── Changelogs ────────────────────────────────────────────────────────

    @staticmethod
    def _changelog(row: dict[str, Any]) -> Changelog:
        row["commit_hashes"] = json.loads(row["commit_hashes"])
        row["is_published"] = bool(row["is_published"])
        row["created_at"] = _parse_ts(row["created_at"])
        row["updated_at"] = _parse_ts(row["updated_at"])
        return Changelog(**row)

    def slug_exists(self, slug: str) -> bool:
        return self._fetchone(
            "SELECT 1 AS hit FROM changelogs WHERE public_slug = ?", (slug,)
        ) is not None

    def create_changelog(self, data: ChangelogCreate) -> Changelog:
        """Insert a changelog with a fresh id, timestamps and a unique slug."""
        base = slugify(data.title)
        changelog_id = _new_id()
        now = _ts(utcnow())
        with self._lock:
            for _ in range(SLUG_ATTEMPTS):
                slug = unique_slug(base, self.slug_exists)
                try:
                    self._execute(
                        "INSERT INTO changelogs (id, repo_id, title, version, content, "
                        "commit_hashes, public_slug, from_commit, to_commit, is_published, "
                        "created_at, updated_at) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
                        (changelog_id, data.repo_id, data.title, data.version, data.content,
                         json.dumps(data.commit_hashes), slug, data.from_commit,
                         data.to_commit, int(data.is_published), now, now),
                    )
                except sqlite3.IntegrityError:
                    # Another writer took the slug between check and insert.
                    logger.debug("Slug %s taken concurrently, retrying", slug)
                    continue
                break
            else:
                raise StoreError(f"Could not allocate a unique slug for {data.title!r}")
            changelog = self.get_changelog(changelog_id)
        if changelog is None:
            raise StoreError(f"Changelog {changelog_id} vanished after insert")
        logger.info("Stored changelog %s as /%s", changelog.title, changelog.public_slug)
        return changelog

    def get_changelog(self, changelog_id: str) -> Optional[Changelog]:
        row = self._fetchone("SELECT * FROM changelogs WHERE id = ?", (changelog_id,))
        return self._changelog(row) if row else None

    def get_changelog_by_slug(
        self, slug: str, published_only: bool = False
    ) -> Optional[Changelog]:
        row = self._fetchone("SELECT * FROM changelogs WHERE public_slug = ?", (slug,))
        if not row:
            return None
        changelog = self._changelog(row)
        if published_only and not changelog.is_published:
            return None
        return changelog

    def list_changelogs(self, repo_id: str) -> list[Changelog]:
        """Changelogs of a repository, newest first."""
        rows = self._fetchall(
            "SELECT * FROM changelogs WHERE repo_id = ? ORDER BY created_at DESC, rowid DESC",
            (repo_id,),
        )
        return [self._changelog(r) for r in rows]

    def update_changelog(
        self,
        changelog_id: str,
        *,
        title: Optional[str] = None,
        version: Optional[str] = None,
        content: Optional[str] = None,
        is_published: Optional[bool] = None,
    ) -> Optional[Changelog]:
        """Apply the given edits and bump ``updated_at``; None if not found."""
        fields: dict[str, Any] = {}
        if title is not None:
            fields["title"] = title
        if version is not None:
            fields["version"] = version
        if content is not None:
            fields["content"] = content
        if is_published is not None:
            fields["is_published"] = int(is_published)
        fields["updated_at"] = _ts(utcnow())

        assignments = ", ".join(f"{name} = ?" for name in fields)
        cursor = self._execute(
            f"UPDATE changelogs SET {assignments} WHERE id = ?",
            (*fields.values(), changelog_id),
        )
        if cursor.rowcount == 0:
            return None
        return self.get_changelog(changelog_id)

    def publish(self, changelog_id: str) -> bool:
        return self.update_changelog(changelog_id, is_published=True) is not None

    def unpublish(self, changelog_id: str) -> bool:
        return self.update_changelog(changelog_id, is_published=False) is not None

    def delete_changelog(self, changelog_id: str) -> bool:
        cursor = self._execute("DELETE FROM changelogs WHERE id = ?", (changelog_id,))
        return cursor.rowcount > 0


@functools.lru_cache(maxsize=None)
def init_store(db_path: str | Path) -> ChangelogStore:
    """Open the database and create the schema, once per path per process.

    Later calls with the same path return the same store.
    """
    store = ChangelogStore(db_path)
    store.connect()
    store.create_schema()
    logger.debug("Store ready at %s", db_path)
    return store
