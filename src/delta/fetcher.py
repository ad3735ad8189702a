"""GitHub data fetching via REST API."""

from datetime import datetime
from typing import Optional

import httpx
from pydantic import ValidationError

from delta.errors import FetchError, FetchErrorKind
from delta.logger import get_logger
from delta.models import (
    Commit,
    GitHubCommitPayload,
    GitHubRepositoryPayload,
    GitHubUserPayload,
)

logger = get_logger(__name__)


def classify_response(resp: httpx.Response) -> Optional[FetchErrorKind]:
    """Map a GitHub response to a :class:`FetchErrorKind`, or None if OK."""
    status = resp.status_code
    if status < 400:
        return None
    if status == 404:
        return FetchErrorKind.not_found
    if status == 409:
        return FetchErrorKind.conflict
    if status == 429:
        return FetchErrorKind.unavailable
    if status in (401, 403):
        if "rate limit" in resp.text.lower():
            return FetchErrorKind.unavailable
        return FetchErrorKind.forbidden
    return FetchErrorKind.unavailable


class GitHubFetcher:
    """Fetches commits, repositories and the user profile from GitHub."""

    def __init__(self, token: Optional[str] = None) -> None:
        self.token = token
        self.base_url = "https://api.github.com"
        self._client: Optional[httpx.AsyncClient] = None

    # ── HTTP plumbing ─────────────────────────────────────────────────────

    @property
    def headers(self) -> dict[str, str]:
        h: dict[str, str] = {
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": "2022-11-28",
            "User-Agent": "delta-changelog",
        }
        if self.token:
            h["Authorization"] = f"Bearer {self.token}"
        return h

    async def _client_instance(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                headers=self.headers,
                timeout=30.0,
            )
        return self._client

    async def _get_json(self, path: str, **kwargs):  # type: ignore[no-untyped-def]
        """GET ``path`` and decode JSON, raising :class:`FetchError` on failure."""
        client = await self._client_instance()
        try:
            resp = await client.get(path, **kwargs)
        except httpx.HTTPError as e:
            logger.warning("GitHub request %s failed: %s", path, e)
            raise FetchError(FetchErrorKind.unavailable, str(e)) from e

        kind = classify_response(resp)
        if kind is not None:
            logger.warning("GitHub %s returned %s", path, resp.status_code)
            raise FetchError(kind, f"HTTP {resp.status_code} {resp.reason_phrase}")

        try:
            return resp.json()
        except ValueError as e:
            raise FetchError(FetchErrorKind.unavailable, "invalid JSON from GitHub") from e

    async def close(self) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None

    # ── Commits ───────────────────────────────────────────────────────────

    async def fetch_commits(
        self,
        owner: str,
        repo: str,
        branch: Optional[str] = None,
        since: Optional[datetime] = None,
        until: Optional[datetime] = None,
        per_page: int = 20,
        page: int = 1,
    ) -> list[Commit]:
        """Fetch one page of commits, newest first."""
        params: dict[str, str] = {"per_page": str(per_page), "page": str(page)}
        if branch:
            params["sha"] = branch
        if since:
            params["since"] = since.isoformat()
        if until:
            params["until"] = until.isoformat()

        raw = await self._get_json(f"/repos/{owner}/{repo}/commits", params=params)
        if not isinstance(raw, list):
            raise FetchError(FetchErrorKind.unavailable, "unexpected commits payload")
        try:
            return [GitHubCommitPayload.model_validate(item).to_commit() for item in raw]
        except ValidationError as e:
            raise FetchError(FetchErrorKind.unavailable, "malformed commit payload") from e

    async def fetch_latest_commits(
        self, owner: str, repo: str, limit: int = 20
    ) -> list[Commit]:
        """Latest ``limit`` commits on the default branch, newest first.

        An empty repository raises ``FetchError(conflict)`` rather than
        returning an empty list.
        """
        branch = await self.fetch_default_branch(owner, repo)
        commits = await self.fetch_commits(owner, repo, branch=branch, per_page=limit)
        if not commits:
            raise FetchError(FetchErrorKind.conflict, f"{owner}/{repo} has no commits")
        logger.debug("Fetched %d commits from %s/%s@%s", len(commits), owner, repo, branch)
        return commits

    # ── Repositories ──────────────────────────────────────────────────────

    async def fetch_repo_info(self, owner: str, repo: str) -> GitHubRepositoryPayload:
        """Fetch basic repo information."""
        raw = await self._get_json(f"/repos/{owner}/{repo}")
        try:
            return GitHubRepositoryPayload.model_validate(raw)
        except ValidationError as e:
            raise FetchError(FetchErrorKind.unavailable, "malformed repository payload") from e

    async def fetch_default_branch(self, owner: str, repo: str) -> str:
        """Get the default branch name for a repository."""
        info = await self.fetch_repo_info(owner, repo)
        return info.default_branch

    async def fetch_user_repositories(
        self, per_page: int = 100, max_pages: int = 10
    ) -> list[GitHubRepositoryPayload]:
        """Repositories the user owns or collaborates on, recently updated first."""
        results: list[GitHubRepositoryPayload] = []
        for page in range(1, max_pages + 1):
            raw = await self._get_json(
                "/user/repos",
                params={
                    "sort": "updated",
                    "direction": "desc",
                    "affiliation": "owner,collaborator",
                    "per_page": str(per_page),
                    "page": str(page),
                },
            )
            if not raw:
                break
            try:
                results.extend(GitHubRepositoryPayload.model_validate(item) for item in raw)
            except ValidationError as e:
                raise FetchError(FetchErrorKind.unavailable, "malformed repository payload") from e
            if len(raw) < per_page:
                break
        return results

    # ── User ──────────────────────────────────────────────────────────────

    async def fetch_user(self) -> GitHubUserPayload:
        """Profile of the token's owner."""
        raw = await self._get_json("/user")
        try:
            return GitHubUserPayload.model_validate(raw)
        except ValidationError as e:
            raise FetchError(FetchErrorKind.unavailable, "malformed user payload") from e
