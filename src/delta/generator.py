"""Changelog generation pipeline.

Fetches the latest commits of a connected repository, composes a changelog
from them and stores the result with a public slug.
"""

from typing import Callable, Optional

from delta.analysis.composer import ChangelogComposer
from delta.config import Settings
from delta.errors import (
    AccessDeniedError,
    FetchError,
    FetchErrorKind,
    RepositoryNotFoundError,
)
from delta.fetcher import GitHubFetcher
from delta.llm import TextGenerator
from delta.logger import get_logger
from delta.models import (
    Changelog,
    ChangelogCreate,
    GenerationStage,
    Repository,
    RepositorySummary,
    User,
)
from delta.store import ChangelogStore

logger = get_logger(__name__)


class ChangelogGenerator:
    """End-to-end changelog generation for one user's repositories."""

    def __init__(
        self,
        store: ChangelogStore,
        settings: Optional[Settings] = None,
        fetcher: Optional[GitHubFetcher] = None,
        composer: Optional[ChangelogComposer] = None,
        on_status: Optional[Callable[[GenerationStage, str], None]] = None,
    ) -> None:
        self.settings = settings or Settings()
        self.store = store
        self._fetcher = fetcher or GitHubFetcher(token=self.settings.github_token)
        self._text_generator: Optional[TextGenerator] = None
        if composer is None:
            if self.settings.openai_api_key:
                self._text_generator = TextGenerator(
                    api_key=self.settings.openai_api_key,
                    model=self.settings.model,
                    max_tokens=self.settings.max_tokens,
                    temperature=self.settings.temperature,
                    timeout=self.settings.llm_timeout,
                )
            composer = ChangelogComposer(
                generator=self._text_generator, timeout=self.settings.llm_timeout
            )
        self._composer = composer
        self._on_status = on_status or (lambda stage, msg: None)

    # ── Status helper ─────────────────────────────────────────────────────

    def _status(self, stage: GenerationStage, msg: str) -> None:
        logger.info(msg)
        self._on_status(stage, msg)

    async def close(self) -> None:
        """Tear down HTTP clients."""
        await self._fetcher.close()
        if self._text_generator is not None:
            await self._text_generator.close()

    # ── Users & repositories ──────────────────────────────────────────────

    async def connect_user(self) -> User:
        """Upsert the user who owns the configured GitHub token."""
        self._status(GenerationStage.profile, "Loading GitHub profile …")
        profile = await self._fetcher.fetch_user()
        return self.store.upsert_user(profile)

    async def connect_repository(self, user_id: str, owner: str, repo: str) -> Repository:
        """Connect ``owner/repo`` for ``user_id`` (refreshes it if already connected)."""
        self._status(GenerationStage.connect, f"Connecting {owner}/{repo} …")
        info = await self._fetcher.fetch_repo_info(owner, repo)
        return self.store.find_or_create_repository(user_id, info)

    async def available_repositories(self) -> list[str]:
        """Full names of repositories the token can see."""
        repos = await self._fetcher.fetch_user_repositories()
        return [r.full_name for r in repos]

    async def repository_overview(
        self, user_id: str, include_remote: bool = False
    ) -> list[RepositorySummary]:
        """Connected repositories with their changelog counts, newest first.

        With ``include_remote`` the repositories the token can see but that
        are not connected yet follow, with a count of zero.
        """
        summaries = [
            RepositorySummary(
                full_name=r.repo_full_name,
                connected=True,
                changelog_count=self.store.count_changelogs(r.id),
                last_sync_at=r.last_sync_at,
            )
            for r in self.store.list_user_repositories(user_id)
        ]
        if include_remote:
            known = {s.full_name.lower() for s in summaries}
            summaries += [
                RepositorySummary(full_name=name, connected=False)
                for name in await self.available_repositories()
                if name.lower() not in known
            ]
        return summaries

    def _owned_repository(self, repo_id: str, user_id: str) -> Repository:
        repository = self.store.get_repository(repo_id)
        if repository is None:
            raise RepositoryNotFoundError()
        if repository.user_id != user_id:
            raise AccessDeniedError()
        return repository

    # ── Generation ────────────────────────────────────────────────────────

    async def generate(
        self,
        repo_id: str,
        user_id: str,
        limit: Optional[int] = None,
        publish: bool = True,
    ) -> Changelog:
        """Fetch → analyze → compose → store, strictly in sequence.

        Raises:
            RepositoryNotFoundError: ``repo_id`` is not connected.
            AccessDeniedError: the repository belongs to someone else.
            FetchError: GitHub failed, or the repository has no commits.
        """
        repository = self._owned_repository(repo_id, user_id)
        owner, name = repository.owner_and_name
        limit = limit or self.settings.commit_limit

        self._status(
            GenerationStage.fetch,
            f"Fetching latest {limit} commits from {repository.repo_full_name} …",
        )
        commits = await self._fetcher.fetch_latest_commits(owner, name, limit)
        if not commits:
            raise FetchError(FetchErrorKind.conflict, f"{repository.repo_full_name} has no commits")

        new = self.store.store_commits(repository.id, commits)
        logger.debug("Recorded %d new commits for %s", new, repository.repo_full_name)

        self._status(
            GenerationStage.compose, f"Composing changelog from {len(commits)} commits …"
        )
        draft = await self._composer.compose(
            commits,
            repo_name=repository.repo_name,
            repo_full_name=repository.repo_full_name,
            repo_url=repository.repo_url,
            is_private=repository.is_private,
        )
        if draft.used_fallback:
            self._status(
                GenerationStage.compose, "AI generation unavailable, used pattern analysis"
            )

        self._status(GenerationStage.save, "Saving changelog …")
        changelog = self.store.create_changelog(
            ChangelogCreate(
                repo_id=repository.id,
                title=draft.title,
                version=draft.version,
                content=draft.content,
                commit_hashes=[c.sha for c in commits],
                from_commit=commits[-1].sha,
                to_commit=commits[0].sha,
                is_published=publish,
            )
        )
        self.store.set_has_changelogs(repository.id)
        self.store.update_repository_sync(repository.id)

        self._status(GenerationStage.done, "Done!")
        return changelog
