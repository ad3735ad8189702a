"""Changelog composition: AI-written Markdown with a deterministic fallback."""

import asyncio
from datetime import datetime, timezone
from typing import Optional, Protocol

from delta.analysis.commits import analyze_commits, group_commits_by_month, is_sparse_repo
from delta.analysis.fallback import insights_footer, render_fallback_changelog
from delta.analysis.prompt import build_changelog_prompt
from delta.errors import EmptyCommitListError, GenerationError
from delta.logger import get_logger
from delta.models import ChangelogDraft, Commit

logger = get_logger(__name__)


class Generator(Protocol):
    async def generate(self, prompt: str) -> str: ...


def make_version(now: datetime) -> str:
    """Date-based version tag, ``vYYYY.MM.DD``."""
    return f"v{now.year:04d}.{now.month:02d}.{now.day:02d}"


class ChangelogComposer:
    """Turns a commit list into a titled, versioned Markdown changelog.

    ``generator`` may be None (no API key configured), in which case every
    changelog comes from the fallback formatter.
    """

    def __init__(self, generator: Optional[Generator] = None, timeout: float = 60.0) -> None:
        self.generator = generator
        self.timeout = timeout

    async def compose(
        self,
        commits: list[Commit],
        repo_name: str,
        repo_full_name: str,
        repo_url: Optional[str] = None,
        is_private: bool = False,
        now: Optional[datetime] = None,
    ) -> ChangelogDraft:
        if not commits:
            raise EmptyCommitListError()

        now = now or datetime.now(timezone.utc)
        version = make_version(now)
        title = f"{repo_name} - {version}"

        analysis = analyze_commits(commits)
        groups = group_commits_by_month(commits)

        if self.generator is not None:
            prompt = build_changelog_prompt(
                repo_name=repo_name,
                repo_full_name=repo_full_name,
                version=version,
                analysis=analysis,
                groups=groups,
                sparse=is_sparse_repo(commits, analysis),
                repo_url=repo_url,
                is_private=is_private,
            )
            try:
                generated = await asyncio.wait_for(
                    self.generator.generate(prompt), timeout=self.timeout
                )
                if not generated or not generated.strip():
                    raise GenerationError("Text generator returned no content")
            except Exception as e:
                # Any failure of the single attempt degrades to the fallback.
                logger.warning(
                    "AI generation failed for %s, using fallback: %s",
                    repo_full_name,
                    str(e) or type(e).__name__,
                )
            else:
                footer = insights_footer(analysis, len(groups), now, fallback=False)
                return ChangelogDraft(
                    title=title,
                    content=f"{generated}\n\n---\n\n{footer}",
                    version=version,
                )
        else:
            logger.info("No text generator configured; composing %s offline", repo_full_name)

        content = render_fallback_changelog(commits, title, analysis, now)
        return ChangelogDraft(title=title, content=content, version=version, used_fallback=True)
