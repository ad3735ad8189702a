"""Main Textual TUI application for delta."""

from textual.app import App

from delta.config import Settings
from delta.errors import DeltaError, FetchError, FetchErrorKind
from delta.generator import ChangelogGenerator
from delta.logger import get_logger
from delta.models import Changelog, GenerationStage, Repository
from delta.screens.home import HomeScreen
from delta.screens.loading import LoadingScreen
from delta.screens.results import ResultsScreen
from delta.store import ChangelogStore

logger = get_logger(__name__)


def describe_error(exc: Exception, has_token: bool) -> str:
    """One-line, user-facing explanation of a failed generation."""
    if isinstance(exc, FetchError):
        if exc.kind is FetchErrorKind.not_found:
            return f"❌ {exc.message}. Check the owner/repo name and try again."
        if exc.kind is FetchErrorKind.forbidden:
            if not has_token:
                return (
                    "❌ Access denied — no GitHub token found. "
                    "Set GITHUB_TOKEN (e.g. export GITHUB_TOKEN=$(gh auth token))."
                )
            return f"❌ {exc.message}"
        if exc.kind is FetchErrorKind.conflict:
            return f"❌ {exc.message}. Push some commits first."
        return f"❌ {exc.message}: {exc.detail or 'GitHub unavailable'}. Try again in a few minutes."
    if isinstance(exc, DeltaError):
        return f"❌ {exc.message}"
    return f"❌ Unexpected error: {exc}"


class DeltaApp(App):
    """TUI for generating and publishing changelogs."""

    TITLE = "Delta"
    SUB_TITLE = "Changelogs from commit history"

    CSS = """
    Screen {
        background: $background;
    }
    """

    BINDINGS = [
        ("q", "quit", "Quit"),
    ]

    def __init__(self, settings: Settings, store: ChangelogStore) -> None:
        super().__init__()
        self.settings = settings
        self.store = store

    def on_mount(self) -> None:
        self.push_screen(HomeScreen())

    def run_generation(self, owner: str, repo: str, limit: int, publish: bool) -> None:
        """Kick off a generation — called from HomeScreen."""
        loading = LoadingScreen(f"{owner}/{repo}")
        self.push_screen(loading)

        async def _do_work() -> None:
            def on_status(stage: GenerationStage, msg: str) -> None:
                self.call_from_thread(loading.advance, stage, msg)

            generator = ChangelogGenerator(
                store=self.store, settings=self.settings, on_status=on_status
            )
            try:
                user = await generator.connect_user()
                repository = await generator.connect_repository(user.id, owner, repo)
                changelog = await generator.generate(
                    repository.id, user.id, limit=limit, publish=publish
                )
                self.call_from_thread(self._show_results, changelog, repository)
            except Exception as e:
                logger.error("Generation for %s/%s failed: %s", owner, repo, e)
                msg = describe_error(e, has_token=bool(self.settings.github_token))
                self.call_from_thread(loading.fail, msg)
            finally:
                await generator.close()

        self.run_worker(_do_work(), thread=True)

    def _show_results(self, changelog: Changelog, repository: Repository) -> None:
        """Replace loading screen with results."""
        self.pop_screen()
        self.push_screen(
            ResultsScreen(
                changelog,
                repository,
                self.store,
                public_url=self.settings.public_url(changelog.public_slug),
            )
        )

