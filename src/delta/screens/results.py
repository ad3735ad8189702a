"""Results screen — generated changelog plus the repository's history."""

from textual.app import ComposeResult
from textual.containers import VerticalScroll
from textual.screen import Screen
from textual.widgets import DataTable, Footer, Header, Markdown, Static, TabbedContent, TabPane

from delta.models import Changelog, Repository
from delta.store import ChangelogStore


class ResultsScreen(Screen):
    """Shows one changelog and lets the user publish or unpublish it."""

    CSS = """
    ResultsScreen {
        layout: vertical;
    }
    #results-header {
        height: 3;
        background: $primary;
        color: $text;
        text-align: center;
        padding: 1 2;
        text-style: bold;
    }
    #publish-status {
        margin: 1 2;
        color: $text-muted;
    }
    #commits-table, #history-table {
        height: auto;
        margin: 1 0;
    }
    """

    BINDINGS = [
        ("q", "quit", "Quit"),
        ("b", "go_back", "Back"),
        ("p", "toggle_publish", "Publish/Unpublish"),
    ]

    def __init__(
        self,
        changelog: Changelog,
        repository: Repository,
        store: ChangelogStore,
        public_url: str,
        **kwargs,
    ) -> None:  # type: ignore[no-untyped-def]
        super().__init__(**kwargs)
        self.changelog = changelog
        self.repository = repository
        self.store = store
        self.public_url = public_url

    def compose(self) -> ComposeResult:
        yield Header(show_clock=True)
        yield Static(
            f"  📝  {self.repository.repo_full_name}  ·  {self.changelog.version or ''}  ",
            id="results-header",
        )
        yield Static(self._publish_text(), id="publish-status")
        with TabbedContent("📝 Changelog", "🔖 Commits", "🗂 History"):
            with TabPane("📝 Changelog"):
                with VerticalScroll():
                    yield Markdown(self.changelog.content)
            with TabPane("🔖 Commits"):
                yield DataTable(id="commits-table")
            with TabPane("🗂 History"):
                yield DataTable(id="history-table")
        yield Footer()

    def on_mount(self) -> None:
        commits_table = self.query_one("#commits-table", DataTable)
        commits_table.add_columns("SHA", "Date", "Author", "Message")
        included = set(self.changelog.commit_hashes)
        for c in self.store.list_commits(self.repository.id):
            if c.sha in included:
                commits_table.add_row(
                    c.short_sha, f"{c.committed_at:%Y-%m-%d}", c.author_name, c.summary
                )

        table = self.query_one("#history-table", DataTable)
        table.add_columns("Title", "Slug", "Commits", "Published", "Created")
        for cl in self.store.list_changelogs(self.repository.id):
            table.add_row(
                cl.title,
                cl.public_slug,
                str(len(cl.commit_hashes)),
                "yes" if cl.is_published else "no",
                f"{cl.created_at:%Y-%m-%d %H:%M}",
            )

    def _publish_text(self) -> str:
        if self.changelog.is_published:
            return f"🌐 Published at {self.public_url}"
        return f"🔒 Draft (slug: {self.changelog.public_slug}) — press p to publish"

    def action_toggle_publish(self) -> None:
        if self.changelog.is_published:
            self.store.unpublish(self.changelog.id)
        else:
            self.store.publish(self.changelog.id)
        updated = self.store.get_changelog(self.changelog.id)
        if updated is not None:
            self.changelog = updated
        self.query_one("#publish-status", Static).update(self._publish_text())

    def action_go_back(self) -> None:
        self.app.pop_screen()
