"""Home screen — repository input and commit window selection."""

from textual import on
from textual.app import ComposeResult
from textual.containers import Center, Vertical
from textual.screen import Screen
from textual.widgets import Button, Checkbox, Footer, Header, Input, Label, Select, Static


class HomeScreen(Screen):
    """Collects the repository and how many commits to summarize."""

    CSS = """
    HomeScreen {
        align: center middle;
    }
    #home-container {
        width: 72;
        height: auto;
        padding: 1 4;
        border: round $primary;
        background: $surface;
    }
    #title-art {
        text-align: center;
        color: $accent;
    }
    #subtitle {
        text-align: center;
        color: $text-muted;
        margin-bottom: 2;
    }
    .field-label {
        margin-top: 1;
        color: $text;
    }
    #generate-btn {
        margin-top: 2;
        width: 100%;
    }
    #error-label {
        color: $error;
        text-align: center;
        margin-top: 1;
    }
    """

    TITLE_ART = """
  ╭──────────────────────────────────────────╮
  │                                          │
  │        ╺┳┓┏━╸╻  ╺┳╸┏━┓                   │
  │         ┃┃┣╸ ┃   ┃ ┣━┫                   │
  │        ╺┻┛┗━╸┗━╸ ╹ ╹ ╹                   │
  │                                          │
  │   Changelogs from your commit history    │
  ╰──────────────────────────────────────────╯
"""

    LIMIT_OPTIONS = [
        ("Last 10 commits", 10),
        ("Last 20 commits", 20),
        ("Last 50 commits", 50),
        ("Last 100 commits", 100),
    ]

    def compose(self) -> ComposeResult:
        yield Header(show_clock=True)
        with Center():
            with Vertical(id="home-container"):
                yield Static(self.TITLE_ART, id="title-art")
                yield Static("Fetch · Analyze · Publish", id="subtitle")
                yield Label("Repository (owner/repo):", classes="field-label")
                yield Input(placeholder="e.g. octocat/Hello-World", id="repo-input")
                yield Label("Commits:", classes="field-label")
                yield Select(
                    [(label, n) for label, n in self.LIMIT_OPTIONS],
                    value=20,
                    id="limit-select",
                )
                yield Checkbox("Publish immediately", value=True, id="publish-check")
                yield Button("▶  Generate Changelog", id="generate-btn", variant="primary")
                yield Label("", id="error-label")
        yield Footer()

    def on_mount(self) -> None:
        self.query_one("#repo-input", Input).focus()

    @on(Button.Pressed, "#generate-btn")
    def start_generation(self) -> None:
        repo_input = self.query_one("#repo-input", Input)
        limit_select = self.query_one("#limit-select", Select)
        error_label = self.query_one("#error-label", Label)

        repo = repo_input.value.strip()
        if "/" not in repo or len(repo.split("/")) != 2:
            error_label.update("⚠  Enter a valid owner/repo (e.g. octocat/Hello-World)")
            return

        owner, repo_name = repo.split("/", 1)
        if not owner or not repo_name:
            error_label.update("⚠  Both owner and repo name are required")
            return

        limit = limit_select.value
        if limit is Select.BLANK:
            limit = 20
        publish = self.query_one("#publish-check", Checkbox).value

        error_label.update("")
        self.app.run_generation(owner, repo_name, int(limit), publish)  # type: ignore[attr-defined]

    @on(Input.Submitted, "#repo-input")
    def submit_on_enter(self) -> None:
        self.start_generation()
