"""Loading screen: a checklist of generation stages."""

from typing import Optional

from textual.app import ComposeResult
from textual.containers import Center, Vertical
from textual.css.query import NoMatches
from textual.screen import Screen
from textual.widgets import Footer, Header, Label, ProgressBar, Static

from delta.models import GenerationStage

STAGE_LABELS: list[tuple[GenerationStage, str]] = [
    (GenerationStage.profile, "Load GitHub profile"),
    (GenerationStage.connect, "Connect repository"),
    (GenerationStage.fetch, "Fetch latest commits"),
    (GenerationStage.compose, "Compose changelog"),
    (GenerationStage.save, "Store with public slug"),
]

PENDING, ACTIVE, DONE, FAILED = "·", "▶", "✔", "✖"


def stage_marks(
    current: Optional[GenerationStage], failed: bool = False
) -> dict[GenerationStage, str]:
    """Checklist mark for every stage, given the one in progress."""
    if current is GenerationStage.done:
        return {stage: DONE for stage, _ in STAGE_LABELS}
    order = [stage for stage, _ in STAGE_LABELS]
    position = order.index(current) if current in order else -1
    marks = {}
    for i, stage in enumerate(order):
        if i < position:
            marks[stage] = DONE
        elif i == position:
            marks[stage] = FAILED if failed else ACTIVE
        else:
            marks[stage] = PENDING
    return marks


def stage_progress(current: Optional[GenerationStage]) -> int:
    """Percent complete once ``current`` has started."""
    if current is GenerationStage.done:
        return 100
    order = [stage for stage, _ in STAGE_LABELS]
    if current not in order:
        return 0
    return int(order.index(current) / len(order) * 100)


class LoadingScreen(Screen):
    """Shows which stage of the pipeline is running, and where it failed."""

    BINDINGS = [
        ("b", "go_back", "Back"),
    ]

    CSS = """
    LoadingScreen {
        align: center middle;
    }
    #stages {
        width: 64;
        height: auto;
        padding: 1 3;
        border: round $primary;
        background: $surface;
    }
    #stages-title {
        text-style: bold;
        margin-bottom: 1;
    }
    .stage {
        color: $text-muted;
    }
    #detail {
        margin-top: 1;
    }
    #hint {
        color: $warning;
    }
    """

    def __init__(self, repo_full_name: str = "", **kwargs) -> None:  # type: ignore[no-untyped-def]
        super().__init__(**kwargs)
        self.repo_full_name = repo_full_name
        self.current: Optional[GenerationStage] = None

    def compose(self) -> ComposeResult:
        yield Header(show_clock=True)
        with Center():
            with Vertical(id="stages"):
                yield Static(f"📝  {self.repo_full_name or 'Changelog'}", id="stages-title")
                for stage, label in STAGE_LABELS:
                    yield Static(f"{PENDING}  {label}", id=f"stage-{stage.value}", classes="stage")
                yield ProgressBar(total=100, show_eta=False, id="progress")
                yield Label("", id="detail")
                yield Label("", id="hint")
        yield Footer()

    def _redraw(self, failed: bool = False) -> None:
        marks = stage_marks(self.current, failed)
        for stage, label in STAGE_LABELS:
            self.query_one(f"#stage-{stage.value}", Static).update(f"{marks[stage]}  {label}")

    def advance(self, stage: GenerationStage, message: str) -> None:
        """Mark ``stage`` as running and show its status line."""
        self.current = stage
        try:
            self._redraw()
            self.query_one("#progress", ProgressBar).update(progress=stage_progress(stage))
            self.query_one("#detail", Label).update(message)
        except NoMatches:
            # Screen already dismissed.
            pass

    def fail(self, message: str) -> None:
        try:
            self._redraw(failed=True)
            self.query_one("#detail", Label).update(message)
            self.query_one("#hint", Label).update("Press [b]b[/b] to go back and try again.")
        except NoMatches:
            pass

    def action_go_back(self) -> None:
        self.app.pop_screen()
