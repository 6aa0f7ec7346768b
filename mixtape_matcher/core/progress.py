"""
Progress bar for batch resolution, using the Rich library.

Usage:
    from mixtape_matcher.core.progress import MatchingProgressBar

    with MatchingProgressBar(total=len(queries)) as progress:
        pipeline.resolve_all(queries, progress_bar=progress)
"""

from typing import Optional

from rich import get_console
from rich.console import JustifyMethod, OverflowMethod
from rich.progress import (
    BarColumn,
    Progress,
    ProgressColumn,
    Task,
    TaskID,
)
from rich.style import StyleType
from rich.text import Text
from rich.theme import Theme


PROGRESS_THEME = Theme({
    "bar.back": "grey23",
    "bar.complete": "rgb(165,66,129)",
    "bar.finished": "rgb(114,156,31)",
    "bar.pulse": "rgb(165,66,129)",
    "progress.percentage": "white",
})


class SizedTextColumn(ProgressColumn):
    """
    Text column truncated (with ellipsis) to a fixed width.
    """

    def __init__(
        self,
        text_format: str,
        style: StyleType = "none",
        justify: JustifyMethod = "left",
        overflow: Optional[OverflowMethod] = None,
        width: int = 20,
    ) -> None:
        self.text_format = text_format
        self.justify: JustifyMethod = justify
        self.style = style
        self.overflow: Optional[OverflowMethod] = overflow
        self.width = width
        super().__init__()

    def render(self, task: Task) -> Text:
        text = Text.from_markup(
            self.text_format.format(task=task), style=self.style, justify=self.justify
        )
        text.truncate(max_width=self.width, overflow=self.overflow, pad=True)
        return text


class MatchingProgressBar:
    """
    Progress bar for resolving a batch of tracks.

    Displays:
    - Description (e.g., "Matching")
    - Status: ✓ matched, ✗ unmatched, ◆ served from cache
    - Progress bar
    - Percentage

    Example:
        Matching        ✓ 45  ✗ 2  ◆ 30        ━━━━━━━━━━━━━━━━━  47%
    """

    def __init__(self, total: int, description: str = "Matching", status_width: int = 35) -> None:
        self.total = total
        self.description = description
        self.completed = 0
        self.matched = 0
        self.failed = 0
        self.cached = 0

        self.console = get_console()
        self.console.push_theme(PROGRESS_THEME)

        self.progress = Progress(
            SizedTextColumn(
                "[white]{task.description}",
                overflow="ellipsis",
                width=15,
            ),
            SizedTextColumn(
                "{task.fields[status]}",
                width=status_width,
                style="white",
            ),
            BarColumn(bar_width=40, finished_style="green"),
            "[progress.percentage]{task.percentage:>3.0f}%",
            console=self.console,
            transient=False,
            refresh_per_second=10,
        )

        self.task_id: Optional[TaskID] = None
        self._started = False

    def __enter__(self) -> "MatchingProgressBar":
        self.start()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.stop()

    def start(self) -> None:
        if not self._started:
            self.progress.start()
            self.task_id = self.progress.add_task(
                description=self.description,
                total=self.total,
                status=self._get_status_text(),
            )
            self._started = True

    def stop(self) -> None:
        if self._started:
            self.progress.stop()
            self.console.pop_theme()
            self._started = False

    def log(self, message: str) -> None:
        """Print a message above the progress bar."""
        self.progress.console.print(message, highlight=False)

    def _get_status_text(self) -> str:
        parts = [
            f"[green]✓ {self.matched}[/green]",
            f"[red]✗ {self.failed}[/red]",
        ]
        if self.cached > 0:
            parts.append(f"[magenta]◆ {self.cached}[/magenta]")
        return "  ".join(parts)

    def update(self, matched: bool, from_cache: bool = False) -> None:
        """
        Record one finished track.

        Args:
            matched: Whether the track was matched.
            from_cache: Whether the match came from the cache.
        """
        self.completed += 1
        if matched:
            self.matched += 1
            if from_cache:
                self.cached += 1
        else:
            self.failed += 1

        if self.task_id is not None:
            self.progress.update(
                self.task_id,
                completed=self.completed,
                status=self._get_status_text(),
            )
