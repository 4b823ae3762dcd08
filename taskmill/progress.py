"""Rich progress bar for a single pool run."""

from rich.console import Console
from rich.progress import (
    Progress,
    BarColumn,
    TextColumn,
    TaskProgressColumn,
    TimeRemainingColumn,
)


class RunProgress:
    def __init__(self, total: int, prefix: str = "", width: int = 40, unit: str = "tasks", console: Console = None):
        self.total = total
        self.prefix = prefix
        self.unit = unit

        self._progress = Progress(
            TextColumn(f"[bold cyan]{prefix}[/bold cyan]{{task.description}}"),
            BarColumn(
                bar_width=width,
                style="grey23",
                complete_style="green",
                finished_style="bold green",
            ),
            TaskProgressColumn(style="bold cyan"),
            TextColumn("[dim]•[/dim]"),
            TextColumn("{task.fields[rate]}", justify="right"),
            TextColumn("[dim]•[/dim]"),
            TimeRemainingColumn(),
            TextColumn("[dim]•[/dim]"),
            TextColumn("{task.fields[suffix]}", justify="right"),
            console=console,
            transient=True,
        )

        self._task_id = None
        self._started = False
        self.completed = 0
        self.failed = 0

    def __enter__(self):
        self.start()
        return self

    def __exit__(self, *args):
        self.finish()
        return False

    def start(self):
        if self._started:
            return
        self._progress.start()
        self._task_id = self._progress.add_task("", total=self.total, rate="", suffix="")
        self._started = True

    def advance(self, success: bool = True):
        if not self._started:
            self.start()

        self.completed += 1
        if not success:
            self.failed += 1

        elapsed = self._progress.tasks[self._task_id].elapsed or 0.01
        rate = f"{self.completed / elapsed:.1f} {self.unit}/sec"
        suffix = f"[red]{self.failed} failed[/red]" if self.failed else ""

        self._progress.update(
            self._task_id,
            completed=self.completed,
            rate=rate,
            suffix=suffix,
        )

    def finish(self, message: str = ""):
        if self._started:
            self._progress.stop()
            self._started = False

        if message:
            self._progress.console.print(message)
