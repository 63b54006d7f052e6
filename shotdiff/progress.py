"""Progress sinks — observability for a run, never read by the comparison path."""

from __future__ import annotations

from typing import Protocol

from rich.console import Console
from rich.progress import BarColumn, MofNCompleteColumn, Progress, TextColumn, TimeElapsedColumn

from shotdiff.models.diff_result import Unchanged


class ProgressSink(Protocol):
    def start(self, total: int) -> None: ...

    def advance(self, name: str, result: object | None) -> None: ...

    def finish(self) -> None: ...


class NullProgress:
    def start(self, total: int) -> None:
        pass

    def advance(self, name: str, result: object | None) -> None:
        pass

    def finish(self) -> None:
        pass


class RichProgress:
    """Console progress bar with a running count of different screenshots."""

    def __init__(self, console: Console | None = None):
        self.console = console or Console()
        self.processed = 0
        self.different = 0
        self._progress: Progress | None = None
        self._task = None

    def start(self, total: int) -> None:
        if total == 0:
            return
        self._progress = Progress(
            TextColumn("[bold blue]Diffing"),
            BarColumn(),
            MofNCompleteColumn(),
            TextColumn("incl. [yellow]{task.fields[different]}[/yellow] different"),
            TimeElapsedColumn(),
            console=self.console,
            transient=True,
        )
        self._task = self._progress.add_task("diff", total=total, different=0)
        self._progress.start()

    def advance(self, name: str, result: object | None) -> None:
        self.processed += 1
        if result is not None and not isinstance(result, Unchanged):
            self.different += 1
        if self._progress is not None:
            self._progress.update(self._task, advance=1, different=self.different)

    def finish(self) -> None:
        if self._progress is not None:
            self._progress.stop()
            self._progress = None
