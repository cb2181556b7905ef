"""Rich-based progress reporter for terminal output."""

from __future__ import annotations

import threading
from typing import TYPE_CHECKING

from rich.console import Console
from rich.progress import (
    BarColumn,
    MofNCompleteColumn,
    Progress,
    TaskID,
    TextColumn,
    TimeElapsedColumn,
)


if TYPE_CHECKING:
    from types import TracebackType


class RichProgressTask:
    """One artifact's bar within a RichProgressReporter display."""

    def __init__(self, progress: Progress, task_id: TaskID, total: int) -> None:
        self._progress = progress
        self._task_id = task_id
        self._total = total

    @property
    def task_id(self) -> TaskID:
        """Identifier of the bar in the Rich display."""
        return self._task_id

    def advance(self, done: int) -> None:
        self._progress.update(self._task_id, completed=done)

    def finish(self) -> None:
        self._progress.update(self._task_id, completed=self._total)


class RichProgressReporter:
    """Progress reporter using Rich for terminal display.

    Shows one bar per layer fetch, labelled with the artifact reference.
    Output goes to stderr so resolved paths on stdout stay scriptable.
    The display starts on first use when the reporter is not entered as
    a context manager.

    Example:
        with RichProgressReporter() as reporter:
            registry = LoaderRegistry.from_environment(progress=reporter)
            path = registry.resolve("oci://registry.example/app:v1")
    """

    def __init__(self, console: Console | None = None) -> None:
        self._progress = Progress(
            TextColumn("[bold blue]{task.description}"),
            BarColumn(),
            MofNCompleteColumn(),
            TextColumn("layers"),
            TimeElapsedColumn(),
            console=console or Console(stderr=True),
            transient=True,
        )
        self._live = False
        self._live_lock = threading.Lock()

    def __enter__(self) -> RichProgressReporter:
        self._go_live()
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        with self._live_lock:
            if self._live:
                self._progress.stop()
                self._live = False

    def _go_live(self) -> None:
        with self._live_lock:
            if not self._live:
                self._progress.start()
                self._live = True

    def start_task(self, name: str, total: int) -> RichProgressTask:
        """Add a bar for one artifact fetch.

        Args:
            name: The artifact reference.
            total: Number of layers to fetch.

        Returns:
            A handle owning the new bar.
        """
        self._go_live()
        task_id = self._progress.add_task(name, total=total)
        return RichProgressTask(self._progress, task_id, total)
