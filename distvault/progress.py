"""Progress reporting for downloads and extraction.

A progress sink is any callable taking ``(done, total)`` where ``total`` may be
None when the size is unknown. Sinks are observers only: an exception raised
by a sink is logged and never interrupts a transfer.
"""

from __future__ import annotations

import logging
from typing import Callable

from rich.console import Console
from rich.progress import (
    BarColumn,
    DownloadColumn,
    Progress,
    TaskID,
    TextColumn,
    TimeRemainingColumn,
    TransferSpeedColumn,
)

logger = logging.getLogger(__name__)

ProgressSink = Callable[[int, "int | None"], None]


def notify(sink: ProgressSink | None, done: int, total: int | None) -> None:
    """Invoke a progress sink, swallowing its failures."""
    if sink is None:
        return
    try:
        sink(done, total)
    except Exception as e:
        logger.warning(f"Progress sink failed at {done} bytes: {e}")


class RichProgressSink:
    """Terminal progress bar backed by rich.

    Example:
        with RichProgressSink("Fetching v18.17.0") as sink:
            archive = await factory.fetch(url, cache_path, progress=sink)
    """

    def __init__(self, description: str, console: Console | None = None) -> None:
        self.description = description
        self.progress = Progress(
            TextColumn("[bold cyan]{task.description}"),
            BarColumn(),
            DownloadColumn(),
            TransferSpeedColumn(),
            TimeRemainingColumn(),
            console=console,
            transient=True,
        )
        self._task: TaskID | None = None

    def __enter__(self) -> RichProgressSink:
        self.progress.start()
        self._task = self.progress.add_task(self.description, total=None)
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.progress.stop()

    def __call__(self, done: int, total: int | None) -> None:
        if self._task is None:
            raise RuntimeError("Progress not started. Use as a context manager.")
        self.progress.update(self._task, completed=done, total=total)

    @property
    def completed(self) -> float:
        """Bytes reported so far."""
        if self._task is None:
            return 0
        task = next(t for t in self.progress.tasks if t.id == self._task)
        return task.completed
