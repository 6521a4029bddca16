"""
geco/cli/ui/progress.py - Progress display for parallel fetches

One progress line per dispatch phase, fed by the bounded dispatcher as each
per-project task reports. Success and failure counts travel as task fields,
so the columns need no reference to the tracker.

Example:
    from geco.cli.ui.progress import parallel_progress

    with parallel_progress("loading instances") as tracker:
        result = dispatcher.dispatch(tasks, progress_tracker=tracker)

    success, failed, total = tracker.stats
"""

from __future__ import annotations

import threading
from collections.abc import Generator
from contextlib import contextmanager
from typing import TYPE_CHECKING

from rich.progress import (
    BarColumn,
    MofNCompleteColumn,
    Progress,
    ProgressColumn,
    SpinnerColumn,
    Task,
    TaskID,
    TextColumn,
    TimeElapsedColumn,
)
from rich.text import Text

if TYPE_CHECKING:
    from rich.console import Console

from .console import err_console


class SuccessFailColumn(ProgressColumn):
    """Success/fail counts from the task fields: '40✓ 10✗'"""

    def render(self, task: Task) -> Text:
        text = Text()
        text.append(f"{task.fields.get('success', 0)}✓ ", style="green")
        text.append(f"{task.fields.get('failed', 0)}✗", style="red")
        return text


def create_columns() -> list[ProgressColumn]:
    """[spinner] loading instances 40✓ 10✗ / 50 [bar] 00:15"""
    return [
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        SuccessFailColumn(),
        TextColumn("/"),
        MofNCompleteColumn(),
        BarColumn(bar_width=40),
        TimeElapsedColumn(),
    ]


class ParallelTracker:
    """Thread-safe progress tracker for one dispatch

    ``on_complete`` may be called from any thread.
    """

    def __init__(self, progress: Progress, task_id: TaskID) -> None:
        self._progress = progress
        self._task_id = task_id
        self._lock = threading.Lock()
        self._success = 0
        self._failed = 0
        self._total = 0

    def set_total(self, total: int) -> None:
        """Set the number of tasks; called once by the dispatcher"""
        with self._lock:
            self._total = total
            self._progress.update(self._task_id, total=total)

    def on_complete(self, success: bool) -> None:
        """Record one task report"""
        with self._lock:
            if success:
                self._success += 1
            else:
                self._failed += 1
            self._progress.update(
                self._task_id,
                completed=self._success + self._failed,
                success=self._success,
                failed=self._failed,
            )

    @property
    def stats(self) -> tuple[int, int, int]:
        """(success, failed, total)"""
        with self._lock:
            return (self._success, self._failed, self._total)


@contextmanager
def parallel_progress(
    description: str,
    console: Console | None = None,
) -> Generator[ParallelTracker, None, None]:
    """Progress line with success/failure counts

    Renders on stderr by default so stdout stays clean for command output.

    Args:
        description: Label shown before the counts
        console: Rich console (default: stderr console)

    Yields:
        ParallelTracker to hand to ``BoundedTaskDispatcher.dispatch``
    """
    progress = Progress(*create_columns(), console=console or err_console, expand=False)

    with progress:
        task_id = progress.add_task(f"[cyan]{description}", total=None, success=0, failed=0)
        tracker = ParallelTracker(progress, task_id)
        try:
            yield tracker
        finally:
            _success, failed, total = tracker.stats
            if total > 0:
                if failed == 0:
                    final_desc = f"[green]{description} done"
                else:
                    final_desc = f"[yellow]{description} done ({failed} failed)"
                progress.update(task_id, description=final_desc)
