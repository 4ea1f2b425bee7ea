"""Progress reporting for bulk runs."""

import time
from typing import Optional

from rich.console import Console
from rich.progress import (
    BarColumn,
    Progress,
    SpinnerColumn,
    TaskProgressColumn,
    TextColumn,
)


def estimate_eta(elapsed: float, completed: int, total: int) -> Optional[float]:
    """Seconds remaining, assuming every item costs the average so far.

    Returns None until at least one item has completed.
    """
    if completed <= 0 or total <= completed:
        return None if completed <= 0 else 0.0
    return elapsed / completed * (total - completed)


def format_eta(seconds: Optional[float]) -> str:
    if seconds is None:
        return 'ETA --:--'
    minutes, secs = divmod(int(round(seconds)), 60)
    hours, minutes = divmod(minutes, 60)
    if hours:
        return f'ETA {hours}:{minutes:02d}:{secs:02d}'
    return f'ETA {minutes:02d}:{secs:02d}'


class ProgressReporter:
    """Base reporter: tracks wall-clock time and renders nothing."""

    def __init__(self):
        self.total = 0
        self.started_at: Optional[float] = None

    def start(self, total: int, description: str = '') -> None:
        self.total = total
        self.started_at = time.monotonic()

    def eta(self, current: int) -> Optional[float]:
        """ETA when item ``current`` (1-based) is about to start."""
        if self.started_at is None:
            return None
        return estimate_eta(time.monotonic() - self.started_at, current - 1, self.total)

    def update(self, current: int, total: int, item: str) -> None:
        pass

    def finish(self) -> None:
        pass


class RichProgressReporter(ProgressReporter):
    """Renders a rich progress bar with the current item and ETA."""

    def __init__(self, console: Optional[Console] = None):
        super().__init__()
        self.console = console or Console()
        self._progress: Optional[Progress] = None
        self._task_id = None

    def start(self, total: int, description: str = '') -> None:
        super().start(total, description)
        self._progress = Progress(
            SpinnerColumn(),
            TextColumn('[progress.description]{task.description}'),
            BarColumn(),
            TaskProgressColumn(),
            console=self.console,
        )
        self._progress.start()
        self._task_id = self._progress.add_task(description or 'Processing', total=total)

    def update(self, current: int, total: int, item: str) -> None:
        if self._progress is None:
            return
        self._progress.update(
            self._task_id,
            completed=current - 1,
            total=total,
            description=f'[blue]{current}/{total}[/blue] {item} ({format_eta(self.eta(current))})',
        )

    def finish(self) -> None:
        if self._progress is None:
            return
        self._progress.update(self._task_id, completed=self.total, description='[green]Done')
        self._progress.stop()
        self._progress = None
