from __future__ import annotations

import logging
from typing import Optional

from rich.console import Console
from rich.progress import (
    BarColumn,
    DownloadColumn,
    Progress,
    SpinnerColumn,
    TaskID,
    TextColumn,
    TimeRemainingColumn,
    TransferSpeedColumn,
)

from asset_stager.application.interfaces import IProgressReporter
from asset_stager.core.config import MIN_PROGRESS_REFRESH_INTERVAL

logger = logging.getLogger(__name__)


class RichProgressReporter(IProgressReporter):
    """Transient download bar on stderr.

    rich redraws from its own refresh thread at most `1 / refresh_interval`
    times per second, so `advance` only bumps a counter under a lock and the
    byte copy is never held up by terminal output.
    """

    def __init__(
        self,
        console: Optional[Console] = None,
        refresh_interval: float = MIN_PROGRESS_REFRESH_INTERVAL,
    ) -> None:
        self.console = console or Console(stderr=True)
        self.refresh_interval = max(refresh_interval, MIN_PROGRESS_REFRESH_INTERVAL)
        self._progress: Optional[Progress] = None
        self._task: Optional[TaskID] = None
        self._description = ""
        self._completed = False

    def start(self, description: str, total: Optional[int]) -> None:
        self.close()
        self._description = description
        self._completed = False
        self._progress = Progress(
            SpinnerColumn(),
            TextColumn("[bold blue]{task.description}"),
            BarColumn(),
            DownloadColumn(),
            TransferSpeedColumn(),
            TimeRemainingColumn(),
            console=self.console,
            transient=True,
            refresh_per_second=1.0 / self.refresh_interval,
        )
        self._progress.start()
        self._task = self._progress.add_task(f"Downloading {description}", total=total)

    def advance(self, nbytes: int) -> None:
        if self._progress is not None and self._task is not None:
            self._progress.advance(self._task, nbytes)

    def complete(self) -> None:
        if self._completed:
            return
        self._stop()
        self._completed = True
        self.console.print(f"[green]Downloaded {self._description}[/green]")

    def close(self) -> None:
        self._stop()

    def _stop(self) -> None:
        if self._progress is not None:
            self._progress.stop()
        self._progress = None
        self._task = None


class NullProgressReporter(IProgressReporter):
    """Reporter for headless callers; only logs the completion at debug level."""

    def __init__(self) -> None:
        self._description = ""

    def start(self, description: str, total: Optional[int]) -> None:
        self._description = description

    def advance(self, nbytes: int) -> None:
        pass

    def complete(self) -> None:
        logger.debug("Transfer complete: %s", self._description)

    def close(self) -> None:
        pass


def make_progress_reporter(
    enabled: bool = True, refresh_interval: float = MIN_PROGRESS_REFRESH_INTERVAL
) -> IProgressReporter:
    if not enabled:
        return NullProgressReporter()
    return RichProgressReporter(refresh_interval=refresh_interval)
