"""Rich progress bars for interactive transfers."""

from __future__ import annotations

import contextlib
import threading
from collections.abc import Callable, Iterator

from rich.console import Console
from rich.progress import (
    BarColumn,
    DownloadColumn,
    Progress,
    SpinnerColumn,
    TextColumn,
    TimeRemainingColumn,
    TransferSpeedColumn,
)


class TransferProgress:
    """One transient bar per transfer, fed by a byte observer.

    Instances are used as a ``ProgressFactory``: calling one with a
    description and an optional total returns a context manager yielding the
    callback that advances the bar. A transfer with an unknown total (a zip
    stream) shows a pulsing bar with the byte count only.
    """

    def __init__(self, console: Console | None = None) -> None:
        self._console = console or Console(stderr=True)
        self._lock = threading.Lock()

    def _build(self) -> Progress:
        return Progress(
            SpinnerColumn(),
            TextColumn("[bold blue]{task.description}"),
            BarColumn(),
            DownloadColumn(binary_units=True),
            TransferSpeedColumn(),
            TimeRemainingColumn(),
            console=self._console,
            transient=True,
        )

    @contextlib.contextmanager
    def __call__(self, description: str, total: int | None) -> Iterator[Callable[[int], None]]:
        with self._build() as progress:
            task_id = progress.add_task(description, total=total)

            def _advance(nbytes: int) -> None:
                with self._lock:
                    progress.update(task_id, advance=nbytes)

            yield _advance
