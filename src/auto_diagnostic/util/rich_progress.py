from __future__ import annotations

from typing import Any, Optional

from rich.console import Console
from rich.progress import BarColumn, MofNCompleteColumn, Progress, SpinnerColumn, TextColumn, TimeElapsedColumn


class FetchProgress:
    """
    Progress bar over the data-source loop. Rendered on stderr so the prompt
    echo and diagnosis on stdout stay clean. Disabled instances are no-ops.
    """

    def __init__(self, total: int, *, enabled: bool = True, console: Optional[Console] = None) -> None:
        self._console = console or Console(stderr=True)
        self._enabled = bool(enabled and self._console.is_terminal)
        self._total = total
        self._progress: Optional[Progress] = None
        self._task: Optional[Any] = None
        self._started = False
        if self._enabled:
            self._progress = Progress(
                SpinnerColumn(style="green"),
                TextColumn("[green]\\[{task.description}]"),
                BarColumn(),
                MofNCompleteColumn(),
                TimeElapsedColumn(),
                console=self._console,
                transient=False,
            )

    @property
    def enabled(self) -> bool:
        return self._enabled

    def __enter__(self) -> FetchProgress:
        if self._enabled and self._progress and not self._started:
            self._progress.start()
            self._task = self._progress.add_task("Fetching data sources", total=self._total)
            self._started = True
        return self

    def __exit__(self, exc_type: Any, exc: Any, exc_tb: Any) -> None:
        if self._enabled and self._progress and self._started:
            if exc_type is None and self._task is not None:
                self._progress.update(self._task, description="Fetched data sources")
            self._progress.stop()
            self._started = False

    def fetching(self, display_name: str) -> None:
        if not self._started or not self._progress or self._task is None:
            return
        self._progress.update(self._task, description=display_name)

    def advance(self, count: int = 1) -> None:
        if not self._started or not self._progress or self._task is None:
            return
        self._progress.update(self._task, advance=count)
