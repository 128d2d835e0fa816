"""
Console progress rendering for Fetcher states.
"""

from typing import Optional

from rich.console import Console
from rich.markup import escape
from rich.progress import (
    BarColumn,
    DownloadColumn,
    MofNCompleteColumn,
    Progress,
    SpinnerColumn,
    TaskID,
    TextColumn,
    TimeElapsedColumn,
    TimeRemainingColumn,
    TransferSpeedColumn,
)

from starview.download.state import DownloadStateKind
from starview.fetch.state import FetchOperation, FetchPhase, FetchState


def spinner(console: Optional[Console] = None) -> Progress:
    return Progress(
        SpinnerColumn(),
        TextColumn("[bold blue]{task.description}"),
        TimeElapsedColumn(),
        console=console,
        transient=True,
    )


def download_bar(console: Optional[Console] = None) -> Progress:
    """Progress bar showing bytes, transfer speed and ETA."""
    return Progress(
        TextColumn("[bold blue]{task.description}"),
        BarColumn(),
        DownloadColumn(),
        TransferSpeedColumn(),
        TimeRemainingColumn(),
        console=console,
        transient=True,
    )


def count_bar(console: Optional[Console] = None) -> Progress:
    return Progress(
        TextColumn("[bold blue]{task.description}"),
        BarColumn(),
        MofNCompleteColumn(),
        TimeElapsedColumn(),
        console=console,
        transient=True,
    )


class FetchProgress:
    """
    Renders the states of one Fetcher operation on the console.

    Pass `on_state` to `Fetcher.states.subscribe()`. Only states of the
    operation the renderer was created for are shown.
    """

    def __init__(self, operation: FetchOperation, console: Optional[Console] = None) -> None:
        self.operation = operation
        self.console = console or Console()
        self._progress: Optional[Progress] = None
        self._task: Optional[TaskID] = None

    def _stop(self) -> None:
        if self._progress is not None:
            self._progress.stop()
        self._progress = None
        self._task = None

    def _start(self, progress: Progress, description: str, total: Optional[int] = None) -> None:
        self._stop()
        self._progress = progress
        self._task = progress.add_task(description, total=total)
        progress.start()

    def _step(self, step: int, description: str) -> None:
        self.console.print(f"[dim][{step}/2][/dim] {description}")

    def on_state(self, state: FetchState) -> None:
        if state.operation is not self.operation:
            return

        if state.phase is FetchPhase.GET_ASSET_VERSION:
            self.console.print("Getting most recent asset version...")
            self._start(spinner(self.console), "Loading player data")
        elif state.phase is FetchPhase.GET_ASSET_INFO:
            self.console.print("Downloading asset info...")
            self._start(spinner(self.console), "Resolving asset paths")
        elif state.phase is FetchPhase.FETCH_ASSET_INFO:
            self._step(1, "Getting asset information...")
            self._start(spinner(self.console), "Resolving asset paths")
        elif state.phase is FetchPhase.DOWNLOAD_START:
            if self.operation is FetchOperation.DOWNLOAD_ASSETS:
                self._step(2, "Downloading assets...")
                self._start(download_bar(self.console), "Assets", state.total)
            else:
                self._step(2, "Downloading files lists...")
                self._start(count_bar(self.console), "Files lists", state.total)
        elif state.phase is FetchPhase.DOWNLOAD and state.download is not None:
            self._on_download(state)
        elif state.phase is FetchPhase.FINISH:
            self._stop()

    def _on_download(self, state: FetchState) -> None:
        download = state.download
        if download is None:
            return
        if download.kind is DownloadStateKind.FILE_DOWNLOAD:
            if self._progress is not None and self._task is not None:
                advance = (
                    download.value
                    if self.operation is FetchOperation.DOWNLOAD_ASSETS
                    else 1
                )
                self._progress.advance(self._task, advance)
        elif download.kind is DownloadStateKind.DOWNLOAD_ERROR:
            self.console.print(f"[red]Failed:[/red] {escape(download.url or '')}")

    def close(self) -> None:
        self._stop()
