"""CLI progress display for sync operations.

This module provides a Rich-based event handler that reports what the
sync engine does and shows a transfer bar while file content is copied.
"""

from typing import BinaryIO, Collection, Optional

from rich.progress import (
    BarColumn,
    DownloadColumn,
    Progress,
    SpinnerColumn,
    TaskID,
    TextColumn,
    TimeElapsedColumn,
    TransferSpeedColumn,
)

from .output import OutputFormatter
from .sync.changes import PathChanges
from .sync.engine import SyncEngine
from .sync.events import DefaultSyncEventHandler
from .sync.modes import SyncMode
from .sync.result import SyncResult
from .vfs.path import VirtualPath
from .vfs.stat import StatUpdateOption
from .vfs.volume import VirtualVolume


class ConsoleSyncEventHandler(DefaultSyncEventHandler):
    """Prints one line per change and shows a transfer progress bar.

    Lines use rsync-like markers: ``+`` created, ``*`` updated, ``-``
    deleted, ``.`` metadata only. Nothing is printed in quiet or JSON mode.
    """

    def __init__(self, out: OutputFormatter, show_progress: bool = True):
        """Initialize console event handler.

        Args:
            out: Output formatter for event lines
            show_progress: Show a progress bar while copying file content
        """
        self.out = out
        self.show_progress = show_progress and not (out.quiet or out.json_output)
        self._progress: Optional[Progress] = None
        self._task: Optional[TaskID] = None
        self._current = ""

    def will_create_directory(
        self, target_path: VirtualPath, recursively: bool
    ) -> None:
        super().will_create_directory(target_path, recursively)
        self.out.print(f"+ {target_path}/")

    def will_delete_directory(
        self, target_path: VirtualPath, recursively: bool
    ) -> None:
        super().will_delete_directory(target_path, recursively)
        self.out.print(f"- {target_path}/")

    def will_delete_file(self, target_path: VirtualPath, recursively: bool) -> None:
        super().will_delete_file(target_path, recursively)
        self.out.print(f"- {target_path}")

    def will_ignore_source_path(self, source_path: VirtualPath) -> None:
        super().will_ignore_source_path(source_path)
        self.out.warning(f"Skipping unsupported entry {source_path}")

    def will_transfer_file(
        self, source_path: VirtualPath, target_path: VirtualPath, changes: PathChanges
    ) -> None:
        super().will_transfer_file(source_path, target_path, changes)
        marker = "+" if changes.missing else "*"
        self.out.print(f"{marker} {target_path} ({changes})")
        self._current = target_path.name

    def will_update_stat(
        self,
        source_path: VirtualPath,
        target_path: VirtualPath,
        changes: PathChanges,
        options: Collection[StatUpdateOption],
        associated: bool,
    ) -> None:
        super().will_update_stat(
            source_path, target_path, changes, options, associated
        )
        if not associated:
            self.out.print(f". {target_path} ({changes})")

    def copy(self, input: BinaryIO, output: BinaryIO, known_length: int) -> None:
        if self._progress is None or self._task is None:
            super().copy(input, output, known_length)
            return

        self._progress.update(
            self._task,
            description=f"Copying {self._current}",
            total=known_length if known_length >= 0 else None,
            completed=0,
        )
        while True:
            data = input.read(self.buffer_size)
            if not data:
                break
            output.write(data)
            self._progress.advance(self._task, len(data))

    def __enter__(self) -> "ConsoleSyncEventHandler":
        """Enter context manager - start progress display."""
        if self.show_progress:
            self._progress = Progress(
                SpinnerColumn(),
                TextColumn("[bold blue]{task.description}"),
                BarColumn(),
                DownloadColumn(),
                TransferSpeedColumn(),
                TimeElapsedColumn(),
                console=self.out.console,
                transient=True,
                refresh_per_second=4,
            )
            self._progress.__enter__()
            self._task = self._progress.add_task("Scanning...", total=None)
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        """Exit context manager - stop progress display."""
        if self._progress is not None:
            self._progress.__exit__(exc_type, exc_val, exc_tb)
            self._progress = None
            self._task = None


def run_sync_with_progress(
    engine: SyncEngine,
    source: VirtualVolume,
    target: VirtualVolume,
    mode: SyncMode,
    out: OutputFormatter,
) -> SyncResult:
    """Run a sync with a console event handler installed.

    Args:
        engine: SyncEngine instance (its event handler is replaced)
        source: Source volume
        target: Target volume
        mode: Sync mode
        out: Output formatter

    Returns:
        SyncResult of the run
    """
    with ConsoleSyncEventHandler(out) as handler:
        engine.event_handler = handler
        return engine.sync(source, target, mode)
