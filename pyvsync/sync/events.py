"""Hooks the sync engine calls while it works."""

import logging
from typing import BinaryIO, Collection, Protocol

from ..utils import DEFAULT_BUFFER_SIZE
from ..vfs.base import VirtualFileSystem
from ..vfs.path import VirtualPath
from ..vfs.stat import StatUpdateOption
from .changes import PathChanges
from .result import SyncResult

# Events are reported under the engine's logger
logger = logging.getLogger("pyvsync.sync.engine")


class SyncEventHandler(Protocol):
    """Receives engine events.

    Order: ``will_begin``, then per path one of the ``will_*`` hooks, then
    ``will_end``. ``copy`` performs the actual byte transfer.
    """

    def will_begin(
        self,
        source_fs: VirtualFileSystem,
        source_path: VirtualPath,
        target_fs: VirtualFileSystem,
        target_path: VirtualPath,
    ) -> None: ...

    def will_end(
        self,
        source_fs: VirtualFileSystem,
        source_path: VirtualPath,
        target_fs: VirtualFileSystem,
        target_path: VirtualPath,
        result: SyncResult,
        time_millis: int,
    ) -> None: ...

    def will_exclude_path(self, source_path: VirtualPath) -> None: ...

    def will_ignore_source_path(self, source_path: VirtualPath) -> None: ...

    def will_ignore_target_path(self, target_path: VirtualPath) -> None: ...

    def will_create_directory(
        self, target_path: VirtualPath, recursively: bool
    ) -> None: ...

    def will_delete_directory(
        self, target_path: VirtualPath, recursively: bool
    ) -> None: ...

    def will_delete_file(self, target_path: VirtualPath, recursively: bool) -> None: ...

    def will_transfer_file(
        self, source_path: VirtualPath, target_path: VirtualPath, changes: PathChanges
    ) -> None: ...

    def will_update_stat(
        self,
        source_path: VirtualPath,
        target_path: VirtualPath,
        changes: PathChanges,
        options: Collection[StatUpdateOption],
        associated: bool,
    ) -> None: ...

    def copy(self, input: BinaryIO, output: BinaryIO, known_length: int) -> None: ...


class DefaultSyncEventHandler:
    """Logs every event at debug level and copies with a plain buffer loop."""

    buffer_size = DEFAULT_BUFFER_SIZE

    def will_begin(self, source_fs, source_path, target_fs, target_path) -> None:
        logger.debug(
            f"Syncing {source_fs.name}:{source_path} -> {target_fs.name}:{target_path}"
        )

    def will_end(
        self, source_fs, source_path, target_fs, target_path, result, time_millis
    ) -> None:
        logger.debug(
            f"Synced {result.files_created} new {result.files_updated} updated "
            f"{result.files_deleted} deleted files, {result.dirs_created} new "
            f"{result.dirs_deleted} deleted dirs (in {time_millis} ms)"
        )

    def will_exclude_path(self, source_path: VirtualPath) -> None:
        logger.debug(f"Excluding path {source_path}")

    def will_ignore_source_path(self, source_path: VirtualPath) -> None:
        logger.debug(f"Ignoring source path {source_path}")

    def will_ignore_target_path(self, target_path: VirtualPath) -> None:
        logger.debug(f"Ignoring target path {target_path}")

    def will_create_directory(
        self, target_path: VirtualPath, recursively: bool
    ) -> None:
        logger.debug(f"Creating directory {target_path}")

    def will_delete_directory(
        self, target_path: VirtualPath, recursively: bool
    ) -> None:
        logger.debug(f"Deleting directory {target_path}")

    def will_delete_file(self, target_path: VirtualPath, recursively: bool) -> None:
        logger.debug(f"Deleting file {target_path}")

    def will_transfer_file(
        self, source_path: VirtualPath, target_path: VirtualPath, changes: PathChanges
    ) -> None:
        if changes.missing:
            logger.debug(f"Creating file {target_path} ({changes})")
        else:
            logger.debug(f"Updating file {target_path} ({changes})")

    def will_update_stat(
        self,
        source_path: VirtualPath,
        target_path: VirtualPath,
        changes: PathChanges,
        options: Collection[StatUpdateOption],
        associated: bool,
    ) -> None:
        message = ",".join(o.value for o in options)
        logger.debug(f"Updating stat {target_path} ({message})")

    def copy(self, input: BinaryIO, output: BinaryIO, known_length: int) -> None:
        while True:
            data = input.read(self.buffer_size)
            if not data:
                break
            output.write(data)
