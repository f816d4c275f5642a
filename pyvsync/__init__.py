"""pyvsync - sync directory trees between local and SFTP filesystems."""

from .checksums import Checksum
from .exceptions import (
    VsyncConfigError,
    VsyncConnectionError,
    VsyncError,
    VsyncIllegalStateError,
    VsyncInterruptedError,
    VsyncIOError,
    VsyncNotADirectoryError,
    VsyncNotFoundError,
    VsyncSyncError,
    VsyncUnsupportedChecksumError,
)
from .sync import SyncEngine, SyncMode, SyncOptions, SyncResult
from .vfs import (
    LocalVirtualFileSystem,
    LocalVolume,
    SftpVirtualFileSystem,
    SftpVolume,
    VirtualPath,
    parse_volume,
)

__all__ = [
    "Checksum",
    "SyncEngine",
    "SyncMode",
    "SyncOptions",
    "SyncResult",
    "LocalVirtualFileSystem",
    "SftpVirtualFileSystem",
    "LocalVolume",
    "SftpVolume",
    "VirtualPath",
    "parse_volume",
    "VsyncError",
    "VsyncConfigError",
    "VsyncConnectionError",
    "VsyncIllegalStateError",
    "VsyncInterruptedError",
    "VsyncIOError",
    "VsyncNotADirectoryError",
    "VsyncNotFoundError",
    "VsyncSyncError",
    "VsyncUnsupportedChecksumError",
]
