"""Sync engine for pyvsync - one-way reconciliation of directory trees."""

from .changes import ChangeDetector, PathChanges, PermissionsMode, compare_checksums
from .engine import SyncEngine
from .events import DefaultSyncEventHandler, SyncEventHandler
from .modes import SyncMode
from .options import SyncOptions
from .result import SyncResult

__all__ = [
    "SyncEngine",
    "SyncMode",
    "SyncOptions",
    "SyncResult",
    "SyncEventHandler",
    "DefaultSyncEventHandler",
    "ChangeDetector",
    "PathChanges",
    "PermissionsMode",
    "compare_checksums",
]
