"""Counters collected during one sync run."""

from dataclasses import dataclass
from typing import Any

from .modes import SyncMode


@dataclass
class SyncResult:
    """Counters collected during one sync run.

    Counters only ever increase while the run is in progress; read them
    after :meth:`pyvsync.sync.SyncEngine.sync` returns.
    """

    mode: SyncMode
    """Mode the sync ran in"""

    checksums: int = 0
    """Files whose digests were computed on both sides"""

    files_created: int = 0
    files_updated: int = 0
    files_deleted: int = 0
    dirs_created: int = 0
    dirs_deleted: int = 0

    stats_updated: int = 0
    """Metadata updates, including those that trail a content transfer"""

    def increment_checksums(self, amount: int = 1) -> None:
        self.checksums += amount

    def increment_files_created(self) -> None:
        self.files_created += 1

    def increment_files_updated(self) -> None:
        self.files_updated += 1

    def increment_files_deleted(self) -> None:
        self.files_deleted += 1

    def increment_dirs_created(self) -> None:
        self.dirs_created += 1

    def increment_dirs_deleted(self) -> None:
        self.dirs_deleted += 1

    def increment_stats_updated(self) -> None:
        self.stats_updated += 1

    @property
    def files_total(self) -> int:
        return self.files_created + self.files_updated + self.files_deleted

    @property
    def dirs_total(self) -> int:
        return self.dirs_created + self.dirs_deleted

    @property
    def stats_only_updated(self) -> int:
        """Metadata updates not caused by a transfer or a new directory."""
        caused = self.files_created + self.files_updated + self.dirs_created
        return max(0, self.stats_updated - caused)

    @property
    def has_changes(self) -> bool:
        return bool(self.files_total or self.dirs_total or self.stats_updated)

    def to_dict(self) -> dict[str, Any]:
        """Return counters as a JSON-friendly dictionary."""
        return {
            "mode": self.mode.value,
            "checksums": self.checksums,
            "files_created": self.files_created,
            "files_updated": self.files_updated,
            "files_deleted": self.files_deleted,
            "dirs_created": self.dirs_created,
            "dirs_deleted": self.dirs_deleted,
            "stats_updated": self.stats_updated,
            "stats_only_updated": self.stats_only_updated,
        }

    def __str__(self) -> str:
        return (
            f"checksums={self.checksums}, files_created={self.files_created}, "
            f"files_updated={self.files_updated}, files_deleted={self.files_deleted}, "
            f"dirs_created={self.dirs_created}, dirs_deleted={self.dirs_deleted}, "
            f"stats_updated={self.stats_updated}"
        )
