"""Change detection between a source entry and its target counterpart."""

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from ..checksums import Checksum
from ..permissions import is_owner_permission_equal
from ..utils import DEFAULT_TIMESTAMP_TOLERANCE_MS
from ..vfs.stat import VirtualFileStat


@dataclass(frozen=True)
class PathChanges:
    """What differs between a source entry and its target counterpart."""

    missing: bool
    """Target does not exist"""

    size: bool = False
    """Sizes differ"""

    timestamps: bool = False
    """Modification times differ beyond the tolerance"""

    permissions: bool = False
    """Permission bits differ"""

    ownership: bool = False
    """Owner or group differ"""

    checksum: Optional[bool] = None
    """Digests differ (None until a checksum pass ran)"""

    def is_content_modified(self, ignore_times: bool = False) -> bool:
        """Whether content has to be transferred.

        Timestamps alone never force a transfer.
        """
        return self.missing or self.size or self.checksum is True

    def is_deferred_processing(self, ignore_times: bool = False) -> bool:
        """Whether equality can only be settled by a checksum not yet computed."""
        return (
            not self.missing
            and not self.size
            and (ignore_times or self.timestamps)
            and self.checksum is None
        )

    def is_stat_modified(self) -> bool:
        """Whether target metadata needs an update."""
        return self.missing or self.timestamps or self.permissions or self.ownership

    def build_message(self) -> str:
        """Describe the changes (e.g. ``"size mismatch, times mismatch"``)."""
        parts = []
        if self.missing:
            parts.append("is new")
        if self.size:
            parts.append("size mismatch")
        if self.timestamps:
            parts.append("times mismatch")
        if self.permissions:
            parts.append("perms mismatch")
        if self.ownership:
            parts.append("ownership mismatch")
        if self.checksum is True:
            parts.append("checksum mismatch")
        if not parts:
            if self.checksum is not None:
                return "no changes, checksum match"
            return "no changes, size and times match"
        return ", ".join(parts)

    def __str__(self) -> str:
        return self.build_message()


class PermissionsMode(str, Enum):
    """How permission bits are compared."""

    FULL = "full"
    """All permission bits must match"""

    OWNER = "owner"
    """Only owner bits are compared"""


class ChangeDetector:
    """Produces :class:`PathChanges` from a pair of stats."""

    def __init__(
        self,
        timestamp_tolerance_ms: int = DEFAULT_TIMESTAMP_TOLERANCE_MS,
        permissions_mode: Optional[PermissionsMode] = PermissionsMode.FULL,
        ownership: bool = False,
    ):
        """Initialize change detector.

        Args:
            timestamp_tolerance_ms: Largest modification time difference
                still considered equal
            permissions_mode: How to compare permissions (None: ignore them)
            ownership: Compare owner/group when both sides report them
        """
        self.timestamp_tolerance_ms = timestamp_tolerance_ms
        self.permissions_mode = permissions_mode
        self.ownership = ownership

    def detect(
        self,
        source: VirtualFileStat,
        target: Optional[VirtualFileStat],
        checksum: Optional[bool] = None,
    ) -> PathChanges:
        """Compare ``source`` with ``target``.

        Args:
            source: Source stat
            target: Target stat (None when the target is missing)
            checksum: Result of a digest comparison, if one was made

        Returns:
            PathChanges for the pair
        """
        if target is None:
            return PathChanges(missing=True)

        size = source.is_file and target.is_file and source.size != target.size
        timestamps = (
            abs(source.modified_time - target.modified_time)
            > self.timestamp_tolerance_ms
        )

        if self.permissions_mode is None:
            permissions = False
        elif self.permissions_mode == PermissionsMode.OWNER:
            permissions = not is_owner_permission_equal(
                source.permissions, target.permissions
            )
        else:
            permissions = source.permissions != target.permissions

        ownership = False
        ids = (source.uid, source.gid, target.uid, target.gid)
        if self.ownership and None not in ids:
            ownership = source.uid != target.uid or source.gid != target.gid

        return PathChanges(
            missing=False,
            size=size,
            timestamps=timestamps,
            permissions=permissions,
            ownership=ownership,
            checksum=checksum,
        )


def compare_checksums(
    kind: Checksum, source: VirtualFileStat, target: VirtualFileStat
) -> Optional[bool]:
    """Return whether digests differ, or None if either one is missing."""
    source_digest = source.digest(kind)
    target_digest = target.digest(kind)
    if source_digest is None or target_digest is None:
        return None
    return source_digest != target_digest
