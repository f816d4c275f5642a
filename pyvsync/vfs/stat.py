"""Metadata snapshot of a filesystem entry."""

import stat as stat_module
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Union

from ..checksums import Checksum
from ..permissions import PERMISSION_MASK


class VirtualFileType(str, Enum):
    """Kinds of filesystem entries."""

    FILE = "file"
    """Regular file"""

    DIR = "dir"
    """Directory"""

    SYMLINK = "symlink"
    """Symbolic link (never followed)"""

    OTHER = "other"
    """Device, socket, fifo or anything else"""

    @classmethod
    def from_mode(cls, mode: int) -> "VirtualFileType":
        """Derive the entry type from a ``st_mode`` value."""
        if stat_module.S_ISDIR(mode):
            return cls.DIR
        if stat_module.S_ISREG(mode):
            return cls.FILE
        if stat_module.S_ISLNK(mode):
            return cls.SYMLINK
        return cls.OTHER


class StatModel(str, Enum):
    """How faithfully a filesystem reports permissions."""

    POSIX = "posix"
    """Full 12-bit mode is reported and can be updated"""

    BASIC = "basic"
    """Only owner bits are meaningful"""


class StatUpdateOption(str, Enum):
    """Subsets of metadata an update may touch."""

    PERMISSIONS = "permissions"
    TIMESTAMPS = "timestamps"
    OWNERSHIP = "ownership"


@dataclass
class VirtualFileStat:
    """Metadata snapshot of one filesystem entry.

    Digest fields stay ``None`` until a batch checksum populates them.
    """

    type: VirtualFileType
    """Entry type"""

    size: int
    """Size in bytes"""

    modified_time: int
    """Modification time (milliseconds since epoch)"""

    accessed_time: int
    """Access time (milliseconds since epoch)"""

    permissions: int
    """POSIX-style permission bits (``mode & 0o7777``)"""

    uid: Optional[int] = None
    """Owner user id, if the filesystem reports one"""

    gid: Optional[int] = None
    """Owner group id, if the filesystem reports one"""

    cksum: Optional[int] = None
    """POSIX cksum value"""

    md5: Optional[str] = None
    """MD5 hex digest"""

    sha1: Optional[str] = None
    """SHA-1 hex digest"""

    def __post_init__(self) -> None:
        self.permissions &= PERMISSION_MASK

    @property
    def is_file(self) -> bool:
        return self.type == VirtualFileType.FILE

    @property
    def is_directory(self) -> bool:
        return self.type == VirtualFileType.DIR

    @property
    def is_symlink(self) -> bool:
        return self.type == VirtualFileType.SYMLINK

    def digest(self, kind: Checksum) -> Optional[Union[int, str]]:
        """Return the digest of the given kind, or None if not computed yet."""
        if kind == Checksum.CK:
            return self.cksum
        if kind == Checksum.MD5:
            return self.md5
        return self.sha1

    def set_digest(self, kind: Checksum, value: Union[int, str]) -> None:
        """Store a digest computed by a batch checksum."""
        if kind == Checksum.CK:
            self.cksum = int(value)
        elif kind == Checksum.MD5:
            self.md5 = str(value).lower()
        else:
            self.sha1 = str(value).lower()
