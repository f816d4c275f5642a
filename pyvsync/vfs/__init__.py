"""Virtual filesystems: a common view of local and SFTP file trees."""

from .base import LazyValue, VirtualFileSystem, resolve_path, stat_or_none
from .local import LocalVirtualFileSystem
from .matcher import VirtualPathMatcher, VirtualPathMatchers
from .path import VirtualPath
from .sftp import SftpVirtualFileSystem
from .shell import RemoteShell, StreamSignal
from .stat import StatModel, StatUpdateOption, VirtualFileStat, VirtualFileType
from .volume import LocalVolume, SftpVolume, VirtualVolume, parse_volume

__all__ = [
    "VirtualFileSystem",
    "LocalVirtualFileSystem",
    "SftpVirtualFileSystem",
    "VirtualPath",
    "VirtualFileStat",
    "VirtualFileType",
    "StatModel",
    "StatUpdateOption",
    "VirtualPathMatcher",
    "VirtualPathMatchers",
    "RemoteShell",
    "StreamSignal",
    "LazyValue",
    "LocalVolume",
    "SftpVolume",
    "VirtualVolume",
    "parse_volume",
    "resolve_path",
    "stat_or_none",
]
