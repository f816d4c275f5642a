"""Volumes: a filesystem plus a path on it, as given on the command line."""

import re
from typing import Optional, Protocol, Union

from ..exceptions import VsyncConfigError
from .local import LocalVirtualFileSystem
from .sftp import SftpVirtualFileSystem

_DRIVE_PATTERN = re.compile(r"^[A-Za-z]:(?:[\\/]|$)")
_REMOTE_PATTERN = re.compile(r"^(?P<host>[^:/\\]+)(?::(?P<port>\d+))?:(?P<path>.*)$")


class VirtualVolume(Protocol):
    """Something the sync engine can open a filesystem for."""

    path: str

    def open_filesystem(
        self,
    ) -> Union[LocalVirtualFileSystem, SftpVirtualFileSystem]: ...


class LocalVolume:
    """A path on the local machine."""

    def __init__(self, path: str, working_dir: Optional[str] = None):
        self.path = path
        self.working_dir = working_dir

    def open_filesystem(self) -> LocalVirtualFileSystem:
        return LocalVirtualFileSystem(self.working_dir)

    def __str__(self) -> str:
        return self.path

    def __repr__(self) -> str:
        return f"LocalVolume({self.path!r})"


class SftpVolume:
    """A path on a remote host reached over SFTP.

    An empty or relative path is relative to the remote login directory.
    """

    def __init__(self, host: str, path: str = "."):
        self.host = host
        self.path = path or "."

    def open_filesystem(self) -> SftpVirtualFileSystem:
        return SftpVirtualFileSystem.open(self.host)

    def __str__(self) -> str:
        return f"{self.host}:{self.path}"

    def __repr__(self) -> str:
        return f"SftpVolume({self.host!r}, {self.path!r})"


def parse_volume(value: str) -> Union[LocalVolume, SftpVolume]:
    """Parse a command line volume.

    ``[user@]host[:port]:path`` selects a remote volume; anything else,
    including Windows paths like ``C:\\data``, is local.

    Args:
        value: Volume string

    Returns:
        LocalVolume or SftpVolume

    Raises:
        VsyncConfigError: If the value is empty

    Examples:
        >>> parse_volume("backup@nas:2222:/srv/data")
        SftpVolume('backup@nas:2222', '/srv/data')
        >>> parse_volume("C:\\\\data")
        LocalVolume('C:\\\\data')
    """
    if not value or not value.strip():
        raise VsyncConfigError("Volume must not be empty")

    if _DRIVE_PATTERN.match(value) or value.startswith(("/", ".", "~")):
        return LocalVolume(value)

    match = _REMOTE_PATTERN.match(value)
    if match is None:
        return LocalVolume(value)

    host = match.group("host")
    if match.group("port"):
        host = f"{host}:{match.group('port')}"
    return SftpVolume(host, match.group("path"))
