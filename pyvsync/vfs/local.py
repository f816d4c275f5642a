"""Virtual filesystem backed by the local disk."""

import logging
import os
import shutil
import stat as stat_module
import sys
from typing import BinaryIO, Iterable, Optional

from ..checksums import Checksum, compute_checksum
from ..exceptions import (
    VsyncIllegalStateError,
    VsyncNotADirectoryError,
    translate_os_error,
)
from ..permissions import basic_permissions
from ..utils import DEFAULT_BUFFER_SIZE
from .base import LazyValue, stat_or_none
from .path import VirtualPath
from .stat import StatModel, StatUpdateOption, VirtualFileStat, VirtualFileType

logger = logging.getLogger(__name__)


class LocalVirtualFileSystem:
    """Local disk filesystem.

    Symlinks are never followed when taking stats. Every checksum kind is
    supported by streaming the file once.

    Examples:
        >>> fs = LocalVirtualFileSystem()
        >>> home = fs.stat(VirtualPath.parse("/tmp"))
        >>> home.is_directory
        True
    """

    def __init__(self, working_dir: Optional[str] = None):
        """Initialize local filesystem.

        Args:
            working_dir: Directory relative paths resolve against
                (default: the process working directory)
        """
        self.name = "local"
        cwd = os.path.abspath(working_dir or os.getcwd())
        self._pwd = VirtualPath.parse(cwd, True).normalize()
        self._posix = os.name == "posix"
        self._case_sensitive = not sys.platform.startswith("win")
        self._checksums = LazyValue(lambda: [Checksum.CK, Checksum.MD5, Checksum.SHA1])

    def __enter__(self) -> "LocalVirtualFileSystem":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def __repr__(self) -> str:
        return f"LocalVirtualFileSystem(pwd={self._pwd})"

    @property
    def pwd(self) -> VirtualPath:
        return self._pwd

    @property
    def case_sensitive(self) -> bool:
        return self._case_sensitive

    @property
    def stat_model(self) -> StatModel:
        return StatModel.POSIX if self._posix else StatModel.BASIC

    def is_remote(self) -> bool:
        return False

    def supported_checksums(self) -> list[Checksum]:
        return self._checksums.get()

    def is_checksum_supported(self, kind: Checksum) -> bool:
        return kind in self.supported_checksums()

    def _native(self, path: VirtualPath) -> str:
        if path.is_relative():
            path = self._pwd.resolve(path.to_full_path(), path.directory)
        return path.to_full_path()

    def _to_stat(self, native: str, st: os.stat_result) -> VirtualFileStat:
        if self._posix:
            permissions = stat_module.S_IMODE(st.st_mode)
        else:
            permissions = basic_permissions(
                os.access(native, os.R_OK),
                os.access(native, os.W_OK),
                os.access(native, os.X_OK),
            )
        return VirtualFileStat(
            type=VirtualFileType.from_mode(st.st_mode),
            size=st.st_size,
            modified_time=st.st_mtime_ns // 1_000_000,
            accessed_time=st.st_atime_ns // 1_000_000,
            permissions=permissions,
            uid=st.st_uid if self._posix else None,
            gid=st.st_gid if self._posix else None,
        )

    def stat(self, path: VirtualPath) -> VirtualPath:
        native = self._native(path)
        try:
            st = os.lstat(native)
        except OSError as e:
            raise translate_os_error(e, path) from e
        return path.with_stat(self._to_stat(native, st))

    def exists(self, path: VirtualPath) -> Optional[VirtualPath]:
        return stat_or_none(self, path)

    def ls(self, path: VirtualPath) -> list[VirtualPath]:
        native = self._native(path)
        children = []
        try:
            with os.scandir(native) as it:
                for entry in it:
                    st = entry.stat(follow_symlinks=False)
                    child_stat = self._to_stat(entry.path, st)
                    children.append(
                        path.resolve(entry.name, child_stat.is_directory, child_stat)
                    )
        except NotADirectoryError as e:
            raise VsyncNotADirectoryError(f"Not a directory: {path}", path) from e
        except OSError as e:
            raise translate_os_error(e, path) from e
        return children

    def mkdir(self, path: VirtualPath) -> None:
        try:
            os.mkdir(self._native(path))
        except OSError as e:
            raise translate_os_error(e, path) from e

    def rmdir(self, path: VirtualPath) -> None:
        try:
            os.rmdir(self._native(path))
        except OSError as e:
            raise translate_os_error(e, path) from e

    def rm(self, path: VirtualPath) -> None:
        try:
            os.remove(self._native(path))
        except OSError as e:
            raise translate_os_error(e, path) from e

    def read_file(self, path: VirtualPath) -> BinaryIO:
        try:
            return open(self._native(path), "rb")
        except OSError as e:
            raise translate_os_error(e, path) from e

    def write_stream(self, path: VirtualPath) -> BinaryIO:
        try:
            return open(self._native(path), "wb")
        except OSError as e:
            raise translate_os_error(e, path) from e

    def write_file(self, input: BinaryIO, path: VirtualPath) -> None:
        with self.write_stream(path) as output:
            try:
                shutil.copyfileobj(input, output, DEFAULT_BUFFER_SIZE)
            except OSError as e:
                raise translate_os_error(e, path) from e

    def update_stat(
        self,
        path: VirtualPath,
        stat: VirtualFileStat,
        options: Iterable[StatUpdateOption],
    ) -> None:
        options = set(options)
        native = self._native(path)
        try:
            if StatUpdateOption.PERMISSIONS in options:
                if self._posix:
                    os.chmod(native, stat.permissions)
                else:
                    # Only the owner write bit maps onto a native flag here
                    writable = bool(stat.permissions & 0o200)
                    flags = stat_module.S_IWRITE if writable else stat_module.S_IREAD
                    os.chmod(native, flags)
            if StatUpdateOption.OWNERSHIP in options and self._posix:
                if stat.uid is not None and stat.gid is not None:
                    os.chown(native, stat.uid, stat.gid)
            if StatUpdateOption.TIMESTAMPS in options:
                os.utime(
                    native,
                    ns=(
                        stat.accessed_time * 1_000_000,
                        stat.modified_time * 1_000_000,
                    ),
                )
        except OSError as e:
            raise translate_os_error(e, path) from e

    def checksums(self, kind: Checksum, paths: list[VirtualPath]) -> None:
        for path in paths:
            if path.stat is None:
                raise VsyncIllegalStateError(f"No stat to hold a digest: {path}")
            with self.read_file(path) as stream:
                path.stat.set_digest(kind, compute_checksum(kind, stream))
            logger.debug(f"Computed {kind.value} for {path}: {path.stat.digest(kind)}")

    def close(self) -> None:
        pass
