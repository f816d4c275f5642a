"""Filesystem contract shared by the local and remote implementations."""

import logging
import threading
from typing import (
    BinaryIO,
    Callable,
    Generic,
    Iterable,
    Optional,
    Protocol,
    TypeVar,
    Union,
    runtime_checkable,
)

from ..checksums import Checksum
from ..exceptions import VsyncNotFoundError
from .path import VirtualPath
from .stat import StatModel, StatUpdateOption, VirtualFileStat

logger = logging.getLogger(__name__)

T = TypeVar("T")

_UNSET = object()


class LazyValue(Generic[T]):
    """Value computed once on first access and cached afterwards.

    The first caller computes it while holding a lock; later callers read
    the cached value without locking. If the factory raises, nothing is
    cached and the next caller tries again.
    """

    def __init__(self, factory: Callable[[], T]):
        self._factory = factory
        self._lock = threading.Lock()
        self._value: object = _UNSET

    def get(self) -> T:
        value = self._value
        if value is _UNSET:
            with self._lock:
                if self._value is _UNSET:
                    self._value = self._factory()
                value = self._value
        return value  # type: ignore[return-value]

    @property
    def is_computed(self) -> bool:
        return self._value is not _UNSET


@runtime_checkable
class VirtualFileSystem(Protocol):
    """Operations every filesystem backend provides.

    Paths passed in and returned are :class:`VirtualPath` values; returned
    paths always carry a :class:`VirtualFileStat`. Backend errors surface
    as :mod:`pyvsync.exceptions` types only.
    """

    name: str
    """Display name (``local`` or ``user@host``)"""

    @property
    def pwd(self) -> VirtualPath:
        """Absolute working directory."""
        ...

    @property
    def case_sensitive(self) -> bool:
        ...

    @property
    def stat_model(self) -> StatModel:
        ...

    def is_remote(self) -> bool:
        ...

    def supported_checksums(self) -> list[Checksum]:
        """Checksum kinds this filesystem can compute (detected once)."""
        ...

    def is_checksum_supported(self, kind: Checksum) -> bool:
        ...

    def stat(self, path: VirtualPath) -> VirtualPath:
        """Return ``path`` with a fresh stat; raises VsyncNotFoundError."""
        ...

    def exists(self, path: VirtualPath) -> Optional[VirtualPath]:
        """Return ``path`` with a stat, or None if it does not exist."""
        ...

    def ls(self, path: VirtualPath) -> list[VirtualPath]:
        """List immediate children; raises VsyncNotADirectoryError."""
        ...

    def mkdir(self, path: VirtualPath) -> None:
        ...

    def rmdir(self, path: VirtualPath) -> None:
        ...

    def rm(self, path: VirtualPath) -> None:
        ...

    def read_file(self, path: VirtualPath) -> BinaryIO:
        ...

    def write_file(self, input: BinaryIO, path: VirtualPath) -> None:
        """Write a stream to ``path``, replacing existing content."""
        ...

    def write_stream(self, path: VirtualPath) -> BinaryIO:
        """Open ``path`` for writing, replacing existing content."""
        ...

    def update_stat(
        self,
        path: VirtualPath,
        stat: VirtualFileStat,
        options: Iterable[StatUpdateOption],
    ) -> None:
        """Apply only the requested subset of ``stat`` to ``path``."""
        ...

    def checksums(self, kind: Checksum, paths: list[VirtualPath]) -> None:
        """Compute digests and store them in each path's stat."""
        ...

    def close(self) -> None:
        ...


def stat_or_none(fs: VirtualFileSystem, path: VirtualPath) -> Optional[VirtualPath]:
    """Stat ``path`` on ``fs``, returning None when it does not exist."""
    try:
        return fs.stat(path)
    except VsyncNotFoundError:
        return None


def close_quietly(resource: object, what: str) -> None:
    """Close a resource, logging and swallowing errors raised while closing."""
    close = getattr(resource, "close", None)
    if close is None:
        return
    try:
        close()
    except Exception as e:  # noqa: BLE001
        logger.debug(f"Ignoring error while closing {what}: {e}")


def resolve_path(fs: VirtualFileSystem, path: Union[str, VirtualPath]) -> VirtualPath:
    """Resolve ``path`` against the working directory of ``fs`` and normalize it."""
    if isinstance(path, str):
        path = VirtualPath.parse(path)
    if path.is_relative():
        path = fs.pwd.resolve(path.to_full_path(), path.directory)
    return path.normalize()
