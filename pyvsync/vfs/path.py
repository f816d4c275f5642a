"""Path model shared by every virtual filesystem.

A :class:`VirtualPath` is an immutable value made of a parent path string
and a name. The parent is ``None`` for single-segment relative paths, ``""``
for entries of a POSIX root and ``"C:"`` for entries of a Windows drive
root. A path is absolute when its parent carries one of those roots. The
segment separator is always ``/``; ``\\`` is accepted on input. No I/O
happens here.
"""

import re
from dataclasses import dataclass, field, replace
from typing import Optional

from .stat import VirtualFileStat

_DRIVE = re.compile(r"^([A-Za-z]:)(?:/|$)")


def _split_root(text: str) -> tuple[Optional[str], str]:
    """Split ``/``-separated text into (root prefix, remainder).

    The prefix is ``None`` for relative text, ``""`` for text starting with
    ``/`` and the drive (``"C:"``) for drive-letter text.
    """
    match = _DRIVE.match(text)
    if match:
        drive = match.group(1)
        return drive, text[len(drive) :]
    if text.startswith("/"):
        return "", text
    return None, text


def _segments(text: str) -> list[str]:
    return [s for s in text.split("/") if s]


@dataclass(frozen=True)
class VirtualPath:
    """Immutable path value with an optional metadata snapshot.

    Equality and hashing only consider the full path; the directory hint
    and the stat are carried along but do not take part in comparisons.

    Examples:
        >>> VirtualPath.parse("/home/user/docs/").to_full_path()
        '/home/user/docs'
        >>> VirtualPath.parse("C:\\\\Users").resolve("a.txt").to_full_path()
        'C:/Users/a.txt'
        >>> VirtualPath.parse("/a/./b/../../c/").normalize().to_full_path()
        '/c'
    """

    parent_path: Optional[str]
    """Parent path (None: single relative segment, "": POSIX root, "C:": drive)"""

    name: str
    """Last segment (empty only for a root or an empty relative path)"""

    directory: bool = field(default=False, compare=False)
    """Best-effort directory hint until a stat confirms it"""

    stat: Optional[VirtualFileStat] = field(default=None, compare=False, repr=False)
    """Metadata snapshot, absent until queried"""

    @classmethod
    def parse(cls, value: str, directory: Optional[bool] = None) -> "VirtualPath":
        """Parse a path string.

        Args:
            value: Path text using ``/`` or ``\\`` separators
            directory: Directory hint. When None, a trailing separator marks
                the path as a directory.

        Returns:
            Parsed path
        """
        text = value.replace("\\", "/")
        if directory is None:
            directory = len(text) > 1 and text.endswith("/")
        prefix, rest = _split_root(text)
        return cls._from_parts(prefix, _segments(rest), directory)

    @classmethod
    def _from_parts(
        cls,
        prefix: Optional[str],
        segments: list[str],
        directory: bool,
        stat: Optional[VirtualFileStat] = None,
    ) -> "VirtualPath":
        if prefix is None:
            if not segments:
                return cls(None, "", directory, stat)
            parent = "/".join(segments[:-1]) if len(segments) > 1 else None
            return cls(parent, segments[-1], directory, stat)

        if not segments:
            return cls(prefix, "", True, stat)
        if len(segments) > 1:
            parent = prefix + "/" + "/".join(segments[:-1])
        else:
            parent = prefix
        return cls(parent, segments[-1], directory, stat)

    def to_full_path(self) -> str:
        """Return the unique ``/``-separated string form of this path."""
        if self.parent_path is None:
            return self.name
        if self.name == "":
            return self.parent_path + "/"
        return self.parent_path + "/" + self.name

    def __str__(self) -> str:
        return self.to_full_path()

    def is_absolute(self) -> bool:
        if self.parent_path is None:
            return False
        if self.parent_path == "":
            return True
        return _split_root(self.parent_path)[0] is not None

    def is_relative(self) -> bool:
        return not self.is_absolute()

    def is_root(self) -> bool:
        """True for ``/`` and drive roots such as ``C:/``."""
        return self.parent_path is not None and self.name == ""

    @property
    def is_directory(self) -> bool:
        """Directory flag, taken from the stat when one is present."""
        if self.stat is not None:
            return self.stat.is_directory
        return self.directory

    def resolve(
        self,
        name: str,
        directory: bool = False,
        stat: Optional[VirtualFileStat] = None,
    ) -> "VirtualPath":
        """Resolve a child name against this path.

        A relative name (which may contain several segments) is appended to
        this path. An absolute or drive-letter name discards this path and
        re-roots.

        Args:
            name: Child name or path
            directory: Whether the child is a directory
            stat: Optional metadata snapshot for the child

        Returns:
            New path for the child
        """
        child_prefix, child_rest = _split_root(name.replace("\\", "/"))
        if child_prefix is not None:
            segments = _segments(child_rest)
            return self._from_parts(child_prefix, segments, directory, stat)

        prefix, rest = _split_root(self.to_full_path())
        segments = _segments(rest) + _segments(child_rest)
        return self._from_parts(prefix, segments, directory, stat)

    def normalize(self) -> "VirtualPath":
        """Collapse ``.`` and repeated separators and resolve ``..``.

        ``..`` never climbs above an absolute root. In relative paths a
        ``..`` with no ancestor to pop is kept, so ``../a/b`` stays as is.
        """
        prefix, rest = _split_root(self.to_full_path())
        out: list[str] = []
        for segment in rest.split("/"):
            if segment in ("", "."):
                continue
            if segment == "..":
                if out and out[-1] != "..":
                    out.pop()
                elif prefix is None:
                    out.append(segment)
                continue
            out.append(segment)
        return self._from_parts(prefix, out, self.directory, self.stat)

    def parent(self) -> Optional["VirtualPath"]:
        """Return the parent directory, or None for roots and single segments."""
        if self.parent_path is None or self.is_root():
            return None
        if self.parent_path == "":
            return VirtualPath("", "", True)
        return VirtualPath.parse(self.parent_path, True)

    def with_stat(self, stat: Optional[VirtualFileStat]) -> "VirtualPath":
        """Return a copy of this path carrying ``stat``."""
        directory = stat.is_directory if stat is not None else self.directory
        return replace(self, stat=stat, directory=directory)

    def key(self, case_sensitive: bool = True) -> str:
        """Name used to pair entries across filesystems."""
        return self.name if case_sensitive else self.name.lower()
