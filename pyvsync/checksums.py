"""Checksum kinds, the POSIX cksum algorithm and digest output parsers.

Remote filesystems compute digests by running ``cksum``, ``md5sum``,
``sha1sum`` or PowerShell ``Get-FileHash`` and parsing their textual
output. Every parser is strict: a line that does not follow the tool's
grammar raises :class:`ChecksumParseError` rather than being skipped.
"""

import hashlib
import re
from dataclasses import dataclass
from enum import Enum
from typing import Any, BinaryIO, Iterator, Union

from .exceptions import VsyncIllegalStateError
from .utils import DEFAULT_BUFFER_SIZE


class Checksum(str, Enum):
    """Content digest kinds."""

    CK = "cksum"
    """32-bit POSIX cksum CRC"""

    MD5 = "md5"
    """MD5 hex digest"""

    SHA1 = "sha1"
    """SHA-1 hex digest"""

    @property
    def posix_tool(self) -> str:
        """Name of the POSIX command computing this digest."""
        return {
            Checksum.CK: "cksum",
            Checksum.MD5: "md5sum",
            Checksum.SHA1: "sha1sum",
        }[self]

    @property
    def powershell_algorithm(self) -> str:
        """Algorithm name accepted by ``Get-FileHash``."""
        if self == Checksum.CK:
            raise ValueError("cksum has no Get-FileHash algorithm")
        return self.name

    @classmethod
    def from_string(cls, value: str) -> "Checksum":
        """Parse a checksum kind from a user-supplied string.

        Accepts values and names in any case (``md5``, ``MD5``, ``ck``,
        ``cksum``, ``sha-1``).
        """
        normalized = value.strip().lower().replace("-", "")
        for kind in cls:
            if normalized in (kind.value, kind.name.lower()):
                return kind
        raise ValueError(f"Unknown checksum kind: {value}")


# Strongest first; used when no kind is requested explicitly
CHECKSUM_PREFERENCE: tuple[Checksum, ...] = (Checksum.MD5, Checksum.SHA1, Checksum.CK)


class ChecksumParseError(VsyncIllegalStateError):
    """Digest tool output did not follow the expected grammar."""


@dataclass(frozen=True)
class ChecksumEntry:
    """One parsed line (or record) of digest tool output."""

    path: str
    """Path exactly as printed by the tool"""

    value: Union[int, str]
    """Digest: an int for cksum, a lowercase hex string otherwise"""

    size: int = -1
    """File size reported by cksum (-1 for hash tools)"""


# =============================================================================
# POSIX cksum (CRC-32 with polynomial 0x04C11DB7 and length suffix)
# =============================================================================


def _build_crc_table() -> list[int]:
    table = []
    for i in range(256):
        c = i << 24
        for _ in range(8):
            c = ((c << 1) ^ 0x04C11DB7) if c & 0x80000000 else (c << 1)
        table.append(c & 0xFFFFFFFF)
    return table


_CRC_TABLE = _build_crc_table()


class PosixCksum:
    """Incremental implementation of the POSIX ``cksum`` algorithm.

    Examples:
        >>> PosixCksum().value()
        4294967295
    """

    def __init__(self) -> None:
        self._crc = 0
        self._length = 0

    def update(self, data: bytes) -> None:
        crc = self._crc
        for b in data:
            crc = ((crc << 8) & 0xFFFFFFFF) ^ _CRC_TABLE[(crc >> 24) ^ b]
        self._crc = crc
        self._length += len(data)

    def value(self) -> int:
        crc = self._crc
        n = self._length
        while n:
            crc = ((crc << 8) & 0xFFFFFFFF) ^ _CRC_TABLE[((crc >> 24) ^ n) & 0xFF]
            n >>= 8
        return (~crc) & 0xFFFFFFFF


def compute_checksum(kind: Checksum, stream: BinaryIO) -> Union[int, str]:
    """Compute a digest by reading a stream once.

    Args:
        kind: Digest kind
        stream: Binary stream positioned at the start of the content

    Returns:
        int for :attr:`Checksum.CK`, lowercase hex string otherwise
    """
    hasher: Any
    if kind == Checksum.CK:
        hasher = PosixCksum()
    elif kind == Checksum.MD5:
        hasher = hashlib.md5()
    else:
        hasher = hashlib.sha1()

    while True:
        chunk = stream.read(DEFAULT_BUFFER_SIZE)
        if not chunk:
            break
        hasher.update(chunk)

    if isinstance(hasher, PosixCksum):
        return hasher.value()
    return hasher.hexdigest()


# =============================================================================
# Output parsers
# =============================================================================

_CKSUM_LINE = re.compile(r"^(\d+) (\d+) (.+)$")
_HASH_LINE = re.compile(r"^([0-9a-fA-F]+) [ *](.+)$")
_RECORD_LINE = re.compile(r"^(\w+)\s*:\s?(.*)$")


def _lines(output: str) -> Iterator[str]:
    for line in output.splitlines():
        if line.strip():
            yield line


def parse_cksum_output(output: str) -> list[ChecksumEntry]:
    """Parse ``cksum`` output: ``<checksum> <size> <path>`` per line.

    Examples:
        >>> parse_cksum_output("4294967295 0 /tmp/empty\\n")
        [ChecksumEntry(path='/tmp/empty', value=4294967295, size=0)]
    """
    entries = []
    for line in _lines(output):
        match = _CKSUM_LINE.match(line)
        if not match:
            raise ChecksumParseError(f"Unexpected cksum output line: {line!r}")
        entries.append(
            ChecksumEntry(
                path=match.group(3),
                value=int(match.group(1)),
                size=int(match.group(2)),
            )
        )
    return entries


def _unescape_hash_path(path: str) -> str:
    out = []
    i = 0
    while i < len(path):
        c = path[i]
        if c == "\\" and i + 1 < len(path):
            nxt = path[i + 1]
            if nxt == "n":
                out.append("\n")
            elif nxt == "\\":
                out.append("\\")
            else:
                raise ChecksumParseError(f"Unexpected escape in hash output: {path!r}")
            i += 2
            continue
        out.append(c)
        i += 1
    return "".join(out)


def parse_hash_output(output: str) -> list[ChecksumEntry]:
    """Parse ``md5sum``/``sha1sum`` output: ``<hexdigest>  <path>`` per line.

    GNU tools prefix a line with ``\\`` when the file name had to be escaped;
    such names are unescaped so they compare equal to the path that was sent.

    Examples:
        >>> entry = parse_hash_output("d41d8cd98f00b204e9800998ecf8427e  /tmp/e")[0]
        >>> entry.path, entry.value
        ('/tmp/e', 'd41d8cd98f00b204e9800998ecf8427e')
    """
    entries = []
    for line in _lines(output):
        escaped = line.startswith("\\")
        match = _HASH_LINE.match(line[1:] if escaped else line)
        if not match:
            raise ChecksumParseError(f"Unexpected hash output line: {line!r}")
        path = match.group(2)
        if escaped:
            path = _unescape_hash_path(path)
        entries.append(ChecksumEntry(path=path, value=match.group(1).lower()))
    return entries


def parse_powershell_hash_output(output: str) -> list[ChecksumEntry]:
    """Parse ``Get-FileHash | Select-Object Hash, Path | Format-List`` output.

    Records are ``Hash : <HEX>`` followed by ``Path : <native path>``,
    separated by blank lines. Long values wrapped by ``Format-List`` onto
    indented continuation lines are joined back together.

    Examples:
        >>> parse_powershell_hash_output("\\nHash : ABCD\\nPath : C:\\\\a.txt\\n")
        [ChecksumEntry(path='C:\\\\a.txt', value='abcd', size=-1)]
    """
    entries = []
    digest = None
    path = None
    last_key = None

    def flush() -> None:
        nonlocal digest, path, last_key
        if digest is None and path is None:
            return
        if digest is None or path is None:
            raise ChecksumParseError(
                f"Incomplete Get-FileHash record (hash={digest!r}, path={path!r})"
            )
        entries.append(ChecksumEntry(path=path, value=digest.lower()))
        digest = None
        path = None
        last_key = None

    for line in output.splitlines():
        if not line.strip():
            flush()
            continue
        if line[0].isspace() and last_key is not None:
            if last_key == "Path":
                path = (path or "") + line.strip()
            else:
                digest = (digest or "") + line.strip()
            continue
        match = _RECORD_LINE.match(line)
        if not match:
            raise ChecksumParseError(f"Unexpected Get-FileHash output line: {line!r}")
        key, value = match.group(1), match.group(2).strip()
        if key == "Hash":
            if digest is not None:
                flush()
            digest = value
        elif key == "Path":
            if digest is None or path is not None:
                raise ChecksumParseError(f"Path without Hash in record: {line!r}")
            path = value
        else:
            raise ChecksumParseError(f"Unexpected Get-FileHash field: {key!r}")
        last_key = key
    flush()
    return entries
