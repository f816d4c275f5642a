"""Helpers for POSIX-style permission bits."""

OWNER_MASK = 0o700
"""Owner read/write/execute bits"""

PERMISSION_MASK = 0o7777
"""Permission bits including setuid/setgid/sticky"""


def merge_owner_permissions(source: int, target: int) -> int:
    """Copy the owner bits of ``source`` onto ``target``.

    Group/other and special bits of ``target`` are kept as they are. Used
    when a filesystem only faithfully reports owner bits.

    Examples:
        >>> oct(merge_owner_permissions(0o755, 0o640))
        '0o740'
    """
    return (target & ~OWNER_MASK) | (source & OWNER_MASK)


def is_owner_permission_equal(a: int, b: int) -> bool:
    """Compare only the owner bits of two modes.

    Examples:
        >>> is_owner_permission_equal(0o755, 0o744)
        True
        >>> is_owner_permission_equal(0o755, 0o655)
        False
    """
    return (a & OWNER_MASK) == (b & OWNER_MASK)


def basic_permissions(readable: bool, writable: bool, executable: bool) -> int:
    """Synthesize a mode from simple access flags (owner bits only)."""
    mode = 0
    if readable:
        mode |= 0o400
    if writable:
        mode |= 0o200
    if executable:
        mode |= 0o100
    return mode


def to_posix_string(mode: int) -> str:
    """Render a mode as ``rwxr-xr-x`` (setuid/setgid/sticky shown as s/t).

    Examples:
        >>> to_posix_string(0o755)
        'rwxr-xr-x'
        >>> to_posix_string(0o1777)
        'rwxrwxrwt'
    """
    chars = []
    for shift in (6, 3, 0):
        bits = (mode >> shift) & 0o7
        chars.append("r" if bits & 0o4 else "-")
        chars.append("w" if bits & 0o2 else "-")
        chars.append("x" if bits & 0o1 else "-")

    def special(index: int, flag: int, letter: str) -> None:
        if mode & flag:
            chars[index] = letter if chars[index] == "x" else letter.upper()

    special(2, 0o4000, "s")
    special(5, 0o2000, "s")
    special(8, 0o1000, "t")
    return "".join(chars)
