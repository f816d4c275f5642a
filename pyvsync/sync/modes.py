"""Sync modes."""

from enum import Enum


class SyncMode(str, Enum):
    """How the source entry is placed on the target.

    Examples:
        >>> SyncMode.from_string("merge")
        <SyncMode.MERGE: 'merge'>
    """

    MERGE = "merge"
    """Target path is the counterpart of the source path (``src/ -> dst/``)"""

    NEST = "nest"
    """Source entry is placed inside the target directory (``src -> dst/src``)"""

    @classmethod
    def from_string(cls, value: str) -> "SyncMode":
        """Parse a mode from its value or name (case-insensitive).

        Raises:
            ValueError: If the value names no mode
        """
        normalized = value.strip().lower()
        for mode in cls:
            if normalized == mode.value:
                return mode
        valid = ", ".join(m.value for m in cls)
        raise ValueError(f"Invalid sync mode: {value}. Valid modes: {valid}")
