"""Utility functions for pyvsync."""

import re
from datetime import datetime
from typing import Iterable, Iterator

# =============================================================================
# Constants for file operations
# =============================================================================

# Buffer size used when streaming file content
DEFAULT_BUFFER_SIZE: int = 8192

# Conservative bound for a remote command line, well under typical shell limits
DEFAULT_MAX_COMMAND_LENGTH: int = 7000

# Default tolerance when comparing modification times (milliseconds)
DEFAULT_TIMESTAMP_TOLERANCE_MS: int = 1000

# Poll interval while waiting for a remote channel to settle
EXEC_POLL_INTERVAL: float = 0.05  # seconds

# Maximum number of polls for the remote channel's terminal state
EXEC_POLL_ATTEMPTS: int = 100


# =============================================================================
# Formatting utilities
# =============================================================================


def format_size(size_bytes: int) -> str:
    """Format file size in human-readable format.

    Args:
        size_bytes: Size in bytes

    Returns:
        Formatted size string (e.g., "1.5 MB", "256 B")
    """
    if size_bytes < 1024:
        return f"{size_bytes} B"
    elif size_bytes < 1024 * 1024:
        return f"{size_bytes / 1024:.1f} KB"
    elif size_bytes < 1024 * 1024 * 1024:
        return f"{size_bytes / 1024 / 1024:.1f} MB"
    else:
        return f"{size_bytes / 1024 / 1024 / 1024:.1f} GB"


def format_millis(timestamp_ms: int) -> str:
    """Format a millisecond epoch timestamp as local ``YYYY-MM-DD HH:MM:SS``."""
    return datetime.fromtimestamp(timestamp_ms / 1000).strftime("%Y-%m-%d %H:%M:%S")


# =============================================================================
# Glob utilities
# =============================================================================


def is_glob_pattern(pattern: str) -> bool:
    """Check if a string contains glob wildcard characters.

    Args:
        pattern: String to check

    Returns:
        True if the string contains ``*``, ``?``, ``[`` or ``{``

    Examples:
        >>> is_glob_pattern("*.log")
        True
        >>> is_glob_pattern("target")
        False
    """
    return any(c in pattern for c in "*?[{")


def glob_to_regex(pattern: str) -> str:
    """Translate a glob into a regular expression over ``/``-separated paths.

    ``*`` and ``?`` never cross a ``/``, ``**`` crosses any number of
    directories, ``[...]`` is a character class (``[!...]`` negated) and
    ``{a,b}`` an alternation. A backslash escapes the next character.

    Args:
        pattern: Glob pattern

    Returns:
        Regular expression source (unanchored)

    Raises:
        ValueError: If a character class or group is not closed

    Examples:
        >>> glob_to_regex("*.md")
        '[^/]*\\\\.md'
    """
    out: list[str] = []
    i = 0
    n = len(pattern)
    group_depth = 0
    while i < n:
        c = pattern[i]
        if c == "*":
            if i + 1 < n and pattern[i + 1] == "*":
                out.append(".*")
                i += 2
                continue
            out.append("[^/]*")
        elif c == "?":
            out.append("[^/]")
        elif c == "[":
            start = i + 2 if pattern[i + 1 : i + 2] in ("!", "^") else i + 1
            end = pattern.find("]", start)
            if end < 0:
                raise ValueError(f"Missing ']' in glob: {pattern}")
            body = pattern[i + 1 : end]
            if body.startswith(("!", "^")):
                body = "^" + body[1:]
            out.append("[" + body.replace("\\", "\\\\") + "]")
            i = end
        elif c == "{":
            group_depth += 1
            out.append("(?:")
        elif c == "}" and group_depth:
            group_depth -= 1
            out.append(")")
        elif c == "," and group_depth:
            out.append("|")
        elif c == "\\" and i + 1 < n:
            i += 1
            out.append(re.escape(pattern[i]))
        else:
            out.append(re.escape(c))
        i += 1

    if group_depth:
        raise ValueError(f"Missing '}}' in glob: {pattern}")
    return "".join(out)


def glob_match(pattern: str, path: str) -> bool:
    """Check whether a whole ``/``-separated path matches a glob.

    Examples:
        >>> glob_match("*.log", "a.log")
        True
        >>> glob_match("*.log", "sub/a.log")
        False
        >>> glob_match("**/*.log", "sub/a.log")
        True
    """
    return re.fullmatch(glob_to_regex(pattern), path) is not None


# =============================================================================
# Batching utilities
# =============================================================================


def batch_by_length(items: Iterable[str], max_length: int) -> Iterator[list[str]]:
    """Group strings into batches whose joined length stays within a bound.

    Each item costs its length plus one separator. A batch is flushed as soon
    as adding the next item would exceed ``max_length``; an item longer than
    the bound still forms a batch of its own.

    Args:
        items: Strings to group (typically quoted command arguments)
        max_length: Maximum accumulated length per batch

    Yields:
        Lists of items in their original order

    Examples:
        >>> list(batch_by_length(["aaaa", "bbbb", "cccc"], 10))
        [['aaaa', 'bbbb'], ['cccc']]
    """
    batch: list[str] = []
    length = 0
    for item in items:
        cost = len(item) + 1
        if batch and length + cost > max_length:
            yield batch
            batch = []
            length = 0
        batch.append(item)
        length += cost
    if batch:
        yield batch
