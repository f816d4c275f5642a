"""Gitignore-style path rules.

A rule is compiled into a set of glob alternatives evaluated against the
candidate's path relative to a root:

- ``target`` matches ``target`` at any depth
- ``/target`` matches ``target`` only directly below the root
- ``target/`` additionally matches everything inside such a directory
- ``*``, ``?``, ``[...]`` stay within one segment; ``**`` spans segments
"""

import logging
import re
from typing import Iterable, Optional

from ..exceptions import VsyncConfigError
from ..utils import glob_to_regex
from .path import VirtualPath

logger = logging.getLogger(__name__)


def relative_path(root: VirtualPath, candidate: VirtualPath) -> str:
    """Compute ``candidate``'s path relative to ``root``.

    Absolute candidates have the root's full path stripped as a prefix;
    when the root is not a prefix (or the candidate is relative) the
    candidate's own string is used.
    """
    path = candidate.to_full_path()
    if candidate.is_relative():
        return path

    root_path = root.to_full_path()
    prefix = root_path if root_path.endswith("/") else root_path + "/"
    if path.startswith(prefix):
        return path[len(prefix) :]
    if path == root_path:
        return ""
    return path


class VirtualPathMatcher:
    """One compiled rule."""

    def __init__(self, rule: str):
        """Compile a rule.

        Args:
            rule: Rule text (``target``, ``/target``, ``target/``, ``*.log`` ...)

        Raises:
            VsyncConfigError: If the rule is empty or not a valid glob
        """
        self.rule = rule
        glob = rule.strip()
        self.directory = glob.endswith("/")
        if self.directory:
            glob = glob.rstrip("/")
        self.rooted = glob.startswith("/")
        if self.rooted:
            glob = glob.lstrip("/")
        if not glob:
            raise VsyncConfigError(f"Empty path rule: {rule!r}")

        if self.rooted:
            alternatives = [glob]
            if self.directory:
                alternatives.append(glob + "/**")
        else:
            alternatives = [glob, "**/" + glob]
            if self.directory:
                alternatives += [glob + "/**", "**/" + glob + "/**"]
        self.globs = alternatives

        try:
            regex = "|".join(f"(?:{glob_to_regex(g)})" for g in alternatives)
            self._pattern = re.compile(regex)
        except (ValueError, re.error) as e:
            raise VsyncConfigError(f"Invalid path rule {rule!r}: {e}") from e

    def matches(self, root: VirtualPath, candidate: VirtualPath) -> bool:
        """Check whether ``candidate`` (relative to ``root``) matches this rule."""
        return self._pattern.fullmatch(relative_path(root, candidate)) is not None

    def __repr__(self) -> str:
        return f"VirtualPathMatcher({self.rule!r})"


class VirtualPathMatchers:
    """Logical OR of several compiled rules."""

    def __init__(self, rules: Optional[Iterable[str]] = None):
        self.matchers: list[VirtualPathMatcher] = []
        for rule in rules or ():
            self.add(rule)

    def add(self, rule: str) -> "VirtualPathMatchers":
        """Compile and add a rule. Blank rules and ``#`` comments are skipped."""
        stripped = rule.strip()
        if not stripped or stripped.startswith("#"):
            return self
        self.matchers.append(VirtualPathMatcher(stripped))
        logger.debug(f"Added path rule: {stripped}")
        return self

    def matches(self, root: VirtualPath, candidate: VirtualPath) -> bool:
        return any(m.matches(root, candidate) for m in self.matchers)

    def __len__(self) -> int:
        return len(self.matchers)

    def __bool__(self) -> bool:
        return bool(self.matchers)
