"""Unit tests for gitignore-style path rules."""

import pytest

from pyvsync.exceptions import VsyncConfigError
from pyvsync.vfs.matcher import VirtualPathMatcher, VirtualPathMatchers, relative_path
from pyvsync.vfs.path import VirtualPath

ROOT = VirtualPath.parse("/srv/site", True)


def _matches(rule: str, path: str, root: VirtualPath = ROOT) -> bool:
    return VirtualPathMatcher(rule).matches(root, VirtualPath.parse(path))


class TestRelativePath:
    """Tests for relative_path."""

    def test_below_root(self):
        """Test stripping the root prefix."""
        assert relative_path(ROOT, VirtualPath.parse("/srv/site/a/b.txt")) == "a/b.txt"

    def test_posix_root(self):
        """Test relative paths below /."""
        root = VirtualPath.parse("/")
        assert relative_path(root, VirtualPath.parse("/a/b")) == "a/b"

    def test_root_itself(self):
        """Test that the root is relative to itself as an empty string."""
        assert relative_path(ROOT, VirtualPath.parse("/srv/site")) == ""

    def test_not_below_root(self):
        """Test that unrelated paths keep their full form."""
        assert relative_path(ROOT, VirtualPath.parse("/srv/sites")) == "/srv/sites"

    def test_relative_candidate(self):
        """Test that relative candidates are used as they are."""
        assert relative_path(ROOT, VirtualPath.parse("a/b")) == "a/b"


class TestVirtualPathMatcher:
    """Tests for single rules."""

    @pytest.mark.parametrize(
        "rule,path,expected",
        [
            # Plain names match at any depth
            ("target", "/srv/site/target", True),
            ("target", "/srv/site/a/b/target", True),
            ("target", "/srv/site/targets", False),
            ("target", "/srv/site/target/file.txt", False),
            # Rooted rules only match directly below the root
            ("/target", "/srv/site/target", True),
            ("/target", "/srv/site/a/target", False),
            # Directory rules match their contents
            ("target/", "/srv/site/target", True),
            ("target/", "/srv/site/target/file.txt", True),
            ("target/", "/srv/site/a/target/b/c", True),
            ("/target/", "/srv/site/target/x", True),
            ("/target/", "/srv/site/a/target/x", False),
            # Wildcards stay within one segment
            ("*.log", "/srv/site/a.log", True),
            ("*.log", "/srv/site/logs/today.log", True),
            ("*.log", "/srv/site/a.log.txt", False),
            ("/*.log", "/srv/site/logs/today.log", False),
            ("doc?.md", "/srv/site/doc1.md", True),
            ("doc?.md", "/srv/site/doc12.md", False),
            ("[ab].txt", "/srv/site/a.txt", True),
            ("[!ab].txt", "/srv/site/a.txt", False),
            ("[!ab].txt", "/srv/site/c.txt", True),
            ("*.{jpg,png}", "/srv/site/img/x.png", True),
            ("*.{jpg,png}", "/srv/site/img/x.gif", False),
            # Double star spans directories
            ("/docs/**/*.md", "/srv/site/docs/a/b/c.md", True),
            ("/docs/**/*.md", "/srv/site/src/a/c.md", False),
        ],
    )
    def test_rules(self, rule, path, expected):
        """Test rule matching against paths below the root."""
        assert _matches(rule, path) is expected

    def test_windows_paths(self):
        """Test matching with drive-letter roots and backslashes."""
        root = VirtualPath.parse("C:\\Users\\me\\project", True)
        assert _matches("node_modules/", "C:\\Users\\me\\project\\node_modules", root)
        assert _matches(
            "node_modules/", "C:\\Users\\me\\project\\web\\node_modules\\x.js", root
        )
        assert not _matches("/build", "C:\\Users\\me\\project\\src\\build", root)

    def test_rule_is_trimmed(self):
        """Test that surrounding whitespace is ignored."""
        matcher = VirtualPathMatcher("  *.tmp  ")
        assert matcher.matches(ROOT, VirtualPath.parse("/srv/site/a.tmp"))

    def test_globs(self):
        """Test the compiled alternatives."""
        assert VirtualPathMatcher("/a").globs == ["a"]
        assert VirtualPathMatcher("/a/").globs == ["a", "a/**"]
        assert VirtualPathMatcher("a").globs == ["a", "**/a"]
        assert VirtualPathMatcher("a/").globs == ["a", "**/a", "a/**", "**/a/**"]

    @pytest.mark.parametrize("rule", ["", "   ", "/", "//"])
    def test_empty_rule(self, rule):
        """Test that empty rules are rejected."""
        with pytest.raises(VsyncConfigError):
            VirtualPathMatcher(rule)

    @pytest.mark.parametrize("rule", ["[abc", "{a,b"])
    def test_invalid_rule(self, rule):
        """Test that unclosed classes and groups are rejected."""
        with pytest.raises(VsyncConfigError, match="Invalid path rule"):
            VirtualPathMatcher(rule)


class TestVirtualPathMatchers:
    """Tests for rule sets."""

    def test_any_rule_matches(self):
        """Test that a rule set is the OR of its rules."""
        matchers = VirtualPathMatchers(["*.tmp", "/cache/"])
        assert matchers.matches(ROOT, VirtualPath.parse("/srv/site/x/y.tmp"))
        assert matchers.matches(ROOT, VirtualPath.parse("/srv/site/cache/a"))
        assert not matchers.matches(ROOT, VirtualPath.parse("/srv/site/index.html"))

    def test_empty_set_matches_nothing(self):
        """Test that an empty rule set matches nothing."""
        matchers = VirtualPathMatchers()
        assert not matchers
        assert len(matchers) == 0
        assert not matchers.matches(ROOT, VirtualPath.parse("/srv/site/a"))

    def test_comments_and_blanks_skipped(self):
        """Test that blank lines and comments are not compiled."""
        matchers = VirtualPathMatchers(["# build output", "", "   ", "dist/"])
        assert len(matchers) == 1
        assert matchers

    def test_add_chains(self):
        """Test adding rules one by one."""
        matchers = VirtualPathMatchers().add("a").add("b")
        assert len(matchers) == 2
