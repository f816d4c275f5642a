"""Unit tests for the path model."""

import pytest

from pyvsync.vfs.path import VirtualPath
from pyvsync.vfs.stat import VirtualFileStat, VirtualFileType


def _stat(file_type=VirtualFileType.FILE):
    return VirtualFileStat(
        type=file_type,
        size=0,
        modified_time=0,
        accessed_time=0,
        permissions=0o644,
    )


class TestParse:
    """Tests for VirtualPath.parse."""

    def test_posix_root(self):
        """Test that / parses into an empty parent and name."""
        path = VirtualPath.parse("/")
        assert path.parent_path == ""
        assert path.name == ""
        assert path.to_full_path() == "/"
        assert path.is_root()
        assert path.is_absolute()

    def test_drive_root(self):
        """Test that a drive root keeps the drive as parent."""
        path = VirtualPath.parse("C:\\")
        assert path.parent_path == "C:"
        assert path.name == ""
        assert path.to_full_path() == "C:/"
        assert path.is_root()

    def test_drive_child(self):
        """Test a file directly below a drive root."""
        path = VirtualPath.parse("C:\\a")
        assert path.parent_path == "C:"
        assert path.name == "a"
        assert path.is_absolute()
        assert path.to_full_path() == "C:/a"

    def test_relative_backslashes(self):
        """Test relative paths with backslash separators."""
        path = VirtualPath.parse("a\\b")
        assert path.parent_path == "a"
        assert path.name == "b"
        assert path.is_relative()
        assert str(path) == "a/b"

    @pytest.mark.parametrize(
        "text", ["a/b", "sub/dir/file.txt", "./a/b", "../up/x", "a/b/"]
    )
    def test_multi_segment_relative(self, text):
        """Test that relative paths with several segments stay relative."""
        path = VirtualPath.parse(text)
        assert path.is_relative()
        assert not path.is_absolute()

    @pytest.mark.parametrize("text", ["/a", "/a/b/c", "C:/a/b", "C:\\x\\y"])
    def test_nested_absolute(self, text):
        """Test that paths below a root are absolute at any depth."""
        path = VirtualPath.parse(text)
        assert path.is_absolute()
        assert not path.is_relative()

    def test_single_relative_segment(self):
        """Test a relative path without a parent."""
        path = VirtualPath.parse("file.txt")
        assert path.parent_path is None
        assert path.name == "file.txt"

    def test_trailing_separator_marks_directory(self):
        """Test that a trailing separator marks a directory."""
        path = VirtualPath.parse("/home/user/docs/")
        assert path.directory is True
        assert path.to_full_path() == "/home/user/docs"

    def test_explicit_directory_overrides(self):
        """Test that an explicit directory flag wins over the text."""
        assert VirtualPath.parse("/a/", directory=False).directory is False
        assert VirtualPath.parse("/a", directory=True).directory is True

    def test_repeated_separators_collapse(self):
        """Test that repeated separators collapse while parsing."""
        assert VirtualPath.parse("//a//b///c").to_full_path() == "/a/b/c"

    def test_empty_relative_path(self):
        """Test parsing an empty string."""
        path = VirtualPath.parse("")
        assert path.is_relative()
        assert path.to_full_path() == ""

    @pytest.mark.parametrize(
        "text",
        ["/", "/a", "/a/b/c.txt", "C:/", "C:/Users/me", "a", "a/b", "../x"],
    )
    def test_full_path_round_trip(self, text):
        """Test that parsing a full path reproduces the path."""
        path = VirtualPath.parse(text)
        assert VirtualPath.parse(path.to_full_path()) == path
        assert path.to_full_path() == text


class TestEquality:
    """Tests for equality and hashing."""

    def test_directory_flag_ignored(self):
        """Test that the directory hint does not affect equality."""
        assert VirtualPath.parse("/a/b/") == VirtualPath.parse("/a/b")
        assert hash(VirtualPath.parse("/a/b/")) == hash(VirtualPath.parse("/a/b"))

    def test_stat_ignored(self):
        """Test that the stat does not affect equality."""
        path = VirtualPath.parse("/a/b")
        assert path.with_stat(_stat()) == path

    def test_different_paths(self):
        """Test that different full paths are not equal."""
        assert VirtualPath.parse("/a/b") != VirtualPath.parse("/a/c")
        assert VirtualPath.parse("/a") != VirtualPath.parse("a")


class TestResolve:
    """Tests for VirtualPath.resolve."""

    def test_child_of_root(self):
        """Test that children of / take the root's parent."""
        child = VirtualPath.parse("/").resolve("a")
        assert child.parent_path == ""
        assert child.name == "a"
        assert child.to_full_path() == "/a"

    def test_child_of_drive_root(self):
        """Test resolving below a drive root."""
        child = VirtualPath.parse("C:\\").resolve("Users")
        assert child.parent_path == "C:"
        assert child.to_full_path() == "C:/Users"

    def test_nested_child(self):
        """Test resolving a name below a nested directory."""
        child = VirtualPath.parse("/srv/data").resolve("a.txt")
        assert child.parent_path == "/srv/data"
        assert child.to_full_path() == "/srv/data/a.txt"

    def test_multi_segment_name(self):
        """Test that multi-segment relative names are joined."""
        child = VirtualPath.parse("/srv").resolve("a/b/c.txt")
        assert child.to_full_path() == "/srv/a/b/c.txt"
        assert child.parent_path == "/srv/a/b"

    def test_absolute_name_reroots(self):
        """Test that absolute names discard the base path."""
        assert VirtualPath.parse("/srv").resolve("/etc/x").to_full_path() == "/etc/x"
        assert VirtualPath.parse("/srv").resolve("D:\\x").to_full_path() == "D:/x"

    def test_relative_base(self):
        """Test resolving against a relative path."""
        child = VirtualPath.parse("a").resolve("b")
        assert child.is_relative()
        assert child.to_full_path() == "a/b"

    def test_resolve_carries_directory_and_stat(self):
        """Test that directory hint and stat are attached to the child."""
        stat = _stat(VirtualFileType.DIR)
        child = VirtualPath.parse("/srv").resolve("sub", True, stat)
        assert child.directory is True
        assert child.stat is stat
        assert child.is_directory


class TestNormalize:
    """Tests for VirtualPath.normalize."""

    @pytest.mark.parametrize(
        "text,expected",
        [
            ("/a/./b/../../c/", "/c"),
            ("/a/b/..", "/a"),
            ("/..", "/"),
            ("/../../a", "/a"),
            ("C:/a/../b", "C:/b"),
            ("C:/..", "C:/"),
            ("a/./b", "a/b"),
            ("../a/b", "../a/b"),
            ("a/../..", ".."),
            ("a/..", ""),
        ],
    )
    def test_normalize(self, text, expected):
        """Test normalization of dot segments."""
        assert VirtualPath.parse(text).normalize().to_full_path() == expected

    @pytest.mark.parametrize("text", ["/a/./b/../c", "x/../../y", "C:/a/./b", "/"])
    def test_normalize_idempotent(self, text):
        """Test that normalizing twice equals normalizing once."""
        once = VirtualPath.parse(text).normalize()
        assert once.normalize() == once

    def test_normalize_keeps_stat(self):
        """Test that normalize keeps the metadata snapshot."""
        stat = _stat()
        path = VirtualPath.parse("/a/./b").with_stat(stat)
        assert path.normalize().stat is stat


class TestParentAndKey:
    """Tests for parent(), with_stat() and key()."""

    def test_parent_of_nested(self):
        """Test parent of a nested path."""
        parent = VirtualPath.parse("/a/b").parent()
        assert parent is not None
        assert parent.to_full_path() == "/a"
        assert parent.directory is True

    def test_parent_of_top_level(self):
        """Test that the parent of /a is the root."""
        parent = VirtualPath.parse("/a").parent()
        assert parent is not None
        assert parent.is_root()

    def test_parent_of_root_and_single_segment(self):
        """Test that roots and single relative segments have no parent."""
        assert VirtualPath.parse("/").parent() is None
        assert VirtualPath.parse("C:/").parent() is None
        assert VirtualPath.parse("a").parent() is None

    def test_with_stat_sets_directory(self):
        """Test that with_stat takes the directory flag from the stat."""
        path = VirtualPath.parse("/a").with_stat(_stat(VirtualFileType.DIR))
        assert path.directory is True
        assert path.is_directory

    def test_is_directory_prefers_stat(self):
        """Test that a stat overrides the directory hint."""
        path = VirtualPath("/", "a", True, _stat(VirtualFileType.FILE))
        assert not path.is_directory

    def test_key_case_folding(self):
        """Test pairing keys with and without case sensitivity."""
        path = VirtualPath.parse("/X/Readme.TXT")
        assert path.key(True) == "Readme.TXT"
        assert path.key(False) == "readme.txt"
