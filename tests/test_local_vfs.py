"""Tests for the local virtual filesystem."""

import io
import os
import tempfile
from pathlib import Path

import pytest

from pyvsync.checksums import Checksum
from pyvsync.exceptions import (
    VsyncIllegalStateError,
    VsyncNotADirectoryError,
    VsyncNotFoundError,
)
from pyvsync.vfs.base import VirtualFileSystem, resolve_path
from pyvsync.vfs.local import LocalVirtualFileSystem
from pyvsync.vfs.path import VirtualPath
from pyvsync.vfs.stat import StatModel, StatUpdateOption, VirtualFileType

posix_only = pytest.mark.skipif(os.name != "posix", reason="POSIX permissions")


@pytest.fixture
def temp_dir():
    """Create a temporary directory for testing."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def fs(temp_dir):
    """Create a local filesystem rooted at the temp directory."""
    return LocalVirtualFileSystem(str(temp_dir))


def _path(path: Path) -> VirtualPath:
    return VirtualPath.parse(str(path))


class TestLocalVirtualFileSystem:
    """Tests for LocalVirtualFileSystem."""

    def test_conforms_to_protocol(self, fs):
        """Test that the local filesystem satisfies the protocol."""
        assert isinstance(fs, VirtualFileSystem)
        assert not fs.is_remote()
        assert fs.name == "local"

    def test_pwd(self, fs, temp_dir):
        """Test that the working directory is the given directory."""
        assert fs.pwd == VirtualPath.parse(os.path.abspath(str(temp_dir)))
        assert fs.pwd.directory

    @posix_only
    def test_posix_model(self, fs):
        """Test the stat model on POSIX hosts."""
        assert fs.stat_model == StatModel.POSIX

    def test_supported_checksums(self, fs):
        """Test that every kind is supported locally."""
        for kind in Checksum:
            assert fs.is_checksum_supported(kind)

    def test_stat_file(self, fs, temp_dir):
        """Test stat of a regular file."""
        (temp_dir / "a.txt").write_text("hello")
        path = fs.stat(_path(temp_dir / "a.txt"))
        assert path.stat is not None
        assert path.stat.type == VirtualFileType.FILE
        assert path.stat.size == 5
        assert path.stat.modified_time > 0
        assert not path.is_directory

    def test_stat_directory(self, fs, temp_dir):
        """Test stat of a directory."""
        path = fs.stat(_path(temp_dir))
        assert path.is_directory

    def test_stat_relative(self, fs, temp_dir):
        """Test that relative paths resolve against the working directory."""
        (temp_dir / "rel.txt").write_text("x")
        path = fs.stat(VirtualPath.parse("rel.txt"))
        assert path.stat.size == 1

    def test_stat_nested_relative(self, fs, temp_dir):
        """Test that multi-segment relative paths resolve against the working dir."""
        (temp_dir / "sub").mkdir()
        (temp_dir / "sub" / "a.txt").write_text("abc")
        path = fs.stat(VirtualPath.parse("sub/a.txt"))
        assert path.stat.size == 3
        assert fs.exists(VirtualPath.parse("sub/missing.txt")) is None

    def test_stat_missing(self, fs, temp_dir):
        """Test that a missing path raises VsyncNotFoundError."""
        with pytest.raises(VsyncNotFoundError):
            fs.stat(_path(temp_dir / "missing"))
        assert fs.exists(_path(temp_dir / "missing")) is None

    @posix_only
    def test_stat_symlink_not_followed(self, fs, temp_dir):
        """Test that symlinks are reported as symlinks."""
        (temp_dir / "target.txt").write_text("x")
        os.symlink(temp_dir / "target.txt", temp_dir / "link")
        path = fs.stat(_path(temp_dir / "link"))
        assert path.stat.type == VirtualFileType.SYMLINK

    def test_ls(self, fs, temp_dir):
        """Test listing a directory."""
        (temp_dir / "a.txt").write_text("a")
        (temp_dir / "sub").mkdir()
        children = {c.name: c for c in fs.ls(_path(temp_dir))}
        assert set(children) == {"a.txt", "sub"}
        assert children["sub"].is_directory
        assert children["a.txt"].stat.size == 1
        assert children["a.txt"].parent_path == fs.pwd.to_full_path()

    def test_ls_file(self, fs, temp_dir):
        """Test that listing a file raises VsyncNotADirectoryError."""
        (temp_dir / "a.txt").write_text("a")
        with pytest.raises(VsyncNotADirectoryError):
            fs.ls(_path(temp_dir / "a.txt"))

    def test_ls_missing(self, fs, temp_dir):
        """Test that listing a missing directory raises VsyncNotFoundError."""
        with pytest.raises(VsyncNotFoundError):
            fs.ls(_path(temp_dir / "missing"))

    def test_mkdir_rmdir(self, fs, temp_dir):
        """Test creating and removing a directory."""
        path = _path(temp_dir / "new")
        fs.mkdir(path)
        assert (temp_dir / "new").is_dir()
        fs.rmdir(path)
        assert not (temp_dir / "new").exists()

    def test_mkdir_missing_parent(self, fs, temp_dir):
        """Test that mkdir does not create parents."""
        with pytest.raises(VsyncNotFoundError):
            fs.mkdir(_path(temp_dir / "a" / "b"))

    def test_rm(self, fs, temp_dir):
        """Test removing a file."""
        (temp_dir / "a.txt").write_text("a")
        fs.rm(_path(temp_dir / "a.txt"))
        assert not (temp_dir / "a.txt").exists()

    def test_read_and_write(self, fs, temp_dir):
        """Test streaming content in and out."""
        (temp_dir / "src.txt").write_bytes(b"content")
        with fs.read_file(_path(temp_dir / "src.txt")) as stream:
            assert stream.read() == b"content"

        with fs.write_stream(_path(temp_dir / "out.txt")) as stream:
            stream.write(b"written")
        assert (temp_dir / "out.txt").read_bytes() == b"written"

        fs.write_file(io.BytesIO(b"replaced"), _path(temp_dir / "out.txt"))
        assert (temp_dir / "out.txt").read_bytes() == b"replaced"

    def test_update_timestamps(self, fs, temp_dir):
        """Test that timestamps are applied in milliseconds."""
        (temp_dir / "a.txt").write_text("a")
        path = fs.stat(_path(temp_dir / "a.txt"))
        path.stat.modified_time = 1_600_000_000_000
        path.stat.accessed_time = 1_600_000_000_000
        fs.update_stat(path, path.stat, [StatUpdateOption.TIMESTAMPS])
        assert fs.stat(path).stat.modified_time == 1_600_000_000_000

    @posix_only
    def test_update_permissions(self, fs, temp_dir):
        """Test that only the requested options are applied."""
        (temp_dir / "a.txt").write_text("a")
        path = fs.stat(_path(temp_dir / "a.txt"))
        original_mtime = path.stat.modified_time
        path.stat.permissions = 0o600
        path.stat.modified_time = 1_000
        fs.update_stat(path, path.stat, [StatUpdateOption.PERMISSIONS])
        updated = fs.stat(path)
        assert updated.stat.permissions == 0o600
        assert updated.stat.modified_time == original_mtime

    def test_checksums(self, fs, temp_dir):
        """Test that digests are stored in each path's stat."""
        (temp_dir / "a.txt").write_bytes(b"hello")
        (temp_dir / "b.txt").write_bytes(b"")
        paths = [fs.stat(_path(temp_dir / n)) for n in ("a.txt", "b.txt")]
        fs.checksums(Checksum.MD5, paths)
        assert paths[0].stat.md5 == "5d41402abc4b2a76b9719d911017c592"
        assert paths[1].stat.md5 == "d41d8cd98f00b204e9800998ecf8427e"

        fs.checksums(Checksum.CK, paths[1:])
        assert paths[1].stat.cksum == 4294967295

    def test_checksums_require_stat(self, fs, temp_dir):
        """Test that paths without a stat are rejected."""
        (temp_dir / "a.txt").write_bytes(b"hello")
        with pytest.raises(VsyncIllegalStateError):
            fs.checksums(Checksum.MD5, [_path(temp_dir / "a.txt")])

    def test_context_manager(self, temp_dir):
        """Test use as a context manager."""
        with LocalVirtualFileSystem(str(temp_dir)) as fs:
            assert fs.stat(fs.pwd).is_directory


class TestResolvePath:
    """Tests for resolve_path."""

    def test_relative(self, fs, temp_dir):
        """Test resolving relative paths against the working directory."""
        resolved = resolve_path(fs, "sub/../a.txt")
        assert resolved == fs.pwd.resolve("a.txt")

    def test_nested_relative(self, fs):
        """Test that a relative path with several segments is not left as is."""
        resolved = resolve_path(fs, "sub/a.txt")
        assert resolved == fs.pwd.resolve("sub/a.txt")
        assert resolved.is_absolute()

    def test_dot(self, fs):
        """Test that . resolves to the working directory."""
        assert resolve_path(fs, ".") == fs.pwd

    def test_absolute(self, fs):
        """Test that absolute paths are only normalized."""
        assert resolve_path(fs, "/x/./y").to_full_path() == "/x/y"
