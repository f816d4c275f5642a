"""Unit tests for volume parsing."""

import pytest

from pyvsync.exceptions import VsyncConfigError
from pyvsync.vfs.local import LocalVirtualFileSystem
from pyvsync.vfs.volume import LocalVolume, SftpVolume, parse_volume


class TestParseVolume:
    """Tests for parse_volume."""

    @pytest.mark.parametrize(
        "value",
        ["/srv/data", "./site", "../up", "~/docs", "C:\\data", "D:/backup", "photos"],
    )
    def test_local(self, value):
        """Test values that name local paths."""
        volume = parse_volume(value)
        assert isinstance(volume, LocalVolume)
        assert volume.path == value

    @pytest.mark.parametrize(
        "value,host,path",
        [
            ("nas:/srv/data", "nas", "/srv/data"),
            ("backup@nas:docs", "backup@nas", "docs"),
            ("backup@nas:2222:/srv/data", "backup@nas:2222", "/srv/data"),
            ("nas:", "nas", "."),
        ],
    )
    def test_remote(self, value, host, path):
        """Test values that name remote paths."""
        volume = parse_volume(value)
        assert isinstance(volume, SftpVolume)
        assert volume.host == host
        assert volume.path == path

    @pytest.mark.parametrize("value", ["", "   "])
    def test_empty(self, value):
        """Test that empty values are rejected."""
        with pytest.raises(VsyncConfigError):
            parse_volume(value)


class TestVolumes:
    """Tests for the volume classes."""

    def test_local_open(self, tmp_path):
        """Test opening a local filesystem."""
        volume = LocalVolume("data", working_dir=str(tmp_path))
        with volume.open_filesystem() as fs:
            assert isinstance(fs, LocalVirtualFileSystem)
            assert fs.pwd.to_full_path() == str(tmp_path)

    def test_representations(self):
        """Test str and repr."""
        assert repr(LocalVolume("/a")) == "LocalVolume('/a')"
        assert str(SftpVolume("nas", "/a")) == "nas:/a"
        assert repr(SftpVolume("nas", "/a")) == "SftpVolume('nas', '/a')"
