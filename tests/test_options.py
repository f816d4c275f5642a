"""Unit tests for SyncOptions."""

import pytest

from pyvsync.checksums import Checksum
from pyvsync.exceptions import VsyncConfigError
from pyvsync.sync.options import SyncOptions
from pyvsync.utils import DEFAULT_TIMESTAMP_TOLERANCE_MS


class TestSyncOptions:
    """Tests for SyncOptions."""

    def test_defaults(self):
        """Test default option values."""
        options = SyncOptions()
        assert not options.delete
        assert not options.parents
        assert not options.force
        assert not options.ignore_times
        assert options.permissions
        assert not options.ownership
        assert options.checksum is None
        assert options.timestamp_tolerance_ms == DEFAULT_TIMESTAMP_TOLERANCE_MS
        assert options.excludes == []

    def test_defaults_not_shared(self):
        """Test that rule lists are per instance."""
        first = SyncOptions().add_exclude("*.tmp")
        assert SyncOptions().excludes == []
        assert first.excludes == ["*.tmp"]

    def test_add_rules_chain(self):
        """Test chaining rule helpers."""
        options = SyncOptions().add_ignore("*.log").add_ignore("/cache/")
        assert options.ignores == ["*.log", "/cache/"]


class TestFromDict:
    """Tests for SyncOptions.from_dict."""

    def test_full(self):
        """Test a dictionary with every kind of value."""
        options = SyncOptions.from_dict(
            {
                "delete": True,
                "excludes": ["*.tmp"],
                "checksum": "sha1",
                "timestamp_tolerance_ms": "2000",
            }
        )
        assert options.delete
        assert options.excludes == ["*.tmp"]
        assert options.checksum == Checksum.SHA1
        assert options.timestamp_tolerance_ms == 2000

    def test_unknown_key(self):
        """Test that unknown keys are rejected."""
        with pytest.raises(VsyncConfigError, match="dry_run"):
            SyncOptions.from_dict({"dry_run": True})

    def test_rules_must_be_list(self):
        """Test that rule strings are rejected."""
        with pytest.raises(VsyncConfigError, match="excludes"):
            SyncOptions.from_dict({"excludes": "*.tmp"})

    def test_bad_checksum(self):
        """Test that unknown checksum kinds are rejected."""
        with pytest.raises(VsyncConfigError):
            SyncOptions.from_dict({"checksum": "crc64"})

    def test_bad_tolerance(self):
        """Test that non-numeric tolerances are rejected."""
        with pytest.raises(VsyncConfigError):
            SyncOptions.from_dict({"timestamp_tolerance_ms": "soon"})

    def test_to_dict(self):
        """Test that to_dict output is accepted by from_dict."""
        options = SyncOptions(delete=True, checksum=Checksum.MD5)
        data = options.to_dict()
        assert data["checksum"] == "md5"
        assert SyncOptions.from_dict(data) == options
