"""Exceptions raised by pyvsync."""

import errno
from typing import Any, Optional


class VsyncError(Exception):
    """Base exception for all pyvsync errors."""

    def __init__(self, message: str, path: Optional[Any] = None):
        """Initialize error.

        Args:
            message: Human-readable error message
            path: Path the error relates to (if any)
        """
        super().__init__(message)
        self.message = message
        self.path = path


class VsyncNotFoundError(VsyncError):
    """Path does not exist on the filesystem."""


class VsyncNotADirectoryError(VsyncError):
    """A directory operation was attempted on a non-directory."""


class VsyncUnsupportedChecksumError(VsyncError):
    """Requested checksum kind is unavailable or its computation failed."""

    def __init__(self, message: str, checksum: Optional[Any] = None):
        super().__init__(message)
        self.checksum = checksum


class VsyncIllegalStateError(VsyncError):
    """Internal consistency failure (e.g. an unmatched checksum output line)."""


class VsyncInterruptedError(VsyncError):
    """A blocking wait was cancelled."""


class VsyncIOError(VsyncError):
    """Generic I/O or protocol failure on a filesystem."""


class VsyncConnectionError(VsyncError):
    """Remote session could not be established."""


class VsyncSyncError(VsyncError):
    """Sync refused to apply a change under the current options."""


class VsyncConfigError(VsyncError):
    """Invalid configuration or volume string."""


def translate_os_error(exc: OSError, path: Optional[Any] = None) -> VsyncError:
    """Map an OSError onto the pyvsync error taxonomy.

    Works for local errors as well as paramiko SFTP errors, which are raised
    as ``IOError(errno.ENOENT, ...)`` for missing paths.

    Args:
        exc: Error raised by the backend
        path: Path the operation targeted

    Returns:
        Matching VsyncError instance (not raised)
    """
    message = exc.strerror or str(exc)
    if path is not None:
        message = f"{message}: {path}"

    if isinstance(exc, FileNotFoundError) or exc.errno == errno.ENOENT:
        return VsyncNotFoundError(message, path)
    if isinstance(exc, NotADirectoryError) or exc.errno == errno.ENOTDIR:
        return VsyncNotADirectoryError(message, path)
    return VsyncIOError(message, path)
