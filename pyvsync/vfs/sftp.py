"""Virtual filesystem backed by an SFTP session (paramiko).

File operations map onto SFTP primitives. Checksums are computed on the
remote host by running ``cksum``/``md5sum``/``sha1sum`` (POSIX) or
PowerShell ``Get-FileHash`` (Windows) over batches of paths whose command
line stays below ``max_command_length``, so no file content is transferred.
"""

import glob
import io
import logging
import os
import posixpath
import shlex
from typing import BinaryIO, Iterable, Optional

import paramiko

from ..checksums import (
    Checksum,
    ChecksumEntry,
    parse_cksum_output,
    parse_hash_output,
    parse_powershell_hash_output,
)
from ..config import config
from ..exceptions import (
    VsyncConfigError,
    VsyncConnectionError,
    VsyncError,
    VsyncIllegalStateError,
    VsyncNotADirectoryError,
    VsyncNotFoundError,
    VsyncUnsupportedChecksumError,
    translate_os_error,
)
from ..permissions import PERMISSION_MASK
from ..utils import batch_by_length
from .base import LazyValue, close_quietly, stat_or_none
from .path import VirtualPath
from .shell import RemoteShell
from .stat import StatModel, StatUpdateOption, VirtualFileStat, VirtualFileType

logger = logging.getLogger(__name__)

DEFAULT_SSH_PORT = 22


def parse_host(host: str) -> tuple[Optional[str], str, Optional[int]]:
    """Split ``[user@]hostname[:port]``.

    Examples:
        >>> parse_host("deploy@example.com:2222")
        ('deploy', 'example.com', 2222)
        >>> parse_host("example.com")
        (None, 'example.com', None)
    """
    user: Optional[str] = None
    if "@" in host:
        user, host = host.rsplit("@", 1)
    port: Optional[int] = None
    if ":" in host:
        host, port_str = host.rsplit(":", 1)
        try:
            port = int(port_str)
        except ValueError as e:
            raise VsyncConfigError(f"Invalid port in host: {port_str}") from e
    if not host:
        raise VsyncConfigError("Host name is empty")
    return user, host, port


def default_identity_files() -> list[str]:
    """Private keys named ``~/.ssh/id_*`` (public ``.pub`` files excluded)."""
    pattern = os.path.join(os.path.expanduser("~"), ".ssh", "id_*")
    return sorted(p for p in glob.glob(pattern) if not p.endswith(".pub"))


def windows_native_path(path: str) -> str:
    """Convert ``/C:/Users/a.txt`` into ``C:\\Users\\a.txt``."""
    if path.startswith("/"):
        path = path[1:]
    return path.replace("/", "\\")


def _to_stat(attrs: paramiko.SFTPAttributes) -> VirtualFileStat:
    mode = attrs.st_mode or 0
    return VirtualFileStat(
        type=VirtualFileType.from_mode(mode),
        size=attrs.st_size or 0,
        modified_time=int(attrs.st_mtime or 0) * 1000,
        accessed_time=int(attrs.st_atime or 0) * 1000,
        permissions=mode & PERMISSION_MASK,
        uid=attrs.st_uid,
        gid=attrs.st_gid,
    )


class SftpVirtualFileSystem:
    """Remote filesystem reached over SFTP.

    The remote OS family is detected once from the initial working
    directory: a ``:`` at index 2 (``/C:/Users/...``) means Windows, which
    makes the filesystem case-insensitive, limits permissions to owner bits
    and computes digests with PowerShell.
    """

    def __init__(
        self,
        sftp: paramiko.SFTPClient,
        name: str = "sftp",
        ssh_client: Optional[paramiko.SSHClient] = None,
        shell: Optional[RemoteShell] = None,
        max_command_length: Optional[int] = None,
    ):
        """Initialize SFTP filesystem.

        Args:
            sftp: Open SFTP client (owned by this filesystem)
            name: Display name, usually ``user@host``
            ssh_client: SSH client to close together with the SFTP client
            shell: Command runner (default: one on the SFTP client's transport)
            max_command_length: Upper bound for batched checksum commands
        """
        self.name = name
        self._sftp = sftp
        self._ssh_client = ssh_client
        self._shell = shell
        self.max_command_length = max_command_length or config.max_command_length

        try:
            pwd = sftp.normalize(".")
        except (paramiko.SSHException, OSError) as e:
            raise VsyncConnectionError(f"Unable to query working directory: {e}") from e
        self._windows = len(pwd) > 2 and pwd[2] == ":"
        self._pwd = VirtualPath.parse(pwd, True)
        self._checksums = LazyValue(self._detect_checksums)
        logger.debug(
            f"Opened {self.name} (pwd={self._pwd}, windows={self._windows})"
        )

    @classmethod
    def open(
        cls,
        host: str,
        ssh_config_path: Optional[str] = None,
        strict_host_keys: Optional[bool] = None,
    ) -> "SftpVirtualFileSystem":
        """Connect to ``[user@]hostname[:port]`` and open an SFTP session.

        Host name, port, user and identity files are looked up in the
        OpenSSH client config; ``~/.ssh/id_*`` keys are always offered.

        Raises:
            VsyncConnectionError: If the connection or authentication fails
        """
        user, hostname, port = parse_host(host)

        ssh_config = paramiko.SSHConfig()
        config_path = os.path.expanduser(ssh_config_path or config.ssh_config_path)
        if os.path.exists(config_path):
            ssh_config = paramiko.SSHConfig.from_path(config_path)
        host_config = ssh_config.lookup(hostname)

        real_host = host_config.get("hostname", hostname)
        port = port or int(host_config.get("port", DEFAULT_SSH_PORT))
        user = user or host_config.get("user")
        key_files = [os.path.expanduser(p) for p in host_config.get("identityfile", [])]
        key_files += default_identity_files()
        key_files = [p for p in dict.fromkeys(key_files) if os.path.exists(p)]

        if strict_host_keys is None:
            strict_host_keys = config.strict_host_keys

        client = paramiko.SSHClient()
        client.load_system_host_keys()
        if not strict_host_keys:
            client.set_missing_host_key_policy(paramiko.AutoAddPolicy())

        logger.debug(f"Connecting to {real_host}:{port} as {user or '(default user)'}")
        try:
            client.connect(
                real_host,
                port=port,
                username=user,
                key_filename=key_files or None,
            )
            sftp = client.open_sftp()
        except (paramiko.SSHException, OSError) as e:
            close_quietly(client, "ssh client")
            raise VsyncConnectionError(f"Unable to connect to {host}: {e}") from e

        name = f"{user}@{hostname}" if user else hostname
        try:
            return cls(sftp, name=name, ssh_client=client)
        except VsyncError:
            close_quietly(sftp, "sftp client")
            close_quietly(client, "ssh client")
            raise

    def __enter__(self) -> "SftpVirtualFileSystem":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def __repr__(self) -> str:
        return f"SftpVirtualFileSystem({self.name}, pwd={self._pwd})"

    @property
    def pwd(self) -> VirtualPath:
        return self._pwd

    @property
    def is_windows(self) -> bool:
        return self._windows

    @property
    def case_sensitive(self) -> bool:
        return not self._windows

    @property
    def stat_model(self) -> StatModel:
        return StatModel.BASIC if self._windows else StatModel.POSIX

    @property
    def shell(self) -> RemoteShell:
        if self._shell is None:
            self._shell = RemoteShell(self._sftp.get_channel().get_transport())
        return self._shell

    def is_remote(self) -> bool:
        return True

    def _remote(self, path: VirtualPath) -> str:
        if path.is_relative():
            path = self._pwd.resolve(path.to_full_path(), path.directory)
        return path.to_full_path()

    # -------------------------------------------------------------------------
    # File operations
    # -------------------------------------------------------------------------

    def stat(self, path: VirtualPath) -> VirtualPath:
        try:
            attrs = self._sftp.lstat(self._remote(path))
        except OSError as e:
            raise translate_os_error(e, path) from e
        return path.with_stat(_to_stat(attrs))

    def exists(self, path: VirtualPath) -> Optional[VirtualPath]:
        return stat_or_none(self, path)

    def ls(self, path: VirtualPath) -> list[VirtualPath]:
        remote = self._remote(path)
        try:
            entries = self._sftp.listdir_attr(remote)
        except OSError as e:
            error = translate_os_error(e, path)
            if not isinstance(error, VsyncNotFoundError):
                # Servers report listing a file as a generic failure
                current = stat_or_none(self, path)
                if current is not None and not current.is_directory:
                    message = f"Not a directory: {path}"
                    raise VsyncNotADirectoryError(message, path) from e
            raise error from e

        children = []
        for attrs in entries:
            if attrs.filename in (".", ".."):
                continue
            child_stat = _to_stat(attrs)
            children.append(
                path.resolve(attrs.filename, child_stat.is_directory, child_stat)
            )
        return children

    def mkdir(self, path: VirtualPath) -> None:
        try:
            self._sftp.mkdir(self._remote(path))
        except OSError as e:
            raise translate_os_error(e, path) from e

    def rmdir(self, path: VirtualPath) -> None:
        try:
            self._sftp.rmdir(self._remote(path))
        except OSError as e:
            raise translate_os_error(e, path) from e

    def rm(self, path: VirtualPath) -> None:
        try:
            self._sftp.remove(self._remote(path))
        except OSError as e:
            raise translate_os_error(e, path) from e

    def read_file(self, path: VirtualPath) -> BinaryIO:
        try:
            handle = self._sftp.open(self._remote(path), "rb")
            handle.prefetch()
            return handle
        except OSError as e:
            raise translate_os_error(e, path) from e

    def write_stream(self, path: VirtualPath) -> BinaryIO:
        try:
            handle = self._sftp.open(self._remote(path), "wb")
            handle.set_pipelined(True)
            return handle
        except OSError as e:
            raise translate_os_error(e, path) from e

    def write_file(self, input: BinaryIO, path: VirtualPath) -> None:
        try:
            self._sftp.putfo(input, self._remote(path))
        except OSError as e:
            raise translate_os_error(e, path) from e

    def update_stat(
        self,
        path: VirtualPath,
        stat: VirtualFileStat,
        options: Iterable[StatUpdateOption],
    ) -> None:
        options = set(options)
        remote = self._remote(path)
        try:
            if StatUpdateOption.PERMISSIONS in options:
                self._sftp.chmod(remote, stat.permissions)
            if StatUpdateOption.OWNERSHIP in options:
                if stat.uid is not None and stat.gid is not None:
                    self._sftp.chown(remote, stat.uid, stat.gid)
            if StatUpdateOption.TIMESTAMPS in options:
                self._sftp.utime(
                    remote, (stat.accessed_time // 1000, stat.modified_time // 1000)
                )
        except OSError as e:
            raise translate_os_error(e, path) from e

    # -------------------------------------------------------------------------
    # Checksums
    # -------------------------------------------------------------------------

    def supported_checksums(self) -> list[Checksum]:
        return self._checksums.get()

    def is_checksum_supported(self, kind: Checksum) -> bool:
        return kind in self.supported_checksums()

    def _detect_checksums(self) -> list[Checksum]:
        if self._windows:
            return [Checksum.MD5, Checksum.SHA1]

        tools = [kind.posix_tool for kind in Checksum]
        output = io.BytesIO()
        try:
            self.shell.run(["which"] + tools, output=output)
        except VsyncError as e:
            logger.warning(f"Unable to detect checksum tools on {self.name}: {e}")
            return []

        found = {
            posixpath.basename(line.strip())
            for line in output.getvalue().decode("utf-8", "replace").splitlines()
        }
        supported = [kind for kind in Checksum if kind.posix_tool in found]
        logger.debug(f"Checksum tools on {self.name}: {[k.value for k in supported]}")
        return supported

    def checksums(self, kind: Checksum, paths: list[VirtualPath]) -> None:
        if not paths:
            return
        if not self.is_checksum_supported(kind):
            raise VsyncUnsupportedChecksumError(
                f"Checksum {kind.value} is not supported on {self.name}", kind
            )
        for path in paths:
            if path.stat is None:
                raise VsyncIllegalStateError(f"No stat to hold a digest: {path}")

        if self._windows:
            self._windows_checksums(kind, paths)
        else:
            self._posix_checksums(kind, paths)

    def _posix_checksums(self, kind: Checksum, paths: list[VirtualPath]) -> None:
        by_name = {self._remote(p): p for p in paths}
        arguments = {shlex.quote(name): name for name in by_name}

        limit = max(1, self.max_command_length - len(kind.posix_tool))
        for batch in batch_by_length(arguments, limit):
            command = kind.posix_tool + " " + " ".join(batch)
            text = self._run_checksum_command(kind, command)
            if kind == Checksum.CK:
                entries = parse_cksum_output(text)
            else:
                entries = parse_hash_output(text)
            requested = {arguments[a]: by_name[arguments[a]] for a in batch}
            self._associate(kind, entries, requested)

    def _windows_checksums(self, kind: Checksum, paths: list[VirtualPath]) -> None:
        by_name = {windows_native_path(self._remote(p)): p for p in paths}
        arguments = {"'" + name.replace("'", "''") + "'": name for name in by_name}

        prefix = (
            f'powershell -Command "Get-FileHash -Algorithm {kind.powershell_algorithm} '
        )
        suffix = ' | Select-Object Hash, Path | Format-List"'
        # batch costs count one separator per item, the comma join needs one fewer
        limit = max(1, self.max_command_length - len(prefix) - len(suffix) + 1)
        for batch in batch_by_length(arguments, limit):
            command = prefix + ",".join(batch) + suffix
            text = self._run_checksum_command(kind, command)
            entries = parse_powershell_hash_output(text)
            requested = {arguments[a]: by_name[arguments[a]] for a in batch}
            self._associate(kind, entries, requested)

    def _run_checksum_command(self, kind: Checksum, command: str) -> str:
        output = io.BytesIO()
        error = io.BytesIO()
        try:
            status = self.shell.run(command, output=output, error=error)
            if status != 0:
                message = error.getvalue().decode("utf-8", "replace").strip()
                raise VsyncUnsupportedChecksumError(
                    f"{kind.value} checksum failed on {self.name} "
                    f"(exit {status}): {message}",
                    kind,
                )
            return output.getvalue().decode("utf-8", "surrogateescape")
        finally:
            output.close()
            error.close()

    def _associate(
        self,
        kind: Checksum,
        entries: list[ChecksumEntry],
        requested: dict[str, VirtualPath],
    ) -> None:
        pending = dict(requested)
        for entry in entries:
            path = requested.get(entry.path)
            if path is None:
                raise VsyncIllegalStateError(
                    f"Checksum output for {entry.path!r} matches no requested path"
                )
            path.stat.set_digest(kind, entry.value)
            pending.pop(entry.path, None)
        if pending:
            raise VsyncIllegalStateError(
                f"No {kind.value} checksum returned for: {', '.join(pending)}"
            )

    def close(self) -> None:
        close_quietly(self._sftp, "sftp client")
        if self._ssh_client is not None:
            close_quietly(self._ssh_client, "ssh client")
