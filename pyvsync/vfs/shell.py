"""Remote command execution over an SSH transport.

Used by the SFTP filesystem to probe for and run checksum tools on the
remote host without transferring file content.
"""

import logging
import shlex
import threading
import time
from typing import IO, Any, Callable, Optional, Sequence, Union

import paramiko

from ..exceptions import VsyncConnectionError, VsyncInterruptedError, VsyncIOError
from ..utils import DEFAULT_BUFFER_SIZE, EXEC_POLL_ATTEMPTS, EXEC_POLL_INTERVAL
from .base import close_quietly

logger = logging.getLogger(__name__)


class StreamSignal:
    """One-shot signal raised when a captured stream reaches end-of-stream."""

    def __init__(self) -> None:
        self._event = threading.Event()

    def signal(self) -> None:
        self._event.set()

    def is_signaled(self) -> bool:
        return self._event.is_set()

    def wait(
        self,
        cancel: Optional[threading.Event] = None,
        interval: float = EXEC_POLL_INTERVAL,
    ) -> None:
        """Block until signaled.

        Args:
            cancel: Event that aborts the wait when set
            interval: How often the cancel event is checked (seconds)

        Raises:
            VsyncInterruptedError: If ``cancel`` was set before the signal
        """
        while not self._event.wait(interval):
            if cancel is not None and cancel.is_set():
                raise VsyncInterruptedError("Waiting for command output was cancelled")


def build_command(command: Union[str, Sequence[str]]) -> str:
    """Join an argument list into a shell command line.

    Examples:
        >>> build_command(["md5sum", "/data/a b.txt"])
        "md5sum '/data/a b.txt'"
        >>> build_command("which cksum")
        'which cksum'
    """
    if isinstance(command, str):
        return command
    return " ".join(shlex.quote(arg) for arg in command)


class RemoteShell:
    """Runs one-shot commands on a paramiko transport.

    Each call opens a fresh session channel, streams optional stdin and
    drains stdout/stderr on background threads. The caller blocks until
    every captured stream has ended, then polls briefly for the channel's
    exit status. There is no overall timeout: a hung remote command hangs
    the call unless ``cancel`` is set.
    """

    def __init__(
        self,
        transport: paramiko.Transport,
        poll_interval: float = EXEC_POLL_INTERVAL,
        poll_attempts: int = EXEC_POLL_ATTEMPTS,
    ):
        self.transport = transport
        self.poll_interval = poll_interval
        self.poll_attempts = poll_attempts

    def run(
        self,
        command: Union[str, Sequence[str]],
        input: Optional[IO[bytes]] = None,
        output: Optional[IO[bytes]] = None,
        error: Optional[IO[bytes]] = None,
        cancel: Optional[threading.Event] = None,
    ) -> int:
        """Execute a command and return its exit status.

        Args:
            command: Command line, or argument list to be shell-quoted
            input: Stream copied to the command's stdin
            output: Sink for stdout (not captured when None)
            error: Sink for stderr (not captured when None)
            cancel: Event that aborts waiting when set

        Returns:
            Exit status of the remote command

        Raises:
            VsyncConnectionError: If no channel could be opened
            VsyncIOError: If the command could not be started or streamed
            VsyncInterruptedError: If ``cancel`` was set while waiting
        """
        line = build_command(command)
        logger.debug(f"Executing remote command: {line}")

        try:
            channel = self.transport.open_session()
        except (paramiko.SSHException, OSError) as e:
            raise VsyncConnectionError(f"Unable to open command channel: {e}") from e

        try:
            channel.exec_command(line)

            failures: list[BaseException] = []
            signals: list[StreamSignal] = []
            threads: list[threading.Thread] = []
            if output is not None:
                self._start_drain(channel.recv, output, signals, threads, failures)
            if error is not None:
                self._start_drain(
                    channel.recv_stderr, error, signals, threads, failures
                )

            if input is not None:
                self._send(channel, input)

            for signal in signals:
                signal.wait(cancel, self.poll_interval)

            self._await_exit_status(channel, bounded=bool(signals), cancel=cancel)
            status = channel.recv_exit_status()

            for thread in threads:
                thread.join()
            if failures:
                raise VsyncIOError(
                    f"Failed reading output of remote command: {failures[0]}"
                ) from failures[0]

            logger.debug(f"Remote command exited with {status}")
            return status
        except (paramiko.SSHException, OSError) as e:
            raise VsyncIOError(f"Remote command failed: {line}: {e}") from e
        finally:
            close_quietly(channel, "command channel")

    def _start_drain(
        self,
        recv: Callable[[int], bytes],
        sink: IO[bytes],
        signals: list[StreamSignal],
        threads: list[threading.Thread],
        failures: list[BaseException],
    ) -> None:
        signal = StreamSignal()

        def drain() -> None:
            try:
                while True:
                    data = recv(DEFAULT_BUFFER_SIZE)
                    if not data:
                        break
                    sink.write(data)
            except Exception as e:  # noqa: BLE001
                failures.append(e)
            finally:
                signal.signal()

        thread = threading.Thread(target=drain, name="pyvsync-drain", daemon=True)
        signals.append(signal)
        threads.append(thread)
        thread.start()

    def _send(self, channel: Any, input: IO[bytes]) -> None:
        while True:
            data = input.read(DEFAULT_BUFFER_SIZE)
            if not data:
                break
            channel.sendall(data)
        channel.shutdown_write()

    def _await_exit_status(
        self,
        channel: Any,
        bounded: bool,
        cancel: Optional[threading.Event],
    ) -> None:
        attempts = 0
        while not channel.exit_status_ready():
            if cancel is not None and cancel.is_set():
                raise VsyncInterruptedError("Waiting for command exit was cancelled")
            if bounded:
                attempts += 1
                if attempts > self.poll_attempts:
                    # recv_exit_status() blocks for whatever is left
                    return
            time.sleep(self.poll_interval)
