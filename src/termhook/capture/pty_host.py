"""
Pseudo-terminal host.

Runs commands attached to a PTY on the asyncio event loop and emits their
output as ``data_written`` signals. POSIX only.
"""

import asyncio
import os
import shlex
import signal

from termhook.capture.host import TerminalHandle, TerminalHost
from termhook.logger import get_logger

logger = get_logger(__name__)

READ_SIZE = 4096


class PtyTerminal(TerminalHandle):
    """
    A child process attached to the slave side of a pseudo-terminal.

    The process id is known only once the child has been spawned;
    ``process_id`` waits for that.
    """

    def __init__(self, host: "PtyTerminalHost", argv: list[str], name: str):
        super().__init__(name)
        self.argv = argv
        self._host = host
        self._loop = asyncio.get_running_loop()
        self._spawned: asyncio.Future = self._loop.create_future()
        self._proc: asyncio.subprocess.Process | None = None
        self._master_fd: int | None = None

    async def process_id(self) -> int | None:
        return await self._spawned

    @property
    def is_open(self) -> bool:
        return self._master_fd is not None

    async def start(self) -> None:
        master_fd, slave_fd = os.openpty()
        try:
            self._proc = await asyncio.create_subprocess_exec(
                *self.argv,
                stdin=slave_fd,
                stdout=slave_fd,
                stderr=slave_fd,
                start_new_session=True,
            )
        except OSError:
            os.close(master_fd)
            if not self._spawned.done():
                self._spawned.set_result(None)
            raise
        finally:
            os.close(slave_fd)

        self._master_fd = master_fd
        self._loop.add_reader(master_fd, self._on_readable)
        self._spawned.set_result(self._proc.pid)
        logger.debug(f"Spawned '{self.name}' as pid {self._proc.pid}")

    def _on_readable(self) -> None:
        try:
            data = os.read(self._master_fd, READ_SIZE)
        except OSError:
            # Linux reports EIO once the slave side has no writers left.
            data = b""

        if not data:
            self._finish()
            return
        self._host.data_written.emit(self, data)

    def _finish(self) -> None:
        if self._master_fd is None:
            return
        self._loop.remove_reader(self._master_fd)
        os.close(self._master_fd)
        self._master_fd = None
        self._host._terminal_closed(self)

    def write(self, data: bytes | str) -> None:
        """Send input to the terminal as if typed."""
        if self._master_fd is None:
            raise ConnectionError(f"Terminal '{self.name}' is closed")
        if isinstance(data, str):
            data = data.encode()
        os.write(self._master_fd, data)

    async def wait(self) -> int:
        """Wait for the child to exit and return its exit code."""
        await self._spawned
        return await self._proc.wait()

    def terminate(self) -> None:
        if self._proc is not None and self._proc.returncode is None:
            try:
                self._proc.send_signal(signal.SIGTERM)
            except ProcessLookupError:
                pass


class PtyTerminalHost(TerminalHost):
    """Host whose terminals are commands spawned in pseudo-terminals."""

    def __init__(self):
        super().__init__()
        self._terminals: list[PtyTerminal] = []

    @property
    def terminals(self) -> list[TerminalHandle]:
        return list(self._terminals)

    async def spawn(self, command: str | list[str], name: str | None = None) -> PtyTerminal:
        """
        Open a terminal running ``command``.

        The ``opened`` signal fires before the child is spawned, so
        listeners see the terminal before its process id is known.

        Raises:
            OSError: If the command cannot be executed.
        """
        argv = shlex.split(command) if isinstance(command, str) else list(command)
        if not argv:
            raise ValueError("Cannot spawn an empty command")

        terminal = PtyTerminal(self, argv, name or os.path.basename(argv[0]))
        self._terminals.append(terminal)
        self.opened.emit(terminal)

        try:
            await terminal.start()
        except OSError as e:
            logger.error(f"Failed to spawn '{terminal.name}': {e}")
            self._terminal_closed(terminal)
            raise
        return terminal

    def _terminal_closed(self, terminal: PtyTerminal) -> None:
        if terminal in self._terminals:
            self._terminals.remove(terminal)
            self.closed.emit(terminal)

    async def shutdown(self, grace: float = 2.0) -> None:
        """Terminate every child and wait briefly for them to exit."""
        terminals = list(self._terminals)
        for terminal in terminals:
            terminal.terminate()
        for terminal in terminals:
            try:
                await asyncio.wait_for(terminal.wait(), timeout=grace)
            except asyncio.TimeoutError:
                logger.warning(f"Terminal '{terminal.name}' did not exit in {grace}s")
            terminal._finish()
