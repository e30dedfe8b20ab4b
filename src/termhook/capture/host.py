"""
Host terminal environment interface.

A host owns terminal handles and announces three signals: a terminal was
opened, a terminal was closed, and a terminal wrote data. Listeners attach
through ``Signal.connect`` and receive a ``Subscription`` they must release.
"""

from abc import ABC, abstractmethod
from typing import Any, Callable

from termhook.logger import get_logger

logger = get_logger(__name__)


class Subscription:
    """
    Handle for one attached listener.

    ``release`` detaches the listener. It may be called any number of times;
    only the first call has an effect.
    """

    def __init__(self, release: Callable[[], None]):
        self._release = release
        self._released = False

    @property
    def released(self) -> bool:
        return self._released

    def release(self) -> None:
        if self._released:
            return
        self._released = True
        self._release()


class Signal:
    """A list of listeners called in connection order."""

    def __init__(self, name: str):
        self.name = name
        self._listeners: list[Callable[..., Any]] = []

    def connect(self, listener: Callable[..., Any]) -> Subscription:
        """Attach a listener and return its subscription."""
        self._listeners.append(listener)
        return Subscription(lambda: self._disconnect(listener))

    def _disconnect(self, listener: Callable[..., Any]) -> None:
        try:
            self._listeners.remove(listener)
        except ValueError:
            pass

    @property
    def listener_count(self) -> int:
        return len(self._listeners)

    def emit(self, *args: Any) -> None:
        """Call every listener. A failing listener does not stop the others."""
        for listener in list(self._listeners):
            try:
                listener(*args)
            except Exception as e:
                logger.exception(f"Listener for '{self.name}' failed: {e}")


class TerminalHandle(ABC):
    """
    A terminal as seen by the host.

    Handles are compared and hashed by identity so they can key weak
    mappings.
    """

    def __init__(self, name: str):
        self.name = name

    @abstractmethod
    async def process_id(self) -> int | None:
        """
        Resolve the OS process id of the terminal's shell.

        Returns:
            The pid, or None if the host cannot tell.
        """
        pass

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.name!r}>"


class TerminalHost(ABC):
    """
    Abstract host environment.

    Subclasses keep the list of live terminals and emit ``opened``,
    ``closed`` and ``data_written`` as terminals come and go.
    """

    def __init__(self):
        self.opened = Signal("opened")
        self.closed = Signal("closed")
        self.data_written = Signal("data_written")

    @property
    @abstractmethod
    def terminals(self) -> list[TerminalHandle]:
        """Terminals that are currently open."""
        pass

    def on_did_open(self, listener: Callable[[TerminalHandle], Any]) -> Subscription:
        return self.opened.connect(listener)

    def on_did_close(self, listener: Callable[[TerminalHandle], Any]) -> Subscription:
        return self.closed.connect(listener)

    def on_did_write(
        self, listener: Callable[[TerminalHandle, bytes | str], Any]
    ) -> Subscription:
        return self.data_written.connect(listener)


class LocalTerminal(TerminalHandle):
    """A terminal driven programmatically through ``LocalTerminalHost``."""

    def __init__(self, name: str, pid: int | None = None):
        super().__init__(name)
        self._pid = pid

    async def process_id(self) -> int | None:
        return self._pid


class LocalTerminalHost(TerminalHost):
    """
    In-process host.

    Lets an embedding application (or a test) open terminals, feed them
    output, and close them, emitting the same signals a real host would.
    """

    def __init__(self):
        super().__init__()
        self._terminals: list[LocalTerminal] = []

    @property
    def terminals(self) -> list[TerminalHandle]:
        return list(self._terminals)

    def open_terminal(self, name: str, pid: int | None = None) -> LocalTerminal:
        terminal = LocalTerminal(name, pid)
        self._terminals.append(terminal)
        self.opened.emit(terminal)
        return terminal

    def write(self, terminal: LocalTerminal, data: bytes | str) -> None:
        self.data_written.emit(terminal, data)

    def close_terminal(self, terminal: LocalTerminal) -> None:
        if terminal in self._terminals:
            self._terminals.remove(terminal)
        self.closed.emit(terminal)
