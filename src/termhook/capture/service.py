"""
Capture service.
Owns every session, turns host signals into buffer updates, and answers
session queries for the command router.
"""

import asyncio
import itertools
import weakref

from termhook.capture.host import Subscription, TerminalHandle, TerminalHost
from termhook.capture.normalize import normalize_chunk
from termhook.capture.session import Session, SessionStats
from termhook.config import DEFAULT_MAX_BUFFER_LINES
from termhook.logger import get_logger

logger = get_logger(__name__)


class CaptureService:
    """
    Registry of captured terminal sessions.

    All mutation is expected to happen on a single event loop thread, so
    buffers are never locked.
    """

    def __init__(self, max_buffer_lines: int = DEFAULT_MAX_BUFFER_LINES):
        if max_buffer_lines < 1:
            raise ValueError("max_buffer_lines must be at least 1")
        self.max_buffer_lines = max_buffer_lines
        # Insertion order doubles as registration order for name lookups.
        self._sessions: dict[str, Session] = {}
        self._handle_ids: weakref.WeakKeyDictionary[TerminalHandle, str] = (
            weakref.WeakKeyDictionary()
        )
        self._subscriptions: list[Subscription] = []
        self._pending: set[asyncio.Task] = set()
        self._counter = itertools.count()

    # ─── Lifecycle ───────────────────────────────────────────────────

    def initialize(self, host: TerminalHost) -> None:
        """
        Track the host's existing terminals and subscribe to its signals.

        If subscribing fails part way, the subscriptions already taken are
        released before the error propagates.
        """
        for terminal in host.terminals:
            self.register_session(terminal)

        try:
            self._subscriptions.append(host.on_did_open(self.register_session))
            self._subscriptions.append(host.on_did_close(self.unregister_session))
            self._subscriptions.append(host.on_did_write(self.append_data))
        except Exception:
            self._release_subscriptions()
            raise

        logger.info(
            f"Capture service initialized with {len(self._sessions)} existing "
            f"terminal(s), capacity {self.max_buffer_lines} lines"
        )

    def _release_subscriptions(self) -> None:
        subscriptions, self._subscriptions = self._subscriptions, []
        for subscription in subscriptions:
            subscription.release()

    def dispose(self) -> None:
        """Release host subscriptions and drop every session. Safe to repeat."""
        self._release_subscriptions()
        for task in list(self._pending):
            task.cancel()
        self._pending.clear()
        self._sessions.clear()
        self._handle_ids.clear()

    # ─── Host signal handlers ────────────────────────────────────────

    def register_session(
        self, handle: TerminalHandle, display_name: str | None = None
    ) -> Session:
        """
        Start tracking a terminal.

        Args:
            handle: The host's terminal handle.
            display_name: Name to show; defaults to the handle's name.

        Returns:
            The new session, or the existing one if the handle is already
            tracked.
        """
        session_id = self._handle_ids.get(handle)
        if session_id is not None and session_id in self._sessions:
            return self._sessions[session_id]

        session_id = f"terminal-{next(self._counter)}"
        name = display_name if display_name is not None else handle.name
        session = Session(id=session_id, name=name, capacity=self.max_buffer_lines)
        self._sessions[session_id] = session
        self._handle_ids[handle] = session_id
        self._schedule_pid_resolution(session, handle)

        logger.info(f"Registered terminal: {name} ({session_id})")
        return session

    def unregister_session(self, handle: TerminalHandle) -> bool:
        """
        Stop tracking a terminal and discard its buffer.

        Returns:
            True if a session was removed.
        """
        session_id = self._handle_ids.pop(handle, None)
        if session_id is None:
            return False
        session = self._sessions.pop(session_id, None)
        if session is None:
            return False
        logger.info(f"Unregistered terminal: {session.name} ({session_id})")
        return True

    def append_data(self, handle: TerminalHandle, chunk: bytes | str) -> int:
        """
        Normalize a raw output chunk into the terminal's buffer.

        Returns:
            Number of lines appended (0 for unknown handles).
        """
        session_id = self._handle_ids.get(handle)
        if session_id is None:
            return 0
        session = self._sessions.get(session_id)
        if session is None:
            return 0

        lines = normalize_chunk(chunk)
        session.append(lines)
        return len(lines)

    def _schedule_pid_resolution(self, session: Session, handle: TerminalHandle) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.debug(f"No running loop; process id of {session.id} left unresolved")
            return

        task = loop.create_task(self._resolve_pid(session, handle))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def _resolve_pid(self, session: Session, handle: TerminalHandle) -> None:
        try:
            pid = await handle.process_id()
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.warning(f"Could not resolve process id for {session.id}: {e}")
            return

        # The terminal may have closed while the pid was resolving.
        if self._sessions.get(session.id) is session:
            session.process_id = pid

    # ─── Queries ─────────────────────────────────────────────────────

    def list_sessions(self) -> list[Session]:
        return list(self._sessions.values())

    def resolve_session(self, query: str) -> Session | None:
        """
        Find a session by id or name.

        An exact id wins. Otherwise the first session, in registration
        order, whose name contains the query case-insensitively is
        returned; later matches are never considered.
        """
        if query in self._sessions:
            return self._sessions[query]

        needle = query.lower()
        for session in self._sessions.values():
            if needle in session.name.lower():
                return session
        return None

    def get_buffer(self, query: str, max_lines: int | None = None) -> str | None:
        """Return the last ``max_lines`` lines as text, or None if not found."""
        session = self.resolve_session(query)
        if session is None:
            return None
        return "\n".join(session.tail(max_lines))

    def clear_buffer(self, query: str) -> bool:
        session = self.resolve_session(query)
        if session is None:
            return False
        session.clear()
        return True

    def get_stats(self, query: str) -> SessionStats | None:
        session = self.resolve_session(query)
        if session is None:
            return None
        return SessionStats(
            total_lines=len(session.lines),
            buffer_size=len("\n".join(session.lines).encode("utf-8")),
            created_at=session.created_at,
            last_activity=session.last_activity,
        )

    def __len__(self) -> int:
        return len(self._sessions)
