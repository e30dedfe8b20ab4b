"""
Session records kept by the capture service.
"""

from collections import deque
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Iterable

UNNAMED = "(unnamed)"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(eq=False)
class Session:
    """
    One live terminal and its bounded line history.

    The buffer is a deque with ``maxlen`` set to the capacity, so appending
    past capacity evicts the oldest lines first.
    """

    id: str
    name: str
    capacity: int
    process_id: int | None = None
    created_at: datetime = field(default_factory=_utcnow)
    last_activity: datetime = field(default_factory=_utcnow)
    lines: deque = field(init=False, repr=False)

    def __post_init__(self):
        if self.capacity < 1:
            raise ValueError("Session capacity must be at least 1 line")
        self.lines = deque(maxlen=self.capacity)

    @property
    def label(self) -> str:
        """Name for display, falling back to the id for unnamed terminals."""
        return self.name or self.id

    def append(self, lines: Iterable[str]) -> None:
        self.lines.extend(lines)
        self.last_activity = _utcnow()

    def tail(self, max_lines: int | None = None) -> list[str]:
        """Return the last ``max_lines`` lines; None or 0 means all."""
        if max_lines is not None and max_lines < 0:
            raise ValueError("max_lines cannot be negative")
        if not max_lines or max_lines >= len(self.lines):
            return list(self.lines)
        return list(self.lines)[-max_lines:]

    def clear(self) -> None:
        self.lines.clear()

    def summary(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name or UNNAMED,
            "processId": self.process_id,
            "bufferLines": len(self.lines),
            "lastActivity": self.last_activity.isoformat(),
        }


@dataclass
class SessionStats:
    """Point-in-time size and activity figures for one session."""

    total_lines: int
    buffer_size: int
    created_at: datetime
    last_activity: datetime
