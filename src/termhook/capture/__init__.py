"""
Terminal capture for termhook.

A host announces terminals opening, closing and writing output. The capture
service turns those signals into bounded, normalized per-session line
buffers that the command router can query.
"""

from termhook.capture.host import (
    LocalTerminal,
    LocalTerminalHost,
    Signal,
    Subscription,
    TerminalHandle,
    TerminalHost,
)
from termhook.capture.normalize import is_noise_line, normalize_chunk, strip_escapes
from termhook.capture.service import CaptureService
from termhook.capture.session import Session, SessionStats

__all__ = [
    "CaptureService",
    "LocalTerminal",
    "LocalTerminalHost",
    "Session",
    "SessionStats",
    "Signal",
    "Subscription",
    "TerminalHandle",
    "TerminalHost",
    "is_noise_line",
    "normalize_chunk",
    "strip_escapes",
]
