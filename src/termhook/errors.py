"""
Exception hierarchy for termhook.

Session lookup misses and argument validation failures are not exceptions:
the command router reports them as ``success: false`` payloads.
"""


class TermhookError(Exception):
    """Base class for all termhook errors."""


class ConfigError(TermhookError):
    """Raised when configuration values cannot be parsed or are unsafe."""


class BridgeError(TermhookError):
    """
    A failure talking to the protocol bridge.

    Attributes:
        hint: Short actionable advice for the user, or None.
    """

    def __init__(self, message: str, hint: str | None = None):
        super().__init__(message)
        self.hint = hint


class BridgeUnavailableError(BridgeError):
    """The bridge refused or could not accept the connection."""


class BridgeTimeoutError(BridgeError):
    """The bridge did not answer within the allowed time."""


class BridgeRequestError(BridgeError):
    """
    The bridge answered, but not with a usable result.

    Attributes:
        code: JSON-RPC error code when the bridge sent an error frame.
    """

    def __init__(self, message: str, code: int | None = None, hint: str | None = None):
        super().__init__(message, hint=hint)
        self.code = code
