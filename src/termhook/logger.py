"""
Logging setup built on loguru.

All sinks write to stderr or a file. Stdout is reserved for the stdio proxy
transport and must never carry log lines.
"""

import sys

from loguru import logger as _logger

LOG_FORMAT = (
    "<green>{time:HH:mm:ss}</green> | <level>{level: <8}</level> | "
    "<cyan>{extra[name]}</cyan> - <level>{message}</level>"
)

_logger.configure(extra={"name": "termhook"})


def setup_logging(level: str = "INFO", log_file: str | None = None) -> None:
    """
    Replace the default loguru sinks.

    Args:
        level: Minimum level for every sink.
        log_file: Optional path for a rotating file sink.
    """
    _logger.remove()
    _logger.add(sys.stderr, level=level.upper(), format=LOG_FORMAT)
    if log_file:
        _logger.add(
            log_file,
            level=level.upper(),
            format=LOG_FORMAT,
            rotation="10 MB",
            retention=2,
        )


def get_logger(name: str):
    """Return a logger bound to a module name."""
    return _logger.bind(name=name)
