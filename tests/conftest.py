"""Shared pytest fixtures for termhook tests."""

import pytest

from termhook.capture.host import LocalTerminalHost
from termhook.capture.service import CaptureService


@pytest.fixture
def host():
    """An in-process terminal host."""
    return LocalTerminalHost()


@pytest.fixture
def service(host):
    """A capture service subscribed to the local host."""
    svc = CaptureService(max_buffer_lines=1000)
    svc.initialize(host)
    yield svc
    svc.dispose()
