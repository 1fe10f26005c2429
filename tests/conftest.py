"""Pytest configuration and shared fixtures for daktilo_nvim tests

This module provides fakes for the two collaborators the bridge talks to:
the Neovim host (scheduling and display) and the gRPC report client.
"""

import logging
import queue
import time
from typing import Any, Callable, Generator, Optional

import pytest

from daktilo_nvim.common.logging_setup import PACKAGE_LOGGER
from daktilo_nvim.common.types import StatusMessage


class FakeHost:
    """Host stand-in whose loop is pumped explicitly by the test thread."""

    def __init__(self) -> None:
        """Initialize fake host state."""
        self.scheduled: "queue.Queue[Callable[[], None]]" = queue.Queue()
        self.displayed: list[StatusMessage] = []
        self.wake_count: int = 0

    def wake_schedule(self, callback: Callable[[], None]) -> None:
        """Record a callback for the host loop; may run on any thread."""
        self.wake_count += 1
        self.scheduled.put(callback)

    def message_display(self, message: StatusMessage) -> None:
        """Record a displayed message."""
        self.displayed.append(message)

    def loop_pump(self, timeout: float = 0.0) -> int:
        """
        Run scheduled callbacks on the calling thread.

        Args:
            timeout: Seconds to wait for the first callback

        Returns:
            Number of callbacks run
        """
        ran = 0
        block = timeout > 0
        while True:
            try:
                callback = self.scheduled.get(block=block, timeout=timeout if block else None)
            except queue.Empty:
                return ran
            callback()
            ran += 1
            block = False

    def messages_wait(self, count: int, timeout: float = 5.0) -> list[StatusMessage]:
        """
        Pump the loop until `count` messages were displayed or time runs out.

        Args:
            count: Expected number of displayed messages
            timeout: Overall deadline in seconds

        Returns:
            Displayed messages so far
        """
        deadline = time.monotonic() + timeout
        while len(self.displayed) < count and time.monotonic() < deadline:
            self.loop_pump(timeout=0.05)
        return self.displayed


class FakeReportClient:
    """Async report client recording the requests it is asked to send."""

    def __init__(
        self,
        port: int = 50051,
        connect_error: Optional[Exception] = None,
        report_errors: Optional[dict[int, Exception]] = None,
    ) -> None:
        """
        Initialize fake client.

        Args:
            port: Configured port
            connect_error: Raised from connection_establish when set
            report_errors: Call index to error raised by cursorMovement_report
        """
        self.port: int = port
        self.address: str = f"http://[::1]:{port}"
        self.connect_error: Optional[Exception] = connect_error
        self.report_errors: dict[int, Exception] = report_errors or {}
        self.connect_calls: int = 0
        self.close_calls: int = 0
        self.requests: list[Any] = []

    async def connection_establish(self) -> None:
        """Pretend to connect."""
        self.connect_calls += 1
        if self.connect_error is not None:
            raise self.connect_error

    async def cursorMovement_report(self, request: Any) -> Any:
        """Record the request, failing when configured for this call index."""
        index = len(self.requests)
        self.requests.append(request)
        error = self.report_errors.get(index)
        if error is not None:
            raise error
        return None

    async def connection_close(self) -> None:
        """Pretend to close."""
        self.close_calls += 1


@pytest.fixture
def fake_host() -> FakeHost:
    """Fresh fake host."""
    return FakeHost()


@pytest.fixture
def fake_client() -> FakeReportClient:
    """Fake client that connects and accepts every report."""
    return FakeReportClient()


@pytest.fixture(autouse=True)
def reset_package_logger() -> Generator[None, None, None]:
    """Undo logging_setup so caplog keeps seeing package records."""
    package_logger = logging.getLogger(PACKAGE_LOGGER)
    yield
    for handler in list(package_logger.handlers):
        package_logger.removeHandler(handler)
        handler.close()
    package_logger.propagate = True
    package_logger.setLevel(logging.NOTSET)


@pytest.fixture(autouse=True)
def setup_logging(caplog):
    """Setup logging for tests"""
    caplog.set_level(logging.DEBUG)


@pytest.fixture
def fake_client_class() -> type[FakeReportClient]:
    """FakeReportClient class, for tests that need custom failures."""
    return FakeReportClient
