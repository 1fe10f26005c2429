"""
Bridge session wiring.

A CursorBridge is created when the user starts the plugin and discarded when
the session ends. It owns both channels, the wake bridge and the runtime
driver, and tears them down together by closing the outbound channel.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Callable, Protocol

from daktilo_nvim.bridge.channel import InboundChannel, OutboundChannel
from daktilo_nvim.bridge.wake import WakeBridge
from daktilo_nvim.client.network import CursorReportClient
from daktilo_nvim.client.runtime import ReportClient, RuntimeDriver
from daktilo_nvim.common.config import Config
from daktilo_nvim.common.types import CursorEvent, StatusMessage

logger = logging.getLogger(__name__)


class BridgeHost(Protocol):
    """Host operations the bridge needs."""

    def wake_schedule(self, callback: Callable[[], None]) -> None: ...

    def message_display(self, message: StatusMessage) -> None: ...


ClientFactory = Callable[[int], ReportClient]


class CursorBridge:
    """One host session's channels, wake bridge and background driver."""

    def __init__(
        self,
        config: Config,
        host: BridgeHost,
        client_factory: ClientFactory = CursorReportClient,
    ) -> None:
        """
        Initialize the bridge. Nothing starts until session_start().

        Args:
            config:
                Resolved plugin configuration.
            host:
                Host adapter providing scheduling and display.
            client_factory:
                Builds the RPC client from the configured port.
        """
        self.config: Config = config
        self.host: BridgeHost = host
        self.client_factory: ClientFactory = client_factory
        self.outbound: OutboundChannel[CursorEvent] | None = None
        self.inbound: InboundChannel[StatusMessage] | None = None
        self.wake: WakeBridge | None = None
        self.driver: RuntimeDriver | None = None
        self._ended: bool = False

    @property
    def is_active(self) -> bool:
        """Whether the session has started, not ended, and its driver is alive."""
        return (
            self.driver is not None
            and not self._ended
            and self.driver.is_alive()
        )

    def session_start(self) -> None:
        """
        Create the channels and start the background driver.

        Raises:
            RuntimeError:
                Raised when the session was already started.
        """
        if self.driver is not None:
            raise RuntimeError("Bridge session already started")

        loop = asyncio.new_event_loop()
        self.outbound = OutboundChannel(loop)
        self.inbound = InboundChannel()
        self.wake = WakeBridge(
            self.inbound,
            scheduler=self.host.wake_schedule,
            display=self.host.message_display,
        )
        client = self.client_factory(self.config.plugin.rpc_port)
        self.driver = RuntimeDriver(loop, self.outbound, self.inbound, self.wake, client)
        self.driver.start()
        logger.info("Bridge session started for %s", client.address)

    def cursorEvent_submit(self, event: CursorEvent) -> bool:
        """
        Queue a cursor event for the background client. Never blocks.

        Args:
            event: Event built on the host thread

        Returns:
            `True` when queued, `False` when the session is not running.
        """
        if self.outbound is None or self._ended:
            return False
        return self.outbound.send(event)

    def session_end(self, timeout: float | None = None) -> bool:
        """
        End the session by closing the outbound channel.

        The driver drains what was already queued, emits its final status and
        exits. This method is idempotent.

        Args:
            timeout:
                Seconds to wait for the driver thread; None does not wait.

        Returns:
            `True` when the driver thread has exited (or never started).
        """
        if self._ended:
            return self.driver is None or not self.driver.is_alive()
        self._ended = True
        if self.outbound is None or self.driver is None:
            return True

        self.outbound.close()
        logger.info("Bridge session ending")
        if timeout is None:
            return not self.driver.is_alive()
        return self.driver.join(timeout=timeout)
