"""
Background runtime driver.

Runs the gRPC client on a dedicated thread with its own asyncio loop. The
driver connects once, forwards cursor events from the outbound channel in
arrival order, and reports status back through the inbound channel and the
wake bridge. Every status is enqueued before the wake is requested.
"""

from __future__ import annotations

import asyncio
import logging
import threading
from enum import Enum
from typing import Any, Protocol

from daktilo_nvim.bridge.channel import InboundChannel, OutboundChannel
from daktilo_nvim.bridge.wake import WakeBridge
from daktilo_nvim.common.types import (
    STATUS_CONNECTED,
    STATUS_DISCONNECTED,
    CursorEvent,
    StatusMessage,
)
from daktilo_nvim.protocol.cursor_report import reportRequest_build

logger = logging.getLogger(__name__)


class DriverState(Enum):
    """Lifecycle of one background session"""
    CONNECTING = "connecting"
    STREAMING = "streaming"
    CLOSED = "closed"


class ReportClient(Protocol):
    """Client surface the driver needs; see CursorReportClient."""

    address: str

    async def connection_establish(self) -> None: ...

    async def cursorMovement_report(self, request: Any) -> Any: ...

    async def connection_close(self) -> None: ...


class RuntimeDriver:
    """Owns the background thread, its event loop and the client session."""

    def __init__(
        self,
        loop: asyncio.AbstractEventLoop,
        outbound: OutboundChannel[CursorEvent],
        inbound: InboundChannel[StatusMessage],
        wake: WakeBridge,
        client: ReportClient,
    ) -> None:
        """
        Initialize the driver.

        Args:
            loop:
                Fresh event loop the driver thread will run; `outbound` must be
                bound to the same loop.
            outbound:
                Cursor events from the host.
            inbound:
                Status messages for the host.
            wake:
                Wake bridge signalled after each status message.
            client:
                gRPC client, not yet connected.
        """
        self._loop: asyncio.AbstractEventLoop = loop
        self._outbound: OutboundChannel[CursorEvent] = outbound
        self._inbound: InboundChannel[StatusMessage] = inbound
        self._wake: WakeBridge = wake
        self._client: ReportClient = client
        self.state: DriverState = DriverState.CONNECTING
        self.reported_count: int = 0
        self.failed_count: int = 0
        self._thread: threading.Thread = threading.Thread(
            target=self._thread_main, name="daktilo-nvim-client", daemon=True
        )

    def start(self) -> None:
        """Start the background thread."""
        self._thread.start()

    def join(self, timeout: float | None = None) -> bool:
        """
        Wait for the background thread to exit.

        Args:
            timeout: Maximum wait in seconds, forever when None

        Returns:
            `True` when the thread has exited.
        """
        self._thread.join(timeout=timeout)
        return not self._thread.is_alive()

    def is_alive(self) -> bool:
        """Whether the background thread is still running."""
        return self._thread.is_alive()

    def _thread_main(self) -> None:
        """Thread entry point: run the session to completion, then close the loop."""
        asyncio.set_event_loop(self._loop)
        try:
            self._loop.run_until_complete(self.session_run())
        except Exception:
            # session_close itself failed; the goodbye was already queued
            logger.exception("Background client failed while closing")
            self.state = DriverState.CLOSED
        finally:
            self._outbound.close()
            self._loop.run_until_complete(self._loop.shutdown_asyncgens())
            self._loop.close()
            logger.debug("Background thread exiting")

    async def session_run(self) -> None:
        """Drive CONNECTING -> STREAMING -> CLOSED. CLOSED is always reached."""
        self.state = DriverState.CONNECTING
        try:
            await self.session_connect()
        except Exception as exc:
            logger.exception("Background client crashed")
            self.status_emit(StatusMessage.error_create(f"daktilo client crashed: {exc}"))
        finally:
            await self.session_close()

    async def session_connect(self) -> None:
        """Make the single connection attempt, then stream on success."""
        try:
            await self._client.connection_establish()
        except ConnectionError as exc:
            logger.error("Failed to connect to server %s: %s", self._client.address, exc)
            self.status_emit(
                StatusMessage.error_create(
                    f"Failed to connect to server {self._client.address}: {exc}"
                )
            )
            return

        self.status_emit(StatusMessage.info_create(STATUS_CONNECTED))
        self.state = DriverState.STREAMING
        await self.events_stream()

    async def events_stream(self) -> None:
        """Forward cursor events one RPC at a time until end-of-stream."""
        failure_reported: bool = False
        while True:
            event: CursorEvent | None = await self._outbound.receive()
            if event is None:
                logger.debug("Outbound channel closed")
                return

            try:
                await self._client.cursorMovement_report(reportRequest_build(event))
            # ValueError covers names protobuf cannot encode as UTF-8
            except (ConnectionError, ValueError, TypeError) as exc:
                self.failed_count += 1
                logger.warning("Failed to report cursor movement %s: %s", event, exc)
                if not failure_reported:
                    failure_reported = True
                    self.status_emit(
                        StatusMessage.error_create(f"Failed to report cursor movement: {exc}")
                    )
            else:
                self.reported_count += 1
                failure_reported = False

    async def session_close(self) -> None:
        """Enter CLOSED: release the channel and say goodbye."""
        self.state = DriverState.CLOSED
        try:
            await self._client.connection_close()
        finally:
            self.status_emit(StatusMessage.info_create(STATUS_DISCONNECTED))
            self._inbound.close()

    def status_emit(self, message: StatusMessage) -> None:
        """
        Enqueue a status message, then wake the host.

        Args:
            message: Message to relay.
        """
        if self._inbound.send(message):
            self._wake.wake_request()
