"""
gRPC client transport for daktilo_nvim.

This module owns the channel lifecycle and the ReportCursorMovement call. It
runs on the background thread's asyncio loop. Transport failures surface as
`ConnectionError` so the runtime driver never handles gRPC types directly.
"""

from __future__ import annotations

import logging
from typing import Any

import grpc
import grpc.aio

from daktilo_nvim.protocol.cursor_report import (
    REPORT_METHOD_PATH,
    ReportCursorMovementRequest,
    ReportCursorMovementResponse,
)

logger = logging.getLogger(__name__)

LOOPBACK_HOST = "[::1]"
ADDRESS_SCHEME = "http"

_FAILED_STATES = (
    grpc.ChannelConnectivity.TRANSIENT_FAILURE,
    grpc.ChannelConnectivity.SHUTDOWN,
)


class CursorReportClient:
    """
    Async client for the daktilo cursor reporting service.

    One connection attempt is made; there is no reconnect policy.
    """

    def __init__(self, port: int, host: str = LOOPBACK_HOST) -> None:
        """
        Initialize client configuration.

        Args:
            port:
                Server port.
            host:
                Server host, the IPv6 loopback by default.
        """
        self.host: str = host
        self.port: int = port
        self.channel: grpc.aio.Channel | None = None
        self._report_call: Any = None

    @property
    def target(self) -> str:
        """gRPC target string, `host:port`."""
        return f"{self.host}:{self.port}"

    @property
    def address(self) -> str:
        """Server address as shown to the user, `http://host:port`."""
        return f"{ADDRESS_SCHEME}://{self.target}"

    async def connection_establish(self) -> None:
        """
        Open the channel and wait until it is ready.

        Raises:
            ConnectionError:
                Raised when the channel fails to connect.
        """
        self.channel = grpc.aio.insecure_channel(self.target)
        self._report_call = self.channel.unary_unary(
            REPORT_METHOD_PATH,
            request_serializer=ReportCursorMovementRequest.SerializeToString,
            response_deserializer=ReportCursorMovementResponse.FromString,
        )

        state = self.channel.get_state(try_to_connect=True)
        while state is not grpc.ChannelConnectivity.READY:
            if state in _FAILED_STATES:
                await self.connection_close()
                raise ConnectionError(f"channel state {state.name.lower()}")
            await self.channel.wait_for_state_change(state)
            state = self.channel.get_state(try_to_connect=True)

        logger.info("Connected to server %s", self.address)

    async def cursorMovement_report(self, request: Any) -> Any:
        """
        Send one ReportCursorMovement call.

        Args:
            request:
                ReportCursorMovementRequest message.

        Returns:
            ReportCursorMovementResponse message.

        Raises:
            ConnectionError:
                Raised when the client is not connected or the call fails.
        """
        if self.channel is None or self._report_call is None:
            raise ConnectionError("Not connected to server")

        try:
            return await self._report_call(request)
        except grpc.RpcError as exc:
            code = exc.code() if callable(getattr(exc, "code", None)) else None
            details = exc.details() if callable(getattr(exc, "details", None)) else None
            label = code.name if code is not None else "UNKNOWN"
            raise ConnectionError(f"{label}: {details or exc}") from exc

    async def connection_close(self) -> None:
        """
        Close the channel.

        This method is idempotent.
        """
        channel, self.channel = self.channel, None
        self._report_call = None
        if channel is None:
            return
        await channel.close()
        logger.info("Connection closed")
