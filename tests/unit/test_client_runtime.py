"""Unit tests for the background runtime driver state machine."""

from __future__ import annotations

import asyncio

from daktilo_nvim.bridge.channel import InboundChannel, OutboundChannel
from daktilo_nvim.bridge.wake import WakeBridge
from daktilo_nvim.client.runtime import DriverState, RuntimeDriver
from daktilo_nvim.common.types import (
    STATUS_CONNECTED,
    STATUS_DISCONNECTED,
    CursorEvent,
    StatusMessage,
)


def _driver_build(fake_host, client) -> tuple[RuntimeDriver, OutboundChannel, InboundChannel]:
    """Wire a driver to fresh channels and the fake host."""
    loop = asyncio.new_event_loop()
    outbound: OutboundChannel[CursorEvent] = OutboundChannel(loop)
    inbound: InboundChannel[StatusMessage] = InboundChannel()
    wake = WakeBridge(inbound, fake_host.wake_schedule, fake_host.message_display)
    return RuntimeDriver(loop, outbound, inbound, wake, client), outbound, inbound


class TestRuntimeDriverConnect:
    """Tests for the CONNECTING state"""

    def test_successful_connect_reports_before_any_rpc(self, fake_host, fake_client) -> None:
        """Connected status is the first message and precedes every report."""
        driver, outbound, _ = _driver_build(fake_host, fake_client)
        outbound.send(CursorEvent(line=0, column=0, source_name="a"))
        driver.start()

        displayed = fake_host.messages_wait(1)
        assert displayed[0] == StatusMessage.info_create(STATUS_CONNECTED)

        outbound.close()
        assert driver.join(timeout=5.0)
        fake_host.messages_wait(2)

        assert fake_client.connect_calls == 1
        assert len(fake_client.requests) == 1
        connected = [m for m in fake_host.displayed if m.text == STATUS_CONNECTED]
        assert len(connected) == 1

    def test_failed_connect_is_terminal(self, fake_host, fake_client_class) -> None:
        """Connect failure yields one error, no connected status, no RPC."""
        client = fake_client_class(port=6000, connect_error=ConnectionError("refused"))
        driver, outbound, _ = _driver_build(fake_host, client)
        outbound.send(CursorEvent(line=1, column=1, source_name="a"))
        driver.start()

        assert driver.join(timeout=5.0)
        displayed = fake_host.messages_wait(2)

        errors = [m for m in displayed if m.error]
        assert len(errors) == 1
        assert errors[0].text == "Failed to connect to server http://[::1]:6000: refused"
        assert all(m.text != STATUS_CONNECTED for m in displayed)
        assert displayed[-1] == StatusMessage.info_create(STATUS_DISCONNECTED)
        assert client.connect_calls == 1
        assert client.requests == []
        assert driver.state is DriverState.CLOSED

    def test_sends_after_failed_connect_are_dropped(self, fake_host, fake_client_class) -> None:
        """Once the thread has exited the outbound channel refuses events."""
        client = fake_client_class(connect_error=ConnectionError("refused"))
        driver, outbound, _ = _driver_build(fake_host, client)
        driver.start()
        assert driver.join(timeout=5.0)

        assert outbound.send(CursorEvent(line=0, column=0)) is False


class TestRuntimeDriverStreaming:
    """Tests for the STREAMING state"""

    def test_events_forwarded_in_order(self, fake_host, fake_client) -> None:
        """Requests are issued in exact send order with mapped fields."""
        driver, outbound, _ = _driver_build(fake_host, fake_client)
        events = [
            CursorEvent(line=i, column=(i * 7) % 13, source_name=f"file{i % 3}.py")
            for i in range(100)
        ]
        driver.start()
        for event in events:
            outbound.send(event)
        outbound.close()

        assert driver.join(timeout=5.0)
        got = [(r.line_number, r.column_number, r.file_path) for r in fake_client.requests]
        assert got == [(e.line, e.column, e.source_name) for e in events]
        assert driver.reported_count == 100

    def test_close_emits_single_disconnected_and_stops(self, fake_host, fake_client) -> None:
        """End-of-stream closes the client, says goodbye once, ends the thread."""
        driver, outbound, _ = _driver_build(fake_host, fake_client)
        driver.start()
        outbound.close()

        assert driver.join(timeout=5.0)
        displayed = fake_host.messages_wait(2)

        assert [m.text for m in displayed] == [STATUS_CONNECTED, STATUS_DISCONNECTED]
        assert fake_client.close_calls == 1
        assert fake_client.requests == []
        assert driver.state is DriverState.CLOSED
        assert outbound.send(CursorEvent(line=0, column=0)) is False

    def test_inbound_closed_after_goodbye(self, fake_host, fake_client) -> None:
        """No status can be queued once the disconnected message is out."""
        driver, outbound, inbound = _driver_build(fake_host, fake_client)
        driver.start()
        outbound.close()

        assert driver.join(timeout=5.0)
        fake_host.messages_wait(2)

        assert inbound.closed is True
        assert inbound.send(StatusMessage.info_create("late")) is False

    def test_rpc_failure_does_not_stop_forwarding(self, fake_host, fake_client_class) -> None:
        """A failed report is surfaced and later events still go out."""
        client = fake_client_class(report_errors={1: ConnectionError("UNAVAILABLE: gone")})
        driver, outbound, _ = _driver_build(fake_host, client)
        driver.start()
        for line in range(4):
            outbound.send(CursorEvent(line=line, column=0, source_name="x"))
        outbound.close()

        assert driver.join(timeout=5.0)
        displayed = fake_host.messages_wait(3)

        assert [r.line_number for r in client.requests] == [0, 1, 2, 3]
        assert driver.failed_count == 1
        assert driver.reported_count == 3
        assert displayed[1] == StatusMessage.error_create(
            "Failed to report cursor movement: UNAVAILABLE: gone"
        )

    def test_consecutive_rpc_failures_surface_once(self, fake_host, fake_client_class) -> None:
        """Only the first failure of a run becomes a status message."""
        failure = ConnectionError("UNAVAILABLE: gone")
        client = fake_client_class(report_errors={0: failure, 1: failure, 2: failure, 4: failure})
        driver, outbound, _ = _driver_build(fake_host, client)
        driver.start()
        for line in range(5):
            outbound.send(CursorEvent(line=line, column=0))
        outbound.close()

        assert driver.join(timeout=5.0)
        displayed = fake_host.messages_wait(4)

        errors = [m for m in displayed if m.error]
        assert len(errors) == 2
        assert driver.failed_count == 4
        assert displayed[-1] == StatusMessage.info_create(STATUS_DISCONNECTED)


    def test_unencodable_name_does_not_stop_forwarding(self, fake_host, fake_client) -> None:
        """A name protobuf cannot encode fails only its own event."""
        driver, outbound, _ = _driver_build(fake_host, fake_client)
        driver.start()
        outbound.send(CursorEvent(line=0, column=0, source_name="ok.txt"))
        outbound.send(CursorEvent(line=1, column=0, source_name="bad\udcff.txt"))
        outbound.send(CursorEvent(line=2, column=0, source_name="after.txt"))
        outbound.close()

        assert driver.join(timeout=5.0)
        displayed = fake_host.messages_wait(3 if driver.failed_count else 2)

        lines = [r.line_number for r in fake_client.requests]
        assert lines[0] == 0
        assert lines[-1] == 2
        assert fake_client.requests[-1].file_path == "after.txt"
        assert driver.reported_count + driver.failed_count == 3
        assert displayed[-1] == StatusMessage.info_create(STATUS_DISCONNECTED)

    def test_value_error_from_report_does_not_stop_forwarding(
        self, fake_host, fake_client_class
    ) -> None:
        """Encoding errors raised while reporting are handled like RPC failures."""
        client = fake_client_class(report_errors={1: ValueError("invalid UTF-8")})
        driver, outbound, _ = _driver_build(fake_host, client)
        driver.start()
        for line in range(3):
            outbound.send(CursorEvent(line=line, column=0, source_name="x"))
        outbound.close()

        assert driver.join(timeout=5.0)
        displayed = fake_host.messages_wait(3)

        assert [r.line_number for r in client.requests] == [0, 1, 2]
        assert driver.failed_count == 1
        assert displayed[1] == StatusMessage.error_create(
            "Failed to report cursor movement: invalid UTF-8"
        )
        assert displayed[-1] == StatusMessage.info_create(STATUS_DISCONNECTED)


class TestRuntimeDriverCrash:
    """Tests for unexpected exceptions in the driver"""

    def test_unexpected_error_becomes_status(self, fake_host, fake_client_class) -> None:
        """An exception outside the handled set is converted to data."""
        client = fake_client_class(connect_error=ValueError("boom"))
        driver, outbound, _ = _driver_build(fake_host, client)
        driver.start()

        assert driver.join(timeout=5.0)
        displayed = fake_host.messages_wait(2)

        assert displayed == [
            StatusMessage.error_create("daktilo client crashed: boom"),
            StatusMessage.info_create(STATUS_DISCONNECTED),
        ]
        assert client.close_calls == 1
        assert driver.state is DriverState.CLOSED
        assert outbound.closed is True
