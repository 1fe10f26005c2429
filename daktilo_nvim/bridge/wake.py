"""
Wake bridge between the background client thread and the host loop.

The background thread calls `wake_request()` after every StatusMessage it puts
on the inbound channel. Each request schedules one `message_drain()` run on the
host loop, which takes at most one message and displays it. Producers must
enqueue before they signal; a drain that finds the channel empty does nothing.
"""

from __future__ import annotations

import logging
from typing import Callable

from daktilo_nvim.bridge.channel import InboundChannel
from daktilo_nvim.common.types import StatusMessage

logger = logging.getLogger(__name__)

Scheduler = Callable[[Callable[[], None]], None]
Display = Callable[[StatusMessage], None]


class WakeBridge:
    """Schedules display of relayed status messages on the host loop."""

    def __init__(
        self,
        inbound: InboundChannel[StatusMessage],
        scheduler: Scheduler,
        display: Display,
    ) -> None:
        """
        Initialize the wake bridge.

        Args:
            inbound:
                Channel the background thread fills with status messages.
            scheduler:
                Thread-safe primitive that runs a callable on the host loop,
                e.g. `Nvim.async_call`.
            display:
                Host-side display for one message.
        """
        self._inbound: InboundChannel[StatusMessage] = inbound
        self._scheduler: Scheduler = scheduler
        self._display: Display = display

    def wake_request(self) -> bool:
        """
        Ask the host loop to drain one message. Callable from any thread.

        Returns:
            `True` when the drain was scheduled, `False` if the host loop is gone.
        """
        try:
            self._scheduler(self.message_drain)
        except (RuntimeError, OSError, EOFError) as exc:
            logger.debug("Wake request dropped, host loop unavailable: %s", exc)
            return False
        return True

    def message_drain(self) -> StatusMessage | None:
        """
        Display at most one queued message. Runs on the host thread.

        Returns:
            The displayed message, or `None` when the channel was empty.
        """
        message: StatusMessage | None = self._inbound.receive(block=False)
        if message is None:
            logger.debug("Wake with no pending status message")
            return None
        self._display(message)
        return message
