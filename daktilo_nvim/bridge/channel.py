"""
Unbounded FIFO channels crossing the host / background thread boundary.

`OutboundChannel` carries CursorEvents from the host thread into the
background asyncio loop. `InboundChannel` carries StatusMessages from the
background thread back to the host. Both accept any number of producers and
have exactly one consumer. Sends never block; once a channel is closed (or its
consumer loop is gone) sends are dropped and report False.
"""

from __future__ import annotations

import asyncio
import logging
import queue
import threading
from typing import Generic, Optional, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class _EndOfStream:
    """Token queued behind the last item when a channel closes."""

    def __repr__(self) -> str:
        return "<end-of-stream>"


END_OF_STREAM = _EndOfStream()


class OutboundChannel(Generic[T]):
    """Host-to-background channel consumed by a coroutine on `loop`."""

    def __init__(self, loop: asyncio.AbstractEventLoop) -> None:
        """
        Initialize the channel.

        Args:
            loop:
                Event loop of the consumer. It does not need to be running yet;
                items sent before it starts are delivered once it does.
        """
        self._loop: asyncio.AbstractEventLoop = loop
        self._queue: asyncio.Queue[T | _EndOfStream] = asyncio.Queue()
        self._lock: threading.Lock = threading.Lock()
        self._closed: bool = False

    @property
    def closed(self) -> bool:
        """Whether close() has been called."""
        return self._closed

    def send(self, item: T) -> bool:
        """
        Queue an item for the consumer without blocking.

        Args:
            item:
                Item to deliver.

        Returns:
            `True` when queued, `False` when the channel or its loop is closed.
        """
        with self._lock:
            if self._closed:
                return False
            return self._enqueue(item)

    def close(self) -> None:
        """
        Close the channel.

        Items already sent are still delivered, followed by end-of-stream.
        This method is idempotent.
        """
        with self._lock:
            if self._closed:
                return
            self._closed = True
            self._enqueue(END_OF_STREAM)

    async def receive(self) -> Optional[T]:
        """
        Wait for the next item.

        Returns:
            The next item, or `None` once the channel has closed and drained.
        """
        item = await self._queue.get()
        if item is END_OF_STREAM:
            # Leave the token in place so later receives also see end-of-stream.
            self._queue.put_nowait(END_OF_STREAM)
            return None
        return item  # type: ignore[return-value]

    def _enqueue(self, item: T | _EndOfStream) -> bool:
        """Hand an item to the consumer loop; caller holds the lock."""
        try:
            self._loop.call_soon_threadsafe(self._queue.put_nowait, item)
        except RuntimeError as exc:
            # Consumer loop already closed: the background thread has exited.
            logger.debug("Dropping %r: %s", item, exc)
            return False
        return True


class InboundChannel(Generic[T]):
    """Background-to-host channel consumed synchronously on the host thread."""

    def __init__(self) -> None:
        """Initialize the channel."""
        self._queue: queue.Queue[T] = queue.Queue()
        self._closed: bool = False

    @property
    def closed(self) -> bool:
        """Whether close() has been called."""
        return self._closed

    def send(self, item: T) -> bool:
        """
        Queue an item for the host without blocking.

        Args:
            item:
                Item to deliver.

        Returns:
            `True` when queued, `False` once the channel is closed.
        """
        if self._closed:
            logger.debug("Dropping %r: inbound channel closed", item)
            return False
        self._queue.put_nowait(item)
        return True

    def receive(self, block: bool = False, timeout: Optional[float] = None) -> Optional[T]:
        """
        Take the next item.

        Args:
            block:
                Wait for an item when the channel is empty.
            timeout:
                Maximum wait in seconds when blocking.

        Returns:
            The next item, or `None` when none is available.
        """
        try:
            return self._queue.get(block=block, timeout=timeout)
        except queue.Empty:
            return None

    def close(self) -> None:
        """Stop accepting new items. Queued items can still be received."""
        self._closed = True
