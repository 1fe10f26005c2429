"""
Neovim host adapter.

Converts host-native cursor and buffer data into CursorEvents, hands them to
the bridge without blocking, and displays relayed StatusMessages. Everything
here runs on the pynvim plugin host loop.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Optional

from daktilo_nvim.bridge.session import CursorBridge
from daktilo_nvim.common.types import CursorEvent, StatusMessage

logger = logging.getLogger(__name__)

# Evaluated by Neovim when the autocmd fires, so the position is the one at
# event time rather than when the notification is handled.
CURSOR_INFO_EVAL = "[nvim_win_get_cursor(0), nvim_buf_get_name(0)]"


def bufferName_normalize(name: str) -> str:
    """Replace undecodable bytes in a buffer name with U+FFFD."""
    # pynvim hands non-UTF-8 names over as surrogate escapes, which protobuf rejects
    try:
        raw: bytes = name.encode("utf-8", "surrogateescape")
    except UnicodeEncodeError:
        raw = name.encode("utf-8", "replace")
    return raw.decode("utf-8", errors="replace")


def cursorInfo_parse(cursor_info: Any) -> Optional[CursorEvent]:
    """
    Build a CursorEvent from the autocmd's evaluated cursor info.

    Args:
        cursor_info: `[[line, column], buffer_name]` with a 1-indexed line

    Returns:
        CursorEvent, or None when the value does not have that shape
    """
    try:
        cursor, name = cursor_info
        line, column = cursor
    except (TypeError, ValueError):
        logger.debug("Unexpected cursor info %r", cursor_info)
        return None
    if isinstance(name, bytes):
        name = name.decode("utf-8", errors="replace")
    elif isinstance(name, str):
        name = bufferName_normalize(name)
    elif name is not None:
        name = str(name)
    return CursorEvent.hostCursor_convert((line, column), name)


class NvimHostAdapter:
    """Host operations backed by a pynvim `Nvim` instance."""

    def __init__(self, nvim: Any) -> None:
        """
        Initialize adapter.

        Args:
            nvim: Attached pynvim Nvim object
        """
        self.nvim: Any = nvim

    def cursorMoved_handle(self, cursor_info: Any, bridge: Optional[CursorBridge]) -> bool:
        """
        Forward one insert-mode cursor movement to the bridge.

        Args:
            cursor_info: Evaluated autocmd value
            bridge: Active bridge session, None when the plugin is stopped

        Returns:
            `True` when the event was queued.
        """
        if bridge is None:
            return False
        event: Optional[CursorEvent] = cursorInfo_parse(cursor_info)
        if event is None:
            return False
        return bridge.cursorEvent_submit(event)

    def message_display(self, message: StatusMessage) -> None:
        """
        Show a relayed status message.

        Args:
            message: Message from the background client
        """
        if message.error:
            self.nvim.err_writeln(message.text)
        else:
            self.nvim.out_write(message.text + "\n")

    def wake_schedule(self, callback: Callable[[], None]) -> None:
        """
        Run `callback` on the plugin host loop. Safe to call from any thread.

        Args:
            callback: Zero-argument callable
        """
        self.nvim.async_call(callback)
