"""Common types and data structures for daktilo_nvim"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Sequence

STATUS_CONNECTED = "Client connected"
STATUS_DISCONNECTED = "Client disconnected"


@dataclass(frozen=True)
class CursorEvent:
    """Cursor position reported by the host, 0-indexed"""

    line: int
    column: int
    source_name: Optional[str] = None

    @classmethod
    def hostCursor_convert(
        cls, cursor: Sequence[int], source_name: Optional[str]
    ) -> "CursorEvent":
        """
        Build an event from a host cursor tuple.

        The host reports a 1-indexed line and a 0-indexed column, so only the
        line is shifted.

        Args:
            cursor:
                `(line, column)` pair as returned by `nvim_win_get_cursor`.
            source_name:
                Display name of the current buffer, passed through unchanged.

        Returns:
            CursorEvent with 0-indexed line and column.
        """
        line, column = cursor[0], cursor[1]
        return cls(line=int(line) - 1, column=int(column), source_name=source_name)


@dataclass(frozen=True)
class StatusMessage:
    """Status or error text relayed from the background client to the host"""

    error: bool
    text: str

    @classmethod
    def info_create(cls, text: str) -> "StatusMessage":
        """Create a normal status message"""
        return cls(error=False, text=text)

    @classmethod
    def error_create(cls, error: str | BaseException) -> "StatusMessage":
        """Create an error message from text or an exception"""
        return cls(error=True, text=str(error))
