"""
Bounded receive buffer.

The ingress task appends everything the port delivers; readers consume from
the front. When the buffer is full the oldest bytes are discarded, so a
stalled reader costs history, never memory.
"""

from __future__ import annotations

import logging

from plclink.protocol.constants import ProtocolConstants

logger = logging.getLogger(__name__)

_NEWLINE = ProtocolConstants.LINE_TERMINATOR[0]


class ByteBuffer:
    """
    Bounded FIFO of bytes that drops the oldest data on overflow.

    Example:
        >>> buf = ByteBuffer(capacity=4)
        >>> buf.extend(b"abcdef")
        >>> bytes(buf.pop_all()), buf.dropped
        (b'cdef', 2)
    """

    def __init__(self, capacity: int = ProtocolConstants.DEFAULT_BUFFER_SIZE) -> None:
        if capacity <= 0:
            raise ValueError(f"Buffer capacity must be positive, got {capacity}")
        self._capacity = capacity
        self._data = bytearray()
        self._dropped = 0

    @property
    def capacity(self) -> int:
        """Maximum number of bytes held."""
        return self._capacity

    @property
    def dropped(self) -> int:
        """Total bytes discarded because of overflow."""
        return self._dropped

    def __len__(self) -> int:
        return len(self._data)

    def extend(self, chunk: bytes | bytearray) -> None:
        """Append bytes, discarding the oldest ones beyond capacity."""
        if not chunk:
            return
        self._data.extend(chunk)
        overflow = len(self._data) - self._capacity
        if overflow > 0:
            del self._data[:overflow]
            self._dropped += overflow
            logger.warning(
                "Receive buffer overflow, dropped %d oldest bytes (capacity %d)",
                overflow,
                self._capacity,
            )

    def peek(self, offset: int = 0) -> int | None:
        """Byte at ``offset`` without consuming it, or None past the end."""
        if 0 <= offset < len(self._data):
            return self._data[offset]
        return None

    def find(self, value: int) -> int:
        """Index of the first occurrence of ``value``, or -1."""
        return self._data.find(value)

    def pop_byte(self) -> int | None:
        """Consume one byte, or return None when empty."""
        if not self._data:
            return None
        value = self._data[0]
        del self._data[0]
        return value

    def pop_line(self) -> bytes | None:
        """Consume up to and including the first newline, or None if absent."""
        index = self._data.find(_NEWLINE)
        if index < 0:
            return None
        line = bytes(self._data[: index + 1])
        del self._data[: index + 1]
        return line

    def pop_all(self) -> bytes:
        """Consume everything."""
        data = bytes(self._data)
        self._data.clear()
        return data

    def clear(self) -> None:
        """Discard everything without touching the dropped counter."""
        self._data.clear()

    def __repr__(self) -> str:
        return f"ByteBuffer({len(self._data)}/{self._capacity}, dropped={self._dropped})"
