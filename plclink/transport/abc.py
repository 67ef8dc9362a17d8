"""
Transport interfaces for the device link.

``AbstractTransport`` is the contract the client depends on.
``BufferedTransport`` implements the half shared by every concrete
transport: the bounded receive buffer that the ingress side fills, the
write lock, the data-available signal and the once-per-disconnect
notification to the owner.

Concrete transports only open and close the physical link, write raw bytes
and feed received chunks into ``_on_data_received``.

Implementations:
- AsyncSerialTransport: pyserial-asyncio based serial port
- MockTransport: scripted in-memory device for tests
"""

from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from collections.abc import Callable
from typing import TYPE_CHECKING

from plclink.exceptions import (
    DisconnectedError,
    NotOpenError,
    WriteFailedError,
)
from plclink.protocol.constants import ProtocolConstants
from plclink.transport.buffer import ByteBuffer

if TYPE_CHECKING:
    from types import TracebackType

logger = logging.getLogger(__name__)

DisconnectCallback = Callable[[DisconnectedError], None]


class AbstractTransport(ABC):
    """
    Abstract base class for device transports.

    Transports own a receive buffer that fills in the background while the
    link is open; readers poll it or wait for data. They support the async
    context manager protocol:

        async with AsyncSerialTransport(SerialConfig(port="/dev/ttyACM0")) as transport:
            await transport.write("PI52\\n")
            await transport.wait_for_data(1.0)

    Attributes:
        on_disconnect: Called once when the link drops outside of close().
    """

    on_disconnect: DisconnectCallback | None

    @property
    @abstractmethod
    def is_open(self) -> bool:
        """True if connected and ready for I/O."""
        ...

    @property
    @abstractmethod
    def port_name(self) -> str:
        """Port name or identifier string (e.g., "/dev/ttyACM0", "COM3")."""
        ...

    @abstractmethod
    async def open(self) -> None:
        """
        Open the link and start receiving.

        Raises:
            AlreadyOpenError: If the transport is already open.
            DeviceUnavailableError: If the port cannot be claimed.
            OpenTimeoutError: If opening does not finish in time.
        """
        ...

    @abstractmethod
    async def close(self) -> None:
        """
        Close the link.

        Idempotent, and always leaves the transport closed and reopenable.
        """
        ...

    @abstractmethod
    async def write(self, data: bytes | str) -> None:
        """
        Write data to the link. Strings are sent as ASCII.

        Raises:
            NotOpenError: If the transport is not open.
            WriteFailedError: If the write fails.
        """
        ...

    @abstractmethod
    def available(self) -> int:
        """Number of buffered bytes."""
        ...

    @abstractmethod
    def peek(self, offset: int = 0) -> int | None:
        """Buffered byte at ``offset`` without consuming it."""
        ...

    @abstractmethod
    def read_byte(self) -> int | None:
        """Consume one buffered byte, or None when empty."""
        ...

    @abstractmethod
    def read_line(self) -> str | None:
        """Consume one complete line, decoded and stripped, or None."""
        ...

    @abstractmethod
    def read_all(self) -> str:
        """Consume and decode everything buffered."""
        ...

    @abstractmethod
    async def wait_for_data(self, timeout: float) -> bool:
        """
        Wait until bytes are buffered.

        Returns:
            True if data is available, False on timeout or when the link
            is closed.
        """
        ...

    async def __aenter__(self) -> AbstractTransport:
        """Async context manager entry - opens the transport."""
        await self.open()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        """Async context manager exit - closes the transport."""
        await self.close()


class BufferedTransport(AbstractTransport):
    """
    Receive buffer, write lock and disconnect handling shared by transports.

    Subclasses implement ``open``, ``close`` and ``_write_raw``, call
    ``_mark_open``/``_mark_closed`` around the link lifetime, push received
    chunks through ``_on_data_received`` and report link loss through
    ``_handle_fatal_error``.
    """

    def __init__(self, buffer_size: int = ProtocolConstants.DEFAULT_BUFFER_SIZE) -> None:
        self._buffer = ByteBuffer(buffer_size)
        self._write_lock = asyncio.Lock()
        self._data_event = asyncio.Event()
        self._open = False
        self._closing = False
        self._fatal_error_handled = False
        self.on_disconnect: DisconnectCallback | None = None

    @property
    def is_open(self) -> bool:
        return self._open

    @property
    def buffer(self) -> ByteBuffer:
        """The receive buffer."""
        return self._buffer

    # ----- lifecycle helpers -----

    def _mark_open(self) -> None:
        self._buffer.clear()
        self._data_event.clear()
        self._fatal_error_handled = False
        self._closing = False
        self._open = True

    def _mark_closed(self) -> None:
        self._open = False
        self._buffer.clear()
        # Wake readers so they observe the closed state
        self._data_event.set()

    def _on_data_received(self, chunk: bytes) -> None:
        if not chunk:
            return
        logger.debug("RX %d bytes on %s: %r", len(chunk), self.port_name, chunk[:64])
        self._buffer.extend(chunk)
        self._data_event.set()

    def _handle_fatal_error(self, error: BaseException | None = None) -> None:
        """
        Report a link loss that happened outside of close().

        The owner is notified at most once per physical disconnect.
        """
        if self._closing or self._fatal_error_handled:
            return
        self._fatal_error_handled = True
        self._open = False
        self._data_event.set()

        reason = f"Device disconnected from {self.port_name}"
        if error is not None:
            reason = f"{reason}: {error}"
        logger.error(reason)

        if self.on_disconnect is not None:
            self.on_disconnect(DisconnectedError(reason))

    # ----- writing -----

    @abstractmethod
    async def _write_raw(self, data: bytes) -> None:
        """Send bytes on the physical link."""
        ...

    async def write(self, data: bytes | str) -> None:
        if isinstance(data, str):
            data = data.encode("ascii")
        if not self._open:
            raise NotOpenError(f"Cannot write: {self.port_name} is not open")

        async with self._write_lock:
            if not self._open:
                raise NotOpenError(f"Cannot write: {self.port_name} is not open")
            logger.debug("TX %d bytes on %s: %r", len(data), self.port_name, data[:64])
            try:
                await self._write_raw(data)
            except OSError as e:
                raise WriteFailedError(f"Write to {self.port_name} failed: {e}") from e

    # ----- reading -----

    def available(self) -> int:
        return len(self._buffer)

    def peek(self, offset: int = 0) -> int | None:
        return self._buffer.peek(offset)

    def read_byte(self) -> int | None:
        return self._buffer.pop_byte()

    def read_line(self) -> str | None:
        line = self._buffer.pop_line()
        if line is None:
            return None
        return line.decode("ascii", errors="replace").strip()

    def read_all(self) -> str:
        return self._buffer.pop_all().decode("ascii", errors="replace")

    async def wait_for_data(self, timeout: float) -> bool:
        if len(self._buffer) > 0:
            return True
        if not self._open:
            return False

        self._data_event.clear()
        try:
            await asyncio.wait_for(self._data_event.wait(), timeout=timeout)
        except asyncio.TimeoutError:
            return False
        return len(self._buffer) > 0
