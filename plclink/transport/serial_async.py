"""
Async serial transport using pyserial-asyncio.

This module provides the transport for real hardware: a VovkPLC runtime on
a USB-CDC or UART serial port.

Serial configuration defaults:
- Baud rate: 115200
- Data bits: 8
- Parity: None
- Stop bits: 1
- Flow control: None

Opening runs in a worker thread raced against a deadline because some
USB-CDC drivers stall inside the blocking open call. While open, an ingress
task copies every received chunk into the bounded receive buffer; close()
cancels that task so a pending read is interrupted immediately.

Example:
    >>> transport = AsyncSerialTransport(SerialConfig(port="/dev/ttyACM0"))
    >>> async with transport:
    ...     await transport.write("PI52\\n")
    ...     await transport.wait_for_data(5.0)
"""

from __future__ import annotations

import asyncio
import functools
import logging
import threading
from collections.abc import Callable

import serial
import serial_asyncio

from plclink.exceptions import AlreadyOpenError, DeviceUnavailableError, NotOpenError, OpenTimeoutError
from plclink.models.config import FlowControl, Parity, SerialConfig
from plclink.protocol.constants import ProtocolConstants
from plclink.transport.abc import BufferedTransport

logger = logging.getLogger(__name__)

_PARITY = {
    Parity.NONE: serial.PARITY_NONE,
    Parity.EVEN: serial.PARITY_EVEN,
    Parity.ODD: serial.PARITY_ODD,
    Parity.MARK: serial.PARITY_MARK,
    Parity.SPACE: serial.PARITY_SPACE,
}

_STOP_BITS = {
    1: serial.STOPBITS_ONE,
    1.5: serial.STOPBITS_ONE_POINT_FIVE,
    2: serial.STOPBITS_TWO,
}


class _PortOpener:
    """
    Runs a blocking port open in a worker thread.

    The thread cannot be interrupted, so a port that finishes opening after
    the caller gave up is closed instead of leaking.
    """

    def __init__(self, factory: Callable[[], serial.SerialBase]) -> None:
        self._factory = factory
        self._lock = threading.Lock()
        self._abandoned = False
        self._port: serial.SerialBase | None = None

    def open(self) -> serial.SerialBase:
        port = self._factory()
        with self._lock:
            if self._abandoned:
                port.close()
            else:
                self._port = port
        return port

    def abandon(self) -> None:
        with self._lock:
            self._abandoned = True
            port, self._port = self._port, None
        if port is not None:
            logger.warning("Closing %s, which opened after its deadline", port.port)
            port.close()


class AsyncSerialTransport(BufferedTransport):
    """
    Async serial transport using pyserial-asyncio.

    Attributes:
        port_name: Serial port path (e.g., "/dev/ttyACM0", "COM3").
        is_open: Whether the port is currently open.

    Example:
        >>> transport = AsyncSerialTransport(SerialConfig(port="COM3"), open_timeout=2.0)
        >>> await transport.open()
        >>> try:
        ...     await transport.write(b"PI52\\n")
        ... finally:
        ...     await transport.close()
    """

    def __init__(
        self,
        config: SerialConfig,
        *,
        open_timeout: float = ProtocolConstants.OPEN_TIMEOUT,
        close_timeout: float = ProtocolConstants.CLOSE_TIMEOUT,
        buffer_size: int = ProtocolConstants.DEFAULT_BUFFER_SIZE,
    ) -> None:
        """
        Initialize the async serial transport.

        Args:
            config: Port settings.
            open_timeout: Deadline for opening the port, in seconds.
            close_timeout: Overall budget for close(), in seconds.
            buffer_size: Receive buffer capacity in bytes.
        """
        super().__init__(buffer_size)
        self._config = config
        self._open_timeout = open_timeout
        self._close_timeout = close_timeout
        self._reader: asyncio.StreamReader | None = None
        self._writer: asyncio.StreamWriter | None = None
        self._ingress_task: asyncio.Task[None] | None = None

    @property
    def port_name(self) -> str:
        """Get the serial port path."""
        return self._config.port

    @property
    def config(self) -> SerialConfig:
        """Get the port settings."""
        return self._config

    async def open(self) -> None:
        """
        Open the serial port and start the ingress task.

        The blocking pyserial open runs in a worker thread so the open
        deadline can fire even when the driver stalls.

        Raises:
            AlreadyOpenError: If the port is already open.
            DeviceUnavailableError: If the port cannot be claimed.
            OpenTimeoutError: If opening takes longer than the open deadline.
        """
        if self._open:
            raise AlreadyOpenError(f"Serial port {self.port_name} already open. Call close() first.")
        if self._writer is not None or self._ingress_task is not None:
            # Handle left behind by a disconnect
            await self.close()

        config = self._config
        opener = _PortOpener(
            functools.partial(
                serial.serial_for_url,
                config.port,
                baudrate=config.baudrate,
                bytesize=config.data_bits,
                parity=_PARITY[config.parity],
                stopbits=_STOP_BITS[config.stop_bits],
                xonxoff=config.flow_control == FlowControl.SOFTWARE,
                rtscts=config.flow_control == FlowControl.HARDWARE,
                dsrdtr=False,
            )
        )
        try:
            port = await asyncio.wait_for(asyncio.to_thread(opener.open), timeout=self._open_timeout)
        except asyncio.TimeoutError:
            # asyncio.TimeoutError is an OSError on 3.11+, so it goes first
            opener.abandon()
            raise OpenTimeoutError(
                f"Timed out opening {self.port_name}",
                timeout_seconds=self._open_timeout,
            ) from None
        except (serial.SerialException, OSError, ValueError) as e:
            raise DeviceUnavailableError(f"Failed to open serial port {self.port_name}: {e}") from e

        try:
            self._reader, self._writer = await self._attach(port)
        except (serial.SerialException, OSError, ValueError) as e:
            port.close()
            raise DeviceUnavailableError(f"Failed to open serial port {self.port_name}: {e}") from e

        self._mark_open()
        self._ingress_task = asyncio.create_task(
            self._ingress_loop(self._reader),
            name=f"plclink-ingress-{self.port_name}",
        )
        logger.info("Opened %s at %d baud", self.port_name, config.baudrate)

    async def _attach(self, port: serial.SerialBase) -> tuple[asyncio.StreamReader, asyncio.StreamWriter]:
        """Wrap an opened port in a stream reader and writer."""
        loop = asyncio.get_running_loop()
        reader = asyncio.StreamReader()
        protocol = asyncio.StreamReaderProtocol(reader)
        transport, _ = await serial_asyncio.connection_for_serial(loop, lambda: protocol, port)
        writer = asyncio.StreamWriter(transport, protocol, reader, loop)
        return reader, writer

    async def _ingress_loop(self, reader: asyncio.StreamReader) -> None:
        """Copy received chunks into the buffer until EOF, error or cancel."""
        try:
            while True:
                chunk = await reader.read(ProtocolConstants.READ_CHUNK_SIZE)
                if not chunk:
                    self._handle_fatal_error(EOFError("serial stream closed"))
                    return
                self._on_data_received(chunk)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            self._handle_fatal_error(e)

    async def close(self) -> None:
        """
        Close the serial port.

        Safe to call multiple times. The transport ends up closed even if a
        step fails or the close budget expires; such failures are logged.
        """
        if self._writer is None and self._ingress_task is None and not self._open:
            return

        self._closing = True
        try:
            await asyncio.wait_for(self._shutdown(), timeout=self._close_timeout)
        except asyncio.TimeoutError:
            logger.warning(
                "Closing %s took longer than %.1fs, forcing closed state",
                self.port_name,
                self._close_timeout,
            )
        finally:
            self._reader = None
            self._writer = None
            self._ingress_task = None
            self._mark_closed()
            self._closing = False
        logger.info("Closed %s", self.port_name)

    async def _shutdown(self) -> None:
        task = self._ingress_task
        if task is not None and not task.done():
            task.cancel()
            await asyncio.gather(task, return_exceptions=True)

        writer = self._writer
        if writer is not None:
            try:
                writer.close()
                await writer.wait_closed()
            except (serial.SerialException, OSError) as e:
                logger.warning("Error closing %s: %s", self.port_name, e)

    async def _write_raw(self, data: bytes) -> None:
        if self._writer is None:
            raise NotOpenError(f"Cannot write: {self.port_name} is not open")
        self._writer.write(data)
        await self._writer.drain()

    def __repr__(self) -> str:
        status = "open" if self._open else "closed"
        return f"AsyncSerialTransport({self.port_name!r}, baudrate={self._config.baudrate}, {status})"
