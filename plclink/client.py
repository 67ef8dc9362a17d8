"""
VovkPLC device client.

This module provides the main client interface for talking to a VovkPLC
runtime over a serial link.

Every public operation is one command on the ``CommandQueue``: it writes
the command through the transport, reads the reply through the
``LineReader`` and decodes it. Commands therefore never overlap on the
wire. Before each command is written, bytes left in the receive buffer are
discarded; after a timeout the client first waits briefly for the late
reply so it is discarded too. A reply slower than that wait can still be
taken for the next command's answer, since replies carry no command id.

The client has two states:
    DISCONNECTED -> connect() -> CONNECTED
    CONNECTED -> disconnect() or link loss -> DISCONNECTED

Example:
    >>> from plclink import DeviceClient
    >>> from plclink.models import SerialConfig
    >>> from plclink.transport import AsyncSerialTransport
    >>>
    >>> async def main():
    ...     transport = AsyncSerialTransport(SerialConfig(port="/dev/ttyACM0"))
    ...     async with DeviceClient(transport) as client:
    ...         info = await client.get_info(initial=True)
    ...         print(info.device, info.version)
    ...         await client.write_memory(10, [1, 2, 3])
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Sequence
from enum import Enum, auto
from typing import TYPE_CHECKING, TypeVar

from plclink.command_queue import CommandQueue
from plclink.connection import DeviceConnection
from plclink.exceptions import (
    DeviceRejectedError,
    DisconnectedError,
    NotOpenError,
    QueueError,
    ResponseTimeoutError,
    TransportError,
)
from plclink.models.records import MemoryReadResult
from plclink.parsers.data_block_parser import parse_data_block_info
from plclink.parsers.health_parser import parse_health
from plclink.parsers.info_parser import parse_device_info
from plclink.parsers.record_list_parser import parse_symbol_list, parse_transport_list
from plclink.parsers.response_parser import is_error_reply, parse_acknowledgement, parse_hex_payload
from plclink.protocol.commands import (
    build_memory_format,
    build_memory_read,
    build_memory_write,
    build_memory_write_masked,
    build_program_download,
    build_simple_command,
    build_tc_config,
    chunk_command,
)
from plclink.protocol.constants import CommandCode, ProtocolConstants
from plclink.transport.line_reader import LineReader

if TYPE_CHECKING:
    from plclink.models.records import (
        DataBlockInfo,
        DeviceInfo,
        HealthSnapshot,
        MemorySubscription,
        SymbolEntry,
        TransportInfo,
    )
    from plclink.transport.abc import AbstractTransport

# Module logger
logger = logging.getLogger(__name__)

T = TypeVar("T")

_TERMINATOR = ProtocolConstants.LINE_TERMINATOR.decode("ascii")


class ClientState(Enum):
    """Device client connection states."""

    DISCONNECTED = auto()
    """Transport closed; commands are rejected by the transport."""

    CONNECTED = auto()
    """Transport open and ready for commands."""


class DeviceClient(DeviceConnection):
    """
    Client for a VovkPLC runtime on a byte-stream transport.

    Attributes:
        state: Current connection state.
        transport: The underlying transport.
        queue: The command queue serializing operations.
        on_disconnected: Called with the error after a link loss, once the
            pending commands have been cancelled.

    Example:
        >>> client = DeviceClient(transport)
        >>> await client.connect()
        >>> health = await client.get_health()
        >>> await client.disconnect()
    """

    def __init__(
        self,
        transport: AbstractTransport,
        *,
        queue_capacity: int = ProtocolConstants.QUEUE_CAPACITY,
        command_timeout: float = ProtocolConstants.COMMAND_TIMEOUT,
        chunk_size: int = ProtocolConstants.CHUNK_SIZE,
        chunk_delay: float = ProtocolConstants.CHUNK_DELAY,
    ) -> None:
        """
        Initialize the device client.

        Args:
            transport: Transport layer for communication.
            queue_capacity: Maximum number of commands waiting to start.
            command_timeout: Default per-command timeout in seconds.
            chunk_size: Maximum characters per write for program downloads.
            chunk_delay: Pause between download chunks in seconds.
        """
        self._transport = transport
        self._queue = CommandQueue(queue_capacity, command_timeout)
        self._reader = LineReader(transport)
        self._chunk_size = chunk_size
        self._chunk_delay = chunk_delay
        self._state = ClientState.DISCONNECTED
        self.on_disconnected: Callable[[BaseException], None] | None = None
        self._queue.on_timeout = self._handle_command_timeout
        transport.on_disconnect = self._handle_disconnect

    @property
    def state(self) -> ClientState:
        """Get the current connection state."""
        return self._state

    @property
    def is_connected(self) -> bool:
        """Check if client is connected to a device."""
        return self._state == ClientState.CONNECTED and self._transport.is_open

    @property
    def transport(self) -> AbstractTransport:
        """Get the underlying transport."""
        return self._transport

    @property
    def queue(self) -> CommandQueue:
        """Get the command queue."""
        return self._queue

    # ===== Lifecycle =====

    async def connect(self) -> None:
        """
        Open the transport.

        Raises:
            AlreadyOpenError: If the transport is already open.
            DeviceUnavailableError: If the port cannot be claimed.
            OpenTimeoutError: If opening takes too long.
        """
        await self._transport.open()
        self._state = ClientState.CONNECTED
        logger.info("Connected to %s", self._transport.port_name)

    async def disconnect(self) -> None:
        """
        Clear the command queue and close the transport.

        Memory polling stops first. Commands that have not started are settled
        with QueueError. Safe to call when already disconnected.
        """
        await self.unsubscribe_memory()
        self._queue.cancel_all(QueueError("Command queue cleared"))
        try:
            await self._transport.close()
        finally:
            if self._state != ClientState.DISCONNECTED:
                logger.info("Disconnected from %s", self._transport.port_name)
            self._state = ClientState.DISCONNECTED

    def _handle_disconnect(self, error: DisconnectedError) -> None:
        self._state = ClientState.DISCONNECTED
        cancelled = self._queue.cancel_all(error)
        logger.warning("Connection lost, cancelled %d pending commands", cancelled)
        if self.on_disconnected is not None:
            self.on_disconnected(error)

    async def _handle_command_timeout(self, label: str) -> None:
        # The device may still answer the abandoned command
        discarded = await self._reader.flush(
            ProtocolConstants.STALE_REPLY_SETTLE,
            ProtocolConstants.FLUSH_GAP,
        )
        if discarded:
            logger.warning("Discarded %d chars of a %s reply that arrived after its timeout", discarded, label)

    # ===== Device info and health =====

    async def get_info(self, initial: bool = False) -> DeviceInfo:
        """
        Read the device info record.

        Args:
            initial: Send a ``?`` wake-up first and discard whatever the device
                answers; used right after connecting, when a boot banner may
                still be pending.

        Raises:
            ResponseTimeoutError: If the device does not answer at all.
            IncompleteResponseError: If the record never completes.
            MalformedResponseError: If the record cannot be parsed.
            UnknownFormatGenerationError: If the layout is not recognised.
        """
        command = build_simple_command(CommandCode.PROGRAM_INFO)

        async def operation() -> DeviceInfo:
            if initial:
                self._reader.discard_pending()
                await self._transport.write(ProtocolConstants.WAKE_UP)
                await self._reader.drain(
                    ProtocolConstants.WAKE_UP_TIMEOUT,
                    ProtocolConstants.WAKE_UP_DRAIN_GAP,
                )

            await self._send(command)
            if not await self._reader.wait_for_data(ProtocolConstants.INFO_FIRST_BYTE_TIMEOUT):
                self._ensure_open()
                raise ResponseTimeoutError(
                    "No response from device",
                    timeout_seconds=ProtocolConstants.INFO_FIRST_BYTE_TIMEOUT,
                )
            raw = await self._reader.read_bracketed()
            return parse_device_info(raw)

        return await self._submit("get_info", operation, ProtocolConstants.LONG_COMMAND_TIMEOUT)

    async def get_health(self) -> HealthSnapshot:
        """
        Read the runtime health counters.

        Raises:
            DeviceRejectedError: If the device answers with an error.
            MalformedResponseError: If the payload is too short.
        """
        command = build_simple_command(CommandCode.HEALTH)

        async def operation() -> HealthSnapshot:
            await self._send(command)
            line = await self._reader.read_line(ProtocolConstants.RESPONSE_TIMEOUT)
            if is_error_reply(line):
                raise DeviceRejectedError(line)
            return parse_health(line)

        return await self._submit("get_health", operation)

    async def reset_health(self) -> None:
        """Reset the runtime health counters."""
        await self._command_with_ack("reset_health", build_simple_command(CommandCode.RESET_HEALTH))

    # ===== Execution control =====

    async def run(self) -> None:
        """Start program execution. The device sends no reply."""
        await self._command_only("run", build_simple_command(CommandCode.PROGRAM_RUN))

    async def stop(self) -> None:
        """Stop program execution. The device sends no reply."""
        await self._command_only("stop", build_simple_command(CommandCode.PROGRAM_STOP))

    async def reboot(self) -> None:
        """Reset the runtime. The device sends no reply."""
        await self._command_only("reboot", build_simple_command(CommandCode.PLC_RESET))

    async def monitor(self) -> None:
        """Enable monitoring. The device sends no reply."""
        await self._command_only("monitor", build_simple_command(CommandCode.MONITOR))

    # ===== Program transfer =====

    async def download_program(self, bytecode: bytes | Sequence[int]) -> None:
        """
        Load a compiled program onto the device.

        The command is written in chunks with a short pause between them so
        small device-side receive buffers do not overflow. After the
        acknowledgement, stray bytes are flushed so the next command starts
        on a clean buffer.

        Raises:
            ValueError: If a bytecode value is not a byte.
            DeviceRejectedError: If the device rejects the program.
        """
        command = build_program_download(bytecode)

        async def operation() -> None:
            await self._send_chunked(command + _TERMINATOR)
            ack = await self._reader.read_line(ProtocolConstants.PROGRAM_RESPONSE_TIMEOUT)
            try:
                await self._reader.flush(
                    ProtocolConstants.DOWNLOAD_SETTLE_DELAY,
                    ProtocolConstants.FLUSH_GAP,
                )
            except TransportError as e:
                logger.warning("Flush after program download failed: %s", e)
            parse_acknowledgement(ack)

        await self._submit("download_program", operation, ProtocolConstants.LONG_COMMAND_TIMEOUT)
        logger.debug("Program downloaded")

    async def upload_program(self) -> bytes:
        """
        Read the program currently on the device.

        Returns:
            The program bytecode.
        """
        command = build_simple_command(CommandCode.PROGRAM_UPLOAD)

        async def operation() -> bytes:
            await self._send(command)
            line = await self._reader.read_line(ProtocolConstants.PROGRAM_RESPONSE_TIMEOUT)
            return parse_hex_payload(line)

        return await self._submit("upload_program", operation, ProtocolConstants.LONG_COMMAND_TIMEOUT)

    # ===== Memory =====

    async def read_memory(self, address: int, size: int) -> bytes:
        """
        Read device memory.

        Args:
            address: Start address.
            size: Number of bytes.

        Returns:
            The bytes as sent by the device.
        """
        command = build_memory_read(address, size)

        async def operation() -> bytes:
            await self._send(command)
            line = await self._reader.read_line(ProtocolConstants.LONG_RESPONSE_TIMEOUT)
            data = parse_hex_payload(line)
            if len(data) != size:
                logger.warning("Memory read at %d returned %d bytes, requested %d", address, len(data), size)
            return data

        return await self._submit("read_memory", operation)

    async def write_memory(self, address: int, data: bytes | Sequence[int]) -> None:
        """
        Write device memory.

        Raises:
            ValueError: If an address or byte value is out of range.
            DeviceRejectedError: If the device rejects the write.
        """
        await self._command_with_ack("write_memory", build_memory_write(address, data))

    async def write_memory_masked(
        self,
        address: int,
        data: bytes | Sequence[int],
        mask: bytes | Sequence[int],
    ) -> None:
        """
        Write only the bits of ``data`` selected by ``mask``.

        Raises:
            ValueError: If data and mask lengths differ.
        """
        await self._command_with_ack(
            "write_memory_masked",
            build_memory_write_masked(address, data, mask),
        )

    async def format_memory(self, address: int, size: int, value: int) -> None:
        """Fill ``size`` bytes at ``address`` with ``value``."""
        await self._command_with_ack("format_memory", build_memory_format(address, size, value))

    async def configure_tc_offsets(self, timer_offset: int, counter_offset: int) -> None:
        """Set the timer and counter memory offsets."""
        await self._command_with_ack(
            "configure_tc_offsets",
            build_tc_config(timer_offset, counter_offset),
        )

    # ===== Device tables =====

    async def get_symbol_list(self) -> list[SymbolEntry]:
        """Read the device symbol table."""
        command = build_simple_command(CommandCode.SYMBOL_LIST)

        async def operation() -> list[SymbolEntry]:
            await self._send(command)
            line = await self._reader.read_line(ProtocolConstants.LONG_RESPONSE_TIMEOUT)
            return parse_symbol_list(line)

        return await self._submit("get_symbol_list", operation)

    async def get_transport_info(self) -> list[TransportInfo]:
        """Read the device's communication interfaces."""
        command = build_simple_command(CommandCode.TRANSPORT_INFO)

        async def operation() -> list[TransportInfo]:
            await self._send(command)
            line = await self._reader.read_line(ProtocolConstants.LONG_RESPONSE_TIMEOUT)
            return parse_transport_list(line)

        return await self._submit("get_transport_info", operation)

    async def get_data_block_info(self) -> DataBlockInfo:
        """
        Read the data block table.

        Raises:
            DeviceRejectedError: If the device answers with an error.
            MalformedResponseError: If a table value is out of range.
        """
        command = build_simple_command(CommandCode.DATA_BLOCK_INFO)

        async def operation() -> DataBlockInfo:
            await self._send(command)
            line = await self._reader.read_line(ProtocolConstants.RESPONSE_TIMEOUT)
            if is_error_reply(line):
                raise DeviceRejectedError(line)
            return parse_data_block_info(line)

        return await self._submit("get_data_block_info", operation)

    # ===== Memory subscriptions =====

    async def read_subscriptions(self, subscriptions: Sequence[MemorySubscription]) -> list[MemoryReadResult]:
        """
        Read every subscribed region as one queued command.

        The pre-built commands are sent back to back so other operations
        cannot interleave with a polling round.
        """

        async def operation() -> list[MemoryReadResult]:
            results = []
            for subscription in subscriptions:
                await self._send(subscription.command)
                line = await self._reader.read_line(ProtocolConstants.LONG_RESPONSE_TIMEOUT)
                results.append(
                    MemoryReadResult(
                        address=subscription.address,
                        size=subscription.size,
                        data=parse_hex_payload(line),
                    )
                )
            return results

        return await self._submit("memory_poll", operation)

    # ===== Helpers =====

    def _submit(
        self,
        label: str,
        operation: Callable[[], Awaitable[T]],
        timeout: float | None = None,
    ) -> Awaitable[T]:
        return self._queue.enqueue(label, operation, timeout)

    def _ensure_open(self) -> None:
        if not self._transport.is_open:
            raise NotOpenError("Connection closed")

    async def _send(self, command: str) -> None:
        # Anything buffered now cannot be the reply to this command
        self._reader.discard_pending()
        await self._transport.write(command + _TERMINATOR)

    async def _send_chunked(self, text: str) -> None:
        self._reader.discard_pending()
        for chunk in chunk_command(text, self._chunk_size):
            await self._transport.write(chunk)
            if self._chunk_delay > 0:
                await asyncio.sleep(self._chunk_delay)

    async def _command_only(self, label: str, command: str) -> None:
        async def operation() -> None:
            await self._send(command)

        await self._submit(label, operation)

    async def _command_with_ack(self, label: str, command: str) -> None:
        async def operation() -> None:
            await self._send(command)
            line = await self._reader.read_line(ProtocolConstants.RESPONSE_TIMEOUT)
            parse_acknowledgement(line)

        await self._submit(label, operation)

    async def __aenter__(self) -> DeviceClient:
        """Async context manager entry - opens the transport."""
        if self._transport.is_open:
            self._state = ClientState.CONNECTED
        else:
            await self.connect()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        """Async context manager exit - clears the queue and closes the transport."""
        await self.disconnect()

    def __repr__(self) -> str:
        return (
            f"DeviceClient(state={self._state.name}, port={self._transport.port_name!r}, "
            f"pending={self._queue.pending_count})"
        )
