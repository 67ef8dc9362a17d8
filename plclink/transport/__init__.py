"""
Transport layer for the device link.

This package provides the buffered transports the client talks through
and the reader that extracts replies from their receive buffer.

Available transports:
- AsyncSerialTransport: Async serial port using pyserial-asyncio
- MockTransport: Mock transport for testing without hardware

Example:
    >>> from plclink.models import SerialConfig
    >>> from plclink.transport import AsyncSerialTransport, LineReader
    >>> async with AsyncSerialTransport(SerialConfig(port="/dev/ttyACM0")) as transport:
    ...     await transport.write("PI52\\n")
    ...     line = await LineReader(transport).read_line(timeout=8.0)

Testing Example:
    >>> from plclink.transport import MockTransport
    >>> mock = MockTransport()
    >>> mock.add_response("OK\\n")
"""

from plclink.transport.abc import AbstractTransport, BufferedTransport
from plclink.transport.buffer import ByteBuffer
from plclink.transport.line_reader import LineReader
from plclink.transport.mock import MockTransport, ScriptedMockTransport
from plclink.transport.serial_async import AsyncSerialTransport

__all__ = [
    "AbstractTransport",
    "BufferedTransport",
    "ByteBuffer",
    "LineReader",
    "AsyncSerialTransport",
    "MockTransport",
    "ScriptedMockTransport",
]
