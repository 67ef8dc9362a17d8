"""
plclink - Python client for the VovkPLC runtime device protocol.

This library provides async communication with VovkPLC runtimes over a
serial port (USB-CDC or UART): device info, health counters, program
transfer, memory access and polling, and the device symbol, transport and
data block tables. The same operations run against an in-process virtual
machine for simulation.

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
    ...         health = await client.get_health()
    ...         print(health.last_cycle_time_us)
"""

from plclink.client import ClientState, DeviceClient
from plclink.command_queue import CommandQueue
from plclink.connection import DeviceConnection, open_connection
from plclink.exceptions import (
    AlreadyOpenError,
    ChecksumMismatchError,
    CommandTimeoutError,
    ConnectError,
    DeviceRejectedError,
    DeviceUnavailableError,
    DisconnectedError,
    IncompleteResponseError,
    MalformedResponseError,
    NotOpenError,
    OpenTimeoutError,
    PLCLinkError,
    ProtocolError,
    QueueError,
    QueueFullError,
    ResponseTimeoutError,
    TimeoutError,
    TransportError,
    UnknownFormatGenerationError,
    UnsupportedOperationError,
    WriteFailedError,
)
from plclink.models.records import (
    DataBlockEntry,
    DataBlockInfo,
    DeviceInfo,
    DeviceLayout,
    HealthSnapshot,
    MemoryReadResult,
    MemorySubscription,
    SymbolEntry,
    TransportInfo,
)
from plclink.simulation import SimulationClient, VirtualMachine
from plclink.subscriptions import MemoryPoller
from plclink.transport import AbstractTransport, AsyncSerialTransport

__version__ = "0.1.0"
__all__ = [
    # Connections
    "DeviceConnection",
    "DeviceClient",
    "ClientState",
    "SimulationClient",
    "VirtualMachine",
    "open_connection",
    "CommandQueue",
    "MemoryPoller",
    # Models
    "DataBlockEntry",
    "DataBlockInfo",
    "DeviceInfo",
    "DeviceLayout",
    "HealthSnapshot",
    "MemoryReadResult",
    "MemorySubscription",
    "SymbolEntry",
    "TransportInfo",
    # Exceptions
    "PLCLinkError",
    "TimeoutError",
    "ResponseTimeoutError",
    "ConnectError",
    "AlreadyOpenError",
    "DeviceUnavailableError",
    "OpenTimeoutError",
    "TransportError",
    "NotOpenError",
    "WriteFailedError",
    "DisconnectedError",
    "QueueError",
    "QueueFullError",
    "CommandTimeoutError",
    "ProtocolError",
    "MalformedResponseError",
    "ChecksumMismatchError",
    "UnknownFormatGenerationError",
    "IncompleteResponseError",
    "DeviceRejectedError",
    "UnsupportedOperationError",
    # Transport
    "AbstractTransport",
    "AsyncSerialTransport",
    # Version
    "__version__",
]
